"""Per-element HTML fragment rendering.

``ElementRenderer.render`` is a pure function of an element and a render
context. Dispatch goes through a table keyed by ``ElementKind`` that covers
every kind, so an unrecognised stored type still renders, as a diagnostic
block echoing its raw content.

Resolved text is inserted as-is: the resolver performs no escaping, so text
destined for documents must be sanitised before it is stored.
"""

from __future__ import annotations

import html
import json
import re
from collections.abc import Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from crane_crm.features.templates.elements import Element, ElementKind
from crane_crm.features.templates.placeholders import (
    DOCUMENT_DEFAULTS,
    find_missing,
    has_value,
    lookup,
    resolve,
    stringify,
)

if TYPE_CHECKING:
    from collections.abc import Callable

_CAMEL_BOUNDARY = re.compile(r"([a-z0-9])([A-Z])")
_NON_NUMERIC = re.compile(r"[^\d.\-]")

DEFAULT_TERMS_TEXT = "Terms and conditions apply."


@dataclass(frozen=True, slots=True)
class Column:
    key: str
    label: str
    width: str = ""
    alignment: str = "left"


DEFAULT_COLUMNS: tuple[Column, ...] = (
    Column("no", "S.No.", "5%", "center"),
    Column("description", "Description/Equipment Name", "25%", "left"),
    Column("capacity", "Capacity/Specifications", "12%", "center"),
    Column("jobType", "Job Type", "8%", "center"),
    Column("quantity", "Quantity", "8%", "center"),
    Column("duration", "Duration/Days", "10%", "center"),
    Column("rate", "Rate/Day", "10%", "right"),
    Column("rental", "Total Rental", "12%", "right"),
    Column("mobilization", "Mobilization", "10%", "right"),
    Column("demobilization", "Demobilization", "10%", "right"),
    Column("amount", "Total Amount", "12%", "right"),
)

DEFAULT_TOTAL_FIELDS: tuple[dict[str, Any], ...] = (
    {"label": "Subtotal", "value": "{{totals.subtotal}}", "showIf": "always"},
    {"label": "Total", "value": "{{totals.total}}", "showIf": "always", "emphasized": True},
)

DEFAULT_QUOTATION_LINES: tuple[str, ...] = (
    "Quotation No: {{quotation.number}}",
    "Date: {{quotation.date}}",
    "Valid Until: {{quotation.validUntil}}",
)

_CLIENT_KEYS = ("name", "company", "address", "phone", "email")
_COMPANY_KEYS = ("name", "address", "phone", "email")


def camel_to_kebab(name: str) -> str:
    return _CAMEL_BOUNDARY.sub(r"\1-\2", name).lower()


def inline_style(style: Mapping[str, Any] | None) -> str:
    """Serialise a style map to a CSS declaration list, keeping key order."""
    if not style:
        return ""
    return "; ".join(
        f"{camel_to_kebab(str(key))}: {html.escape(stringify(value), quote=True)}"
        for key, value in style.items()
        if value is not None
    )


def parse_amount(value: Any) -> float:
    """Numeric value of an amount string such as ``'₹1,44,000'``; 0 when unparsable."""
    if isinstance(value, bool) or value is None:
        return 0.0
    if isinstance(value, (int, float)):
        return float(value)
    cleaned = _NON_NUMERIC.sub("", str(value))
    try:
        return float(cleaned)
    except ValueError:
        return 0.0


def _items(context: Any) -> list[Any]:
    for key in ("items", "selectedMachines"):
        value = lookup(context, key)
        if isinstance(value, list) and value:
            return value
    return []


class ElementRenderer:
    """Renders one template element to an HTML fragment.

    Example:
        renderer = ElementRenderer()
        fragment = renderer.render(Element.parse(raw), {"quotation": {"number": "Q-7"}})
    """

    def __init__(self) -> None:
        self._routines: dict[ElementKind, Callable[[Element, Any], str]] = {
            ElementKind.HEADER: self._header,
            ElementKind.COMPANY_INFO: self._company_info,
            ElementKind.CLIENT_INFO: self._client_info,
            ElementKind.QUOTATION_INFO: self._quotation_info,
            ElementKind.ITEMS_TABLE: self._items_table,
            ElementKind.TOTALS: self._totals,
            ElementKind.TERMS: self._terms,
            ElementKind.FOOTER: self._footer,
            ElementKind.CUSTOM_TEXT: self._custom_text,
            ElementKind.TEXT: self._text,
            ElementKind.IMAGE: self._image,
            ElementKind.DIVIDER: self._divider,
            ElementKind.SPACER: self._spacer,
            ElementKind.SIGNATURE: self._signature,
            ElementKind.UNKNOWN: self._unknown,
        }
        missing = set(ElementKind) - set(self._routines)
        if missing:
            raise RuntimeError(f"No render routine for element kinds: {sorted(missing)}")

    def render(self, element: Element | Mapping[str, Any], context: Any) -> str:
        """Render ``element`` against ``context``; hidden elements yield ``''``."""
        if not isinstance(element, Element):
            element = Element.parse(dict(element))
        if not element.visible:
            return ""
        body = self._routines[element.kind](element, context)
        return self._wrap(element, body)

    @staticmethod
    def _wrap(element: Element, body: str) -> str:
        css_class = element.css_class if element.kind is not ElementKind.UNKNOWN else "element-unknown"
        attrs = f'class="{html.escape(css_class, quote=True)}"'
        if element.id:
            attrs += f' data-element-id="{html.escape(element.id, quote=True)}"'
        style = inline_style(element.style)
        if style:
            attrs += f' style="{style}"'
        return f"<div {attrs}>{body}</div>"

    # Routines

    def _header(self, element: Element, context: Any) -> str:
        title = resolve(element.get("title", "Header Title"), context)
        out = f"<h1>{title}</h1>"
        subtitle = element.get("subtitle")
        if subtitle:
            out += f"<h2>{resolve(subtitle, context)}</h2>"
        return out

    def _company_info(self, element: Element, context: Any) -> str:
        fields = element.get("fields")
        if not fields:
            lines = self._entity_lines(context, "company", _COMPANY_KEYS)
        else:
            lines = [self._field_line(field, context) for field in fields]
        return "".join(f"<div>{line}</div>" for line in lines)

    def _client_info(self, element: Element, context: Any) -> str:
        title = resolve(element.get("title", "Bill To:"), context)
        fields = element.get("fields")
        if not fields:
            lines = self._entity_lines(context, "client", _CLIENT_KEYS)
        else:
            lines = [self._field_line(field, context) for field in fields]
        body = "".join(f"<div>{line}</div>" for line in lines)
        return f'<h4>{title}</h4><div class="client-details">{body}</div>'

    def _quotation_info(self, element: Element, context: Any) -> str:
        fields = element.get("fields") or list(DEFAULT_QUOTATION_LINES)
        if not any(isinstance(field, Mapping) for field in fields):
            return "".join(f'<div class="info-line">{resolve(field, context)}</div>' for field in fields)

        rows = []
        for field in fields:
            if isinstance(field, Mapping):
                label = resolve(field.get("label", ""), context)
                value = resolve(field.get("value", ""), context)
                rows.append(f'<tr><td class="label">{label}:</td><td class="value">{value}</td></tr>')
            else:
                rows.append(f'<tr><td colspan="2">{resolve(field, context)}</td></tr>')
        return f'<table class="info-table">{"".join(rows)}</table>'

    def _items_table(self, element: Element, context: Any) -> str:
        columns = self._columns(element.get("columns"))
        items = _items(context)
        alternate = bool(element.get("alternateRows", False))

        header = ""
        if element.get("showHeader", True) is not False:
            cells = "".join(
                f'<th style="width: {col.width}; text-align: {col.alignment};">{col.label}</th>'
                if col.width
                else f'<th style="text-align: {col.alignment};">{col.label}</th>'
                for col in columns
            )
            header = f"<thead><tr>{cells}</tr></thead>"

        if not items:
            rows = f'<tr class="no-items"><td colspan="{len(columns)}">No items found</td></tr>'
        else:
            rendered = []
            for index, item in enumerate(items):
                row_class = ' class="alternate-row"' if alternate and index % 2 == 1 else ""
                cells = "".join(
                    f'<td style="text-align: {col.alignment};">{self._cell(item, col.key, index)}</td>'
                    for col in columns
                )
                rendered.append(f"<tr{row_class}>{cells}</tr>")
            rows = "".join(rendered)

        return f'<table class="items-table">{header}<tbody>{rows}</tbody></table>'

    def _totals(self, element: Element, context: Any) -> str:
        fields = element.get("fields") or list(DEFAULT_TOTAL_FIELDS)
        rows = []
        for field in fields:
            if not isinstance(field, Mapping) or not self._show_total(field, context):
                continue
            label = resolve(field.get("label", ""), context)
            value = resolve(field.get("value", ""), context, defaults=DOCUMENT_DEFAULTS)
            row_class = ' class="emphasized"' if field.get("emphasized") else ""
            rows.append(
                f'<tr{row_class}><td class="label">{label}:</td><td class="value">{value}</td></tr>'
            )
        return f'<table class="totals-table">{"".join(rows)}</table>'

    def _terms(self, element: Element, context: Any) -> str:
        title = resolve(element.get("title", "Terms & Conditions"), context)
        text = element.get("text")
        default_text = element.get("defaultText")
        if text and not find_missing(text, context):
            body = resolve(text, context)
        elif default_text:
            body = resolve(default_text, context)
        elif text:
            body = resolve(text, context, defaults=DOCUMENT_DEFAULTS)
        else:
            body = DEFAULT_TERMS_TEXT
        heading = f"<h3>{title}</h3>" if element.get("showTitle", True) is not False else ""
        return f'{heading}<div class="terms-content">{body}</div>'

    def _footer(self, element: Element, context: Any) -> str:
        text = resolve(element.get("text", "Thank you for your business!"), context)
        out = f'<div class="footer-text">{text}</div>'
        if element.get("showGeneratedDate") and has_value(context, "document.generatedAt"):
            generated = stringify(lookup(context, "document.generatedAt"))
            out += f'<div class="generated-date">Generated on {generated}</div>'
        return out

    def _custom_text(self, element: Element, context: Any) -> str:
        if isinstance(element.content, str):
            return f'<div class="text-body">{resolve(element.content, context)}</div>'
        title = element.get("title")
        text = element.get("text", "" if title else "Custom text content")
        heading = f"<h3>{resolve(title, context)}</h3>" if title else ""
        return f'{heading}<div class="text-body">{resolve(text, context)}</div>'

    def _text(self, element: Element, context: Any) -> str:
        if isinstance(element.content, str):
            return f"<p>{resolve(element.content, context)}</p>"
        title = element.get("title")
        heading = f"<h3>{resolve(title, context)}</h3>" if title else ""
        return f"{heading}<p>{resolve(element.get('text', 'Text content'), context)}</p>"

    def _image(self, element: Element, context: Any) -> str:
        src = html.escape(resolve(element.get("src", "/placeholder-image.png"), context), quote=True)
        alt = html.escape(resolve(element.get("alt", "Image"), context), quote=True)
        width = element.get("width")
        size = f"width: {html.escape(stringify(width), quote=True)}; " if width else ""
        return f'<img src="{src}" alt="{alt}" style="{size}max-width: 100%; height: auto;">'

    def _divider(self, element: Element, context: Any) -> str:
        color = html.escape(stringify(element.get("color", "#e5e7eb")), quote=True)
        thickness = html.escape(stringify(element.get("thickness", "1px")), quote=True)
        return f'<hr style="border: none; border-top: {thickness} solid {color}; margin: 20px 0;">'

    def _spacer(self, element: Element, context: Any) -> str:
        height = element.get("height", "20px")
        if isinstance(height, (int, float)) and not isinstance(height, bool):
            height = f"{stringify(height)}px"
        return f'<div class="spacer" style="height: {html.escape(str(height), quote=True)};"></div>'

    def _signature(self, element: Element, context: Any) -> str:
        parts = [f"<h4>{resolve(element.get('title', 'Authorized Signature'), context)}</h4>"]
        if element.get("signatureLine", True):
            parts.append('<div class="signature-line"></div>')
        if element.get("showName"):
            name = element.get("name")
            parts.append(
                f'<div class="signature-name">Name: {resolve(name, context) if name else "_______________"}</div>'
            )
        if element.get("showDate"):
            parts.append('<div class="signature-date">Date: _______________</div>')
        return f'<div class="signature-area">{"".join(parts)}</div>'

    def _unknown(self, element: Element, context: Any) -> str:
        content = element.content
        if isinstance(content, str) and content:
            text = content
        else:
            text = element.get("text") or element.get("title") or f"Element type: {element.raw_type}"
        raw = html.escape(json.dumps(content, ensure_ascii=False, default=str))
        return (
            '<div class="unknown-element">'
            f"<strong>Element ({html.escape(element.raw_type)}):</strong><br>"
            f"{resolve(text, context)}"
            f"<br><small>Content: {raw}</small>"
            "</div>"
        )

    # Helpers

    @staticmethod
    def _field_line(field: Any, context: Any) -> str:
        if isinstance(field, Mapping):
            label = resolve(field.get("label", ""), context)
            value = resolve(field.get("value", ""), context)
            return f"{label}: {value}" if label else value
        return resolve(field, context)

    @staticmethod
    def _entity_lines(context: Any, entity: str, keys: tuple[str, ...]) -> list[str]:
        lines = []
        for key in keys:
            path = f"{entity}.{key}"
            value = lookup(context, path)
            if has_value(context, path):
                text = stringify(value)
            else:
                text = DOCUMENT_DEFAULTS.get(path, "")
            if text.strip():
                lines.append(text)
        return lines

    @staticmethod
    def _columns(config: Any) -> list[Column]:
        if isinstance(config, list) and config:
            columns = []
            for entry in config:
                if not isinstance(entry, Mapping) or not entry.get("key"):
                    continue
                if entry.get("visible") is False:
                    continue
                columns.append(
                    Column(
                        key=str(entry["key"]),
                        label=str(entry.get("label", entry["key"])),
                        width=str(entry.get("width", "")),
                        alignment=str(entry.get("alignment", "left")),
                    )
                )
            if columns:
                return columns
        column_map = config if isinstance(config, Mapping) else {}
        return [col for col in DEFAULT_COLUMNS if column_map.get(col.key) is not False]

    @staticmethod
    def _cell(item: Any, key: str, index: int) -> str:
        if not has_value(item, key) or lookup(item, key) == "":
            return str(index + 1) if key == "no" else "-"
        return html.escape(stringify(lookup(item, key)))

    @staticmethod
    def _show_total(field: Mapping[str, Any], context: Any) -> bool:
        condition = field.get("showIf", "always")
        if condition == "hasDiscount":
            return parse_amount(lookup(context, "totals.discount")) > 0
        if condition == "hasTax":
            return parse_amount(lookup(context, "totals.tax")) > 0
        return True
