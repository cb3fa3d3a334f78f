"""Assembles rendered element fragments into a standalone HTML document."""

from __future__ import annotations

from collections.abc import Mapping
from datetime import UTC, datetime, timedelta
from html import escape
import logging
from pathlib import Path
from typing import Any

from jinja2 import Environment, FileSystemLoader, select_autoescape
from markupsafe import Markup

from crane_crm.features.templates.elements import Element
from crane_crm.features.templates.placeholders import has_value, lookup, stringify
from crane_crm.features.templates.renderer import ElementRenderer
from crane_crm.features.templates.themes import DEFAULT_SETTINGS, Theme, get_theme, merge_layout
from crane_crm.infra.logging import get_lazy_logger
from crane_crm.infra.metrics.tracking import track_document_render, track_element_error

logger = logging.getLogger(__name__)
lazy_logger = get_lazy_logger(__name__)

TEMPLATE_DIR = Path(__file__).parent / "templates"


def _field(template: Any, name: str, default: Any = None) -> Any:
    if isinstance(template, Mapping):
        value = template.get(name)
    else:
        value = getattr(template, name, None)
    return default if value is None else value


def order_elements(elements: list[Any]) -> list[Any]:
    """Sort by ``order`` when any element carries one.

    Elements without an ``order`` keep their relative position after the
    ordered ones, as do entries that are not mappings. Without any ``order``
    the stored sequence is returned.
    """
    def order_of(element: Any) -> int | None:
        if not isinstance(element, Mapping):
            return None
        value = element.get("order")
        return value if isinstance(value, int) and not isinstance(value, bool) else None

    if not any(order_of(element) is not None for element in elements):
        return list(elements)
    return sorted(
        elements,
        key=lambda element: (order_of(element) is None, order_of(element) or 0),
    )


class DocumentAssembler:
    """Builds the complete quotation document for a template and context.

    Output is deterministic: the same template, context and ``generated_at``
    always produce identical HTML.

    Example:
        assembler = DocumentAssembler()
        html = assembler.assemble(template, context, generated_at=datetime(2025, 1, 1, tzinfo=UTC))
    """

    def __init__(self, renderer: ElementRenderer | None = None) -> None:
        self.renderer = renderer or ElementRenderer()
        self.env = Environment(
            loader=FileSystemLoader(str(TEMPLATE_DIR)),
            autoescape=select_autoescape(["html", "html.j2"]),
            trim_blocks=True,
            lstrip_blocks=True,
            keep_trailing_newline=False,
        )

    def assemble(
        self,
        template: Mapping[str, Any] | Any,
        context: Mapping[str, Any] | None,
        *,
        generated_at: datetime | None = None,
        preview: bool = False,
    ) -> str:
        """Render every element and wrap the fragments in the document shell.

        Args:
            template: Mapping or object exposing ``elements``, ``theme``,
                ``layout``, ``settings`` and ``branding``.
            context: Render data (company, client, quotation, items, totals).
            generated_at: Generation timestamp. Defaults to now (UTC).
            preview: Screen preview styling instead of print styling.

        Returns:
            The HTML document, starting with ``<!DOCTYPE html>``.
        """
        generated_at = generated_at or datetime.now(UTC)
        if generated_at.tzinfo is None:
            generated_at = generated_at.replace(tzinfo=UTC)
        generated_at = generated_at.astimezone(UTC)
        generated_on = generated_at.strftime("%Y-%m-%d %H:%M UTC")

        base_context = dict(context or {})
        document_meta = base_context.get("document")
        base_context["document"] = {
            **(document_meta if isinstance(document_meta, Mapping) else {}),
            "generatedAt": generated_on,
        }

        theme_name = str(_field(template, "theme", "MODERN"))
        theme = get_theme(theme_name)
        layout = merge_layout(_field(template, "layout", {}))
        settings = {**DEFAULT_SETTINGS, **_field(template, "settings", {})}
        branding = _field(template, "branding", {})

        fragments = [
            Markup(self._render_safely(element, base_context))
            for element in order_elements(list(_field(template, "elements", [])))
        ]

        number = lookup(base_context, "quotation.number")
        title = f"Quotation {stringify(number) if has_value(base_context, 'quotation.number') else 'Preview'}"

        html = self.env.get_template("document.html.j2").render(
            title=title,
            css=Markup(self.generate_css(theme, layout, preview, branding.get("customCSS"))),
            preview=preview,
            fragments=[fragment for fragment in fragments if fragment],
            generated_on=generated_on,
            valid_until=self._valid_until(base_context, generated_at, settings),
        )

        track_document_render(theme_name.upper())
        lazy_logger.debug(
            lambda: f"document.assemble: theme={theme_name}, elements={len(fragments)}, bytes={len(html)}"
        )
        return html

    def generate_css(
        self,
        theme: Theme | str | None,
        layout: Mapping[str, Any] | None = None,
        preview: bool = False,
        custom_css: str | None = None,
    ) -> str:
        """Theme-derived stylesheet, including print media rules."""
        if not isinstance(theme, Theme):
            theme = get_theme(theme)
        layout = merge_layout(dict(layout or {}))
        return self.env.get_template("document.css.j2").render(
            theme=theme,
            margins=layout["margins"],
            preview=preview,
            custom_css=(custom_css or "").replace("</", "<\\/"),
        )

    def _render_safely(self, raw: Any, context: Mapping[str, Any]) -> str:
        element_id = raw.get("id", "") if isinstance(raw, Mapping) else ""
        element_type = raw.get("type", "") if isinstance(raw, Mapping) else type(raw).__name__
        try:
            return self.renderer.render(Element.parse(dict(raw)), context)
        except Exception:
            logger.warning(
                "Element render failed",
                exc_info=True,
                extra={"element_id": element_id, "element_type": element_type},
            )
            track_element_error(str(element_type) or "unknown")
            return (
                f'<div class="render-error" data-element-id="{escape(str(element_id), quote=True)}">'
                f"Failed to render element {escape(str(element_type))}</div>"
            )

    @staticmethod
    def _valid_until(context: Mapping[str, Any], generated_at: datetime, settings: Mapping[str, Any]) -> str:
        if has_value(context, "quotation.validUntil"):
            return stringify(lookup(context, "quotation.validUntil"))
        days = settings.get("validityDays", 30)
        if not isinstance(days, int) or isinstance(days, bool):
            days = 30
        return (generated_at + timedelta(days=days)).strftime("%Y-%m-%d")
