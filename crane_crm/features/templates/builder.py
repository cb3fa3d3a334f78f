"""In-memory quotation template builder.

The builder edits a template configuration (a plain dict in the stored JSON
shape) without touching the database; ``QuotationTemplateService`` persists
the result.

Example:
    builder = TemplateBuilder().create({"name": "Standard"})
    builder.add_element("header").add_element("items_table", content={"alternateRows": True})
    builder.apply_theme("CLASSIC")
    config = builder.export()
"""

from __future__ import annotations

from copy import deepcopy
from typing import Any

from crane_crm.core.exceptions import NotFoundException, ValidationException
from crane_crm.features.templates.elements import (
    ElementKind,
    new_element_id,
    normalize_elements,
)
from crane_crm.features.templates.themes import (
    DEFAULT_BRANDING,
    DEFAULT_LAYOUT,
    DEFAULT_SETTINGS,
    DEFAULT_THEME,
    THEMES,
    get_theme,
)

EXPORT_FORMAT_VERSION = "1.0"


class ElementNotFoundError(NotFoundException):
    def __init__(self, element_id: str) -> None:
        super().__init__(
            detail=f"Element {element_id} not found",
            type="element-not-found",
            extra={"element_id": element_id},
        )


class InvalidThemeError(ValidationException):
    def __init__(self, theme: str) -> None:
        super().__init__(
            detail=f"Invalid theme: {theme}",
            type="invalid-theme",
            extra={"theme": theme, "allowed": sorted(THEMES)},
        )


def default_content(kind: ElementKind) -> dict[str, Any]:
    """Starter content for a freshly added element of ``kind``."""
    match kind:
        case ElementKind.HEADER:
            return {
                "title": "{{company.name}}",
                "subtitle": "QUOTATION",
                "showDate": True,
                "showQuotationNumber": True,
                "alignment": "center",
            }
        case ElementKind.COMPANY_INFO:
            return {
                "fields": [
                    "{{company.name}}",
                    "{{company.address}}",
                    "{{company.phone}}",
                    "{{company.email}}",
                    "{{company.website}}",
                ],
                "layout": "vertical",
                "alignment": "left",
            }
        case ElementKind.CLIENT_INFO:
            return {
                "title": "Bill To:",
                "fields": [
                    "{{client.name}}",
                    "{{client.company}}",
                    "{{client.address}}",
                    "{{client.phone}}",
                    "{{client.email}}",
                ],
                "layout": "vertical",
                "alignment": "left",
            }
        case ElementKind.QUOTATION_INFO:
            return {
                "fields": [
                    {"label": "Quotation #", "value": "{{quotation.number}}"},
                    {"label": "Date", "value": "{{quotation.date}}"},
                    {"label": "Valid Until", "value": "{{quotation.validUntil}}"},
                    {"label": "Terms", "value": "{{quotation.paymentTerms}}"},
                ],
                "layout": "table",
                "alignment": "right",
            }
        case ElementKind.ITEMS_TABLE:
            return {
                "columns": {},
                "showHeader": True,
                "showFooter": False,
                "alternateRows": True,
                "showBorders": True,
            }
        case ElementKind.TOTALS:
            return {
                "fields": [
                    {"label": "Subtotal", "value": "{{totals.subtotal}}", "showIf": "always"},
                    {"label": "Discount", "value": "{{totals.discount}}", "showIf": "hasDiscount"},
                    {"label": "Tax ({{tax.rate}}%)", "value": "{{totals.tax}}", "showIf": "hasTax"},
                    {
                        "label": "Total",
                        "value": "{{totals.total}}",
                        "showIf": "always",
                        "emphasized": True,
                    },
                ],
                "alignment": "right",
                "width": "50%",
            }
        case ElementKind.TERMS:
            return {
                "title": "Terms & Conditions",
                "text": "{{quotation.terms}}",
                "defaultText": "Please review the terms and conditions before accepting this quotation.",
                "showTitle": True,
            }
        case ElementKind.FOOTER:
            return {
                "text": "Thank you for your business!",
                "showPageNumbers": True,
                "showGeneratedDate": True,
                "alignment": "center",
            }
        case ElementKind.CUSTOM_TEXT | ElementKind.TEXT:
            return {"text": "Custom text content", "markdown": False, "variables": True}
        case ElementKind.SIGNATURE:
            return {
                "title": "Authorized Signature",
                "showDate": True,
                "showName": True,
                "signatureLine": True,
                "alignment": "right",
            }
        case ElementKind.IMAGE:
            return {"src": "", "alt": "Image"}
        case ElementKind.SPACER:
            return {"height": "20px"}
        case _:
            return {}


def default_style(kind: ElementKind, theme_name: str) -> dict[str, Any]:
    """Theme-aware base style for a new element."""
    theme = get_theme(theme_name)
    style: dict[str, Any] = {
        "fontFamily": theme.font_family,
        "fontSize": "14px",
        "color": "#000000",
        "backgroundColor": "transparent",
        "padding": "10px",
        "margin": "5px 0",
        "border": "none",
    }
    if kind is ElementKind.HEADER:
        style.update(
            fontSize="24px",
            fontWeight="bold",
            color=theme.primary_color,
            textAlign="center",
            padding="20px",
            borderBottom=f"2px solid {theme.primary_color}",
        )
    elif kind is ElementKind.ITEMS_TABLE:
        style.update(border="1px solid #e5e7eb", borderRadius="4px")
    elif kind is ElementKind.TOTALS:
        style.update(
            fontWeight="500",
            backgroundColor="#f9fafb",
            border="1px solid #e5e7eb",
            borderRadius="4px",
        )
    return style


def blank_template() -> dict[str, Any]:
    return {
        "id": None,
        "name": "",
        "description": "",
        "theme": DEFAULT_THEME,
        "layout": deepcopy(DEFAULT_LAYOUT),
        "elements": [],
        "settings": deepcopy(DEFAULT_SETTINGS),
        "branding": deepcopy(DEFAULT_BRANDING),
        "version": 1,
        "isActive": True,
        "isDefault": False,
    }


class TemplateBuilder:
    """Fluent editor for a template configuration."""

    def __init__(self, template: dict[str, Any] | None = None) -> None:
        self.template = deepcopy(template) if template is not None else blank_template()

    def create(self, data: dict[str, Any]) -> TemplateBuilder:
        """Start a new template from ``data``, normalising its elements.

        Raises:
            InvalidThemeError: If ``data`` names an unknown theme.
        """
        theme = data.get("theme")
        if theme is not None and str(theme).upper() not in THEMES:
            raise InvalidThemeError(str(theme))
        template = blank_template()
        template.update(deepcopy(data))
        template["theme"] = str(template["theme"]).upper()
        template["elements"] = normalize_elements(data.get("elements"))
        template["id"] = None
        self.template = template
        return self

    def add_element(self, element_type: str, **data: Any) -> TemplateBuilder:
        kind = ElementKind.parse(element_type)
        element: dict[str, Any] = {
            "id": new_element_id(),
            "type": element_type,
            "position": {"x": 0, "y": 0, "width": "100%", "height": "auto"},
            "style": default_style(kind, self.template["theme"]),
            "visible": True,
            "conditional": None,
            "content": default_content(kind),
        }
        content = data.pop("content", None)
        if isinstance(content, dict):
            element["content"] = {**element["content"], **content}
        elif content is not None:
            element["content"] = content
        element.update(data)
        self.template["elements"].append(element)
        return self

    def update_element(self, element_id: str, updates: dict[str, Any]) -> TemplateBuilder:
        """Shallow-merge ``updates`` into the element.

        Raises:
            ElementNotFoundError: If no element has ``element_id``.
        """
        index = self._index_of(element_id)
        merged = {**self.template["elements"][index], **updates}
        merged["id"] = element_id
        self.template["elements"][index] = merged
        return self

    def remove_element(self, element_id: str) -> TemplateBuilder:
        self.template["elements"] = [
            element for element in self.template["elements"] if element.get("id") != element_id
        ]
        return self

    def reorder_elements(self, element_ids: list[str]) -> TemplateBuilder:
        """Reorder to match ``element_ids``; ids not listed are dropped, unknown ids ignored."""
        by_id = {element.get("id"): element for element in self.template["elements"]}
        self.template["elements"] = [by_id[element_id] for element_id in element_ids if element_id in by_id]
        return self

    def apply_theme(self, theme_name: str) -> TemplateBuilder:
        """Switch theme and restyle element fonts and header colours.

        Raises:
            InvalidThemeError: If ``theme_name`` is not a known theme.
        """
        key = str(theme_name).upper()
        if key not in THEMES:
            raise InvalidThemeError(theme_name)
        theme = THEMES[key]
        self.template["theme"] = key
        for element in self.template["elements"]:
            style = dict(element.get("style") or {})
            style["fontFamily"] = theme.font_family
            if ElementKind.parse(element.get("type")) is ElementKind.HEADER:
                style["color"] = theme.primary_color
            element["style"] = style
        return self

    def export(self) -> dict[str, Any]:
        return {**deepcopy(self.template), "exportVersion": EXPORT_FORMAT_VERSION}

    def import_(self, config: dict[str, Any]) -> TemplateBuilder:
        """Load an exported configuration as a new, unsaved template."""
        template = blank_template()
        template.update(deepcopy(config))
        template.pop("exportVersion", None)
        template["id"] = None
        template["isDefault"] = False
        template["elements"] = normalize_elements(template.get("elements"))
        self.template = template
        return self

    def _index_of(self, element_id: str) -> int:
        for index, element in enumerate(self.template["elements"]):
            if element.get("id") == element_id:
                return index
        raise ElementNotFoundError(element_id)
