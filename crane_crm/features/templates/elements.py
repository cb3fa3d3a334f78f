"""Element kinds and the parsed view of a stored template element.

Stored templates keep elements as plain JSON objects. ``Element.parse`` turns
one of those objects into a typed value whose ``kind`` drives rendering.
Legacy type names written by older builders map onto their modern kind, and
anything unrecognised becomes ``ElementKind.UNKNOWN`` with the raw name kept.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any
from uuid import uuid4


class ElementKind(StrEnum):
    HEADER = "header"
    COMPANY_INFO = "company_info"
    CLIENT_INFO = "client_info"
    QUOTATION_INFO = "quotation_info"
    ITEMS_TABLE = "items_table"
    TOTALS = "totals"
    TERMS = "terms"
    FOOTER = "footer"
    CUSTOM_TEXT = "custom_text"
    IMAGE = "image"
    DIVIDER = "divider"
    SPACER = "spacer"
    SIGNATURE = "signature"
    TEXT = "text"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, raw: Any) -> ElementKind:
        """Map a stored type name onto a kind, honouring legacy aliases."""
        if not isinstance(raw, str):
            return cls.UNKNOWN
        name = raw.strip().lower()
        if name in LEGACY_ALIASES:
            return LEGACY_ALIASES[name]
        try:
            kind = cls(name)
        except ValueError:
            return cls.UNKNOWN
        return kind


LEGACY_ALIASES: dict[str, ElementKind] = {
    "table": ElementKind.ITEMS_TABLE,
    "section": ElementKind.CUSTOM_TEXT,
    "field": ElementKind.QUOTATION_INFO,
    "customer": ElementKind.CLIENT_INFO,
    "total": ElementKind.TOTALS,
    "content": ElementKind.TEXT,
}


def new_element_id() -> str:
    return f"element_{uuid4().hex[:12]}"


@dataclass(slots=True)
class Element:
    """A single renderable unit of a template."""

    id: str
    kind: ElementKind
    raw_type: str
    content: Any = field(default_factory=dict)
    style: dict[str, Any] = field(default_factory=dict)
    visible: bool = True
    order: int | None = None

    @classmethod
    def parse(cls, data: dict[str, Any]) -> Element:
        raw_type = data.get("type")
        style = data.get("style")
        order = data.get("order")
        return cls(
            id=str(data.get("id") or ""),
            kind=ElementKind.parse(raw_type),
            raw_type=str(raw_type) if raw_type is not None else "",
            content=data.get("content") if data.get("content") is not None else {},
            style=style if isinstance(style, dict) else {},
            visible=data.get("visible") is not False,
            order=order if isinstance(order, int) and not isinstance(order, bool) else None,
        )

    @property
    def css_class(self) -> str:
        return f"element-{self.raw_type or self.kind.value}"

    def get(self, key: str, default: Any = None) -> Any:
        """Read a key from dict content, returning ``default`` for other shapes."""
        if isinstance(self.content, dict):
            value = self.content.get(key)
            return default if value is None else value
        return default


def normalize_element(data: dict[str, Any]) -> dict[str, Any]:
    """Fill the fields every stored element must carry.

    A missing id is generated, ``visible`` defaults to true and
    ``style``/``content`` default to empty objects.
    """
    element = dict(data)
    if not element.get("id"):
        element["id"] = new_element_id()
    if element.get("visible") is None:
        element["visible"] = True
    if element.get("style") is None:
        element["style"] = {}
    if element.get("content") is None:
        element["content"] = {}
    return element


def normalize_elements(elements: list[dict[str, Any]] | None) -> list[dict[str, Any]]:
    return [normalize_element(element) for element in elements or []]
