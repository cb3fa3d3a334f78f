"""Document themes and layout defaults."""

from __future__ import annotations

from copy import deepcopy
from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True, slots=True)
class Theme:
    name: str
    primary_color: str
    secondary_color: str
    accent_color: str
    font_family: str
    header_style: str
    table_style: str


THEMES: dict[str, Theme] = {
    "MODERN": Theme(
        name="Modern",
        primary_color="#2563eb",
        secondary_color="#64748b",
        accent_color="#f59e0b",
        font_family="Inter, sans-serif",
        header_style="minimal",
        table_style="bordered",
    ),
    "CLASSIC": Theme(
        name="Classic",
        primary_color="#1f2937",
        secondary_color="#6b7280",
        accent_color="#dc2626",
        font_family="Georgia, serif",
        header_style="traditional",
        table_style="striped",
    ),
    "PROFESSIONAL": Theme(
        name="Professional",
        primary_color="#0f172a",
        secondary_color="#475569",
        accent_color="#059669",
        font_family="system-ui, sans-serif",
        header_style="corporate",
        table_style="minimal",
    ),
    "CREATIVE": Theme(
        name="Creative",
        primary_color="#7c3aed",
        secondary_color="#a78bfa",
        accent_color="#f97316",
        font_family="Poppins, sans-serif",
        header_style="artistic",
        table_style="gradient",
    ),
}

DEFAULT_THEME = "MODERN"

DEFAULT_LAYOUT: dict[str, Any] = {
    "pageSize": "A4",
    "orientation": "portrait",
    "margins": {"top": 20, "right": 20, "bottom": 20, "left": 20},
    "header": {"height": 80, "enabled": True},
    "footer": {"height": 60, "enabled": True},
}

DEFAULT_SETTINGS: dict[str, Any] = {
    "showLogo": True,
    "showBackground": False,
    "enableWatermark": False,
    "includeAttachments": False,
    "multiLanguage": False,
    "currency": "INR",
    "taxDisplay": "inclusive",
    "validityDays": 30,
}

DEFAULT_BRANDING: dict[str, Any] = {
    "logo": None,
    "logoPosition": "top-left",
    "logoSize": {"width": 150, "height": 60},
    "companyColors": True,
    "customCSS": "",
}


def get_theme(name: str | None) -> Theme:
    """Resolve a theme name case-insensitively, falling back to MODERN."""
    if name and name.upper() in THEMES:
        return THEMES[name.upper()]
    return THEMES[DEFAULT_THEME]


def is_theme(name: str | None) -> bool:
    return bool(name) and name.upper() in THEMES


def merge_layout(layout: dict[str, Any] | None) -> dict[str, Any]:
    """Overlay a stored layout on the defaults, one level deep for margins."""
    merged = deepcopy(DEFAULT_LAYOUT)
    for key, value in (layout or {}).items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = {**merged[key], **value}
        else:
            merged[key] = value
    return merged
