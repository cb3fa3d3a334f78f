"""PDF export settings."""

from __future__ import annotations

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

PageFormat = Literal["A4", "A5", "LETTER", "LEGAL"]
Quality = Literal["DRAFT", "STANDARD", "HIGH", "PREMIUM"]


class PdfSettings(BaseSettings):
    """Defaults for the HTML to PDF adapter.

    Environment variables use PDF_ prefix.
    Example: PDF_ENABLED=false forces the HTML fallback.
    """

    enabled: bool = Field(
        default=True,
        description="Attempt real PDF rendering. When False every export returns HTML.",
    )
    default_format: PageFormat = Field(default="A4")
    default_orientation: Literal["portrait", "landscape"] = Field(default="portrait")
    default_quality: Quality = Field(default="STANDARD")
    default_margin: str = Field(
        default="20mm",
        pattern=r"^\d+(\.\d+)?(mm|cm|in|px|pt)$",
        description="Margin applied to all four sides unless overridden.",
    )
    timeout: float = Field(
        default=30.0,
        ge=1.0,
        le=300.0,
        description="Overall PDF generation timeout in seconds.",
    )
    image_timeout: float = Field(
        default=5.0,
        ge=0.5,
        le=60.0,
        description="Per-resource (image, font) fetch timeout in seconds.",
    )

    model_config = SettingsConfigDict(
        env_prefix="PDF_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        frozen=True,
        extra="ignore",
        env_ignore_empty=True,
    )
