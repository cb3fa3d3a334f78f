"""HTML to PDF export."""

from __future__ import annotations

from .generator import (
    PdfGenerator,
    PdfOptions,
    PdfResult,
    Watermark,
    enhance_html,
    get_pdf_generator,
)

__all__ = [
    "PdfGenerator",
    "PdfOptions",
    "PdfResult",
    "Watermark",
    "enhance_html",
    "get_pdf_generator",
]
