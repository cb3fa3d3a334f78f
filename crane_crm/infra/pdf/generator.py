"""HTML to PDF export through WeasyPrint with an HTML fallback.

PDF output is a best-effort enhancement. Whenever the engine cannot be loaded,
is disabled, times out or raises, the caller still receives the print-ready
HTML document, flagged with ``fallback=True`` and ``content_type='text/html'``.
"""

from __future__ import annotations

import asyncio
import html as html_lib
import logging
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from crane_crm.infra.logging import get_lazy_logger
from crane_crm.infra.metrics.tracking import track_pdf_generation

if TYPE_CHECKING:
    from collections.abc import Callable

    from crane_crm.core.settings.pdf import PdfSettings

logger = logging.getLogger(__name__)
lazy_logger = get_lazy_logger(__name__)

PAGE_SIZES: dict[str, str] = {
    "A4": "A4",
    "A5": "A5",
    "LETTER": "letter",
    "LEGAL": "legal",
}

# Device scale per quality level; the rendered image resolution follows it.
QUALITY_SCALE: dict[str, float] = {
    "DRAFT": 1.0,
    "STANDARD": 1.5,
    "HIGH": 2.0,
    "PREMIUM": 3.0,
}

_JPEG_QUALITY: dict[str, int] = {"DRAFT": 60, "STANDARD": 80, "HIGH": 90, "PREMIUM": 95}

DEFAULT_HEADER_HTML = "<span>ASP Cranes Quotation System</span>"


class Margins(BaseModel):
    model_config = ConfigDict(extra="ignore")

    top: str = "20mm"
    right: str = "20mm"
    bottom: str = "20mm"
    left: str = "20mm"


class Watermark(BaseModel):
    """Diagonal text overlay drawn behind the page content."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    text: str = "CONFIDENTIAL"
    opacity: float = Field(default=0.1, ge=0.0, le=1.0)
    font_size: int = Field(default=48, alias="fontSize", gt=0)
    rotation: int = 45
    color: str = "#000000"


class PdfOptions(BaseModel):
    """Export options for one document.

    Accepts both snake_case and the camelCase keys used by the frontend.
    """

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    format: Literal["A4", "A5", "LETTER", "LEGAL"] = "A4"
    orientation: Literal["portrait", "landscape"] = "portrait"
    margins: Margins = Field(default_factory=Margins)
    quality: Literal["DRAFT", "STANDARD", "HIGH", "PREMIUM"] = "STANDARD"
    header_html: str | None = Field(default=None, alias="headerHtml")
    footer_html: str | None = Field(default=None, alias="footerHtml")
    display_header_footer: bool = Field(default=False, alias="displayHeaderFooter")
    watermark: Watermark | None = None
    timeout: float = Field(default=30.0, gt=0)
    image_timeout: float = Field(default=5.0, alias="imageTimeout", gt=0)

    @classmethod
    def from_settings(cls, settings: PdfSettings, **overrides: Any) -> PdfOptions:
        """Build options from configured defaults, then apply overrides."""
        margin = settings.default_margin
        base: dict[str, Any] = {
            "format": settings.default_format,
            "orientation": settings.default_orientation,
            "quality": settings.default_quality,
            "margins": {"top": margin, "right": margin, "bottom": margin, "left": margin},
            "timeout": settings.timeout,
            "image_timeout": settings.image_timeout,
        }
        base.update({k: v for k, v in overrides.items() if v is not None})
        return cls.model_validate(base)

    @property
    def scale(self) -> float:
        return QUALITY_SCALE[self.quality]


@dataclass
class PdfResult:
    """Outcome of an export. ``data`` is PDF bytes or, on fallback, UTF-8 HTML."""

    success: bool
    data: bytes
    content_type: str
    format: str
    size: int
    fallback: bool = False
    error: str | None = None


def _load_engine() -> Any | None:
    """Import WeasyPrint, returning None when it or its native libraries are missing."""
    try:
        import weasyprint
    except (ImportError, OSError) as e:
        logger.warning("WeasyPrint unavailable, PDF export will fall back to HTML: %s", e)
        return None
    return weasyprint


def pdf_css(options: PdfOptions) -> str:
    """Paged-media CSS appended to the document head."""
    margins = options.margins
    page_boxes = ""
    if options.display_header_footer:
        page_boxes = (
            "@top-center { content: element(pdf-header); }\n"
            "    @bottom-center { content: element(pdf-footer); }\n"
            '    @bottom-right { content: "Page " counter(page) " of " counter(pages);'
            " font-size: 9px; color: #666; }"
        )
    return f"""
  @page {{
    size: {PAGE_SIZES[options.format]} {options.orientation};
    margin: {margins.top} {margins.right} {margins.bottom} {margins.left};
    {page_boxes}
  }}
  * {{ -webkit-print-color-adjust: exact; print-color-adjust: exact; }}
  body {{ margin: 0; padding: 0; background: white; font-size: {"11pt" if options.scale >= 2 else "12pt"}; line-height: 1.4; }}
  table {{ border-collapse: collapse; }}
  tr {{ page-break-inside: avoid; }}
  thead {{ display: table-header-group; }}
  tfoot {{ display: table-footer-group; }}
  img {{ max-width: 100%; height: auto; page-break-inside: avoid; }}
  h1, h2, h3, h4, h5, h6 {{ page-break-after: avoid; page-break-inside: avoid; }}
  p {{ orphans: 3; widows: 3; }}
  .no-print, .screen-only {{ display: none; }}
  .pdf-header {{ position: running(pdf-header); font-size: 10px; color: #666; text-align: center; }}
  .pdf-footer {{ position: running(pdf-footer); font-size: 10px; color: #666; text-align: center; }}
  .quotation-container {{ width: 100%; max-width: none; margin: 0; padding: 0; box-shadow: none; }}
"""


def watermark_html(watermark: Watermark) -> str:
    style = (
        "position: fixed; top: 50%; left: 50%; "
        f"transform: translate(-50%, -50%) rotate({watermark.rotation}deg); "
        f"font-size: {watermark.font_size}px; color: {watermark.color}; "
        f"opacity: {watermark.opacity}; z-index: -1; font-weight: bold; white-space: nowrap;"
    )
    return f'<div class="watermark" style="{style}">{html_lib.escape(watermark.text)}</div>'


def enhance_html(html: str, options: PdfOptions) -> str:
    """Inject meta tags, paged-media CSS, running header/footer and watermark.

    Input without a ``<head>`` is wrapped into a complete document so the
    result always starts with ``<!DOCTYPE html>``.
    """
    meta = '<meta charset="UTF-8"><meta name="viewport" content="width=device-width, initial-scale=1.0">'
    style = f"<style>{pdf_css(options)}</style>"

    body_prefix = ""
    if options.watermark is not None:
        body_prefix += watermark_html(options.watermark)
    if options.display_header_footer:
        body_prefix += f'<div class="pdf-header">{options.header_html or DEFAULT_HEADER_HTML}</div>'
        if options.footer_html:
            body_prefix += f'<div class="pdf-footer">{options.footer_html}</div>'

    if "<head>" in html:
        enhanced = html.replace("<head>", f"<head>{meta}", 1).replace("</head>", f"{style}</head>", 1)
        if body_prefix:
            if "<body>" in enhanced:
                enhanced = enhanced.replace("<body>", f"<body>{body_prefix}", 1)
            else:
                enhanced = enhanced.replace("</head>", f"</head>{body_prefix}", 1)
    else:
        enhanced = f"<html><head>{meta}{style}</head><body>{body_prefix}{html}</body></html>"

    if not enhanced.lstrip().lower().startswith("<!doctype html>"):
        enhanced = f"<!DOCTYPE html>{enhanced}"
    return enhanced


class PdfGenerator:
    """Converts assembled HTML documents to PDF.

    Rendering runs in a worker thread under an overall timeout so the event
    loop is never blocked by layout work.

    Example:
        generator = PdfGenerator(get_pdf_settings())
        result = await generator.generate(html, PdfOptions(quality="HIGH"))
        if result.fallback:
            ...  # serve result.data as text/html
    """

    def __init__(self, settings: PdfSettings) -> None:
        self.settings = settings

    @property
    def is_available(self) -> bool:
        """Whether PDF export is enabled and the engine can be imported."""
        return self.settings.enabled and _load_engine() is not None

    def default_options(self, **overrides: Any) -> PdfOptions:
        return PdfOptions.from_settings(self.settings, **overrides)

    async def generate(self, html: str, options: PdfOptions | None = None) -> PdfResult:
        """Render ``html`` to PDF, falling back to the enhanced HTML.

        Args:
            html: Complete HTML document or fragment.
            options: Export options. Configured defaults when omitted.

        Returns:
            PdfResult. Never raises.
        """
        options = options or self.default_options()
        enhanced = enhance_html(html, options)
        start = time.perf_counter()

        engine = _load_engine() if self.settings.enabled else None
        if engine is None:
            lazy_logger.debug(lambda: f"pdf.generate: engine unavailable, enabled={self.settings.enabled}")
            track_pdf_generation("fallback")
            return self._fallback(enhanced, options)

        try:
            data = await asyncio.wait_for(
                asyncio.to_thread(self._render_pdf, engine, enhanced, options),
                timeout=options.timeout,
            )
        except TimeoutError:
            logger.warning(
                "PDF generation timed out",
                extra={"timeout_seconds": options.timeout, "operation": "pdf.generate"},
            )
            track_pdf_generation("fallback", time.perf_counter() - start)
            return self._fallback(
                enhanced, options, error=f"PDF generation timed out after {options.timeout}s"
            )
        except Exception as e:
            logger.exception("PDF generation failed, returning HTML fallback")
            track_pdf_generation("fallback", time.perf_counter() - start)
            return self._fallback(enhanced, options, error=str(e))

        duration = time.perf_counter() - start
        track_pdf_generation("pdf", duration)
        logger.info(
            "PDF generated",
            extra={"size": len(data), "format": options.format, "duration_ms": int(duration * 1000)},
        )
        return PdfResult(
            success=True,
            data=data,
            content_type="application/pdf",
            format=options.format,
            size=len(data),
        )

    def _render_pdf(self, engine: Any, html: str, options: PdfOptions) -> bytes:
        url_fetcher = self._url_fetcher(engine, options.image_timeout)
        document = engine.HTML(string=html, url_fetcher=url_fetcher)
        return document.write_pdf(
            dpi=int(96 * options.scale),
            jpeg_quality=_JPEG_QUALITY[options.quality],
            optimize_images=options.quality == "DRAFT",
        )

    @staticmethod
    def _url_fetcher(engine: Any, timeout: float) -> Callable[[str], dict[str, Any]]:
        def fetch(url: str) -> dict[str, Any]:
            return engine.default_url_fetcher(url, timeout=timeout)

        return fetch

    @staticmethod
    def _fallback(html: str, options: PdfOptions, error: str | None = None) -> PdfResult:
        data = html.encode("utf-8")
        return PdfResult(
            success=error is None,
            data=data,
            content_type="text/html",
            format=options.format,
            size=len(data),
            fallback=True,
            error=error,
        )


_generator: PdfGenerator | None = None


def get_pdf_generator() -> PdfGenerator:
    """Get or create the process-wide PDF generator."""
    global _generator
    if _generator is None:
        from crane_crm.core.settings import get_pdf_settings

        _generator = PdfGenerator(get_pdf_settings())
    return _generator
