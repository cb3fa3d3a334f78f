"""Unit tests for the PDF generator and its HTML fallback."""
from __future__ import annotations

import asyncio

import pytest

from crane_crm.core.settings.pdf import PdfSettings
from crane_crm.infra.pdf import PdfGenerator, PdfOptions
from crane_crm.infra.pdf import generator as generator_module
from crane_crm.infra.pdf.generator import Watermark, enhance_html, pdf_css


@pytest.mark.unit
class TestEnhanceHtml:
    """Tests for print-ready HTML preparation."""

    def test_fragment_is_wrapped(self):
        """A fragment becomes a complete document with paged-media CSS."""
        html = enhance_html("<p>Hello</p>", PdfOptions())

        assert html.startswith("<!DOCTYPE html>")
        assert '<meta charset="UTF-8">' in html
        assert "size: A4 portrait;" in html
        assert "<body><p>Hello</p></body>" in html

    def test_existing_head_is_extended(self):
        """Meta tags and CSS go into an existing head exactly once."""
        source = "<!DOCTYPE html><html><head><title>Q</title></head><body><p>x</p></body></html>"
        html = enhance_html(source, PdfOptions(format="LETTER", orientation="landscape"))

        assert html.count("<!DOCTYPE html>") == 1
        assert html.index("<meta charset") < html.index("<title>")
        assert "size: letter landscape;" in html

    def test_watermark_and_header(self):
        """Watermark text is escaped and the default header is used."""
        options = PdfOptions(
            watermark=Watermark(text="<DRAFT>", opacity=0.2),
            display_header_footer=True,
            footer_html="<span>ASP Cranes</span>",
        )
        html = enhance_html("<html><head></head><body><p>x</p></body></html>", options)

        assert "&lt;DRAFT&gt;" in html
        assert "opacity: 0.2" in html
        assert "ASP Cranes Quotation System" in html
        assert '<div class="pdf-footer"><span>ASP Cranes</span></div>' in html
        assert "counter(pages)" in html

    def test_custom_margins(self):
        """Margins are written in top/right/bottom/left order."""
        css = pdf_css(PdfOptions(margins={"top": "10mm", "right": "5mm", "bottom": "12mm", "left": "6mm"}))
        assert "margin: 10mm 5mm 12mm 6mm;" in css


@pytest.mark.unit
class TestPdfOptions:
    """Tests for option parsing."""

    def test_camel_case_aliases(self):
        """Frontend camelCase keys are accepted."""
        options = PdfOptions.model_validate({"displayHeaderFooter": True, "headerHtml": "<b>H</b>"})
        assert options.display_header_footer is True
        assert options.header_html == "<b>H</b>"

    def test_from_settings_with_overrides(self):
        """Configured defaults apply unless overridden."""
        settings = PdfSettings(default_format="A5", default_quality="HIGH")
        options = PdfOptions.from_settings(settings, orientation="landscape", quality=None)

        assert options.format == "A5"
        assert options.quality == "HIGH"
        assert options.orientation == "landscape"
        assert options.scale == 2.0


@pytest.mark.unit
class TestPdfGenerator:
    """Tests for PdfGenerator.generate."""

    async def test_disabled_returns_html(self, monkeypatch):
        """A disabled generator never loads the engine."""
        monkeypatch.setattr(generator_module, "_load_engine", lambda: pytest.fail("engine loaded"))
        generator = PdfGenerator(PdfSettings(enabled=False))

        result = await generator.generate("<p>x</p>")

        assert result.fallback is True
        assert result.success is True
        assert result.content_type == "text/html"
        assert result.size == len(result.data)
        assert generator.is_available is False

    async def test_timeout_falls_back(self, monkeypatch):
        """Rendering that exceeds the timeout yields the HTML fallback."""
        monkeypatch.setattr(generator_module, "_load_engine", lambda: object())

        def slow_render(self, engine, html, options):
            import time

            time.sleep(0.5)
            return b"%PDF"

        monkeypatch.setattr(PdfGenerator, "_render_pdf", slow_render)
        generator = PdfGenerator(PdfSettings(enabled=True))

        result = await generator.generate("<p>x</p>", PdfOptions(timeout=0.05))

        assert result.fallback is True
        assert result.success is False
        assert "timed out" in result.error
        await asyncio.sleep(0.5)

    async def test_renders_through_engine(self, monkeypatch):
        """The engine receives the enhanced document and quality settings."""
        calls = {}

        class FakeDocument:
            def __init__(self, string, url_fetcher):
                calls["html"] = string

            def write_pdf(self, **kwargs):
                calls["kwargs"] = kwargs
                return b"%PDF-1.7"

        class FakeEngine:
            HTML = FakeDocument

            @staticmethod
            def default_url_fetcher(url, timeout):
                return {}

        monkeypatch.setattr(generator_module, "_load_engine", lambda: FakeEngine)
        generator = PdfGenerator(PdfSettings(enabled=True))

        result = await generator.generate("<p>x</p>", PdfOptions(quality="PREMIUM"))

        assert result.success is True
        assert result.fallback is False
        assert result.data == b"%PDF-1.7"
        assert calls["html"].startswith("<!DOCTYPE html>")
        assert calls["kwargs"]["dpi"] == 288
        assert calls["kwargs"]["jpeg_quality"] == 95
