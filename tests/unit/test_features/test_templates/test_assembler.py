"""Unit tests for document assembly."""

from __future__ import annotations

from datetime import UTC, datetime

import pytest

from crane_crm.features.templates.assembler import DocumentAssembler, order_elements
from crane_crm.features.templates.renderer import ElementRenderer

GENERATED_AT = datetime(2024, 1, 1, 9, 30, tzinfo=UTC)


@pytest.fixture
def assembler() -> DocumentAssembler:
    return DocumentAssembler()


@pytest.fixture
def template() -> dict:
    return {
        "theme": "MODERN",
        "elements": [
            {"id": "h", "type": "header", "content": {"title": "Quotation {{quotation.number}}"}},
            {"id": "c", "type": "client_info", "content": {"fields": ["{{client.name}}"]}},
            {"id": "t", "type": "items_table", "content": {}},
            {"id": "tot", "type": "totals", "content": {}},
        ],
    }


class TestAssemble:
    def test_quotation_document(self, assembler, template, quotation_context):
        html = assembler.assemble(template, quotation_context, generated_at=GENERATED_AT)

        assert html.startswith("<!DOCTYPE html>")
        assert "<title>Quotation Q-2024-01</title>" in html
        assert "<h1>Quotation Q-2024-01</h1>" in html
        assert "Acme Infra" in html
        assert "Crane A" in html and "Crane B" in html
        assert "₹200" in html
        assert "Generated on 2024-01-01 09:30 UTC" in html

    def test_output_is_deterministic(self, assembler, template, quotation_context):
        first = assembler.assemble(template, quotation_context, generated_at=GENERATED_AT)
        second = DocumentAssembler().assemble(template, quotation_context, generated_at=GENERATED_AT)
        assert first == second

    def test_fragments_follow_element_order(self, assembler, template, quotation_context):
        html = assembler.assemble(template, quotation_context, generated_at=GENERATED_AT)
        positions = [html.index(f'data-element-id="{eid}"') for eid in ("h", "c", "t", "tot")]
        assert positions == sorted(positions)

    def test_hidden_elements_are_omitted(self, assembler, template, quotation_context):
        template["elements"][1]["visible"] = False
        html = assembler.assemble(template, quotation_context, generated_at=GENERATED_AT)
        assert 'data-element-id="c"' not in html

    def test_preview_title_without_number(self, assembler, template):
        html = assembler.assemble(template, {}, generated_at=GENERATED_AT, preview=True)
        assert "<title>Quotation Preview</title>" in html
        assert "quotation-container preview" in html

    def test_valid_until_from_validity_days(self, assembler, template):
        template["settings"] = {"validityDays": 10}
        html = assembler.assemble(template, {}, generated_at=GENERATED_AT)
        assert "Valid until 2024-01-11" in html

    def test_valid_until_from_context(self, assembler, template):
        ctx = {"quotation": {"validUntil": "31/01/2024"}}
        html = assembler.assemble(template, ctx, generated_at=GENERATED_AT)
        assert "Valid until 31/01/2024" in html

    def test_failing_element_does_not_break_document(self, template, quotation_context):
        class BrokenTotals(ElementRenderer):
            def _totals(self, element, context):
                raise RuntimeError("boom")

        html = DocumentAssembler(BrokenTotals()).assemble(template, quotation_context, generated_at=GENERATED_AT)
        assert 'class="render-error" data-element-id="tot"' in html
        assert "Crane A" in html

    def test_malformed_stored_entries_become_error_blocks(self, assembler):
        template = {
            "elements": [
                None,
                "junk",
                {"id": "h", "type": "header", "content": {"title": "Q-2024-01"}, "order": 1},
            ]
        }

        html = assembler.assemble(template, {}, generated_at=GENERATED_AT)

        assert "Q-2024-01" in html
        assert html.count('class="render-error"') == 2
        assert "Failed to render element NoneType" in html
        assert "Failed to render element str" in html

    def test_theme_colours_in_css(self, assembler, template):
        template["theme"] = "creative"
        html = assembler.assemble(template, {}, generated_at=GENERATED_AT)
        assert "#7c3aed" in html

    def test_unknown_theme_falls_back_to_modern(self, assembler):
        css = assembler.generate_css("NEON")
        assert "#2563eb" in css

    def test_custom_css_cannot_close_style_tag(self, assembler, template):
        template["branding"] = {"customCSS": "body{}</style><script>x</script>"}
        html = assembler.assemble(template, {}, generated_at=GENERATED_AT)
        assert "</style><script>" not in html


class TestOrderElements:
    def test_keeps_stored_order_without_order_keys(self):
        elements = [{"id": "b"}, {"id": "a"}]
        assert order_elements(elements) == elements

    def test_sorts_by_order_and_puts_unordered_last(self):
        elements = [{"id": "x"}, {"id": "b", "order": 2}, {"id": "a", "order": 1}]
        assert [e["id"] for e in order_elements(elements)] == ["a", "b", "x"]

    def test_non_mapping_entries_sort_as_unordered(self):
        elements = ["junk", {"id": "b", "order": 2}, None, {"id": "a", "order": 1}]
        assert order_elements(elements) == [{"id": "a", "order": 1}, {"id": "b", "order": 2}, "junk", None]
