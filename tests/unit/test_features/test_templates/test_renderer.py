"""Unit tests for per-element HTML rendering."""

from __future__ import annotations

import pytest

from crane_crm.features.templates.elements import Element, ElementKind
from crane_crm.features.templates.renderer import (
    DEFAULT_COLUMNS,
    ElementRenderer,
    inline_style,
    parse_amount,
)


@pytest.fixture
def renderer() -> ElementRenderer:
    return ElementRenderer()


class TestElementParsing:
    @pytest.mark.parametrize(
        ("raw", "kind"),
        [
            ("header", ElementKind.HEADER),
            ("ITEMS_TABLE", ElementKind.ITEMS_TABLE),
            ("table", ElementKind.ITEMS_TABLE),
            ("customer", ElementKind.CLIENT_INFO),
            ("total", ElementKind.TOTALS),
            ("content", ElementKind.TEXT),
            ("hologram", ElementKind.UNKNOWN),
            (None, ElementKind.UNKNOWN),
        ],
    )
    def test_kind_parse(self, raw, kind):
        assert ElementKind.parse(raw) is kind

    def test_visible_defaults_to_true(self):
        assert Element.parse({"id": "e1", "type": "text"}).visible is True

    def test_only_explicit_false_hides(self):
        assert Element.parse({"id": "e1", "type": "text", "visible": False}).visible is False
        assert Element.parse({"id": "e1", "type": "text", "visible": 0}).visible is True


class TestRender:
    def test_hidden_element_renders_nothing(self, renderer):
        element = {"id": "h1", "type": "header", "visible": False, "content": {"title": "X"}}
        assert renderer.render(element, {}) == ""

    def test_header_resolves_title_and_subtitle(self, renderer):
        element = {
            "id": "h1",
            "type": "header",
            "content": {"title": "{{company.name}}", "subtitle": "QUOTATION"},
        }
        html = renderer.render(element, {"company": {"name": "ASP Cranes"}})
        assert '<div class="element-header" data-element-id="h1">' in html
        assert "<h1>ASP Cranes</h1>" in html
        assert "<h2>QUOTATION</h2>" in html

    def test_style_serialised_as_kebab_case(self, renderer):
        element = {"id": "t1", "type": "text", "content": "hi", "style": {"fontSize": "14px", "textAlign": "center"}}
        html = renderer.render(element, {})
        assert 'style="font-size: 14px; text-align: center"' in html

    def test_empty_items_renders_no_items_row(self, renderer):
        html = renderer.render({"id": "t1", "type": "items_table", "content": {}}, {"items": []})
        assert f'<td colspan="{len(DEFAULT_COLUMNS)}">No items found</td>' in html
        assert 'class="no-items"' in html

    def test_items_fall_back_to_selected_machines(self, renderer):
        ctx = {"selectedMachines": [{"description": "Crawler 100T"}]}
        html = renderer.render({"id": "t1", "type": "items_table"}, ctx)
        assert "Crawler 100T" in html
        assert "No items found" not in html

    def test_items_row_numbers_and_dashes(self, renderer):
        ctx = {"items": [{"description": "Crane A"}]}
        html = renderer.render({"id": "t1", "type": "items_table"}, ctx)
        assert '<td style="text-align: center;">1</td>' in html
        assert '<td style="text-align: right;">-</td>' in html

    def test_column_map_hides_columns(self, renderer):
        element = {"id": "t1", "type": "items_table", "content": {"columns": {"capacity": False}}}
        html = renderer.render(element, {"items": [{"description": "A"}]})
        assert "Capacity/Specifications" not in html
        assert "Description/Equipment Name" in html

    def test_explicit_columns(self, renderer):
        element = {
            "id": "t1",
            "type": "table",
            "content": {"columns": [{"key": "description", "label": "Item"}, {"key": "amount", "label": "Amt", "alignment": "right"}]},
        }
        html = renderer.render(element, {"items": [{"description": "A", "amount": "₹5"}]})
        assert "<th" in html and ">Item</th>" in html and ">Amt</th>" in html
        assert html.count("<td") == 2
        assert 'class="element-table"' in html

    def test_alternate_rows(self, renderer):
        element = {"id": "t1", "type": "items_table", "content": {"alternateRows": True}}
        html = renderer.render(element, {"items": [{"no": 1}, {"no": 2}]})
        assert html.count('class="alternate-row"') == 1

    def test_cell_values_are_escaped(self, renderer):
        html = renderer.render({"id": "t1", "type": "items_table"}, {"items": [{"description": "<script>"}]})
        assert "&lt;script&gt;" in html

    def test_totals_conditional_rows(self, renderer):
        element = {
            "id": "tot",
            "type": "totals",
            "content": {
                "fields": [
                    {"label": "Subtotal", "value": "{{totals.subtotal}}", "showIf": "always"},
                    {"label": "Discount", "value": "{{totals.discount}}", "showIf": "hasDiscount"},
                    {"label": "Tax", "value": "{{totals.tax}}", "showIf": "hasTax"},
                ]
            },
        }
        html = renderer.render(element, {"totals": {"subtotal": "₹200", "discount": "₹0", "tax": "₹36"}})
        assert "Subtotal" in html
        assert "Discount" not in html
        assert "Tax" in html

    def test_totals_use_document_defaults(self, renderer):
        html = renderer.render({"id": "tot", "type": "totals"}, {})
        assert "₹0" in html

    def test_terms_prefer_resolved_text_then_default_text(self, renderer):
        element = {
            "id": "terms",
            "type": "terms",
            "content": {"text": "{{quotation.terms}}", "defaultText": "Standard terms."},
        }
        assert "Net 30" in renderer.render(element, {"quotation": {"terms": "Net 30"}})
        assert "Standard terms." in renderer.render(element, {})

    def test_spacer_numeric_height(self, renderer):
        html = renderer.render({"id": "s", "type": "spacer", "content": {"height": 40}}, {})
        assert "height: 40px;" in html

    def test_unknown_type_renders_diagnostic(self, renderer):
        html = renderer.render({"id": "x", "type": "hologram", "content": {"text": "Hi {{client.name}}"}}, {"client": {"name": "Acme"}})
        assert 'class="element-unknown"' in html
        assert "Element (hologram):" in html
        assert "Hi Acme" in html

    def test_client_info_without_fields_uses_defaults(self, renderer):
        html = renderer.render({"id": "c", "type": "client_info"}, {"client": {"name": "Acme"}})
        assert "Bill To:" in html
        assert "<div>Acme</div>" in html
        assert "<div>Client Company</div>" in html

    def test_render_is_pure(self, renderer):
        element = {"id": "h", "type": "header", "content": {"title": "{{x}}"}}
        assert renderer.render(element, {"x": 1}) == renderer.render(element, {"x": 1})


class TestHelpers:
    @pytest.mark.parametrize(
        ("value", "expected"),
        [("₹1,44,000", 144000.0), ("0", 0.0), (None, 0.0), ("abc", 0.0), (12, 12.0), ("-₹5", -5.0)],
    )
    def test_parse_amount(self, value, expected):
        assert parse_amount(value) == expected

    def test_inline_style_skips_none(self):
        assert inline_style({"color": "red", "margin": None}) == "color: red"
