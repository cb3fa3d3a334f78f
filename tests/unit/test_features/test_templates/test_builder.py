"""Unit tests for the in-memory template builder."""

from __future__ import annotations

import pytest

from crane_crm.features.templates.builder import (
    EXPORT_FORMAT_VERSION,
    ElementNotFoundError,
    InvalidThemeError,
    TemplateBuilder,
)


@pytest.fixture
def builder() -> TemplateBuilder:
    return TemplateBuilder().create({"name": "Standard"})


class TestTemplateBuilder:
    def test_create_applies_defaults(self, builder):
        template = builder.template
        assert template["name"] == "Standard"
        assert template["theme"] == "MODERN"
        assert template["elements"] == []
        assert template["settings"]["validityDays"] == 30

    def test_create_rejects_unknown_theme(self):
        with pytest.raises(InvalidThemeError):
            TemplateBuilder().create({"name": "X", "theme": "NEON"})

    def test_create_normalises_elements(self):
        template = TemplateBuilder().create({"name": "X", "elements": [{"type": "header"}]}).template
        element = template["elements"][0]
        assert element["id"].startswith("element_")
        assert element["visible"] is True
        assert element["style"] == {}
        assert element["content"] == {}

    def test_add_element_uses_starter_content(self, builder):
        builder.add_element("totals")
        element = builder.template["elements"][0]
        labels = [f["label"] for f in element["content"]["fields"]]
        assert labels[0] == "Subtotal" and labels[-1] == "Total"
        assert element["style"]["fontFamily"] == "Inter, sans-serif"

    def test_add_element_merges_content(self, builder):
        builder.add_element("items_table", content={"alternateRows": False})
        content = builder.template["elements"][0]["content"]
        assert content["alternateRows"] is False
        assert content["showHeader"] is True

    def test_update_element(self, builder):
        builder.add_element("header")
        element_id = builder.template["elements"][0]["id"]
        builder.update_element(element_id, {"visible": False, "id": "hijack"})
        element = builder.template["elements"][0]
        assert element["visible"] is False
        assert element["id"] == element_id

    def test_update_missing_element_raises(self, builder):
        with pytest.raises(ElementNotFoundError):
            builder.update_element("nope", {})

    def test_remove_and_reorder(self, builder):
        builder.add_element("header").add_element("terms").add_element("footer")
        ids = [e["id"] for e in builder.template["elements"]]
        builder.reorder_elements([ids[2], ids[0], "unknown"])
        assert [e["id"] for e in builder.template["elements"]] == [ids[2], ids[0]]
        builder.remove_element(ids[0])
        assert [e["id"] for e in builder.template["elements"]] == [ids[2]]

    def test_apply_theme_restyles_headers(self, builder):
        builder.add_element("header").add_element("text")
        builder.apply_theme("classic")
        header, text = builder.template["elements"]
        assert builder.template["theme"] == "CLASSIC"
        assert header["style"]["color"] == "#1f2937"
        assert text["style"]["fontFamily"] == "Georgia, serif"
        assert text["style"]["color"] == "#000000"

    def test_apply_unknown_theme_raises(self, builder):
        with pytest.raises(InvalidThemeError):
            builder.apply_theme("NEON")

    def test_export_import_produces_unsaved_copy(self, builder):
        builder.add_element("header")
        exported = builder.export()
        assert exported["exportVersion"] == EXPORT_FORMAT_VERSION

        exported["id"] = 7
        exported["isDefault"] = True
        imported = TemplateBuilder().import_(exported).template
        assert imported["id"] is None
        assert imported["isDefault"] is False
        assert "exportVersion" not in imported
        assert imported["elements"][0]["type"] == "header"

    def test_builder_does_not_alias_input(self):
        source = {"name": "X", "elements": [{"id": "e1", "type": "text"}]}
        builder = TemplateBuilder().create(source)
        builder.update_element("e1", {"visible": False})
        assert "visible" not in source["elements"][0]
