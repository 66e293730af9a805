import pytest

from docfields.core.exceptions import ParseFailureError
from docfields.services.legacy_fields import (
    DateField,
    LegacyFieldKind,
    SignatureField,
    TableField,
    TextField,
    load_legacy_array,
    parse_legacy_element,
    parse_legacy_elements,
)


class TestParseLegacyElement:

    def test_text_element(self):
        element = parse_legacy_element(
            {"id": "name", "label": "Name", "type": "text", "x": 10, "y": 20,
             "width": 200, "height": 40, "required": True, "page": 2},
            0,
        )
        assert isinstance(element, TextField)
        assert element.kind == LegacyFieldKind.TEXT
        assert element.field_key == "name"
        assert element.display_label == "Name"
        assert element.required is True
        assert element.page == 2
        assert (element.x, element.y, element.width, element.height) == (10, 20, 200, 40)

    @pytest.mark.parametrize(
        "type_name, variant",
        [
            ("date", DateField),
            ("DATE", DateField),
            ("signature", SignatureField),
            ("table", TableField),
            ("textarea", TextField),
            ("number", TextField),
        ],
    )
    def test_variant_selected_by_type(self, type_name, variant):
        assert isinstance(parse_legacy_element({"type": type_name}, 0), variant)

    def test_unknown_type_falls_back_to_text(self):
        element = parse_legacy_element({"type": "checkbox"}, 0)
        assert isinstance(element, TextField)
        assert element.input_type == "checkbox"

    def test_table_data_without_type_is_table(self):
        element = parse_legacy_element({"tableData": {"rows": []}, "columnsCount": 3}, 4)
        assert isinstance(element, TableField)
        assert element.columns_count == 3

    def test_missing_attributes_use_defaults(self):
        element = parse_legacy_element({}, 3)
        assert element.field_key == "field_3"
        assert element.display_label == "Field 4"
        assert element.required is False
        assert element.page == 1
        assert (element.x, element.y, element.width, element.height) == (0, 0, 100, 30)

    def test_empty_id_generates_key(self):
        assert parse_legacy_element({"id": ""}, 2).field_key == "field_2"

    def test_required_coercion(self):
        assert parse_legacy_element({"required": "true"}, 0).required is True
        assert parse_legacy_element({"required": "yes"}, 0).required is False
        assert parse_legacy_element({"required": 1}, 0).required is True
        assert parse_legacy_element({"required": None}, 0).required is False

    def test_numeric_id_becomes_string(self):
        assert parse_legacy_element({"id": 42}, 0).field_key == "42"

    def test_non_object_element_fails(self):
        with pytest.raises(ParseFailureError):
            parse_legacy_element("not an object", 0)

    def test_non_numeric_geometry_fails(self):
        with pytest.raises(ParseFailureError):
            parse_legacy_element({"x": "left"}, 0)


class TestLoadLegacyArray:

    @pytest.mark.parametrize("blob", [None, "", "   "])
    def test_empty_blob(self, blob):
        assert load_legacy_array(blob) is None

    def test_non_array_json_is_skipped(self):
        assert load_legacy_array('{"fields": []}') is None
        assert load_legacy_array("42") is None

    def test_malformed_json_fails(self):
        with pytest.raises(ParseFailureError):
            load_legacy_array("[{not json")

    def test_array(self):
        assert load_legacy_array('[{"id": "a"}]') == [{"id": "a"}]


def test_parse_legacy_elements_keeps_source_index():
    elements = parse_legacy_elements([{"type": "table"}, {"label": "Second"}])
    assert isinstance(elements[0], TableField)
    # Index counts the skipped table element too
    assert elements[1].field_key == "field_1"
