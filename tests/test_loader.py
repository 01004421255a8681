"""Tests für stats_loader: XML, strukturierte Daten, JSON und Offline-Seiten."""

import base64
import json
from dataclasses import FrozenInstanceError

import pytest

from stats_loader import (
    extract_embedded_payload,
    load_from_file,
    load_from_json,
    load_from_structured_data,
    load_from_text,
    load_from_xml,
)
from stats_errors import ParseError
from stats_model import Err, Ok

MINIMAL_XML = """<?xml version="1.0" encoding="UTF-8"?>
<Statistik>
  <Modell Name="M"/>
  <Kunden Anrufe="10"/>
  <Agenten Auslastung="0,5"/>
  {extra}
</Statistik>
"""


def minimal(extra: str = "") -> str:
    return MINIMAL_XML.format(extra=extra)


def structured(children, name="Statistik"):
    return {"name": name, "attributes": {}, "children": children}


MANDATORY_CHILDREN = [
    {"name": "Modell", "attributes": {"Name": "M"}},
    {"name": "Kunden", "attributes": {"Anrufe": 10}},
    {"name": "Agenten", "attributes": {"Auslastung": 0.5}},
]


class TestLoadFromXml:
    """Parsing and validation of statistics XML."""

    def test_valid_german_document(self, german_xml):
        result = load_from_xml(german_xml)
        assert isinstance(result, Ok)
        model = result.model
        assert model.root_tag == "Statistik"
        assert model.find("clients").metrics["Anrufe"] == "1000"
        assert [s.name for s in model.named("clients")] == ["Privatkunden", "Geschäftskunden"]
        assert model.find("queue").metrics["Maximum"] == "12"

    def test_valid_english_document(self, english_xml):
        result = load_from_xml(english_xml)
        assert isinstance(result, Ok)
        assert result.model.root_tag == "Statistic"
        assert result.model.find("agents").metrics["Workload"] == "0.8"

    def test_both_languages_give_same_catalog_keys(self, german_xml, english_xml):
        de = load_from_xml(german_xml).model
        en = load_from_xml(english_xml).model
        assert [s.key for s in de] == [s.key for s in en]
        assert [s.name != "" for s in de] == [s.name != "" for s in en]

    def test_sections_keep_document_order(self, german_xml):
        model = load_from_xml(german_xml).model
        assert [s.tag for s in model][:4] == ["Modell", "LaufDatum", "Laufzeit", "Threads"]

    def test_leaf_text_and_unknown_children(self, german_xml):
        model = load_from_xml(german_xml).model
        model_section = model.find("model", name="Beispielmodell")
        description = model_section.child("ModellBeschreibung")
        assert description.key is None
        assert description.text == "Kleines Callcenter mit zwei Kundentypen"
        assert model.find("run_time").text == "1234"

    def test_malformed_xml_names_line(self):
        result = load_from_xml("<Statistik>\n  <Modell>\n</Statistik>")
        assert isinstance(result, Err)
        assert result.message.startswith("XML syntax error in line ")

    def test_empty_document(self):
        assert load_from_xml("") == Err("Empty document")
        assert load_from_xml("   \n") == Err("Empty document")

    def test_byte_order_mark_is_ignored(self):
        assert isinstance(load_from_xml("\ufeff" + minimal()), Ok)

    def test_wrong_root_element(self):
        result = load_from_xml("<Modell/>")
        assert result == Err("Unexpected root element <Modell>, expected <Statistik> or <Statistic>")

    def test_missing_mandatory_section(self):
        result = load_from_xml("<Statistik><Modell Name='M'/><Agenten A='1'/></Statistik>")
        assert isinstance(result, Err)
        assert result.message == "Missing mandatory section <Kunden> / <Clients>"

    def test_named_group_does_not_count_as_summary(self):
        xml = "<Statistik><Modell Name='M'/><Kunden Name='A' Anrufe='1'/><Agenten A='1'/></Statistik>"
        result = load_from_xml(xml)
        assert isinstance(result, Err)
        assert "<Kunden> / <Clients>" in result.message

    def test_empty_mandatory_section(self):
        result = load_from_xml("<Statistik><Modell Name='M'/><Kunden A='1'/><Agenten/></Statistik>")
        assert result == Err("/Statistik/Agenten: mandatory section <Agenten> is empty")

    def test_all_problems_are_reported(self):
        result = load_from_xml("<Statistik><Threads>abc</Threads><Modell Name='M'/></Statistik>")
        assert isinstance(result, Err)
        lines = result.message.split("\n")
        assert "/Statistik/Threads: <Threads> must contain an integer, got 'abc'" in lines
        assert "Missing mandatory section <Kunden> / <Clients>" in lines
        assert "Missing mandatory section <Agenten> / <Agents>" in lines

    def test_invalid_queue_attributes(self):
        result = load_from_xml(minimal('<Warteschlange Mittelwert="-1" Maximum="x" MittelwertProIntervall="1;a"/>'))
        assert isinstance(result, Err)
        assert "/Statistik/Warteschlange: invalid average queue length '-1'" in result.message
        assert "/Statistik/Warteschlange: invalid maximum queue length 'x'" in result.message
        assert "invalid average queue length per interval" in result.message

    def test_duplicate_siblings_get_unique_keys(self):
        result = load_from_xml(minimal('<Kunden Name="A" x="1"/><Kunden Name="A" x="2"/><Kunden Name="A" x="3"/>'))
        keys = [s.display_key for s in result.model]
        assert keys.count('Kunden "A"') == 1
        assert 'Kunden "A" #2' in keys
        assert 'Kunden "A" #3' in keys
        assert len(keys) == len(set(keys))

    def test_repeated_unnamed_siblings_are_numbered(self):
        result = load_from_xml(minimal('<Extra/><Extra/><Extra x="1"/>'))
        keys = [s.display_key for s in result.model if s.tag == "Extra"]
        assert keys == ["Extra", "Extra #2", "Extra #3"]

    def test_comments_and_processing_instructions_are_dropped(self):
        result = load_from_xml(minimal("<!-- Kommentar --><?pi data?>"))
        assert isinstance(result, Ok)
        assert [s.tag for s in result.model] == ["Modell", "Kunden", "Agenten"]

    def test_model_is_immutable(self, german_xml):
        model = load_from_xml(german_xml).model
        with pytest.raises(FrozenInstanceError):
            model.root_tag = "x"
        with pytest.raises(TypeError):
            model.find("clients").metrics["Anrufe"] = "0"


class TestLoadFromStructuredData:
    """The in-memory variant applies the same checks."""

    def test_valid_object(self):
        result = load_from_structured_data(structured(MANDATORY_CHILDREN))
        assert isinstance(result, Ok)
        assert result.model.find("clients").metrics["Anrufe"] == "10"
        assert result.model.find("agents").metrics["Auslastung"] == "0.5"

    def test_same_validation_as_xml(self):
        result = load_from_structured_data(structured(MANDATORY_CHILDREN[:2]))
        assert result == Err("Missing mandatory section <Agenten> / <Agents>")

    def test_locator_for_bad_attribute(self):
        children = [dict(MANDATORY_CHILDREN[0], attributes={"Name": "M", "x": True})] + MANDATORY_CHILDREN[1:]
        result = load_from_structured_data(structured(children))
        assert isinstance(result, Err)
        assert result.message.startswith("$.children[0].attributes.x:")

    def test_not_an_object(self):
        assert load_from_structured_data([1, 2]) == Err("$: expected an object, got list")

    def test_missing_name(self):
        result = load_from_structured_data({"children": []})
        assert result == Err("$.name: missing element name")

    def test_children_must_be_list(self):
        result = load_from_structured_data({"name": "Statistik", "children": {"a": 1}})
        assert result == Err("$.children: expected a list")

    def test_locator_in_validation_uses_element_path(self):
        children = MANDATORY_CHILDREN + [{"name": "Threads", "text": "x"}]
        result = load_from_structured_data(structured(children))
        assert result == Err("/Statistik/Threads: <Threads> must contain an integer, got 'x'")

    def test_json_text(self):
        result = load_from_json(json.dumps(structured(MANDATORY_CHILDREN)))
        assert isinstance(result, Ok)

    def test_json_syntax_error(self):
        result = load_from_json('{"name": ')
        assert isinstance(result, Err)
        assert result.message.startswith("JSON syntax error in line 1")


class TestEmbeddedPages:
    """Exported offline viewer pages carry the data inside the HTML."""

    def test_xml_comment_payload(self, german_xml):
        encoded = base64.b64encode(german_xml.encode("utf-8")).decode("ascii")
        html = f"<!DOCTYPE html>\n<html><body><script>var x=1;</script>\n<!--\nXMLDATA\n{encoded}\n-->\n</body></html>"
        assert extract_embedded_payload(html) == german_xml
        result = load_from_text(html)
        assert isinstance(result, Ok)
        assert result.model.root_tag == "Statistik"

    def test_json_payload(self):
        payload = json.dumps(structured(MANDATORY_CHILDREN))
        html = f"<html><head><script>var jsonData={payload};\nshowData();</script></head></html>"
        result = load_from_text(html)
        assert isinstance(result, Ok)
        assert result.model.find("model", name="M") is not None

    def test_page_without_payload(self):
        with pytest.raises(ParseError):
            extract_embedded_payload("<html><body>nichts</body></html>")
        assert load_from_text("<html></html>") == Err("No embedded statistics data found in HTML page")


class TestLoadFromText:
    def test_routes_xml(self, english_xml):
        assert isinstance(load_from_text(english_xml), Ok)

    def test_routes_json(self):
        assert isinstance(load_from_text("  " + json.dumps(structured(MANDATORY_CHILDREN))), Ok)

    def test_load_from_file(self, fixtures_dir, tmp_path):
        assert isinstance(load_from_file(fixtures_dir / "statistik_de.xml"), Ok)
        result = load_from_file(tmp_path / "fehlt.xml")
        assert isinstance(result, Err)
        assert "could not be read" in result.message


class TestNumberChecks:
    """Info elements and queue attributes must hold real, finite numbers."""

    @pytest.mark.parametrize("text", ["--5", "²", "1.5", "", "zwölf"])
    def test_non_integer_info_element(self, text):
        result = load_from_xml(minimal(f"<Threads>{text}</Threads>"))
        assert isinstance(result, Err)
        assert f"<Threads> must contain an integer, got '{text}'" in result.message

    @pytest.mark.parametrize("text", ["7", " 12 ", "-3"])
    def test_integer_info_element(self, text):
        assert isinstance(load_from_xml(minimal(f"<Laufzeit>{text}</Laufzeit>")), Ok)

    @pytest.mark.parametrize("value", ["nan", "inf", "-inf"])
    def test_non_finite_queue_average(self, value):
        result = load_from_xml(minimal(f'<Warteschlange Mittelwert="{value}"/>'))
        assert result == Err(f"/Statistik/Warteschlange: invalid average queue length '{value}'")

    def test_non_finite_value_per_interval(self):
        result = load_from_xml(minimal('<Warteschlange MittelwertProIntervall="1;nan;2"/>'))
        assert result == Err("/Statistik/Warteschlange: invalid average queue length per interval")

    def test_negative_maximum(self):
        result = load_from_xml(minimal('<Warteschlange Maximum="-1"/>'))
        assert result == Err("/Statistik/Warteschlange: invalid maximum queue length '-1'")


DEEP_JSON = '{"name": "Statistik", "children": ' + "[" * 200000


class TestDeepNesting:
    """Absurdly nested input ends in Err, never in an exception."""

    def test_json_text(self):
        assert load_from_text(DEEP_JSON) == Err("structure nested too deeply")
        assert load_from_json(DEEP_JSON) == Err("structure nested too deeply")

    def test_offline_page(self):
        html = "<html><script>var jsonData=" + DEEP_JSON + "</script></html>"
        assert load_from_text(html) == Err("jsonData: structure nested too deeply")

    def test_structured_object(self):
        obj = {"name": "Statistik", "children": []}
        node = obj
        for _ in range(5000):
            child = {"name": "Ebene", "children": []}
            node["children"].append(child)
            node = child
        assert load_from_structured_data(obj) == Err("$: structure nested too deeply")
