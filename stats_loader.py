#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Lädt Statistikdaten des Callcenter Simulators und normalisiert sie.
Eingaben: XML-Text, strukturierte Daten (dict/JSON) oder eine exportierte Offline-Viewer-Seite.
Ergebnis ist immer ein LoadResult: Ok(StatisticsModel) oder Err(Meldung).
"""

import base64
import binascii
import json
import logging
import math
import re
import time
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

from lxml import etree

from stats_errors import ParseError
from stats_model import Err, LoadResult, Ok, Section, StatisticsModel

# ============================================================================
# CONSTANTS & CATALOG
# ============================================================================

# Root element names (de, en)
ROOT_TAGS = ("Statistik", "Statistic")

# Catalog key -> accepted tag names (de, en)
SECTION_TAGS: Dict[str, Tuple[str, ...]] = {
    "model": ("Modell", "Model"),
    "run_date": ("LaufDatum", "RunDate"),
    "run_user": ("Nutzer", "User"),
    "run_os": ("Betriebssystem", "ServerOS"),
    "run_time": ("Laufzeit", "RunTime"),
    "threads": ("Threads",),
    "simulated_days": ("SimulierteTage", "SimulatedDays"),
    "simulated_events": ("SimulierteEreignisse", "SimulatedEvents"),
    "clients": ("Kunden", "Clients"),
    "agents": ("Agenten", "Agents"),
    "revenue": ("Ertrag", "RevenueSummary"),
    "queue": ("Warteschlange", "Queue"),
    "model_agents": ("ModellAgenten", "ModelAgents"),
    "erlang_c_simple": ("ErlangCEinfach", "ErlangCSimple"),
    "erlang_c_complex": ("ErlangCKomplex", "ErlangCComplex"),
    "warnings": ("Warnungen", "Warnings"),
}
TAG_TO_KEY: Dict[str, str] = {tag: key for key, tags in SECTION_TAGS.items() for tag in tags}

MANDATORY_SECTIONS = ("model", "clients", "agents")
# Sections that repeat with a Name attribute; only the unnamed one is the summary
NAMED_GROUP_SECTIONS = ("clients", "agents")
INTEGER_SECTIONS = ("run_time", "threads", "simulated_days", "simulated_events")

# Attribute names
NAME_ATTRIBUTE = "Name"
QUEUE_AVERAGE = ("Mittelwert", "Average")
QUEUE_MAXIMUM = ("Maximum",)
QUEUE_AVERAGE_PER_INTERVAL = ("MittelwertProIntervall", "AveragePerInterval")
DISTRIBUTION_SEPARATOR = ";"

# Structured form keys
FIELD_NAME = "name"
FIELD_ATTRIBUTES = "attributes"
FIELD_TEXT = "text"
FIELD_CHILDREN = "children"

# Offline viewer page markers
EMBEDDED_XML_PATTERN = re.compile(r"<!--\s*XMLDATA\s*(.*?)-->", re.DOTALL)
EMBEDDED_JSON_PATTERN = re.compile(r"\bjsonData\s*=\s*")
HTML_SNIFF_LENGTH = 512

DUPLICATE_KEY_FORMAT = "{key} #{index}"
NESTING_ERROR = "structure nested too deeply"


@dataclass
class _RawElement:
    """Format-neutral intermediate tree; validated before any model is built."""
    tag: str
    attributes: Dict[str, str] = field(default_factory=dict)
    text: str = ""
    children: List["_RawElement"] = field(default_factory=list)
    locator: str = ""


# ============================================================================
# VALIDATION
# ============================================================================

def _tag_list(key: str) -> str:
    return " / ".join(f"<{tag}>" for tag in SECTION_TAGS[key])


def _parse_number(text: str) -> Optional[float]:
    """Finite decimal number, comma or dot as separator. None otherwise."""
    try:
        value = float(text.strip().replace(",", "."))
    except ValueError:
        return None
    return value if math.isfinite(value) else None


def _parse_integer(text: str) -> Optional[int]:
    try:
        return int(text.strip())
    except ValueError:
        return None


def _first_attribute(element: _RawElement, names: Tuple[str, ...]) -> Optional[str]:
    for name in names:
        if name in element.attributes:
            return element.attributes[name]
    return None


def _validate_queue(element: _RawElement, problems: List[str]) -> None:
    average = _first_attribute(element, QUEUE_AVERAGE)
    if average is not None:
        value = _parse_number(average)
        if value is None or value < 0:
            problems.append(f"{element.locator}: invalid average queue length '{average}'")

    maximum = _first_attribute(element, QUEUE_MAXIMUM)
    if maximum is not None:
        value = _parse_integer(maximum)
        if value is None or value < 0:
            problems.append(f"{element.locator}: invalid maximum queue length '{maximum}'")

    per_interval = _first_attribute(element, QUEUE_AVERAGE_PER_INTERVAL)
    if per_interval is not None:
        values = [v for v in per_interval.split(DISTRIBUTION_SEPARATOR) if v.strip()]
        if not values or any(_parse_number(v) is None for v in values):
            problems.append(f"{element.locator}: invalid average queue length per interval")


def _validate_document(root: _RawElement) -> List[str]:
    """Check the complete raw tree. Returns all problems found (empty = valid)."""
    if root.tag not in ROOT_TAGS:
        expected = " or ".join(f"<{t}>" for t in ROOT_TAGS)
        return [f"Unexpected root element <{root.tag}>, expected {expected}"]

    problems: List[str] = []
    global_sections: Dict[str, _RawElement] = {}

    for child in root.children:
        key = TAG_TO_KEY.get(child.tag)
        if key is None:
            continue
        if key not in NAMED_GROUP_SECTIONS or not child.attributes.get(NAME_ATTRIBUTE):
            global_sections.setdefault(key, child)

        if key in INTEGER_SECTIONS:
            if _parse_integer(child.text) is None:
                problems.append(f"{child.locator}: <{child.tag}> must contain an integer, got '{child.text}'")
        elif key == "queue":
            _validate_queue(child, problems)

    for key in MANDATORY_SECTIONS:
        section = global_sections.get(key)
        if section is None:
            problems.append(f"Missing mandatory section {_tag_list(key)}")
        elif not (section.attributes or section.text.strip() or section.children):
            problems.append(f"{section.locator}: mandatory section <{section.tag}> is empty")

    return problems


# ============================================================================
# MODEL CONSTRUCTION
# ============================================================================

def _unique_keys(elements: List[_RawElement]) -> List[str]:
    """Display keys for siblings: tag plus Name, repeats numbered in document order."""
    seen: Dict[str, int] = {}
    used = set()
    keys = []
    for element in elements:
        base = element.tag
        if name := element.attributes.get(NAME_ATTRIBUTE):
            base = f'{element.tag} "{name}"'
        candidate = base
        while candidate in used:
            seen[base] = seen.get(base, 1) + 1
            candidate = DUPLICATE_KEY_FORMAT.format(key=base, index=seen[base])
        used.add(candidate)
        keys.append(candidate)
    return keys


def _build_sections(elements: List[_RawElement], top_level: bool) -> Tuple[Section, ...]:
    sections = []
    for element, display_key in zip(elements, _unique_keys(elements)):
        sections.append(Section(
            key=TAG_TO_KEY.get(element.tag) if top_level else None,
            tag=element.tag,
            display_key=display_key,
            name=element.attributes.get(NAME_ATTRIBUTE, ""),
            metrics=MappingProxyType(dict(element.attributes)),
            text=element.text.strip(),
            children=_build_sections(element.children, top_level=False),
        ))
    return tuple(sections)


def _finish(root: _RawElement) -> LoadResult:
    problems = _validate_document(root)
    if problems:
        for problem in problems:
            logging.warning(f"Validierung: {problem}")
        return Err("\n".join(problems))
    model = StatisticsModel(
        root_tag=root.tag,
        attributes=MappingProxyType(dict(root.attributes)),
        sections=_build_sections(root.children, top_level=True),
    )
    return Ok(model)


# ============================================================================
# XML ENTRY POINT
# ============================================================================

def _raw_from_lxml(element: Any, locator: str) -> _RawElement:
    raw = _RawElement(
        tag=element.tag,
        attributes={str(k): str(v) for k, v in element.attrib.items()},
        text=element.text or "",
        locator=locator,
    )
    for child in element:
        if not isinstance(child.tag, str):
            continue
        raw.children.append(_raw_from_lxml(child, f"{locator}/{child.tag}"))
    return raw


def load_from_xml(xml_text: str) -> LoadResult:
    """Parse and validate a statistics XML document.

    Args:
        xml_text: Complete document as text

    Returns:
        Ok(StatisticsModel) or Err(diagnostic naming the offending tag/line)
    """
    start_time = time.time()
    if not xml_text or not xml_text.strip():
        return Err("Empty document")

    parser = etree.XMLParser(
        encoding="utf-8", resolve_entities=False, no_network=True,
        remove_comments=True, remove_pis=True,
    )
    try:
        root = etree.fromstring(xml_text.lstrip("\ufeff").encode("utf-8"), parser)
    except etree.XMLSyntaxError as e:
        logging.warning(f"XML-Syntaxfehler: {e}")
        return Err(f"XML syntax error in line {e.lineno}, column {e.offset}: {e.msg}")
    except ValueError as e:
        return Err(f"XML document could not be read: {e}")

    if root is None:
        return Err("Empty document")

    result = _finish(_raw_from_lxml(root, f"/{root.tag}"))
    logging.info(f"XML-Statistik in {time.time() - start_time:.3f}s verarbeitet.")
    return result


# ============================================================================
# STRUCTURED ENTRY POINT
# ============================================================================

def _scalar(value: Any, locator: str) -> str:
    if isinstance(value, bool) or not isinstance(value, (str, int, float)):
        raise ParseError(f"{locator}: expected text or number, got {type(value).__name__}", locator)
    return str(value)


def _raw_from_structured(obj: Any, locator: str, xml_locator: str) -> _RawElement:
    if not isinstance(obj, Mapping):
        raise ParseError(f"{locator}: expected an object, got {type(obj).__name__}", locator)

    tag = obj.get(FIELD_NAME)
    if not isinstance(tag, str) or not tag:
        raise ParseError(f"{locator}.{FIELD_NAME}: missing element name", f"{locator}.{FIELD_NAME}")
    xml_locator = f"{xml_locator}/{tag}"

    attributes = obj.get(FIELD_ATTRIBUTES) or {}
    if not isinstance(attributes, Mapping):
        raise ParseError(f"{locator}.{FIELD_ATTRIBUTES}: expected an object", f"{locator}.{FIELD_ATTRIBUTES}")
    text = obj.get(FIELD_TEXT)
    children = obj.get(FIELD_CHILDREN) or []
    if not isinstance(children, list):
        raise ParseError(f"{locator}.{FIELD_CHILDREN}: expected a list", f"{locator}.{FIELD_CHILDREN}")

    raw = _RawElement(
        tag=tag,
        attributes={str(k): _scalar(v, f"{locator}.{FIELD_ATTRIBUTES}.{k}") for k, v in attributes.items()},
        text="" if text is None else _scalar(text, f"{locator}.{FIELD_TEXT}"),
        locator=xml_locator,
    )
    for index, child in enumerate(children):
        raw.children.append(_raw_from_structured(child, f"{locator}.{FIELD_CHILDREN}[{index}]", xml_locator))
    return raw


def load_from_structured_data(obj: Any) -> LoadResult:
    """Validate an in-memory statistics object (embedded / offline variant).

    Applies the same document checks as :func:`load_from_xml`.
    """
    try:
        return _finish(_raw_from_structured(obj, "$", ""))
    except ParseError as e:
        logging.warning(f"Strukturierte Daten ungültig: {e}")
        return Err(str(e))
    except RecursionError:
        return Err(f"$: {NESTING_ERROR}")


def load_from_json(json_text: str) -> LoadResult:
    try:
        obj = json.loads(json_text)
    except json.JSONDecodeError as e:
        return Err(f"JSON syntax error in line {e.lineno}, column {e.colno}: {e.msg}")
    except RecursionError:
        return Err(NESTING_ERROR)
    return load_from_structured_data(obj)


# ============================================================================
# OFFLINE VIEWER PAGES & TEXT SNIFFING
# ============================================================================

def extract_embedded_payload(html_text: str) -> Union[str, Dict[str, Any]]:
    """Pull the statistics payload out of an exported offline viewer page.

    The page carries the XML document base64 encoded in an ``XMLDATA`` comment
    and/or the structured form assigned to ``jsonData``. XML is preferred.

    Returns:
        XML text or the structured object

    Raises:
        ParseError: If the page carries no readable payload
    """
    if match := EMBEDDED_XML_PATTERN.search(html_text):
        encoded = "".join(match.group(1).split())
        try:
            return base64.b64decode(encoded, validate=True).decode("utf-8")
        except (binascii.Error, UnicodeDecodeError) as e:
            logging.warning(f"XMLDATA-Block nicht lesbar ({e}), versuche jsonData.")

    if match := EMBEDDED_JSON_PATTERN.search(html_text):
        try:
            obj, _ = json.JSONDecoder().raw_decode(html_text, match.end())
            return obj
        except json.JSONDecodeError as e:
            raise ParseError(f"jsonData: JSON syntax error: {e.msg}", "jsonData")
        except RecursionError:
            raise ParseError(f"jsonData: {NESTING_ERROR}", "jsonData")

    raise ParseError("No embedded statistics data found in HTML page", "html")


def _looks_like_html(text: str) -> bool:
    head = text[:HTML_SNIFF_LENGTH].lower()
    return head.startswith("<!doctype html") or "<html" in head


def load_from_text(text: str) -> LoadResult:
    """Route raw text to the matching entry point (JSON, offline page or XML)."""
    stripped = text.lstrip("\ufeff \t\r\n")
    if stripped.startswith("{"):
        return load_from_json(stripped)
    if _looks_like_html(stripped):
        try:
            payload = extract_embedded_payload(stripped)
        except ParseError as e:
            return Err(str(e))
        if isinstance(payload, str):
            return load_from_xml(payload)
        return load_from_structured_data(payload)
    return load_from_xml(stripped)


def load_from_file(path: Union[str, Path]) -> LoadResult:
    try:
        content = Path(path).read_bytes()
    except OSError as e:
        logging.error(f"Datei '{path}' nicht lesbar: {e}")
        return Err(f"File '{path}' could not be read: {e.strerror or e}")
    return load_from_text(content.decode("utf-8", errors="replace"))
