#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Sprachtabellen laden und zu einem Lookup-Dienst auflösen.
Die Tabellen liegen als YAML-Dateien in stats_assets/languages (ein File pro Sprache).
"""

import logging
from pathlib import Path
from typing import Any, Dict, Iterable, Mapping, Optional

import yaml

from stats_assets import LANGUAGE_DIR

LanguageTable = Dict[str, str]

DEFAULT_LANGUAGE = "en"
LANGUAGE_FILE_SUFFIX = ".yaml"


def _flatten(data: Mapping[str, Any], prefix: str = "") -> LanguageTable:
    table: LanguageTable = {}
    for key, value in data.items():
        full_key = f"{prefix}{key}"
        if isinstance(value, Mapping):
            table.update(_flatten(value, full_key + "."))
        elif value is not None:
            table[full_key] = str(value)
    return table


def load_language_tables(directory: Path = LANGUAGE_DIR) -> Dict[str, LanguageTable]:
    """Load every ``*.yaml`` string table below ``directory``.

    The language code is the file stem. Nested mappings are flattened into
    dotted keys (``status: {loading: ...}`` becomes ``status.loading``).

    Args:
        directory: Folder holding the language files

    Returns:
        Dict language code -> flat key/string table
    """
    tables: Dict[str, LanguageTable] = {}
    directory = Path(directory)
    if not directory.is_dir():
        logging.warning(f"Sprachordner nicht gefunden: '{directory}'")
        return tables

    for path in sorted(directory.glob(f"*{LANGUAGE_FILE_SUFFIX}")):
        try:
            with open(path, "r", encoding="utf-8") as f:
                raw = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            logging.error(f"Sprachdatei '{path.name}' konnte nicht gelesen werden: {e}")
            continue
        if not isinstance(raw, Mapping):
            logging.error(f"Sprachdatei '{path.name}' enthält keine Zuordnungstabelle.")
            continue
        tables[path.stem] = _flatten(raw)
        logging.debug(f"Sprache '{path.stem}' geladen ({len(tables[path.stem])} Einträge).")
    return tables


class Resolver:
    """Key -> string lookup for one active language.

    Unknown keys come back unchanged so missing translations stay visible.
    """

    def __init__(self, language: str, table: Optional[Mapping[str, str]] = None):
        self.language = language
        self._table: Dict[str, str] = dict(table or {})

    def tr(self, key: str) -> str:
        value = self._table.get(key)
        if value is None:
            return key
        return value

    def keys(self) -> Iterable[str]:
        return self._table.keys()

    def __contains__(self, key: str) -> bool:
        return key in self._table

    def __repr__(self) -> str:
        return f"Resolver(language={self.language!r}, keys={len(self._table)})"


def resolve(tables: Mapping[str, Mapping[str, str]], active_lang: str,
            default_lang: str = DEFAULT_LANGUAGE) -> Resolver:
    """Pick the table for ``active_lang`` and wrap it in a Resolver.

    Falls back to ``default_lang``, then to the first available language.
    Without any table every lookup returns the raw key.
    """
    if active_lang in tables:
        return Resolver(active_lang, tables[active_lang])
    if default_lang in tables:
        logging.warning(f"Sprache '{active_lang}' nicht vorhanden, verwende '{default_lang}'.")
        return Resolver(default_lang, tables[default_lang])
    if tables:
        first = sorted(tables)[0]
        logging.warning(f"Sprache '{active_lang}' nicht vorhanden, verwende '{first}'.")
        return Resolver(first, tables[first])
    logging.error("Keine Sprachtabellen vorhanden, zeige Schlüssel an.")
    return Resolver(active_lang)
