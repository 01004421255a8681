#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Steuert den Ladevorgang des Viewers: Idle -> Loading -> (Ready | Failed).
Der Controller besitzt den Sitzungszustand (Modell, Baum, Sprache);
die Oberfläche wird nur über die View-Methoden angesprochen.
"""

import asyncio
import logging
from dataclasses import dataclass, field, replace
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, Optional

from stats_errors import EnvironmentUnsupported, InputShapeError, TransportError
from stats_language import LanguageTable, Resolver, resolve
from stats_loader import load_from_structured_data, load_from_text
from stats_model import Err, LoadResult, Ok, StatisticsModel
from stats_sources import (
    DEFAULT_FETCH_TIMEOUT,
    DEFAULT_SAMPLE_URL,
    check_environment,
    fetch_sample_file,
    read_dropped_file,
    sample_url,
    validate_drop,
)
from stats_tree_builder import TreeNode, build, build_tree

DEFAULT_STATUS_DELAY = 0.1

# Status keys
KEY_LOADING_SYSTEM = "status.loading_system"
KEY_LOADING = "status.loading"
KEY_LOADING_FROM_SERVER = "status.loading_from_server"
KEY_LOADING_FILE = "status.loading_file"
KEY_INIT_TREE = "status.init_tree"
KEY_LOAD_ERROR = "status.load_error"
KEY_TITLE = "viewer.title"
KEY_DROP_COUNT = "drop.error_count"
KEY_ENV_UNSUPPORTED = "environment.unsupported"


class LoadState(Enum):
    IDLE = "idle"
    LOADING = "loading"
    READY = "ready"
    FAILED = "failed"


@dataclass(frozen=True)
class ViewerSession:
    """Everything one load produced. Replaced as a whole, never patched."""
    generation: int = 0
    state: LoadState = LoadState.IDLE
    source: str = ""
    model: Optional[StatisticsModel] = None
    nodes: List[TreeNode] = field(default_factory=list)
    error: Optional[str] = None


class InitializationController:
    """
    Orchestrates acquisition, loading and tree construction.

    The view is duck-typed and has to provide:
    ``set_title(text)``, ``show_status(text, error=False)``, ``hide_status()``,
    ``hide_instructions()``, ``show_tree(root)``, ``hide_tree()``, ``select_root()``,
    ``schedule(delay, callback)``, ``alert(text)``, ``show_advisory(text)``.
    """

    def __init__(self, view: Any, tables: Mapping[str, LanguageTable], config: Dict,
                 fetcher: Callable[..., str] = fetch_sample_file,
                 reader: Callable[[Path], str] = read_dropped_file):
        self.view = view
        self.tables = tables
        self.config = config
        self.fetcher = fetcher
        self.reader = reader
        self.resolver: Resolver = resolve(tables, config.get("language") or "")
        self.session = ViewerSession()
        self.status_delay = float(config.get("status_delay", DEFAULT_STATUS_DELAY))
        self.fetch_timeout = float(config.get("fetch_timeout", DEFAULT_FETCH_TIMEOUT))

    @property
    def state(self) -> LoadState:
        return self.session.state

    def tr(self, key: str) -> str:
        return self.resolver.tr(key)

    # --- START ---

    def arm(self) -> None:
        """Entry action of Idle: title, environment check, start-up status."""
        self.view.set_title(self.tr(KEY_TITLE))
        try:
            check_environment(self.config.get("drop_path") or ".")
        except EnvironmentUnsupported as e:
            logging.warning(f"Umgebung eingeschränkt: {e}")
            self.view.show_advisory(f"{self.tr(KEY_ENV_UNSUPPORTED)} {e}")
        self.view.show_status(self.tr(KEY_LOADING_SYSTEM))
        generation = self.session.generation
        self.view.schedule(self.status_delay, lambda: self._hide_idle_status(generation))

    def _hide_idle_status(self, generation: int) -> None:
        if self.session.generation == generation and self.session.state == LoadState.IDLE:
            self.view.hide_status()

    # --- LOADING PROTOCOL ---

    def begin_load(self, source: str, status_key: str = KEY_LOADING) -> int:
        """Shared Loading entry action. Returns the new load-generation token."""
        generation = self.session.generation + 1
        self.session = ViewerSession(generation=generation, state=LoadState.LOADING, source=source)
        logging.info(f"Ladevorgang {generation} gestartet: {source}")
        self.view.hide_instructions()
        self.view.hide_tree()
        self.view.show_status(self.tr(status_key))
        return generation

    def is_current(self, token: int) -> bool:
        return token == self.session.generation

    def commit(self, token: int, result: LoadResult) -> bool:
        """Apply a loader result if ``token`` is still the newest load.

        Returns:
            False if the result was stale and discarded
        """
        if not self.is_current(token):
            logging.info(f"Veraltetes Ergebnis von Ladevorgang {token} verworfen (aktuell {self.session.generation}).")
            return False
        if isinstance(result, Err):
            return self.fail(token, result.message)
        if not isinstance(result, Ok):
            raise TypeError(f"Unexpected load result {result!r}")

        self.view.show_status(self.tr(KEY_INIT_TREE))
        nodes = build(result.model, self.resolver)
        self.session = replace(self.session, state=LoadState.READY, model=result.model, nodes=nodes)
        logging.info(f"Ladevorgang {token} fertig: {len(nodes)} Baumknoten.")
        self.view.show_tree(nodes[0])
        self.view.select_root()
        self.view.schedule(self.status_delay, lambda: self._hide_ready_status(token))
        return True

    def fail(self, token: int, message: str) -> bool:
        if not self.is_current(token):
            logging.info(f"Veralteter Fehler von Ladevorgang {token} verworfen: {message}")
            return False
        self.session = replace(self.session, state=LoadState.FAILED, model=None, nodes=[], error=message)
        logging.warning(f"Ladevorgang {token} fehlgeschlagen: {message}")
        self.view.show_status(f"{self.tr(KEY_LOAD_ERROR)}\n{message}", error=True)
        return True

    def _hide_ready_status(self, token: int) -> None:
        if self.is_current(token) and self.session.state == LoadState.READY:
            self.view.hide_status()

    # --- ACQUISITION PATHS ---

    async def load_sample(self, file_name: str) -> LoadState:
        """Fetch a bundled example file from the server and load it."""
        url = sample_url(self.config.get("sample_url") or DEFAULT_SAMPLE_URL, file_name)
        token = self.begin_load(url, KEY_LOADING_FROM_SERVER)
        try:
            text = await asyncio.to_thread(self.fetcher, url, self.fetch_timeout)
        except TransportError as e:
            self.fail(token, str(e))
            return self.state
        self.commit(token, self._load_if_current(token, text))
        return self.state

    def check_drop(self, paths: List[str]) -> Optional[Path]:
        """Reject drops that do not carry exactly one file (alert, no state change)."""
        try:
            return validate_drop(paths)
        except InputShapeError as e:
            logging.info(f"Drop abgelehnt: {e}")
            self.view.alert(self.tr(KEY_DROP_COUNT))
            return None

    async def load_drop(self, paths: List[str]) -> LoadState:
        path = self.check_drop(paths)
        if path is None:
            return self.state
        return await self.load_file(path)

    async def load_file(self, path: Path) -> LoadState:
        token = self.begin_load(str(path), KEY_LOADING_FILE)
        try:
            text = await asyncio.to_thread(self.reader, Path(path))
        except TransportError as e:
            self.fail(token, str(e))
            return self.state
        self.commit(token, self._load_if_current(token, text))
        return self.state

    def load_embedded(self, payload: Any) -> LoadState:
        """Synchronous path for data that is already in memory (offline page)."""
        token = self.begin_load("embedded", KEY_LOADING)
        if isinstance(payload, str):
            result = load_from_text(payload)
        else:
            result = load_from_structured_data(payload)
        self.commit(token, result)
        return self.state

    def _load_if_current(self, token: int, text: str) -> LoadResult:
        if not self.is_current(token):
            return Err("superseded")
        self.view.show_status(self.tr(KEY_LOADING))
        return load_from_text(text)

    # --- LANGUAGE ---

    def switch_language(self, language: str) -> None:
        """Replace the resolver and relabel the current tree (same shape)."""
        self.resolver = resolve(self.tables, language)
        self.view.set_title(self.tr(KEY_TITLE))
        if self.session.state == LoadState.READY and self.session.model is not None:
            root = build_tree(self.session.model, self.resolver)
            self.session = replace(self.session, nodes=list(root.walk()))
            self.view.show_tree(root)
            self.view.select_root()
