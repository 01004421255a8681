#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Datenquellen des Viewers: Beispieldateien vom Server und lokal abgelegte Dateien.
Alle Funktionen sind blockierend und werden vom Controller in einem Thread ausgeführt.
"""

import logging
import os
import shlex
import time
from pathlib import Path
from typing import List, Optional
from urllib.parse import unquote, urljoin, urlparse

import requests

from stats_errors import EnvironmentUnsupported, InputShapeError, TransportError

# ============================================================================
# CONSTANTS
# ============================================================================

DEFAULT_SAMPLE_URL = "http://localhost:8080/viewer/examples/"
DEFAULT_FETCH_TIMEOUT = 10.0
SAMPLE_FILES = {
    "small": "BeispielStatistik1.xml",
    "large": "BeispielStatistik2.xml",
}
FILE_URL_SCHEME = "file"
TEXT_ENCODING = "utf-8"


def sample_url(base_url: str, file_name: str) -> str:
    if not base_url.endswith("/"):
        base_url += "/"
    return urljoin(base_url, file_name)


def fetch_sample_file(url: str, timeout: float = DEFAULT_FETCH_TIMEOUT,
                      session: Optional[requests.Session] = None) -> str:
    """Download a bundled example statistics file.

    Args:
        url: Absolute URL of the file
        timeout: Request timeout in seconds
        session: Optional requests session (tests, connection reuse)

    Returns:
        Response body decoded as UTF-8

    Raises:
        TransportError: On connection problems or a non-2xx response
    """
    start_time = time.time()
    getter = session.get if session is not None else requests.get
    try:
        response = getter(url, timeout=timeout)
    except requests.RequestException as e:
        logging.error(f"Abruf von '{url}' fehlgeschlagen: {e}")
        raise TransportError(f"Could not fetch '{url}': {e}", source=url) from e

    if not response.ok:
        logging.error(f"Abruf von '{url}' lieferte HTTP {response.status_code}")
        raise TransportError(
            f"Could not fetch '{url}': HTTP {response.status_code} {response.reason or ''}".rstrip(),
            source=url, status_code=response.status_code,
        )
    logging.info(f"'{url}' in {time.time() - start_time:.2f}s geladen ({len(response.content)} Bytes).")
    return response.content.decode(TEXT_ENCODING, errors="replace")


def parse_dropped_paths(pasted: str) -> List[str]:
    """Split what the terminal pasted for a drag-and-drop into file paths.

    Terminals paste dropped files as (quoted) paths or ``file://`` URLs,
    separated by whitespace or newlines.
    """
    if not pasted or not pasted.strip():
        return []
    try:
        parts = shlex.split(pasted, posix=os.name != "nt")
    except ValueError:
        parts = pasted.split()

    paths = []
    for part in parts:
        part = part.strip().strip('"').strip("'")
        if not part:
            continue
        parsed = urlparse(part)
        if parsed.scheme == FILE_URL_SCHEME:
            part = unquote(parsed.path)
        paths.append(part)
    return paths


def validate_drop(paths: List[str]) -> Path:
    """Return the single dropped path, raise InputShapeError otherwise."""
    if len(paths) != 1:
        raise InputShapeError(len(paths))
    return Path(paths[0])


def read_dropped_file(path: Path) -> str:
    try:
        content = Path(path).read_bytes()
    except OSError as e:
        logging.error(f"Datei '{path}' nicht lesbar: {e}")
        raise TransportError(f"File '{path}' could not be read: {e.strerror or e}", source=str(path)) from e
    logging.info(f"Lokale Datei '{path}' gelesen ({len(content)} Bytes).")
    return content.decode(TEXT_ENCODING, errors="replace")


def check_environment(drop_path: str) -> None:
    """Verify that local files can be browsed and read.

    Raises:
        EnvironmentUnsupported: If the drop folder is missing or unreadable
    """
    path = Path(drop_path or ".")
    if not path.is_dir():
        raise EnvironmentUnsupported(f"Folder '{path}' does not exist")
    if not os.access(path, os.R_OK | os.X_OK):
        raise EnvironmentUnsupported(f"Folder '{path}' is not readable")
