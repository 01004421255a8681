#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Fehlerklassen des Statistik-Viewers.
Werden vom Loader, den Datenquellen und dem Controller verwendet.
"""

from typing import Optional


class ViewerError(Exception):
    """Basisklasse aller Viewer-Fehler"""


class InputShapeError(ViewerError):
    """A drop carried zero or more than one file."""
    def __init__(self, count: int):
        super().__init__(f"Exactly one file expected, got {count}")
        self.count = count


class ParseError(ViewerError):
    """Malformed document or failed structural validation.

    ``locator`` names the offending tag, attribute or path.
    """
    def __init__(self, message: str, locator: str = ""):
        super().__init__(message)
        self.locator = locator


class TransportError(ViewerError):
    """Fetching a sample file or reading a dropped file failed."""
    def __init__(self, message: str, source: str = "", status_code: Optional[int] = None):
        super().__init__(message)
        self.source = source
        self.status_code = status_code


class EnvironmentUnsupported(ViewerError):
    """Local file acquisition is not available on this host."""
