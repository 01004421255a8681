# -*- coding: utf-8 -*-

"""
Mitgelieferte Dateien des Statistik-Viewers (Sprachtabellen, Stylesheet).
Liegen im Paket, damit sie auch bei einer normalen Installation gefunden werden.
"""

from pathlib import Path

ASSET_DIR = Path(__file__).parent
LANGUAGE_DIR = ASSET_DIR / "languages"
CSS_FILE = ASSET_DIR / "stats-viewer.css"
