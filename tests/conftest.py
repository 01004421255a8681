"""Gemeinsame Fixtures für die Tests des Statistik-Viewers."""

import logging
import sys
from pathlib import Path

import pytest

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from stats_language import LANGUAGE_DIR, load_language_tables

logging.basicConfig(
    level=logging.DEBUG,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)

FIXTURES_DIR = Path(__file__).parent / "fixtures"


@pytest.fixture(scope="session")
def fixtures_dir():
    return FIXTURES_DIR


@pytest.fixture(scope="session")
def german_xml():
    """Complete statistics document with German tag names."""
    return (FIXTURES_DIR / "statistik_de.xml").read_text(encoding="utf-8")


@pytest.fixture(scope="session")
def english_xml():
    """Same document as german_xml, written with English tag names."""
    return (FIXTURES_DIR / "statistic_en.xml").read_text(encoding="utf-8")


@pytest.fixture(scope="session")
def language_tables():
    return load_language_tables(LANGUAGE_DIR)


class FakeView:
    """Records every view call of the controller. Timers run only on demand."""

    def __init__(self):
        self.calls = []
        self.scheduled = []
        self.title = None
        self.status = None
        self.status_error = False
        self.status_visible = False
        self.instructions_visible = True
        self.tree_root = None
        self.alerts = []
        self.advisories = []

    def set_title(self, text):
        self.calls.append(("set_title", text))
        self.title = text

    def show_status(self, text, error=False):
        self.calls.append(("show_status", text, error))
        self.status = text
        self.status_error = error
        self.status_visible = True

    def hide_status(self):
        self.calls.append(("hide_status",))
        self.status_visible = False

    def hide_instructions(self):
        self.calls.append(("hide_instructions",))
        self.instructions_visible = False

    def show_tree(self, root):
        self.calls.append(("show_tree", root))
        self.tree_root = root

    def hide_tree(self):
        self.calls.append(("hide_tree",))
        self.tree_root = None

    def select_root(self):
        self.calls.append(("select_root",))

    def schedule(self, delay, callback):
        self.calls.append(("schedule", delay))
        self.scheduled.append(callback)

    def alert(self, text):
        self.calls.append(("alert", text))
        self.alerts.append(text)

    def show_advisory(self, text):
        self.calls.append(("show_advisory", text))
        self.advisories.append(text)

    def run_scheduled(self):
        callbacks, self.scheduled = self.scheduled, []
        for callback in callbacks:
            callback()

    def names(self):
        return [call[0] for call in self.calls]


@pytest.fixture
def view():
    return FakeView()


@pytest.fixture
def viewer_config(tmp_path):
    return {
        "language": "de",
        "sample_url": "http://stats.example/viewer/examples",
        "drop_path": str(tmp_path),
        "fetch_timeout": 3.0,
        "status_delay": 0.1,
    }
