#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Zusätzliche Screens und Widgets des Statistik-Viewers.
"""

from pathlib import Path
from typing import Iterable

from rich.text import Text
from textual.app import ComposeResult
from textual.binding import Binding
from textual.containers import Vertical
from textual.screen import ModalScreen
from textual.widgets import Button, DirectoryTree, Static

LOADABLE_SUFFIXES = (".xml", ".json", ".html", ".htm")


class AlertScreen(ModalScreen[None]):
    """Blocking message box with a single OK button."""

    BINDINGS = [
        Binding("escape", "dismiss_alert", "Close", show=False),
        Binding("enter", "dismiss_alert", "Close", show=False),
    ]

    def __init__(self, message: str, title: str = "", button_label: str = "OK"):
        super().__init__()
        self.message = message
        self.alert_title = title
        self.button_label = button_label

    def compose(self) -> ComposeResult:
        yield Vertical(
            Static(Text(self.alert_title), id="alert_title"),
            Static(Text(self.message), id="alert_message"),
            Button(self.button_label, variant="primary", id="alert_ok"),
            id="alert_dialog",
        )

    def on_mount(self) -> None:
        self.query_one("#alert_ok", Button).focus()

    def on_button_pressed(self, event: Button.Pressed) -> None:
        event.stop()
        self.dismiss(None)

    def action_dismiss_alert(self) -> None:
        self.dismiss(None)


class DropZone(Static, can_focus=True):
    """Target for terminal drag-and-drop. Dropped files arrive as a paste."""


class FilteredDirectoryTree(DirectoryTree):
    """File browser that only lists folders and loadable statistics files."""

    def filter_paths(self, paths: Iterable[Path]) -> Iterable[Path]:
        return [
            path for path in paths
            if not path.name.startswith(".")
            and (path.is_dir() or path.suffix.lower() in LOADABLE_SUFFIXES)
        ]
