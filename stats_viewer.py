#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Ein interaktiver Viewer für Statistikdateien des Callcenter Simulators.
Hauptdatei: Initialisiert die App und verbindet Controller mit UI.
"""
import argparse
import logging
import os
import sys
import traceback
from pathlib import Path
from typing import Any, Dict, Optional

try:
    from dotenv import load_dotenv
    from rich.text import Text
    from textual.app import App, ComposeResult
    from textual.binding import Binding
    from textual.containers import VerticalScroll
    from textual.widgets import Button, DirectoryTree, Header, Static, Tree
    from textual.worker import Worker, WorkerState
    from textual import events
except ImportError as e:
    print(f"ERROR: Missing dependency: {e}. Run: pip install -r requirements.txt", file=sys.stderr)
    sys.exit(1)

from stats_assets import CSS_FILE
from stats_controller import DEFAULT_STATUS_DELAY, InitializationController
from stats_language import LANGUAGE_DIR, load_language_tables
from stats_sources import DEFAULT_FETCH_TIMEOUT, DEFAULT_SAMPLE_URL, SAMPLE_FILES, parse_dropped_paths
from stats_tui_logic import HIDDEN_CLASS, StatsTuiLogic
from stats_tui_screens import DropZone, FilteredDirectoryTree

LOG_LEVEL = logging.DEBUG
DEFAULT_VIEWER_LANGUAGE = "de"
DEFAULT_LOG_FILE = "stats_viewer.log"
LOAD_WORKER_GROUP = "load"

# Texte des Hinweisbereichs: Widget-ID -> Sprachschlüssel
INSTRUCTION_TEXTS = {
    "#intro_text": "intro.text",
    "#local_header": "intro.local_header",
    "#drop_zone": "intro.drop_zone",
    "#local_note": "intro.local_note",
    "#samples_header": "intro.samples_header",
    "#samples_text": "intro.samples_text",
}
SAMPLE_BUTTONS = {
    "sample_small": "small",
    "sample_large": "large",
}


### --- TUI: HAUPTANWENDUNG ---
class StatsViewer(App, StatsTuiLogic):
    CSS_PATH = CSS_FILE

    BINDINGS = [
        Binding("q", "quit", "Quit", show=True, priority=True),
        Binding("1", "load_sample('small')", "Small Example"),
        Binding("2", "load_sample('large')", "Large Example"),
        Binding("l", "toggle_language", "Language"),
        Binding("o", "show_instructions", "Open File"),
    ]

    def __init__(self, config: Dict, controller_factory=InitializationController):
        super().__init__()
        self.config = config
        self.language_tables = load_language_tables(Path(config.get("language_dir") or LANGUAGE_DIR))
        self.controller = controller_factory(self, self.language_tables, config)

    def tr(self, key: str) -> str:
        return self.controller.tr(key)

    def compose(self) -> ComposeResult:
        yield Header()
        yield Static(Text(self.tr("status.loading_system")), id="status")
        yield Tree(Text(self.tr("tree.root")), id="stats_tree", classes=HIDDEN_CLASS)
        yield VerticalScroll(
            Static(Text(self.tr("intro.text")), id="intro_text"),
            Static(Text(self.tr("intro.local_header")), id="local_header", classes="heading"),
            Static("", id="file_api_info"),
            DropZone(Text(self.tr("intro.drop_zone")), id="drop_zone"),
            self._compose_file_browser(),
            Static(Text(self.tr("intro.local_note")), id="local_note"),
            Static(Text(self.tr("intro.samples_header")), id="samples_header", classes="heading"),
            Static(Text(self.tr("intro.samples_text")), id="samples_text"),
            Button(self.tr("sample.small"), id="sample_small"),
            Button(self.tr("sample.large"), id="sample_large"),
            id="initinfo",
        )
        yield Static("", id="manual_footer")

    def _compose_file_browser(self):
        drop_path = self.config.get("drop_path") or "."
        if Path(drop_path).is_dir():
            return FilteredDirectoryTree(drop_path, id="file_browser")
        # Hinweis dazu kommt von controller.arm()
        return Static("", id="file_browser")

    def on_mount(self) -> None:
        logging.debug("on_mount: Viewer wird initialisiert...")
        try:
            self.controller.arm()
            self.update_footer()
            self.query_one("#drop_zone", DropZone).focus()
            if stats_file := self.config.get("stats_file"):
                self.start_load(self.controller.load_file(Path(stats_file)))
        except Exception as e:
            logging.critical("Initialisierung fehlgeschlagen.", exc_info=True)
            self.show_status(f"{e}\n\n{traceback.format_exc()}", error=True)

    def update_footer(self) -> None:
        footer_text = "  ".join(f"[bold]{b.key.upper()}[/]:{b.description}" for b in self.BINDINGS)
        self.query_one("#manual_footer", Static).update(footer_text)

    # --- LADEN ---

    def start_load(self, coroutine) -> Worker:
        # Kein exclusive: ältere Ladevorgänge laufen aus, der Controller verwirft sie.
        return self.run_worker(coroutine, group=LOAD_WORKER_GROUP, exit_on_error=False)

    def on_worker_state_changed(self, event: Worker.StateChanged) -> None:
        if event.state == WorkerState.ERROR:
            error = event.worker.error
            logging.error(f"Ladevorgang abgebrochen: {error}", exc_info=error)
            self.notify(f"Unexpected error while loading: {error}", severity="error")

    def on_paste(self, event: events.Paste) -> None:
        paths = parse_dropped_paths(event.text)
        logging.debug(f"Paste/Drop empfangen: {paths}")
        path = self.controller.check_drop(paths)
        if path is not None:
            self.start_load(self.controller.load_file(path))

    def on_directory_tree_file_selected(self, event: DirectoryTree.FileSelected) -> None:
        event.stop()
        path = self.controller.check_drop([str(event.path)])
        if path is not None:
            self.start_load(self.controller.load_file(path))

    def on_button_pressed(self, event: Button.Pressed) -> None:
        if which := SAMPLE_BUTTONS.get(event.button.id or ""):
            event.stop()
            self.action_load_sample(which)

    def action_load_sample(self, which: str) -> None:
        file_name = SAMPLE_FILES.get(which)
        if not file_name:
            self.notify(f"Unknown example '{which}'", severity="warning")
            return
        self.start_load(self.controller.load_sample(file_name))

    # --- SPRACHE & ANSICHT ---

    def action_toggle_language(self) -> None:
        language = "en" if self.controller.resolver.language == "de" else "de"
        self.controller.switch_language(language)
        for widget_id, key in INSTRUCTION_TEXTS.items():
            self.query_one(widget_id, Static).update(Text(self.tr(key)))
        for button_id, which in SAMPLE_BUTTONS.items():
            self.query_one(f"#{button_id}", Button).label = self.tr(f"sample.{which}")
        self.notify(self.tr("status.language"))

    def action_show_instructions(self) -> None:
        self.show_instructions()
        self.query_one("#drop_zone", DropZone).focus()


def build_config(args: argparse.Namespace, environ: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
    """Merge CLI flags with environment defaults (.env is loaded by main)."""
    env = os.environ if environ is None else environ
    return {
        'stats_file': args.file or env.get('STATS_FILE'),
        'language': args.language or env.get('STATS_LANGUAGE') or DEFAULT_VIEWER_LANGUAGE,
        'sample_url': args.sample_url or env.get('STATS_SAMPLE_URL') or DEFAULT_SAMPLE_URL,
        'drop_path': args.drop_path or env.get('STATS_DROP_PATH') or ".",
        'fetch_timeout': float(env.get('STATS_FETCH_TIMEOUT') or DEFAULT_FETCH_TIMEOUT),
        'status_delay': float(env.get('STATS_STATUS_DELAY') or DEFAULT_STATUS_DELAY),
        'log_file': env.get('STATS_LOG_FILE') or DEFAULT_LOG_FILE,
    }


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Callcenter Simulator statistics viewer")
    parser.add_argument("--file", help="Statistics file to open at start (.xml, .json or exported .html)")
    parser.add_argument("--language", choices=["de", "en"], help="User interface language")
    parser.add_argument("--sample-url", help="Base URL of the example statistics files")
    parser.add_argument("--drop-path", help="Start folder of the file browser")
    return parser


def main():
    try:
        load_dotenv()
        args = build_parser().parse_args()
        config = build_config(args)
        logging.basicConfig(
            level=LOG_LEVEL,
            filename=config['log_file'],
            filemode='w',
            format='%(asctime)s - %(levelname)s - %(name)s - %(message)s',
            encoding='utf-8'
        )
        app = StatsViewer(config=config)
        app.run()
    except Exception:
        traceback.print_exc(file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
