#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Logik-Mixin für den Statistik-Viewer.
Enthält die View-Operationen, die der InitializationController aufruft
(Statuszeile, Hinweisbereich, Baum befüllen, Auswahl, Timer, Meldungen).
"""

import logging
from typing import Callable

from rich.text import Text
from textual.timer import Timer
from textual.widgets import Static, Tree
from textual.widgets.tree import TreeNode as WidgetNode

from stats_tree_builder import TreeNode
from stats_tui_screens import AlertScreen

# ============================================================================
# CONSTANTS
# ============================================================================

STATUS_ID = "#status"
INSTRUCTIONS_ID = "#initinfo"
TREE_ID = "#stats_tree"
ADVISORY_ID = "#file_api_info"
ERROR_CLASS = "error"
HIDDEN_CLASS = "hidden"

# Tiefe, bis zu der der Baum nach dem Laden aufgeklappt wird
AUTO_EXPAND_DEPTH = 1


class StatsTuiLogic:
    """
    View-Seite des Viewers. Wird als Mixin in die App eingebunden.
    """

    # --- STATUS ---

    def set_title(self, text: str) -> None:
        self.title = text

    def show_status(self, text: str, error: bool = False) -> None:
        try:
            status = self.query_one(STATUS_ID, Static)
            status.update(Text(text))
            status.set_class(error, ERROR_CLASS)
            status.remove_class(HIDDEN_CLASS)
        except Exception:
            logging.critical("Konnte Statuszeile nicht aktualisieren.", exc_info=True)

    def hide_status(self) -> None:
        try:
            self.query_one(STATUS_ID, Static).add_class(HIDDEN_CLASS)
        except Exception:
            logging.error("Konnte Statuszeile nicht ausblenden.", exc_info=True)

    def show_advisory(self, text: str) -> None:
        try:
            self.query_one(ADVISORY_ID, Static).update(Text(text))
        except Exception:
            logging.error("Konnte Hinweis nicht anzeigen.", exc_info=True)

    def hide_instructions(self) -> None:
        self.query_one(INSTRUCTIONS_ID).add_class(HIDDEN_CLASS)

    def show_instructions(self) -> None:
        self.query_one(INSTRUCTIONS_ID).remove_class(HIDDEN_CLASS)

    def alert(self, text: str) -> None:
        self.push_screen(AlertScreen(text, title=self.controller.tr("alert.title"),
                                     button_label=self.controller.tr("alert.ok")))

    def schedule(self, delay: float, callback: Callable[[], None]) -> Timer:
        return self.set_timer(delay, callback)

    # --- BAUM ---

    def show_tree(self, root: TreeNode) -> None:
        tree = self.query_one(TREE_ID, Tree)
        self._populate_tree_from_nodes(tree, root)
        tree.remove_class(HIDDEN_CLASS)

    def hide_tree(self) -> None:
        tree = self.query_one(TREE_ID, Tree)
        tree.clear()
        tree.root.data = None
        tree.add_class(HIDDEN_CLASS)

    def select_root(self) -> None:
        tree = self.query_one(TREE_ID, Tree)

        def _select() -> None:
            tree.move_cursor(tree.root)
            tree.scroll_to_node(tree.root, animate=False)
            tree.focus()

        # erst nach dem nächsten Render, dann existieren die Zeilen
        self.call_after_refresh(_select)

    def _populate_tree_from_nodes(self, tree: Tree, root: TreeNode, expand_depth: int = AUTO_EXPAND_DEPTH) -> None:
        tree.clear()
        tree.root.set_label(Text(root.label))
        tree.root.data = root

        def add_nodes(parent_node: WidgetNode, children) -> None:
            for node in children:
                if node.children:
                    child_node = parent_node.add(Text(node.label), data=node, expand=node.depth < expand_depth)
                    add_nodes(child_node, node.children)
                else:
                    parent_node.add_leaf(Text(node.label), data=node)

        add_nodes(tree.root, root.children)
        tree.root.expand()

