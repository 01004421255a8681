#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Bildet das Statistik-Modell auf eine geordnete Knotenhierarchie für den Tree ab.
Wird bei jedem Laden und jedem Sprachwechsel neu aufgebaut.
"""

from dataclasses import dataclass
from typing import Iterator, List, Optional, Tuple

from stats_language import Resolver
from stats_model import Section, StatisticsModel

# ============================================================================
# CONSTANTS & TYPE DEFINITIONS
# ============================================================================

KIND_ROOT = "root"
KIND_SECTION = "section"
KIND_METRIC = "metric"

ROOT_NODE_ID = "root"
NODE_ID_SEPARATOR = "/"
METRIC_ID_PREFIX = "@"

KEY_TREE_ROOT = "tree.root"
KEY_SECTION_PREFIX = "section."


@dataclass(frozen=True)
class TreeNode:
    node_id: str
    label: str
    kind: str
    depth: int
    section: Optional[Section] = None
    children: Tuple["TreeNode", ...] = ()

    def walk(self) -> Iterator["TreeNode"]:
        """Depth-first pre-order, this node first."""
        yield self
        for child in self.children:
            yield from child.walk()

    def shape(self) -> Tuple[str, Tuple]:
        """Language independent structure (ids only), for comparisons."""
        return self.node_id, tuple(child.shape() for child in self.children)


def section_label(section: Section, resolver: Resolver) -> str:
    """Human-readable label for a section.

    Catalog sections use the localized name, unknown tags keep the tag.
    A ``Name`` attribute is appended in quotes, leaf text is shown inline.
    """
    label = resolver.tr(KEY_SECTION_PREFIX + section.key) if section.key else section.tag
    if section.name:
        label = f'{label} "{section.name}"'
    if section.text and not section.children and not section.metrics:
        label = f"{label}: {section.text}"
    return label


def _section_node(section: Section, parent_id: str, depth: int, resolver: Resolver) -> TreeNode:
    node_id = f"{parent_id}{NODE_ID_SEPARATOR}{section.display_key}"
    children: List[TreeNode] = []
    for metric, value in section.metrics.items():
        children.append(TreeNode(
            node_id=f"{node_id}{NODE_ID_SEPARATOR}{METRIC_ID_PREFIX}{metric}",
            label=f"{metric}: {value}",
            kind=KIND_METRIC,
            depth=depth + 1,
            section=section,
        ))
    for child in section.children:
        children.append(_section_node(child, node_id, depth + 1, resolver))
    return TreeNode(
        node_id=node_id,
        label=section_label(section, resolver),
        kind=KIND_SECTION,
        depth=depth,
        section=section,
        children=tuple(children),
    )


def build_tree(model: StatisticsModel, resolver: Resolver) -> TreeNode:
    root_children = tuple(_section_node(s, ROOT_NODE_ID, 1, resolver) for s in model.sections)
    return TreeNode(
        node_id=ROOT_NODE_ID,
        label=resolver.tr(KEY_TREE_ROOT),
        kind=KIND_ROOT,
        depth=0,
        children=root_children,
    )


def build(model: StatisticsModel, resolver: Resolver) -> List[TreeNode]:
    """Map the model to tree nodes.

    Args:
        model: Validated statistics model (not modified)
        resolver: Active language

    Returns:
        All nodes, root first, depth-first in section declaration order
    """
    return list(build_tree(model, resolver).walk())
