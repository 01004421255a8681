#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Unveränderliches Statistik-Modell und Ergebnistyp des Loaders.
"""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Iterator, Mapping, Optional, Tuple, Union

EMPTY_MAPPING: Mapping[str, str] = MappingProxyType({})


@dataclass(frozen=True)
class Section:
    """One element of a statistics document below the root.

    ``key`` is the language independent catalog key (``None`` for tags the
    catalog does not know), ``tag`` the element name exactly as read.
    """
    key: Optional[str]
    tag: str
    display_key: str
    name: str = ""
    metrics: Mapping[str, str] = field(default_factory=lambda: EMPTY_MAPPING)
    text: str = ""
    children: Tuple["Section", ...] = ()

    def is_empty(self) -> bool:
        return not (self.metrics or self.text or self.children)

    def child(self, display_key: str) -> Optional["Section"]:
        for section in self.children:
            if section.display_key == display_key:
                return section
        return None


@dataclass(frozen=True)
class StatisticsModel:
    root_tag: str
    attributes: Mapping[str, str] = field(default_factory=lambda: EMPTY_MAPPING)
    sections: Tuple[Section, ...] = ()

    def __iter__(self) -> Iterator[Section]:
        return iter(self.sections)

    def find(self, key: str, name: str = "") -> Optional[Section]:
        """Return the top level section with catalog key ``key`` and ``Name`` attribute ``name``."""
        for section in self.sections:
            if section.key == key and section.name == name:
                return section
        return None

    def named(self, key: str) -> Tuple[Section, ...]:
        """All top level sections of ``key`` carrying a ``Name`` (caller groups, call centers, ...)."""
        return tuple(s for s in self.sections if s.key == key and s.name)


@dataclass(frozen=True)
class Ok:
    model: StatisticsModel


@dataclass(frozen=True)
class Err:
    message: str


LoadResult = Union[Ok, Err]
