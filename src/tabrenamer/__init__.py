# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Tab Renamer: one-word tab labels and domain tab groups.

Turns a browser window's tabs into short, unique, human-readable titles:
- grouping: tabs are clustered by registrable domain (with a carve-out for
  Google's per-service subdomains) and optionally placed in real tab groups
- labelling: each tab gets one descriptive word, deduplicated within its scope
"""

from __future__ import annotations

from dataclasses import dataclass

TAB_GROUP_ID_NONE = -1  # browser sentinel for "not in any group"


@dataclass(frozen=True, slots=True)
class Tab:
    """Read-only snapshot of a browser tab."""

    id: int
    url: str
    title: str
    window_id: int = 1
    index: int = 0  # position within the window
    pinned: bool = False
    group_id: int = TAB_GROUP_ID_NONE
    active: bool = False

    @property
    def grouped(self) -> bool:
        return self.group_id != TAB_GROUP_ID_NONE


@dataclass(frozen=True, slots=True)
class TabGroup:
    """Read-only snapshot of a browser tab group."""

    id: int
    window_id: int
    title: str = ""
    color: str = "grey"
    collapsed: bool = False


@dataclass(frozen=True, slots=True)
class TitleOp:
    """A pending title change for one tab, produced by a recompute pass."""

    tab_id: int
    title: str

    def __str__(self) -> str:
        return f"[{self.tab_id}] {self.title}"


__all__ = ["TAB_GROUP_ID_NONE", "Tab", "TabGroup", "TitleOp"]
