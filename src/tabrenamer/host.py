# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Browser capability interface and an in-memory browser.

``BrowserHost`` is everything the engine needs from the browser: tab and
group queries, tab/group mutations, and the per-tab title channel (apply a
title, restore the page's own title).  A browser-integration layer
implements it against the real extension APIs.

``InMemoryBrowser`` implements the same protocol against plain Python state
with the browser's group semantics (groups are contiguous, empty groups
disappear, the title channel remembers each page's original title).  It
records every call in ``calls`` and can be told to fail specific operations,
which is what the tests and the CLI simulator run against.

Dependencies: errors.py and the data model only.
"""

from __future__ import annotations

import asyncio
import itertools
import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from typing import Protocol, runtime_checkable

from . import TAB_GROUP_ID_NONE, Tab, TabGroup
from .domains import is_renamable_url, safe_url
from .errors import HostApiError, TitleChannelError

logger = logging.getLogger(__name__)

# Calls that move tabs or change group membership (visible UI animation).
MUTATING_OPERATIONS = frozenset({"move_tabs", "group_tabs", "ungroup_tabs"})


# ---------------------------------------------------------------------------
# Protocol
# ---------------------------------------------------------------------------


@runtime_checkable
class BrowserHost(Protocol):
    """Tab/group/title capabilities the engine consumes."""

    async def query_tabs(
        self,
        *,
        window_id: int | None = None,
        group_id: int | None = None,
        pinned: bool | None = None,
        active: bool | None = None,
        last_focused_window: bool = False,
    ) -> list[Tab]: ...

    async def query_groups(self, *, window_id: int | None = None) -> list[TabGroup]: ...

    async def move_tabs(self, tab_ids: Sequence[int], index: int) -> None: ...

    async def group_tabs(self, tab_ids: Sequence[int], *, group_id: int | None = None) -> int: ...

    async def update_group(
        self,
        group_id: int,
        *,
        title: str | None = None,
        color: str | None = None,
        collapsed: bool | None = None,
    ) -> None: ...

    async def ungroup_tabs(self, tab_ids: Sequence[int]) -> None: ...

    async def close_tabs(self, tab_ids: Sequence[int]) -> None: ...

    async def apply_title(self, tab_id: int, title: str) -> None: ...

    async def restore_title(self, tab_id: int) -> None: ...


# ---------------------------------------------------------------------------
# In-memory implementation
# ---------------------------------------------------------------------------


@dataclass(slots=True)
class _TabState:
    id: int
    window_id: int
    url: str
    title: str
    pinned: bool = False
    group_id: int = TAB_GROUP_ID_NONE
    active: bool = False
    # title channel: page's own title while a label is applied
    original_title: str | None = None
    last_applied: str | None = None


@dataclass(slots=True)
class _GroupState:
    id: int
    window_id: int
    title: str = ""
    color: str = "grey"
    collapsed: bool = False


@dataclass(frozen=True, slots=True)
class HostCall:
    """One recorded host call."""

    operation: str
    args: tuple = field(default_factory=tuple)


class InMemoryBrowser:
    """Plain-Python browser implementing ``BrowserHost``.

    Tab order is kept per window as a list of tab ids; a tab's ``index`` is
    its position in that list.
    """

    def __init__(self, *, focused_window_id: int = 1) -> None:
        self._tabs: dict[int, _TabState] = {}
        self._order: dict[int, list[int]] = {}
        self._groups: dict[int, _GroupState] = {}
        self._tab_ids = itertools.count(1)
        self._group_ids = itertools.count(100)
        self.focused_window_id = focused_window_id
        self.calls: list[HostCall] = []
        self.fail_operations: set[str] = set()
        self.unreachable_tabs: set[int] = set()  # title channel not loaded

    # ── Page-side simulation ────────────────────────────────────────

    def add_tab(
        self,
        url: str,
        title: str = "",
        *,
        window_id: int | None = None,
        pinned: bool = False,
        active: bool = False,
        tab_id: int | None = None,
        group_id: int = TAB_GROUP_ID_NONE,
    ) -> Tab:
        """Open a tab at the end of its window (pinned tabs go after other pinned tabs)."""
        wid = self.focused_window_id if window_id is None else window_id
        tid = next(self._tab_ids) if tab_id is None else tab_id
        if tid in self._tabs:
            raise ValueError(f"duplicate tab id {tid}")
        self._tabs[tid] = _TabState(id=tid, window_id=wid, url=url, title=title, pinned=pinned, active=active)
        order = self._order.setdefault(wid, [])
        if pinned:
            order.insert(sum(1 for t in order if self._tabs[t].pinned), tid)
        else:
            order.append(tid)
        if group_id != TAB_GROUP_ID_NONE:
            self._ensure_group(group_id, wid)
            self._tabs[tid].group_id = group_id
        return self._snapshot(tid)

    def add_group(
        self,
        group_id: int,
        *,
        window_id: int | None = None,
        title: str = "",
        color: str = "grey",
        collapsed: bool = False,
    ) -> TabGroup:
        wid = self.focused_window_id if window_id is None else window_id
        self._groups[group_id] = _GroupState(id=group_id, window_id=wid, title=title, color=color, collapsed=collapsed)
        return self._group_snapshot(group_id)

    def navigate(self, tab_id: int, url: str, title: str = "") -> Tab:
        """Load a new page in *tab_id*; the new page has no applied label."""
        state = self._require_tab(tab_id, "navigate")
        state.url = url
        state.title = title
        state.original_title = None
        state.last_applied = None
        return self._snapshot(tab_id)

    def page_title_changed(self, tab_id: int, title: str) -> bool:
        """The page set its own title.  Returns False when it echoes our last applied label."""
        state = self._require_tab(tab_id, "page_title_changed")
        if title == state.last_applied:
            return False
        state.last_applied = None
        state.title = title
        return True

    def tab(self, tab_id: int) -> Tab:
        return self._snapshot(tab_id)

    def group(self, group_id: int) -> TabGroup:
        if group_id not in self._groups:
            raise KeyError(group_id)
        return self._group_snapshot(group_id)

    def mutation_calls(self) -> list[HostCall]:
        """Recorded calls that moved tabs or changed group membership."""
        return [c for c in self.calls if c.operation in MUTATING_OPERATIONS]

    # ── BrowserHost: queries ────────────────────────────────────────

    async def query_tabs(
        self,
        *,
        window_id: int | None = None,
        group_id: int | None = None,
        pinned: bool | None = None,
        active: bool | None = None,
        last_focused_window: bool = False,
    ) -> list[Tab]:
        await asyncio.sleep(0)
        if last_focused_window:
            window_id = self.focused_window_id
        result: list[Tab] = []
        for wid in sorted(self._order):
            if window_id is not None and wid != window_id:
                continue
            for tid in self._order[wid]:
                t = self._snapshot(tid)
                if group_id is not None and t.group_id != group_id:
                    continue
                if pinned is not None and t.pinned != pinned:
                    continue
                if active is not None and t.active != active:
                    continue
                result.append(t)
        return result

    async def query_groups(self, *, window_id: int | None = None) -> list[TabGroup]:
        await asyncio.sleep(0)
        return [
            self._group_snapshot(gid)
            for gid in sorted(self._groups)
            if window_id is None or self._groups[gid].window_id == window_id
        ]

    # ── BrowserHost: mutations ──────────────────────────────────────

    async def move_tabs(self, tab_ids: Sequence[int], index: int) -> None:
        await self._enter("move_tabs", tuple(tab_ids), index)
        states = [self._require_tab(tid, "move_tabs") for tid in tab_ids]
        for wid in {s.window_id for s in states}:
            order = self._order[wid]
            moving = [s.id for s in states if s.window_id == wid]
            rest = [tid for tid in order if tid not in moving]
            at = max(0, min(index, len(rest)))
            self._order[wid] = rest[:at] + moving + rest[at:]

    async def group_tabs(self, tab_ids: Sequence[int], *, group_id: int | None = None) -> int:
        await self._enter("group_tabs", tuple(tab_ids), group_id)
        if not tab_ids:
            raise HostApiError("group_tabs requires at least one tab", operation="group_tabs")
        states = [self._require_tab(tid, "group_tabs") for tid in tab_ids]
        wid = states[0].window_id
        if group_id is None:
            group_id = next(self._group_ids)
            self._groups[group_id] = _GroupState(id=group_id, window_id=wid)
        elif group_id not in self._groups:
            raise HostApiError(f"no group with id {group_id}", operation="group_tabs")
        for s in states:
            s.group_id = group_id
            s.pinned = False
        self._make_contiguous(group_id)
        self._drop_empty_groups()
        return group_id

    async def update_group(
        self,
        group_id: int,
        *,
        title: str | None = None,
        color: str | None = None,
        collapsed: bool | None = None,
    ) -> None:
        await self._enter("update_group", group_id, title, color, collapsed)
        grp = self._groups.get(group_id)
        if grp is None:
            raise HostApiError(f"no group with id {group_id}", operation="update_group")
        if title is not None:
            grp.title = title
        if color is not None:
            grp.color = color
        if collapsed is not None:
            grp.collapsed = collapsed

    async def ungroup_tabs(self, tab_ids: Sequence[int]) -> None:
        await self._enter("ungroup_tabs", tuple(tab_ids))
        for tid in tab_ids:
            self._require_tab(tid, "ungroup_tabs").group_id = TAB_GROUP_ID_NONE
        self._drop_empty_groups()

    async def close_tabs(self, tab_ids: Sequence[int]) -> None:
        await self._enter("close_tabs", tuple(tab_ids))
        for tid in tab_ids:
            state = self._require_tab(tid, "close_tabs")
            self._order[state.window_id].remove(tid)
            del self._tabs[tid]
        self._drop_empty_groups()

    # ── BrowserHost: title channel ──────────────────────────────────

    async def apply_title(self, tab_id: int, title: str) -> None:
        await self._enter("apply_title", tab_id, title)
        state = self._reachable_tab(tab_id)
        if state.original_title is None:
            state.original_title = state.title
        state.last_applied = title
        state.title = title

    async def restore_title(self, tab_id: int) -> None:
        await self._enter("restore_title", tab_id)
        state = self._reachable_tab(tab_id)
        if state.original_title is not None:
            state.title = state.original_title
            state.original_title = None
            state.last_applied = None

    # ── Internal ────────────────────────────────────────────────────

    async def _enter(self, operation: str, *args: object) -> None:
        self.calls.append(HostCall(operation, args))
        logger.debug("host %s%r", operation, args)
        await asyncio.sleep(0)
        if operation in self.fail_operations:
            if operation in ("apply_title", "restore_title"):
                raise TitleChannelError(f"{operation} rejected", tab_id=args[0] if args else None)
            raise HostApiError(f"{operation} rejected", operation=operation)

    def _require_tab(self, tab_id: int, operation: str) -> _TabState:
        state = self._tabs.get(tab_id)
        if state is None:
            raise HostApiError(f"no tab with id {tab_id}", operation=operation)
        return state

    def _reachable_tab(self, tab_id: int) -> _TabState:
        state = self._tabs.get(tab_id)
        if state is None or tab_id in self.unreachable_tabs:
            raise TitleChannelError(f"tab {tab_id} is not reachable", tab_id=tab_id)
        parsed = safe_url(state.url)
        if not is_renamable_url(state.url) or parsed is None or parsed.scheme not in ("http", "https", "file"):
            raise TitleChannelError(f"tab {tab_id} cannot host the title channel", tab_id=tab_id)
        return state

    def _ensure_group(self, group_id: int, window_id: int) -> None:
        if group_id not in self._groups:
            self._groups[group_id] = _GroupState(id=group_id, window_id=window_id)

    def _make_contiguous(self, group_id: int) -> None:
        """Pull a group's tabs together at its first member's position."""
        wid = self._groups[group_id].window_id
        order = self._order[wid]
        members = [tid for tid in order if self._tabs[tid].group_id == group_id]
        if not members:
            return
        first = order.index(members[0])
        rest = [tid for tid in order if tid not in members]
        at = len([tid for tid in order[:first] if tid not in members])
        self._order[wid] = rest[:at] + members + rest[at:]

    def _drop_empty_groups(self) -> None:
        used = {s.group_id for s in self._tabs.values()}
        for gid in [g for g in self._groups if g not in used]:
            del self._groups[gid]

    def _snapshot(self, tab_id: int) -> Tab:
        s = self._tabs[tab_id]
        return Tab(
            id=s.id,
            url=s.url,
            title=s.title,
            window_id=s.window_id,
            index=self._order[s.window_id].index(tab_id),
            pinned=s.pinned,
            group_id=s.group_id,
            active=s.active,
        )

    def _group_snapshot(self, group_id: int) -> TabGroup:
        g = self._groups[group_id]
        return TabGroup(id=g.id, window_id=g.window_id, title=g.title, color=g.color, collapsed=g.collapsed)

    def load(self, tabs: Iterable[Tab], groups: Iterable[TabGroup] = ()) -> None:
        """Replace state with *tabs* and *groups* (tab order follows ``Tab.index``)."""
        self._tabs.clear()
        self._order.clear()
        self._groups.clear()
        for g in groups:
            self.add_group(g.id, window_id=g.window_id, title=g.title, color=g.color, collapsed=g.collapsed)
        for t in sorted(tabs, key=lambda t: (t.window_id, not t.pinned, t.index)):
            self.add_tab(
                t.url,
                t.title,
                window_id=t.window_id,
                pinned=t.pinned,
                active=t.active,
                tab_id=t.id,
                group_id=t.group_id,
            )
        top = max(self._tabs, default=0)
        self._tab_ids = itertools.count(top + 1)
        top_group = max(self._groups, default=99)
        self._group_ids = itertools.count(max(top_group + 1, 100))
