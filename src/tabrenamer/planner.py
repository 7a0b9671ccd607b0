# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Convergence planner: bring a window's tab groups in line with its domains.

Moving and regrouping tabs animates the tab strip, so every pass first asks
whether the live arrangement already matches the desired one:

- **STABLE**: every domain with enough tabs already sits in one group
  titled with its domain label, and every other domain is ungrouped.  Only
  group metadata (title, color) is refreshed where it drifted.
- **REBUILD**: optionally ungroup, pull same-domain tabs together around
  their existing cluster, then (re)group every domain at or above the
  minimum size.

Host failures are logged and swallowed at the call site: a tab closing
mid-pass is normal, and the next pass converges from fresh state.

Dependencies: domains.py, host.py, scheduler.py.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Iterable, Sequence
from dataclasses import dataclass
from enum import StrEnum

from . import TAB_GROUP_ID_NONE, Tab, TabGroup
from .config import Settings
from .domains import domain_label, grouping_key, host_of, is_renamable_url
from .errors import HostApiError
from .host import BrowserHost
from .scheduler import RecomputeScheduler

logger = logging.getLogger(__name__)

# Tab group colors offered by the browser.
GROUP_COLORS: tuple[str, ...] = (
    "grey",
    "blue",
    "red",
    "yellow",
    "green",
    "pink",
    "purple",
    "cyan",
    "orange",
)


class ConvergenceState(StrEnum):
    STABLE = "stable"
    REBUILD = "rebuild"


@dataclass(frozen=True, slots=True)
class PlanOutcome:
    """What one convergence step did."""

    state: ConvergenceState
    moved: int = 0  # tabs passed to move_tabs
    grouped: int = 0  # group_tabs calls
    ungrouped: int = 0  # tabs passed to ungroup_tabs
    refreshed: int = 0  # update_group calls
    failures: int = 0  # swallowed host errors


# ---------------------------------------------------------------------------
# Pure helpers
# ---------------------------------------------------------------------------


def hash_to_index(text: str) -> int:
    """31-multiplier string hash, wrapped to 32 bits."""
    h = 0
    for ch in text:
        h = (h * 31 + ord(ch)) & 0xFFFFFFFF
    return h


def pick_group_color(key: str) -> str:
    """Deterministic palette color for a grouping key."""
    return GROUP_COLORS[hash_to_index(key) % len(GROUP_COLORS)]


def is_eligible(tab: Tab) -> bool:
    """Pinned tabs and browser-internal pages are never moved or grouped."""
    return not tab.pinned and is_renamable_url(tab.url)


def tab_key(tab: Tab) -> str:
    return grouping_key(host_of(tab.url))


def desired_partition(tabs: Iterable[Tab]) -> dict[str, list[Tab]]:
    """Eligible tabs by grouping key, keys in first-seen order."""
    by_key: dict[str, list[Tab]] = {}
    for tab in tabs:
        if is_eligible(tab):
            by_key.setdefault(tab_key(tab), []).append(tab)
    return by_key


def assess_convergence(
    desired: dict[str, list[Tab]],
    groups: Iterable[TabGroup],
    min_tabs: int,
) -> ConvergenceState:
    """Compare live group membership and titles against *desired*."""
    group_by_id = {g.id: g for g in groups}
    for key, tabs in desired.items():
        if len(tabs) < min_tabs:
            if any(t.grouped for t in tabs):
                return ConvergenceState.REBUILD
            continue
        first_gid = tabs[0].group_id
        if first_gid == TAB_GROUP_ID_NONE or any(t.group_id != first_gid for t in tabs):
            return ConvergenceState.REBUILD
        grp = group_by_id.get(first_gid)
        if grp is None or grp.title != domain_label(key):
            return ConvergenceState.REBUILD
    return ConvergenceState.STABLE


def anchor_order(tabs: Sequence[Tab]) -> list[Tab]:
    """Order tabs so each domain is contiguous at its leftmost tab's position.

    Existing clusters stay where they are; newcomers are pulled toward
    their cluster instead of the whole cluster jumping.
    """
    anchors: dict[str, int] = {}
    keyed = [(tab_key(t), t) for t in tabs]
    for key, tab in keyed:
        anchors[key] = min(anchors.get(key, tab.index), tab.index)
    keyed.sort(key=lambda kt: (anchors[kt[0]], kt[1].index))
    return [t for _, t in keyed]


def already_arranged(all_tabs: Sequence[Tab], ordered: Sequence[Tab]) -> bool:
    """True when *ordered* already sits contiguously right after the pinned tabs."""
    pinned = sum(1 for t in all_tabs if t.pinned)
    return all(t.index == pinned + i for i, t in enumerate(ordered))


# ---------------------------------------------------------------------------
# Planner
# ---------------------------------------------------------------------------


class ConvergencePlanner:
    """Runs the arrange/group step against a ``BrowserHost`` under the scheduler's guard."""

    def __init__(self, host: BrowserHost, scheduler: RecomputeScheduler) -> None:
        self._host = host
        self._scheduler = scheduler
        self._failures = 0

    async def _attempt(self, operation: str, call: Awaitable) -> object | None:
        """Await a host call; on failure log, count, and return None."""
        try:
            return await call
        except HostApiError as exc:
            self._failures += 1
            logger.debug("Host %s failed (next pass reconciles): %s", operation, exc)
            return None

    # -- Domain-arrangement mode --

    async def arrange_and_group(self, window_id: int, settings: Settings) -> PlanOutcome | None:
        """Reorder by domain and maintain one real group per domain.

        Returns None when there is nothing to do or another convergence step
        holds the guard.
        """
        if not settings.auto_arrange and not settings.auto_group:
            return None
        async with self._scheduler.mutation() as acquired:
            if not acquired:
                logger.debug("Arrange skipped: mutation already in progress")
                return None
            self._failures = 0
            return await self._arrange_and_group(window_id, settings)

    async def _arrange_and_group(self, window_id: int, settings: Settings) -> PlanOutcome:
        all_tabs = await self._host.query_tabs(window_id=window_id)
        pinned_count = sum(1 for t in all_tabs if t.pinned)
        normal = [t for t in all_tabs if is_eligible(t)]
        desired = desired_partition(normal)

        if settings.auto_group:
            groups = await self._host.query_groups(window_id=window_id)
            if assess_convergence(desired, groups, settings.group_min_tabs) is ConvergenceState.STABLE:
                refreshed = await self._refresh_metadata(desired, groups, settings.group_min_tabs)
                logger.debug("Window %d stable (%d group(s) refreshed)", window_id, refreshed)
                return PlanOutcome(ConvergenceState.STABLE, refreshed=refreshed, failures=self._failures)

        ungrouped = 0
        if settings.auto_group and settings.ungroup_before_grouping:
            ids = [t.id for t in normal if t.grouped]
            if ids:
                await self._attempt("ungroup_tabs", self._host.ungroup_tabs(ids))
                ungrouped = len(ids)

        moved = 0
        ordered = anchor_order(normal)
        if settings.auto_arrange and ordered and not already_arranged(all_tabs, ordered):
            await self._attempt("move_tabs", self._host.move_tabs([t.id for t in ordered], pinned_count))
            moved = len(ordered)

        if not settings.auto_group:
            state = ConvergenceState.REBUILD if moved else ConvergenceState.STABLE
            return PlanOutcome(state, moved=moved, failures=self._failures)

        # Re-read: moves and ungroups changed indices and memberships.
        after = await self._host.query_tabs(window_id=window_id)
        after_normal = sorted((t for t in after if is_eligible(t)), key=lambda t: t.index)
        by_key = desired_partition(after_normal)

        grouped = refreshed = 0
        claimed: set[int] = set()
        stray: list[int] = []
        for key, tabs in by_key.items():
            if len(tabs) < settings.group_min_tabs:
                stray.extend(t.id for t in tabs if t.grouped)
                continue
            reuse = next((t.group_id for t in tabs if t.grouped and t.group_id not in claimed), None)
            gid = await self._attempt(
                "group_tabs",
                self._host.group_tabs([t.id for t in tabs], group_id=reuse),
            )
            if gid is None:
                continue
            grouped += 1
            claimed.add(gid)
            await self._attempt(
                "update_group",
                self._host.update_group(gid, title=domain_label(key), color=pick_group_color(key)),
            )
            refreshed += 1

        # Below-threshold domains left in groups would keep the window unstable forever.
        if stray:
            await self._attempt("ungroup_tabs", self._host.ungroup_tabs(stray))
            ungrouped += len(stray)

        outcome = PlanOutcome(
            ConvergenceState.REBUILD,
            moved=moved,
            grouped=grouped,
            ungrouped=ungrouped,
            refreshed=refreshed,
            failures=self._failures,
        )
        logger.info(
            "Window %d rebuilt: %d tab(s) moved, %d group(s), %d tab(s) ungrouped",
            window_id,
            moved,
            grouped,
            ungrouped,
        )
        return outcome

    async def _refresh_metadata(
        self,
        desired: dict[str, list[Tab]],
        groups: Iterable[TabGroup],
        min_tabs: int,
    ) -> int:
        """Re-apply title/color on qualifying groups whose metadata drifted."""
        group_by_id = {g.id: g for g in groups}
        refreshed = 0
        for key, tabs in desired.items():
            if len(tabs) < min_tabs or not tabs[0].grouped:
                continue
            title, color = domain_label(key), pick_group_color(key)
            grp = group_by_id.get(tabs[0].group_id)
            if grp is not None and grp.title == title and grp.color == color:
                continue
            await self._attempt("update_group", self._host.update_group(tabs[0].group_id, title=title, color=color))
            refreshed += 1
        return refreshed

    # -- Native-group mode --

    async def group_similar(self, window_id: int, settings: Settings) -> PlanOutcome | None:
        """Group same-domain tabs in place, without reordering or renaming groups."""
        if not settings.auto_group:
            return None
        async with self._scheduler.mutation() as acquired:
            if not acquired:
                logger.debug("Grouping skipped: mutation already in progress")
                return None
            self._failures = 0

            all_tabs = await self._host.query_tabs(window_id=window_id)
            grouped = ungrouped = 0
            for _key, tabs in desired_partition(all_tabs).items():
                if len(tabs) < settings.group_min_tabs:
                    ids = [t.id for t in tabs if t.grouped]
                    if ids:
                        await self._attempt("ungroup_tabs", self._host.ungroup_tabs(ids))
                        ungrouped += len(ids)
                    continue

                first_gid = tabs[0].group_id
                if first_gid != TAB_GROUP_ID_NONE and all(t.group_id == first_gid for t in tabs):
                    continue

                existing = next((t.group_id for t in tabs if t.grouped), None)
                if await self._attempt(
                    "group_tabs", self._host.group_tabs([t.id for t in tabs], group_id=existing)
                ) is not None:
                    grouped += 1

            state = ConvergenceState.REBUILD if grouped or ungrouped else ConvergenceState.STABLE
            return PlanOutcome(state, grouped=grouped, ungrouped=ungrouped, failures=self._failures)
