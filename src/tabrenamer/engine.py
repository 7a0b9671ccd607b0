# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Recompute orchestrator: tab events in, group changes and tab titles out.

One pass:

1. skip if disabled; defer (rerun slot) if a convergence step holds the guard
2. converge groups in the focused window (mode-dependent, see planner.py)
3. re-read tabs, drop pinned/internal/excluded ones, split into rename scopes
4. per scope and grouping key: a lone tab gets the domain label, several
   tabs get one word each, made unique and capitalized
5. send every title concurrently; failures are per tab and never abort the pass

Dependencies: everything else in the package; nothing imports this module
except cli.py.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

from . import TAB_GROUP_ID_NONE, Tab, TabGroup, TitleOp
from .config import ArrangeMode, SchedulerConfig, Settings
from .domains import domain_label, grouping_key, host_of, is_renamable_url, registrable_domain
from .errors import HostApiError, TitleChannelError
from .extractors import one_word_label
from .host import BrowserHost
from .logging_config import bind_pass, unbind_pass
from .planner import ConvergencePlanner, PlanOutcome
from .scheduler import RecomputeScheduler, SchedulerState
from .settings_store import SettingsChanges, SettingsStore
from .uniqueness import FALLBACK_LABEL, shortest_unique_one_word

logger = logging.getLogger(__name__)

WINDOW_SCOPE = "w:current"
UNGROUPED_SCOPE = "g:ungrouped"
OVERVIEW_MAX_TABS = 4  # tabs listed per group before "+N"


# ---------------------------------------------------------------------------
# Pure pass logic
# ---------------------------------------------------------------------------


def capitalize(word: str) -> str:
    return word[:1].upper() + word[1:]


def excluded_keys(excluded_hosts: Iterable[str]) -> frozenset[str]:
    """Grouping keys covered by the exclusion list (``docs.google.com`` → itself, ``a.b.co.uk`` → ``b.co.uk``)."""
    return frozenset(grouping_key(host_of(f"https://{entry}")) for entry in excluded_hosts if entry)


def scope_key_for_tab(mode: ArrangeMode, tab: Tab) -> str:
    """Native mode: labels are unique per group; domain mode: per window."""
    if mode is ArrangeMode.NATIVE:
        return f"g:{tab.group_id}" if tab.grouped else UNGROUPED_SCOPE
    return WINDOW_SCOPE


def rename_scopes(tabs: Iterable[Tab], settings: Settings) -> dict[str, list[Tab]]:
    """Tabs that get a label, split into uniqueness scopes."""
    skip = excluded_keys(settings.excluded_hosts)
    scopes: dict[str, list[Tab]] = {}
    for tab in tabs:
        if tab.pinned or not is_renamable_url(tab.url):
            continue
        host = host_of(tab.url)
        if not host or grouping_key(host) in skip:
            continue
        scopes.setdefault(scope_key_for_tab(settings.mode, tab), []).append(tab)
    return scopes


def labels_for_key(key: str, tabs: list[Tab]) -> list[TitleOp]:
    """Titles for the tabs of one grouping key within one scope."""
    ordered = sorted(tabs, key=lambda t: t.index)
    if len(ordered) == 1:
        return [TitleOp(ordered[0].id, domain_label(key))]

    reg_dom = registrable_domain(host_of(ordered[0].url)) or key
    candidates = [one_word_label(t, reg_dom, host_of(t.url)) for t in ordered]
    unique = shortest_unique_one_word(candidates)
    return [TitleOp(t.id, capitalize(word or FALLBACK_LABEL)) for t, word in zip(ordered, unique, strict=True)]


def compute_title_ops(tabs: Iterable[Tab], settings: Settings) -> list[TitleOp]:
    """All title changes one pass would send for *tabs*."""
    ops: list[TitleOp] = []
    for scope_tabs in rename_scopes(tabs, settings).values():
        by_key: dict[str, list[Tab]] = {}
        for tab in scope_tabs:
            by_key.setdefault(grouping_key(host_of(tab.url)), []).append(tab)
        for key, key_tabs in by_key.items():
            ops.extend(labels_for_key(key, key_tabs))
    return ops


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class PassResult:
    """Summary of one recompute pass."""

    pass_id: str
    window_id: int | None
    plan: PlanOutcome | None
    title_ops: tuple[TitleOp, ...]
    failed_titles: int = 0


@dataclass(frozen=True, slots=True)
class GroupSummary:
    """One group as listed by ``group_overview``."""

    group: TabGroup
    tab_titles: tuple[str, ...]
    overflow: int = 0
    active_tab_id: int | None = None


@dataclass(slots=True)
class _Stats:
    passes: int = 0
    deferred: int = 0
    titles_sent: int = 0
    titles_failed: int = 0
    restores: int = 0
    history: list[PassResult] = field(default_factory=list)


# ---------------------------------------------------------------------------
# TabRenamer
# ---------------------------------------------------------------------------


class TabRenamer:
    """Wires host, settings, scheduler and planner into event-driven passes.

    Usage::

        renamer = TabRenamer(browser, InMemorySettingsStore())
        renamer.on_tab_created(tab)      # any tab event
        await renamer.scheduler.drain()  # the debounced pass has run
    """

    def __init__(
        self,
        host: BrowserHost,
        settings_store: SettingsStore,
        *,
        scheduler: RecomputeScheduler | None = None,
        scheduler_config: SchedulerConfig | None = None,
        keep_history: int = 20,
    ) -> None:
        if keep_history < 0:
            raise ValueError(f"keep_history must be >= 0, got {keep_history}")
        self._host = host
        self._store = settings_store
        self.scheduler = scheduler or RecomputeScheduler(scheduler_config)
        self.scheduler.bind(self._recompute_pass)
        self._planner = ConvergencePlanner(host, self.scheduler)
        self._keep_history = keep_history
        self.stats = _Stats()
        settings_store.subscribe(self.on_settings_changed)

    @property
    def last_pass(self) -> PassResult | None:
        return self.stats.history[-1] if self.stats.history else None

    # -- Recompute --

    async def _recompute_pass(self) -> None:
        await self.recompute_all()

    async def recompute_all(self) -> PassResult | None:
        """Run one full pass.  Returns None when disabled or deferred."""
        if self.scheduler.mutating:
            self.scheduler.request_rerun()
            if self.scheduler.state is SchedulerState.IDLE:
                # Called outside the scheduler: nothing running would pick up the slot.
                self.scheduler.consume_rerun()
                self.scheduler.schedule()
            self.stats.deferred += 1
            logger.debug("Recompute deferred: mutation in progress")
            return None
        self.scheduler.consume_rerun()

        settings = await self._store.load()
        if not settings.enabled:
            return None

        pass_id = uuid.uuid4().hex[:12]
        bind_pass(pass_id)
        try:
            result = await self._run_pass(pass_id, settings)
        finally:
            unbind_pass()

        self.stats.passes += 1
        self.stats.history.append(result)
        history = self.stats.history
        if len(history) > self._keep_history:
            del history[: len(history) - self._keep_history]

        # The scheduler picks this up too, but direct callers rely on it here.
        if self.scheduler.consume_rerun():
            self.scheduler.schedule()
        return result

    async def _run_pass(self, pass_id: str, settings: Settings) -> PassResult:
        focused = await self._host.query_tabs(last_focused_window=True)
        window_id = focused[0].window_id if focused else None

        plan: PlanOutcome | None = None
        if window_id is not None:
            if settings.mode is ArrangeMode.CHROME:
                plan = await self._planner.arrange_and_group(window_id, settings)
            else:
                plan = await self._planner.group_similar(window_id, settings)

        tabs = await self._host.query_tabs(last_focused_window=True)
        ops = compute_title_ops(tabs, settings)
        failed = await self.apply_titles(ops)

        logger.info(
            "Pass complete: window=%s plan=%s titles=%d failed=%d",
            window_id,
            plan.state if plan else "skipped",
            len(ops),
            failed,
        )
        return PassResult(pass_id, window_id, plan, tuple(ops), failed)

    # -- Title channel --

    async def _apply_title(self, op: TitleOp) -> bool:
        try:
            await self._host.apply_title(op.tab_id, op.title)
        except (TitleChannelError, HostApiError) as exc:
            logger.debug("Title for tab %d not applied: %s", op.tab_id, exc)
            return False
        return True

    async def apply_titles(self, ops: Iterable[TitleOp]) -> int:
        """Send every title op concurrently.  Returns the number that failed."""
        results = await asyncio.gather(*(self._apply_title(op) for op in ops))
        failed = sum(1 for ok in results if not ok)
        self.stats.titles_sent += len(results) - failed
        self.stats.titles_failed += failed
        return failed

    async def _restore_title(self, tab_id: int) -> bool:
        try:
            await self._host.restore_title(tab_id)
        except (TitleChannelError, HostApiError) as exc:
            logger.debug("Title for tab %d not restored: %s", tab_id, exc)
            return False
        return True

    async def restore_all(self) -> int:
        """Ask every tab in every window to show its own title again.  Returns tabs restored."""
        tabs = await self._host.query_tabs()
        results = await asyncio.gather(*(self._restore_title(t.id) for t in tabs))
        restored = sum(1 for ok in results if ok)
        self.stats.restores += 1
        logger.info("Restored original titles on %d/%d tab(s)", restored, len(tabs))
        return restored

    # -- Events --

    def start(self) -> None:
        """Initial pass after startup or install."""
        self.scheduler.schedule()

    def on_installed(self) -> None:
        self.scheduler.schedule()

    def on_tab_created(self, *_args: Any) -> None:
        self.scheduler.schedule()

    def on_tab_removed(self, *_args: Any) -> None:
        self.scheduler.schedule()

    def on_tab_moved(self, *_args: Any) -> None:
        self.scheduler.schedule()

    def on_tab_activated(self, *_args: Any) -> None:
        self.scheduler.schedule()

    def on_group_event(self, *_args: Any) -> None:
        self.scheduler.schedule()

    def on_page_title_changed(self, *_args: Any) -> None:
        self.scheduler.schedule()

    def on_tab_updated(self, tab_id: int, change: Mapping[str, Any]) -> None:
        """Only title changes and finished loads can change a label."""
        if change.get("title") is not None or change.get("status") == "complete":
            self.scheduler.schedule()

    async def on_settings_changed(self, changes: SettingsChanges) -> None:
        if "enabled" in changes:
            _old, enabled = changes["enabled"]
            if not enabled:
                await self.restore_all()
                return
        self.scheduler.schedule()

    # -- Group housekeeping --

    async def group_overview(self, window_id: int | None = None) -> list[GroupSummary]:
        """Groups of *window_id* (default: focused window) with their first tabs' titles."""
        if window_id is None:
            focused = await self._host.query_tabs(last_focused_window=True)
            if not focused:
                return []
            window_id = focused[0].window_id
        groups = sorted(await self._host.query_groups(window_id=window_id), key=lambda g: g.id)
        tabs = await self._host.query_tabs(window_id=window_id)
        active = next((t.id for t in tabs if t.active), None)

        summaries: list[GroupSummary] = []
        for grp in groups:
            members = sorted((t for t in tabs if t.group_id == grp.id), key=lambda t: t.index)
            shown = members[:OVERVIEW_MAX_TABS]
            summaries.append(
                GroupSummary(
                    group=grp,
                    tab_titles=tuple((t.title or "Tab").strip() for t in shown),
                    overflow=len(members) - len(shown),
                    active_tab_id=active if any(t.id == active for t in members) else None,
                )
            )
        return summaries

    async def toggle_collapse(self, group: TabGroup) -> bool:
        """Flip a group's collapsed state.  Returns False if the host refused."""
        try:
            await self._host.update_group(group.id, collapsed=not group.collapsed)
        except HostApiError as exc:
            logger.debug("Collapse toggle failed for group %d: %s", group.id, exc)
            return False
        return True

    async def close_group(self, window_id: int, group_id: int) -> int:
        """Close every tab of a group.  Returns the number of tabs closed."""
        if group_id == TAB_GROUP_ID_NONE:
            return 0
        tabs = await self._host.query_tabs(window_id=window_id, group_id=group_id)
        ids = [t.id for t in tabs]
        if not ids:
            return 0
        try:
            await self._host.close_tabs(ids)
        except HostApiError as exc:
            logger.warning("Closing group %d failed: %s", group_id, exc)
            return 0
        return len(ids)
