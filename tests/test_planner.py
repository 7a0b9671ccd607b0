# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Tests for the convergence planner (Stable vs Rebuild)."""

from __future__ import annotations

import pytest

from tabrenamer import TAB_GROUP_ID_NONE, TabGroup
from tabrenamer.config import Settings
from tabrenamer.planner import (
    GROUP_COLORS,
    ConvergencePlanner,
    ConvergenceState,
    already_arranged,
    anchor_order,
    assess_convergence,
    desired_partition,
    hash_to_index,
    pick_group_color,
)
from tabrenamer.scheduler import RecomputeScheduler
from tests._helpers import IMMEDIATE, tab


@pytest.fixture
def scheduler() -> RecomputeScheduler:
    return RecomputeScheduler(IMMEDIATE)


@pytest.fixture
def planner(browser, scheduler) -> ConvergencePlanner:
    return ConvergencePlanner(browser, scheduler)


def _other_color(key: str) -> str:
    return next(c for c in GROUP_COLORS if c != pick_group_color(key))


async def _order(browser) -> list[int]:
    return [t.id for t in await browser.query_tabs(window_id=1)]


# ---------------------------------------------------------------------------
# Pure helpers
# ---------------------------------------------------------------------------


class TestHelpers:
    def test_hash(self):
        assert hash_to_index("") == 0
        assert hash_to_index("a") == 97
        assert hash_to_index("ab") == 97 * 31 + 98

    def test_hash_wraps_to_32_bits(self):
        assert 0 <= hash_to_index("x" * 200) <= 0xFFFFFFFF

    def test_color_deterministic(self):
        assert pick_group_color("github.com") == pick_group_color("github.com")
        assert pick_group_color("github.com") in GROUP_COLORS

    def test_partition_skips_pinned_and_internal(self):
        tabs = [
            tab(1, "https://a.com/x", pinned=True),
            tab(2, "chrome://settings"),
            tab(3, "https://www.a.com/y"),
            tab(4, "https://b.com/"),
            tab(5, "https://sub.a.com/"),
        ]
        partition = desired_partition(tabs)
        assert list(partition) == ["a.com", "b.com"]
        assert [t.id for t in partition["a.com"]] == [3, 5]

    def test_anchor_order_keeps_cluster_position(self):
        tabs = [
            tab(1, "https://b.com/", index=1),
            tab(2, "https://a.com/", index=2),
            tab(3, "https://b.com/2", index=3),
            tab(4, "https://a.com/2", index=4),
        ]
        assert [t.id for t in anchor_order(tabs)] == [1, 3, 2, 4]

    def test_already_arranged(self):
        pinned = tab(9, "https://p.com/", index=0, pinned=True)
        a = tab(1, "https://a.com/", index=1)
        b = tab(2, "https://b.com/", index=2)
        assert already_arranged([pinned, a, b], [a, b]) is True
        assert already_arranged([pinned, a, b], [b, a]) is False


class TestAssessConvergence:
    def test_stable(self):
        tabs = [tab(1, "https://a.com/", group_id=5), tab(2, "https://a.com/2", group_id=5)]
        groups = [TabGroup(5, 1, title="A")]
        assert assess_convergence({"a.com": tabs}, groups, 2) is ConvergenceState.STABLE

    def test_ungrouped_qualifying_domain(self):
        tabs = [tab(1, "https://a.com/"), tab(2, "https://a.com/2")]
        assert assess_convergence({"a.com": tabs}, [], 2) is ConvergenceState.REBUILD

    def test_split_across_groups(self):
        tabs = [tab(1, "https://a.com/", group_id=5), tab(2, "https://a.com/2", group_id=6)]
        groups = [TabGroup(5, 1, title="A"), TabGroup(6, 1, title="A")]
        assert assess_convergence({"a.com": tabs}, groups, 2) is ConvergenceState.REBUILD

    def test_wrong_title(self):
        tabs = [tab(1, "https://a.com/", group_id=5), tab(2, "https://a.com/2", group_id=5)]
        groups = [TabGroup(5, 1, title="Work")]
        assert assess_convergence({"a.com": tabs}, groups, 2) is ConvergenceState.REBUILD

    def test_grouped_below_threshold(self):
        tabs = [tab(1, "https://a.com/", group_id=5)]
        groups = [TabGroup(5, 1, title="A")]
        assert assess_convergence({"a.com": tabs}, groups, 2) is ConvergenceState.REBUILD

    def test_ungrouped_below_threshold_is_fine(self):
        assert assess_convergence({"a.com": [tab(1, "https://a.com/")]}, [], 2) is ConvergenceState.STABLE


# ---------------------------------------------------------------------------
# Domain-arrangement mode
# ---------------------------------------------------------------------------


class TestArrangeAndGroup:
    async def test_groups_without_moving_when_arranged(self, github_window, planner):
        outcome = await planner.arrange_and_group(1, Settings())

        assert outcome.state is ConvergenceState.REBUILD
        assert (outcome.moved, outcome.grouped, outcome.refreshed) == (0, 1, 1)
        assert [c.operation for c in github_window.mutation_calls()] == ["group_tabs"]
        grp = github_window.group(100)
        assert grp.title == "Github"
        assert grp.color == pick_group_color("github.com")
        assert github_window.tab(1).group_id == TAB_GROUP_ID_NONE

    async def test_second_pass_is_stable(self, github_window, planner):
        await planner.arrange_and_group(1, Settings())
        github_window.calls.clear()

        outcome = await planner.arrange_and_group(1, Settings())

        assert outcome.state is ConvergenceState.STABLE
        assert outcome.refreshed == 0
        assert github_window.calls == []

    async def test_interleaved_domains_moved_and_grouped(self, browser, planner):
        browser.add_tab("https://a.com/1")
        browser.add_tab("https://b.com/1")
        browser.add_tab("https://a.com/2")

        outcome = await planner.arrange_and_group(1, Settings())

        assert outcome.moved == 3
        assert outcome.grouped == 1
        assert await _order(browser) == [1, 3, 2]
        assert browser.tab(1).group_id == browser.tab(3).group_id != TAB_GROUP_ID_NONE
        assert browser.tab(2).group_id == TAB_GROUP_ID_NONE

    async def test_ungroups_before_grouping(self, browser, planner):
        browser.add_group(50, title="Work")
        browser.add_tab("https://a.com/1", group_id=50)
        browser.add_tab("https://a.com/2", group_id=50)

        outcome = await planner.arrange_and_group(1, Settings())

        assert outcome.ungrouped == 2
        assert outcome.grouped == 1
        assert browser.group(browser.tab(1).group_id).title == "A"

    async def test_reuses_existing_group(self, browser, planner):
        browser.add_group(50, title="old")
        browser.add_tab("https://a.com/1", group_id=50)
        browser.add_tab("https://a.com/2")

        outcome = await planner.arrange_and_group(1, Settings(ungroup_before_grouping=False))

        assert outcome.grouped == 1
        assert browser.tab(2).group_id == 50
        assert browser.group(50).title == "A"

    async def test_stray_below_threshold_ungrouped(self, browser, planner):
        browser.add_group(50, title="A")
        browser.add_tab("https://a.com/1", group_id=50)
        browser.add_tab("https://b.com/1")
        browser.add_tab("https://b.com/2")

        outcome = await planner.arrange_and_group(1, Settings(ungroup_before_grouping=False))

        assert outcome.ungrouped == 1
        assert browser.tab(1).group_id == TAB_GROUP_ID_NONE
        with pytest.raises(KeyError):
            browser.group(50)
        second = await planner.arrange_and_group(1, Settings(ungroup_before_grouping=False))
        assert second.state is ConvergenceState.STABLE

    async def test_min_tabs_respected(self, github_window, planner):
        outcome = await planner.arrange_and_group(1, Settings(group_min_tabs=4))
        assert outcome.grouped == 0
        assert await github_window.query_groups() == []

    async def test_stable_refreshes_drifted_color(self, browser, planner):
        browser.add_group(100, title="A", color=_other_color("a.com"))
        browser.add_tab("https://a.com/1", group_id=100)
        browser.add_tab("https://a.com/2", group_id=100)

        outcome = await planner.arrange_and_group(1, Settings())

        assert outcome.state is ConvergenceState.STABLE
        assert outcome.refreshed == 1
        assert browser.group(100).color == pick_group_color("a.com")
        assert browser.mutation_calls() == []

    async def test_arrange_only(self, browser, planner):
        browser.add_tab("https://a.com/1")
        browser.add_tab("https://b.com/1")
        browser.add_tab("https://a.com/2")
        settings = Settings(auto_group=False)

        first = await planner.arrange_and_group(1, settings)
        second = await planner.arrange_and_group(1, settings)

        assert (first.state, first.moved) == (ConvergenceState.REBUILD, 3)
        assert (second.state, second.moved) == (ConvergenceState.STABLE, 0)
        assert await browser.query_groups() == []

    async def test_nothing_enabled(self, github_window, planner):
        assert await planner.arrange_and_group(1, Settings(auto_arrange=False, auto_group=False)) is None
        assert github_window.calls == []

    async def test_host_failures_swallowed(self, github_window, planner):
        github_window.fail_operations.add("group_tabs")

        outcome = await planner.arrange_and_group(1, Settings())

        assert outcome.state is ConvergenceState.REBUILD
        assert outcome.grouped == 0
        assert outcome.failures == 1

    async def test_guard_held_skips(self, github_window, planner, scheduler):
        async with scheduler.mutation() as acquired:
            assert acquired is True
            assert await planner.arrange_and_group(1, Settings()) is None
        assert github_window.mutation_calls() == []


# ---------------------------------------------------------------------------
# Native-group mode
# ---------------------------------------------------------------------------


class TestGroupSimilar:
    async def test_groups_in_place(self, browser, planner):
        browser.add_tab("https://a.com/1")
        browser.add_tab("https://b.com/1")
        browser.add_tab("https://a.com/2")

        outcome = await planner.group_similar(1, Settings())

        assert outcome.state is ConvergenceState.REBUILD
        assert outcome.grouped == 1
        assert "move_tabs" not in [c.operation for c in browser.calls]
        assert "update_group" not in [c.operation for c in browser.calls]
        assert browser.tab(1).group_id == browser.tab(3).group_id != TAB_GROUP_ID_NONE

    async def test_second_call_stable(self, github_window, planner):
        await planner.group_similar(1, Settings())
        github_window.calls.clear()
        outcome = await planner.group_similar(1, Settings())
        assert outcome.state is ConvergenceState.STABLE
        assert github_window.calls == []

    async def test_joins_existing_group(self, browser, planner):
        browser.add_group(60, title="Mine")
        browser.add_tab("https://a.com/1", group_id=60)
        browser.add_tab("https://a.com/2")

        await planner.group_similar(1, Settings())

        assert browser.tab(2).group_id == 60
        assert browser.group(60).title == "Mine"

    async def test_ungroups_lone_tab(self, browser, planner):
        browser.add_group(60)
        browser.add_tab("https://a.com/1", group_id=60)
        outcome = await planner.group_similar(1, Settings())
        assert outcome.ungrouped == 1

    async def test_disabled(self, browser, planner):
        assert await planner.group_similar(1, Settings(auto_group=False)) is None
