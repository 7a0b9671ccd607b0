# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Tab Renamer CLI: inspect what a recompute pass does to a window snapshot.

Usage:
    tabrenamer labels SNAPSHOT.json
    tabrenamer simulate SNAPSHOT.json [--passes N]
    tabrenamer groups SNAPSHOT.json
    tabrenamer [--json] [-v] ...

Settings come from the snapshot's ``settings`` object, then
``TABRENAMER_*`` environment variables override them.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from typing import Any

from . import logging_config
from .config import SchedulerConfig
from .engine import TabRenamer, compute_title_ops
from .errors import TabRenamerError
from .host import MUTATING_OPERATIONS
from .settings_store import InMemorySettingsStore
from .snapshot import WindowSnapshot, dump_state, load_snapshot

logger = logging.getLogger(__name__)


def _require_cli_deps() -> None:
    """Check that CLI optional dependencies are installed."""
    try:
        from tabulate import tabulate  # noqa: F401
    except ImportError as e:
        print(
            f"Missing CLI dependency: {e.name}\nInstall with: pip install tabrenamer[cli]",
            file=sys.stderr,
        )
        sys.exit(1)


def _print_json(payload: Any) -> None:
    print(json.dumps(payload, ensure_ascii=False, indent=2))


def _load(args: argparse.Namespace) -> WindowSnapshot:
    snap = load_snapshot(args.snapshot)
    settings = snap.settings.with_env_overrides()
    return WindowSnapshot(
        tabs=snap.tabs,
        groups=snap.groups,
        settings=settings,
        focused_window_id=snap.focused_window_id,
    )


def cmd_labels(args: argparse.Namespace) -> None:
    """Print the titles a pass would apply, without touching groups."""
    snap = _load(args)
    focused = [t for t in snap.tabs if t.window_id == snap.focused_window_id]
    ops = compute_title_ops(focused, snap.settings) if snap.settings.enabled else []
    by_id = {t.id: t for t in focused}
    rows = [{"tabId": op.tab_id, "title": op.title, "was": by_id[op.tab_id].title} for op in ops]
    if args.json:
        _print_json(rows)
        return

    _require_cli_deps()
    from tabulate import tabulate

    if not rows:
        print("(no titles)")
        return
    table = [[r["tabId"], r["title"], r["was"]] for r in rows]
    print(tabulate(table, headers=["Tab", "Label", "Page title"], tablefmt="simple"))


async def _simulate(snap: WindowSnapshot, passes: int) -> dict[str, Any]:
    browser = snap.to_browser()
    store = InMemorySettingsStore(snap.settings)
    renamer = TabRenamer(browser, store, scheduler_config=SchedulerConfig(debounce=0.0, mutation_cooldown=0.0))
    results = []
    for _ in range(passes):
        result = await renamer.recompute_all()
        results.append(
            {
                "plan": result.plan.state.value if result and result.plan else None,
                "titles": len(result.title_ops) if result else 0,
                "failedTitles": result.failed_titles if result else 0,
            }
        )
    await renamer.scheduler.shutdown()
    state = dump_state(await browser.query_tabs(), await browser.query_groups())
    state["passes"] = results
    state["calls"] = [{"operation": c.operation, "args": list(c.args)} for c in browser.calls]
    return state


def cmd_simulate(args: argparse.Namespace) -> None:
    """Run full passes against an in-memory browser and print the result."""
    if args.passes < 1:
        print("Error: --passes must be >= 1.", file=sys.stderr)
        sys.exit(2)
    state = asyncio.run(_simulate(_load(args), args.passes))
    if args.json:
        _print_json(state)
        return

    _require_cli_deps()
    from tabulate import tabulate

    for i, p in enumerate(state["passes"], 1):
        print(f"pass {i}: plan={p['plan']} titles={p['titles']} failed={p['failedTitles']}")
    print()
    groups = {g["id"]: g for g in state["groups"]}
    rows = []
    for t in state["tabs"]:
        grp = groups.get(t["groupId"])
        where = f"[{grp['title'] or grp['id']}:{grp['color']}]" if grp else ("[pinned]" if t["pinned"] else "")
        rows.append([t["windowId"], t["index"], t["title"], where])
    print(tabulate(rows, headers=["Win", "Idx", "Title", "Group"], tablefmt="simple"))
    mutations = [c for c in state["calls"] if c["operation"] in MUTATING_OPERATIONS]
    print(f"\n{len(state['calls'])} host call(s), {len(mutations)} tab mutation(s)")


async def _overview(snap: WindowSnapshot) -> list[dict[str, Any]]:
    renamer = TabRenamer(snap.to_browser(), InMemorySettingsStore(snap.settings))
    summaries = await renamer.group_overview(snap.focused_window_id)
    return [
        {
            "id": s.group.id,
            "title": s.group.title or "Group",
            "color": s.group.color,
            "collapsed": s.group.collapsed,
            "tabs": list(s.tab_titles),
            "overflow": s.overflow,
        }
        for s in summaries
    ]


def cmd_groups(args: argparse.Namespace) -> None:
    """List the focused window's groups as they stand in the snapshot."""
    groups = asyncio.run(_overview(_load(args)))
    if args.json:
        _print_json(groups)
        return

    lines = []
    for g in groups:
        more = f" +{g['overflow']}" if g["overflow"] else ""
        state = " (collapsed)" if g["collapsed"] else ""
        lines.append(f"{g['title']} [{g['color']}]{state}: {', '.join(g['tabs'])}{more}")
    print("\n".join(lines) or "No groups in this window.")


def main(argv: list[str] | None = None) -> None:
    """CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Tab Renamer: one-word tab labels and domain groups",
        prog="tabrenamer",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    parser.add_argument("--json", action="store_true", help="JSON output and JSON log lines")
    subparsers = parser.add_subparsers(dest="command", required=True)

    p_labels = subparsers.add_parser("labels", help="Show the titles a pass would apply")
    p_labels.add_argument("snapshot", metavar="SNAPSHOT", help="Window snapshot JSON file")

    p_simulate = subparsers.add_parser(
        "simulate",
        help="Run passes against an in-memory browser",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""\
examples:
  %(prog)s window.json              One pass: regroup + relabel
  %(prog)s window.json --passes 2   Second pass should make no tab mutations""",
    )
    p_simulate.add_argument("snapshot", metavar="SNAPSHOT", help="Window snapshot JSON file")
    p_simulate.add_argument("--passes", type=int, default=1, help="Number of passes (default: 1)")

    p_groups = subparsers.add_parser("groups", help="List groups of the focused window")
    p_groups.add_argument("snapshot", metavar="SNAPSHOT", help="Window snapshot JSON file")

    commands = {"labels": cmd_labels, "simulate": cmd_simulate, "groups": cmd_groups}
    args = parser.parse_args(argv)

    logging_config.configure(json_output=args.json, level="DEBUG" if args.verbose else "WARNING")

    try:
        commands[args.command](args)
    except KeyboardInterrupt:
        print("\nInterrupted.", file=sys.stderr)
        sys.exit(130)
    except TabRenamerError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
