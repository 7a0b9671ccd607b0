# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""JSON window snapshots for the CLI.

Format (keys as the browser reports them; snake_case also accepted)::

    {
      "focusedWindowId": 1,
      "settings": {"browserMode": "CHROME", "groupMinTabs": 2},
      "tabs": [{"id": 1, "url": "...", "title": "...", "windowId": 1,
                "index": 0, "pinned": false, "groupId": -1, "active": true}],
      "groups": [{"id": 7, "windowId": 1, "title": "Github", "color": "blue"}]
    }
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from . import TAB_GROUP_ID_NONE, Tab, TabGroup
from .config import Settings
from .errors import SettingsError
from .host import InMemoryBrowser


class SnapshotError(SettingsError):
    """Snapshot file is missing fields or malformed."""


@dataclass(frozen=True, slots=True)
class WindowSnapshot:
    tabs: tuple[Tab, ...]
    groups: tuple[TabGroup, ...]
    settings: Settings
    focused_window_id: int = 1

    def to_browser(self) -> InMemoryBrowser:
        browser = InMemoryBrowser(focused_window_id=self.focused_window_id)
        browser.load(self.tabs, self.groups)
        return browser


def _entries(data: dict[str, Any], key: str) -> list[Any]:
    value = data.get(key) or []
    if not isinstance(value, list):
        raise SnapshotError(f"'{key}' must be a JSON array")
    return value


def _get(raw: dict[str, Any], camel: str, snake: str, default: Any = None) -> Any:
    if camel in raw:
        return raw[camel]
    return raw.get(snake, default)


def _tab(raw: dict[str, Any], position: int) -> Tab:
    if not isinstance(raw, dict):
        raise SnapshotError(f"invalid tab entry #{position}: expected an object")
    try:
        return Tab(
            id=int(raw["id"]),
            url=str(raw.get("url") or ""),
            title=str(raw.get("title") or ""),
            window_id=int(_get(raw, "windowId", "window_id", 1)),
            index=int(raw.get("index", position)),
            pinned=bool(raw.get("pinned", False)),
            group_id=int(_get(raw, "groupId", "group_id", TAB_GROUP_ID_NONE)),
            active=bool(raw.get("active", False)),
        )
    except (KeyError, TypeError, ValueError) as exc:
        raise SnapshotError(f"invalid tab entry #{position}: {exc}") from exc


def _group(raw: dict[str, Any], position: int) -> TabGroup:
    if not isinstance(raw, dict):
        raise SnapshotError(f"invalid group entry #{position}: expected an object")
    try:
        return TabGroup(
            id=int(raw["id"]),
            window_id=int(_get(raw, "windowId", "window_id", 1)),
            title=str(raw.get("title") or ""),
            color=str(raw.get("color") or "grey"),
            collapsed=bool(raw.get("collapsed", False)),
        )
    except (KeyError, TypeError, ValueError) as exc:
        raise SnapshotError(f"invalid group entry #{position}: {exc}") from exc


def parse_snapshot(data: dict[str, Any]) -> WindowSnapshot:
    if not isinstance(data, dict):
        raise SnapshotError("snapshot must be a JSON object")
    tabs = tuple(_tab(t, i) for i, t in enumerate(_entries(data, "tabs")))
    groups = tuple(_group(g, i) for i, g in enumerate(_entries(data, "groups")))
    raw_settings = data.get("settings") or {}
    if not isinstance(raw_settings, dict):
        raise SnapshotError("'settings' must be a JSON object")
    settings = Settings.from_mapping(raw_settings)
    focused = _get(data, "focusedWindowId", "focused_window_id")
    if focused is None:
        focused = tabs[0].window_id if tabs else 1
    try:
        focused_id = int(focused)
    except (TypeError, ValueError) as exc:
        raise SnapshotError(f"invalid focusedWindowId {focused!r}") from exc
    return WindowSnapshot(tabs=tabs, groups=groups, settings=settings, focused_window_id=focused_id)


def load_snapshot(path: str | Path) -> WindowSnapshot:
    try:
        data = json.loads(Path(path).read_text(encoding="utf-8"))
    except OSError as exc:
        raise SnapshotError(f"cannot read snapshot {path}: {exc}") from exc
    except json.JSONDecodeError as exc:
        raise SnapshotError(f"snapshot {path} is not valid JSON: {exc}") from exc
    return parse_snapshot(data)


def dump_state(tabs: list[Tab], groups: list[TabGroup]) -> dict[str, Any]:
    """Browser-style dict of the current tabs and groups."""
    return {
        "tabs": [
            {
                "id": t.id,
                "url": t.url,
                "title": t.title,
                "windowId": t.window_id,
                "index": t.index,
                "pinned": t.pinned,
                "groupId": t.group_id,
                "active": t.active,
            }
            for t in tabs
        ],
        "groups": [
            {"id": g.id, "windowId": g.window_id, "title": g.title, "color": g.color, "collapsed": g.collapsed}
            for g in groups
        ],
    }
