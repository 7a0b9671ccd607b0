# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""User settings and scheduler timings.

``Settings`` is read once per recompute pass and never mutated by the
engine.  Stored settings use the browser-storage camelCase keys; unknown
keys are ignored and missing keys take the documented defaults.
"""

from __future__ import annotations

import dataclasses
import os
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

from .errors import SettingsError


class ArrangeMode(StrEnum):
    """How tabs are clustered before labelling."""

    CHROME = "CHROME"  # reorder by domain + real tab groups, labels unique per window
    NATIVE = "NATIVE"  # group same-domain tabs in place, labels unique per group


# Older stored settings used the browser's product name for the native mode.
_MODE_ALIASES = {"DIA": ArrangeMode.NATIVE}

# stored key → dataclass field
_STORED_KEYS: dict[str, str] = {
    "enabled": "enabled",
    "browserMode": "mode",
    "mode": "mode",
    "autoArrange": "auto_arrange",
    "autoGroup": "auto_group",
    "groupMinTabs": "group_min_tabs",
    "ungroupBeforeGrouping": "ungroup_before_grouping",
    "excludedHosts": "excluded_hosts",
}

_TRUE = ("1", "true", "yes", "on")
_FALSE = ("0", "false", "no", "off")


def parse_mode(value: Any) -> ArrangeMode:
    if isinstance(value, ArrangeMode):
        return value
    text = str(value or "").strip().upper()
    if text in _MODE_ALIASES:
        return _MODE_ALIASES[text]
    try:
        return ArrangeMode(text)
    except ValueError:
        raise SettingsError(f"unknown mode {value!r}") from None


def _parse_bool(name: str, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in _TRUE:
        return True
    if text in _FALSE:
        return False
    raise SettingsError(f"{name} must be a boolean, got {value!r}")


def _parse_hosts(value: Any) -> frozenset[str]:
    if isinstance(value, str):
        value = value.split(",")
    if not isinstance(value, Iterable):
        raise SettingsError(f"excluded_hosts must be a list of hosts, got {value!r}")
    return frozenset(h.strip().lower() for h in value if isinstance(h, str) and h.strip())


@dataclass(frozen=True, slots=True)
class Settings:
    """Immutable snapshot of the user's configuration."""

    enabled: bool = True
    mode: ArrangeMode = ArrangeMode.CHROME
    auto_arrange: bool = True
    auto_group: bool = True
    group_min_tabs: int = 2
    ungroup_before_grouping: bool = True
    excluded_hosts: frozenset[str] = field(default_factory=frozenset)

    def __post_init__(self) -> None:
        if not isinstance(self.mode, ArrangeMode):
            object.__setattr__(self, "mode", parse_mode(self.mode))
        if not isinstance(self.excluded_hosts, frozenset):
            object.__setattr__(self, "excluded_hosts", _parse_hosts(self.excluded_hosts))
        if isinstance(self.group_min_tabs, bool) or not isinstance(self.group_min_tabs, int):
            raise SettingsError(f"group_min_tabs must be an int, got {self.group_min_tabs!r}")
        if self.group_min_tabs < 1:
            raise SettingsError(f"group_min_tabs must be >= 1, got {self.group_min_tabs}")

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> Settings:
        """Build settings from a stored mapping (camelCase or field names)."""
        kwargs: dict[str, Any] = {}
        field_names = {f.name for f in dataclasses.fields(cls)}
        for key, value in data.items():
            name = _STORED_KEYS.get(key, key)
            if name not in field_names or value is None:
                continue
            kwargs[name] = value
        for name in ("enabled", "auto_arrange", "auto_group", "ungroup_before_grouping"):
            if name in kwargs:
                kwargs[name] = _parse_bool(name, kwargs[name])
        if "group_min_tabs" in kwargs:
            try:
                kwargs["group_min_tabs"] = int(kwargs["group_min_tabs"])
            except (TypeError, ValueError):
                raise SettingsError(f"group_min_tabs must be an int, got {kwargs['group_min_tabs']!r}") from None
        return cls(**kwargs)

    def to_mapping(self) -> dict[str, Any]:
        """Serialize to the stored camelCase form."""
        return {
            "enabled": self.enabled,
            "browserMode": self.mode.value,
            "autoArrange": self.auto_arrange,
            "autoGroup": self.auto_group,
            "groupMinTabs": self.group_min_tabs,
            "ungroupBeforeGrouping": self.ungroup_before_grouping,
            "excludedHosts": sorted(self.excluded_hosts),
        }

    def with_env_overrides(self, environ: Mapping[str, str] | None = None) -> Settings:
        """Apply ``TABRENAMER_*`` environment overrides (used by the CLI)."""
        env = os.environ if environ is None else environ
        changes: dict[str, Any] = {}
        for var, name in (
            ("TABRENAMER_ENABLED", "enabled"),
            ("TABRENAMER_AUTO_ARRANGE", "auto_arrange"),
            ("TABRENAMER_AUTO_GROUP", "auto_group"),
            ("TABRENAMER_UNGROUP_BEFORE_GROUPING", "ungroup_before_grouping"),
        ):
            raw = env.get(var, "").strip()
            if raw:
                changes[name] = _parse_bool(name, raw)

        env_mode = env.get("TABRENAMER_MODE", "").strip()
        if env_mode:
            changes["mode"] = parse_mode(env_mode)

        env_min = env.get("TABRENAMER_GROUP_MIN_TABS", "").strip()
        if env_min:
            try:
                changes["group_min_tabs"] = int(env_min)
            except ValueError:
                raise SettingsError(f"TABRENAMER_GROUP_MIN_TABS must be an int, got {env_min!r}") from None

        env_hosts = env.get("TABRENAMER_EXCLUDED_HOSTS", "").strip()
        if env_hosts:
            changes["excluded_hosts"] = _parse_hosts(env_hosts)

        return dataclasses.replace(self, **changes) if changes else self


@dataclass(frozen=True, slots=True)
class SchedulerConfig:
    """Timings for the recompute scheduler (seconds)."""

    debounce: float = 0.4  # quiet period before a burst of events becomes one pass
    mutation_cooldown: float = 0.25  # guard stays held while the browser echoes our own moves

    def __post_init__(self) -> None:
        if self.debounce < 0:
            raise ValueError(f"debounce must be >= 0, got {self.debounce}")
        if self.mutation_cooldown < 0:
            raise ValueError(f"mutation_cooldown must be >= 0, got {self.mutation_cooldown}")
