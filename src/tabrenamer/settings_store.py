# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Settings store abstraction.

Defines ``SettingsStore`` for whatever persists the user's settings (browser
sync storage in production) and ``InMemorySettingsStore`` for the CLI and
tests.  Persistence itself belongs to the host; the engine only loads a
snapshot per pass and reacts to change notifications.
"""

from __future__ import annotations

import dataclasses
import logging
from collections.abc import Awaitable, Callable
from typing import Any, Protocol, runtime_checkable

from .config import Settings

logger = logging.getLogger(__name__)

# field name → (old, new)
SettingsChanges = dict[str, tuple[Any, Any]]
SettingsListener = Callable[[SettingsChanges], Awaitable[None]]


@runtime_checkable
class SettingsStore(Protocol):
    """Interface for the settings backend."""

    async def load(self) -> Settings: ...

    async def update(self, **changes: Any) -> Settings: ...

    def subscribe(self, listener: SettingsListener) -> None: ...


class InMemorySettingsStore:
    """Settings held in memory; listeners are awaited in subscription order."""

    def __init__(self, settings: Settings | None = None) -> None:
        self._settings = settings or Settings()
        self._listeners: list[SettingsListener] = []

    async def load(self) -> Settings:
        return self._settings

    async def update(self, **changes: Any) -> Settings:
        """Replace fields and notify listeners of the ones that actually changed."""
        old = self._settings
        new = dataclasses.replace(old, **changes)
        diff: SettingsChanges = {}
        for f in dataclasses.fields(Settings):
            before, after = getattr(old, f.name), getattr(new, f.name)
            if before != after:
                diff[f.name] = (before, after)
        self._settings = new
        if diff:
            logger.info("Settings changed: %s", ", ".join(sorted(diff)))
            for listener in list(self._listeners):
                await listener(diff)
        return new

    def subscribe(self, listener: SettingsListener) -> None:
        self._listeners.append(listener)
