# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Tab Renamer exception hierarchy.

All errors inherit from TabRenamerError. None of them is fatal to the
engine: host failures are caught where the call is made and the next
recompute pass reconciles whatever was left half-done.
"""

from __future__ import annotations


class TabRenamerError(Exception):
    """Base exception for all Tab Renamer errors."""


class HostApiError(TabRenamerError):
    """The browser rejected a tab/group call (tab closed, group gone, ...)."""

    def __init__(self, message: str, *, operation: str = "") -> None:
        super().__init__(message)
        self.operation = operation


class TitleChannelError(TabRenamerError):
    """A per-tab apply/restore title command could not be delivered."""

    def __init__(self, message: str, *, tab_id: int | None = None) -> None:
        super().__init__(message)
        self.tab_id = tab_id


class SettingsError(TabRenamerError, ValueError):
    """Stored settings could not be interpreted."""
