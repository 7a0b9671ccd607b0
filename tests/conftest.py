# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Shared test configuration and fixtures."""

try:
    import tabrenamer  # noqa: F401
except ImportError:
    raise ImportError("tabrenamer is not installed. Run: pip install -e '.[dev]'") from None

import os

import pytest

from tabrenamer.config import Settings
from tabrenamer.engine import TabRenamer
from tabrenamer.host import InMemoryBrowser
from tabrenamer.settings_store import InMemorySettingsStore
from tests._helpers import IMMEDIATE


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    """Settings env overrides must come from the test, not the developer's shell."""
    for var in list(os.environ):
        if var.startswith("TABRENAMER_"):
            monkeypatch.delenv(var)


@pytest.fixture
def browser() -> InMemoryBrowser:
    return InMemoryBrowser(focused_window_id=1)


@pytest.fixture
def github_window(browser: InMemoryBrowser) -> InMemoryBrowser:
    """Pinned tab + three code-host tabs, two of them on the same repo."""
    browser.add_tab("https://calendar.example.com/", "Calendar", pinned=True)
    browser.add_tab("https://github.com/org/repoA", "org/repoA: Service A")
    browser.add_tab("https://github.com/org/repoB/pulls", "Pull requests · org/repoB")
    browser.add_tab("https://github.com/org/repoB/issues/7", "Flaky test · Issue #7 · org/repoB")
    return browser


@pytest.fixture
def store() -> InMemorySettingsStore:
    return InMemorySettingsStore(Settings())


@pytest.fixture
async def renamer(browser: InMemoryBrowser, store: InMemorySettingsStore):
    r = TabRenamer(browser, store, scheduler_config=IMMEDIATE)
    yield r
    await r.scheduler.shutdown()
