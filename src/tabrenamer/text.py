# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Title normalization and word tokenization.

Page titles carry noise that is useless in a one-word label: unread
counters (``(3) Inbox``), trailing site names (``Issue 12 · GitHub``,
``Docs | Stripe``, ``Home - BBC News``) and filler words.  These helpers
remove it; ``extractors`` decides which of the surviving words to use.
"""

from __future__ import annotations

import re

from .script_filter import has_non_latin_script

# ---------------------------------------------------------------------------
# Normalization
# ---------------------------------------------------------------------------

_COUNTER_PREFIX_RE = re.compile(r"^\(\d+\)\s*")
_WHITESPACE_RE = re.compile(r"\s+")

# Last segment only: the suffix must not contain its own separator.
_TRAILING_DOT_RE = re.compile(r"\s+[·•]\s+[^·•]+$")
_TRAILING_PIPE_RE = re.compile(r"\s+\|\s+[^|]+$")
_TRAILING_DASH_RE = re.compile(r"\s+[-–—]\s+[^-–—]+$")


def normalize_title(title: str | None) -> str:
    """Strip a leading ``(N)`` counter and collapse whitespace."""
    t = _COUNTER_PREFIX_RE.sub("", title or "")
    return _WHITESPACE_RE.sub(" ", t).strip()


def strip_trailing_site_part(title: str, domain_label: str = "") -> str:
    """Remove a trailing site-name segment, then a trailing *domain_label*.

    Each separator style is tried once, in order: middle dot, pipe, dash.
    """
    t = _TRAILING_DOT_RE.sub("", title)
    t = _TRAILING_PIPE_RE.sub("", t)
    t = _TRAILING_DASH_RE.sub("", t)
    if domain_label:
        t = re.sub(rf"\s+{re.escape(domain_label)}\s*$", "", t, flags=re.IGNORECASE)
    return t.strip()


# ---------------------------------------------------------------------------
# Tokenization
# ---------------------------------------------------------------------------

MIN_WORD_LEN = 3

STOP_WORDS: frozenset[str] = frozenset(
    {
        # articles, conjunctions, prepositions
        "the",
        "and",
        "or",
        "to",
        "of",
        "in",
        "on",
        "for",
        "with",
        "at",
        "from",
        "a",
        "an",
        "is",
        "are",
        "was",
        "were",
        # generic UI words that describe every page of a site
        "home",
        "dashboard",
        "page",
        "tab",
        "new",
        "login",
        "sign",
        "signin",
        "signup",
        "settings",
        "account",
        "accounts",
        "watch",
        "video",
        "channel",
    }
)

_APOSTROPHE_RE = re.compile(r"['’]")
_NON_WORD_RE = re.compile(r"[^a-z0-9]+")


def tokenize_words(s: str | None) -> list[str]:
    """Split *s* into candidate label words, in order of appearance.

    Never returns words shorter than ``MIN_WORD_LEN``, stop-words, or
    purely numeric words.
    """
    raw = _APOSTROPHE_RE.sub("", (s or "").lower())
    raw = _NON_WORD_RE.sub(" ", raw).strip()
    if not raw:
        return []
    return [w for w in raw.split(" ") if len(w) >= MIN_WORD_LEN and w not in STOP_WORDS and not w.isdigit()]


def is_non_latin_title(title: str) -> bool:
    """True when *title* contains Hebrew, Arabic, Han, Kana or Cyrillic text."""
    return has_non_latin_script(title)
