# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""One-word label extraction per site kind.

A host is classified once into a ``SiteKind``; each kind has a pure
extractor that reads URL structure first (mail labels, repo names, video
paths) and the page title second.  ``GENERIC`` covers everything else.

All extractors return a lowercase, non-empty word.
"""

from __future__ import annotations

import re
from collections.abc import Callable
from enum import StrEnum
from urllib.parse import unquote

from . import Tab
from .domains import domain_label, safe_url
from .text import is_non_latin_title, normalize_title, strip_trailing_site_part, tokenize_words


class SiteKind(StrEnum):
    MAIL = "mail"
    CODE_HOST = "code_host"
    VIDEO_HOST = "video_host"
    GENERIC = "generic"


# base host → kind; a host matches its base exactly or as a subdomain
_SITE_BASES: tuple[tuple[str, SiteKind], ...] = (
    ("mail.google.com", SiteKind.MAIL),
    ("github.com", SiteKind.CODE_HOST),
    ("youtube.com", SiteKind.VIDEO_HOST),
)


def _host_matches_base(host: str, base: str) -> bool:
    return host == base or host.endswith("." + base)


def classify_site(host: str) -> SiteKind:
    """Pick the extractor family for *host*."""
    host = (host or "").lower()
    for base, kind in _SITE_BASES:
        if _host_matches_base(host, base):
            return kind
    return SiteKind.GENERIC


# ---------------------------------------------------------------------------
# URL helpers
# ---------------------------------------------------------------------------

# Content IDs: upper-case or numeric tokens ("A1B2C3", "ORDER_2024") and very long slugs
_OPAQUE_SEGMENT_RE = re.compile(r"[A-Z0-9_-]{6,}")
_MAX_SEGMENT_LEN = 24


def _decode(segment: str) -> str:
    try:
        return unquote(segment, errors="strict")
    except UnicodeDecodeError:
        return segment


def _path_segments(url: str) -> list[str]:
    parsed = safe_url(url)
    if parsed is None:
        return []
    return [s for s in parsed.path.split("/") if s]


def is_opaque_segment(segment: str) -> bool:
    """True for path components that look like identifiers rather than words."""
    return len(segment) > _MAX_SEGMENT_LEN or _OPAQUE_SEGMENT_RE.fullmatch(segment) is not None


def meaningful_path_segment(url: str) -> str:
    """First word of the last human-readable path segment, or "".

    Walks segments from the end and skips opaque identifiers, so
    ``/blog/kubernetes-networking/8f3KQ2ZP`` yields ``kubernetes``.
    """
    segments = [_decode(s) for s in _path_segments(url)]
    for seg in reversed(segments):
        if is_opaque_segment(seg):
            continue
        words = re.sub(r"[-_]", " ", seg.lower()).strip().split(" ")
        word = words[0] if words else ""
        if len(word) >= 2:
            return word
    return ""


# ---------------------------------------------------------------------------
# Mail
# ---------------------------------------------------------------------------


def mail_label_from_url(url: str) -> str:
    """Return the mailbox view named in the URL fragment (``#label/Work`` → ``Work``)."""
    parsed = safe_url(url)
    if parsed is None or not parsed.fragment:
        return ""
    simple = re.split(r"[?&]", parsed.fragment)[0]

    if simple.startswith("label/"):
        return _decode(simple[len("label/") :]).split("/")[0] or "label"
    if simple.startswith("category/"):
        return _decode(simple[len("category/") :]).split("/")[0] or "cat"
    if simple.startswith("search/"):
        return "search"
    return _decode(simple.split("/")[0])


def mail_word(tab: Tab) -> str:
    label = mail_label_from_url(tab.url)
    words = tokenize_words(label)
    if words:
        return words[0]
    return (label or "inbox").lower()


# ---------------------------------------------------------------------------
# Code hosting
# ---------------------------------------------------------------------------


def repo_from_url(url: str) -> str:
    """``/owner/repo/...`` → ``repo``."""
    parts = _path_segments(url)
    return parts[1] if len(parts) >= 2 else ""


def code_host_word(tab: Tab) -> str:
    repo = repo_from_url(tab.url)
    if repo:
        return repo.lower()
    words = tokenize_words(strip_trailing_site_part(normalize_title(tab.title), "GitHub"))
    return words[0] if words else "github"


# ---------------------------------------------------------------------------
# Video hosting
# ---------------------------------------------------------------------------

_VIDEO_PATH_WORDS: tuple[tuple[str, str], ...] = (
    ("/watch", "watch"),
    ("/shorts", "shorts"),
    ("/results", "search"),
    ("/channel/", "channel"),
)


def video_host_word(tab: Tab) -> str:
    parsed = safe_url(tab.url)
    if parsed is None:
        return "youtube"
    path = parsed.path or "/"

    # Path shortcuts hold regardless of title language.
    for prefix, word in _VIDEO_PATH_WORDS:
        if path.startswith(prefix):
            return word
    if path.startswith("/@"):
        handle = path.split("/")[1].replace("@", "")
        return (handle or "channel").lower()

    words = tokenize_words(strip_trailing_site_part(normalize_title(tab.title), "YouTube"))
    if words:
        return words[0]
    return (meaningful_path_segment(tab.url) or "youtube").lower()


# ---------------------------------------------------------------------------
# Generic
# ---------------------------------------------------------------------------


def generic_word(tab: Tab, reg_dom: str) -> str:
    dom_lbl = domain_label(reg_dom)
    stripped = strip_trailing_site_part(normalize_title(tab.title), dom_lbl)
    # Tokenizing non-Latin titles yields stray brand names; the URL says more.
    if not is_non_latin_title(stripped):
        words = tokenize_words(stripped)
        if words:
            return words[0]
    return meaningful_path_segment(tab.url) or dom_lbl.lower() or "tab"


# ---------------------------------------------------------------------------
# Dispatch
# ---------------------------------------------------------------------------

_EXTRACTORS: dict[SiteKind, Callable[[Tab], str]] = {
    SiteKind.MAIL: mail_word,
    SiteKind.CODE_HOST: code_host_word,
    SiteKind.VIDEO_HOST: video_host_word,
}


def one_word_label(tab: Tab, reg_dom: str, host: str) -> str:
    """Derive the label candidate for *tab* (lowercase, never empty)."""
    kind = classify_site(host)
    extractor = _EXTRACTORS.get(kind)
    word = extractor(tab) if extractor is not None else generic_word(tab, reg_dom)
    return word.lower() or "tab"
