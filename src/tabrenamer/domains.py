# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Domain classification: URL → host → grouping key → display label.

Pure functions, no I/O.  Malformed URLs never raise; they degrade to an
empty host, which groups under ``"unknown"``.
"""

from __future__ import annotations

from urllib.parse import SplitResult, urlsplit

from .public_suffixes import MULTIPART_SUFFIXES

UNKNOWN_KEY = "unknown"
DEFAULT_LABEL = "Site"

# Registrable domain that is split per service host instead of collapsed:
# mail.google.com and drive.google.com are different things to the user.
_PER_HOST_DOMAINS = frozenset({"google.com"})

_NON_RENAMABLE_SCHEMES = ("chrome://", "edge://")

_DEFAULT_PORTS = {"http": 80, "https": 443, "ws": 80, "wss": 443, "ftp": 21}


def safe_url(url: str) -> SplitResult | None:
    """Parse *url*, returning None when it is not a usable absolute URL."""
    if not url:
        return None
    try:
        parsed = urlsplit(url)
        # .port validates the netloc; raises ValueError on garbage like "host:abc"
        parsed.port  # noqa: B018
    except ValueError:
        return None
    if not parsed.scheme:
        return None
    return parsed


def host_of(url: str) -> str:
    """Return the network location (host[:port]) of *url*, lowercased, or "".

    The port is dropped when it is the scheme default, so
    ``https://a.com:443/`` and ``https://a.com/`` share a host.
    """
    parsed = safe_url(url)
    if parsed is None:
        return ""
    host = (parsed.hostname or "").lower()
    port = parsed.port
    if host and port is not None and port != _DEFAULT_PORTS.get(parsed.scheme.lower()):
        return f"{host}:{port}"
    return host


def is_renamable_url(url: str) -> bool:
    """Browser-internal pages cannot run the title channel and are left alone."""
    return bool(url) and not url.startswith(_NON_RENAMABLE_SCHEMES)


def registrable_domain(host: str) -> str:
    """Return the domain one label above a known public suffix.

    ``a.b.co.uk`` → ``b.co.uk``; ``news.ycombinator.com`` → ``ycombinator.com``;
    hosts with two labels or fewer are returned unchanged.
    """
    if not host:
        return ""
    parts = [p for p in host.split(".") if p]
    if len(parts) <= 2:
        return host

    last2 = ".".join(parts[-2:])
    if last2 in MULTIPART_SUFFIXES:
        return ".".join(parts[-3:])
    return last2


def grouping_key(host: str) -> str:
    """Return the key tabs on *host* are clustered under."""
    if not host:
        return UNKNOWN_KEY
    reg = registrable_domain(host) or host
    if reg in _PER_HOST_DOMAINS:
        return host.removeprefix("www.")
    return reg


def domain_label(reg_dom: str) -> str:
    """Capitalized first label of a registrable domain (``github.com`` → ``Github``)."""
    if not reg_dom:
        return DEFAULT_LABEL
    first = reg_dom.split(".")[0] or reg_dom
    return first[:1].upper() + first[1:]
