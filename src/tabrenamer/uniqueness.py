# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Shortest mutually-unique one-word labels.

Three escalating passes, each run only if the previous one left duplicates:

1. lowercase as-is
2. shortest prefix (1..MAX_PREFIX_LEN chars) that no other label starts with
3. number repeats in first-seen order: ``repob``, ``repob2``, ``repob3``

Output is positionally aligned with the input; order is never changed.
"""

from __future__ import annotations

from collections.abc import Sequence

MAX_PREFIX_LEN = 12
FALLBACK_LABEL = "tab"


def _all_unique(labels: Sequence[str]) -> bool:
    return len(set(labels)) == len(labels)


def _shortest_unique_prefix(index: int, labels: Sequence[str]) -> str:
    word = labels[index] or FALLBACK_LABEL
    for length in range(1, min(len(word), MAX_PREFIX_LEN) + 1):
        prefix = word[:length]
        if all(j == index or not other.startswith(prefix) for j, other in enumerate(labels)):
            return prefix
    return word[:MAX_PREFIX_LEN]


def number_duplicates(labels: Sequence[str]) -> list[str]:
    """Keep the first occurrence bare and suffix later repeats with their ordinal."""
    seen: dict[str, int] = {}
    result: list[str] = []
    taken = set(labels)
    for label in labels:
        count = seen.get(label, 0) + 1
        seen[label] = count
        if count == 1:
            result.append(label)
            continue
        candidate = f"{label}{count}"
        # "repo2" may already exist verbatim; keep counting past it.
        while candidate in taken:
            count += 1
            candidate = f"{label}{count}"
        seen[label] = count
        taken.add(candidate)
        result.append(candidate)
    return result


def shortest_unique_one_word(labels: Sequence[str]) -> list[str]:
    """Return the shortest mutually-unique label for each input label."""
    lower = [(label or FALLBACK_LABEL).lower() for label in labels]
    if _all_unique(lower):
        return lower

    prefixes = [_shortest_unique_prefix(i, lower) for i in range(len(lower))]
    if _all_unique(prefixes):
        return prefixes

    return number_duplicates(prefixes)
