# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Tests for shortest mutually-unique labels."""

from __future__ import annotations

from tabrenamer.uniqueness import MAX_PREFIX_LEN, number_duplicates, shortest_unique_one_word


class TestShortestUniqueOneWord:
    def test_already_unique_lowercased(self):
        assert shortest_unique_one_word(["Docs", "pricing"]) == ["docs", "pricing"]

    def test_prefixes_shortened_before_numbering(self):
        assert shortest_unique_one_word(["alpha", "alpine", "alpha", "beta"]) == ["alpha", "alpi", "alpha2", "b"]

    def test_numbering_pass(self):
        assert shortest_unique_one_word(["docs", "docs", "pricing"]) == ["docs", "docs2", "p"]

    def test_empty_labels_fall_back(self):
        assert shortest_unique_one_word(["", ""]) == ["tab", "tab2"]

    def test_order_preserved(self):
        labels = ["repob", "repoa", "repob"]
        assert shortest_unique_one_word(labels) == ["repob", "repoa", "repob2"]

    def test_prefix_capped(self):
        long = "a" * (MAX_PREFIX_LEN + 5)
        result = shortest_unique_one_word([long, long])
        assert result == ["a" * MAX_PREFIX_LEN, "a" * MAX_PREFIX_LEN + "2"]

    def test_empty_input(self):
        assert shortest_unique_one_word([]) == []

    def test_output_length_matches(self):
        labels = ["x", "x", "x", "y"]
        assert len(shortest_unique_one_word(labels)) == len(labels)


class TestNumberDuplicates:
    def test_first_occurrence_bare(self):
        assert number_duplicates(["a", "b", "a", "a"]) == ["a", "b", "a2", "a3"]

    def test_skips_existing_label(self):
        assert number_duplicates(["a", "a2", "a"]) == ["a", "a2", "a3"]

    def test_no_duplicates(self):
        assert number_duplicates(["a", "b"]) == ["a", "b"]
