# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""In-process tests for the tabrenamer CLI."""

from __future__ import annotations

import json
import logging

import pytest
import structlog

from tabrenamer.cli import main


@pytest.fixture(autouse=True)
def _reset_logging():
    """main() reconfigures logging; restore it for the next test."""
    root = logging.getLogger()
    old_handlers = root.handlers[:]
    old_level = root.level
    yield
    root.handlers = old_handlers
    root.setLevel(old_level)
    structlog.reset_defaults()


@pytest.fixture
def snapshot_file(tmp_path):
    data = {
        "focusedWindowId": 1,
        "settings": {"browserMode": "CHROME", "groupMinTabs": 2},
        "tabs": [
            {"id": 1, "url": "https://calendar.example.com/", "title": "Calendar", "index": 0, "pinned": True},
            {"id": 2, "url": "https://github.com/org/repoA", "title": "org/repoA: Service A", "index": 1},
            {"id": 3, "url": "https://github.com/org/repoB/pulls", "title": "Pull requests · org/repoB", "index": 2},
            {
                "id": 4,
                "url": "https://github.com/org/repoB/issues/7",
                "title": "Flaky test · Issue #7 · org/repoB",
                "index": 3,
            },
        ],
        "groups": [],
    }
    path = tmp_path / "window.json"
    path.write_text(json.dumps(data), encoding="utf-8")
    return path


@pytest.fixture
def grouped_snapshot_file(tmp_path):
    tabs = [
        {"id": i, "url": f"https://docs.example.com/{i}", "title": f"Page {i}", "index": i - 1, "groupId": 7}
        for i in range(1, 7)
    ]
    data = {
        "tabs": tabs,
        "groups": [{"id": 7, "windowId": 1, "title": "Docs", "color": "blue", "collapsed": True}],
    }
    path = tmp_path / "grouped.json"
    path.write_text(json.dumps(data), encoding="utf-8")
    return path


# ── labels ───────────────────────────────────────────────────────


class TestLabels:
    def test_json(self, snapshot_file, capsys):
        main(["--json", "labels", str(snapshot_file)])
        out = json.loads(capsys.readouterr().out)
        assert [(row["tabId"], row["title"]) for row in out] == [(2, "Repoa"), (3, "Repob"), (4, "Repob2")]
        assert out[0]["was"] == "org/repoA: Service A"

    def test_text(self, snapshot_file, capsys):
        main(["labels", str(snapshot_file)])
        out = capsys.readouterr().out
        assert "Repob2" in out
        assert "Calendar" not in out

    def test_disabled_by_env(self, snapshot_file, capsys, monkeypatch):
        monkeypatch.setenv("TABRENAMER_ENABLED", "false")
        main(["labels", str(snapshot_file)])
        assert "(no titles)" in capsys.readouterr().out

    def test_excluded_by_env(self, snapshot_file, capsys, monkeypatch):
        monkeypatch.setenv("TABRENAMER_EXCLUDED_HOSTS", "github.com")
        main(["--json", "labels", str(snapshot_file)])
        assert json.loads(capsys.readouterr().out) == []


# ── simulate ─────────────────────────────────────────────────────


class TestSimulate:
    def test_two_passes_converge(self, snapshot_file, capsys):
        main(["--json", "simulate", str(snapshot_file), "--passes", "2"])
        state = json.loads(capsys.readouterr().out)

        assert [p["plan"] for p in state["passes"]] == ["rebuild", "stable"]
        assert [g["title"] for g in state["groups"]] == ["Github"]
        assert [t["title"] for t in state["tabs"]] == ["Calendar", "Repoa", "Repob", "Repob2"]
        mutations = [c for c in state["calls"] if c["operation"] in ("move_tabs", "group_tabs", "ungroup_tabs")]
        assert len(mutations) == 1

    def test_text(self, snapshot_file, capsys):
        main(["simulate", str(snapshot_file), "--passes", "2"])
        out = capsys.readouterr().out
        assert "pass 1: plan=rebuild titles=3 failed=0" in out
        assert "pass 2: plan=stable" in out
        assert "[pinned]" in out
        assert "1 tab mutation(s)" in out

    def test_passes_must_be_positive(self, snapshot_file, capsys):
        with pytest.raises(SystemExit) as exc_info:
            main(["simulate", str(snapshot_file), "--passes", "0"])
        assert exc_info.value.code == 2
        assert "--passes" in capsys.readouterr().err


# ── groups ───────────────────────────────────────────────────────


class TestGroups:
    def test_text(self, grouped_snapshot_file, capsys):
        main(["groups", str(grouped_snapshot_file)])
        out = capsys.readouterr().out
        assert "Docs [blue] (collapsed): Page 1, Page 2, Page 3, Page 4 +2" in out

    def test_json(self, grouped_snapshot_file, capsys):
        main(["--json", "groups", str(grouped_snapshot_file)])
        [group] = json.loads(capsys.readouterr().out)
        assert group["id"] == 7
        assert group["tabs"] == ["Page 1", "Page 2", "Page 3", "Page 4"]
        assert group["overflow"] == 2

    def test_no_groups(self, snapshot_file, capsys):
        main(["groups", str(snapshot_file)])
        assert "No groups in this window." in capsys.readouterr().out


# ── errors ───────────────────────────────────────────────────────


class TestErrors:
    def test_missing_file(self, tmp_path, capsys):
        with pytest.raises(SystemExit) as exc_info:
            main(["labels", str(tmp_path / "nope.json")])
        assert exc_info.value.code == 1
        err = capsys.readouterr().err
        assert err.startswith("Error: cannot read snapshot")
        assert "Traceback" not in err

    def test_invalid_json(self, tmp_path, capsys):
        bad = tmp_path / "bad.json"
        bad.write_text("{not json", encoding="utf-8")
        with pytest.raises(SystemExit) as exc_info:
            main(["labels", str(bad)])
        assert exc_info.value.code == 1
        assert "not valid JSON" in capsys.readouterr().err

    @pytest.mark.parametrize(
        "data",
        [{"settings": "CHROME", "tabs": []}, {"focusedWindowId": "main", "tabs": []}],
    )
    def test_malformed_snapshot_fields(self, tmp_path, capsys, data):
        bad = tmp_path / "bad.json"
        bad.write_text(json.dumps(data), encoding="utf-8")
        with pytest.raises(SystemExit) as exc_info:
            main(["labels", str(bad)])
        assert exc_info.value.code == 1
        err = capsys.readouterr().err
        assert err.startswith("Error: ")
        assert "Traceback" not in err

    def test_invalid_env_mode(self, snapshot_file, capsys, monkeypatch):
        monkeypatch.setenv("TABRENAMER_MODE", "tiles")
        with pytest.raises(SystemExit) as exc_info:
            main(["labels", str(snapshot_file)])
        assert exc_info.value.code == 1
        assert "unknown mode" in capsys.readouterr().err

    def test_subcommand_required(self, capsys):
        with pytest.raises(SystemExit) as exc_info:
            main([])
        assert exc_info.value.code == 2
