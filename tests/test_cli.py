# -*- coding: utf-8 -*-
"""Command-line interface tests, run against a temporary state file."""

import builtins

import pandas as pd
import pytest

from prioritise import JsonStateStore, Prioritiser, main


@pytest.fixture
def state(tmp_path):
    return tmp_path / "state.json"


def run(state, *args):
    return main(["--state", str(state), "--seed", "1", *args])


def answer_with(monkeypatch, answers):
    replies = iter(answers)
    monkeypatch.setattr(builtins, "input", lambda prompt="": next(replies))


def test_add_and_list(state, capsys):
    assert run(state, "add", "Ship feature", "Fix bug", "Write docs") == 0
    out = capsys.readouterr().out
    assert "Added: Ship feature" in out
    assert "3 comparisons pending" in out

    assert run(state, "list") == 0
    out = capsys.readouterr().out
    assert "1. Ship feature" in out and "3. Write docs" in out


def test_duplicate_add_is_an_error(state, capsys):
    run(state, "add", "Fix bug")
    capsys.readouterr()
    assert run(state, "add", "  fix BUG") == 1
    assert "already exists" in capsys.readouterr().err
    assert len(Prioritiser(store=JsonStateStore(state)).items) == 1


def test_compare_until_done_then_rank(state, capsys, monkeypatch):
    run(state, "add", "Alpha", "Beta", "Gamma")
    answer_with(monkeypatch, ["1", "u", "1", "1", "1"])
    assert run(state, "compare") == 0
    out = capsys.readouterr().out
    assert "All comparisons complete." in out

    assert run(state, "progress") == 0
    assert "3 / 3 comparisons decided" in capsys.readouterr().out

    assert run(state, "rank") == 0
    out = capsys.readouterr().out
    assert "PRIORITISED LIST" in out
    assert "1. " in out and "3. " in out


def test_compare_limit_and_quit(state, capsys, monkeypatch):
    run(state, "add", "Alpha", "Beta", "Gamma")
    answer_with(monkeypatch, ["2"])
    assert run(state, "compare", "--limit", "1") == 0
    answer_with(monkeypatch, ["q"])
    assert run(state, "compare") == 0
    engine = Prioritiser(store=JsonStateStore(state))
    assert (engine.progress().decided, engine.progress().total) == (1, 3)


def test_compare_with_too_few_items(state, capsys):
    run(state, "add", "Alpha")
    assert run(state, "compare") == 0
    assert "Add at least two items" in capsys.readouterr().out


def test_undo_and_remove(state, capsys, monkeypatch):
    run(state, "add", "Alpha", "Beta")
    answer_with(monkeypatch, ["1"])
    run(state, "compare")
    capsys.readouterr()

    assert run(state, "undo") == 0
    out = capsys.readouterr().out
    assert "Undid:" in out and "Alpha" in out and "Beta" in out
    assert run(state, "undo") == 0
    assert "Nothing to undo." in capsys.readouterr().out

    assert run(state, "remove", "beta") == 0
    assert run(state, "remove", "Delta") == 1
    assert "No item titled 'Delta'" in capsys.readouterr().err


def test_name_and_export(state, tmp_path, capsys):
    run(state, "add", "Alpha", "Beta")
    assert run(state, "name", "  Alex ") == 0
    assert "Alex’s Prioritised List" in capsys.readouterr().out

    output = tmp_path / "ranking.csv"
    assert run(state, "export", str(output)) == 0
    assert list(pd.read_csv(output)["Item"]) == ["Alpha", "Beta"]

    assert run(state, "export", str(tmp_path / "ranking.txt")) == 1
    assert "Unsupported export format" in capsys.readouterr().err


def test_reset(state, capsys, monkeypatch):
    run(state, "add", "Alpha", "Beta")
    answer_with(monkeypatch, ["n"])
    assert run(state, "reset") == 0
    assert "Cancelled." in capsys.readouterr().out

    assert run(state, "reset", "--yes") == 0
    run(state, "list")
    assert "No items yet." in capsys.readouterr().out
