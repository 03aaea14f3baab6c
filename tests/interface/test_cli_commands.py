"""Tests for CLI commands: help, browsing, due/counts, study, preview, serve and config."""

import json
from datetime import date
from unittest.mock import patch

import pytest
from typer.testing import CliRunner

from lexis.application.config import AppConfig
from lexis.interface.cli import app

runner = CliRunner()


@pytest.fixture
def seeded(mock_home, seed_file):
    """CLI args selecting the memory backend seeded from the test seed file."""
    return ["--backend", "memory", "--seed-file", str(seed_file)]


# --- Help ---


def test_cli_help():
    result = runner.invoke(app, ["--help"])
    assert result.exit_code == 0
    assert "spaced-repetition vocabulary trainer" in result.stdout
    assert "study" in result.stdout
    assert "due" in result.stdout


# --- Browsing ---


def test_courses(seeded):
    result = runner.invoke(app, [*seeded, "courses"])
    assert result.exit_code == 0
    assert "siSwati 1" in result.stdout


def test_courses_empty(mock_home):
    result = runner.invoke(app, ["courses"])
    assert result.exit_code == 0
    assert "No courses found" in result.stdout


def test_levels(seeded):
    result = runner.invoke(app, [*seeded, "levels", "c1"])
    assert result.exit_code == 0
    lines = result.stdout.strip().splitlines()
    assert lines == ["l1  Greetings", "l2  Numbers"]


def test_levels_unknown_course(seeded):
    result = runner.invoke(app, [*seeded, "levels", "nope"])
    assert result.exit_code == 1
    assert "not found" in result.stdout


# --- Due / counts ---


def test_due_json(seeded):
    result = runner.invoke(app, [*seeded, "due", "l1", "--learner", "u1", "--json"])
    assert result.exit_code == 0
    data = json.loads(result.stdout)
    assert {c["id"] for c in data} == {"w1", "w2", "w3"}


def test_due_guest_text(seeded):
    result = runner.invoke(app, [*seeded, "due", "l2", "--today", "2024-03-10"])
    assert result.exit_code == 0
    assert "Due on 2024-03-10: 1" in result.stdout
    assert "kunye  ->  one" in result.stdout


def test_counts(seeded):
    result = runner.invoke(app, [*seeded, "counts", "c1", "--learner", "u1", "--json"])
    assert result.exit_code == 0
    assert json.loads(result.stdout) == {"l1": 3, "l2": 1}


def test_counts_text_uses_level_names(seeded):
    result = runner.invoke(app, [*seeded, "counts", "c1", "--learner", "u1"])
    assert result.exit_code == 0
    assert "Greetings: 3 due" in result.stdout
    assert "Numbers: 1 due" in result.stdout


# --- Study ---


def test_study_grades_every_card(seeded):
    result = runner.invoke(
        app, [*seeded, "study", "l1", "--learner", "u1"], input="f\ng\ne\na\n"
    )
    assert result.exit_code == 0
    assert "next review in 1 day(s)" in result.stdout
    assert "Reviewed 3 card(s)." in result.stdout


def test_study_quit_early(seeded):
    result = runner.invoke(app, [*seeded, "study", "l1", "--learner", "u1"], input="g\nq\n")
    assert result.exit_code == 0
    assert "Reviewed 1 card(s)." in result.stdout


def test_study_guest_mode(seeded):
    result = runner.invoke(app, [*seeded, "study", "l2"], input="g\n")
    assert result.exit_code == 0
    assert "Guest mode" in result.stdout
    assert "next review" not in result.stdout
    assert "Reviewed 1 card(s)." in result.stdout


def test_study_nothing_due(seeded):
    result = runner.invoke(app, [*seeded, "study", "missing-level", "--learner", "u1"])
    assert result.exit_code == 0
    assert "No cards due" in result.stdout


# --- Preview ---


def test_preview_new_card(mock_home):
    result = runner.invoke(app, ["preview"])
    assert result.exit_code == 0
    assert "again: 1 day(s)" in result.stdout
    assert " easy: 1 day(s)" in result.stdout


def test_preview_mature_card(mock_home):
    result = runner.invoke(app, ["preview", "--repetition", "5", "--interval", "10"])
    assert result.exit_code == 0
    assert " good: 25 day(s)" in result.stdout
    assert " easy: 26 day(s)" in result.stdout


def test_preview_uses_configured_today(mock_home):
    with patch.object(AppConfig, "today", return_value=date(2024, 3, 10)) as mock_today:
        result = runner.invoke(app, ["preview"])
    assert result.exit_code == 0
    mock_today.assert_called_once()


# --- Server ---


@patch("uvicorn.run")
def test_serve_command(mock_run):
    result = runner.invoke(app, ["serve", "--port", "9000"])
    assert result.exit_code == 0
    mock_run.assert_called_with("lexis.server:app", host="127.0.0.1", port=9000, reload=False)


# --- Config ---


def test_config_show_masks_key(mock_home, monkeypatch):
    monkeypatch.setenv("LEXIS_SUPABASE_KEY", "secret")
    result = runner.invoke(app, ["config", "show"])
    assert result.exit_code == 0
    data = json.loads(result.stdout)
    assert data["backend"] == "memory"
    assert data["supabase_key"] == "***"


def test_supabase_without_credentials_fails(mock_home):
    result = runner.invoke(app, ["--backend", "supabase", "courses"])
    assert result.exit_code == 1
    assert "LEXIS_SUPABASE_URL" in result.stdout


def test_verbose_env_is_honored(mock_home, monkeypatch):
    monkeypatch.setenv("LEXIS_VERBOSE", "3")
    result = runner.invoke(app, ["config", "show"])
    assert result.exit_code == 0
    assert json.loads(result.stdout)["verbose"] == 3


def test_verbose_flag_counts(mock_home):
    result = runner.invoke(app, ["-v", "config", "show"])
    assert json.loads(result.stdout)["verbose"] == 2

    result = runner.invoke(app, ["-vv", "config", "show"])
    assert json.loads(result.stdout)["verbose"] == 3
