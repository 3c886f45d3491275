import json

from extensions import db
from factories import create_sample_deck
from models import DeckAnalysis
from worker import tasks
from shared.exceptions import BatchInitError


def test_analyze_decks_prints_summary(cli_runner):
    create_sample_deck()
    create_sample_deck()
    db.session.commit()

    result = cli_runner.invoke(args=["analyze-decks"])

    assert result.exit_code == 0, result.output
    assert "Mode fresh: selected 2, written 2, skipped 0, failed 0, cancelled 0" in result.output
    assert db.session.query(DeckAnalysis).count() == 2


def test_analyze_decks_overwrite_flag(cli_runner):
    create_sample_deck()
    db.session.commit()
    cli_runner.invoke(args=["analyze-decks"])

    rerun = cli_runner.invoke(args=["analyze-decks"])
    assert "selected 0" in rerun.output

    overwrite = cli_runner.invoke(args=["analyze-decks", "--overwrite", "--workers", "2"])
    assert overwrite.exit_code == 0, overwrite.output
    assert "Mode overwrite: selected 1, written 1" in overwrite.output


def test_analyze_decks_lists_failed_decks(cli_runner, monkeypatch):
    deck = create_sample_deck()
    db.session.commit()

    def _explode(rows):
        raise RuntimeError("boom")

    monkeypatch.setattr(tasks, "aggregate_deck", _explode)
    result = cli_runner.invoke(args=["analyze-decks", "--deck", deck.id])

    assert result.exit_code == 0, result.output
    assert "failed 1" in result.output
    assert f"Failed decks (first 10): {deck.id}" in result.output


def test_analyze_decks_rejects_bad_worker_count(cli_runner):
    result = cli_runner.invoke(args=["analyze-decks", "--workers", "-1"])
    assert result.exit_code != 0
    assert "max_workers" in result.output


def test_analyze_decks_reports_selection_failure(cli_runner, monkeypatch):
    def _boom(session, mode):
        raise BatchInitError("store unavailable")

    monkeypatch.setattr(tasks, "select_deck_ids", _boom)
    result = cli_runner.invoke(args=["analyze-decks"])

    assert result.exit_code != 0
    assert "store unavailable" in result.output


def test_show_analysis_outputs_json(cli_runner):
    deck = create_sample_deck()
    db.session.commit()
    cli_runner.invoke(args=["analyze-decks"])

    result = cli_runner.invoke(args=["show-analysis", deck.id])

    assert result.exit_code == 0, result.output
    payload = json.loads(result.output)
    assert payload["deck_id"] == deck.id
    assert payload["draw_count"] == 2
    assert payload["mana_curve"] == {"2": 2, "4": 1}
    assert payload["card_types"] == ["Creature", "Human", "Instant", "Wizard"]
    assert payload["color_symbols"]["U"] == 2


def test_show_analysis_missing_deck(cli_runner):
    result = cli_runner.invoke(args=["show-analysis", "unknown"])
    assert result.exit_code != 0
    assert "No analysis stored for deck unknown" in result.output


def test_analyze_decks_rejects_zero_workers(cli_runner):
    result = cli_runner.invoke(args=["analyze-decks", "--workers", "0"])
    assert result.exit_code != 0
    assert "max_workers" in result.output


def test_mode_option_overrides_configured_overwrite(app, cli_runner, monkeypatch):
    create_sample_deck()
    db.session.commit()
    cli_runner.invoke(args=["analyze-decks"])
    monkeypatch.setitem(app.config, "DECK_ANALYSIS_MODE", "overwrite")

    configured = cli_runner.invoke(args=["analyze-decks"])
    assert "Mode overwrite: selected 1, written 1" in configured.output

    forced = cli_runner.invoke(args=["analyze-decks", "--mode", "fresh"])
    assert forced.exit_code == 0, forced.output
    assert "Mode fresh: selected 0" in forced.output


def test_overwrite_flag_conflicts_with_fresh_mode(cli_runner):
    result = cli_runner.invoke(args=["analyze-decks", "--overwrite", "--mode", "fresh"])
    assert result.exit_code != 0
    assert "--overwrite conflicts with --mode fresh" in result.output
