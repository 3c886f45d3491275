"""Flask application factory and CLI entry points for the deck analysis pass."""

import json
import os
import signal
import threading

import click
from flask import Flask
from dotenv import load_dotenv; load_dotenv()

from config import Config, INSTANCE_DIR as CONFIG_INSTANCE_DIR
from extensions import db, migrate
from services.analysis_store import AnalysisMode, get_deck_analysis
from shared.exceptions import BatchInitError, ConfigError
from utils.logging_config import configure_logging
from worker.tasks import AnalysisConfig, engine_options, run_analysis_pass

import models  # noqa: F401  registers tables on db.metadata


# ---------------------------------------------------------------------------
# Extension bootstrap helpers
# ---------------------------------------------------------------------------

def _safe_init_sqlalchemy(app: Flask):
    """Initialise SQLAlchemy only if it has not been bound yet."""
    if not getattr(app, "extensions", None) or "sqlalchemy" not in app.extensions:
        db.init_app(app)


def _safe_init_migrate(app: Flask):
    """Bind Flask-Migrate, using batch mode so SQLite ALTERs work."""
    if not getattr(app, "extensions", None) or "migrate" not in app.extensions:
        migrate.init_app(app, db, render_as_batch=True)


def _install_stop_handlers(cancel_event: threading.Event):
    """Let SIGINT/SIGTERM stop the pass between decks. Returns the previous handlers."""
    previous = {}

    def _handler(signum, _frame):
        click.echo(f"Received signal {signum}; finishing in-flight decks and stopping.", err=True)
        cancel_event.set()

    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            previous[sig] = signal.signal(sig, _handler)
        except ValueError:
            # Not on the main thread (e.g. under a test runner); leave defaults.
            pass
    return previous


def _register_cli(app: Flask) -> None:
    @app.cli.command("create-tables")
    def create_tables():
        """Create any missing tables (local development only)."""
        db.create_all()
        click.echo("Tables ensured.")

    @app.cli.command("analyze-decks")
    @click.option("--mode", type=click.Choice([m.value for m in AnalysisMode], case_sensitive=False),
                  default=None, help="fresh fills gaps, overwrite recomputes every deck "
                                     "(defaults to DECK_ANALYSIS_MODE).")
    @click.option("--overwrite", is_flag=True, help="Shorthand for --mode overwrite.")
    @click.option("--workers", type=int, default=None,
                  help="Worker threads (defaults to DECK_ANALYSIS_WORKERS).")
    @click.option("--timeout", type=float, default=None,
                  help="Stop starting new decks after this many seconds.")
    @click.option("--deck", "deck_ids", multiple=True,
                  help="Analyze only these deck ids (repeatable).")
    def analyze_decks(mode, overwrite, workers, timeout, deck_ids):
        """Run the deck analysis pass."""
        if overwrite:
            if mode and AnalysisMode.parse(mode) is not AnalysisMode.OVERWRITE:
                raise click.UsageError("--overwrite conflicts with --mode fresh.")
            mode = AnalysisMode.OVERWRITE
        try:
            config = AnalysisConfig.from_mapping(app.config, mode=mode, max_workers=workers)
        except ConfigError as exc:
            raise click.ClickException(str(exc)) from exc

        cancel_event = threading.Event()
        previous = _install_stop_handlers(cancel_event)
        try:
            result = run_analysis_pass(
                config,
                deck_ids or None,
                engine=db.engine,
                cancel_event=cancel_event,
                timeout=timeout,
            )
        except BatchInitError as exc:
            raise click.ClickException(str(exc)) from exc
        finally:
            for sig, handler in previous.items():
                signal.signal(sig, handler)

        click.echo(
            f"Mode {result.mode.value}: selected {result.selected}, written {result.written}, "
            f"skipped {result.skipped}, failed {result.failed}, cancelled {result.cancelled}, "
            f"unreadable rows {result.rows_skipped}"
        )
        if result.failed_deck_ids:
            preview = ", ".join(sorted(result.failed_deck_ids)[:10])
            click.echo(f"Failed decks (first 10): {preview}")

    @app.cli.command("show-analysis")
    @click.argument("deck_id")
    def show_analysis(deck_id):
        """Print the stored analysis for a deck as JSON."""
        payload = get_deck_analysis(deck_id)
        if payload is None:
            raise click.ClickException(f"No analysis stored for deck {deck_id}")
        payload["card_types"] = sorted(payload["card_types"])
        payload["mana_curve"] = {str(k): v for k, v in sorted(payload["mana_curve"].items())}
        click.echo(json.dumps(payload, indent=2, sort_keys=True))


def create_app():
    """Create, configure, and return a fully-initialised Flask app."""
    app = Flask(
        __name__,
        instance_path=str(CONFIG_INSTANCE_DIR),
        instance_relative_config=False,
    )
    app.config.from_object(Config)
    os.makedirs(app.instance_path, exist_ok=True)
    configure_logging(app)

    # If no DB URI provided, store SQLite DB in instance/
    if not app.config.get("SQLALCHEMY_DATABASE_URI"):
        app.config["SQLALCHEMY_DATABASE_URI"] = f"sqlite:///{os.path.join(app.instance_path, 'database.db')}"

    # The CLI pass runs on db.engine, so bound its statements the same way
    if app.config.get("DECK_ANALYSIS_STATEMENT_TIMEOUT"):
        app.config.setdefault(
            "SQLALCHEMY_ENGINE_OPTIONS",
            engine_options(app.config["SQLALCHEMY_DATABASE_URI"], app.config["DECK_ANALYSIS_STATEMENT_TIMEOUT"]),
        )

    # --- Core extensions ---
    _safe_init_sqlalchemy(app)
    _safe_init_migrate(app)
    _register_cli(app)

    return app
