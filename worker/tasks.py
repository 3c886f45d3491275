"""Deck analysis batch pass: select decks, fold their cards, write one row each."""

from __future__ import annotations

import math
import threading
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterable, List, Mapping, Optional, Tuple

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import sessionmaker

from services.analysis_store import AnalysisMode, PersistOutcome, persist_analysis, select_deck_ids
from services.deck_analysis import aggregate_deck
from services.deck_cards import fetch_deck_card_rows
from shared.exceptions import ConfigError, DeckFetchError, PersistError
from utils.logging_config import get_logger


class DeckOutcome(str, Enum):
    WRITTEN = "written"
    SKIPPED = "skipped"
    FAILED = "failed"
    CANCELLED = "cancelled"


def engine_options(store_url: str, statement_timeout: Optional[float]) -> dict:
    """
    ``create_engine`` keyword arguments that bound how long one statement may block.

    SQLite gets a lock wait timeout; PostgreSQL gets a connect timeout plus a
    server-side ``statement_timeout``. Other backends are left unchanged.
    """
    if not statement_timeout:
        return {}
    backend = make_url(store_url).get_backend_name()
    if backend == "sqlite":
        return {"connect_args": {"timeout": float(statement_timeout)}}
    if backend == "postgresql":
        return {
            "connect_args": {
                "connect_timeout": max(1, math.ceil(statement_timeout)),
                "options": f"-c statement_timeout={int(statement_timeout * 1000)}",
            }
        }
    return {}


@dataclass(frozen=True, slots=True)
class AnalysisConfig:
    store_url: str
    mode: AnalysisMode = AnalysisMode.FRESH
    max_workers: int = 1
    statement_timeout: Optional[float] = None

    def __post_init__(self) -> None:
        if not self.store_url:
            raise ConfigError("A store URL is required for deck analysis.")
        try:
            object.__setattr__(self, "mode", AnalysisMode.parse(self.mode))
        except ValueError as exc:
            raise ConfigError(str(exc)) from exc
        if isinstance(self.max_workers, bool) or not isinstance(self.max_workers, int) or self.max_workers < 1:
            raise ConfigError(f"max_workers must be a positive integer, got {self.max_workers!r}")
        if self.statement_timeout is not None and (
            isinstance(self.statement_timeout, bool)
            or not isinstance(self.statement_timeout, (int, float))
            or not self.statement_timeout > 0
        ):
            raise ConfigError(f"statement_timeout must be a positive number of seconds, got {self.statement_timeout!r}")

    @property
    def overwrite(self) -> bool:
        return self.mode is AnalysisMode.OVERWRITE

    @classmethod
    def from_mapping(
        cls,
        config: Mapping[str, Any],
        *,
        mode: AnalysisMode | str | None = None,
        max_workers: Optional[int] = None,
    ) -> "AnalysisConfig":
        """Build from a Flask-style config mapping, letting explicit arguments win."""
        if max_workers is None:
            max_workers = int(config.get("DECK_ANALYSIS_WORKERS") or 1)
        return cls(
            store_url=config.get("SQLALCHEMY_DATABASE_URI") or "",
            mode=mode or config.get("DECK_ANALYSIS_MODE") or AnalysisMode.FRESH,
            max_workers=max_workers,
            statement_timeout=config.get("DECK_ANALYSIS_STATEMENT_TIMEOUT") or None,
        )


@dataclass(slots=True)
class AnalysisRunResult:
    mode: AnalysisMode
    selected: int = 0
    written: int = 0
    skipped: int = 0
    failed: int = 0
    cancelled: int = 0
    rows_skipped: int = 0
    failed_deck_ids: List[str] = field(default_factory=list)

    def record(self, deck_id: str, outcome: DeckOutcome, rows_skipped: int = 0) -> None:
        self.rows_skipped += rows_skipped
        if outcome is DeckOutcome.WRITTEN:
            self.written += 1
        elif outcome is DeckOutcome.SKIPPED:
            self.skipped += 1
        elif outcome is DeckOutcome.CANCELLED:
            self.cancelled += 1
        else:
            self.failed += 1
            self.failed_deck_ids.append(deck_id)

    def as_dict(self) -> dict:
        return {
            "mode": self.mode.value,
            "selected": self.selected,
            "written": self.written,
            "skipped": self.skipped,
            "failed": self.failed,
            "cancelled": self.cancelled,
            "rows_skipped": self.rows_skipped,
            "failed_deck_ids": sorted(self.failed_deck_ids),
        }


def _dedupe(deck_ids: Iterable[str]) -> List[str]:
    seen = set()
    ordered: List[str] = []
    for deck_id in deck_ids:
        if not deck_id or deck_id in seen:
            continue
        seen.add(deck_id)
        ordered.append(deck_id)
    return ordered


class DeckAnalysisEngine:
    """
    Runs analysis passes against one store.

    Each deck gets its own short-lived session, so per-deck query resources are
    released before the next deck starts. Pass ``engine`` to reuse an existing
    SQLAlchemy engine (e.g. ``db.engine``); otherwise one is created from
    ``config.store_url`` with ``config.statement_timeout`` applied, and disposed
    on ``close()``. A shared engine keeps whatever options it was built with.
    """

    def __init__(self, config: AnalysisConfig, *, engine: Engine | None = None):
        self.config = config
        self._owns_engine = engine is None
        if engine is None:
            engine = create_engine(
                config.store_url,
                **engine_options(config.store_url, config.statement_timeout),
            )
        self._engine = engine
        self._session_factory = sessionmaker(bind=self._engine, expire_on_commit=False)

    def __enter__(self) -> "DeckAnalysisEngine":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def close(self) -> None:
        if self._owns_engine:
            self._engine.dispose()

    def select_deck_ids(self) -> List[str]:
        with self._session_factory() as session:
            return select_deck_ids(session, self.config.mode)

    def analyze_deck(self, deck_id: str) -> Tuple[PersistOutcome, int]:
        """Fetch, aggregate and persist one deck. Returns the write outcome and unreadable row count."""
        with self._session_factory() as session:
            card_rows = fetch_deck_card_rows(session, deck_id)
            aggregate = aggregate_deck(card_rows)
            outcome = persist_analysis(
                session,
                deck_id,
                aggregate,
                overwrite=self.config.overwrite,
            )
        return outcome, card_rows.skipped

    @staticmethod
    def _should_stop(cancel_event: Optional[threading.Event], deadline: Optional[float]) -> bool:
        if cancel_event is not None and cancel_event.is_set():
            return True
        return deadline is not None and time.monotonic() >= deadline

    def _process(
        self,
        deck_id: str,
        cancel_event: Optional[threading.Event],
        deadline: Optional[float],
    ) -> Tuple[DeckOutcome, int]:
        if self._should_stop(cancel_event, deadline):
            return DeckOutcome.CANCELLED, 0
        log = get_logger(__name__)
        try:
            outcome, rows_skipped = self.analyze_deck(deck_id)
        except DeckFetchError as exc:
            log.warning("Deck fetch failed; skipping deck", extra={"deck_id": deck_id, "error": str(exc)})
            return DeckOutcome.FAILED, 0
        except PersistError as exc:
            log.error("Deck analysis write failed", extra={"deck_id": deck_id, "error": str(exc)})
            return DeckOutcome.FAILED, 0
        except Exception:
            log.exception("Unexpected error while analyzing deck", extra={"deck_id": deck_id})
            return DeckOutcome.FAILED, 0
        if outcome is PersistOutcome.SKIPPED:
            log.info("Deck already analyzed; left unchanged", extra={"deck_id": deck_id})
            return DeckOutcome.SKIPPED, rows_skipped
        log.info("Deck analyzed", extra={"deck_id": deck_id, "rows_skipped": rows_skipped})
        return DeckOutcome.WRITTEN, rows_skipped

    def run(
        self,
        deck_ids: Optional[Iterable[str]] = None,
        *,
        cancel_event: Optional[threading.Event] = None,
        timeout: Optional[float] = None,
    ) -> AnalysisRunResult:
        """
        Run one analysis pass.

        ``deck_ids`` defaults to the decks chosen by the configured mode. Raises
        BatchInitError when selection fails; every per-deck failure is logged and
        counted instead. Decks not yet started when ``cancel_event`` is set or
        ``timeout`` seconds have elapsed are reported as cancelled.

        Both checks run between decks only; a deck already in flight finishes.
        A query that stalls is bounded by ``statement_timeout`` (see
        ``engine_options``), not by ``timeout``.
        """
        log = get_logger(__name__)
        deadline = time.monotonic() + timeout if timeout is not None else None
        if deck_ids is None:
            deck_ids = self.select_deck_ids()
        ordered = _dedupe(deck_ids)

        result = AnalysisRunResult(mode=self.config.mode, selected=len(ordered))
        log.info(
            "Deck analysis pass started",
            extra={
                "mode": self.config.mode.value,
                "decks": len(ordered),
                "max_workers": self.config.max_workers,
            },
        )

        if self.config.max_workers == 1 or len(ordered) <= 1:
            for deck_id in ordered:
                result.record(deck_id, *self._process(deck_id, cancel_event, deadline))
        else:
            with ThreadPoolExecutor(max_workers=self.config.max_workers) as executor:
                futures = {
                    executor.submit(self._process, deck_id, cancel_event, deadline): deck_id
                    for deck_id in ordered
                }
                for future in as_completed(futures):
                    result.record(futures[future], *future.result())

        log.info("Deck analysis pass finished", extra=result.as_dict())
        return result


def run_analysis_pass(
    config: AnalysisConfig,
    deck_ids: Optional[Iterable[str]] = None,
    *,
    engine: Engine | None = None,
    cancel_event: Optional[threading.Event] = None,
    timeout: Optional[float] = None,
) -> AnalysisRunResult:
    with DeckAnalysisEngine(config, engine=engine) as analysis_engine:
        return analysis_engine.run(deck_ids, cancel_event=cancel_event, timeout=timeout)


__all__ = [
    "AnalysisConfig",
    "AnalysisRunResult",
    "DeckAnalysisEngine",
    "DeckOutcome",
    "engine_options",
    "run_analysis_pass",
]
