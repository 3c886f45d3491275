"""
Canonical service for deck analysis rows.
The analysis pass is the only writer; other code may read through
``load_analysis`` / ``get_deck_analysis``.
"""

from __future__ import annotations

import json
from enum import Enum
from typing import Any, Mapping

from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from extensions import db
from models import Deck, DeckAnalysis
from services.deck_analysis import ROLE_COLUMNS, DeckAggregate
from shared.exceptions import BatchInitError, PersistError
from utils.time import isoformat_or_none, utcnow

DECK_ANALYSIS_VERSION = 1

# Dialects whose INSERT supports ON CONFLICT against the deck_id key
_DIALECT_INSERTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


class AnalysisMode(str, Enum):
    FRESH = "fresh"
    OVERWRITE = "overwrite"

    @classmethod
    def parse(cls, value: "AnalysisMode | str | None") -> "AnalysisMode":
        if isinstance(value, cls):
            return value
        key = (value or cls.FRESH.value).strip().lower()
        if key in {"fresh", "fresh-only", "fresh_only"}:
            return cls.FRESH
        if key == "overwrite":
            return cls.OVERWRITE
        raise ValueError(f"Unknown analysis mode: {value!r}")


class PersistOutcome(str, Enum):
    WRITTEN = "written"
    SKIPPED = "skipped"


# ---------------------------------------------------------------------------
# Serialization
# ---------------------------------------------------------------------------

def encode_count_map(counts: Mapping[Any, int]) -> str:
    """Encode a key->int map as JSON with keys in sorted order."""
    ordered = {str(key): int(value) for key, value in sorted(counts.items())}
    return json.dumps(ordered, ensure_ascii=True, separators=(",", ":"))


def encode_card_types(types) -> str:
    return json.dumps(sorted(types), ensure_ascii=True, separators=(",", ":"))


def _load_json(text: str | None, default):
    if not text:
        return default
    try:
        data = json.loads(text)
    except ValueError:
        return default
    return data if isinstance(data, type(default)) else default


def decode_mana_curve(text: str | None) -> dict[int, int]:
    return {int(key): int(value) for key, value in _load_json(text, {}).items()}


def decode_color_symbols(text: str | None) -> dict[str, int]:
    return {str(key): int(value) for key, value in _load_json(text, {}).items()}


def decode_card_types(text: str | None) -> set[str]:
    return {str(item) for item in _load_json(text, [])}


def _analysis_values(deck_id: str, aggregate: DeckAggregate) -> dict[str, Any]:
    record = aggregate.to_record()
    record["mana_curve"] = encode_count_map(record["mana_curve"])
    record["color_symbols"] = encode_count_map(record["color_symbols"])
    record["card_types"] = encode_card_types(record["card_types"])
    record["deck_id"] = deck_id
    record["version"] = DECK_ANALYSIS_VERSION
    record["analyzed_at"] = utcnow()
    return record


# ---------------------------------------------------------------------------
# Selection / persistence
# ---------------------------------------------------------------------------

def select_deck_ids(session: Session, mode: AnalysisMode | str) -> list[str]:
    """Deck ids due for analysis: unanalyzed decks, or every deck in overwrite mode."""
    mode = AnalysisMode.parse(mode)
    try:
        query = session.query(Deck.id)
        if mode is AnalysisMode.FRESH:
            query = (
                query.outerjoin(DeckAnalysis, DeckAnalysis.deck_id == Deck.id)
                .filter(DeckAnalysis.deck_id.is_(None))
            )
        return [deck_id for (deck_id,) in query.order_by(Deck.id).all()]
    except SQLAlchemyError as exc:
        raise BatchInitError(f"Deck selection failed: {exc}") from exc


def _insert_for(session: Session, deck_id: str):
    dialect = session.get_bind(DeckAnalysis).dialect.name
    insert = _DIALECT_INSERTS.get(dialect)
    if insert is None:
        raise PersistError(deck_id, f"Upsert is not supported for dialect {dialect!r}")
    return insert


def persist_analysis(
    session: Session,
    deck_id: str,
    aggregate: DeckAggregate,
    *,
    overwrite: bool = False,
) -> PersistOutcome:
    """
    Write one analysis row for ``deck_id`` and commit.

    Without ``overwrite`` an existing row is left untouched. With it, every
    column is replaced from ``aggregate``; the store's unique key decides which
    writer hits the conflict path.
    """
    insert = _insert_for(session, deck_id)
    values = _analysis_values(deck_id, aggregate)
    stmt = insert(DeckAnalysis).values(**values)
    if overwrite:
        stmt = stmt.on_conflict_do_update(
            index_elements=["deck_id"],
            set_={key: stmt.excluded[key] for key in values if key != "deck_id"},
        )
    else:
        stmt = stmt.on_conflict_do_nothing(index_elements=["deck_id"])

    try:
        result = session.execute(stmt)
        session.commit()
    except SQLAlchemyError as exc:
        session.rollback()
        raise PersistError(deck_id, f"Failed to write deck_analysis for {deck_id}: {exc}") from exc
    return PersistOutcome.SKIPPED if result.rowcount == 0 else PersistOutcome.WRITTEN


# ---------------------------------------------------------------------------
# Read-back
# ---------------------------------------------------------------------------

def analysis_to_dict(row: DeckAnalysis) -> dict[str, Any]:
    payload: dict[str, Any] = {"deck_id": row.deck_id}
    for column in ROLE_COLUMNS.values():
        payload[column] = int(getattr(row, column) or 0)
    payload.update(
        average_mana_value=float(row.average_mana_value or 0.0),
        highest_mana_value=float(row.highest_mana_value or 0.0),
        mana_curve=decode_mana_curve(row.mana_curve),
        color_symbols=decode_color_symbols(row.color_symbols),
        card_types=decode_card_types(row.card_types),
        basic_land_count=int(row.basic_land_count or 0),
        nonbasic_land_count=int(row.nonbasic_land_count or 0),
        land_count=int(row.land_count or 0),
        version=row.version,
        analyzed_at=isoformat_or_none(row.analyzed_at),
    )
    return payload


def load_analysis(session: Session, deck_id: str) -> dict[str, Any] | None:
    row = session.get(DeckAnalysis, deck_id, populate_existing=True)
    if row is None:
        return None
    return analysis_to_dict(row)


def get_deck_analysis(deck_id: str) -> dict[str, Any] | None:
    return load_analysis(db.session, deck_id)


__all__ = [
    "DECK_ANALYSIS_VERSION",
    "AnalysisMode",
    "PersistOutcome",
    "analysis_to_dict",
    "decode_card_types",
    "decode_color_symbols",
    "decode_mana_curve",
    "encode_card_types",
    "encode_count_map",
    "get_deck_analysis",
    "load_analysis",
    "persist_analysis",
    "select_deck_ids",
]
