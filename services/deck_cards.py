"""
Read-side contract for deck contents: one row per (card, quantity) entry that
counts toward deck composition (commander + mainboard).
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Iterator, Sequence

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from models import Card, DeckCard
from shared.exceptions import DeckFetchError, RowReadError
from utils.logging_config import get_logger


@dataclass(frozen=True, slots=True)
class CardRow:
    name: str
    cmc: float
    type_line: str
    mana_cost: str
    oracle_text: str
    is_land: bool
    is_basic_land: bool
    quantity: int


@dataclass(slots=True)
class DeckCardRows:
    deck_id: str
    rows: list[CardRow] = field(default_factory=list)
    skipped: int = 0

    def __iter__(self) -> Iterator[CardRow]:
        return iter(self.rows)

    def __len__(self) -> int:
        return len(self.rows)


def _coerce_quantity(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise RowReadError(f"quantity must be an integer, got {value!r}")
    if value < 1:
        raise RowReadError(f"quantity must be at least 1, got {value}")
    return value


def _coerce_cmc(value: Any) -> float:
    if value is None:
        raise RowReadError("cmc is missing")
    try:
        cmc = float(value)
    except (TypeError, ValueError) as exc:
        raise RowReadError(f"cmc is not numeric: {value!r}") from exc
    if math.isnan(cmc) or cmc < 0:
        raise RowReadError(f"cmc must be a non-negative number, got {value!r}")
    return cmc


def decode_card_row(raw: Sequence[Any]) -> CardRow:
    """Turn a raw ``(name, cmc, type_line, mana_cost, oracle_text, quantity)`` row into a CardRow."""
    try:
        name, cmc, type_line, mana_cost, oracle_text, quantity = raw
    except (TypeError, ValueError) as exc:
        raise RowReadError(f"unexpected row shape: {raw!r}") from exc
    type_line = type_line or ""
    return CardRow(
        name=name or "",
        cmc=_coerce_cmc(cmc),
        type_line=type_line,
        mana_cost=mana_cost or "",
        oracle_text=oracle_text or "",
        is_land=Card.type_line_is_land(type_line),
        is_basic_land=Card.type_line_is_basic(type_line),
        quantity=_coerce_quantity(quantity),
    )


def _deck_card_query(session: Session, deck_id: str):
    return (
        session.query(
            Card.name,
            Card.cmc,
            Card.type_line,
            Card.mana_cost,
            Card.oracle_text,
            DeckCard.quantity,
        )
        .join(Card, Card.id == DeckCard.card_id)
        .filter(
            DeckCard.deck_id == deck_id,
            DeckCard.board_type.in_(DeckCard.ANALYZED_BOARDS),
        )
        .order_by(DeckCard.board_type, Card.name, Card.id)
    )


def fetch_deck_card_rows(session: Session, deck_id: str) -> DeckCardRows:
    """
    Load the analyzable card rows for one deck.

    Rows that fail to decode are logged and skipped. A failing query raises
    DeckFetchError so the caller can move on to the next deck.
    """
    log = get_logger(__name__)
    try:
        raw_rows = _deck_card_query(session, deck_id).all()
    except SQLAlchemyError as exc:
        raise DeckFetchError(deck_id, f"Card query failed for deck {deck_id}: {exc}") from exc

    result = DeckCardRows(deck_id=deck_id)
    for raw in raw_rows:
        try:
            result.rows.append(decode_card_row(raw))
        except RowReadError as exc:
            result.skipped += 1
            log.warning(
                "Skipping unreadable card row",
                extra={"deck_id": deck_id, "error": str(exc)},
            )
    return result


__all__ = ["CardRow", "DeckCardRows", "decode_card_row", "fetch_deck_card_rows"]
