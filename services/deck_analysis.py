"""
Canonical deck archetype aggregation.
Folds a deck's card rows into role counts, curve, pips, land split and type set.
Pure: no database access, no logging, same rows in -> same aggregate out.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Iterable

from roles.role_engine import RoleTag, classify
from services.deck_cards import CardRow
from services.mana_cost import COLOR_SYMBOLS, parse_pips

# Analysis row column for each role tag
ROLE_COLUMNS: dict[RoleTag, str] = {
    RoleTag.DRAW: "draw_count",
    RoleTag.RAMP: "ramp_count",
    RoleTag.SINGLE_TARGET_REMOVAL: "single_target_removal_count",
    RoleTag.MASS_REMOVAL: "mass_removal_count",
    RoleTag.COUNTERSPELL: "counterspell_count",
    RoleTag.TOKEN_GENERATOR: "token_count",
    RoleTag.RECURSION: "recursion_count",
}


def _empty_role_counts() -> dict[RoleTag, int]:
    return {role: 0 for role in RoleTag}


def _empty_color_counts() -> dict[str, int]:
    return {symbol: 0 for symbol in COLOR_SYMBOLS}


@dataclass(slots=True)
class DeckAggregate:
    role_counts: dict[RoleTag, int] = field(default_factory=_empty_role_counts)
    mana_value_sum: float = 0.0
    non_land_quantity: int = 0
    highest_mana_value: float = 0.0
    mana_curve: dict[int, int] = field(default_factory=dict)
    color_symbols: dict[str, int] = field(default_factory=_empty_color_counts)
    card_types: set[str] = field(default_factory=set)
    basic_land_count: int = 0
    nonbasic_land_count: int = 0

    @property
    def land_count(self) -> int:
        return self.basic_land_count + self.nonbasic_land_count

    @property
    def total_quantity(self) -> int:
        return self.non_land_quantity + self.land_count

    @property
    def average_mana_value(self) -> float:
        if not self.non_land_quantity:
            return 0.0
        return self.mana_value_sum / self.non_land_quantity

    def role_count(self, role: RoleTag) -> int:
        return self.role_counts.get(role, 0)

    def add_row(self, row: CardRow) -> None:
        qty = row.quantity
        for role in classify(row.oracle_text, is_land=row.is_land):
            self.role_counts[role] = self.role_counts.get(role, 0) + qty

        if row.is_land:
            if row.is_basic_land:
                self.basic_land_count += qty
            else:
                self.nonbasic_land_count += qty
            return

        self.mana_value_sum += row.cmc * qty
        self.non_land_quantity += qty
        bucket = math.floor(row.cmc)
        self.mana_curve[bucket] = self.mana_curve.get(bucket, 0) + qty
        if row.cmc > self.highest_mana_value:
            self.highest_mana_value = row.cmc

        _total, colors = parse_pips(row.mana_cost)
        for symbol, count in colors.items():
            self.color_symbols[symbol] += count * qty

        for token in row.type_line.split():
            if token[0].isupper():
                self.card_types.add(token)

    def to_record(self) -> dict[str, Any]:
        """Flat mapping of analysis columns (structured fields left as Python values)."""
        record: dict[str, Any] = {
            column: self.role_count(role) for role, column in ROLE_COLUMNS.items()
        }
        record.update(
            average_mana_value=self.average_mana_value,
            highest_mana_value=self.highest_mana_value,
            mana_curve=dict(self.mana_curve),
            color_symbols=dict(self.color_symbols),
            card_types=set(self.card_types),
            basic_land_count=self.basic_land_count,
            nonbasic_land_count=self.nonbasic_land_count,
            land_count=self.land_count,
        )
        return record


def aggregate_deck(rows: Iterable[CardRow]) -> DeckAggregate:
    aggregate = DeckAggregate()
    for row in rows:
        aggregate.add_row(row)
    return aggregate


__all__ = ["ROLE_COLUMNS", "DeckAggregate", "aggregate_deck"]
