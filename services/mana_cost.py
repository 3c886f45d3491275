"""Mana cost symbol parsing."""

from __future__ import annotations

import re
from typing import Iterator

RE_COST_SYMBOL = re.compile(r"\{([^}]*)\}")
COLOR_SYMBOLS = ("W", "U", "B", "R", "G", "C")


def mana_symbols(mana_cost: str | None) -> Iterator[str]:
    """
    Yield every symbol in a cost string, upper-cased.

    Hybrid symbols are split, so ``{U/B}`` yields ``U`` then ``B`` and
    ``{2/W}`` yields ``2`` then ``W``.
    """
    if not mana_cost:
        return
    for token in RE_COST_SYMBOL.findall(mana_cost):
        for part in token.upper().split("/"):
            if part:
                yield part


def parse_pips(mana_cost: str | None) -> tuple[int, dict[str, int]]:
    """
    Return ``(total_pips, color_counts)`` for a mana cost.

    Every symbol counts toward the total; only W/U/B/R/G/C show up in
    ``color_counts``. ``"{W}{U/B}{U/B}"`` gives ``(5, {"W": 1, "U": 2, "B": 2})``.
    """
    total = 0
    counts: dict[str, int] = {}
    for symbol in mana_symbols(mana_cost):
        total += 1
        if symbol in COLOR_SYMBOLS:
            counts[symbol] = counts.get(symbol, 0) + 1
    return total, counts


__all__ = ["COLOR_SYMBOLS", "RE_COST_SYMBOL", "mana_symbols", "parse_pips"]
