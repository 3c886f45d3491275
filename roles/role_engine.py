from __future__ import annotations

import re
from enum import Enum
from functools import lru_cache
from typing import Dict, Iterable, Set, Tuple


class RoleTag(str, Enum):
    DRAW = "draw"
    RAMP = "ramp"
    SINGLE_TARGET_REMOVAL = "single_target_removal"
    MASS_REMOVAL = "mass_removal"
    COUNTERSPELL = "counterspell"
    TOKEN_GENERATOR = "token"
    RECURSION = "recursion"


# Trigger phrases are matched against lower-cased oracle text, so they are
# kept lower-case here.
DRAW_PHRASES: Tuple[str, ...] = (
    "draw a card",
    "you may draw",
    "then draw",
    "draw two",
    "draw x",
    "investigate",
)
RAMP_PHRASES: Tuple[str, ...] = (
    "add {",
    "add one mana",
    "add two mana",
    "add three mana",
    "add an amount of mana",
    "search your library for a land",
    "create a treasure",
    "mana pool",
    "untap target land",
    "put a land card",
)
SINGLE_TARGET_REMOVAL_PHRASES: Tuple[str, ...] = (
    "destroy target",
    "exile target",
    "damage to target",
    "fight target creature",
    "choose one or both",
)
MASS_REMOVAL_PHRASES: Tuple[str, ...] = (
    "each creature",
    "all creatures",
    "all permanents",
    "destroy all",
    "exile all",
    "sacrifice all",
    "each opponent sacrifices",
)
COUNTERSPELL_PHRASES: Tuple[str, ...] = (
    "counter target",
    "unless its controller pays",
)
TOKEN_PHRASES: Tuple[str, ...] = (
    "create a",
    "create a copy of",
    "token",
)
RECURSION_PHRASES: Tuple[str, ...] = (
    "return target",
    "from your graveyard",
    "escape",
    "retrace",
    "unearth",
    "eternalize",
    "disturb",
    "embalm",
    "delve",
    "undying",
    "persist",
)

ROLE_PHRASES: Dict[RoleTag, Tuple[str, ...]] = {
    RoleTag.DRAW: DRAW_PHRASES,
    RoleTag.RAMP: RAMP_PHRASES,
    RoleTag.SINGLE_TARGET_REMOVAL: SINGLE_TARGET_REMOVAL_PHRASES,
    RoleTag.MASS_REMOVAL: MASS_REMOVAL_PHRASES,
    RoleTag.COUNTERSPELL: COUNTERSPELL_PHRASES,
    RoleTag.TOKEN_GENERATOR: TOKEN_PHRASES,
    RoleTag.RECURSION: RECURSION_PHRASES,
}


@lru_cache(maxsize=256)
def _word_pattern(word: str) -> re.Pattern[str]:
    return re.compile(r"\b" + re.escape(word) + r"\b", re.IGNORECASE)


def word_match(text: str, word: str) -> bool:
    """True when ``word`` appears as a whole word (``mana`` matches ``mana-cost``, not ``manacost``)."""
    if not text or not word:
        return False
    return _word_pattern(word).search(text) is not None


def contains_any_word(text: str, words: Iterable[str]) -> bool:
    return any(word_match(text, word) for word in words)


def contains_any_phrase(text: str, phrases: Iterable[str]) -> bool:
    """Literal substring test; case-sensitive, callers lower-case both sides."""
    for phrase in phrases:
        if phrase in text:
            return True
    return False


def is_draw_effect(text: str) -> bool:
    return contains_any_phrase(text, DRAW_PHRASES)


def is_ramp_effect(text: str) -> bool:
    return contains_any_phrase(text, RAMP_PHRASES)


def is_single_target_removal(text: str) -> bool:
    return contains_any_phrase(text, SINGLE_TARGET_REMOVAL_PHRASES)


def is_mass_removal(text: str) -> bool:
    return contains_any_phrase(text, MASS_REMOVAL_PHRASES)


def is_counterspell(text: str) -> bool:
    return contains_any_phrase(text, COUNTERSPELL_PHRASES)


def is_token_generator(text: str) -> bool:
    return contains_any_phrase(text, TOKEN_PHRASES)


def is_recursion_effect(text: str) -> bool:
    return contains_any_phrase(text, RECURSION_PHRASES)


def classify(oracle_text: str | None, *, is_land: bool = False) -> Set[RoleTag]:
    """
    Tag a card's rules text with every functional role whose trigger phrases it contains.

    Tags are independent: one card can be both removal and a token maker. Lands
    never count as ramp, even when they tap for mana.
    """
    text = (oracle_text or "").lower()
    if not text:
        return set()
    roles: Set[RoleTag] = set()
    for role, phrases in ROLE_PHRASES.items():
        if role is RoleTag.RAMP and is_land:
            continue
        if contains_any_phrase(text, phrases):
            roles.add(role)
    return roles


__all__ = [
    "RoleTag",
    "ROLE_PHRASES",
    "word_match",
    "contains_any_word",
    "contains_any_phrase",
    "is_draw_effect",
    "is_ramp_effect",
    "is_single_target_removal",
    "is_mass_removal",
    "is_counterspell",
    "is_token_generator",
    "is_recursion_effect",
    "classify",
]
