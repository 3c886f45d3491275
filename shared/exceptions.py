"""Shared exception types for the analysis pass.

Per-row and per-deck errors are recoverable: the batch logs them and moves on.
``BatchInitError`` is the only one that stops a run.
"""


class AppError(Exception):
    """Base exception for application-level errors."""


class ConfigError(AppError):
    """Raised when analysis settings are missing or invalid."""


class RowReadError(AppError):
    """A single card row could not be decoded; the row is skipped."""


class DeckFetchError(AppError):
    """The card query for one deck failed; the deck is skipped."""

    def __init__(self, deck_id: str, message: str):
        super().__init__(message)
        self.deck_id = deck_id


class PersistError(AppError):
    """Writing the analysis row for one deck failed; the deck stays unanalyzed."""

    def __init__(self, deck_id: str, message: str):
        super().__init__(message)
        self.deck_id = deck_id


class BatchInitError(AppError):
    """Deck selection failed; nothing was processed."""
