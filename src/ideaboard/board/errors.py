"""Board engine exceptions.

Errors below the reorder coordinator are either resolved internally
(renumbering, one retry) or classified into one of these types.
"""

from __future__ import annotations


class BoardError(Exception):
    """Base exception for all board engine errors."""


class ValidationError(BoardError):
    """Malformed move request: index out of range, unknown column or card."""

    def __init__(self, message: str, field: str = ""):
        self.field = field
        super().__init__(message)


class PrecisionExhausted(BoardError):
    """No free position exists between two neighbours; renumber the column."""

    def __init__(self, before: int | None, after: int | None):
        self.before = before
        self.after = after
        super().__init__(f"No position available between {before} and {after}")


class ConflictError(BoardError):
    """A sibling already holds the computed position."""

    def __init__(self, card_ids: list[str], message: str = ""):
        self.card_ids = card_ids
        super().__init__(message or f"Position conflict for cards {', '.join(card_ids)}")


class AuthorizationError(BoardError):
    """The store rejected a write because the caller does not own the row."""

    def __init__(self, message: str = "Could not save change", card_ids: list[str] | None = None):
        self.card_ids = card_ids or []
        super().__init__(message)


class TransportError(BoardError):
    """The store could not be reached; the outcome of a write is unknown."""

    def __init__(self, message: str, status_code: int = 0, detail: str = ""):
        self.message = message
        self.status_code = status_code
        self.detail = detail
        super().__init__(message)
