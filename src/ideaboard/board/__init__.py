"""Board ordering and filtering engine."""

from .errors import (
    AuthorizationError,
    BoardError,
    ConflictError,
    PrecisionExhausted,
    TransportError,
    ValidationError,
)
from .filters import FilterChip, apply, compile_chips, parse_chips
from .models import Card, CardWrite, CommitOutcome, CommitStatus, UpdateResult, WritePlan
from .positions import allocate_between, renumber
from .reorder import ReorderCoordinator
from .store import CardStore
from .view_model import BoardState, BoardViewModel

__all__ = [
    "AuthorizationError",
    "BoardError",
    "BoardState",
    "BoardViewModel",
    "Card",
    "CardStore",
    "CardWrite",
    "CommitOutcome",
    "CommitStatus",
    "ConflictError",
    "FilterChip",
    "PrecisionExhausted",
    "ReorderCoordinator",
    "TransportError",
    "UpdateResult",
    "ValidationError",
    "WritePlan",
    "allocate_between",
    "apply",
    "compile_chips",
    "parse_chips",
    "renumber",
]
