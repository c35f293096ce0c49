"""Board data models: cards, write plans and commit outcomes."""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass, field
from datetime import UTC, date, datetime
from enum import StrEnum
from typing import Any, Literal


class IdeaColumn(StrEnum):
    """Status columns of the ideas board."""

    NEW = "new"
    EVALUATING = "evaluating"
    PRIORITISED = "prioritised"
    CONVERTING = "converting"
    ARCHIVED = "archived"


IDEA_COLUMNS: tuple[str, ...] = tuple(c.value for c in IdeaColumn)

Priority = Literal["critical", "high", "medium", "low"]


def utcnow() -> datetime:
    return datetime.now(UTC)


def _parse_datetime(value: Any) -> datetime | None:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=UTC)
    parsed = datetime.fromisoformat(str(value).replace(" ", "T"))
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=UTC)


def _parse_date(value: Any) -> date | None:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])


@dataclass(frozen=True)
class Card:
    """A single idea or task displayed on a board.

    Cards are immutable; moves and edits produce new instances through
    ``dataclasses.replace``.
    """

    id: str
    owner_id: str
    column: str
    position: int
    title: str = ""
    description: str = ""
    labels: frozenset[str] = frozenset()
    idea_id: str | None = None
    priority: str | None = None
    due_date: date | None = None
    completed: bool = False
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def sort_key(self) -> tuple[int, str]:
        """Display order within a column; ties broken by id."""
        return (self.position, self.id)

    @classmethod
    def from_row(cls, row: Any) -> Card:
        """Convert a SQLite row (or a mapping with the same keys) to a Card."""
        data = dict(row)
        labels = data.get("labels") or "[]"
        if isinstance(labels, str):
            labels = json.loads(labels)
        return cls(
            id=data["id"],
            owner_id=data["owner_id"],
            column=data["column_id"] if "column_id" in data else data["column"],
            position=int(data["position"]),
            title=data.get("title") or "",
            description=data.get("description") or "",
            labels=frozenset(labels),
            idea_id=data.get("idea_id") or None,
            priority=data.get("priority") or None,
            due_date=_parse_date(data.get("due_date")),
            completed=bool(data.get("completed", False)),
            created_at=_parse_datetime(data.get("created_at")),
            updated_at=_parse_datetime(data.get("updated_at")),
        )

    def to_dict(self) -> dict[str, Any]:
        """JSON-friendly representation."""
        data = asdict(self)
        data["labels"] = sorted(self.labels)
        data["due_date"] = self.due_date.isoformat() if self.due_date else None
        data["created_at"] = self.created_at.isoformat() if self.created_at else None
        data["updated_at"] = self.updated_at.isoformat() if self.updated_at else None
        return data


def sort_cards(cards: list[Card]) -> list[Card]:
    """Return cards in display order (position, then id)."""
    return sorted(cards, key=lambda c: c.sort_key)


@dataclass(frozen=True)
class CardWrite:
    """One row write: place ``card_id`` at ``position`` in ``column``."""

    card_id: str
    column: str
    position: int
    updated_at: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "card_id": self.card_id,
            "column": self.column,
            "position": self.position,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CardWrite:
        return cls(
            card_id=data["card_id"],
            column=data["column"],
            position=int(data["position"]),
            updated_at=_parse_datetime(data.get("updated_at")),
        )


@dataclass(frozen=True)
class MoveIntent:
    """What the user asked for: cards dropped at an index of a column."""

    card_ids: tuple[str, ...]
    target_column: str
    target_index: int


@dataclass(frozen=True)
class WritePlan:
    """The write set produced for one drag gesture.

    ``writes`` holds the moved cards first, followed by every other card of
    the column when ``renumbered`` is set.
    """

    intent: MoveIntent
    writes: tuple[CardWrite, ...] = ()
    renumbered: bool = False

    @property
    def is_empty(self) -> bool:
        return not self.writes

    @property
    def card_ids(self) -> list[str]:
        return [w.card_id for w in self.writes]


class FailureReason(StrEnum):
    FORBIDDEN = "forbidden"
    CONFLICT = "conflict"
    NOT_FOUND = "not_found"


@dataclass(frozen=True)
class RowFailure:
    card_id: str
    reason: str


@dataclass
class UpdateResult:
    """Per-row result of a batch write from the persistence collaborator."""

    succeeded: list[str] = field(default_factory=list)
    failed: list[RowFailure] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failed

    def failed_with(self, reason: str) -> list[RowFailure]:
        return [f for f in self.failed if f.reason == reason]

    def to_dict(self) -> dict[str, Any]:
        return {
            "succeeded": list(self.succeeded),
            "failed": [{"id": f.card_id, "reason": f.reason} for f in self.failed],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> UpdateResult:
        return cls(
            succeeded=list(data.get("succeeded", [])),
            failed=[RowFailure(f["id"], f["reason"]) for f in data.get("failed", [])],
        )


class CommitStatus(StrEnum):
    OK = "ok"
    NOOP = "noop"
    CONFLICT = "conflict"
    FORBIDDEN = "forbidden"
    REJECTED = "rejected"
    TRANSPORT = "transport"


@dataclass
class CommitOutcome:
    """Typed result of ``ReorderCoordinator.commit``.

    ``confirmed`` holds the writes that the store accepted, which may differ
    from the original plan when the commit was retried against a fresh
    snapshot. ``failed`` lists rows the store rejected.
    """

    status: CommitStatus
    plan: WritePlan
    confirmed: list[CardWrite] = field(default_factory=list)
    failed: list[RowFailure] = field(default_factory=list)
    retried: bool = False
    error: Exception | None = None

    @property
    def ok(self) -> bool:
        return self.status in (CommitStatus.OK, CommitStatus.NOOP)

    @property
    def confirmed_ids(self) -> set[str]:
        return {w.card_id for w in self.confirmed}
