"""Shared fixtures for board engine tests."""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import replace

import pytest

from ideaboard.board.models import (
    Card,
    CardWrite,
    FailureReason,
    RowFailure,
    UpdateResult,
    sort_cards,
)


class FakeCardStore:
    """In-memory ``CardStore`` with hooks for injecting failures."""

    def __init__(self, cards: Sequence[Card] = ()):
        self.cards: dict[str, Card] = {c.id: c for c in cards}
        self.forbidden: set[str] = set()
        self.always_conflict: set[str] = set()
        self.before_update: Callable[[FakeCardStore], None] | None = None
        self.list_error: Exception | None = None
        self.update_error: Exception | None = None
        self.update_calls: list[list[CardWrite]] = []

    def add(self, card_id: str, column: str, position: int, owner_id: str = "u1", **fields) -> Card:
        card = Card(id=card_id, owner_id=owner_id, column=column, position=position, **fields)
        self.cards[card_id] = card
        return card

    def column(self, column: str) -> list[Card]:
        return sort_cards([c for c in self.cards.values() if c.column == column])

    async def list_cards(self, owner_id: str, column: str | None = None) -> list[Card]:
        if self.list_error is not None:
            raise self.list_error
        return sort_cards(
            [
                c
                for c in self.cards.values()
                if c.owner_id == owner_id and (column is None or c.column == column)
            ]
        )

    async def update_cards(self, owner_id: str, writes: Sequence[CardWrite]) -> UpdateResult:
        self.update_calls.append(list(writes))
        if self.update_error is not None:
            raise self.update_error
        if self.before_update is not None:
            hook, self.before_update = self.before_update, None
            hook(self)

        result = UpdateResult()
        batch = {w.card_id for w in writes}
        for write in writes:
            card = self.cards.get(write.card_id)
            if card is None:
                result.failed.append(RowFailure(write.card_id, FailureReason.NOT_FOUND))
                continue
            if write.card_id in self.forbidden or card.owner_id != owner_id:
                result.failed.append(RowFailure(write.card_id, FailureReason.FORBIDDEN))
                continue
            held = any(
                c.column == write.column and c.position == write.position and c.id not in batch
                for c in self.cards.values()
            )
            if held or write.card_id in self.always_conflict:
                result.failed.append(RowFailure(write.card_id, FailureReason.CONFLICT))
                continue
            self.cards[write.card_id] = replace(
                card, column=write.column, position=write.position, updated_at=write.updated_at
            )
            result.succeeded.append(write.card_id)
        return result


@pytest.fixture
def store() -> FakeCardStore:
    """Column ``todo`` holding A, B, C at 1000, 2000, 3000 and ``done`` holding D."""
    fake = FakeCardStore()
    fake.add("A", "todo", 1000)
    fake.add("B", "todo", 2000)
    fake.add("C", "todo", 3000)
    fake.add("D", "done", 1000)
    return fake
