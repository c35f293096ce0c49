"""Persistence collaborator protocol."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol

from .models import Card, CardWrite, UpdateResult


class CardStore(Protocol):
    """Row-level access to an owner's cards.

    Implementations enforce ownership: a write for a card the caller does not
    own fails for that row. Writes are applied per row; the store does not
    promise atomicity across rows.

    Implementations must also reject a write whose position is already held
    by a sibling in the same ``(owner, column)`` that is not part of the same
    batch, reporting it as a ``conflict`` failure.
    """

    async def list_cards(self, owner_id: str, column: str | None = None) -> list[Card]:
        """List the owner's cards in display order.

        Raises:
            TransportError: When the store is unreachable.
        """
        ...

    async def update_cards(self, owner_id: str, writes: Sequence[CardWrite]) -> UpdateResult:
        """Apply a batch of position writes.

        Returns:
            Per-row result; rejected rows carry a reason of ``forbidden``,
            ``conflict`` or ``not_found``.

        Raises:
            TransportError: When the store is unreachable.
            AuthorizationError: When the whole request is refused.
        """
        ...
