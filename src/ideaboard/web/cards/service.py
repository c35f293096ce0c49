"""Card service - SQLite persistence for cards and positions."""

from __future__ import annotations

import json
import logging
import secrets
from collections.abc import Sequence

import aiosqlite

from ...board.models import (
    Card,
    CardWrite,
    FailureReason,
    RowFailure,
    UpdateResult,
    utcnow,
)
from ...board.positions import append_position
from ..events import Event, EventType, event_manager

logger = logging.getLogger(__name__)


async def list_cards(
    db: aiosqlite.Connection, owner_id: str, column: str | None = None
) -> list[Card]:
    """The owner's cards in display order (column, position, id)."""
    if column is None:
        cursor = await db.execute(
            "SELECT * FROM cards WHERE owner_id = ? ORDER BY column_id, position, id",
            (owner_id,),
        )
    else:
        cursor = await db.execute(
            "SELECT * FROM cards WHERE owner_id = ? AND column_id = ? ORDER BY position, id",
            (owner_id, column),
        )
    rows = await cursor.fetchall()
    return [Card.from_row(r) for r in rows]


async def get_card(db: aiosqlite.Connection, owner_id: str, card_id: str) -> Card | None:
    """Fetch a card. Cards of other owners are reported as missing."""
    cursor = await db.execute(
        "SELECT * FROM cards WHERE id = ? AND owner_id = ?", (card_id, owner_id)
    )
    row = await cursor.fetchone()
    return Card.from_row(row) if row else None


async def create_card(
    db: aiosqlite.Connection,
    owner_id: str,
    column: str,
    title: str,
    description: str = "",
    labels: Sequence[str] = (),
    idea_id: str | None = None,
    priority: str | None = None,
    due_date: str | None = None,
) -> Card:
    """Create a card at the end of ``column``."""
    card_id = secrets.token_hex(8)

    cursor = await db.execute(
        "SELECT position FROM cards WHERE owner_id = ? AND column_id = ?", (owner_id, column)
    )
    position = append_position(row["position"] for row in await cursor.fetchall())
    now = utcnow().isoformat()

    await db.execute(
        """INSERT INTO cards (id, owner_id, column_id, position, title, description,
           labels, idea_id, priority, due_date, created_at, updated_at)
           VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
        (
            card_id,
            owner_id,
            column,
            position,
            title,
            description,
            json.dumps(sorted(set(labels))),
            idea_id,
            priority,
            due_date,
            now,
            now,
        ),
    )
    await db.commit()

    card = await get_card(db, owner_id, card_id)
    await event_manager.publish(
        owner_id, Event(event_type=EventType.CARD_CREATED, data={"card": card.to_dict()})
    )
    return card


async def delete_card(db: aiosqlite.Connection, owner_id: str, card_id: str) -> bool:
    """Delete a card. Positions of the remaining cards are left as they are."""
    cursor = await db.execute(
        "DELETE FROM cards WHERE id = ? AND owner_id = ?", (card_id, owner_id)
    )
    await db.commit()
    if cursor.rowcount == 0:
        return False

    await event_manager.publish(
        owner_id, Event(event_type=EventType.CARD_DELETED, data={"card_id": card_id})
    )
    return True


async def update_positions(
    db: aiosqlite.Connection, owner_id: str, writes: Sequence[CardWrite]
) -> UpdateResult:
    """Apply position writes row by row.

    Each row is checked independently: it must exist, belong to the owner and
    its target position must not be held by a sibling outside this batch.
    Rejected rows are reported, accepted rows are committed.
    """
    result = UpdateResult()
    batch_ids = list(dict.fromkeys(w.card_id for w in writes))
    in_batch = ", ".join("?" for _ in batch_ids)

    for write in writes:
        cursor = await db.execute("SELECT owner_id FROM cards WHERE id = ?", (write.card_id,))
        row = await cursor.fetchone()
        if row is None:
            result.failed.append(RowFailure(write.card_id, FailureReason.NOT_FOUND))
            continue
        if row["owner_id"] != owner_id:
            result.failed.append(RowFailure(write.card_id, FailureReason.FORBIDDEN))
            continue

        # Check and write in one statement so concurrent requests sharing the
        # connection cannot both claim a position.
        updated_at = (write.updated_at or utcnow()).isoformat()
        cursor = await db.execute(
            f"""UPDATE cards SET column_id = ?, position = ?, updated_at = ?
                WHERE id = ? AND owner_id = ?
                  AND NOT EXISTS (
                      SELECT 1 FROM cards AS sibling
                      WHERE sibling.owner_id = ? AND sibling.column_id = ?
                        AND sibling.position = ? AND sibling.id NOT IN ({in_batch}))""",
            (
                write.column,
                write.position,
                updated_at,
                write.card_id,
                owner_id,
                owner_id,
                write.column,
                write.position,
                *batch_ids,
            ),
        )
        if cursor.rowcount == 0:
            logger.info("Position %d in %s already held", write.position, write.column)
            result.failed.append(RowFailure(write.card_id, FailureReason.CONFLICT))
            continue
        result.succeeded.append(write.card_id)

    await db.commit()

    if result.succeeded:
        succeeded = set(result.succeeded)
        moved = [w.to_dict() for w in writes if w.card_id in succeeded]
        await event_manager.publish(
            owner_id, Event(event_type=EventType.CARDS_MOVED, data={"writes": moved})
        )
    return result


class SqliteCardStore:
    """``CardStore`` over the service functions above."""

    def __init__(self, db: aiosqlite.Connection) -> None:
        self.db = db

    async def list_cards(self, owner_id: str, column: str | None = None) -> list[Card]:
        return await list_cards(self.db, owner_id, column)

    async def update_cards(self, owner_id: str, writes: Sequence[CardWrite]) -> UpdateResult:
        return await update_positions(self.db, owner_id, writes)
