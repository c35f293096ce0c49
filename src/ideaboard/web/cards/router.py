"""Card routes."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, Response

from ...board.filters import apply, compile_chips
from ...board.models import CardWrite, CommitOutcome, sort_cards
from ...board.reorder import ReorderCoordinator
from ..deps import Db, OwnerId, get_columns
from . import service
from .models import (
    CardBatchMove,
    CardCreate,
    CardList,
    CardMove,
    CardQuery,
    CardQueryResponse,
    CardResponse,
    MoveResponse,
    PositionBatch,
    PositionBatchResult,
)

router = APIRouter(prefix="/api", tags=["cards"])

Columns = Annotated[list[str] | None, Depends(get_columns)]


def _check_column(column: str, columns: list[str] | None) -> None:
    if columns is not None and column not in columns:
        raise HTTPException(status_code=400, detail=f"Unknown column: {column}")


def _move_response(outcome: CommitOutcome) -> dict:
    if not outcome.ok:
        # Typed board errors are mapped to status codes by the app handlers.
        raise outcome.error
    return {
        "status": outcome.status.value,
        "renumbered": outcome.plan.renumbered,
        "retried": outcome.retried,
        "writes": [w.to_dict() for w in outcome.confirmed],
    }


# --- Card CRUD ---


@router.get("/cards", response_model=CardList)
async def list_cards(
    owner_id: OwnerId,
    db: Db,
    column: str | None = Query(None, description="Only cards of this column"),
):
    cards = await service.list_cards(db, owner_id, column)
    return {"cards": [c.to_dict() for c in cards]}


@router.post("/cards", response_model=CardResponse, status_code=201)
async def create_card(body: CardCreate, owner_id: OwnerId, db: Db, columns: Columns):
    _check_column(body.column, columns)
    card = await service.create_card(
        db,
        owner_id=owner_id,
        column=body.column,
        title=body.title,
        description=body.description,
        labels=body.labels,
        idea_id=body.idea_id,
        priority=body.priority,
        due_date=body.due_date.isoformat() if body.due_date else None,
    )
    return card.to_dict()


@router.get("/cards/{card_id}", response_model=CardResponse)
async def get_card(card_id: str, owner_id: OwnerId, db: Db):
    card = await service.get_card(db, owner_id, card_id)
    if card is None:
        raise HTTPException(status_code=404, detail="Card not found")
    return card.to_dict()


@router.delete("/cards/{card_id}", status_code=204)
async def delete_card(card_id: str, owner_id: OwnerId, db: Db):
    deleted = await service.delete_card(db, owner_id, card_id)
    if not deleted:
        raise HTTPException(status_code=404, detail="Card not found")
    return Response(status_code=204)


# --- Ordering ---


@router.patch("/cards/positions", response_model=PositionBatchResult)
async def update_positions(body: PositionBatch, owner_id: OwnerId, db: Db, columns: Columns):
    """Raw per-row position writes; rejected rows are listed in ``failed``."""
    for write in body.writes:
        _check_column(write.column, columns)
    writes = [CardWrite(**w.model_dump()) for w in body.writes]
    result = await service.update_positions(db, owner_id, writes)
    return result.to_dict()


@router.post("/cards/{card_id}/move", response_model=MoveResponse)
async def move_card(card_id: str, body: CardMove, owner_id: OwnerId, db: Db, columns: Columns):
    """Plan and commit a single-card move on the server."""
    if await service.get_card(db, owner_id, card_id) is None:
        raise HTTPException(status_code=404, detail="Card not found")

    store = service.SqliteCardStore(db)
    coordinator = ReorderCoordinator(store, owner_id, columns)
    order = await store.list_cards(owner_id, body.column)
    plan = coordinator.plan_move(card_id, body.column, body.index, order)
    outcome = await coordinator.commit(plan)
    return _move_response(outcome)


@router.post("/cards/move", response_model=MoveResponse)
async def move_cards(body: CardBatchMove, owner_id: OwnerId, db: Db, columns: Columns):
    """Plan and commit a multi-card move on the server."""
    store = service.SqliteCardStore(db)
    coordinator = ReorderCoordinator(store, owner_id, columns)
    order = await store.list_cards(owner_id, body.column) if body.card_ids else []
    plan = coordinator.plan_batch(body.card_ids, body.column, body.index, order)
    outcome = await coordinator.commit(plan)
    return _move_response(outcome)


# --- Filtering ---


@router.post("/cards/query", response_model=CardQueryResponse)
async def query_cards(body: CardQuery, owner_id: OwnerId, db: Db, columns: Columns):
    """Apply filter chips and return the visible cards grouped by column."""
    predicate = compile_chips(body.chips, body.today)
    cards = await service.list_cards(db, owner_id, body.column)

    if body.column is not None:
        shown = [body.column]
    else:
        present = {c.column for c in cards}
        shown = [c for c in columns if c in present] if columns else sorted(present)

    grouped = {}
    for column in shown:
        in_column = sort_cards([c for c in cards if c.column == column])
        grouped[column] = [c.to_dict() for c in apply(predicate, in_column)]
    return {"columns": grouped}
