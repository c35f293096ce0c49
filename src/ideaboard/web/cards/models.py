"""Card Pydantic models."""

from __future__ import annotations

from datetime import date, datetime
from pydantic import BaseModel, Field

from ...board.filters import FilterChip
from ...board.models import Priority


class CardCreate(BaseModel):
    column: str = Field(min_length=1)
    title: str = Field(min_length=1)
    description: str = ""
    labels: list[str] = []
    idea_id: str | None = None
    priority: Priority | None = None
    due_date: date | None = None


class CardResponse(BaseModel):
    id: str
    owner_id: str
    column: str
    position: int
    title: str
    description: str
    labels: list[str]
    idea_id: str | None
    priority: str | None
    due_date: date | None
    completed: bool
    created_at: datetime | None
    updated_at: datetime | None


class CardList(BaseModel):
    cards: list[CardResponse]


class PositionWrite(BaseModel):
    card_id: str = Field(min_length=1)
    column: str = Field(min_length=1)
    position: int = Field(gt=0)
    updated_at: datetime | None = None


class PositionBatch(BaseModel):
    writes: list[PositionWrite]


class RowFailureResponse(BaseModel):
    id: str
    reason: str


class PositionBatchResult(BaseModel):
    succeeded: list[str]
    failed: list[RowFailureResponse]


class CardMove(BaseModel):
    column: str
    index: int


class CardBatchMove(BaseModel):
    card_ids: list[str]
    column: str
    index: int


class MoveResponse(BaseModel):
    status: str
    renumbered: bool
    retried: bool
    writes: list[PositionWrite]


class CardQuery(BaseModel):
    chips: list[FilterChip] = []
    column: str | None = None
    today: date | None = None


class CardQueryResponse(BaseModel):
    columns: dict[str, list[CardResponse]]
