"""Filter chips and the predicate compiler.

A board filter is a set of chips. Chips combine with AND; the values inside
one chip combine with OR. Both rules are expressed with the ``all_of`` and
``any_of`` combinators below rather than inline boolean logic.
"""

from __future__ import annotations

import calendar
from collections.abc import Callable, Iterable, Iterator
from datetime import date, timedelta
from typing import Annotated, Any, Literal

from pydantic import BaseModel, Field, TypeAdapter

from .models import Card, Priority

Predicate = Callable[[Card], bool]


def all_of(predicates: Iterable[Predicate]) -> Predicate:
    """Conjunction. An empty set matches every card."""
    preds = tuple(predicates)

    def _all(card: Card) -> bool:
        return all(p(card) for p in preds)

    return _all


def any_of(predicates: Iterable[Predicate]) -> Predicate:
    """Disjunction. An empty set matches no card."""
    preds = tuple(predicates)

    def _any(card: Card) -> bool:
        return any(p(card) for p in preds)

    return _any


# --- Chips ---


class IdeaChip(BaseModel):
    """Cards linked to any of the selected ideas."""

    field: Literal["idea"] = "idea"
    operator: Literal["in"] = "in"
    value: list[str] = Field(min_length=1)

    def matcher(self, today: date) -> Predicate:
        return any_of(_attr_equals("idea_id", v) for v in self.value)


class LabelChip(BaseModel):
    """Cards carrying at least one of the selected labels."""

    field: Literal["label"] = "label"
    operator: Literal["in"] = "in"
    value: list[str] = Field(min_length=1)

    def matcher(self, today: date) -> Predicate:
        return any_of(_has_label(v) for v in self.value)


class PriorityChip(BaseModel):
    field: Literal["priority"] = "priority"
    operator: Literal["in"] = "in"
    value: list[Priority] = Field(min_length=1)

    def matcher(self, today: date) -> Predicate:
        return any_of(_attr_equals("priority", v) for v in self.value)


class ColumnChip(BaseModel):
    field: Literal["column"] = "column"
    operator: Literal["in"] = "in"
    value: list[str] = Field(min_length=1)

    def matcher(self, today: date) -> Predicate:
        return any_of(_attr_equals("column", v) for v in self.value)


class CompletedChip(BaseModel):
    field: Literal["completed"] = "completed"
    operator: Literal["is"] = "is"
    value: bool = True

    def matcher(self, today: date) -> Predicate:
        return any_of([_attr_equals("completed", self.value)])


DatePreset = Literal["overdue", "today", "this-week", "this-month", "no-date"]


class DateChip(BaseModel):
    """Inclusive date range over the due or created date.

    ``operator`` is ``between`` for an explicit ``start``/``end`` range, or
    one of the relative presets resolved against the reference day.
    """

    field: Literal["date"] = "date"
    operator: Literal["between"] | DatePreset = "between"
    target: Literal["due", "created"] = "due"
    start: date | None = None
    end: date | None = None

    def bounds(self, today: date) -> tuple[date | None, date | None]:
        """Resolve the chip to an inclusive ``(start, end)`` range."""
        match self.operator:
            case "overdue":
                return None, today - timedelta(days=1)
            case "today":
                return today, today
            case "this-week":
                # Week ends on Sunday; on a Sunday it runs to the next one.
                days_left = 7 - (today.weekday() + 1) % 7
                return today, today + timedelta(days=days_left)
            case "this-month":
                last_day = calendar.monthrange(today.year, today.month)[1]
                return today, today.replace(day=last_day)
            case _:
                return self.start, self.end

    def matcher(self, today: date) -> Predicate:
        if self.operator == "no-date":
            return any_of([lambda card: _date_of(card, self.target) is None])
        start, end = self.bounds(today)
        return any_of([_in_range(self.target, start, end)])


class TextChip(BaseModel):
    """Case-insensitive substring search over title and description."""

    field: Literal["text"] = "text"
    operator: Literal["contains"] = "contains"
    value: str = ""

    def matcher(self, today: date) -> Predicate:
        query = self.value.strip().lower()
        if not query:
            return all_of([])
        return any_of(
            [
                lambda card: query in card.title.lower(),
                lambda card: query in card.description.lower(),
            ]
        )


FilterChip = Annotated[
    IdeaChip | LabelChip | PriorityChip | ColumnChip | CompletedChip | DateChip | TextChip,
    Field(discriminator="field"),
]

_chip_list = TypeAdapter(list[FilterChip])


def parse_chips(data: list[dict[str, Any]]) -> list[FilterChip]:
    """Validate raw chip dicts (e.g. from a request body).

    Raises:
        pydantic.ValidationError: On an unknown field or a malformed value.
    """
    return _chip_list.validate_python(data)


# --- Matchers ---


def _attr_equals(attr: str, value: Any) -> Predicate:
    def _match(card: Card) -> bool:
        return getattr(card, attr) == value

    return _match


def _has_label(label_id: str) -> Predicate:
    def _match(card: Card) -> bool:
        return label_id in card.labels

    return _match


def _date_of(card: Card, target: str) -> date | None:
    if target == "due":
        return card.due_date
    return card.created_at.date() if card.created_at else None


def _in_range(target: str, start: date | None, end: date | None) -> Predicate:
    def _match(card: Card) -> bool:
        value = _date_of(card, target)
        if value is None:
            return start is None and end is None
        if start is not None and value < start:
            return False
        return end is None or value <= end

    return _match


# --- Compile / apply ---


def compile_chips(chips: Iterable[FilterChip], today: date | None = None) -> Predicate:
    """Compile chips into one predicate.

    Pure: the same chips and reference day always give the same behaviour.
    ``today`` anchors the relative date presets and defaults to the current
    local date.
    """
    day = today or date.today()
    return all_of(chip.matcher(day) for chip in chips)


class FilteredCards:
    """Lazy, order-preserving view of the cards matching a predicate.

    Every iteration is a fresh pass over ``cards``; nothing is cached.
    """

    def __init__(self, predicate: Predicate, cards: Iterable[Card]) -> None:
        self._predicate = predicate
        self._cards = cards

    def __iter__(self) -> Iterator[Card]:
        return (card for card in self._cards if self._predicate(card))


def apply(predicate: Predicate, cards: Iterable[Card]) -> FilteredCards:
    """Filter ``cards`` lazily, keeping their order."""
    return FilteredCards(predicate, cards)
