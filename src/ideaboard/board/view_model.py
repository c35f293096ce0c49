"""Board view model - per-session board state with optimistic reordering."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass, field, replace
from datetime import date
from enum import StrEnum

from .errors import BoardError, ValidationError
from .filters import FilterChip, Predicate, apply, compile_chips
from .models import (
    IDEA_COLUMNS,
    Card,
    CardWrite,
    CommitOutcome,
    CommitStatus,
    WritePlan,
    sort_cards,
)
from .reorder import ReorderCoordinator
from .store import CardStore

logger = logging.getLogger(__name__)


class BoardState(StrEnum):
    LOADING = "loading"
    CLEAN = "clean"
    PENDING_REORDER = "pending_reorder"


@dataclass
class PendingMove:
    """A plan applied locally whose commit has not resolved yet."""

    seq: int
    plan: WritePlan
    task: asyncio.Task | None = field(default=None, repr=False)


Listener = Callable[["BoardViewModel"], None]


class BoardViewModel:
    """Holds one session's board: cards, filter and in-flight moves.

    States are ``loading`` then ``ready``; ``ready`` is either ``clean``
    (matches the server) or ``pending_reorder`` (a move is in flight or
    waiting for retry).

    Moves are applied to the local cards immediately and their commits run
    one at a time in issue order. When a card is moved again before an
    earlier commit resolves, the earlier result is ignored for that card.
    """

    def __init__(
        self,
        store: CardStore,
        owner_id: str,
        columns: Sequence[str] | None = None,
        coordinator: ReorderCoordinator | None = None,
        today: date | None = None,
    ) -> None:
        self.store = store
        self.owner_id = owner_id
        self.columns = list(columns) if columns else None
        self.coordinator = coordinator or ReorderCoordinator(store, owner_id, columns)
        self.state = BoardState.LOADING
        self.last_error: BoardError | None = None

        self._today = today
        self._cards: dict[str, Card] = {}
        # Last state the store acknowledged, used for rollback.
        self._confirmed: dict[str, Card] = {}
        self._chips: list[FilterChip] = []
        self._predicate: Predicate = compile_chips([], today)
        self._seq = 0
        self._latest_seq: dict[str, int] = {}
        self._pending: dict[int, PendingMove] = {}
        self._stalled: list[PendingMove] = []
        self._tail: asyncio.Task | None = None
        self._listeners: list[Listener] = []

    # --- Observation ---

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Call ``listener`` after every state transition. Returns an unsubscribe function."""
        self._listeners.append(listener)
        return lambda: self._listeners.remove(listener)

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener(self)

    @property
    def is_ready(self) -> bool:
        return self.state != BoardState.LOADING

    @property
    def drag_in_flight(self) -> bool:
        return bool(self._pending or self._stalled)

    @property
    def chips(self) -> list[FilterChip]:
        return list(self._chips)

    def card(self, card_id: str) -> Card | None:
        return self._cards.get(card_id)

    def cards_in(self, column: str) -> list[Card]:
        """All cards of a column in display order, ignoring the filter."""
        return sort_cards([c for c in self._cards.values() if c.column == column])

    def visible(self, column: str) -> list[Card]:
        """Cards of a column that pass the active filter, in display order."""
        return list(apply(self._predicate, self.cards_in(column)))

    def board(self) -> dict[str, list[Card]]:
        """Visible cards for every column.

        Without configured columns, the idea workflow columns come first in
        workflow order, then any other columns by name.
        """
        columns = self.columns or _column_order({c.column for c in self._cards.values()})
        return {column: self.visible(column) for column in columns}

    # --- Intents ---

    async def load(self) -> None:
        """Fetch the owner's cards. Transport failures propagate."""
        cards = await self.store.list_cards(self.owner_id)
        self._cards = {c.id: c for c in cards}
        self._confirmed = dict(self._cards)
        self.state = BoardState.CLEAN
        self.last_error = None
        logger.debug("Loaded %d cards for owner %s", len(cards), self.owner_id)
        self._notify()

    def set_filter_chips(self, chips: Iterable[FilterChip]) -> None:
        self._chips = list(chips)
        self._predicate = compile_chips(self._chips, self._today)
        self._notify()

    def move_card(
        self, card_id: str, target_column: str, target_index: int
    ) -> asyncio.Future[CommitOutcome]:
        """Move one card; see ``move_cards``."""
        return self.move_cards([card_id], target_column, target_index)

    def move_cards(
        self, card_ids: Sequence[str], target_column: str, target_index: int
    ) -> asyncio.Future[CommitOutcome]:
        """Apply a move locally and queue its commit.

        Must be called from a running event loop. Returns a future that
        resolves to the commit outcome once every earlier commit of this
        session has resolved.

        Raises:
            ValidationError: For an unloaded board, unknown card or bad index.
                Nothing changes in that case.
        """
        if not self.is_ready:
            raise ValidationError("Board is not loaded")
        unknown = [cid for cid in card_ids if cid not in self._cards]
        if unknown:
            raise ValidationError(f"Unknown cards: {', '.join(unknown)}", field="card_id")

        plan = self.coordinator.plan_batch(
            card_ids, target_column, target_index, self.cards_in(target_column)
        )
        loop = asyncio.get_running_loop()
        if plan.is_empty:
            done: asyncio.Future[CommitOutcome] = loop.create_future()
            done.set_result(CommitOutcome(status=CommitStatus.NOOP, plan=plan))
            return done

        self._seq += 1
        move = PendingMove(seq=self._seq, plan=plan)
        for write in plan.writes:
            self._apply_write(write)
            self._latest_seq[write.card_id] = move.seq

        self._pending[move.seq] = move
        self.state = BoardState.PENDING_REORDER
        self._notify()

        move.task = self._enqueue(move)
        return move.task

    def retry(self) -> list[asyncio.Future[CommitOutcome]]:
        """Re-submit moves whose commit hit a transport failure.

        The writes sent are the current local positions of the cards the move
        still owns; cards moved again since are left to their newer commit.
        """
        stalled, self._stalled = self._stalled, []
        tasks = []
        for move in stalled:
            owned = [
                self._cards[cid]
                for cid in move.plan.card_ids
                if cid in self._cards and not self._superseded(cid, move.seq)
            ]
            writes = tuple(
                CardWrite(card_id=c.id, column=c.column, position=c.position) for c in owned
            )
            if not writes:
                continue
            move.plan = replace(move.plan, writes=writes)
            self._pending[move.seq] = move
            move.task = self._enqueue(move)
            tasks.append(move.task)
        self._update_state()
        self._notify()
        return tasks

    # --- Commit pipeline ---

    def _enqueue(self, move: PendingMove) -> asyncio.Task:
        previous = self._tail
        task = asyncio.get_running_loop().create_task(self._run(move, previous))
        self._tail = task
        return task

    async def _run(self, move: PendingMove, previous: asyncio.Task | None) -> CommitOutcome:
        if previous is not None and not previous.done():
            await asyncio.wait([previous])
        try:
            outcome = await self.coordinator.commit(move.plan)
        except BoardError as e:
            logger.warning("Commit of move %d raised %s", move.seq, type(e).__name__)
            outcome = CommitOutcome(status=CommitStatus.REJECTED, plan=move.plan, error=e)
        self._resolve(move, outcome)
        return outcome

    def _resolve(self, move: PendingMove, outcome: CommitOutcome) -> None:
        self._pending.pop(move.seq, None)

        if outcome.status == CommitStatus.TRANSPORT:
            # Outcome unknown: keep the optimistic positions until retried.
            logger.warning("Move %d left pending after transport failure", move.seq)
            self._stalled.append(move)
            self.last_error = outcome.error
        else:
            for write in outcome.confirmed:
                if write.card_id in self._confirmed:
                    self._confirmed[write.card_id] = _placed(self._confirmed[write.card_id], write)
                if not self._superseded(write.card_id, move.seq):
                    self._apply_write(write)
            if outcome.ok:
                self.last_error = None
            else:
                # Earlier commits have all resolved, so the confirmed copy is
                # what the store holds for these cards.
                rolled_back = [
                    cid
                    for cid in move.plan.card_ids
                    if cid in self._confirmed
                    and cid not in outcome.confirmed_ids
                    and not self._superseded(cid, move.seq)
                ]
                for cid in rolled_back:
                    self._cards[cid] = self._confirmed[cid]
                logger.info("Move %d rolled back for cards %s", move.seq, rolled_back)
                self.last_error = outcome.error

        # A newer move owns every card of these; their results no longer matter.
        self._stalled = [
            stalled
            for stalled in self._stalled
            if not all(self._superseded(cid, stalled.seq) for cid in stalled.plan.card_ids)
        ]
        self._update_state()
        self._notify()

    def _superseded(self, card_id: str, seq: int) -> bool:
        return self._latest_seq.get(card_id, -1) > seq

    def _apply_write(self, write: CardWrite) -> None:
        card = self._cards.get(write.card_id)
        if card is not None:
            self._cards[write.card_id] = _placed(card, write)

    def _update_state(self) -> None:
        if self.state == BoardState.LOADING:
            return
        self.state = BoardState.PENDING_REORDER if self.drag_in_flight else BoardState.CLEAN


def _column_order(present: set[str]) -> list[str]:
    known = [c for c in IDEA_COLUMNS if c in present]
    return known + sorted(present.difference(IDEA_COLUMNS))


def _placed(card: Card, write: CardWrite) -> Card:
    return replace(
        card,
        column=write.column,
        position=write.position,
        updated_at=write.updated_at or card.updated_at,
    )
