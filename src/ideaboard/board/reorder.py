"""Reorder coordinator - turns drag gestures into position writes."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Sequence
from dataclasses import replace
from datetime import datetime

from .errors import (
    AuthorizationError,
    BoardError,
    ConflictError,
    PrecisionExhausted,
    TransportError,
    ValidationError,
)
from .models import (
    Card,
    CardWrite,
    CommitOutcome,
    CommitStatus,
    FailureReason,
    MoveIntent,
    RowFailure,
    WritePlan,
    sort_cards,
    utcnow,
)
from .positions import allocate_many, needs_renumber, spaced_positions
from .store import CardStore

logger = logging.getLogger(__name__)

# Row failures that mean "not yours". Row-level access control hides rows
# owned by others, so a missing row is treated the same way.
_AUTH_REASONS = {FailureReason.FORBIDDEN, FailureReason.NOT_FOUND}


class ReorderCoordinator:
    """Plans and commits card moves for one owner.

    Planning is synchronous and pure; ``commit`` awaits the store.
    """

    def __init__(
        self,
        store: CardStore,
        owner_id: str,
        columns: Iterable[str] | None = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.store = store
        self.owner_id = owner_id
        self.columns = frozenset(columns) if columns is not None else None
        self._clock = clock

    # --- Planning ---

    def plan_move(
        self,
        card_id: str,
        target_column: str,
        target_index: int,
        current_column_order: Sequence[Card],
    ) -> WritePlan:
        """Plan moving one card to ``target_index`` of ``target_column``.

        ``current_column_order`` is the target column as the user sees it.
        The index refers to that order with the moved card removed.
        """
        if not card_id:
            raise ValidationError("Card id is required", field="card_id")
        return self.plan_batch([card_id], target_column, target_index, current_column_order)

    def plan_batch(
        self,
        card_ids: Sequence[str],
        target_column: str,
        target_index: int,
        current_column_order: Sequence[Card],
    ) -> WritePlan:
        """Plan moving several cards so they land together at ``target_index``.

        The cards keep the order given in ``card_ids``. An empty list yields an
        empty plan.
        """
        ids = tuple(dict.fromkeys(card_ids))
        intent = MoveIntent(card_ids=ids, target_column=target_column, target_index=target_index)
        if not ids:
            return WritePlan(intent=intent)

        self._validate_column(target_column)

        order = sort_cards([c for c in current_column_order if c.column == target_column])
        moving = set(ids)
        remaining = [c for c in order if c.id not in moving]

        if target_index < 0 or target_index > len(remaining):
            raise ValidationError(
                f"Target index {target_index} out of range 0..{len(remaining)}",
                field="target_index",
            )

        current_ids = [c.id for c in order]
        new_ids = (
            [c.id for c in remaining[:target_index]]
            + list(ids)
            + [c.id for c in remaining[target_index:]]
        )
        if current_ids == new_ids:
            return WritePlan(intent=intent)

        before = remaining[target_index - 1].position if target_index > 0 else None
        after = remaining[target_index].position if target_index < len(remaining) else None

        try:
            if needs_renumber([c.position for c in remaining]):
                raise PrecisionExhausted(before, after)
            positions = allocate_many(before, after, len(ids))
        except PrecisionExhausted:
            logger.info(
                "Renumbering column %s for owner %s (%d cards)",
                target_column,
                self.owner_id,
                len(new_ids),
            )
            writes = self._renumber_writes(new_ids, ids, target_column)
            return WritePlan(intent=intent, writes=writes, renumbered=True)

        writes = tuple(
            CardWrite(card_id=cid, column=target_column, position=pos)
            for cid, pos in zip(ids, positions, strict=True)
        )
        return WritePlan(intent=intent, writes=writes)

    def _renumber_writes(
        self, new_ids: list[str], moved: tuple[str, ...], column: str
    ) -> tuple[CardWrite, ...]:
        position_of = dict(zip(new_ids, spaced_positions(len(new_ids)), strict=True))
        moved_set = set(moved)
        others = [cid for cid in new_ids if cid not in moved_set]
        return tuple(
            CardWrite(card_id=cid, column=column, position=position_of[cid])
            for cid in [*moved, *others]
        )

    def _validate_column(self, column: str) -> None:
        if not column:
            raise ValidationError("Target column is required", field="target_column")
        if self.columns is not None and column not in self.columns:
            raise ValidationError(f"Unknown column: {column}", field="target_column")

    # --- Commit ---

    async def commit(self, plan: WritePlan) -> CommitOutcome:
        """Submit a plan to the store.

        Any row failure fails the plan; the outcome reports which rows were
        confirmed so the caller can reconcile. A position conflict is retried
        once against a fresh snapshot of the target column.
        """
        if plan.is_empty:
            return CommitOutcome(status=CommitStatus.NOOP, plan=plan)

        outcome = await self._submit(plan)
        if outcome.status != CommitStatus.CONFLICT:
            return outcome

        logger.warning(
            "Position conflict in column %s for cards %s, retrying with fresh snapshot",
            plan.intent.target_column,
            [f.card_id for f in outcome.failed],
        )
        try:
            fresh = await self.store.list_cards(self.owner_id, plan.intent.target_column)
        except BoardError as e:
            logger.warning("Snapshot refresh failed: %s", e)
            status = (
                CommitStatus.TRANSPORT if isinstance(e, TransportError) else CommitStatus.REJECTED
            )
            return replace(outcome, status=status, error=e, retried=True)

        moving = set(plan.intent.card_ids)
        remaining = [c for c in fresh if c.id not in moving]
        index = min(plan.intent.target_index, len(remaining))
        retry_plan = self.plan_batch(
            plan.intent.card_ids, plan.intent.target_column, index, fresh
        )
        if retry_plan.is_empty:
            return CommitOutcome(
                status=CommitStatus.OK, plan=plan, confirmed=outcome.confirmed, retried=True
            )

        second = await self._submit(retry_plan)
        confirmed = {w.card_id: w for w in outcome.confirmed}
        confirmed.update({w.card_id: w for w in second.confirmed})
        second.confirmed = list(confirmed.values())
        second.retried = True
        if second.status == CommitStatus.CONFLICT:
            logger.warning(
                "Position conflict persisted after retry in column %s",
                plan.intent.target_column,
            )
        return second

    async def _submit(self, plan: WritePlan) -> CommitOutcome:
        stamp = self._clock()
        writes = [replace(w, updated_at=stamp) for w in plan.writes]

        try:
            result = await self.store.update_cards(self.owner_id, writes)
        except TransportError as e:
            logger.warning("Commit of %d writes failed: %s", len(writes), e.message)
            return CommitOutcome(status=CommitStatus.TRANSPORT, plan=plan, error=e)
        except AuthorizationError as e:
            failed = [RowFailure(w.card_id, FailureReason.FORBIDDEN) for w in writes]
            return CommitOutcome(status=CommitStatus.FORBIDDEN, plan=plan, failed=failed, error=e)
        except ConflictError as e:
            failed = [RowFailure(w.card_id, FailureReason.CONFLICT) for w in writes]
            return CommitOutcome(status=CommitStatus.CONFLICT, plan=plan, failed=failed, error=e)
        except BoardError as e:
            logger.warning("Store rejected %d writes: %s", len(writes), e)
            return CommitOutcome(status=CommitStatus.REJECTED, plan=plan, error=e)

        by_id = {w.card_id: w for w in writes}
        confirmed = [by_id[cid] for cid in result.succeeded if cid in by_id]
        if result.ok:
            return CommitOutcome(status=CommitStatus.OK, plan=plan, confirmed=confirmed)

        denied = [f.card_id for f in result.failed if f.reason in _AUTH_REASONS]
        if denied:
            logger.warning("Store refused writes for cards %s", denied)
            return CommitOutcome(
                status=CommitStatus.FORBIDDEN,
                plan=plan,
                confirmed=confirmed,
                failed=list(result.failed),
                error=AuthorizationError(card_ids=denied),
            )

        return CommitOutcome(
            status=CommitStatus.CONFLICT,
            plan=plan,
            confirmed=confirmed,
            failed=list(result.failed),
            error=ConflictError([f.card_id for f in result.failed]),
        )
