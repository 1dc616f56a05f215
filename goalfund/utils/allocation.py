# goalfund/utils/allocation.py
"""
Income allocation engine.

allocate_income() turns one income transaction into goal allocations:

1. return the recorded result if the transaction was already allocated,
   otherwise load the user's budget settings and active goals (with funded sums),
2. let plan_income_allocation() decide the split (pure, see budgeting.py),
3. check the snapshot is still current and write every allocation, the
   transaction's is_allocated flag and any goal completions in one commit.

Funding for one user is serialized by the user's lock; a snapshot that went
stale anyway (another process, a goal deleted meanwhile) raises
ConcurrencyConflict and the whole attempt is retried once against fresh state.
"""
import logging
import uuid
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, List, Optional, Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from goalfund.core.db_utils import with_conflict_retry
from goalfund.core.exceptions import ConcurrencyConflict, TransactionNotFound, ValidationError
from goalfund.core.locks import get_user_lock
from goalfund.crud.allocation import (
    get_funded_amounts,
    insert_allocations,
    list_allocations_for_transaction,
)
from goalfund.crud.goal import get_active_goal_ids, list_active_goals
from goalfund.crud.settings import load_settings_for_allocation
from goalfund.crud.transaction import get_transaction_by_id, mark_allocated
from goalfund.models.allocation import AllocationType, GoalAllocation
from goalfund.models.goal import Goal
from goalfund.models.transaction import Transaction, TransactionType
from goalfund.utils.budgeting import (
    AllocationOverride,
    AllocationPlan,
    BudgetBreakdown,
    GoalSnapshot,
    SettingsSnapshot,
    compute_buckets,
    plan_income_allocation,
    to_money,
)
from goalfund.utils.events import ALLOCATION_CREATED, GOAL_COMPLETED, GoalFundEvent, emit
from goalfund.utils.progress import recompute_in_transaction

logger = logging.getLogger(__name__)


@dataclass
class AllocationResult:
    transaction_id: uuid.UUID
    user_id: uuid.UUID
    breakdown: BudgetBreakdown
    allocations: List[GoalAllocation] = field(default_factory=list)
    unallocated: Decimal = Decimal("0.00")
    completed_goal_ids: List[uuid.UUID] = field(default_factory=list)
    already_allocated: bool = False

    @property
    def allocated(self) -> Decimal:
        return sum((to_money(a.amount) for a in self.allocations), Decimal("0.00"))


def build_goal_snapshots(goals: Sequence[Goal], funded: Dict[uuid.UUID, Decimal]) -> List[GoalSnapshot]:
    return [
        GoalSnapshot(
            goal_id=g.id,
            title=g.title,
            target_amount=to_money(g.target_amount),
            funded_amount=funded.get(g.id, Decimal("0.00")),
            percentage_allocation=g.percentage_allocation or Decimal("0"),
            is_custom_percentage=bool(g.is_custom_percentage),
        )
        for g in goals
    ]


def _allocation_note(allocation_type: AllocationType, description: Optional[str]) -> str:
    source = description or "income"
    if allocation_type == AllocationType.manual:
        return f"Manual allocation from income: {source}"[:255]
    return f"Auto-allocated from income: {source}"[:255]


async def _verify_snapshot(user_id: uuid.UUID, plan: AllocationPlan,
                           snapshots: Sequence[GoalSnapshot], db: AsyncSession) -> None:
    """Raise ConcurrencyConflict if a planned goal vanished or its funding moved."""
    planned_ids = [a.goal_id for a in plan.allocations]
    if not planned_ids:
        return
    live_ids = await get_active_goal_ids(user_id, planned_ids, db)
    missing = [str(goal_id) for goal_id in planned_ids if goal_id not in live_ids]
    if missing:
        raise ConcurrencyConflict("Goals are no longer active", details={"goal_ids": missing})

    current = await get_funded_amounts(planned_ids, db)
    expected = {s.goal_id: s.funded_amount for s in snapshots}
    stale = [str(goal_id) for goal_id in planned_ids if current.get(goal_id) != expected.get(goal_id)]
    if stale:
        raise ConcurrencyConflict("Goal funding changed while allocating", details={"goal_ids": stale})


@with_conflict_retry()
async def _allocate_once(
    transaction_id: uuid.UUID,
    user_id: uuid.UUID,
    db: AsyncSession,
    override: Optional[AllocationOverride],
) -> AllocationResult:
    try:
        tx = await get_transaction_by_id(transaction_id, user_id, db)
        if tx is None:
            raise TransactionNotFound(f"Transaction {transaction_id} not found")
        if tx.type != TransactionType.income:
            raise ValidationError("Only income transactions can fund goals", details={"transaction_id": str(tx.id)})

        if tx.is_allocated:
            existing = await list_allocations_for_transaction(tx.id, db)
            if tx.goals_amount is not None:
                breakdown = BudgetBreakdown(
                    amount=to_money(tx.amount),
                    expenses=to_money(tx.expenses_amount),
                    savings=to_money(tx.savings_amount),
                    goals=to_money(tx.goals_amount),
                )
            else:
                # Flagged allocated without a recorded split; today's settings are the best guess
                budget = SettingsSnapshot.from_model(await load_settings_for_allocation(user_id, db))
                breakdown = compute_buckets(tx.amount, budget)
            await db.commit()
            logger.info(f"Transaction {tx.id} was already allocated; returning {len(existing)} existing allocations")
            return AllocationResult(
                transaction_id=tx.id,
                user_id=user_id,
                breakdown=breakdown,
                allocations=existing,
                unallocated=max(breakdown.goals - sum((to_money(a.amount) for a in existing), Decimal("0.00")), Decimal("0.00")),
                already_allocated=True,
            )

        budget = SettingsSnapshot.from_model(await load_settings_for_allocation(user_id, db))

        goals = await list_active_goals(user_id, db, for_update=True)
        funded = await get_funded_amounts([g.id for g in goals], db)
        snapshots = build_goal_snapshots(goals, funded)
        plan = plan_income_allocation(tx.amount, budget, snapshots, override)
        logger.debug(
            f"Income {tx.amount} for user {user_id}: expenses={plan.breakdown.expenses} "
            f"savings={plan.breakdown.savings} goals={plan.breakdown.goals} across {len(goals)} goals"
        )

        await _verify_snapshot(user_id, plan, snapshots, db)

        rows = await insert_allocations(
            user_id,
            tx.id,
            tx.transaction_date,
            [(a.goal_id, a.amount, a.allocation_type, _allocation_note(a.allocation_type, tx.description))
             for a in plan.allocations],
            db,
        )
        await mark_allocated(tx, db, plan.breakdown)

        completed: List[uuid.UUID] = []
        goals_by_id = {g.id: g for g in goals}
        for planned in plan.allocations:
            progress = await recompute_in_transaction(goals_by_id[planned.goal_id], db)
            if progress.just_completed:
                completed.append(planned.goal_id)

        await db.commit()
    except Exception as e:
        await db.rollback()
        if not isinstance(e, (ConcurrencyConflict, ValidationError, TransactionNotFound)):
            logger.error(f"Allocation of transaction {transaction_id} rolled back: {e}")
        raise

    if plan.unallocated > 0:
        logger.info(f"{plan.unallocated} of the goals bucket for transaction {transaction_id} left unallocated")
    logger.info(
        f"Allocated {plan.allocated} from transaction {transaction_id} to {len(rows)} goals "
        f"for user {user_id} ({len(completed)} completed)"
    )
    return AllocationResult(
        transaction_id=transaction_id,
        user_id=user_id,
        breakdown=plan.breakdown,
        allocations=rows,
        unallocated=plan.unallocated,
        completed_goal_ids=completed,
    )


async def allocate_income(
    transaction: Transaction,
    db: AsyncSession,
    override: Optional[AllocationOverride] = None,
) -> AllocationResult:
    """
    Distribute the goals bucket of an income transaction across the user's
    active goals and record each share as a GoalAllocation.

    All allocations of the transaction, its is_allocated flag and any goal
    completions are committed together or not at all. A transaction that was
    already allocated is returned as-is with ``already_allocated=True``.
    """
    transaction_id, user_id = transaction.id, transaction.user_id
    async with get_user_lock(user_id):
        result = await _allocate_once(transaction_id, user_id, db, override)

    if not result.already_allocated:
        if result.allocations:
            await emit(GoalFundEvent(ALLOCATION_CREATED, user_id, {
                "transaction_id": str(transaction_id),
                "allocations": [
                    {"goal_id": str(a.goal_id), "amount": str(a.amount), "allocation_type": a.allocation_type.value}
                    for a in result.allocations
                ],
                "unallocated": str(result.unallocated),
            }))
        for goal_id in result.completed_goal_ids:
            await emit(GoalFundEvent(GOAL_COMPLETED, user_id, {"goal_id": str(goal_id)}))
    return result
