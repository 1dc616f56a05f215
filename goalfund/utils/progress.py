# goalfund/utils/progress.py
import logging
import uuid
from dataclasses import dataclass
from decimal import Decimal
from typing import List

from sqlalchemy.ext.asyncio import AsyncSession

from goalfund.core.exceptions import GoalNotFound
from goalfund.core.locks import get_user_lock
from goalfund.crud.allocation import get_funded_amount, list_allocations_for_goal
from goalfund.crud.goal import get_goal_by_id, mark_completed
from goalfund.models.allocation import GoalAllocation
from goalfund.models.goal import Goal, GoalStatus
from goalfund.utils.budgeting import HUNDRED, to_money
from goalfund.utils.events import GOAL_COMPLETED, GoalFundEvent, emit
from goalfund.utils.rebalance import rebalance_percentages

logger = logging.getLogger(__name__)


@dataclass
class GoalProgress:
    goal: Goal
    funded_amount: Decimal
    remaining_amount: Decimal
    progress_percentage: Decimal
    just_completed: bool = False

    @property
    def is_completed(self) -> bool:
        return self.goal.status == GoalStatus.completed


def build_goal_progress(goal: Goal, funded_amount: Decimal, just_completed: bool = False) -> GoalProgress:
    target = to_money(goal.target_amount)
    funded = to_money(funded_amount)
    remaining = max(target - funded, Decimal("0.00"))
    pct = min(funded / target * HUNDRED, HUNDRED) if target > 0 else Decimal("0")
    return GoalProgress(
        goal=goal,
        funded_amount=funded,
        remaining_amount=remaining,
        progress_percentage=to_money(pct),
        just_completed=just_completed,
    )


async def recompute_in_transaction(goal: Goal, db: AsyncSession) -> GoalProgress:
    """
    Sum the goal's allocations and complete it once the target is reached.

    Completion frees the goal's share, so the user's remaining goals are
    rebalanced. Flushes only; the caller owns the commit. A completed goal is
    left untouched.
    """
    funded = await get_funded_amount(goal.id, db)
    just_completed = False
    if goal.status == GoalStatus.active and goal.deleted_at is None and funded >= to_money(goal.target_amount):
        just_completed = await mark_completed(goal, db)
        if just_completed:
            logger.info(f"🎯 Goal '{goal.title}' reached {funded}/{goal.target_amount} and is now completed")
            await rebalance_percentages(goal.user_id, db)
    return build_goal_progress(goal, funded, just_completed)


async def recompute(goal_id: uuid.UUID, user_id: uuid.UUID, db: AsyncSession) -> GoalProgress:
    """Recompute one goal on its own (outside a funding event) and commit."""
    async with get_user_lock(user_id):
        try:
            goal = await get_goal_by_id(goal_id, user_id, db)
            if goal is None:
                raise GoalNotFound(f"Goal {goal_id} not found")
            progress = await recompute_in_transaction(goal, db)
            await db.commit()
        except Exception:
            await db.rollback()
            raise

    if progress.just_completed:
        await emit(GoalFundEvent(GOAL_COMPLETED, user_id, {"goal_id": str(goal_id)}))
    return progress


async def get_goal_progress(goal: Goal, db: AsyncSession) -> GoalProgress:
    """Read-only progress for reporting"""
    return build_goal_progress(goal, await get_funded_amount(goal.id, db))


async def list_goal_allocations(goal_id: uuid.UUID, db: AsyncSession) -> List[GoalAllocation]:
    """Audit trail of a goal's funding, oldest first."""
    return await list_allocations_for_goal(goal_id, db)
