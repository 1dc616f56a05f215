# goalfund/utils/goals.py
"""
Goal registry operations.

Each function is one unit of work: it validates, writes, rebalances the
user's goal percentages and commits, under the user's funding lock so it
cannot interleave with an allocation for the same user.
"""
import logging
import uuid
from datetime import date
from decimal import Decimal
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from goalfund.core.exceptions import GoalNotFound, ValidationError
from goalfund.core.locks import get_user_lock
from goalfund.crud.goal import get_goal_by_id, insert_goal, list_active_goals, soft_delete_goal
from goalfund.crud.settings import get_settings
from goalfund.models.goal import Goal, GoalStatus
from goalfund.utils.budgeting import Number, to_money, to_percent
from goalfund.utils.duplicates import check_goal_is_new
from goalfund.utils.events import GOALS_REBALANCED, GoalFundEvent, emit
from goalfund.utils.rebalance import rebalance_percentages

logger = logging.getLogger(__name__)


async def _check_custom_percentage(user_id: uuid.UUID, percentage: Decimal, db: AsyncSession,
                                   exclude_goal_id: Optional[uuid.UUID] = None) -> None:
    if percentage < 0 or percentage > 100:
        raise ValidationError("Goal percentage must be between 0 and 100", details={"field": "percentage_allocation"})
    goals_percentage = to_percent((await get_settings(user_id, db)).goals_percentage)
    custom_total = sum(
        (to_percent(g.percentage_allocation or 0) for g in await list_active_goals(user_id, db)
         if g.is_custom_percentage and g.id != exclude_goal_id),
        Decimal("0.00"),
    )
    if custom_total + percentage > goals_percentage:
        raise ValidationError(
            f"Custom goal percentages would total {custom_total + percentage}%, "
            f"more than the {goals_percentage}% reserved for goals",
            details={"field": "percentage_allocation", "available": str(goals_percentage - custom_total)},
        )


async def get_goal(goal_id: uuid.UUID, user_id: uuid.UUID, db: AsyncSession) -> Goal:
    goal = await get_goal_by_id(goal_id, user_id, db)
    if goal is None:
        raise GoalNotFound(f"Goal {goal_id} not found", details={"goal_id": str(goal_id)})
    return goal


async def create_goal(
    user_id: uuid.UUID,
    title: str,
    target_amount: Number,
    db: AsyncSession,
    target_date: Optional[date] = None,
    percentage_allocation: Optional[Number] = None,
) -> Goal:
    """Create an active goal after the duplicate check, then rebalance percentages."""
    title = (title or "").strip()
    if not title:
        raise ValidationError("Goal title is required", details={"field": "title"})
    if target_amount is None or to_money(target_amount) <= 0:
        raise ValidationError("Goal target amount must be greater than zero", details={"field": "target_amount"})

    async with get_user_lock(user_id):
        try:
            await check_goal_is_new(user_id, title, db)
            pct = None
            if percentage_allocation is not None:
                pct = to_percent(percentage_allocation)
                await _check_custom_percentage(user_id, pct, db)
            goal = await insert_goal(
                user_id, title, to_money(target_amount), db,
                target_date=target_date, percentage_allocation=pct,
            )
            await rebalance_percentages(user_id, db)
            await db.commit()
        except Exception:
            await db.rollback()
            raise

    await db.refresh(goal)
    logger.info(f"Created goal '{goal.title}' ({goal.target_amount}) for user {user_id} at {goal.percentage_allocation}%")
    await emit(GoalFundEvent(GOALS_REBALANCED, user_id, {"reason": "goal_created", "goal_id": str(goal.id)}))
    return goal


async def delete_goal(goal: Goal, db: AsyncSession) -> None:
    """Retire a goal from future funding. Its allocations stay for the audit trail."""
    if goal.status == GoalStatus.completed:
        raise ValidationError("Completed goals cannot be deleted", details={"goal_id": str(goal.id)})

    async with get_user_lock(goal.user_id):
        try:
            await soft_delete_goal(goal, db)
            await rebalance_percentages(goal.user_id, db)
            await db.commit()
        except Exception:
            await db.rollback()
            raise

    logger.info(f"Deleted goal '{goal.title}' for user {goal.user_id}")
    await emit(GoalFundEvent(GOALS_REBALANCED, goal.user_id, {"reason": "goal_deleted", "goal_id": str(goal.id)}))


async def set_goal_percentage(goal: Goal, percentage: Optional[Number], db: AsyncSession) -> Goal:
    """Pin a custom percentage on an active goal, or pass None to go back to the equal share."""
    if not goal.is_active:
        raise ValidationError("Only active goals take a funding percentage", details={"goal_id": str(goal.id)})

    async with get_user_lock(goal.user_id):
        try:
            if percentage is None:
                goal.is_custom_percentage = False
            else:
                pct = to_percent(percentage)
                await _check_custom_percentage(goal.user_id, pct, db, exclude_goal_id=goal.id)
                goal.is_custom_percentage = True
                goal.percentage_allocation = pct
            db.add(goal)
            await db.flush()
            await rebalance_percentages(goal.user_id, db)
            await db.commit()
        except Exception:
            await db.rollback()
            raise

    await db.refresh(goal)
    await emit(GoalFundEvent(GOALS_REBALANCED, goal.user_id, {"reason": "percentage_changed", "goal_id": str(goal.id)}))
    return goal
