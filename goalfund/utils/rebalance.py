# goalfund/utils/rebalance.py
import logging
import uuid
from typing import List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from goalfund.crud.goal import list_active_goals
from goalfund.crud.settings import get_settings
from goalfund.models.goal import Goal
from goalfund.utils.budgeting import Number, compute_goal_percentages, to_percent

logger = logging.getLogger(__name__)


async def rebalance_percentages(
    user_id: uuid.UUID,
    db: AsyncSession,
    goals_percentage: Optional[Number] = None,
) -> List[Goal]:
    """
    Recompute percentage_allocation for the user's active goals.

    Runs whenever the active goal set (or goals_percentage) changes. Goals
    with a custom percentage keep it; the others share the rest of
    goals_percentage equally. Flushes but does not commit, so it joins the
    caller's unit of work. Running it twice changes nothing the second time.
    """
    if goals_percentage is None:
        goals_percentage = (await get_settings(user_id, db)).goals_percentage

    goals = await list_active_goals(user_id, db)
    new_percentages = compute_goal_percentages(
        goals_percentage,
        [(bool(g.is_custom_percentage), g.percentage_allocation or 0) for g in goals],
    )

    changed = 0
    for goal, pct in zip(goals, new_percentages):
        if to_percent(goal.percentage_allocation or 0) != pct:
            goal.percentage_allocation = pct
            db.add(goal)
            changed += 1
    if changed:
        await db.flush()
        logger.info(f"Rebalanced {changed} of {len(goals)} goal percentages for user {user_id} (goals={to_percent(goals_percentage)}%)")
    return goals

