# goalfund/crud/goal.py
from datetime import date, datetime, timedelta
from decimal import Decimal
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from sqlalchemy import desc, func
from goalfund.core.database import utcnow
from goalfund.core.db_utils import with_db_retry
from goalfund.models.goal import Goal, GoalStatus
from typing import List, Optional, Sequence
import uuid


def _active_filter(user_id: uuid.UUID):
    return (
        Goal.user_id == user_id,
        Goal.status == GoalStatus.active,
        Goal.deleted_at.is_(None),
    )


@with_db_retry()
async def list_active_goals(user_id: uuid.UUID, db: AsyncSession, for_update: bool = False) -> List[Goal]:
    """Active goals, most recently created first.

    The order is load-bearing: it decides rounding ties and the order in which
    allocations are written.
    """
    query = (
        select(Goal)
        .where(*_active_filter(user_id))
        .order_by(desc(Goal.created_at), desc(Goal.id))
    )
    if for_update:
        # Row locks on Postgres; ignored by SQLite
        query = query.with_for_update()
    result = await db.execute(query)
    return list(result.scalars().all())


async def get_goals_for_user(user_id: uuid.UUID, db: AsyncSession, include_deleted: bool = False) -> List[Goal]:
    query = select(Goal).where(Goal.user_id == user_id)
    if not include_deleted:
        query = query.where(Goal.deleted_at.is_(None))
    result = await db.execute(query.order_by(desc(Goal.created_at), desc(Goal.id)))
    return list(result.scalars().all())


@with_db_retry()
async def get_goal_by_id(goal_id: uuid.UUID, user_id: uuid.UUID, db: AsyncSession) -> Optional[Goal]:
    result = await db.execute(
        select(Goal).where(Goal.id == goal_id, Goal.user_id == user_id, Goal.deleted_at.is_(None))
    )
    return result.scalar_one_or_none()


async def get_active_goal_ids(user_id: uuid.UUID, goal_ids: Sequence[uuid.UUID], db: AsyncSession) -> set:
    if not goal_ids:
        return set()
    result = await db.execute(
        select(Goal.id).where(*_active_filter(user_id), Goal.id.in_(list(goal_ids)))
    )
    return {row[0] for row in result.all()}


async def insert_goal(
    user_id: uuid.UUID,
    title: str,
    target_amount: Decimal,
    db: AsyncSession,
    target_date: Optional[date] = None,
    percentage_allocation: Optional[Decimal] = None,
) -> Goal:
    """Add a goal row to the session (flushed, not committed)."""
    created_at = utcnow()
    # Keep creation times strictly increasing per user so registry order is total
    latest = (await db.execute(select(func.max(Goal.created_at)).where(Goal.user_id == user_id))).scalar()
    if latest is not None and created_at <= latest:
        created_at = latest + timedelta(microseconds=1)

    goal = Goal(
        user_id=user_id,
        title=title,
        target_amount=target_amount,
        target_date=target_date,
        percentage_allocation=percentage_allocation if percentage_allocation is not None else Decimal("0"),
        is_custom_percentage=percentage_allocation is not None,
        status=GoalStatus.active,
        created_at=created_at,
    )
    db.add(goal)
    await db.flush()
    return goal


async def mark_completed(goal: Goal, db: AsyncSession, completed_at: Optional[datetime] = None) -> bool:
    """Flip an active goal to completed. Returns False if it already was."""
    if goal.status == GoalStatus.completed:
        return False
    goal.status = GoalStatus.completed
    goal.completed_at = completed_at or utcnow()
    db.add(goal)
    await db.flush()
    return True


async def soft_delete_goal(goal: Goal, db: AsyncSession) -> None:
    goal.deleted_at = utcnow()
    db.add(goal)
    await db.flush()
