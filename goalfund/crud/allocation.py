# goalfund/crud/allocation.py
from datetime import date
from decimal import Decimal
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from sqlalchemy import func
from goalfund.core.db_utils import with_db_retry
from goalfund.models.allocation import GoalAllocation, AllocationType
from typing import Dict, Iterable, List, Optional, Sequence, Tuple
import uuid


@with_db_retry()
async def get_funded_amount(goal_id: uuid.UUID, db: AsyncSession) -> Decimal:
    result = await db.execute(
        select(func.coalesce(func.sum(GoalAllocation.amount), 0)).where(GoalAllocation.goal_id == goal_id)
    )
    return Decimal(str(result.scalar() or 0)).quantize(Decimal("0.01"))


@with_db_retry()
async def get_funded_amounts(goal_ids: Sequence[uuid.UUID], db: AsyncSession) -> Dict[uuid.UUID, Decimal]:
    """Sum of allocations per goal; goals without allocations map to 0."""
    funded = {goal_id: Decimal("0.00") for goal_id in goal_ids}
    if not goal_ids:
        return funded
    result = await db.execute(
        select(GoalAllocation.goal_id, func.sum(GoalAllocation.amount))
        .where(GoalAllocation.goal_id.in_(list(goal_ids)))
        .group_by(GoalAllocation.goal_id)
    )
    for goal_id, total in result.all():
        funded[goal_id] = Decimal(str(total or 0)).quantize(Decimal("0.01"))
    return funded


async def insert_allocations(
    user_id: uuid.UUID,
    transaction_id: uuid.UUID,
    allocation_date: date,
    rows: Iterable[Tuple[uuid.UUID, Decimal, AllocationType, Optional[str]]],
    db: AsyncSession,
) -> List[GoalAllocation]:
    """Stage allocation rows (goal_id, amount, type, notes) and flush them together."""
    new_instances = [
        GoalAllocation(
            user_id=user_id,
            goal_id=goal_id,
            transaction_id=transaction_id,
            amount=amount,
            allocation_type=allocation_type,
            allocation_date=allocation_date,
            notes=notes,
        )
        for goal_id, amount, allocation_type, notes in rows
    ]
    if not new_instances:
        return []
    db.add_all(new_instances)
    await db.flush()
    return new_instances


async def list_allocations_for_goal(goal_id: uuid.UUID, db: AsyncSession) -> List[GoalAllocation]:
    """Chronological allocation history of a goal"""
    result = await db.execute(
        select(GoalAllocation)
        .where(GoalAllocation.goal_id == goal_id)
        .order_by(GoalAllocation.allocation_date, GoalAllocation.created_at, GoalAllocation.id)
    )
    return list(result.scalars().all())


async def list_allocations_for_transaction(transaction_id: uuid.UUID, db: AsyncSession) -> List[GoalAllocation]:
    result = await db.execute(
        select(GoalAllocation)
        .where(GoalAllocation.transaction_id == transaction_id)
        .order_by(GoalAllocation.created_at)
    )
    return list(result.scalars().all())
