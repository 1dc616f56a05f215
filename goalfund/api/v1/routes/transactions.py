# goalfund/api/v1/routes/transactions.py
from typing import List, Optional
import uuid

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from goalfund.api.deps import get_current_user_id
from goalfund.core.database import get_async_session
from goalfund.core.exceptions import GoalNotFound, TransactionNotFound, ValidationError
from goalfund.crud.goal import get_active_goal_ids
from goalfund.crud.transaction import create_transaction_for_user, get_transaction_by_id, get_transactions_for_user
from goalfund.schemas.allocation import AllocationResultRead
from goalfund.schemas.transaction import IncomeCreate, TransactionCreate, TransactionRead
from goalfund.utils.allocation import allocate_income
from goalfund.utils.budgeting import AllocationOverride
from goalfund.utils.intents import to_allocation_read

router = APIRouter(prefix="/transactions", tags=["transactions"])


def _override_from(override_goal_id: Optional[uuid.UUID], override_amount) -> Optional[AllocationOverride]:
    if override_goal_id is None and override_amount is None:
        return None
    if override_goal_id is None or override_amount is None:
        raise ValidationError(
            "Manual override needs both override_goal_id and override_amount",
            details={"field": "override_goal_id" if override_goal_id is None else "override_amount"},
        )
    return AllocationOverride(goal_id=override_goal_id, amount=override_amount)


@router.get("", response_model=List[TransactionRead])
async def read_transactions(
    limit: int = Query(100, ge=1, le=500),
    db: AsyncSession = Depends(get_async_session),
    user_id: uuid.UUID = Depends(get_current_user_id),
):
    return await get_transactions_for_user(user_id, db, limit=limit)


@router.post("/income", response_model=AllocationResultRead, status_code=status.HTTP_201_CREATED)
async def record_income(
    income_in: IncomeCreate,
    db: AsyncSession = Depends(get_async_session),
    user_id: uuid.UUID = Depends(get_current_user_id),
):
    """
    Record an income transaction and fund the user's goals from it.

    - **override_goal_id** / **override_amount**: send a fixed amount to one
      goal; the rest of the goals bucket is split across the other goals.
    """
    override = _override_from(income_in.override_goal_id, income_in.override_amount)
    # Reject a bad override before the income is recorded
    if override is not None and not await get_active_goal_ids(user_id, [override.goal_id], db):
        raise GoalNotFound(f"Goal {override.goal_id} is not an active goal")
    tx = await create_transaction_for_user(
        user_id,
        TransactionCreate(
            description=income_in.description,
            amount=income_in.amount,
            transaction_date=income_in.transaction_date,
            type="income",
        ),
        db,
    )
    result = await allocate_income(tx, db, override=override)
    return to_allocation_read(result)


@router.post("/{transaction_id}/allocate", response_model=AllocationResultRead)
async def allocate_transaction(
    transaction_id: uuid.UUID,
    override_goal_id: Optional[uuid.UUID] = Query(None),
    override_amount: Optional[float] = Query(None, gt=0),
    db: AsyncSession = Depends(get_async_session),
    user_id: uuid.UUID = Depends(get_current_user_id),
):
    """Allocate an income transaction that was recorded without funding (e.g. synced from the ledger)."""
    tx = await get_transaction_by_id(transaction_id, user_id, db)
    if tx is None:
        raise TransactionNotFound(f"Transaction {transaction_id} not found")
    override = _override_from(override_goal_id, override_amount)
    result = await allocate_income(tx, db, override=override)
    return to_allocation_read(result)
