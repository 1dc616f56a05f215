# goalfund/api/v1/routes/settings.py
from decimal import Decimal
import uuid

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from goalfund.api.deps import get_current_user_id
from goalfund.core.database import get_async_session
from goalfund.crud.settings import get_settings, update_settings
from goalfund.schemas.settings import BudgetBreakdownRead, BudgetSettingsRead, BudgetSettingsUpdate
from goalfund.utils.budgeting import SettingsSnapshot, compute_buckets

router = APIRouter(prefix="/settings", tags=["settings"])


@router.get("", response_model=BudgetSettingsRead)
async def read_settings(
    db: AsyncSession = Depends(get_async_session),
    user_id: uuid.UUID = Depends(get_current_user_id),
):
    row = await get_settings(user_id, db)
    # First read persists the defaults
    await db.commit()
    return row


@router.put("", response_model=BudgetSettingsRead)
async def replace_settings(
    settings_in: BudgetSettingsUpdate,
    db: AsyncSession = Depends(get_async_session),
    user_id: uuid.UUID = Depends(get_current_user_id),
):
    """
    Replace the expenses/savings/goals split. The three percentages must add
    up to 100; goal percentages are rebalanced against the new goals share.
    """
    return await update_settings(
        user_id,
        settings_in.expenses_percentage,
        settings_in.savings_percentage,
        settings_in.goals_percentage,
        db,
        currency=settings_in.currency,
    )


@router.get("/breakdown", response_model=BudgetBreakdownRead)
async def read_breakdown(
    amount: Decimal = Query(..., gt=0, description="Income amount to split"),
    db: AsyncSession = Depends(get_async_session),
    user_id: uuid.UUID = Depends(get_current_user_id),
):
    row = await get_settings(user_id, db)
    await db.commit()
    breakdown = compute_buckets(amount, SettingsSnapshot.from_model(row))
    return BudgetBreakdownRead(
        amount=float(breakdown.amount),
        expenses=float(breakdown.expenses),
        savings=float(breakdown.savings),
        goals=float(breakdown.goals),
    )
