# goalfund/crud/settings.py
import asyncio
import logging
import uuid
from decimal import Decimal
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from sqlalchemy.exc import SQLAlchemyError

from goalfund.core.config import settings as app_settings, SUPPORTED_CURRENCIES
from goalfund.core.db_utils import with_db_retry
from goalfund.core.exceptions import ConfigurationError, ValidationError
from goalfund.models.settings import BudgetSettings
from goalfund.utils.budgeting import Number, percentages_sum_to_100, to_percent

logger = logging.getLogger(__name__)


@with_db_retry()
async def get_settings_row(user_id: uuid.UUID, db: AsyncSession) -> Optional[BudgetSettings]:
    result = await db.execute(select(BudgetSettings).where(BudgetSettings.user_id == user_id))
    return result.scalar_one_or_none()


async def get_settings(user_id: uuid.UUID, db: AsyncSession) -> BudgetSettings:
    """Return the user's budget settings, creating the 50/30/20 defaults the first time."""
    row = await get_settings_row(user_id, db)
    if row is not None:
        return row

    row = BudgetSettings(
        user_id=user_id,
        expenses_percentage=to_percent(app_settings.DEFAULT_EXPENSES_PERCENTAGE),
        savings_percentage=to_percent(app_settings.DEFAULT_SAVINGS_PERCENTAGE),
        goals_percentage=to_percent(app_settings.DEFAULT_GOALS_PERCENTAGE),
        currency=app_settings.DEFAULT_CURRENCY,
    )
    db.add(row)
    await db.flush()
    logger.info(f"Created default budget settings for user {user_id}")
    return row


def validate_percentages(expenses_pct: Number, savings_pct: Number, goals_pct: Number) -> None:
    for name, value in (("expenses", expenses_pct), ("savings", savings_pct), ("goals", goals_pct)):
        if to_percent(value) < 0 or to_percent(value) > 100:
            raise ValidationError(f"{name} percentage must be between 0 and 100", details={"field": name})
    if not percentages_sum_to_100(expenses_pct, savings_pct, goals_pct, app_settings.PERCENTAGE_TOLERANCE):
        total = to_percent(expenses_pct) + to_percent(savings_pct) + to_percent(goals_pct)
        raise ValidationError(
            f"Budget percentages must add up to 100 (got {total})",
            details={"total": str(total)},
        )


async def update_settings(
    user_id: uuid.UUID,
    expenses_pct: Number,
    savings_pct: Number,
    goals_pct: Number,
    db: AsyncSession,
    currency: Optional[str] = None,
) -> BudgetSettings:
    """
    Replace the user's three budget percentages (and optionally the currency).

    All-or-nothing: inputs are validated before anything is touched, and the
    goal percentage rebalance runs in the same commit.
    """
    validate_percentages(expenses_pct, savings_pct, goals_pct)
    if currency is not None and currency.upper() not in SUPPORTED_CURRENCIES:
        raise ValidationError(f"Unsupported currency '{currency}'", details={"field": "currency"})

    # Imported here: rebalancing reads settings through this module
    from goalfund.utils.rebalance import rebalance_percentages

    try:
        row = await get_settings(user_id, db)
        row.expenses_percentage = to_percent(expenses_pct)
        row.savings_percentage = to_percent(savings_pct)
        row.goals_percentage = to_percent(goals_pct)
        if currency is not None:
            row.currency = currency.upper()
        db.add(row)
        await db.flush()
        await rebalance_percentages(user_id, db, goals_percentage=row.goals_percentage)
        await db.commit()
    except Exception:
        await db.rollback()
        raise
    await db.refresh(row)
    logger.info(
        f"Updated budget settings for user {user_id}: "
        f"{row.expenses_percentage}/{row.savings_percentage}/{row.goals_percentage} {row.currency}"
    )
    return row


async def load_settings_for_allocation(user_id: uuid.UUID, db: AsyncSession) -> BudgetSettings:
    """Settings read for a funding attempt, bounded by SETTINGS_FETCH_TIMEOUT.

    Any failure is a ConfigurationError so the funding attempt aborts before
    it writes anything.
    """
    try:
        row = await asyncio.wait_for(get_settings(user_id, db), timeout=app_settings.SETTINGS_FETCH_TIMEOUT)
    except asyncio.TimeoutError:
        logger.warning(f"Timed out loading budget settings for user {user_id}")
        raise ConfigurationError("Timed out loading budget settings")
    except SQLAlchemyError as e:
        logger.error(f"Could not load budget settings for user {user_id}: {e}")
        raise ConfigurationError("Budget settings are unavailable")

    if not percentages_sum_to_100(row.expenses_percentage, row.savings_percentage,
                                  row.goals_percentage, app_settings.PERCENTAGE_TOLERANCE):
        raise ConfigurationError(
            "Stored budget percentages do not add up to 100",
            details={"total": str(Decimal(row.expenses_percentage) + Decimal(row.savings_percentage) + Decimal(row.goals_percentage))},
        )
    return row
