# goalfund/utils/intents.py
"""
Executes parsed intent records against the core.

Goal intents go through the duplicate check and the registry; income intents
record the transaction and run the allocation engine. Free text never reaches
this module, only validated records from goalfund.schemas.intent.
"""
import logging
import uuid
from datetime import date
from typing import List, Optional, Union

from sqlalchemy.ext.asyncio import AsyncSession

from goalfund.clients.intent_parser import IntentParserClient
from goalfund.core.exceptions import DuplicateGoalConflict, GoalNotFound
from goalfund.crud.transaction import create_transaction_for_user
from goalfund.schemas.allocation import AllocationResultRead
from goalfund.schemas.goal import AllocationRead, GoalRead
from goalfund.schemas.intent import (
    CommandResponse,
    FundingOverrideIntent,
    GoalCreationIntent,
    GoalIntentResult,
    IncomeIntentResult,
    IncomeTransactionIntent,
)
from goalfund.schemas.settings import BudgetBreakdownRead
from goalfund.schemas.transaction import TransactionCreate
from goalfund.utils.allocation import AllocationResult, allocate_income
from goalfund.utils.budgeting import AllocationOverride, to_money
from goalfund.utils.duplicates import find_duplicate_goal
from goalfund.utils.goals import create_goal

logger = logging.getLogger(__name__)


def to_allocation_read(result: AllocationResult) -> AllocationResultRead:
    return AllocationResultRead(
        transaction_id=result.transaction_id,
        breakdown=BudgetBreakdownRead(
            amount=float(result.breakdown.amount),
            expenses=float(result.breakdown.expenses),
            savings=float(result.breakdown.savings),
            goals=float(result.breakdown.goals),
        ),
        allocations=[AllocationRead.model_validate(a) for a in result.allocations],
        allocated_amount=float(result.allocated),
        unallocated_amount=float(result.unallocated),
        completed_goal_ids=result.completed_goal_ids,
        already_allocated=result.already_allocated,
    )


async def resolve_override(user_id: uuid.UUID, override: FundingOverrideIntent, db: AsyncSession) -> AllocationOverride:
    """Match the override's goal title against the user's active goals."""
    goal = await find_duplicate_goal(user_id, override.goal_title, db)
    if goal is None:
        raise GoalNotFound(
            f"No active goal named '{override.goal_title}'",
            details={"goal_title": override.goal_title},
        )
    return AllocationOverride(goal_id=goal.id, amount=override.amount)


async def handle_goal_intent(user_id: uuid.UUID, intent: GoalCreationIntent, db: AsyncSession) -> GoalIntentResult:
    if intent.target_amount is None:
        return GoalIntentResult(
            status="insufficient_information",
            message=f"How much do you want to save for '{intent.title}'?",
            missing_fields=["target_amount"],
        )

    try:
        goal = await create_goal(
            user_id, intent.title, intent.target_amount, db, target_date=intent.target_date,
        )
    except DuplicateGoalConflict as e:
        logger.info(f"Goal intent '{intent.title}' matches existing goal {e.existing_goal_id}")
        return GoalIntentResult(
            status="duplicate",
            message=e.message,
            existing_goal_id=e.existing_goal_id,
            options=list(e.options),
        )

    return GoalIntentResult(
        status="created",
        message=f"Created goal '{goal.title}' for {goal.target_amount}",
        goal=GoalRead.model_validate(goal),
    )


async def handle_income_intent(user_id: uuid.UUID, intent: IncomeTransactionIntent, db: AsyncSession) -> IncomeIntentResult:
    # Resolve first so an unknown goal leaves no orphan transaction behind
    override: Optional[AllocationOverride] = None
    if intent.override is not None:
        override = await resolve_override(user_id, intent.override, db)

    tx = await create_transaction_for_user(
        user_id,
        TransactionCreate(
            description=intent.description,
            amount=to_money(intent.amount),
            transaction_date=intent.date or date.today(),
            type="income",
        ),
        db,
    )
    result = await allocate_income(tx, db, override=override)
    return IncomeIntentResult(allocation=to_allocation_read(result))


async def handle_command(user_id: uuid.UUID, command: str, db: AsyncSession,
                         parser: IntentParserClient) -> CommandResponse:
    """Parse a chat message, then run each intent in order."""
    intents, raw = await parser.parse(command)
    results: List[Union[GoalIntentResult, IncomeIntentResult]] = []
    for intent in intents:
        if isinstance(intent, GoalCreationIntent):
            results.append(await handle_goal_intent(user_id, intent, db))
        else:
            results.append(await handle_income_intent(user_id, intent, db))
    return CommandResponse(intents=raw, results=results)
