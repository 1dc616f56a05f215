# goalfund/api/v1/routes/intents.py
import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from goalfund.api.deps import get_current_user_id, get_parser
from goalfund.clients.intent_parser import IntentParserClient
from goalfund.core.database import get_async_session
from goalfund.schemas.intent import (
    CommandRequest,
    CommandResponse,
    GoalCreationIntent,
    GoalIntentResult,
    IncomeIntentResult,
    IncomeTransactionIntent,
)
from goalfund.utils.intents import handle_command, handle_goal_intent, handle_income_intent

router = APIRouter(prefix="/intents", tags=["intents"])


@router.post("/goal", response_model=GoalIntentResult)
async def goal_intent(
    intent: GoalCreationIntent,
    db: AsyncSession = Depends(get_async_session),
    user_id: uuid.UUID = Depends(get_current_user_id),
):
    """
    Create a goal from a parsed record. Answers with status
    `insufficient_information` when the target amount is missing and
    `duplicate` when an active goal already has this title.
    """
    return await handle_goal_intent(user_id, intent, db)


@router.post("/income", response_model=IncomeIntentResult)
async def income_intent(
    intent: IncomeTransactionIntent,
    db: AsyncSession = Depends(get_async_session),
    user_id: uuid.UUID = Depends(get_current_user_id),
):
    return await handle_income_intent(user_id, intent, db)


@router.post("/command", response_model=CommandResponse)
async def command_intent(
    command_request: CommandRequest,
    db: AsyncSession = Depends(get_async_session),
    user_id: uuid.UUID = Depends(get_current_user_id),
    parser: IntentParserClient = Depends(get_parser),
):
    """Interpret a chat message (e.g. "got my 1000 salary") and run the intents it contains."""
    return await handle_command(user_id, command_request.command, db, parser)
