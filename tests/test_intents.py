import json
from datetime import date
from decimal import Decimal

import httpx
import pytest

from goalfund.clients.intent_parser import IntentParserClient
from goalfund.core.exceptions import GoalNotFound, IntentParserUnavailable
from goalfund.crud.goal import list_active_goals
from goalfund.crud.transaction import get_transactions_for_user
from goalfund.schemas.intent import FundingOverrideIntent, GoalCreationIntent, IncomeTransactionIntent
from goalfund.utils.goals import create_goal
from goalfund.utils.intents import handle_command, handle_goal_intent, handle_income_intent


async def test_goal_intent_without_amount_asks_for_it(db, user_id):
    result = await handle_goal_intent(user_id, GoalCreationIntent(title="Vacation"), db)
    assert result.status == "insufficient_information"
    assert result.missing_fields == ["target_amount"]
    assert await list_active_goals(user_id, db) == []


async def test_goal_intent_creates_goal(db, user_id):
    result = await handle_goal_intent(
        user_id, GoalCreationIntent(title="Vacation", target_amount=Decimal("2500"), target_date=date(2026, 8, 1)), db,
    )
    assert result.status == "created"
    assert result.goal.title == "Vacation"
    assert result.goal.target_amount == 2500.0


async def test_goal_intent_duplicate_offers_choices(db, user_id):
    existing_id = (await create_goal(user_id, "Vacation", 1000, db)).id
    result = await handle_goal_intent(user_id, GoalCreationIntent(title=" VACATION ", target_amount=Decimal("900")), db)

    assert result.status == "duplicate"
    assert result.existing_goal_id == existing_id
    assert result.options == ["modify_existing", "rename", "abort"]
    assert len(await list_active_goals(user_id, db)) == 1


async def test_income_intent_records_and_allocates(db, user_id):
    goal_id = (await create_goal(user_id, "Vacation", 5000, db)).id
    result = await handle_income_intent(
        user_id, IncomeTransactionIntent(amount=Decimal("1000"), date=date(2026, 1, 31), description="Salary"), db,
    )

    allocation = result.allocation
    assert allocation.allocated_amount == 200.0
    assert [a.goal_id for a in allocation.allocations] == [goal_id]
    assert allocation.breakdown.expenses == 500.0

    txs = await get_transactions_for_user(user_id, db)
    assert len(txs) == 1 and txs[0].is_allocated


async def test_income_intent_override_by_title(db, user_id):
    vacation_id = (await create_goal(user_id, "Vacation Fund", 5000, db)).id
    await create_goal(user_id, "Laptop", 5000, db)

    result = await handle_income_intent(
        user_id,
        IncomeTransactionIntent(
            amount=Decimal("1000"),
            override=FundingOverrideIntent(goal_title="vacation  fund", amount=Decimal("150")),
        ),
        db,
    )

    amounts = {a.goal_id: (a.amount, a.allocation_type.value) for a in result.allocation.allocations}
    assert amounts[vacation_id] == (150.0, "manual")
    assert sorted(v for v, _ in amounts.values()) == [50.0, 150.0]


async def test_income_intent_unknown_override_records_nothing(db, user_id):
    with pytest.raises(GoalNotFound):
        await handle_income_intent(
            user_id,
            IncomeTransactionIntent(amount=Decimal("1000"), override=FundingOverrideIntent(goal_title="Boat", amount=10)),
            db,
        )
    assert await get_transactions_for_user(user_id, db) == []


async def test_handle_command_runs_each_intent(db, user_id):
    def handler(request):
        content = json.dumps({"intents": [
            {"type": "goal", "title": "Bike", "target_amount": 400},
            {"type": "income", "amount": 1000, "description": "Salary"},
        ]})
        return httpx.Response(200, json={"choices": [{"message": {"content": content}}]})

    parser = IntentParserClient(url="https://parser.test", transport=httpx.MockTransport(handler))
    response = await handle_command(user_id, "new goal bike 400, got 1000 salary", db, parser)

    assert [r.status for r in response.results] == ["created", "allocated"]
    assert response.results[1].allocation.allocated_amount == 200.0


async def test_handle_command_parser_down_writes_nothing(db, user_id):
    def handler(request):
        raise httpx.ConnectTimeout("no route", request=request)

    parser = IntentParserClient(url="https://parser.test", transport=httpx.MockTransport(handler))
    with pytest.raises(IntentParserUnavailable):
        await handle_command(user_id, "got 1000 salary", db, parser)
    assert await get_transactions_for_user(user_id, db) == []
