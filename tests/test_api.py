import uuid

import httpx
import pytest

from goalfund.api.deps import get_parser
from goalfund.clients.intent_parser import IntentParserClient
from goalfund.core.database import get_async_session
from goalfund.main import app


@pytest.fixture
async def client(session_factory, make_token, user_id):
    async def override_session():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_async_session] = override_session
    transport = httpx.ASGITransport(app=app)
    headers = {"Authorization": f"Bearer {make_token(user_id)}"}
    async with httpx.AsyncClient(transport=transport, base_url="http://test", headers=headers) as c:
        yield c
    app.dependency_overrides.clear()


async def test_root_and_health(client):
    assert (await client.get("/")).json()["version"] == "0.1.0"
    health = await client.get("/health")
    assert health.status_code == 200
    assert health.json()["status"] == "healthy"


async def test_requests_need_a_token(client):
    resp = await client.get("/api/v1/settings", headers={"Authorization": ""})
    assert resp.status_code == 401

    resp = await client.get("/api/v1/settings", headers={"Authorization": "Bearer not-a-jwt"})
    assert resp.status_code == 401


async def test_settings_defaults_update_and_breakdown(client):
    resp = await client.get("/api/v1/settings")
    assert resp.status_code == 200
    assert resp.json()["goals_percentage"] == 20.0
    assert resp.json()["currency"] == "INR"

    resp = await client.put("/api/v1/settings", json={
        "expenses_percentage": 50, "savings_percentage": 20, "goals_percentage": 30, "currency": "EUR",
    })
    assert resp.status_code == 200
    assert resp.json()["goals_percentage"] == 30.0

    resp = await client.get("/api/v1/settings/breakdown", params={"amount": "1000"})
    assert resp.json() == {"amount": 1000.0, "expenses": 500.0, "savings": 200.0, "goals": 300.0}


async def test_invalid_settings_are_rejected(client):
    resp = await client.put("/api/v1/settings", json={
        "expenses_percentage": 60, "savings_percentage": 30, "goals_percentage": 20,
    })
    assert resp.status_code == 422
    assert resp.json()["code"] == "validation_error"

    assert (await client.get("/api/v1/settings")).json()["expenses_percentage"] == 50.0


async def test_goal_lifecycle(client):
    resp = await client.post("/api/v1/goals", json={"title": "Vacation", "target_amount": 1000})
    assert resp.status_code == 201
    vacation = resp.json()
    assert vacation["percentage_allocation"] == 20.0

    resp = await client.post("/api/v1/goals", json={"title": " vacation ", "target_amount": 500})
    assert resp.status_code == 409
    body = resp.json()
    assert body["code"] == "duplicate_goal"
    assert body["existing_goal_id"] == vacation["id"]
    assert body["options"] == ["modify_existing", "rename", "abort"]

    resp = await client.get("/api/v1/goals/duplicates/check", params={"title": "VACATION"})
    assert resp.json()["is_duplicate"] is True

    laptop = (await client.post("/api/v1/goals", json={"title": "Laptop", "target_amount": 1500})).json()
    resp = await client.patch(f"/api/v1/goals/{laptop['id']}/percentage", json={"percentage_allocation": 15})
    assert resp.status_code == 200
    assert resp.json()["is_custom_percentage"] is True

    goals = (await client.get("/api/v1/goals")).json()
    assert [g["goal"]["title"] for g in goals] == ["Laptop", "Vacation"]
    assert [g["goal"]["percentage_allocation"] for g in goals] == [15.0, 5.0]

    resp = await client.delete(f"/api/v1/goals/{vacation['id']}")
    assert resp.status_code == 204
    assert (await client.get(f"/api/v1/goals/{vacation['id']}")).status_code == 404


async def test_invalid_goal_target(client):
    resp = await client.post("/api/v1/goals", json={"title": "Car", "target_amount": 0})
    assert resp.status_code == 422
    assert resp.json()["code"] == "validation_error"


async def test_income_funds_goals(client):
    goal = (await client.post("/api/v1/goals", json={"title": "Bike", "target_amount": 300})).json()

    resp = await client.post("/api/v1/transactions/income", json={
        "description": "Salary", "amount": "1000.00", "transaction_date": "2026-01-31",
    })
    assert resp.status_code == 201
    result = resp.json()
    assert result["breakdown"]["goals"] == 200.0
    assert result["allocated_amount"] == 200.0
    assert result["allocations"][0]["goal_id"] == goal["id"]
    assert result["allocations"][0]["allocation_type"] == "auto"

    resp = await client.post("/api/v1/transactions/income", json={
        "description": "Bonus", "amount": "1000.00", "transaction_date": "2026-02-28",
    })
    result = resp.json()
    assert result["allocated_amount"] == 100.0
    assert result["unallocated_amount"] == 100.0
    assert result["completed_goal_ids"] == [goal["id"]]

    progress = (await client.get(f"/api/v1/goals/{goal['id']}")).json()
    assert progress["funded_amount"] == 300.0
    assert progress["progress_percentage"] == 100.0
    assert progress["is_completed"] is True

    history = (await client.get(f"/api/v1/goals/{goal['id']}/allocations")).json()
    assert [a["amount"] for a in history["allocations"]] == [200.0, 100.0]

    resp = await client.post(f"/api/v1/goals/{goal['id']}/recompute")
    assert resp.json()["is_completed"] is True

    assert (await client.delete(f"/api/v1/goals/{goal['id']}")).status_code == 422


async def test_income_with_manual_override(client):
    vacation = (await client.post("/api/v1/goals", json={"title": "Vacation", "target_amount": 5000})).json()
    await client.post("/api/v1/goals", json={"title": "Laptop", "target_amount": 5000})

    resp = await client.post("/api/v1/transactions/income", json={
        "amount": "1000", "transaction_date": "2026-01-31",
        "override_goal_id": vacation["id"], "override_amount": "300",
    })
    result = resp.json()
    assert [(a["goal_id"], a["amount"], a["allocation_type"]) for a in result["allocations"]] == [
        (vacation["id"], 200.0, "manual"),
    ]


async def test_income_with_unknown_override_goal_is_not_recorded(client):
    await client.post("/api/v1/goals", json={"title": "Vacation", "target_amount": 5000})
    payload = {
        "amount": "1000", "transaction_date": "2026-01-31",
        "override_goal_id": str(uuid.uuid4()), "override_amount": "100",
    }

    for _ in range(2):
        resp = await client.post("/api/v1/transactions/income", json=payload)
        assert resp.status_code == 404
        assert resp.json()["code"] == "goal_not_found"

    assert (await client.get("/api/v1/transactions")).json() == []


async def test_allocate_existing_transaction(client):
    await client.post("/api/v1/goals", json={"title": "Vacation", "target_amount": 5000})
    created = (await client.post("/api/v1/transactions/income", json={
        "amount": "500", "transaction_date": "2026-01-31",
    })).json()

    resp = await client.post(f"/api/v1/transactions/{created['transaction_id']}/allocate")
    assert resp.status_code == 200
    assert resp.json()["already_allocated"] is True

    txs = (await client.get("/api/v1/transactions")).json()
    assert len(txs) == 1 and txs[0]["is_allocated"] is True

    resp = await client.post(f"/api/v1/transactions/{uuid.uuid4()}/allocate")
    assert resp.status_code == 404
    assert resp.json()["code"] == "transaction_not_found"


async def test_other_users_cannot_see_goals(client, make_token):
    goal = (await client.post("/api/v1/goals", json={"title": "Vacation", "target_amount": 5000})).json()
    stranger = {"Authorization": f"Bearer {make_token(uuid.uuid4())}"}
    assert (await client.get(f"/api/v1/goals/{goal['id']}", headers=stranger)).status_code == 404


async def test_goal_intent_endpoint(client):
    resp = await client.post("/api/v1/intents/goal", json={"title": "Vacation"})
    assert resp.json()["status"] == "insufficient_information"

    resp = await client.post("/api/v1/intents/goal", json={"title": "Vacation", "target_amount": 900})
    assert resp.json()["status"] == "created"


async def test_command_endpoint_parser_timeout(client):
    def handler(request):
        raise httpx.ReadTimeout("slow", request=request)

    app.dependency_overrides[get_parser] = lambda: IntentParserClient(
        url="https://parser.test", transport=httpx.MockTransport(handler),
    )
    resp = await client.post("/api/v1/intents/command", json={"command": "got 1000 salary"})
    assert resp.status_code == 504
    assert resp.json()["code"] == "intent_parser_unavailable"
