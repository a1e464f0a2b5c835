"""
Session and view API tests - login over HTTP, onboarding answered by later requests, balance.
"""

import asyncio

import pytest
from httpx import AsyncClient

from market.core.errors import AuthError


async def wait_for_prompt(context, label_prefix="Enter"):
    for _ in range(200):
        pending = context.onboarding.pending
        if pending is not None and pending.label.startswith(label_prefix):
            return pending
        await asyncio.sleep(0)
    raise AssertionError("no onboarding prompt appeared")


@pytest.mark.asyncio
async def test_session_starts_anonymous(interactive_client: AsyncClient):
    response = await interactive_client.get("/api/v1/session")
    assert response.status_code == 200
    body = response.json()
    assert body["identity"] == "2vxsx-fae"
    assert body["authenticated"] is False
    assert body["bootstrap"] == "anonymous"
    assert body["prompt"] is None


@pytest.mark.asyncio
async def test_onboarding_over_http(interactive_client: AsyncClient, interactive_context, ledger, provider):
    provider.outcomes.append("A1")
    response = await interactive_client.post("/api/v1/session/login")
    assert response.status_code == 200
    assert response.json()["authenticated"] is True

    await wait_for_prompt(interactive_context, "Enter your name")
    session = (await interactive_client.get("/api/v1/session")).json()
    assert session["prompt"] == {"label": "Enter your name (required)", "required": True}
    assert session["bootstrap"] == "awaiting_display_name"

    await interactive_client.post("/api/v1/session/onboarding/answer", json={"text": "Ada"})
    await wait_for_prompt(interactive_context, "Enter your email")
    await interactive_client.post("/api/v1/session/onboarding/answer", json={"text": ""})
    await interactive_context.transition

    session = (await interactive_client.get("/api/v1/session")).json()
    assert session["bootstrap"] == "ready"
    assert session["profile"]["username"] == "Ada"
    assert ledger.users["A1"]["username"] == "Ada"


@pytest.mark.asyncio
async def test_cancel_onboarding_over_http(interactive_client: AsyncClient, interactive_context, provider):
    provider.outcomes.append("A1")
    await interactive_client.post("/api/v1/session/login")
    await wait_for_prompt(interactive_context)
    response = await interactive_client.post("/api/v1/session/onboarding/cancel")
    assert response.status_code == 200
    await interactive_context.transition

    view = (await interactive_client.get("/api/v1/view")).json()
    assert view["authenticated"] is True
    assert view["profile"] is None
    assert view["last_error"]["kind"] == "Cancelled"


@pytest.mark.asyncio
async def test_answer_without_prompt_is_409(interactive_client: AsyncClient):
    response = await interactive_client.post("/api/v1/session/onboarding/answer", json={"text": "Ada"})
    assert response.status_code == 409


@pytest.mark.asyncio
async def test_cancelled_login_stays_anonymous(interactive_client: AsyncClient, provider):
    provider.outcomes.append(None)
    response = await interactive_client.post("/api/v1/session/login")
    assert response.status_code == 200
    assert response.json()["authenticated"] is False


@pytest.mark.asyncio
async def test_provider_failure_is_401(interactive_client: AsyncClient, provider):
    provider.outcomes.append(AuthError("challenge rejected"))
    response = await interactive_client.post("/api/v1/session/login")
    assert response.status_code == 401
    assert response.json()["detail"] == "challenge rejected"


@pytest.mark.asyncio
async def test_logout_clears_view(client: AsyncClient, context, ledger, login_as):
    ledger.add_user("A1", "Ada")
    ledger.add_item("seller", item_id=9, price=5, is_public=False)
    await login_as("A1")
    await context.coordinator.purchase(9)
    assert (await client.get("/api/v1/view")).json()["purchased_ids"] == [9]

    response = await client.post("/api/v1/session/logout")
    assert response.json()["authenticated"] is False
    await context.transition
    view = (await client.get("/api/v1/view")).json()
    assert view["identity"] == "2vxsx-fae"
    assert view["purchased_ids"] == []
    assert view["profile"] is None


@pytest.mark.asyncio
async def test_balance(client: AsyncClient, ledger, login_as):
    assert (await client.get("/api/v1/view/balance")).status_code == 401

    ledger.add_user("A1", "Ada")
    ledger.balances["A1"] = 150_000_000
    await login_as("A1")
    response = await client.get("/api/v1/view/balance")
    assert response.json() == {"identity": "A1", "amount": 150_000_000, "display": "1.50000000"}

    ledger.balances["A1"] = 50_000_000
    stale = await client.get("/api/v1/view/balance")
    assert stale.json()["amount"] == 150_000_000
    fresh = await client.get("/api/v1/view/balance", params={"refresh": True})
    assert fresh.json()["display"] == "0.50000000"


@pytest.mark.asyncio
async def test_balance_failure_keeps_previous_value(client: AsyncClient, ledger, login_as):
    ledger.add_user("A1", "Ada")
    await login_as("A1")
    ledger.unavailable.add("get_ledger_balance")
    response = await client.get("/api/v1/view/balance", params={"refresh": True})
    assert response.status_code == 200
    assert response.json()["amount"] == 10 * 100_000_000


@pytest.mark.asyncio
async def test_unsubscribed_search_results_are_dropped(client: AsyncClient, context, ledger):
    ledger.add_item("seller", title="Blog outline")
    response = await client.put("/api/v1/view/subscriptions/search_results", params={"subscribed": False})
    assert response.status_code == 204
    await client.get("/api/v1/items/search", params={"q": "blog"})
    assert context.view.search_results == []

    await client.put("/api/v1/view/subscriptions/search_results")
    await client.get("/api/v1/items/search", params={"q": "blog"})
    assert len(context.view.search_results) == 1
