"""
View assembly tests - initial population, hydration of purchases, stale data on failure.
"""

import asyncio

import pytest

from market.config import Settings
from market.core.identity import Identity
from market.schemas.item import Category, Item
from market.services.context import AppContext
from market.services.onboarding import SuspendedOnboarding
from market.services.view_assembly import filter_items
from market.services.view_state import Slice


def test_filter_items_matches_title_description_and_tags():
    items = [
        Item(id=1, title="Cold Email", author="s", category="Marketing", tags=["outreach"]),
        Item(id=2, title="Essay", description="for EMAIL newsletters", author="s", category="Writing"),
        Item(id=3, title="Pitch deck", author="s", category="Business", tags=["Email"]),
        Item(id=4, title="Unrelated", author="s", category="Other"),
    ]
    assert [item.id for item in filter_items(items, "email")] == [1, 2, 3]
    assert [item.id for item in filter_items(items, "email", Category.BUSINESS)] == [3]
    assert [item.id for item in filter_items(items, "  ")] == [1, 2, 3, 4]


@pytest.mark.asyncio
async def test_anonymous_assembly_fetches_public_items_only(context, ledger):
    assert [call[0] for call in ledger.calls] == ["list_public_items"]


@pytest.mark.asyncio
async def test_signed_in_assembly_hydrates_purchases(context, ledger, login_as):
    ledger.add_user("A1", "Ada")
    ledger.add_item("seller", item_id=9, is_public=False, price=10)
    ledger.add_item("A1", item_id=12, title="Mine")
    ledger.purchases["A1"] = [9, 404]

    await login_as("A1")
    view = context.view
    assert view.purchased_ids == frozenset({9, 404})
    # 404 failed to hydrate and is skipped
    assert list(view.my_purchased_items) == [9]
    assert view.my_purchased_items[9].content == "secret content"
    assert list(view.my_items) == [12]
    assert view.ledger_balance == 10 * 100_000_000


@pytest.mark.asyncio
async def test_failed_refresh_keeps_previous_data(context, ledger):
    ledger.add_item("seller", item_id=1)
    assert await context.assembler.refresh_public_items()
    ledger.unavailable.add("list_public_items")
    assert not await context.assembler.refresh_public_items()
    assert [item.id for item in context.view.public_items] == [1]


@pytest.mark.asyncio
async def test_overlapping_refreshes_apply_newest(context, ledger):
    ledger.add_item("seller", item_id=1)
    ledger.gates["list_public_items"] = asyncio.Event()
    slow = asyncio.create_task(context.assembler.refresh_public_items())
    for _ in range(200):
        if len(ledger.calls_to("list_public_items")) == 2:
            break
        await asyncio.sleep(0)

    # Newer ticket issued after the slow call started
    newer = context.view.begin(Slice.PUBLIC_ITEMS)
    context.view.apply_public_items(newer, [])
    ledger.gates["list_public_items"].set()
    assert not await slow
    assert context.view.public_items == []


@pytest.mark.asyncio
async def test_refresh_mine_is_noop_when_anonymous(context, ledger):
    before = len(ledger.calls)
    await context.assembler.refresh_mine()
    assert len(ledger.calls) == before


@pytest.mark.asyncio
async def test_context_from_settings(ledger):
    settings = Settings(remote_service_url="http://ledger.test/rpc", identity_provider_identity="dev-principal")
    ledger.add_user("dev-principal", "Dev")
    context = AppContext.from_settings(settings, transport=ledger.transport())
    assert isinstance(context.onboarding, SuspendedOnboarding)
    await context.start()
    assert context.view.identity.is_anonymous
    assert await context.login() == Identity("dev-principal")
    assert context.view.profile.display_name == "Dev"
    await context.close()
