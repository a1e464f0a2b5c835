"""
Pytest fixtures - application context over the fake ledger, and the API client.
"""

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from market.core.dependencies import get_context
from market.core.identity import IdentitySession
from market.main import app
from market.remote.client import RemoteServiceClient
from market.services.context import AppContext
from market.services.onboarding import SuspendedOnboarding
from tests.fakes import LEDGER_URL, FakeLedger, ScriptedOnboarding, StubProvider


@pytest.fixture
def ledger() -> FakeLedger:
    return FakeLedger()


@pytest.fixture
def provider() -> StubProvider:
    return StubProvider()


@pytest.fixture
def onboarding() -> ScriptedOnboarding:
    return ScriptedOnboarding()


def build_context(ledger: FakeLedger, provider, onboarding) -> AppContext:
    session = IdentitySession(provider)
    client = RemoteServiceClient(session, LEDGER_URL, transport=ledger.transport())
    return AppContext(session, client, onboarding)


@pytest_asyncio.fixture
async def context(ledger, provider, onboarding):
    ctx = build_context(ledger, provider, onboarding)
    await ctx.start()
    yield ctx
    await ctx.close()


@pytest_asyncio.fixture
async def interactive_context(ledger, provider):
    """Context whose onboarding prompts wait for /session/onboarding/* requests."""
    ctx = build_context(ledger, provider, SuspendedOnboarding())
    await ctx.start()
    yield ctx
    await ctx.close()


@pytest.fixture
def login_as(context, provider):
    """Log the context in as the given identity text."""

    async def _login(identity: str):
        provider.outcomes.append(identity)
        return await context.login()

    return _login


@pytest_asyncio.fixture
async def client(context):
    app.dependency_overrides[get_context] = lambda: context
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def interactive_client(interactive_context):
    app.dependency_overrides[get_context] = lambda: interactive_context
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac
    app.dependency_overrides.clear()
