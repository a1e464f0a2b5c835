"""
Identity session tests - normalization, login outcomes, logout.
"""

import pytest
from pydantic import ValidationError

from market.core.errors import AuthError, ErrorKind, MarketError
from market.core.identity import (
    ANONYMOUS,
    ConfiguredIdentityProvider,
    Identity,
    IdentitySession,
    to_identity,
)
from tests.fakes import StubProvider


class ProviderPrincipal:
    def __init__(self, text):
        self.text = text

    def to_text(self):
        return self.text


def test_identity_normalizes_strings_and_provider_objects():
    assert Identity("  abc-123 ") == Identity("abc-123")
    assert to_identity(ProviderPrincipal("abc-123")) == Identity("abc-123")
    assert to_identity(Identity("abc-123")) == Identity("abc-123")
    assert str(Identity("abc-123")) == "abc-123"


def test_identity_is_hashable():
    assert len({Identity("a"), Identity("a"), Identity("b")}) == 2


def test_invalid_identity_is_invalid_input():
    with pytest.raises(MarketError) as exc:
        to_identity("   ")
    assert exc.value.kind is ErrorKind.INVALID_INPUT
    with pytest.raises(ValidationError):
        Identity.model_validate(42)


def test_anonymous_identity():
    assert ANONYMOUS.is_anonymous
    assert not Identity("someone").is_anonymous


@pytest.mark.asyncio
async def test_session_starts_anonymous():
    session = IdentitySession(StubProvider())
    assert session.current_identity() == ANONYMOUS
    assert not session.is_authenticated


@pytest.mark.asyncio
async def test_restore_picks_up_existing_session():
    session = IdentitySession(StubProvider(restored="A1"))
    assert await session.restore() == Identity("A1")
    assert session.is_authenticated


@pytest.mark.asyncio
async def test_login_sets_identity():
    session = IdentitySession(StubProvider(["A1"]))
    assert await session.login() == Identity("A1")
    assert session.current_identity() == Identity("A1")


@pytest.mark.asyncio
async def test_cancelled_login_keeps_anonymous():
    session = IdentitySession(StubProvider([None]))
    assert await session.login() == ANONYMOUS
    assert not session.is_authenticated


@pytest.mark.asyncio
async def test_provider_failure_is_auth_error():
    session = IdentitySession(StubProvider([RuntimeError("challenge rejected")]))
    with pytest.raises(AuthError) as exc:
        await session.login()
    assert "challenge rejected" in exc.value.message
    assert exc.value.kind is ErrorKind.NOT_AUTHENTICATED
    assert not session.is_authenticated


@pytest.mark.asyncio
async def test_logout_returns_to_anonymous():
    provider = StubProvider(["A1"])
    session = IdentitySession(provider)
    await session.login()
    await session.logout()
    assert session.current_identity() == ANONYMOUS
    assert provider.current is None


@pytest.mark.asyncio
async def test_logout_failure_still_anonymous():
    class BrokenSignOut(StubProvider):
        async def sign_out(self):
            raise RuntimeError("provider offline")

    session = IdentitySession(BrokenSignOut(["A1"]))
    await session.login()
    with pytest.raises(AuthError):
        await session.logout()
    assert session.current_identity() == ANONYMOUS


@pytest.mark.asyncio
async def test_configured_provider():
    session = IdentitySession(ConfiguredIdentityProvider("dev-principal"))
    assert await session.restore() == ANONYMOUS
    assert await session.login() == Identity("dev-principal")

    unconfigured = IdentitySession(ConfiguredIdentityProvider(None))
    with pytest.raises(AuthError):
        await unconfigured.login()
