"""
Identity value type and the session that owns the current identity.
Challenge: Identities arrive as plain strings or provider objects; normalize once, at the boundary.
Design: Session is constructed explicitly and passed to the client (no process-wide singleton).
"""

import logging
from typing import Any, Protocol

from pydantic import ConfigDict, RootModel, ValidationError, model_validator

from market.core.errors import AuthError, ErrorKind, MarketError

logger = logging.getLogger(__name__)

ANONYMOUS_TEXT = "2vxsx-fae"


class Identity(RootModel[str]):
    """Opaque caller token. Hashable, compares by text."""

    model_config = ConfigDict(frozen=True)

    @model_validator(mode="before")
    @classmethod
    def _normalize(cls, value: Any) -> Any:
        if isinstance(value, Identity):
            return value.root
        if isinstance(value, str):
            text = value.strip()
        elif callable(getattr(value, "to_text", None)):
            text = str(value.to_text()).strip()
        else:
            raise ValueError(f"Unsupported identity value: {type(value).__name__}")
        if not text:
            raise ValueError("Identity cannot be empty")
        return text

    @property
    def is_anonymous(self) -> bool:
        return self.root == ANONYMOUS_TEXT

    def __str__(self) -> str:
        return self.root


ANONYMOUS = Identity(ANONYMOUS_TEXT)


def to_identity(value: Any) -> Identity:
    """Normalize any provider/wire identity shape. Raises MarketError(InvalidInput)."""
    try:
        return Identity.model_validate(value)
    except ValidationError as e:
        raise MarketError(ErrorKind.INVALID_INPUT, f"Invalid identity: {e.errors()[0]['msg']}") from e


class IdentityProvider(Protocol):
    """External identity provider. The cryptographic protocol lives behind it."""

    async def restore(self) -> Any | None:
        """Identity of an already-established session, or None."""

    async def authenticate(self) -> Any | None:
        """Run the interactive challenge. None means the user cancelled; raise AuthError on failure."""

    async def sign_out(self) -> None:
        ...


class ConfiguredIdentityProvider:
    """Issues a fixed identity from settings (local replica / development)."""

    def __init__(self, identity: str | None):
        self._identity = identity
        self._signed_in = False

    async def restore(self) -> Any | None:
        return self._identity if self._signed_in else None

    async def authenticate(self) -> Any | None:
        if not self._identity:
            raise AuthError("No identity provider configured")
        self._signed_in = True
        return self._identity

    async def sign_out(self) -> None:
        self._signed_in = False


class IdentitySession:
    """Owns the current identity. Anonymous until a login completes."""

    def __init__(self, provider: IdentityProvider):
        self._provider = provider
        self._identity: Identity = ANONYMOUS

    def current_identity(self) -> Identity:
        return self._identity

    @property
    def is_authenticated(self) -> bool:
        return not self._identity.is_anonymous

    async def restore(self) -> Identity:
        """Pick up an existing provider session on startup."""
        raw = await self._provider.restore()
        self._identity = ANONYMOUS if raw is None else to_identity(raw)
        return self._identity

    async def login(self) -> Identity:
        """Suspend until the provider finishes. Cancel -> still anonymous; failure -> AuthError."""
        try:
            raw = await self._provider.authenticate()
        except AuthError:
            raise
        except Exception as e:
            logger.warning("Identity provider failed: %s", e)
            raise AuthError(f"Identity provider failed: {e}") from e
        if raw is None:
            logger.info("Login cancelled; session stays %s", self._identity)
            return self._identity
        self._identity = to_identity(raw)
        logger.info("Logged in as %s", self._identity)
        return self._identity

    async def logout(self) -> None:
        """Invalidate the session. Local state is anonymous even if the provider errors."""
        previous = self._identity
        self._identity = ANONYMOUS
        try:
            await self._provider.sign_out()
        except Exception as e:
            logger.warning("Sign-out failed for %s: %s", previous, e)
            raise AuthError(f"Sign-out failed: {e}") from e
        logger.info("Logged out %s", previous)
