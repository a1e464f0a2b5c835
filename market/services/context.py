"""
Application context - the explicitly constructed session/client pair and the services built on it.
Challenge: Identity transitions must discard old-identity data before anything new is fetched.
Design: One object owned by the top-level app and passed by reference; no module-level singletons.
"""

import asyncio
import logging

import httpx

from market.config import Settings
from market.core.identity import ConfiguredIdentityProvider, Identity, IdentityProvider, IdentitySession
from market.remote.client import RemoteServiceClient
from market.services.mutation_coordinator import MutationCoordinator
from market.services.onboarding import Onboarding, SuspendedOnboarding
from market.services.session_bootstrap import SessionBootstrap
from market.services.view_assembly import ViewAssembler
from market.services.view_state import ViewState

logger = logging.getLogger(__name__)


class AppContext:
    def __init__(
        self,
        session: IdentitySession,
        client: RemoteServiceClient,
        onboarding: Onboarding,
    ):
        self.session = session
        self.client = client
        self.onboarding = onboarding
        self.view = ViewState()
        self.bootstrap = SessionBootstrap(client, self.view, onboarding)
        self.assembler = ViewAssembler(client, self.view)
        self.coordinator = MutationCoordinator(client, self.view, self.assembler)
        self._transition: asyncio.Task | None = None

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        provider: IdentityProvider | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> "AppContext":
        session = IdentitySession(provider or ConfiguredIdentityProvider(settings.identity_provider_identity))
        client = RemoteServiceClient(
            session,
            settings.remote_service_url,
            timeout=settings.remote_timeout_seconds,
            transport=transport,
        )
        return cls(session, client, SuspendedOnboarding())

    async def start(self, wait: bool = True) -> None:
        """Pick up any existing provider session, then bootstrap and assemble."""
        await self.session.restore()
        await self._on_identity_changed(wait)

    async def login(self, wait: bool = True) -> Identity:
        """AuthError propagates; a cancelled login leaves state untouched.

        With wait=False the view is reset before returning and bootstrap continues in the
        background, so onboarding prompts can be answered by later requests.
        """
        before = self.session.current_identity()
        identity = await self.session.login()
        if identity != before:
            await self._on_identity_changed(wait)
        return identity

    async def logout(self, wait: bool = True) -> None:
        try:
            await self.session.logout()
        finally:
            await self._on_identity_changed(wait)

    @property
    def transition(self) -> asyncio.Task | None:
        return self._transition

    async def _on_identity_changed(self, wait: bool) -> None:
        # Reset first: nothing fetched below may land in the previous identity's slices
        self.view.reset(self.session.current_identity())
        if self._transition is not None and not self._transition.done():
            # Abandons any onboarding prompt still waiting for the old identity
            self._transition.cancel()
        self._transition = asyncio.create_task(self._bootstrap_and_assemble())
        if wait:
            await self._transition

    async def _bootstrap_and_assemble(self) -> None:
        await self.bootstrap.run()
        await self.assembler.assemble()

    async def close(self) -> None:
        if self._transition is not None and not self._transition.done():
            self._transition.cancel()
        await self.client.aclose()
