"""
Session bootstrap - make sure an authenticated identity has a usable profile.
Challenge: New identities need a display name before they can sell; prompts may be abandoned.
Design: Runs once per identity transition. Every failure degrades to browse-only instead of blocking.
"""

import logging
from enum import Enum

from market.core.errors import ErrorKind
from market.remote.client import RemoteServiceClient
from market.schemas.profile import Profile, display_name_error
from market.services.onboarding import Onboarding
from market.services.view_state import RefreshTicket, Slice, ViewState

logger = logging.getLogger(__name__)

NAME_PROMPT = "Enter your name (required)"
EMAIL_PROMPT = "Enter your email (optional)"


class BootstrapState(str, Enum):
    IDLE = "idle"
    ANONYMOUS = "anonymous"
    LOADING_PROFILE = "loading_profile"
    AWAITING_DISPLAY_NAME = "awaiting_display_name"
    AWAITING_EMAIL = "awaiting_email"
    REGISTERING = "registering"
    UPDATING_DISPLAY_NAME = "updating_display_name"
    READY = "ready"
    BROWSE_ONLY = "browse_only"


class SessionBootstrap:
    def __init__(self, client: RemoteServiceClient, view: ViewState, onboarding: Onboarding):
        self.client = client
        self.view = view
        self.onboarding = onboarding
        self.state = BootstrapState.IDLE
        self._ran_for_epoch: int | None = None

    async def run(self) -> Profile | None:
        """Resolve or create the profile for view.identity. No-op if already run for this identity."""
        epoch = self.view.epoch
        if self._ran_for_epoch == epoch:
            return self.view.profile
        self._ran_for_epoch = epoch

        identity = self.view.identity
        if identity.is_anonymous:
            self.state = BootstrapState.ANONYMOUS
            return None

        ticket = self.view.begin(Slice.PROFILE)
        self.state = BootstrapState.LOADING_PROFILE
        result = await self.client.get_profile(identity)
        if result.success:
            profile = result.data
            if not profile.has_display_name:
                profile, ticket = await self._backfill_display_name(profile, ticket)
        elif result.kind is ErrorKind.NOT_FOUND:
            profile, ticket = await self._register(ticket)
        else:
            logger.warning("Profile lookup for %s failed (%s); browse-only", identity, result.error)
            profile = None

        if self.view.epoch != epoch:
            logger.info("Identity changed during bootstrap of %s; result dropped", identity)
            return None
        if not self.view.apply_profile(ticket, profile):
            # A refresh issued after our final call already landed
            logger.debug("Bootstrap profile for %s superseded by a newer refresh", identity)
        self.state = BootstrapState.READY if self.view.profile is not None else BootstrapState.BROWSE_ONLY
        return self.view.profile

    async def _collect_display_name(self) -> str | None:
        """Re-prompt on empty or out-of-bounds input; None only when the user cancels."""
        self.state = BootstrapState.AWAITING_DISPLAY_NAME
        while True:
            answer = await self.onboarding.prompt_non_empty_string(NAME_PROMPT)
            if answer is None:
                return None
            name = answer.strip()
            problem = display_name_error(name)
            if problem is None:
                return name
            logger.info("Rejected display name input: %s", problem)

    async def _register(self, ticket: RefreshTicket) -> tuple[Profile | None, RefreshTicket]:
        name = await self._collect_display_name()
        if name is None:
            logger.warning("Onboarding abandoned for %s; staying browse-only", self.view.identity)
            self.view.record_error(ErrorKind.CANCELLED, "Onboarding abandoned", "bootstrap")
            return None, ticket

        self.state = BootstrapState.AWAITING_EMAIL
        email = await self.onboarding.prompt_optional_string(EMAIL_PROMPT)
        email = email.strip() if email else None

        self.state = BootstrapState.REGISTERING
        registered = self.view.begin(Slice.PROFILE)
        result = await self.client.register_identity(name, email or None)
        if not result.success:
            logger.warning("Profile creation for %s failed: %s", self.view.identity, result.error)
            return None, ticket
        logger.info("Registered profile for %s", self.view.identity)
        return result.data, registered

    async def _backfill_display_name(
        self, profile: Profile, ticket: RefreshTicket
    ) -> tuple[Profile, RefreshTicket]:
        """Missing name is tolerated: any failure keeps the existing profile."""
        name = await self._collect_display_name()
        if name is None:
            logger.info("Display name backfill skipped for %s", profile.identity)
            return profile, ticket
        self.state = BootstrapState.UPDATING_DISPLAY_NAME
        updated = self.view.begin(Slice.PROFILE)
        result = await self.client.update_display_name(name)
        if not result.success:
            logger.warning("Display name update for %s failed: %s", profile.identity, result.error)
            return profile, ticket
        return result.data, updated
