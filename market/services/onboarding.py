"""
Onboarding collaborator - collects a display name (and optional email) for new identities.
Challenge: Prompts are interactive but bootstrap runs inside the event loop.
Design: A prompt is an awaitable that suspends bootstrap until answer()/cancel() resumes it.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Protocol

logger = logging.getLogger(__name__)


class Onboarding(Protocol):
    async def prompt_non_empty_string(self, label: str) -> str | None:
        """Answer text (may be empty; caller re-prompts), or None when cancelled."""

    async def prompt_optional_string(self, label: str) -> str | None:
        """Answer text, or None when absent/cancelled."""


@dataclass(frozen=True)
class PendingPrompt:
    label: str
    required: bool


class SuspendedOnboarding:
    """Parks each prompt on a future; external input (HTTP, terminal) resumes it."""

    def __init__(self):
        self._pending: PendingPrompt | None = None
        self._future: asyncio.Future[str | None] | None = None

    @property
    def pending(self) -> PendingPrompt | None:
        return self._pending

    async def _ask(self, label: str, required: bool) -> str | None:
        if self._future is not None and not self._future.done():
            raise RuntimeError(f"Prompt already pending: {self._pending.label if self._pending else ''}")
        self._pending = PendingPrompt(label=label, required=required)
        self._future = asyncio.get_running_loop().create_future()
        logger.debug("Waiting for input: %s", label)
        try:
            return await self._future
        finally:
            self._pending = None
            self._future = None

    async def prompt_non_empty_string(self, label: str) -> str | None:
        return await self._ask(label, required=True)

    async def prompt_optional_string(self, label: str) -> str | None:
        return await self._ask(label, required=False)

    def answer(self, text: str) -> bool:
        """Resume the waiting prompt. False when nothing is waiting."""
        if self._future is None or self._future.done():
            return False
        self._future.set_result(text)
        return True

    def cancel(self) -> bool:
        if self._future is None or self._future.done():
            return False
        self._future.set_result(None)
        return True
