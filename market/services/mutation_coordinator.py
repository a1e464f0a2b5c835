"""
Mutation coordinator - purchase, like/unlike, rate, create/update/delete against the remote ledger.
Challenge: Double clicks must not double-charge; a rejected mutation must not leave half-applied state.
Design: Single-flight per (item, operation). Nothing is applied optimistically: local state changes only
through the re-queries issued after the remote confirms. Failures touch last_error and nothing else.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any

from pydantic import ValidationError

from market.core.access import evaluate
from market.core.errors import ErrorKind
from market.core.metrics import MUTATIONS
from market.remote.client import RemoteServiceClient
from market.schemas.envelope import RemoteResult
from market.schemas.item import Item, ItemCreate, ItemUpdate
from market.services.view_assembly import ViewAssembler
from market.services.view_state import OpKind, Slice, ViewState

logger = logging.getLogger(__name__)

MIN_RATING = 1
MAX_RATING = 5


def _validation_message(e: ValidationError) -> str:
    first = e.errors()[0]
    message = first.get("msg", str(e))
    return message.removeprefix("Value error, ")


class MutationCoordinator:
    def __init__(self, client: RemoteServiceClient, view: ViewState, assembler: ViewAssembler):
        self.client = client
        self.view = view
        self.assembler = assembler

    def _fail(self, op: OpKind, kind: ErrorKind, message: str, outcome: str = "failed") -> RemoteResult:
        MUTATIONS.labels(operation=op.value, outcome=outcome).inc()
        logger.info("%s failed (%s): %s", op.value, kind.value, message)
        self.view.record_error(kind, message, op.value)
        return RemoteResult.fail(kind, message)

    async def _run(
        self,
        op: OpKind,
        item_id: int | None,
        call: Callable[[], Awaitable[RemoteResult]],
        settle: Callable[[RemoteResult], Awaitable[Any]],
        precheck: Callable[[], tuple[ErrorKind, str] | None] | None = None,
    ) -> RemoteResult:
        """Idle -> InFlight -> Settled | Failed for one (item_id, op) key."""
        if not self.client.session.is_authenticated or self.view.identity.is_anonymous:
            return self._fail(op, ErrorKind.NOT_AUTHENTICATED, "Authentication required")

        key = (item_id, op)
        if key in self.view.pending_operations:
            return self._fail(op, ErrorKind.BUSY, f"{op.value} already in progress for item {item_id}", "busy")

        if precheck is not None:
            problem = precheck()
            if problem is not None:
                return self._fail(op, problem[0], problem[1], "rejected_locally")

        pending = self.view.pending_operations
        pending.add(key)
        epoch = self.view.epoch
        try:
            result = await call()
            if not result.success:
                if self.view.epoch != epoch:
                    MUTATIONS.labels(operation=op.value, outcome="failed").inc()
                    logger.info("%s on %s failed after identity change: %s", op.value, item_id, result.error)
                    return result
                return self._fail(op, result.kind or ErrorKind.INVALID_INPUT, result.error or "Unknown error")

            MUTATIONS.labels(operation=op.value, outcome="settled").inc()
            if self.view.epoch != epoch:
                logger.info("%s on %s settled after identity change; skipping reconciliation", op.value, item_id)
                return result
            logger.info("%s on %s settled; reconciling", op.value, item_id)
            self.view.clear_error()
            await settle(result)
            return result
        finally:
            # A reset swaps in a fresh set; only release the key in the set it was added to
            pending.discard(key)

    # --- prechecks ---

    def _owner_only(self, item_id: int) -> tuple[ErrorKind, str] | None:
        item = self.view.find_item(item_id)
        if item is not None and item.author != self.view.identity:
            return ErrorKind.UNAUTHORIZED, "Unauthorized"
        return None

    # --- operations ---

    async def purchase(self, item_id: int) -> RemoteResult[str]:
        def precheck():
            if item_id in self.view.purchased_ids:
                return ErrorKind.UNAUTHORIZED, "Item already purchased"
            item = self.view.find_item(item_id)
            if item is not None and item.author == self.view.identity:
                return ErrorKind.UNAUTHORIZED, "Cannot purchase your own item"
            return None

        async def settle(_):
            await self.assembler.refresh_item(item_id)
            await self.assembler.refresh_purchases()
            await self.assembler.refresh_profile()

        return await self._run(OpKind.PURCHASE, item_id, lambda: self.client.purchase_item(item_id), settle, precheck)

    async def like(self, item_id: int) -> RemoteResult[str]:
        async def settle(_):
            self.view.apply_liked(self.view.begin(Slice.LIKES), item_id, True)
            await self.assembler.refresh_item(item_id)

        return await self._run(OpKind.LIKE, item_id, lambda: self.client.like_item(item_id), settle)

    async def unlike(self, item_id: int) -> RemoteResult[str]:
        async def settle(_):
            self.view.apply_liked(self.view.begin(Slice.LIKES), item_id, False)
            await self.assembler.refresh_item(item_id)

        return await self._run(OpKind.UNLIKE, item_id, lambda: self.client.unlike_item(item_id), settle)

    async def toggle_like(self, item_id: int) -> RemoteResult[str]:
        if item_id in self.view.liked_ids:
            return await self.unlike(item_id)
        return await self.like(item_id)

    async def rate(self, item_id: int, rating: int) -> RemoteResult[str]:
        def precheck():
            if isinstance(rating, bool) or not isinstance(rating, int) or not MIN_RATING <= rating <= MAX_RATING:
                return ErrorKind.INVALID_INPUT, f"Rating must be between {MIN_RATING} and {MAX_RATING}"
            item = self.view.find_item(item_id)
            if item is not None:
                decision = evaluate(self.view.identity, item, self.view.purchased_ids)
                if not decision.can_rate:
                    return ErrorKind.UNAUTHORIZED, f"Cannot rate item as {decision.classification.value}"
            return None

        async def settle(_):
            await self.assembler.refresh_item(item_id)

        return await self._run(OpKind.RATE, item_id, lambda: self.client.rate_item(item_id, rating), settle, precheck)

    async def create_item(self, data: ItemCreate | dict[str, Any]) -> RemoteResult[Item]:
        try:
            draft = data if isinstance(data, ItemCreate) else ItemCreate.model_validate(data)
        except ValidationError as e:
            if not self.client.session.is_authenticated:
                return self._fail(OpKind.CREATE, ErrorKind.NOT_AUTHENTICATED, "Authentication required")
            return self._fail(OpKind.CREATE, ErrorKind.INVALID_INPUT, _validation_message(e), "rejected_locally")

        async def settle(_):
            await asyncio.gather(
                self.assembler.refresh_my_items(),
                self.assembler.refresh_public_items(),
                self.assembler.refresh_profile(),
            )

        return await self._run(OpKind.CREATE, None, lambda: self.client.create_item(draft), settle)

    async def update_item(self, item_id: int, data: ItemUpdate | dict[str, Any]) -> RemoteResult[Item]:
        try:
            changes = data if isinstance(data, ItemUpdate) else ItemUpdate.model_validate(data)
        except ValidationError as e:
            if not self.client.session.is_authenticated:
                return self._fail(OpKind.UPDATE, ErrorKind.NOT_AUTHENTICATED, "Authentication required")
            return self._fail(OpKind.UPDATE, ErrorKind.INVALID_INPUT, _validation_message(e), "rejected_locally")

        async def settle(_):
            await asyncio.gather(self.assembler.refresh_my_items(), self.assembler.refresh_public_items())

        return await self._run(
            OpKind.UPDATE,
            item_id,
            lambda: self.client.update_item(item_id, changes),
            settle,
            lambda: self._owner_only(item_id),
        )

    async def delete_item(self, item_id: int) -> RemoteResult[str]:
        async def settle(_):
            self.view.apply_liked(self.view.begin(Slice.LIKES), item_id, False)
            await asyncio.gather(
                self.assembler.refresh_my_items(),
                self.assembler.refresh_public_items(),
                self.assembler.refresh_profile(),
            )

        return await self._run(
            OpKind.DELETE,
            item_id,
            lambda: self.client.delete_item(item_id),
            settle,
            lambda: self._owner_only(item_id),
        )
