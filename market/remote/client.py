"""
Remote ledger client - one method per remote operation, all returning RemoteResult.
Challenge: Typed call surface over an RPC endpoint that answers {success, data?, error?}.
Design: No automatic retries. A repeated mutating call could double-charge; retry is the caller's decision.
"""

import logging
from collections.abc import Callable
from typing import Any, TypeVar

import httpx
from pydantic import TypeAdapter

from market.core.errors import ErrorKind
from market.core.identity import Identity, IdentitySession
from market.schemas.envelope import RemoteResult
from market.schemas.item import Category, Item, ItemCreate, ItemUpdate, Uint64
from market.schemas.profile import Profile

logger = logging.getLogger(__name__)

T = TypeVar("T")

_item_list = TypeAdapter(list[Item])
_id_list = TypeAdapter(list[Uint64])
_amount = TypeAdapter(Uint64)


def _text(data: Any) -> str:
    return "" if data is None else str(data)


class RemoteServiceClient:
    """Calls go out with the session's current identity; the session is passed in, never global."""

    def __init__(
        self,
        session: IdentitySession,
        base_url: str,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.session = session
        self._http = httpx.AsyncClient(base_url=base_url, timeout=timeout, transport=transport)

    async def aclose(self) -> None:
        await self._http.aclose()

    def _headers(self) -> dict[str, str]:
        identity = self.session.current_identity()
        if identity.is_anonymous:
            return {}
        return {"Authorization": f"Bearer {identity}"}

    async def _call(self, method: str, payload: dict[str, Any], parse: Callable[[Any], T]) -> RemoteResult[T]:
        try:
            response = await self._http.post(f"/{method}", json=payload, headers=self._headers())
            response.raise_for_status()
            body = response.json()
        except httpx.HTTPError as e:
            logger.warning("Remote call %s failed: %s", method, e)
            return RemoteResult.fail(ErrorKind.REMOTE_UNAVAILABLE, f"{method}: {e}")
        except ValueError as e:
            logger.warning("Remote call %s returned undecodable body: %s", method, e)
            return RemoteResult.fail(ErrorKind.REMOTE_UNAVAILABLE, f"{method}: undecodable response")

        if not isinstance(body, dict) or "success" not in body:
            logger.warning("Remote call %s returned malformed envelope", method)
            return RemoteResult.fail(ErrorKind.REMOTE_UNAVAILABLE, f"{method}: malformed response")
        if not body["success"]:
            return RemoteResult.rejected(body.get("error"))
        try:
            data = parse(body.get("data"))
        except (ValueError, TypeError) as e:
            # Unknown category keys and out-of-range integers land here
            logger.error("Remote call %s returned invalid data: %s", method, e)
            return RemoteResult.fail(ErrorKind.REMOTE_UNAVAILABLE, f"{method}: invalid data in response")
        return RemoteResult.ok(data)

    def _not_authenticated(self, method: str) -> RemoteResult:
        logger.debug("Refusing %s for anonymous session", method)
        return RemoteResult.fail(ErrorKind.NOT_AUTHENTICATED, "Authentication required")

    # --- profiles ---

    async def register_identity(self, display_name: str | None = None, email: str | None = None) -> RemoteResult[Profile]:
        if not self.session.is_authenticated:
            return self._not_authenticated("register_identity")
        return await self._call(
            "register_identity",
            {"username": display_name, "email": email},
            Profile.model_validate,
        )

    async def get_profile(self, identity: Identity) -> RemoteResult[Profile]:
        return await self._call("get_profile", {"identity": str(identity)}, Profile.model_validate)

    async def update_display_name(self, display_name: str) -> RemoteResult[Profile]:
        if not self.session.is_authenticated:
            return self._not_authenticated("update_display_name")
        return await self._call("update_display_name", {"username": display_name}, Profile.model_validate)

    # --- items ---

    async def create_item(self, data: ItemCreate) -> RemoteResult[Item]:
        if not self.session.is_authenticated:
            return self._not_authenticated("create_item")
        return await self._call("create_item", data.to_wire(), Item.model_validate)

    async def update_item(self, item_id: int, data: ItemUpdate) -> RemoteResult[Item]:
        if not self.session.is_authenticated:
            return self._not_authenticated("update_item")
        return await self._call("update_item", data.to_wire(item_id), Item.model_validate)

    async def delete_item(self, item_id: int) -> RemoteResult[str]:
        if not self.session.is_authenticated:
            return self._not_authenticated("delete_item")
        return await self._call("delete_item", {"item_id": item_id}, _text)

    async def get_item(self, item_id: int) -> RemoteResult[Item]:
        return await self._call("get_item", {"item_id": item_id}, Item.model_validate)

    async def get_item_content(self, item_id: int) -> RemoteResult[str]:
        return await self._call("get_item_content", {"item_id": item_id}, _text)

    async def list_public_items(self) -> RemoteResult[list[Item]]:
        return await self._call("list_public_items", {}, _item_list.validate_python)

    async def list_items_by_author(self, identity: Identity) -> RemoteResult[list[Item]]:
        return await self._call("list_items_by_author", {"identity": str(identity)}, _item_list.validate_python)

    async def search_items(self, text: str, category: Category | None = None) -> RemoteResult[list[Item]]:
        payload = {"query": text, "category": category.encode() if category else None}
        return await self._call("search_items", payload, _item_list.validate_python)

    # --- settlement ---

    async def purchase_item(self, item_id: int) -> RemoteResult[str]:
        if not self.session.is_authenticated:
            return self._not_authenticated("purchase_item")
        return await self._call("purchase_item", {"item_id": item_id}, _text)

    async def like_item(self, item_id: int) -> RemoteResult[str]:
        if not self.session.is_authenticated:
            return self._not_authenticated("like_item")
        return await self._call("like_item", {"item_id": item_id}, _text)

    async def unlike_item(self, item_id: int) -> RemoteResult[str]:
        if not self.session.is_authenticated:
            return self._not_authenticated("unlike_item")
        return await self._call("unlike_item", {"item_id": item_id}, _text)

    async def rate_item(self, item_id: int, rating: int) -> RemoteResult[str]:
        if not self.session.is_authenticated:
            return self._not_authenticated("rate_item")
        return await self._call("rate_item", {"item_id": item_id, "rating": rating}, _text)

    async def list_purchase_ids(self, identity: Identity) -> RemoteResult[list[int]]:
        return await self._call("list_purchase_ids", {"identity": str(identity)}, _id_list.validate_python)

    async def get_ledger_balance(self, identity: Identity) -> RemoteResult[int]:
        return await self._call("get_ledger_balance", {"identity": str(identity)}, _amount.validate_python)
