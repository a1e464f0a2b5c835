"""
View assembly - populate and refresh ViewState slices from remote queries.
Challenge: Keep stale-but-available data when a background query fails.
Design: Each refresh takes its ticket before the call; failures are logged and leave the slice untouched.
"""

import asyncio
import logging
from collections.abc import Hashable, Iterable

from market.core.metrics import REFRESHES
from market.remote.client import RemoteServiceClient
from market.schemas.envelope import RemoteResult
from market.schemas.item import Category, Item
from market.services.view_state import Slice, ViewState, item_key

logger = logging.getLogger(__name__)


def filter_items(items: Iterable[Item], text: str | None = None, category: Category | None = None) -> list[Item]:
    """Case-insensitive match on title, description or any tag; optional exact category."""
    needle = (text or "").strip().lower()
    matched = []
    for item in items:
        if category is not None and item.category is not category:
            continue
        if needle and not (
            needle in item.title.lower()
            or needle in item.description.lower()
            or any(needle in tag.lower() for tag in item.tags)
        ):
            continue
        matched.append(item)
    return matched


class ViewAssembler:
    def __init__(self, client: RemoteServiceClient, view: ViewState):
        self.client = client
        self.view = view

    def _record(self, key: Hashable, result: RemoteResult, applied: bool = False) -> bool:
        label = key.value if isinstance(key, Slice) else "item"
        if not result.success:
            REFRESHES.labels(slice=label, outcome="failed").inc()
            logger.warning("Refresh of %s failed, keeping previous data: %s", key, result.error)
            return False
        REFRESHES.labels(slice=label, outcome="applied" if applied else "discarded").inc()
        return applied

    async def assemble(self) -> None:
        """Initial population after bootstrap. Public items always; the rest only when signed in."""
        tasks = [self.refresh_public_items()]
        if not self.view.identity.is_anonymous:
            tasks += [self.refresh_my_items(), self.refresh_purchases(), self.refresh_balance()]
        await asyncio.gather(*tasks)

    async def refresh_public_items(self) -> bool:
        ticket = self.view.begin(Slice.PUBLIC_ITEMS)
        result = await self.client.list_public_items()
        applied = result.success and self.view.apply_public_items(ticket, result.data)
        return self._record(Slice.PUBLIC_ITEMS, result, applied)

    async def refresh_my_items(self) -> bool:
        identity = self.view.identity
        if identity.is_anonymous:
            return False
        ticket = self.view.begin(Slice.MY_ITEMS)
        result = await self.client.list_items_by_author(identity)
        applied = result.success and self.view.apply_my_items(ticket, result.data)
        return self._record(Slice.MY_ITEMS, result, applied)

    async def refresh_purchases(self) -> bool:
        """The remote returns ids only; hydrate each. A failed hydration skips that id."""
        identity = self.view.identity
        if identity.is_anonymous:
            return False
        ticket = self.view.begin(Slice.PURCHASES)
        result = await self.client.list_purchase_ids(identity)
        if not result.success:
            return self._record(Slice.PURCHASES, result)
        ids = result.data
        hydrated = await asyncio.gather(*(self.client.get_item(item_id) for item_id in ids))
        items = []
        for item_id, item_result in zip(ids, hydrated):
            if item_result.success:
                items.append(item_result.data)
            else:
                logger.info("Skipping purchased item %s: %s", item_id, item_result.error)
        applied = self.view.apply_purchases(ticket, ids, items)
        return self._record(Slice.PURCHASES, result, applied)

    async def refresh_item(self, item_id: int) -> bool:
        ticket = self.view.begin(item_key(item_id))
        result = await self.client.get_item(item_id)
        applied = result.success and self.view.apply_item(ticket, result.data)
        return self._record(item_key(item_id), result, applied)

    async def refresh_profile(self) -> bool:
        identity = self.view.identity
        if identity.is_anonymous:
            return False
        ticket = self.view.begin(Slice.PROFILE)
        result = await self.client.get_profile(identity)
        applied = result.success and self.view.apply_profile(ticket, result.data)
        return self._record(Slice.PROFILE, result, applied)

    async def refresh_balance(self) -> bool:
        identity = self.view.identity
        if identity.is_anonymous:
            return False
        ticket = self.view.begin(Slice.BALANCE)
        result = await self.client.get_ledger_balance(identity)
        applied = result.success and self.view.apply_balance(ticket, result.data)
        return self._record(Slice.BALANCE, result, applied)

    async def refresh_mine(self) -> None:
        """Page switch to the signed-in user's own page."""
        if self.view.identity.is_anonymous:
            return
        await asyncio.gather(self.refresh_my_items(), self.refresh_purchases())

    async def search(self, text: str, category: Category | None = None) -> RemoteResult[list[Item]]:
        ticket = self.view.begin(Slice.SEARCH_RESULTS)
        result = await self.client.search_items(text, category)
        applied = result.success and self.view.apply_search_results(ticket, result.data)
        self._record(Slice.SEARCH_RESULTS, result, applied)
        return result

    async def fetch_content(self, item_id: int) -> RemoteResult[str]:
        """Content is only ever what the remote grants now; it is never cached."""
        return await self.client.get_item_content(item_id)
