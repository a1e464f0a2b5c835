"""
ViewState - the reconciled snapshot presentation reads from.
Challenge: Overlapping refreshes complete out of order; identity changes must not leak old data.
Design: Every refresh takes a ticket (slice key, sequence, identity epoch). Responses apply only if
they are the newest for their slice, still for the same identity, and the slice is still subscribed.
"""

import logging
from collections.abc import Hashable
from dataclasses import dataclass
from enum import Enum
from typing import Any

from market.core.errors import ErrorKind
from market.core.identity import ANONYMOUS, Identity
from market.schemas.item import Item
from market.schemas.profile import Profile

logger = logging.getLogger(__name__)


class Slice(str, Enum):
    PROFILE = "profile"
    PUBLIC_ITEMS = "public_items"
    MY_ITEMS = "my_items"
    PURCHASES = "my_purchased_items"
    LIKES = "liked_ids"
    SEARCH_RESULTS = "search_results"
    BALANCE = "ledger_balance"


class OpKind(str, Enum):
    PURCHASE = "purchase"
    LIKE = "like"
    UNLIKE = "unlike"
    RATE = "rate"
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


PendingKey = tuple[int | None, OpKind]


@dataclass(frozen=True)
class RefreshTicket:
    key: Hashable
    seq: int
    epoch: int


@dataclass(frozen=True)
class LastError:
    kind: ErrorKind
    message: str
    operation: str | None = None


def item_key(item_id: int) -> tuple[str, int]:
    return ("item", item_id)


class ViewState:
    """Single mutable structure. Written only through apply_* with a ticket."""

    def __init__(self):
        self.identity: Identity = ANONYMOUS
        self.epoch = 0
        self._issued: dict[Hashable, int] = {}
        self._applied: dict[Hashable, int] = {}
        self._unsubscribed: set[Hashable] = set()
        self._clear()

    def _clear(self) -> None:
        self.profile: Profile | None = None
        self.public_items: list[Item] = []
        self.my_items: dict[int, Item] = {}
        self.my_purchased_items: dict[int, Item] = {}
        self.purchased_ids: frozenset[int] = frozenset()
        self.liked_ids: set[int] = set()
        self.search_results: list[Item] = []
        self.ledger_balance: int | None = None
        self.pending_operations: set[PendingKey] = set()
        self.last_error: LastError | None = None

    def reset(self, identity: Identity) -> None:
        """Drop every slice tied to the previous identity. In-flight tickets become stale."""
        logger.info("Resetting view state: %s -> %s", self.identity, identity)
        self.epoch += 1
        self.identity = identity
        self._issued.clear()
        self._applied.clear()
        self._clear()

    # --- tickets ---

    def begin(self, key: Hashable) -> RefreshTicket:
        seq = self._issued.get(key, 0) + 1
        self._issued[key] = seq
        return RefreshTicket(key=key, seq=seq, epoch=self.epoch)

    def is_current(self, ticket: RefreshTicket) -> bool:
        return ticket.epoch == self.epoch

    def _accept(self, ticket: RefreshTicket) -> bool:
        if ticket.epoch != self.epoch:
            logger.debug("Discarding %s from identity epoch %d", ticket.key, ticket.epoch)
            return False
        if ticket.key in self._unsubscribed:
            logger.debug("Discarding %s: slice no longer subscribed", ticket.key)
            return False
        if ticket.seq <= self._applied.get(ticket.key, 0):
            logger.debug("Discarding stale %s seq=%d", ticket.key, ticket.seq)
            return False
        self._applied[ticket.key] = ticket.seq
        return True

    def subscribe(self, key: Hashable) -> None:
        self._unsubscribed.discard(key)

    def unsubscribe(self, key: Hashable) -> None:
        self._unsubscribed.add(key)

    # --- slice writers ---

    def apply_profile(self, ticket: RefreshTicket, profile: Profile | None) -> bool:
        if not self._accept(ticket):
            return False
        self.profile = profile
        return True

    def apply_public_items(self, ticket: RefreshTicket, items: list[Item]) -> bool:
        if not self._accept(ticket):
            return False
        self.public_items = list(items)
        return True

    def apply_my_items(self, ticket: RefreshTicket, items: list[Item]) -> bool:
        if not self._accept(ticket):
            return False
        self.my_items = {item.id: item for item in items}
        return True

    def apply_purchases(self, ticket: RefreshTicket, ids: list[int], items: list[Item]) -> bool:
        """ids are the remote's authoritative set; hydrated items outside it are dropped."""
        if not self._accept(ticket):
            return False
        self.purchased_ids = frozenset(ids)
        self.my_purchased_items = {item.id: item for item in items if item.id in self.purchased_ids}
        return True

    def apply_item(self, ticket: RefreshTicket, item: Item) -> bool:
        """Replace one item wherever it is already shown."""
        if not self._accept(ticket):
            return False
        self.public_items = [item if existing.id == item.id else existing for existing in self.public_items]
        self.search_results = [item if existing.id == item.id else existing for existing in self.search_results]
        if item.id in self.my_items:
            self.my_items[item.id] = item
        if item.id in self.purchased_ids:
            self.my_purchased_items[item.id] = item
        return True

    def apply_liked(self, ticket: RefreshTicket, item_id: int, liked: bool) -> bool:
        if not self._accept(ticket):
            return False
        if liked:
            self.liked_ids.add(item_id)
        else:
            self.liked_ids.discard(item_id)
        return True

    def apply_search_results(self, ticket: RefreshTicket, items: list[Item]) -> bool:
        if not self._accept(ticket):
            return False
        self.search_results = list(items)
        return True

    def apply_balance(self, ticket: RefreshTicket, amount: int) -> bool:
        if not self._accept(ticket):
            return False
        self.ledger_balance = amount
        return True

    def record_error(self, kind: ErrorKind, message: str, operation: str | None = None) -> None:
        self.last_error = LastError(kind=kind, message=message, operation=operation)

    def clear_error(self) -> None:
        self.last_error = None

    # --- readers ---

    def find_item(self, item_id: int) -> Item | None:
        if item_id in self.my_items:
            return self.my_items[item_id]
        if item_id in self.my_purchased_items:
            return self.my_purchased_items[item_id]
        return next((item for item in self.public_items if item.id == item_id), None)

    def snapshot(self) -> dict[str, Any]:
        """JSON-ready copy. Two snapshots compare equal iff the visible state is identical."""
        return {
            "identity": str(self.identity),
            "authenticated": not self.identity.is_anonymous,
            "profile": self.profile.model_dump(mode="json") if self.profile else None,
            "public_items": [item.model_dump(mode="json") for item in self.public_items],
            "my_items": [self.my_items[k].model_dump(mode="json") for k in sorted(self.my_items)],
            "my_purchased_items": [
                self.my_purchased_items[k].model_dump(mode="json") for k in sorted(self.my_purchased_items)
            ],
            "purchased_ids": sorted(self.purchased_ids),
            "liked_ids": sorted(self.liked_ids),
            "search_results": [item.model_dump(mode="json") for item in self.search_results],
            "ledger_balance": self.ledger_balance,
            "pending_operations": sorted(
                [item_id if item_id is not None else -1, op.value] for item_id, op in self.pending_operations
            ),
            "last_error": (
                {
                    "kind": self.last_error.kind.value,
                    "message": self.last_error.message,
                    "operation": self.last_error.operation,
                }
                if self.last_error
                else None
            ),
        }
