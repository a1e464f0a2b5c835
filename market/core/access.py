"""
Access evaluation: which tier an identity holds for an item.
Pure functions of (identity, author, is_public, purchased membership, price); no I/O, no state.
"""

from collections.abc import Collection
from enum import Enum
from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict

from market.core.identity import Identity

if TYPE_CHECKING:
    from market.schemas.item import Item


class Classification(str, Enum):
    OWNER = "Owner"
    PURCHASED = "Purchased"
    PUBLIC_VIEWER = "PublicViewer"
    LOCKED = "Locked"


class AccessDecision(BaseModel):
    model_config = ConfigDict(frozen=True)

    classification: Classification
    can_view_content: bool
    can_purchase: bool
    can_rate: bool


def classify(identity: Identity, item: "Item", purchased_ids: Collection[int]) -> Classification:
    """Owner > Purchased > PublicViewer > Locked."""
    if item.author == identity and not identity.is_anonymous:
        return Classification.OWNER
    if item.id in purchased_ids:
        return Classification.PURCHASED
    if item.is_public:
        return Classification.PUBLIC_VIEWER
    return Classification.LOCKED


def evaluate(identity: Identity, item: "Item", purchased_ids: Collection[int]) -> AccessDecision:
    classification = classify(identity, item, purchased_ids)
    can_purchase = (
        classification not in (Classification.OWNER, Classification.PURCHASED)
        and item.price > 0
    )
    can_rate = (
        not identity.is_anonymous
        and classification is not Classification.OWNER
        and classification is not Classification.LOCKED
    )
    return AccessDecision(
        classification=classification,
        can_view_content=classification is not Classification.LOCKED,
        can_purchase=can_purchase,
        can_rate=can_rate,
    )
