"""
Item endpoints - browse with access decisions, and drive mutations through the coordinator.
Design: Thin controller; reconciliation lives in the coordinator, access rules in core.access.
"""

from collections.abc import Iterable

from fastapi import APIRouter, Query, status
from pydantic import BaseModel, Field

from market.api.v1.responses import unwrap
from market.config import get_settings
from market.core.access import evaluate
from market.core.dependencies import AppCtx, AuthenticatedIdentity
from market.schemas.item import Category, Item, ItemCreate, ItemUpdate, ItemView
from market.services.context import AppContext
from market.services.view_assembly import filter_items

router = APIRouter()
settings = get_settings()


class RateRequest(BaseModel):
    rating: int = Field(..., ge=1, le=5)


def _views(context: AppContext, items: Iterable[Item]) -> list[ItemView]:
    identity = context.view.identity
    purchased = context.view.purchased_ids
    return [ItemView.build(item, evaluate(identity, item, purchased)) for item in items]


@router.get("", response_model=list[ItemView])
async def list_items(
    context: AppCtx,
    q: str | None = None,
    category: Category | None = None,
    refresh: bool = False,
    skip: int = Query(0, ge=0),
    limit: int = Query(settings.default_page_size, ge=1, le=settings.max_page_size),
):
    """Public items from the view state, filtered locally by text/category."""
    if refresh:
        await context.assembler.refresh_public_items()
    items = filter_items(context.view.public_items, q, category)
    return _views(context, items[skip : skip + limit])


@router.get("/search", response_model=list[ItemView])
async def search_items(context: AppCtx, q: str = Query(..., min_length=1), category: Category | None = None):
    """Server-side search; results land in their own slice."""
    return _views(context, unwrap(await context.assembler.search(q, category)))


@router.get("/mine", response_model=list[ItemView])
async def my_items(context: AppCtx, identity: AuthenticatedIdentity, refresh: bool = True):
    """Switching to this page re-fetches authored and purchased items."""
    if refresh:
        await context.assembler.refresh_mine()
    return _views(context, context.view.my_items.values())


@router.get("/purchased", response_model=list[ItemView])
async def purchased_items(context: AppCtx, identity: AuthenticatedIdentity):
    return _views(context, context.view.my_purchased_items.values())


@router.get("/{item_id}", response_model=ItemView)
async def get_item(context: AppCtx, item_id: int):
    item = unwrap(await context.client.get_item(item_id))
    return _views(context, [item])[0]


@router.get("/{item_id}/content")
async def get_item_content(context: AppCtx, item_id: int):
    """Whatever the remote grants right now; 403 when locked."""
    content = unwrap(await context.assembler.fetch_content(item_id))
    return {"item_id": item_id, "content": content}


@router.post("", response_model=Item, status_code=status.HTTP_201_CREATED)
async def create_item(context: AppCtx, data: ItemCreate):
    return unwrap(await context.coordinator.create_item(data))


@router.put("/{item_id}", response_model=Item)
async def update_item(context: AppCtx, item_id: int, data: ItemUpdate):
    return unwrap(await context.coordinator.update_item(item_id, data))


@router.delete("/{item_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_item(context: AppCtx, item_id: int):
    unwrap(await context.coordinator.delete_item(item_id))


@router.post("/{item_id}/purchase")
async def purchase_item(context: AppCtx, item_id: int):
    """Non-refundable. A second click while the first is in flight gets 409."""
    message = unwrap(await context.coordinator.purchase(item_id))
    return {"item_id": item_id, "message": message, "purchased": item_id in context.view.purchased_ids}


@router.post("/{item_id}/like")
async def like_item(context: AppCtx, item_id: int):
    return {"item_id": item_id, "message": unwrap(await context.coordinator.like(item_id))}


@router.post("/{item_id}/unlike")
async def unlike_item(context: AppCtx, item_id: int):
    return {"item_id": item_id, "message": unwrap(await context.coordinator.unlike(item_id))}


@router.post("/{item_id}/toggle-like")
async def toggle_like(context: AppCtx, item_id: int):
    message = unwrap(await context.coordinator.toggle_like(item_id))
    return {"item_id": item_id, "message": message, "liked": item_id in context.view.liked_ids}


@router.post("/{item_id}/rate")
async def rate_item(context: AppCtx, item_id: int, data: RateRequest):
    return {"item_id": item_id, "message": unwrap(await context.coordinator.rate(item_id, data.rating))}
