"""
View endpoints - the reconciled snapshot and the ledger balance.
"""

from fastapi import APIRouter, HTTPException, status

from market.core.dependencies import AppCtx, AuthenticatedIdentity
from market.core.money import format_amount
from market.services.view_state import Slice

router = APIRouter()


@router.get("")
async def get_view(context: AppCtx):
    return context.view.snapshot()


@router.get("/balance")
async def get_balance(context: AppCtx, identity: AuthenticatedIdentity, refresh: bool = False):
    """Ledger balance in minor units plus the 8-place display string. Stale value kept on failure."""
    if refresh or context.view.ledger_balance is None:
        await context.assembler.refresh_balance()
    amount = context.view.ledger_balance
    if amount is None:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Ledger balance unavailable")
    return {"identity": str(identity), "amount": amount, "display": format_amount(amount)}


@router.put("/subscriptions/{slice_name}", status_code=status.HTTP_204_NO_CONTENT)
async def set_subscription(context: AppCtx, slice_name: Slice, subscribed: bool = True):
    """Presentation says whether it still shows a slice; refreshes landing on an unsubscribed slice are dropped."""
    if subscribed:
        context.view.subscribe(slice_name)
    else:
        context.view.unsubscribe(slice_name)
