"""
FastAPI dependencies - resolve the application context and the signed-in identity.
Challenge: Endpoints must reach the one context the app owns without a module global.
"""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from market.core.identity import Identity
from market.services.context import AppContext


def get_context(request: Request) -> AppContext:
    """Context lives on app.state (set in lifespan). Tests override this dependency."""
    context = getattr(request.app.state, "context", None)
    if context is None:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Client not started")
    return context


AppCtx = Annotated[AppContext, Depends(get_context)]


async def get_authenticated_identity(context: AppCtx) -> Identity:
    """Raises 401 for anonymous sessions."""
    if not context.session.is_authenticated:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")
    return context.session.current_identity()


AuthenticatedIdentity = Annotated[Identity, Depends(get_authenticated_identity)]
