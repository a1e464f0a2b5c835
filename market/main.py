"""
FastAPI application entry point - local bridge between presentation and the marketplace core.
Challenge: Own exactly one session/client pair for the process lifetime, expose metrics.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from prometheus_client import make_asgi_app

from market.api.v1.router import api_router
from market.config import get_settings
from market.services.context import AppContext

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup: build the context and load the initial view. Shutdown: close the remote client."""
    settings = get_settings()
    context = AppContext.from_settings(settings)
    app.state.context = context
    # Bootstrap may wait on onboarding prompts answered over HTTP, so don't block startup on it
    await context.start(wait=False)
    yield
    await context.close()


def create_app() -> FastAPI:
    settings = get_settings()
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    app = FastAPI(
        title=settings.app_name,
        description="Marketplace client for licensed digital content: access evaluation, purchases and ledger reconciliation.",
        version="1.0.0",
        lifespan=lifespan,
    )

    # CORS for the presentation layer
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Prometheus metrics at /metrics
    metrics_app = make_asgi_app()
    app.mount("/metrics", metrics_app)

    app.include_router(api_router, prefix="/api")

    return app


app = create_app()
