"""Application factory for the FastAPI app.

Centralizes app construction (metadata, lifespan, middleware, handlers,
routers) so tests can build isolated instances.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from earlab.api.routes import contact_router, health_router, newsletter_router
from earlab.core.config import settings
from earlab.core.exception_handlers import setup_exception_handlers
from earlab.core.logging import configure_logging
from earlab.core.middleware import request_id_middleware
from earlab.core.rate_limit import get_rate_limiter, reset_rate_limiter

logger = logging.getLogger(__name__)

OPENAPI_TAGS = [
    {"name": "Newsletter", "description": "Double opt-in subscription, verification and unsubscribe."},
    {"name": "Contact", "description": "Public contact form."},
    {"name": "Health", "description": "Liveness checks."},
]


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Run the rate limiter sweeper for the lifetime of the app."""
    get_rate_limiter().start()
    logger.info("app.startup", extra={"app_env": settings.app_env})
    try:
        yield
    finally:
        reset_rate_limiter()
        logger.info("app.shutdown")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application instance.

    Returns:
        Configured FastAPI app with middleware, handlers and routers.
    """
    # Logging first so subsequent init logs are formatted as desired
    configure_logging(settings.log)

    app = FastAPI(
        title="EAR Lab Site API",
        description=(
            "Public form endpoints of the EAR Lab website: newsletter subscription "
            "with double opt-in, verification links, unsubscribe and the contact "
            "form. Form endpoints are rate limited per client."
        ),
        version="0.1.0",
        openapi_tags=OPENAPI_TAGS,
        debug=settings.app.debug,
        lifespan=lifespan,
    )

    app.middleware("http")(request_id_middleware)

    setup_exception_handlers(app)

    app.include_router(newsletter_router, prefix="/v1")
    app.include_router(contact_router, prefix="/v1")
    app.include_router(health_router)

    return app
