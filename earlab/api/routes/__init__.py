from __future__ import annotations

from earlab.api.routes.contact import router as contact_router
from earlab.api.routes.health import router as health_router
from earlab.api.routes.newsletter import router as newsletter_router

__all__ = ["contact_router", "health_router", "newsletter_router"]
