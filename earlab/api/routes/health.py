from __future__ import annotations

from fastapi import APIRouter


router = APIRouter(tags=["Health"])


@router.get("/health")
def health_check() -> dict:
    """Liveness probe for load balancers and uptime monitors.

    Returns:
        dict: ``status`` is always "ok".
    """

    return {"status": "ok"}
