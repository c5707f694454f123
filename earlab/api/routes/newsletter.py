from __future__ import annotations

import logging
from urllib.parse import urlencode

from fastapi import APIRouter, Depends
from fastapi.responses import RedirectResponse

from earlab.api.dependencies import NewsletterServiceDep
from earlab.core.config import settings
from earlab.core.errors import VerificationAppError
from earlab.core.rate_limit import RateLimitPresets, limit_requests
from earlab.schemas.newsletter import (
    MessageResponse,
    SubscribeData,
    SubscribeRequestBody,
    SubscribeResponse,
    UnsubscribeRequestBody,
)
from earlab.services.newsletter_service import SubscribeRequest

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Newsletter"])


def _subscribe_page(**params: str) -> RedirectResponse:
    url = f"{settings.app.public_url.rstrip('/')}/subscribe?{urlencode(params)}"
    return RedirectResponse(url, status_code=307)


@router.post(
    "/subscribe",
    response_model=SubscribeResponse,
    dependencies=[Depends(limit_requests(RateLimitPresets.NEWSLETTER))],
)
async def subscribe(body: SubscribeRequestBody, service: NewsletterServiceDep) -> SubscribeResponse:
    """Subscribe an address to the newsletter (double opt-in).

    New and still-unverified addresses receive a verification email.

    Raises:
        ConflictAppError: 409 when the address is already verified.
    """
    result = await service.subscribe(
        SubscribeRequest(
            email=str(body.email),
            name=body.name,
            role=body.role,
            company=body.company,
            source=body.source or "website",
        )
    )
    return SubscribeResponse(
        message=result.message,
        data=SubscribeData(requires_verification=result.requires_verification),
    )


@router.get(
    "/newsletter/verify",
    response_class=RedirectResponse,
    status_code=307,
    dependencies=[Depends(limit_requests(RateLimitPresets.PUBLIC))],
)
async def verify(service: NewsletterServiceDep, token: str | None = None) -> RedirectResponse:
    """Confirm a subscription from the emailed link and redirect to the site.

    The redirect carries no detail about why a token was refused.
    """
    if not token:
        return _subscribe_page(error="invalid_token")

    try:
        await service.verify(token)
    except VerificationAppError:
        return _subscribe_page(error="verification_failed")

    return _subscribe_page(verified="true")


@router.post(
    "/newsletter/unsubscribe",
    response_model=MessageResponse,
    dependencies=[Depends(limit_requests(RateLimitPresets.FORM))],
)
async def unsubscribe(body: UnsubscribeRequestBody, service: NewsletterServiceDep) -> MessageResponse:
    """Remove an address from the newsletter.

    Raises:
        NotFoundAppError: 404 when the address is not subscribed.
    """
    message = await service.unsubscribe(str(body.email))
    return MessageResponse(message=message)
