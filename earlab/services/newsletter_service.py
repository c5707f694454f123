"""Newsletter subscriptions with double opt-in.

Subscribers start unverified. A signed verification link is mailed to them,
and only following it marks the record verified and triggers the welcome
email. Verification is idempotent: a second click on a still-valid link
reports success without mailing the welcome message again.
"""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field
from datetime import timedelta

from earlab.adapters.email.base import AbstractEmailSender
from earlab.adapters.storage.base import AbstractSubscriberRepository, Subscriber, utcnow
from earlab.core.errors import ConflictAppError, NotFoundAppError, VerificationAppError
from earlab.core.logging import fingerprint
from earlab.core.verification_token import VerificationTokenCodec
from earlab.services import email_templates

logger = logging.getLogger(__name__)

RECENT_WINDOW = timedelta(days=30)

INVALID_TOKEN_MESSAGE = "Invalid or expired verification token."


@dataclass(frozen=True)
class SubscribeRequest:
    email: str
    name: str | None = None
    role: str | None = None
    company: str | None = None
    source: str = "website"


@dataclass(frozen=True)
class SubscribeResult:
    message: str
    requires_verification: bool


@dataclass(frozen=True)
class VerifyResult:
    email: str
    message: str
    already_verified: bool


@dataclass
class NewsletterStats:
    total_subscribers: int = 0
    verified_subscribers: int = 0
    unverified_subscribers: int = 0
    recent_subscribers: int = 0
    source_breakdown: dict[str, int] = field(default_factory=dict)


class NewsletterService:
    """Subscribe, verify and unsubscribe newsletter readers.

    Args:
        repository: Subscriber storage.
        email_sender: Transport for verification and welcome emails.
        codec: Verification token codec.
        api_url: Base URL the verification link points at.
    """

    def __init__(
        self,
        *,
        repository: AbstractSubscriberRepository,
        email_sender: AbstractEmailSender,
        codec: VerificationTokenCodec,
        api_url: str,
    ) -> None:
        self._repository = repository
        self._email_sender = email_sender
        self._codec = codec
        self._api_url = api_url

    async def _send_verification(self, subscriber: Subscriber) -> None:
        token = self._codec.issue(subscriber.email)
        message = email_templates.newsletter_verification(
            email=subscriber.email,
            name=subscriber.name,
            url=email_templates.verification_url(self._api_url, token),
            ttl_hours=self._codec.ttl_ms / 3_600_000,
        )
        if not await self._email_sender.send(message):
            logger.warning(
                "newsletter.verification_email_not_sent",
                extra={"email_hash": fingerprint(subscriber.email)},
            )

    async def subscribe(self, request: SubscribeRequest) -> SubscribeResult:
        """Register ``request.email`` and mail a verification link.

        Raises:
            ConflictAppError: If the address is already subscribed and verified.
        """
        email_hash = fingerprint(request.email)
        existing = await self._repository.get(request.email)

        if existing is not None:
            if existing.is_verified:
                logger.info("newsletter.already_subscribed", extra={"email_hash": email_hash})
                raise ConflictAppError(
                    code="already_subscribed",
                    message="This email is already subscribed to our newsletter.",
                )

            await self._send_verification(existing)
            logger.info("newsletter.verification_resent", extra={"email_hash": email_hash})
            return SubscribeResult(
                message="Verification email resent. Please check your inbox.",
                requires_verification=True,
            )

        subscriber = await self._repository.add(
            Subscriber(
                email=request.email,
                name=request.name,
                role=request.role,
                company=request.company,
                source=request.source or "website",
            )
        )
        await self._send_verification(subscriber)
        logger.info(
            "newsletter.subscribed",
            extra={"email_hash": email_hash, "source": subscriber.source},
        )
        return SubscribeResult(
            message="Please check your email to verify your subscription.",
            requires_verification=True,
        )

    async def verify(self, token: str) -> VerifyResult:
        """Confirm the subscription a verification token was issued for.

        Raises:
            VerificationAppError: For any unusable token, and when the
                subscriber no longer exists.
        """
        email = self._codec.verify(token)
        if email is None:
            logger.info("newsletter.verification_rejected", extra={"reason": "invalid_token"})
            raise VerificationAppError(code="invalid_token", message=INVALID_TOKEN_MESSAGE)

        email_hash = fingerprint(email)
        subscriber = await self._repository.get(email)
        if subscriber is None:
            logger.info(
                "newsletter.verification_rejected",
                extra={"reason": "subscriber_not_found", "email_hash": email_hash},
            )
            raise VerificationAppError(code="invalid_token", message=INVALID_TOKEN_MESSAGE)

        if subscriber.is_verified:
            return VerifyResult(
                email=subscriber.email,
                message="Your email is already verified.",
                already_verified=True,
            )

        subscriber.is_verified = True
        subscriber.verified_at = utcnow()
        await self._repository.save(subscriber)
        logger.info("newsletter.verified", extra={"email_hash": email_hash})

        welcome = email_templates.newsletter_welcome(email=subscriber.email, name=subscriber.name)
        if not await self._email_sender.send(welcome):
            logger.warning("newsletter.welcome_email_not_sent", extra={"email_hash": email_hash})

        return VerifyResult(
            email=subscriber.email,
            message="Email verified successfully! Welcome to EAR Lab Newsletter.",
            already_verified=False,
        )

    async def unsubscribe(self, email: str) -> str:
        """Remove ``email`` from the list.

        Raises:
            NotFoundAppError: If the address is not subscribed.
        """
        if not await self._repository.delete(email):
            raise NotFoundAppError(
                code="subscriber_not_found",
                message="Email not found in our newsletter list.",
            )

        logger.info("newsletter.unsubscribed", extra={"email_hash": fingerprint(email)})
        return "You have been successfully unsubscribed."

    async def get_verified_subscribers(self) -> list[Subscriber]:
        return await self._repository.list_all(verified=True)

    async def get_stats(self) -> NewsletterStats:
        subscribers = await self._repository.list_all()
        verified = sum(1 for s in subscribers if s.is_verified)
        cutoff = utcnow() - RECENT_WINDOW
        return NewsletterStats(
            total_subscribers=len(subscribers),
            verified_subscribers=verified,
            unverified_subscribers=len(subscribers) - verified,
            recent_subscribers=sum(1 for s in subscribers if s.subscribed_at >= cutoff),
            source_breakdown=dict(Counter(s.source for s in subscribers)),
        )
