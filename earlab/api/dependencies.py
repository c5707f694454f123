"""FastAPI dependency providers for services and their collaborators.

Each provider returns a process-wide instance; tests replace them through
``app.dependency_overrides``.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Annotated

from fastapi import Depends

from earlab.adapters.email.base import AbstractEmailSender
from earlab.adapters.email.smtp import SmtpEmailSender
from earlab.adapters.storage.base import AbstractContactRepository, AbstractSubscriberRepository
from earlab.adapters.storage.in_memory import (
    InMemoryContactRepository,
    InMemorySubscriberRepository,
)
from earlab.core.config import settings
from earlab.core.verification_token import TokenCodecDep
from earlab.services.contact_service import ContactService
from earlab.services.newsletter_service import NewsletterService


@lru_cache
def get_subscriber_repository() -> AbstractSubscriberRepository:
    return InMemorySubscriberRepository()


@lru_cache
def get_contact_repository() -> AbstractContactRepository:
    return InMemoryContactRepository()


@lru_cache
def get_email_sender() -> AbstractEmailSender:
    return SmtpEmailSender(settings.smtp)


def get_newsletter_service(
    codec: TokenCodecDep,
    repository: Annotated[AbstractSubscriberRepository, Depends(get_subscriber_repository)],
    email_sender: Annotated[AbstractEmailSender, Depends(get_email_sender)],
) -> NewsletterService:
    return NewsletterService(
        repository=repository,
        email_sender=email_sender,
        codec=codec,
        api_url=settings.app.api_url,
    )


def get_contact_service(
    repository: Annotated[AbstractContactRepository, Depends(get_contact_repository)],
    email_sender: Annotated[AbstractEmailSender, Depends(get_email_sender)],
) -> ContactService:
    return ContactService(
        repository=repository,
        email_sender=email_sender,
        admin_email=settings.app.admin_email,
    )


NewsletterServiceDep = Annotated[NewsletterService, Depends(get_newsletter_service)]
ContactServiceDep = Annotated[ContactService, Depends(get_contact_service)]
