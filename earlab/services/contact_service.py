"""Contact form submissions: store, notify the lab, acknowledge the sender."""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass

from earlab.adapters.email.base import AbstractEmailSender
from earlab.adapters.storage.base import AbstractContactRepository, ContactSubmission
from earlab.core.logging import fingerprint
from earlab.services import email_templates

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ContactRequest:
    name: str
    email: str
    project_description: str
    company: str | None = None
    budget_range: str | None = None
    timeline: str | None = None
    file_url: str | None = None


@dataclass(frozen=True)
class ContactResult:
    contact_id: str
    message: str


class ContactService:
    def __init__(
        self,
        *,
        repository: AbstractContactRepository,
        email_sender: AbstractEmailSender,
        admin_email: str,
    ) -> None:
        self._repository = repository
        self._email_sender = email_sender
        self._admin_email = admin_email

    async def submit(self, request: ContactRequest) -> ContactResult:
        """Persist a submission and send both notification emails.

        Mail delivery failures are logged; the submission is kept either way.
        """
        submission = await self._repository.add(
            ContactSubmission(
                id=str(uuid.uuid4()),
                name=request.name,
                email=request.email,
                project_description=request.project_description,
                company=request.company,
                budget_range=request.budget_range,
                timeline=request.timeline,
                file_url=request.file_url,
            )
        )

        notification = email_templates.contact_notification(
            admin_email=self._admin_email,
            name=request.name,
            email=request.email,
            message=request.project_description,
            company=request.company,
            budget_range=request.budget_range,
            timeline=request.timeline,
        )
        confirmation = email_templates.contact_confirmation(email=request.email, name=request.name)

        notified = await self._email_sender.send(notification)
        confirmed = await self._email_sender.send(confirmation)

        logger.info(
            "contact.submitted",
            extra={
                "contact_id": submission.id,
                "email_hash": fingerprint(request.email),
                "admin_notified": notified,
                "confirmation_sent": confirmed,
            },
        )
        return ContactResult(
            contact_id=submission.id,
            message="Thank you for contacting us! We will respond within 2 business days.",
        )
