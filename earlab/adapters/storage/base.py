"""Persistence interfaces for subscribers and contact submissions.

Services depend on these abstractions; the relational database lives behind
an adapter implementing them.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class Subscriber:
    """Newsletter subscriber record."""

    email: str
    name: str | None = None
    role: str | None = None
    company: str | None = None
    source: str = "website"
    is_verified: bool = False
    subscribed_at: datetime = field(default_factory=utcnow)
    verified_at: datetime | None = None


@dataclass
class ContactSubmission:
    """Contact form submission record."""

    id: str
    name: str
    email: str
    project_description: str
    company: str | None = None
    budget_range: str | None = None
    timeline: str | None = None
    file_url: str | None = None
    status: str = "new"
    created_at: datetime = field(default_factory=utcnow)


class AbstractSubscriberRepository(ABC):
    """Storage for newsletter subscribers, keyed by email address."""

    @abstractmethod
    async def get(self, email: str) -> Subscriber | None:
        raise NotImplementedError

    @abstractmethod
    async def add(self, subscriber: Subscriber) -> Subscriber:
        """Insert a new subscriber.

        Raises:
            KeyError: If a subscriber with the same email already exists.
        """
        raise NotImplementedError

    @abstractmethod
    async def save(self, subscriber: Subscriber) -> Subscriber:
        """Persist changes to an existing subscriber."""
        raise NotImplementedError

    @abstractmethod
    async def delete(self, email: str) -> bool:
        """Remove a subscriber; returns False when it did not exist."""
        raise NotImplementedError

    @abstractmethod
    async def list_all(self, *, verified: bool | None = None) -> list[Subscriber]:
        raise NotImplementedError


class AbstractContactRepository(ABC):
    """Storage for contact form submissions."""

    @abstractmethod
    async def add(self, submission: ContactSubmission) -> ContactSubmission:
        raise NotImplementedError

    @abstractmethod
    async def get(self, contact_id: str) -> ContactSubmission | None:
        raise NotImplementedError
