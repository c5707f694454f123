"""In-memory repositories.

Per-process only and lost on restart; used for development and tests.
"""

from __future__ import annotations

import threading
from dataclasses import replace

from earlab.adapters.storage.base import (
    AbstractContactRepository,
    AbstractSubscriberRepository,
    ContactSubmission,
    Subscriber,
)


def _normalize(email: str) -> str:
    return email.strip().lower()


class InMemorySubscriberRepository(AbstractSubscriberRepository):
    """Subscribers stored in a dict keyed by normalized email.

    Returned records are copies, so callers must ``save`` to persist changes.
    """

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._by_email: dict[str, Subscriber] = {}

    async def get(self, email: str) -> Subscriber | None:
        with self._lock:
            subscriber = self._by_email.get(_normalize(email))
            return replace(subscriber) if subscriber else None

    async def add(self, subscriber: Subscriber) -> Subscriber:
        key = _normalize(subscriber.email)
        with self._lock:
            if key in self._by_email:
                raise KeyError(f"subscriber already exists: {key}")
            self._by_email[key] = replace(subscriber)
        return subscriber

    async def save(self, subscriber: Subscriber) -> Subscriber:
        with self._lock:
            self._by_email[_normalize(subscriber.email)] = replace(subscriber)
        return subscriber

    async def delete(self, email: str) -> bool:
        with self._lock:
            return self._by_email.pop(_normalize(email), None) is not None

    async def list_all(self, *, verified: bool | None = None) -> list[Subscriber]:
        with self._lock:
            return [
                replace(s)
                for s in self._by_email.values()
                if verified is None or s.is_verified == verified
            ]


class InMemoryContactRepository(AbstractContactRepository):
    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._by_id: dict[str, ContactSubmission] = {}

    async def add(self, submission: ContactSubmission) -> ContactSubmission:
        with self._lock:
            self._by_id[submission.id] = replace(submission)
        return submission

    async def get(self, contact_id: str) -> ContactSubmission | None:
        with self._lock:
            submission = self._by_id.get(contact_id)
            return replace(submission) if submission else None
