"""Pytest configuration and fixtures shared across all test modules.

This file is automatically loaded by pytest before running any tests.
Environment variables are set before any import that might build settings.
"""

import os

# CRITICAL: Set these before any imports that might load settings
os.environ["APP_ENV"] = "testing"
os.environ.setdefault("NEWSLETTER_SECRET", "test-newsletter-secret-0123456789")
os.environ.setdefault("APP_PUBLIC_URL", "https://earlab.test")
os.environ.setdefault("APP_API_URL", "https://api.earlab.test")
os.environ.setdefault("APP_ADMIN_EMAIL", "admin@example.com")
os.environ.setdefault("LOG_LEVEL", "WARNING")

import pytest

from earlab.adapters.email.base import AbstractEmailSender, OutgoingEmail


class RecordingEmailSender(AbstractEmailSender):
    """Email sender that keeps every message instead of delivering it."""

    def __init__(self, *, succeed: bool = True) -> None:
        self.succeed = succeed
        self.sent: list[OutgoingEmail] = []

    async def send(self, email: OutgoingEmail) -> bool:
        self.sent.append(email)
        return self.succeed


class FakeClock:
    """Deterministic clock returning UNIX seconds."""

    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self.current = start

    def __call__(self) -> float:
        return self.current

    def advance(self, seconds: float) -> None:
        self.current += seconds


@pytest.fixture
def email_sender() -> RecordingEmailSender:
    return RecordingEmailSender()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()
