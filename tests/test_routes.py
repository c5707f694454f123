"""Tests for the public newsletter and contact API routes.

The app is built with create_app(); repositories, email transport, token
codec and rate limiter are swapped through dependency overrides so every test
starts from empty state.
"""

import asyncio
from urllib.parse import parse_qs, urlparse

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from earlab.adapters.rate_limit.in_memory import InMemoryRateLimiter
from earlab.adapters.storage.base import Subscriber
from earlab.adapters.storage.in_memory import (
    InMemoryContactRepository,
    InMemorySubscriberRepository,
)
from earlab.api.dependencies import (
    get_contact_repository,
    get_email_sender,
    get_subscriber_repository,
)
from earlab.core import rate_limit as rate_limit_module
from earlab.core.app_factory import create_app
from earlab.core.rate_limit import get_rate_limiter
from earlab.core.verification_token import VerificationTokenCodec, get_token_codec

PUBLIC_URL = "https://earlab.test"


@pytest.fixture
def subscribers() -> InMemorySubscriberRepository:
    return InMemorySubscriberRepository()


@pytest.fixture
def contacts() -> InMemoryContactRepository:
    return InMemoryContactRepository()


@pytest.fixture
def limiter(clock) -> InMemoryRateLimiter:
    return InMemoryRateLimiter(clock=clock)


@pytest.fixture
def codec(clock) -> VerificationTokenCodec:
    return VerificationTokenCodec("route-test-secret-value", clock=clock)


@pytest.fixture
def app(subscribers, contacts, limiter, codec, email_sender, monkeypatch: pytest.MonkeyPatch) -> FastAPI:
    monkeypatch.setattr(rate_limit_module.settings.app, "rate_limit_enabled", True)
    monkeypatch.setattr(rate_limit_module.settings.app, "public_url", PUBLIC_URL)

    application = create_app()
    application.dependency_overrides[get_subscriber_repository] = lambda: subscribers
    application.dependency_overrides[get_contact_repository] = lambda: contacts
    application.dependency_overrides[get_email_sender] = lambda: email_sender
    application.dependency_overrides[get_token_codec] = lambda: codec
    application.dependency_overrides[get_rate_limiter] = lambda: limiter
    return application


@pytest.fixture
def client(app: FastAPI) -> TestClient:
    return TestClient(app, follow_redirects=False)


def _redirect_query(response) -> dict[str, list[str]]:
    location = urlparse(response.headers["location"])
    assert f"{location.scheme}://{location.netloc}" == PUBLIC_URL
    assert location.path == "/subscribe"
    return parse_qs(location.query)


# ======================== Health ========================


def test_health(client: TestClient) -> None:
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "ok"


# ======================== Subscribe ========================


class TestSubscribe:
    def test_subscribe_sends_verification(self, client: TestClient, subscribers, email_sender) -> None:
        response = client.post("/v1/subscribe", json={"email": "ada@example.com", "name": "Ada"})

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["data"]["requires_verification"] is True
        assert len(email_sender.sent) == 1
        assert email_sender.sent[0].to == "ada@example.com"

    def test_already_verified_returns_409(self, client: TestClient, subscribers) -> None:
        asyncio.run(subscribers.add(Subscriber(email="ada@example.com", is_verified=True)))

        response = client.post("/v1/subscribe", json={"email": "ada@example.com"})

        assert response.status_code == 409
        error = response.json()["error"]
        assert error["code"] == "already_subscribed"
        assert "request_id" in error

    def test_invalid_email_returns_422(self, client: TestClient) -> None:
        response = client.post("/v1/subscribe", json={"email": "not-an-email"})

        assert response.status_code == 422

    def test_fourth_attempt_within_an_hour_is_rate_limited(self, client: TestClient) -> None:
        headers = {"X-Forwarded-For": "203.0.113.9", "User-Agent": "pytest"}
        for i in range(3):
            ok = client.post("/v1/subscribe", json={"email": f"user{i}@example.com"}, headers=headers)
            assert ok.status_code == 200

        blocked = client.post("/v1/subscribe", json={"email": "user3@example.com"}, headers=headers)

        assert blocked.status_code == 429
        assert blocked.json()["detail"] == "Too many subscription attempts. Please try again later."
        assert blocked.headers["X-RateLimit-Limit"] == "3"

    def test_other_routes_do_not_reopen_the_subscribe_window(self, client: TestClient, clock) -> None:
        headers = {"X-Forwarded-For": "203.0.113.9", "User-Agent": "pytest"}
        accepted = 0
        for cycle in range(10):
            client.get("/v1/newsletter/verify", headers=headers)
            for i in range(3):
                response = client.post(
                    "/v1/subscribe", json={"email": f"u{cycle}-{i}@example.com"}, headers=headers
                )
                accepted += response.status_code == 200
            clock.advance(61)

        assert accepted == 3


# ======================== Verify ========================


class TestVerify:
    def test_valid_token_redirects_verified(self, client: TestClient, subscribers, codec, email_sender) -> None:
        client.post("/v1/subscribe", json={"email": "ada@example.com"})
        token = codec.issue("ada@example.com")

        response = client.get("/v1/newsletter/verify", params={"token": token})

        assert response.status_code == 307
        assert _redirect_query(response) == {"verified": ["true"]}
        assert "Welcome" in email_sender.sent[-1].subject

    def test_missing_token_redirects_with_invalid_token(self, client: TestClient) -> None:
        response = client.get("/v1/newsletter/verify")

        assert response.status_code == 307
        assert _redirect_query(response) == {"error": ["invalid_token"]}

    def test_bad_token_redirects_with_verification_failed(self, client: TestClient) -> None:
        response = client.get("/v1/newsletter/verify", params={"token": "tampered"})

        assert response.status_code == 307
        assert _redirect_query(response) == {"error": ["verification_failed"]}

    def test_expired_token_redirects_with_verification_failed(self, client: TestClient, codec, clock) -> None:
        client.post("/v1/subscribe", json={"email": "ada@example.com"})
        token = codec.issue("ada@example.com")
        clock.advance(25 * 60 * 60)

        response = client.get("/v1/newsletter/verify", params={"token": token})

        assert _redirect_query(response) == {"error": ["verification_failed"]}


# ======================== Unsubscribe ========================


class TestUnsubscribe:
    def test_unsubscribe_known_email(self, client: TestClient) -> None:
        client.post("/v1/subscribe", json={"email": "ada@example.com"})

        response = client.post("/v1/newsletter/unsubscribe", json={"email": "ada@example.com"})

        assert response.status_code == 200
        assert response.json()["success"] is True

    def test_unsubscribe_unknown_email_returns_404(self, client: TestClient) -> None:
        response = client.post("/v1/newsletter/unsubscribe", json={"email": "ghost@example.com"})

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "subscriber_not_found"


# ======================== Contact ========================


CONTACT_FORM = {
    "name": "Grace Hopper",
    "email": "grace@example.com",
    "company": "Navy",
    "project_description": "We need a pick-and-place arm for lab automation.",
    "budget_range": "10k-50k",
}


class TestContact:
    def test_submit_stores_and_sends_two_emails(self, client: TestClient, contacts, email_sender) -> None:
        response = client.post("/v1/contact", json=CONTACT_FORM)

        assert response.status_code == 200
        contact_id = response.json()["data"]["contact_id"]
        stored = asyncio.run(contacts.get(contact_id))
        assert stored is not None
        assert stored.status == "new"

        recipients = [m.to for m in email_sender.sent]
        assert recipients == ["admin@example.com", "grace@example.com"]
        assert email_sender.sent[0].reply_to == "grace@example.com"

    def test_short_description_is_rejected(self, client: TestClient) -> None:
        response = client.post("/v1/contact", json={**CONTACT_FORM, "project_description": "too short"})

        assert response.status_code == 422

    def test_sixth_submission_in_a_minute_is_rate_limited(self, client: TestClient) -> None:
        for _ in range(5):
            assert client.post("/v1/contact", json=CONTACT_FORM).status_code == 200

        blocked = client.post("/v1/contact", json=CONTACT_FORM)

        assert blocked.status_code == 429
        assert blocked.json()["detail"] == "Too many form submissions. Please try again later."
