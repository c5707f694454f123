"""Signed, time-limited newsletter verification tokens.

A token is ``base64url("{email}:{issued_at_ms}:{hex_hmac}")`` where the HMAC
is SHA-256 over ``"{email}:{issued_at_ms}"`` keyed with the newsletter secret.
Nothing is stored server side: the signature alone proves the token was
issued by us, and the embedded timestamp bounds its lifetime.

Tokens cannot be revoked. A leaked token stays usable until it expires, which
is acceptable for newsletter confirmation but not for password resets or
anything that moves money.
"""

from __future__ import annotations

import base64
import binascii
import hashlib
import hmac
import logging
import time
from typing import Annotated, Callable

from fastapi import Depends

from earlab.core.config import settings

logger = logging.getLogger(__name__)

DEFAULT_TOKEN_TTL_MS = 24 * 60 * 60 * 1000

_SEPARATOR = ":"


def _b64url_encode(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")


def _b64url_decode(value: str) -> bytes:
    """Decode unpadded base64url, rejecting characters outside the alphabet."""
    padded = value + "=" * (-len(value) % 4)
    return base64.b64decode(padded, altchars=b"-_", validate=True)


class VerificationTokenCodec:
    """Issue and verify newsletter verification tokens.

    Args:
        secret: HMAC key. No minimum length is enforced here; configuration
            validates it before the application starts.
        ttl_ms: Maximum token age in milliseconds (default 24 hours).
        clock: Time source returning UNIX time in seconds.
    """

    def __init__(
        self,
        secret: str,
        *,
        ttl_ms: int = DEFAULT_TOKEN_TTL_MS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if ttl_ms < 1:
            raise ValueError("ttl_ms must be >= 1")

        self._key = secret.encode("utf-8")
        self._ttl_ms = ttl_ms
        self._clock = clock

    @property
    def ttl_ms(self) -> int:
        return self._ttl_ms

    def _now_ms(self) -> int:
        return int(self._clock() * 1000)

    def _sign(self, email: str, issued_at: str) -> str:
        payload = f"{email}{_SEPARATOR}{issued_at}".encode("utf-8")
        return hmac.new(self._key, payload, hashlib.sha256).hexdigest()

    def issue(self, email: str, *, issued_at_ms: int | None = None) -> str:
        """Create a token binding ``email`` to the current time.

        Args:
            email: Address already validated by the caller.
            issued_at_ms: Override for the issue timestamp (epoch ms).

        Returns:
            Opaque, URL-safe token string.
        """
        issued_at = str(self._now_ms() if issued_at_ms is None else issued_at_ms)
        signature = self._sign(email, issued_at)
        raw = _SEPARATOR.join((email, issued_at, signature))
        return _b64url_encode(raw.encode("utf-8"))

    def verify(self, token: str) -> str | None:
        """Return the email bound to ``token``, or None if it is not acceptable.

        Malformed, tampered and expired tokens all yield None. Both the
        signature and the age are evaluated before deciding so the outcome
        does not short-circuit on the first failed check.
        """
        try:
            decoded = _b64url_decode(token).decode("utf-8")
        except (binascii.Error, ValueError):
            logger.debug("verification_token.malformed", extra={"reason": "decode"})
            return None

        # Emails may contain the separator; the last two fields never do
        fields = decoded.rsplit(_SEPARATOR, 2)
        if len(fields) != 3:
            logger.debug("verification_token.malformed", extra={"reason": "field_count"})
            return None

        email, issued_at, signature = fields
        try:
            if not email or not (issued_at.isascii() and issued_at.isdigit()):
                raise ValueError("malformed token fields")
            issued_at_ms = int(issued_at)
        except ValueError:
            logger.debug("verification_token.malformed", extra={"reason": "fields"})
            return None

        expected = self._sign(email, issued_at)
        signature_ok = hmac.compare_digest(
            expected.encode("ascii"), signature.encode("utf-8")
        )
        age_ok = self._now_ms() - issued_at_ms <= self._ttl_ms

        if signature_ok and age_ok:
            return email

        logger.debug("verification_token.rejected")
        return None


_codec: VerificationTokenCodec | None = None
_codec_config: tuple[str, float] | None = None


def get_token_codec() -> VerificationTokenCodec:
    """Return the process-wide codec built from settings.

    Rebuilt when the secret or TTL changes (primarily in tests). Routes depend
    on this function so tests can inject their own codec through
    ``app.dependency_overrides``.
    """

    global _codec, _codec_config

    config = (settings.newsletter.secret, settings.newsletter.token_ttl_hours)
    if _codec is None or _codec_config != config:
        _codec = VerificationTokenCodec(
            settings.newsletter.secret,
            ttl_ms=int(settings.newsletter.token_ttl_hours * 60 * 60 * 1000),
        )
        _codec_config = config
    return _codec


TokenCodecDep = Annotated[VerificationTokenCodec, Depends(get_token_codec)]
