"""Outbound email interfaces."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class OutgoingEmail:
    """A rendered email ready to be handed to a transport.

    Attributes:
        to: Recipient address.
        subject: Subject line.
        text: Plain-text body.
        html: Optional HTML alternative.
        reply_to: Optional Reply-To address.
        sender: Optional From override; transports fall back to their default.
    """

    to: str
    subject: str
    text: str
    html: str | None = None
    reply_to: str | None = None
    sender: str | None = None


class AbstractEmailSender(ABC):
    """Interface for email transports."""

    @abstractmethod
    async def send(self, email: OutgoingEmail) -> bool:
        """Deliver ``email``.

        Returns:
            True when the mail server accepted the message, False when it was
            not sent (transport unconfigured or delivery failed).
        """
        raise NotImplementedError
