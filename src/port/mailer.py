"""Port definition for outbound email."""

from typing import Protocol


class Mailer(Protocol):
    def send(self, to: str, subject: str, body: str) -> None:
        """Deliver a plain-text email. Raise EmailDeliveryError on failure."""
        ...
