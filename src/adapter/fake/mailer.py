"""In-memory implementation of Mailer for testing."""

from dataclasses import dataclass

from domain.model.errors import EmailDeliveryError


@dataclass
class SentEmail:
    to: str
    subject: str
    body: str


class FakeMailer:
    def __init__(self, fail: bool = False):
        self.outbox: list[SentEmail] = []
        self.fail = fail

    def send(self, to: str, subject: str, body: str) -> None:
        if self.fail:
            raise EmailDeliveryError(f"Failed to deliver email to {to}")
        self.outbox.append(SentEmail(to=to, subject=subject, body=body))
