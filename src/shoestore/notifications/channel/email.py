"""Email channel: port and in-memory adapter."""

from abc import ABC, abstractmethod
from uuid import uuid4


class EmailPort(ABC):
    @abstractmethod
    def send(self, to: str, subject: str, body: str) -> dict:
        """Send a plain-text email.

        Returns:
            dict with keys: status ("sent" or "failed"), message_id, error
        """
        ...


class FakeEmail(EmailPort):
    """Keeps sent messages in memory; can be told to fail."""

    def __init__(self):
        self.sent: list[dict] = []
        self.error: str | None = None

    def fail_with(self, error: str | None = "Email delivery failed"):
        self.error = error

    def send(self, to, subject, body):
        if self.error:
            return {"status": "failed", "message_id": None, "error": self.error}

        message_id = f"email-{uuid4().hex[:12]}"
        self.sent.append({"message_id": message_id, "to": to, "subject": subject, "body": body})
        return {"status": "sent", "message_id": message_id, "error": None}
