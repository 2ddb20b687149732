"""Web-push channel: port and in-memory adapter.

A push service answers "gone" (HTTP 410) once a browser subscription has
expired. Adapters report that as status ``gone`` so the dispatcher can drop
the stored subscription.
"""

from abc import ABC, abstractmethod
from uuid import uuid4

SENT = "sent"
FAILED = "failed"
GONE = "gone"


class PushPort(ABC):
    @abstractmethod
    def send(self, subscription: dict, payload: dict) -> dict:
        """Deliver ``payload`` to one browser subscription (endpoint, p256dh, auth).

        Returns:
            dict with keys: status ("sent", "failed" or "gone"), error
        """
        ...


class FakePush(PushPort):
    def __init__(self):
        self.sent: list[dict] = []
        self.outcome = SENT
        self.error: str | None = None

    def configure(self, outcome: str = SENT, error: str | None = None):
        self.outcome = outcome
        self.error = error

    def send(self, subscription, payload):
        if self.outcome == GONE:
            return {"status": GONE, "error": self.error or "Subscription has expired"}
        if self.outcome == FAILED:
            return {"status": FAILED, "error": self.error or "Push delivery failed"}

        self.sent.append({"id": f"push-{uuid4().hex[:12]}", "endpoint": subscription["endpoint"], "payload": payload})
        return {"status": SENT, "error": None}
