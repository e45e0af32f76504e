"""Notification payloads and suggestion results."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel


class NotificationPayload(BaseModel):
    """A push notification addressed to one profile."""

    recipient_id: str
    title: str
    body: str
    link: str


class DeliveryResult(BaseModel):
    """Outcome of a notification send. Failures are reported, never raised."""

    success: bool
    success_count: int = 0
    failure_count: int = 0
    skipped_reason: Optional[str] = None

    @classmethod
    def skipped(cls, reason: str) -> "DeliveryResult":
        return cls(success=False, skipped_reason=reason)


class Suggestion(BaseModel):
    """An automatic match suggestion chosen for a viewer."""

    match_id: str
    notification: NotificationPayload
