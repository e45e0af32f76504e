"""Push notification delivery through Firebase Cloud Messaging.

Delivery is best effort: every failure is logged and reported in the
returned DeliveryResult, never raised to the caller.
"""

from __future__ import annotations

import asyncio
from typing import Optional, Protocol

from firebase_admin import messaging

from blusocial.config import config
from blusocial.models.notification import DeliveryResult, NotificationPayload
from blusocial.models.profile import Profile
from blusocial.tools.firestore_tools import ensure_firebase_app
from blusocial.utils.errors import NotificationError
from blusocial.utils.logging_config import logger


class NotificationSender(Protocol):
    async def send(
        self, payload: NotificationPayload, recipient: Profile
    ) -> DeliveryResult: ...


class FcmNotificationSender:
    """Send a notification to every FCM token of the recipient in one batch."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        icon_url: Optional[str] = None,
    ):
        self.base_url = config.APP_BASE_URL if base_url is None else base_url
        self.icon_url = config.NOTIFICATION_ICON_URL if icon_url is None else icon_url

    def _absolute_link(self, link: str) -> Optional[str]:
        if link.startswith("https://"):
            return link
        if self.base_url.startswith("https://"):
            # keep any path prefix on the base, e.g. https://host/app
            return self.base_url.rstrip("/") + "/" + link.lstrip("/")
        return None

    def build_messages(
        self, payload: NotificationPayload, tokens: list[str]
    ) -> list[messaging.Message]:
        """One message per token, identical apart from the target."""
        absolute = self._absolute_link(payload.link)
        webpush = messaging.WebpushConfig(
            notification=messaging.WebpushNotification(icon=self.icon_url)
            if self.icon_url
            else None,
            fcm_options=messaging.WebpushFCMOptions(link=absolute)
            if absolute
            else None,
        )
        notification = messaging.Notification(title=payload.title, body=payload.body)
        return [
            messaging.Message(
                token=token,
                notification=notification,
                data={"link": payload.link},
                webpush=webpush,
            )
            for token in tokens
        ]

    def _send_blocking(self, messages: list[messaging.Message]):
        try:
            app = ensure_firebase_app()
        except Exception as exc:
            raise NotificationError(f"Firebase messaging unavailable: {exc}") from exc
        return messaging.send_each(messages, app=app)

    async def send(
        self, payload: NotificationPayload, recipient: Profile
    ) -> DeliveryResult:
        if not recipient.fcm_tokens:
            logger.info(
                "User %s has no FCM tokens, skipping notification.", recipient.id
            )
            return DeliveryResult.skipped("no_tokens")

        try:
            messages = self.build_messages(payload, recipient.fcm_tokens)
            response = await asyncio.to_thread(self._send_blocking, messages)
        except Exception as exc:
            logger.warning(
                "Push notification to %s failed: %s", recipient.id, str(exc)
            )
            return DeliveryResult(
                success=False, failure_count=len(recipient.fcm_tokens)
            )

        if response.failure_count:
            logger.warning(
                "Push notification to %s: %s of %s tokens failed",
                recipient.id,
                response.failure_count,
                len(recipient.fcm_tokens),
            )
        logger.info("Sent notification to %s", recipient.id)
        return DeliveryResult(
            success=response.success_count > 0,
            success_count=response.success_count,
            failure_count=response.failure_count,
        )
