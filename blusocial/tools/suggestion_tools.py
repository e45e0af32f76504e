"""Automatic "someone new is nearby" match suggestions."""

from __future__ import annotations

import asyncio
from collections.abc import Sequence
from typing import Optional

from blusocial.models.notification import (
    DeliveryResult,
    NotificationPayload,
    Suggestion,
)
from blusocial.models.profile import Profile
from blusocial.tools.discovery_tools import DiscoveryEngine
from blusocial.tools.firestore_tools import ProfileStore
from blusocial.tools.notification_tools import NotificationSender
from blusocial.tools.relationship_tools import RelationshipState, is_eligible
from blusocial.tools.scoring_tools import shared_interests
from blusocial.utils.logging_config import logger

SUGGESTION_TITLE = "✨ Someone new is nearby!"
SUGGESTION_LINK = "/discover"


def build_suggestion_notification(viewer: Profile, match: Profile) -> NotificationPayload:
    return NotificationPayload(
        recipient_id=viewer.id,
        title=SUGGESTION_TITLE,
        body=f"You and {match.name} have similar interests. Check them out!",
        link=SUGGESTION_LINK,
    )


def suggest_once(
    viewer: Profile,
    pool: Sequence[Profile],
    engine: Optional[DiscoveryEngine] = None,
) -> Optional[Suggestion]:
    """Pick one new nearby candidate to suggest to ``viewer``.

    Candidates must be inside the viewer's radius, share at least one
    interest, and not already be a friend, a pending request or a previous
    suggestion. The first qualifying candidate in pool order wins, not the
    best-scoring one.

    Returns None when nobody qualifies or the viewer has no location or no
    interests.
    """

    if viewer.location is None or not viewer.interests:
        return None

    engine = engine or DiscoveryEngine(require_positive_score=False)
    relationships = RelationshipState.from_profile(viewer)

    # nearby() keeps pool order, which is what makes this first-match.
    for candidate in engine.nearby(viewer, pool):
        if not shared_interests(viewer, candidate.profile):
            continue
        if not is_eligible(viewer.id, candidate.id, relationships):
            continue
        return Suggestion(
            match_id=candidate.id,
            notification=build_suggestion_notification(viewer, candidate.profile),
        )
    return None


class AutoMatchSuggester:
    """Choose a suggestion and apply its two independent side effects.

    The push notification and the ``suggestedMatches`` append run
    concurrently. A failed notification is logged and does not undo the
    append. Concurrent runs for one viewer may both suggest the same
    candidate before either write lands.
    """

    def __init__(
        self,
        store: ProfileStore,
        sender: NotificationSender,
        engine: Optional[DiscoveryEngine] = None,
    ):
        self.store = store
        self.sender = sender
        self.engine = engine or DiscoveryEngine(require_positive_score=False)

    async def _notify(self, viewer: Profile, payload: NotificationPayload) -> DeliveryResult:
        try:
            return await self.sender.send(payload, viewer)
        except Exception as exc:
            logger.warning(
                "Suggestion notification for %s failed: %s", viewer.id, str(exc)
            )
            return DeliveryResult(success=False)

    async def run(
        self, viewer: Profile, pool: Sequence[Profile]
    ) -> Optional[Suggestion]:
        suggestion = suggest_once(viewer, pool, self.engine)
        if suggestion is None:
            logger.debug("No suggestion for %s", viewer.id)
            return None

        await self.deliver(viewer, suggestion)
        return suggestion

    async def deliver(self, viewer: Profile, suggestion: Suggestion) -> DeliveryResult:
        """Send the notification and append to ``suggestedMatches``.

        Raises:
            FirestoreUnavailableError: If the suggestion write fails. The
                notification may still have been sent.
        """

        # the send is not cancelled when the append fails
        delivery, recorded = await asyncio.gather(
            self._notify(viewer, suggestion.notification),
            self.store.append_to_set(
                viewer.id, "suggestedMatches", suggestion.match_id
            ),
            return_exceptions=True,
        )
        if isinstance(recorded, BaseException):
            logger.error(
                "Recording suggestion %s for %s failed: %s",
                suggestion.match_id,
                viewer.id,
                str(recorded),
            )
            raise recorded
        if isinstance(delivery, BaseException):
            raise delivery
        logger.info(
            "Suggested %s to %s (notified=%s)",
            suggestion.match_id,
            viewer.id,
            delivery.success,
        )
        return delivery
