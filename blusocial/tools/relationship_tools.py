"""Relationship-state checks used to avoid repeat or redundant suggestions."""

from __future__ import annotations

from dataclasses import dataclass

from blusocial.models.profile import Profile


@dataclass(frozen=True)
class RelationshipState:
    """Read-only snapshot of a viewer's relationship id sets."""

    friends: frozenset[str] = frozenset()
    requests_sent: frozenset[str] = frozenset()
    requests_received: frozenset[str] = frozenset()
    suggested: frozenset[str] = frozenset()

    @classmethod
    def from_profile(cls, profile: Profile) -> "RelationshipState":
        return cls(
            friends=frozenset(profile.friends),
            requests_sent=frozenset(profile.friend_requests_sent),
            requests_received=frozenset(profile.friend_requests_received),
            suggested=frozenset(profile.suggested_matches),
        )

    def contains(self, candidate_id: str) -> bool:
        return (
            candidate_id in self.friends
            or candidate_id in self.requests_sent
            or candidate_id in self.requests_received
            or candidate_id in self.suggested
        )


def is_eligible(
    viewer_id: str, candidate_id: str, relationships: RelationshipState
) -> bool:
    """Return True if ``candidate_id`` may be suggested to ``viewer_id``.

    Candidates that are already friends, have a pending request in either
    direction, or were suggested before are not eligible. Neither is the
    viewer.
    """

    if candidate_id == viewer_id:
        return False
    return not relationships.contains(candidate_id)
