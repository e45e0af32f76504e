"""Shared LangGraph state definitions.

All graph states are TypedDicts so state is explicit, serializable, and
consistent across graph nodes.
"""

from __future__ import annotations

from typing import TypedDict

JsonDict = dict[str, object]
JsonList = list[JsonDict]


class DiscoveryState(TypedDict, total=False):
    """State for the discovery graph.

    Fields are optional at runtime because nodes populate them progressively.
    Every field is JSON-serializable for LangGraph persistence/debugging.
    """

    # Identifies the requesting user.
    user_id: str
    # "ranked" (positive-score cutoff) or "nearby" (same order, no cutoff).
    mode: str
    # Viewer profile loaded from users/{user_id}.
    user_profile: JsonDict
    # Online profiles considered for discovery.
    candidates: JsonList
    # Scored candidates inside the viewer's radius.
    matches: JsonList
    # Error string if any node fails.
    error: str
    # Response metadata for observability.
    response_metadata: JsonDict


class AutoMatchState(TypedDict, total=False):
    """State for the automatic match suggestion graph."""

    user_id: str
    user_profile: JsonDict
    # Every located profile; presence is not required for suggestions.
    candidates: JsonList
    # Chosen suggestion ({match_id, notification}) or None.
    suggestion: JsonDict | None
    # Whether suggestedMatches was updated.
    recorded: bool
    error: str
    response_metadata: JsonDict


class SocialState(TypedDict, total=False):
    """State for friend and ping actions."""

    # "list_friends" | "list_friend_requests" | "send_friend_request" |
    # "accept_friend_request" | "decline_friend_request" | "remove_friend" |
    # "ping_user"
    action: str
    user_id: str
    # The other user for write actions.
    target_id: str
    # Profiles returned by list actions.
    profiles: JsonList
    # Human readable outcome of write actions.
    message: str
    error: str
    response_metadata: JsonDict
