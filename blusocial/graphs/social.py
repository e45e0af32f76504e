"""Social graph: friend lists, friend requests and pings.

List actions resolve id lists with chunked batch lookups. Write actions go
through the relationship mutator and are followed by a best-effort push
notification to the other user.
"""

from __future__ import annotations

from typing import Optional

from langgraph.graph import StateGraph

from blusocial.config import config
from blusocial.graphs.base_graph import BaseGraph, with_state
from blusocial.models.notification import NotificationPayload
from blusocial.state import SocialState
from blusocial.tools.firestore_tools import (
    FirestoreProfileStore,
    FirestoreRelationshipMutator,
    ProfileStore,
)
from blusocial.tools.notification_tools import FcmNotificationSender, NotificationSender
from blusocial.utils.errors import (
    FirestoreUnavailableError,
    InvalidInputError,
    PartialBatchFailureError,
)

# action -> profile attribute holding the ids to list
LIST_ACTIONS = {
    "list_friends": "friends",
    "list_friend_requests": "friend_requests_received",
}

# action -> (mutator method, success message)
WRITE_ACTIONS = {
    "send_friend_request": ("send_friend_request", "Friend request sent!"),
    "accept_friend_request": ("accept_friend_request", "Friend request accepted!"),
    "decline_friend_request": ("decline_friend_request", "Friend request declined."),
    "remove_friend": ("remove_friend", "Friend removed."),
    "ping_user": ("ping_user", "Ping sent!"),
}


def build_action_notification(
    action: str, actor_id: str, actor_name: str, recipient_id: str
) -> Optional[NotificationPayload]:
    """Notification sent to the other user after ``action``, if any."""

    if action == "send_friend_request":
        title, body, link = (
            "New Friend Request! 🤝",
            f"{actor_name} wants to be your friend.",
            "/friends",
        )
    elif action == "accept_friend_request":
        title, body, link = (
            "Friend Request Accepted! 🎉",
            f"{actor_name} accepted your friend request. You are now friends.",
            f"/chat/{actor_id}",
        )
    elif action == "ping_user":
        title, body, link = (
            "You received a new ping! 👋",
            f"{actor_name} just pinged you.",
            "/discover",
        )
    else:
        return None
    return NotificationPayload(
        recipient_id=recipient_id, title=title, body=body, link=link
    )


class SocialGraph(BaseGraph):
    """validate → list_profiles | mutate_relationship → finalize."""

    name = "social"

    def __init__(
        self,
        store: Optional[ProfileStore] = None,
        mutator: Optional[FirestoreRelationshipMutator] = None,
        sender: Optional[NotificationSender] = None,
        timeout: int = 30,
    ):
        super().__init__(timeout=timeout)
        self.store = store or FirestoreProfileStore()
        self.mutator = mutator or FirestoreRelationshipMutator()
        self.sender = sender or FcmNotificationSender()

    def build_graph(self) -> StateGraph:
        graph = StateGraph(SocialState)

        graph.add_node("validate_input", self.node_validate_input)
        graph.add_node("list_profiles", self.node_list_profiles)
        graph.add_node("mutate_relationship", self.node_mutate_relationship)
        graph.add_node("finalize_response", self.node_finalize_response)

        graph.set_entry_point("validate_input")

        def route_after_validate(state: SocialState) -> str:
            if state.get("error"):
                return "finalize_response"
            if state["action"] in LIST_ACTIONS:
                return "list_profiles"
            return "mutate_relationship"

        graph.add_conditional_edges(
            "validate_input",
            route_after_validate,
            {
                "list_profiles": "list_profiles",
                "mutate_relationship": "mutate_relationship",
                "finalize_response": "finalize_response",
            },
        )
        graph.add_edge("list_profiles", "finalize_response")
        graph.add_edge("mutate_relationship", "finalize_response")
        graph.set_finish_point("finalize_response")

        return graph

    async def node_validate_input(self, state: SocialState) -> SocialState:
        self._log_node_execution("validate_input", state)
        action = state.get("action", "")
        if action not in LIST_ACTIONS and action not in WRITE_ACTIONS:
            valid = ", ".join([*LIST_ACTIONS, *WRITE_ACTIONS])
            return with_state(
                state, error=f"Unknown action: {action}. Valid options: {valid}"
            )
        if not state.get("user_id"):
            return with_state(state, error="user_id is required")
        if action in WRITE_ACTIONS:
            target_id = state.get("target_id")
            if not target_id:
                return with_state(state, error=f"{action} requires target_id")
            if target_id == state["user_id"]:
                return with_state(state, error="A user cannot target themselves.")
        return state

    async def node_list_profiles(self, state: SocialState) -> SocialState:
        """Resolve the viewer's friend or request ids into profiles."""

        self._log_node_execution("list_profiles", state)
        try:
            viewer = await self.store.get_profile(state["user_id"])
            if viewer is None:
                return with_state(state, profiles=[])

            ids = getattr(viewer, LIST_ACTIONS[state["action"]])
            profiles = await self.store.get_profiles_by_ids(ids)
        except (FirestoreUnavailableError, PartialBatchFailureError) as exc:
            return self._fail(
                state, "list_profiles", exc, "Failed to load profiles.", profiles=[]
            )

        return with_state(state, profiles=[p.to_state() for p in profiles])

    async def _notify_target(self, state: SocialState) -> None:
        actor = await self.store.get_profile(state["user_id"])
        recipient = await self.store.get_profile(state["target_id"])
        if actor is None or recipient is None:
            return

        payload = build_action_notification(
            state["action"], actor.id, actor.name, recipient.id
        )
        if payload is not None:
            await self.sender.send(payload, recipient)

    async def node_mutate_relationship(self, state: SocialState) -> SocialState:
        """Apply the write, then notify the other user (failures are non-fatal)."""

        self._log_node_execution("mutate_relationship", state)
        method_name, message = WRITE_ACTIONS[state["action"]]
        method = getattr(self.mutator, method_name)

        try:
            await method(state["user_id"], state["target_id"])
        except InvalidInputError as exc:
            return with_state(state, error=str(exc))
        except FirestoreUnavailableError as exc:
            action_words = state["action"].replace("_", " ")
            return self._fail(
                state, "mutate_relationship", exc, f"Failed to {action_words}."
            )

        try:
            await self._notify_target(state)
        except Exception as exc:
            self.logger.warning(
                "Notification after %s failed: %s", state["action"], str(exc)
            )

        return with_state(state, message=message)

    async def node_finalize_response(self, state: SocialState) -> SocialState:
        error = state.get("error")
        return with_state(
            state,
            profiles=[] if error else state.get("profiles", []),
            response_metadata={
                "success": not error,
                "error": error,
                "action": state.get("action"),
                "profile_count": 0 if error else len(state.get("profiles", [])),
            },
        )


def create_social_graph(
    store: Optional[ProfileStore] = None,
    mutator: Optional[FirestoreRelationshipMutator] = None,
    sender: Optional[NotificationSender] = None,
):
    """Build and compile the social graph for server usage."""

    graph_builder = SocialGraph(
        store=store, mutator=mutator, sender=sender, timeout=config.GRAPH_TIMEOUT
    )
    return graph_builder.compile()
