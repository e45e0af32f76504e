"""Auto-match graph: suggest one new nearby person and notify the viewer."""

from __future__ import annotations

from typing import Optional

from langgraph.graph import StateGraph

from blusocial.config import config
from blusocial.graphs.base_graph import BaseGraph, with_state
from blusocial.models.notification import Suggestion
from blusocial.models.profile import Profile
from blusocial.state import AutoMatchState
from blusocial.tools.discovery_tools import DiscoveryEngine
from blusocial.tools.firestore_tools import FirestoreProfileStore, ProfileStore
from blusocial.tools.notification_tools import FcmNotificationSender, NotificationSender
from blusocial.tools.suggestion_tools import AutoMatchSuggester, suggest_once
from blusocial.utils.errors import FirestoreUnavailableError, InvalidInputError


class AutoMatchGraph(BaseGraph):
    """fetch viewer → query candidates → select match → deliver → finalize."""

    name = "auto_match"

    def __init__(
        self,
        store: Optional[ProfileStore] = None,
        sender: Optional[NotificationSender] = None,
        timeout: int = 30,
    ):
        super().__init__(timeout=timeout)
        self.store = store or FirestoreProfileStore()
        self.sender = sender or FcmNotificationSender()
        self.engine = DiscoveryEngine(
            require_positive_score=False,
            default_radius_km=config.DEFAULT_DISCOVERY_RADIUS_KM,
        )
        self.suggester = AutoMatchSuggester(self.store, self.sender, self.engine)

    def build_graph(self) -> StateGraph:
        graph = StateGraph(AutoMatchState)

        graph.add_node("fetch_user_profile", self.node_fetch_user_profile)
        graph.add_node("query_candidates", self.node_query_candidates)
        graph.add_node("select_match", self.node_select_match)
        graph.add_node("deliver_suggestion", self.node_deliver_suggestion)
        graph.add_node("finalize_response", self.node_finalize_response)

        graph.set_entry_point("fetch_user_profile")
        graph.add_edge("fetch_user_profile", "query_candidates")
        graph.add_edge("query_candidates", "select_match")
        graph.add_edge("select_match", "deliver_suggestion")
        graph.add_edge("deliver_suggestion", "finalize_response")
        graph.set_finish_point("finalize_response")

        return graph

    def _ineligible_viewer(self, profile: Profile) -> bool:
        return profile.location is None or not profile.interests

    async def node_fetch_user_profile(self, state: AutoMatchState) -> AutoMatchState:
        """Load the viewer. Viewers without location or interests get no suggestion."""

        self._log_node_execution("fetch_user_profile", state)
        if not state.get("user_id"):
            return with_state(state, error="user_id is required")

        try:
            profile = await self.store.get_profile(state["user_id"])
        except FirestoreUnavailableError as exc:
            return self._fail(state, "fetch_user_profile", exc, "Firestore unavailable.")

        if profile is None:
            return with_state(
                state, error=f"User profile not found: {state['user_id']}"
            )

        return with_state(
            state, user_profile=profile.to_state(include_tokens=True)
        )

    async def node_query_candidates(self, state: AutoMatchState) -> AutoMatchState:
        """Load every profile; presence does not matter for suggestions."""

        if state.get("error"):
            return state

        viewer = Profile.model_validate(state["user_profile"])
        if self._ineligible_viewer(viewer):
            return with_state(state, candidates=[])

        try:
            self._log_node_execution("query_candidates", state)
            profiles = await self.store.list_profiles()
            return with_state(
                state,
                candidates=[p.to_state() for p in profiles if p.location is not None],
            )
        except FirestoreUnavailableError as exc:
            return self._fail(
                state, "query_candidates", exc, "Failed to query candidates.", candidates=[]
            )

    async def node_select_match(self, state: AutoMatchState) -> AutoMatchState:
        """First eligible nearby candidate sharing an interest, in pool order."""

        if state.get("error"):
            return state

        self._log_node_execution("select_match", state)
        viewer = Profile.model_validate(state["user_profile"])
        pool = [Profile.model_validate(c) for c in state.get("candidates", [])]

        try:
            suggestion = suggest_once(viewer, pool, self.engine)
        except InvalidInputError as exc:
            return self._fail(state, "select_match", exc, str(exc), suggestion=None)

        return with_state(
            state,
            suggestion=suggestion.model_dump(mode="json") if suggestion else None,
        )

    async def node_deliver_suggestion(self, state: AutoMatchState) -> AutoMatchState:
        """Notify the viewer and record the suggestion, independently."""

        if state.get("error") or not state.get("suggestion"):
            return with_state(state, recorded=False)

        self._log_node_execution("deliver_suggestion", state)
        viewer = Profile.model_validate(state["user_profile"])
        suggestion = Suggestion.model_validate(state["suggestion"])

        try:
            await self.suggester.deliver(viewer, suggestion)
        except FirestoreUnavailableError as exc:
            return self._fail(
                state, "deliver_suggestion", exc, "Failed to record suggestion.", recorded=False
            )

        return with_state(state, recorded=True)

    async def node_finalize_response(self, state: AutoMatchState) -> AutoMatchState:
        """Strip push tokens and attach response metadata."""

        error = state.get("error")
        user_profile = state.get("user_profile")
        if user_profile:
            user_profile = {k: v for k, v in user_profile.items() if k != "fcm_tokens"}

        return with_state(
            state,
            user_profile=user_profile or {},
            suggestion=None if error else state.get("suggestion"),
            response_metadata={
                "success": not error,
                "error": error,
                "recorded": bool(state.get("recorded")),
                "total_candidates": len(state.get("candidates", [])),
            },
        )


def create_auto_match_graph(
    store: Optional[ProfileStore] = None,
    sender: Optional[NotificationSender] = None,
):
    """Build and compile the auto-match graph for server usage."""

    graph_builder = AutoMatchGraph(
        store=store, sender=sender, timeout=config.GRAPH_TIMEOUT
    )
    return graph_builder.compile()
