"""Discovery graph: nearby online users ranked by compatibility."""

from __future__ import annotations

from typing import Optional

from langgraph.graph import StateGraph

from blusocial.config import config
from blusocial.graphs.base_graph import BaseGraph, with_state
from blusocial.models.profile import PresenceStatus, Profile, ScoredCandidate
from blusocial.state import DiscoveryState
from blusocial.tools.discovery_tools import DiscoveryEngine, is_online
from blusocial.tools.firestore_tools import FirestoreProfileStore, ProfileStore
from blusocial.tools.scoring_tools import shared_interests, shared_looking_for
from blusocial.utils.errors import FirestoreUnavailableError, InvalidInputError

MODE_RANKED = "ranked"
MODE_NEARBY = "nearby"


def serialize_match(viewer: Profile, match: ScoredCandidate) -> dict:
    profile = match.profile
    return {
        "id": profile.id,
        "name": profile.name,
        "age": profile.age,
        "interests": profile.interests,
        "looking_for": profile.looking_for,
        "distance_km": round(match.distance_km, 3),
        "score": match.score,
        "shared_interests": shared_interests(viewer, profile),
        "shared_looking_for": shared_looking_for(viewer, profile),
    }


class DiscoveryGraph(BaseGraph):
    """fetch viewer → query online candidates → rank → finalize."""

    name = "discovery"

    def __init__(self, store: Optional[ProfileStore] = None, timeout: int = 30):
        super().__init__(timeout=timeout)
        self.store = store or FirestoreProfileStore()

    def build_graph(self) -> StateGraph:
        graph = StateGraph(DiscoveryState)

        graph.add_node("fetch_user_profile", self.node_fetch_user_profile)
        graph.add_node("query_candidates", self.node_query_candidates)
        graph.add_node("rank_candidates", self.node_rank_candidates)
        graph.add_node("finalize_response", self.node_finalize_response)

        graph.set_entry_point("fetch_user_profile")
        graph.add_edge("fetch_user_profile", "query_candidates")
        graph.add_edge("query_candidates", "rank_candidates")
        graph.add_edge("rank_candidates", "finalize_response")
        graph.set_finish_point("finalize_response")

        return graph

    async def node_fetch_user_profile(self, state: DiscoveryState) -> DiscoveryState:
        """Load the requesting user's profile."""

        self._log_node_execution("fetch_user_profile", state)
        mode = state.get("mode") or MODE_RANKED
        if mode not in (MODE_RANKED, MODE_NEARBY):
            return with_state(state, error=f"Unknown discovery mode: {mode}")
        if not state.get("user_id"):
            return with_state(state, error="user_id is required")

        try:
            profile = await self.store.get_profile(state["user_id"])
        except FirestoreUnavailableError as exc:
            return self._fail(
                state, "fetch_user_profile", exc,
                "Firestore unavailable. Returning empty matches.",
            )

        if profile is None:
            return with_state(
                state, error=f"User profile not found: {state['user_id']}"
            )
        if profile.location is None:
            return with_state(state, error="Location is required for discovery.")

        return with_state(
            state, mode=mode, user_profile=profile.to_state()
        )

    async def node_query_candidates(self, state: DiscoveryState) -> DiscoveryState:
        """Query online profiles. Presence is filtered here, not in the engine."""

        if state.get("error"):
            return state

        try:
            self._log_node_execution("query_candidates", state)
            profiles = await self.store.list_profiles(status=PresenceStatus.ONLINE)
            candidates = [p for p in profiles if is_online(p)]
            return with_state(
                state, candidates=[p.to_state() for p in candidates]
            )
        except FirestoreUnavailableError as exc:
            return self._fail(
                state, "query_candidates", exc,
                "Failed to query candidates. Returning empty matches.",
                candidates=[],
            )

    async def node_rank_candidates(self, state: DiscoveryState) -> DiscoveryState:
        """Score, sort and (in ranked mode) cut off non-positive scores."""

        if state.get("error"):
            return state

        self._log_node_execution("rank_candidates", state)
        viewer = Profile.model_validate(state["user_profile"])
        pool = [Profile.model_validate(c) for c in state.get("candidates", [])]
        engine = DiscoveryEngine(
            require_positive_score=state["mode"] == MODE_RANKED,
            default_radius_km=config.DEFAULT_DISCOVERY_RADIUS_KM,
        )

        try:
            results = engine.discover(viewer, pool)
        except InvalidInputError as exc:
            return self._fail(state, "rank_candidates", exc, str(exc), matches=[])

        return with_state(
            state, matches=[serialize_match(viewer, m) for m in results]
        )

    async def node_finalize_response(self, state: DiscoveryState) -> DiscoveryState:
        """Attach response metadata."""

        error = state.get("error")
        return with_state(
            state,
            matches=[] if error else state.get("matches", []),
            response_metadata={
                "success": not error,
                "error": error,
                "mode": state.get("mode", MODE_RANKED),
                "total_candidates": len(state.get("candidates", [])),
                "match_count": 0 if error else len(state.get("matches", [])),
            },
        )


def create_discovery_graph(store: Optional[ProfileStore] = None):
    """Build and compile the discovery graph for server usage."""

    graph_builder = DiscoveryGraph(store=store, timeout=config.GRAPH_TIMEOUT)
    return graph_builder.compile()
