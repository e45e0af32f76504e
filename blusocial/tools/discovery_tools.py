"""Proximity discovery: radius filtering, scoring and ranking.

The engine is pure. Presence ("online only") is a query concern applied by
the caller to the candidate pool before discovery, see ``is_online``.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence

from blusocial.models.profile import Profile, ScoredCandidate
from blusocial.tools.scoring_tools import score_match
from blusocial.utils.errors import InvalidInputError
from blusocial.utils.geo import haversine_km, validate_coordinates
from blusocial.utils.logging_config import logger

DEFAULT_RADIUS_KM = 0.5


def is_online(profile: Profile) -> bool:
    """Presence predicate applied by callers before discovery."""

    return profile.is_online


def effective_radius(viewer: Profile, default_km: float = DEFAULT_RADIUS_KM) -> float:
    """Viewer's discovery radius, or ``default_km`` if missing/non-positive."""

    radius = viewer.discovery_radius
    if radius is None or radius <= 0:
        return default_km
    return radius


class DiscoveryEngine:
    """Find and rank candidates within the viewer's discovery radius.

    Args:
        require_positive_score: Drop candidates scoring <= 0. Used by the
            ranked discovery view; the raw nearby list keeps everyone.
        default_radius_km: Radius used when the viewer has none configured.
    """

    def __init__(
        self,
        require_positive_score: bool = False,
        default_radius_km: float = DEFAULT_RADIUS_KM,
    ):
        self.require_positive_score = require_positive_score
        self.default_radius_km = default_radius_km

    def _within_radius(
        self, viewer: Profile, pool: Iterable[Profile]
    ) -> list[tuple[Profile, float]]:
        if viewer.location is None:
            return []

        origin = viewer.location
        validate_coordinates(origin.lat, origin.lng)
        radius = effective_radius(viewer, self.default_radius_km)

        nearby: list[tuple[Profile, float]] = []
        for candidate in pool:
            if candidate.id == viewer.id or candidate.location is None:
                continue
            try:
                distance = haversine_km(
                    origin.lat,
                    origin.lng,
                    candidate.location.lat,
                    candidate.location.lng,
                )
            except InvalidInputError as exc:
                logger.debug("Skipping candidate %s: %s", candidate.id, exc)
                continue
            if distance <= radius:
                nearby.append((candidate, distance))
        return nearby

    def nearby(
        self, viewer: Profile, pool: Iterable[Profile]
    ) -> list[ScoredCandidate]:
        """Scored candidates inside the radius, in pool order (unsorted)."""

        return [
            ScoredCandidate(
                profile=candidate,
                distance_km=distance,
                score=score_match(viewer, candidate, distance),
            )
            for candidate, distance in self._within_radius(viewer, pool)
        ]

    def discover(
        self, viewer: Profile, pool: Sequence[Profile]
    ) -> list[ScoredCandidate]:
        """Rank nearby candidates by score (desc), then distance (asc).

        Further ties keep pool order. A viewer without a location gets an
        empty list; a viewer with invalid coordinates raises
        InvalidInputError.
        """

        scored = self.nearby(viewer, pool)
        ranked = sorted(scored, key=lambda c: (-c.score, c.distance_km))

        if self.require_positive_score:
            ranked = [c for c in ranked if c.score > 0]

        logger.debug(
            "discover viewer=%s pool=%s result=%s",
            viewer.id,
            len(pool),
            len(ranked),
        )
        return ranked


def discover(
    viewer: Profile,
    pool: Sequence[Profile],
    *,
    require_positive_score: bool = False,
    default_radius_km: float = DEFAULT_RADIUS_KM,
) -> list[ScoredCandidate]:
    """Functional shortcut for ``DiscoveryEngine(...).discover``."""

    engine = DiscoveryEngine(
        require_positive_score=require_positive_score,
        default_radius_km=default_radius_km,
    )
    return engine.discover(viewer, pool)
