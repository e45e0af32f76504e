"""Deterministic scoring utilities for matching."""

from __future__ import annotations

from blusocial.models.profile import Profile

BASE_SCORE = 1.0
SHARED_INTEREST_POINTS = 10.0
SHARED_LOOKING_FOR_POINTS = 5.0
DISTANCE_PENALTY_PER_KM = 2.0
AGE_PENALTY_PER_YEAR = 1.0


def _shared(mine: list[str], theirs: list[str]) -> list[str]:
    """Tags present on both sides, in first-seen order of ``mine``."""

    other = set(theirs)
    return [tag for tag in dict.fromkeys(mine) if tag in other]


def shared_interests(viewer: Profile, candidate: Profile) -> list[str]:
    return _shared(viewer.interests, candidate.interests)


def shared_looking_for(viewer: Profile, candidate: Profile) -> list[str]:
    return _shared(viewer.looking_for, candidate.looking_for)


def score_match(viewer: Profile, candidate: Profile, distance_km: float) -> float:
    """Calculate the compatibility score of ``candidate`` as seen by ``viewer``.

    The score is additive and may be negative:

    - base of 1, so very close users with nothing in common still rank;
    - +10 per shared interest and +5 per shared "looking for" tag
      (exact, case-sensitive set intersection);
    - -2 per kilometer of distance;
    - -1 per year of age difference, only when both ages are known.

    Missing tags or ages contribute nothing rather than failing.
    """

    score = BASE_SCORE
    score += SHARED_INTEREST_POINTS * len(shared_interests(viewer, candidate))
    score += SHARED_LOOKING_FOR_POINTS * len(shared_looking_for(viewer, candidate))
    score -= DISTANCE_PENALTY_PER_KM * distance_km

    if viewer.age is not None and candidate.age is not None:
        score -= AGE_PENALTY_PER_YEAR * abs(viewer.age - candidate.age)

    return score
