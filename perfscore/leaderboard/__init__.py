"""Leaderboard eligibility, ranking and placement."""

from perfscore.leaderboard.constants import (
    DEFAULT_QUERY_LIMIT,
    MALE_SUBJECT_TERMS,
    MAX_QUERY_LIMIT,
    MIN_LEADERBOARD_SCORE,
    PODIUM_SIZE,
)
from perfscore.leaderboard.eligibility import has_male_subject, is_eligible
from perfscore.leaderboard.models import (
    EligibilityResult,
    LeaderboardEntry,
    LeaderboardQuery,
    Placement,
    SortOrder,
)
from perfscore.leaderboard.ranker import (
    compute_placement,
    format_score,
    select_leaderboard,
    top_entries,
)


__all__ = [
    # Constants
    "DEFAULT_QUERY_LIMIT",
    "MALE_SUBJECT_TERMS",
    "MAX_QUERY_LIMIT",
    "MIN_LEADERBOARD_SCORE",
    "PODIUM_SIZE",
    # Eligibility
    "EligibilityResult",
    "has_male_subject",
    "is_eligible",
    # Ranking
    "LeaderboardEntry",
    "LeaderboardQuery",
    "Placement",
    "SortOrder",
    "compute_placement",
    "format_score",
    "select_leaderboard",
    "top_entries",
]
