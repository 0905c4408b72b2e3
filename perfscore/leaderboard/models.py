"""Data models for leaderboard eligibility, queries and placement."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from perfscore.leaderboard.constants import (
    DEFAULT_QUERY_LIMIT,
    MAX_QUERY_LIMIT,
    MIN_LEADERBOARD_SCORE,
)
from perfscore.scoring.lexicon import MAX_SCORE


@dataclass(frozen=True)
class EligibilityResult:
    """Whether a scored annotation may appear on the leaderboard.

    Attributes:
        eligible: True when every rule passed.
        reason: Explanation shown to the submitter when not eligible.
    """

    eligible: bool
    reason: str | None = None


class SortOrder(str, Enum):
    """Leaderboard sort modes."""

    SCORE_DESC = "score_desc"
    SCORE_ASC = "score_asc"
    TIME_DESC = "time_desc"
    TIME_ASC = "time_asc"


@dataclass(frozen=True)
class LeaderboardEntry:
    """A stored submission as seen by the leaderboard.

    Attributes:
        entry_id: Store identifier.
        score: Score from 0 to 10.
        matched_keywords: Lexicon terms that produced the score.
        created_at: Submission time.
        podium_opt_in: Whether the submitter agreed to be shown.
        result_json: Serialized annotation.
        image_hash: Content hash of the image.
    """

    entry_id: int
    score: int
    matched_keywords: tuple[str, ...]
    created_at: datetime
    podium_opt_in: bool = True
    result_json: str = ""
    image_hash: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "id": self.entry_id,
            "score": self.score,
            "matchedKeywords": list(self.matched_keywords),
            "createdAt": self.created_at.isoformat(),
            "podiumOptIn": self.podium_opt_in,
            "imageHash": self.image_hash,
        }


class LeaderboardQuery(BaseModel):
    """Filter, sort and limit options for the leaderboard listing.

    Out-of-range numbers are clamped rather than rejected.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    min_score: int = MIN_LEADERBOARD_SCORE
    limit: int = DEFAULT_QUERY_LIMIT
    sort: SortOrder = SortOrder.SCORE_DESC
    q: str = ""
    male_only: bool = True
    podium_only: bool = Field(
        default=False, description="Only entries whose submitter opted in"
    )

    @field_validator("min_score")
    @classmethod
    def clamp_min_score(cls, v: int) -> int:
        """Clamp min_score into the score range."""
        return max(0, min(MAX_SCORE, v))

    @field_validator("limit")
    @classmethod
    def clamp_limit(cls, v: int) -> int:
        """Clamp limit into 1..MAX_QUERY_LIMIT."""
        return max(1, min(MAX_QUERY_LIMIT, v))

    @field_validator("q")
    @classmethod
    def strip_query(cls, v: str) -> str:
        """Strip surrounding whitespace from the search text."""
        return v.strip()


@dataclass(frozen=True)
class Placement:
    """Where a new submission lands on the podium view.

    Attributes:
        on_board: Whether the submission is within the top N.
        rank: 1-based rank among the board merged with the new entry.
        message: Explanation for the submitter.
    """

    on_board: bool
    rank: int
    message: str
