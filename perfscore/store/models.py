"""Data models for stored leaderboard entries."""

from datetime import UTC, datetime
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field, field_validator

from perfscore.leaderboard.models import LeaderboardEntry


class NewEntry(BaseModel):
    """A scored submission ready to be written.

    Score and matched terms are computed once before the write and stored
    as given.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    image_data_url: Annotated[str, Field(min_length=1)]
    image_hash: Annotated[
        str, Field(min_length=64, max_length=64, description="SHA-256 hex digest")
    ]
    result_json: Annotated[str, Field(min_length=2)]
    score: Annotated[int, Field(ge=0, le=10)]
    matched_keywords: tuple[str, ...] = ()
    podium_opt_in: bool = True


class StoredEntry(BaseModel):
    """An entry as persisted, with its identifier and creation time."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    id: int
    image_data_url: str
    image_hash: str
    result_json: str
    score: int
    matched_keywords: tuple[str, ...] = ()
    podium_opt_in: bool = True
    created_at: datetime

    @field_validator("created_at")
    @classmethod
    def ensure_utc(cls, v: datetime) -> datetime:
        """Treat naive timestamps as UTC."""
        if v.tzinfo is None:
            return v.replace(tzinfo=UTC)
        return v

    def to_leaderboard_entry(self) -> LeaderboardEntry:
        """Project onto the fields the leaderboard ranks by."""
        return LeaderboardEntry(
            entry_id=self.id,
            score=self.score,
            matched_keywords=self.matched_keywords,
            created_at=self.created_at,
            podium_opt_in=self.podium_opt_in,
            result_json=self.result_json,
            image_hash=self.image_hash,
        )
