"""Data models for submissions."""

from dataclasses import dataclass
from datetime import datetime
from typing import Annotated, Any

from pydantic import BaseModel, ConfigDict, Field

from perfscore.features.annotate.models import AnnotationMeta, AnnotationResult
from perfscore.leaderboard.models import EligibilityResult, Placement


class SubmissionRequest(BaseModel):
    """A photo submitted for scoring."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    image_data_url: Annotated[str, Field(min_length=1)]
    podium_opt_in: bool = True


@dataclass(frozen=True)
class SubmissionOutcome:
    """Result of a successful submission.

    Attributes:
        entry_id: Store identifier of the new entry.
        score: Score from 0 to 10.
        matched: Lexicon terms found, in lexicon order.
        created_at: When the entry was stored.
        image_hash: Content hash used for deduplication.
        podium_opt_in: Whether the entry may appear on the podium.
        eligibility: Leaderboard eligibility verdict.
        annotation: The annotation that was scored.
        meta: Attempts and timings of the annotation call.
        placement: Podium placement, present when eligible and opted in.
    """

    entry_id: int
    score: int
    matched: tuple[str, ...]
    created_at: datetime
    image_hash: str
    podium_opt_in: bool
    eligibility: EligibilityResult
    annotation: AnnotationResult
    meta: AnnotationMeta
    placement: Placement | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-friendly dictionary."""
        data: dict[str, Any] = {
            "success": True,
            "id": self.entry_id,
            "score": self.score,
            "matchedKeywords": list(self.matched),
            "createdAt": self.created_at.isoformat(),
            "imageHash": self.image_hash,
            "podiumOptIn": self.podium_opt_in,
            "eligible": self.eligibility.eligible,
            "result": self.annotation.model_dump(mode="json"),
            "meta": self.meta.to_dict(),
        }
        if self.eligibility.reason:
            data["eligibilityReason"] = self.eligibility.reason
        if self.placement is not None:
            data["placement"] = {
                "onBoard": self.placement.on_board,
                "rank": self.placement.rank,
                "message": self.placement.message,
            }
        return data
