"""Data models for annotation scoring."""

from dataclasses import dataclass


@dataclass(frozen=True)
class ScoreRecord:
    """Leaderboard score derived from one annotation.

    Attributes:
        score: Normalized score from 0 to 10.
        matched: Lexicon terms found, in lexicon declaration order.
        raw_score: Sum of matched weights before clamping.
    """

    score: int
    matched: tuple[str, ...]
    raw_score: int = 0

    def to_dict(self) -> dict[str, int | list[str]]:
        """Convert to dictionary for serialization."""
        return {
            "score": self.score,
            "matched": list(self.matched),
            "raw_score": self.raw_score,
        }
