"""Deterministic lexicon scoring of annotations."""

import math
from collections.abc import Mapping

from perfscore.features.annotate.models import AnnotationResult
from perfscore.scoring.lexicon import KEYWORD_LEXICON, MAX_SCORE, SCORE_CAP
from perfscore.scoring.models import ScoreRecord


def build_haystack(annotation: AnnotationResult) -> str:
    """Concatenate the searchable annotation text.

    Joins description, environment, summary, then every object, action and
    logo entry with single spaces, lowercased.

    Args:
        annotation: Annotation to flatten.

    Returns:
        Lowercase search text.
    """
    pieces: list[str] = [
        annotation.description,
        annotation.environment,
        annotation.summary,
        *annotation.objects,
        *annotation.actions,
        *annotation.logos,
    ]
    return " ".join(pieces).lower()


class ScoringEngine:
    """Scores annotations against a weighted keyword lexicon.

    Scoring formula:
        raw = sum(weight for every term that is a substring of the haystack)
        score = round_half_up(min(raw, cap) / cap * 10)

    Terms are plain substrings, so overlapping entries ("tote" and
    "tote bag") both count, and short terms match inside longer words
    ("ring" in "earring").
    """

    def __init__(
        self,
        lexicon: Mapping[str, int] = KEYWORD_LEXICON,
        cap: int = SCORE_CAP,
    ) -> None:
        """Initialize the engine.

        Args:
            lexicon: Term to weight mapping; iteration order fixes match order.
            cap: Raw sum at which the score saturates.
        """
        if cap <= 0:
            msg = f"cap must be positive, got {cap}"
            raise ValueError(msg)
        self._terms = tuple((term.lower(), weight) for term, weight in lexicon.items())
        self._cap = cap

    @property
    def cap(self) -> int:
        """Raw sum at which the score saturates."""
        return self._cap

    def score(self, annotation: AnnotationResult) -> ScoreRecord:
        """Compute the score for one annotation.

        Args:
            annotation: Annotation to score.

        Returns:
            ScoreRecord with the 0-10 score and matched terms.
        """
        haystack = build_haystack(annotation)

        found: dict[str, int] = {}
        for term, weight in self._terms:
            if term in haystack:
                found[term] = weight

        raw = sum(found.values())
        normalized = min(raw, self._cap) / self._cap
        score = math.floor(normalized * MAX_SCORE + 0.5)

        return ScoreRecord(score=score, matched=tuple(found), raw_score=raw)


_DEFAULT_ENGINE = ScoringEngine()


def compute_score(annotation: AnnotationResult) -> ScoreRecord:
    """Score an annotation with the default lexicon.

    Pure and synchronous; the same annotation always yields the same record.

    Args:
        annotation: Annotation to score.

    Returns:
        ScoreRecord with the 0-10 score and matched terms.
    """
    return _DEFAULT_ENGINE.score(annotation)
