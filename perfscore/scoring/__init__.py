"""Lexicon scoring of annotations.

Turns an annotation into a bounded 0-10 leaderboard score plus the list
of lexicon terms that produced it.
"""

from perfscore.scoring.lexicon import KEYWORD_LEXICON, MAX_SCORE, SCORE_CAP
from perfscore.scoring.models import ScoreRecord
from perfscore.scoring.scorer import ScoringEngine, build_haystack, compute_score


__all__ = [
    "KEYWORD_LEXICON",
    "MAX_SCORE",
    "SCORE_CAP",
    "ScoreRecord",
    "ScoringEngine",
    "build_haystack",
    "compute_score",
]
