"""Leaderboard eligibility rules.

Subject detection uses whole-word matching, unlike lexicon scoring which
matches raw substrings: "mannequin" scores like any other text but does
not count as a male subject.
"""

import re

from perfscore.features.annotate.models import AnnotationResult
from perfscore.leaderboard.constants import MALE_SUBJECT_TERMS, MIN_LEADERBOARD_SCORE
from perfscore.leaderboard.models import EligibilityResult
from perfscore.scoring.scorer import build_haystack


_MALE_SUBJECT_PATTERN = re.compile(
    r"\b(" + "|".join(re.escape(term) for term in MALE_SUBJECT_TERMS) + r")\b",
    re.IGNORECASE,
)


def has_male_subject(text: str) -> bool:
    """Check whether text names a male subject as a whole word.

    Args:
        text: Text to search.

    Returns:
        True if any subject term appears as a standalone word.
    """
    return _MALE_SUBJECT_PATTERN.search(text) is not None


def is_eligible(annotation: AnnotationResult, score: int) -> EligibilityResult:
    """Decide whether a scored annotation may appear on the leaderboard.

    Args:
        annotation: The scored annotation.
        score: Its 0-10 score.

    Returns:
        EligibilityResult with a reason when not eligible.
    """
    if score < MIN_LEADERBOARD_SCORE:
        return EligibilityResult(
            eligible=False,
            reason=(
                f"Minimum score for the leaderboard is {MIN_LEADERBOARD_SCORE}. "
                f"You scored {score}."
            ),
        )

    if not has_male_subject(build_haystack(annotation)):
        return EligibilityResult(
            eligible=False,
            reason=(
                "Leaderboard is limited to entries tagged as a male subject. "
                "Your submission didn’t include a male keyword."
            ),
        )

    return EligibilityResult(eligible=True)
