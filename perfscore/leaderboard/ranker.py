"""Leaderboard filtering, ordering and placement."""

from collections.abc import Iterable, Sequence

import structlog

from perfscore.leaderboard.constants import MIN_LEADERBOARD_SCORE, PODIUM_SIZE
from perfscore.leaderboard.eligibility import has_male_subject
from perfscore.leaderboard.models import (
    LeaderboardEntry,
    LeaderboardQuery,
    Placement,
    SortOrder,
)
from perfscore.scoring.lexicon import MAX_SCORE


logger = structlog.get_logger()


def format_score(score: int) -> str:
    """Render a score for user-facing messages."""
    return f"{score}/10+" if score > MAX_SCORE else f"{score}/10"


def _matches_text(entry: LeaderboardEntry, needle: str) -> bool:
    needle = needle.lower()
    if any(needle in keyword.lower() for keyword in entry.matched_keywords):
        return True
    return needle in entry.result_json.lower()


def _sort_entries(
    entries: Iterable[LeaderboardEntry], order: SortOrder
) -> list[LeaderboardEntry]:
    """Sort entries by the requested order.

    Score orders break ties by newest first in both directions.
    """
    items = list(entries)
    if order == SortOrder.TIME_DESC:
        return sorted(items, key=lambda e: e.created_at, reverse=True)
    if order == SortOrder.TIME_ASC:
        return sorted(items, key=lambda e: e.created_at)

    # Two stable passes: newest first, then by score.
    items.sort(key=lambda e: e.created_at, reverse=True)
    items.sort(key=lambda e: e.score, reverse=order == SortOrder.SCORE_DESC)
    return items


def select_leaderboard(
    entries: Iterable[LeaderboardEntry],
    query: LeaderboardQuery | None = None,
) -> list[LeaderboardEntry]:
    """Filter, sort and limit entries for a leaderboard listing.

    Args:
        entries: Candidate entries.
        query: Listing options. Defaults are used when omitted.

    Returns:
        At most ``query.limit`` entries in the requested order.
    """
    query = query or LeaderboardQuery()

    selected = [e for e in entries if e.score >= query.min_score]
    if query.podium_only:
        selected = [e for e in selected if e.podium_opt_in]
    if query.male_only:
        selected = [e for e in selected if has_male_subject(e.result_json)]
    if query.q:
        selected = [e for e in selected if _matches_text(e, query.q)]

    ranked = _sort_entries(selected, query.sort)[: query.limit]

    logger.debug(
        "leaderboard_selected",
        component="leaderboard",
        sort=query.sort.value,
        min_score=query.min_score,
        returned=len(ranked),
    )
    return ranked


def top_entries(
    entries: Iterable[LeaderboardEntry], top_n: int = PODIUM_SIZE
) -> list[LeaderboardEntry]:
    """Return the podium view shown to everyone.

    Args:
        entries: Candidate entries.
        top_n: Number of places on the podium.

    Returns:
        Opted-in, eligible entries ranked by score then recency.
    """
    query = LeaderboardQuery(
        min_score=MIN_LEADERBOARD_SCORE,
        limit=top_n,
        sort=SortOrder.SCORE_DESC,
        male_only=True,
        podium_only=True,
    )
    return select_leaderboard(entries, query)


def compute_placement(
    board: Sequence[LeaderboardEntry],
    mine: LeaderboardEntry,
    top_n: int = PODIUM_SIZE,
) -> Placement:
    """Work out where a new entry lands relative to the current podium.

    The new entry is merged into the board (replacing any entry with the
    same id) and ranked by score then recency.

    Args:
        board: Current podium entries.
        mine: The newly stored entry.
        top_n: Number of places on the podium.

    Returns:
        Placement with the rank and a message for the submitter.
    """
    by_id = {entry.entry_id: entry for entry in board}
    by_id[mine.entry_id] = mine
    ranked = _sort_entries(by_id.values(), SortOrder.SCORE_DESC)

    rank = next(
        i + 1 for i, entry in enumerate(ranked) if entry.entry_id == mine.entry_id
    )
    if rank <= top_n:
        return Placement(
            on_board=True,
            rank=rank,
            message=f"You made the leaderboard at #{rank}.",
        )

    cutoff = ranked[top_n - 1].score
    diff = max(0, cutoff - mine.score)
    if diff == 0:
        message = (
            f"Leaderboard is currently full at {format_score(cutoff)}. "
            "Newer entries with the same score take priority."
        )
    else:
        plural = "" if diff == 1 else "s"
        message = (
            f"You needed at least {format_score(cutoff)} to make the leaderboard. "
            f"You scored {format_score(mine.score)} ({diff} point{plural} short)."
        )
    return Placement(on_board=False, rank=rank, message=message)
