"""Leaderboard policy constants."""

MIN_LEADERBOARD_SCORE = 3

# Production podium view size.
PODIUM_SIZE = 25

DEFAULT_QUERY_LIMIT = 50
MAX_QUERY_LIMIT = 100

# Whole words that mark a male subject in the annotation text.
MALE_SUBJECT_TERMS: tuple[str, ...] = (
    "man",
    "male",
    "guy",
    "boy",
    "gentleman",
    "dude",
    "men",
    "boys",
    "guys",
    "person",
)
