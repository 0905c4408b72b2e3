"""Versioned schema for the entry store.

Each migration is a list of single statements applied inside one
transaction together with its ``schema_version`` row, so a failed
migration leaves the previous schema intact.
"""

import sqlite3
from dataclasses import dataclass
from datetime import UTC, datetime

import structlog

from perfscore.store.errors import MigrationError


logger = structlog.get_logger()

CURRENT_VERSION = 1


@dataclass(frozen=True)
class Migration:
    """A forward schema change.

    Attributes:
        version: Schema version reached after applying it.
        description: Human-readable description.
        statements: SQL statements, applied in order.
    """

    version: int
    description: str
    statements: tuple[str, ...]


MIGRATIONS: list[Migration] = [
    Migration(
        version=1,
        description="Entries table keyed by image content hash",
        statements=(
            """
            CREATE TABLE IF NOT EXISTS entries (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                image_data_url TEXT NOT NULL,
                image_hash TEXT NOT NULL UNIQUE,
                result_json TEXT NOT NULL,
                score INTEGER NOT NULL CHECK (score BETWEEN 0 AND 10),
                matched_keywords TEXT NOT NULL DEFAULT '[]',
                podium_opt_in INTEGER NOT NULL DEFAULT 1,
                created_at TEXT NOT NULL
            )
            """,
            """
            CREATE INDEX IF NOT EXISTS idx_entries_score_created
                ON entries(score DESC, created_at DESC)
            """,
            """
            CREATE INDEX IF NOT EXISTS idx_entries_created_at
                ON entries(created_at)
            """,
        ),
    ),
]

_VERSION_TABLE_SQL = """
CREATE TABLE IF NOT EXISTS schema_version (
    version INTEGER PRIMARY KEY,
    applied_at TEXT NOT NULL,
    description TEXT
)
"""


def get_migrations_to_apply(current_version: int) -> list[Migration]:
    """Get migrations newer than ``current_version``, in order."""
    return [m for m in MIGRATIONS if m.version > current_version]


class MigrationManager:
    """Brings an entry database up to CURRENT_VERSION."""

    def __init__(self, connection: sqlite3.Connection) -> None:
        """Initialize the migration manager.

        Args:
            connection: SQLite connection to manage.
        """
        self._conn = connection
        self._log = logger.bind(component="store", subcomponent="migrations")

    def get_current_version(self) -> int:
        """Get the schema version, or 0 for a fresh database."""
        with self._conn:
            self._conn.execute(_VERSION_TABLE_SQL)
        row = self._conn.execute("SELECT MAX(version) FROM schema_version").fetchone()
        return int(row[0]) if row[0] is not None else 0

    def applied_migrations(self) -> list[tuple[int, str]]:
        """List applied versions with their timestamps, oldest first."""
        self.get_current_version()
        rows = self._conn.execute(
            "SELECT version, applied_at FROM schema_version ORDER BY version"
        ).fetchall()
        return [(int(row[0]), str(row[1])) for row in rows]

    def apply_migrations(self) -> list[int]:
        """Apply every pending migration.

        Returns:
            Versions applied by this call; empty when already current.

        Raises:
            MigrationError: If a statement fails. That migration is rolled
                back and later ones are not attempted.
        """
        current = self.get_current_version()
        applied: list[int] = []

        for migration in get_migrations_to_apply(current):
            self._log.info(
                "applying_migration",
                version=migration.version,
                description=migration.description,
            )
            try:
                with self._conn:
                    self._conn.execute("BEGIN")
                    for statement in migration.statements:
                        self._conn.execute(statement)
                    self._conn.execute(
                        "INSERT INTO schema_version "
                        "(version, applied_at, description) VALUES (?, ?, ?)",
                        (
                            migration.version,
                            datetime.now(UTC).isoformat(),
                            migration.description,
                        ),
                    )
            except sqlite3.Error as e:
                self._log.error(
                    "migration_failed", version=migration.version, error=str(e)
                )
                raise MigrationError(migration.version, str(e)) from e
            applied.append(migration.version)

        if not applied:
            self._log.debug("no_migrations_pending", current_version=current)
        return applied
