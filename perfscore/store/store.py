"""SQLite entry store implementation."""

import json
import sqlite3
import uuid
from collections.abc import Callable, Generator
from contextlib import contextmanager
from datetime import UTC, datetime
from pathlib import Path

import structlog

from perfscore.errors import DuplicateSubmission
from perfscore.store.errors import StoreConnectionError, StoreError
from perfscore.store.metrics import StoreMetrics, TransactionContext
from perfscore.store.migrations import CURRENT_VERSION, MigrationManager
from perfscore.store.models import NewEntry, StoredEntry


logger = structlog.get_logger()


def _utc_now() -> datetime:
    return datetime.now(UTC)


class EntryStore:
    """SQLite store for scored submissions.

    The UNIQUE constraint on ``image_hash`` makes duplicate rejection safe
    against concurrent writers; ``find_by_hash`` is only an early check.
    """

    def __init__(
        self,
        db_path: Path | str,
        *,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        """Initialize the entry store.

        Args:
            db_path: Path to the SQLite database file, or ``":memory:"``.
            clock: Source of creation timestamps.
        """
        self._db_path = Path(db_path)
        self._clock = clock
        self._conn: sqlite3.Connection | None = None
        self._metrics = StoreMetrics.get_instance()
        self._log = logger.bind(component="store", db_path=str(self._db_path))

    @property
    def db_path(self) -> Path:
        """Location of the database file."""
        return self._db_path

    @property
    def is_connected(self) -> bool:
        """Whether connect() has been called without a matching close()."""
        return self._conn is not None

    @property
    def in_memory(self) -> bool:
        """Whether the store lives only for the lifetime of its connection."""
        return str(self._db_path) == ":memory:"

    def connect(self) -> None:
        """Open the database and bring its schema up to date.

        File databases get their parent directory created on demand and run
        in WAL mode. Calling connect() on an open store does nothing.

        Raises:
            StoreConnectionError: If the database file cannot be opened or
                read, e.g. a directory path or a file that is not SQLite.
            MigrationError: If the schema cannot be upgraded.
        """
        if self._conn is not None:
            return

        conn = self._open_connection()
        migrations = MigrationManager(conn)
        try:
            from_version = migrations.get_current_version()
            applied = migrations.apply_migrations()
        except sqlite3.Error as e:
            conn.close()
            msg = f"Cannot read entry store at {self._db_path}: {e}"
            raise StoreConnectionError(msg) from e
        except Exception:
            conn.close()
            raise

        self._conn = conn
        self._log.info(
            "entry_store_opened",
            schema_from=from_version,
            schema_to=CURRENT_VERSION,
            applied=applied,
        )

    def _open_connection(self) -> sqlite3.Connection:
        conn: sqlite3.Connection | None = None
        try:
            if not self.in_memory:
                self._db_path.parent.mkdir(parents=True, exist_ok=True)
            conn = sqlite3.connect(str(self._db_path))
            conn.row_factory = sqlite3.Row
            if not self.in_memory:
                conn.execute("PRAGMA journal_mode=WAL")
                conn.execute("PRAGMA synchronous=NORMAL")
        except (sqlite3.Error, OSError) as e:
            if conn is not None:
                conn.close()
            self._log.error(
                "entry_store_open_failed", path=str(self._db_path), error=str(e)
            )
            msg = f"Cannot open entry store at {self._db_path}: {e}"
            raise StoreConnectionError(msg) from e
        return conn

    def close(self) -> None:
        """Close the connection; safe to call more than once."""
        conn, self._conn = self._conn, None
        if conn is not None:
            conn.close()
            self._log.info("entry_store_closed")

    def __enter__(self) -> "EntryStore":
        """Context manager entry."""
        self.connect()
        return self

    def __exit__(
        self,
        exc_type: type | None,
        exc_val: BaseException | None,
        exc_tb: object,
    ) -> None:
        """Context manager exit."""
        self.close()

    def _ensure_connected(self) -> sqlite3.Connection:
        """Return the open connection.

        Raises:
            StoreConnectionError: If not connected.
        """
        if self._conn is None:
            msg = "Entry store is not connected; call connect() first"
            raise StoreConnectionError(msg)
        return self._conn

    @contextmanager
    def _transaction(self, operation: str) -> Generator[TransactionContext]:
        """Run a block in a transaction with timing and logging.

        Args:
            operation: Name of the operation for logging.

        Yields:
            Transaction context with timing information.
        """
        conn = self._ensure_connected()
        ctx = TransactionContext(tx_id=uuid.uuid4().hex[:8], operation=operation)
        log = self._log.bind(tx_id=ctx.tx_id, op=operation)
        log.debug("transaction_started")

        try:
            yield ctx
            conn.commit()
        except Exception:
            conn.rollback()
            log.warning(
                "transaction_rolled_back", duration_ms=round(ctx.elapsed_ms, 2)
            )
            raise

        duration_ms = ctx.elapsed_ms
        self._metrics.record_tx_duration(duration_ms)
        log.info(
            "transaction_complete",
            affected_rows=ctx.affected_rows,
            duration_ms=round(duration_ms, 2),
        )

    def find_by_hash(self, image_hash: str) -> StoredEntry | None:
        """Look up an entry by image content hash.

        Args:
            image_hash: SHA-256 hex digest of the decoded image bytes.

        Returns:
            The stored entry, or None.
        """
        conn = self._ensure_connected()
        row = conn.execute(
            "SELECT * FROM entries WHERE image_hash = ?", (image_hash,)
        ).fetchone()
        self._metrics.record_lookup(hit=row is not None)
        return _row_to_entry(row) if row else None

    def insert_entry(self, entry: NewEntry) -> StoredEntry:
        """Write a scored submission.

        Args:
            entry: The submission to store.

        Returns:
            The stored entry with its id and creation time.

        Raises:
            DuplicateSubmission: If an entry with the same hash exists.
            StoreError: If the row breaks any other table constraint.
        """
        created_at = self._clock()
        with self._transaction("insert_entry") as ctx:
            conn = self._ensure_connected()
            try:
                cursor = conn.execute(
                    """
                    INSERT INTO entries (
                        image_data_url, image_hash, result_json, score,
                        matched_keywords, podium_opt_in, created_at
                    ) VALUES (?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        entry.image_data_url,
                        entry.image_hash,
                        entry.result_json,
                        entry.score,
                        json.dumps(list(entry.matched_keywords)),
                        1 if entry.podium_opt_in else 0,
                        created_at.isoformat(timespec="microseconds"),
                    ),
                )
            except sqlite3.IntegrityError as e:
                if "UNIQUE" not in str(e):
                    msg = f"Entry violates a store constraint: {e}"
                    raise StoreError(msg) from e
                self._metrics.record_duplicate()
                self._log.info("duplicate_rejected", image_hash=entry.image_hash)
                raise DuplicateSubmission(entry.image_hash) from e
            ctx.add_affected_rows(cursor.rowcount)
            entry_id = cursor.lastrowid

        self._metrics.record_insert(entry.score)
        self._log.info(
            "entry_inserted",
            entry_id=entry_id,
            score=entry.score,
            image_hash=entry.image_hash[:12],
        )
        return StoredEntry(
            id=entry_id,
            image_data_url=entry.image_data_url,
            image_hash=entry.image_hash,
            result_json=entry.result_json,
            score=entry.score,
            matched_keywords=entry.matched_keywords,
            podium_opt_in=entry.podium_opt_in,
            created_at=created_at,
        )

    def get_entry(self, entry_id: int) -> StoredEntry | None:
        """Get an entry by id.

        Args:
            entry_id: Entry identifier.

        Returns:
            The stored entry, or None.
        """
        conn = self._ensure_connected()
        row = conn.execute("SELECT * FROM entries WHERE id = ?", (entry_id,)).fetchone()
        return _row_to_entry(row) if row else None

    def list_entries(self, min_score: int = 0) -> list[StoredEntry]:
        """List entries at or above a score, best and newest first.

        Args:
            min_score: Lowest score to include.

        Returns:
            Entries ordered by score then creation time, both descending.
        """
        conn = self._ensure_connected()
        cursor = conn.execute(
            """
            SELECT * FROM entries
            WHERE score >= ?
            ORDER BY score DESC, created_at DESC
            """,
            (min_score,),
        )
        return [_row_to_entry(row) for row in cursor.fetchall()]

    def count_entries(self) -> int:
        """Count stored entries."""
        conn = self._ensure_connected()
        row = conn.execute("SELECT COUNT(*) FROM entries").fetchone()
        return int(row[0])


def _row_to_entry(row: sqlite3.Row) -> StoredEntry:
    return StoredEntry(
        id=row["id"],
        image_data_url=row["image_data_url"],
        image_hash=row["image_hash"],
        result_json=row["result_json"],
        score=row["score"],
        matched_keywords=tuple(json.loads(row["matched_keywords"] or "[]")),
        podium_opt_in=bool(row["podium_opt_in"]),
        created_at=datetime.fromisoformat(row["created_at"]),
    )
