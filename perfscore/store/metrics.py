"""Counters and transaction timing for the entry store."""

import time
from collections import Counter
from dataclasses import dataclass, field
from typing import ClassVar


@dataclass
class StoreMetrics:
    """Process-wide counters for the entry store.

    Attributes:
        entries_inserted_total: Entries written.
        duplicates_rejected_total: Inserts refused by the hash constraint.
        hash_lookups_total: Calls to find_by_hash.
        hash_lookup_hits_total: Lookups that found an existing entry.
        inserted_by_score: Written entries keyed by score.
        db_tx_duration_ms: Cumulative committed transaction time.
        db_tx_count: Committed transactions.
    """

    entries_inserted_total: int = 0
    duplicates_rejected_total: int = 0
    hash_lookups_total: int = 0
    hash_lookup_hits_total: int = 0
    inserted_by_score: Counter[int] = field(default_factory=Counter)
    db_tx_duration_ms: float = 0.0
    db_tx_count: int = 0

    _instance: ClassVar["StoreMetrics | None"] = None

    @classmethod
    def get_instance(cls) -> "StoreMetrics":
        """Get singleton metrics instance."""
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    @classmethod
    def reset(cls) -> None:
        """Reset metrics (primarily for testing)."""
        cls._instance = None

    def record_insert(self, score: int) -> None:
        """Record a stored entry and its score."""
        self.entries_inserted_total += 1
        self.inserted_by_score[score] += 1

    def record_duplicate(self) -> None:
        """Record an insert refused by the unique hash constraint."""
        self.duplicates_rejected_total += 1

    def record_lookup(self, *, hit: bool) -> None:
        """Record a hash lookup.

        Args:
            hit: Whether an entry with the hash already existed.
        """
        self.hash_lookups_total += 1
        if hit:
            self.hash_lookup_hits_total += 1

    def record_tx_duration(self, duration_ms: float) -> None:
        """Record a committed transaction's duration in milliseconds."""
        self.db_tx_duration_ms += duration_ms
        self.db_tx_count += 1

    @property
    def avg_tx_duration_ms(self) -> float:
        """Mean committed transaction duration, 0.0 before any commit."""
        return self.db_tx_duration_ms / self.db_tx_count if self.db_tx_count else 0.0

    def to_dict(self) -> dict[str, float | int | dict[str, int]]:
        """Convert metrics to dictionary.

        Returns:
            Dictionary of metric name to value. Score buckets use string
            keys so the result serializes as JSON.
        """
        return {
            "entries_inserted_total": self.entries_inserted_total,
            "duplicates_rejected_total": self.duplicates_rejected_total,
            "hash_lookups_total": self.hash_lookups_total,
            "hash_lookup_hits_total": self.hash_lookup_hits_total,
            "inserted_by_score": {
                str(score): count
                for score, count in sorted(self.inserted_by_score.items())
            },
            "db_tx_count": self.db_tx_count,
            "avg_tx_duration_ms": round(self.avg_tx_duration_ms, 3),
        }


@dataclass
class TransactionContext:
    """One logged transaction: id, operation name, start time and rows touched."""

    tx_id: str
    operation: str
    start_time_ns: int = field(default_factory=time.perf_counter_ns)
    affected_rows: int = 0

    @property
    def elapsed_ms(self) -> float:
        """Milliseconds since the transaction started."""
        return (time.perf_counter_ns() - self.start_time_ns) / 1_000_000

    def add_affected_rows(self, rows: int) -> None:
        """Add to the affected row count."""
        self.affected_rows += rows
