"""SQLite persistence for scored submissions.

Stores one row per unique image content hash and lists entries for the
leaderboard.
"""

from perfscore.store.errors import MigrationError, StoreConnectionError, StoreError
from perfscore.store.metrics import StoreMetrics
from perfscore.store.models import NewEntry, StoredEntry
from perfscore.store.store import EntryStore


__all__ = [
    # Errors
    "MigrationError",
    "StoreConnectionError",
    "StoreError",
    # Metrics
    "StoreMetrics",
    # Models
    "NewEntry",
    "StoredEntry",
    # Store
    "EntryStore",
]
