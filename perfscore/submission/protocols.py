"""Protocol interfaces for the orchestrator's collaborators."""

from typing import Protocol, runtime_checkable

from perfscore.features.annotate.models import AnnotationOutcome
from perfscore.features.annotate.retry import CancelToken
from perfscore.store.models import NewEntry, StoredEntry


@runtime_checkable
class AnnotationClient(Protocol):
    """Anything that can annotate an image data URL."""

    async def annotate(
        self,
        image_data_url: str,
        *,
        cancel_token: CancelToken | None = None,
    ) -> AnnotationOutcome:
        """Annotate an image.

        Args:
            image_data_url: Image as a base64 data URL.
            cancel_token: Optional cancellation signal.

        Returns:
            AnnotationOk or AnnotationErr.
        """
        ...


@runtime_checkable
class EntryRepository(Protocol):
    """Persistence operations needed to record a submission.

    Implementations are synchronous and are called from the thread that
    owns them.
    """

    def find_by_hash(self, image_hash: str) -> StoredEntry | None:
        """Look up an entry by image content hash."""
        ...

    def insert_entry(self, entry: NewEntry) -> StoredEntry:
        """Write an entry.

        Raises:
            DuplicateSubmission: If the hash is already stored.
        """
        ...

    def list_entries(self, min_score: int = 0) -> list[StoredEntry]:
        """List entries at or above a score."""
        ...
