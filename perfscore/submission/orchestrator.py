"""Submission pipeline: validate, deduplicate, annotate, score and store."""

import structlog

from perfscore.errors import DuplicateSubmission
from perfscore.features.annotate.retry import CancelToken
from perfscore.features.images.data_url import decode_image_payload
from perfscore.leaderboard.constants import MIN_LEADERBOARD_SCORE
from perfscore.leaderboard.eligibility import is_eligible
from perfscore.leaderboard.models import Placement
from perfscore.leaderboard.ranker import compute_placement, top_entries
from perfscore.scoring.scorer import ScoringEngine
from perfscore.store.models import NewEntry, StoredEntry
from perfscore.submission.models import SubmissionOutcome, SubmissionRequest
from perfscore.submission.protocols import AnnotationClient, EntryRepository


logger = structlog.get_logger()


class SubmissionOrchestrator:
    """Runs one submission end to end.

    The score and matched terms are computed exactly once and handed to
    the store in a single write. The hash lookup before annotation avoids
    paying for an upstream call on a known image; the store's unique
    constraint still decides races between concurrent submissions.

    Store calls are synchronous and run on the event loop thread. SQLite
    connections are bound to the thread that opened them, so the store is
    not handed to worker threads; each write is a single short transaction.
    """

    def __init__(
        self,
        client: AnnotationClient,
        store: EntryRepository,
        engine: ScoringEngine | None = None,
    ) -> None:
        """Initialize the orchestrator.

        Args:
            client: Annotation client.
            store: Entry persistence.
            engine: Scoring engine; the default lexicon is used when omitted.
        """
        self._client = client
        self._store = store
        self._engine = engine or ScoringEngine()
        self._log = logger.bind(component="submission")

    async def submit(
        self,
        request: SubmissionRequest,
        cancel_token: CancelToken | None = None,
    ) -> SubmissionOutcome:
        """Score and store a submitted photo.

        Args:
            request: The submission.
            cancel_token: Optional cancellation signal for the upstream call.

        Returns:
            SubmissionOutcome describing the stored entry.

        Raises:
            ValidationError: If the image payload is malformed.
            DuplicateSubmission: If the image was already submitted.
            UpstreamRejected: If the upstream refused the request.
            AnnotationExhausted: If every attempt failed.
            AnnotationCancelled: If the caller cancelled.
        """
        image = decode_image_payload(request.image_data_url)
        image_hash = image.content_hash
        log = self._log.bind(image_hash=image_hash[:12], mime_type=image.mime_type)

        if self._store.find_by_hash(image_hash) is not None:
            log.info("submission_duplicate", stage="precheck")
            raise DuplicateSubmission(image_hash)

        log.info("submission_annotating")
        outcome = await self._client.annotate(
            request.image_data_url, cancel_token=cancel_token
        )
        annotation = outcome.unwrap()

        record = self._engine.score(annotation)
        eligibility = is_eligible(annotation, record.score)

        stored = self._store.insert_entry(
            NewEntry(
                image_data_url=request.image_data_url,
                image_hash=image_hash,
                result_json=annotation.to_json(),
                score=record.score,
                matched_keywords=record.matched,
                podium_opt_in=request.podium_opt_in,
            )
        )

        placement = None
        if eligibility.eligible and request.podium_opt_in:
            placement = self._placement_for(stored)

        log.info(
            "submission_stored",
            entry_id=stored.id,
            score=record.score,
            matched=len(record.matched),
            eligible=eligibility.eligible,
            on_board=placement.on_board if placement else None,
            attempts=outcome.meta.attempts_used,
        )

        return SubmissionOutcome(
            entry_id=stored.id,
            score=record.score,
            matched=record.matched,
            created_at=stored.created_at,
            image_hash=image_hash,
            podium_opt_in=stored.podium_opt_in,
            eligibility=eligibility,
            annotation=annotation,
            meta=outcome.meta,
            placement=placement,
        )

    def _placement_for(self, stored: StoredEntry) -> Placement:
        """Rank a stored entry against the current podium."""
        candidates = [
            entry.to_leaderboard_entry()
            for entry in self._store.list_entries(min_score=MIN_LEADERBOARD_SCORE)
        ]
        return compute_placement(top_entries(candidates), stored.to_leaderboard_entry())
