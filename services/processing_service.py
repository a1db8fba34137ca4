"""
PostMeetingProcessor — orchestrates the post-meeting pipeline.

Flow:  load meeting → resolve transcript → analyse → persist
       → mark meeting ENDED → notify (optional) → ProcessingResult

Public entry points (process_meeting, reprocess_meeting,
get_processing_status, queue_meeting_for_processing) never raise: every
failure is reported through the returned object. Depends only on ports;
providers are injected and ``None`` means "not configured".
"""

from __future__ import annotations

import time
from datetime import datetime, timezone
from typing import List, Optional

from domain.models import (
    Meeting,
    MeetingStatus,
    ProcessingJobState,
    ProcessingOptions,
    ProcessingResult,
    ProcessingStatusReport,
    QueueReceipt,
    TranscriptionConfig,
)
from ports.llm_provider import MeetingAnalyzerPort
from ports.meeting_store import MeetingStorePort
from ports.notifier import NotifierPort
from ports.transcription_provider import TranscriptionProviderPort
from services.analysis_invoker import AnalysisInvoker
from services.notification_service import LogNotifier, notify_safely
from services.processing_queue import ProcessingQueue, make_job_id
from services.result_persister import ResultPersister, deserialize_summary
from services.run_coordinator import MeetingRunCoordinator
from services.status_tracker import StatusTracker
from services.transcript_resolver import TranscriptResolver, format_segments
from shared_utils.constants import Defaults, LogScope, PipelineMessages
from shared_utils.error_handler import NotFoundError, describe_exception
from shared_utils.logging_utils import ContextualLogger, log_execution


logger = ContextualLogger(scope=LogScope.PROCESSING)


def build_participant_names(meeting: Meeting) -> List[str]:
    """Host first, then every participant with a linked user account."""
    host = meeting.host
    names = [host.name or host.email or "Host"]
    for participant in meeting.participants:
        if participant.user is not None:
            user = participant.user
            names.append(user.name or user.email or "Participant")
    return names


def _elapsed_ms(started: float) -> float:
    return round((time.time() - started) * 1000, 2)


class PostMeetingProcessor:
    """Stateless orchestrator over the meeting store and AI providers."""

    def __init__(
        self,
        meeting_store: MeetingStorePort,
        *,
        transcription_provider: Optional[TranscriptionProviderPort] = None,
        analyzer: Optional[MeetingAnalyzerPort] = None,
        notifier: Optional[NotifierPort] = None,
        transcription_config: Optional[TranscriptionConfig] = None,
        provider_timeout_seconds: float = Defaults.PROVIDER_TIMEOUT,
        coordinator: Optional[MeetingRunCoordinator] = None,
        queue: Optional[ProcessingQueue] = None,
    ) -> None:
        self._store = meeting_store
        self._resolver = TranscriptResolver(
            meeting_store, transcription_provider, transcription_config
        )
        self._invoker = AnalysisInvoker(analyzer, timeout_seconds=provider_timeout_seconds)
        self._persister = ResultPersister(meeting_store)
        self._tracker = StatusTracker(meeting_store)
        self._notifier = notifier or LogNotifier()
        self._coordinator = coordinator or MeetingRunCoordinator()
        self._queue = queue

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @property
    def transcription_configured(self) -> bool:
        return self._resolver.is_configured

    @property
    def analysis_configured(self) -> bool:
        return self._invoker.is_configured

    def process_meeting(
        self, meeting_id: str, options: Optional[ProcessingOptions] = None
    ) -> ProcessingResult:
        """Run the full pipeline for one meeting.

        Concurrent calls for the same meeting share one run.
        """
        started = time.time()
        try:
            return self.run_job(meeting_id, options or ProcessingOptions())
        except Exception as exc:
            return self._crashed(meeting_id, exc, started)

    def reprocess_meeting(self, meeting_id: str) -> ProcessingResult:
        """Regenerate summary and action items from the stored transcript.

        Every existing action item of the meeting is deleted first,
        including manually created ones. A call that arrives while another
        run for the same meeting is in flight joins that run instead: it
        returns that run's result and deletes nothing.
        """
        started = time.time()
        try:
            return self._coordinator.run(meeting_id, lambda: self._reprocess(meeting_id))
        except Exception as exc:
            return self._crashed(meeting_id, exc, started)

    def get_processing_status(self, meeting_id: str) -> ProcessingStatusReport:
        try:
            return self._tracker.get_status(meeting_id)
        except Exception as exc:
            logger.error(
                "status_lookup_failed",
                meeting_id=meeting_id,
                error=describe_exception(exc),
            )
            return ProcessingStatusReport()

    def queue_meeting_for_processing(
        self, meeting_id: str, options: Optional[ProcessingOptions] = None
    ) -> QueueReceipt:
        """Schedule a background run and acknowledge immediately.

        ``queued`` is False when the job could not be handed to a worker.
        """
        if self._queue is None:
            self._queue = ProcessingQueue(self._store)
        try:
            return self._queue.submit(meeting_id, options or ProcessingOptions(), self.run_job)
        except Exception as exc:
            logger.error(
                "queue_submit_failed",
                meeting_id=meeting_id,
                error=describe_exception(exc),
            )
            return QueueReceipt(queued=False, job_id=make_job_id(meeting_id))

    def recover_pending(self) -> List[QueueReceipt]:
        """Re-queue runs interrupted by a restart."""
        if self._queue is None:
            self._queue = ProcessingQueue(self._store)
        return self._queue.recover(self.run_job)

    def run_job(self, meeting_id: str, options: ProcessingOptions) -> ProcessingResult:
        """Run the pipeline, letting unexpected exceptions propagate.

        Used by the background queue so crashed runs can be retried. Once
        the analysis is persisted, later failures are reported in the
        result instead, since a retry would duplicate the action items.
        """
        return self._coordinator.run(meeting_id, lambda: self._process(meeting_id, options))

    def require_meeting(self, meeting_id: str) -> Meeting:
        """Raises NotFoundError when the meeting does not exist."""
        meeting = self._store.get_meeting(meeting_id)
        if meeting is None:
            raise NotFoundError("Meeting", meeting_id)
        return meeting

    def get_summary(self, meeting_id: str) -> Optional[dict]:
        """Decoded stored summary, None when the meeting has none yet."""
        meeting = self.require_meeting(meeting_id)
        return deserialize_summary(meeting.ai_summary, meeting.ai_summary_format)

    def shutdown(self) -> None:
        if self._queue is not None:
            self._queue.shutdown(wait=True)

    # ------------------------------------------------------------------
    # Pipeline
    # ------------------------------------------------------------------

    @log_execution(scope=LogScope.PROCESSING)
    def _process(self, meeting_id: str, options: ProcessingOptions) -> ProcessingResult:
        started = time.time()
        log = logger.bind(meeting_id=meeting_id)

        meeting = self._store.get_meeting(meeting_id)
        if meeting is None:
            log.warning("processing_meeting_not_found")
            return ProcessingResult(
                success=False,
                meeting_id=meeting_id,
                errors=[PipelineMessages.MEETING_NOT_FOUND],
                processing_time=_elapsed_ms(started),
            )

        self._store.set_processing_state(meeting_id, ProcessingJobState.RUNNING)
        log.info(
            "processing_started",
            skip_transcription=options.skip_transcription,
            skip_analysis=options.skip_analysis,
            has_audio=bool(options.audio_url),
        )

        persisted = False
        try:
            errors: List[str] = []
            participant_names = build_participant_names(meeting)

            resolution = self._resolver.resolve(meeting_id, options)
            errors.extend(resolution.errors)

            outcome = self._invoker.invoke(
                resolution.text, meeting.title, participant_names, options
            )
            errors.extend(outcome.errors)
            analysis = outcome.analysis

            if analysis is not None:
                self._persister.persist(meeting, analysis)
                persisted = True

            self._store.update_meeting_status(
                meeting_id, MeetingStatus.ENDED, actual_end=datetime.now(timezone.utc)
            )

            if options.notify_participants and analysis is not None:
                notify_safely(self._notifier, meeting, analysis)

        except Exception as exc:
            self._mark_state(meeting_id, ProcessingJobState.FAILED, describe_exception(exc))
            if not persisted:
                raise
            # Action items are committed; a retried run would insert them again.
            return self._crashed(meeting_id, exc, started)

        success = not errors
        self._mark_state(
            meeting_id,
            ProcessingJobState.SUCCEEDED if success else ProcessingJobState.FAILED,
            "; ".join(errors) or None,
        )

        result = ProcessingResult(
            success=success,
            meeting_id=meeting_id,
            transcript_segment_count=resolution.segments_created if resolution.transcribed else None,
            summary=analysis.summary if analysis else None,
            action_item_count=len(analysis.action_items) if analysis else None,
            errors=errors,
            processing_time=_elapsed_ms(started),
        )
        log.info(
            "processing_completed",
            success=result.success,
            error_count=len(errors),
            action_item_count=result.action_item_count,
            processing_time_ms=result.processing_time,
        )
        return result

    def _reprocess(self, meeting_id: str) -> ProcessingResult:
        segments = self._store.list_transcript_segments(meeting_id)
        if not segments:
            logger.info("reprocess_without_transcript", meeting_id=meeting_id)
            return ProcessingResult(
                success=False,
                meeting_id=meeting_id,
                errors=[PipelineMessages.NO_TRANSCRIPT_FOR_REPROCESS],
                processing_time=0,
            )

        transcript = format_segments(segments)
        deleted = self._store.delete_action_items(meeting_id)
        logger.info("reprocess_started", meeting_id=meeting_id, deleted_action_items=deleted)

        return self._process(
            meeting_id,
            ProcessingOptions(skip_transcription=True, existing_transcript=transcript),
        )

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _mark_state(
        self, meeting_id: str, state: ProcessingJobState, error: Optional[str]
    ) -> None:
        try:
            self._store.set_processing_state(meeting_id, state, error)
        except Exception as exc:
            logger.error(
                "processing_state_not_recorded",
                meeting_id=meeting_id,
                state=state.value,
                error=describe_exception(exc),
            )

    @staticmethod
    def _crashed(meeting_id: str, exc: Exception, started: float) -> ProcessingResult:
        message = describe_exception(exc) or PipelineMessages.UNKNOWN_ERROR
        logger.error(
            "processing_failed",
            meeting_id=meeting_id,
            error_type=type(exc).__name__,
            error=message,
        )
        return ProcessingResult(
            success=False,
            meeting_id=meeting_id,
            errors=[message],
            processing_time=_elapsed_ms(started),
        )
