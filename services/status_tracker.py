"""
StatusTracker — read-only processing status for a meeting.

``status`` is derived from persisted data (meeting lifecycle plus presence of
a transcript or summary). ``job_state`` reports the explicit processing
state column written by the processor, when one has been recorded.
"""

from __future__ import annotations

from domain.models import MeetingStatus, ProcessingStatus, ProcessingStatusReport
from ports.meeting_store import MeetingStorePort
from shared_utils.constants import LogScope
from shared_utils.logging_utils import get_scoped_logger

logger = get_scoped_logger(LogScope.PROCESSING)


def derive_status(
    meeting_status: MeetingStatus, has_transcript: bool, has_summary: bool
) -> ProcessingStatus:
    if meeting_status == MeetingStatus.ENDED and (has_transcript or has_summary):
        return ProcessingStatus.COMPLETED
    if meeting_status == MeetingStatus.LIVE:
        return ProcessingStatus.PROCESSING
    if meeting_status == MeetingStatus.CANCELLED:
        return ProcessingStatus.FAILED
    return ProcessingStatus.PENDING


class StatusTracker:
    def __init__(self, meeting_store: MeetingStorePort) -> None:
        self._store = meeting_store

    def get_status(self, meeting_id: str) -> ProcessingStatusReport:
        """Report status for *meeting_id*. Unknown ids report ``pending``."""
        meeting = self._store.get_meeting(meeting_id)
        if meeting is None:
            logger.debug("status_requested_for_unknown_meeting", meeting_id=meeting_id)
            return ProcessingStatusReport()

        has_transcript = self._store.has_transcript(meeting_id)
        has_summary = bool(meeting.ai_summary)
        return ProcessingStatusReport(
            status=derive_status(meeting.status, has_transcript, has_summary),
            has_transcript=has_transcript,
            has_summary=has_summary,
            action_item_count=self._store.count_action_items(meeting_id),
            job_state=meeting.processing_state,
        )
