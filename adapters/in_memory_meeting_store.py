"""
In-memory meeting store adapter for local development and tests.

Implements MeetingStorePort with plain dicts guarded by a lock.
NOT for production — no persistence across restarts.
"""

from __future__ import annotations

import threading
import uuid
from datetime import datetime
from typing import Dict, Iterable, List, Optional

from domain.models import (
    ActionItem,
    Meeting,
    MeetingStatus,
    NewActionItem,
    NewTranscriptSegment,
    ProcessingJobState,
    TranscriptSegment,
)
from shared_utils.constants import LogScope
from shared_utils.error_handler import PersistenceError
from shared_utils.logging_utils import get_scoped_logger


logger = get_scoped_logger(LogScope.ADAPTER)


class InMemoryMeetingStoreAdapter:
    """Thread-safe dict-backed implementation of MeetingStorePort."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._meetings: Dict[str, Meeting] = {}
        self._segments: Dict[str, List[TranscriptSegment]] = {}
        self._action_items: Dict[str, List[ActionItem]] = {}

    # ------------------------------------------------------------------
    # Seeding (not part of the port)
    # ------------------------------------------------------------------

    def add_meeting(self, meeting: Meeting) -> Meeting:
        """Insert or replace a meeting row."""
        with self._lock:
            self._meetings[meeting.id] = meeting.model_copy(deep=True)
        return meeting

    # ------------------------------------------------------------------
    # MeetingStorePort implementation
    # ------------------------------------------------------------------

    def get_meeting(self, meeting_id: str) -> Optional[Meeting]:
        with self._lock:
            meeting = self._meetings.get(meeting_id)
            return meeting.model_copy(deep=True) if meeting else None

    def update_meeting_status(
        self,
        meeting_id: str,
        status: MeetingStatus,
        actual_end: Optional[datetime] = None,
    ) -> None:
        with self._lock:
            meeting = self._require(meeting_id)
            update = {"status": status}
            if actual_end is not None:
                update["actual_end"] = actual_end
            self._meetings[meeting_id] = meeting.model_copy(update=update)
        logger.info("memory_update_meeting_status", meeting_id=meeting_id, status=status.value)

    def set_processing_state(
        self,
        meeting_id: str,
        state: ProcessingJobState,
        error_message: Optional[str] = None,
    ) -> None:
        with self._lock:
            meeting = self._require(meeting_id)
            self._meetings[meeting_id] = meeting.model_copy(
                update={"processing_state": state, "processing_error": error_message}
            )

    def list_meetings_in_state(
        self, states: Iterable[ProcessingJobState]
    ) -> List[str]:
        wanted = set(states)
        with self._lock:
            return [
                m.id for m in self._meetings.values() if m.processing_state in wanted
            ]

    def list_transcript_segments(self, meeting_id: str) -> List[TranscriptSegment]:
        with self._lock:
            segments = list(self._segments.get(meeting_id, []))
        return sorted(segments, key=lambda s: s.start_time)

    def has_transcript(self, meeting_id: str) -> bool:
        with self._lock:
            return bool(self._segments.get(meeting_id))

    def create_transcript_segment(
        self, meeting_id: str, segment: NewTranscriptSegment
    ) -> TranscriptSegment:
        row = TranscriptSegment(
            id=str(uuid.uuid4()), meeting_id=meeting_id, **segment.model_dump()
        )
        with self._lock:
            self._segments.setdefault(meeting_id, []).append(row)
        return row

    def list_action_items(self, meeting_id: str) -> List[ActionItem]:
        with self._lock:
            return list(self._action_items.get(meeting_id, []))

    def count_action_items(self, meeting_id: str) -> int:
        with self._lock:
            return len(self._action_items.get(meeting_id, []))

    def create_action_item(self, meeting_id: str, item: NewActionItem) -> ActionItem:
        row = ActionItem(id=str(uuid.uuid4()), meeting_id=meeting_id, **item.model_dump())
        with self._lock:
            self._action_items.setdefault(meeting_id, []).append(row)
        return row

    def delete_action_items(self, meeting_id: str) -> int:
        with self._lock:
            removed = self._action_items.pop(meeting_id, [])
        logger.info("memory_action_items_deleted", meeting_id=meeting_id, deleted_count=len(removed))
        return len(removed)

    def save_analysis(
        self,
        meeting_id: str,
        ai_summary: str,
        ai_summary_format: str,
        action_items: List[NewActionItem],
    ) -> List[ActionItem]:
        # Rows are built before anything is mutated so a bad item leaves
        # the store untouched.
        rows = [
            ActionItem(id=str(uuid.uuid4()), meeting_id=meeting_id, **item.model_dump())
            for item in action_items
        ]
        with self._lock:
            meeting = self._require(meeting_id)
            self._meetings[meeting_id] = meeting.model_copy(
                update={"ai_summary": ai_summary, "ai_summary_format": ai_summary_format}
            )
            self._action_items.setdefault(meeting_id, []).extend(rows)
        logger.info(
            "memory_analysis_saved",
            meeting_id=meeting_id,
            action_items=len(rows),
        )
        return rows

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _require(self, meeting_id: str) -> Meeting:
        meeting = self._meetings.get(meeting_id)
        if meeting is None:
            raise PersistenceError("Meeting not found", meeting_id=meeting_id)
        return meeting
