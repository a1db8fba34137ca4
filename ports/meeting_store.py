"""
Port interface for the relational meeting store.

Implementations: SqlMeetingStoreAdapter, InMemoryMeetingStoreAdapter (adapters/)
"""

from __future__ import annotations

from datetime import datetime
from typing import Iterable, List, Optional, Protocol, runtime_checkable

from domain.models import (
    ActionItem,
    Meeting,
    MeetingStatus,
    NewActionItem,
    NewTranscriptSegment,
    ProcessingJobState,
    TranscriptSegment,
)


@runtime_checkable
class MeetingStorePort(Protocol):
    """Narrow read/write surface the post-meeting pipeline needs."""

    def get_meeting(self, meeting_id: str) -> Optional[Meeting]:
        """Load a meeting with host and participant roster.

        Returns:
            Meeting if found, None otherwise.
        """
        ...

    def update_meeting_status(
        self,
        meeting_id: str,
        status: MeetingStatus,
        actual_end: Optional[datetime] = None,
    ) -> None:
        """Set the lifecycle status (and optionally ``actual_end``).

        Raises:
            PersistenceError: If the write fails.
        """
        ...

    def set_processing_state(
        self,
        meeting_id: str,
        state: ProcessingJobState,
        error_message: Optional[str] = None,
    ) -> None:
        """Record the explicit processing job state for a meeting."""
        ...

    def list_meetings_in_state(
        self, states: Iterable[ProcessingJobState]
    ) -> List[str]:
        """Return ids of meetings whose processing state is in *states*."""
        ...

    def list_transcript_segments(self, meeting_id: str) -> List[TranscriptSegment]:
        """All segments for a meeting, ascending by ``start_time``."""
        ...

    def has_transcript(self, meeting_id: str) -> bool:
        """Existence probe: at least one segment is persisted."""
        ...

    def create_transcript_segment(
        self, meeting_id: str, segment: NewTranscriptSegment
    ) -> TranscriptSegment:
        """Append one segment. Segments are never updated afterwards."""
        ...

    def list_action_items(self, meeting_id: str) -> List[ActionItem]:
        ...

    def count_action_items(self, meeting_id: str) -> int:
        ...

    def create_action_item(self, meeting_id: str, item: NewActionItem) -> ActionItem:
        ...

    def delete_action_items(self, meeting_id: str) -> int:
        """Delete every action item of the meeting.

        Returns:
            Number of rows deleted.
        """
        ...

    def save_analysis(
        self,
        meeting_id: str,
        ai_summary: str,
        ai_summary_format: str,
        action_items: List[NewActionItem],
    ) -> List[ActionItem]:
        """Atomically write the serialized summary and insert action items.

        Either both the summary update and every insert are applied, or
        none are.

        Raises:
            PersistenceError: If the meeting is missing or the write fails.
        """
        ...
