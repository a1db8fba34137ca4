"""
ResultPersister — writes an analysis back to the meeting store.

This module owns the serialized summary format: the summary fields are
flattened together with sentiment/engagement into one JSON document stored
in ``Meeting.ai_summary`` (format marker ``json``). Nothing outside this
module reads or writes that string directly.
"""

from __future__ import annotations

import json
from datetime import datetime
from typing import Any, Dict, List, Optional

from domain.models import (
    ActionItem,
    ActionItemStatus,
    ExtractedActionItem,
    Meeting,
    MeetingAnalysis,
    NewActionItem,
)
from ports.meeting_store import MeetingStorePort
from shared_utils.constants import LogScope, SUMMARY_FORMAT_JSON
from shared_utils.logging_utils import get_scoped_logger

logger = get_scoped_logger(LogScope.PERSISTENCE)


# ---------------------------------------------------------------------------
# Summary (de)serialization
# ---------------------------------------------------------------------------

def serialize_summary(analysis: MeetingAnalysis) -> str:
    s = analysis.summary
    return json.dumps(
        {
            "title": s.title,
            "overview": s.overview,
            "keyPoints": s.key_points,
            "decisions": s.decisions,
            "topics": s.topics,
            "nextSteps": s.next_steps,
            "sentiment": analysis.sentiment.value,
            "engagementScore": analysis.engagement_score,
        }
    )


def deserialize_summary(raw: Optional[str], fmt: Optional[str] = SUMMARY_FORMAT_JSON) -> Optional[Dict[str, Any]]:
    """Decode a stored summary for readers.

    Returns None when there is no summary. Text that is not a JSON object
    (legacy plain-text summaries) is returned as ``{"raw": text}``.
    """
    if not raw:
        return None
    if fmt not in (None, SUMMARY_FORMAT_JSON):
        return {"raw": raw}
    try:
        decoded = json.loads(raw)
    except (TypeError, ValueError):
        return {"raw": raw}
    return decoded if isinstance(decoded, dict) else {"raw": raw}


# ---------------------------------------------------------------------------
# Action item mapping
# ---------------------------------------------------------------------------

def parse_due_date(value: Optional[str]) -> Optional[datetime]:
    """ISO date/datetime string → datetime; anything unparseable → None."""
    if not value:
        return None
    try:
        return datetime.fromisoformat(value.strip())
    except ValueError:
        logger.debug("due_date_unparseable", value=value)
        return None


def resolve_assignee(meeting: Meeting, assignee: Optional[str]) -> str:
    """Match a named assignee against the roster; default to the host."""
    if assignee:
        wanted = assignee.strip().lower()
        candidates = [meeting.host] + [p.user for p in meeting.participants if p.user]
        for user in candidates:
            if wanted in {(user.name or "").lower(), (user.email or "").lower()}:
                return user.id
    return meeting.host_id


def to_new_action_item(meeting: Meeting, item: ExtractedActionItem) -> NewActionItem:
    return NewActionItem(
        title=item.title,
        description=item.description,
        assignee_id=resolve_assignee(meeting, item.assignee),
        due_date=parse_due_date(item.due_date),
        priority=item.priority,
        status=ActionItemStatus.PENDING,
        ai_generated=True,
        ai_confidence=item.confidence,
    )


class ResultPersister:
    """Writes the summary and AI action items in one atomic store call."""

    def __init__(self, meeting_store: MeetingStorePort) -> None:
        self._store = meeting_store

    def persist(self, meeting: Meeting, analysis: MeetingAnalysis) -> List[ActionItem]:
        """Persist *analysis* for *meeting*.

        Raises:
            PersistenceError: If the store write fails; nothing is written.
        """
        items = [to_new_action_item(meeting, item) for item in analysis.action_items]
        created = self._store.save_analysis(
            meeting.id,
            ai_summary=serialize_summary(analysis),
            ai_summary_format=SUMMARY_FORMAT_JSON,
            action_items=items,
        )
        logger.info(
            "analysis_persisted",
            meeting_id=meeting.id,
            action_item_count=len(created),
        )
        return created
