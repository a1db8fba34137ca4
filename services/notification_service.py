"""
Post-meeting notifications.

LogNotifier is the default NotifierPort: it resolves the recipient list and
logs the digest that would be delivered. ``notify_safely`` wraps any
notifier so a delivery failure is logged and never reaches the caller.
"""

from __future__ import annotations

from typing import List

from domain.models import Meeting, MeetingAnalysis
from ports.notifier import NotifierPort
from shared_utils.constants import LogScope
from shared_utils.logging_utils import get_scoped_logger

logger = get_scoped_logger(LogScope.NOTIFICATION)


def collect_recipients(meeting: Meeting) -> List[str]:
    """Distinct emails of the host and linked-user participants, in roster order."""
    emails: List[str] = []
    for user in [meeting.host] + [p.user for p in meeting.participants if p.user]:
        if user.email and user.email not in emails:
            emails.append(user.email)
    return emails


class LogNotifier:
    """Logs the summary digest instead of delivering it."""

    def notify_meeting_summary(self, meeting: Meeting, analysis: MeetingAnalysis) -> None:
        logger.info(
            "notification_dispatched",
            meeting_id=meeting.id,
            recipients=collect_recipients(meeting),
            title=analysis.summary.title,
            overview=analysis.summary.overview,
            action_item_count=len(analysis.action_items),
        )


def notify_safely(notifier: NotifierPort, meeting: Meeting, analysis: MeetingAnalysis) -> bool:
    """Best-effort delivery. Returns False when the notifier raised."""
    try:
        notifier.notify_meeting_summary(meeting, analysis)
        return True
    except Exception as exc:
        logger.error(
            "notification_failed",
            meeting_id=meeting.id,
            error_type=type(exc).__name__,
            error=str(exc),
        )
        return False
