"""
Port interface for post-meeting notifications.

Implementations: LogNotifier (services/notification_service.py)
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from domain.models import Meeting, MeetingAnalysis


@runtime_checkable
class NotifierPort(Protocol):
    """Best-effort delivery of a meeting summary to its participants."""

    def notify_meeting_summary(self, meeting: Meeting, analysis: MeetingAnalysis) -> None:
        ...
