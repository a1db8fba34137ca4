"""
SQLAlchemy-backed meeting store adapter.

Implements MeetingStorePort against the relational schema in
adapters/sql_schema.py. Every public method runs in its own session;
``save_analysis`` writes the summary and all action items in one
transaction.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Iterable, List, Optional

from sqlalchemy import create_engine, delete, func, select, update
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import selectinload, sessionmaker
from sqlalchemy.pool import StaticPool

from adapters.sql_schema import (
    ActionItemRow,
    Base,
    MeetingRow,
    ParticipantRow,
    TranscriptSegmentRow,
    UserRow,
)
from domain.models import (
    ActionItem,
    ActionItemPriority,
    ActionItemStatus,
    Meeting,
    MeetingStatus,
    NewActionItem,
    NewTranscriptSegment,
    Participant,
    ProcessingJobState,
    TranscriptSegment,
    UserRef,
)
from shared_utils.constants import LogScope
from shared_utils.error_handler import PersistenceError
from shared_utils.logging_utils import get_scoped_logger


logger = get_scoped_logger(LogScope.ADAPTER)


def build_engine(database_uri: str) -> Engine:
    """Create an engine; SQLite URLs get thread-safe connection settings."""
    if database_uri.startswith("sqlite"):
        kwargs: dict = {"connect_args": {"check_same_thread": False}}
        if database_uri in ("sqlite://", "sqlite:///:memory:"):
            # One shared connection, otherwise each session sees an empty db
            kwargs["poolclass"] = StaticPool
        return create_engine(database_uri, **kwargs)
    return create_engine(database_uri, pool_pre_ping=True)


class SqlMeetingStoreAdapter:
    """Relational implementation of MeetingStorePort."""

    def __init__(
        self,
        database_uri: str = "",
        engine: Optional[Engine] = None,
    ) -> None:
        if engine is None and not database_uri:
            raise ValueError("database_uri or engine is required")
        self._engine = engine or build_engine(database_uri)
        self._sessions = sessionmaker(bind=self._engine, expire_on_commit=False)

    def create_schema(self) -> None:
        """Create all tables that do not exist yet."""
        Base.metadata.create_all(self._engine)
        logger.info("sql_schema_created", url=self._engine.url.render_as_string(hide_password=True))

    # ------------------------------------------------------------------
    # Seeding (not part of the port)
    # ------------------------------------------------------------------

    def add_meeting(self, meeting: Meeting) -> Meeting:
        """Insert a meeting together with its host and participant users."""
        try:
            with self._sessions() as session, session.begin():
                session.merge(self._to_user_row(meeting.host))
                for p in meeting.participants:
                    if p.user is not None:
                        session.merge(self._to_user_row(p.user))
                session.add(
                    MeetingRow(
                        id=meeting.id,
                        title=meeting.title,
                        status=meeting.status.value,
                        host_id=meeting.host.id,
                        actual_start=meeting.actual_start,
                        actual_end=meeting.actual_end,
                        ai_summary=meeting.ai_summary,
                        ai_summary_format=meeting.ai_summary_format,
                        processing_state=(
                            meeting.processing_state.value if meeting.processing_state else None
                        ),
                        participants=[
                            ParticipantRow(
                                id=p.id,
                                user_id=p.user.id if p.user else None,
                                guest_name=p.guest_name,
                            )
                            for p in meeting.participants
                        ],
                    )
                )
        except SQLAlchemyError as exc:
            raise self._wrap("add_meeting", meeting.id, exc) from exc
        return meeting

    # ------------------------------------------------------------------
    # MeetingStorePort implementation
    # ------------------------------------------------------------------

    def get_meeting(self, meeting_id: str) -> Optional[Meeting]:
        stmt = (
            select(MeetingRow)
            .where(MeetingRow.id == meeting_id)
            .options(selectinload(MeetingRow.participants))
        )
        try:
            with self._sessions() as session:
                row = session.scalars(stmt).first()
                return self._from_meeting_row(row) if row is not None else None
        except SQLAlchemyError as exc:
            raise self._wrap("get_meeting", meeting_id, exc) from exc

    def update_meeting_status(
        self,
        meeting_id: str,
        status: MeetingStatus,
        actual_end: Optional[datetime] = None,
    ) -> None:
        values: dict = {"status": status.value}
        if actual_end is not None:
            values["actual_end"] = actual_end
        self._update_meeting(meeting_id, values, "update_meeting_status")
        logger.info("sql_update_meeting_status", meeting_id=meeting_id, status=status.value)

    def set_processing_state(
        self,
        meeting_id: str,
        state: ProcessingJobState,
        error_message: Optional[str] = None,
    ) -> None:
        self._update_meeting(
            meeting_id,
            {"processing_state": state.value, "processing_error": error_message},
            "set_processing_state",
        )

    def list_meetings_in_state(
        self, states: Iterable[ProcessingJobState]
    ) -> List[str]:
        values = [s.value for s in states]
        stmt = select(MeetingRow.id).where(MeetingRow.processing_state.in_(values))
        try:
            with self._sessions() as session:
                return list(session.scalars(stmt).all())
        except SQLAlchemyError as exc:
            raise self._wrap("list_meetings_in_state", None, exc) from exc

    def list_transcript_segments(self, meeting_id: str) -> List[TranscriptSegment]:
        stmt = (
            select(TranscriptSegmentRow)
            .where(TranscriptSegmentRow.meeting_id == meeting_id)
            .order_by(TranscriptSegmentRow.start_time.asc())
        )
        try:
            with self._sessions() as session:
                return [self._from_segment_row(r) for r in session.scalars(stmt).all()]
        except SQLAlchemyError as exc:
            raise self._wrap("list_transcript_segments", meeting_id, exc) from exc

    def has_transcript(self, meeting_id: str) -> bool:
        stmt = (
            select(TranscriptSegmentRow.id)
            .where(TranscriptSegmentRow.meeting_id == meeting_id)
            .limit(1)
        )
        try:
            with self._sessions() as session:
                return session.scalars(stmt).first() is not None
        except SQLAlchemyError as exc:
            raise self._wrap("has_transcript", meeting_id, exc) from exc

    def create_transcript_segment(
        self, meeting_id: str, segment: NewTranscriptSegment
    ) -> TranscriptSegment:
        row = TranscriptSegmentRow(
            id=str(uuid.uuid4()), meeting_id=meeting_id, **segment.model_dump()
        )
        try:
            with self._sessions() as session, session.begin():
                session.add(row)
            return self._from_segment_row(row)
        except SQLAlchemyError as exc:
            raise self._wrap("create_transcript_segment", meeting_id, exc) from exc

    def list_action_items(self, meeting_id: str) -> List[ActionItem]:
        stmt = (
            select(ActionItemRow)
            .where(ActionItemRow.meeting_id == meeting_id)
            .order_by(ActionItemRow.created_at.asc())
        )
        try:
            with self._sessions() as session:
                return [self._from_action_item_row(r) for r in session.scalars(stmt).all()]
        except SQLAlchemyError as exc:
            raise self._wrap("list_action_items", meeting_id, exc) from exc

    def count_action_items(self, meeting_id: str) -> int:
        stmt = select(func.count(ActionItemRow.id)).where(ActionItemRow.meeting_id == meeting_id)
        try:
            with self._sessions() as session:
                return int(session.scalar(stmt) or 0)
        except SQLAlchemyError as exc:
            raise self._wrap("count_action_items", meeting_id, exc) from exc

    def create_action_item(self, meeting_id: str, item: NewActionItem) -> ActionItem:
        row = self._to_action_item_row(meeting_id, item)
        try:
            with self._sessions() as session, session.begin():
                session.add(row)
            return self._from_action_item_row(row)
        except SQLAlchemyError as exc:
            raise self._wrap("create_action_item", meeting_id, exc) from exc

    def delete_action_items(self, meeting_id: str) -> int:
        stmt = delete(ActionItemRow).where(ActionItemRow.meeting_id == meeting_id)
        try:
            with self._sessions() as session, session.begin():
                deleted = session.execute(stmt).rowcount or 0
        except SQLAlchemyError as exc:
            raise self._wrap("delete_action_items", meeting_id, exc) from exc
        logger.info("sql_action_items_deleted", meeting_id=meeting_id, deleted_count=deleted)
        return deleted

    def save_analysis(
        self,
        meeting_id: str,
        ai_summary: str,
        ai_summary_format: str,
        action_items: List[NewActionItem],
    ) -> List[ActionItem]:
        rows = [self._to_action_item_row(meeting_id, item) for item in action_items]
        stmt = (
            update(MeetingRow)
            .where(MeetingRow.id == meeting_id)
            .values(ai_summary=ai_summary, ai_summary_format=ai_summary_format)
        )
        try:
            with self._sessions() as session, session.begin():
                if session.execute(stmt).rowcount == 0:
                    raise PersistenceError("Meeting not found", meeting_id=meeting_id)
                session.add_all(rows)
        except SQLAlchemyError as exc:
            raise self._wrap("save_analysis", meeting_id, exc) from exc

        logger.info("sql_analysis_saved", meeting_id=meeting_id, action_items=len(rows))
        return [self._from_action_item_row(r) for r in rows]

    # ------------------------------------------------------------------
    # Serialisation helpers
    # ------------------------------------------------------------------

    def _update_meeting(self, meeting_id: str, values: dict, operation: str) -> None:
        stmt = update(MeetingRow).where(MeetingRow.id == meeting_id).values(**values)
        try:
            with self._sessions() as session, session.begin():
                if session.execute(stmt).rowcount == 0:
                    raise PersistenceError("Meeting not found", meeting_id=meeting_id)
        except SQLAlchemyError as exc:
            raise self._wrap(operation, meeting_id, exc) from exc

    @staticmethod
    def _wrap(operation: str, meeting_id: Optional[str], exc: Exception) -> PersistenceError:
        logger.error(f"sql_{operation}_failed", meeting_id=meeting_id, error=str(exc))
        return PersistenceError(
            f"Failed to {operation.replace('_', ' ')}: {exc}", meeting_id=meeting_id
        )

    @staticmethod
    def _to_user_row(user: UserRef) -> UserRow:
        return UserRow(id=user.id, name=user.name, email=user.email)

    @staticmethod
    def _from_user_row(row: UserRow) -> UserRef:
        return UserRef(id=row.id, name=row.name, email=row.email)

    @classmethod
    def _from_meeting_row(cls, row: MeetingRow) -> Meeting:
        return Meeting(
            id=row.id,
            title=row.title,
            status=MeetingStatus(row.status),
            host=cls._from_user_row(row.host),
            participants=[
                Participant(
                    id=p.id,
                    user=cls._from_user_row(p.user) if p.user is not None else None,
                    guest_name=p.guest_name,
                )
                for p in row.participants
            ],
            actual_start=row.actual_start,
            actual_end=row.actual_end,
            ai_summary=row.ai_summary,
            ai_summary_format=row.ai_summary_format,
            processing_state=(
                ProcessingJobState(row.processing_state) if row.processing_state else None
            ),
            processing_error=row.processing_error,
        )

    @staticmethod
    def _from_segment_row(row: TranscriptSegmentRow) -> TranscriptSegment:
        return TranscriptSegment(
            id=row.id,
            meeting_id=row.meeting_id,
            speaker_name=row.speaker_name,
            content=row.content,
            start_time=row.start_time,
            end_time=row.end_time,
            confidence=row.confidence,
            language=row.language,
            is_final=row.is_final,
        )

    @staticmethod
    def _to_action_item_row(meeting_id: str, item: NewActionItem) -> ActionItemRow:
        return ActionItemRow(
            id=str(uuid.uuid4()),
            meeting_id=meeting_id,
            title=item.title,
            description=item.description,
            assignee_id=item.assignee_id,
            due_date=item.due_date,
            priority=item.priority.value,
            status=item.status.value,
            ai_generated=item.ai_generated,
            ai_confidence=item.ai_confidence,
        )

    @staticmethod
    def _from_action_item_row(row: ActionItemRow) -> ActionItem:
        return ActionItem(
            id=row.id,
            meeting_id=row.meeting_id,
            title=row.title,
            description=row.description or "",
            assignee_id=row.assignee_id,
            due_date=row.due_date,
            priority=ActionItemPriority(row.priority),
            status=ActionItemStatus(row.status),
            ai_generated=bool(row.ai_generated),
            ai_confidence=row.ai_confidence,
        )
