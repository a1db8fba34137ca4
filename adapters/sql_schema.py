"""
SQLAlchemy table mappings for the relational meeting store.

Only the columns the post-meeting pipeline reads or writes are mapped.
Enum-valued columns are stored as plain strings so the schema stays
portable between SQLite (local dev, tests) and PostgreSQL.
"""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from sqlalchemy import (
    Boolean,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

from shared_utils.constants import DatabaseConfig


class Base(DeclarativeBase):
    """Declarative base for all meeting store tables."""


class UserRow(Base):
    __tablename__ = DatabaseConfig.USERS_TABLE

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    email: Mapped[Optional[str]] = mapped_column(String(320), nullable=True)


class MeetingRow(Base):
    __tablename__ = DatabaseConfig.MEETINGS_TABLE

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    title: Mapped[str] = mapped_column(String(300), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="SCHEDULED")
    host_id: Mapped[str] = mapped_column(
        String(64), ForeignKey(f"{DatabaseConfig.USERS_TABLE}.id"), nullable=False
    )
    actual_start: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    actual_end: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    ai_summary: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    ai_summary_format: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    processing_state: Mapped[Optional[str]] = mapped_column(String(20), nullable=True, index=True)
    processing_error: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    host: Mapped[UserRow] = relationship(lazy="joined")
    participants: Mapped[List["ParticipantRow"]] = relationship(
        back_populates="meeting", cascade="all, delete-orphan"
    )


class ParticipantRow(Base):
    __tablename__ = DatabaseConfig.PARTICIPANTS_TABLE

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    meeting_id: Mapped[str] = mapped_column(
        String(64), ForeignKey(f"{DatabaseConfig.MEETINGS_TABLE}.id"), index=True
    )
    user_id: Mapped[Optional[str]] = mapped_column(
        String(64), ForeignKey(f"{DatabaseConfig.USERS_TABLE}.id"), nullable=True
    )
    guest_name: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)

    meeting: Mapped[MeetingRow] = relationship(back_populates="participants")
    user: Mapped[Optional[UserRow]] = relationship(lazy="joined")


class TranscriptSegmentRow(Base):
    __tablename__ = DatabaseConfig.TRANSCRIPTS_TABLE

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    meeting_id: Mapped[str] = mapped_column(
        String(64), ForeignKey(f"{DatabaseConfig.MEETINGS_TABLE}.id"), index=True
    )
    speaker_name: Mapped[str] = mapped_column(String(200), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    start_time: Mapped[int] = mapped_column(Integer, nullable=False)  # ms
    end_time: Mapped[int] = mapped_column(Integer, nullable=False)  # ms
    confidence: Mapped[float] = mapped_column(Float, default=0.0)
    language: Mapped[str] = mapped_column(String(16), default="en")
    is_final: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())


class ActionItemRow(Base):
    __tablename__ = DatabaseConfig.ACTION_ITEMS_TABLE

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    meeting_id: Mapped[str] = mapped_column(
        String(64), ForeignKey(f"{DatabaseConfig.MEETINGS_TABLE}.id"), index=True
    )
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    description: Mapped[str] = mapped_column(Text, default="")
    assignee_id: Mapped[Optional[str]] = mapped_column(
        String(64), ForeignKey(f"{DatabaseConfig.USERS_TABLE}.id"), nullable=True
    )
    due_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    priority: Mapped[str] = mapped_column(String(10), default="MEDIUM")
    status: Mapped[str] = mapped_column(String(20), default="PENDING")
    ai_generated: Mapped[bool] = mapped_column(Boolean, default=False)
    ai_confidence: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
