"""
Pure domain models for the post-meeting processing service.

These models contain NO storage or provider dependencies. They represent the
business concepts that flow through ports and services. Models exposed on the
HTTP surface or parsed from LLM output serialise with camelCase aliases
(``actionItemCount``, ``keyPoints``) and accept either spelling on input.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base for models whose JSON form uses camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------


class MeetingStatus(str, Enum):
    """Conferencing lifecycle of a meeting."""

    SCHEDULED = "SCHEDULED"
    LIVE = "LIVE"
    ENDED = "ENDED"
    CANCELLED = "CANCELLED"


class ActionItemPriority(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    URGENT = "URGENT"


class ActionItemStatus(str, Enum):
    PENDING = "PENDING"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class ProcessingJobState(str, Enum):
    """Explicit state of the last post-meeting processing job."""

    PENDING = "PENDING"
    RUNNING = "RUNNING"
    SUCCEEDED = "SUCCEEDED"
    FAILED = "FAILED"


class ProcessingStatus(str, Enum):
    """Coarse status derived from persisted meeting data."""

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class Sentiment(str, Enum):
    POSITIVE = "positive"
    NEUTRAL = "neutral"
    NEGATIVE = "negative"
    MIXED = "mixed"


# ---------------------------------------------------------------------------
# Stored entities
# ---------------------------------------------------------------------------


class UserRef(BaseModel):
    """Minimal user reference (host or participant)."""

    id: str
    name: Optional[str] = None
    email: Optional[str] = None


class Participant(BaseModel):
    """Meeting participant. Guests have no linked user."""

    id: str
    user: Optional[UserRef] = None
    guest_name: Optional[str] = None


class Meeting(BaseModel):
    """Meeting row with its host and participant roster."""

    id: str
    title: str
    status: MeetingStatus = MeetingStatus.SCHEDULED
    host: UserRef
    participants: List[Participant] = []
    actual_start: Optional[datetime] = None
    actual_end: Optional[datetime] = None
    ai_summary: Optional[str] = None  # serialized summary, see result_persister
    ai_summary_format: Optional[str] = None
    processing_state: Optional[ProcessingJobState] = None
    processing_error: Optional[str] = None

    @property
    def host_id(self) -> str:
        return self.host.id


class NewTranscriptSegment(BaseModel):
    """Insert shape for a transcript segment (offsets in milliseconds)."""

    speaker_name: str
    content: str
    start_time: int
    end_time: int
    confidence: float = 0.0
    language: str = "en"
    is_final: bool = True


class TranscriptSegment(NewTranscriptSegment):
    """One timed, attributed utterance. Immutable once created."""

    model_config = ConfigDict(frozen=True)

    id: str
    meeting_id: str


class NewActionItem(BaseModel):
    """Insert shape for an action item."""

    title: str
    description: str = ""
    assignee_id: Optional[str] = None
    due_date: Optional[datetime] = None
    priority: ActionItemPriority = ActionItemPriority.MEDIUM
    status: ActionItemStatus = ActionItemStatus.PENDING
    ai_generated: bool = False
    ai_confidence: Optional[float] = None


class ActionItem(NewActionItem):
    """Persisted action item."""

    id: str
    meeting_id: str


# ---------------------------------------------------------------------------
# Speech-to-text
# ---------------------------------------------------------------------------


class TranscriptionConfig(BaseModel):
    language: str = "en"
    model: str = "nova-2"
    punctuate: bool = True
    diarize: bool = True
    smart_format: bool = True
    utterances: bool = True


class TranscribedWord(BaseModel):
    word: str
    start: float
    end: float
    confidence: float = 0.0


class TranscribedSegment(BaseModel):
    """Provider-native segment; offsets are float seconds."""

    text: str
    start: float
    end: float
    speaker: Optional[str] = None
    confidence: float = 0.0
    words: Optional[List[TranscribedWord]] = None


class TranscriptionResult(BaseModel):
    segments: List[TranscribedSegment] = []
    full_text: str = ""
    duration: float = 0.0
    speakers: List[str] = []


# ---------------------------------------------------------------------------
# AI analysis
# ---------------------------------------------------------------------------


class MeetingSummary(CamelModel):
    title: str = ""
    overview: str = ""
    key_points: List[str] = []
    decisions: List[str] = []
    topics: List[str] = []
    next_steps: List[str] = []
    duration: str = ""
    participant_count: int = 0


class ExtractedActionItem(CamelModel):
    """Action item as returned by the LLM."""

    title: str
    description: str = ""
    assignee: Optional[str] = None
    due_date: Optional[str] = None
    priority: ActionItemPriority = ActionItemPriority.MEDIUM
    context: str = ""
    confidence: Optional[float] = None

    @field_validator("priority", mode="before")
    @classmethod
    def normalise_priority(cls, v):
        if isinstance(v, str):
            v = v.strip().upper()
            if v not in ActionItemPriority.__members__:
                return ActionItemPriority.MEDIUM
        return v or ActionItemPriority.MEDIUM


class SentimentAnalysis(CamelModel):
    sentiment: Sentiment = Sentiment.NEUTRAL
    engagement_score: int = 50
    insights: List[str] = []

    @field_validator("engagement_score", mode="before")
    @classmethod
    def clamp_score(cls, v):
        return max(0, min(100, int(round(float(v)))))

    @field_validator("sentiment", mode="before")
    @classmethod
    def normalise_sentiment(cls, v):
        return v.strip().lower() if isinstance(v, str) else v


class MeetingAnalysis(CamelModel):
    summary: MeetingSummary
    action_items: List[ExtractedActionItem] = []
    sentiment: Sentiment = Sentiment.NEUTRAL
    engagement_score: int = 50


# ---------------------------------------------------------------------------
# Pipeline inputs / outputs
# ---------------------------------------------------------------------------


class ProcessingOptions(CamelModel):
    """Transient flags for a single processing run."""

    skip_transcription: bool = False
    skip_analysis: bool = False
    audio_url: Optional[str] = None
    existing_transcript: Optional[str] = None
    notify_participants: bool = False


class ProcessingResult(CamelModel):
    """Outcome of a processing run. ``processing_time`` is in milliseconds."""

    success: bool
    meeting_id: str
    transcript_segment_count: Optional[int] = None
    summary: Optional[MeetingSummary] = None
    action_item_count: Optional[int] = None
    errors: List[str] = Field(default_factory=list)
    processing_time: float = 0.0


class ProcessingStatusReport(CamelModel):
    status: ProcessingStatus = ProcessingStatus.PENDING
    has_transcript: bool = False
    has_summary: bool = False
    action_item_count: int = 0
    job_state: Optional[ProcessingJobState] = None


class QueueReceipt(CamelModel):
    queued: bool
    job_id: str
