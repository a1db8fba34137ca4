"""
Root conftest.py — shared fixtures for the entire test suite.

Guidelines:
    • No __init__.py in test sub-directories (avoids shadowing root packages).
    • pytest.ini_options lives in pyproject.toml with pythonpath=["."].
    • Markers: integration.
"""

import threading
from typing import Dict, List, Optional

import pytest

from adapters.in_memory_meeting_store import InMemoryMeetingStoreAdapter
from domain.models import (
    ExtractedActionItem,
    Meeting,
    MeetingStatus,
    MeetingSummary,
    NewTranscriptSegment,
    Participant,
    SentimentAnalysis,
    TranscribedSegment,
    TranscriptionConfig,
    TranscriptionResult,
    UserRef,
)


# ---------------------------------------------------------------------------
# Marker registration
# ---------------------------------------------------------------------------

def pytest_configure(config):
    config.addinivalue_line("markers", "integration: mark test as integration test")


# ---------------------------------------------------------------------------
# Minimal required settings kwargs for Settings(**BASE_SETTINGS_KWARGS)
# ---------------------------------------------------------------------------

BASE_SETTINGS_KWARGS: Dict[str, str] = {
    "llm_provider": "bedrock",
    "bedrock_region": "eu-west-2",
    "bedrock_llm_model_id": "anthropic.claude-3-haiku-20240307-v1:0",
    "environment": "development",
}


@pytest.fixture()
def base_settings_kwargs() -> Dict[str, str]:
    """Provide the minimal kwargs needed to instantiate ``Settings``."""
    return {**BASE_SETTINGS_KWARGS}


# ---------------------------------------------------------------------------
# Meetings
# ---------------------------------------------------------------------------

HOST = UserRef(id="u-host", name="Alice", email="alice@example.com")
BOB = UserRef(id="u-bob", name="Bob", email="bob@example.com")
NAMELESS = UserRef(id="u-anon", name=None, email=None)


def make_meeting(
    meeting_id: str,
    status: MeetingStatus = MeetingStatus.LIVE,
    title: str = "Weekly sync",
) -> Meeting:
    return Meeting(
        id=meeting_id,
        title=title,
        status=status,
        host=HOST,
        participants=[
            Participant(id=f"{meeting_id}-p1", user=BOB),
            Participant(id=f"{meeting_id}-p2", user=None, guest_name="Guest"),
            Participant(id=f"{meeting_id}-p3", user=NAMELESS),
        ],
    )


STANDUP_SEGMENTS = [
    NewTranscriptSegment(speaker_name="Alice", content="Welcome everyone.", start_time=0, end_time=4000),
    NewTranscriptSegment(speaker_name="Bob", content="I will ship the API by Friday.", start_time=65500, end_time=70000),
    NewTranscriptSegment(speaker_name="Alice", content="Great, thanks Bob.", start_time=15000, end_time=18000),
]


@pytest.fixture()
def store() -> InMemoryMeetingStoreAdapter:
    """In-memory store seeded with m1 (no transcript) and m2 (transcript)."""
    adapter = InMemoryMeetingStoreAdapter()
    adapter.add_meeting(make_meeting("m1"))
    adapter.add_meeting(make_meeting("m2"))
    for segment in STANDUP_SEGMENTS:
        adapter.create_transcript_segment("m2", segment)
    return adapter


# ---------------------------------------------------------------------------
# Fake providers
# ---------------------------------------------------------------------------

def three_segment_result() -> TranscriptionResult:
    """Provider output spanning 0–42 s."""
    return TranscriptionResult(
        segments=[
            TranscribedSegment(text="Hello team.", start=0.0, end=9.5, speaker="Speaker 0", confidence=0.98),
            TranscribedSegment(text="Status update.", start=10.25, end=25.0, speaker="Speaker 1", confidence=0.95),
            TranscribedSegment(text="Let's wrap up.", start=30.5, end=42.0, speaker=None, confidence=0.9),
        ],
        full_text="Hello team. Status update. Let's wrap up.",
        duration=42.0,
        speakers=["Speaker 0", "Speaker 1"],
    )


class FakeTranscriptionProvider:
    """Records calls; returns *result* or raises *error*."""

    def __init__(
        self,
        result: Optional[TranscriptionResult] = None,
        error: Optional[Exception] = None,
    ) -> None:
        self.result = result or three_segment_result()
        self.error = error
        self.calls: List[tuple] = []

    def transcribe(self, audio_source, config: TranscriptionConfig) -> TranscriptionResult:
        self.calls.append((audio_source, config))
        if self.error is not None:
            raise self.error
        return self.result


def default_summary() -> MeetingSummary:
    return MeetingSummary(
        title="Weekly sync",
        overview="The team reviewed progress.",
        key_points=["API is on track"],
        decisions=["Ship on Friday"],
        topics=["API"],
        next_steps=["Bob ships the API"],
        duration="5 minutes",
        participant_count=3,
    )


def default_items() -> List[ExtractedActionItem]:
    return [
        ExtractedActionItem(title="Ship API", description="Ship the API", assignee="Bob", due_date="2030-01-31", priority="HIGH"),
        ExtractedActionItem(title="Write notes", description="Circulate notes"),
    ]


class FakeAnalyzer:
    """MeetingAnalyzerPort fake with per-call failure switches.

    When *gate* is given, ``summarize`` blocks until it is set, which lets
    tests hold a run in flight.
    """

    def __init__(
        self,
        summary: Optional[MeetingSummary] = None,
        items: Optional[List[ExtractedActionItem]] = None,
        sentiment: Optional[SentimentAnalysis] = None,
        summary_error: Optional[Exception] = None,
        items_error: Optional[Exception] = None,
        sentiment_error: Optional[Exception] = None,
        gate: Optional[threading.Event] = None,
    ) -> None:
        self.summary = summary or default_summary()
        self.items = default_items() if items is None else items
        self.sentiment = sentiment or SentimentAnalysis(sentiment="positive", engagement_score=80)
        self.summary_error = summary_error
        self.items_error = items_error
        self.sentiment_error = sentiment_error
        self.gate = gate
        self.entered = threading.Event()
        self.calls: List[str] = []
        self._lock = threading.Lock()

    def _record(self, name: str) -> None:
        with self._lock:
            self.calls.append(name)

    def summarize(self, transcript, meeting_title, participant_names) -> MeetingSummary:
        self._record("summarize")
        self.entered.set()
        if self.gate is not None:
            self.gate.wait(timeout=5)
        if self.summary_error is not None:
            raise self.summary_error
        return self.summary

    def extract_action_items(self, transcript, participant_names) -> List[ExtractedActionItem]:
        self._record("extract_action_items")
        if self.items_error is not None:
            raise self.items_error
        return list(self.items)

    def analyze_sentiment(self, transcript) -> SentimentAnalysis:
        self._record("analyze_sentiment")
        if self.sentiment_error is not None:
            raise self.sentiment_error
        return self.sentiment


@pytest.fixture()
def transcription_provider() -> FakeTranscriptionProvider:
    return FakeTranscriptionProvider()


@pytest.fixture()
def analyzer() -> FakeAnalyzer:
    return FakeAnalyzer()
