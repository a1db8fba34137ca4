"""
TranscriptResolver — produces the transcript text a processing run analyses.

Resolution order:
    1. ``existing_transcript`` supplied by the caller (used verbatim).
    2. Persisted segments, formatted in ascending ``start_time`` order.
    3. Fresh transcription of ``audio_url`` via TranscriptionProviderPort;
       the returned segments are persisted and formatted from the
       provider's result.
    4. Nothing: a non-fatal reason is recorded and ``text`` stays None.

Transcription failures never escape; they are folded into ``errors``.
"""

from __future__ import annotations

import math
from typing import Iterable, List, Optional

from pydantic import BaseModel, Field

from domain.models import (
    NewTranscriptSegment,
    ProcessingOptions,
    TranscribedSegment,
    TranscriptionConfig,
    TranscriptionResult,
    TranscriptSegment,
)
from ports.meeting_store import MeetingStorePort
from ports.transcription_provider import TranscriptionProviderPort
from shared_utils.constants import LogScope, PipelineMessages
from shared_utils.error_handler import PersistenceError, describe_exception
from shared_utils.logging_utils import get_scoped_logger

logger = get_scoped_logger(LogScope.TRANSCRIPTION)

UNKNOWN_SPEAKER = "Unknown"
DEFAULT_PROVIDER_SPEAKER = "Speaker"


# ---------------------------------------------------------------------------
# Formatting helpers (pure functions)
# ---------------------------------------------------------------------------

def format_timestamp(seconds: float) -> str:
    """``mm:ss`` with both parts zero-padded; minutes are not wrapped at 60."""
    minutes = math.floor(seconds / 60)
    secs = math.floor(seconds % 60)
    return f"{minutes:02d}:{secs:02d}"


def format_segments(segments: Iterable[TranscriptSegment]) -> str:
    """Format persisted segments as ``[mm:ss] speaker: content`` lines.

    Segments are sorted by ``start_time`` first, so the output does not
    depend on the order the store returned them in.
    """
    ordered = sorted(segments, key=lambda s: s.start_time)
    return "\n".join(
        f"[{format_timestamp(s.start_time / 1000)}] {s.speaker_name or UNKNOWN_SPEAKER}: {s.content}"
        for s in ordered
    )


def format_transcription_result(result: TranscriptionResult) -> str:
    """Format a provider result (offsets in seconds) the same way."""
    return "\n".join(
        f"[{format_timestamp(s.start)}] {s.speaker or DEFAULT_PROVIDER_SPEAKER}: {s.text}"
        for s in result.segments
    )


def to_new_segment(segment: TranscribedSegment, language: str) -> NewTranscriptSegment:
    """Provider segment → insert shape, seconds floored to integer ms."""
    return NewTranscriptSegment(
        speaker_name=segment.speaker or UNKNOWN_SPEAKER,
        content=segment.text,
        start_time=math.floor(segment.start * 1000),
        end_time=math.floor(segment.end * 1000),
        confidence=segment.confidence,
        language=language,
        is_final=True,
    )


class TranscriptResolution(BaseModel):
    text: Optional[str] = None
    segments_created: int = 0
    transcribed: bool = False
    errors: List[str] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# TranscriptResolver
# ---------------------------------------------------------------------------

class TranscriptResolver:
    """Finds or produces the transcript for a meeting.

    ``transcription_provider`` is None when speech-to-text is not configured.
    """

    def __init__(
        self,
        meeting_store: MeetingStorePort,
        transcription_provider: Optional[TranscriptionProviderPort] = None,
        transcription_config: Optional[TranscriptionConfig] = None,
    ) -> None:
        self._store = meeting_store
        self._provider = transcription_provider
        self._config = transcription_config or TranscriptionConfig()

    @property
    def is_configured(self) -> bool:
        return self._provider is not None

    def resolve(self, meeting_id: str, options: ProcessingOptions) -> TranscriptResolution:
        """Resolve the transcript for *meeting_id*.

        Raises:
            PersistenceError: If the store fails while reading or writing
                segments. Provider failures are recorded, not raised.
        """
        if options.existing_transcript:
            logger.debug("transcript_supplied", meeting_id=meeting_id)
            return TranscriptResolution(text=options.existing_transcript)

        if options.skip_transcription:
            return TranscriptResolution()

        persisted = self._store.list_transcript_segments(meeting_id)
        if persisted:
            logger.info(
                "transcript_loaded",
                meeting_id=meeting_id,
                segment_count=len(persisted),
            )
            return TranscriptResolution(text=format_segments(persisted))

        if self._provider is None:
            logger.warning("transcription_not_configured", meeting_id=meeting_id)
            return TranscriptResolution(errors=[PipelineMessages.TRANSCRIPTION_NOT_CONFIGURED])

        if not options.audio_url:
            logger.info("transcription_no_audio", meeting_id=meeting_id)
            return TranscriptResolution(errors=[PipelineMessages.TRANSCRIPTION_NO_AUDIO])

        return self._transcribe(meeting_id, options.audio_url)

    def _transcribe(self, meeting_id: str, audio_url: str) -> TranscriptResolution:
        config = self._config.model_copy(
            update={"diarize": True, "punctuate": True, "smart_format": True}
        )
        logger.info("transcription_started", meeting_id=meeting_id, model=config.model)

        try:
            result = self._provider.transcribe(audio_url, config)
            for segment in result.segments:
                self._store.create_transcript_segment(
                    meeting_id, to_new_segment(segment, config.language)
                )
        except PersistenceError:
            raise
        except Exception as exc:
            message = PipelineMessages.TRANSCRIPTION_FAILED_PREFIX + describe_exception(exc)
            logger.error(
                "transcription_failed",
                meeting_id=meeting_id,
                error_type=type(exc).__name__,
                error=describe_exception(exc),
            )
            return TranscriptResolution(errors=[message])

        logger.info(
            "transcription_completed",
            meeting_id=meeting_id,
            segment_count=len(result.segments),
            duration=result.duration,
        )
        return TranscriptResolution(
            text=format_transcription_result(result),
            segments_created=len(result.segments),
            transcribed=True,
        )
