"""
Port interface for batch speech-to-text.

Implementations: DeepgramTranscriptionProvider (core_intelligence/providers/)
"""

from __future__ import annotations

from typing import Protocol, Union, runtime_checkable

from domain.models import TranscriptionConfig, TranscriptionResult


@runtime_checkable
class TranscriptionProviderPort(Protocol):
    """Abstract interface for transcribing a recorded audio source."""

    def transcribe(
        self,
        audio_source: Union[str, bytes],
        config: TranscriptionConfig,
    ) -> TranscriptionResult:
        """Transcribe audio from a URL or raw bytes.

        Args:
            audio_source: Public URL of the recording, or WAV bytes.
            config: Language, model and formatting flags.

        Returns:
            TranscriptionResult with offsets in (float) seconds.

        Raises:
            TranscriptionError: On non-2xx responses or unparseable output.
        """
        ...
