"""
Deepgram batch (pre-recorded) transcription provider.

Talks to the REST ``/listen`` endpoint with httpx. Speaker-attributed
utterances are preferred; when the response carries only word-level
results, consecutive words by the same speaker are grouped into segments.
"""

from typing import Any, Dict, List, Optional, Union

import httpx

from core_intelligence.providers import TranscriptionProviderBase
from domain.models import (
    TranscribedSegment,
    TranscribedWord,
    TranscriptionConfig,
    TranscriptionResult,
)
from shared_utils.constants import Defaults, LogScope
from shared_utils.error_handler import TranscriptionError


class DeepgramTranscriptionProvider(TranscriptionProviderBase):
    """Deepgram speech-to-text over HTTPS."""

    def __init__(
        self,
        api_key: str,
        api_url: str = Defaults.DEEPGRAM_API_URL,
        timeout: float = Defaults.PROVIDER_TIMEOUT,
        http_client: Optional[httpx.Client] = None,
    ):
        super().__init__(name="Deepgram")
        self.api_key = api_key
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout
        self._client = http_client

    def initialize(self) -> None:
        """Create the HTTP client unless one was injected."""
        if self._client is None:
            self._client = httpx.Client(timeout=self.timeout)
        self.logger.info(
            "Initialized Deepgram transcription provider",
            extra={"scope": LogScope.CONFIG, "api_url": self.api_url}
        )

    def is_available(self) -> bool:
        return bool(self.api_key) and self._client is not None

    def transcribe(
        self,
        audio_source: Union[str, bytes],
        config: TranscriptionConfig,
    ) -> TranscriptionResult:
        """Transcribe audio from a URL or WAV bytes."""
        if not self.is_available():
            raise RuntimeError("Deepgram provider not initialized")

        params = {
            "language": config.language,
            "model": config.model,
            "punctuate": _flag(config.punctuate),
            "diarize": _flag(config.diarize),
            "smart_format": _flag(config.smart_format),
            "utterances": _flag(config.utterances),
        }
        is_url = isinstance(audio_source, str)
        headers = {
            "Authorization": f"Token {self.api_key}",
            "Content-Type": "application/json" if is_url else "audio/wav",
        }
        request_kwargs: Dict[str, Any] = (
            {"json": {"url": audio_source}} if is_url else {"content": audio_source}
        )

        try:
            response = self._client.post(
                f"{self.api_url}/listen",
                params=params,
                headers=headers,
                timeout=self.timeout,
                **request_kwargs,
            )
        except httpx.HTTPError as exc:
            raise TranscriptionError(
                f"Deepgram request failed: {exc}", context={"error_type": type(exc).__name__}
            ) from exc

        if response.status_code >= 400:
            raise TranscriptionError(
                f"Deepgram transcription failed: {response.text}",
                context={"status_code": response.status_code},
            )

        try:
            payload = response.json()
        except ValueError as exc:
            raise TranscriptionError("Deepgram returned a non-JSON response") from exc

        return parse_deepgram_response(payload)


def _flag(value: bool) -> str:
    return "true" if value else "false"


def _word(raw: Dict[str, Any]) -> TranscribedWord:
    return TranscribedWord(
        word=raw.get("punctuated_word") or raw.get("word", ""),
        start=float(raw.get("start", 0.0)),
        end=float(raw.get("end", 0.0)),
        confidence=float(raw.get("confidence", 0.0)),
    )


def parse_deepgram_response(response: Dict[str, Any]) -> TranscriptionResult:
    """Convert a Deepgram ``/listen`` payload into a TranscriptionResult."""
    results = response.get("results") or {}
    channels = results.get("channels") or [{}]
    alternatives = (channels[0] or {}).get("alternatives") or []
    if not alternatives:
        return TranscriptionResult()

    best = alternatives[0]
    segments: List[TranscribedSegment] = []
    speakers: List[str] = []

    def remember(speaker: Optional[str]) -> None:
        if speaker and speaker not in speakers:
            speakers.append(speaker)

    utterances = results.get("utterances")
    if utterances:
        for utt in utterances:
            speaker = f"Speaker {utt.get('speaker')}" if utt.get("speaker") is not None else None
            remember(speaker)
            segments.append(
                TranscribedSegment(
                    text=utt.get("transcript", ""),
                    start=float(utt.get("start", 0.0)),
                    end=float(utt.get("end", 0.0)),
                    speaker=speaker,
                    confidence=float(utt.get("confidence", 0.0)),
                    words=[_word(w) for w in utt.get("words") or []],
                )
            )
    elif best.get("words"):
        current: Optional[TranscribedSegment] = None
        for raw in best["words"]:
            speaker = f"Speaker {raw['speaker']}" if raw.get("speaker") is not None else None
            remember(speaker)
            word = _word(raw)
            if current is None or current.speaker != speaker:
                if current is not None:
                    segments.append(current)
                current = TranscribedSegment(
                    text=word.word,
                    start=word.start,
                    end=word.end,
                    speaker=speaker,
                    confidence=word.confidence,
                    words=[word],
                )
            else:
                current.text = f"{current.text} {word.word}"
                current.end = word.end
                current.words.append(word)
        if current is not None:
            segments.append(current)

    metadata = response.get("metadata") or {}
    return TranscriptionResult(
        segments=segments,
        full_text=best.get("transcript") or "",
        duration=float(metadata.get("duration") or 0.0),
        speakers=speakers,
    )
