"""
Dependency injection container for managing application dependencies.
Centralizes store, provider and service creation and lifecycle management.

"Provider configured" is decided here, once, when the providers are built:
a factory that returns None leaves that pipeline stage as a recorded no-op.
"""

from typing import Any, Dict, Optional
import logging

from core_intelligence.providers import LLMProviderBase, TranscriptionProviderBase
from core_intelligence.providers.factory import LLMProviderFactory, TranscriptionProviderFactory
from domain.models import TranscriptionConfig
from shared_utils.config_loader import get_settings
from shared_utils.constants import LogScope, StoreBackend


logger = logging.getLogger(__name__)


class DIContainer:
    """Singleton dependency injection container."""

    _instance: Optional['DIContainer'] = None
    _meeting_store: Optional[object] = None
    _llm_provider: Optional[LLMProviderBase] = None
    _transcription_provider: Optional[TranscriptionProviderBase] = None
    _providers_built: bool = False
    _meeting_analyzer: Optional[object] = None
    _notifier: Optional[object] = None
    _processing_queue: Optional[object] = None
    _processor: Optional[object] = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def reset(self):
        """Reset container (useful for testing)."""
        if self._processor is not None:
            self._processor.shutdown()
        self._meeting_store = None
        self._llm_provider = None
        self._transcription_provider = None
        self._providers_built = False
        self._meeting_analyzer = None
        self._notifier = None
        self._processing_queue = None
        self._processor = None

    # ------------------------------------------------------------------
    # Providers
    # ------------------------------------------------------------------

    def _build_providers(self) -> None:
        if self._providers_built:
            return
        settings = get_settings()
        logger.info("Initializing providers", extra={"scope": LogScope.CONFIG})
        try:
            self._llm_provider = LLMProviderFactory.create(settings)
            self._transcription_provider = TranscriptionProviderFactory.create(settings)
        except Exception as e:
            logger.error(
                "Failed to initialize providers",
                extra={"scope": LogScope.CONFIG, "error": str(e)}
            )
            raise RuntimeError(f"Provider initialization failed: {e}") from e
        self._providers_built = True

    def get_llm_provider(self) -> Optional[LLMProviderBase]:
        """Get or create the LLM provider; None when not configured."""
        self._build_providers()
        return self._llm_provider

    def get_transcription_provider(self) -> Optional[TranscriptionProviderBase]:
        """Get or create the speech-to-text provider; None when not configured."""
        self._build_providers()
        return self._transcription_provider

    def ai_status(self) -> Dict[str, Any]:
        """Configuration summary reported by the status endpoint."""
        llm_ok = self.get_llm_provider() is not None
        asr_ok = self.get_transcription_provider() is not None
        return {
            "isConfigured": llm_ok,
            "features": {
                "summarization": llm_ok,
                "actionItemExtraction": llm_ok,
                "transcription": asr_ok,
            },
        }

    # ------------------------------------------------------------------
    # Store and services
    # ------------------------------------------------------------------

    def get_meeting_store(self):
        """Get or create the meeting store adapter (lazy singleton).

        Uses InMemoryMeetingStoreAdapter when STORE_BACKEND=memory and the
        SQLAlchemy adapter otherwise.
        """
        if self._meeting_store is None:
            settings = get_settings()
            if settings.store_backend == StoreBackend.MEMORY.value:
                from adapters.in_memory_meeting_store import InMemoryMeetingStoreAdapter
                self._meeting_store = InMemoryMeetingStoreAdapter()
                logger.info("Initialized InMemoryMeetingStoreAdapter (local dev)")
            else:
                from adapters.sql_meeting_store import SqlMeetingStoreAdapter
                store = SqlMeetingStoreAdapter(database_uri=settings.database_uri)
                store.create_schema()
                self._meeting_store = store
                logger.info("Initialized SqlMeetingStoreAdapter")
        return self._meeting_store

    def get_meeting_analyzer(self):
        """Get or create MeetingAnalyzer; None when no LLM is configured."""
        if self._meeting_analyzer is None:
            llm = self.get_llm_provider()
            if llm is None:
                return None
            from services.meeting_analyzer import MeetingAnalyzer
            self._meeting_analyzer = MeetingAnalyzer(llm_provider=llm)
        return self._meeting_analyzer

    def get_notifier(self):
        if self._notifier is None:
            from services.notification_service import LogNotifier
            self._notifier = LogNotifier()
        return self._notifier

    def get_processing_queue(self):
        """Get or create ProcessingQueue (lazy singleton)."""
        if self._processing_queue is None:
            from services.processing_queue import ProcessingQueue

            settings = get_settings()
            self._processing_queue = ProcessingQueue(
                meeting_store=self.get_meeting_store(),
                max_workers=settings.queue_max_workers,
                max_attempts=settings.queue_max_attempts,
                backoff_seconds=settings.queue_backoff_seconds,
            )
            logger.info("Initialized ProcessingQueue")
        return self._processing_queue

    def get_processor(self):
        """Get or create PostMeetingProcessor (lazy singleton)."""
        if self._processor is None:
            from services.processing_service import PostMeetingProcessor

            settings = get_settings()
            self._processor = PostMeetingProcessor(
                self.get_meeting_store(),
                transcription_provider=self.get_transcription_provider(),
                analyzer=self.get_meeting_analyzer(),
                notifier=self.get_notifier(),
                transcription_config=TranscriptionConfig(
                    language=settings.transcription_language,
                    model=settings.deepgram_model,
                ),
                provider_timeout_seconds=settings.provider_timeout_seconds,
                queue=self.get_processing_queue(),
            )
            logger.info(
                "Initialized PostMeetingProcessor",
                extra={
                    "scope": LogScope.CONFIG,
                    "transcription": self._processor.transcription_configured,
                    "analysis": self._processor.analysis_configured,
                }
            )
        return self._processor


# Global singleton instance
_container = DIContainer()


def get_di_container() -> DIContainer:
    """Get global DI container instance."""
    return _container
