"""
Factory for creating configured provider instances.
Handles provider instantiation with dependency injection.

Factories return ``None`` when the provider has no credentials; callers
treat that as "not configured" rather than as an error.
"""

from typing import Optional
import logging

from core_intelligence.providers import LLMProviderBase, TranscriptionProviderBase
from core_intelligence.providers.bedrock_llm import BedrockLLMProvider
from core_intelligence.providers.deepgram_transcription import DeepgramTranscriptionProvider
from core_intelligence.providers.openai_llm import OpenAILLMProvider
from shared_utils.config_loader import Settings, get_settings
from shared_utils.constants import LLMProvider, LogScope
from shared_utils.error_handler import ConfigurationError


logger = logging.getLogger(__name__)


class LLMProviderFactory:
    """Factory for creating LLM providers."""

    @staticmethod
    def create(settings: Optional[Settings] = None) -> Optional[LLMProviderBase]:
        """Create configured LLM provider.

        Returns:
            Initialized LLM provider, or None when credentials are missing.

        Raises:
            ConfigurationError: If the provider type is unknown.
        """
        settings = settings or get_settings()
        llm_provider = settings.llm_provider

        if not settings.llm_configured:
            logger.warning(
                "LLM provider not configured",
                extra={"scope": LogScope.CONFIG, "provider": llm_provider}
            )
            return None

        logger.info(
            "Creating LLM provider",
            extra={"scope": LogScope.CONFIG, "provider": llm_provider}
        )

        try:
            if llm_provider == LLMProvider.OPENAI.value:
                provider = OpenAILLMProvider(
                    model_id=settings.openai_llm_model_id,
                    api_key=settings.openai_api_key,
                    timeout=settings.provider_timeout_seconds,
                    max_tokens=settings.llm_max_tokens,
                )
            elif llm_provider == LLMProvider.BEDROCK.value:
                provider = BedrockLLMProvider(
                    model_id=settings.bedrock_llm_model_id,
                    region=settings.bedrock_region,
                    timeout=settings.provider_timeout_seconds,
                    max_tokens=settings.llm_max_tokens,
                )
            else:
                raise ConfigurationError(f"Unknown LLM provider: {llm_provider}")

            provider.initialize()
            return provider

        except Exception as e:
            logger.error(
                "Failed to create LLM provider",
                extra={"scope": LogScope.CONFIG, "provider": llm_provider, "error": str(e)}
            )
            raise


class TranscriptionProviderFactory:
    """Factory for creating speech-to-text providers."""

    @staticmethod
    def create(settings: Optional[Settings] = None) -> Optional[TranscriptionProviderBase]:
        """Create the Deepgram provider, or None when no API key is set."""
        settings = settings or get_settings()

        if not settings.transcription_configured:
            logger.warning(
                "Transcription provider not configured",
                extra={"scope": LogScope.CONFIG}
            )
            return None

        provider = DeepgramTranscriptionProvider(
            api_key=settings.deepgram_api_key,
            api_url=settings.deepgram_api_url,
            timeout=settings.provider_timeout_seconds,
        )
        provider.initialize()
        return provider
