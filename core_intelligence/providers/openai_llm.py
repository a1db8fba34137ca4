"""
OpenAI LLM provider implementation.
"""

from typing import Optional
from llama_index.llms.openai import OpenAI
from core_intelligence.providers import LLMProviderBase
from shared_utils.constants import Defaults, LogScope


class OpenAILLMProvider(LLMProviderBase):
    """OpenAI LLM provider."""

    def __init__(
        self,
        model_id: str,
        api_key: str,
        timeout: float = Defaults.PROVIDER_TIMEOUT,
        max_tokens: int = Defaults.LLM_MAX_TOKENS,
    ):
        super().__init__(name=f"OpenAILLM({model_id})")
        self.model_id = model_id
        self.api_key = api_key
        self.timeout = timeout
        self.max_tokens = max_tokens
        self._llm = None

    def initialize(self) -> None:
        """Initialize OpenAI LLM client."""
        try:
            self._llm = OpenAI(
                model=self.model_id,
                api_key=self.api_key,
                timeout=self.timeout,
                max_tokens=self.max_tokens,
            )
            self.logger.info(
                "Initialized OpenAI LLM provider",
                extra={
                    "scope": LogScope.CONFIG,
                    "model_id": self.model_id
                }
            )
        except Exception as e:
            self.logger.error(
                "Failed to initialize OpenAI LLM provider",
                extra={"scope": LogScope.CONFIG, "error": str(e)}
            )
            raise

    def is_available(self) -> bool:
        """Check if OpenAI LLM is available."""
        return self._llm is not None

    def generate(self, prompt: str, max_tokens: Optional[int] = None) -> str:
        """Generate response from LLM."""
        if not self.is_available():
            raise RuntimeError("OpenAI LLM provider not initialized")

        try:
            kwargs = {"max_tokens": max_tokens} if max_tokens else {}
            response = self._llm.complete(prompt, **kwargs)
            return response.text
        except Exception as e:
            self.logger.error(
                "LLM generation failed",
                extra={"scope": LogScope.PROVIDER, "error": str(e)}
            )
            raise
