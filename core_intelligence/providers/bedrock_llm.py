"""
Bedrock LLM provider implementation.
"""

from typing import Optional
from llama_index.llms.bedrock import Bedrock
from core_intelligence.providers import LLMProviderBase
from shared_utils.constants import Defaults, LogScope


class BedrockLLMProvider(LLMProviderBase):
    """AWS Bedrock LLM provider."""

    def __init__(
        self,
        model_id: str,
        region: str,
        timeout: float = Defaults.PROVIDER_TIMEOUT,
        max_tokens: int = Defaults.LLM_MAX_TOKENS,
    ):
        super().__init__(name=f"BedrockLLM({model_id})")
        self.model_id = model_id
        self.region = region
        self.timeout = timeout
        self.max_tokens = max_tokens
        self._llm = None

    def initialize(self) -> None:
        """Initialize Bedrock LLM client."""
        try:
            self._llm = Bedrock(
                model=self.model_id,
                region_name=self.region,
                timeout=self.timeout,
                max_tokens=self.max_tokens,
            )
            self.logger.info(
                "Initialized Bedrock LLM provider",
                extra={
                    "scope": LogScope.CONFIG,
                    "model_id": self.model_id,
                    "region": self.region
                }
            )
        except Exception as e:
            self.logger.error(
                "Failed to initialize Bedrock LLM provider",
                extra={"scope": LogScope.CONFIG, "error": str(e)}
            )
            raise

    def is_available(self) -> bool:
        """Check if Bedrock LLM is available."""
        return self._llm is not None

    def generate(self, prompt: str, max_tokens: Optional[int] = None) -> str:
        """Generate response from LLM."""
        if not self.is_available():
            raise RuntimeError("Bedrock LLM provider not initialized")

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
