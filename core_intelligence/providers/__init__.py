"""
Abstract base classes for swappable providers.
Enables dependency injection and flexible component swapping.
"""

from abc import ABC, abstractmethod
from typing import Optional, Union
import logging

from domain.models import TranscriptionConfig, TranscriptionResult


class BaseProvider(ABC):
    """Base class for all providers."""

    def __init__(self, name: str):
        self.name = name
        self.logger = logging.getLogger(f"{self.__class__.__module__}.{self.__class__.__name__}")

    @abstractmethod
    def initialize(self) -> None:
        """Initialize provider. Called after instantiation."""
        pass

    @abstractmethod
    def is_available(self) -> bool:
        """Check if provider is available and credentials are valid."""
        pass


class LLMProviderBase(BaseProvider):
    """Abstract base for LLM providers."""

    @abstractmethod
    def generate(self, prompt: str, max_tokens: Optional[int] = None) -> str:
        """Generate response from LLM."""
        pass


class TranscriptionProviderBase(BaseProvider):
    """Abstract base for batch speech-to-text providers."""

    @abstractmethod
    def transcribe(
        self,
        audio_source: Union[str, bytes],
        config: TranscriptionConfig,
    ) -> TranscriptionResult:
        """Transcribe a recording referenced by URL or given as bytes."""
        pass
