"""
Port interfaces for LLM text generation and meeting analysis.

The existing core_intelligence/providers/ implement LLMProviderPort.
services/meeting_analyzer.py implements MeetingAnalyzerPort on top of it.
"""

from __future__ import annotations

from typing import List, Optional, Protocol, runtime_checkable

from domain.models import ExtractedActionItem, MeetingSummary, SentimentAnalysis


@runtime_checkable
class LLMProviderPort(Protocol):
    """Abstract interface for LLM text generation."""

    def generate(self, prompt: str, max_tokens: Optional[int] = None) -> str:
        """Generate text from a prompt.

        Args:
            prompt: User/system prompt.
            max_tokens: Optional completion budget.

        Returns:
            Generated text string.
        """
        ...


@runtime_checkable
class MeetingAnalyzerPort(Protocol):
    """The three independent analysis capabilities.

    Each call must return structured data; unparseable provider output is
    raised as an error, never returned.
    """

    def summarize(
        self, transcript: str, meeting_title: str, participant_names: List[str]
    ) -> MeetingSummary:
        ...

    def extract_action_items(
        self, transcript: str, participant_names: List[str]
    ) -> List[ExtractedActionItem]:
        ...

    def analyze_sentiment(self, transcript: str) -> SentimentAnalysis:
        ...
