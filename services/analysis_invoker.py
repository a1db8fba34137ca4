"""
AnalysisInvoker — runs summary, action-item and sentiment analysis.

The three calls are independent, so they are dispatched together on a small
thread pool and joined. Failures are isolated per call:

    summary       → fatal for the analysis (``analysis`` is None)
    action items  → zero items, error recorded
    sentiment     → neutral / 50 substituted, logged only
"""

from __future__ import annotations

from concurrent.futures import Future, ThreadPoolExecutor, TimeoutError as FutureTimeoutError
from typing import List, Optional, Tuple

from pydantic import BaseModel, Field

from domain.models import (
    ExtractedActionItem,
    MeetingAnalysis,
    MeetingSummary,
    ProcessingOptions,
    Sentiment,
    SentimentAnalysis,
)
from ports.llm_provider import MeetingAnalyzerPort
from shared_utils.constants import Defaults, LogScope, PipelineMessages
from shared_utils.error_handler import describe_exception
from shared_utils.logging_utils import ContextualLogger


logger = ContextualLogger(scope=LogScope.ANALYSIS)


def neutral_sentiment() -> SentimentAnalysis:
    return SentimentAnalysis(
        sentiment=Sentiment.NEUTRAL,
        engagement_score=Defaults.NEUTRAL_ENGAGEMENT_SCORE,
        insights=["Unable to analyze meeting sentiment"],
    )


class AnalysisOutcome(BaseModel):
    analysis: Optional[MeetingAnalysis] = None
    errors: List[str] = Field(default_factory=list)


class AnalysisInvoker:
    """Concurrent fan-out / join over a MeetingAnalyzerPort.

    ``analyzer`` is None when no LLM provider is configured.
    """

    def __init__(
        self,
        analyzer: Optional[MeetingAnalyzerPort] = None,
        timeout_seconds: float = Defaults.PROVIDER_TIMEOUT,
    ) -> None:
        self._analyzer = analyzer
        self._timeout = timeout_seconds

    @property
    def is_configured(self) -> bool:
        return self._analyzer is not None

    def invoke(
        self,
        transcript: Optional[str],
        meeting_title: str,
        participant_names: List[str],
        options: ProcessingOptions,
    ) -> AnalysisOutcome:
        """Analyse *transcript*; never raises."""
        if self._analyzer is None:
            logger.warning("analysis_not_configured")
            return AnalysisOutcome(errors=[PipelineMessages.ANALYSIS_NOT_CONFIGURED])
        if options.skip_analysis:
            logger.debug("analysis_skipped_by_request")
            return AnalysisOutcome()
        if not transcript:
            return AnalysisOutcome(errors=[PipelineMessages.ANALYSIS_NO_TRANSCRIPT])

        logger.info(
            "analysis_started",
            transcript_chars=len(transcript),
            participant_count=len(participant_names),
        )

        executor = ThreadPoolExecutor(max_workers=3, thread_name_prefix="analysis")
        try:
            summary_f = executor.submit(
                self._analyzer.summarize, transcript, meeting_title, participant_names
            )
            items_f = executor.submit(
                self._analyzer.extract_action_items, transcript, participant_names
            )
            sentiment_f = executor.submit(self._analyzer.analyze_sentiment, transcript)

            summary, summary_err = self._join(summary_f, "summary")
            items, items_err = self._join(items_f, "action_items")
            sentiment, sentiment_err = self._join(sentiment_f, "sentiment")
        finally:
            executor.shutdown(wait=False, cancel_futures=True)

        errors: List[str] = []
        if summary_err is not None:
            errors.append(PipelineMessages.ANALYSIS_FAILED_PREFIX + summary_err)
        if items_err is not None:
            errors.append(PipelineMessages.ACTION_ITEMS_FAILED_PREFIX + items_err)
            items = []
        if sentiment_err is not None:
            sentiment = neutral_sentiment()

        if summary is None:
            return AnalysisOutcome(errors=errors)

        analysis = _combine(summary, items or [], sentiment)
        logger.info(
            "analysis_completed",
            action_item_count=len(analysis.action_items),
            sentiment=analysis.sentiment.value,
            engagement_score=analysis.engagement_score,
        )
        return AnalysisOutcome(analysis=analysis, errors=errors)

    def _join(self, future: Future, call: str) -> Tuple[Optional[object], Optional[str]]:
        try:
            return future.result(timeout=self._timeout), None
        except FutureTimeoutError:
            future.cancel()
            message = f"{call} call timed out after {self._timeout}s"
            logger.error("analysis_call_failed", call=call, error=message)
            return None, message
        except Exception as exc:
            logger.error(
                "analysis_call_failed",
                call=call,
                error_type=type(exc).__name__,
                error=describe_exception(exc),
            )
            return None, describe_exception(exc)


def _combine(
    summary: MeetingSummary,
    items: List[ExtractedActionItem],
    sentiment: SentimentAnalysis,
) -> MeetingAnalysis:
    return MeetingAnalysis(
        summary=summary,
        action_items=items,
        sentiment=sentiment.sentiment,
        engagement_score=sentiment.engagement_score,
    )
