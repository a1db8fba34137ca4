"""
MeetingAnalyzer — the three LLM analysis capabilities.

Builds the prompts, calls LLMProviderPort.generate and parses the JSON the
model returns into domain models. A response that is not valid JSON (after
stripping an optional Markdown code fence) is raised as AnalysisError; the
caller decides whether that is fatal.
"""

from __future__ import annotations

import json
import re
from typing import Any, List

from pydantic import ValidationError as PydanticValidationError

from domain.models import ExtractedActionItem, MeetingSummary, SentimentAnalysis
from ports.llm_provider import LLMProviderPort
from shared_utils.constants import LogScope
from shared_utils.error_handler import AnalysisError
from shared_utils.logging_utils import ContextualLogger


logger = ContextualLogger(scope=LogScope.ANALYSIS)

SUMMARY_MAX_TOKENS = 2000
ACTION_ITEMS_MAX_TOKENS = 2000
SENTIMENT_MAX_TOKENS = 1000

# Kept as module constants so tests can inspect them.
SUMMARY_PROMPT = """You are an expert meeting analyst. Analyze the following meeting transcript and provide a comprehensive summary.

Meeting Title: {title}
Participants: {participants}

Transcript:
{transcript}

Provide your analysis in the following JSON format:
{{
  "title": "A concise, descriptive title for the meeting",
  "overview": "A 2-3 sentence executive summary of the meeting",
  "keyPoints": ["Array of 3-7 key discussion points"],
  "decisions": ["Array of decisions made during the meeting"],
  "topics": ["Array of main topics discussed"],
  "nextSteps": ["Array of agreed next steps or follow-ups"],
  "duration": "Estimated duration based on transcript length",
  "participantCount": number
}}

Respond ONLY with valid JSON, no additional text."""

ACTION_ITEMS_PROMPT = """You are an expert at identifying action items and tasks from meeting discussions. Analyze the following transcript and extract all action items.

Known Participants: {participants}

Transcript:
{transcript}

For each action item, provide:
- A clear, actionable title
- Detailed description
- Assignee (if mentioned or can be inferred)
- Due date (if mentioned)
- Priority (LOW, MEDIUM, HIGH, or URGENT based on context and urgency)
- Context (the relevant part of the conversation)

Respond with a JSON array:
[
  {{
    "title": "Clear action item title",
    "description": "Detailed description of what needs to be done",
    "assignee": "Person responsible (or null if not specified)",
    "dueDate": "Due date in YYYY-MM-DD format (or null if not specified)",
    "priority": "LOW" | "MEDIUM" | "HIGH" | "URGENT",
    "context": "Brief excerpt from transcript where this was discussed"
  }}
]

Respond ONLY with valid JSON array, no additional text. If no action items found, return empty array []."""

SENTIMENT_PROMPT = """Analyze the following meeting transcript for sentiment and engagement levels.

Transcript:
{transcript}

Provide your analysis in JSON format:
{{
  "sentiment": "positive" | "neutral" | "negative" | "mixed",
  "engagementScore": number between 0-100 (100 being highly engaged),
  "insights": ["Array of 2-4 observations about the meeting dynamics"]
}}

Consider:
- Tone of discussions
- Level of participation
- Constructive vs contentious exchanges
- Energy and enthusiasm
- Collaborative language vs individual focus

Respond ONLY with valid JSON, no additional text."""

_FENCE_RE = re.compile(r"^```(?:json)?\s*(.*?)\s*```$", re.DOTALL)


def _participants_line(participant_names: List[str]) -> str:
    return ", ".join(participant_names) if participant_names else "Not specified"


def parse_json_response(text: str, what: str) -> Any:
    """Decode a model response, tolerating a surrounding code fence."""
    cleaned = (text or "").strip()
    match = _FENCE_RE.match(cleaned)
    if match:
        cleaned = match.group(1)
    try:
        return json.loads(cleaned)
    except json.JSONDecodeError as exc:
        raise AnalysisError(
            f"Failed to parse {what} response",
            context={"response_preview": cleaned[:200]},
        ) from exc


class MeetingAnalyzer:
    """Implements MeetingAnalyzerPort on top of a text-generation provider."""

    def __init__(self, llm_provider: LLMProviderPort) -> None:
        self._llm = llm_provider

    def summarize(
        self, transcript: str, meeting_title: str, participant_names: List[str]
    ) -> MeetingSummary:
        prompt = SUMMARY_PROMPT.format(
            title=meeting_title,
            participants=_participants_line(participant_names),
            transcript=transcript,
        )
        data = parse_json_response(
            self._llm.generate(prompt, max_tokens=SUMMARY_MAX_TOKENS), "meeting summary"
        )
        if not isinstance(data, dict):
            raise AnalysisError("Failed to parse meeting summary response")
        try:
            summary = MeetingSummary.model_validate(data)
        except PydanticValidationError as exc:
            raise AnalysisError("Failed to parse meeting summary response") from exc
        logger.debug("summary_generated", key_points=len(summary.key_points))
        return summary

    def extract_action_items(
        self, transcript: str, participant_names: List[str]
    ) -> List[ExtractedActionItem]:
        prompt = ACTION_ITEMS_PROMPT.format(
            participants=_participants_line(participant_names),
            transcript=transcript,
        )
        data = parse_json_response(
            self._llm.generate(prompt, max_tokens=ACTION_ITEMS_MAX_TOKENS), "action items"
        )
        if not isinstance(data, list):
            raise AnalysisError("Failed to parse action items response")
        try:
            items = [ExtractedActionItem.model_validate(entry) for entry in data]
        except PydanticValidationError as exc:
            raise AnalysisError("Failed to parse action items response") from exc
        logger.debug("action_items_extracted", count=len(items))
        return items

    def analyze_sentiment(self, transcript: str) -> SentimentAnalysis:
        prompt = SENTIMENT_PROMPT.format(transcript=transcript)
        data = parse_json_response(
            self._llm.generate(prompt, max_tokens=SENTIMENT_MAX_TOKENS), "sentiment"
        )
        if not isinstance(data, dict):
            raise AnalysisError("Failed to parse sentiment response")
        try:
            return SentimentAnalysis.model_validate(data)
        except (PydanticValidationError, TypeError, ValueError) as exc:
            raise AnalysisError("Failed to parse sentiment response") from exc
