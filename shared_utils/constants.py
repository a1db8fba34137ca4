"""
Constants management.
Centralized configuration for all magic values, model IDs, and defaults.
"""

from enum import Enum
from typing import Final


class Environment(str, Enum):
    """Application environment."""
    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"


class LLMProvider(str, Enum):
    """Supported LLM providers."""
    BEDROCK = "bedrock"
    OPENAI = "openai"


class StoreBackend(str, Enum):
    """Supported meeting store backends."""
    SQL = "sql"
    MEMORY = "memory"


# Model IDs
class ModelIDs:
    """Centralized model identifiers."""
    # Bedrock LLM
    BEDROCK_CLAUDE_3_HAIKU: Final[str] = "anthropic.claude-3-haiku-20240307-v1:0"

    # OpenAI LLM
    OPENAI_GPT_4O_MINI: Final[str] = "gpt-4o-mini"

    # Deepgram ASR
    DEEPGRAM_NOVA_2: Final[str] = "nova-2"


# Default values
class Defaults:
    """Enterprise defaults for all configurations."""
    PROVIDER_TIMEOUT: Final[float] = 120.0
    LLM_MAX_TOKENS: Final[int] = 2000
    TRANSCRIPTION_LANGUAGE: Final[str] = "en"
    DEEPGRAM_API_URL: Final[str] = "https://api.deepgram.com/v1"
    QUEUE_MAX_WORKERS: Final[int] = 4
    QUEUE_MAX_ATTEMPTS: Final[int] = 3
    QUEUE_BACKOFF_SECONDS: Final[float] = 2.0
    AWS_REGION: Final[str] = "eu-west-2"
    # Substituted when the sentiment call fails
    NEUTRAL_ENGAGEMENT_SCORE: Final[int] = 50


# Database settings
class DatabaseConfig:
    """Relational store table names."""
    MEETINGS_TABLE: Final[str] = "meetings"
    USERS_TABLE: Final[str] = "users"
    PARTICIPANTS_TABLE: Final[str] = "meeting_participants"
    TRANSCRIPTS_TABLE: Final[str] = "transcript_segments"
    ACTION_ITEMS_TABLE: Final[str] = "action_items"


# Serialized summary format marker
SUMMARY_FORMAT_JSON: Final[str] = "json"


# Logging scopes
class LogScope:
    """Standardized logging scope names."""
    CONFIG = "config_loader"
    API = "api"
    VALIDATION = "validation"
    ERROR_HANDLER = "error_handler"
    PROVIDER = "provider"
    ADAPTER = "adapter"
    WORKER = "worker"
    PROCESSING = "processing"
    TRANSCRIPTION = "transcription"
    ANALYSIS = "analysis"
    PERSISTENCE = "persistence"
    NOTIFICATION = "notification"
    QUEUE = "queue"


# API endpoints and paths
class APIEndpoints:
    """API route definitions."""
    HEALTH = "/health"
    AI_STATUS = "/api/v1/ai/status"
    PROCESS = "/api/v1/ai/meetings/{meeting_id}/process"
    PROCESSING_STATUS = "/api/v1/ai/meetings/{meeting_id}/processing-status"
    REPROCESS = "/api/v1/ai/meetings/{meeting_id}/reprocess"
    SUMMARY = "/api/v1/ai/meetings/{meeting_id}/summary"


# Error codes
class ErrorCode(str, Enum):
    """Standardized error codes for consistency."""
    INVALID_CONFIG = "INVALID_CONFIG"
    INVALID_INPUT = "INVALID_INPUT"
    NOT_FOUND = "NOT_FOUND"
    TRANSCRIPTION_FAILED = "TRANSCRIPTION_FAILED"
    ANALYSIS_FAILED = "ANALYSIS_FAILED"
    STORAGE_ERROR = "STORAGE_ERROR"
    INTERNAL_ERROR = "INTERNAL_ERROR"


# Non-fatal pipeline messages surfaced in ProcessingResult.errors
class PipelineMessages:
    """Error strings recorded by the post-meeting pipeline."""
    MEETING_NOT_FOUND: Final[str] = "Meeting not found"
    NO_TRANSCRIPT_FOR_REPROCESS: Final[str] = "No transcript found for reprocessing"
    TRANSCRIPTION_NOT_CONFIGURED: Final[str] = (
        "Transcription skipped: transcription provider not configured"
    )
    TRANSCRIPTION_NO_AUDIO: Final[str] = "Transcription skipped: no audio source provided"
    TRANSCRIPTION_FAILED_PREFIX: Final[str] = "Transcription failed: "
    ANALYSIS_NOT_CONFIGURED: Final[str] = "AI analysis skipped: LLM provider not configured"
    ANALYSIS_NO_TRANSCRIPT: Final[str] = "AI analysis skipped: no transcript available"
    ANALYSIS_FAILED_PREFIX: Final[str] = "AI analysis failed: "
    ACTION_ITEMS_FAILED_PREFIX: Final[str] = "Action item extraction failed: "
    UNKNOWN_ERROR: Final[str] = "Unknown processing error"
