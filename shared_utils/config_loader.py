from pydantic_settings import BaseSettings
from pydantic import field_validator, ConfigDict
from functools import lru_cache
from typing import Optional
import json

import boto3

from shared_utils.constants import Defaults, Environment, LogScope, ModelIDs
from shared_utils.logging_utils import get_scoped_logger

logger = get_scoped_logger(LogScope.CONFIG)


def get_secret_from_aws(secret_name: str, key: str, region: str = Defaults.AWS_REGION) -> str:
    """Fetch a single key from a JSON secret in AWS Secrets Manager.

    Args:
        secret_name: Name of the secret in Secrets Manager
        key: Key inside the secret's JSON document
        region: AWS region

    Returns:
        Secret value or empty string if fetch fails
    """
    try:
        client = boto3.client("secretsmanager", region_name=region)
        response = client.get_secret_value(SecretId=secret_name)
        if "SecretString" in response:
            secret = json.loads(response["SecretString"])
            return secret.get(key, "")
        return ""
    except Exception as e:
        logger.warning("secret_fetch_failed", secret_name=secret_name, error=str(e))
        return ""


class Settings(BaseSettings):
    """Application configuration with environment variable precedence.

    Precedence: 1) Environment Variables > 2).env file > 3) Class defaults

    A provider whose credentials are empty is treated as "not configured";
    the pipeline degrades that stage instead of failing.
    """
    # Application metadata
    app_name: str = "Meeting Processing Service"
    app_version: str = "1.0.0"
    app_description: str = "Post-meeting transcription and AI analysis pipeline"
    api_version: str = "v1"

    # API Base URL Configuration
    api_host: str = "localhost"
    api_port: int = 8000
    api_protocol: str = "http"

    # LLM Configuration
    llm_provider: str = "openai"  # "bedrock" or "openai"
    openai_llm_model_id: str = ModelIDs.OPENAI_GPT_4O_MINI
    openai_api_key: Optional[str] = None
    openai_secret_name: Optional[str] = None
    bedrock_region: str = Defaults.AWS_REGION
    bedrock_llm_model_id: Optional[str] = None
    llm_max_tokens: int = Defaults.LLM_MAX_TOKENS

    # Speech-to-text (Deepgram)
    deepgram_api_key: Optional[str] = None
    deepgram_secret_name: Optional[str] = None
    deepgram_api_url: str = Defaults.DEEPGRAM_API_URL
    deepgram_model: str = ModelIDs.DEEPGRAM_NOVA_2
    transcription_language: str = Defaults.TRANSCRIPTION_LANGUAGE

    # Every ASR / LLM round trip is bounded by this timeout
    provider_timeout_seconds: float = Defaults.PROVIDER_TIMEOUT

    # Database
    database_uri: str = "sqlite:///./meetings.db"
    store_backend: str = "sql"  # "sql" or "memory"

    # Background processing queue
    queue_max_workers: int = Defaults.QUEUE_MAX_WORKERS
    queue_max_attempts: int = Defaults.QUEUE_MAX_ATTEMPTS
    queue_backoff_seconds: float = Defaults.QUEUE_BACKOFF_SECONDS

    # Environment
    environment: str = "development"

    model_config = ConfigDict(env_file=".env", case_sensitive=False, extra="ignore")

    @field_validator('llm_provider')
    @classmethod
    def validate_llm_provider(cls, v: str) -> str:
        """Validate LLM provider is supported."""
        valid_providers = {"openai", "bedrock"}
        if v.lower() not in valid_providers:
            raise ValueError(f"llm_provider must be one of {valid_providers}, got {v}")
        return v.lower()

    @field_validator('store_backend')
    @classmethod
    def validate_store_backend(cls, v: str) -> str:
        """Validate meeting store backend is supported."""
        valid_backends = {"sql", "memory"}
        if v.lower() not in valid_backends:
            raise ValueError(f"store_backend must be one of {valid_backends}, got {v}")
        return v.lower()

    @field_validator('environment')
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Validate environment is recognized."""
        valid_envs = {e.value for e in Environment}
        if v.lower() not in valid_envs:
            raise ValueError(f"environment must be one of {valid_envs}, got {v}")
        return v.lower()

    @field_validator('provider_timeout_seconds')
    @classmethod
    def validate_timeout(cls, v: float) -> float:
        """A provider call must always be bounded."""
        if v <= 0:
            raise ValueError(f"provider_timeout_seconds must be > 0, got {v}")
        return v

    @property
    def transcription_configured(self) -> bool:
        return bool(self.deepgram_api_key)

    @property
    def llm_configured(self) -> bool:
        if self.llm_provider == "openai":
            return bool(self.openai_api_key)
        return bool(self.bedrock_region and self.bedrock_llm_model_id)

    def get_api_base_url(self) -> str:
        """Get full API base URL constructed from host, port and protocol.

        Returns:
            Full API base URL (e.g., "http://localhost:8000")
        """
        # Don't add port if it's standard (80 for http, 443 for https)
        port_str = "" if (
            (self.api_protocol == "http" and self.api_port == 80) or
            (self.api_protocol == "https" and self.api_port == 443)
        ) else f":{self.api_port}"

        return f"{self.api_protocol}://{self.api_host}{port_str}"


@lru_cache()
def get_settings() -> Settings:
    """Load and cache application settings.

    When OPENAI_SECRET_NAME / DEEPGRAM_SECRET_NAME are provided and the
    matching key is not already set, the key is fetched from AWS Secrets
    Manager.

    Returns:
        Validated Settings instance

    Raises:
        ValueError: If settings are invalid
    """
    settings = Settings()

    if settings.openai_secret_name and not settings.openai_api_key:
        secret_key = get_secret_from_aws(
            settings.openai_secret_name, "openai_api_key", settings.bedrock_region
        )
        if secret_key:
            settings.openai_api_key = secret_key
            logger.debug("fetched_openai_key_from_secrets_manager")

    if settings.deepgram_secret_name and not settings.deepgram_api_key:
        secret_key = get_secret_from_aws(
            settings.deepgram_secret_name, "deepgram_api_key", settings.bedrock_region
        )
        if secret_key:
            settings.deepgram_api_key = secret_key
            logger.debug("fetched_deepgram_key_from_secrets_manager")

    # Log loaded configuration (secrets never logged)
    logger.info(
        "configuration_loaded",
        environment=settings.environment,
        llm_provider=settings.llm_provider,
        llm_configured=settings.llm_configured,
        transcription_configured=settings.transcription_configured,
        store_backend=settings.store_backend,
    )

    return settings
