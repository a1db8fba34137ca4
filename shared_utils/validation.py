"""
Input validation and sanitization utilities.
Provides functions for validating and cleaning request input.
"""

from typing import Optional
import re
from urllib.parse import urlparse

from shared_utils.error_handler import ValidationError


class InputValidator:
    """Utility class for input validation."""

    @staticmethod
    def validate_non_empty_string(value: str, field_name: str) -> str:
        """Validate non-empty string.

        Args:
            value: String to validate
            field_name: Name of field for error messages

        Returns:
            Validated string

        Raises:
            ValidationError: If validation fails
        """
        if not isinstance(value, str):
            raise ValidationError(f"{field_name} must be a string")

        if not value or not value.strip():
            raise ValidationError(f"{field_name} cannot be empty")

        return value.strip()

    @staticmethod
    def validate_meeting_id(value: str, max_length: int = 128) -> str:
        """Validate a meeting identifier used in routes and job ids.

        Raises:
            ValidationError: If the id is empty, too long or has odd characters
        """
        value = InputValidator.validate_non_empty_string(value, "meeting_id")
        if len(value) > max_length:
            raise ValidationError(f"meeting_id too long (max {max_length} characters)")
        if not re.match(r'^[A-Za-z0-9_\-]+$', value):
            raise ValidationError(
                "meeting_id contains invalid characters", context={"meeting_id": value}
            )
        return value

    @staticmethod
    def validate_audio_url(value: Optional[str]) -> Optional[str]:
        """Validate an optional http(s) audio source URL.

        Returns:
            The stripped URL, or None when not supplied

        Raises:
            ValidationError: If the URL is not absolute http(s)
        """
        if value is None or not value.strip():
            return None
        value = value.strip()
        parsed = urlparse(value)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ValidationError(
                "audioUrl must be an absolute http(s) URL", context={"audioUrl": value}
            )
        return value
