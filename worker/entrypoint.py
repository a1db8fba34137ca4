"""
Worker entrypoint for running post-meeting processing out of band.

Invoked as a one-off container task with environment overrides:
    MEETING_ID           — the meeting to process (required)
    AUDIO_URL            — recording to transcribe when no transcript exists
    NOTIFY_PARTICIPANTS  — "true" to send the summary digest
    REPROCESS            — "true" to regenerate from the stored transcript

The worker runs the processor synchronously and exits 0 when the run
succeeded, 1 otherwise.

All logging is JSON (structlog).
"""

from __future__ import annotations

import os
import sys

from domain.models import ProcessingOptions
from shared_utils.constants import LogScope
from shared_utils.error_handler import ValidationError
from shared_utils.logging_utils import get_scoped_logger
from shared_utils.di_container import get_di_container
from shared_utils.validation import InputValidator

logger = get_scoped_logger(LogScope.WORKER)

_TRUTHY = {"1", "true", "yes", "on"}


def _env_flag(name: str) -> bool:
    return os.environ.get(name, "").strip().lower() in _TRUTHY


def main() -> int:
    """Worker main — parse env vars, build deps, run one processing job."""
    raw_meeting_id = os.environ.get("MEETING_ID", "")
    reprocess = _env_flag("REPROCESS")

    try:
        meeting_id = InputValidator.validate_meeting_id(raw_meeting_id)
        audio_url = InputValidator.validate_audio_url(os.environ.get("AUDIO_URL"))
    except ValidationError as exc:
        logger.error("worker_invalid_env", meeting_id=raw_meeting_id, error=exc.message)
        print(f"ERROR: {exc.message}", file=sys.stderr)
        return 1

    logger.info(
        "worker_started",
        meeting_id=meeting_id,
        reprocess=reprocess,
        has_audio=bool(audio_url),
    )

    try:
        processor = get_di_container().get_processor()
        if reprocess:
            result = processor.reprocess_meeting(meeting_id)
        else:
            result = processor.process_meeting(
                meeting_id,
                ProcessingOptions(
                    audio_url=audio_url,
                    notify_participants=_env_flag("NOTIFY_PARTICIPANTS"),
                ),
            )
    except Exception as exc:
        logger.error("worker_failed", meeting_id=meeting_id, error=str(exc))
        return 1

    logger.info(
        "worker_completed",
        meeting_id=meeting_id,
        success=result.success,
        errors=result.errors,
        action_item_count=result.action_item_count,
        processing_time_ms=result.processing_time,
    )
    return 0 if result.success else 1


if __name__ == "__main__":
    sys.exit(main())
