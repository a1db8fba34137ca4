"""
FastAPI backend for the Meeting Processing Service.

Endpoints:
    GET  /health                                         — Health check
    GET  /api/v1/ai/status                               — Which AI features are configured
    POST /api/v1/ai/meetings/{meeting_id}/process        — Queue post-meeting processing
    GET  /api/v1/ai/meetings/{meeting_id}/processing-status — Derived processing status
    POST /api/v1/ai/meetings/{meeting_id}/reprocess      — Regenerate summary / action items
    GET  /api/v1/ai/meetings/{meeting_id}/summary        — Stored AI summary
"""

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address
import uvicorn

from domain.models import CamelModel, ProcessingOptions
from shared_utils.config_loader import get_settings
from shared_utils.logging_utils import ContextualLogger
from shared_utils.constants import LogScope, APIEndpoints
from shared_utils.error_handler import AppException, handle_error
from shared_utils.validation import InputValidator
from shared_utils.di_container import get_di_container


# ---------------------------------------------------------------------------
# Application bootstrap
# ---------------------------------------------------------------------------

settings = get_settings()
logger = ContextualLogger(scope=LogScope.API)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build the processor once and re-queue interrupted runs."""
    try:
        container = get_di_container()
        processor = container.get_processor()
        recovered = processor.recover_pending()
        logger.info(
            "api_initialized",
            environment=settings.environment,
            ai_status=container.ai_status(),
            recovered_jobs=len(recovered),
        )
    except Exception as e:
        logger.error("api_initialization_failed", error=str(e))
        raise
    yield
    get_di_container().reset()


app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description=settings.app_description,
    lifespan=lifespan,
)

limiter = Limiter(key_func=get_remote_address)
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


class ProcessRequest(CamelModel):
    """Optional body of the process endpoint."""

    audio_url: Optional[str] = None
    notify_participants: bool = False


def _error_response(e: Exception, event: str) -> JSONResponse:
    if isinstance(e, AppException):
        logger.warning(event, error_code=e.error_code)
        return JSONResponse(status_code=e.http_status, content=e.to_dict())
    error_response = handle_error(e, scope=LogScope.API)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_response,
    )


# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------

@app.get(APIEndpoints.HEALTH)
def health_check() -> dict:
    """Health check endpoint."""
    logger.debug("health_check_requested")
    return {
        "status": "healthy",
        "environment": settings.environment,
        "llm_provider": settings.llm_provider,
    }


@app.get(APIEndpoints.AI_STATUS)
def ai_status() -> JSONResponse:
    """Report which AI features have credentials."""
    try:
        return JSONResponse(content=get_di_container().ai_status())
    except Exception as e:
        return _error_response(e, "ai_status_error")


# ======================================================================
# Post-meeting processing
# ======================================================================

@app.post(APIEndpoints.PROCESS)
@limiter.limit("20/minute")
async def process_meeting(
    request: Request,
    meeting_id: str,
    body: Optional[ProcessRequest] = None,
) -> JSONResponse:
    """Queue processing for a meeting and acknowledge immediately.

    Body JSON (optional):
        audioUrl (str): Recording to transcribe when no transcript exists.
        notifyParticipants (bool): Send the summary digest when done.
    """
    try:
        meeting_id = InputValidator.validate_meeting_id(meeting_id)
        body = body or ProcessRequest()
        audio_url = InputValidator.validate_audio_url(body.audio_url)

        processor = get_di_container().get_processor()
        processor.require_meeting(meeting_id)

        receipt = processor.queue_meeting_for_processing(
            meeting_id,
            ProcessingOptions(
                audio_url=audio_url,
                notify_participants=body.notify_participants,
            ),
        )
        logger.info("processing_queued", meeting_id=meeting_id, job_id=receipt.job_id)
        return JSONResponse(
            status_code=status.HTTP_202_ACCEPTED,
            content=receipt.model_dump(by_alias=True),
        )
    except Exception as e:
        return _error_response(e, "process_error")


@app.get(APIEndpoints.PROCESSING_STATUS)
async def get_processing_status(meeting_id: str) -> JSONResponse:
    """Derived processing status; unknown meetings report ``pending``."""
    try:
        processor = get_di_container().get_processor()
        report = processor.get_processing_status(meeting_id)
        return JSONResponse(content=report.model_dump(mode="json", by_alias=True))
    except Exception as e:
        return _error_response(e, "processing_status_error")


@app.post(APIEndpoints.REPROCESS)
@limiter.limit("10/minute")
def reprocess_meeting(request: Request, meeting_id: str) -> JSONResponse:
    """Regenerate summary and action items from the stored transcript.

    Runs synchronously; the result carries any non-fatal errors.
    """
    try:
        meeting_id = InputValidator.validate_meeting_id(meeting_id)
        processor = get_di_container().get_processor()
        processor.require_meeting(meeting_id)

        result = processor.reprocess_meeting(meeting_id)
        return JSONResponse(content=result.model_dump(mode="json", by_alias=True))
    except Exception as e:
        return _error_response(e, "reprocess_error")


@app.get(APIEndpoints.SUMMARY)
async def get_meeting_summary(meeting_id: str) -> JSONResponse:
    """Stored AI summary (``null`` until the meeting has been processed)."""
    try:
        processor = get_di_container().get_processor()
        return JSONResponse(content=processor.get_summary(meeting_id))
    except Exception as e:
        return _error_response(e, "summary_error")


if __name__ == "__main__":
    uvicorn.run(
        app,
        host="0.0.0.0",
        port=settings.api_port,
        log_level="info"
    )
