"""
ProcessingQueue — background execution of processing runs.

Jobs run on a thread pool. The meeting's job-state column is the durable
record: it is set to PENDING when a job is accepted, the runner moves it to
RUNNING / SUCCEEDED / FAILED, and ``recover()`` re-submits meetings left
PENDING or RUNNING by a previous process. A run that crashes with an
unexpected exception is retried with exponential backoff (tenacity); once
attempts are exhausted the meeting is marked FAILED.
"""

from __future__ import annotations

import time
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, List, Optional

from tenacity import RetryCallState, Retrying, stop_after_attempt, wait_exponential

from domain.models import ProcessingJobState, ProcessingOptions, ProcessingResult, QueueReceipt
from ports.meeting_store import MeetingStorePort
from shared_utils.constants import Defaults, LogScope
from shared_utils.error_handler import describe_exception
from shared_utils.logging_utils import get_scoped_logger

logger = get_scoped_logger(LogScope.QUEUE)

Runner = Callable[[str, ProcessingOptions], ProcessingResult]


def make_job_id(meeting_id: str) -> str:
    return f"job_{meeting_id}_{int(time.time() * 1000)}"


class ProcessingQueue:
    def __init__(
        self,
        meeting_store: MeetingStorePort,
        max_workers: int = Defaults.QUEUE_MAX_WORKERS,
        max_attempts: int = Defaults.QUEUE_MAX_ATTEMPTS,
        backoff_seconds: float = Defaults.QUEUE_BACKOFF_SECONDS,
    ) -> None:
        self._store = meeting_store
        self._max_attempts = max(1, max_attempts)
        self._backoff = backoff_seconds
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="meeting-processing"
        )

    def submit(
        self,
        meeting_id: str,
        options: ProcessingOptions,
        runner: Runner,
    ) -> QueueReceipt:
        """Accept a job and return immediately."""
        job_id = make_job_id(meeting_id)
        try:
            self._store.set_processing_state(meeting_id, ProcessingJobState.PENDING)
        except Exception as exc:
            # The job still runs; it records its own state once started.
            logger.warning(
                "job_state_not_recorded",
                meeting_id=meeting_id,
                job_id=job_id,
                error=describe_exception(exc),
            )

        try:
            self._executor.submit(
                self._run, job_id, meeting_id, options, runner
            )
        except RuntimeError as exc:
            # Executor already shut down. The PENDING state stays for recover().
            logger.error(
                "job_not_scheduled",
                meeting_id=meeting_id,
                job_id=job_id,
                error=describe_exception(exc),
            )
            return QueueReceipt(queued=False, job_id=job_id)

        logger.info("job_queued", meeting_id=meeting_id, job_id=job_id)
        return QueueReceipt(queued=True, job_id=job_id)

    def recover(self, runner: Runner) -> List[QueueReceipt]:
        """Re-submit meetings a previous process left PENDING or RUNNING.

        The original request options are not persisted, so recovered jobs
        run with default options.
        """
        meeting_ids = self._store.list_meetings_in_state(
            [ProcessingJobState.PENDING, ProcessingJobState.RUNNING]
        )
        if meeting_ids:
            logger.info("jobs_recovered", count=len(meeting_ids), meeting_ids=meeting_ids)
        return [self.submit(mid, ProcessingOptions(), runner) for mid in meeting_ids]

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)

    def _run(
        self,
        job_id: str,
        meeting_id: str,
        options: ProcessingOptions,
        runner: Runner,
    ) -> Optional[ProcessingResult]:
        retrying = Retrying(
            stop=stop_after_attempt(self._max_attempts),
            wait=wait_exponential(multiplier=self._backoff, max=60),
            reraise=True,
            before_sleep=lambda state: self._log_retry(job_id, meeting_id, state),
        )
        try:
            result = retrying(runner, meeting_id, options)
        except Exception as exc:
            logger.error(
                "job_failed",
                meeting_id=meeting_id,
                job_id=job_id,
                attempts=self._max_attempts,
                error_type=type(exc).__name__,
                error=describe_exception(exc),
            )
            try:
                self._store.set_processing_state(
                    meeting_id, ProcessingJobState.FAILED, describe_exception(exc)
                )
            except Exception as state_exc:
                logger.error(
                    "job_state_not_recorded",
                    meeting_id=meeting_id,
                    job_id=job_id,
                    error=describe_exception(state_exc),
                )
            return None

        logger.info(
            "job_completed",
            meeting_id=meeting_id,
            job_id=job_id,
            success=result.success,
            errors=result.errors,
        )
        return result

    @staticmethod
    def _log_retry(job_id: str, meeting_id: str, state: RetryCallState) -> None:
        exc = state.outcome.exception() if state.outcome else None
        logger.warning(
            "job_retrying",
            meeting_id=meeting_id,
            job_id=job_id,
            attempt=state.attempt_number,
            error=describe_exception(exc) if exc else None,
        )
