"""
Async job polling.

Long-running CloudStack commands return a job id immediately; the job's
outcome is read with queryAsyncJobResult until its status leaves PENDING.
Polling is always an explicit caller decision: no command waits on its own.
"""

import logging
from typing import Any, Optional, Protocol

from pydantic import ValidationError as PydanticValidationError
from tenacity import AsyncRetrying, RetryError, retry_if_result, stop_after_attempt, wait_fixed

from .contracts import AsyncJobResult, AsyncJobStatus
from .errors import AsyncJobFailedError, AsyncJobTimeoutError, ProtocolError

logger = logging.getLogger(__name__)


class JobQuerier(Protocol):
    async def query_async_job_result(self, job_id: str) -> Any:
        ...


class JobPollPolicy:
    """
    Polling budget for async jobs.

    Defaults:
    - Max attempts: 60
    - Fixed interval: 2s
    """

    def __init__(self, max_attempts: int = 60, interval_seconds: float = 2.0) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        if interval_seconds < 0:
            raise ValueError("interval_seconds must be >= 0")
        self.max_attempts = max_attempts
        self.interval_seconds = interval_seconds

    @classmethod
    def default(cls) -> "JobPollPolicy":
        return cls()

    def to_tenacity_kwargs(self) -> dict:
        """Convert to tenacity AsyncRetrying kwargs."""
        return {
            "stop": stop_after_attempt(self.max_attempts),
            "wait": wait_fixed(self.interval_seconds),
            "retry": retry_if_result(lambda job: job.is_pending),
        }


async def query_job(client: JobQuerier, job_id: str) -> AsyncJobResult:
    """Read the job's current state once."""
    payload = await client.query_async_job_result(job_id)
    try:
        return AsyncJobResult.model_validate(payload)
    except PydanticValidationError as e:
        raise ProtocolError(
            f"Malformed queryAsyncJobResult payload for job {job_id}: {e}",
            details={"jobId": job_id, "errors": e.errors()},
        ) from e


async def wait_for_job(
    client: JobQuerier,
    job_id: str,
    policy: Optional[JobPollPolicy] = None,
) -> Any:
    """
    Poll an async job until it finishes.

    Args:
        client: Anything exposing ``query_async_job_result``
        job_id: Job id returned by the asynchronous command
        policy: Polling budget (default: JobPollPolicy.default())

    Returns:
        The job's ``jobresult`` payload

    Raises:
        AsyncJobFailedError: Job finished with FAILED status
        AsyncJobTimeoutError: Job still pending after the last attempt
        TransportError / ProtocolError / RemoteError: from the poll itself
    """
    policy = policy or JobPollPolicy.default()

    logger.debug(f"Waiting for job {job_id}: max_attempts={policy.max_attempts}")

    try:
        job = await AsyncRetrying(**policy.to_tenacity_kwargs())(query_job, client, job_id)
    except RetryError as e:
        logger.warning(f"Job {job_id} still pending after {policy.max_attempts} attempts")
        raise AsyncJobTimeoutError(job_id, policy.max_attempts) from e

    if job.jobstatus == AsyncJobStatus.FAILED:
        result = job.jobresult or {}
        message = result.get("errortext") or result.get("errorcode") or "Job failed"
        raise AsyncJobFailedError(
            job_id,
            str(message),
            upstream_code=result.get("errorcode"),
        )

    logger.info(f"Job {job_id} completed")
    return job.jobresult
