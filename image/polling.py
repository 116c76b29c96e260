"""
Polling normalizer for asynchronous provider jobs.

Turns a submitted remote job into a single blocking call: wait, check
status, repeat until the job succeeds, fails, runs out of attempts or the
caller goes away. Job state is only ever read, never written locally.
"""
import asyncio
import logging
from typing import Awaitable, Callable, Optional

from image.base import AbortCheck, Job, JobStatus
from image.errors import JobCancelledError, JobFailedError, JobTimeoutError

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL = 1.0
DEFAULT_MAX_ATTEMPTS = 20

StatusFetcher = Callable[[str], Awaitable[Job]]


async def poll_until_complete(
    job: Job,
    fetch_status: StatusFetcher,
    interval: float = DEFAULT_POLL_INTERVAL,
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    should_abort: Optional[AbortCheck] = None,
) -> Job:
    """
    Poll a job until it reaches a terminal state.

    Each attempt sleeps for interval seconds and then fetches the job
    status once. A job submitted in a terminal state is resolved without
    polling.

    Args:
        job: The job as returned by the submission call
        fetch_status: Coroutine function returning the current Job for an id
        interval: Delay in seconds before each status check
        max_attempts: Upper bound on status checks
        should_abort: Optional async callable; polling stops when it returns True

    Returns:
        Job: The job in succeeded state

    Raises:
        JobFailedError: Job reached the failed state
        JobTimeoutError: Job still pending after max_attempts checks
        JobCancelledError: should_abort reported the caller is gone
        UpstreamError: A status check failed (propagated from fetch_status)
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be at least 1")

    attempts = 0
    while not job.is_terminal:
        if attempts >= max_attempts:
            logger.warning(f"Job {job.job_id} still {job.status.value} after {attempts} checks")
            raise JobTimeoutError(job.job_id, attempts)

        if should_abort is not None and await should_abort():
            logger.info(f"Job {job.job_id} abandoned, caller disconnected")
            raise JobCancelledError(job.job_id)

        await asyncio.sleep(interval)
        attempts += 1
        job = await fetch_status(job.job_id)
        logger.debug(f"Job {job.job_id} check {attempts}/{max_attempts}: {job.status.value}")

    if job.status == JobStatus.FAILED:
        logger.error(f"Job {job.job_id} failed after {attempts} checks")
        raise JobFailedError(job.job_id, job.raw)

    logger.info(f"Job {job.job_id} succeeded after {attempts} checks")
    return job
