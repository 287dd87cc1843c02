# -*- coding: utf-8 -*-
"""
Polling of async screenshot jobs.

A job moves Submitted -> {Queued, Processing} -> {Completed, Failed,
Cancelled}. The poller queries status at most once per poll interval,
stops at a caller deadline that is independent of per-call timeouts, and
honours an external cancellation event at every loop boundary.
"""
import asyncio
import logging
import time
from typing import Awaitable, Callable

from .client import AllscreenshotsClient
from .context import operation_scope
from .errors import (
    JobCancelledError,
    JobFailedError,
    PollCancelledError,
    PollDeadlineExceededError,
)
from .models import CaptureRequest, Job, JobHandle, JobStatus

logger = logging.getLogger(__name__)

# Status before the first query returns
SUBMITTED = "submitted"


class JobPoller:
    """
    Submit long-running captures and wait for their outcome.

    Holds no per-job state: one poller can wait on many jobs concurrently,
    each await_result() call keeping its own loop variables.
    """

    def __init__(
            self,
            client: AllscreenshotsClient,
            sleep: Callable[[float], Awaitable[None]] | None = None,
            clock: Callable[[], float] = time.monotonic,
    ):
        self.client = client
        self._sleep = sleep or client.sleep
        self._clock = clock

    async def submit(self, request: CaptureRequest) -> JobHandle:
        """Submit a capture job (single retry-wrapped call)."""
        return await self.client.screenshot_async(request)

    async def capture(
            self,
            request: CaptureRequest,
            poll_interval: float | None = None,
            deadline: float | None = None,
            cancel_event: asyncio.Event | None = None,
    ) -> bytes:
        """Submit a capture and wait for its image bytes."""
        with operation_scope():
            handle = await self.submit(request)
            return await self.await_result(handle, poll_interval, deadline, cancel_event)

    async def await_result(
            self,
            handle: JobHandle | str,
            poll_interval: float | None = None,
            deadline: float | None = None,
            cancel_event: asyncio.Event | None = None,
    ) -> bytes:
        """
        Poll a job until it reaches a terminal status.

        Args:
            handle: Job handle (or bare job id) returned by submit()
            poll_interval: Minimum seconds between two status queries
            deadline: Seconds after which polling gives up
            cancel_event: Set by the caller to stop polling

        Returns:
            Result image bytes of the completed job

        Raises:
            JobFailedError: the service reported the job as failed
            JobCancelledError: the job was cancelled on the service side
            PollDeadlineExceededError: no terminal status before the deadline
            PollCancelledError: cancel_event was set
        """
        interval = self.client.config.poll_interval if poll_interval is None else poll_interval
        limit = self.client.config.poll_deadline if deadline is None else deadline
        if interval <= 0:
            raise ValueError("poll_interval must be > 0")
        if limit <= 0:
            raise ValueError("deadline must be > 0")

        job_id = handle.id if isinstance(handle, JobHandle) else str(handle)
        expires_at = self._clock() + limit
        state: str = SUBMITTED
        queries = 0

        with operation_scope():
            while True:
                self._check_cancelled(cancel_event, job_id)

                queried_at = self._clock()
                job = await self._query(job_id, expires_at - queried_at, limit, state)
                queries += 1

                if job.status.value != state:
                    logger.info(
                        f"Job {job_id}: {state} -> {job.status.value}",
                        extra={"job_id": job_id, "status": job.status.value, "queries": queries},
                    )
                    state = job.status.value

                if job.status.is_terminal:
                    return await self._finish(job)

                # A query due at or after the deadline would never run: stop now
                next_query_at = queried_at + interval
                if next_query_at >= expires_at:
                    logger.warning(
                        "Polling deadline exceeded",
                        extra={"job_id": job_id, "deadline": limit, "queries": queries},
                    )
                    raise PollDeadlineExceededError(job_id, limit, state)

                self._check_cancelled(cancel_event, job_id)
                await self._wait(max(0.0, next_query_at - self._clock()), cancel_event)
                self._check_cancelled(cancel_event, job_id)

    async def _query(self, job_id: str, remaining: float, limit: float, state: str) -> Job:
        """One retry-wrapped status query, cut off at the polling deadline."""
        if remaining <= 0:
            raise PollDeadlineExceededError(job_id, limit, state)
        try:
            return await asyncio.wait_for(self.client.get_job(job_id), timeout=remaining)
        except asyncio.TimeoutError:
            raise PollDeadlineExceededError(job_id, limit, state) from None

    async def _finish(self, job: Job) -> bytes:
        if job.status is JobStatus.COMPLETED:
            image = await self.client.get_job_result(job.id)
            logger.info("Job result fetched", extra={"job_id": job.id, "size_bytes": len(image)})
            return image
        if job.status is JobStatus.FAILED:
            raise JobFailedError(job.error_message or "job failed", job.id, job.error_code)
        raise JobCancelledError(job.id)

    async def _wait(self, delay: float, cancel_event: asyncio.Event | None) -> None:
        if self._sleep is not None:
            await self._sleep(delay)
        elif cancel_event is not None:
            # Wake early when the caller cancels
            try:
                await asyncio.wait_for(cancel_event.wait(), timeout=delay)
            except asyncio.TimeoutError:
                pass
        else:
            await asyncio.sleep(delay)

    @staticmethod
    def _check_cancelled(cancel_event: asyncio.Event | None, job_id: str) -> None:
        if cancel_event is not None and cancel_event.is_set():
            logger.info("Polling cancelled by caller", extra={"job_id": job_id})
            raise PollCancelledError(job_id)
