"""Drive one optimization job from submission to a terminal status."""

from __future__ import annotations

import asyncio
import logging
import time
from enum import Enum
from typing import Any, Awaitable, Callable, Optional, TypeVar

from ...config import settings
from ...errors import JobCancelledError, JobInProgressError, JobTimeoutError, ServiceError
from .client import OptimizationClient
from .models import JobStatus

logger = logging.getLogger(__name__)

T = TypeVar("T")


class JobState(str, Enum):
    IDLE = "IDLE"
    SUBMITTING = "SUBMITTING"
    POLLING = "POLLING"
    STOPPING = "STOPPING"
    SUCCEEDED = "SUCCEEDED"
    FAILED = "FAILED"
    CANCELLED = "CANCELLED"


ACTIVE_STATES = frozenset({JobState.SUBMITTING, JobState.POLLING, JobState.STOPPING})


class CancellationToken:
    """Checked by the poll loop before every re-arm."""

    def __init__(self) -> None:
        self._cancelled = False

    def cancel(self) -> None:
        self._cancelled = True

    @property
    def cancelled(self) -> bool:
        return self._cancelled


def _failure_description(status: JobStatus) -> str:
    payload = status.payload
    if payload.get("description"):
        return str(payload["description"])
    return f"Optimization {status.job_id} failed"


class OptimizationOrchestrator:
    """State machine around a single in-flight optimization job.

    States move ``SUBMITTING -> POLLING -> (STOPPING ->) SUCCEEDED`` or end
    in ``FAILED``/``CANCELLED``. Polls are strictly sequential: the next one
    is scheduled only after the previous status has been processed.
    """

    def __init__(
        self,
        client: OptimizationClient,
        *,
        poll_interval: float | None = None,
        timeout: float | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
        on_progress: Optional[Callable[[JobStatus], None]] = None,
    ) -> None:
        self.client = client
        self.poll_interval = poll_interval if poll_interval is not None else settings.poll_interval_seconds
        self.timeout = timeout if timeout is not None else settings.poll_timeout_seconds
        self._sleep = sleep
        self._clock = clock
        self.on_progress = on_progress
        self.state = JobState.IDLE
        self.job_id: str | None = None
        self.last_status: JobStatus | None = None
        self.polls = 0
        self._stop_tasks: set[asyncio.Task] = set()

    @property
    def is_active(self) -> bool:
        return self.state in ACTIVE_STATES

    def _transition(self, state: JobState) -> None:
        if state is not self.state:
            logger.info(f"Optimization job {self.job_id or '-'}: {self.state.value} -> {state.value}")
        self.state = state

    async def run(
        self,
        request: dict,
        *,
        on_result: Callable[[dict], T],
        stop_when_fully_scheduled: bool = False,
        cancel_token: CancellationToken | None = None,
    ) -> T:
        """Submit ``request``, poll until terminal and hand the result to ``on_result``."""
        if self.is_active:
            raise JobInProgressError(f"An optimization is already running ({self.state.value}).")

        self.job_id = None
        self.last_status = None
        self.polls = 0
        self._transition(JobState.SUBMITTING)
        try:
            self.job_id = await self.client.submit(request)
            self._transition(JobState.POLLING)
            return await self._poll(self.job_id, on_result, stop_when_fully_scheduled, cancel_token)
        except (JobCancelledError, asyncio.CancelledError):
            self._transition(JobState.CANCELLED)
            raise
        except Exception:
            self._transition(JobState.FAILED)
            raise
        finally:
            await self._drain_stop_requests()

    async def _poll(
        self,
        job_id: str,
        on_result: Callable[[dict], T],
        stop_when_fully_scheduled: bool,
        cancel_token: CancellationToken | None,
    ) -> T:
        started = self._clock()
        while True:
            status = await self.client.get_status(job_id)
            self.polls += 1
            self.last_status = status
            logger.debug(
                f"Optimization {job_id} status={status.status} unscheduled={status.unscheduled_orders}"
            )

            if status.status == "SUCCEEDED":
                self._transition(JobState.SUCCEEDED)
                return on_result(status.payload)
            if status.status == "FAILED":
                raise ServiceError(_failure_description(status), payload=status.payload)

            if (
                stop_when_fully_scheduled
                and status.is_fully_scheduled
                and self.state is JobState.POLLING
            ):
                self._request_stop(job_id)
                self._transition(JobState.STOPPING)

            if self.on_progress is not None:
                self.on_progress(status)

            if cancel_token is not None and cancel_token.cancelled:
                raise JobCancelledError(f"Polling of optimization {job_id} was cancelled.")
            if self.timeout is not None and self._clock() - started >= self.timeout:
                raise JobTimeoutError(
                    f"Optimization {job_id} did not finish within {self.timeout:.0f} seconds."
                )
            await self._sleep(self.poll_interval)

    def _request_stop(self, job_id: str) -> None:
        logger.info(f"Optimization {job_id} has no unscheduled orders left, requesting stop")
        task = asyncio.ensure_future(self.client.stop(job_id))
        self._stop_tasks.add(task)
        task.add_done_callback(self._stop_tasks.discard)

    async def _drain_stop_requests(self) -> None:
        if not self._stop_tasks:
            return
        results = await asyncio.gather(*self._stop_tasks, return_exceptions=True)
        for result in results:
            if isinstance(result, Exception):
                logger.warning(f"Stop request failed: {result}")
