import asyncio

import pytest

from src.routeplanner.errors import (
    JobCancelledError,
    JobInProgressError,
    JobTimeoutError,
    ServiceError,
    TransportError,
)
from src.routeplanner.services.optimization.models import JobStatus
from src.routeplanner.services.optimization.orchestrator import (
    CancellationToken,
    JobState,
    OptimizationOrchestrator,
)


def _running(unscheduled: int | None = None) -> JobStatus:
    return JobStatus(job_id="job-1", status="RUNNING", unscheduled_orders=unscheduled, payload={"status": "RUNNING"})


def _succeeded() -> JobStatus:
    return JobStatus(job_id="job-1", status="SUCCEEDED", payload={"status": "SUCCEEDED", "routes": []})


class FakeOptimizationClient:
    def __init__(self, statuses, submit_error: Exception | None = None):
        self.statuses = list(statuses)
        self.submit_error = submit_error
        self.events: list[str] = []
        self.submitted: list[dict] = []

    async def submit(self, request):
        self.events.append("submit")
        if self.submit_error is not None:
            raise self.submit_error
        self.submitted.append(request)
        return "job-1"

    async def get_status(self, job_id):
        self.events.append("status")
        item = self.statuses.pop(0) if len(self.statuses) > 1 else self.statuses[0]
        if isinstance(item, Exception):
            raise item
        return item

    async def stop(self, job_id):
        self.events.append("stop")


class RecordingSleep:
    def __init__(self):
        self.calls: list[float] = []

    async def __call__(self, seconds):
        self.calls.append(seconds)
        await asyncio.sleep(0)


class ResultRecorder:
    def __init__(self):
        self.results: list[dict] = []

    def __call__(self, result):
        self.results.append(result)
        return "mapped"


def _orchestrator(client, **kwargs) -> tuple[OptimizationOrchestrator, RecordingSleep]:
    sleep = RecordingSleep()
    kwargs.setdefault("poll_interval", 1.0)
    orchestrator = OptimizationOrchestrator(client, sleep=sleep, **kwargs)
    return orchestrator, sleep


def test_early_stop_is_requested_once_and_polling_continues():
    client = FakeOptimizationClient([_running(0), _running(0), _succeeded()])
    orchestrator, sleep = _orchestrator(client)
    recorder = ResultRecorder()

    outcome = asyncio.run(orchestrator.run({"locations": []}, on_result=recorder, stop_when_fully_scheduled=True))

    assert outcome == "mapped"
    assert client.events == ["submit", "status", "stop", "status", "status"]
    assert recorder.results == [{"status": "SUCCEEDED", "routes": []}]
    assert orchestrator.state is JobState.SUCCEEDED
    assert sleep.calls == [1.0, 1.0]


def test_no_stop_when_early_stop_disabled():
    client = FakeOptimizationClient([_running(0), _succeeded()])
    orchestrator, _ = _orchestrator(client)

    asyncio.run(orchestrator.run({}, on_result=ResultRecorder(), stop_when_fully_scheduled=False))

    assert "stop" not in client.events


def test_no_stop_while_orders_are_unscheduled():
    client = FakeOptimizationClient([_running(2), _running(None), _succeeded()])
    orchestrator, _ = _orchestrator(client)

    asyncio.run(orchestrator.run({}, on_result=ResultRecorder(), stop_when_fully_scheduled=True))

    assert "stop" not in client.events
    assert orchestrator.polls == 3


def test_progress_reports_every_non_terminal_status():
    seen: list[str] = []
    client = FakeOptimizationClient([_running(3), _running(1), _succeeded()])
    orchestrator, _ = _orchestrator(client, on_progress=lambda status: seen.append(status.status))

    asyncio.run(orchestrator.run({}, on_result=ResultRecorder()))

    assert seen == ["RUNNING", "RUNNING"]


def test_failed_status_raises_service_error():
    failed = JobStatus(job_id="job-1", status="FAILED", payload={"status": "FAILED", "description": "Infeasible"})
    client = FakeOptimizationClient([_running(), failed])
    orchestrator, _ = _orchestrator(client)
    recorder = ResultRecorder()

    with pytest.raises(ServiceError, match="Infeasible"):
        asyncio.run(orchestrator.run({}, on_result=recorder))

    assert orchestrator.state is JobState.FAILED
    assert recorder.results == []


def test_rejected_submission_never_polls():
    client = FakeOptimizationClient([_succeeded()], submit_error=ServiceError("No optimization ID found"))
    orchestrator, _ = _orchestrator(client)

    with pytest.raises(ServiceError):
        asyncio.run(orchestrator.run({}, on_result=ResultRecorder()))

    assert client.events == ["submit"]
    assert orchestrator.state is JobState.FAILED


def test_transport_error_while_polling_fails_the_job():
    client = FakeOptimizationClient([_running(), TransportError("connection reset")])
    orchestrator, _ = _orchestrator(client)

    with pytest.raises(TransportError):
        asyncio.run(orchestrator.run({}, on_result=ResultRecorder()))

    assert orchestrator.state is JobState.FAILED


def test_active_job_rejects_second_run():
    orchestrator, _ = _orchestrator(FakeOptimizationClient([_succeeded()]))
    orchestrator.state = JobState.POLLING

    with pytest.raises(JobInProgressError):
        asyncio.run(orchestrator.run({}, on_result=ResultRecorder()))


def test_terminal_job_allows_next_run():
    client = FakeOptimizationClient([_succeeded()])
    orchestrator, _ = _orchestrator(client)

    asyncio.run(orchestrator.run({}, on_result=ResultRecorder()))
    asyncio.run(orchestrator.run({}, on_result=ResultRecorder()))

    assert client.events.count("submit") == 2


def test_cancellation_is_checked_before_rearming():
    token = CancellationToken()
    client = FakeOptimizationClient([_running(), _succeeded()])
    orchestrator, sleep = _orchestrator(client, on_progress=lambda status: token.cancel())

    with pytest.raises(JobCancelledError):
        asyncio.run(orchestrator.run({}, on_result=ResultRecorder(), cancel_token=token))

    assert orchestrator.state is JobState.CANCELLED
    assert sleep.calls == []


def test_poll_timeout_fails_the_job():
    ticks = iter(range(100))
    client = FakeOptimizationClient([_running()])
    orchestrator, sleep = _orchestrator(client, timeout=3.0, clock=lambda: float(next(ticks)))

    with pytest.raises(JobTimeoutError):
        asyncio.run(orchestrator.run({}, on_result=ResultRecorder()))

    assert orchestrator.state is JobState.FAILED
    assert len(sleep.calls) == 2
