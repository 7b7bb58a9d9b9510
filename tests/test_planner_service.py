import asyncio

import pytest

from src.routeplanner.config import Settings
from src.routeplanner.errors import GeocodingError, InputError, JobInProgressError
from src.routeplanner.models.domain import InsertionDirective, InsertionMode
from src.routeplanner.services.optimization.models import JobStatus
from src.routeplanner.services.optimization.orchestrator import OptimizationOrchestrator
from src.routeplanner.services.planner import PlannerSession


class FakeGeocoder:
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.calls: list[tuple[float, float]] = []

    async def resolve_address(self, latitude, longitude):
        self.calls.append((latitude, longitude))
        if self.fail:
            raise GeocodingError("No address found")
        return f"Address {len(self.calls)}"


class ScriptedOptimizationClient:
    """Answers each submitted job with the next scripted terminal payload."""

    def __init__(self, results: list[dict]):
        self.results = list(results)
        self.submitted: list[dict] = []
        self._current: dict | None = None

    async def submit(self, request):
        self.submitted.append(request)
        self._current = self.results.pop(0)
        return f"job-{len(self.submitted)}"

    async def get_status(self, job_id):
        return JobStatus(job_id=job_id, status=self._current["status"], payload=self._current)

    async def stop(self, job_id):
        return None


async def _no_sleep(seconds):
    return None


def _route(vehicle_id: str, order_ids: list[str], depot_id: str = "1") -> dict:
    stops = [
        {"arrival": "2024-05-06T07:30:00Z", "appointments": [{"tasks": [{"depotId": depot_id, "type": "VISIT_DEPOT"}]}]}
    ]
    stops += [
        {
            "arrival": f"2024-05-06T{9 + index:02d}:00:00Z",
            "appointments": [{"tasks": [{"orderId": order_id, "type": "DELIVERY"}]}],
        }
        for index, order_id in enumerate(order_ids)
    ]
    return {
        "vehicleId": vehicle_id,
        "start": {"locationId": depot_id, "departure": "2024-05-06T07:30:00Z"},
        "end": {"locationId": depot_id},
        "stops": stops,
    }


def _succeeded(*routes: dict) -> dict:
    return {"status": "SUCCEEDED", "routes": list(routes)}


def _session(results: list[dict] | None = None, geocoder: FakeGeocoder | None = None) -> PlannerSession:
    client = ScriptedOptimizationClient(results or [])
    orchestrator = OptimizationOrchestrator(client, poll_interval=0, sleep=_no_sleep)
    return PlannerSession(
        settings=Settings(max_stops=5, vehicles_per_depot=1),
        geocoder=geocoder or FakeGeocoder(),
        orchestrator=orchestrator,
    )


def _place(session: PlannerSession, count: int) -> None:
    for index in range(count):
        asyncio.run(session.place_stop(49.0 + 0.01 * index, 8.4))


def test_place_stop_geocodes_and_adds():
    session = _session()

    stop = asyncio.run(session.place_stop(49.0, 8.4))

    assert stop.id == "1"
    assert stop.is_depot
    assert stop.address == "Address 1"


def test_failed_geocoding_adds_nothing():
    session = _session(geocoder=FakeGeocoder(fail=True))

    with pytest.raises(GeocodingError):
        asyncio.run(session.place_stop(49.0, 8.4))

    assert len(session.catalog) == 0
    assert session.last_error == "Error: No address found"


def test_full_catalog_is_rejected_before_geocoding():
    geocoder = FakeGeocoder()
    session = _session(geocoder=geocoder)
    _place(session, 5)

    with pytest.raises(InputError):
        asyncio.run(session.place_stop(48.0, 8.0))

    assert len(geocoder.calls) == 5


def test_invalid_directive_is_not_stored():
    session = _session()
    _place(session, 3)

    with pytest.raises(InputError):
        session.set_directive(InsertionDirective(InsertionMode.HARD_IMMEDIATELY_AFTER, "2"))

    assert session.directive.mode is InsertionMode.UNCONSTRAINED


def test_two_cycles_keep_previous_order_and_insert_new_stop():
    session = _session([_succeeded(_route("1", ["2", "3", "4"])), _succeeded(_route("1", ["2", "3", "5", "4"]))])
    _place(session, 4)

    first = asyncio.run(session.optimize())

    assert first is not None
    assert session.catalog.get("3").assignment.vehicle_id == "1"
    assert len(session.current_paths[0].coordinates) == 5
    assert session.previous_paths == []

    _place(session, 1)
    session.set_directive(InsertionDirective(InsertionMode.HARD_IMMEDIATELY_AFTER, "3"))
    second = asyncio.run(session.optimize())

    submitted = session.orchestrator.client.submitted[1]
    assert submitted["constraints"]["tasks"]["respectedSequences"] == [{"taskCategories": ["2", "3", "new", "4"]}]
    assert [task.get("orderId") for task in submitted["routes"][0]["tasks"][1:]] == ["2", "3", "4"]
    assert second.solution.routes[0].delivery_categories() == ["2", "3", "5", "4"]
    assert session.catalog.get("5").used
    assert session.previous_paths == first.paths
    assert len(session.current_paths[0].coordinates) == 6
    assert session.is_optimizing is False
    assert session.last_error is None


def test_failed_job_keeps_previous_solution():
    session = _session(
        [_succeeded(_route("1", ["2", "3"])), {"status": "FAILED", "description": "Infeasible tour"}]
    )
    _place(session, 3)
    first = asyncio.run(session.optimize())
    _place(session, 1)

    assert asyncio.run(session.optimize()) is None

    assert session.previous_solution is first.solution
    assert session.last_error == "Error: Infeasible tour"
    assert session.catalog.get("4").used is False
    assert session.is_optimizing is False


def test_unknown_stop_in_result_leaves_state_unchanged():
    session = _session([_succeeded(_route("1", ["2", "9"]))])
    _place(session, 3)

    assert asyncio.run(session.optimize()) is None

    assert session.previous_solution is None
    assert all(not stop.used for stop in session.catalog)
    assert session.last_error.startswith("Error:")


def test_prepared_optimization_reserves_the_flight():
    session = _session([_succeeded(_route("1", ["2"]))])
    _place(session, 2)

    prepared = session.prepare_optimization()

    assert session.is_optimizing
    with pytest.raises(JobInProgressError):
        session.prepare_optimization()
    with pytest.raises(JobInProgressError):
        asyncio.run(session.place_stop(48.0, 8.0))

    asyncio.run(session.execute(prepared))
    assert session.is_optimizing is False
    assert session.progress is None


def test_malformed_route_is_reported_to_the_operator():
    route = _route("1", ["2"])
    route["start"] = "1"
    session = _session([_succeeded(route)])
    _place(session, 2)

    assert asyncio.run(session.optimize()) is None

    assert session.last_error.startswith("Error: Malformed route")
    assert session.previous_solution is None
    assert all(not stop.used for stop in session.catalog)
    assert session.is_optimizing is False
