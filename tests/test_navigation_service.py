# tests/test_navigation_service.py
import asyncio
import math

import pytest

from conftest import HUALIEN_END, HUALIEN_START, osrm_payload, osrm_step, stub_router

from app.core.errors import SessionExpired, SessionNotFound
from app.models.routing import RouteParameters
from app.services.geo import EARTH_RADIUS_M
from app.services.navigation_service import (
    NavigationService,
    NavigationSession,
    SessionStore,
    instruction_for,
    simulated_steps,
    steps_from_maneuvers,
)
from app.services.osrm_client import OSRMManeuver, OSRMStep
from app.services.routing_service import RoutingService

START = [121.600, 23.975]
CORNER = [121.605, 23.975]
END = [121.605, 23.976]


def lat_offset(metres: float) -> float:
    return math.degrees(metres / EARTH_RADIUS_M)


def maneuver_router():
    return stub_router(
        osrm_payload(
            steps=[
                osrm_step("Zhongshan Rd", 555, "depart", coords=[START, CORNER]),
                osrm_step("Linsen Rd", 111, "turn", "left", coords=[CORNER, END]),
                osrm_step("", 0, "arrive", coords=[END]),
            ]
        )
    )


@pytest.fixture
def store(fake_clock):
    return SessionStore(clock=fake_clock, max_age_s=1800, sweep_interval_s=300)


@pytest.fixture
def routing_service(disabled_router, ramps, obstacles, accessible_roads):
    return RoutingService(
        router=disabled_router,
        ramps=ramps,
        obstacles=obstacles,
        accessible_roads=accessible_roads,
    )


@pytest.fixture
def simulated(routing_service, store):
    return NavigationService(routing_service, store=store)


@pytest.fixture
def guided(routing_service, store):
    return NavigationService(routing_service, store=store, router=maneuver_router())


def test_start_with_simulated_steps(simulated, store):
    response = simulated.start(HUALIEN_START, HUALIEN_END, "accessible")

    assert response.navigation_id.startswith("nav_")
    assert response.navigation_id in store
    assert response.total_steps == 3
    assert [s.maneuver for s in response.steps] == ["depart", "continue", "arrive"]
    assert response.steps[1].instruction == "Continue along the accessible route"
    assert response.total_distance == pytest.approx(
        response.steps[1].distance_m + response.steps[2].distance_m
    )


def test_simulated_steps_split_distance():
    steps = simulated_steps(START, CORNER, "normal")
    total = sum(s.distance_m for s in steps)
    assert steps[0].distance_m == 0
    assert steps[1].distance_m == pytest.approx(total * 0.6, abs=1)
    assert steps[2].distance_m == pytest.approx(total * 0.4, abs=1)


def test_unknown_session_is_not_found(simulated):
    with pytest.raises(SessionNotFound):
        simulated.record_position("nav_missing", START)
    with pytest.raises(SessionNotFound):
        simulated.get("nav_missing")


def test_stop_is_idempotent(simulated):
    nav_id = simulated.start(START, END).navigation_id

    assert simulated.stop(nav_id) is True
    assert simulated.stop(nav_id) is False
    with pytest.raises(SessionNotFound):
        simulated.record_position(nav_id, START)


def test_steps_from_router_maneuvers(guided):
    response = guided.start(START, END)

    assert [s.maneuver for s in response.steps] == ["depart", "turn", "arrive"]
    assert response.steps[0].instruction == "Head out along Zhongshan Rd for 555 m"
    assert response.steps[1].instruction == "Turn left onto Linsen Rd for 111 m"
    assert response.steps[2].instruction == "You have arrived at your destination"
    assert response.total_distance == 666


def test_off_route_uses_distance_to_step_geometry(guided):
    nav_id = guided.start(START, END).navigation_id
    along = (START[0] + CORNER[0]) / 2

    far = guided.record_position(nav_id, [along, START[1] + lat_offset(60)], 0)
    near = guided.record_position(nav_id, [along, START[1] + lat_offset(40)], 0)

    assert far.off_route is True
    assert near.off_route is False
    assert near.step_completed is False


def test_step_completion_advances_session(guided):
    nav_id = guided.start(START, END).navigation_id

    update = guided.record_position(nav_id, [CORNER[0] - 0.0001, CORNER[1]])

    assert update.step_completed is True
    assert update.current_step == 0
    assert update.next_instruction == "Turn left onto Linsen Rd for 111 m"
    assert update.progress == 33
    assert 0 < update.route_progress < 100

    view = guided.get(nav_id)
    assert view.current_step == 1
    assert view.status == "active"
    assert len(view.positions) == 1


def test_arrival_completes_session(guided):
    nav_id = guided.start(START, END).navigation_id

    update = guided.record_position(nav_id, [END[0], END[1] - lat_offset(10)], 2)

    assert update.step_completed is True
    assert update.next_instruction is None
    assert update.progress == 100
    assert guided.get(nav_id).status == "completed"


def test_reported_step_is_clamped(guided):
    nav_id = guided.start(START, END).navigation_id
    update = guided.record_position(nav_id, START, 42)
    assert update.current_step == 2


def test_no_geometry_steps_do_not_complete_early(simulated):
    nav_id = simulated.start(START, END).navigation_id
    update = simulated.record_position(nav_id, START, 0)
    assert update.step_completed is False
    assert update.off_route is False


def test_sweep_expires_old_sessions(simulated, store, fake_clock):
    old_id = simulated.start(START, END).navigation_id
    fake_clock.advance(1000)
    fresh_id = simulated.start(START, END).navigation_id
    fake_clock.advance(1000)

    assert store.sweep() == [old_id]
    assert fresh_id in store
    with pytest.raises(SessionExpired):
        simulated.record_position(old_id, START)


def test_sweeper_task_runs_and_stops(fake_clock):
    store = SessionStore(clock=fake_clock, max_age_s=10, sweep_interval_s=0.01)
    store.add(
        NavigationSession(
            id="nav_old",
            start=START,
            end=END,
            route_type="normal",
            steps=simulated_steps(START, END, "normal"),
            created_at=fake_clock(),
        )
    )
    fake_clock.advance(60)

    async def run():
        store.start_sweeper()
        await asyncio.sleep(0.05)
        await store.stop_sweeper()

    asyncio.run(run())
    assert "nav_old" not in store
    assert store._task is None


def test_recalculate_picks_accessible_variant(simulated):
    params = RouteParameters(maximum_incline=0.05, minimum_width=1.0)
    response = simulated.recalculate(HUALIEN_START, HUALIEN_END, "accessible", params)

    assert response.recalculated is True
    assert response.route.source == "synthetic"
    assert response.route.parameters == params
    assert response.total_steps == 3

    normal = simulated.recalculate(HUALIEN_START, HUALIEN_END, "normal", params)
    assert normal.route.source == "graph-fallback"


@pytest.mark.parametrize(
    "maneuver, name, distance, expected",
    [
        (OSRMManeuver(type="turn", modifier="right"), "Zhongshan Rd", 120, "Turn right onto Zhongshan Rd for 120 m"),
        (OSRMManeuver(type="turn", modifier="uturn"), "Zhongshan Rd", 0, "Turn onto Zhongshan Rd"),
        (OSRMManeuver(type="fork", modifier="slight left"), "", 30, "Keep left at the fork for 30 m"),
        (OSRMManeuver(type="roundabout", exit=2), "", 50, "Enter the roundabout and take exit 2 for 50 m"),
        (OSRMManeuver(type="new name"), "Linsen Rd", 80, "Continue along Linsen Rd for 80 m"),
        (OSRMManeuver(type="continue"), None, 10, "Continue straight along the current road for 10 m"),
        (None, "Linsen Rd", 10, "Continue along the current road"),
    ],
)
def test_instruction_for(maneuver, name, distance, expected):
    assert instruction_for(maneuver, name, distance) == expected


def test_unknown_maneuver_types_become_continue():
    steps = steps_from_maneuvers([OSRMStep(name="X", distance=5, maneuver=OSRMManeuver(type="merge"))])
    assert steps[0].maneuver == "continue"
    assert steps[0].coordinates == []


def test_simulated_session_tracks_progress_along_straight_line(simulated):
    nav_id = simulated.start(START, CORNER, "normal").navigation_id

    halfway = simulated.record_position(nav_id, [121.6025, 23.975])
    assert halfway.route_progress == pytest.approx(50.0, abs=1.0)

    near_end = simulated.record_position(nav_id, [121.6045, 23.975])
    assert near_end.route_progress > halfway.route_progress


def test_client_route_geometry_drives_progress(simulated):
    route_data = {"geometry": {"type": "LineString", "coordinates": [START, CORNER, END]}}
    nav_id = simulated.start(START, END, "normal", route_data=route_data).navigation_id

    at_corner = simulated.record_position(nav_id, CORNER)
    assert at_corner.route_progress == pytest.approx(82.0, abs=1.0)
