# tests/test_osrm_client.py
import httpx
import pytest

from conftest import HUALIEN_END, HUALIEN_START, osrm_payload, osrm_step, stub_router

from app.core.errors import RouterUnavailable
from app.core.result import Err, Ok
from app.models.routing import RouteParameters
from app.services.osrm_client import (
    OSRMClient,
    OSRMRoute,
    detect_barriers,
    format_route,
    is_route_wheelchair_suitable,
    parse_route,
)


def make_route(distance=500.0, steps=None) -> OSRMRoute:
    result = parse_route(osrm_payload(distance=distance, steps=steps))
    assert isinstance(result, Ok)
    return result.value


def test_detect_barriers_on_stairs():
    route = make_route(
        steps=[
            osrm_step("Zhongshan Rd", 100, "depart"),
            osrm_step("Station steps", 20, "turn", "left", tags={"highway": "steps"}),
        ]
    )
    barriers = detect_barriers(route)
    assert len(barriers) == 1
    assert barriers[0].type == "stairs"
    assert barriers[0].location == "Station steps"
    assert barriers[0].length_m == 20


def test_detect_barriers_access_and_track():
    route = make_route(
        steps=[
            osrm_step("", 50, "continue", tags={"access": "no"}),
            osrm_step("Farm track", 80, "continue", tags={"highway": "track"}),
            osrm_step("Private lane", 10, "continue", tags={"foot": "no"}),
        ]
    )
    assert [b.type for b in detect_barriers(route)] == ["access_denied", "rough_terrain", "unknown"]
    assert detect_barriers(route)[0].location == "unnamed segment"


def test_route_without_steps_has_no_barriers():
    assert detect_barriers(make_route(steps=[])) == []


def test_suitability_cutoffs():
    assert is_route_wheelchair_suitable(make_route(distance=2500.0)) is False
    assert is_route_wheelchair_suitable(make_route(distance=2000.0)) is True
    stairs = make_route(
        distance=500.0,
        steps=[osrm_step("Steps", 10, "continue", tags={"highway": "steps"})],
    )
    assert is_route_wheelchair_suitable(stairs) is False


@pytest.mark.parametrize(
    "payload",
    [
        None,
        [],
        {"code": "NoRoute", "routes": []},
        {"code": "Ok", "routes": []},
        {"code": "Ok", "routes": [{"distance": "far"}]},
    ],
)
def test_parse_route_errors(payload):
    result = parse_route(payload)
    assert isinstance(result, Err)
    assert isinstance(result.error, RouterUnavailable)


def test_format_route_plain_keeps_upstream_duration():
    route = format_route(make_route(distance=812.4))
    assert route.source == "external"
    assert route.distance_m == 812.0
    assert route.duration_s == 600
    assert route.duration_min == 10
    assert route.geometry.coordinates[0] == HUALIEN_START


def test_format_route_with_params_uses_speed_policy():
    params = RouteParameters(maximum_incline=0.05, minimum_width=0.9)
    route = format_route(make_route(distance=900.0), params)
    # low incline: 0.9 m/s
    assert route.duration_s == 1000
    assert route.accessibility.level == "high"
    assert route.parameters == params


def test_client_route_success_through_mock_transport():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["path"] = request.url.path
        seen["params"] = dict(request.url.params)
        return httpx.Response(200, json=osrm_payload())

    client = OSRMClient(
        base_url="http://osrm.test/",
        profile="foot",
        enabled=True,
        transport=httpx.MockTransport(handler),
    )
    result = client.route(HUALIEN_START, HUALIEN_END)

    assert isinstance(result, Ok)
    assert seen["path"].startswith("/route/v1/foot/121.606,23.975")
    assert seen["params"]["geometries"] == "geojson"
    assert seen["params"]["steps"] == "true"


def test_client_http_error_is_router_unavailable():
    result = stub_router(payload={"message": "boom"}, status_code=500).route(HUALIEN_START, HUALIEN_END)
    assert isinstance(result, Err)
    assert isinstance(result.error, RouterUnavailable)


def test_client_non_ok_code_is_router_unavailable():
    router = stub_router(payload={"code": "NoRoute", "message": "Impossible route"})
    with pytest.raises(RouterUnavailable):
        router.fetch_route(HUALIEN_START, HUALIEN_END)


def test_client_timeout_is_router_unavailable():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("timed out", request=request)

    router = OSRMClient(enabled=True, transport=httpx.MockTransport(handler))
    assert isinstance(router.route(HUALIEN_START, HUALIEN_END), Err)


def test_disabled_client_never_calls_out(disabled_router):
    with pytest.raises(RouterUnavailable):
        disabled_router.fetch_route(HUALIEN_START, HUALIEN_END)


def test_fetch_maneuvers_requires_steps():
    with pytest.raises(RouterUnavailable):
        stub_router().fetch_maneuvers(HUALIEN_START, HUALIEN_END)

    steps = stub_router(osrm_payload(steps=[osrm_step("Zhongshan Rd", 120, "depart")])).fetch_maneuvers(
        HUALIEN_START, HUALIEN_END
    )
    assert steps[0].name == "Zhongshan Rd"
