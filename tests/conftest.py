# tests/conftest.py
import json
import os
import sys
from datetime import datetime, timedelta, timezone

import httpx
import pytest

# Add the project root directory to sys.path so that "import app" works
PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from app.models.datasets import AccessibleRoad, Obstacle, Ramp  # noqa: E402
from app.services.osrm_client import OSRMClient  # noqa: E402

# Hualien scenario: snaps to node 6 and node 9 of the road graph
HUALIEN_START = [121.606, 23.975]
HUALIEN_END = [121.611, 23.979]


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: datetime = datetime(2024, 1, 1, 8, 0, tzinfo=timezone.utc)):
        self.current = start

    def __call__(self) -> datetime:
        return self.current

    def advance(self, seconds: float) -> None:
        self.current += timedelta(seconds=seconds)


def osrm_payload(distance=800.0, duration=600.0, steps=None, coords=None):
    """
    Minimal OSRM /route body with one route and one leg.
    """
    coords = coords or [HUALIEN_START, [121.608, 23.977], HUALIEN_END]
    return {
        "code": "Ok",
        "routes": [
            {
                "distance": distance,
                "duration": duration,
                "geometry": {"type": "LineString", "coordinates": coords},
                "legs": [
                    {
                        "distance": distance,
                        "duration": duration,
                        "steps": steps if steps is not None else [],
                    }
                ],
            }
        ],
    }


def osrm_step(name, distance, maneuver_type, modifier=None, coords=None, tags=None):
    step = {
        "name": name,
        "distance": distance,
        "duration": distance,
        "geometry": {"type": "LineString", "coordinates": coords or []},
        "maneuver": {"type": maneuver_type},
    }
    if modifier:
        step["maneuver"]["modifier"] = modifier
    if tags:
        step["tags"] = tags
    return step


def stub_router(payload=None, status_code=200):
    """
    OSRMClient whose HTTP calls are answered by an httpx.MockTransport.
    """
    body = osrm_payload() if payload is None else payload

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status_code, json=body)

    return OSRMClient(
        base_url="http://osrm.test",
        enabled=True,
        transport=httpx.MockTransport(handler),
    )


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def disabled_router():
    return OSRMClient(enabled=False)


@pytest.fixture
def ramps():
    return [
        Ramp(name="Zhongshan Rd ramp", lon=121.605, lat=23.976),
        Ramp(name="Zhongzheng Rd sidewalk ramp", lon=121.609, lat=23.975),
    ]


@pytest.fixture
def obstacles():
    return [Obstacle(type="stairs", coordinates=[121.606, 23.977])]


@pytest.fixture
def accessible_roads():
    return [
        AccessibleRoad(
            id="road-1",
            name="Zhongshan Rd",
            coordinates=[[121.602, 23.974], [121.603, 23.975]],
            width=1.5,
            incline=0.02,
        ),
        AccessibleRoad(
            id="road-narrow",
            name="Back alley",
            coordinates=[[121.611, 23.978], [121.611, 23.979]],
            width=0.7,
            incline=0.02,
        ),
    ]


@pytest.fixture
def dataset_dir(tmp_path):
    """
    Temporary DATA_DIR with one record per dataset.
    """
    (tmp_path / "ramps.json").write_text(
        json.dumps([{"name": "Test ramp", "lon": 121.6, "lat": 23.97}]), encoding="utf-8"
    )
    (tmp_path / "obstacles.json").write_text(
        json.dumps([{"type": "stairs", "coordinates": [121.6, 23.97]}]), encoding="utf-8"
    )
    (tmp_path / "accessible_roads.json").write_text(
        json.dumps(
            [
                {
                    "id": "r1",
                    "name": "Test road",
                    "coordinates": [[121.6, 23.97], [121.601, 23.971]],
                    "width": 1.5,
                    "incline": 0.02,
                }
            ]
        ),
        encoding="utf-8",
    )
    return tmp_path
