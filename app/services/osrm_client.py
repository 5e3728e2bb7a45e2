# app/services/osrm_client.py
"""HTTP client and response handling for the external OSRM walking router."""

from time import perf_counter
from typing import Any, Dict, List, Optional, Sequence

import httpx
from pydantic import BaseModel, ValidationError

from app.core.config import settings
from app.core.errors import RouterUnavailable
from app.core.logger import logger
from app.core.result import Err, Ok, Result
from app.models.routing import Barrier, RouteGeometry, RouteParameters, RouteResult
from app.services.accessibility import accessible_duration_s, assess_parameters

UNKNOWN_LOCATION = "unnamed segment"

BARRIER_REASONS = {
    "stairs": "Route contains stairs",
    "access_denied": "No public access",
    "rough_terrain": "Off-road track, not suitable for wheelchairs",
    "unknown": "Possibly unsuitable for wheelchairs",
}


# ---------------------------------------------------------------------- #
# OSRM payload
# ---------------------------------------------------------------------- #


class OSRMManeuver(BaseModel):
    type: str = "continue"
    modifier: Optional[str] = None
    exit: Optional[int] = None


class OSRMStepGeometry(BaseModel):
    type: str = "LineString"
    coordinates: List[List[float]] = []


class OSRMStep(BaseModel):
    name: Optional[str] = ""
    distance: float = 0.0
    duration: float = 0.0
    geometry: Optional[OSRMStepGeometry] = None
    maneuver: Optional[OSRMManeuver] = None
    # OSM way tags (highway / access / foot), when the server annotates them
    tags: Dict[str, Any] = {}


class OSRMLeg(BaseModel):
    distance: float = 0.0
    duration: float = 0.0
    steps: List[OSRMStep] = []


class OSRMRoute(BaseModel):
    distance: float
    duration: float
    geometry: RouteGeometry
    legs: List[OSRMLeg] = []

    @property
    def steps(self) -> List[OSRMStep]:
        return [step for leg in self.legs for step in leg.steps]


class OSRMResponse(BaseModel):
    code: str
    message: Optional[str] = None
    routes: List[OSRMRoute] = []


def parse_route(data: Any) -> Result[OSRMRoute]:
    """
    Turn a raw OSRM /route response into the first route, or an Err.

    This is the only place that looks inside the upstream payload; the rest
    of the code works with the validated OSRMRoute model.
    """
    if not isinstance(data, dict):
        return Err(RouterUnavailable("OSRM response is not a JSON object"))

    if data.get("code") != "Ok":
        return Err(RouterUnavailable(f"OSRM returned code {data.get('code')!r}"))

    try:
        response = OSRMResponse.model_validate(data)
    except ValidationError as exc:
        return Err(RouterUnavailable(f"Malformed OSRM response: {exc.error_count()} errors"))

    if not response.routes:
        return Err(RouterUnavailable("OSRM returned no routes"))

    return Ok(response.routes[0])


# ---------------------------------------------------------------------- #
# Barrier classification
# ---------------------------------------------------------------------- #


def is_definite_barrier(step: OSRMStep) -> bool:
    highway = step.tags.get("highway")
    if highway in ("steps", "track"):
        return True
    if "steps" in (step.name or "").lower():
        return True
    return step.tags.get("access") == "no" or step.tags.get("foot") == "no"


def barrier_type(step: OSRMStep) -> str:
    highway = step.tags.get("highway")
    if highway == "steps":
        return "stairs"
    if step.tags.get("access") == "no":
        return "access_denied"
    if highway == "track":
        return "rough_terrain"
    return "unknown"


def detect_barriers(route: OSRMRoute) -> List[Barrier]:
    """
    Classify every leg step of the route and return the definite barriers,
    in route order. A route without step data has no detectable barriers.
    """
    barriers: List[Barrier] = []

    for step in route.steps:
        if not is_definite_barrier(step):
            continue
        kind = barrier_type(step)
        barrier = Barrier(
            type=kind,
            location=step.name or UNKNOWN_LOCATION,
            reason=BARRIER_REASONS[kind],
            length_m=step.distance,
        )
        logger.info("Barrier found: {} - {}", barrier.location, barrier.reason)
        barriers.append(barrier)

    return barriers


def is_route_wheelchair_suitable(
    route: OSRMRoute,
    max_distance_m: Optional[float] = None,
) -> bool:
    """
    Hard cutoff: no barriers at all and not longer than max_distance_m.
    """
    limit = settings.MAX_WHEELCHAIR_DISTANCE_M if max_distance_m is None else max_distance_m
    return not detect_barriers(route) and route.distance <= limit


def format_route(route: OSRMRoute, params: Optional[RouteParameters] = None) -> RouteResult:
    """
    Convert an OSRM route to a RouteResult.

    Without params (plain route) the upstream duration is kept and
    duration_min is it rounded to minutes; with params the duration comes
    from the accessibility speed policy. The geometry is copied verbatim.
    """
    distance_m = float(round(route.distance))
    barriers = detect_barriers(route)

    if params is None:
        duration_s = max(1, round(route.duration))
        duration_min = round(route.duration / 60)
    else:
        duration_s = accessible_duration_s(distance_m, params)
        duration_min = round(duration_s / 60)

    assessment = assess_parameters(params or RouteParameters(), barriers).model_copy(
        update={"suitable_for_wheelchair": is_route_wheelchair_suitable(route)}
    )

    return RouteResult(
        geometry=route.geometry,
        distance_m=distance_m,
        duration_s=duration_s,
        duration_min=duration_min,
        accessibility=assessment,
        source="external",
        parameters=params,
    )


# ---------------------------------------------------------------------- #
# HTTP client
# ---------------------------------------------------------------------- #


class OSRMClient:
    """
    Blocking client for the OSRM /route service.

    Every failure (transport error, timeout, non-2xx, non-"Ok" code) is
    reported as RouterUnavailable; there are no retries, callers fall back.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        profile: Optional[str] = None,
        timeout: Optional[float] = None,
        enabled: Optional[bool] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.base_url = (base_url or settings.OSRM_BASE_URL).rstrip("/")
        self.profile = profile or settings.OSRM_PROFILE
        self.timeout = timeout if timeout is not None else settings.OSRM_TIMEOUT_S
        self.enabled = settings.OSRM_ENABLED if enabled is None else enabled
        self._transport = transport

    def _get_client(self) -> httpx.Client:
        return httpx.Client(
            timeout=httpx.Timeout(self.timeout, connect=min(self.timeout, 5.0)),
            transport=self._transport,
        )

    def fetch_route(
        self,
        start: Sequence[float],
        end: Sequence[float],
        steps: bool = True,
    ) -> Dict[str, Any]:
        """
        Request a walking route with full GeoJSON geometry.

        Returns the raw JSON body; raises RouterUnavailable on any failure.
        """
        if not self.enabled:
            raise RouterUnavailable("OSRM routing is disabled")

        coordinate_str = f"{start[0]},{start[1]};{end[0]},{end[1]}"
        url = f"{self.base_url}/route/v1/{self.profile}/{coordinate_str}"
        params = {
            "overview": "full",
            "geometries": "geojson",
            "steps": "true" if steps else "false",
        }

        t0 = perf_counter()
        try:
            with self._get_client() as client:
                response = client.get(url, params=params)
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPStatusError as exc:
            logger.warning("OSRM returned HTTP {}", exc.response.status_code)
            raise RouterUnavailable(f"OSRM HTTP {exc.response.status_code}") from exc
        except httpx.HTTPError as exc:
            logger.warning("OSRM request failed: {}", exc)
            raise RouterUnavailable("OSRM request failed") from exc
        except ValueError as exc:
            logger.warning("OSRM returned a non-JSON body")
            raise RouterUnavailable("OSRM returned a non-JSON body") from exc

        if not isinstance(data, dict) or data.get("code") != "Ok":
            code = data.get("code") if isinstance(data, dict) else None
            logger.warning("OSRM responded with code {!r}", code)
            raise RouterUnavailable(f"OSRM returned code {code!r}")

        logger.info("OSRM route fetched in {:.2f} ms", (perf_counter() - t0) * 1000.0)
        return data

    def route(self, start: Sequence[float], end: Sequence[float]) -> Result[OSRMRoute]:
        """
        fetch_route + parse_route, folded into a single Result.
        """
        try:
            data = self.fetch_route(start, end)
        except RouterUnavailable as exc:
            return Err(exc)
        return parse_route(data)

    def fetch_maneuvers(self, start: Sequence[float], end: Sequence[float]) -> List[OSRMStep]:
        """
        Leg steps (with maneuver data) for turn-by-turn navigation.
        """
        result = self.route(start, end)
        if isinstance(result, Err):
            raise result.error
        steps = result.value.steps
        if not steps:
            raise RouterUnavailable("OSRM returned no step data")
        return steps
