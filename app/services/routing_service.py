# app/services/routing_service.py

from datetime import datetime, timezone
from time import perf_counter
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from app.core.config import settings
from app.core.errors import NoConnectingPath, RouterUnavailable
from app.core.logger import logger
from app.core.result import Err, Ok, Result
from app.models.datasets import AccessibleRoad, Obstacle, Ramp
from app.models.routing import (
    RouteComparison,
    RouteGeometry,
    RouteParameters,
    RouteResult,
)
from app.services.accessibility import (
    accessible_duration_s,
    assess_parameters,
    template_for,
)
from app.services.datasets import load_accessible_roads, load_obstacles, load_ramps
from app.services.geo import haversine_m, polyline_length_m
from app.services.osrm_client import (
    OSRMClient,
    OSRMRoute,
    detect_barriers,
    format_route,
    is_route_wheelchair_suitable,
)
from app.services.road_graph import RoadGraph
from app.services.route_shapes import (
    TEMPLATES,
    avoid_obstacles,
    smooth_polyline,
    splice_accessible_roads,
    synthetic_curve,
)

Strategy = Tuple[str, Callable[[], Result[RouteResult]]]


class RoutingService:
    """
    High-level accessible routing service:
    - asks the external router for the general walking route
    - falls back to the fixed road graph, then to a synthetic curve
    - decides whether an accessible alternative can be offered
      (ramp near the destination, or accessible mode requested)
    - builds that alternative from the live route (barrier check) or from
      a synthetic template shaped by the accessibility parameters
    """

    def __init__(
        self,
        router: Optional[OSRMClient] = None,
        road_graph: Optional[RoadGraph] = None,
        ramps: Optional[Sequence[Ramp]] = None,
        obstacles: Optional[Sequence[Obstacle]] = None,
        accessible_roads: Optional[Sequence[AccessibleRoad]] = None,
        extra_obstacles: Optional[Callable[[], Sequence[Obstacle]]] = None,
    ) -> None:
        self.router = router if router is not None else OSRMClient()
        self.road_graph = road_graph if road_graph is not None else RoadGraph()
        self._ramps = ramps
        self._obstacles = obstacles
        self._accessible_roads = accessible_roads
        self._extra_obstacles = extra_obstacles
        logger.info("RoutingService initialised (router: {}).", self.router.base_url)

    # ------------------------------------------------------------------ #
    # Reference data
    # ------------------------------------------------------------------ #

    @property
    def ramps(self) -> Sequence[Ramp]:
        return load_ramps() if self._ramps is None else self._ramps

    @property
    def obstacles(self) -> List[Obstacle]:
        """
        Static obstacles plus any live ones (e.g. open user reports).
        """
        static = load_obstacles() if self._obstacles is None else self._obstacles
        live = self._extra_obstacles() if self._extra_obstacles else []
        return [*static, *live]

    @property
    def accessible_roads(self) -> Sequence[AccessibleRoad]:
        if self._accessible_roads is None:
            return load_accessible_roads()
        return self._accessible_roads

    def nearest_ramp(self, point: Sequence[float]) -> Optional[Tuple[Ramp, float]]:
        """
        Closest known ramp to point and its distance in metres.
        """
        best: Optional[Tuple[Ramp, float]] = None
        for ramp in self.ramps:
            d = haversine_m(point, (ramp.lon, ramp.lat))
            if best is None or d < best[1]:
                best = (ramp, d)
        return best

    def destination_has_ramp(self, point: Sequence[float]) -> bool:
        nearest = self.nearest_ramp(point)
        return nearest is not None and nearest[1] <= settings.RAMP_RADIUS_M

    def nearest_accessible_road(
        self,
        point: Sequence[float],
        params: RouteParameters,
    ) -> Optional[AccessibleRoad]:
        """
        Closest surveyed road (measured to its first point) that satisfies
        both the width and the incline requirement.
        """
        best = None
        best_dist = float("inf")
        for road in self.accessible_roads:
            if road.width < params.minimum_width or road.incline > params.maximum_incline:
                continue
            d = haversine_m(point, road.coordinates[0])
            if d < best_dist:
                best_dist = d
                best = road
        return best

    # ------------------------------------------------------------------ #
    # Public API
    # ------------------------------------------------------------------ #

    def compute_routes(
        self,
        start: Sequence[float],
        end: Sequence[float],
        params: RouteParameters,
        mode: str = "normal",
    ) -> RouteComparison:
        """
        Main entry point for the /api/route endpoint.

        Always returns a usable normal route; any unexpected failure while
        composing degrades to the synthetic fallback with no accessible
        alternative.
        """
        t0 = perf_counter()
        logger.info(
            "Routing request ({:.6f}, {:.6f}) -> ({:.6f}, {:.6f}), mode={}, params={}",
            start[0],
            start[1],
            end[0],
            end[1],
            mode,
            params.model_dump(),
        )

        try:
            comparison = self._compose(start, end, params, mode)
        except Exception:
            logger.exception("Route composition failed, returning fallback route")
            comparison = self._fallback_comparison(start, end, params, mode)

        logger.info(
            "Routing done in {:.2f} ms: normal={} ({:.0f} m), accessible={}",
            (perf_counter() - t0) * 1000.0,
            comparison.normal.source,
            comparison.normal.distance_m,
            comparison.has_accessible_alternative,
        )
        return comparison

    def compute_accessible_route(
        self,
        start: Sequence[float],
        end: Sequence[float],
        params: RouteParameters,
    ) -> RouteResult:
        """
        Single best-effort route shaped by the accessibility parameters.

        Live router result (speed/score from params) when available,
        otherwise the synthetic accessible template.
        """
        try:
            live = self.router.route(start, end)
            if isinstance(live, Ok):
                logger.info("Hybrid route: using live router result")
                return format_route(live.value, params)
            logger.warning("Hybrid route: router unavailable ({}), simulating", live.error)
            return self._synthetic_accessible_route(start, end, params)
        except Exception:
            logger.exception("Hybrid route failed, returning fallback route")
            return self._synthetic_route(start, end, params)

    def compute_graph_route(
        self,
        start: Sequence[float],
        end: Sequence[float],
        params: RouteParameters,
    ) -> RouteResult:
        """
        Route over the fixed road graph only. Raises NoConnectingPath.
        """
        return self.road_graph.compose_route(start, end, params)

    # ------------------------------------------------------------------ #
    # Composition
    # ------------------------------------------------------------------ #

    def _compose(
        self,
        start: Sequence[float],
        end: Sequence[float],
        params: RouteParameters,
        mode: str,
    ) -> RouteComparison:
        live = self.router.route(start, end)

        normal = self._first_ok([
            ("external", lambda: self._external_strategy(live)),
            ("graph-fallback", lambda: self._graph_strategy(start, end, params)),
            ("synthetic", lambda: Ok(self._synthetic_route(start, end, params))),
        ])

        nearest = self.nearest_ramp(end)
        has_ramp = self.destination_has_ramp(end)
        logger.info(
            "Ramp check for destination: nearest={}, within {:.0f} m: {}",
            f"{nearest[0].name} ({nearest[1]:.1f} m)" if nearest else None,
            settings.RAMP_RADIUS_M,
            has_ramp,
        )

        accessible: Optional[RouteResult] = None
        if has_ramp or mode == "accessible":
            if isinstance(live, Ok):
                accessible = self._accessible_from_live(live.value, params)
            else:
                accessible = self._synthetic_accessible_route(start, end, params)
        else:
            logger.info("No ramp near destination and normal mode: no accessible route")

        metadata = self._metadata(normal, end, params, mode)
        metadata["nearest_ramp"] = (
            {"name": nearest[0].name, "distance_m": round(nearest[1], 1)} if nearest else None
        )
        metadata["destination_has_ramp"] = has_ramp

        return RouteComparison(
            normal=normal,
            accessible=accessible,
            has_accessible_alternative=accessible is not None,
            metadata=metadata,
        )

    def _first_ok(self, strategies: List[Strategy]) -> RouteResult:
        """
        Evaluate strategies in order and return the first successful route.
        """
        for name, strategy in strategies:
            result = strategy()
            if isinstance(result, Ok):
                logger.info("Normal route produced by strategy '{}'", name)
                return result.value
            logger.warning("Strategy '{}' failed: {}", name, result.error)
        raise RouterUnavailable("Routing temporarily unavailable")

    def _external_strategy(self, live: Result[OSRMRoute]) -> Result[RouteResult]:
        if isinstance(live, Err):
            return live
        return Ok(format_route(live.value))

    def _graph_strategy(
        self,
        start: Sequence[float],
        end: Sequence[float],
        params: RouteParameters,
    ) -> Result[RouteResult]:
        try:
            return Ok(self.road_graph.compose_route(start, end, params))
        except NoConnectingPath as exc:
            return Err(exc)

    def _accessible_from_live(
        self,
        route: OSRMRoute,
        params: RouteParameters,
    ) -> Optional[RouteResult]:
        """
        The live route is offered as accessible only if it has no barriers
        and is within the wheelchair distance limit; otherwise None.
        """
        barriers = detect_barriers(route)
        if not is_route_wheelchair_suitable(route):
            logger.info(
                "Live route rejected as accessible: {}",
                "barriers present" if barriers else "too long",
            )
            return None

        logger.info("Live route is wheelchair suitable")
        return format_route(route, params)

    def _synthetic_route(
        self,
        start: Sequence[float],
        end: Sequence[float],
        params: RouteParameters,
    ) -> RouteResult:
        coords = synthetic_curve(start, end)
        return self._route_from_coords(coords, params)

    def _synthetic_accessible_route(
        self,
        start: Sequence[float],
        end: Sequence[float],
        params: RouteParameters,
    ) -> RouteResult:
        """
        1. Template picked by parameter strictness.
        2. Splice nearest qualifying accessible roads at both ends.
        3. Skip points near obstacles, then remove jagged vertices.
        """
        template = template_for(params)
        base = TEMPLATES[template](start, end)

        coords = splice_accessible_roads(
            base,
            self.nearest_accessible_road(start, params),
            self.nearest_accessible_road(end, params),
        )
        coords = avoid_obstacles(coords, self.obstacles, settings.OBSTACLE_RADIUS_M)
        coords = smooth_polyline(coords, settings.SMOOTHING_ANGLE_DEG)
        if len(coords) < 2:
            coords = base

        logger.info(
            "Synthetic accessible route: template={}, {} points",
            template,
            len(coords),
        )
        return self._route_from_coords(coords, params)

    def _route_from_coords(
        self,
        coords: List[List[float]],
        params: RouteParameters,
    ) -> RouteResult:
        distance_m = polyline_length_m(coords)
        duration_s = accessible_duration_s(distance_m, params)
        return RouteResult(
            geometry=RouteGeometry(coordinates=coords),
            distance_m=distance_m,
            duration_s=duration_s,
            duration_min=round(duration_s / 60),
            accessibility=assess_parameters(params),
            source="synthetic",
            parameters=params,
        )

    def _fallback_comparison(
        self,
        start: Sequence[float],
        end: Sequence[float],
        params: RouteParameters,
        mode: str,
    ) -> RouteComparison:
        normal = self._synthetic_route(start, end, params)
        metadata = self._metadata(normal, end, params, mode)
        metadata["note"] = "fallback route"
        return RouteComparison(
            normal=normal,
            accessible=None,
            has_accessible_alternative=False,
            metadata=metadata,
        )

    def _metadata(
        self,
        normal: RouteResult,
        end: Sequence[float],
        params: RouteParameters,
        mode: str,
    ) -> Dict[str, Any]:
        return {
            "source": normal.source,
            "fallback": normal.source != "external",
            "mode": mode,
            "parameters": params.model_dump(),
            "normal_destination": list(end),
            "accessible_destination": list(end),
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "units": {"distance": "meters", "duration": "seconds", "speed": "m/s"},
        }
