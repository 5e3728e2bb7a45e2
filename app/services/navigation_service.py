# app/services/navigation_service.py

import asyncio
import threading
import uuid
from collections import OrderedDict
from contextlib import suppress
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Sequence

from app.core.config import settings
from app.core.errors import RouterUnavailable, SessionExpired, SessionNotFound
from app.core.logger import logger
from app.models.navigation import (
    NavigationSessionView,
    NavigationStartResponse,
    NavigationStep,
    PositionSample,
    PositionUpdateResponse,
    RecalculateResponse,
)
from app.models.routing import RouteParameters
from app.services.geo import (
    distance_to_segment_m,
    haversine_m,
    is_valid_coordinate,
    route_progress_percent,
)
from app.services.osrm_client import OSRMClient, OSRMManeuver, OSRMStep
from app.services.routing_service import RoutingService

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


# ---------------------------------------------------------------------- #
# Session state
# ---------------------------------------------------------------------- #


@dataclass
class PositionRecord:
    coordinate: List[float]
    timestamp: datetime
    step_index: int


@dataclass
class NavigationSession:
    """
    Created -> Active -> Completed | Aborted | Expired.

    Mutated in place by position updates; owned by a SessionStore.
    """
    id: str
    start: List[float]
    end: List[float]
    route_type: str
    steps: List[NavigationStep]
    created_at: datetime
    route_coords: List[List[float]] = field(default_factory=list)
    current_step_index: int = 0
    status: str = "created"
    positions: List[PositionRecord] = field(default_factory=list)


class SessionStore:
    """
    Process-wide table of navigation sessions keyed by id.

    The clock is injectable so expiry can be tested without waiting; the
    periodic sweep runs as an asyncio task started/stopped by the app lifespan.
    """

    # How many swept ids to remember, so late callers get SessionExpired
    EXPIRED_MEMORY = 1024

    def __init__(
        self,
        clock: Clock = utc_now,
        max_age_s: Optional[float] = None,
        sweep_interval_s: Optional[float] = None,
    ) -> None:
        self.clock = clock
        self.max_age_s = settings.SESSION_MAX_AGE_S if max_age_s is None else max_age_s
        self.sweep_interval_s = (
            settings.SESSION_SWEEP_INTERVAL_S if sweep_interval_s is None else sweep_interval_s
        )
        self._sessions: Dict[str, NavigationSession] = {}
        self._expired: "OrderedDict[str, None]" = OrderedDict()
        self._lock = threading.Lock()
        self._task: Optional[asyncio.Task] = None

    def now(self) -> datetime:
        return self.clock()

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, session_id: str) -> bool:
        return session_id in self._sessions

    def add(self, session: NavigationSession) -> None:
        with self._lock:
            self._sessions[session.id] = session

    def get(self, session_id: str) -> NavigationSession:
        with self._lock:
            session = self._sessions.get(session_id)
            if session is not None:
                return session
            if session_id in self._expired:
                raise SessionExpired(session_id)
        raise SessionNotFound(session_id)

    def remove(self, session_id: str) -> Optional[NavigationSession]:
        with self._lock:
            return self._sessions.pop(session_id, None)

    def sweep(self) -> List[str]:
        """
        Drop every session older than max_age_s. Returns the removed ids.
        """
        now = self.now()
        removed: List[str] = []
        with self._lock:
            for session_id, session in list(self._sessions.items()):
                age = (now - session.created_at).total_seconds()
                if age > self.max_age_s:
                    session.status = "expired"
                    del self._sessions[session_id]
                    self._expired[session_id] = None
                    removed.append(session_id)
            while len(self._expired) > self.EXPIRED_MEMORY:
                self._expired.popitem(last=False)

        for session_id in removed:
            logger.info("Expired navigation session removed: {}", session_id)
        return removed

    async def _sweep_loop(self) -> None:
        while True:
            await asyncio.sleep(self.sweep_interval_s)
            self.sweep()

    def start_sweeper(self) -> None:
        if self._task is None or self._task.done():
            self._task = asyncio.get_running_loop().create_task(self._sweep_loop())
            logger.info(
                "Session sweeper started (every {:.0f} s, max age {:.0f} s)",
                self.sweep_interval_s,
                self.max_age_s,
            )

    async def stop_sweeper(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        with suppress(asyncio.CancelledError):
            await self._task
        self._task = None
        logger.info("Session sweeper stopped")


# ---------------------------------------------------------------------- #
# Instructions
# ---------------------------------------------------------------------- #

TURN_PHRASES = {
    "left": "Turn left onto",
    "right": "Turn right onto",
    "sharp left": "Make a sharp left onto",
    "sharp right": "Make a sharp right onto",
    "slight left": "Bear slightly left onto",
    "slight right": "Bear slightly right onto",
}

# OSRM maneuver types that map onto our smaller set
MANEUVER_ALIASES = {
    "rotary": "roundabout",
    "roundabout turn": "roundabout",
    "end of road": "turn",
    "new name": "continue",
    "notification": "continue",
}

MANEUVER_TYPES = ("depart", "continue", "turn", "fork", "roundabout", "arrive")


def normalize_maneuver(maneuver_type: Optional[str]) -> str:
    mtype = MANEUVER_ALIASES.get(maneuver_type or "", maneuver_type)
    return mtype if mtype in MANEUVER_TYPES else "continue"


def instruction_for(
    maneuver: Optional[OSRMManeuver],
    road_name: Optional[str],
    distance_m: float,
) -> str:
    """
    Human-readable instruction for one router maneuver.
    """
    if maneuver is None:
        return "Continue along the current road"

    dist_text = f" for {round(distance_m)} m" if distance_m > 0 else ""
    road_text = road_name or "the current road"
    mtype = normalize_maneuver(maneuver.type)

    if mtype == "depart":
        return f"Head out along {road_text}{dist_text}"
    if mtype == "arrive":
        return "You have arrived at your destination"
    if mtype == "turn":
        phrase = TURN_PHRASES.get(maneuver.modifier or "", "Turn onto")
        return f"{phrase} {road_text}{dist_text}"
    if mtype == "fork":
        side = "left" if "left" in (maneuver.modifier or "") else "right"
        return f"Keep {side} at the fork{dist_text}"
    if mtype == "roundabout":
        return f"Enter the roundabout and take exit {maneuver.exit or 1}{dist_text}"
    if maneuver.type == "continue":
        return f"Continue straight along {road_text}{dist_text}"
    return f"Continue along {road_text}{dist_text}"


def steps_from_maneuvers(osrm_steps: Sequence[OSRMStep]) -> List[NavigationStep]:
    steps: List[NavigationStep] = []
    for index, step in enumerate(osrm_steps):
        steps.append(
            NavigationStep(
                index=index,
                instruction=instruction_for(step.maneuver, step.name, step.distance),
                distance_m=round(step.distance),
                duration_min=round(step.duration / 60),
                coordinates=step.geometry.coordinates if step.geometry else [],
                maneuver=normalize_maneuver(step.maneuver.type if step.maneuver else None),
            )
        )
    return steps


def simulated_steps(
    start: Sequence[float],
    end: Sequence[float],
    route_type: str,
) -> List[NavigationStep]:
    """
    Three-step script used when no maneuver data is available:
    depart, continue for 60 % of the distance, arrive over the last 40 %.
    """
    total = haversine_m(start, end)
    middle = (
        "Continue along the accessible route"
        if route_type == "accessible"
        else "Continue along the planned route"
    )
    # 1.0 m/s walking pace, durations in minutes
    return [
        NavigationStep(
            index=0,
            instruction="Start navigating from your starting point",
            distance_m=0,
            duration_min=0,
            maneuver="depart",
        ),
        NavigationStep(
            index=1,
            instruction=middle,
            distance_m=round(total * 0.6),
            duration_min=round(total * 0.6 / 60),
            maneuver="continue",
        ),
        NavigationStep(
            index=2,
            instruction="You are approaching your destination",
            distance_m=round(total * 0.4),
            duration_min=round(total * 0.4 / 60),
            maneuver="arrive",
        ),
    ]


# ---------------------------------------------------------------------- #
# Service
# ---------------------------------------------------------------------- #


class NavigationService:
    """
    Turn-by-turn navigation sessions on top of the routing service.
    """

    ARRIVAL_RADIUS_M = 20.0
    NEXT_STEP_RADIUS_M = 15.0
    OFF_ROUTE_RADIUS_M = 50.0

    def __init__(
        self,
        routing_service: RoutingService,
        store: Optional[SessionStore] = None,
        router: Optional[OSRMClient] = None,
    ) -> None:
        self.routing_service = routing_service
        self.store = store if store is not None else SessionStore()
        self.router = router or routing_service.router

    # ------------------------------------------------------------------ #
    # Public API
    # ------------------------------------------------------------------ #

    def generate_steps(
        self,
        start: Sequence[float],
        end: Sequence[float],
        route_type: str,
    ) -> List[NavigationStep]:
        """
        Maneuver-level steps from the router, or the simulated script.
        """
        try:
            steps = steps_from_maneuvers(self.router.fetch_maneuvers(start, end))
        except RouterUnavailable as exc:
            logger.warning("Maneuver data unavailable ({}), using simulated steps", exc)
            steps = []

        if steps:
            logger.info("Generated {} navigation steps from router maneuvers", len(steps))
            return steps
        return simulated_steps(start, end, route_type)

    def start(
        self,
        start: Sequence[float],
        end: Sequence[float],
        route_type: str = "normal",
        route_data: Optional[Dict[str, Any]] = None,
    ) -> NavigationStartResponse:
        steps = self.generate_steps(start, end, route_type)
        created_at = self.store.now()
        session = NavigationSession(
            id=self._new_id(created_at),
            start=list(start),
            end=list(end),
            route_type=route_type,
            steps=steps,
            created_at=created_at,
            route_coords=self._route_coords(route_data, steps, start, end),
        )
        self.store.add(session)
        logger.info("Navigation session {} created with {} steps", session.id, len(steps))

        return NavigationStartResponse(
            navigation_id=session.id,
            steps=steps,
            total_steps=len(steps),
            total_distance=sum(s.distance_m for s in steps),
            estimated_duration=sum(s.duration_min for s in steps),
        )

    def record_position(
        self,
        navigation_id: str,
        position: Sequence[float],
        reported_step: Optional[int] = None,
    ) -> PositionUpdateResponse:
        """
        Process one position fix. Raises SessionNotFound for unknown or
        expired ids.
        """
        session = self.store.get(navigation_id)
        total = len(session.steps)

        step_index = session.current_step_index if reported_step is None else reported_step
        step_index = max(0, min(step_index, total - 1))

        session.positions.append(
            PositionRecord(
                coordinate=list(position),
                timestamp=self.store.now(),
                step_index=step_index,
            )
        )
        if session.status == "created":
            session.status = "active"

        completed = self.is_step_completed(session, step_index, position)
        off_route = self.is_off_route(session, step_index, position)

        next_instruction = None
        if completed:
            if step_index < total - 1:
                next_instruction = session.steps[step_index + 1].instruction
                session.current_step_index = step_index + 1
            else:
                session.current_step_index = step_index
                session.status = "completed"
                logger.info("Navigation session {} reached destination", navigation_id)
        else:
            session.current_step_index = step_index

        if off_route:
            logger.info("Navigation session {} is off route at step {}", navigation_id, step_index)

        return PositionUpdateResponse(
            step_completed=completed,
            off_route=off_route,
            next_instruction=next_instruction,
            current_step=step_index,
            progress=round(100 * (step_index + (1 if completed else 0)) / total),
            route_progress=round(route_progress_percent(position, session.route_coords), 1),
        )

    def recalculate(
        self,
        position: Sequence[float],
        end: Sequence[float],
        route_type: str = "normal",
        params: Optional[RouteParameters] = None,
    ) -> RecalculateResponse:
        """
        New route and steps from the current position. The old session is
        left untouched; callers start a new one with the returned data.
        """
        comparison = self.routing_service.compute_routes(
            position, end, params or RouteParameters(), mode=route_type
        )
        route = comparison.normal
        if route_type == "accessible" and comparison.accessible is not None:
            route = comparison.accessible

        steps = self.generate_steps(position, end, route_type)
        logger.info("Route recalculated from current position: {} steps", len(steps))
        return RecalculateResponse(route=route, steps=steps, total_steps=len(steps))

    def stop(self, navigation_id: str) -> bool:
        """
        End a session. Idempotent; returns whether a session was removed.
        """
        session = self.store.remove(navigation_id)
        if session is None:
            return False
        if session.status != "completed":
            session.status = "aborted"
        logger.info("Navigation session {} stopped", navigation_id)
        return True

    def get(self, navigation_id: str) -> NavigationSessionView:
        session = self.store.get(navigation_id)
        return NavigationSessionView(
            navigation_id=session.id,
            status=session.status,
            route_type=session.route_type,
            start=session.start,
            end=session.end,
            current_step=session.current_step_index,
            total_steps=len(session.steps),
            created_at=session.created_at.isoformat(),
            positions=[
                PositionSample(
                    coordinate=p.coordinate,
                    timestamp=p.timestamp.isoformat(),
                    step_index=p.step_index,
                )
                for p in session.positions
            ],
        )

    # ------------------------------------------------------------------ #
    # Checks
    # ------------------------------------------------------------------ #

    def is_step_completed(
        self,
        session: NavigationSession,
        step_index: int,
        position: Sequence[float],
    ) -> bool:
        total = len(session.steps)

        if step_index >= total - 1:
            return haversine_m(position, session.end) < self.ARRIVAL_RADIUS_M

        next_step = session.steps[step_index + 1]
        if next_step.coordinates:
            return haversine_m(position, next_step.coordinates[0]) < self.NEXT_STEP_RADIUS_M

        # No geometry: coarse index-ratio estimate
        step_progress = min(1.0, step_index / total)
        expected_progress = (step_index + 1) / total
        return step_progress >= expected_progress - 0.1

    def is_off_route(
        self,
        session: NavigationSession,
        step_index: int,
        position: Sequence[float],
    ) -> bool:
        """
        True when the position is more than OFF_ROUTE_RADIUS_M away from the
        current step's geometry. Steps without geometry never report off-route.
        """
        coords = session.steps[step_index].coordinates
        if not coords:
            return False

        if len(coords) == 1:
            min_dist = haversine_m(position, coords[0])
        else:
            min_dist = min(
                distance_to_segment_m(position, a, b)
                for a, b in zip(coords[:-1], coords[1:])
            )
        return min_dist > self.OFF_ROUTE_RADIUS_M

    # ------------------------------------------------------------------ #
    # Internal helpers
    # ------------------------------------------------------------------ #

    @staticmethod
    def _new_id(created_at: datetime) -> str:
        return f"nav_{int(created_at.timestamp() * 1000)}_{uuid.uuid4().hex[:9]}"

    @staticmethod
    def _route_coords(
        route_data: Optional[Dict[str, Any]],
        steps: Sequence[NavigationStep],
        start: Sequence[float],
        end: Sequence[float],
    ) -> List[List[float]]:
        """
        Full route polyline for progress tracking: the geometry of the route
        the client is following if it sent one, else the steps' geometry,
        else the straight line from start to end.
        """
        if route_data:
            geometry = route_data.get("geometry")
            given = geometry.get("coordinates") if isinstance(geometry, dict) else None
            if (
                isinstance(given, list)
                and len(given) >= 2
                and all(is_valid_coordinate(c) for c in given)
            ):
                return [list(c) for c in given]

        coords: List[List[float]] = []
        for step in steps:
            for c in step.coordinates:
                if not coords or coords[-1] != c:
                    coords.append(c)
        if len(coords) < 2:
            return [list(start), list(end)]
        return coords
