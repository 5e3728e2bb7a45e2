# app/services/obstacle_service.py
"""
User-reported obstacles.

Reports are scored by an optional classifier (typically an LLM behind a
prompt -> text call). The classifier is never trusted: a missing
classifier, an exception or an unparsable answer all fall back to fixed
defaults, so a report is always accepted.
"""

import json
import threading
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Dict, List, Optional, Protocol, Sequence, get_args

from pydantic import BaseModel, Field, TypeAdapter, ValidationError

from app.core.errors import ClassificationUnavailable
from app.core.logger import logger
from app.models.datasets import Obstacle, ObstacleReport, ObstacleReportRequest, Severity
from app.services.geo import haversine_m

DEFAULT_CONFIDENCE = 0.3
ON_ROUTE_RADIUS_M = 50.0

OBSTACLE_TYPES = (
    "construction",
    "road_closure",
    "stepped_path",
    "narrow_passage",
    "surface_issue",
    "elevator_outage",
    "ramp_blocked",
    "other",
)
SEVERITY_LEVELS = get_args(Severity)

USER_MESSAGES = {
    "construction": "Construction recorded; other users will be routed around it.",
    "road_closure": "Road closure recorded; route planning will avoid it.",
    "stepped_path": "Stepped path recorded; accessible routes will be re-planned.",
    "ramp_blocked": "Blocked ramp recorded; looking for alternative entrances.",
}
DEFAULT_USER_MESSAGE = "Obstacle report recorded, thank you for your help!"

ROUTE_SUGGESTIONS = {
    "construction": "Construction ahead, consider an alternative road",
    "road_closure": "Road closed, a detour has been planned",
    "stepped_path": "This section has steps and is not wheelchair accessible",
    "ramp_blocked": "Accessible ramp blocked, look for another entrance",
    "narrow_passage": "Narrow passage, prefer a wider route",
}
DEFAULT_ROUTE_SUGGESTION = "Obstacle ahead, consider changing route"


class ObstacleClassifier(Protocol):
    def classify(self, prompt: str) -> str:
        ...


class Classification(BaseModel):
    confidence: float = Field(default=0.5, ge=0.0, le=1.0)
    suggested_type: Optional[str] = None
    suggested_severity: Optional[Severity] = None
    reason: str = ""


class RouteObstacleCheck(BaseModel):
    has_obstacles: bool
    obstacles: List[ObstacleReport]
    suggestions: List[str]
    warning: Optional[str] = None


def build_prompt(report: ObstacleReport) -> str:
    return (
        "Assess the credibility and type of this obstacle report.\n\n"
        f"Description: {report.description}\n"
        f"Reported type: {report.type}\n"
        f"Severity: {report.severity}\n\n"
        "Answer with JSON only:\n"
        '{"confidence": 0.0-1.0, '
        '"suggested_type": "construction|road_closure|stepped_path|...", '
        '"suggested_severity": "low|medium|high|critical", '
        '"reason": "..."}'
    )


def parse_classification(answer: str) -> Classification:
    """
    Parse the classifier's JSON answer. Raises ClassificationUnavailable.
    """
    try:
        return Classification.model_validate(json.loads(answer))
    except (TypeError, json.JSONDecodeError, ValidationError) as exc:
        raise ClassificationUnavailable(f"Unusable classifier answer: {exc}") from exc


class ObstacleService:
    """
    In-memory registry of obstacle reports with an optional JSON snapshot.
    """

    def __init__(
        self,
        classifier: Optional[ObstacleClassifier] = None,
        snapshot_path: Optional[Path] = None,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ) -> None:
        self.classifier = classifier
        self.snapshot_path = snapshot_path
        self.clock = clock
        self._reports: Dict[str, ObstacleReport] = {}
        self._lock = threading.Lock()
        self._load_snapshot()

    # ------------------------------------------------------------------ #
    # Public API
    # ------------------------------------------------------------------ #

    def report(self, request: ObstacleReportRequest) -> ObstacleReport:
        now = self.clock()
        report = ObstacleReport(
            id=f"obs_{int(now.timestamp() * 1000)}_{uuid.uuid4().hex[:9]}",
            type=request.type,
            location=request.location,
            description=request.description,
            severity=request.severity,
            reporter=request.reporter,
            created_at=now,
        )

        classification = self.classify(report)
        report = report.model_copy(
            update={
                "confidence": classification.confidence,
                "type": classification.suggested_type or report.type,
                "severity": classification.suggested_severity or report.severity,
            }
        )

        with self._lock:
            self._reports[report.id] = report
        self._save_snapshot()

        logger.info(
            "Obstacle report {} recorded: type={}, confidence={:.2f}",
            report.id,
            report.type,
            report.confidence,
        )
        return report

    def classify(self, report: ObstacleReport) -> Classification:
        """
        Ask the classifier, falling back to default values on any failure.
        """
        fallback = Classification(
            confidence=DEFAULT_CONFIDENCE,
            suggested_type=report.type,
            suggested_severity=report.severity,
            reason="classifier unavailable, defaults used",
        )
        if self.classifier is None:
            return fallback

        try:
            answer = self.classifier.classify(build_prompt(report))
            return parse_classification(answer)
        except ClassificationUnavailable as exc:
            logger.warning("Obstacle classification failed: {}", exc)
        except Exception as exc:
            logger.warning("Obstacle classifier raised {}: {}", type(exc).__name__, exc)
        return fallback

    def user_message(self, report: ObstacleReport) -> str:
        return USER_MESSAGES.get(report.type, DEFAULT_USER_MESSAGE)

    def get(self, report_id: str) -> Optional[ObstacleReport]:
        return self._reports.get(report_id)

    def active_obstacles(self) -> List[ObstacleReport]:
        return [r for r in self._reports.values() if r.status != "resolved"]

    def active_obstacle_points(self) -> List[Obstacle]:
        """
        Open reports in the shape the route composer avoids.
        """
        return [Obstacle(type=r.type, coordinates=r.location) for r in self.active_obstacles()]

    def obstacles_near(
        self,
        center: Sequence[float],
        radius_m: float = 500.0,
    ) -> List[ObstacleReport]:
        nearby = [r for r in self.active_obstacles() if haversine_m(center, r.location) <= radius_m]
        return sorted(nearby, key=lambda r: r.confidence, reverse=True)

    def check_route(self, coords: Sequence[Sequence[float]]) -> RouteObstacleCheck:
        """
        Open reports within ON_ROUTE_RADIUS_M of any route vertex.
        """
        on_route = [
            r
            for r in self.active_obstacles()
            if any(haversine_m(c, r.location) < ON_ROUTE_RADIUS_M for c in coords)
        ]
        return RouteObstacleCheck(
            has_obstacles=bool(on_route),
            obstacles=on_route,
            suggestions=[ROUTE_SUGGESTIONS.get(r.type, DEFAULT_ROUTE_SUGGESTION) for r in on_route],
            warning=f"{len(on_route)} reported obstacle(s) on this route" if on_route else None,
        )

    def resolve(self, report_id: str) -> bool:
        with self._lock:
            report = self._reports.get(report_id)
            if report is None:
                return False
            self._reports[report_id] = report.model_copy(
                update={"status": "resolved", "resolved_at": self.clock()}
            )
        self._save_snapshot()
        logger.info("Obstacle report {} resolved", report_id)
        return True

    # ------------------------------------------------------------------ #
    # Snapshot
    # ------------------------------------------------------------------ #

    def _save_snapshot(self) -> None:
        if self.snapshot_path is None:
            return
        with self._lock:
            data = [r.model_dump(mode="json") for r in self._reports.values()]
        try:
            self.snapshot_path.parent.mkdir(parents=True, exist_ok=True)
            with self.snapshot_path.open("w", encoding="utf-8") as handle:
                json.dump(data, handle, ensure_ascii=False, indent=2)
        except OSError as exc:
            logger.error("Could not write obstacle snapshot {}: {}", self.snapshot_path, exc)

    def _load_snapshot(self) -> None:
        if self.snapshot_path is None or not self.snapshot_path.exists():
            return
        try:
            with self.snapshot_path.open("r", encoding="utf-8") as handle:
                reports = TypeAdapter(List[ObstacleReport]).validate_python(json.load(handle))
        except (OSError, json.JSONDecodeError, ValidationError) as exc:
            logger.warning("Could not load obstacle snapshot {}: {}", self.snapshot_path, exc)
            return
        self._reports = {r.id: r for r in reports}
        logger.info("Loaded {} obstacle reports from {}", len(reports), self.snapshot_path.name)
