# app/models/datasets.py

from datetime import datetime, timezone
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from app.models.routing import RouteGeometry

Severity = Literal["low", "medium", "high", "critical"]
ReportStatus = Literal["reported", "verified", "resolved", "false_alarm"]


class Ramp(BaseModel):
    """
    A known wheelchair ramp, stored as a named point.
    """
    model_config = ConfigDict(frozen=True)

    name: str
    lon: float
    lat: float


class Obstacle(BaseModel):
    """
    A fixed obstacle point (stairs, steep slope, narrow path ...).
    coordinates is [lon, lat].
    """
    model_config = ConfigDict(frozen=True)

    type: str
    coordinates: List[float] = Field(min_length=2, max_length=2)


class AccessibleRoad(BaseModel):
    """
    A road segment surveyed as wheelchair friendly.
    """
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    coordinates: List[List[float]] = Field(min_length=2)
    width: float
    incline: float
    surface: str = "paved"
    has_ramp: bool = False


class ObstacleReportRequest(BaseModel):
    type: str = "other"
    location: List[float] = Field(min_length=2, max_length=2)
    description: str = ""
    severity: Severity = "medium"
    reporter: str = "anonymous"


class ObstacleReport(BaseModel):
    """
    A user-submitted obstacle report, after classification.
    """
    id: str
    type: str
    location: List[float]
    description: str = ""
    severity: Severity = "medium"
    reporter: str = "anonymous"
    status: ReportStatus = "reported"
    confidence: float = 0.5
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    resolved_at: Optional[datetime] = None


class ObstacleReportResponse(BaseModel):
    success: bool = True
    obstacle: ObstacleReport
    message: str


class RouteCheckRequest(BaseModel):
    """
    A planned route geometry to check against open obstacle reports.
    """
    route_geometry: RouteGeometry


class ObstacleTypesResponse(BaseModel):
    types: List[str]
    severity_levels: List[str]
