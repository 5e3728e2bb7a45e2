# app/models/routing.py

from typing import Any, Dict, List, Literal, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

from app.core.config import settings

# (lon, lat) pair, the same order GeoJSON and OSRM use.
LonLat = Tuple[float, float]

RouteSource = Literal["external", "graph-fallback", "synthetic"]
AccessibilityLevel = Literal["basic", "medium", "high"]
BarrierType = Literal["stairs", "access_denied", "rough_terrain", "unknown"]


class RouteParameters(BaseModel):
    """
    Accessibility requirements supplied with a routing request.

    maximum_incline is a grade fraction (0.08 == 8 %), minimum_width is in metres.
    """
    model_config = ConfigDict(frozen=True)

    maximum_incline: float = Field(
        default_factory=lambda: settings.DEFAULT_MAX_INCLINE, ge=0.0, le=1.0
    )
    minimum_width: float = Field(
        default_factory=lambda: settings.DEFAULT_MIN_WIDTH, ge=0.0
    )


class Barrier(BaseModel):
    """
    A classified obstruction found in the router's step data.
    """
    model_config = ConfigDict(frozen=True)

    type: BarrierType
    location: str
    reason: str
    length_m: float = 0.0


class AccessibilityAssessment(BaseModel):
    model_config = ConfigDict(frozen=True)

    level: AccessibilityLevel
    score: float
    notes: str
    barriers: List[Barrier] = []
    suitable_for_wheelchair: bool = True


class RouteGeometry(BaseModel):
    """
    Geometry of the computed route as a GeoJSON LineString.

    coordinates is a list of [lon, lat] pairs, e.g.:
    [
        [121.606, 23.975],
        [121.607, 23.976],
        ...
    ]
    """
    model_config = ConfigDict(frozen=True)

    type: str = "LineString"
    coordinates: List[List[float]]


class RouteResult(BaseModel):
    """
    One walking route, whatever produced it.

    - distance_m / duration_s are the values used by the UI.
    - duration_min is the rounded minute figure shown for plain routes.
    - source says which strategy produced it (external / graph-fallback / synthetic).
    """
    model_config = ConfigDict(frozen=True)

    geometry: RouteGeometry
    distance_m: float = Field(ge=0.0)
    duration_s: float = Field(gt=0.0)
    duration_min: int = 0
    accessibility: AccessibilityAssessment
    source: RouteSource
    road_types: List[str] = []
    parameters: Optional[RouteParameters] = None


class RouteRequest(BaseModel):
    """
    Request body for the /api/route endpoints.

    start / end are [lon, lat] pairs; they are range-checked in the API layer
    so that bad input gets the "bad_coords" 400 instead of a generic 422.
    """
    start: List[float]
    end: List[float]
    params: RouteParameters = Field(default_factory=RouteParameters)
    mode: Literal["normal", "accessible"] = "normal"


class RouteComparison(BaseModel):
    """
    Response of /api/route: the general route plus, when available,
    a wheelchair-suitable alternative.
    """
    normal: RouteResult
    accessible: Optional[RouteResult] = None
    has_accessible_alternative: bool = False
    metadata: Dict[str, Any] = {}
