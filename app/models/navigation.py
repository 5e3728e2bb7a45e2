# app/models/navigation.py

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field

from app.models.routing import RouteParameters, RouteResult

ManeuverType = Literal["depart", "continue", "turn", "fork", "roundabout", "arrive"]


class NavigationStep(BaseModel):
    """
    One turn-by-turn instruction.

    duration_min is in minutes for every step kind (router steps and the
    synthetic script alike). coordinates may be empty for synthetic steps.
    """
    index: int
    instruction: str
    distance_m: float
    duration_min: float
    coordinates: List[List[float]] = []
    maneuver: ManeuverType = "continue"


class NavigationStartRequest(BaseModel):
    start: List[float]
    end: List[float]
    route_type: Literal["normal", "accessible"] = "normal"
    route_data: Optional[Dict[str, Any]] = None


class NavigationStartResponse(BaseModel):
    navigation_id: str
    steps: List[NavigationStep]
    total_steps: int
    total_distance: float
    estimated_duration: float


class PositionUpdateRequest(BaseModel):
    navigation_id: str
    current_position: List[float]
    current_step: Optional[int] = Field(default=None, ge=0)


class PositionUpdateResponse(BaseModel):
    step_completed: bool
    off_route: bool
    next_instruction: Optional[str] = None
    current_step: int
    progress: int
    route_progress: float = 0.0


class RecalculateRequest(BaseModel):
    current_position: List[float]
    end: List[float]
    route_type: Literal["normal", "accessible"] = "normal"
    params: RouteParameters = Field(default_factory=RouteParameters)


class RecalculateResponse(BaseModel):
    route: RouteResult
    steps: List[NavigationStep]
    total_steps: int
    recalculated: bool = True


class StopRequest(BaseModel):
    navigation_id: str


class StopResponse(BaseModel):
    success: bool = True
    message: str = "Navigation stopped"


class PositionSample(BaseModel):
    coordinate: List[float]
    timestamp: str
    step_index: int


class NavigationSessionView(BaseModel):
    """
    Read-only snapshot of a session, for GET /api/navigation/{id}.
    """
    navigation_id: str
    status: str
    route_type: str
    start: List[float]
    end: List[float]
    current_step: int
    total_steps: int
    created_at: str
    positions: List[PositionSample]
