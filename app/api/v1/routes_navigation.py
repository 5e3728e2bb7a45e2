# app/api/v1/routes_navigation.py
from fastapi import APIRouter

from app.api.v1.dependencies import navigation_service, require_coordinates
from app.models.navigation import (
    NavigationSessionView,
    NavigationStartRequest,
    NavigationStartResponse,
    PositionUpdateRequest,
    PositionUpdateResponse,
    RecalculateRequest,
    RecalculateResponse,
    StopRequest,
    StopResponse,
)

router = APIRouter(
    prefix="/api/navigation",
    tags=["navigation"],
)


@router.post("/start", response_model=NavigationStartResponse, summary="Start a navigation session")
def start_navigation(request: NavigationStartRequest) -> NavigationStartResponse:
    require_coordinates(start=request.start, end=request.end)
    return navigation_service.start(
        request.start, request.end, request.route_type, request.route_data
    )


@router.post(
    "/position",
    response_model=PositionUpdateResponse,
    summary="Report the current position of a session",
)
def update_position(request: PositionUpdateRequest) -> PositionUpdateResponse:
    """
    Step completion, off-route flag and progress for one position fix.
    Unknown or expired sessions answer 404.
    """
    require_coordinates(current_position=request.current_position)
    return navigation_service.record_position(
        request.navigation_id, request.current_position, request.current_step
    )


@router.post(
    "/recalculate",
    response_model=RecalculateResponse,
    summary="New route and steps from the current position",
)
def recalculate_route(request: RecalculateRequest) -> RecalculateResponse:
    require_coordinates(current_position=request.current_position, end=request.end)
    return navigation_service.recalculate(
        request.current_position, request.end, request.route_type, request.params
    )


@router.post("/stop", response_model=StopResponse, summary="Stop a navigation session")
def stop_navigation(request: StopRequest) -> StopResponse:
    # Idempotent: stopping an unknown session still succeeds
    navigation_service.stop(request.navigation_id)
    return StopResponse()


@router.get(
    "/{navigation_id}",
    response_model=NavigationSessionView,
    summary="Inspect a navigation session",
)
def get_navigation(navigation_id: str) -> NavigationSessionView:
    return navigation_service.get(navigation_id)
