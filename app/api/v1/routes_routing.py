# app/api/v1/routes_routing.py
from fastapi import APIRouter

from app.api.v1.dependencies import require_coordinates, routing_service
from app.models.routing import RouteComparison, RouteRequest, RouteResult

router = APIRouter(
    prefix="/api/route",
    tags=["routing"],
)


@router.post(
    "",
    response_model=RouteComparison,
    summary="General route plus an accessible alternative when available",
)
def compute_route(request: RouteRequest) -> RouteComparison:
    """
    Compute the general walking route and, when the destination has a ramp
    nearby or mode is "accessible", a wheelchair-friendly alternative.

    - External router first, then the fixed road graph, then a synthetic curve.
    - Never fails for valid coordinates.
    """
    require_coordinates(start=request.start, end=request.end)
    return routing_service.compute_routes(
        request.start, request.end, request.params, mode=request.mode
    )


@router.post(
    "/accessible",
    response_model=RouteResult,
    summary="Single route shaped by the accessibility parameters",
)
def compute_accessible_route(request: RouteRequest) -> RouteResult:
    require_coordinates(start=request.start, end=request.end)
    return routing_service.compute_accessible_route(request.start, request.end, request.params)


@router.post(
    "/graph",
    response_model=RouteResult,
    summary="Shortest path over the built-in road graph",
)
def compute_graph_route(request: RouteRequest) -> RouteResult:
    """
    Dijkstra over the Hualien road graph only; 422 when the snapped
    endpoints are not connected.
    """
    require_coordinates(start=request.start, end=request.end)
    return routing_service.compute_graph_route(request.start, request.end, request.params)
