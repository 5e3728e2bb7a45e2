# app/api/v1/routes_obstacles.py
from typing import List

from fastapi import APIRouter, HTTPException, Query

from app.api.v1.dependencies import obstacle_service, require_coordinates
from app.models.datasets import (
    ObstacleReport,
    ObstacleReportRequest,
    ObstacleReportResponse,
    ObstacleTypesResponse,
    RouteCheckRequest,
)
from app.services.obstacle_service import OBSTACLE_TYPES, SEVERITY_LEVELS, RouteObstacleCheck

router = APIRouter(
    prefix="/api/obstacles",
    tags=["obstacles"],
)


@router.post("", response_model=ObstacleReportResponse, summary="Report an obstacle")
def report_obstacle(request: ObstacleReportRequest) -> ObstacleReportResponse:
    require_coordinates(location=request.location)
    report = obstacle_service.report(request)
    return ObstacleReportResponse(
        obstacle=report,
        message=obstacle_service.user_message(report),
    )


@router.get("", response_model=List[ObstacleReport], summary="Open reports near a point")
def list_obstacles(
    lon: float = Query(...),
    lat: float = Query(...),
    radius: float = Query(500.0, gt=0.0),
) -> List[ObstacleReport]:
    require_coordinates(center=[lon, lat])
    return obstacle_service.obstacles_near([lon, lat], radius)


@router.get("/types", response_model=ObstacleTypesResponse, summary="Known obstacle types")
def obstacle_types() -> ObstacleTypesResponse:
    return ObstacleTypesResponse(types=list(OBSTACLE_TYPES), severity_levels=list(SEVERITY_LEVELS))


@router.post(
    "/check-route",
    response_model=RouteObstacleCheck,
    summary="Open reports along a planned route",
)
def check_route(request: RouteCheckRequest) -> RouteObstacleCheck:
    """
    Flags every open report within 50 m of a route vertex, with a
    suggestion per report.
    """
    coords = request.route_geometry.coordinates
    for index, point in enumerate(coords):
        require_coordinates(**{f"route_geometry[{index}]": point})
    return obstacle_service.check_route(coords)


@router.post(
    "/{report_id}/resolve",
    response_model=ObstacleReport,
    summary="Mark a report as resolved",
)
def resolve_obstacle(report_id: str) -> ObstacleReport:
    if not obstacle_service.resolve(report_id):
        raise HTTPException(
            status_code=404,
            detail={"error": "obstacle_not_found", "id": report_id},
        )
    return obstacle_service.get(report_id)
