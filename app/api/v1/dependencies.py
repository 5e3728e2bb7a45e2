# app/api/v1/dependencies.py
"""
Single shared service instances used by the routers.
"""

from typing import Sequence

from app.core.config import settings
from app.core.errors import InputInvalid
from app.services.geo import is_valid_coordinate
from app.services.navigation_service import NavigationService, SessionStore
from app.services.obstacle_service import ObstacleService
from app.services.routing_service import RoutingService

obstacle_service = ObstacleService(
    snapshot_path=(
        settings.DATA_DIR / settings.OBSTACLE_SNAPSHOT_FILE
        if settings.OBSTACLE_SNAPSHOT_FILE
        else None
    ),
)
routing_service = RoutingService(extra_obstacles=obstacle_service.active_obstacle_points)
session_store = SessionStore()
navigation_service = NavigationService(routing_service, store=session_store)


def require_coordinates(**points: Sequence[float]) -> None:
    """
    Raise InputInvalid (400 "bad_coords") for the first invalid [lon, lat].
    """
    for name, point in points.items():
        if not is_valid_coordinate(point):
            raise InputInvalid(f"{name} must be a [lon, lat] pair of finite numbers, got {point!r}")
