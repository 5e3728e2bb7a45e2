# app/services/route_shapes.py
"""
Synthetic route geometry.

Used when no real road data is available: sinusoidal curves between start
and end, plus the post-processing steps applied to accessible routes
(splicing known accessible roads, skipping points near obstacles and
removing jagged vertices).
"""

import math
from typing import Callable, Dict, List, Optional, Sequence

from app.models.datasets import AccessibleRoad, Obstacle
from app.services.geo import haversine_m, turn_angle_deg

Coords = List[List[float]]

# Longitude amplitudes in degrees; at Hualien's latitude 0.0001 deg ~ 10 m.
FALLBACK_AMPLITUDE = 0.0002
HIGH_AMPLITUDE = 0.0003
HIGH_HARMONIC_AMPLITUDE = 0.0001
STANDARD_AMPLITUDE = 0.0002
BASIC_AMPLITUDE = 0.0001


def _curve(
    start: Sequence[float],
    end: Sequence[float],
    segments: int,
    offset: Callable[[float], float],
) -> Coords:
    """
    segments + 1 points from start to end, with a lateral longitude offset
    offset(t) for t in [0, 1]. offset(0) and offset(1) must be 0 so the
    endpoints are exact.
    """
    slon, slat = start[0], start[1]
    elon, elat = end[0], end[1]
    coords: Coords = []
    for i in range(segments + 1):
        t = i / segments
        coords.append([
            slon + (elon - slon) * t + offset(t),
            slat + (elat - slat) * t,
        ])
    # sin(pi) is not exactly 0
    coords[-1] = [elon, elat]
    return coords


def synthetic_curve(start: Sequence[float], end: Sequence[float]) -> Coords:
    """
    Gentle single-arc curve used as the last-resort fallback route.
    """
    distance = haversine_m(start, end)
    segments = max(10, round(distance / 60))
    return _curve(start, end, segments, lambda t: math.sin(t * math.pi) * FALLBACK_AMPLITUDE)


def high_accessibility_curve(start: Sequence[float], end: Sequence[float]) -> Coords:
    """
    More points and more curvature, simulating a detour towards flatter and
    wider streets.
    """
    distance = haversine_m(start, end)
    segments = max(12, round(distance / 40))
    return _curve(
        start,
        end,
        segments,
        lambda t: math.sin(t * math.pi) * HIGH_AMPLITUDE
        + math.sin(t * math.pi * 3) * HIGH_HARMONIC_AMPLITUDE,
    )


def standard_curve(start: Sequence[float], end: Sequence[float]) -> Coords:
    distance = haversine_m(start, end)
    segments = max(8, round(distance / 60))
    return _curve(start, end, segments, lambda t: math.sin(t * math.pi) * STANDARD_AMPLITUDE)


def basic_curve(start: Sequence[float], end: Sequence[float]) -> Coords:
    return _curve(start, end, 8, lambda t: math.sin(t * math.pi) * BASIC_AMPLITUDE)


TEMPLATES: Dict[str, Callable[[Sequence[float], Sequence[float]], Coords]] = {
    "high": high_accessibility_curve,
    "standard": standard_curve,
    "basic": basic_curve,
}


def splice_accessible_roads(
    coords: Coords,
    start_road: Optional[AccessibleRoad],
    end_road: Optional[AccessibleRoad],
) -> Coords:
    """
    Route through known accessible roads near both ends.

    Result: [start, *start_road, *interior of coords, *end_road, end].
    Only applied when both roads are given; otherwise coords is returned as is.
    """
    if start_road is None or end_road is None or len(coords) < 2:
        return coords
    return [
        coords[0],
        *[list(c) for c in start_road.coordinates],
        *coords[1:-1],
        *[list(c) for c in end_road.coordinates],
        coords[-1],
    ]


def avoid_obstacles(
    coords: Coords,
    obstacles: Sequence[Obstacle],
    radius_m: float = 100.0,
) -> Coords:
    """
    Drop every point closer than radius_m to an obstacle.

    If that would drop everything, the unfiltered geometry is returned.
    """
    kept = [
        c
        for c in coords
        if all(haversine_m(c, ob.coordinates) >= radius_m for ob in obstacles)
    ]
    return kept if kept else coords


def smooth_polyline(coords: Coords, angle_deg: float = 15.0) -> Coords:
    """
    Remove interior vertices whose turn angle is at most angle_deg.
    The first and last points are always kept.
    """
    if len(coords) < 3:
        return coords

    kept = [coords[0]]
    for i in range(1, len(coords) - 1):
        if turn_angle_deg(coords[i - 1], coords[i], coords[i + 1]) > angle_deg:
            kept.append(coords[i])
    kept.append(coords[-1])
    return kept
