# app/services/geo.py
import math
from numbers import Real
from typing import Any, Sequence

EARTH_RADIUS_M = 6_371_000.0

# Metres per degree used by the planar (scaled-degree) approximation.
METERS_PER_DEGREE = 111_000.0


def haversine_m(a: Sequence[float], b: Sequence[float]) -> float:
    """
    Compute great-circle distance between two (lon, lat) points, in metres.
    """
    lon1, lat1 = a[0], a[1]
    lon2, lat2 = b[0], b[1]

    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    dphi = math.radians(lat2 - lat1)
    dlambda = math.radians(lon2 - lon1)

    h = (
        math.sin(dphi / 2) ** 2
        + math.cos(phi1) * math.cos(phi2) * math.sin(dlambda / 2) ** 2
    )
    # Rounding can push h a hair outside [0, 1]
    h = min(1.0, max(0.0, h))
    return 2 * EARTH_RADIUS_M * math.asin(math.sqrt(h))


def planar_distance_m(a: Sequence[float], b: Sequence[float]) -> float:
    """
    Crude Euclidean distance in degree space, scaled to metres.
    Good enough for ranking nearby points at city scale.
    """
    dx = b[0] - a[0]
    dy = b[1] - a[1]
    return math.sqrt(dx * dx + dy * dy) * METERS_PER_DEGREE


def polyline_length_m(coords: Sequence[Sequence[float]]) -> float:
    """
    Sum of great-circle distances between consecutive points (0 for <2 points).
    """
    if len(coords) < 2:
        return 0.0
    return sum(haversine_m(p, q) for p, q in zip(coords[:-1], coords[1:]))


def is_valid_coordinate(p: Any) -> bool:
    """
    True iff p is exactly two finite numbers with lon in [-180, 180]
    and lat in [-90, 90].
    """
    if not isinstance(p, (list, tuple)) or len(p) != 2:
        return False
    for v in p:
        if isinstance(v, bool) or not isinstance(v, Real):
            return False
        if not math.isfinite(v):
            return False
    lon, lat = p
    return -180.0 <= lon <= 180.0 and -90.0 <= lat <= 90.0


def distance_to_segment_m(
    point: Sequence[float],
    seg_start: Sequence[float],
    seg_end: Sequence[float],
) -> float:
    """
    Distance from point to the segment [seg_start, seg_end], in metres.

    The projection is done in plain degree space and the projection
    parameter is clamped to [0, 1]; the reported distance is the haversine
    distance from point to the projected point.
    """
    ax, ay = seg_start[0], seg_start[1]
    bx, by = seg_end[0], seg_end[1]
    px, py = point[0], point[1]

    dx = bx - ax
    dy = by - ay
    len_sq = dx * dx + dy * dy

    if len_sq == 0.0:
        return haversine_m(point, seg_start)

    t = ((px - ax) * dx + (py - ay) * dy) / len_sq
    t = max(0.0, min(1.0, t))

    nearest = (ax + t * dx, ay + t * dy)
    return haversine_m(point, nearest)


def route_progress_percent(
    position: Sequence[float],
    route_coords: Sequence[Sequence[float]],
) -> float:
    """
    How far along the route the position is, as a percentage in [0, 100].

    The nearest segment is found with distance_to_segment_m; progress is the
    length of all preceding segments plus the distance travelled along the
    nearest one, divided by the total route length.
    """
    if len(route_coords) < 2:
        return 0.0

    total = polyline_length_m(route_coords)
    if total <= 0.0:
        return 0.0

    best_index = 0
    best_dist = float("inf")
    for i in range(len(route_coords) - 1):
        d = distance_to_segment_m(position, route_coords[i], route_coords[i + 1])
        if d < best_dist:
            best_dist = d
            best_index = i

    covered = polyline_length_m(route_coords[: best_index + 1])
    seg_start = route_coords[best_index]
    seg_len = haversine_m(seg_start, route_coords[best_index + 1])
    along = min(haversine_m(seg_start, position), seg_len)

    return max(0.0, min(100.0, 100.0 * (covered + along) / total))


def turn_angle_deg(a: Sequence[float], b: Sequence[float], c: Sequence[float]) -> float:
    """
    Heading change at b between the vectors a->b and b->c, in degrees.
    0 means straight on, 180 means a full U-turn. Returns 0 for a
    degenerate (zero-length) vector.
    """
    v1 = (b[0] - a[0], b[1] - a[1])
    v2 = (c[0] - b[0], c[1] - b[1])
    m1 = math.hypot(*v1)
    m2 = math.hypot(*v2)
    if m1 == 0.0 or m2 == 0.0:
        return 0.0
    cos = (v1[0] * v2[0] + v1[1] * v2[1]) / (m1 * m2)
    cos = max(-1.0, min(1.0, cos))
    return math.degrees(math.acos(cos))
