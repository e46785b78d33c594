"""Geodesic coverage-ring construction on a spherical Earth."""

from __future__ import annotations

import math
from typing import Callable, Sequence

from .models import Point

# Declared radii are road-travel distance; dividing by this factor gives
# the great-circle distance the ring is built from.
ROAD_DISTANCE_FACTOR = 3.5
EARTH_RADIUS_KM = 6371.0
DEFAULT_BEARING_STEP_DEG = 3.0

Projector = Callable[[float, float], Point]


def effective_radius_km(radius_km: float, road_distance_factor: float = ROAD_DISTANCE_FACTOR) -> float:
    if road_distance_factor <= 0:
        raise ValueError("road_distance_factor must be > 0")
    return radius_km / road_distance_factor


def angular_distance(
    radius_km: float,
    *,
    road_distance_factor: float = ROAD_DISTANCE_FACTOR,
    earth_radius_km: float = EARTH_RADIUS_KM,
) -> float:
    """Angular distance in radians covered by a declared road radius."""
    return effective_radius_km(radius_km, road_distance_factor) / earth_radius_km


def destination_point(lat: float, lon: float, delta: float, bearing_deg: float) -> Point:
    """Solve the spherical direct problem; returns (lat, lon) in degrees.

    At lat = +/-90 the atan2 term is indeterminate and every bearing
    collapses onto one meridian. Province and depot geography never reaches
    the poles, so that case is left as-is.
    """
    phi1 = math.radians(lat)
    lambda1 = math.radians(lon)
    theta = math.radians(bearing_deg)

    sin_phi1 = math.sin(phi1)
    cos_phi1 = math.cos(phi1)
    sin_delta = math.sin(delta)
    cos_delta = math.cos(delta)

    sin_phi2 = sin_phi1 * cos_delta + cos_phi1 * sin_delta * math.cos(theta)
    phi2 = math.asin(max(-1.0, min(1.0, sin_phi2)))
    y = math.sin(theta) * sin_delta * cos_phi1
    x = cos_delta - sin_phi1 * sin_phi2
    lambda2 = lambda1 + math.atan2(y, x)
    return (math.degrees(phi2), math.degrees(lambda2))


def build_ring(
    center_lat: float,
    center_lon: float,
    radius_km: float,
    project: Projector,
    bearing_step_deg: float = DEFAULT_BEARING_STEP_DEG,
) -> tuple[Point, ...]:
    """Closed planar polygon approximating the geodesic circle.

    Bearings run 0..360 inclusive, so the last point repeats the first.
    A non-positive or non-finite radius yields an empty ring.
    """
    if not math.isfinite(radius_km) or radius_km <= 0:
        return ()
    if not math.isfinite(bearing_step_deg) or bearing_step_deg <= 0:
        raise ValueError("bearing_step_deg must be a positive finite number")

    delta = angular_distance(radius_km)
    steps = int(math.floor(360.0 / bearing_step_deg + 1e-9))
    # Bearing 360 is emitted as a copy of bearing 0.
    if math.isclose(steps * bearing_step_deg, 360.0):
        open_count = steps
    else:
        open_count = steps + 1
    points: list[Point] = []
    for idx in range(open_count):
        lat2, lon2 = destination_point(center_lat, center_lon, delta, idx * bearing_step_deg)
        points.append(project(lat2, lon2))
    points.append(points[0])
    return tuple(points)


def ring_path_data(points: Sequence[Point]) -> str:
    """SVG path data for a ring; empty string for an empty ring."""
    if not points:
        return ""
    head, *rest = points
    parts = [f"M {head[0]:.2f} {head[1]:.2f}"]
    parts.extend(f"L {x:.2f} {y:.2f}" for x, y in rest)
    parts.append("Z")
    return " ".join(parts)
