"""Distance and speed statistics over a recorded route."""

from __future__ import annotations

import math
from typing import Sequence

import numpy as np

from workout_models import PositionSample, WorkoutStats

EARTH_RADIUS_KM = 6371.0
_MS_PER_HOUR = 3_600_000.0


def haversine_km(a: PositionSample, b: PositionSample) -> float:
    """Great-circle distance between two samples in kilometres."""

    phi1 = math.radians(a.latitude)
    phi2 = math.radians(b.latitude)
    d_phi = math.radians(b.latitude - a.latitude)
    d_lambda = math.radians(b.longitude - a.longitude)
    h = math.sin(d_phi / 2.0) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2.0) ** 2
    h = min(1.0, max(0.0, h))
    return 2.0 * EARTH_RADIUS_KM * math.atan2(math.sqrt(h), math.sqrt(1.0 - h))


def segment_distances_km(points: Sequence[PositionSample]) -> np.ndarray:
    """Haversine distance of every consecutive pair, vectorised."""

    if len(points) < 2:
        return np.zeros(0)
    lat = np.radians(np.fromiter((p.latitude for p in points), dtype=float, count=len(points)))
    lon = np.radians(np.fromiter((p.longitude for p in points), dtype=float, count=len(points)))
    d_phi = np.diff(lat)
    d_lambda = np.diff(lon)
    h = np.sin(d_phi / 2.0) ** 2 + np.cos(lat[:-1]) * np.cos(lat[1:]) * np.sin(d_lambda / 2.0) ** 2
    # Rounding can push h a hair past 1 for antipodal pairs.
    h = np.clip(h, 0.0, 1.0)
    return 2.0 * EARTH_RADIUS_KM * np.arctan2(np.sqrt(h), np.sqrt(1.0 - h))


def segment_speeds_kmh(points: Sequence[PositionSample]) -> np.ndarray:
    """Speed of every segment with a positive time step.

    Segments whose endpoints share a timestamp have no defined speed and are
    left out of the result.
    """

    distances = segment_distances_km(points)
    if distances.size == 0:
        return distances
    timestamps = np.fromiter((p.timestamp_ms for p in points), dtype=np.int64, count=len(points))
    hours = np.diff(timestamps).astype(float) / _MS_PER_HOUR
    valid = hours > 0
    return distances[valid] / hours[valid]


class StatsEngine:
    """Recomputes :class:`WorkoutStats` from scratch on every call.

    Holding no state between calls keeps the result a pure function of the
    route and the elapsed session time. Cost is O(n) per call.
    """

    def compute(self, points: Sequence[PositionSample], duration_seconds: float = 0.0) -> WorkoutStats:
        duration = max(0.0, float(duration_seconds))
        if len(points) < 2:
            return WorkoutStats(duration_seconds=duration)
        total_km = float(segment_distances_km(points).sum())
        speeds = segment_speeds_kmh(points)
        if speeds.size == 0:
            return WorkoutStats(duration_seconds=duration, total_distance_km=total_km)
        return WorkoutStats(
            duration_seconds=duration,
            total_distance_km=total_km,
            avg_speed_kmh=float(speeds.mean()),
            max_speed_kmh=float(speeds.max()),
        )


__all__ = [
    "EARTH_RADIUS_KM",
    "haversine_km",
    "segment_distances_km",
    "segment_speeds_kmh",
    "StatsEngine",
]
