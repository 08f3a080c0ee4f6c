"""Value types shared by the FitTrack tracking engine."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping, Optional, Tuple


class TrackingError(RuntimeError):
    """Base error for the tracking engine."""


class PositionSourceError(TrackingError):
    """A position source reported a (usually transient) failure."""


class SessionState(Enum):
    """Lifecycle of a tracking session."""

    IDLE = "idle"
    TRACKING = "tracking"
    PAUSED = "paused"
    STOPPED = "stopped"


class EffectiveType(Enum):
    """Effective bandwidth tier of the current connection."""

    SLOW_2G = "slow-2g"
    TWO_G = "2g"
    THREE_G = "3g"
    FOUR_G = "4g"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, value: Any) -> "EffectiveType":
        """Lenient conversion; anything unrecognised maps to ``UNKNOWN``."""

        if isinstance(value, cls):
            return value
        text = str(value or "").strip().lower().replace("_", "-")
        for member in cls:
            if member.value == text:
                return member
        return cls.UNKNOWN


@dataclass(frozen=True)
class PositionSample:
    """A single position reading.

    Attributes:
        latitude: Latitude in decimal degrees, [-90, 90].
        longitude: Longitude in decimal degrees, [-180, 180].
        timestamp_ms: Unix epoch milliseconds.
        speed_mps: Instantaneous speed in meters/second, if the device reports one.
    """

    latitude: float
    longitude: float
    timestamp_ms: int
    speed_mps: Optional[float] = None

    def __post_init__(self) -> None:
        if not -90.0 <= self.latitude <= 90.0:
            raise ValueError(f"latitude out of range: {self.latitude}")
        if not -180.0 <= self.longitude <= 180.0:
            raise ValueError(f"longitude out of range: {self.longitude}")
        object.__setattr__(self, "timestamp_ms", int(self.timestamp_ms))
        # Devices report -1 when speed is unknown.
        if self.speed_mps is not None and self.speed_mps < 0:
            object.__setattr__(self, "speed_mps", None)

    @property
    def speed_kmh(self) -> Optional[float]:
        return None if self.speed_mps is None else self.speed_mps * 3.6

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any], default_timestamp_ms: int = 0) -> "PositionSample":
        """Build a sample from either ``latitude/longitude`` or ``lat/lng`` keys."""

        if "latitude" in data and "longitude" in data:
            latitude, longitude = data["latitude"], data["longitude"]
        elif "lat" in data and "lng" in data:
            latitude, longitude = data["lat"], data["lng"]
        else:
            raise TypeError("position mapping needs latitude/longitude or lat/lng keys")
        timestamp = data.get("timestamp_ms", data.get("timestamp", default_timestamp_ms))
        speed = data.get("speed_mps", data.get("speed"))
        return cls(
            latitude=float(latitude),
            longitude=float(longitude),
            timestamp_ms=int(timestamp),
            speed_mps=None if speed is None else float(speed),
        )


@dataclass(frozen=True)
class NetworkQuality:
    """Snapshot of the current connection class."""

    effective_type: EffectiveType = EffectiveType.UNKNOWN
    downlink_mbps: float = 0.0
    round_trip_ms: int = 0
    data_saver: bool = False

    def __post_init__(self) -> None:
        object.__setattr__(self, "effective_type", EffectiveType.parse(self.effective_type))
        object.__setattr__(self, "downlink_mbps", max(0.0, float(self.downlink_mbps)))
        object.__setattr__(self, "round_trip_ms", max(0, int(self.round_trip_ms)))


@dataclass(frozen=True)
class SamplingConfig:
    """Parameters handed to a position source when subscribing."""

    high_accuracy: bool
    timeout_ms: int
    max_sample_age_ms: int

    def __post_init__(self) -> None:
        if self.timeout_ms <= 0:
            raise ValueError("timeout_ms must be positive")
        if self.max_sample_age_ms < 0:
            raise ValueError("max_sample_age_ms must not be negative")


@dataclass(frozen=True)
class WorkoutStats:
    """Derived motion statistics for the current route."""

    duration_seconds: float = 0.0
    total_distance_km: float = 0.0
    avg_speed_kmh: float = 0.0
    max_speed_kmh: float = 0.0


@dataclass(frozen=True)
class RouteFrame:
    """Immutable input of one render pass."""

    points: Tuple[PositionSample, ...] = ()
    current: Optional[PositionSample] = None


@dataclass(frozen=True)
class TrackerSnapshot:
    """Read-only view of everything the presentation layer displays."""

    state: SessionState
    stats: WorkoutStats
    current_position: Optional[PositionSample]
    last_error: Optional[str]
    online: bool
    network_quality: Optional[NetworkQuality]
    sampling_config: SamplingConfig
    route_length: int = 0


__all__ = [
    "TrackingError",
    "PositionSourceError",
    "SessionState",
    "EffectiveType",
    "PositionSample",
    "NetworkQuality",
    "SamplingConfig",
    "WorkoutStats",
    "RouteFrame",
    "TrackerSnapshot",
]
