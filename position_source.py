"""
Position Sources for FitTrack.
Subscription-based GPS providers: deterministic replay for training and
tests, a random-walk jogger for manual runs, and the platform
positioning service through QtPositioning.
"""
import itertools
import json
import random
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Sequence, Union

from PySide6.QtCore import QObject, QTimer, Signal
from PySide6.QtPositioning import QGeoPositionInfo, QGeoPositionInfoSource

from logger import LoggableMixin, LogCategory
from workout_models import PositionSample, SamplingConfig
from sampling_policy import DEFAULT_SAMPLING

SampleCallback = Callable[[PositionSample], None]
ErrorCallback = Callable[[str], None]
FeedSource = Union[Sequence[PositionSample], Sequence[Dict[str, Any]], Path, str]

TIMEOUT_MESSAGE = "Timeout expired"


def now_ms() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return int(datetime.now().timestamp() * 1000)


@dataclass(frozen=True)
class SubscriptionHandle:
    """Token returned by :meth:`GeoPositionSource.subscribe`."""
    subscription_id: int
    on_sample: SampleCallback
    on_error: ErrorCallback
    config: SamplingConfig


class GeoPositionSource(QObject, LoggableMixin):
    """Base class for position sources with subscription bookkeeping.

    The backend runs while at least one subscription is registered. Every
    subscriber gets each sample and each error; an error never ends a
    subscription. A watchdog reports ``"Timeout expired"`` whenever no
    sample arrives within the active config's timeout.
    """
    sample_delivered = Signal(object)
    error_reported = Signal(str)
    _ids = itertools.count(1)

    def __init__(self, parent=None):
        QObject.__init__(self, parent)
        LoggableMixin.__init__(self)
        self._subscriptions: Dict[int, SubscriptionHandle] = {}
        self._config: SamplingConfig = DEFAULT_SAMPLING
        self._watchdog = QTimer(self)
        self._watchdog.setSingleShot(True)
        self._watchdog.timeout.connect(self._on_watchdog_timeout)

    @property
    def is_active(self) -> bool:
        return bool(self._subscriptions)

    @property
    def config(self) -> SamplingConfig:
        return self._config

    @property
    def subscription_count(self) -> int:
        return len(self._subscriptions)

    def is_available(self) -> bool:
        """Whether this source can deliver positions at all."""
        return True

    def subscribe(self, on_sample: SampleCallback, on_error: ErrorCallback,
                  config: SamplingConfig) -> SubscriptionHandle:
        handle = SubscriptionHandle(next(self._ids), on_sample, on_error, config)
        first = not self._subscriptions
        self._subscriptions[handle.subscription_id] = handle
        self._config = config
        if first:
            self._on_start(config)
            self.log_info("Position updates started", category=LogCategory.GPS,
                          high_accuracy=config.high_accuracy, timeout_ms=config.timeout_ms,
                          max_sample_age_ms=config.max_sample_age_ms)
        else:
            self._on_configure(config)
        self._arm_watchdog()
        return handle

    def unsubscribe(self, handle: Optional[SubscriptionHandle]):
        if handle is None or self._subscriptions.pop(handle.subscription_id, None) is None:
            return
        if not self._subscriptions:
            self._watchdog.stop()
            self._on_stop()
            self.log_info("Position updates stopped", category=LogCategory.GPS)

    def _deliver_sample(self, sample: PositionSample):
        self._arm_watchdog()
        self.sample_delivered.emit(sample)
        for handle in list(self._subscriptions.values()):
            if handle.subscription_id in self._subscriptions:
                handle.on_sample(sample)

    def _deliver_error(self, message: str):
        self.log_warning("Position source error", category=LogCategory.GPS, error=message)
        self.error_reported.emit(message)
        for handle in list(self._subscriptions.values()):
            if handle.subscription_id in self._subscriptions:
                handle.on_error(message)

    def _arm_watchdog(self):
        if self._subscriptions:
            self._watchdog.start(self._config.timeout_ms)

    def _on_watchdog_timeout(self):
        if not self._subscriptions:
            return
        self._deliver_error(TIMEOUT_MESSAGE)
        self._arm_watchdog()

    def _on_start(self, config: SamplingConfig):
        raise NotImplementedError

    def _on_configure(self, config: SamplingConfig):
        """Apply a new config to a running backend."""

    def _on_stop(self):
        raise NotImplementedError


class SimulatedPositionSource(GeoPositionSource):
    """Position source that replays deterministic samples."""

    def __init__(
        self,
        samples: Sequence[PositionSample],
        interval_ms: Optional[int] = 1000,
        loop: bool = False,
        available: bool = True,
        parent=None,
    ):
        super().__init__(parent)
        self._samples = list(samples)
        self._interval_ms = interval_ms
        self._loop = loop
        self._available = available
        self._index = 0
        self._lap_offset_ms = 0
        self._timer = None if interval_ms is None else QTimer(self)
        if self._timer is not None:
            self._timer.setInterval(interval_ms)
            self._timer.timeout.connect(self._emit_next)

    @property
    def remaining(self) -> int:
        return max(0, len(self._samples) - self._index)

    def is_available(self) -> bool:
        return self._available

    def _on_start(self, config: SamplingConfig):
        if self._index >= len(self._samples):
            self._index = 0
        if not self._samples:
            self.log_warning("Simulated position source started without samples", category=LogCategory.GPS)
        elif self._timer is not None:
            self._timer.start()

    def _on_stop(self):
        if self._timer is not None:
            self._timer.stop()

    def manual_step(self) -> Optional[PositionSample]:
        """Emit the next sample immediately (useful for tests)."""
        if self.is_active:
            return self._emit_next()
        return None

    def inject_error(self, message: str):
        """Report an error to subscribers as a real device would."""
        if self.is_active:
            self._deliver_error(message)

    def _emit_next(self) -> Optional[PositionSample]:
        if not self._samples:
            return None
        if self._index >= len(self._samples):
            if not self._loop:
                if self._timer is not None:
                    self._timer.stop()
                return None
            # Shift replayed laps forward so timestamps keep increasing.
            span = self._samples[-1].timestamp_ms - self._samples[0].timestamp_ms
            self._lap_offset_ms += span + (self._interval_ms or 1000)
            self._index = 0
        base = self._samples[self._index]
        self._index += 1
        sample = PositionSample(
            latitude=base.latitude,
            longitude=base.longitude,
            timestamp_ms=base.timestamp_ms + self._lap_offset_ms,
            speed_mps=base.speed_mps,
        )
        self._deliver_sample(sample)
        return sample

    @staticmethod
    def from_feed(
        feed_source: FeedSource,
        interval_ms: Optional[int] = 1000,
        loop: bool = False,
        start_ms: Optional[int] = None,
    ) -> "SimulatedPositionSource":
        """Create a simulated source from samples, dicts or a JSON file.

        Entries without a timestamp are spaced ``interval_ms`` apart starting
        at ``start_ms`` (defaults to now).
        """
        samples = SimulatedPositionSource._normalize_feed(
            feed_source, interval_ms or 1000, now_ms() if start_ms is None else start_ms
        )
        return SimulatedPositionSource(samples, interval_ms=interval_ms, loop=loop)

    @staticmethod
    def _normalize_feed(feed_source: FeedSource, spacing_ms: int, start_ms: int) -> List[PositionSample]:
        if isinstance(feed_source, (str, Path)):
            data = json.loads(Path(feed_source).read_text(encoding="utf-8"))
            if isinstance(data, dict):
                data = data.get("points", [])
            return SimulatedPositionSource._normalize_feed(data, spacing_ms, start_ms)
        samples: List[PositionSample] = []
        for index, entry in enumerate(feed_source):
            if isinstance(entry, PositionSample):
                samples.append(entry)
            elif isinstance(entry, dict):
                samples.append(
                    PositionSample.from_mapping(entry, default_timestamp_ms=start_ms + index * spacing_ms)
                )
            else:
                raise TypeError(
                    "Unsupported feed entry type for simulated position source: "
                    f"{type(entry)!r}"
                )
        return samples


class RandomWalkPositionSource(GeoPositionSource):
    """Jogging-pace random walk, useful for manual testing."""

    def __init__(self, interval_ms: int = 1000, latitude: float = 40.7128,
                 longitude: float = -74.0060, seed: Optional[int] = None, parent=None):
        super().__init__(parent)
        self._latitude = latitude
        self._longitude = longitude
        self._random = random.Random(seed)
        self.timer = QTimer(self)
        self.timer.setInterval(interval_ms)
        self.timer.timeout.connect(self._simulate_movement)

    def _on_start(self, config: SamplingConfig):
        self.timer.start()

    def _on_stop(self):
        self.timer.stop()

    def _simulate_movement(self):
        lat_delta = (self._random.random() - 0.5) * 0.0001  # ~10m variation
        lon_delta = (self._random.random() - 0.5) * 0.0001
        self._latitude = min(90.0, max(-90.0, self._latitude + lat_delta))
        self._longitude = min(180.0, max(-180.0, self._longitude + lon_delta))
        self._deliver_sample(PositionSample(
            latitude=self._latitude,
            longitude=self._longitude,
            timestamp_ms=now_ms(),
            speed_mps=2.0 + self._random.random() * 2.0,
        ))


def source_error_message(error) -> Optional[str]:
    """Advisory text for a QtPositioning error, or None when nothing to report.

    Update timeouts are left to the subscription watchdog so a single gap
    produces one advisory.
    """
    errors = QGeoPositionInfoSource.Error
    if error in (errors.NoError, errors.UpdateTimeoutError):
        return None
    messages = {
        errors.AccessError: "User denied Geolocation",
        errors.ClosedError: "Position source closed",
    }
    return messages.get(error, "Position unavailable")


class QtPositionSource(GeoPositionSource):
    """Platform positioning through ``QGeoPositionInfoSource``."""

    def __init__(self, parent=None):
        super().__init__(parent)
        self._source = QGeoPositionInfoSource.createDefaultSource(self)
        if self._source is None:
            self.log_warning("No platform positioning backend available", category=LogCategory.GPS)
            return
        self._source.positionUpdated.connect(self._on_position_updated)
        self._source.errorOccurred.connect(self._on_source_error)

    def is_available(self) -> bool:
        return self._source is not None

    def _on_start(self, config: SamplingConfig):
        if self._source is None:
            self._deliver_error("Geolocation is not supported")
            return
        self._on_configure(config)
        cached = self._source.lastKnownPosition()
        if cached.isValid():
            age = now_ms() - cached.timestamp().toMSecsSinceEpoch()
            if age <= config.max_sample_age_ms:
                self._on_position_updated(cached)
        self._source.startUpdates()

    def _on_configure(self, config: SamplingConfig):
        if self._source is None:
            return
        methods = QGeoPositionInfoSource.PositioningMethod
        self._source.setPreferredPositioningMethods(
            methods.SatellitePositioningMethods if config.high_accuracy
            else methods.AllPositioningMethods
        )
        self._source.setUpdateInterval(1000)

    def _on_stop(self):
        if self._source is not None:
            self._source.stopUpdates()

    def _on_position_updated(self, info):
        if not self.is_active:
            return
        coordinate = info.coordinate()
        speed = None
        if info.hasAttribute(QGeoPositionInfo.Attribute.GroundSpeed):
            speed = info.attribute(QGeoPositionInfo.Attribute.GroundSpeed)
        try:
            sample = PositionSample(
                latitude=coordinate.latitude(),
                longitude=coordinate.longitude(),
                timestamp_ms=info.timestamp().toMSecsSinceEpoch(),
                speed_mps=speed,
            )
        except ValueError as e:
            self._deliver_error(f"Invalid position reported: {e}")
            return
        self._deliver_sample(sample)

    def _on_source_error(self, error):
        message = source_error_message(error)
        if message is None:
            self.log_debug("Ignoring positioning error", category=LogCategory.GPS, error=str(error))
            return
        self._deliver_error(message)


__all__ = [
    "GeoPositionSource",
    "SubscriptionHandle",
    "SimulatedPositionSource",
    "RandomWalkPositionSource",
    "QtPositionSource",
    "TIMEOUT_MESSAGE",
    "source_error_message",
    "now_ms",
]
