"""
Tracking Session for FitTrack.
Owns the start/pause/resume/stop lifecycle, gates incoming samples into
the route, keeps the workout stats current and adapts position sampling
to network quality.
"""
from typing import Callable, Optional

from PySide6.QtCore import QObject, QTimer, Signal

from logger import LoggableMixin, LogCategory
from network_monitor import NetworkQualityMonitor
from position_source import GeoPositionSource, SubscriptionHandle, now_ms
from route_store import RouteStore, SampleRejectedOutOfOrder
from sampling_policy import select_sampling_config
from tracker_settings import TrackerSettings
from workout_models import (
    NetworkQuality,
    PositionSample,
    PositionSourceError,
    RouteFrame,
    SamplingConfig,
    SessionState,
    TrackerSnapshot,
    TrackingError,
    WorkoutStats,
)
from workout_stats import StatsEngine

Clock = Callable[[], int]

UNSUPPORTED_MESSAGE = "Geolocation is not supported"


class CapabilityUnavailable(TrackingError):
    """Raised by :meth:`TrackingSession.start` when no position source is usable."""


class TrackingSession(QObject, LoggableMixin):
    """Single-session tracking state machine.

    Every external event (sample, error, network change, tick, command) runs
    to completion on the Qt thread before the next one, so the route and
    the stats are always consistent when observed.
    """
    state_changed = Signal(object)
    stats_updated = Signal(object)
    position_changed = Signal(object)
    route_frame_ready = Signal(object)
    error_changed = Signal(object)
    sampling_config_changed = Signal(object)
    network_quality_changed = Signal(object)
    online_changed = Signal(bool)

    def __init__(
        self,
        position_source: GeoPositionSource,
        network_monitor: Optional[NetworkQualityMonitor] = None,
        settings: Optional[TrackerSettings] = None,
        clock: Optional[Clock] = None,
        stats_engine: Optional[StatsEngine] = None,
        parent=None,
    ):
        QObject.__init__(self, parent)
        LoggableMixin.__init__(self)
        self.position_source = position_source
        self.network_monitor = network_monitor
        self.settings = settings or TrackerSettings()
        self._clock: Clock = clock or now_ms
        self._stats_engine = stats_engine or StatsEngine()

        self._state = SessionState.IDLE
        self._route = RouteStore()
        self._stats = WorkoutStats()
        self._last_error: Optional[str] = None
        self._generation = 0
        self._subscription: Optional[SubscriptionHandle] = None
        self._start_ms: Optional[int] = None
        self._paused_at_ms: Optional[int] = None
        self._paused_total_ms = 0

        self._network_quality: Optional[NetworkQuality] = None
        self._online = True
        if network_monitor is not None:
            self._network_quality = network_monitor.get_current()
            self._online = network_monitor.is_online()
            network_monitor.on_change(self._on_network_quality_changed)
            network_monitor.on_online_change(self._on_online_changed)
        self._sampling_config = select_sampling_config(self._network_quality)

        self._ticker = QTimer(self)
        self._ticker.setInterval(self.settings.tick_interval_ms)
        self._ticker.timeout.connect(self._on_tick)

    # ------------------------------------------------------------------
    # Read-only outputs
    # ------------------------------------------------------------------
    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def stats(self) -> WorkoutStats:
        return self._stats

    @property
    def route(self):
        return self._route.points

    @property
    def current_position(self) -> Optional[PositionSample]:
        return self._route.current_position

    @property
    def last_error(self) -> Optional[str]:
        return self._last_error

    @property
    def sampling_config(self) -> SamplingConfig:
        return self._sampling_config

    @property
    def network_quality(self) -> Optional[NetworkQuality]:
        return self._network_quality

    @property
    def online(self) -> bool:
        return self._online

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def is_ticking(self) -> bool:
        return self._ticker.isActive()

    def snapshot(self) -> TrackerSnapshot:
        return TrackerSnapshot(
            state=self._state,
            stats=self._stats,
            current_position=self._route.current_position,
            last_error=self._last_error,
            online=self._online,
            network_quality=self._network_quality,
            sampling_config=self._sampling_config,
            route_length=len(self._route),
        )

    def frame(self) -> RouteFrame:
        return self._route.frame()

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------
    def start(self) -> bool:
        """Begin a fresh session.

        Raises:
            CapabilityUnavailable: the position source cannot deliver positions.
        """
        if self._state not in (SessionState.IDLE, SessionState.STOPPED):
            self.log_warning("Start ignored", category=LogCategory.SESSION, state=self._state.value)
            return False
        if not self.position_source.is_available():
            self._set_last_error(UNSUPPORTED_MESSAGE)
            self.log_warning("Position capability unavailable", category=LogCategory.SESSION)
            raise CapabilityUnavailable(UNSUPPORTED_MESSAGE)

        self._generation += 1
        self._route.clear()
        self._set_last_error(None)
        self._start_ms = self._clock()
        self._paused_at_ms = None
        self._paused_total_ms = 0
        self._set_sampling_config(select_sampling_config(self._network_quality))
        self._subscribe()
        self._ticker.start()
        self._set_state(SessionState.TRACKING)
        self._refresh_stats()
        self._publish_frame()
        self.log_session_event("started", generation=self._generation,
                               high_accuracy=self._sampling_config.high_accuracy)
        return True

    def pause(self) -> bool:
        if self._state is not SessionState.TRACKING:
            self.log_warning("Pause ignored", category=LogCategory.SESSION, state=self._state.value)
            return False
        self._paused_at_ms = self._clock()
        self._ticker.stop()
        self._set_state(SessionState.PAUSED)
        self._refresh_stats()
        self.log_session_event("paused", duration_seconds=self._stats.duration_seconds)
        return True

    def resume(self) -> bool:
        if self._state is not SessionState.PAUSED:
            self.log_warning("Resume ignored", category=LogCategory.SESSION, state=self._state.value)
            return False
        if self._paused_at_ms is not None:
            self._paused_total_ms += max(0, self._clock() - self._paused_at_ms)
        self._paused_at_ms = None
        self._set_state(SessionState.TRACKING)
        self._ticker.start()
        self.log_session_event("resumed", paused_total_ms=self._paused_total_ms)
        return True

    def stop(self) -> bool:
        if self._state not in (SessionState.TRACKING, SessionState.PAUSED):
            self.log_warning("Stop ignored", category=LogCategory.SESSION, state=self._state.value)
            return False
        was_tracking = self._state is SessionState.TRACKING
        self._unsubscribe()
        self._ticker.stop()
        # Anything still in flight for this session must be dropped on receipt.
        self._generation += 1
        if was_tracking:
            self._refresh_stats()
        self._set_state(SessionState.STOPPED)
        self.log_session_event(
            "stopped",
            points=len(self._route),
            total_distance_km=self._stats.total_distance_km,
            duration_seconds=self._stats.duration_seconds,
        )
        return True

    def shutdown(self):
        """Release the source and monitor hooks (window close)."""
        if self._state in (SessionState.TRACKING, SessionState.PAUSED):
            self.stop()
        if self.network_monitor is not None:
            self.network_monitor.off_change(self._on_network_quality_changed)
            self.network_monitor.off_online_change(self._on_online_changed)

    # ------------------------------------------------------------------
    # Pipeline
    # ------------------------------------------------------------------
    def _subscribe(self):
        generation = self._generation
        self._subscription = self.position_source.subscribe(
            lambda sample: self._handle_sample(generation, sample),
            lambda message: self._handle_error(generation, message),
            self._sampling_config,
        )

    def _unsubscribe(self):
        if self._subscription is not None:
            self.position_source.unsubscribe(self._subscription)
            self._subscription = None

    def _handle_sample(self, generation: int, sample: PositionSample):
        if generation != self._generation or self._subscription is None:
            self.log_debug("Dropped sample from a stale subscription",
                           category=LogCategory.GPS, generation=generation)
            return
        try:
            self._route.update_current(sample)
            self.position_changed.emit(sample)
            appended = False
            if self._state is SessionState.TRACKING:
                try:
                    self._route.append(sample)
                    appended = True
                except SampleRejectedOutOfOrder as e:
                    self.log_debug("Rejected out-of-order sample", category=LogCategory.GPS,
                                   reason=str(e))
            self.log_gps_event("sample", sample.latitude, sample.longitude,
                               timestamp_ms=sample.timestamp_ms, appended=appended)
            if appended:
                self._refresh_stats()
            self._publish_frame()
        except Exception as e:
            self.log_error("Failed to process position sample", exception=e, category=LogCategory.GPS)
            self._set_last_error(f"Failed to process position: {e}")

    def _handle_error(self, generation: int, message: str):
        if generation != self._generation or self._subscription is None:
            return
        error = PositionSourceError(message)
        self.log_warning("Position error", category=LogCategory.GPS, error=str(error))
        self._set_last_error(str(error))

    def _on_tick(self):
        if self._state is not SessionState.TRACKING:
            return
        self._refresh_stats()

    def _elapsed_seconds(self) -> float:
        if self._start_ms is None:
            return 0.0
        end_ms = self._paused_at_ms if self._paused_at_ms is not None else self._clock()
        return max(0, end_ms - self._start_ms - self._paused_total_ms) / 1000.0

    def _refresh_stats(self):
        with self._logger.timer("stats recompute", category=LogCategory.STATS):
            stats = self._stats_engine.compute(self._route.points, self._elapsed_seconds())
        self._stats = stats
        self.stats_updated.emit(stats)

    def _publish_frame(self):
        self.route_frame_ready.emit(self._route.frame())

    # ------------------------------------------------------------------
    # Network adaptation
    # ------------------------------------------------------------------
    def _on_network_quality_changed(self, quality: NetworkQuality):
        self._network_quality = quality
        self.network_quality_changed.emit(quality)
        config = select_sampling_config(quality)
        if config == self._sampling_config:
            return
        self._set_sampling_config(config)
        if self._subscription is not None:
            # Same session, new parameters: tear down and re-subscribe once.
            self._unsubscribe()
            self._generation += 1
            self._subscribe()
            self.log_session_event("resubscribed", high_accuracy=config.high_accuracy,
                                   timeout_ms=config.timeout_ms,
                                   max_sample_age_ms=config.max_sample_age_ms)

    def _on_online_changed(self, online: bool):
        self._online = online
        self.online_changed.emit(online)

    # ------------------------------------------------------------------
    # State helpers
    # ------------------------------------------------------------------
    def _set_state(self, state: SessionState):
        if state is self._state:
            return
        self._state = state
        self.state_changed.emit(state)

    def _set_last_error(self, message: Optional[str]):
        if message == self._last_error:
            return
        self._last_error = message
        self.error_changed.emit(message)

    def _set_sampling_config(self, config: SamplingConfig):
        if config == self._sampling_config:
            return
        self._sampling_config = config
        self.sampling_config_changed.emit(config)


__all__ = ["TrackingSession", "CapabilityUnavailable", "UNSUPPORTED_MESSAGE"]
