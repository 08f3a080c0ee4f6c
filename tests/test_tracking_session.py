import pytest

pytest.importorskip("PySide6")
try:
    from PySide6.QtTest import QTest
    from PySide6.QtWidgets import QApplication
except ImportError:  # pragma: no cover - executed only when Qt bindings incomplete
    pytest.skip("PySide6 QtWidgets bindings unavailable", allow_module_level=True)

from network_monitor import StaticNetworkMonitor
from position_source import TIMEOUT_MESSAGE, SimulatedPositionSource
from sampling_policy import CONSTRAINED_SAMPLING, DEFAULT_SAMPLING, SLOW_SAMPLING
from tracking_session import CapabilityUnavailable, TrackingSession, UNSUPPORTED_MESSAGE
from tracker_settings import TrackerSettings
from workout_models import NetworkQuality, PositionSample, SessionState, WorkoutStats


@pytest.fixture(scope="module")
def qt_app():
    app = QApplication.instance()
    if app is None:
        app = QApplication([])
    yield app


class FakeClock:
    def __init__(self, now: int = 1_000_000):
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int):
        self.now += ms


class RecordingSource(SimulatedPositionSource):
    """Simulated source that remembers every subscription config."""

    def __init__(self, samples, **kwargs):
        super().__init__(samples, interval_ms=None, **kwargs)
        self.subscribed_configs = []

    def subscribe(self, on_sample, on_error, config):
        self.subscribed_configs.append(config)
        return super().subscribe(on_sample, on_error, config)


def walk(count, start_ms=0, step_ms=1000):
    return [PositionSample(45.0 + i * 0.0005, 7.0, start_ms + i * step_ms) for i in range(count)]


def make_session(samples=None, monitor=None, clock=None, **source_kwargs):
    source = RecordingSource(walk(5) if samples is None else samples, **source_kwargs)
    session = TrackingSession(source, monitor, clock=clock or FakeClock())
    return session, source


def test_start_enters_tracking_with_zeroed_outputs(qt_app):
    session, source = make_session()
    states, frames = [], []
    session.state_changed.connect(lambda state: states.append(state))
    session.route_frame_ready.connect(lambda frame: frames.append(frame))

    assert session.start() is True

    assert states == [SessionState.TRACKING]
    assert session.stats == WorkoutStats()
    assert frames[-1].points == ()
    assert source.subscription_count == 1
    assert session.is_ticking


def test_start_without_capability_raises_and_keeps_state(qt_app):
    session, source = make_session(available=False)

    with pytest.raises(CapabilityUnavailable):
        session.start()

    assert session.state is SessionState.IDLE
    assert session.last_error == UNSUPPORTED_MESSAGE
    assert source.subscription_count == 0


def test_invalid_commands_are_ignored(qt_app):
    session, _ = make_session()

    assert session.pause() is False
    assert session.resume() is False
    assert session.stop() is False
    assert session.state is SessionState.IDLE

    session.start()
    assert session.start() is False
    assert session.resume() is False
    assert session.state is SessionState.TRACKING


def test_samples_build_route_and_stats(qt_app):
    session, source = make_session()
    session.start()

    for _ in range(3):
        source.manual_step()

    assert len(session.route) == 3
    assert session.current_position == session.route[-1]
    assert session.stats.total_distance_km > 0
    assert session.stats.max_speed_kmh >= session.stats.avg_speed_kmh > 0


def test_out_of_order_sample_moves_marker_but_not_route(qt_app):
    samples = [PositionSample(1.0, 1.0, 2000), PositionSample(1.001, 1.0, 1000)]
    session, source = make_session(samples)
    session.start()

    source.manual_step()
    source.manual_step()

    assert len(session.route) == 1
    assert session.current_position == samples[1]
    assert session.last_error is None


def test_duration_freezes_while_paused(qt_app):
    clock = FakeClock()
    session, _ = make_session(clock=clock)
    session.start()

    clock.advance(5000)
    session._on_tick()
    assert session.stats.duration_seconds == 5.0

    session.pause()
    assert not session.is_ticking
    clock.advance(10000)
    session._on_tick()
    assert session.stats.duration_seconds == 5.0

    session.resume()
    clock.advance(2000)
    session._on_tick()
    assert session.stats.duration_seconds == 7.0


def test_ticker_uses_configured_interval(qt_app):
    session, _ = make_session()
    assert session._ticker.interval() == 1000

    fast = TrackingSession(RecordingSource(walk(2)), settings=TrackerSettings(tick_interval_ms=100),
                           clock=FakeClock())
    assert fast._ticker.interval() == 100


def test_ticker_drives_duration_updates(qt_app):
    clock = FakeClock()
    source = RecordingSource(walk(2))
    session = TrackingSession(source, settings=TrackerSettings(tick_interval_ms=100), clock=clock)
    updates = []
    session.stats_updated.connect(lambda stats: updates.append(stats.duration_seconds))

    session.start()
    clock.advance(3000)
    QTest.qWait(350)
    assert session.stats.duration_seconds == 3.0
    assert 3.0 in updates

    session.pause()
    clock.advance(4000)
    QTest.qWait(250)
    assert session.stats.duration_seconds == 3.0
    session.shutdown()


def test_samples_while_paused_update_position_only(qt_app):
    session, source = make_session()
    session.start()
    for _ in range(3):
        source.manual_step()
    stats_before = session.stats

    session.pause()
    fourth = source.manual_step()

    assert len(session.route) == 3
    assert session.current_position == fourth
    assert session.stats.total_distance_km == stats_before.total_distance_km

    session.resume()
    fifth = source.manual_step()
    assert session.route[-1] == fifth
    assert len(session.route) == 4


def test_stop_keeps_data_and_drops_late_callbacks(qt_app):
    session, source = make_session()
    session.start()
    source.manual_step()
    source.manual_step()
    handle = session._subscription

    session.stop()

    assert session.state is SessionState.STOPPED
    assert source.subscription_count == 0
    assert len(session.route) == 2
    assert session.stats.total_distance_km > 0
    assert not session.is_ticking

    handle.on_sample(PositionSample(46.0, 8.0, 99_000))
    handle.on_error("Position unavailable")
    assert len(session.route) == 2
    assert session.last_error is None


def test_restart_resets_session(qt_app):
    session, source = make_session()
    session.start()
    source.manual_step()
    source.manual_step()
    first_handle = session._subscription
    session.stop()

    session.start()

    assert session.route == ()
    assert session.current_position is None
    assert session.stats == WorkoutStats()

    first_handle.on_sample(PositionSample(46.0, 8.0, 99_000))
    assert session.route == ()


def test_source_errors_do_not_change_state(qt_app):
    session, source = make_session()
    session.start()
    source.manual_step()

    source.inject_error("User denied Geolocation")

    assert session.state is SessionState.TRACKING
    assert session.last_error == "User denied Geolocation"
    assert len(session.route) == 1

    source._on_watchdog_timeout()
    assert session.last_error == TIMEOUT_MESSAGE

    session.stop()
    session.start()
    assert session.last_error is None


def test_network_downgrade_resubscribes_once(qt_app):
    monitor = StaticNetworkMonitor(NetworkQuality("4g"))
    session, source = make_session(monitor=monitor)
    session.start()
    assert source.subscribed_configs == [DEFAULT_SAMPLING]

    monitor.set_quality(NetworkQuality("slow-2g"))

    assert source.subscribed_configs == [DEFAULT_SAMPLING, CONSTRAINED_SAMPLING]
    assert source.subscription_count == 1
    assert session.sampling_config == CONSTRAINED_SAMPLING
    assert session.state is SessionState.TRACKING

    # Same profile, no new subscription.
    monitor.set_quality(NetworkQuality("4g", data_saver=True))
    assert len(source.subscribed_configs) == 2

    source.manual_step()
    assert len(session.route) == 1


def test_network_change_while_paused_resubscribes(qt_app):
    monitor = StaticNetworkMonitor(NetworkQuality("4g"))
    session, source = make_session(monitor=monitor)
    session.start()
    session.pause()

    monitor.set_quality(NetworkQuality("2g"))

    assert source.subscribed_configs[-1] == SLOW_SAMPLING
    assert session.state is SessionState.PAUSED


def test_network_change_while_idle_only_updates_config(qt_app):
    monitor = StaticNetworkMonitor()
    session, source = make_session(monitor=monitor)

    monitor.set_quality(NetworkQuality("slow-2g"))

    assert session.sampling_config == CONSTRAINED_SAMPLING
    assert source.subscribed_configs == []

    session.start()
    assert source.subscribed_configs == [CONSTRAINED_SAMPLING]


def test_snapshot_reflects_outputs(qt_app):
    monitor = StaticNetworkMonitor(NetworkQuality("3g"))
    session, source = make_session(monitor=monitor)
    session.start()
    source.manual_step()
    monitor.set_online(False)

    snapshot = session.snapshot()

    assert snapshot.state is SessionState.TRACKING
    assert snapshot.route_length == 1
    assert snapshot.online is False
    assert snapshot.network_quality.effective_type.value == "3g"
    assert snapshot.sampling_config == DEFAULT_SAMPLING
    assert snapshot.current_position == session.current_position


def test_processing_failure_is_reported(qt_app):
    class BrokenEngine:
        def compute(self, points, duration_seconds=0.0):
            if len(points) > 0:
                raise ArithmeticError("boom")
            return WorkoutStats(duration_seconds=duration_seconds)

    source = RecordingSource(walk(3))
    session = TrackingSession(source, clock=FakeClock(), stats_engine=BrokenEngine())
    session.start()

    source.manual_step()

    assert session.state is SessionState.TRACKING
    assert "boom" in session.last_error
