"""
Network Quality Monitoring for FitTrack.
Reports the connection class and the online/offline flag, both with
change notifications, so sampling can adapt to the link in use.
"""
from typing import Callable, Optional

from PySide6.QtCore import QObject, Signal
from PySide6.QtNetwork import QNetworkInformation

from logger import LoggableMixin, LogCategory
from workout_models import EffectiveType, NetworkQuality

QualityCallback = Callable[[NetworkQuality], None]
OnlineCallback = Callable[[bool], None]


class NetworkQualityMonitor(QObject, LoggableMixin):
    """Base monitor holding the latest quality and online flag."""
    quality_changed = Signal(object)
    online_changed = Signal(bool)

    def __init__(self, parent=None):
        QObject.__init__(self, parent)
        LoggableMixin.__init__(self)
        self._quality: Optional[NetworkQuality] = None
        self._online = True
        self._callbacks = {"quality": [], "online": []}

    def get_current(self) -> Optional[NetworkQuality]:
        """Latest quality, or ``None`` until the platform reports one."""
        return self._quality

    def is_online(self) -> bool:
        return self._online

    def on_change(self, callback: QualityCallback):
        self._connect("quality", self.quality_changed, callback)

    def off_change(self, callback: QualityCallback):
        self._disconnect("quality", self.quality_changed, callback)

    def on_online_change(self, callback: OnlineCallback):
        self._connect("online", self.online_changed, callback)

    def off_online_change(self, callback: OnlineCallback):
        self._disconnect("online", self.online_changed, callback)

    def _connect(self, kind: str, signal, callback):
        self._callbacks[kind].append(callback)
        signal.connect(callback)

    def _disconnect(self, kind: str, signal, callback):
        # Only callbacks attached through on_* are detached.
        registered = self._callbacks[kind]
        if callback not in registered:
            return
        registered.remove(callback)
        signal.disconnect(callback)

    def _publish_quality(self, quality: NetworkQuality):
        if quality == self._quality:
            return
        self._quality = quality
        self.log_network_event(
            "quality_changed",
            effective_type=quality.effective_type.value,
            downlink_mbps=quality.downlink_mbps,
            round_trip_ms=quality.round_trip_ms,
            data_saver=quality.data_saver,
        )
        self.quality_changed.emit(quality)

    def _publish_online(self, online: bool):
        online = bool(online)
        if online == self._online:
            return
        self._online = online
        self.log_network_event("online" if online else "offline")
        self.online_changed.emit(online)


class StaticNetworkMonitor(NetworkQualityMonitor):
    """Monitor whose values are pushed programmatically (CLI flags, tests)."""

    def __init__(self, quality: Optional[NetworkQuality] = None, online: bool = True, parent=None):
        super().__init__(parent)
        self._quality = quality
        self._online = online

    def set_quality(self, quality: NetworkQuality):
        self._publish_quality(quality)

    def set_online(self, online: bool):
        self._publish_online(online)


class QtNetworkMonitor(NetworkQualityMonitor):
    """Monitor backed by ``QNetworkInformation``.

    Qt reports the transport medium rather than a bandwidth estimate, so
    wired and Wi-Fi links count as 4g, cellular as 3g and Bluetooth
    tethering as 2g. A metered connection is treated as data-saver mode.
    """
    _TIERS = {
        QNetworkInformation.TransportMedium.Ethernet: EffectiveType.FOUR_G,
        QNetworkInformation.TransportMedium.WiFi: EffectiveType.FOUR_G,
        QNetworkInformation.TransportMedium.Cellular: EffectiveType.THREE_G,
        QNetworkInformation.TransportMedium.Bluetooth: EffectiveType.TWO_G,
    }

    def __init__(self, parent=None):
        super().__init__(parent)
        self._info: Optional[QNetworkInformation] = None
        if not QNetworkInformation.loadDefaultBackend():
            self.log_warning("No network information backend available", category=LogCategory.NETWORK)
            return
        self._info = QNetworkInformation.instance()
        self._info.reachabilityChanged.connect(self._refresh)
        self._info.transportMediumChanged.connect(self._refresh)
        self._info.isMeteredChanged.connect(self._refresh)
        self._refresh()

    @property
    def has_backend(self) -> bool:
        return self._info is not None

    def _refresh(self, *_):
        if self._info is None:
            return
        reachability = self._info.reachability()
        if reachability != QNetworkInformation.Reachability.Unknown:
            self._publish_online(reachability != QNetworkInformation.Reachability.Disconnected)
        self._publish_quality(NetworkQuality(
            effective_type=self._TIERS.get(self._info.transportMedium(), EffectiveType.UNKNOWN),
            data_saver=self._info.isMetered(),
        ))


__all__ = ["NetworkQualityMonitor", "StaticNetworkMonitor", "QtNetworkMonitor"]
