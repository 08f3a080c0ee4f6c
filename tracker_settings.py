"""Persistent tracker settings backed by ``QSettings``."""

from __future__ import annotations

from dataclasses import asdict, dataclass, fields
from typing import Any, Dict, Optional

from PySide6.QtCore import QSettings

from config_validation import COLOR_FIELDS, _coerce_int, validate_tracker_settings
from logger import LogCategory, get_logger

SETTINGS_ORGANIZATION = "FitTrack"
SETTINGS_APPLICATION = "tracker"
SETTINGS_GROUP = "tracker"


@dataclass(frozen=True)
class TrackerSettings:
    """Rendering and timing knobs of the tracker."""

    canvas_width: int = 400
    canvas_height: int = 300
    padding: int = 20
    tick_interval_ms: int = 1000
    route_line_width: int = 3
    start_marker_radius: int = 6
    live_marker_radius: int = 8
    halo_radius: int = 15
    halo_alpha: int = 77
    route_color: str = "#10B981"
    start_marker_color: str = "#3B82F6"
    live_marker_color: str = "#F59E0B"
    background_color: str = "#F9FAFB"

    def as_dict(self) -> Dict[str, Any]:
        return asdict(self)


def open_settings() -> QSettings:
    return QSettings(SETTINGS_ORGANIZATION, SETTINGS_APPLICATION)


def load_tracker_settings(settings: Optional[QSettings] = None) -> TrackerSettings:
    """Read settings, replacing invalid values with defaults.

    Every rejected value is logged as a warning so a broken config file
    never prevents the tracker from starting.
    """

    settings = settings if settings is not None else open_settings()
    defaults = TrackerSettings()
    raw: Dict[str, Any] = {}
    settings.beginGroup(SETTINGS_GROUP)
    try:
        for setting in fields(TrackerSettings):
            if settings.contains(setting.name):
                raw[setting.name] = settings.value(setting.name)
    finally:
        settings.endGroup()

    issues = validate_tracker_settings({**defaults.as_dict(), **raw})
    rejected = {issue.field for issue in issues}
    logger = get_logger()
    for issue in issues:
        logger.warning(
            f"Ignoring tracker setting '{issue.field}': {issue.message}",
            category=LogCategory.CONFIG,
            setting=issue.field,
            value=raw.get(issue.field),
        )

    values: Dict[str, Any] = {}
    for name, value in raw.items():
        if name in rejected:
            continue
        values[name] = str(value).strip() if name in COLOR_FIELDS else _coerce_int(value)
    merged = {**defaults.as_dict(), **values}
    if validate_tracker_settings(merged):
        # Individually valid values can still clash with a default (halo vs marker).
        logger.warning("Tracker settings are inconsistent, using defaults", category=LogCategory.CONFIG)
        return defaults
    if values:
        logger.debug("Loaded tracker settings", category=LogCategory.CONFIG, **values)
    return TrackerSettings(**merged)


def save_tracker_settings(tracker_settings: TrackerSettings, settings: Optional[QSettings] = None) -> None:
    settings = settings if settings is not None else open_settings()
    settings.beginGroup(SETTINGS_GROUP)
    try:
        for name, value in tracker_settings.as_dict().items():
            settings.setValue(name, value)
    finally:
        settings.endGroup()
    settings.sync()


__all__ = [
    "TrackerSettings",
    "open_settings",
    "load_tracker_settings",
    "save_tracker_settings",
]
