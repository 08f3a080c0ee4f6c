"""Validation helpers for FitTrack tracker settings."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Dict, List


@dataclass(frozen=True)
class ValidationIssue:
    """Represents a configuration validation problem."""

    field: str
    title: str
    message: str


_COLOR_PATTERN = re.compile(r"#(?:[0-9A-Fa-f]{6}|[0-9A-Fa-f]{8})")

_INT_RANGES = {
    "canvas_width": (100, 4096, "Canvas Width"),
    "canvas_height": (100, 4096, "Canvas Height"),
    "tick_interval_ms": (100, 10000, "Tick Interval"),
    "route_line_width": (1, 20, "Route Line Width"),
    "start_marker_radius": (1, 50, "Start Marker Radius"),
    "live_marker_radius": (1, 50, "Live Marker Radius"),
    "halo_radius": (1, 100, "Halo Radius"),
    "halo_alpha": (0, 255, "Halo Opacity"),
}

COLOR_FIELDS = ("route_color", "start_marker_color", "live_marker_color", "background_color")


def _coerce_int(value: Any) -> int | None:
    """Best-effort conversion to ``int`` returning ``None`` on failure."""

    if isinstance(value, bool):
        # ``bool`` is a subclass of ``int`` in Python, but we treat it as invalid
        return None
    if isinstance(value, int):
        return value
    try:
        return int(str(value).strip())
    except (TypeError, ValueError):
        return None


def validate_tracker_settings(settings: Dict[str, Any]) -> List[ValidationIssue]:
    """Validate a tracker settings payload.

    Parameters
    ----------
    settings:
        Mapping of setting names to raw values, e.g. as read from
        ``QSettings`` where everything may come back as a string.
        Missing keys are not reported.

    Returns
    -------
    list[ValidationIssue]
        A collection of validation issues. An empty list denotes success.
    """

    issues: List[ValidationIssue] = []
    values: Dict[str, int] = {}

    for field, (low, high, label) in _INT_RANGES.items():
        if field not in settings:
            continue
        value = _coerce_int(settings[field])
        if value is None:
            issues.append(
                ValidationIssue(
                    field=field,
                    title=f"{label} Invalid",
                    message=f"{label} must be a whole number between {low} and {high}.",
                )
            )
        elif not low <= value <= high:
            issues.append(
                ValidationIssue(
                    field=field,
                    title=f"{label} Out of Range",
                    message=f"Choose a {label.lower()} between {low} and {high}.",
                )
            )
        else:
            values[field] = value

    if "padding" in settings:
        padding = _coerce_int(settings["padding"])
        width = values.get("canvas_width")
        height = values.get("canvas_height")
        if padding is None or padding < 0:
            issues.append(
                ValidationIssue(
                    field="padding",
                    title="Padding Invalid",
                    message="Padding must be a whole number of pixels, zero or more.",
                )
            )
        elif width is not None and height is not None and 2 * padding >= min(width, height):
            issues.append(
                ValidationIssue(
                    field="padding",
                    title="Padding Too Large",
                    message="Padding must leave room for the route: keep it below half the canvas size.",
                )
            )

    live_radius = values.get("live_marker_radius")
    halo_radius = values.get("halo_radius")
    if live_radius is not None and halo_radius is not None and halo_radius <= live_radius:
        issues.append(
            ValidationIssue(
                field="halo_radius",
                title="Halo Hidden",
                message="The live position halo must be larger than the live marker.",
            )
        )

    for field in COLOR_FIELDS:
        if field not in settings:
            continue
        if not _COLOR_PATTERN.fullmatch(str(settings[field]).strip()):
            issues.append(
                ValidationIssue(
                    field=field,
                    title="Colour Invalid",
                    message="Colours use #RRGGBB or #AARRGGBB hexadecimal notation.",
                )
            )

    return issues
