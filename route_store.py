"""Append-only storage for the accepted route of a tracking session."""

from __future__ import annotations

from typing import List, Optional, Tuple

from workout_models import PositionSample, RouteFrame, TrackingError


class SampleRejectedOutOfOrder(TrackingError):
    """Raised when a sample does not advance past the last accepted timestamp."""

    def __init__(self, sample: PositionSample, last_timestamp_ms: int):
        super().__init__(
            f"sample at {sample.timestamp_ms}ms does not follow last accepted sample at "
            f"{last_timestamp_ms}ms"
        )
        self.sample = sample
        self.last_timestamp_ms = last_timestamp_ms


class RouteStore:
    """Accepted route points plus the latest raw position.

    The two are updated independently: the raw position follows every
    sample the source delivers, while the route only grows through
    :meth:`append`.
    """

    def __init__(self) -> None:
        self._points: List[PositionSample] = []
        self._current: Optional[PositionSample] = None

    def __len__(self) -> int:
        return len(self._points)

    @property
    def points(self) -> Tuple[PositionSample, ...]:
        return tuple(self._points)

    @property
    def current_position(self) -> Optional[PositionSample]:
        return self._current

    @property
    def last_accepted(self) -> Optional[PositionSample]:
        return self._points[-1] if self._points else None

    def update_current(self, sample: PositionSample) -> None:
        self._current = sample

    def append(self, sample: PositionSample) -> None:
        """Append ``sample``; timestamps must strictly increase."""

        last = self.last_accepted
        if last is not None and sample.timestamp_ms <= last.timestamp_ms:
            raise SampleRejectedOutOfOrder(sample, last.timestamp_ms)
        self._points.append(sample)

    def clear(self) -> None:
        self._points.clear()
        self._current = None

    def frame(self) -> RouteFrame:
        """Snapshot for the renderer."""

        return RouteFrame(points=tuple(self._points), current=self._current)


__all__ = ["RouteStore", "SampleRejectedOutOfOrder"]
