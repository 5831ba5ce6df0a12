"""Pointer gesture classification.

A single pointer stream must resolve to exactly one intent per gesture.
Classification uses event timestamps rather than wall-clock timers, so the
same event sequence always classifies the same way.

Secondary button:
    released before HOLD_THRESHOLD_MS, travel within CLICK_TOLERANCE_PX  -> TAP (menu)
    held to the threshold, or moved beyond the tolerance                  -> HOLD (camera)

Primary button:
    released within CLICK_TOLERANCE_PX of the press   -> CLICK
    moved beyond it                                    -> DRAG (pan)
"""

import logging
import math
from dataclasses import dataclass
from enum import Enum

from mission_planner.constants import InteractionConfig
from mission_planner.model.input_event import PointerEvent

logger = logging.getLogger(__name__)


class GestureKind(Enum):
    TAP = "tap"
    HOLD = "hold"
    CLICK = "click"
    DRAG = "drag"


@dataclass
class _Press:
    x: float
    y: float
    timestamp_ms: float
    moved: bool = False


def _travel(press: _Press, event: PointerEvent) -> float:
    return math.hypot(event.x - press.x, event.y - press.y)


def classify_secondary(
    elapsed_ms: float,
    moved: bool,
    hold_threshold_ms: float = InteractionConfig.HOLD_THRESHOLD_MS,
) -> GestureKind:
    """Tap if released before the hold threshold without moving, hold otherwise."""
    if elapsed_ms < hold_threshold_ms and not moved:
        return GestureKind.TAP
    return GestureKind.HOLD


class SecondaryGestureTracker:
    """Tap/hold classifier for the secondary (right) button.

    Example:
        tracker.press(down_event)
        if tracker.update(move_event):   # hold reached -> camera control
            ...
        kind = tracker.release(up_event)  # TAP -> open menu
    """

    def __init__(
        self,
        hold_threshold_ms: float = InteractionConfig.HOLD_THRESHOLD_MS,
        tolerance_px: float = InteractionConfig.CLICK_TOLERANCE_PX,
    ) -> None:
        self.hold_threshold_ms = hold_threshold_ms
        self.tolerance_px = tolerance_px
        self._press: _Press | None = None

    @property
    def pressed(self) -> bool:
        return self._press is not None

    @property
    def press_position(self) -> tuple[float, float] | None:
        return (self._press.x, self._press.y) if self._press else None

    def press(self, event: PointerEvent) -> None:
        self._press = _Press(x=event.x, y=event.y, timestamp_ms=event.timestamp_ms)

    def is_hold(self, timestamp_ms: float) -> bool:
        """True once the current press has become a hold by time or movement."""
        if self._press is None:
            return False
        elapsed = timestamp_ms - self._press.timestamp_ms
        return classify_secondary(elapsed, self._press.moved, self.hold_threshold_ms) == GestureKind.HOLD

    def update(self, event: PointerEvent) -> bool:
        """Track movement of the held button. Returns True if the press is now a hold."""
        if self._press is None:
            return False
        if _travel(self._press, event) > self.tolerance_px:
            self._press.moved = True
        return self.is_hold(event.timestamp_ms)

    def release(self, event: PointerEvent) -> GestureKind | None:
        """Classify and end the press. None if no press was being tracked."""
        if self._press is None:
            return None
        self.update(event)
        kind = classify_secondary(
            event.timestamp_ms - self._press.timestamp_ms, self._press.moved, self.hold_threshold_ms
        )
        self._press = None
        return kind

    def reset(self) -> None:
        self._press = None


class PrimaryGestureTracker:
    """Click/drag classifier for the primary (left) button."""

    def __init__(self, tolerance_px: float = InteractionConfig.CLICK_TOLERANCE_PX) -> None:
        self.tolerance_px = tolerance_px
        self._press: _Press | None = None

    @property
    def pressed(self) -> bool:
        return self._press is not None

    @property
    def dragging(self) -> bool:
        return self._press is not None and self._press.moved

    def press(self, event: PointerEvent) -> None:
        self._press = _Press(x=event.x, y=event.y, timestamp_ms=event.timestamp_ms)

    def update(self, event: PointerEvent) -> bool:
        """Track movement. Returns True if the press has become a drag."""
        if self._press is None:
            return False
        if not self._press.moved and _travel(self._press, event) > self.tolerance_px:
            self._press.moved = True
            logger.debug(f"Primary press became a drag at ({event.x:.0f}, {event.y:.0f})")
        return self._press.moved

    def release(self, event: PointerEvent) -> GestureKind | None:
        if self._press is None:
            return None
        self.update(event)
        kind = GestureKind.DRAG if self._press.moved else GestureKind.CLICK
        self._press = None
        return kind

    def reset(self) -> None:
        self._press = None
