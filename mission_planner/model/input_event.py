"""Input events delivered by the host surface.

Positions are host-surface pixels. Timestamps are milliseconds from any
monotonic origin; gesture classification only uses differences.
"""

from dataclasses import dataclass, field
from enum import Enum


class PointerButton(Enum):
    """Physical pointer button (DOM MouseEvent.button numbering)."""

    PRIMARY = 0
    MIDDLE = 1
    SECONDARY = 2


class Key:
    """Key names the controller reacts to (DOM KeyboardEvent.key values)."""

    ESCAPE = "Escape"
    ENTER = "Enter"
    DELETE = "Delete"
    BACKSPACE = "Backspace"

    DELETE_KEYS = frozenset({DELETE, BACKSPACE})


@dataclass(frozen=True)
class Modifiers:
    """Modifier keys held during a pointer event."""

    alt: bool = False
    shift: bool = False
    ctrl: bool = False
    meta: bool = False

    @property
    def camera(self) -> bool:
        """Alt turns a primary drag into camera control."""
        return self.alt


@dataclass(frozen=True)
class PointerEvent:
    """A pointer-down/move/up or double-click at a surface position.

    Attributes:
        x, y: Host-surface pixel position
        timestamp_ms: Event time in milliseconds
        button: Button that changed (down/up) or is held (move)
        modifiers: Modifier keys held
    """

    x: float
    y: float
    timestamp_ms: float
    button: PointerButton = PointerButton.PRIMARY
    modifiers: Modifiers = field(default_factory=Modifiers)

    @property
    def position(self) -> tuple[float, float]:
        return (self.x, self.y)
