"""Display mode state for presentation collaborators.

Tracks which annotation surfaces are enabled. Cursor and viewport modes
restrict annotation to the current line or the visible ranges respectively
and cannot both be on: enabling one turns the other off.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, List


class DisplayMode(Enum):
    """Independently toggled presentation surfaces and filters."""

    INLINE = "inline"           # Decorations after each opening tag
    SIDEBAR = "sidebar"         # Tree view of indexed elements
    ANNOTATION = "annotation"   # Code-lens style annotations
    NUMBER = "number"           # Label with sequence number instead of [tag #n]
    CURSOR = "cursor"           # Only annotate the cursor line
    VIEWPORT = "viewport"       # Only annotate visible ranges


_EXCLUSIVE = {
    DisplayMode.CURSOR: DisplayMode.VIEWPORT,
    DisplayMode.VIEWPORT: DisplayMode.CURSOR,
}


@dataclass
class DisplayModes:
    """Mutable set of enabled display modes."""

    inline: bool = False
    sidebar: bool = False
    annotation: bool = False
    number: bool = False
    cursor: bool = False
    viewport: bool = False

    def __post_init__(self) -> None:
        if self.cursor and self.viewport:
            raise ValueError("cursor and viewport modes are mutually exclusive")

    def is_enabled(self, mode: DisplayMode) -> bool:
        return bool(getattr(self, mode.value))

    def set(self, mode: DisplayMode, enabled: bool) -> None:
        """Enable or disable ``mode``, switching off its exclusive partner."""
        setattr(self, mode.value, enabled)
        partner = _EXCLUSIVE.get(mode)
        if enabled and partner is not None:
            setattr(self, partner.value, False)

    def toggle(self, mode: DisplayMode) -> bool:
        """Flip ``mode``; returns the new state."""
        enabled = not self.is_enabled(mode)
        self.set(mode, enabled)
        return enabled

    def close_all(self) -> None:
        """Turn every mode off."""
        for mode in DisplayMode:
            setattr(self, mode.value, False)

    @property
    def any_surface(self) -> bool:
        """True when any surface that renders annotations is enabled."""
        return self.inline or self.sidebar or self.annotation

    def enabled(self) -> List[DisplayMode]:
        return [mode for mode in DisplayMode if self.is_enabled(mode)]

    def to_dict(self) -> Dict[str, bool]:
        return {mode.value: self.is_enabled(mode) for mode in DisplayMode}
