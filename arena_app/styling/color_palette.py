"""Color palette for the host console, in light and dark variants."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto


class Theme(Enum):
    LIGHT = auto()
    DARK = auto()


@dataclass(frozen=True)
class ThemeColors:
    light: str
    dark: str

    def get(self, theme: Theme) -> str:
        return self.light if theme == Theme.LIGHT else self.dark


class ColorPalette:
    """Named colors shared by every console stylesheet."""

    TEXT_PRIMARY = ThemeColors(light="#0B1120", dark="#F5F7FF")
    TEXT_MUTED = ThemeColors(light="#5B6475", dark="#9AA4B8")

    SURFACE = ThemeColors(light="#FFFFFF", dark="#0B1120")
    SURFACE_RAISED = ThemeColors(light="#F1F4FA", dark="#111A30")
    BORDER = ThemeColors(light="#CCD3E0", dark="#2A3550")

    # Arena accents
    ACCENT = ThemeColors(light="#1F9AA5", dark="#38C6D1")
    ACCENT_TEXT = ThemeColors(light="#FFFFFF", dark="#0B1120")
    LIVE = ThemeColors(light="#D13438", dark="#FF6B6B")
    GOLD = ThemeColors(light="#B8860B", dark="#FACC15")

    BUTTON_BG = ThemeColors(light="#F1F4FA", dark="#1A2540")
    BUTTON_HOVER_BG = ThemeColors(light="#E1E7F2", dark="#24325A")
