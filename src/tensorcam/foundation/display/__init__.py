"""Display surface."""

from tensorcam.foundation.display.service import (
    DisplaySurface,
    HeadlessDisplay,
    OpenCVDisplay,
    ScreenView,
    create_display,
)

__all__ = [
    "DisplaySurface",
    "HeadlessDisplay",
    "OpenCVDisplay",
    "ScreenView",
    "create_display",
]
