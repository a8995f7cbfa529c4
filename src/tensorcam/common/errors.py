"""Exception types raised by tensorcam."""

from __future__ import annotations


class TensorcamError(Exception):
    """Base class for tensorcam errors."""


class CameraError(TensorcamError):
    """The camera could not be opened or was used before setup."""


class ClassifierLoadError(TensorcamError):
    """The classifier variant is unsupported or its weights failed to load."""
