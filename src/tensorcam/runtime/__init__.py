"""Screen runtime: sampling loop and screen lifecycle."""

from tensorcam.runtime.sampling import SamplingLoop
from tensorcam.runtime.screen import CameraScreen, ScreenPhase

__all__ = ["SamplingLoop", "CameraScreen", "ScreenPhase"]
