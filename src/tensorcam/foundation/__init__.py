"""Capabilities the screen is built on: camera, classifier and display."""

from tensorcam.foundation.camera import CameraBackend, CameraPermission, create_camera_backend
from tensorcam.foundation.classifier import ClassifierBackend, Prediction, load_classifier
from tensorcam.foundation.display import DisplaySurface, ScreenView, create_display

__all__ = [
    "CameraBackend",
    "CameraPermission",
    "create_camera_backend",
    "ClassifierBackend",
    "Prediction",
    "load_classifier",
    "DisplaySurface",
    "ScreenView",
    "create_display",
]
