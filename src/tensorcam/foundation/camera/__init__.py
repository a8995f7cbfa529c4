"""Camera capability."""

from tensorcam.foundation.camera.service import (
    CameraBackend,
    CameraPermission,
    Frame,
    MockCameraBackend,
    OpenCVCameraBackend,
    create_camera_backend,
)

__all__ = [
    "CameraBackend",
    "CameraPermission",
    "Frame",
    "MockCameraBackend",
    "OpenCVCameraBackend",
    "create_camera_backend",
]
