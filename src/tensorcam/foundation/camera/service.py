"""Camera capability: permission, live frames and preview."""

from __future__ import annotations

import asyncio
import time
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable

import cv2
import numpy as np

from tensorcam.common.errors import CameraError
from tensorcam.common.logging import get_logger
from tensorcam.config import Config, TextureDims


class CameraPermission(str, Enum):
    """Camera permission state."""

    UNKNOWN = "unknown"
    GRANTED = "granted"
    DENIED = "denied"


@dataclass
class Frame:
    """Frame issued to a consumer; call ``release()`` once done with it."""

    frame_id: str
    data: np.ndarray | None
    width: int
    height: int
    timestamp: float
    metadata: dict = field(default_factory=dict)
    _on_release: Callable[[Frame], None] | None = field(default=None, repr=False)

    @property
    def released(self) -> bool:
        return self.data is None

    def release(self) -> None:
        """Drop the pixel buffer. Safe to call more than once."""
        if self.data is None:
            return
        self.data = None
        if self._on_release is not None:
            self._on_release(self)
            self._on_release = None


class CameraBackend:
    """Abstract camera backend."""

    def __init__(self, config: Config) -> None:
        self.config = config
        self.texture_dims: TextureDims = config.camera.texture_dims()
        self._live_frames: set[str] = set()
        self._frames_issued = 0

    @property
    def live_frames(self) -> int:
        """Frames handed out and not yet released."""
        return len(self._live_frames)

    @property
    def frames_issued(self) -> int:
        return self._frames_issued

    async def request_permission(self) -> CameraPermission:
        """Ask for access to the camera."""
        raise NotImplementedError

    async def setup(self) -> None:
        """Start streaming."""
        pass

    async def teardown(self) -> None:
        """Stop streaming."""
        pass

    async def next_frame(self) -> Frame | None:
        """Get the newest image at classifier input size, if one is ready."""
        raise NotImplementedError

    def preview(self) -> np.ndarray | None:
        """Latest full-size RGB image for display."""
        raise NotImplementedError

    def get_status(self) -> dict:
        """Get camera status."""
        raise NotImplementedError

    def _resize(self, image: np.ndarray) -> np.ndarray:
        cam = self.config.camera
        if image.shape[0] == cam.resize_height and image.shape[1] == cam.resize_width:
            return image.copy()
        return cv2.resize(image, (cam.resize_width, cam.resize_height), interpolation=cv2.INTER_AREA)

    def _issue(self, image: np.ndarray, **metadata: object) -> Frame:
        """Wrap a resized image in a tracked frame."""
        frame = Frame(
            frame_id=str(uuid.uuid4()),
            data=image,
            width=image.shape[1],
            height=image.shape[0],
            timestamp=time.time(),
            metadata=dict(metadata),
            _on_release=self._released,
        )
        self._live_frames.add(frame.frame_id)
        self._frames_issued += 1
        return frame

    def _released(self, frame: Frame) -> None:
        self._live_frames.discard(frame.frame_id)


class MockCameraBackend(CameraBackend):
    """Mock camera backend producing synthetic frames."""

    def __init__(
        self,
        config: Config,
        permission: CameraPermission | None = None,
    ) -> None:
        super().__init__(config)
        if permission is None:
            permission = CameraPermission(config.camera.mock_permission)
        self._permission = permission
        self._streaming = False
        self._frame_ready = True
        self._frame_count = 0
        self._latest: np.ndarray | None = None

    @property
    def streaming(self) -> bool:
        return self._streaming

    def set_frame_ready(self, ready: bool) -> None:
        """Control whether ``next_frame()`` yields a frame."""
        self._frame_ready = ready

    async def request_permission(self) -> CameraPermission:
        return self._permission

    async def setup(self) -> None:
        if self._permission is not CameraPermission.GRANTED:
            raise CameraError("Camera permission not granted")
        self._streaming = True

    async def teardown(self) -> None:
        self._streaming = False
        self._latest = None

    def _capture(self) -> np.ndarray:
        self._frame_count += 1
        dims = self.texture_dims
        shade = (self._frame_count * 7) % 256
        image = np.full((dims.height, dims.width, 3), (73, 109, shade), dtype=np.uint8)
        self._latest = image
        return image

    async def next_frame(self) -> Frame | None:
        if not self._streaming or not self._frame_ready:
            return None
        image = self._capture()
        return self._issue(self._resize(image), frame_number=self._frame_count, mock=True)

    def preview(self) -> np.ndarray | None:
        if not self._streaming:
            return None
        if self._latest is None:
            return self._capture()
        return self._latest

    def get_status(self) -> dict:
        return {
            "available": True,
            "state": "streaming" if self._streaming else "idle",
            "permission": self._permission.value,
            "texture_dims": [self.texture_dims.width, self.texture_dims.height],
            "live_frames": self.live_frames,
            "frames_issued": self.frames_issued,
        }


class OpenCVCameraBackend(CameraBackend):
    """Camera backend using an OpenCV capture device."""

    def __init__(self, config: Config) -> None:
        super().__init__(config)
        self.logger = get_logger("opencv_camera_backend")
        self._capture: cv2.VideoCapture | None = None
        self._reader: asyncio.Task | None = None
        self._latest: np.ndarray | None = None
        self._latest_seq = 0
        self._taken_seq = 0
        self._permission = CameraPermission.UNKNOWN

    async def request_permission(self) -> CameraPermission:
        """Open the device; access is granted when it opens."""
        if self._capture is None:
            self._capture = await asyncio.to_thread(self._open)

        if self._capture.isOpened():
            self._permission = CameraPermission.GRANTED
        else:
            self._permission = CameraPermission.DENIED
            self._capture.release()
            self._capture = None

        self.logger.info(
            "camera_permission",
            device_index=self.config.camera.device_index,
            permission=self._permission.value,
        )
        return self._permission

    def _open(self) -> cv2.VideoCapture:
        capture = cv2.VideoCapture(self.config.camera.device_index)
        if capture.isOpened():
            capture.set(cv2.CAP_PROP_FRAME_WIDTH, self.texture_dims.width)
            capture.set(cv2.CAP_PROP_FRAME_HEIGHT, self.texture_dims.height)
            capture.set(cv2.CAP_PROP_FPS, self.config.camera.fps)
        return capture

    async def setup(self) -> None:
        if self._permission is CameraPermission.UNKNOWN:
            await self.request_permission()
        if self._capture is None:
            raise CameraError(
                f"Camera {self.config.camera.device_index} could not be opened"
            )

        self._reader = asyncio.create_task(self._read_loop())
        self.logger.info(
            "camera_streaming",
            width=self.texture_dims.width,
            height=self.texture_dims.height,
        )

    async def teardown(self) -> None:
        if self._reader:
            self._reader.cancel()
            try:
                await self._reader
            except asyncio.CancelledError:
                pass
            self._reader = None

        if self._capture:
            self._capture.release()
            self._capture = None

        self._latest = None

    async def _read_loop(self) -> None:
        """Keep the newest captured image in a single slot."""
        interval = 1.0 / self.config.camera.fps
        while self._capture is not None:
            started = time.monotonic()
            ok, bgr = await asyncio.to_thread(self._capture.read)
            if ok and bgr is not None:
                self._latest = cv2.cvtColor(bgr, cv2.COLOR_BGR2RGB)
                self._latest_seq += 1
            else:
                self.logger.debug("camera_read_failed")

            elapsed = time.monotonic() - started
            await asyncio.sleep(max(interval - elapsed, 0))

    async def next_frame(self) -> Frame | None:
        if self._latest is None or self._latest_seq == self._taken_seq:
            return None

        self._taken_seq = self._latest_seq
        image = self._resize(self._latest)
        return self._issue(image, sequence=self._taken_seq)

    def preview(self) -> np.ndarray | None:
        return self._latest

    def get_status(self) -> dict:
        available = self._capture is not None and self._capture.isOpened()
        return {
            "available": available,
            "state": "streaming" if self._reader else "idle",
            "permission": self._permission.value,
            "device_index": self.config.camera.device_index,
            "texture_dims": [self.texture_dims.width, self.texture_dims.height],
            "live_frames": self.live_frames,
            "frames_issued": self.frames_issued,
        }


def create_camera_backend(config: Config, mock_mode: bool = False) -> CameraBackend:
    """Create the camera backend for the current mode."""
    if mock_mode:
        return MockCameraBackend(config)
    return OpenCVCameraBackend(config)
