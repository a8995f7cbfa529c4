"""Camera classification screen."""

from __future__ import annotations

import asyncio
from enum import Enum

from tensorcam.common.events import (
    TOPIC_LABELS,
    TOPIC_MODEL_LOADED,
    TOPIC_PERMISSION,
    TOPIC_PHASE,
    Event,
    EventBus,
    get_event_bus,
)
from tensorcam.common.scheduler import FrameScheduler
from tensorcam.common.service import BaseService
from tensorcam.config import Config
from tensorcam.foundation.camera import CameraBackend, CameraPermission, create_camera_backend
from tensorcam.foundation.classifier import ClassifierBackend, create_classifier
from tensorcam.foundation.display import DisplaySurface, ScreenView, create_display
from tensorcam.runtime.sampling import SamplingLoop


class ScreenPhase(Enum):
    """Screen lifecycle phase. Moves from AWAITING to RUNNING only."""

    AWAITING = "awaiting"
    RUNNING = "running"


class CameraScreen(BaseService):
    """Single screen: camera preview with the classifier's top labels.

    Responsibilities:
    - Camera permission request
    - Background model loading
    - Sampling loop and label state
    - Rendering on every display tick
    """

    def __init__(
        self,
        config: Config | None = None,
        mock_mode: bool = False,
        camera: CameraBackend | None = None,
        classifier: ClassifierBackend | None = None,
        display: DisplaySurface | None = None,
        scheduler: FrameScheduler | None = None,
        event_bus: EventBus | None = None,
        drive_scheduler: bool = True,
    ) -> None:
        """Initialize the screen.

        Args:
            config: Configuration. Loaded from file if None.
            mock_mode: Use mock camera and classifier backends.
            camera: Camera backend override.
            classifier: Classifier backend override (loaded during setup).
            display: Display surface override.
            scheduler: Tick scheduler override.
            event_bus: Event bus (the global bus if None).
            drive_scheduler: Run the scheduler's tick loop during setup.
                Tests pass False and call ``scheduler.step()`` themselves.
        """
        super().__init__("camera-screen", config, mock_mode)

        self.camera = camera or create_camera_backend(self.config, self.mock_mode)
        self.display = display or create_display(self.config)
        self.scheduler = scheduler or FrameScheduler(self.config.display.refresh_hz)
        self.event_bus = event_bus or get_event_bus()
        self.drive_scheduler = drive_scheduler

        self._pending_classifier = classifier or create_classifier(self.config, self.mock_mode)
        self._classifier: ClassifierBackend | None = None

        self.sampling = SamplingLoop(
            self.scheduler,
            self.camera,
            classifier=lambda: self._classifier,
            on_labels=self.update_labels,
            interval=self.config.sampling.interval,
            single_flight=self.config.sampling.single_flight,
        )

        self._permission = CameraPermission.UNKNOWN
        self._phase = ScreenPhase.AWAITING
        self._labels: list[str] = []
        self._render_handle: int | None = None
        self._scheduler_task: asyncio.Task | None = None
        self._load_task: asyncio.Task | None = None
        self._camera_started = False

    @property
    def permission(self) -> CameraPermission:
        return self._permission

    @property
    def phase(self) -> ScreenPhase:
        return self._phase

    @property
    def classifier(self) -> ClassifierBackend | None:
        """The loaded classifier, or None while loading."""
        return self._classifier

    @property
    def labels(self) -> list[str]:
        """Labels of the most recent successful classification."""
        return list(self._labels)

    async def setup(self) -> None:
        """Request permission, then start the camera and load the model."""
        self.logger.info("screen_setup", mock_mode=self.mock_mode)

        self._render_handle = self.scheduler.request_frame(self._render)
        if self.drive_scheduler:
            self._scheduler_task = asyncio.create_task(self.scheduler.run())

        self._permission = await self.camera.request_permission()
        self.logger = self.logger.bind(permission=self._permission.value)
        await self._publish(TOPIC_PERMISSION, {"permission": self._permission.value})

        if self._permission is not CameraPermission.GRANTED:
            self.logger.warning("camera_permission_denied")
            return

        await self.camera.setup()
        self._camera_started = True

        self.sampling.start()
        self._load_task = asyncio.create_task(self._load_classifier())

    async def _load_classifier(self) -> None:
        classifier = self._pending_classifier
        try:
            await classifier.load()
        except Exception as e:
            self.logger.exception("classifier_load_failed", error=str(e))
            self.fail(e)
            return

        self._classifier = classifier
        await self._publish(TOPIC_MODEL_LOADED, {"model": classifier.name})

        self._phase = ScreenPhase.RUNNING
        self.logger = self.logger.bind(phase=self._phase.value)
        self.logger.info("screen_running", model=classifier.name)
        await self._publish(TOPIC_PHASE, {"phase": self._phase.value})

    async def wait_until_running(self) -> None:
        """Wait for background model loading to finish."""
        if self._load_task is not None:
            await self._load_task

    async def update_labels(self, labels: list[str]) -> None:
        """Replace the displayed labels."""
        self._labels = list(labels)
        self.logger.info("labels_updated", labels=self._labels)
        await self._publish(TOPIC_LABELS, {"labels": list(self._labels)})

    def current_view(self) -> ScreenView:
        """Build the view for the current state."""
        if self._permission is CameraPermission.UNKNOWN:
            return ScreenView()
        if self._permission is CameraPermission.DENIED:
            return ScreenView(message=self.config.display.no_access_message)
        if self._classifier is None:
            return ScreenView(message=self.config.display.not_loaded_message)
        return ScreenView(preview=self.camera.preview(), labels=tuple(self._labels))

    def _render(self, timestamp: float) -> None:
        self._render_handle = None
        if self.display.closed:
            self.logger.info("display_closed")
            self.shutdown()
            return

        try:
            self.display.render(self.current_view())
        finally:
            self._render_handle = self.scheduler.request_frame(self._render)

    async def _publish(self, topic: str, data: dict) -> None:
        await self.event_bus.publish(Event(topic=topic, data=data, source=self.name))

    async def teardown(self) -> None:
        """Stop ticking and release the camera and display."""
        self.logger.info("screen_teardown")

        if self._load_task and not self._load_task.done():
            self._load_task.cancel()
            try:
                await self._load_task
            except asyncio.CancelledError:
                pass

        await self.sampling.stop()

        if self._render_handle is not None:
            self.scheduler.cancel_frame(self._render_handle)
            self._render_handle = None

        if self._scheduler_task:
            self.scheduler.stop()
            await self._scheduler_task
            self._scheduler_task = None

        if self._camera_started:
            await self.camera.teardown()
            self._camera_started = False

        self.display.close()
