"""Sampling loop: throttled inference driven by the display tick."""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, Optional

from tensorcam.common.logging import get_logger
from tensorcam.common.scheduler import FrameScheduler
from tensorcam.foundation.camera import CameraBackend
from tensorcam.foundation.classifier import ClassifierBackend


ClassifierProvider = Callable[[], Optional[ClassifierBackend]]
LabelsCallback = Callable[[list[str]], Awaitable[None]]


class SamplingLoop:
    """Run inference on one frame out of every ``interval`` display ticks.

    The loop keeps a counter in ``[0, interval)``. It advances once per tick
    while a classifier is available, and a tick that finds it at zero
    attempts inference. Inference runs as a task so the tick returns at once
    and the loop re-arms for the next tick unconditionally.

    With ``single_flight`` set, a sampling tick that finds the previous
    inference still running skips its attempt. Otherwise attempts may overlap
    and the last completion wins.
    """

    def __init__(
        self,
        scheduler: FrameScheduler,
        camera: CameraBackend,
        classifier: ClassifierProvider,
        on_labels: LabelsCallback,
        interval: int = 60,
        single_flight: bool = True,
    ) -> None:
        if interval < 1:
            raise ValueError("interval must be at least 1")

        self.interval = interval
        self.single_flight = single_flight
        self.logger = get_logger("sampling_loop")

        self._scheduler = scheduler
        self._camera = camera
        self._classifier = classifier
        self._on_labels = on_labels

        self._counter = 0
        self._attempts = 0
        self._handle: int | None = None
        self._tasks: set[asyncio.Task] = set()

    @property
    def counter(self) -> int:
        return self._counter

    @property
    def attempts(self) -> int:
        """Inference attempts dispatched so far."""
        return self._attempts

    @property
    def in_flight(self) -> int:
        return len(self._tasks)

    @property
    def armed(self) -> bool:
        return self._handle is not None

    def start(self) -> None:
        """Arm the first tick."""
        if self._handle is None:
            self._handle = self._scheduler.request_frame(self.tick)
            self.logger.debug("sampling_started", interval=self.interval)

    def tick(self, timestamp: float) -> None:
        """Handle one display tick."""
        self._handle = None
        try:
            classifier = self._classifier()
            if classifier is not None:
                if self._counter == 0:
                    self._attempt(classifier)
                self._counter = (self._counter + 1) % self.interval
        finally:
            self._handle = self._scheduler.request_frame(self.tick)

    def _attempt(self, classifier: ClassifierBackend) -> None:
        if self.single_flight and self._tasks:
            self.logger.debug("sampling_skipped_in_flight", in_flight=len(self._tasks))
            return

        self._attempts += 1
        task = asyncio.get_running_loop().create_task(self._sample(classifier))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _sample(self, classifier: ClassifierBackend) -> None:
        frame = await self._camera.next_frame()
        if frame is None:
            self.logger.debug("sampling_no_frame")
            return

        try:
            predictions = await classifier.classify(frame.data)
        except Exception as e:
            self.logger.warning("classification_failed", frame_id=frame.frame_id, error=str(e))
            return
        finally:
            frame.release()

        if not predictions:
            self.logger.debug("classification_empty", frame_id=frame.frame_id)
            return

        await self._on_labels([p.label for p in predictions])

    async def wait_idle(self) -> None:
        """Wait for every in-flight inference to finish."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def stop(self) -> None:
        """Disarm the loop and cancel in-flight inference."""
        if self._handle is not None:
            self._scheduler.cancel_frame(self._handle)
            self._handle = None

        for task in list(self._tasks):
            task.cancel()
        await self.wait_idle()
        self.logger.debug("sampling_stopped", attempts=self._attempts)
