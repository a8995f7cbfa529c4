"""Display surface: live preview with a label overlay."""

from __future__ import annotations

from dataclasses import dataclass, field

import cv2
import numpy as np

from tensorcam.common.logging import get_logger
from tensorcam.config import Config


@dataclass
class ScreenView:
    """What a single display tick shows.

    A ``message`` replaces the preview entirely; otherwise the preview is drawn
    with one overlay line per label.
    """

    message: str | None = None
    preview: np.ndarray | None = None
    labels: tuple[str, ...] = field(default_factory=tuple)

    @property
    def shows_preview(self) -> bool:
        return self.message is None and self.preview is not None


class DisplaySurface:
    """Abstract display surface."""

    @property
    def closed(self) -> bool:
        """True once the user has closed the surface."""
        return False

    def render(self, view: ScreenView) -> None:
        """Draw one tick."""
        raise NotImplementedError

    def close(self) -> None:
        """Release the surface."""
        pass


class HeadlessDisplay(DisplaySurface):
    """Display that keeps the last view and logs changes."""

    def __init__(self) -> None:
        self.logger = get_logger("headless_display")
        self.last_view: ScreenView | None = None
        self.render_count = 0
        self.preview_count = 0
        self.messages: list[str] = []
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def render(self, view: ScreenView) -> None:
        previous = self.last_view
        self.last_view = view
        self.render_count += 1
        if view.shows_preview:
            self.preview_count += 1

        if view.message is not None and (previous is None or previous.message != view.message):
            self.messages.append(view.message)
            self.logger.info("display_message", message=view.message)

        if view.message is None and (previous is None or previous.labels != view.labels):
            self.logger.info("display_labels", labels=list(view.labels))

    def close(self) -> None:
        self._closed = True


class OpenCVDisplay(DisplaySurface):
    """OpenCV window showing the camera preview and label overlay.

    Press 'q' or Esc in the window to close it.
    """

    BLANK_SIZE = (480, 640)
    TEXT_COLOR = (255, 255, 255)
    SHADOW_COLOR = (0, 0, 0)

    def __init__(self, window_title: str = "tensorcam") -> None:
        self.window_title = window_title
        self.logger = get_logger("opencv_display")
        self._window_open = False
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def render(self, view: ScreenView) -> None:
        if self._closed:
            return

        if view.message is not None:
            canvas = self._blank()
            self._draw_text(canvas, view.message, (20, canvas.shape[0] // 2), scale=0.9)
        elif view.preview is not None:
            canvas = cv2.cvtColor(view.preview, cv2.COLOR_RGB2BGR)
            for i, label in enumerate(view.labels):
                self._draw_text(canvas, label, (12, 36 + i * 32), scale=0.8)
        else:
            canvas = self._blank()

        if not self._window_open:
            cv2.namedWindow(self.window_title, cv2.WINDOW_NORMAL)
            self._window_open = True
            self.logger.info("display_opened", title=self.window_title)

        cv2.imshow(self.window_title, canvas)
        key = cv2.waitKey(1) & 0xFF
        if key in (ord("q"), 27):
            self.logger.info("display_closed_by_user")
            self._closed = True

    def _blank(self) -> np.ndarray:
        return np.zeros((*self.BLANK_SIZE, 3), dtype=np.uint8)

    def _draw_text(
        self,
        canvas: np.ndarray,
        text: str,
        origin: tuple[int, int],
        scale: float,
    ) -> None:
        # Dark outline under the text
        cv2.putText(canvas, text, origin, cv2.FONT_HERSHEY_SIMPLEX, scale,
                    self.SHADOW_COLOR, 4, cv2.LINE_AA)
        cv2.putText(canvas, text, origin, cv2.FONT_HERSHEY_SIMPLEX, scale,
                    self.TEXT_COLOR, 2, cv2.LINE_AA)

    def close(self) -> None:
        if self._window_open:
            cv2.destroyWindow(self.window_title)
            self._window_open = False
        self._closed = True


def create_display(config: Config, headless: bool | None = None) -> DisplaySurface:
    """Create the display surface named in the configuration."""
    if headless is None:
        headless = config.display.backend == "headless"
    if headless:
        return HeadlessDisplay()
    return OpenCVDisplay(config.display.window_title)
