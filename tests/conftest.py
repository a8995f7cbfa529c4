"""Pytest configuration and fixtures for tensorcam tests."""

from __future__ import annotations

import pytest

from tensorcam.common.events import Event, EventBus, reset_event_bus
from tensorcam.common.scheduler import FrameScheduler
from tensorcam.config import Config
from tensorcam.foundation.camera import CameraPermission, MockCameraBackend
from tensorcam.foundation.classifier import MockClassifier, Prediction
from tensorcam.foundation.display import HeadlessDisplay
from tensorcam.runtime import CameraScreen


def pytest_configure(config: pytest.Config) -> None:
    """Configure test markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "integration: Integration tests")


@pytest.fixture(autouse=True)
def fresh_event_bus():
    """Give every test its own global event bus."""
    reset_event_bus()
    yield
    reset_event_bus()


@pytest.fixture
def mock_config() -> Config:
    """Get mock configuration."""
    cfg = Config()
    cfg.mock_mode = True
    cfg.device.mode = "development"
    cfg.device.log_level = "DEBUG"
    cfg.camera.platform = "android"
    cfg.display.backend = "headless"
    return cfg


@pytest.fixture
def event_bus() -> EventBus:
    return EventBus()


@pytest.fixture
def published(event_bus: EventBus) -> list[Event]:
    """Events published on the test bus, oldest first."""
    events: list[Event] = []

    async def record(event: Event) -> None:
        events.append(event)

    event_bus.subscribe("screen.*", record)
    event_bus.subscribe("classifier.*", record)
    return events


@pytest.fixture
def scheduler() -> FrameScheduler:
    return FrameScheduler(refresh_hz=60.0)


@pytest.fixture
async def mock_camera(mock_config: Config):
    """Streaming mock camera."""
    camera = MockCameraBackend(mock_config, permission=CameraPermission.GRANTED)
    await camera.setup()
    yield camera
    await camera.teardown()


@pytest.fixture
def mock_classifier() -> MockClassifier:
    return MockClassifier([Prediction("cat", 0.8), Prediction("dog", 0.15)])


@pytest.fixture
def headless_display() -> HeadlessDisplay:
    return HeadlessDisplay()


@pytest.fixture
async def screen(
    mock_config: Config,
    mock_classifier: MockClassifier,
    headless_display: HeadlessDisplay,
    event_bus: EventBus,
):
    """Mock-mode screen whose scheduler is stepped by the test."""
    screen = CameraScreen(
        mock_config,
        mock_mode=True,
        classifier=mock_classifier,
        display=headless_display,
        event_bus=event_bus,
        drive_scheduler=False,
    )
    yield screen
    await screen.teardown()
