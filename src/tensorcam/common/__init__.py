"""Common utilities for tensorcam."""

from tensorcam.common.errors import CameraError, ClassifierLoadError, TensorcamError
from tensorcam.common.events import Event, EventBus, get_event_bus
from tensorcam.common.logging import get_logger, setup_logging
from tensorcam.common.scheduler import FrameScheduler
from tensorcam.common.service import BaseService, ServiceState

__all__ = [
    "get_logger",
    "setup_logging",
    "BaseService",
    "ServiceState",
    "EventBus",
    "Event",
    "get_event_bus",
    "FrameScheduler",
    "TensorcamError",
    "CameraError",
    "ClassifierLoadError",
]
