"""In-process event bus for screen state and label updates."""

from __future__ import annotations

import asyncio
import time
import uuid
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable

from tensorcam.common.logging import get_logger


# Topics published by the screen
TOPIC_PERMISSION = "screen.permission"
TOPIC_PHASE = "screen.phase"
TOPIC_MODEL_LOADED = "classifier.loaded"
TOPIC_LABELS = "classifier.labels"


@dataclass
class Event:
    """Event message."""

    topic: str
    data: dict[str, Any]
    source: str
    event_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    timestamp: float = field(default_factory=time.time)


EventHandler = Callable[[Event], Awaitable[None]]


class EventBus:
    """Pub/sub bus local to one process.

    Topics are dot-separated; a subscription may use ``*`` for any one segment.
    """

    def __init__(self) -> None:
        self._subscribers: list[tuple[str, EventHandler]] = []
        self.logger = get_logger("event_bus")

    async def publish(self, event: Event) -> None:
        """Publish an event to all matching subscribers."""
        self.logger.debug(
            "publishing_event",
            topic=event.topic,
            event_id=event.event_id,
            source=event.source,
        )

        handlers = [h for pattern, h in self._subscribers if matches_topic(event.topic, pattern)]
        if handlers:
            await asyncio.gather(*[self._safe_dispatch(h, event) for h in handlers])

    async def _safe_dispatch(self, handler: EventHandler, event: Event) -> None:
        try:
            await handler(event)
        except Exception as e:
            self.logger.exception(
                "event_handler_error",
                topic=event.topic,
                event_id=event.event_id,
                error=str(e),
            )

    def subscribe(self, topic: str, handler: EventHandler) -> Callable[[], None]:
        """Subscribe to a topic or pattern.

        Returns:
            Function that removes the subscription.
        """
        entry = (topic, handler)
        self._subscribers.append(entry)
        self.logger.debug("subscribed", topic=topic)

        def unsubscribe() -> None:
            if entry in self._subscribers:
                self._subscribers.remove(entry)

        return unsubscribe


def matches_topic(topic: str, pattern: str) -> bool:
    """Check if a topic matches a pattern where ``*`` stands for one segment."""
    topic_parts = topic.split(".")
    pattern_parts = pattern.split(".")
    if len(topic_parts) != len(pattern_parts):
        return False
    return all(p == "*" or p == t for t, p in zip(topic_parts, pattern_parts))


_global_bus: EventBus | None = None


def get_event_bus() -> EventBus:
    """Get the global event bus instance."""
    global _global_bus
    if _global_bus is None:
        _global_bus = EventBus()
    return _global_bus


def reset_event_bus() -> None:
    """Reset the global event bus (for testing)."""
    global _global_bus
    _global_bus = None
