"""Base service class for long-running tensorcam components."""

from __future__ import annotations

import asyncio
import signal
from abc import ABC, abstractmethod
from enum import Enum

from tensorcam.common.logging import get_logger, setup_logging
from tensorcam.config import Config, load_config


class ServiceState(Enum):
    """Service state enum."""

    STARTING = "starting"
    RUNNING = "running"
    STOPPING = "stopping"
    STOPPED = "stopped"
    ERROR = "error"


class BaseService(ABC):
    """Base class for services driven by the asyncio event loop.

    Provides common functionality:
    - Setup/teardown hooks
    - Graceful shutdown on SIGINT/SIGTERM
    - Logging
    - Configuration
    """

    def __init__(
        self,
        name: str,
        config: Config | None = None,
        mock_mode: bool = False,
    ) -> None:
        """Initialize the service.

        Args:
            name: Service name.
            config: Configuration object. Loaded from file if None.
            mock_mode: Use mock backends.
        """
        self.name = name
        self.config = config or load_config()
        self.mock_mode = mock_mode or self.config.mock_mode

        setup_logging(
            level=self.config.device.log_level,
            json_output=self.config.device.mode == "production",
            service_name=name,
        )
        self.logger = get_logger(name, service=name)

        self._state = ServiceState.STOPPED
        self._shutdown_event = asyncio.Event()
        self._failure: BaseException | None = None

    @property
    def state(self) -> ServiceState:
        """Get current service state."""
        return self._state

    @abstractmethod
    async def setup(self) -> None:
        """Acquire service resources. Called by ``start()``."""

    @abstractmethod
    async def teardown(self) -> None:
        """Release service resources. Called by ``stop()``."""

    async def start(self) -> None:
        """Start the service and wait until it is shut down."""
        self.logger.info("starting_service")
        self._state = ServiceState.STARTING
        self._shutdown_event.clear()
        self._failure = None

        try:
            await self.setup()

            self._state = ServiceState.RUNNING
            self.logger.info("service_started")

            await self._shutdown_event.wait()

            if self._failure is not None:
                raise self._failure

        except Exception as e:
            self._state = ServiceState.ERROR
            self.logger.exception("service_failed", error=str(e))
            raise
        finally:
            await self.stop()

    async def stop(self) -> None:
        """Stop the service gracefully."""
        if self._state in (ServiceState.STOPPING, ServiceState.STOPPED):
            return

        failed = self._state == ServiceState.ERROR
        self.logger.info("stopping_service")
        self._state = ServiceState.STOPPING

        try:
            await self.teardown()
            self._state = ServiceState.ERROR if failed else ServiceState.STOPPED
            self.logger.info("service_stopped")

        except Exception as e:
            self._state = ServiceState.ERROR
            self.logger.exception("service_stop_failed", error=str(e))

    def shutdown(self) -> None:
        """Signal the service to shut down."""
        self._shutdown_event.set()

    def fail(self, error: BaseException) -> None:
        """Shut down and make ``start()`` raise ``error``."""
        if self._failure is None:
            self._failure = error
        self.shutdown()

    def run(self) -> None:
        """Run the service (blocking).

        Sets up signal handlers and runs the async event loop.
        """
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)

        for sig in (signal.SIGTERM, signal.SIGINT):
            loop.add_signal_handler(sig, self.shutdown)

        try:
            loop.run_until_complete(self.start())
        finally:
            loop.close()
