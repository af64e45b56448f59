"""Graceful shutdown handling for the maintenance gate.

SIGINT and SIGTERM wake the main thread, which then stops the gate server
(draining in-flight requests) and the health monitor. The previous signal
handlers can be restored once the application has stopped.
"""

from __future__ import annotations

import signal
import threading
from collections.abc import Callable
from types import FrameType
from typing import Any

from maintenance_gate.logging import get_logger

logger = get_logger(__name__)

SHUTDOWN_SIGNALS: tuple[signal.Signals, ...] = (signal.SIGINT, signal.SIGTERM)


class ShutdownHandler:
    """Turns shutdown signals into an event the main thread can wait on."""

    def __init__(self, on_shutdown: Callable[[], None] | None = None) -> None:
        """Initialize the shutdown handler.

        Args:
            on_shutdown: Optional callback invoked once, on the first request.
        """
        self._event = threading.Event()
        self._on_shutdown = on_shutdown
        self._previous_handlers: dict[signal.Signals, Any] = {}

    @property
    def shutdown_requested(self) -> bool:
        return self._event.is_set()

    def request_shutdown(self) -> None:
        """Request graceful shutdown. Repeated requests are ignored."""
        if self._event.is_set():
            return
        logger.info("Shutdown requested")
        self._event.set()

        if self._on_shutdown is not None:
            self._on_shutdown()

    def wait(self, timeout: float | None = None) -> bool:
        """Block until shutdown is requested or ``timeout`` elapses.

        Returns:
            True if shutdown was requested.
        """
        return self._event.wait(timeout)

    def handle_signal(self, signum: int, frame: FrameType | None) -> None:
        signal_name = signal.Signals(signum).name
        logger.info("Received %s, shutting down gracefully...", signal_name)
        self.request_shutdown()

    def install_signal_handlers(self) -> None:
        """Route SIGINT and SIGTERM to this handler.

        Must be called from the main thread.
        """
        for sig in SHUTDOWN_SIGNALS:
            self._previous_handlers[sig] = signal.signal(sig, self.handle_signal)
        logger.debug("Signal handlers installed for SIGINT and SIGTERM")

    def restore_signal_handlers(self) -> None:
        """Put back the handlers that were active before installation."""
        for sig, previous in self._previous_handlers.items():
            # None means the handler was not installed from Python
            if previous is not None:
                signal.signal(sig, previous)
        self._previous_handlers.clear()


def create_shutdown_handler(on_shutdown: Callable[[], None] | None = None) -> ShutdownHandler:
    """Create a ShutdownHandler with its signal handlers installed."""
    handler = ShutdownHandler(on_shutdown)
    handler.install_signal_handlers()
    return handler


__all__ = [
    "SHUTDOWN_SIGNALS",
    "ShutdownHandler",
    "create_shutdown_handler",
]
