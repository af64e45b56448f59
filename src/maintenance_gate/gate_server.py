"""Serving the request gate with uvicorn.

uvicorn runs on a background thread so the main thread stays free to wait
for shutdown signals while the health monitor runs on a thread of its own.
uvicorn's own access log is disabled; the gate writes its own ACCESS lines.
"""

from __future__ import annotations

import threading
import time
from typing import TYPE_CHECKING

import uvicorn

if TYPE_CHECKING:
    from starlette.types import ASGIApp

from maintenance_gate.logging import get_logger

logger = get_logger(__name__)

STARTUP_TIMEOUT = 5.0
"""Seconds ``start()`` waits for uvicorn to bind and start serving."""

SHUTDOWN_TIMEOUT = 10
"""Seconds allowed for in-flight requests to drain on shutdown."""

KEEP_ALIVE_TIMEOUT = 120
"""Seconds an idle keep-alive connection stays open."""

_STARTUP_POLL = 0.05


class GateServerError(RuntimeError):
    """Raised when the gate server cannot be started."""


def build_uvicorn_config(app: ASGIApp, host: str, port: int) -> uvicorn.Config:
    """Build the uvicorn settings used for the gate."""
    return uvicorn.Config(
        app=app,
        host=host,
        port=port,
        log_level="warning",
        access_log=False,
        timeout_keep_alive=KEEP_ALIVE_TIMEOUT,
        timeout_graceful_shutdown=SHUTDOWN_TIMEOUT,
    )


class GateServer:
    """A uvicorn server bound to ``host:port`` and run on a daemon thread.

    Example:
        server = GateServer(host="0.0.0.0", port=3000)
        server.start(create_app(config, status))
        ...
        server.shutdown()
    """

    def __init__(self, host: str, port: int) -> None:
        self.host = host
        self.port = port
        self._server: uvicorn.Server | None = None
        self._thread: threading.Thread | None = None

    @property
    def is_running(self) -> bool:
        """True while uvicorn has started and its thread is alive."""
        if self._server is None or self._thread is None:
            return False
        return self._server.started and self._thread.is_alive()

    def start(self, app: ASGIApp) -> None:
        """Serve ``app`` on a background thread.

        Returns once uvicorn reports it has started. If ``STARTUP_TIMEOUT``
        elapses first a warning is logged and the server keeps starting.

        Raises:
            GateServerError: If the thread exits before serving, for example
                because the port is already in use.
        """
        server = uvicorn.Server(build_uvicorn_config(app, self.host, self.port))
        thread = threading.Thread(target=server.run, name="gate-server", daemon=True)
        self._server = server
        self._thread = thread
        thread.start()

        deadline = time.monotonic() + STARTUP_TIMEOUT
        while not server.started:
            if not thread.is_alive():
                msg = f"could not listen on {self.host}:{self.port}"
                raise GateServerError(msg)
            if time.monotonic() > deadline:
                logger.warning("Gate server has not started after %.0fs", STARTUP_TIMEOUT)
                return
            time.sleep(_STARTUP_POLL)

        logger.info("Starting server on port %d", self.port)

    def shutdown(self) -> None:
        """Stop accepting connections and drain in-flight requests."""
        server, thread = self._server, self._thread
        if server is None or thread is None:
            return

        server.should_exit = True
        if thread.is_alive():
            logger.info("Shutting down gate server...")
            thread.join(timeout=SHUTDOWN_TIMEOUT + 1)
            if thread.is_alive():
                logger.warning("Gate server thread did not stop within %ds", SHUTDOWN_TIMEOUT)


__all__ = [
    "GateServer",
    "GateServerError",
    "build_uvicorn_config",
]
