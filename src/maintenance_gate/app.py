"""Core application runner for the maintenance gate.

This module is the composition root. It coordinates:
- Logging setup from LOG_LEVEL, LOG_JSON and LOG_COLOR
- Configuration loading (fatal errors abort before any socket is bound)
- Wiring the shared HealthStatus into the health monitor and the gate app
- Server and monitor lifecycle, including graceful shutdown on SIGINT/SIGTERM
"""

from __future__ import annotations

import sys
from dataclasses import replace

from maintenance_gate.cli import parse_args
from maintenance_gate.config import (
    Config,
    ConfigError,
    load_config,
    load_env_file,
    log_config,
    logging_settings,
)
from maintenance_gate.gate import create_app
from maintenance_gate.gate_server import GateServer, GateServerError
from maintenance_gate.logging import get_logger, setup_logging
from maintenance_gate.monitor import HealthMonitor
from maintenance_gate.prober import Prober
from maintenance_gate.shutdown import ShutdownHandler, create_shutdown_handler
from maintenance_gate.status import HealthStatus

logger = get_logger(__name__)

SERVER_POLL_INTERVAL = 0.5
"""Seconds between liveness checks of the server thread while waiting for shutdown."""


def run_application(
    config: Config,
    shutdown_handler: ShutdownHandler | None = None,
    prober: Prober | None = None,
) -> int:
    """Run the monitor and the gate server until shutdown.

    Args:
        config: Application configuration.
        shutdown_handler: Optional handler to wait on. Defaults to one with
            SIGINT/SIGTERM handlers installed.
        prober: Optional prober for the health monitor.

    Returns:
        Exit code: 0 after a graceful shutdown, 1 if the server failed.
    """
    status = HealthStatus()
    monitor = HealthMonitor(config, status, prober)
    server = GateServer(host=config.server_host, port=config.server_port)
    owns_handler = shutdown_handler is None
    handler = shutdown_handler or create_shutdown_handler()

    try:
        monitor.start()
        try:
            server.start(create_app(config, status))
        except GateServerError as e:
            logger.error("Error starting server: %s", e)
            monitor.stop()
            return 1

        try:
            while not handler.wait(SERVER_POLL_INTERVAL):
                if not server.is_running:
                    logger.error("Gate server stopped unexpectedly")
                    return 1
        finally:
            server.shutdown()
            monitor.stop()
    finally:
        if owns_handler:
            handler.restore_signal_handlers()

    logger.info("Server stopped")
    return 0


def main(args: list[str] | None = None) -> int:
    """Main entry point for the application.

    Args:
        args: Optional list of command-line arguments.

    Returns:
        Exit code for the application.
    """
    parsed = parse_args(args)

    load_env_file(parsed.env_file)
    level, json_format, color = logging_settings()
    setup_logging(parsed.log_level or level, json_format=json_format, color=color)

    try:
        config = load_config(parsed.env_file)
    except ConfigError as e:
        logger.error("%s", e)
        return 1

    if parsed.log_level:
        config = replace(config, log_level=parsed.log_level)

    logger.info("Starting server...")
    log_config(config)

    return run_application(config)


def run() -> None:
    """Console script entry point."""
    sys.exit(main())


__all__ = [
    "main",
    "run",
    "run_application",
]
