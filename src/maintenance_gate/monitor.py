"""Background health monitor.

Drives the prober on a fixed interval, with one probe immediately at start
so the gate does not stay closed for a full interval after startup. Each
verdict is fed into the shared ``HealthStatus``; a log event is emitted only
when the recorded status actually changes.

Usage:
    status = HealthStatus()
    monitor = HealthMonitor(config, status, Prober())
    monitor.start()
    ...
    monitor.stop()
"""

from __future__ import annotations

import threading

from maintenance_gate.config import Config
from maintenance_gate.logging import get_logger
from maintenance_gate.prober import Prober, ProbeResult
from maintenance_gate.status import HealthStatus, Transition

logger = get_logger(__name__)

STOP_JOIN_TIMEOUT = 5.0
"""Seconds ``stop()`` waits for the monitor thread to finish."""


class HealthMonitor:
    """Periodically probes the health-check endpoint and updates ``HealthStatus``.

    The monitor is the sole writer of the status cell it is given. Failures of
    a single cycle never stop the schedule.
    """

    def __init__(
        self,
        config: Config,
        status: HealthStatus,
        prober: Prober | None = None,
    ) -> None:
        """Initialize the monitor.

        Args:
            config: Application configuration.
            status: Shared health status cell to write verdicts into.
            prober: Prober to use. Defaults to a plain ``Prober``.
        """
        self.config = config
        self.status = status
        self._prober = prober or Prober()
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None
        self._log = logger.with_context(url=config.health_check_url)

    @property
    def is_running(self) -> bool:
        """Check if the monitor thread is alive."""
        return self._thread is not None and self._thread.is_alive()

    def run_cycle(self) -> ProbeResult:
        """Run one probe and record its verdict.

        Returns:
            The result of the probe.
        """
        try:
            result = self._prober.probe(
                self.config.health_check_url,
                self.config.health_check_timeout,
                expected_body=self.config.health_check_body,
                accepted_statuses=self.config.health_check_success_codes,
            )
        except Exception as e:
            # INTENTIONAL BROAD CATCH: a probe must never stop the monitor.
            # Unexpected errors count as a failed verdict for this cycle.
            logger.exception("Health check of %s raised unexpectedly", self.config.health_check_url)
            result = ProbeResult(succeeded=False, error=f"{type(e).__name__}: {e}")

        transition = self.status.record(result.succeeded)
        if transition is not None:
            self._log_transition(transition, result)
        return result

    def _log_transition(self, transition: Transition, result: ProbeResult) -> None:
        url = self.config.health_check_url
        if transition.became_healthy:
            self._log.info(
                "Health check of %s passed",
                url,
                extra={"event": "became_healthy", "status_code": result.status_code},
            )
        elif result.error is not None:
            self._log.error(
                "Health check of %s failed with error: %s",
                url,
                result.error,
                extra={"event": "became_unhealthy", "error": result.error},
            )
        else:
            self._log.error(
                "Health check of %s failed with status code: %s",
                url,
                result.status_code,
                extra={"event": "became_unhealthy", "status_code": result.status_code},
            )

    def run_forever(self, stop_event: threading.Event | None = None) -> None:
        """Probe immediately, then once per interval until stopped.

        Args:
            stop_event: Cancellation event. Defaults to the monitor's own
                event, which ``stop()`` sets.
        """
        event = stop_event or self._stop_event
        interval = self.config.health_check_interval
        logger.debug("Health monitor started (interval: %ds)", interval)

        self.run_cycle()
        while not event.wait(interval):
            self.run_cycle()

        logger.debug("Health monitor stopped")

    def start(self) -> None:
        """Start the monitor in a background daemon thread."""
        if self.is_running:
            logger.warning("Health monitor already running")
            return

        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self.run_forever,
            name="health-monitor",
            daemon=True,
        )
        self._thread.start()

    def stop(self, timeout: float = STOP_JOIN_TIMEOUT) -> None:
        """Stop the monitor and wait for the thread to finish.

        A probe in flight is bounded by the probe timeout; if it does not
        finish within ``timeout`` the daemon thread is abandoned.
        """
        self._stop_event.set()
        if self._thread is not None and self._thread.is_alive():
            self._thread.join(timeout=timeout)
            if self._thread.is_alive():
                logger.warning("Health monitor thread did not terminate gracefully")


__all__ = ["HealthMonitor", "STOP_JOIN_TIMEOUT"]
