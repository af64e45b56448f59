"""Unit tests for the HealthMonitor loop."""

from __future__ import annotations

import logging
import threading

import pytest

from maintenance_gate.config import Config
from maintenance_gate.monitor import HealthMonitor
from maintenance_gate.prober import ProbeResult
from maintenance_gate.status import HealthSnapshot, HealthStatus
from tests.helpers import HEALTHY, UNHEALTHY, UNREACHABLE, ScriptedProber


def _transition_records(caplog: pytest.LogCaptureFixture) -> list[logging.LogRecord]:
    return [r for r in caplog.records if getattr(r, "event", None) is not None]


class CountingEvent(threading.Event):
    """Event whose ``wait`` times out a fixed number of times, then reports set."""

    def __init__(self, timeouts: int) -> None:
        super().__init__()
        self.timeouts = timeouts
        self.wait_calls: list[float | None] = []

    def wait(self, timeout: float | None = None) -> bool:
        self.wait_calls.append(timeout)
        return len(self.wait_calls) > self.timeouts


class TestRunCycle:
    """Tests for HealthMonitor.run_cycle()."""

    def test_probe_uses_config(self, config: Config) -> None:
        config = Config(
            health_check_url="https://target.example.com/status",
            health_check_timeout=3,
            health_check_body="OK",
            health_check_success_codes=frozenset({200, 204}),
        )
        prober = ScriptedProber([HEALTHY])

        HealthMonitor(config, HealthStatus(), prober).run_cycle()

        assert prober.calls == [
            ("https://target.example.com/status", 3, "OK", frozenset({200, 204}))
        ]

    def test_first_success_opens_gate(
        self, config: Config, caplog: pytest.LogCaptureFixture
    ) -> None:
        status = HealthStatus()
        monitor = HealthMonitor(config, status, ScriptedProber([HEALTHY]))

        with caplog.at_level(logging.INFO):
            result = monitor.run_cycle()

        assert result is HEALTHY
        assert status.snapshot() == HealthSnapshot(determined=True, healthy=True)
        records = _transition_records(caplog)
        assert len(records) == 1
        assert records[0].levelno == logging.INFO
        assert records[0].event == "became_healthy"
        assert records[0].getMessage() == (
            "Health check of https://target.example.com/healthz passed"
        )

    def test_first_failure_is_logged(
        self, config: Config, caplog: pytest.LogCaptureFixture
    ) -> None:
        status = HealthStatus()
        monitor = HealthMonitor(config, status, ScriptedProber([UNHEALTHY]))

        with caplog.at_level(logging.INFO):
            monitor.run_cycle()

        assert status.snapshot() == HealthSnapshot(determined=True, healthy=False)
        records = _transition_records(caplog)
        assert len(records) == 1
        assert records[0].levelno == logging.ERROR
        assert records[0].event == "became_unhealthy"
        assert records[0].getMessage() == (
            "Health check of https://target.example.com/healthz failed with status code: 500"
        )

    def test_network_error_uses_distinct_message(
        self, config: Config, caplog: pytest.LogCaptureFixture
    ) -> None:
        monitor = HealthMonitor(config, HealthStatus(), ScriptedProber([UNREACHABLE]))

        with caplog.at_level(logging.INFO):
            monitor.run_cycle()

        records = _transition_records(caplog)
        assert len(records) == 1
        assert records[0].getMessage() == (
            "Health check of https://target.example.com/healthz failed with error: "
            "connection refused"
        )
        assert records[0].error == "connection refused"

    def test_repeated_verdicts_are_silent(
        self, config: Config, caplog: pytest.LogCaptureFixture
    ) -> None:
        prober = ScriptedProber([HEALTHY, HEALTHY, HEALTHY])
        monitor = HealthMonitor(config, HealthStatus(), prober)

        with caplog.at_level(logging.INFO):
            for _ in range(3):
                monitor.run_cycle()

        assert len(_transition_records(caplog)) == 1

    def test_network_error_after_validation_failure_is_silent(
        self, config: Config, caplog: pytest.LogCaptureFixture
    ) -> None:
        """Both failure kinds map to the same unhealthy verdict."""
        monitor = HealthMonitor(config, HealthStatus(), ScriptedProber([UNHEALTHY, UNREACHABLE]))

        with caplog.at_level(logging.INFO):
            monitor.run_cycle()
            monitor.run_cycle()

        assert len(_transition_records(caplog)) == 1

    def test_flip_and_back_logs_exactly_two_transitions(
        self, config: Config, caplog: pytest.LogCaptureFixture
    ) -> None:
        status = HealthStatus()
        monitor = HealthMonitor(config, status, ScriptedProber([HEALTHY, UNREACHABLE, HEALTHY]))
        monitor.run_cycle()
        caplog.clear()

        with caplog.at_level(logging.INFO):
            monitor.run_cycle()
            monitor.run_cycle()

        events = [r.event for r in _transition_records(caplog)]
        assert events == ["became_unhealthy", "became_healthy"]
        assert status.transition_count == 3
        assert status.snapshot().is_open is True

    def test_unexpected_probe_exception_counts_as_failure(
        self, config: Config, caplog: pytest.LogCaptureFixture
    ) -> None:
        status = HealthStatus()
        status.record(True)
        monitor = HealthMonitor(config, status, ScriptedProber([RuntimeError("boom")]))

        with caplog.at_level(logging.INFO):
            result = monitor.run_cycle()

        assert result.succeeded is False
        assert result.error == "RuntimeError: boom"
        assert status.snapshot() == HealthSnapshot(determined=True, healthy=False)
        assert "raised unexpectedly" in caplog.text

    def test_result_with_error_and_status_logs_error_message(
        self, config: Config, caplog: pytest.LogCaptureFixture
    ) -> None:
        """A body read failure carries both a status code and an error."""
        result = ProbeResult(succeeded=False, status_code=200, error="error reading response body")
        monitor = HealthMonitor(config, HealthStatus(), ScriptedProber([result]))

        with caplog.at_level(logging.INFO):
            monitor.run_cycle()

        assert "failed with error: error reading response body" in caplog.text


class TestRunForever:
    """Tests for the scheduling loop."""

    def test_probes_immediately_before_waiting(self, config: Config) -> None:
        prober = ScriptedProber([HEALTHY])
        status = HealthStatus()
        stop = CountingEvent(timeouts=0)

        HealthMonitor(config, status, prober).run_forever(stop)

        assert len(prober.calls) == 1
        assert status.snapshot().is_open is True

    def test_probes_once_per_interval(self, config: Config) -> None:
        prober = ScriptedProber([HEALTHY])
        stop = CountingEvent(timeouts=3)

        HealthMonitor(config, HealthStatus(), prober).run_forever(stop)

        assert len(prober.calls) == 4
        assert stop.wait_calls == [60, 60, 60, 60]

    def test_keeps_running_after_errors(self, config: Config) -> None:
        prober = ScriptedProber([RuntimeError("boom"), UNREACHABLE, HEALTHY])
        status = HealthStatus()
        stop = CountingEvent(timeouts=2)

        HealthMonitor(config, status, prober).run_forever(stop)

        assert len(prober.calls) == 3
        assert status.snapshot().is_open is True


class TestStartStop:
    """Tests for the background thread lifecycle."""

    def test_start_runs_first_probe_and_stop_joins(self, config: Config) -> None:
        probed = threading.Event()

        class SignallingProber(ScriptedProber):
            def probe(self, *args, **kwargs):  # type: ignore[no-untyped-def]
                result = super().probe(*args, **kwargs)
                probed.set()
                return result

        prober = SignallingProber([HEALTHY])
        status = HealthStatus()
        monitor = HealthMonitor(config, status, prober)

        monitor.start()
        try:
            assert probed.wait(timeout=5.0)
            assert monitor.is_running is True
        finally:
            monitor.stop()

        assert monitor.is_running is False
        assert len(prober.calls) == 1
        assert status.snapshot().is_open is True

    def test_start_twice_warns(self, config: Config, caplog: pytest.LogCaptureFixture) -> None:
        monitor = HealthMonitor(config, HealthStatus(), ScriptedProber([HEALTHY]))
        monitor.start()
        try:
            with caplog.at_level(logging.WARNING):
                monitor.start()
            assert "already running" in caplog.text
        finally:
            monitor.stop()

    def test_stop_without_start_is_noop(self, config: Config) -> None:
        monitor = HealthMonitor(config, HealthStatus(), ScriptedProber([HEALTHY]))
        monitor.stop()
        assert monitor.is_running is False
