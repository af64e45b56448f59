"""Test helpers shared across maintenance gate tests."""

from __future__ import annotations

import logging
import time
from collections.abc import Iterable, Iterator
from contextlib import contextmanager

import httpx

from maintenance_gate.prober import Prober, ProbeResult


class TrackingStream(httpx.SyncByteStream):
    """Response body stream that records reads and closes.

    Can be told to fail while reading or while closing, or to pause before
    each chunk, to exercise the prober's error and deadline paths.
    """

    def __init__(
        self,
        chunks: Iterable[bytes] = (b"",),
        fail_on_read: bool = False,
        fail_on_close: bool = False,
        delay: float = 0.0,
    ) -> None:
        self.chunks = list(chunks)
        self.fail_on_read = fail_on_read
        self.fail_on_close = fail_on_close
        self.delay = delay
        self.read_called = False
        self.closed = False

    def __iter__(self) -> Iterator[bytes]:
        self.read_called = True
        if self.fail_on_read:
            raise httpx.ReadError("connection reset by peer")
        for chunk in self.chunks:
            if self.delay:
                time.sleep(self.delay)
            yield chunk

    def close(self) -> None:
        self.closed = True
        if self.fail_on_close:
            raise httpx.CloseError("close failed")


class ScriptedProber(Prober):
    """Prober returning a fixed sequence of results.

    Once the script is exhausted the last result repeats.
    """

    def __init__(self, results: Iterable[ProbeResult | Exception]) -> None:
        super().__init__()
        self.results = list(results)
        self.calls: list[tuple[str, float, str | None, frozenset[int]]] = []

    def probe(
        self,
        health_check_url: str,
        timeout: float,
        expected_body: str | None = None,
        accepted_statuses: frozenset[int] = frozenset({200}),
    ) -> ProbeResult:
        self.calls.append((health_check_url, timeout, expected_body, accepted_statuses))
        index = min(len(self.calls) - 1, len(self.results) - 1)
        result = self.results[index]
        if isinstance(result, Exception):
            raise result
        return result


HEALTHY = ProbeResult(succeeded=True, status_code=200)
UNHEALTHY = ProbeResult(succeeded=False, status_code=500)
UNREACHABLE = ProbeResult(succeeded=False, error="connection refused")


@contextmanager
def preserved_root_logging() -> Iterator[None]:
    """Restore root logger handlers and level after calling setup_logging."""
    root = logging.getLogger()
    handlers = root.handlers[:]
    level = root.level
    try:
        yield
    finally:
        root.handlers[:] = handlers
        root.setLevel(level)
