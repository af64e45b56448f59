"""Shared health status cell.

The monitor loop is the only writer; every request handler reads. All access
goes through a single ``threading.Lock`` and readers receive an immutable
``HealthSnapshot``, so a reader never sees ``determined`` and ``healthy``
from different writes.

Usage:
    status = HealthStatus()

    # Monitor loop
    transition = status.record(verdict)
    if transition is not None:
        log_transition(transition)

    # Request handler
    snapshot = status.snapshot()
    if snapshot.is_open:
        redirect()
"""

from __future__ import annotations

import threading
import time
from collections.abc import Callable
from dataclasses import dataclass


@dataclass(frozen=True)
class HealthSnapshot:
    """Point-in-time view of the health status.

    Attributes:
        determined: True once at least one probe has completed.
        healthy: Last recorded verdict. Meaningful only when ``determined``.
    """

    determined: bool = False
    healthy: bool = False

    @property
    def is_open(self) -> bool:
        """Whether the gate lets traffic through.

        Undetermined status counts as unhealthy (fail-closed).
        """
        return self.determined and self.healthy


@dataclass(frozen=True)
class Transition:
    """A change of the recorded health status.

    Attributes:
        previous: Snapshot before the write.
        current: Snapshot after the write.
        at: Timestamp of the write.
    """

    previous: HealthSnapshot
    current: HealthSnapshot
    at: float

    @property
    def became_healthy(self) -> bool:
        return self.current.healthy


class HealthStatus:
    """Thread-safe health status cell.

    Thread-safety contract:
        ``record()`` performs read-compare-write under ``_lock``;
        ``snapshot()`` returns the current value under the same lock.
        Snapshots are frozen and can be used after the lock is released.
    """

    def __init__(self, time_func: Callable[[], float] | None = None) -> None:
        """Initialize an undetermined status.

        Args:
            time_func: Optional callable returning the current time.
                Defaults to ``time.time``.
        """
        self._time_func: Callable[[], float] = time_func or time.time
        self._lock = threading.Lock()
        self._current = HealthSnapshot()
        self._transition_count = 0

    def snapshot(self) -> HealthSnapshot:
        """Return the current status as an immutable snapshot."""
        with self._lock:
            return self._current

    def record(self, verdict: bool) -> Transition | None:
        """Record a probe verdict.

        The status changes only on an edge: success while undetermined or
        unhealthy, or failure while undetermined or healthy. A verdict equal
        to the already-determined status is a no-op.

        Args:
            verdict: True if the probe succeeded.

        Returns:
            The ``Transition`` if the status changed, otherwise None.
        """
        with self._lock:
            previous = self._current
            if previous.determined and previous.healthy == verdict:
                return None

            now = self._time_func()
            self._current = HealthSnapshot(determined=True, healthy=verdict)
            self._transition_count += 1
            return Transition(previous=previous, current=self._current, at=now)

    @property
    def transition_count(self) -> int:
        """Number of transitions recorded since creation."""
        with self._lock:
            return self._transition_count


__all__ = ["HealthSnapshot", "HealthStatus", "Transition"]
