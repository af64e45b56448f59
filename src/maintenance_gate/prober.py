"""Single health-check probe against the configured endpoint.

A probe issues one ``GET`` with a bounded timeout and turns the outcome into
a ``ProbeResult``. It never raises for transport problems: connection
errors, DNS failures, timeouts and body read errors all become a failed
result with ``error`` set.
"""

from __future__ import annotations

import time
from dataclasses import dataclass

import httpx

from maintenance_gate.logging import get_logger

logger = get_logger(__name__)

BODY_SNIPPET_LENGTH = 200
"""Maximum number of body characters kept on a ``ProbeResult``."""


@dataclass(frozen=True)
class ProbeResult:
    """Outcome of one probe.

    Attributes:
        succeeded: True if the status code was accepted and, when a body was
            expected, the body matched.
        status_code: HTTP status code, or None if no response was received.
        body_snippet: Start of the response body, set only when the body was
            compared.
        error: Description of the error that prevented the probe from
            completing, or None.
    """

    succeeded: bool
    status_code: int | None = None
    body_snippet: str | None = None
    error: str | None = None


def body_matches(body: str, expected: str) -> bool:
    """Compare a response body to the expected body.

    Only surrounding whitespace is ignored; inner whitespace must match.
    """
    return body.strip() == expected.strip()


class Prober:
    """Executes health-check probes with ``httpx``.

    A new ``httpx.Client`` is created for each probe so that no connection
    outlives its cycle.
    """

    def __init__(self, transport: httpx.BaseTransport | None = None) -> None:
        """Initialize the prober.

        Args:
            transport: Optional transport passed to every ``httpx.Client``.
                Tests use ``httpx.MockTransport`` here.
        """
        self._transport = transport

    def probe(
        self,
        health_check_url: str,
        timeout: float,
        expected_body: str | None = None,
        accepted_statuses: frozenset[int] = frozenset({200}),
    ) -> ProbeResult:
        """Probe the health-check endpoint once.

        Args:
            health_check_url: URL to ``GET``.
            timeout: Timeout in seconds for the whole request.
            expected_body: Expected response body. Empty or None means the
                body is not read.
            accepted_statuses: Status codes counted as healthy.

        Returns:
            The probe result.
        """
        deadline = time.monotonic() + timeout
        with httpx.Client(
            timeout=httpx.Timeout(timeout),
            follow_redirects=True,
            transport=self._transport,
        ) as client:
            try:
                request = client.build_request("GET", health_check_url)
                response = client.send(request, stream=True)
            except (httpx.HTTPError, httpx.InvalidURL) as e:
                logger.debug("Probe of %s failed: %s", health_check_url, e)
                return ProbeResult(succeeded=False, error=str(e) or type(e).__name__)

            try:
                return self._evaluate(response, expected_body, accepted_statuses, deadline)
            finally:
                try:
                    response.close()
                except (httpx.HTTPError, httpx.StreamError, OSError) as e:
                    logger.error(
                        "Error closing response body: %s",
                        e,
                        extra={"url": health_check_url},
                    )

    def _evaluate(
        self,
        response: httpx.Response,
        expected_body: str | None,
        accepted_statuses: frozenset[int],
        deadline: float,
    ) -> ProbeResult:
        """Validate status code and, if requested, body of a streamed response.

        ``httpx`` timeouts apply to each network operation separately; the
        deadline bounds the probe as a whole, including redirects and a body
        that arrives in slow pieces.
        """
        status_code = response.status_code
        if time.monotonic() > deadline:
            return _timed_out(status_code, "waiting for response")

        status_ok = status_code in accepted_statuses
        if not expected_body:
            return ProbeResult(succeeded=status_ok, status_code=status_code)

        chunks: list[bytes] = []
        try:
            for chunk in response.iter_bytes():
                chunks.append(chunk)
                if time.monotonic() > deadline:
                    return _timed_out(status_code, "reading response body")
        except (httpx.HTTPError, httpx.StreamError) as e:
            logger.error(
                "Error reading response body: %s",
                e,
                extra={"url": str(response.request.url)},
            )
            return ProbeResult(
                succeeded=False,
                status_code=status_code,
                error=f"error reading response body: {e}",
            )

        body = b"".join(chunks).decode(response.encoding or "utf-8", errors="replace")
        return ProbeResult(
            succeeded=status_ok and body_matches(body, expected_body),
            status_code=status_code,
            body_snippet=body[:BODY_SNIPPET_LENGTH],
        )


def _timed_out(status_code: int, stage: str) -> ProbeResult:
    return ProbeResult(
        succeeded=False,
        status_code=status_code,
        error=f"timed out {stage}",
    )


__all__ = ["BODY_SNIPPET_LENGTH", "ProbeResult", "Prober", "body_matches"]
