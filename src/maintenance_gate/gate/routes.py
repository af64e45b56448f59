"""Catch-all route for the request gate.

Every request reads one ``HealthSnapshot``. While the target is healthy the
client is redirected (307) to the target URL with the request path appended.
Otherwise the client gets a 503 maintenance response, as JSON or HTML
depending on the ``Accept`` header and path prefix:

- JSON if ``Accept`` contains ``application/json``
- JSON if the path starts with ``/api/`` and ``Accept`` lacks ``text/html``
- HTML otherwise

Every handled request is logged once on the ACCESS channel with the status
actually sent.
"""

from __future__ import annotations

import json

from fastapi import APIRouter, Request, Response
from fastapi.responses import HTMLResponse, PlainTextResponse, RedirectResponse
from jinja2 import TemplateError

from maintenance_gate.config import Config
from maintenance_gate.logging import get_logger
from maintenance_gate.status import HealthStatus

logger = get_logger(__name__)
access_logger = get_logger("maintenance_gate.access")

MAINTENANCE_TEMPLATE = "maintenance.html"

MAINTENANCE_MESSAGE = "service is currently undergoing a migration. Please try again later."

MAINTENANCE_PAYLOAD: dict[str, str | int] = {
    "status": "unavailable",
    "message": MAINTENANCE_MESSAGE,
    "detail": MAINTENANCE_MESSAGE,
    "code": 503,
}

# Serialized with the default separators so the body reads
# {"status": "unavailable", ..., "code": 503}
MAINTENANCE_JSON = json.dumps(MAINTENANCE_PAYLOAD)

GATE_METHODS = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS", "TRACE"]


def wants_json(accept: str, path: str) -> bool:
    """Decide whether the maintenance response should be JSON.

    Args:
        accept: Raw ``Accept`` header value (empty if absent).
        path: Request path.

    Returns:
        True for the JSON representation, False for HTML.
    """
    if "application/json" in accept:
        return True
    return path.startswith("/api/") and "text/html" not in accept


def redirect_location(target_url: str, request: Request) -> str:
    """Build the redirect location for a request.

    The raw request path is appended to the target URL as-is, without
    normalizing slashes. A query string, if present, is carried over verbatim.
    """
    raw_path: bytes | None = request.scope.get("raw_path")
    if raw_path:
        path = raw_path.split(b"?", 1)[0].decode("latin-1")
    else:
        path = request.url.path

    location = f"{target_url}{path}"
    query = request.url.query
    if query:
        location = f"{location}?{query}"
    return location


def _remote_addr(request: Request) -> str:
    if request.client is None:
        return "-"
    return f"{request.client.host}:{request.client.port}"


def create_routes(config: Config, status: HealthStatus) -> APIRouter:
    """Create the gate route bound to a configuration and status cell.

    Args:
        config: Application configuration.
        status: Shared health status cell.

    Returns:
        An APIRouter with a single catch-all route.
    """
    router = APIRouter()

    def _log_access(request: Request, status_code: int) -> None:
        remote_addr = _remote_addr(request)
        access_logger.access(
            "%s %s %s %d",
            remote_addr,
            request.method,
            request.url.path,
            status_code,
            extra={
                "remote_addr": remote_addr,
                "method": request.method,
                "path": request.url.path,
                "status_code": status_code,
            },
        )

    async def _render_maintenance_page(request: Request) -> Response:
        templates = request.app.state.templates
        try:
            template = templates.get_template(MAINTENANCE_TEMPLATE)
            content = await template.render_async(request=request)
        except TemplateError as e:
            logger.error("Error rendering maintenance template: %s", e)
            return PlainTextResponse(str(e), status_code=500)
        return HTMLResponse(content=content, status_code=503)

    @router.api_route("/{path:path}", methods=GATE_METHODS, include_in_schema=False)
    async def gate(request: Request) -> Response:
        """Redirect to the target or serve the maintenance response.

        Args:
            request: The incoming HTTP request.

        Returns:
            A 307 redirect, a 503 maintenance response, or a 500 if the
            maintenance page cannot be rendered.
        """
        snapshot = status.snapshot()

        response: Response
        if snapshot.is_open:
            response = RedirectResponse(
                url=redirect_location(config.target_url, request),
                status_code=307,
            )
        elif wants_json(request.headers.get("accept", ""), request.url.path):
            response = Response(
                content=MAINTENANCE_JSON,
                status_code=503,
                media_type="application/json",
            )
        else:
            response = await _render_maintenance_page(request)

        _log_access(request, response.status_code)
        return response

    return router


__all__ = [
    "GATE_METHODS",
    "MAINTENANCE_JSON",
    "MAINTENANCE_MESSAGE",
    "MAINTENANCE_PAYLOAD",
    "MAINTENANCE_TEMPLATE",
    "create_routes",
    "redirect_location",
    "wants_json",
]
