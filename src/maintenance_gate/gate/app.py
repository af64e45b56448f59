"""FastAPI application factory for the request gate.

The application has no docs or OpenAPI routes: every path, including
``/docs``, belongs to the catch-all gate route.
"""

from __future__ import annotations

from pathlib import Path

from fastapi import FastAPI
from jinja2 import Environment, FileSystemLoader, select_autoescape

from maintenance_gate.config import Config
from maintenance_gate.gate.routes import create_routes
from maintenance_gate.status import HealthStatus

DEFAULT_TEMPLATES_DIR = Path(__file__).parent / "templates"


def create_template_environment(templates_dir: Path | None = None) -> Environment:
    """Create the Jinja2 environment used to render the maintenance page.

    Args:
        templates_dir: Directory containing ``maintenance.html``. Defaults to
            the bundled templates.

    Returns:
        An async-enabled Jinja2 Environment with HTML autoescaping.
    """
    return Environment(
        loader=FileSystemLoader(str(templates_dir or DEFAULT_TEMPLATES_DIR)),
        autoescape=select_autoescape(["html", "xml"]),
        enable_async=True,
    )


def create_app(
    config: Config,
    status: HealthStatus,
    *,
    templates_dir: Path | None = None,
) -> FastAPI:
    """Create and configure the gate application.

    Args:
        config: Application configuration (target URL, templates directory).
        status: Shared health status cell read by every request.
        templates_dir: Optional override for the maintenance templates
            directory. Takes precedence over ``config.maintenance_templates_dir``.

    Returns:
        A configured FastAPI application ready to serve.
    """
    app = FastAPI(
        title="Maintenance Gate",
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )

    app.state.templates = create_template_environment(
        templates_dir or config.maintenance_templates_dir
    )
    app.include_router(create_routes(config, status))

    return app


__all__ = ["DEFAULT_TEMPLATES_DIR", "create_app", "create_template_environment"]
