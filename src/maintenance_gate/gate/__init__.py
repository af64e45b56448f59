"""Request gate for the maintenance gate service.

This package provides the HTTP entry point: a FastAPI application with a
single catch-all route that reads the shared ``HealthStatus`` and either
redirects to the target or serves the maintenance response.

Key components:
- create_app: FastAPI application factory
- create_routes: catch-all route bound to a status cell and configuration
- wants_json: content negotiation between the JSON and HTML responses
"""

from maintenance_gate.gate.app import create_app
from maintenance_gate.gate.routes import (
    MAINTENANCE_JSON,
    MAINTENANCE_PAYLOAD,
    create_routes,
    wants_json,
)

# NOTE: Update this list when adding new exports to this module.
__all__ = [
    "MAINTENANCE_JSON",
    "MAINTENANCE_PAYLOAD",
    "create_app",
    "create_routes",
    "wants_json",
]
