"""Maintenance gate: redirect to a target while it is healthy, 503 otherwise."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("maintenance-gate")
except PackageNotFoundError:
    # running from a source checkout
    __version__ = "0.0.0.dev0"

from maintenance_gate.app import main
from maintenance_gate.config import Config, ConfigError, load_config
from maintenance_gate.status import HealthSnapshot, HealthStatus

__all__ = [
    "__version__",
    "Config",
    "ConfigError",
    "HealthSnapshot",
    "HealthStatus",
    "load_config",
    "main",
]
