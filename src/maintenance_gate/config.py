"""Configuration loading from environment variables.

Environment variables:
- SERVER_PORT: Port to listen on (default: 3000). Invalid values are fatal.
- SERVER_HOST: Address to bind (default: 0.0.0.0)
- TARGET_URL: URL to redirect to while healthy (default: https://example.com).
  Invalid values are fatal.
- HEALTH_CHECK_URL: URL probed for health (default: https://example.com/healthz)
- HEALTH_CHECK_INTERVAL: Seconds between health checks (default: 60)
- HEALTH_CHECK_TIMEOUT: Timeout in seconds for a health check (default: 10)
- HEALTH_CHECK_SUCCESS_CODE: Comma-separated HTTP status codes accepted as
  healthy (default: 200)
- HEALTH_CHECK_BODY: Expected response body, compared after trimming
  surrounding whitespace. Empty means the body is ignored.
- LOG_LEVEL: DEBUG, INFO, ACCESS, WARNING or ERROR (default: INFO)
- LOG_JSON: Emit JSON log lines (default: false)
- LOG_COLOR: Colorize level names (default: false)
- MAINTENANCE_TEMPLATES_DIR: Directory holding a custom maintenance.html
  template (default: the bundled page)
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

import httpx
from dotenv import load_dotenv

from maintenance_gate.logging import get_logger

logger = get_logger(__name__)

# Accepted LOG_LEVEL values
VALID_LOG_LEVELS = frozenset({"DEBUG", "INFO", "ACCESS", "WARNING", "ERROR", "CRITICAL"})

# SERVER_PORT bounds
MIN_PORT = 1
MAX_PORT = 65535

DEFAULT_SUCCESS_CODES: frozenset[int] = frozenset({200})


class ConfigError(Exception):
    """Raised when a configuration value is invalid and startup must abort."""


@dataclass(frozen=True)
class Config:
    """Effective settings, read once at startup and shared read-only."""

    # HTTP listener
    server_port: int = 3000
    server_host: str = "0.0.0.0"

    # Redirect destination while the target is healthy
    target_url: str = "https://example.com"

    # Health check
    health_check_url: str = "https://example.com/healthz"
    health_check_interval: int = 60  # seconds
    health_check_timeout: int = 10  # seconds
    health_check_body: str = ""  # empty = body is not inspected
    health_check_success_codes: frozenset[int] = field(
        default_factory=lambda: DEFAULT_SUCCESS_CODES
    )

    # Maintenance page
    maintenance_templates_dir: Path | None = None  # None = bundled template

    # Logging
    log_level: str = "INFO"
    log_json: bool = False
    log_color: bool = False

    @property
    def body_check_enabled(self) -> bool:
        """Check if the health check response body is compared."""
        return bool(self.health_check_body)


def _parse_positive_int(value: str, name: str, default: int) -> int:
    """Parse a number of seconds; anything but a positive integer means ``default``."""
    try:
        parsed = int(value)
    except ValueError:
        logger.warning("Invalid %s: '%s' is not an integer, using %d", name, value, default)
        return default
    if parsed < 1:
        logger.warning("Invalid %s: %d must be at least 1, using %d", name, parsed, default)
        return default
    return parsed


def _parse_port(value: str, name: str = "SERVER_PORT") -> int:
    """Parse a string as a valid TCP port number.

    Args:
        value: The string value to parse.
        name: The name of the setting (for error messages).

    Returns:
        The parsed port number (MIN_PORT-MAX_PORT).

    Raises:
        ConfigError: If the value is not an integer or is out of range.
    """
    try:
        parsed = int(value)
    except ValueError as e:
        msg = f"Error parsing {name}: '{value}' is not a valid integer"
        raise ConfigError(msg) from e
    if parsed < MIN_PORT or parsed > MAX_PORT:
        msg = f"Error parsing {name}: {parsed} is not a valid port (must be {MIN_PORT}-{MAX_PORT})"
        raise ConfigError(msg)
    return parsed


def _parse_target_url(value: str, name: str = "TARGET_URL") -> str:
    """Validate the redirect target URL.

    The target must be an absolute URL since it prefixes every redirect.

    Raises:
        ConfigError: If the URL cannot be parsed or is not absolute.
    """
    try:
        url = httpx.URL(value)
    except httpx.InvalidURL as e:
        msg = f"Error parsing {name}: {e}"
        raise ConfigError(msg) from e
    if not url.scheme or not url.host:
        msg = f"Error parsing {name}: '{value}' is not an absolute URL"
        raise ConfigError(msg)
    return value


def _parse_health_check_url(value: str, name: str = "HEALTH_CHECK_URL") -> str:
    """Validate the health check URL without aborting startup.

    An unparseable value is logged and kept as-is; every probe against it
    then fails and the gate stays closed.
    """
    try:
        url = httpx.URL(value)
    except httpx.InvalidURL as e:
        logger.error("Error parsing %s: %s", name, e)
        return value
    if not url.scheme or not url.host:
        logger.error("Error parsing %s: '%s' is not an absolute URL", name, value)
    return value


def _parse_status_codes(value: str, name: str = "HEALTH_CHECK_SUCCESS_CODE") -> frozenset[int]:
    """Parse a comma-separated list of HTTP status codes.

    Invalid entries are skipped with a warning. If no valid code remains,
    ``DEFAULT_SUCCESS_CODES`` is used.
    """
    codes: set[int] = set()
    for raw in value.split(","):
        entry = raw.strip()
        if not entry:
            continue
        try:
            code = int(entry)
        except ValueError:
            logger.warning("Invalid %s entry: '%s' is not a valid integer, skipping", name, entry)
            continue
        if not 100 <= code <= 599:
            logger.warning("Invalid %s entry: %d is not an HTTP status code, skipping", name, code)
            continue
        codes.add(code)

    if not codes:
        if value.strip():
            logger.warning(
                "No valid %s in '%s', using default %s",
                name,
                value,
                sorted(DEFAULT_SUCCESS_CODES),
            )
        return DEFAULT_SUCCESS_CODES
    return frozenset(codes)


def _validate_log_level(value: str, default: str = "INFO") -> str:
    """Upper-case ``value`` if it names a known level, else warn and use ``default``."""
    level = value.strip().upper()
    if level in VALID_LOG_LEVELS:
        return level
    logger.warning(
        "Invalid LOG_LEVEL: '%s', using '%s' (expected one of %s)",
        value,
        default,
        ", ".join(sorted(VALID_LOG_LEVELS)),
    )
    return default


def _parse_bool(value: str) -> bool:
    """``true``, ``1``, ``yes`` and ``on`` (any case) are true; everything else is false."""
    return value.strip().lower() in {"true", "1", "yes", "on"}


def load_env_file(env_file: Path | None = None) -> None:
    """Load a .env file into the environment without overriding set values."""
    if env_file:
        load_dotenv(env_file)
    else:
        load_dotenv()


def logging_settings() -> tuple[str, bool, bool]:
    """Read LOG_LEVEL, LOG_JSON and LOG_COLOR ahead of the full config.

    Logging has to be configured before ``load_config`` so that its
    warnings come out in the configured format. An unknown level falls
    back to INFO here silently; ``load_config`` reports it.
    """
    level = os.getenv("LOG_LEVEL", "INFO").strip().upper()
    if level not in VALID_LOG_LEVELS:
        level = "INFO"
    return (
        level,
        _parse_bool(os.getenv("LOG_JSON", "")),
        _parse_bool(os.getenv("LOG_COLOR", "")),
    )


def load_config(env_file: Path | None = None) -> Config:
    """Build a Config from the process environment.

    Args:
        env_file: Optional path to .env file. Values already present in the
            environment take precedence over the file.

    Returns:
        Config instance with loaded values.

    Raises:
        ConfigError: If SERVER_PORT or TARGET_URL is invalid.
    """
    load_env_file(env_file)

    server_port = _parse_port(os.getenv("SERVER_PORT", "3000"))
    target_url = _parse_target_url(os.getenv("TARGET_URL", "https://example.com"))
    health_check_url = _parse_health_check_url(
        os.getenv("HEALTH_CHECK_URL", "https://example.com/healthz")
    )

    health_check_interval = _parse_positive_int(
        os.getenv("HEALTH_CHECK_INTERVAL", "60"),
        "HEALTH_CHECK_INTERVAL",
        60,
    )
    health_check_timeout = _parse_positive_int(
        os.getenv("HEALTH_CHECK_TIMEOUT", "10"),
        "HEALTH_CHECK_TIMEOUT",
        10,
    )
    success_codes = _parse_status_codes(os.getenv("HEALTH_CHECK_SUCCESS_CODE", "200"))
    templates_dir = os.getenv("MAINTENANCE_TEMPLATES_DIR", "")

    return Config(
        server_port=server_port,
        server_host=os.getenv("SERVER_HOST", "0.0.0.0"),
        target_url=target_url,
        health_check_url=health_check_url,
        health_check_interval=health_check_interval,
        health_check_timeout=health_check_timeout,
        health_check_body=os.getenv("HEALTH_CHECK_BODY", ""),
        health_check_success_codes=success_codes,
        log_level=_validate_log_level(os.getenv("LOG_LEVEL", "INFO")),
        log_json=_parse_bool(os.getenv("LOG_JSON", "")),
        log_color=_parse_bool(os.getenv("LOG_COLOR", "")),
        maintenance_templates_dir=Path(templates_dir) if templates_dir else None,
    )


def _hostname(url: str) -> str:
    try:
        return httpx.URL(url).host
    except httpx.InvalidURL:
        return ""


def log_config(config: Config) -> None:
    """Dump the effective configuration at DEBUG and warn about host mismatches."""
    logger.debug("Server port: %d", config.server_port)
    logger.debug("Target URL: %s", config.target_url)
    logger.debug("Health check URL: %s", config.health_check_url)
    if config.body_check_enabled:
        logger.debug("Health check body: %s", config.health_check_body)
    else:
        logger.debug("Health check body: not specified, ignoring body")

    target_host = _hostname(config.target_url)
    health_host = _hostname(config.health_check_url)
    if target_host != health_host:
        logger.warning(
            "Target URL and health check URL are not the same FQDN (%s != %s)",
            target_host,
            health_host,
        )

    logger.debug("Health check interval: %ds", config.health_check_interval)
    logger.debug("Health check timeout: %ds", config.health_check_timeout)
    logger.debug(
        "Health check valid statuses: %s", sorted(config.health_check_success_codes)
    )
    if config.maintenance_templates_dir is not None:
        logger.debug("Maintenance templates directory: %s", config.maintenance_templates_dir)
