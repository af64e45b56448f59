"""Command-line flags for the maintenance gate.

The server is configured through the environment and runs without
arguments. The flags only make local runs easier.
"""

from __future__ import annotations

import argparse
from pathlib import Path


LOG_LEVEL_CHOICES = ("DEBUG", "INFO", "ACCESS", "WARNING", "ERROR")


def _version() -> str:
    from maintenance_gate import __version__

    return __version__


def parse_args(args: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments.

    Args:
        args: Arguments to parse. Defaults to ``sys.argv[1:]``.

    Returns:
        Namespace with ``env_file`` (Path or None) and ``log_level``
        (str or None).
    """
    parser = argparse.ArgumentParser(
        prog="maintenance-gate",
        description=(
            "Redirect every request to TARGET_URL while HEALTH_CHECK_URL is healthy; "
            "serve a 503 maintenance page otherwise."
        ),
    )
    parser.add_argument(
        "--env-file",
        type=Path,
        default=None,
        metavar="PATH",
        help="dotenv file to load before reading the environment (default: ./.env)",
    )
    parser.add_argument(
        "--log-level",
        type=str.upper,
        choices=LOG_LEVEL_CHOICES,
        default=None,
        help="override LOG_LEVEL",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {_version()}")

    return parser.parse_args(args)


__all__ = ["LOG_LEVEL_CHOICES", "parse_args"]
