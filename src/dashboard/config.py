"""Configuration helpers for the dashboard data update run."""

from __future__ import annotations

import argparse
import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional

from .errors import ConfigError

VERSION = "1.0.0"
DEFAULT_CONFIG_PATH = os.getenv("DASHBOARD_CONFIG", "config.json")
DEFAULT_OUTPUT_PATH = os.getenv("DASHBOARD_OUTPUT", "src/data/apps.json")
PLACEHOLDER_ICON_URL = "https://via.placeholder.com/60"
MAX_CONCURRENCY = int(os.getenv("MAX_CONCURRENCY", "8"))  # 0 = no cap


@dataclass(frozen=True)
class RunSettings:
    """Resolved runtime settings for one update run."""

    config_path: Path
    output_path: Path
    verbose: bool
    dry_run: bool


def build_arg_parser() -> argparse.ArgumentParser:
    """Return the CLI parser used by the update entry point."""

    parser = argparse.ArgumentParser(
        prog="update-data",
        description="Update app dashboard data from GitHub, the App Store and Google Play.",
    )
    parser.add_argument("-c", "--config", default=DEFAULT_CONFIG_PATH,
                        help="path to configuration file")
    parser.add_argument("-o", "--output", default=DEFAULT_OUTPUT_PATH,
                        help="path of the apps JSON file to write")
    parser.add_argument("-v", "--verbose", action="store_true", help="enable verbose logging")
    parser.add_argument("--dry-run", action="store_true",
                        help="perform a dry run without saving data")
    parser.add_argument("--version", action="version", version=f"%(prog)s {VERSION}")
    return parser


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command-line arguments; accepts argv overrides for testing."""

    parser = build_arg_parser()
    return parser.parse_args(argv)


def resolve_settings(args: Optional[argparse.Namespace] = None) -> RunSettings:
    args = args or parse_args()
    return RunSettings(
        config_path=Path(args.config),
        output_path=Path(args.output),
        verbose=bool(args.verbose),
        dry_run=bool(args.dry_run),
    )


def load_repositories(path: str | Path) -> List[Dict[str, Any]]:
    """Read the `repositories` list from a JSON configuration file."""
    config_path = Path(path)
    try:
        with config_path.open("r", encoding="utf-8") as handle:
            data = json.load(handle)
    except FileNotFoundError as exc:
        raise ConfigError(f"Configuration file not found: {config_path}") from exc
    except (OSError, json.JSONDecodeError) as exc:
        raise ConfigError(f"Failed to read configuration {config_path}: {exc}") from exc

    repositories = data.get("repositories") if isinstance(data, dict) else None
    if not isinstance(repositories, list):
        raise ConfigError(f"Configuration {config_path} must contain a 'repositories' list")
    return repositories


__all__ = [
    "VERSION",
    "DEFAULT_CONFIG_PATH",
    "DEFAULT_OUTPUT_PATH",
    "PLACEHOLDER_ICON_URL",
    "MAX_CONCURRENCY",
    "RunSettings",
    "build_arg_parser",
    "parse_args",
    "resolve_settings",
    "load_repositories",
]
