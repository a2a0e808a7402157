"""Atomic, verified persistence of the merged apps list."""

from __future__ import annotations

import datetime as dt
import json
import os
import shutil
from pathlib import Path
from typing import Any, Dict, List

from src.sources.collectors import iso_instant

from .config import DEFAULT_OUTPUT_PATH
from .errors import CLIError, OutputWriteError


def _verbose(enabled: bool, message: str) -> None:
    if enabled:
        print(f"[verbose] {message}")


def ensure_dir(path: str | Path) -> None:
    """Create output directories as-needed without raising for existing folders."""
    try:
        os.makedirs(path, exist_ok=True)
    except OSError as exc:
        raise OutputWriteError(f"Failed to create directory {path}: {exc}") from exc


def format_apps_json(apps: List[Dict[str, Any]]) -> str:
    """Serialize the apps file with 2-space indentation and a trailing newline."""
    document = {
        "apps": apps,
        "lastUpdated": iso_instant(dt.datetime.now(dt.timezone.utc)),
        "totalApps": len(apps),
    }
    return json.dumps(document, indent=2, ensure_ascii=False) + "\n"


def create_backup(path: Path, verbose: bool = False) -> None:
    """Copy an existing output file to `<path>.backup`."""
    if not path.exists():
        _verbose(verbose, "No existing file to backup")
        return
    backup_path = path.with_name(path.name + ".backup")
    try:
        shutil.copyfile(path, backup_path)
    except OSError as exc:
        raise OutputWriteError(f"Failed to create backup: {exc}") from exc
    _verbose(verbose, f"Backup created: {backup_path}")


def write_file_atomically(path: Path, payload: str, verbose: bool = False) -> None:
    """Write to `<path>.tmp` then rename over the target; the temp file never survives a failure."""
    temp_path = path.with_name(path.name + ".tmp")
    try:
        with open(temp_path, "w", encoding="utf-8") as fh:
            fh.write(payload)
        _verbose(verbose, f"Temporary file written: {temp_path}")
        os.replace(temp_path, path)
    except OSError as exc:
        try:
            os.unlink(temp_path)
        except FileNotFoundError:
            pass
        raise OutputWriteError(f"Failed to write file atomically: {exc}") from exc
    _verbose(verbose, f"File moved to final location: {path}")


def verify_json_output(path: Path, expected_payload: str, verbose: bool = False) -> None:
    """Re-read the written file and check the app counts match what was serialized."""
    try:
        with open(path, "r", encoding="utf-8") as fh:
            written = json.load(fh)
        expected = json.loads(expected_payload)
        if written.get("totalApps") != expected["totalApps"]:
            raise OutputWriteError("Written file validation failed: app count mismatch")
        if len(written.get("apps") or []) != len(expected["apps"]):
            raise OutputWriteError("Written file validation failed: apps array length mismatch")
        if written["totalApps"] != len(written["apps"]):
            raise OutputWriteError("Written file validation failed: totalApps does not match apps")
    except CLIError:
        raise
    except (OSError, ValueError, KeyError, TypeError, AttributeError) as exc:
        raise OutputWriteError(f"Failed to verify written file: {exc}") from exc
    _verbose(verbose, "JSON file verification completed successfully")


def write_apps_json(apps: List[Dict[str, Any]],
                    output_path: str | Path = DEFAULT_OUTPUT_PATH,
                    *,
                    verbose: bool = False) -> Path:
    """Persist `apps` as the dashboard's apps file and return the written path."""
    if not isinstance(apps, list):
        raise OutputWriteError("Apps data must be a list")

    path = Path(output_path)
    _verbose(verbose, f"Starting JSON write process for {len(apps)} apps")
    ensure_dir(path.parent)
    _verbose(verbose, f"Output directory created/verified: {path.parent}")

    create_backup(path, verbose)
    try:
        payload = format_apps_json(apps)
    except (TypeError, ValueError) as exc:
        raise OutputWriteError(f"Failed to serialize apps data: {exc}") from exc
    write_file_atomically(path, payload, verbose)
    verify_json_output(path, payload, verbose)

    size_kb = round(path.stat().st_size / 1024, 2)
    print(f"[done] JSON file written: {path} ({size_kb} KB)")
    print(f"[done] total apps exported: {len(apps)}")
    return path


__all__ = [
    "ensure_dir",
    "format_apps_json",
    "create_backup",
    "write_file_atomically",
    "verify_json_output",
    "write_apps_json",
]
