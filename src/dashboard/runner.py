"""Entry points for running the dashboard data update."""

from __future__ import annotations

import asyncio
import sys
import traceback
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from .config import MAX_CONCURRENCY, VERSION, load_repositories, parse_args, resolve_settings
from .errors import CLIError
from .merger import merge_app_data
from .writer import write_apps_json


def _label(entry: Any) -> str:
    if isinstance(entry, Mapping):
        return str(entry.get("repository") or entry.get("id") or "<unnamed>")
    return repr(entry)


async def process_repositories(
    repositories: Sequence[Mapping[str, Any]],
    *,
    max_concurrency: int = MAX_CONCURRENCY,
    verbose: bool = False,
) -> Tuple[List[Dict[str, Any]], List[Tuple[str, BaseException]]]:
    """Merge every configured repository concurrently.

    Each repository succeeds or fails on its own. Returns the merged records in
    config order and a list of (repository, error) for the ones that failed.
    """
    sem = asyncio.Semaphore(max_concurrency) if max_concurrency > 0 else None

    async def _run_one(entry: Mapping[str, Any]) -> Dict[str, Any]:
        if verbose:
            print(f"[verbose] merging {_label(entry)}")
        if sem is None:
            return await merge_app_data(entry)
        async with sem:
            return await merge_app_data(entry)

    results = await asyncio.gather(
        *(_run_one(entry) for entry in repositories), return_exceptions=True
    )

    apps: List[Dict[str, Any]] = []
    failures: List[Tuple[str, BaseException]] = []
    for entry, result in zip(repositories, results):
        if isinstance(result, BaseException):
            failures.append((_label(entry), result))
            print(f"[error] {_label(entry)}: {result}")
        else:
            apps.append(result)
            if verbose:
                print(f"[verbose] merged {_label(entry)}")
    return apps, failures


def main(argv: Optional[List[str]] = None) -> None:
    """CLI entry point: load config, merge all repositories, write the apps file."""
    settings = resolve_settings(parse_args(argv))
    print("App Dashboard Data Updater")
    print(f"Version: {VERSION}")
    if settings.verbose:
        print(f"[verbose] settings: {settings}")
    if settings.dry_run:
        print("Running in dry-run mode - no data will be saved")

    try:
        repositories = load_repositories(settings.config_path)
        if not repositories:
            print("No repositories specified. Add entries to the 'repositories' list.")
            sys.exit(1)

        print(f"Processing {len(repositories)} repositories...")
        apps, failures = asyncio.run(
            process_repositories(repositories, verbose=settings.verbose)
        )
        if failures:
            print(f"[warn] {len(failures)} of {len(repositories)} repositories failed")
        if not apps:
            print("[error] no repository could be processed; nothing written")
            sys.exit(1)

        if settings.dry_run:
            print(f"[dry-run] would write {len(apps)} apps to {settings.output_path}")
        else:
            write_apps_json(apps, settings.output_path, verbose=settings.verbose)
    except CLIError as exc:
        print(f"[error] {exc}")
        sys.exit(exc.code)
    except Exception as exc:
        print(f"[error] Unexpected error: {exc}")
        if settings.verbose:
            traceback.print_exc()
        sys.exit(1)

    print("\nAll repositories processed.")


if __name__ == "__main__":
    main()
