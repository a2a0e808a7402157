"""`gh` command execution with failure classification and retry/backoff."""

from __future__ import annotations

import asyncio
import json
import os
from typing import Any, Dict, List, Optional, Sequence, Tuple

from .config import GH_BACKOFF_BASE_MS, GH_BINARY, GH_MAX_RETRIES, GITHUB_TOKEN
from .errors import FailureKind, GitHubCLIError

COMMAND_NOT_FOUND_EXIT_CODE = 127


def compute_backoff_delay(attempt_index: int,
                          base_delay_ms: int,
                          retry_after: Optional[int] = None) -> int:
    """Return the wait in milliseconds before retry number `attempt_index` (0-based).

    A server-provided retry-after hint (seconds) acts as a floor.
    """
    delay = base_delay_ms * (2 ** attempt_index)
    if retry_after is not None:
        delay = max(delay, retry_after * 1000)
    return delay


async def sleep_ms(delay_ms: int) -> None:
    await asyncio.sleep(max(0, delay_ms) / 1000)


def _process_env() -> Dict[str, str]:
    env = dict(os.environ)
    if GITHUB_TOKEN and not env.get("GH_TOKEN"):
        env["GH_TOKEN"] = GITHUB_TOKEN
    return env


async def _spawn(args: Sequence[str]) -> Tuple[str, str, int]:
    """Run `gh` once and return (stdout, stderr, exit_code)."""
    try:
        proc = await asyncio.create_subprocess_exec(
            GH_BINARY,
            *args,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            env=_process_env(),
        )
    except FileNotFoundError as exc:
        return "", f"{GH_BINARY} executable not found: {exc}", COMMAND_NOT_FOUND_EXIT_CODE
    stdout, stderr = await proc.communicate()
    return (
        stdout.decode("utf-8", errors="replace"),
        stderr.decode("utf-8", errors="replace"),
        proc.returncode,
    )


async def execute_gh(args: Sequence[Any],
                     *,
                     max_retries: int = GH_MAX_RETRIES,
                     base_delay_ms: int = GH_BACKOFF_BASE_MS) -> str:
    """Run `gh <args>` and return trimmed stdout, retrying transient failures.

    Rate-limit and network failures are retried with exponential backoff up to
    `max_retries` times. Authentication and generic command failures are
    raised immediately.
    """
    argv = [str(arg) for arg in args]
    attempts = max(0, max_retries) + 1
    last_error: Optional[GitHubCLIError] = None

    for attempt in range(attempts):
        stdout, stderr, exit_code = await _spawn(argv)
        if exit_code == 0:
            return stdout.strip()

        last_error = GitHubCLIError.from_process(argv, stderr, exit_code)
        if not last_error.retryable:
            raise last_error
        if attempt == attempts - 1:
            break

        delay = compute_backoff_delay(attempt, base_delay_ms, last_error.retry_after)
        tag = "rate-limit" if last_error.kind is FailureKind.RATE_LIMIT else "retry"
        print(
            f"[{tag} {attempt + 1}/{max_retries}] gh {' '.join(argv)} "
            f"-> {last_error.kind.value}, sleep {delay / 1000:.1f}s"
        )
        await sleep_ms(delay)

    raise last_error


def parse_json_output(output: str, source: str) -> Any:
    """Decode `gh` output as JSON or raise a PARSE failure naming `source`."""
    try:
        return json.loads(output)
    except (TypeError, ValueError) as exc:
        raise GitHubCLIError(
            FailureKind.PARSE,
            f"Failed to parse JSON response from {source}: {exc}",
        ) from exc


async def gh_api(endpoint: str,
                 *,
                 method: str = "GET",
                 fields: Optional[Dict[str, Any]] = None,
                 paginate: bool = False,
                 **options: Any) -> Any:
    """Call `gh api <endpoint>` and return the decoded JSON body."""
    args: List[str] = ["api", endpoint]
    if method.upper() != "GET":
        args += ["--method", method.upper()]
    for key, value in (fields or {}).items():
        args += ["-f", f"{key}={value}"]
    if paginate:
        args.append("--paginate")
    output = await execute_gh(args, **options)
    return parse_json_output(output, endpoint)


async def gh_repo(owner: str,
                  repo: str,
                  subcommand: str,
                  *extra_args: Any,
                  json_fields: Optional[Sequence[str]] = None,
                  **options: Any) -> Any:
    """Run `gh repo <subcommand> owner/repo ...`.

    Returns decoded JSON when `json_fields` is given, otherwise the raw text.
    """
    args: List[Any] = ["repo", subcommand, f"{owner}/{repo}", *extra_args]
    if json_fields:
        args += ["--json", ",".join(json_fields)]
    output = await execute_gh(args, **options)
    if json_fields:
        return parse_json_output(output, f"gh repo {subcommand} {owner}/{repo}")
    return output


__all__ = [
    "COMMAND_NOT_FOUND_EXIT_CODE",
    "compute_backoff_delay",
    "sleep_ms",
    "execute_gh",
    "parse_json_output",
    "gh_api",
    "gh_repo",
]
