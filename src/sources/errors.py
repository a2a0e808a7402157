"""Failure taxonomy for `gh` invocations and repository access."""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from .config import GH_AUTH_EXIT_CODE

AUTH_HINT = "Authentication required. Run `gh auth login` or set GH_TOKEN."

_AUTH_RE = re.compile(r"authenticat|auth login|\btoken\b|bad credentials|HTTP 401", re.IGNORECASE)
_RATE_LIMIT_RE = re.compile(r"rate[ -]?limit", re.IGNORECASE)
_NETWORK_RE = re.compile(
    r"network|connection|timeout|timed out|could not resolve host|no such host|ECONNRESET",
    re.IGNORECASE,
)
_RETRY_AFTER_RE = re.compile(
    r"(?:retry[\s-]+after|try again in)[:\s]*(\d+)\s*(?:s|secs?|seconds?)?\b",
    re.IGNORECASE,
)


class FailureKind(str, Enum):
    AUTH = "auth"
    RATE_LIMIT = "rate_limit"
    NETWORK = "network"
    COMMAND = "command"
    PARSE = "parse"


_KIND_CODES = {
    FailureKind.AUTH: 401,
    FailureKind.RATE_LIMIT: 429,
    FailureKind.NETWORK: 503,
    FailureKind.PARSE: 1,
}
RETRYABLE_KINDS = frozenset({FailureKind.RATE_LIMIT, FailureKind.NETWORK})


@dataclass(frozen=True)
class FailureClassification:
    """Outcome of classifying one failed `gh` process."""

    kind: FailureKind
    retry_after: Optional[int] = None

    @property
    def retryable(self) -> bool:
        return self.kind in RETRYABLE_KINDS


def parse_retry_after(text: Optional[str]) -> Optional[int]:
    """Extract a "retry after N seconds" hint from error text."""
    if not text:
        return None
    match = _RETRY_AFTER_RE.search(text)
    return int(match.group(1)) if match else None


def classify_failure(stderr: Optional[str], exit_code: int) -> FailureClassification:
    """Map a failed process's stderr and exit code to a failure kind.

    Precedence is auth, rate limit, network, then generic command failure.
    """
    text = stderr or ""
    if exit_code == GH_AUTH_EXIT_CODE or _AUTH_RE.search(text):
        return FailureClassification(FailureKind.AUTH)
    if _RATE_LIMIT_RE.search(text):
        return FailureClassification(FailureKind.RATE_LIMIT, parse_retry_after(text))
    if _NETWORK_RE.search(text):
        return FailureClassification(FailureKind.NETWORK)
    return FailureClassification(FailureKind.COMMAND)


class GitHubCLIError(Exception):
    """A failed `gh` invocation, tagged with its failure kind."""

    def __init__(
        self,
        kind: FailureKind,
        message: str,
        *,
        exit_code: Optional[int] = None,
        stderr: str = "",
        retry_after: Optional[int] = None,
    ) -> None:
        super().__init__(message)
        self.kind = kind
        self.exit_code = exit_code
        self.stderr = stderr
        self.retry_after = retry_after
        self.code = _KIND_CODES.get(kind, exit_code if exit_code is not None else 1)

    @property
    def retryable(self) -> bool:
        return self.kind in RETRYABLE_KINDS

    @classmethod
    def from_process(cls, args, stderr: str, exit_code: int) -> "GitHubCLIError":
        """Build the error for a failed process according to its classification."""
        classification = classify_failure(stderr, exit_code)
        detail = stderr.strip() or f"exit code {exit_code}"
        command = " ".join(str(a) for a in args)
        if classification.kind is FailureKind.AUTH:
            message = f"{AUTH_HINT} ({detail})"
        elif classification.kind is FailureKind.RATE_LIMIT:
            message = f"Rate limit exceeded for `gh {command}`: {detail}"
        elif classification.kind is FailureKind.NETWORK:
            message = f"Network error running `gh {command}`: {detail}"
        else:
            message = f"gh command failed (exit {exit_code}): {detail}"
        return cls(
            classification.kind,
            message,
            exit_code=exit_code,
            stderr=stderr,
            retry_after=classification.retry_after,
        )


class RepositoryAccessError(Exception):
    """Raised when mandatory repository metadata cannot be read."""


__all__ = [
    "AUTH_HINT",
    "FailureKind",
    "FailureClassification",
    "RETRYABLE_KINDS",
    "parse_retry_after",
    "classify_failure",
    "GitHubCLIError",
    "RepositoryAccessError",
]
