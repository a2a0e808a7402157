"""Errors surfaced by the dashboard update run."""

from __future__ import annotations


class CLIError(Exception):
    """An error that ends the run with `code` as the process exit status."""

    def __init__(self, message: str, code: int = 1) -> None:
        super().__init__(message)
        self.code = code


class ConfigError(CLIError):
    """Configuration file is missing, unreadable, or has no repositories list."""


class OutputWriteError(CLIError):
    """Writing, backing up, or verifying the apps file failed."""


class MergeError(Exception):
    """Merging the sources of one repository failed.

    `repository` names the offending `owner/repo` so batch callers can
    attribute the failure without a traceback.
    """

    def __init__(self, repository: object, message: str) -> None:
        super().__init__(f"Data merge failed for {repository}: {message}")
        self.repository = repository


__all__ = ["CLIError", "ConfigError", "OutputWriteError", "MergeError"]
