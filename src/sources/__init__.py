"""Read-only accessors for GitHub (via `gh`) and the mobile app stores."""

from .collectors import (
    get_current_milestone,
    get_latest_release,
    get_recent_pull_requests,
    get_repository_info,
)
from .errors import FailureKind, GitHubCLIError, RepositoryAccessError
from .gh_cli import execute_gh, gh_api, gh_repo
from .stores import search_app_store_by_id, search_play_store_by_id

__all__ = [
    "FailureKind",
    "GitHubCLIError",
    "RepositoryAccessError",
    "execute_gh",
    "gh_api",
    "gh_repo",
    "get_repository_info",
    "get_latest_release",
    "get_current_milestone",
    "get_recent_pull_requests",
    "search_app_store_by_id",
    "search_play_store_by_id",
]
