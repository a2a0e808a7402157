"""Central configuration constants for the source accessors and store lookups."""

from __future__ import annotations

import os
from typing import Optional

from src.secrets import github_token, load_local_secrets

_SECRETS = load_local_secrets()
GITHUB_TOKEN: Optional[str] = github_token(_SECRETS)
GH_BINARY = os.getenv("GH_BINARY", "gh")
GH_MAX_RETRIES = int(os.getenv("GH_MAX_RETRIES", "3"))
GH_BACKOFF_BASE_MS = int(os.getenv("GH_BACKOFF_BASE_MS", "1000"))
# exit status `gh` uses when authentication is required
GH_AUTH_EXIT_CODE = 4

PR_FETCH_LIMIT = int(os.getenv("PR_FETCH_LIMIT", "5"))  # per state
RECENT_PR_LIMIT = int(os.getenv("RECENT_PR_LIMIT", "3"))
RELEASE_LIST_LIMIT = 5

USER_AGENT = "app-dashboard-data/1.0"
STORE_REQUEST_TIMEOUT = int(os.getenv("STORE_REQUEST_TIMEOUT", "30"))
ITUNES_LOOKUP_URL = "https://itunes.apple.com/lookup"
ITUNES_COUNTRY = "jp"
PLAY_STORE_LANG = "ja"
PLAY_STORE_COUNTRY = "jp"

__all__ = [
    "GITHUB_TOKEN",
    "GH_BINARY",
    "GH_MAX_RETRIES",
    "GH_BACKOFF_BASE_MS",
    "GH_AUTH_EXIT_CODE",
    "PR_FETCH_LIMIT",
    "RECENT_PR_LIMIT",
    "RELEASE_LIST_LIMIT",
    "USER_AGENT",
    "STORE_REQUEST_TIMEOUT",
    "ITUNES_LOOKUP_URL",
    "ITUNES_COUNTRY",
    "PLAY_STORE_LANG",
    "PLAY_STORE_COUNTRY",
]
