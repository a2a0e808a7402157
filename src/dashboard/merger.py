"""Merge independently fetched sources into one canonical app record per repository."""

from __future__ import annotations

import asyncio
import datetime as dt
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional, Tuple

from src.sources.collectors import (
    format_date,
    format_datetime,
    get_current_milestone,
    get_latest_release,
    get_recent_pull_requests,
    get_repository_info,
    iso_instant,
)
from src.sources.stores import search_app_store_by_id, search_play_store_by_id

from .config import PLACEHOLDER_ICON_URL
from .errors import MergeError

# keys a caller may pre-fill in `api_results` to skip the matching live fetch
SOURCE_KEYS = ("repository", "release", "milestone", "prs", "itunes", "play_store")


def _now() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


def split_repository(value: Any) -> Tuple[str, str]:
    """Split `owner/repo` into exactly two non-empty parts."""
    parts = value.split("/") if isinstance(value, str) else []
    if len(parts) != 2 or not all(parts):
        raise ValueError(f"Invalid repository format: {value}")
    return parts[0], parts[1]


async def _nothing() -> None:
    return None


async def _resolve(api_results: Mapping[str, Any],
                   key: str,
                   fetch: Callable[[], Awaitable[Any]]) -> Any:
    if key in api_results:
        return api_results[key]
    return await fetch()


async def fetch_sources(owner: str,
                        repo: str,
                        repo_config: Mapping[str, Any],
                        api_results: Optional[Mapping[str, Any]] = None) -> Dict[str, Any]:
    """Resolve every source concurrently, honoring pre-fetched values key by key."""
    api_results = api_results or {}
    app_store_id = repo_config.get("appStoreId")
    play_store_id = repo_config.get("playStoreId")

    fetchers: Dict[str, Callable[[], Awaitable[Any]]] = {
        "repository": lambda: get_repository_info(owner, repo),
        "release": lambda: get_latest_release(owner, repo),
        "milestone": lambda: get_current_milestone(owner, repo),
        "prs": lambda: get_recent_pull_requests(owner, repo),
        "itunes": (
            (lambda: asyncio.to_thread(search_app_store_by_id, app_store_id))
            if app_store_id else _nothing
        ),
        "play_store": (
            (lambda: asyncio.to_thread(search_play_store_by_id, play_store_id))
            if play_store_id else _nothing
        ),
    }
    values = await asyncio.gather(
        *(_resolve(api_results, key, fetchers[key]) for key in SOURCE_KEYS),
        return_exceptions=True,
    )
    # every fetch has settled; surface the first failure in source order
    for value in values:
        if isinstance(value, BaseException):
            raise value
    return dict(zip(SOURCE_KEYS, values))


# ---------------------------------------------------------------------------
# mapping
# ---------------------------------------------------------------------------

def map_repository_data(repo_info: Mapping[str, Any]) -> Dict[str, Any]:
    return {
        "name": repo_info["name"],
        "fullName": repo_info.get("fullName"),
        "description": repo_info.get("description"),
        "url": repo_info.get("url"),
        "owner": repo_info.get("owner"),
        "topics": repo_info.get("topics"),
        "language": repo_info.get("language"),
    }


def map_release_data(release_info: Optional[Mapping[str, Any]]) -> Optional[Dict[str, Any]]:
    if not release_info:
        return None
    return {
        "version": release_info.get("version"),
        "date": release_info.get("date"),
        "url": release_info.get("url"),
    }


def map_store_data(itunes_info: Optional[Mapping[str, Any]],
                   play_store_info: Optional[Mapping[str, Any]]) -> Dict[str, Optional[Dict[str, Any]]]:
    store: Dict[str, Optional[Dict[str, Any]]] = {"appStore": None, "playStore": None}
    if itunes_info:
        store["appStore"] = {
            "url": itunes_info.get("appStoreUrl"),
            "version": itunes_info.get("version"),
            "icon": itunes_info.get("iconUrl"),
            "minimumOsVersion": itunes_info.get("minimumOsVersion"),
        }
    if play_store_info:
        store["playStore"] = {
            "url": play_store_info.get("playStoreUrl"),
            "version": play_store_info.get("version"),
            "icon": play_store_info.get("iconUrl"),
            "minimumSdkVersion": play_store_info.get("minimumSdkVersion"),
        }
    return store


def map_milestone_data(milestone_info: Optional[Mapping[str, Any]]) -> Optional[Dict[str, Any]]:
    if not milestone_info:
        return None
    return {
        "title": milestone_info.get("title"),
        "openIssues": milestone_info.get("openIssues"),
        "closedIssues": milestone_info.get("closedIssues"),
        "totalIssues": milestone_info.get("totalIssues"),
        "progress": milestone_info.get("progress"),
        "url": milestone_info.get("url"),
    }


def map_pr_data(pr_info: Any) -> List[Dict[str, Any]]:
    if not isinstance(pr_info, list):
        return []
    mapped = []
    for pr in pr_info:
        entry = {
            "number": pr.get("number"),
            "title": pr.get("title"),
            "url": pr.get("url"),
            "state": pr.get("state"),
        }
        if pr.get("mergedAt"):
            entry["mergedAt"] = pr["mergedAt"]
        mapped.append(entry)
    return mapped


# ---------------------------------------------------------------------------
# assembly
# ---------------------------------------------------------------------------

def select_best_icon(store: Mapping[str, Any], config: Mapping[str, Any]) -> str:
    """Config icon, then App Store icon, then Play Store icon, then the placeholder."""
    if config.get("icon"):
        return config["icon"]
    for key in ("appStore", "playStore"):
        entry = store.get(key)
        if entry and entry.get("icon"):
            return entry["icon"]
    return PLACEHOLDER_ICON_URL


def build_links(repository: Mapping[str, Any], store: Mapping[str, Any]) -> Dict[str, str]:
    links = {"github": repository.get("url")}
    for key in ("appStore", "playStore"):
        entry = store.get(key)
        if entry and entry.get("url"):
            links[key] = entry["url"]
    return links


def build_store_versions(store: Mapping[str, Any]) -> Dict[str, str]:
    versions = {}
    for key in ("appStore", "playStore"):
        entry = store.get(key)
        if entry and entry.get("version"):
            versions[key] = entry["version"]
    return versions


def create_final_app_data(*,
                          repository: Mapping[str, Any],
                          release: Optional[Dict[str, Any]],
                          store: Mapping[str, Any],
                          milestone: Optional[Dict[str, Any]],
                          prs: List[Dict[str, Any]],
                          config: Mapping[str, Any]) -> Dict[str, Any]:
    return {
        "id": config.get("id") or repository["name"].lower(),
        "name": config.get("name") or repository["name"],
        "repository": repository.get("fullName"),
        "platforms": list(config.get("platforms") or []),
        "icon": select_best_icon(store, config),
        "links": build_links(repository, store),
        "latestRelease": release,
        "storeVersions": build_store_versions(store),
        "milestone": milestone,
        "recentPRs": prs,
    }


def normalize_app_data(app: Dict[str, Any], now: Optional[dt.datetime] = None) -> Dict[str, Any]:
    """Stamp `lastUpdated` and normalize release and merge dates (best effort)."""
    app["lastUpdated"] = iso_instant(now or _now())
    release = app.get("latestRelease")
    if release and release.get("date"):
        release["date"] = format_date(release["date"])
    app["recentPRs"] = [
        {**pr, "mergedAt": format_datetime(pr["mergedAt"])} if pr.get("mergedAt") else pr
        for pr in app.get("recentPRs") or []
    ]
    return app


async def merge_app_data(repo_config: Optional[Mapping[str, Any]],
                         api_results: Optional[Mapping[str, Any]] = None) -> Dict[str, Any]:
    """Build the canonical app record for one configured repository.

    `api_results` may pre-fill any of SOURCE_KEYS; those sources are not
    fetched and are used as given (no validation). Any failure after the
    config check is raised as MergeError naming the repository.
    """
    if not repo_config or not repo_config.get("repository"):
        raise ValueError("Repository configuration with repository field is required")

    repository = repo_config["repository"]
    try:
        owner, repo = split_repository(repository)
        sources = await fetch_sources(owner, repo, repo_config, api_results)
        app = create_final_app_data(
            repository=map_repository_data(sources["repository"]),
            release=map_release_data(sources["release"]),
            store=map_store_data(sources["itunes"], sources["play_store"]),
            milestone=map_milestone_data(sources["milestone"]),
            prs=map_pr_data(sources["prs"]),
            config=repo_config,
        )
        return normalize_app_data(app)
    except Exception as exc:
        raise MergeError(repository, str(exc)) from exc


__all__ = [
    "SOURCE_KEYS",
    "split_repository",
    "fetch_sources",
    "map_repository_data",
    "map_release_data",
    "map_store_data",
    "map_milestone_data",
    "map_pr_data",
    "select_best_icon",
    "build_links",
    "build_store_versions",
    "create_final_app_data",
    "normalize_app_data",
    "merge_app_data",
]
