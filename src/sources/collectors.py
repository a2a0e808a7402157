"""Source accessors for repository metadata, releases, milestones, and pull requests.

Optional data kinds (releases, tags, milestones, pull requests) absorb their own
failures and degrade to None or an empty list. Repository metadata is mandatory
and propagates errors.
"""

from __future__ import annotations

import asyncio
import datetime as dt
import math
import re
from typing import Any, Dict, List, Optional, Tuple

from .config import PR_FETCH_LIMIT, RECENT_PR_LIMIT, RELEASE_LIST_LIMIT
from .errors import FailureKind, GitHubCLIError, RepositoryAccessError
from .gh_cli import execute_gh, gh_api, parse_json_output

RELEASE_JSON_FIELDS = "tagName,publishedAt,url,isPrerelease"
RELEASE_LIST_JSON_FIELDS = "tagName,publishedAt,isPrerelease"
PR_JSON_FIELDS = "number,title,url,state,mergedAt,closedAt,updatedAt"
PR_STATES = ("open", "merged", "closed")

_VERSION_RE = re.compile(r"v?(\d+)\.(\d+)\.(\d+)")
_EPOCH = dt.datetime.min.replace(tzinfo=dt.timezone.utc)

# failures an optional accessor turns into "no data"
_ABSORBED = (GitHubCLIError, ValueError, TypeError, KeyError, AttributeError)


# ---------------------------------------------------------------------------
# timestamps
# ---------------------------------------------------------------------------

def parse_timestamp(raw: Any) -> Optional[dt.datetime]:
    """Parse an ISO-8601 string into an aware UTC datetime; None if unparseable.

    Values without an offset are taken as UTC.
    """
    if not raw or not isinstance(raw, str):
        return None
    text = raw.strip()
    if text[-1:] in ("Z", "z"):
        text = text[:-1] + "+00:00"
    try:
        value = dt.datetime.fromisoformat(text)
    except ValueError:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=dt.timezone.utc)
    return value.astimezone(dt.timezone.utc)


def format_date(raw: Any) -> Any:
    """Reduce a timestamp to `YYYY-MM-DD` (UTC); unparseable input passes through."""
    if not raw:
        return None
    value = parse_timestamp(raw)
    return value.strftime("%Y-%m-%d") if value else raw


def format_datetime(raw: Any) -> Any:
    """Render a timestamp as `YYYY-MM-DDTHH:MM:SS.mmmZ`; unparseable input passes through."""
    if not raw:
        return None
    value = parse_timestamp(raw)
    if value is None:
        return raw
    return iso_instant(value)


def iso_instant(value: dt.datetime) -> str:
    value = value.astimezone(dt.timezone.utc)
    return f"{value:%Y-%m-%dT%H:%M:%S}.{value.microsecond // 1000:03d}Z"


# ---------------------------------------------------------------------------
# repository
# ---------------------------------------------------------------------------

async def get_repository_info(owner: str, repo: str) -> Dict[str, Any]:
    """Fetch repository metadata; raises when the repository cannot be read."""
    if not owner or not repo:
        raise ValueError("Repository owner and name are required")

    try:
        data = await gh_api(f"repos/{owner}/{repo}")
    except GitHubCLIError as exc:
        if exc.kind is FailureKind.COMMAND:
            raise RepositoryAccessError(
                f"Failed to access repository {owner}/{repo}: {exc}"
            ) from exc
        raise

    if not isinstance(data, dict) or not data.get("name"):
        raise RepositoryAccessError(f"Invalid repository data for {owner}/{repo}")

    return {
        "name": data["name"],
        "fullName": data.get("full_name") or f"{owner}/{repo}",
        "description": data.get("description") or "",
        "defaultBranch": data.get("default_branch") or "main",
        "language": data.get("language") or None,
        "topics": data.get("topics") or [],
        "createdAt": data.get("created_at"),
        "updatedAt": data.get("updated_at"),
        "url": data.get("html_url") or f"https://github.com/{owner}/{repo}",
        "owner": (data.get("owner") or {}).get("login") or owner,
        "private": bool(data.get("private", False)),
    }


# ---------------------------------------------------------------------------
# releases
# ---------------------------------------------------------------------------

def format_release_data(release: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "version": release.get("tagName"),
        "date": format_date(release.get("publishedAt")),
        "url": release.get("url"),
    }


def format_tag_data(tag: Dict[str, Any], owner: str, repo: str) -> Dict[str, Any]:
    """Shape a tag like a release; tags carry no publish date."""
    name = tag.get("name")
    return {
        "version": name,
        "date": None,
        "url": f"https://github.com/{owner}/{repo}/releases/tag/{name}",
    }


async def get_latest_release(owner: str, repo: str) -> Optional[Dict[str, Any]]:
    """Return the latest non-prerelease release, or None (no releases is not an error)."""
    args = ["release", "view", "--repo", f"{owner}/{repo}", "--json", RELEASE_JSON_FIELDS]
    try:
        output = await execute_gh(args)
        release = parse_json_output(output, f"latest release of {owner}/{repo}")
        if not isinstance(release, dict) or release.get("isPrerelease"):
            return None
        return format_release_data(release)
    except _ABSORBED:
        return None


async def get_releases(owner: str, repo: str, limit: int = RELEASE_LIST_LIMIT) -> List[Dict[str, Any]]:
    """Return up to `limit` recent non-prerelease releases; [] on failure."""
    args = [
        "release", "list",
        "--repo", f"{owner}/{repo}",
        "--limit", str(limit),
        "--json", RELEASE_LIST_JSON_FIELDS,
    ]
    try:
        output = await execute_gh(args)
        releases = parse_json_output(output, f"releases of {owner}/{repo}")
        if not isinstance(releases, list):
            return []
        formatted = []
        for release in releases:
            if release.get("isPrerelease"):
                continue
            release = dict(release)
            release.setdefault(
                "url", f"https://github.com/{owner}/{repo}/releases/tag/{release.get('tagName')}"
            )
            formatted.append(format_release_data(release))
        return formatted
    except _ABSORBED:
        return []


async def get_latest_tag(owner: str, repo: str) -> Optional[Dict[str, Any]]:
    """Fallback for repositories that tag without publishing releases."""
    try:
        tags = await gh_api(f"repos/{owner}/{repo}/tags")
    except _ABSORBED:
        return None
    if not isinstance(tags, list) or not tags:
        return None
    return format_tag_data(tags[0], owner, repo)


# ---------------------------------------------------------------------------
# milestones
# ---------------------------------------------------------------------------

def calculate_progress(open_issues: int, closed_issues: int) -> int:
    """Percentage of closed issues, rounded half up; 0 for an empty milestone."""
    total = open_issues + closed_issues
    if total == 0:
        return 0
    return int(math.floor(closed_issues / total * 100 + 0.5))


def extract_version(title: Optional[str]) -> Optional[Tuple[int, int, int]]:
    """Pull (major, minor, patch) out of titles like "v2.2.0 - Winter Update"."""
    if not title:
        return None
    match = _VERSION_RE.search(title)
    if not match:
        return None
    return int(match.group(1)), int(match.group(2)), int(match.group(3))


def sort_milestones_by_version(milestones: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Ascending by version; unversioned titles follow in their original order."""
    titled = [m for m in milestones if m.get("title")]

    def key(milestone: Dict[str, Any]):
        version = extract_version(milestone["title"])
        return (version is None, version or (0, 0, 0))

    return sorted(titled, key=key)


def find_active_milestone(milestones: List[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    """Pick the open milestone with the lowest semantic version in its title."""
    ordered = sort_milestones_by_version(milestones)
    if not ordered or extract_version(ordered[0]["title"]) is None:
        return None
    return ordered[0]


def format_milestone_data(milestone: Dict[str, Any]) -> Dict[str, Any]:
    open_issues = milestone.get("open_issues") or 0
    closed_issues = milestone.get("closed_issues") or 0
    return {
        "title": milestone.get("title"),
        "openIssues": open_issues,
        "closedIssues": closed_issues,
        "totalIssues": open_issues + closed_issues,
        "progress": calculate_progress(open_issues, closed_issues),
        "dueOn": format_date(milestone.get("due_on")),
        "url": milestone.get("html_url"),
    }


async def get_milestones(owner: str, repo: str) -> List[Dict[str, Any]]:
    """Return the repository's open milestones; [] when none or on failure."""
    try:
        milestones = await gh_api(f"repos/{owner}/{repo}/milestones")
    except _ABSORBED:
        return []
    if not isinstance(milestones, list):
        return []
    return [m for m in milestones if isinstance(m, dict) and m.get("state") == "open"]


async def get_current_milestone(owner: str, repo: str) -> Optional[Dict[str, Any]]:
    milestones = await get_milestones(owner, repo)
    if not milestones:
        return None
    try:
        active = find_active_milestone(milestones)
        if active is None:
            return None
        return format_milestone_data(active)
    except _ABSORBED as exc:
        print(f"[warn] failed to select milestone for {owner}/{repo}: {exc}")
        return None


# ---------------------------------------------------------------------------
# pull requests
# ---------------------------------------------------------------------------

def normalize_pr_state(pr: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "number": pr.get("number"),
        "title": pr.get("title"),
        "url": pr.get("url"),
        "state": (pr.get("state") or "").lower(),
        "mergedAt": pr.get("mergedAt") or None,
    }


def remove_duplicate_prs(prs: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Drop repeated PR numbers, keeping the first occurrence."""
    seen = set()
    unique = []
    for pr in prs:
        number = pr.get("number")
        if number in seen:
            continue
        seen.add(number)
        unique.append(pr)
    return unique


def _activity_time(pr: Dict[str, Any]) -> dt.datetime:
    raw = pr.get("updatedAt") or pr.get("mergedAt") or pr.get("closedAt")
    return parse_timestamp(raw) or _EPOCH


def sort_prs_by_update_time(prs: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Newest activity first; PRs without any timestamp go last."""
    return sorted(prs, key=_activity_time, reverse=True)


async def get_prs_by_state(owner: str,
                           repo: str,
                           state: str,
                           limit: int = PR_FETCH_LIMIT) -> List[Dict[str, Any]]:
    args = [
        "pr", "list",
        "--repo", f"{owner}/{repo}",
        "--state", state,
        "--limit", str(limit),
        "--json", PR_JSON_FIELDS,
    ]
    try:
        output = await execute_gh(args)
        prs = parse_json_output(output, f"{state} PRs of {owner}/{repo}")
    except _ABSORBED as exc:
        print(f"[warn] failed to get {state} PRs for {owner}/{repo}: {exc}")
        return []
    return [pr for pr in prs if isinstance(pr, dict)] if isinstance(prs, list) else []


async def get_recent_pull_requests(owner: str,
                                   repo: str,
                                   limit: int = RECENT_PR_LIMIT) -> List[Dict[str, Any]]:
    """Most recently active PRs across open, merged and closed states. Never raises."""
    try:
        batches = await asyncio.gather(
            *(get_prs_by_state(owner, repo, state) for state in PR_STATES)
        )
        combined = [pr for batch in batches for pr in batch]
        ordered = sort_prs_by_update_time(remove_duplicate_prs(combined))
        return [normalize_pr_state(pr) for pr in ordered[:limit]]
    except Exception as exc:
        print(f"[error] failed to get pull requests for {owner}/{repo}: {exc}")
        return []


async def get_pull_request_details(owner: str, repo: str, number: int) -> Optional[Dict[str, Any]]:
    args = ["pr", "view", str(number), "--repo", f"{owner}/{repo}", "--json", PR_JSON_FIELDS]
    try:
        output = await execute_gh(args)
        pr = parse_json_output(output, f"PR #{number} of {owner}/{repo}")
    except _ABSORBED as exc:
        print(f"[warn] failed to get PR #{number} for {owner}/{repo}: {exc}")
        return None
    return pr if isinstance(pr, dict) else None


__all__ = [
    "parse_timestamp",
    "format_date",
    "format_datetime",
    "iso_instant",
    "get_repository_info",
    "format_release_data",
    "format_tag_data",
    "get_latest_release",
    "get_releases",
    "get_latest_tag",
    "calculate_progress",
    "extract_version",
    "sort_milestones_by_version",
    "find_active_milestone",
    "format_milestone_data",
    "get_milestones",
    "get_current_milestone",
    "normalize_pr_state",
    "remove_duplicate_prs",
    "sort_prs_by_update_time",
    "get_prs_by_state",
    "get_recent_pull_requests",
    "get_pull_request_details",
]
