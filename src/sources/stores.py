"""App Store (iTunes Lookup) and Google Play lookups returning a fixed info shape or None."""

from __future__ import annotations

from typing import Any, Dict, Optional

import requests
from google_play_scraper import app as play_store_app
from google_play_scraper.exceptions import ExtraHTTPError, NotFoundError

from .config import (
    ITUNES_COUNTRY,
    ITUNES_LOOKUP_URL,
    PLAY_STORE_COUNTRY,
    PLAY_STORE_LANG,
    STORE_REQUEST_TIMEOUT,
    USER_AGENT,
)

SESSION = requests.Session()
SESSION.headers.update({"User-Agent": USER_AGENT})

# failures of a Play Store lookup that mean "no listing data"
_PLAY_STORE_FAILURES = (ExtraHTTPError, OSError, ValueError, KeyError, TypeError)


# ---------------------------------------------------------------------------
# App Store
# ---------------------------------------------------------------------------

def _high_resolution_icon_url(itunes_data: Dict[str, Any]) -> Optional[str]:
    """Prefer artworkUrl512, else upscale the 100px or 60px artwork URL."""
    if itunes_data.get("artworkUrl512"):
        return itunes_data["artworkUrl512"]
    if itunes_data.get("artworkUrl100"):
        return itunes_data["artworkUrl100"].replace("100x100bb", "512x512bb")
    if itunes_data.get("artworkUrl60"):
        return itunes_data["artworkUrl60"].replace("60x60bb", "512x512bb")
    return None


def format_app_store_info(itunes_data: Any) -> Dict[str, Optional[str]]:
    if not isinstance(itunes_data, dict):
        return {"appStoreUrl": None, "version": None, "iconUrl": None, "minimumOsVersion": None}
    return {
        "appStoreUrl": itunes_data.get("trackViewUrl") or None,
        "version": itunes_data.get("version") or None,
        "iconUrl": _high_resolution_icon_url(itunes_data),
        "minimumOsVersion": itunes_data.get("minimumOsVersion") or None,
    }


def search_app_store_by_id(app_id: Any) -> Optional[Dict[str, Optional[str]]]:
    """Look up an App Store app by numeric id; None when not found or on failure."""
    if not app_id:
        return None
    params = {"id": str(app_id), "country": ITUNES_COUNTRY}
    try:
        resp = SESSION.get(ITUNES_LOOKUP_URL, params=params, timeout=STORE_REQUEST_TIMEOUT)
        if resp.status_code != 200:
            print(f"[warn] iTunes lookup for {app_id} -> HTTP {resp.status_code}")
            return None
        payload = resp.json()
    except (requests.RequestException, ValueError) as exc:
        print(f"[warn] failed to search app by id {app_id!r}: {exc}")
        return None

    results = payload.get("results") if isinstance(payload, dict) else None
    if not results:
        return None
    return format_app_store_info(results[0])


# ---------------------------------------------------------------------------
# Google Play
# ---------------------------------------------------------------------------

def format_play_store_info(play_data: Any) -> Dict[str, Optional[str]]:
    if not isinstance(play_data, dict):
        return {"playStoreUrl": None, "version": None, "iconUrl": None, "minimumSdkVersion": None}
    return {
        "playStoreUrl": play_data.get("url") or None,
        "version": play_data.get("version") or None,
        "iconUrl": play_data.get("icon") or None,
        "minimumSdkVersion": play_data.get("androidVersion") or None,
    }


def search_play_store_by_id(package_id: Optional[str]) -> Optional[Dict[str, Optional[str]]]:
    """Look up a Play Store listing by package id; None when not found or on failure."""
    if not package_id:
        return None
    try:
        play_data = play_store_app(package_id, lang=PLAY_STORE_LANG, country=PLAY_STORE_COUNTRY)
    except NotFoundError:
        print(f"[warn] Play Store listing not found for {package_id}")
        return None
    except _PLAY_STORE_FAILURES as exc:
        print(f"[warn] failed to search app by package id {package_id!r}: {exc}")
        return None
    return format_play_store_info(play_data)


__all__ = [
    "SESSION",
    "format_app_store_info",
    "search_app_store_by_id",
    "format_play_store_info",
    "search_play_store_by_id",
]
