"""Tests for src.sources.stores covering the App Store and Play Store lookups.

Run with:
    pytest tests/test_stores.py --maxfail=1 -v --cov=src.sources.stores --cov-report=term-missing
"""

from typing import Any, Dict
from urllib.error import URLError
from unittest.mock import MagicMock, patch

import requests
from google_play_scraper.exceptions import ExtraHTTPError, NotFoundError

from src.sources import stores


def _make_resp(status: int = 200, payload: Dict[str, Any] | None = None):
    resp = MagicMock()
    resp.status_code = status
    resp.json.return_value = payload if payload is not None else {}
    return resp


PLAY_LISTING = {
    "appId": "com.example.app",
    "title": "Example",
    "url": "https://play.google.com/store/apps/details?id=com.example.app&hl=ja&gl=jp",
    "version": "2.4.1",
    "icon": "https://play-lh.googleusercontent.com/icon",
    "androidVersion": "7.0",
    "score": 4.6,
}


def test_format_app_store_info_prefers_largest_artwork():
    info = stores.format_app_store_info({
        "trackViewUrl": "https://apps.apple.com/app/id1",
        "version": "1.0.0",
        "artworkUrl100": "https://is1.example/100x100bb.jpg",
        "artworkUrl60": "https://is1.example/60x60bb.jpg",
        "minimumOsVersion": "14.0",
    })
    assert info == {
        "appStoreUrl": "https://apps.apple.com/app/id1",
        "version": "1.0.0",
        "iconUrl": "https://is1.example/512x512bb.jpg",
        "minimumOsVersion": "14.0",
    }
    assert stores.format_app_store_info({"artworkUrl512": "big"})["iconUrl"] == "big"
    assert stores.format_app_store_info(None)["appStoreUrl"] is None


@patch("src.sources.stores.SESSION")
def test_search_app_store_by_id_returns_first_result(mock_session):
    mock_session.get.return_value = _make_resp(200, {
        "resultCount": 1,
        "results": [{"trackViewUrl": "https://apps.apple.com/app/id123", "version": "2.0"}],
    })
    info = stores.search_app_store_by_id(123)
    assert info["appStoreUrl"] == "https://apps.apple.com/app/id123"
    params = mock_session.get.call_args.kwargs["params"]
    assert params == {"id": "123", "country": "jp"}


@patch("src.sources.stores.SESSION")
def test_search_app_store_by_id_absent_cases(mock_session):
    assert stores.search_app_store_by_id("") is None
    mock_session.get.assert_not_called()

    mock_session.get.return_value = _make_resp(200, {"resultCount": 0, "results": []})
    assert stores.search_app_store_by_id("1") is None

    mock_session.get.return_value = _make_resp(503)
    assert stores.search_app_store_by_id("1") is None

    mock_session.get.side_effect = requests.ConnectionError("down")
    assert stores.search_app_store_by_id("1") is None


def test_format_play_store_info_maps_listing_fields():
    assert stores.format_play_store_info(PLAY_LISTING) == {
        "playStoreUrl": "https://play.google.com/store/apps/details?id=com.example.app&hl=ja&gl=jp",
        "version": "2.4.1",
        "iconUrl": "https://play-lh.googleusercontent.com/icon",
        "minimumSdkVersion": "7.0",
    }
    assert stores.format_play_store_info(None)["playStoreUrl"] is None


@patch("src.sources.stores.play_store_app", return_value=PLAY_LISTING)
def test_search_play_store_by_id(mock_app):
    info = stores.search_play_store_by_id("com.example.app")
    assert info["version"] == "2.4.1"
    assert info["minimumSdkVersion"] == "7.0"
    mock_app.assert_called_once_with("com.example.app", lang="ja", country="jp")


@patch("src.sources.stores.play_store_app")
def test_search_play_store_by_id_absent_cases(mock_app, capsys):
    assert stores.search_play_store_by_id(None) is None
    mock_app.assert_not_called()

    mock_app.side_effect = NotFoundError("App not found(404).")
    assert stores.search_play_store_by_id("com.example.missing") is None
    assert "not found" in capsys.readouterr().out

    mock_app.side_effect = URLError("no route")
    assert stores.search_play_store_by_id("com.example.app") is None

    mock_app.side_effect = ExtraHTTPError("App not found. Status code 500 returned.")
    assert stores.search_play_store_by_id("com.example.app") is None
