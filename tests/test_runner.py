"""Tests for src.dashboard.runner ensuring per-repository isolation and exit codes.

Run with:
    pytest tests/test_runner.py --maxfail=1 -v --cov=src.dashboard.runner --cov-report=term-missing
"""

import json
from unittest.mock import AsyncMock, patch

import pytest

from src.dashboard import runner
from src.dashboard.errors import ConfigError, MergeError

REPOS = [{"repository": "o/good"}, {"repository": "o/bad"}, {"repository": "o/also-good"}]


async def _fake_merge(entry, api_results=None):
    if entry["repository"] == "o/bad":
        raise MergeError(entry["repository"], "Failed to access repository o/bad")
    return {"id": entry["repository"].split("/")[1]}


@pytest.mark.asyncio
@patch("src.dashboard.runner.merge_app_data", side_effect=_fake_merge)
async def test_process_repositories_isolates_failures(mock_merge, capsys):
    apps, failures = await runner.process_repositories(REPOS, max_concurrency=1)
    assert [app["id"] for app in apps] == ["good", "also-good"]
    assert [label for label, _ in failures] == ["o/bad"]
    assert isinstance(failures[0][1], MergeError)
    assert mock_merge.call_count == 3
    assert "[error] o/bad" in capsys.readouterr().out


@pytest.mark.asyncio
@patch("src.dashboard.runner.merge_app_data", side_effect=_fake_merge)
async def test_process_repositories_without_cap(mock_merge):
    apps, failures = await runner.process_repositories(REPOS[:1], max_concurrency=0)
    assert apps == [{"id": "good"}] and failures == []


def _write_config(tmp_path, repositories):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"repositories": repositories}), encoding="utf-8")
    return path


@patch("src.dashboard.runner.merge_app_data", side_effect=_fake_merge)
def test_main_writes_successful_apps(mock_merge, tmp_path):
    config_path = _write_config(tmp_path, REPOS)
    output = tmp_path / "data" / "apps.json"
    runner.main(["-c", str(config_path), "-o", str(output)])
    written = json.loads(output.read_text(encoding="utf-8"))
    assert written["totalApps"] == 2
    assert [app["id"] for app in written["apps"]] == ["good", "also-good"]


@patch("src.dashboard.runner.write_apps_json")
@patch("src.dashboard.runner.merge_app_data", side_effect=_fake_merge)
def test_main_dry_run_does_not_write(mock_merge, mock_write, tmp_path, capsys):
    config_path = _write_config(tmp_path, REPOS[:1])
    runner.main(["-c", str(config_path), "--dry-run"])
    mock_write.assert_not_called()
    assert "[dry-run] would write 1 apps" in capsys.readouterr().out


@patch("src.dashboard.runner.write_apps_json")
@patch("src.dashboard.runner.merge_app_data", new_callable=AsyncMock)
def test_main_exits_when_every_repository_fails(mock_merge, mock_write, tmp_path):
    mock_merge.side_effect = MergeError("o/bad", "boom")
    config_path = _write_config(tmp_path, [{"repository": "o/bad"}])
    with pytest.raises(SystemExit) as excinfo:
        runner.main(["-c", str(config_path)])
    assert excinfo.value.code == 1
    mock_write.assert_not_called()


def test_main_exits_when_no_repos(tmp_path):
    config_path = _write_config(tmp_path, [])
    with pytest.raises(SystemExit) as excinfo:
        runner.main(["-c", str(config_path)])
    assert excinfo.value.code == 1


def test_main_exits_with_config_error_code(monkeypatch, tmp_path):
    def _raise(path):
        raise ConfigError("bad config", code=2)

    monkeypatch.setattr(runner, "load_repositories", _raise)
    with pytest.raises(SystemExit) as excinfo:
        runner.main(["-c", str(tmp_path / "missing.json")])
    assert excinfo.value.code == 2
