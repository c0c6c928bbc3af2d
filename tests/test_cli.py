from __future__ import annotations

import json
import logging
from pathlib import Path

import pytest

from vidharvest import app, cli
from vidharvest.app import EXIT_CONFIG, EXIT_FAILURE, EXIT_OK
from vidharvest.config import AppConfig
from vidharvest.errors import TransportError

ENV_KEYS = ("YOUTUBE_API_KEY", "APP_API_KEY", "key", "APP_VIDEO_ID", "YOUTUBE_VIDEO_ID", "id")


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    for name in ENV_KEYS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)


def _config(tmp_path: Path) -> AppConfig:
    return AppConfig(_env_file=None, api_key="k", video_id="vid123", output_dir=tmp_path)


def test_missing_key_exits_with_config_code() -> None:
    assert cli.main(["vid123"]) == EXIT_CONFIG


def test_flags_become_config_overrides(monkeypatch: pytest.MonkeyPatch) -> None:
    calls: list[tuple[AppConfig, str]] = []
    monkeypatch.setenv("YOUTUBE_API_KEY", "k")
    monkeypatch.setattr(cli, "configure_logging", lambda config, verbose=False: None)
    monkeypatch.setattr(cli, "run", lambda config, mode: calls.append((config, mode)) or EXIT_OK)

    code = cli.main(["vid9", "--mode", "comments", "--target-count", "5", "--order", "time", "--no-replies", "--no-captions"])

    assert code == EXIT_OK
    config, mode = calls[0]
    assert mode == "comments"
    assert config.video_id == "vid9"
    assert config.target_comment_count == 5
    assert config.sort_order == "time"
    assert config.include_replies is False
    assert config.captions_enabled is False


def test_unset_flags_keep_config_values(monkeypatch: pytest.MonkeyPatch) -> None:
    calls: list[AppConfig] = []
    monkeypatch.setenv("YOUTUBE_API_KEY", "k")
    monkeypatch.setenv("APP_VIDEO_ID", "from-env")
    monkeypatch.setattr(cli, "configure_logging", lambda config, verbose=False: None)
    monkeypatch.setattr(cli, "run", lambda config, mode: calls.append(config) or EXIT_OK)

    cli.main([])

    assert calls[0].video_id == "from-env"
    assert calls[0].include_replies is True
    assert calls[0].captions_enabled is True


def test_harvest_error_maps_to_failure_code(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    async def failing(config: AppConfig, mode: str) -> Path:
        raise TransportError(403, "Forbidden", "commentsDisabled")

    monkeypatch.setattr(app, "run_async", failing)

    assert app.run(_config(tmp_path), "snapshot") == EXIT_FAILURE


def test_success_maps_to_ok(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    async def succeeding(config: AppConfig, mode: str) -> Path:
        return tmp_path / "vid123youtube" / "snapshot.json"

    monkeypatch.setattr(app, "run_async", succeeding)

    assert app.run(_config(tmp_path), "info") == EXIT_OK


@pytest.mark.asyncio
async def test_unknown_mode_rejected(tmp_path: Path) -> None:
    with pytest.raises(ValueError, match="unknown run mode"):
        await app.run_async(_config(tmp_path), "everything")  # type: ignore[arg-type]


def test_unexpected_error_is_logged_then_raised(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path, caplog: pytest.LogCaptureFixture
) -> None:
    async def unwritable(config: AppConfig, mode: str) -> Path:
        raise PermissionError(13, "Permission denied", str(tmp_path / "vid123youtube"))

    monkeypatch.setattr(app, "run_async", unwritable)
    caplog.set_level(logging.INFO, logger="vidharvest.app")

    with pytest.raises(PermissionError):
        app.run(_config(tmp_path), "snapshot")

    failed = [json.loads(r.getMessage()) for r in caplog.records if getattr(r, "event", None) == "run.failed"]
    assert failed[0]["error_type"] == "PermissionError"
    assert "Permission denied" in failed[0]["error_message"]
