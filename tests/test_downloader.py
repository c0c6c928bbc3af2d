from __future__ import annotations

from pathlib import Path

import pytest

from vidharvest.core import downloader as downloader_module
from vidharvest.core.downloader import CaptionDownloader, CaptionToolOptions, read_caption_files
from vidharvest.errors import ExternalToolError


class FakeProcess:
    def __init__(self, returncode: int, stdout: bytes = b"", stderr: bytes = b"") -> None:
        self.returncode = returncode
        self._stdout = stdout
        self._stderr = stderr

    async def communicate(self) -> tuple[bytes, bytes]:
        return self._stdout, self._stderr


def _output_dir(command: tuple[str, ...]) -> Path:
    return Path(command[command.index("-o") + 1]).parent


def test_command_carries_fixed_flag_set(tmp_path: Path) -> None:
    opts = CaptionToolOptions(languages=("en", "ja"), cookies_browser="firefox", user_agent="UA/1", sleep_min=2, sleep_max=6)
    command = CaptionDownloader(opts).build_command("vid123", tmp_path)

    assert command[0] == "yt-dlp"
    for flag in ("--write-subs", "--write-auto-subs", "--skip-download"):
        assert flag in command
    assert command[command.index("--sub-langs") + 1] == "en,ja"
    assert command[command.index("--convert-subs") + 1] == "srt"
    assert command[command.index("--cookies-from-browser") + 1] == "firefox"
    assert command[command.index("--user-agent") + 1] == "UA/1"
    assert command[command.index("--min-sleep-interval") + 1] == "2"
    assert command[command.index("--max-sleep-interval") + 1] == "6"
    assert command[command.index("-o") + 1] == str(tmp_path / "%(id)s.%(ext)s")
    assert command[-1] == "https://www.youtube.com/watch?v=vid123"


def test_command_without_cookies(tmp_path: Path) -> None:
    command = CaptionDownloader(CaptionToolOptions(cookies_browser=None)).build_command("vid123", tmp_path)

    assert "--cookies-from-browser" not in command


@pytest.mark.asyncio
async def test_download_reads_back_srt_files(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    seen: list[tuple[str, ...]] = []

    async def fake_exec(*command: str, **kwargs) -> FakeProcess:
        seen.append(command)
        out = _output_dir(command)
        (out / "vid123.en.srt").write_text("1\n00:00:00,000 --> 00:00:01,000\nhi\n", encoding="utf-8")
        (out / "vid123.zh-Hans.srt").write_text("1\n00:00:00,000 --> 00:00:01,000\n你好\n", encoding="utf-8")
        (out / "other.en.srt").write_text("not ours", encoding="utf-8")
        return FakeProcess(0, stdout=b"[info] done")

    monkeypatch.setattr(downloader_module.asyncio, "create_subprocess_exec", fake_exec)

    contents = await CaptionDownloader().download_captions("vid123", tmp_path / "captions")

    assert sorted(contents) == ["en", "zh-Hans"]
    assert contents["zh-Hans"].endswith("你好\n")
    assert len(seen) == 1


@pytest.mark.asyncio
async def test_non_zero_exit_is_tool_error(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    async def fake_exec(*command: str, **kwargs) -> FakeProcess:
        return FakeProcess(1, stderr=b"ERROR: Sign in to confirm you're not a bot")

    monkeypatch.setattr(downloader_module.asyncio, "create_subprocess_exec", fake_exec)

    with pytest.raises(ExternalToolError) as excinfo:
        await CaptionDownloader().download_captions("vid123", tmp_path)

    assert excinfo.value.returncode == 1
    assert "not a bot" in excinfo.value.stderr


@pytest.mark.asyncio
async def test_missing_executable_is_tool_error(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    async def fake_exec(*command: str, **kwargs) -> FakeProcess:
        raise FileNotFoundError(2, "No such file or directory", command[0])

    monkeypatch.setattr(downloader_module.asyncio, "create_subprocess_exec", fake_exec)

    with pytest.raises(ExternalToolError, match="cannot start"):
        await CaptionDownloader(CaptionToolOptions(executable="no-such-tool")).download_captions("vid123", tmp_path)


def test_read_caption_files_keeps_only_requested_languages(tmp_path: Path) -> None:
    (tmp_path / "vid123.en.srt").write_text("en", encoding="utf-8")
    (tmp_path / "vid123.fr.srt").write_text("fr", encoding="utf-8")
    (tmp_path / "vid123.en.vtt").write_text("vtt", encoding="utf-8")

    assert read_caption_files(tmp_path, "vid123") == {"en": "en", "fr": "fr"}
    assert read_caption_files(tmp_path, "vid123", languages=["fr"]) == {"fr": "fr"}
    assert read_caption_files(tmp_path, "vid123", languages=("de",)) == {}

@pytest.mark.asyncio
async def test_files_from_an_earlier_run_are_not_reported(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    captions_dir = tmp_path / "captions"
    captions_dir.mkdir()
    (captions_dir / "vid123.fr.srt").write_text("left over", encoding="utf-8")
    (captions_dir / "vid123.en.srt").write_text("old english", encoding="utf-8")
    (captions_dir / "other.fr.srt").write_text("another video", encoding="utf-8")

    async def fake_exec(*command: str, **kwargs) -> FakeProcess:
        (_output_dir(command) / "vid123.en.srt").write_text("fresh", encoding="utf-8")
        return FakeProcess(0)

    monkeypatch.setattr(downloader_module.asyncio, "create_subprocess_exec", fake_exec)

    contents = await CaptionDownloader(CaptionToolOptions(languages=("en",))).download_captions("vid123", captions_dir)

    assert contents == {"en": "fresh"}
    assert not (captions_dir / "vid123.fr.srt").exists()
    assert (captions_dir / "other.fr.srt").exists()


@pytest.mark.asyncio
async def test_unrequested_languages_are_dropped(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    async def fake_exec(*command: str, **kwargs) -> FakeProcess:
        out = _output_dir(command)
        (out / "vid123.en.srt").write_text("en", encoding="utf-8")
        (out / "vid123.de.srt").write_text("de", encoding="utf-8")
        return FakeProcess(0)

    monkeypatch.setattr(downloader_module.asyncio, "create_subprocess_exec", fake_exec)

    contents = await CaptionDownloader(CaptionToolOptions(languages=("en",))).download_captions("vid123", tmp_path)

    assert contents == {"en": "en"}
