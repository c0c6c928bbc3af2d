from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from ..errors import ExternalToolError

logger = logging.getLogger(__name__)

DEFAULT_LANGUAGES: tuple[str, ...] = ("en", "zh-Hans")
DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/124.0 Safari/537.36"
)


@dataclass(frozen=True, slots=True)
class CaptionToolOptions:
    """Fixed flag set handed to the yt-dlp executable."""

    executable: str = "yt-dlp"
    languages: tuple[str, ...] = DEFAULT_LANGUAGES
    cookies_browser: Optional[str] = "chrome"
    user_agent: str = DEFAULT_USER_AGENT
    sleep_min: float = 1.0
    sleep_max: float = 5.0


class CaptionDownloader:
    """Fetch caption text for one video by running yt-dlp and reading its .srt output."""

    def __init__(self, options: CaptionToolOptions | None = None) -> None:
        self.options = options or CaptionToolOptions()

    def build_command(self, video_id: str, out_dir: Path) -> List[str]:
        opts = self.options
        command = [
            opts.executable,
            "--write-subs",
            "--write-auto-subs",
            "--sub-langs",
            ",".join(opts.languages),
            "--sub-format",
            "srt/best",
            "--convert-subs",
            "srt",
            "--skip-download",
            "--no-progress",
        ]
        if opts.cookies_browser:
            command += ["--cookies-from-browser", opts.cookies_browser]
        command += [
            "--user-agent",
            opts.user_agent,
            "--sleep-subtitles",
            f"{opts.sleep_min:g}",
            "--min-sleep-interval",
            f"{opts.sleep_min:g}",
            "--max-sleep-interval",
            f"{opts.sleep_max:g}",
            "-o",
            str(out_dir / "%(id)s.%(ext)s"),
            f"https://www.youtube.com/watch?v={video_id}",
        ]
        return command

    async def download_captions(self, video_id: str, out_dir: Path) -> Dict[str, str]:
        """Run the tool and return ``{language: srt_text}`` for every file it wrote."""
        out_dir = Path(out_dir)
        out_dir.mkdir(parents=True, exist_ok=True)
        removed = clear_caption_files(out_dir, video_id)
        if removed:
            logger.debug("Removed %d caption files left by an earlier run", removed)
        command = self.build_command(video_id, out_dir)
        logger.info("Running %s for %s", self.options.executable, video_id)

        try:
            process = await asyncio.create_subprocess_exec(
                *command,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as exc:
            raise ExternalToolError(f"cannot start {self.options.executable}: {exc}") from exc

        stdout, stderr = await process.communicate()
        err_text = stderr.decode("utf-8", errors="replace").strip()
        if process.returncode != 0:
            raise ExternalToolError(
                f"{self.options.executable} exited with status {process.returncode}",
                returncode=process.returncode,
                stderr=err_text,
            )
        if stdout:
            logger.debug("%s output: %s", self.options.executable, stdout.decode("utf-8", errors="replace")[-2000:])

        contents = read_caption_files(out_dir, video_id, self.options.languages)
        logger.info("Read %d caption files: %s", len(contents), sorted(contents))
        return contents


def clear_caption_files(out_dir: Path, video_id: str) -> int:
    """Delete ``{video_id}.*.srt`` files from out_dir and return how many were removed."""
    removed = 0
    for path in Path(out_dir).glob(f"{video_id}.*.srt"):
        path.unlink(missing_ok=True)
        removed += 1
    return removed


def read_caption_files(out_dir: Path, video_id: str, languages: Sequence[str] | None = None) -> Dict[str, str]:
    """Collect ``{video_id}.{lang}.srt`` files from out_dir."""
    prefix = f"{video_id}."
    contents: Dict[str, str] = {}
    for path in sorted(Path(out_dir).glob(f"{video_id}.*.srt")):
        lang = path.name[len(prefix) : -len(".srt")]
        if not lang or (languages is not None and lang not in languages):
            continue
        contents[lang] = path.read_text(encoding="utf-8", errors="replace")
    return contents
