from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Sequence

from .app import EXIT_CONFIG, RUN_MODES, run
from .config import ConfigError, load_config
from .logging_utils import configure_logging

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="vidharvest",
        description="Snapshot one YouTube video: metadata, comments, caption tracks and caption text.",
    )
    p.add_argument("video_id", nargs="?", help="Video id (defaults to APP_VIDEO_ID)")
    p.add_argument("--mode", choices=RUN_MODES, default="snapshot", help="What to collect (default: snapshot)")
    p.add_argument("--target-count", type=int, help="Maximum comments to collect")
    p.add_argument("--order", choices=("relevance", "time"), help="Comment sort order")
    p.add_argument("--output-dir", type=Path, help="Directory that receives <video_id>youtube/")
    p.add_argument("--no-replies", action="store_true", help="Skip first-level replies")
    p.add_argument("--no-captions", action="store_true", help="Skip the yt-dlp caption download")
    p.add_argument("--retry-attempts", type=int, help="Attempts per comment page on 429/5xx")
    p.add_argument("--env-file", type=Path, help="Alternate .env file")
    p.add_argument("-v", "--verbose", action="store_true")
    return p


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    overrides = {
        "video_id": args.video_id,
        "target_comment_count": args.target_count,
        "sort_order": args.order,
        "output_dir": args.output_dir,
        "retry_attempts": args.retry_attempts,
        "include_replies": False if args.no_replies else None,
        "captions_enabled": False if args.no_captions else None,
    }
    try:
        config = load_config(args.env_file, **overrides)
    except ConfigError as exc:
        logging.basicConfig(level=logging.INFO, format="%(asctime)s | %(levelname)s | %(name)s | %(message)s")
        logger.error("%s", exc)
        return EXIT_CONFIG

    configure_logging(config, verbose=args.verbose)
    return run(config, args.mode)


if __name__ == "__main__":
    sys.exit(main())
