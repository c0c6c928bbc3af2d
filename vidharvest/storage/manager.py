from __future__ import annotations

import json
import logging
import os
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Iterator, Sequence

from ..core.models import CollectionState, Comment, VideoInfo, VideoSnapshot
from ..core.utils import isoformat_z

logger = logging.getLogger(__name__)

DATA_SOURCES: Dict[str, str] = {
    "metadata": "YouTube Data API v3 videos.list",
    "comments": "YouTube Data API v3 commentThreads.list",
    "captionTracks": "YouTube Data API v3 captions.list",
    "captionContents": "yt-dlp subtitle download",
}


def atomic_write_json(path: Path, data: Any) -> None:
    """Write JSON through a sibling temp file so readers never see a partial file."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            json.dump(data, handle, ensure_ascii=False, indent=2, default=str)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise


def _dump_comments(comments: Sequence[Comment]) -> list[dict[str, Any]]:
    return [c.model_dump(mode="json", by_alias=True, exclude_none=True) for c in comments]


class SnapshotWriter:
    """Lay out one directory per video under ``out_dir``."""

    VIDEO_INFO = "videoInfo.json"
    COMMENTS = "comments.json"
    CAPTION_TRACKS = "captionTracks.json"
    CAPTION_CONTENTS = "captionContents.json"
    SNAPSHOT = "snapshot.json"

    def __init__(self, out_dir: Path) -> None:
        self.out_dir = Path(out_dir)

    def video_dir(self, video_id: str) -> Path:
        return self.out_dir / f"{video_id}youtube"

    def captions_dir(self, video_id: str) -> Path:
        return self.video_dir(video_id) / "captions"

    def write_video_info(self, info: VideoInfo) -> Path:
        path = self.video_dir(info.id) / self.VIDEO_INFO
        atomic_write_json(path, info.model_dump(mode="json", by_alias=True))
        logger.info("Video info written: %s", path)
        return path

    def write_comments(self, video_id: str, comments: Sequence[Comment]) -> Path:
        path = self.video_dir(video_id) / self.COMMENTS
        atomic_write_json(path, _dump_comments(comments))
        logger.info("%d comments written: %s", len(comments), path)
        return path

    @contextmanager
    def comment_sink(self, video_id: str, state: CollectionState) -> Iterator[CollectionState]:
        """Flush whatever ``state`` holds to comments.json however the block exits."""
        self.video_dir(video_id).mkdir(parents=True, exist_ok=True)
        try:
            yield state
        except BaseException:
            # the collection error stays the one that propagates
            try:
                self._flush_comments(video_id, state)
            except OSError:
                logger.exception("Could not flush partial comments for %s", video_id)
            raise
        self._flush_comments(video_id, state)

    def _flush_comments(self, video_id: str, state: CollectionState) -> None:
        comments = state.result()
        self.write_comments(video_id, comments)
        logger.info("Comment sink flushed %d comments after %d pages", len(comments), state.pages_fetched)

    def write_snapshot(self, snapshot: VideoSnapshot) -> Path:
        """Write the four category files plus the consolidated snapshot.json."""
        video_id = snapshot.video_id
        base = self.video_dir(video_id)
        metadata = snapshot.metadata.model_dump(mode="json", by_alias=True)
        comments = _dump_comments(snapshot.comments)
        tracks = [t.model_dump(mode="json", by_alias=True, exclude_none=True) for t in snapshot.caption_tracks]
        contents = dict(snapshot.caption_contents)

        atomic_write_json(base / self.VIDEO_INFO, metadata)
        atomic_write_json(base / self.COMMENTS, comments)
        atomic_write_json(base / self.CAPTION_TRACKS, tracks)
        atomic_write_json(base / self.CAPTION_CONTENTS, contents)

        consolidated = {
            "meta": {
                "videoId": video_id,
                "collectedAt": isoformat_z(snapshot.collected_at),
                "counts": {
                    "comments": len(comments),
                    "captionTracks": len(tracks),
                    "captionContents": len(contents),
                },
                "sources": DATA_SOURCES,
                "degraded": dict(snapshot.degraded),
                "requestCount": snapshot.request_count,
            },
            "videoInfo": metadata,
            "comments": comments,
            "captionTracks": tracks,
            "captionContents": contents,
        }
        path = base / self.SNAPSHOT
        atomic_write_json(path, consolidated)
        logger.info("Snapshot written: %s", path)
        return path
