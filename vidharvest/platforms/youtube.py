from __future__ import annotations

import logging
from typing import Any, Callable, List, Mapping, Protocol

from pydantic import ValidationError

from ..core.collector import PageSource
from ..core.models import CaptionTrack, Comment, VideoInfo
from ..core.utils import iso8601_to_seconds
from ..errors import SchemaError

logger = logging.getLogger(__name__)

API_BASE_URL = "https://youtube.googleapis.com/youtube/v3"


class JsonSource(PageSource, Protocol):
    async def fetch_json(self, endpoint: str, params: Mapping[str, str]) -> dict[str, Any]: ...


def comment_from_thread(item: Mapping[str, Any]) -> Comment:
    """Map one commentThreads resource to a Comment."""
    try:
        snippet = item["snippet"]
        top = snippet["topLevelComment"]["snippet"]
        return Comment(
            id=item["id"],
            author=top.get("authorDisplayName", ""),
            text=top.get("textDisplay", ""),
            published_at=top["publishedAt"],
            like_count=top.get("likeCount", 0),
            reply_count=snippet.get("totalReplyCount"),
            replies=(item.get("replies") or {}).get("comments"),
        )
    except (KeyError, TypeError, ValidationError) as exc:
        raise SchemaError(f"malformed comment thread {item.get('id', '?')!r}: {exc}") from exc


def video_from_resource(item: Mapping[str, Any]) -> VideoInfo:
    try:
        snippet = item.get("snippet") or {}
        content = item.get("contentDetails") or {}
        stats = item.get("statistics") or {}
        duration_iso = content.get("duration")
        return VideoInfo(
            id=item["id"],
            title=snippet["title"],
            description=snippet.get("description", ""),
            channel_id=snippet.get("channelId"),
            channel_title=snippet.get("channelTitle"),
            published_at=snippet.get("publishedAt"),
            duration=duration_iso,
            duration_seconds=iso8601_to_seconds(duration_iso),
            view_count=stats.get("viewCount"),
            like_count=stats.get("likeCount"),
            comment_count=stats.get("commentCount"),
            category_id=snippet.get("categoryId"),
            tags=snippet.get("tags") or [],
            thumbnails=snippet.get("thumbnails") or {},
        )
    except (KeyError, TypeError, ValidationError) as exc:
        raise SchemaError(f"malformed video resource: {exc}") from exc


def caption_track_from_resource(item: Mapping[str, Any]) -> CaptionTrack:
    try:
        snippet = item.get("snippet") or {}
        return CaptionTrack(
            id=item["id"],
            language=snippet["language"],
            name=snippet.get("name"),
            track_kind=snippet.get("trackKind"),
            audio_track_type=snippet.get("audioTrackType"),
            is_cc=snippet.get("isCC"),
            is_auto_synced=snippet.get("isAutoSynced"),
            last_updated=snippet.get("lastUpdated"),
        )
    except (KeyError, TypeError, ValidationError) as exc:
        raise SchemaError(f"malformed caption track: {exc}") from exc


class YouTubeClient:
    """Endpoints and single-shot calls of the YouTube Data API v3."""

    def __init__(self, source: JsonSource, base_url: str = API_BASE_URL) -> None:
        self.source = source
        self.base_url = base_url.rstrip("/")

    @property
    def comment_threads_url(self) -> str:
        return f"{self.base_url}/commentThreads"

    @property
    def videos_url(self) -> str:
        return f"{self.base_url}/videos"

    @property
    def captions_url(self) -> str:
        return f"{self.base_url}/captions"

    def comment_query(self, video_id: str, include_replies: bool = True) -> Callable[[], dict[str, str]]:
        """Fixed part of every commentThreads page request."""
        part = "snippet,replies" if include_replies else "snippet"

        def build() -> dict[str, str]:
            return {"part": part, "videoId": video_id}

        return build

    async def fetch_video_info(self, video_id: str) -> VideoInfo:
        data = await self.source.fetch_json(
            self.videos_url,
            {"part": "snippet,contentDetails,statistics", "id": video_id},
        )
        items = data.get("items")
        if not isinstance(items, list):
            raise SchemaError("videos response has no items array")
        if not items:
            raise SchemaError(f"no video found for id {video_id!r}")
        video = video_from_resource(items[0])
        logger.info("Fetched video info: %s", video.title)
        logger.info("Views: %s, likes: %s", video.view_count, video.like_count)
        return video

    async def list_caption_tracks(self, video_id: str) -> List[CaptionTrack]:
        data = await self.source.fetch_json(self.captions_url, {"part": "snippet", "videoId": video_id})
        items = data.get("items")
        if not isinstance(items, list):
            raise SchemaError("captions response has no items array")
        tracks = [caption_track_from_resource(item) for item in items]
        logger.info("Found %d caption tracks", len(tracks))
        return tracks
