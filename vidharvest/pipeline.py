"""Sequential orchestration of one harvest run."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import AsyncIterator, Callable, Dict, List, Optional

from .config import AppConfig
from .core.collector import PaginatedCollector, RetryPolicy
from .core.downloader import CaptionDownloader, CaptionToolOptions
from .core.models import CaptionTrack, CollectionState, Comment, SortOrder, VideoSnapshot
from .core.result import Outcome, best_effort
from .core.transport import RateLimitedTransport
from .core.utils import utc_now
from .platforms.youtube import YouTubeClient, comment_from_thread
from .storage.manager import SnapshotWriter
from .utils.secrets import secret_value

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class HarvestRequest:
    """Runtime options for one video."""

    video_id: str
    target_count: int = 12_000
    order: SortOrder = "relevance"
    include_replies: bool = True
    captions_enabled: bool = True

    @classmethod
    def from_config(cls, config: AppConfig) -> "HarvestRequest":
        return cls(
            video_id=config.video_id or "",
            target_count=config.target_comment_count,
            order=config.sort_order,
            include_replies=config.include_replies,
            captions_enabled=config.captions_enabled,
        )


class SnapshotAssembler:
    """Metadata and comments must succeed; caption tracks and texts are best effort."""

    def __init__(
        self,
        youtube: YouTubeClient,
        collector: PaginatedCollector,
        writer: SnapshotWriter,
        captions: Optional[CaptionDownloader] = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.youtube = youtube
        self.collector = collector
        self.writer = writer
        self.captions = captions
        self._clock = clock

    @property
    def request_count(self) -> int:
        return getattr(self.youtube.source, "request_count", 0)

    async def fetch_comments(
        self,
        request: HarvestRequest,
        state: Optional[CollectionState] = None,
    ) -> List[Comment]:
        logger.info(
            "Collecting up to %d comments for %s (order=%s)",
            request.target_count,
            request.video_id,
            request.order,
        )
        comments = await self.collector.collect_until(
            request.target_count,
            request.order,
            self.youtube.comment_query(request.video_id, request.include_replies),
            state=state,
        )
        logger.info("Collected %d comments", len(comments))
        return comments

    async def assemble(self, request: HarvestRequest) -> VideoSnapshot:
        video_id = request.video_id
        metadata = await self.youtube.fetch_video_info(video_id)
        comments = await self.fetch_comments(request)

        degraded: Dict[str, str] = {}
        tracks: Outcome[List[CaptionTrack]] = await best_effort(
            "caption track listing",
            lambda: self.youtube.list_caption_tracks(video_id),
            list,
        )
        if not tracks.ok:
            degraded["captionTracks"] = str(tracks.error)

        contents: Outcome[Dict[str, str]] = Outcome({})
        if request.captions_enabled and self.captions is not None:
            captions = self.captions
            contents = await best_effort(
                "caption download",
                lambda: captions.download_captions(video_id, self.writer.captions_dir(video_id)),
                dict,
            )
            if not contents.ok:
                degraded["captionContents"] = str(contents.error)
        else:
            logger.info("Caption download disabled; skipping")

        return VideoSnapshot(
            metadata=metadata,
            comments=comments,
            caption_tracks=tracks.value,
            caption_contents=contents.value,
            collected_at=self._clock(),
            degraded=degraded,
            request_count=self.request_count,
        )

    async def run_snapshot(self, request: HarvestRequest) -> Path:
        snapshot = await self.assemble(request)
        path = self.writer.write_snapshot(snapshot)
        logger.info(
            "Snapshot complete: %s | comments=%d tracks=%d captions=%d",
            snapshot.metadata.title,
            len(snapshot.comments),
            len(snapshot.caption_tracks),
            len(snapshot.caption_contents),
        )
        return path

    async def run_comments_only(self, request: HarvestRequest) -> Path:
        """Comments only; whatever was gathered is written even if the run fails."""
        state = CollectionState(target_count=request.target_count, order=request.order)
        with self.writer.comment_sink(request.video_id, state):
            await self.fetch_comments(request, state=state)
        return self.writer.video_dir(request.video_id) / SnapshotWriter.COMMENTS

    async def run_info_only(self, request: HarvestRequest) -> Path:
        info = await self.youtube.fetch_video_info(request.video_id)
        return self.writer.write_video_info(info)


@asynccontextmanager
async def open_assembler(config: AppConfig) -> AsyncIterator[SnapshotAssembler]:
    """Wire every component from the config, closing the HTTP client on exit."""
    api_key = secret_value(config.api_key)
    if not api_key:
        raise ValueError("api_key missing; call AppConfig.require_inputs() first")

    async with RateLimitedTransport(
        api_key,
        delay_range=config.request_delay_range,
    ) as transport:
        youtube = YouTubeClient(transport, config.api_base_url)
        collector = PaginatedCollector(
            transport,
            youtube.comment_threads_url,
            comment_from_thread,
            page_size=config.page_size,
            page_delay=config.page_delay_seconds,
            retry=RetryPolicy(attempts=config.retry_attempts, backoff_seconds=config.retry_backoff_seconds),
        )
        captions = CaptionDownloader(
            CaptionToolOptions(
                executable=config.caption_tool,
                languages=config.caption_languages,
                cookies_browser=config.cookies_browser,
                user_agent=config.user_agent,
                sleep_min=config.caption_sleep_min,
                sleep_max=config.caption_sleep_max,
            )
        )
        yield SnapshotAssembler(youtube, collector, SnapshotWriter(config.output_dir), captions)
