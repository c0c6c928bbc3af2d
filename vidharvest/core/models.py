from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import AliasPath, BaseModel, ConfigDict, Field, field_validator

SortOrder = Literal["relevance", "time"]


class Page(BaseModel):
    """One response unit of a paged listing endpoint."""

    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)

    items: List[Dict[str, Any]]
    cursor: Optional[str] = Field(default=None, validation_alias="nextPageToken")
    total_results: Optional[int] = Field(
        default=None, validation_alias=AliasPath("pageInfo", "totalResults")
    )

    @field_validator("cursor", mode="before")
    @classmethod
    def _blank_cursor_is_absent(cls, v: Any) -> Any:
        if isinstance(v, str) and not v.strip():
            return None
        return v


class Comment(BaseModel):
    """A top-level comment. Replies are passed through untouched."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str
    author: str
    text: str
    published_at: str = Field(alias="publishedAt")
    like_count: int = Field(alias="likeCount", ge=0)
    reply_count: Optional[int] = Field(default=None, alias="replyCount", ge=0)
    replies: Optional[List[Any]] = None


class VideoInfo(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str
    title: str
    description: str = ""
    channel_id: Optional[str] = Field(default=None, alias="channelId")
    channel_title: Optional[str] = Field(default=None, alias="channelTitle")
    published_at: Optional[str] = Field(default=None, alias="publishedAt")
    duration: Optional[str] = None
    duration_seconds: int = Field(default=0, alias="durationSeconds", ge=0)
    # statistics are hidden by some channels
    view_count: Optional[int] = Field(default=None, alias="viewCount")
    like_count: Optional[int] = Field(default=None, alias="likeCount")
    comment_count: Optional[int] = Field(default=None, alias="commentCount")
    category_id: Optional[str] = Field(default=None, alias="categoryId")
    tags: List[str] = Field(default_factory=list)
    thumbnails: Dict[str, Any] = Field(default_factory=dict)


class CaptionTrack(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str
    language: str
    name: Optional[str] = None
    track_kind: Optional[str] = Field(default=None, alias="trackKind")
    audio_track_type: Optional[str] = Field(default=None, alias="audioTrackType")
    is_cc: Optional[bool] = Field(default=None, alias="isCC")
    is_auto_synced: Optional[bool] = Field(default=None, alias="isAutoSynced")
    last_updated: Optional[str] = Field(default=None, alias="lastUpdated")


class VideoSnapshot(BaseModel):
    """Everything collected for one video in one run."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    metadata: VideoInfo
    comments: List[Comment] = Field(default_factory=list)
    caption_tracks: List[CaptionTrack] = Field(default_factory=list, alias="captionTracks")
    caption_contents: Dict[str, str] = Field(default_factory=dict, alias="captionContents")
    collected_at: datetime = Field(alias="collectedAt")
    degraded: Dict[str, str] = Field(default_factory=dict)
    request_count: int = Field(default=0, alias="requestCount", ge=0)

    @property
    def video_id(self) -> str:
        return self.metadata.id


@dataclass
class CollectionState:
    """Accumulator owned by a single collector run."""

    target_count: int
    order: SortOrder = "relevance"
    accumulated: List[Comment] = field(default_factory=list)
    cursor: Optional[str] = None
    pages_fetched: int = 0

    @property
    def satisfied(self) -> bool:
        return len(self.accumulated) >= self.target_count

    def result(self) -> List[Comment]:
        """Earliest-fetched items first, cut at the target."""
        return list(self.accumulated[: max(self.target_count, 0)])
