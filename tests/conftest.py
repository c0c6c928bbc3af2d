"""Shared fakes for collector, pipeline and transport tests.

The fakes keep real data and record what they were asked for, so tests can
assert on both the returned comments and the requests that produced them.
"""

from __future__ import annotations

from typing import Any, Mapping

import pytest

from vidharvest.core.models import Page


def make_thread(comment_id: str, *, likes: int = 0, reply_count: int = 0, replies: list | None = None) -> dict[str, Any]:
    item: dict[str, Any] = {
        "kind": "youtube#commentThread",
        "id": comment_id,
        "snippet": {
            "videoId": "vid123",
            "topLevelComment": {
                "id": comment_id,
                "snippet": {
                    "authorDisplayName": f"@author-{comment_id}",
                    "textDisplay": f"text <b>{comment_id}</b>",
                    "publishedAt": "2024-05-01T12:00:00Z",
                    "likeCount": likes,
                },
            },
            "totalReplyCount": reply_count,
        },
    }
    if replies is not None:
        item["replies"] = {"comments": replies}
    return item


def make_page(prefix: str, size: int, cursor: str | None) -> Page:
    items = [make_thread(f"{prefix}-{i}") for i in range(size)]
    return Page(items=items, cursor=cursor, total_results=size)


class RecordingSleep:
    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


class FakeSource:
    """Serves queued pages (or raises queued errors) and records every call."""

    def __init__(self, pages: list[Page | Exception] | None = None, objects: Mapping[str, Any] | None = None) -> None:
        self.pages = list(pages or [])
        self.objects = dict(objects or {})
        self.page_calls: list[tuple[str, dict[str, str]]] = []
        self.json_calls: list[tuple[str, dict[str, str]]] = []
        self.request_count = 0

    async def fetch_page(self, endpoint: str, params: Mapping[str, str]) -> Page:
        self.page_calls.append((endpoint, dict(params)))
        self.request_count += 1
        if not self.pages:
            raise AssertionError("fetch_page called after the last queued page")
        nxt = self.pages.pop(0)
        if isinstance(nxt, Exception):
            raise nxt
        return nxt

    async def fetch_json(self, endpoint: str, params: Mapping[str, str]) -> dict[str, Any]:
        self.json_calls.append((endpoint, dict(params)))
        self.request_count += 1
        name = endpoint.rsplit("/", 1)[-1]
        result = self.objects[name]
        if isinstance(result, Exception):
            raise result
        return result


@pytest.fixture
def sleep() -> RecordingSleep:
    return RecordingSleep()


VIDEO_RESOURCE: dict[str, Any] = {
    "id": "vid123",
    "snippet": {
        "title": "A talk",
        "description": "desc",
        "channelId": "UC1",
        "channelTitle": "Channel",
        "publishedAt": "2024-01-02T03:04:05Z",
        "categoryId": "27",
        "tags": ["python"],
        "thumbnails": {"high": {"url": "https://i.ytimg.com/x.jpg"}},
    },
    "contentDetails": {"duration": "PT1H2M3S"},
    "statistics": {"viewCount": "1500", "likeCount": "42", "commentCount": "7"},
}
