"""Bounded, cursor-paginated collection of listing results."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Callable, Mapping, Optional, Protocol

from tenacity import AsyncRetrying, RetryCallState, retry_if_exception, stop_after_attempt, wait_exponential

from ..errors import TransportError
from .models import CollectionState, Comment, Page, SortOrder
from .transport import Sleep

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 500
DEFAULT_PAGE_DELAY = 0.5

QueryBuilder = Callable[[], Mapping[str, str]]
ItemMapper = Callable[[Mapping[str, Any]], Comment]


class PageSource(Protocol):
    async def fetch_page(self, endpoint: str, params: Mapping[str, str]) -> Page: ...


@dataclass(frozen=True, slots=True)
class RetryPolicy:
    """How many times a page fetch is attempted before the run aborts.

    ``attempts=1`` aborts on the first failure. Only transient transport
    failures (429, 5xx, no response) are ever retried.
    """

    attempts: int = 1
    backoff_seconds: float = 2.0
    max_backoff_seconds: float = 60.0

    def __post_init__(self) -> None:
        if self.attempts < 1:
            raise ValueError("attempts must be >= 1")

    @staticmethod
    def should_retry(exc: BaseException) -> bool:
        return isinstance(exc, TransportError) and exc.is_transient


class PaginatedCollector:
    """Drive a paged endpoint until the target count or the last page is reached."""

    def __init__(
        self,
        source: PageSource,
        endpoint: str,
        mapper: ItemMapper,
        *,
        page_size: int = DEFAULT_PAGE_SIZE,
        page_delay: float = DEFAULT_PAGE_DELAY,
        retry: RetryPolicy | None = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        if page_size < 1:
            raise ValueError("page_size must be >= 1")
        self._source = source
        self._endpoint = endpoint
        self._mapper = mapper
        self.page_size = page_size
        self.page_delay = page_delay
        self.retry = retry or RetryPolicy()
        self._sleep = sleep

    def map_page(self, page: Page) -> list[Comment]:
        return [self._mapper(raw) for raw in page.items]

    async def collect_until(
        self,
        target_count: int,
        order: SortOrder,
        query_builder: QueryBuilder,
        state: Optional[CollectionState] = None,
    ) -> list[Comment]:
        """Collect up to ``target_count`` items in fetch order.

        Errors from the page source propagate unchanged. A caller that wants
        the items gathered before a failure passes its own ``state`` and reads
        ``state.accumulated`` afterwards.
        """
        if state is None:
            state = CollectionState(target_count=target_count, order=order)
        elif state.accumulated or state.cursor or state.pages_fetched:
            raise ValueError("collection state must be fresh")
        else:
            state.target_count = target_count
            state.order = order

        while len(state.accumulated) < target_count:
            params = dict(query_builder())
            params["order"] = order
            params["maxResults"] = str(self.page_size)
            if state.cursor:
                params["pageToken"] = state.cursor

            if state.pages_fetched:
                await self._sleep(self.page_delay)

            page = await self._fetch(params)
            items = self.map_page(page)
            state.pages_fetched += 1
            state.accumulated.extend(items)
            state.cursor = page.cursor
            logger.info(
                "Page %d: +%d items, %d/%d collected",
                state.pages_fetched,
                len(items),
                len(state.accumulated),
                target_count,
                extra={"event": "collector.page", "page": state.pages_fetched, "collected": len(state.accumulated)},
            )

            if state.cursor is None:
                logger.info("Listing exhausted after %d items", len(state.accumulated))
                break
            if state.satisfied:
                break

        result = state.result()
        if len(result) < len(state.accumulated):
            logger.debug("Truncated %d overshoot items", len(state.accumulated) - len(result))
        return result

    async def _fetch(self, params: Mapping[str, str]) -> Page:
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.retry.attempts),
            wait=wait_exponential(multiplier=self.retry.backoff_seconds, max=self.retry.max_backoff_seconds),
            retry=retry_if_exception(self.retry.should_retry),
            before_sleep=_log_retry,
            sleep=self._sleep,
            reraise=True,
        )
        async for attempt in retrying:
            with attempt:
                return await self._source.fetch_page(self._endpoint, params)
        raise RuntimeError("page fetch exited without a result")


def _log_retry(retry_state: RetryCallState) -> None:
    exc = retry_state.outcome.exception() if retry_state.outcome else None
    wait = retry_state.next_action.sleep if retry_state.next_action else 0.0
    logger.warning(
        "Page fetch attempt %d failed (%s); retrying in %.1fs",
        retry_state.attempt_number,
        exc,
        wait,
        extra={"event": "collector.retry", "attempt": retry_state.attempt_number},
    )
