"""HTTP transport with a self-imposed, randomized per-request delay."""

from __future__ import annotations

import asyncio
import json
import logging
import random
from typing import Any, Awaitable, Callable, Mapping, Optional

import httpx
from pydantic import ValidationError

from ..errors import SchemaError, TransportError
from ..utils.secrets import redact_params
from .models import Page

logger = logging.getLogger(__name__)

HTTP_TIMEOUT = httpx.Timeout(connect=10.0, read=30.0, write=30.0, pool=30.0)
USER_AGENT = "vidharvest/0.1"

Sleep = Callable[[float], Awaitable[None]]


def _error_reason(response: httpx.Response) -> Optional[str]:
    """Pull the platform's error reason (e.g. commentsDisabled) out of an error body."""
    try:
        body = response.json()
    except (json.JSONDecodeError, ValueError):
        return None
    if not isinstance(body, dict):
        return None
    error = body.get("error")
    if not isinstance(error, dict):
        return None
    errors = error.get("errors") or []
    if errors and isinstance(errors[0], dict) and errors[0].get("reason"):
        return errors[0]["reason"]
    return error.get("status") or None


class RateLimitedTransport:
    """Issue one GET at a time, sleeping a random interval before each call.

    The key is attached as a query parameter on every request. Nothing here
    retries; callers decide what a failure means for them.
    """

    def __init__(
        self,
        api_key: str,
        *,
        delay_range: tuple[float, float] = (0.8, 1.0),
        client: httpx.AsyncClient | None = None,
        user_agent: str = USER_AGENT,
        sleep: Sleep = asyncio.sleep,
        rng: random.Random | None = None,
    ) -> None:
        if not api_key:
            raise ValueError("api_key is required")
        low, high = delay_range
        if low < 0 or high < low:
            raise ValueError(f"invalid delay range {delay_range!r}")
        self._api_key = api_key
        self.delay_range = (low, high)
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            timeout=HTTP_TIMEOUT,
            headers={"User-Agent": user_agent, "Accept": "application/json"},
        )
        self._sleep = sleep
        self._rng = rng or random.Random()
        self.request_count = 0

    async def __aenter__(self) -> "RateLimitedTransport":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def fetch_json(self, endpoint: str, params: Mapping[str, str]) -> dict[str, Any]:
        """GET endpoint and return the decoded JSON object."""
        query = {**params, "key": self._api_key}
        delay = self._rng.uniform(*self.delay_range)
        await self._sleep(delay)

        logger.debug("GET %s %s", endpoint, redact_params(query), extra={"event": "transport.get", "endpoint": endpoint})
        self.request_count += 1
        try:
            response = await self._client.get(endpoint, params=query)
        except httpx.HTTPError as exc:
            raise TransportError(None, type(exc).__name__) from exc

        if not response.is_success:
            raise TransportError(response.status_code, response.reason_phrase, _error_reason(response))

        try:
            payload = response.json()
        except (json.JSONDecodeError, ValueError) as exc:
            raise SchemaError(f"{endpoint} returned a non-JSON body") from exc
        if not isinstance(payload, dict):
            raise SchemaError(f"{endpoint} returned {type(payload).__name__}, expected an object")
        return payload

    async def fetch_page(self, endpoint: str, params: Mapping[str, str]) -> Page:
        """GET one page of a cursor-paginated listing."""
        payload = await self.fetch_json(endpoint, params)
        try:
            return Page.model_validate(payload)
        except ValidationError as exc:
            raise SchemaError(f"{endpoint} returned an unexpected page shape: {exc}") from exc
