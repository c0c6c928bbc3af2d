from __future__ import annotations

import pytest

from vidharvest.core.result import best_effort
from vidharvest.errors import ExternalToolError


@pytest.mark.asyncio
async def test_success_carries_value() -> None:
    async def call() -> list[str]:
        return ["en"]

    outcome = await best_effort("tracks", call, list)

    assert outcome.ok
    assert outcome.value == ["en"]


@pytest.mark.asyncio
async def test_tolerated_error_returns_fallback() -> None:
    async def call() -> dict[str, str]:
        raise ExternalToolError("yt-dlp exited with status 1", returncode=1)

    outcome = await best_effort("captions", call, dict)

    assert not outcome.ok
    assert outcome.value == {}
    assert isinstance(outcome.error, ExternalToolError)


@pytest.mark.asyncio
async def test_other_errors_propagate() -> None:
    async def call() -> dict[str, str]:
        raise KeyError("bug")

    with pytest.raises(KeyError):
        await best_effort("captions", call, dict)
