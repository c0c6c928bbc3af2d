"""Explicit success/failure values for best-effort calls."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Generic, Optional, Tuple, Type, TypeVar

from ..errors import HarvestError

T = TypeVar("T")

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class Outcome(Generic[T]):
    value: T
    error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.error is None


async def best_effort(
    label: str,
    call: Callable[[], Awaitable[T]],
    fallback: Callable[[], T],
    *,
    tolerate: Tuple[Type[BaseException], ...] = (HarvestError,),
) -> Outcome[T]:
    """Await ``call``; on a tolerated error return ``fallback()`` with the error attached.

    Anything outside ``tolerate`` propagates.
    """
    try:
        return Outcome(await call())
    except tolerate as exc:
        logger.warning("%s failed, continuing without it: %s", label, exc)
        return Outcome(fallback(), exc)
