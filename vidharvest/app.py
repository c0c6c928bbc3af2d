"""Top-level run controller: one video, one mode, one exit code."""

from __future__ import annotations

import asyncio
import json
import logging
import os
import time
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Awaitable, Callable, Final, Literal

from .config import AppConfig
from .errors import HarvestError
from .pipeline import HarvestRequest, SnapshotAssembler, open_assembler

logger = logging.getLogger(__name__)

RunMode = Literal["snapshot", "comments", "info"]
RUN_MODES: Final[tuple[str, ...]] = ("snapshot", "comments", "info")

EXIT_OK: Final[int] = 0
EXIT_FAILURE: Final[int] = 1
EXIT_CONFIG: Final[int] = 2
EXIT_INTERRUPTED: Final[int] = 130


@dataclass(frozen=True, slots=True)
class RunContext:
    """Immutable metadata for a single harvest invocation."""

    trace_id: str
    video_id: str
    mode: str
    wall_clock_ns: int
    monotonic_ns: int

    @property
    def started_at_iso(self) -> str:
        seconds = self.wall_clock_ns / 1_000_000_000
        return datetime.fromtimestamp(seconds, tz=timezone.utc).isoformat().replace("+00:00", "Z")

    def elapsed_ms(self) -> float:
        return round((time.perf_counter_ns() - self.monotonic_ns) / 1_000_000, 2)


def build_run_context(config: AppConfig, mode: str) -> RunContext:
    return RunContext(
        trace_id=os.getenv("APP_TRACE_ID") or uuid.uuid4().hex,
        video_id=config.video_id or "",
        mode=mode,
        wall_clock_ns=time.time_ns(),
        monotonic_ns=time.perf_counter_ns(),
    )


def _log_event(level: int, event: str, context: RunContext, **fields: Any) -> None:
    """Emit a compact JSON event carrying the run's trace metadata."""
    payload: dict[str, Any] = {
        "event": event,
        "trace_id": context.trace_id,
        "video_id": context.video_id,
        "mode": context.mode,
        "started_at": context.started_at_iso,
        **fields,
    }
    logger.log(level, json.dumps(payload, default=str, separators=(",", ":")), extra={"event": event})


_MODE_HANDLERS: Final[dict[str, Callable[[SnapshotAssembler, HarvestRequest], Awaitable[Path]]]] = {
    "snapshot": SnapshotAssembler.run_snapshot,
    "comments": SnapshotAssembler.run_comments_only,
    "info": SnapshotAssembler.run_info_only,
}


async def run_async(config: AppConfig, mode: RunMode = "snapshot") -> Path:
    if mode not in _MODE_HANDLERS:
        raise ValueError(f"unknown run mode {mode!r}")
    request = HarvestRequest.from_config(config)
    async with open_assembler(config) as assembler:
        return await _MODE_HANDLERS[mode](assembler, request)


def run(config: AppConfig, mode: RunMode = "snapshot") -> int:
    """Run one harvest and translate its outcome into a process exit code."""
    context = build_run_context(config, mode)
    _log_event(logging.INFO, "run.start", context, output_dir=str(config.output_dir))
    try:
        output = asyncio.run(run_async(config, mode))
    except KeyboardInterrupt:
        _log_event(logging.WARNING, "run.interrupted", context, duration_ms=context.elapsed_ms())
        return EXIT_INTERRUPTED
    except HarvestError as exc:
        _log_event(
            logging.CRITICAL,
            "run.failed",
            context,
            error_type=type(exc).__name__,
            error_message=str(exc),
            duration_ms=context.elapsed_ms(),
        )
        return EXIT_FAILURE
    except Exception as exc:
        _log_event(
            logging.CRITICAL,
            "run.failed",
            context,
            error_type=type(exc).__name__,
            error_message=str(exc),
            duration_ms=context.elapsed_ms(),
        )
        raise
    _log_event(logging.INFO, "run.completed", context, output=str(output), duration_ms=context.elapsed_ms())
    return EXIT_OK
