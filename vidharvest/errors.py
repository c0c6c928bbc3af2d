"""Error taxonomy shared by the transport, collector and caption tool."""

from __future__ import annotations

TRANSIENT_STATUSES: frozenset[int] = frozenset({429, 500, 502, 503, 504})


class HarvestError(RuntimeError):
    """Base class for failures raised while harvesting a video."""


class TransportError(HarvestError):
    """Non-2xx response, or a request that never got a response (status is None)."""

    def __init__(self, status: int | None, status_text: str = "", reason: str | None = None) -> None:
        self.status = status
        self.status_text = status_text
        self.reason = reason
        label = f"HTTP {status}" if status is not None else "network error"
        detail = f"{label} {status_text}".strip()
        if reason:
            detail = f"{detail} ({reason})"
        super().__init__(detail)

    @property
    def is_transient(self) -> bool:
        return self.status is None or self.status in TRANSIENT_STATUSES


class SchemaError(HarvestError):
    """Response body did not match the expected shape."""


class ExternalToolError(HarvestError):
    """The caption download subprocess could not be run or exited non-zero."""

    def __init__(self, message: str, returncode: int | None = None, stderr: str = "") -> None:
        self.returncode = returncode
        self.stderr = stderr
        super().__init__(message)


__all__ = [
    "ExternalToolError",
    "HarvestError",
    "SchemaError",
    "TRANSIENT_STATUSES",
    "TransportError",
]
