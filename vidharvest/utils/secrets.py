"""Helpers for keeping the API key out of logs and error messages."""

from __future__ import annotations

from typing import Mapping

from pydantic import SecretStr

SECRET_PARAMS: frozenset[str] = frozenset({"key", "access_token"})


def secret_value(value: SecretStr | str | None) -> str | None:
    """Return the plaintext secret stripped of whitespace."""
    if value is None:
        return None
    raw = value.get_secret_value() if isinstance(value, SecretStr) else value
    stripped = raw.strip()
    return stripped or None


def redact_params(params: Mapping[str, str]) -> dict[str, str]:
    """Copy of query params with credential values masked."""
    return {name: ("***" if name in SECRET_PARAMS else value) for name, value in params.items()}
