"""Environment variable loaders for configuration."""

from __future__ import annotations

import os

from .errors import InvalidEnvironmentValue


def optional_env_int(name: str, default: int) -> int:
    """Return an integer override from the environment, or ``default`` when unset."""

    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw.strip())
    except ValueError as exc:
        raise InvalidEnvironmentValue(name, raw, "an integer") from exc


def optional_env_float(name: str, default: float) -> float:
    """Return a float override from the environment, or ``default`` when unset."""

    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw.strip())
    except ValueError as exc:
        raise InvalidEnvironmentValue(name, raw, "a number") from exc


def optional_env_str(name: str, default: str) -> str:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip()
