"""Errors raised while reading reconciliation settings."""

from __future__ import annotations


class ConfigurationError(RuntimeError):
    """A setting is unusable; ``setting`` names it when known."""

    def __init__(self, message: str, *, setting: str | None = None) -> None:
        super().__init__(message)
        self.setting = setting


class InvalidEnvironmentValue(ConfigurationError):  # noqa: N818
    """A ``CLINRECON_*`` override that cannot be parsed into the expected type."""

    def __init__(self, name: str, raw: str, expected: str) -> None:
        super().__init__(f"{name} must be {expected}, got {raw!r}", setting=name)
        self.raw = raw
