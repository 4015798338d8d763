from __future__ import annotations

import pytest

from clinrecon.config import ConfigurationError, InvalidEnvironmentValue
from clinrecon.config.env import optional_env_float, optional_env_int, optional_env_str


def test_optional_env_int_falls_back_when_unset(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("EXAMPLE_INT", raising=False)

    assert optional_env_int("EXAMPLE_INT", 7) == 7


def test_optional_env_int_rejects_garbage(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("EXAMPLE_INT", "seven")

    with pytest.raises(ConfigurationError, match="EXAMPLE_INT") as excinfo:
        optional_env_int("EXAMPLE_INT", 7)

    assert isinstance(excinfo.value, InvalidEnvironmentValue)
    assert excinfo.value.setting == "EXAMPLE_INT"
    assert excinfo.value.raw == "seven"


def test_optional_env_float_parses_value(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("EXAMPLE_FLOAT", " 92.5 ")

    assert optional_env_float("EXAMPLE_FLOAT", 90.0) == 92.5


def test_optional_env_str_strips_value(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("EXAMPLE_STR", "  YES  ")

    assert optional_env_str("EXAMPLE_STR", "CONFIRM") == "YES"
