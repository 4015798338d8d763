from __future__ import annotations

import pytest

from clinrecon.config import ConfigurationError, ReconcileConfig, get_reconcile_config


def test_defaults_match_registry_policy() -> None:
    config = get_reconcile_config()

    assert config == ReconcileConfig()
    assert config.cluster_threshold == 90.0
    assert config.exact_threshold == 100.0
    assert config.batch_size == 50
    assert config.confirmation_token == "CONFIRM"
    assert (config.min_plausible_minutes, config.max_plausible_minutes) == (60, 1440)
    assert config.high_quality_min_children == 7


def test_environment_overrides(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("CLINRECON_CLUSTER_THRESHOLD", "85")
    monkeypatch.setenv("CLINRECON_BATCH_SIZE", "10")
    monkeypatch.setenv("CLINRECON_CONFIRMATION_TOKEN", "CONFIRMAR")

    config = get_reconcile_config()

    assert config.cluster_threshold == 85.0
    assert config.batch_size == 10
    assert config.confirmation_token == "CONFIRMAR"


def test_invalid_override_raises(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("CLINRECON_BATCH_SIZE", "0")

    with pytest.raises(ConfigurationError, match="batch_size"):
        get_reconcile_config()


@pytest.mark.parametrize(
    "kwargs",
    [
        {"cluster_threshold": 101.0},
        {"cluster_threshold": 95.0, "exact_threshold": 90.0},
        {"min_plausible_minutes": 1440, "max_plausible_minutes": 60},
    ],
)
def test_inconsistent_thresholds_are_rejected(kwargs: dict[str, float]) -> None:
    with pytest.raises(ConfigurationError):
        ReconcileConfig(**kwargs)  # type: ignore[arg-type]
