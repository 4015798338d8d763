"""Policy constants for the reconciliation passes."""

from __future__ import annotations

from dataclasses import dataclass

from .env import optional_env_float, optional_env_int, optional_env_str
from .errors import ConfigurationError

DEFAULT_CLUSTER_THRESHOLD = 90.0
DEFAULT_EXACT_THRESHOLD = 100.0
DEFAULT_BATCH_SIZE = 50
DEFAULT_CONFIRMATION_TOKEN = "CONFIRM"
DEFAULT_MIN_PLAUSIBLE_MINUTES = 60
DEFAULT_MAX_PLAUSIBLE_MINUTES = 1440
DEFAULT_HIGH_QUALITY_MIN_CHILDREN = 7
DEFAULT_MASS_IMPORT_THRESHOLD = 50


@dataclass(frozen=True, slots=True)
class ReconcileConfig:
    """Thresholds and sizes shared by detection, merge and verification.

    The similarity thresholds carry no derivation beyond operational experience;
    they are kept configurable rather than baked into the scorer.
    """

    cluster_threshold: float = DEFAULT_CLUSTER_THRESHOLD
    exact_threshold: float = DEFAULT_EXACT_THRESHOLD
    batch_size: int = DEFAULT_BATCH_SIZE
    confirmation_token: str = DEFAULT_CONFIRMATION_TOKEN
    min_plausible_minutes: int = DEFAULT_MIN_PLAUSIBLE_MINUTES
    max_plausible_minutes: int = DEFAULT_MAX_PLAUSIBLE_MINUTES
    high_quality_min_children: int = DEFAULT_HIGH_QUALITY_MIN_CHILDREN
    mass_import_threshold: int = DEFAULT_MASS_IMPORT_THRESHOLD

    def __post_init__(self) -> None:
        if not 0 <= self.cluster_threshold <= 100:  # noqa: PLR2004
            raise ConfigurationError(
                "cluster_threshold must be within [0, 100]", setting="cluster_threshold"
            )
        if not self.cluster_threshold <= self.exact_threshold <= 100:  # noqa: PLR2004
            raise ConfigurationError(
                "exact_threshold must be within [cluster_threshold, 100]", setting="exact_threshold"
            )
        if self.batch_size < 1:
            raise ConfigurationError("batch_size must be positive", setting="batch_size")
        if not self.confirmation_token:
            raise ConfigurationError(
                "confirmation_token must not be blank", setting="confirmation_token"
            )
        if self.min_plausible_minutes >= self.max_plausible_minutes:
            raise ConfigurationError(
                "min_plausible_minutes must be below max_plausible_minutes",
                setting="min_plausible_minutes",
            )


def get_reconcile_config() -> ReconcileConfig:
    return ReconcileConfig(
        cluster_threshold=optional_env_float(
            "CLINRECON_CLUSTER_THRESHOLD", DEFAULT_CLUSTER_THRESHOLD
        ),
        exact_threshold=optional_env_float("CLINRECON_EXACT_THRESHOLD", DEFAULT_EXACT_THRESHOLD),
        batch_size=optional_env_int("CLINRECON_BATCH_SIZE", DEFAULT_BATCH_SIZE),
        confirmation_token=optional_env_str(
            "CLINRECON_CONFIRMATION_TOKEN", DEFAULT_CONFIRMATION_TOKEN
        ),
        min_plausible_minutes=optional_env_int(
            "CLINRECON_MIN_PLAUSIBLE_MINUTES", DEFAULT_MIN_PLAUSIBLE_MINUTES
        ),
        max_plausible_minutes=optional_env_int(
            "CLINRECON_MAX_PLAUSIBLE_MINUTES", DEFAULT_MAX_PLAUSIBLE_MINUTES
        ),
        high_quality_min_children=optional_env_int(
            "CLINRECON_HIGH_QUALITY_MIN_CHILDREN", DEFAULT_HIGH_QUALITY_MIN_CHILDREN
        ),
        mass_import_threshold=optional_env_int(
            "CLINRECON_MASS_IMPORT_THRESHOLD", DEFAULT_MASS_IMPORT_THRESHOLD
        ),
    )
