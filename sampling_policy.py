"""Network-aware choice of position sampling parameters."""

from __future__ import annotations

from typing import Optional

from workout_models import EffectiveType, NetworkQuality, SamplingConfig

CONSTRAINED_SAMPLING = SamplingConfig(high_accuracy=False, timeout_ms=30000, max_sample_age_ms=10000)
SLOW_SAMPLING = SamplingConfig(high_accuracy=True, timeout_ms=20000, max_sample_age_ms=5000)
DEFAULT_SAMPLING = SamplingConfig(high_accuracy=True, timeout_ms=10000, max_sample_age_ms=1000)


def select_sampling_config(quality: Optional[NetworkQuality]) -> SamplingConfig:
    """Map the current network quality to sampling parameters.

    Slow-2G links and data-saver mode trade accuracy for longer timeouts and
    older cached fixes; plain 2G keeps high accuracy with relaxed limits;
    anything faster, unknown, or not yet reported uses the default profile.
    """

    if quality is None:
        return DEFAULT_SAMPLING
    if quality.effective_type is EffectiveType.SLOW_2G or quality.data_saver:
        return CONSTRAINED_SAMPLING
    if quality.effective_type is EffectiveType.TWO_G:
        return SLOW_SAMPLING
    return DEFAULT_SAMPLING


__all__ = [
    "select_sampling_config",
    "CONSTRAINED_SAMPLING",
    "SLOW_SAMPLING",
    "DEFAULT_SAMPLING",
]
