import pytest

from sampling_policy import (
    CONSTRAINED_SAMPLING,
    DEFAULT_SAMPLING,
    SLOW_SAMPLING,
    select_sampling_config,
)
from workout_models import NetworkQuality, SamplingConfig


@pytest.mark.parametrize(
    "quality, expected",
    [
        (None, DEFAULT_SAMPLING),
        (NetworkQuality("slow-2g"), CONSTRAINED_SAMPLING),
        (NetworkQuality("4g", data_saver=True), CONSTRAINED_SAMPLING),
        (NetworkQuality("2g"), SLOW_SAMPLING),
        (NetworkQuality("2g", data_saver=True), CONSTRAINED_SAMPLING),
        (NetworkQuality("3g"), DEFAULT_SAMPLING),
        (NetworkQuality("4g"), DEFAULT_SAMPLING),
        (NetworkQuality("5g-ultra"), DEFAULT_SAMPLING),
    ],
)
def test_policy_table(quality, expected):
    assert select_sampling_config(quality) == expected


def test_profile_values():
    assert CONSTRAINED_SAMPLING == SamplingConfig(False, 30000, 10000)
    assert SLOW_SAMPLING == SamplingConfig(True, 20000, 5000)
    assert DEFAULT_SAMPLING == SamplingConfig(True, 10000, 1000)


def test_policy_is_deterministic():
    quality = NetworkQuality("2g", downlink_mbps=0.25, round_trip_ms=1800)
    assert select_sampling_config(quality) == select_sampling_config(quality)


def test_sampling_config_rejects_bad_timeouts():
    with pytest.raises(ValueError):
        SamplingConfig(True, 0, 1000)
    with pytest.raises(ValueError):
        SamplingConfig(True, 1000, -1)
