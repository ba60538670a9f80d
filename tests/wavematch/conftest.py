"""Shared fixtures for wavematch tests."""

from __future__ import annotations

import numpy as np
import pytest

from wavematch.config import FingerprintConfig


@pytest.fixture
def config() -> FingerprintConfig:
    """Default fingerprint configuration."""
    return FingerprintConfig()


@pytest.fixture
def noise_spectrogram() -> np.ndarray:
    """Normalized spectrogram of uniform noise: 120 frames x 512 bins, no ties."""
    rng = np.random.default_rng(1234)
    return rng.random((120, 512))
