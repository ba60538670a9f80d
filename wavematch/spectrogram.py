"""Spectrogram provider backed by librosa.

Loading, resampling and the STFT are left to librosa. This module only
arranges the result the way the extractor consumes it: a frames x bins
array of absolute magnitudes plus a log-scaled copy normalized to [0, 1].
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import numpy as np

from .config import FingerprintConfig

# Floor applied to magnitudes before taking logarithms
MIN_VALID_AMPLITUDE = 1e-11


@dataclass(frozen=True)
class Spectrogram:
    """Time-frequency intensities of one signal.

    Attributes:
        normalized: 2D array (frames x bins), values in [0, 1]
        absolute: 2D array (frames x bins) of STFT magnitudes
        frames_per_second: Frame rate of the time axis
        unit_frequency: Width of one frequency bin in Hz
    """

    normalized: np.ndarray
    absolute: np.ndarray
    frames_per_second: float
    unit_frequency: float

    @property
    def num_frames(self) -> int:
        return self.normalized.shape[0]

    @property
    def num_bins(self) -> int:
        return self.normalized.shape[1]


def normalize_intensities(absolute: np.ndarray) -> np.ndarray:
    """Map magnitudes onto [0, 1] on a log scale.

    The smallest magnitude maps to 0 and the largest to 1. A flat
    spectrogram (silence included) maps to all zeros.
    """
    absolute = np.asarray(absolute, dtype=np.float64)
    if absolute.size == 0:
        return absolute.copy()

    floor = max(float(absolute.min()), MIN_VALID_AMPLITUDE)
    ceiling = float(absolute.max())
    if ceiling <= floor:
        return np.zeros_like(absolute)

    clipped = np.maximum(absolute, floor)
    normalized = np.log10(clipped / floor) / np.log10(ceiling / floor)
    return np.clip(normalized, 0.0, 1.0)


def compute_spectrogram(y: np.ndarray, config: FingerprintConfig) -> Spectrogram:
    """Compute the spectrogram of a mono signal.

    Args:
        y: Audio time series (mono, at ``config.sample_rate``)
        config: Fingerprint format properties

    Returns:
        Spectrogram with ``sample_size_per_frame // 2`` bins per frame.
        Signals shorter than one frame give zero frames.
    """
    import librosa

    n_fft = config.sample_size_per_frame
    num_bins = config.num_frequency_bins
    fps = config.frames_per_second
    unit_frequency = config.sample_rate / n_fft

    y = np.asarray(y, dtype=np.float32)
    if len(y) < n_fft:
        empty = np.zeros((0, num_bins))
        return Spectrogram(empty, empty.copy(), fps, unit_frequency)

    stft = librosa.stft(
        y,
        n_fft=n_fft,
        hop_length=config.hop_length,
        window="hann",
        center=False,
    )
    # Drop the Nyquist bin and put time on the first axis
    absolute = np.abs(stft[:num_bins]).T.astype(np.float64)

    return Spectrogram(
        normalized=normalize_intensities(absolute),
        absolute=absolute,
        frames_per_second=fps,
        unit_frequency=unit_frequency,
    )


def load_audio(audio_path: Path | str, config: FingerprintConfig) -> np.ndarray:
    """Load an audio file as mono samples at the fingerprint sample rate.

    Raises:
        FileNotFoundError: If the file does not exist
    """
    import librosa

    if not Path(audio_path).exists():
        raise FileNotFoundError(f"Audio file not found: {audio_path}")

    y, _ = librosa.load(audio_path, sr=config.sample_rate, mono=True)
    return y
