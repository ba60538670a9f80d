"""Fingerprint extraction front end.

Ties the spectrogram provider, the robust point extractor and the codec
together:

    audio -> spectrogram -> robust points -> fingerprint bytes
"""

from __future__ import annotations

import logging
from pathlib import Path

import numpy as np

from .codec import RECORD_SIZE, encode
from .config import FingerprintConfig
from .extractor import RobustPointExtractor, RobustPointSet
from .matcher import OffsetVotingMatcher, SimilarityResult
from .spectrogram import Spectrogram, compute_spectrogram, load_audio

logger = logging.getLogger(__name__)


class Fingerprinter:
    """Extract and compare audio fingerprints."""

    def __init__(self, config: FingerprintConfig | None = None, max_workers: int = 1):
        """Initialize fingerprinter.

        Args:
            config: Fingerprint format properties (defaults if None)
            max_workers: Threads used to filter sub-bands
        """
        self.config = config or FingerprintConfig()
        self.extractor = RobustPointExtractor(self.config, max_workers=max_workers)
        self.matcher = OffsetVotingMatcher(self.config)

    def extract_points(self, spectrogram: Spectrogram | np.ndarray) -> RobustPointSet:
        """Extract robust points from a spectrogram or a normalized 2D array."""
        if isinstance(spectrogram, Spectrogram):
            spectrogram = spectrogram.normalized
        return self.extractor.extract(spectrogram)

    def fingerprint_spectrogram(self, spectrogram: Spectrogram | np.ndarray) -> bytes:
        """Encode the robust points of a spectrogram as fingerprint bytes."""
        points = self.extract_points(spectrogram)
        return encode(points.points)

    def fingerprint_audio(self, y: np.ndarray) -> bytes:
        """Fingerprint a mono signal sampled at ``config.sample_rate``."""
        return self.fingerprint_spectrogram(compute_spectrogram(y, self.config))

    def fingerprint_file(self, audio_path: Path | str) -> bytes:
        """Fingerprint an audio file.

        Args:
            audio_path: Path to audio file (resampled on load)

        Returns:
            Fingerprint bytes
        """
        y = load_audio(audio_path, self.config)
        fingerprint = self.fingerprint_audio(y)
        logger.info("Fingerprinted %s: %d records", audio_path, len(fingerprint) // RECORD_SIZE)
        return fingerprint

    def compare(self, fingerprint1: bytes, fingerprint2: bytes) -> SimilarityResult:
        """Compare two fingerprints produced with the same config."""
        return self.matcher.compare(fingerprint1, fingerprint2)
