"""Robust point extraction from a normalized spectrogram.

The frequency axis is split into ``num_filter_banks`` contiguous sub-bands.
Within each sub-band and frame only the most intense bin survives (all of
them when several share the peak value). The bins still holding a positive
intensity after every sub-band has been filtered are the frame's robust
points.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field

import numpy as np

from .config import FingerprintConfig
from .selection import nth_largest

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True, order=True)
class RobustPoint:
    """A locally dominant frequency bin at one time frame.

    Attributes:
        frame: Time frame index
        bin: Frequency bin index
        intensity: Normalized intensity in [0, 1]
    """

    frame: int
    bin: int
    intensity: float


@dataclass(frozen=True)
class RobustPointSet:
    """Robust points of one spectrogram.

    Attributes:
        points: Points ordered by frame, then bin
        num_frames: Number of frames in the source spectrogram
        incomplete_frames: Frames whose point count differs from the
            configured points-per-frame
    """

    points: tuple[RobustPoint, ...]
    num_frames: int
    incomplete_frames: frozenset[int] = field(default_factory=frozenset)

    def __len__(self) -> int:
        return len(self.points)

    def by_frame(self) -> dict[int, list[int]]:
        """Group bins per frame: ``{frame: [bin, ...]}``."""
        frames: dict[int, list[int]] = {}
        for point in self.points:
            frames.setdefault(point.frame, []).append(point.bin)
        return frames


class RobustPointExtractor:
    """Pick robust points per frame and sub-band.

    Sub-bands are independent of each other. With ``max_workers > 1`` they
    are filtered concurrently, each worker writing only its own column
    slice of the output.
    """

    def __init__(self, config: FingerprintConfig, max_workers: int = 1):
        """Initialize extractor.

        Args:
            config: Fingerprint format properties
            max_workers: Threads used to filter sub-bands (1 = sequential)
        """
        self.config = config
        self.max_workers = max_workers

    def filter_bands(self, spectrogram: np.ndarray) -> np.ndarray:
        """Zero every bin that is not the peak of its sub-band.

        Args:
            spectrogram: 2D array (frames x bins) of normalized intensities

        Returns:
            Array of the same shape holding only the surviving intensities.
            Bins in the remainder above the last full sub-band are zero.

        Raises:
            ValueError: If the array is not 2D or has fewer bins than
                sub-bands
        """
        data = np.asarray(spectrogram, dtype=np.float64)
        if data.ndim != 2:
            raise ValueError(f"Spectrogram must be 2D (frames x bins), got {data.ndim}D")

        num_frames, num_bins = data.shape
        num_banks = self.config.num_filter_banks
        width = num_bins // num_banks
        if num_frames and width == 0:
            raise ValueError(
                f"Cannot split {num_bins} frequency bins into {num_banks} sub-bands"
            )

        filtered = np.zeros_like(data)
        if num_frames == 0:
            return filtered

        uncovered = num_bins - width * num_banks
        if uncovered:
            logger.debug("Top %d bins fall outside the last sub-band and are ignored", uncovered)

        starts = [b * width for b in range(num_banks)]
        if self.max_workers > 1:
            with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
                list(executor.map(lambda s: self._filter_band(data, filtered, s, width), starts))
        else:
            for start in starts:
                self._filter_band(data, filtered, start, width)

        return filtered

    @staticmethod
    def _filter_band(data: np.ndarray, out: np.ndarray, start: int, width: int) -> None:
        band = data[:, start : start + width]
        for frame, row in enumerate(band):
            peak = nth_largest(row.tolist(), 1)
            out[frame, start : start + width] = np.where(row >= peak, row, 0.0)

    def extract(self, spectrogram: np.ndarray) -> RobustPointSet:
        """Extract the robust points of a spectrogram.

        Args:
            spectrogram: 2D array (frames x bins) of normalized intensities

        Returns:
            RobustPointSet with points in frame-then-bin order
        """
        data = np.asarray(spectrogram, dtype=np.float64)
        filtered = self.filter_bands(data)

        survivors = filtered > 0
        frames, bins = np.nonzero(survivors)
        points = tuple(
            RobustPoint(
                frame=int(f),
                bin=int(b),
                intensity=float(min(data[f, b], 1.0)),
            )
            for f, b in zip(frames, bins)
        )

        counts = np.count_nonzero(survivors, axis=1)
        incomplete = frozenset(
            int(f) for f in np.flatnonzero(counts != self.config.num_robust_points_per_frame)
        )
        if incomplete:
            logger.debug(
                "%d of %d frames do not hold exactly %d robust points",
                len(incomplete),
                data.shape[0],
                self.config.num_robust_points_per_frame,
            )

        return RobustPointSet(points=points, num_frames=data.shape[0], incomplete_frames=incomplete)
