"""Wavematch - Audio content fingerprinting and similarity scoring.

This module decides whether two recordings carry the same acoustic content,
regardless of length, start offset or moderate noise.

The algorithm:
- Keep the dominant frequency bin of each sub-band in every frame
  ("robust points")
- Pack the points into a compact binary fingerprint
- Index pairs of nearby points by hash
- Vote on the time offset between matching pairs of two fingerprints

References:
- "An Industrial-Strength Audio Search Algorithm" (Wang, 2003)
- musicg: https://code.google.com/archive/p/musicg/
"""

__version__ = "0.1.0"

from .codec import decode, encode, frame_count, load_fingerprint, save_fingerprint
from .config import FingerprintConfig, WavematchConfig, load_config
from .errors import (
    DegenerateComparisonError,
    FingerprintFormatError,
    InvalidRankError,
    TruncatedRecordError,
    WavematchError,
)
from .extractor import RobustPoint, RobustPointExtractor, RobustPointSet
from .fingerprint import Fingerprinter
from .matcher import OffsetVotingMatcher, SimilarityResult
from .pairs import PairHashIndexBuilder
from .selection import ranked_keys, select

__all__ = [
    "DegenerateComparisonError",
    "FingerprintConfig",
    "FingerprintFormatError",
    "Fingerprinter",
    "InvalidRankError",
    "OffsetVotingMatcher",
    "PairHashIndexBuilder",
    "RobustPoint",
    "RobustPointExtractor",
    "RobustPointSet",
    "SimilarityResult",
    "TruncatedRecordError",
    "WavematchConfig",
    "WavematchError",
    "decode",
    "encode",
    "frame_count",
    "load_config",
    "load_fingerprint",
    "ranked_keys",
    "save_fingerprint",
    "select",
]
