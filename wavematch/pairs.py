"""Pair-hash index over a decoded fingerprint.

Every robust point acts as an anchor and is paired with the points of the
next ``pair_neighbor_radius`` frames (and with the points of its own
frame). Each pair is reduced to a hash of the two bins and their frame
distance, never of absolute frame numbers, so the same audio yields the
same hashes wherever it starts. The index maps each hash to the anchor
frames where it occurs.
"""

from __future__ import annotations

from collections.abc import Iterable

from .config import FingerprintConfig
from .extractor import RobustPoint

PairHashIndex = dict[int, list[int]]


class PairHashIndexBuilder:
    """Build ``{pair hash: [anchor frame, ...]}`` tables."""

    def __init__(self, config: FingerprintConfig):
        self.radius = config.pair_neighbor_radius

    def pair_hash(self, anchor_bin: int, target_bin: int, distance: int) -> int:
        """Combine two bins and their frame distance into one key.

        Layout: ``(anchor_bin << 40) | (target_bin << 24) | distance``. Each
        field owns its own bit range, so distinct pairs never share a key.

        Args:
            anchor_bin: Bin of the earlier point (lower bin within a frame)
            target_bin: Bin of the later point
            distance: Frame distance, 0..radius

        Returns:
            Non-negative hash below 2**56
        """
        return (
            ((anchor_bin & 0xFFFF) << 40)
            | ((target_bin & 0xFFFF) << 24)
            | (distance & 0xFFFFFF)
        )

    def build(self, points: Iterable[RobustPoint]) -> PairHashIndex:
        """Index every pair of nearby robust points.

        Points within one frame are paired without regard to order (each
        point with itself and every higher bin), so the result does not
        depend on how points are ordered inside a frame.

        Args:
            points: Robust points of one fingerprint

        Returns:
            Mapping of pair hash to ascending anchor frame positions
        """
        bins_by_frame: dict[int, list[int]] = {}
        for point in points:
            bins_by_frame.setdefault(point.frame, []).append(point.bin)
        for bins in bins_by_frame.values():
            bins.sort()

        index: PairHashIndex = {}
        for frame in sorted(bins_by_frame):
            anchors = bins_by_frame[frame]

            for i, anchor in enumerate(anchors):
                for target in anchors[i:]:
                    index.setdefault(self.pair_hash(anchor, target, 0), []).append(frame)

            for distance in range(1, self.radius + 1):
                targets = bins_by_frame.get(frame + distance)
                if not targets:
                    continue
                for anchor in anchors:
                    for target in targets:
                        key = self.pair_hash(anchor, target, distance)
                        index.setdefault(key, []).append(frame)

        return index
