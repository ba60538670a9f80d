"""Compare two fingerprints by offset voting.

Pipeline
--------
1. Build the pair-hash index of both fingerprints
2. Every pair of positions sharing a hash votes for the time offset
   ``this_position - other_position``
3. The best-voted offsets are smoothed with their neighbours and kept only
   when the smoothed score reaches ``score_threshold``
4. The accepted scores are normalized by the shorter fingerprint's frame
   count and clamped to 1.0

Aligned recordings pile their votes onto one offset; unrelated recordings
scatter them.
"""

from __future__ import annotations

import logging
from collections import Counter
from collections.abc import Sequence
from concurrent.futures import ProcessPoolExecutor
from dataclasses import dataclass

from .codec import decode, frame_count
from .config import FingerprintConfig
from .errors import DegenerateComparisonError
from .pairs import PairHashIndex, PairHashIndexBuilder
from .selection import ranked_keys

logger = logging.getLogger(__name__)

# Weights applied to the votes of neighbouring offsets when smoothing
NEIGHBOUR_WEIGHTS = {-2: 0.25, -1: 0.5, 1: 0.5, 2: 0.25}


@dataclass(frozen=True, slots=True)
class SimilarityResult:
    """Outcome of one fingerprint comparison.

    Attributes:
        best_offset: Offset (in frames, first minus second) with the most
            votes, or None when the fingerprints share no pair hash
        raw_score: Accepted smoothed votes per frame of the shorter
            fingerprint
        similarity: ``raw_score`` clamped to [0, 1]. Average matches per
            frame, not a probability.
        mean_offset_score: Accepted smoothed votes averaged over the
            examined candidate offsets
        candidate_count: Number of candidate offsets examined
    """

    best_offset: int | None
    raw_score: float
    similarity: float
    mean_offset_score: float = 0.0
    candidate_count: int = 0


class OffsetVotingMatcher:
    """Score the similarity of two fingerprints."""

    def __init__(
        self,
        config: FingerprintConfig,
        builder: PairHashIndexBuilder | None = None,
    ):
        """Initialize matcher.

        Args:
            config: Fingerprint format properties
            builder: Pair-hash index builder (built from config if None)
        """
        self.config = config
        self.builder = builder or PairHashIndexBuilder(config)

    def index(self, fingerprint: bytes) -> PairHashIndex:
        """Decode fingerprint bytes and build their pair-hash index."""
        return self.builder.build(decode(fingerprint))

    def compare(self, fingerprint1: bytes, fingerprint2: bytes) -> SimilarityResult:
        """Compare two encoded fingerprints.

        Only offsets whose smoothed score reaches ``score_threshold`` count,
        so a fingerprint too sparse to reach it (one or two single-point
        frames, say) scores 0 even against itself.

        Args:
            fingerprint1: Fingerprint bytes ("this")
            fingerprint2: Fingerprint bytes ("other")

        Returns:
            SimilarityResult; ``best_offset`` is ``this - other`` in frames

        Raises:
            DegenerateComparisonError: If either fingerprint has no frames
            TruncatedRecordError: If either fingerprint ends mid-record
        """
        num_frames = min(frame_count(fingerprint1), frame_count(fingerprint2))
        if num_frames == 0:
            raise DegenerateComparisonError("Cannot compare a fingerprint with no frames")

        return self.compare_indices(self.index(fingerprint1), self.index(fingerprint2), num_frames)

    def compare_indices(
        self,
        index1: PairHashIndex,
        index2: PairHashIndex,
        num_frames: int,
    ) -> SimilarityResult:
        """Compare two pair-hash indices.

        Args:
            index1: Index of the first fingerprint
            index2: Index of the second fingerprint
            num_frames: Frame count used to normalize the score

        Returns:
            SimilarityResult

        Raises:
            DegenerateComparisonError: If ``num_frames`` is not positive
        """
        if num_frames <= 0:
            raise DegenerateComparisonError(f"Invalid frame count for comparison: {num_frames}")

        table = self.vote_offsets(index1, index2)
        candidates = ranked_keys(table, self.config.top_offset_count)
        if not candidates:
            logger.debug("No shared pair hashes, similarity is 0")
            return SimilarityResult(best_offset=None, raw_score=0.0, similarity=0.0)

        new_score = 0.0
        for offset in candidates:
            score = self.smoothed_score(table, offset)
            if score >= self.config.score_threshold:
                new_score += score

        best_offset = max(candidates, key=lambda k: (table[k], -abs(k), -k))
        raw_score = new_score / num_frames
        mean_offset_score = new_score / len(candidates)

        logger.debug(
            "Best offset %d (%d votes), %d candidates, new score %.2f, mean %.2f",
            best_offset,
            table[best_offset],
            len(candidates),
            new_score,
            mean_offset_score,
        )

        return SimilarityResult(
            best_offset=best_offset,
            raw_score=raw_score,
            similarity=min(raw_score, 1.0),
            mean_offset_score=mean_offset_score,
            candidate_count=len(candidates),
        )

    @staticmethod
    def vote_offsets(index1: PairHashIndex, index2: PairHashIndex) -> Counter[int]:
        """Tally ``position1 - position2`` for every pair sharing a hash.

        Returns:
            Counter of offset -> votes, owned by the caller
        """
        table: Counter[int] = Counter()
        for key in index1.keys() & index2.keys():
            positions2 = index2[key]
            for position1 in index1[key]:
                for position2 in positions2:
                    table[position1 - position2] += 1
        return table

    @staticmethod
    def smoothed_score(table: Counter[int], offset: int) -> float:
        """Votes at ``offset`` plus weighted votes of the two offsets each side."""
        score = float(table.get(offset, 0))
        for delta, weight in NEIGHBOUR_WEIGHTS.items():
            score += table.get(offset + delta, 0) * weight
        return score

    def compare_many(
        self,
        query: bytes,
        candidates: Sequence[bytes],
        max_workers: int = 1,
    ) -> list[SimilarityResult]:
        """Compare one fingerprint against many.

        Each comparison runs with its own offset table; with
        ``max_workers > 1`` they are spread over a process pool.

        Args:
            query: Fingerprint bytes compared as "this"
            candidates: Fingerprint bytes compared as "other"
            max_workers: Worker processes (1 = run in this process)

        Returns:
            One SimilarityResult per candidate, in candidate order

        Raises:
            DegenerateComparisonError: If the query or a candidate has no
                frames
        """
        if max_workers <= 1 or len(candidates) <= 1:
            return [self.compare(query, candidate) for candidate in candidates]

        with ProcessPoolExecutor(max_workers=max_workers) as executor:
            jobs = [(self.config, query, candidate) for candidate in candidates]
            return list(executor.map(_compare_job, jobs))


def _compare_job(args: tuple[FingerprintConfig, bytes, bytes]) -> SimilarityResult:
    """Run one comparison (worker function for multiprocessing)."""
    config, fingerprint1, fingerprint2 = args
    return OffsetVotingMatcher(config).compare(fingerprint1, fingerprint2)
