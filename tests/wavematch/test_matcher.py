"""Tests for wavematch.matcher — offset voting and similarity scoring."""

from __future__ import annotations

from collections import Counter

import numpy as np
import pytest

from wavematch.codec import encode
from wavematch.config import FingerprintConfig
from wavematch.errors import DegenerateComparisonError
from wavematch.extractor import RobustPoint, RobustPointExtractor
from wavematch.matcher import OffsetVotingMatcher, SimilarityResult

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _line(frames: list[int], bin_: int = 10, intensity: float = 0.5) -> bytes:
    """Fingerprint with one point per listed frame, all on the same bin."""
    return encode(RobustPoint(frame=f, bin=bin_, intensity=intensity) for f in frames)


def _fingerprint(config: FingerprintConfig, spectrogram: np.ndarray) -> bytes:
    return encode(RobustPointExtractor(config).extract(spectrogram).points)


def _delay(spectrogram: np.ndarray, frames: int) -> np.ndarray:
    """Prepend ``frames`` silent frames."""
    return np.vstack([np.zeros((frames, spectrogram.shape[1])), spectrogram])


@pytest.fixture
def matcher(config: FingerprintConfig) -> OffsetVotingMatcher:
    return OffsetVotingMatcher(config)


# ---------------------------------------------------------------------------
# TestVoting
# ---------------------------------------------------------------------------


class TestVoting:
    """Unit tests for vote_offsets() and smoothed_score()."""

    def test_cartesian_product_of_positions(self) -> None:
        table = OffsetVotingMatcher.vote_offsets({1: [0, 4], 2: [9]}, {1: [1, 2], 3: [0]})
        assert table == Counter({-1: 1, -2: 1, 3: 1, 2: 1})

    def test_no_shared_hash(self) -> None:
        assert OffsetVotingMatcher.vote_offsets({1: [0]}, {2: [0]}) == Counter()

    def test_smoothed_score_weights(self) -> None:
        table = Counter({0: 8, -1: 4, -2: 4, 1: 2, 2: 8})
        # 8 + 4/2 + 4/4 + 2/2 + 8/4
        assert OffsetVotingMatcher.smoothed_score(table, 0) == pytest.approx(14.0)

    def test_smoothed_score_missing_neighbours(self) -> None:
        assert OffsetVotingMatcher.smoothed_score(Counter({5: 3}), 5) == 3.0
        assert OffsetVotingMatcher.smoothed_score(Counter({5: 3}), 100) == 0.0


# ---------------------------------------------------------------------------
# TestCompare
# ---------------------------------------------------------------------------


class TestCompare:
    """Integration tests for OffsetVotingMatcher.compare()."""

    def test_shifted_three_frame_line(self, matcher: OffsetVotingMatcher) -> None:
        """Frames 0-2 vs the same points on frames 5-7: offset -5, near-perfect match."""
        first = _line([0, 1, 2])
        second = _line([5, 6, 7])

        result = matcher.compare(first, second)

        assert result.best_offset == -5
        assert result.similarity > 0.9

    def test_offset_sign_follows_argument_order(self, matcher: OffsetVotingMatcher) -> None:
        result = matcher.compare(_line([5, 6, 7]), _line([0, 1, 2]))
        assert result.best_offset == 5

    def test_self_similarity(self, config: FingerprintConfig, noise_spectrogram: np.ndarray) -> None:
        fingerprint = _fingerprint(config, noise_spectrogram)

        result = OffsetVotingMatcher(config).compare(fingerprint, bytes(fingerprint))

        assert result.similarity == 1.0
        assert result.best_offset == 0

    def test_shift_invariance(self, config: FingerprintConfig, noise_spectrogram: np.ndarray) -> None:
        """Delaying the audio by d frames moves the best offset to -d."""
        matcher = OffsetVotingMatcher(config)
        original = _fingerprint(config, noise_spectrogram)
        delayed = _fingerprint(config, _delay(noise_spectrogram, 7))
        unrelated = _fingerprint(config, np.random.default_rng(99).random(noise_spectrogram.shape))

        shifted = matcher.compare(original, delayed)
        other = matcher.compare(original, unrelated)

        assert shifted.best_offset == -7
        assert shifted.similarity >= other.similarity
        assert shifted.raw_score > other.raw_score

    def test_no_shared_hash_scores_zero(self, matcher: OffsetVotingMatcher) -> None:
        result = matcher.compare(_line([0, 1, 2], bin_=10), _line([0, 1, 2], bin_=200))

        assert result == SimilarityResult(best_offset=None, raw_score=0.0, similarity=0.0)

    def test_weak_alignment_below_threshold(self, matcher: OffsetVotingMatcher) -> None:
        """A single shared point pair never reaches the acceptance threshold."""
        result = matcher.compare(_line([0]), _line([3]))

        assert result.best_offset == -3
        assert result.raw_score == 0.0
        assert result.similarity == 0.0
        assert result.candidate_count == 1

    def test_too_short_to_reach_threshold(self, matcher: OffsetVotingMatcher) -> None:
        """One or two single-point frames cannot reach the threshold, even against themselves."""
        for frames in ([0], [0, 1]):
            fingerprint = _line(frames)

            result = matcher.compare(fingerprint, fingerprint)

            assert result.best_offset == 0
            assert result.raw_score == 0.0
            assert result.similarity == 0.0

    def test_bins_far_apart_do_not_match_at_widest_radius(self) -> None:
        """Lines on bins 0 and 256 share no pair hash when the radius is 255."""
        matcher = OffsetVotingMatcher(FingerprintConfig(pair_neighbor_radius=255))
        frames = list(range(10))

        result = matcher.compare(_line(frames, bin_=0), _line(frames, bin_=256))

        assert result == SimilarityResult(best_offset=None, raw_score=0.0, similarity=0.0)

    def test_both_empty_is_degenerate(self, matcher: OffsetVotingMatcher) -> None:
        with pytest.raises(DegenerateComparisonError):
            matcher.compare(b"", b"")

    def test_one_empty_is_degenerate(self, matcher: OffsetVotingMatcher) -> None:
        with pytest.raises(DegenerateComparisonError):
            matcher.compare(_line([0, 1, 2]), b"")
        with pytest.raises(DegenerateComparisonError):
            matcher.compare(b"", _line([0, 1, 2]))

    def test_normalized_by_shorter_fingerprint(self, matcher: OffsetVotingMatcher) -> None:
        """raw_score divides the accepted votes by the smaller frame count."""
        short = _line([0, 1, 2])
        long = _line([0, 1, 2, 40])

        result = matcher.compare(short, long)
        expected = matcher.compare_indices(matcher.index(short), matcher.index(long), 3)

        assert result.raw_score == pytest.approx(expected.raw_score)

    def test_similarity_never_exceeds_one(self, matcher: OffsetVotingMatcher) -> None:
        fingerprint = _line(list(range(50)))
        result = matcher.compare(fingerprint, fingerprint)
        assert result.raw_score > 1.0
        assert result.similarity == 1.0


# ---------------------------------------------------------------------------
# TestCompareIndices
# ---------------------------------------------------------------------------


class TestCompareIndices:
    """Scoring details of compare_indices()."""

    def test_mean_offset_score_over_candidates(self, matcher: OffsetVotingMatcher) -> None:
        index1 = {1: [0] * 10, 2: [5]}
        index2 = {1: [0], 2: [0]}

        result = matcher.compare_indices(index1, index2, num_frames=2)

        # offset 0: 10 votes (+ 0 from neighbours), offset 5: 1 vote
        assert result.best_offset == 0
        assert result.candidate_count == 2
        assert result.raw_score == pytest.approx(5.0)
        assert result.mean_offset_score == pytest.approx(5.0)

    def test_top_offset_count_limits_candidates(self) -> None:
        matcher = OffsetVotingMatcher(FingerprintConfig(top_offset_count=1))
        result = matcher.compare_indices({1: [0] * 10, 2: [20] * 3}, {1: [0], 2: [0]}, 1)
        assert result.candidate_count == 1
        assert result.raw_score == pytest.approx(10.0)

    def test_ties_at_the_cutoff_are_examined(self) -> None:
        matcher = OffsetVotingMatcher(FingerprintConfig(top_offset_count=1))
        result = matcher.compare_indices({1: [0] * 9, 2: [20] * 9}, {1: [0], 2: [0]}, 1)
        assert result.candidate_count == 2
        assert result.raw_score == pytest.approx(18.0)

    def test_best_offset_tie_prefers_smallest_shift(self, matcher: OffsetVotingMatcher) -> None:
        result = matcher.compare_indices({1: [4] * 9, 2: [-2] * 9}, {1: [0], 2: [0]}, 1)
        assert result.best_offset == -2

    def test_invalid_frame_count(self, matcher: OffsetVotingMatcher) -> None:
        with pytest.raises(DegenerateComparisonError):
            matcher.compare_indices({1: [0]}, {1: [0]}, 0)


# ---------------------------------------------------------------------------
# TestCompareMany
# ---------------------------------------------------------------------------


class TestCompareMany:
    """Unit tests for compare_many()."""

    def test_results_in_candidate_order(self, matcher: OffsetVotingMatcher) -> None:
        query = _line([0, 1, 2])
        candidates = [_line([4, 5, 6]), _line([0, 1, 2], bin_=99), _line([1, 2, 3])]

        results = matcher.compare_many(query, candidates)

        assert [r.best_offset for r in results] == [-4, None, -1]

    def test_process_pool_matches_sequential(self, matcher: OffsetVotingMatcher) -> None:
        query = _line([0, 1, 2, 3])
        candidates = [_line([2, 3, 4, 5]), _line([7, 8, 9, 10])]

        sequential = matcher.compare_many(query, candidates)
        parallel = matcher.compare_many(query, candidates, max_workers=2)

        assert parallel == sequential

    def test_degenerate_candidate_raises(self, matcher: OffsetVotingMatcher) -> None:
        with pytest.raises(DegenerateComparisonError):
            matcher.compare_many(_line([0, 1]), [_line([0, 1]), b""])
