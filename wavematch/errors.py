"""Exception hierarchy for wavematch.

Every error raised by the fingerprinting core derives from
``WavematchError`` so callers (and the CLI) can catch the whole family in
one place. I/O failures are not wrapped: ``OSError`` and friends reach the
caller unchanged.
"""

from __future__ import annotations


class WavematchError(Exception):
    """Base class for all wavematch errors."""


class InvalidRankError(WavematchError, IndexError):
    """Order-statistic selection was asked for a rank of an empty sequence."""


class FingerprintFormatError(WavematchError, ValueError):
    """A robust point cannot be represented in the binary record layout."""


class TruncatedRecordError(FingerprintFormatError):
    """Fingerprint bytes end in the middle of an 8-byte record.

    Attributes:
        length: Total number of bytes received
        trailing: Number of bytes in the incomplete final record
    """

    def __init__(self, length: int, trailing: int):
        super().__init__(
            f"Fingerprint of {length} bytes ends with a partial record "
            f"({trailing} trailing bytes)"
        )
        self.length = length
        self.trailing = trailing


class DegenerateComparisonError(WavematchError, ValueError):
    """One of the compared fingerprints has no frames."""
