"""Binary fingerprint format.

A fingerprint is a headerless sequence of 8-byte big-endian records, one
per robust point, in frame-then-bin order::

    [frame: u16][bin: u16][intensity: i32]

``intensity`` is the normalized intensity scaled by ``INT32_MAX``. Frames
without robust points emit no record at all, so a missing frame index
means "nothing there", not corruption. The same bytes are written to disk
and sent over the wire.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from pathlib import Path
from typing import BinaryIO

import numpy as np

from .errors import FingerprintFormatError, TruncatedRecordError
from .extractor import RobustPoint

logger = logging.getLogger(__name__)

INT32_MAX = 2**31 - 1
UINT16_MAX = 2**16 - 1
RECORD_SIZE = 8

RECORD_DTYPE = np.dtype([("frame", ">u2"), ("bin", ">u2"), ("intensity", ">i4")])

Fingerprint = tuple[RobustPoint, ...]


def encode(points: Iterable[RobustPoint]) -> bytes:
    """Serialize robust points into fingerprint bytes.

    Args:
        points: Robust points, in any order

    Returns:
        Concatenated 8-byte records sorted by frame, then bin

    Raises:
        FingerprintFormatError: If a frame or bin does not fit in 16 bits,
            or an intensity lies outside [0, 1]
    """
    ordered = sorted(points, key=lambda p: (p.frame, p.bin))
    records = np.empty(len(ordered), dtype=RECORD_DTYPE)

    for i, point in enumerate(ordered):
        if not 0 <= point.frame <= UINT16_MAX:
            raise FingerprintFormatError(f"Frame index {point.frame} does not fit in 16 bits")
        if not 0 <= point.bin <= UINT16_MAX:
            raise FingerprintFormatError(f"Bin index {point.bin} does not fit in 16 bits")
        if not 0.0 <= point.intensity <= 1.0:
            raise FingerprintFormatError(
                f"Intensity {point.intensity} at frame {point.frame} is outside [0, 1]"
            )
        records[i] = (point.frame, point.bin, round(point.intensity * INT32_MAX))

    return records.tobytes()


def decode(data: bytes, strict: bool = True) -> Fingerprint:
    """Deserialize fingerprint bytes into robust points.

    Records are returned in stored order; nothing is sorted.

    Args:
        data: Fingerprint bytes
        strict: Raise on a trailing partial record. When False the partial
            record is dropped with a warning.

    Returns:
        Tuple of RobustPoint

    Raises:
        TruncatedRecordError: If ``strict`` and the length is not a
            multiple of 8
        FingerprintFormatError: If a record holds a negative intensity
    """
    num_records, trailing = divmod(len(data), RECORD_SIZE)
    if trailing:
        if strict:
            raise TruncatedRecordError(len(data), trailing)
        logger.warning(
            "Dropping %d trailing bytes of a partial fingerprint record", trailing
        )
    if num_records == 0:
        return ()

    records = np.frombuffer(data, dtype=RECORD_DTYPE, count=num_records)
    if records["intensity"].min() < 0:
        raise FingerprintFormatError("Fingerprint holds a negative intensity record")

    return tuple(
        RobustPoint(frame=int(frame), bin=int(bin_), intensity=int(raw) / INT32_MAX)
        for frame, bin_, raw in records.tolist()
    )


def frame_count(data: bytes) -> int:
    """Number of frames covered by a fingerprint.

    Records are appended in non-decreasing frame order, so the frame index
    of the last complete record plus one is the frame count. A fingerprint
    shorter than one record has no frames.

    Args:
        data: Fingerprint bytes

    Returns:
        Frame count, 0 for an empty fingerprint
    """
    end = (len(data) // RECORD_SIZE) * RECORD_SIZE
    if end == 0:
        return 0
    return int.from_bytes(data[end - RECORD_SIZE : end - RECORD_SIZE + 2], "big") + 1


def read_fingerprint(stream: BinaryIO) -> bytes:
    """Read fingerprint bytes from a binary stream, verbatim."""
    return stream.read()


def write_fingerprint(data: bytes, stream: BinaryIO) -> None:
    """Write fingerprint bytes to a binary stream, verbatim."""
    stream.write(data)


def load_fingerprint(path: Path | str) -> bytes:
    """Load fingerprint bytes from a file.

    Raises:
        FileNotFoundError: If the file does not exist
        OSError: If the file cannot be read
    """
    with open(path, "rb") as f:
        data = read_fingerprint(f)
    logger.debug("Loaded %d fingerprint bytes from %s", len(data), path)
    return data


def save_fingerprint(data: bytes, path: Path | str) -> None:
    """Save fingerprint bytes to a file, replacing any existing content.

    Raises:
        OSError: If the file cannot be written
    """
    with open(path, "wb") as f:
        write_fingerprint(data, f)
    logger.debug("Saved %d fingerprint bytes to %s", len(data), path)
