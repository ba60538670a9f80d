"""Order-statistic selection and rank-based key extraction.

``select`` is an iterative quickselect using Hoare partitioning with the
pivot taken at the middle of the active range. It places the requested
order statistic at its final sorted position without sorting the rest of
the sequence, which is all peak picking and offset ranking need.
"""

from __future__ import annotations

from collections.abc import Hashable, Mapping, MutableSequence

from .errors import InvalidRankError


def select(values: MutableSequence[float], rank: int) -> float:
    """Return the value that would sit at ``rank`` in ascending order.

    The sequence is partially reordered in place: afterwards
    ``values[rank]`` holds the rank-th order statistic, everything to its
    left is <= it and everything to its right is >= it.

    Args:
        values: Mutable sequence of numbers (list or 1-D numpy array)
        rank: Zero-based target rank, clamped to ``[0, len(values) - 1]``

    Returns:
        The rank-th smallest value

    Raises:
        InvalidRankError: If ``values`` is empty
    """
    size = len(values)
    if size == 0:
        raise InvalidRankError("Cannot select a rank from an empty sequence")

    rank = min(max(rank, 0), size - 1)
    left, right = 0, size - 1

    while left < right:
        pivot = values[(left + right) // 2]
        i, j = left, right

        # Both scans stop on the pivot value itself, so they never leave
        # [left, right] even when every element equals the pivot.
        while i <= j:
            while values[i] < pivot:
                i += 1
            while values[j] > pivot:
                j -= 1
            if i <= j:
                values[i], values[j] = values[j], values[i]
                i += 1
                j -= 1

        # [left, j] <= pivot, [i, right] >= pivot, anything between == pivot
        if rank <= j:
            right = j
        elif rank >= i:
            left = i
        else:
            break

    return values[rank]


def nth_largest(values: MutableSequence[float], n: int) -> float:
    """Return the n-th largest value (``n=1`` is the maximum).

    Reorders ``values`` in place like ``select``.
    """
    return select(values, len(values) - n)


def ranked_keys(
    table: Mapping[Hashable, float],
    count: int,
    descending: bool = True,
    sharp_limit: bool = False,
) -> list:
    """Return the keys of ``table`` holding the ``count`` best values.

    The cut-off value is found with ``select``; every key whose value
    reaches it is returned, so ties at the cut-off can yield more than
    ``count`` keys. With ``sharp_limit`` the result is truncated to exactly
    ``min(count, len(table))`` keys.

    Args:
        table: Mapping of key -> score
        count: Number of keys wanted
        descending: Rank highest values first (default) or lowest first
        sharp_limit: Truncate ties beyond ``count``

    Returns:
        Keys ordered by value (best first), ties by ascending key
    """
    if not table or count <= 0:
        return []

    count = min(count, len(table))
    values = [float(v) for v in table.values()]

    if descending:
        threshold = select(values, len(values) - count)
        passed = [(k, v) for k, v in table.items() if v >= threshold]
        passed.sort(key=lambda kv: (-kv[1], kv[0]))
    else:
        threshold = select(values, count - 1)
        passed = [(k, v) for k, v in table.items() if v <= threshold]
        passed.sort(key=lambda kv: (kv[1], kv[0]))

    keys = [k for k, _ in passed]
    if sharp_limit:
        keys = keys[:count]
    return keys
