"""Pure arithmetic over ``TimeInterval`` values.

Nothing here mutates its input; every transformation returns new intervals.
"""

from typing import Iterable, Optional

from talkcut.domain.errors import DegenerateIntervalError
from talkcut.domain.models import TimeInterval

# Two boundaries closer than this are treated as touching.
TOUCH_TOLERANCE = 1e-9


def clamp(interval: TimeInterval, lower_bound: float, upper_bound: float) -> TimeInterval:
    """Truncate both ends into ``[lower_bound, upper_bound]``.

    Raises:
        DegenerateIntervalError: if the clamped interval has ``end <= start``.
    """
    return _clamp_bounds(interval.start, interval.end, lower_bound, upper_bound)


def expand_margin(
    interval: TimeInterval, margin: float, lower_bound: float, upper_bound: float
) -> TimeInterval:
    """Pad both edges by ``margin`` and clamp into the bounds."""
    return _clamp_bounds(interval.start - margin, interval.end + margin, lower_bound, upper_bound)


def _clamp_bounds(start: float, end: float, lower_bound: float, upper_bound: float) -> TimeInterval:
    start = min(max(start, lower_bound), upper_bound)
    end = min(max(end, lower_bound), upper_bound)
    if end <= start:
        raise DegenerateIntervalError(start, end)
    return TimeInterval(start, end)


def contract_margin(silence: TimeInterval, margin: float) -> Optional[TimeInterval]:
    """Return the span of ``silence`` actually removed once ``margin`` is kept on each side.

    Returns None when the contracted span would invert, meaning the silence is
    too short to cut at all.
    """
    start = silence.start + margin
    end = silence.end - margin
    if end <= start:
        return None
    return TimeInterval(start, end)


def total_duration(intervals: Iterable[TimeInterval]) -> float:
    return sum(iv.duration for iv in intervals)


def coalesce(
    intervals: Iterable[TimeInterval], tolerance: float = TOUCH_TOLERANCE
) -> list[TimeInterval]:
    """Sort and merge overlapping or touching intervals.

    Zero-length intervals are dropped.
    """
    merged: list[TimeInterval] = []
    for iv in sorted(intervals, key=lambda i: (i.start, i.end)):
        if iv.duration <= 0:
            continue
        if merged and iv.start - merged[-1].end <= tolerance:
            last = merged[-1]
            merged[-1] = TimeInterval(last.start, max(last.end, iv.end))
        else:
            merged.append(iv)
    return merged


def is_valid_keep_range_list(ranges: list[TimeInterval], duration: Optional[float] = None) -> bool:
    """Check the ordering, overlap and bounds invariants of a keep-range list."""
    previous_end = 0.0
    for iv in ranges:
        if iv.end <= iv.start or iv.start < previous_end:
            return False
        previous_end = iv.end
    if duration is not None and ranges and ranges[-1].end > duration:
        return False
    return True
