"""Keep-range computation.

Two sources of keep ranges exist: detected silences (the automatic pipeline)
and a word list with some words deleted (the text-based editor).
"""

import logging
from typing import Iterable

from talkcut.domain.intervals import total_duration
from talkcut.domain.models import TimeInterval, Word

logger = logging.getLogger(__name__)

# Kept words closer together than this are exported as one range.
WORD_GAP_THRESHOLD = 0.1


def silences_to_keep_ranges(
    silences: list[TimeInterval],
    original_duration: float,
    margin: float,
) -> list[TimeInterval]:
    """Reduce an ordered silence list to the ranges of the original timeline to keep.

    Each silence is shrunk by ``margin`` on both sides so speech onsets and
    offsets are not clipped. A monotonic cursor keeps the output sorted and
    non-overlapping even when padded silences overlap each other; gaps that
    collapse to zero length are skipped. Ranges that merely touch are *not*
    merged here, see ``intervals.coalesce``.

    Args:
        silences: Silence intervals on the original timeline, sorted by start.
        original_duration: Length of the source media in seconds.
        margin: Non-negative padding in seconds.

    Returns:
        Keep ranges with positive length inside ``[0, original_duration]``.
        An empty silence list yields a single range covering the whole media.
    """
    if margin < 0:
        raise ValueError(f"margin must not be negative, got {margin}")

    keep: list[TimeInterval] = []
    cursor = 0.0

    for silence in silences:
        keep_end = min(silence.start + margin, original_duration)
        if keep_end > cursor:
            keep.append(TimeInterval(cursor, keep_end))
        next_start = max(silence.end - margin, 0.0)
        cursor = max(next_start, keep_end)

    if cursor < original_duration:
        keep.append(TimeInterval(cursor, original_duration))

    logger.debug(f"Keep ranges ({len(keep)} segments, {total_duration(keep):.2f}s kept)")
    return keep


def removed_silence_duration(silences: Iterable[TimeInterval]) -> float:
    """Total detected silence, used for run statistics."""
    return total_duration(silences)


def keep_ranges_from_words(
    words: list[Word],
    deleted_ids: Iterable[str] = (),
    gap_threshold: float = WORD_GAP_THRESHOLD,
) -> list[TimeInterval]:
    """Build keep ranges from the words that survive an editor session.

    Surviving words are sorted by start time; a word starting less than
    ``gap_threshold`` after the current range's end extends that range.
    """
    deleted = set(deleted_ids)
    kept = sorted((w for w in words if w.id not in deleted), key=lambda w: w.start)
    if not kept:
        return []

    ranges: list[TimeInterval] = []
    start, end = kept[0].start, kept[0].end
    for word in kept[1:]:
        if word.start - end < gap_threshold:
            end = max(end, word.end)
        else:
            ranges.append(TimeInterval(start, end))
            start, end = word.start, word.end
    ranges.append(TimeInterval(start, end))

    return [r for r in ranges if r.duration > 0]
