"""Reconcile original-timeline positions with the edited (post-cut) timeline.

Keep-range counts are bounded by silence counts (tens to low hundreds per
video), so every lookup is a linear scan.
"""

import logging
from typing import Optional

from talkcut.domain.errors import DegenerateIntervalError, PointRemovedError
from talkcut.domain.intervals import clamp, coalesce
from talkcut.domain.models import Segment, TimeInterval, Transcript, Word

logger = logging.getLogger(__name__)


def map_to_edited(t: float, keep_ranges: list[TimeInterval]) -> float:
    """Map an original-timeline time to its position in the edited output.

    Range ends are inclusive, so the end of one range and the start of the
    next touching range map to the same edited position.

    Raises:
        PointRemovedError: if ``t`` lies in a span that was cut. The error
            carries the nearest retained boundary on the original timeline.
    """
    accumulated = 0.0
    previous: Optional[TimeInterval] = None
    for rng in keep_ranges:
        if rng.start <= t <= rng.end:
            return accumulated + (t - rng.start)
        if t < rng.start:
            raise PointRemovedError(t, _nearest_boundary(t, previous, rng))
        accumulated += rng.duration
        previous = rng
    raise PointRemovedError(t, previous.end if previous else None)


def _nearest_boundary(t: float, before: Optional[TimeInterval], after: TimeInterval) -> float:
    if before is None or (after.start - t) < (t - before.end):
        return after.start
    return before.end


def edited_duration(keep_ranges: list[TimeInterval]) -> float:
    return sum(r.duration for r in keep_ranges)


def remap_interval(interval: TimeInterval, keep_ranges: list[TimeInterval]) -> Optional[TimeInterval]:
    """Move an interval onto the edited timeline.

    Only the parts of ``interval`` that overlap kept ranges survive; the result
    spans from the first surviving part to the last. Returns None when nothing
    of positive length survives.
    """
    first: Optional[float] = None
    last: Optional[float] = None
    accumulated = 0.0
    for rng in keep_ranges:
        try:
            part = clamp(interval, rng.start, rng.end)
        except DegenerateIntervalError:
            accumulated += rng.duration
            continue
        if first is None:
            first = accumulated + (part.start - rng.start)
        last = accumulated + (part.end - rng.start)
        accumulated += rng.duration
    if first is None or last is None or last <= first:
        return None
    return TimeInterval(first, last)


def remap_transcript(transcript: Transcript, keep_ranges: list[TimeInterval]) -> Transcript:
    """Return the transcript as it plays back in the edited output.

    Words and segments that fell entirely inside cut spans are dropped; the
    rest keep their ids and get edited-timeline timestamps. A segment's text is
    rebuilt from its surviving words when it had any.
    """
    segments: list[Segment] = []
    dropped_words = 0
    for seg in transcript.segments:
        span = remap_interval(TimeInterval(seg.start, seg.end), keep_ranges)
        if span is None:
            dropped_words += len(seg.words)
            continue

        words: list[Word] = []
        for word in seg.words:
            moved = remap_interval(TimeInterval(word.start, word.end), keep_ranges)
            if moved is None:
                dropped_words += 1
                continue
            words.append(Word(id=word.id, text=word.text, start=moved.start, end=moved.end))

        if seg.words and not words:
            continue
        text = " ".join(w.text for w in words) if seg.words else seg.text
        segments.append(Segment(id=seg.id, start=span.start, end=span.end, text=text, words=words))

    if dropped_words:
        logger.info(f"{dropped_words} words fell inside cut spans")
    return Transcript(segments=segments, language=transcript.language)


def normalize_keep_ranges(
    ranges: list[TimeInterval], duration: Optional[float] = None
) -> list[TimeInterval]:
    """Turn caller-supplied ranges into a valid keep-range list.

    Ranges are clamped into ``[0, duration]`` (when known), degenerate ones are
    dropped silently, and overlapping or touching ones are merged.
    """
    upper = duration if duration is not None else float("inf")
    clamped: list[TimeInterval] = []
    for rng in ranges:
        try:
            clamped.append(clamp(rng, 0.0, upper))
        except DegenerateIntervalError:
            logger.debug(f"Dropping degenerate keep range {rng.as_tuple()}")
    return coalesce(clamped)
