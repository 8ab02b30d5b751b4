"""Redistribute revised transcript text onto the original segment timing.

The cleanup service returns plain text with no timing and a word count that
may differ from the original. Each original segment keeps its exact span and
takes as many revised words as it originally held; those words share the span
evenly. This is an approximation, not forced alignment.
"""

import logging

from talkcut.domain.models import Segment, Transcript, Word

logger = logging.getLogger(__name__)


def distribute_words(
    tokens: list[str], start: float, end: float, first_index: int = 0
) -> list[Word]:
    """Give each token an equal share of ``[start, end]``, in order.

    Word ids continue the global ``w<n>`` numbering from ``first_index``.
    """
    if not tokens:
        return []
    time_per_word = (end - start) / len(tokens)
    words: list[Word] = []
    for i, token in enumerate(tokens):
        word_start = start + i * time_per_word
        words.append(Word(
            id=f"w{first_index + i}",
            text=token,
            start=word_start,
            end=word_start + time_per_word,
        ))
    return words


def redistribute_text(original: Transcript, revised_text: str) -> Transcript:
    """Lay ``revised_text`` over the segments of ``original``.

    Segments consume the revised word stream in order, each taking at most its
    original word count. Revised words beyond the original total are dropped.
    When the stream runs short, the segment at the shortfall takes what is left
    and later segments come out empty. A segment that receives no words keeps
    its span with empty text and no words.

    Args:
        original: Transcript with per-word timestamps.
        revised_text: Whitespace-separated revised text.

    Returns:
        A new transcript with the same segment ids and spans.
    """
    revised_words = revised_text.split()
    logger.info(
        f"Redistributing {len(revised_words)} words to {len(original.segments)} segments"
    )

    segments: list[Segment] = []
    index = 0
    for seg in original.segments:
        taken = revised_words[index:index + len(seg.words)]
        segments.append(Segment(
            id=seg.id,
            start=seg.start,
            end=seg.end,
            text=" ".join(taken),
            words=distribute_words(taken, seg.start, seg.end, first_index=index),
        ))
        index += len(taken)

    if index < len(revised_words):
        logger.warning(f"Dropped {len(revised_words) - index} surplus revised words")
    return Transcript(segments=segments, language=original.language)
