"""Domain <-> DTO mappers.

The wire format names a word's text ``word``; the domain calls it ``text``.
"""

from dataclasses import replace

from talkcut.domain.models import (
    EditorTranscript, PipelineConfig, PipelineResult, Segment, TimeInterval, Transcript, Word,
)
from talkcut.models import (
    EditorTranscriptDTO, PipelineConfigDTO, PipelineResultDTO, SegmentDTO,
    TranscriptDTO, TranscriptStatsDTO, WordDTO,
)


def word_to_dto(word: Word) -> WordDTO:
    return WordDTO(id=word.id, word=word.text, start=word.start, end=word.end)


def dto_to_word(dto: WordDTO) -> Word:
    return Word(id=dto.id, text=dto.word, start=dto.start, end=dto.end)


def segment_to_dto(seg: Segment) -> SegmentDTO:
    return SegmentDTO(
        id=seg.id,
        start=seg.start,
        end=seg.end,
        text=seg.text,
        words=[word_to_dto(w) for w in seg.words],
    )


def transcript_to_dto(transcript: Transcript) -> TranscriptDTO:
    return TranscriptDTO(
        segments=[segment_to_dto(s) for s in transcript.segments],
        language=transcript.language,
    )


def editor_transcript_to_dto(result: EditorTranscript) -> EditorTranscriptDTO:
    return EditorTranscriptDTO(
        segments=[segment_to_dto(s) for s in result.segments],
        words=[word_to_dto(w) for w in result.words],
        duration_seconds=result.duration_seconds,
        input_path=result.input_path,
    )


def result_to_dto(result: PipelineResult) -> PipelineResultDTO:
    stats = result.stats
    return PipelineResultDTO(
        output_path=result.output_path,
        transcript=transcript_to_dto(result.transcript),
        source_transcript=transcript_to_dto(result.source_transcript),
        stats=TranscriptStatsDTO(
            original_duration=stats.original_duration,
            processed_duration=stats.processed_duration,
            removed_silence_duration=stats.removed_silence_duration,
            silence_percentage=stats.silence_percentage,
            output_size_bytes=stats.output_size_bytes,
        ),
        keep_ranges=[r.as_tuple() for r in result.keep_ranges],
    )


def apply_overrides(defaults: PipelineConfig, dto: PipelineConfigDTO) -> PipelineConfig:
    """Build a new snapshot from the defaults and the fields the request set."""
    overrides = {k: v for k, v in dto.model_dump().items() if v is not None}
    return replace(defaults, **overrides)


def tuples_to_intervals(ranges: list[tuple[float, float]]) -> list[TimeInterval]:
    return [TimeInterval(start, end) for start, end in ranges]
