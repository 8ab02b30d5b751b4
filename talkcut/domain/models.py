"""Framework-agnostic domain models for talkcut.

Timing is always in seconds on the *original* media timeline unless a value
has been passed through the timeline reconciler. The pydantic DTOs in
``talkcut.models`` are the wire format, with mappers at the boundary.
"""

import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


@dataclass(frozen=True)
class TimeInterval:
    """An immutable ``[start, end]`` span. Invariant: ``end >= start >= 0``."""
    start: float
    end: float

    def __post_init__(self):
        if self.start < 0 or self.end < self.start:
            raise ValueError(f"Invalid interval ({self.start}, {self.end})")

    @property
    def duration(self) -> float:
        return self.end - self.start

    def as_tuple(self) -> tuple[float, float]:
        return (self.start, self.end)


@dataclass
class Word:
    """A single recognized word with timing."""
    id: str
    text: str
    start: float
    end: float


@dataclass
class Segment:
    """A contiguous transcript unit. Its span covers its words' span."""
    id: int
    start: float
    end: float
    text: str
    words: list[Word] = field(default_factory=list)


@dataclass
class Transcript:
    """Ordered, non-overlapping segments. Gaps between segments are silence."""
    segments: list[Segment] = field(default_factory=list)
    language: Optional[str] = None

    @property
    def words(self) -> list[Word]:
        return [w for seg in self.segments for w in seg.words]

    @property
    def text(self) -> str:
        return " ".join(seg.text.strip() for seg in self.segments if seg.text.strip())


@dataclass
class EditorTranscript:
    """Transcript prepared for the text-based editor."""
    segments: list[Segment]
    words: list[Word]
    duration_seconds: float
    input_path: str


@dataclass(frozen=True)
class PipelineConfig:
    """Immutable per-run configuration snapshot.

    ``silence_threshold_db`` is a dBFS level and must be <= 0 (e.g. -30.0).
    It is handed to the transcoder as-is.
    """
    silence_threshold_db: float = -30.0
    silence_min_duration: float = 0.5
    cut_margin: float = 0.2
    enhance_audio: bool = True
    cut_silences: bool = True
    language: Optional[str] = None

    def __post_init__(self):
        if self.silence_threshold_db > 0:
            raise ValueError(
                f"silence_threshold_db must be a negative dBFS level, got {self.silence_threshold_db}"
            )
        if self.silence_min_duration <= 0:
            raise ValueError("silence_min_duration must be positive")
        if self.cut_margin < 0:
            raise ValueError("cut_margin must not be negative")


@dataclass
class TranscriptStats:
    original_duration: float
    processed_duration: float
    removed_silence_duration: float
    silence_percentage: float
    output_size_bytes: int


@dataclass
class PipelineResult:
    """Final output of a successful pipeline run.

    ``transcript`` is aligned to the output file; ``source_transcript`` keeps
    the original-timeline transcript.
    """
    output_path: str
    transcript: Transcript
    source_transcript: Transcript
    stats: TranscriptStats
    keep_ranges: list[TimeInterval] = field(default_factory=list)


class PipelineStage(str, Enum):
    TRANSCRIBE = "transcribe"
    DETECT_SILENCES = "detect_silences"
    CUT_SILENCES = "cut_silences"
    ENHANCE_AUDIO = "enhance_audio"
    COPY = "copy"


# Tagged event variants emitted by observers that forward to a channel.

@dataclass(frozen=True)
class StageStarted:
    stage: PipelineStage


@dataclass(frozen=True)
class StageProgress:
    stage: PipelineStage
    progress: float


@dataclass(frozen=True)
class StageCompleted:
    stage: PipelineStage


@dataclass(frozen=True)
class StageFailed:
    stage: PipelineStage
    error: str


@dataclass(frozen=True)
class PipelineCompleted:
    result: PipelineResult


@dataclass(frozen=True)
class PipelineFailed:
    stage: Optional[PipelineStage]
    error: str


PipelineEvent = (
    StageStarted | StageProgress | StageCompleted | StageFailed
    | PipelineCompleted | PipelineFailed
)


class CancellationToken:
    """Cooperative cancellation flag, checked by the orchestrator between stages."""

    def __init__(self):
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()
