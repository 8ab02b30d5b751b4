from typing import List, Optional, Tuple
from pydantic import BaseModel, Field


class WordDTO(BaseModel):
    """A word with timing, as the editor UI consumes it."""
    id: str
    word: str
    start: float
    end: float


class SegmentDTO(BaseModel):
    """Represents a segment in the transcript"""
    id: int
    start: float
    end: float
    text: str
    words: List[WordDTO] = []


class TranscriptDTO(BaseModel):
    segments: List[SegmentDTO] = []
    language: Optional[str] = None


class EditorTranscriptDTO(BaseModel):
    """Transcript plus flattened word list for the text-based editor."""
    segments: List[SegmentDTO]
    words: List[WordDTO]
    duration_seconds: float
    input_path: str


class PipelineConfigDTO(BaseModel):
    """Per-run overrides. Unset fields fall back to the configured defaults."""
    enhance_audio: Optional[bool] = None
    cut_silences: Optional[bool] = None
    silence_threshold_db: Optional[float] = Field(default=None, le=0.0)
    silence_min_duration: Optional[float] = Field(default=None, gt=0.0)
    cut_margin: Optional[float] = Field(default=None, ge=0.0)
    language: Optional[str] = None


class TranscriptStatsDTO(BaseModel):
    original_duration: float
    processed_duration: float
    removed_silence_duration: float
    silence_percentage: float
    output_size_bytes: int


class PipelineResultDTO(BaseModel):
    output_path: str
    transcript: TranscriptDTO
    source_transcript: TranscriptDTO
    stats: TranscriptStatsDTO
    keep_ranges: List[Tuple[float, float]] = []


class ProcessVideoRequest(BaseModel):
    input_path: str
    config: PipelineConfigDTO = PipelineConfigDTO()


class TranscribeVideoRequest(BaseModel):
    input_path: str
    language: Optional[str] = None
    cleanup: bool = True


class ExportVideoRequest(BaseModel):
    """Either keep_ranges, or words together with the ids the user deleted."""
    input_path: str
    keep_ranges: Optional[List[Tuple[float, float]]] = None
    words: Optional[List[WordDTO]] = None
    deleted_word_ids: List[str] = []
    enhance_audio: bool = False


class ExportVideoResponse(BaseModel):
    output_path: str
