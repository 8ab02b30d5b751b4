"""EventProgressAdapter: forwards notifications as tagged event values to a sink.

The sink can be a queue's ``put``, a websocket sender wrapped in a sync call,
or ``list.append`` in tests.
"""

from typing import Callable, Optional

from talkcut.domain.models import (
    PipelineCompleted, PipelineEvent, PipelineFailed, PipelineResult, PipelineStage,
    StageCompleted, StageFailed, StageProgress, StageStarted,
)
from talkcut.ports.progress import ProgressPort


class EventProgressAdapter(ProgressPort):
    def __init__(self, sink: Callable[[PipelineEvent], None]):
        self._sink = sink

    def on_stage_started(self, stage: PipelineStage) -> None:
        self._sink(StageStarted(stage))

    def on_progress(self, stage: PipelineStage, progress: float) -> None:
        self._sink(StageProgress(stage, progress))

    def on_stage_completed(self, stage: PipelineStage) -> None:
        self._sink(StageCompleted(stage))

    def on_stage_failed(self, stage: PipelineStage, error: str) -> None:
        self._sink(StageFailed(stage, error))

    def on_pipeline_completed(self, result: PipelineResult) -> None:
        self._sink(PipelineCompleted(result))

    def on_pipeline_failed(self, stage: Optional[PipelineStage], error: str) -> None:
        self._sink(PipelineFailed(stage, error))
