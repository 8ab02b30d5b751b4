"""ProgressPort: observer interface for pipeline notifications.

Events for one run are delivered in order, synchronously, from the stage that
produces them. An exception raised here aborts the run.
"""

from abc import ABC, abstractmethod
from typing import Optional

from talkcut.domain.models import PipelineResult, PipelineStage


class ProgressPort(ABC):
    @abstractmethod
    def on_stage_started(self, stage: PipelineStage) -> None:
        """A stage began."""

    @abstractmethod
    def on_progress(self, stage: PipelineStage, progress: float) -> None:
        """Fractional progress in 0.0-1.0 within a stage."""

    @abstractmethod
    def on_stage_completed(self, stage: PipelineStage) -> None:
        """A stage finished successfully."""

    @abstractmethod
    def on_stage_failed(self, stage: PipelineStage, error: str) -> None:
        """A stage failed; the run is about to abort."""

    @abstractmethod
    def on_pipeline_completed(self, result: PipelineResult) -> None:
        """The run finished with a result."""

    @abstractmethod
    def on_pipeline_failed(self, stage: Optional[PipelineStage], error: str) -> None:
        """The run failed. Emitted exactly once per failed run."""
