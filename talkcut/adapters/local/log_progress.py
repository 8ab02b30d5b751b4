"""LogProgressAdapter: reports pipeline notifications via logging."""

import logging
from typing import Optional

from talkcut.domain.models import PipelineResult, PipelineStage
from talkcut.ports.progress import ProgressPort

logger = logging.getLogger(__name__)


class LogProgressAdapter(ProgressPort):
    def __init__(self, run_id: str = ""):
        self._prefix = f"[{run_id}] " if run_id else ""

    def on_stage_started(self, stage: PipelineStage) -> None:
        logger.info(f"{self._prefix}{stage.value} started")

    def on_progress(self, stage: PipelineStage, progress: float) -> None:
        logger.info(f"{self._prefix}{stage.value} {progress:.0%}")

    def on_stage_completed(self, stage: PipelineStage) -> None:
        logger.info(f"{self._prefix}{stage.value} completed")

    def on_stage_failed(self, stage: PipelineStage, error: str) -> None:
        logger.error(f"{self._prefix}{stage.value} failed: {error}")

    def on_pipeline_completed(self, result: PipelineResult) -> None:
        logger.info(f"{self._prefix}pipeline completed: {result.output_path}")

    def on_pipeline_failed(self, stage: Optional[PipelineStage], error: str) -> None:
        where = stage.value if stage else "pipeline"
        logger.error(f"{self._prefix}pipeline failed in {where}: {error}")
