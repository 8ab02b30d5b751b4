"""ProcessVideoUseCase: orchestrates the automatic editing pipeline.

Stages run strictly in sequence:

    transcribe -> detect_silences -> (cut_silences | enhance_audio | copy)

Every stage reports start/progress/completion to the injected ProgressPort.
Any stage failure aborts the run with a single PipelineError tagged with the
stage; partial output files are left in place but never returned. Scratch
files next to the input are removed whether the run succeeds or not.

A use case instance holds no per-run state, so one instance may serve
several runs at once.
"""

import os
import logging
from dataclasses import dataclass
from typing import Callable, Optional

from talkcut.audio import load_pcm
from talkcut.domain import naming
from talkcut.domain.errors import PipelineCancelledError, PipelineError, ProgressDeliveryError
from talkcut.domain.intervals import coalesce
from talkcut.domain.keep_ranges import removed_silence_duration, silences_to_keep_ranges
from talkcut.domain.models import (
    CancellationToken, PipelineConfig, PipelineResult, PipelineStage,
    TimeInterval, Transcript, TranscriptStats,
)
from talkcut.domain.timeline import remap_transcript
from talkcut.ports.progress import ProgressPort
from talkcut.ports.recognizer import SpeechRecognizerPort
from talkcut.ports.transcoder import MediaTranscoderPort

logger = logging.getLogger(__name__)

SAMPLE_RATE = 16000
CHANNELS = 1


@dataclass
class _RunState:
    """Where one run currently is, for tagging failures."""
    cancel_token: Optional[CancellationToken] = None
    stage: Optional[PipelineStage] = None
    started: bool = False


class ProcessVideoUseCase:
    def __init__(
        self,
        transcoder: MediaTranscoderPort,
        recognizer: SpeechRecognizerPort,
        progress: ProgressPort,
    ):
        self._transcoder = transcoder
        self._recognizer = recognizer
        self._progress = progress

    def execute(
        self,
        input_path: str,
        config: PipelineConfig,
        cancel_token: Optional[CancellationToken] = None,
    ) -> PipelineResult:
        """Run the full pipeline for one input file.

        Raises:
            PipelineError: a stage failed or the run was cancelled.
            ProgressDeliveryError: the observer raised; no further events are sent.
        """
        run = _RunState(cancel_token=cancel_token)
        output_path = naming.edited_output_path(input_path)

        try:
            result = self._run(run, input_path, output_path, config)
        except ProgressDeliveryError:
            raise
        except Exception as e:
            self._report_failure(run, e)
            raise PipelineError(run.stage.value if run.stage else None, e) from e
        finally:
            self._cleanup(input_path)

        self._notify(self._progress.on_pipeline_completed, result)
        return result

    def _run(
        self,
        run: _RunState,
        input_path: str,
        output_path: str,
        config: PipelineConfig,
    ) -> PipelineResult:
        # 1. Transcribe
        self._begin(run, PipelineStage.TRANSCRIBE)
        original_duration = self._transcoder.get_duration(input_path)
        transcript = self._transcribe(run, input_path, config)
        self._complete(run)

        # 2. Detect silences
        self._begin(run, PipelineStage.DETECT_SILENCES)
        silences = self._transcoder.detect_silences(
            input_path, config.silence_threshold_db, config.silence_min_duration
        )
        self._complete(run)

        # 3. Render
        keep_ranges: list[TimeInterval] = []
        edited_transcript = transcript
        if config.cut_silences and silences:
            self._begin(run, PipelineStage.CUT_SILENCES)
            keep_ranges = coalesce(
                silences_to_keep_ranges(silences, original_duration, config.cut_margin)
            )
            if not keep_ranges:
                raise ValueError("Nothing left to keep: the whole input was detected as silence")
            logger.info(f"Keep ranges ({len(keep_ranges)} segments): {[r.as_tuple() for r in keep_ranges]}")
            self._transcoder.cut_and_export(input_path, keep_ranges, output_path, config.enhance_audio)
            edited_transcript = remap_transcript(transcript, keep_ranges)
        elif config.enhance_audio:
            self._begin(run, PipelineStage.ENHANCE_AUDIO)
            self._transcoder.enhance_audio(
                input_path, output_path, naming.enhanced_audio_path(input_path)
            )
        else:
            self._begin(run, PipelineStage.COPY)
            self._transcoder.copy_video(input_path, output_path)

        processed_duration = self._transcoder.get_duration(output_path)
        self._complete(run)

        # detected silence, whichever render path ran
        removed = removed_silence_duration(silences)
        stats = TranscriptStats(
            original_duration=original_duration,
            processed_duration=processed_duration,
            removed_silence_duration=removed,
            silence_percentage=(removed / original_duration * 100) if original_duration > 0 else 0.0,
            output_size_bytes=os.path.getsize(output_path) if os.path.exists(output_path) else 0,
        )
        logger.info(
            f"Detected {stats.removed_silence_duration:.2f}s of silence "
            f"({stats.silence_percentage:.1f}%), {original_duration:.2f}s -> {processed_duration:.2f}s"
        )
        return PipelineResult(
            output_path=output_path,
            transcript=edited_transcript,
            source_transcript=transcript,
            stats=stats,
            keep_ranges=keep_ranges,
        )

    def _transcribe(self, run: _RunState, input_path: str, config: PipelineConfig) -> Transcript:
        pcm_file = self._transcoder.extract_pcm(
            input_path, naming.pcm_path(input_path), SAMPLE_RATE, CHANNELS
        )
        self._notify(self._progress.on_progress, run.stage, 0.5)

        samples = load_pcm(pcm_file, SAMPLE_RATE, CHANNELS)
        segments = self._recognizer.recognize(samples, SAMPLE_RATE, language=config.language)
        self._notify(self._progress.on_progress, run.stage, 1.0)

        logger.info(f"Transcribed {len(segments)} segments")
        return Transcript(segments=segments, language=config.language)

    def _begin(self, run: _RunState, stage: PipelineStage) -> None:
        run.stage = stage
        run.started = False
        if run.cancel_token is not None and run.cancel_token.cancelled:
            raise PipelineCancelledError(f"Cancelled before {stage.value}")
        self._notify(self._progress.on_stage_started, stage)
        run.started = True

    def _complete(self, run: _RunState) -> None:
        self._notify(self._progress.on_stage_completed, run.stage)

    def _report_failure(self, run: _RunState, error: Exception) -> None:
        message = str(error)
        if run.stage is not None and run.started:
            self._notify(self._progress.on_stage_failed, run.stage, message)
        self._notify(self._progress.on_pipeline_failed, run.stage, message)

    def _notify(self, callback: Callable, *args) -> None:
        try:
            callback(*args)
        except Exception as e:
            raise ProgressDeliveryError(f"Progress notification failed: {e}") from e

    def _cleanup(self, input_path: str) -> None:
        for path in naming.scratch_paths(input_path):
            try:
                if os.path.exists(path):
                    os.unlink(path)
            except OSError as e:
                logger.warning(f"Cleanup error: {e}")
