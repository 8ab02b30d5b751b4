"""HTTP surface for talkcut.

Three commands mirror what the editor application needs: run the automatic
pipeline, transcribe for the text editor, and export an edited cut.
"""

import logging
import os
import uuid

from fastapi import Depends, FastAPI, HTTPException

from talkcut import __version__
from talkcut.config import (
    Config, create_cleanup, create_progress, create_recognizer, create_transcoder, get_config,
)
from talkcut.domain.errors import MissingResourceError, PipelineError, TalkcutError
from talkcut.mappers import (
    apply_overrides, dto_to_word, editor_transcript_to_dto, result_to_dto, tuples_to_intervals,
)
from talkcut.models import (
    EditorTranscriptDTO, ExportVideoRequest, ExportVideoResponse, PipelineResultDTO,
    ProcessVideoRequest, TranscribeVideoRequest,
)
from talkcut.use_cases.editor import ExportEditedVideoUseCase, TranscribeForEditorUseCase
from talkcut.use_cases.process_video import ProcessVideoUseCase

logger = logging.getLogger(__name__)

_recognizer = None


def get_transcoder(cfg: Config = Depends(get_config)):
    return create_transcoder(cfg)


def get_recognizer(cfg: Config = Depends(get_config)):
    """Load the recognizer once per process; model loading is slow."""
    global _recognizer
    if _recognizer is None:
        try:
            _recognizer = create_recognizer(cfg)
        except MissingResourceError as e:
            logger.error(str(e))
            raise HTTPException(status_code=503, detail=str(e))
    return _recognizer


def _require_input(path: str) -> None:
    if not os.path.isfile(path):
        raise HTTPException(status_code=404, detail=f"Input file not found: {path}")


def create_app() -> FastAPI:
    app = FastAPI(title="talkcut", version=__version__)

    @app.get("/health")
    def health(cfg: Config = Depends(get_config)):
        return {"status": "ok", "version": __version__, "config": cfg.as_dict()}

    @app.post("/v1/pipeline/process", response_model=PipelineResultDTO)
    def process_video(
        req: ProcessVideoRequest,
        cfg: Config = Depends(get_config),
        transcoder=Depends(get_transcoder),
        recognizer=Depends(get_recognizer),
    ):
        _require_input(req.input_path)
        try:
            pipeline_config = apply_overrides(cfg.default_pipeline_config(), req.config)
        except ValueError as e:
            raise HTTPException(status_code=422, detail=str(e))

        run_id = uuid.uuid4().hex[:12]
        use_case = ProcessVideoUseCase(transcoder, recognizer, create_progress(run_id))
        try:
            result = use_case.execute(req.input_path, pipeline_config)
        except PipelineError as e:
            raise HTTPException(status_code=500, detail={"stage": e.stage, "error": str(e.cause)})
        return result_to_dto(result)

    @app.post("/v1/editor/transcribe", response_model=EditorTranscriptDTO)
    async def transcribe_video(
        req: TranscribeVideoRequest,
        cfg: Config = Depends(get_config),
        transcoder=Depends(get_transcoder),
        recognizer=Depends(get_recognizer),
    ):
        _require_input(req.input_path)
        use_case = TranscribeForEditorUseCase(
            transcoder,
            recognizer,
            cleanup=create_cleanup(cfg, language=req.language),
            cleanup_timeout=cfg.cleanup_timeout,
        )
        try:
            result = await use_case.execute(req.input_path, language=req.language, use_cleanup=req.cleanup)
        except TalkcutError as e:
            logger.error(f"Editor transcription failed: {e}")
            raise HTTPException(status_code=500, detail=str(e))
        return editor_transcript_to_dto(result)

    @app.post("/v1/editor/export", response_model=ExportVideoResponse)
    def export_edited_video(req: ExportVideoRequest, transcoder=Depends(get_transcoder)):
        _require_input(req.input_path)
        use_case = ExportEditedVideoUseCase(transcoder)
        try:
            output_path = use_case.execute(
                req.input_path,
                keep_ranges=tuples_to_intervals(req.keep_ranges) if req.keep_ranges is not None else None,
                words=[dto_to_word(w) for w in req.words] if req.words is not None else None,
                deleted_word_ids=req.deleted_word_ids,
                enhance_audio=req.enhance_audio,
            )
        except ValueError as e:
            raise HTTPException(status_code=422, detail=str(e))
        except TalkcutError as e:
            logger.error(f"Export failed: {e}")
            raise HTTPException(status_code=500, detail=str(e))
        return ExportVideoResponse(output_path=output_path)

    return app
