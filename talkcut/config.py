import os
import logging
from typing import Dict, Optional, Any

from talkcut.domain.models import PipelineConfig

logger = logging.getLogger(__name__)

try:
    from dotenv import load_dotenv
    load_dotenv()
except ImportError:
    pass

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 8010
DEFAULT_RECOGNIZER_TYPE = "transducer"
DEFAULT_VIDEO_ENCODER = "libx264"
DEFAULT_CLEANUP_URL = "https://api.z.ai/api/paas/v4/chat/completions"
DEFAULT_CLEANUP_MODEL = "GLM-4.7-Flash"
DEFAULT_CLEANUP_TIMEOUT = 60.0

DEFAULT_SILENCE_THRESHOLD_DB = -30.0
DEFAULT_SILENCE_MIN_DURATION = 0.5
DEFAULT_CUT_MARGIN = 0.2


def _env_bool(name: str, default: bool) -> bool:
    return os.environ.get(name, "true" if default else "false").lower() in ("1", "true", "yes")


class Config:
    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super(Config, cls).__new__(cls)
            cls._instance._initialize()
        return cls._instance

    def _initialize(self):
        self.host = os.environ.get("HOST", DEFAULT_HOST)
        self.port = int(os.environ.get("PORT", DEFAULT_PORT))
        self.debug = os.environ.get("DEBUG", "0") == "1"

        self.ffmpeg_path = os.environ.get("FFMPEG_PATH") or None
        self.video_encoder = os.environ.get("VIDEO_ENCODER", DEFAULT_VIDEO_ENCODER)

        self.model_dir = os.environ.get("MODEL_DIR", "").strip() or None
        search_paths = os.environ.get("MODEL_SEARCH_PATHS", "").strip()
        self.model_search_paths = [p for p in search_paths.split(os.pathsep) if p] if search_paths else None
        self.recognizer_type = os.environ.get("RECOGNIZER_TYPE", DEFAULT_RECOGNIZER_TYPE).lower()
        self.recognizer_provider = os.environ.get("RECOGNIZER_PROVIDER", "cpu").lower()
        self.num_threads = int(os.environ.get("NUM_THREADS", "4"))

        self.cleanup_api_url = os.environ.get("CLEANUP_API_URL", DEFAULT_CLEANUP_URL)
        self.cleanup_api_key = os.environ.get("CLEANUP_API_KEY") or None
        self.cleanup_model = os.environ.get("CLEANUP_MODEL", DEFAULT_CLEANUP_MODEL)
        self.cleanup_timeout = float(os.environ.get("CLEANUP_TIMEOUT", DEFAULT_CLEANUP_TIMEOUT))

        self.silence_threshold_db = float(os.environ.get("SILENCE_THRESHOLD_DB", DEFAULT_SILENCE_THRESHOLD_DB))
        self.silence_min_duration = float(os.environ.get("SILENCE_MIN_DURATION", DEFAULT_SILENCE_MIN_DURATION))
        self.cut_margin = float(os.environ.get("CUT_MARGIN", DEFAULT_CUT_MARGIN))
        self.enhance_audio = _env_bool("ENHANCE_AUDIO", True)
        self.cut_silences = _env_bool("CUT_SILENCES", True)
        self.language = os.environ.get("LANGUAGE") or None

    def default_pipeline_config(self) -> PipelineConfig:
        """Immutable per-run snapshot of the configured defaults."""
        return PipelineConfig(
            silence_threshold_db=self.silence_threshold_db,
            silence_min_duration=self.silence_min_duration,
            cut_margin=self.cut_margin,
            enhance_audio=self.enhance_audio,
            cut_silences=self.cut_silences,
            language=self.language,
        )

    def as_dict(self) -> Dict[str, Any]:
        return {
            "host": self.host,
            "port": self.port,
            "debug": self.debug,
            "ffmpeg_path": self.ffmpeg_path or "ffmpeg",
            "video_encoder": self.video_encoder,
            "model_dir": self.model_dir,
            "recognizer_type": self.recognizer_type,
            "recognizer_provider": self.recognizer_provider,
            "has_cleanup_key": self.cleanup_api_key is not None,
            "cleanup_model": self.cleanup_model,
            "silence_threshold_db": self.silence_threshold_db,
            "silence_min_duration": self.silence_min_duration,
            "cut_margin": self.cut_margin,
            "enhance_audio": self.enhance_audio,
            "cut_silences": self.cut_silences,
        }


def get_config() -> Config:
    return Config()


def create_transcoder(cfg: Config):
    """Create the media transcoder adapter (always FFmpeg)."""
    from talkcut.adapters.ffmpeg.transcoder import FFmpegTranscoderAdapter
    return FFmpegTranscoderAdapter(ffmpeg_path=cfg.ffmpeg_path, video_encoder=cfg.video_encoder)


def create_recognizer(cfg: Config):
    """Create and load the speech recognizer.

    Uses a lazy import so sherpa-onnx is only loaded when a model is needed.
    """
    from talkcut.adapters.sherpa.recognizer import (
        DEFAULT_SEARCH_PATHS, SherpaRecognizerAdapter, resolve_model_dir,
    )

    model_dir = resolve_model_dir(
        cfg.recognizer_type,
        explicit=cfg.model_dir,
        search_paths=cfg.model_search_paths or DEFAULT_SEARCH_PATHS,
    )
    recognizer = SherpaRecognizerAdapter(model_type=cfg.recognizer_type, num_threads=cfg.num_threads)
    recognizer.load(model_dir, device=cfg.recognizer_provider)
    logger.info(f"Recognizer: {type(recognizer).__name__} ({recognizer.model_name()}) from {model_dir}")
    return recognizer


def create_cleanup(cfg: Config, language: Optional[str] = None):
    """Create the language-cleanup adapter, or None when no API key is configured."""
    if not cfg.cleanup_api_key:
        return None
    from talkcut.adapters.llm.cleanup import ChatCompletionCleanupAdapter
    return ChatCompletionCleanupAdapter(
        api_url=cfg.cleanup_api_url,
        api_key=cfg.cleanup_api_key,
        model=cfg.cleanup_model,
        timeout=cfg.cleanup_timeout,
        language=language,
    )


def create_progress(run_id: str = ""):
    from talkcut.adapters.local.log_progress import LogProgressAdapter
    return LogProgressAdapter(run_id)
