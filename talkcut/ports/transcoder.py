"""MediaTranscoderPort: abstract interface for media decoding, filtering and encoding."""

from abc import ABC, abstractmethod

from talkcut.domain.models import TimeInterval


class MediaTranscoderPort(ABC):
    @abstractmethod
    def get_duration(self, input_path: str) -> float:
        """Return the media duration in seconds."""

    @abstractmethod
    def extract_pcm(
        self, input_path: str, output_path: str, sample_rate: int = 16000, channels: int = 1
    ) -> str:
        """Write headerless little-endian float32 PCM. Returns output_path."""

    @abstractmethod
    def detect_silences(
        self, input_path: str, noise_floor_db: float, min_duration: float
    ) -> list[TimeInterval]:
        """Return silent spans on the original timeline, in time order."""

    @abstractmethod
    def cut_and_export(
        self,
        input_path: str,
        keep_ranges: list[TimeInterval],
        output_path: str,
        enhance_audio: bool,
    ) -> str:
        """Render only the keep ranges, video and audio in sync. Returns output_path."""

    @abstractmethod
    def enhance_audio(self, input_path: str, output_path: str, scratch_audio_path: str) -> str:
        """Denoise and loudness-normalize audio, copying video. Returns output_path."""

    @abstractmethod
    def copy_video(self, input_path: str, output_path: str) -> str:
        """Copy video, re-encode audio. Returns output_path."""
