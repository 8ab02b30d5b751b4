"""FFmpegTranscoderAdapter: silence detection, PCM extraction and rendering via ffmpeg."""

import os
import re
import shutil
import logging
import subprocess
from typing import Optional

from talkcut.domain.errors import ExternalToolError, MissingResourceError
from talkcut.domain.models import TimeInterval
from talkcut.ports.transcoder import MediaTranscoderPort

logger = logging.getLogger(__name__)

ENHANCE_FILTER = "afftdn=nf=-25,loudnorm=I=-16:TP=-1.5:LRA=11"

_SILENCE_START = re.compile(r"silence_start:\s*(-?[\d.]+(?:e[-+]?\d+)?)")
_SILENCE_END = re.compile(r"silence_end:\s*(-?[\d.]+(?:e[-+]?\d+)?)")
_DURATION = re.compile(r"Duration: (\d{2}):(\d{2}):(\d{2})\.(\d+)")

AUDIO_ENCODE_ARGS = ["-c:a", "aac", "-b:a", "192k", "-ar", "44100"]


def parse_silencedetect(output: str) -> list[TimeInterval]:
    """Pair each ``silence_start`` with the next ``silence_end`` in document order.

    An end with no pending start is ignored, as is a trailing start that never
    gets an end. Negative starts (ffmpeg reports them for silence at t=0 on some
    containers) are clamped to zero.
    """
    silences: list[TimeInterval] = []
    current_start: Optional[float] = None

    for line in output.splitlines():
        start_match = _SILENCE_START.search(line)
        if start_match:
            try:
                current_start = max(float(start_match.group(1)), 0.0)
            except ValueError:
                pass
        end_match = _SILENCE_END.search(line)
        if end_match and current_start is not None:
            try:
                end = float(end_match.group(1))
            except ValueError:
                continue
            if end >= current_start:
                silences.append(TimeInterval(current_start, end))
            current_start = None

    return silences


def parse_duration(output: str) -> Optional[float]:
    """Read ``Duration: HH:MM:SS.frac``; the fraction is scaled by its digit count."""
    for line in output.splitlines():
        match = _DURATION.search(line)
        if match:
            hours, minutes, seconds, frac = match.groups()
            return (
                int(hours) * 3600
                + int(minutes) * 60
                + int(seconds)
                + int(frac) / (10 ** len(frac))
            )
    return None


def format_seconds(value: float) -> str:
    text = f"{value:.6f}".rstrip("0").rstrip(".")
    return text or "0"


def build_keep_expression(keep_ranges: list[TimeInterval]) -> str:
    """Serialize keep ranges as a sum of ``between(t,start,end)`` tests."""
    return "+".join(
        f"between(t,{format_seconds(r.start)},{format_seconds(r.end)})" for r in keep_ranges
    )


def build_cut_filters(keep_ranges: list[TimeInterval], enhance_audio: bool) -> tuple[str, str]:
    """Return (video_filter, audio_filter) applying the same selection to both streams."""
    keep_expr = build_keep_expression(keep_ranges)
    video_filter = f"select='{keep_expr}',setpts=N/FRAME_RATE/TB"
    audio_filter = f"aselect='{keep_expr}',asetpts=N/SR/TB"
    if enhance_audio:
        audio_filter = f"{audio_filter},{ENHANCE_FILTER}"
    return video_filter, audio_filter


class FFmpegTranscoderAdapter(MediaTranscoderPort):
    def __init__(self, ffmpeg_path: Optional[str] = None, video_encoder: str = "libx264"):
        self._ffmpeg = ffmpeg_path or "ffmpeg"
        self._video_encoder = video_encoder

    def ensure_available(self) -> str:
        """Resolve the ffmpeg binary or raise MissingResourceError."""
        resolved = shutil.which(self._ffmpeg)
        if resolved is None:
            raise MissingResourceError("ffmpeg", [self._ffmpeg])
        return resolved

    def _run(self, args: list[str], check: bool = True) -> str:
        """Run ffmpeg and return its stderr, where it writes all diagnostics."""
        cmd = [self._ffmpeg, "-hide_banner", *args]
        logger.debug(f"Running: {' '.join(cmd)}")
        try:
            result = subprocess.run(cmd, capture_output=True, text=True)
        except FileNotFoundError as e:
            raise MissingResourceError("ffmpeg", [self._ffmpeg]) from e
        if check and result.returncode != 0:
            logger.error(f"ffmpeg exited with {result.returncode}: {result.stderr}")
            raise ExternalToolError("ffmpeg", f"exited with code {result.returncode}", result.stderr)
        return result.stderr

    def get_duration(self, input_path: str) -> float:
        # ffmpeg exits non-zero without an output file; the header is still printed
        stderr = self._run(["-i", input_path, "-t", "0.000001", "-f", "null", "-"], check=False)
        duration = parse_duration(stderr)
        if duration is None:
            logger.error(f"Could not parse duration for {input_path}")
            raise ExternalToolError("ffmpeg", f"could not parse duration of {input_path}", stderr)
        logger.info(f"Media duration: {duration:.2f}s")
        return duration

    def extract_pcm(
        self, input_path: str, output_path: str, sample_rate: int = 16000, channels: int = 1
    ) -> str:
        try:
            self._run([
                "-y",
                "-i", input_path,
                "-vn",
                "-ar", str(sample_rate),
                "-ac", str(channels),
                "-f", "f32le",
                "-acodec", "pcm_f32le",
                output_path,
            ])
        except ExternalToolError:
            if os.path.exists(output_path):
                os.unlink(output_path)
            raise
        return output_path

    def detect_silences(
        self, input_path: str, noise_floor_db: float, min_duration: float
    ) -> list[TimeInterval]:
        # noise_floor_db is already negative (e.g. -30.0)
        silence_filter = f"silencedetect=noise={noise_floor_db}dB:d={min_duration}"
        logger.info(f"Detecting silences with filter: {silence_filter}")
        stderr = self._run(["-i", input_path, "-af", silence_filter, "-f", "null", "-"])

        silences = parse_silencedetect(stderr)
        total = sum(s.duration for s in silences)
        logger.info(f"Found {len(silences)} silence segments totaling {total:.2f}s")
        return silences

    def cut_and_export(
        self,
        input_path: str,
        keep_ranges: list[TimeInterval],
        output_path: str,
        enhance_audio: bool,
    ) -> str:
        if not keep_ranges:
            raise ValueError("Cannot export with no keep ranges")
        video_filter, audio_filter = build_cut_filters(keep_ranges, enhance_audio)
        logger.debug(f"Video filter: {video_filter}")
        logger.debug(f"Audio filter: {audio_filter}")

        self._run([
            "-y",
            "-i", input_path,
            "-vf", video_filter,
            "-af", audio_filter,
            "-c:v", self._video_encoder,
            "-b:v", "8M",
            "-maxrate", "10M",
            "-bufsize", "16M",
            "-profile:v", "high",
            *AUDIO_ENCODE_ARGS,
            "-pix_fmt", "yuv420p",
            "-movflags", "+faststart",
            output_path,
        ])
        logger.info(f"Exported {len(keep_ranges)} ranges to {output_path}")
        return output_path

    def enhance_audio(self, input_path: str, output_path: str, scratch_audio_path: str) -> str:
        self._run([
            "-y",
            "-i", input_path,
            "-vn",
            "-af", ENHANCE_FILTER,
            "-c:a", "aac", "-b:a", "192k",
            scratch_audio_path,
        ])
        self._run([
            "-y",
            "-i", input_path,
            "-i", scratch_audio_path,
            "-map", "0:v:0", "-map", "1:a:0",
            "-c:v", "copy",
            "-c:a", "copy",
            "-movflags", "+faststart",
            output_path,
        ])
        return output_path

    def copy_video(self, input_path: str, output_path: str) -> str:
        self._run([
            "-y",
            "-i", input_path,
            "-c:v", "copy",
            *AUDIO_ENCODE_ARGS,
            "-movflags", "+faststart",
            output_path,
        ])
        return output_path
