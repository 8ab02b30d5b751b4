"""Loading of the raw PCM scratch file produced by the transcoder."""

import logging

import numpy as np
import soundfile

from talkcut.domain.errors import ExternalToolError

logger = logging.getLogger(__name__)


def load_pcm(path: str, sample_rate: int = 16000, channels: int = 1) -> np.ndarray:
    """Read headerless little-endian float32 PCM as a mono float32 array."""
    try:
        audio, _ = soundfile.read(
            path,
            dtype="float32",
            samplerate=sample_rate,
            channels=channels,
            format="RAW",
            subtype="FLOAT",
            endian="LITTLE",
        )
    except RuntimeError as e:
        raise ExternalToolError("soundfile", f"could not read PCM from {path}: {e}") from e

    if audio.ndim > 1:
        audio = audio.mean(axis=1).astype(np.float32)

    logger.info(f"PCM loaded: {len(audio) / sample_rate:.2f}s @ {sample_rate}Hz")
    return audio
