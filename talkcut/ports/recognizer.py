"""SpeechRecognizerPort: abstract interface for speech-to-text engines."""

from abc import ABC, abstractmethod
from typing import Optional

import numpy as np

from talkcut.domain.models import Segment


class SpeechRecognizerPort(ABC):
    @abstractmethod
    def load(self, model_dir: str, device: str = "cpu") -> None:
        """Load the ASR model from a directory."""

    @abstractmethod
    def recognize(
        self,
        samples: np.ndarray,
        sample_rate: int = 16000,
        language: Optional[str] = None,
    ) -> list[Segment]:
        """Transcribe mono float32 samples. Returns time-ordered segments with words."""

    @abstractmethod
    def model_name(self) -> str:
        """Return the human-readable model name."""

    @abstractmethod
    def is_loaded(self) -> bool:
        """Whether the model has been loaded and is ready for inference."""
