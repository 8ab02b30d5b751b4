"""SherpaRecognizerAdapter: offline ASR with token timestamps.

Audio is split into sub-chunks that fit the encoder's attention window, one
stream per sub-chunk, and all streams are decoded in a single batch call.
Token timestamps from each sub-chunk are offset-corrected and merged, then
grouped into words and the words into sentence-like segments on silence gaps.
"""

import logging
import os
from typing import Optional, Sequence

import numpy as np

from talkcut.domain.errors import ExternalToolError, MissingResourceError
from talkcut.domain.models import Segment, Word
from talkcut.domain.redistribution import distribute_words
from talkcut.ports.recognizer import SpeechRecognizerPort

logger = logging.getLogger(__name__)

REQUIRED_FILES = {
    "transducer": ["encoder.int8.onnx", "decoder.int8.onnx", "joiner.int8.onnx", "tokens.txt"],
    "whisper": ["encoder.int8.onnx", "decoder.int8.onnx", "tokens.txt"],
}

DEFAULT_SEARCH_PATHS = [
    "models/sherpa-onnx",
    "../models/sherpa-onnx",
    "/models/sherpa-onnx",
]

SAMPLE_RATE = 16000

# Max duration per sub-chunk (seconds). Parakeet TDT's self-attention supports
# ~1250 frames at 12.5 fps = 100s.
MAX_CHUNK_SECONDS = 80

# Silence gap (seconds) between words that starts a new segment.
SEGMENT_SILENCE_THRESHOLD = 0.25

# Max segment duration (seconds).
MAX_SEGMENT_DURATION = 6.0

# Tokens carry only a start time; the last token of a word is assumed to last this long.
TOKEN_DURATION = 0.1


def resolve_model_dir(
    model_type: str,
    explicit: Optional[str] = None,
    search_paths: Sequence[str] = DEFAULT_SEARCH_PATHS,
) -> str:
    """Return the first candidate directory holding every required model file."""
    required = REQUIRED_FILES[model_type]
    candidates = [explicit] if explicit else []
    candidates.extend(search_paths)
    for candidate in candidates:
        if all(os.path.exists(os.path.join(candidate, f)) for f in required):
            logger.info(f"Found {model_type} model at: {candidate}")
            return candidate
        logger.warning(f"Model not found at: {candidate}")
    raise MissingResourceError(f"sherpa-onnx {model_type} model", candidates)


def is_control_token(token: str) -> bool:
    """Bracketed markers such as ``[BLANK_AUDIO]`` or ``<|en|>`` are not speech."""
    stripped = token.strip()
    return stripped.startswith("[") or stripped.startswith("<")


def tokens_to_words(
    tokens: Sequence[str],
    timestamps: Sequence[float],
    audio_duration: float,
    first_index: int = 0,
) -> list[Word]:
    """Join sub-word tokens into words.

    A token beginning with whitespace (or the SentencePiece ``▁`` marker) opens
    a new word. A word ends where the next word starts, or ``TOKEN_DURATION``
    after its last token, whichever is earlier.
    """
    pieces: list[tuple[str, float, float]] = []  # (text, start, last_token_start)
    for raw, ts in zip(tokens, timestamps):
        if is_control_token(raw):
            continue
        token = raw.replace("▁", " ")
        if not token.strip():
            continue
        if not pieces or token[0].isspace():
            pieces.append((token.strip(), ts, ts))
        else:
            text, start, _ = pieces[-1]
            pieces[-1] = (text + token.strip(), start, ts)

    words: list[Word] = []
    for i, (text, start, last_ts) in enumerate(pieces):
        end = min(last_ts + TOKEN_DURATION, audio_duration)
        if i + 1 < len(pieces):
            end = min(end, pieces[i + 1][1])
        words.append(Word(id=f"w{first_index + i}", text=text, start=start, end=max(end, start)))
    return words


def group_words_into_segments(words: list[Word], first_id: int = 0) -> list[Segment]:
    """Start a new segment on a silence gap or when a segment grows too long."""
    segments: list[Segment] = []
    current: list[Word] = []

    def flush():
        if current:
            segments.append(Segment(
                id=first_id + len(segments),
                start=current[0].start,
                end=current[-1].end,
                text=" ".join(w.text for w in current),
                words=list(current),
            ))

    for word in words:
        if current:
            gap = word.start - current[-1].end
            duration = word.end - current[0].start
            if gap > SEGMENT_SILENCE_THRESHOLD or duration > MAX_SEGMENT_DURATION:
                flush()
                current = []
        current.append(word)
    flush()
    return segments


class SherpaRecognizerAdapter(SpeechRecognizerPort):
    def __init__(self, model_type: str = "transducer", num_threads: int = 4):
        if model_type not in REQUIRED_FILES:
            raise ValueError(f"Unknown recognizer type: {model_type!r}. Valid options: {', '.join(REQUIRED_FILES)}")
        self._model_type = model_type
        self._num_threads = num_threads
        self._model_dir: Optional[str] = None
        self._device = "cpu"
        # whisper models bake the language into the recognizer, one per language hint
        self._recognizers: dict[Optional[str], object] = {}

    def load(self, model_dir: str, device: str = "cpu") -> None:
        """Verify model files and build the default recognizer."""
        self._model_dir = model_dir
        self._device = device
        self._ensure_models()
        self._recognizers.clear()
        self._recognizer_for(None)
        logger.info(f"Sherpa recognizer ready: {self._model_dir} ({self._model_type}, provider={device})")

    def _recognizer_for(self, language: Optional[str]):
        key = language if self._model_type == "whisper" else None
        if key in self._recognizers:
            return self._recognizers[key]

        import sherpa_onnx

        def model(name: str) -> str:
            return os.path.join(self._model_dir, name)

        logger.info(f"Loading Sherpa-ONNX {self._model_type} model (language={key or 'auto'})...")
        if self._model_type == "whisper":
            recognizer = sherpa_onnx.OfflineRecognizer.from_whisper(
                encoder=model("encoder.int8.onnx"),
                decoder=model("decoder.int8.onnx"),
                tokens=model("tokens.txt"),
                language=key or "",
                task="transcribe",
                num_threads=self._num_threads,
                provider=self._device,
            )
        else:
            recognizer = sherpa_onnx.OfflineRecognizer.from_transducer(
                encoder=model("encoder.int8.onnx"),
                decoder=model("decoder.int8.onnx"),
                joiner=model("joiner.int8.onnx"),
                tokens=model("tokens.txt"),
                model_type="nemo_transducer",
                provider=self._device,
                num_threads=self._num_threads,
            )
        self._recognizers[key] = recognizer
        return recognizer

    def recognize(
        self,
        samples: np.ndarray,
        sample_rate: int = SAMPLE_RATE,
        language: Optional[str] = None,
    ) -> list[Segment]:
        """Batch ASR: sub-chunk audio, decode all streams, merge tokens into words."""
        if not self.is_loaded():
            raise ExternalToolError("sherpa-onnx", "recognizer not loaded")

        audio = np.asarray(samples, dtype=np.float32)
        if sample_rate != SAMPLE_RATE:
            logger.warning(f"Audio is {sample_rate}Hz, expected {SAMPLE_RATE}Hz")
            target_len = int(len(audio) * SAMPLE_RATE / sample_rate)
            indices = np.linspace(0, len(audio) - 1, target_len)
            audio = np.interp(indices, np.arange(len(audio)), audio).astype(np.float32)
            sample_rate = SAMPLE_RATE

        duration = len(audio) / sample_rate
        if duration == 0:
            logger.warning("Empty audio, nothing to recognize")
            return []

        try:
            recognizer = self._recognizer_for(language)
            chunk_samples = MAX_CHUNK_SECONDS * sample_rate
            num_chunks = max(1, int(np.ceil(len(audio) / chunk_samples)))

            streams = []
            chunk_offsets = []
            for i in range(num_chunks):
                start_sample = i * chunk_samples
                end_sample = min((i + 1) * chunk_samples, len(audio))
                stream = recognizer.create_stream()
                stream.accept_waveform(sample_rate, audio[start_sample:end_sample])
                streams.append(stream)
                chunk_offsets.append((start_sample / sample_rate, end_sample / sample_rate))

            logger.info(f"Decoding {num_chunks} streams ({MAX_CHUNK_SECONDS}s sub-chunks)")
            recognizer.decode_streams(streams)
        except Exception as e:
            logger.error(f"Sherpa recognition error: {e}", exc_info=True)
            raise ExternalToolError("sherpa-onnx", f"recognition failed: {e}") from e

        words: list[Word] = []
        for stream, (offset, chunk_end) in zip(streams, chunk_offsets):
            result = stream.result
            tokens = list(result.tokens or [])
            timestamps = list(result.timestamps or [])
            if tokens and len(timestamps) == len(tokens):
                words.extend(tokens_to_words(
                    tokens,
                    [t + offset for t in timestamps],
                    chunk_end,
                    first_index=len(words),
                ))
            elif result.text.strip():
                # no token timing from this model: spread the chunk text evenly
                text_tokens = [t for t in result.text.split() if not is_control_token(t)]
                words.extend(distribute_words(text_tokens, offset, chunk_end, first_index=len(words)))

        segments = group_words_into_segments(words)
        if not segments:
            logger.warning("No speech detected")
        else:
            logger.info(f"Grouped {len(words)} words into {len(segments)} segments")
        return segments

    def model_name(self) -> str:
        return f"sherpa-onnx-{self._model_type}"

    def is_loaded(self) -> bool:
        return bool(self._recognizers)

    def _ensure_models(self):
        missing = []
        for f in REQUIRED_FILES[self._model_type]:
            path = os.path.join(self._model_dir, f)
            if os.path.exists(path):
                size_mb = os.path.getsize(path) / (1024 * 1024)
                logger.info(f"  {f} ({size_mb:.1f} MB)")
            else:
                missing.append(f)
                logger.error(f"  {f} MISSING")

        if missing:
            raise MissingResourceError(
                f"model files {missing}", [self._model_dir]
            )
