"""Use cases behind the text-based editor.

The editor transcribes a video once, lets the user delete words, then exports
only the spans of the words that remain.
"""

import asyncio
import os
import logging
from typing import Iterable, Optional

from talkcut.audio import load_pcm
from talkcut.domain import naming
from talkcut.domain.errors import CleanupServiceError
from talkcut.domain.keep_ranges import keep_ranges_from_words
from talkcut.domain.models import EditorTranscript, TimeInterval, Transcript, Word
from talkcut.domain.redistribution import redistribute_text
from talkcut.domain.timeline import normalize_keep_ranges
from talkcut.ports.cleanup import TextCleanupPort
from talkcut.ports.recognizer import SpeechRecognizerPort
from talkcut.ports.transcoder import MediaTranscoderPort

logger = logging.getLogger(__name__)

SAMPLE_RATE = 16000


class TranscribeForEditorUseCase:
    def __init__(
        self,
        transcoder: MediaTranscoderPort,
        recognizer: SpeechRecognizerPort,
        cleanup: Optional[TextCleanupPort] = None,
        cleanup_timeout: float = 60.0,
    ):
        self._transcoder = transcoder
        self._recognizer = recognizer
        self._cleanup = cleanup
        self._cleanup_timeout = cleanup_timeout

    async def execute(
        self,
        input_path: str,
        language: Optional[str] = None,
        use_cleanup: bool = True,
    ) -> EditorTranscript:
        """Transcribe ``input_path`` with word timing, optionally cleaning the text.

        Cleanup is best effort: any failure, a timeout or an empty revision
        falls back to the recognizer's transcript.
        """
        pcm_file = naming.pcm_path(input_path)
        try:
            duration, transcript = await asyncio.to_thread(
                self._transcribe, input_path, pcm_file, language
            )
        finally:
            if os.path.exists(pcm_file):
                os.unlink(pcm_file)

        if use_cleanup and self._cleanup is not None and transcript.segments:
            transcript = await self._clean(transcript)

        words = transcript.words
        logger.info(f"Transcription complete: {len(transcript.segments)} segments, {len(words)} words")
        return EditorTranscript(
            segments=transcript.segments,
            words=words,
            duration_seconds=duration,
            input_path=input_path,
        )

    def _transcribe(self, input_path: str, pcm_file: str, language: Optional[str]) -> tuple[float, Transcript]:
        duration = self._transcoder.get_duration(input_path)
        logger.info(f"Transcribing video for editor: {input_path} ({duration:.2f}s)")
        self._transcoder.extract_pcm(input_path, pcm_file, SAMPLE_RATE, 1)
        samples = load_pcm(pcm_file, SAMPLE_RATE, 1)
        segments = self._recognizer.recognize(samples, SAMPLE_RATE, language=language)
        return duration, Transcript(segments=segments, language=language)

    async def _clean(self, transcript: Transcript) -> Transcript:
        try:
            revised = await asyncio.wait_for(
                self._cleanup.clean(transcript.text), timeout=self._cleanup_timeout
            )
        except asyncio.TimeoutError:
            logger.warning(f"Cleanup timed out after {self._cleanup_timeout}s, using original transcript")
            return transcript
        except CleanupServiceError as e:
            logger.warning(f"Cleanup failed, using original transcript: {e}")
            return transcript
        except Exception as e:
            logger.warning(f"Cleanup failed unexpectedly, using original transcript: {e}")
            return transcript

        if not revised.split():
            logger.warning("Cleanup returned empty text, using original transcript")
            return transcript

        logger.info("Cleanup successful")
        return redistribute_text(transcript, revised)


class ExportEditedVideoUseCase:
    def __init__(self, transcoder: MediaTranscoderPort):
        self._transcoder = transcoder

    def execute(
        self,
        input_path: str,
        keep_ranges: Optional[list[TimeInterval]] = None,
        words: Optional[list[Word]] = None,
        deleted_word_ids: Iterable[str] = (),
        enhance_audio: bool = False,
    ) -> str:
        """Render the kept parts of ``input_path``. Returns the output path.

        Either explicit ``keep_ranges`` or the editor's ``words`` with the ids
        the user deleted must be given.
        """
        if keep_ranges is not None:
            duration = self._transcoder.get_duration(input_path)
            ranges = normalize_keep_ranges(keep_ranges, duration)
        elif words is not None:
            ranges = keep_ranges_from_words(words, deleted_word_ids)
        else:
            raise ValueError("Either keep_ranges or words must be given")

        if not ranges:
            raise ValueError("Nothing to export: no keep ranges remain")

        output_path = naming.edited_output_path(input_path)
        logger.info(f"Exporting {len(ranges)} ranges from {input_path}")
        return self._transcoder.cut_and_export(input_path, ranges, output_path, enhance_audio)
