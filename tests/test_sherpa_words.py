from types import SimpleNamespace

import numpy as np
import pytest

from talkcut.adapters.sherpa import SherpaRecognizerAdapter
from talkcut.adapters.sherpa.recognizer import (
    REQUIRED_FILES, group_words_into_segments, is_control_token, resolve_model_dir, tokens_to_words,
)
from talkcut.domain.errors import ExternalToolError, MissingResourceError
from talkcut.domain.models import Word


def test_control_tokens():
    assert is_control_token("[BLANK_AUDIO]")
    assert is_control_token(" <|en|>")
    assert not is_control_token("▁hello")


def test_subword_tokens_join_into_words():
    tokens = ["▁hel", "lo", "▁world", "[BLANK_AUDIO]", "▁again"]
    timestamps = [0.0, 0.1, 0.5, 0.7, 1.0]
    words = tokens_to_words(tokens, timestamps, audio_duration=2.0)

    assert [w.text for w in words] == ["hello", "world", "again"]
    assert [w.id for w in words] == ["w0", "w1", "w2"]
    assert words[0].start == 0.0
    assert words[0].end == pytest.approx(0.2)
    assert words[2].end == pytest.approx(1.1)


def test_word_end_never_passes_next_word_or_audio_end():
    words = tokens_to_words([" a", " b"], [0.0, 0.05], audio_duration=0.08, first_index=7)
    assert words[0].end == pytest.approx(0.05)
    assert words[1].end == pytest.approx(0.08)
    assert words[1].id == "w8"


def test_whisper_style_punctuation_attaches_to_word():
    words = tokens_to_words([" Hello", ",", " world", "."], [0.0, 0.3, 0.4, 0.8], audio_duration=1.0)
    assert [w.text for w in words] == ["Hello,", "world."]


def _word(i, start, end):
    return Word(id=f"w{i}", text=f"t{i}", start=start, end=end)


def test_segments_split_on_silence_gap():
    words = [_word(0, 0.0, 0.4), _word(1, 0.5, 0.9), _word(2, 2.0, 2.4)]
    segments = group_words_into_segments(words)
    assert [[w.id for w in s.words] for s in segments] == [["w0", "w1"], ["w2"]]
    assert [s.id for s in segments] == [0, 1]
    assert (segments[0].start, segments[0].end) == (0.0, 0.9)
    assert segments[0].text == "t0 t1"


def test_segments_split_when_too_long():
    words = [_word(i, i * 0.5, i * 0.5 + 0.45) for i in range(20)]
    segments = group_words_into_segments(words)
    assert len(segments) > 1
    assert all(s.end - s.start <= 6.0 for s in segments)


def test_resolve_model_dir(tmp_path):
    model_dir = tmp_path / "parakeet"
    model_dir.mkdir()
    for name in REQUIRED_FILES["transducer"]:
        (model_dir / name).write_bytes(b"")

    assert resolve_model_dir("transducer", search_paths=[str(tmp_path / "nope"), str(model_dir)]) == str(model_dir)
    assert resolve_model_dir("transducer", explicit=str(model_dir), search_paths=[]) == str(model_dir)

    with pytest.raises(MissingResourceError) as exc:
        resolve_model_dir("whisper", search_paths=[str(tmp_path / "nope")])
    assert str(tmp_path / "nope") in exc.value.searched


def test_unknown_model_type():
    with pytest.raises(ValueError):
        SherpaRecognizerAdapter(model_type="ctc")


def test_load_with_missing_files(tmp_path):
    adapter = SherpaRecognizerAdapter()
    with pytest.raises(MissingResourceError):
        adapter.load(str(tmp_path))
    assert not adapter.is_loaded()


class _FakeStream:
    def __init__(self, result):
        self.result = result
        self.accepted = None

    def accept_waveform(self, sample_rate, samples):
        self.accepted = (sample_rate, len(samples))


class _FakeOfflineRecognizer:
    def __init__(self, results):
        self._results = list(results)
        self.streams = []

    def create_stream(self):
        stream = _FakeStream(self._results[len(self.streams)])
        self.streams.append(stream)
        return stream

    def decode_streams(self, streams):
        pass


def _loaded_adapter(results):
    adapter = SherpaRecognizerAdapter()
    fake = _FakeOfflineRecognizer(results)
    adapter._recognizers[None] = fake
    return adapter, fake


def test_recognize_offsets_tokens_per_chunk():
    adapter, fake = _loaded_adapter([
        SimpleNamespace(tokens=["▁hi"], timestamps=[1.0], text="hi"),
        SimpleNamespace(tokens=["▁bye"], timestamps=[2.0], text="bye"),
    ])
    segments = adapter.recognize(np.zeros(16000 * 100, dtype=np.float32))

    assert [s.text for s in segments] == ["hi", "bye"]
    assert segments[1].words[0].start == pytest.approx(82.0)
    assert [w.id for s in segments for w in s.words] == ["w0", "w1"]
    assert fake.streams[0].accepted == (16000, 16000 * 80)
    assert fake.streams[1].accepted == (16000, 16000 * 20)


def test_recognize_without_timestamps_spreads_text():
    adapter, _ = _loaded_adapter([
        SimpleNamespace(tokens=[], timestamps=[], text="[MUSIC] two words"),
    ])
    segments = adapter.recognize(np.zeros(16000 * 2, dtype=np.float32))
    words = [w for s in segments for w in s.words]
    assert [w.text for w in words] == ["two", "words"]
    assert words[1].end == pytest.approx(2.0)


def test_recognize_empty_audio():
    adapter, _ = _loaded_adapter([])
    assert adapter.recognize(np.zeros(0, dtype=np.float32)) == []


def test_recognize_requires_load():
    with pytest.raises(ExternalToolError):
        SherpaRecognizerAdapter().recognize(np.zeros(16000, dtype=np.float32))


def test_decode_failure_is_external_tool_error():
    adapter, fake = _loaded_adapter([SimpleNamespace(tokens=[], timestamps=[], text="")])

    def explode(streams):
        raise RuntimeError("onnxruntime error")

    fake.decode_streams = explode
    with pytest.raises(ExternalToolError) as exc:
        adapter.recognize(np.zeros(16000, dtype=np.float32))
    assert "onnxruntime error" in str(exc.value)
