import os

import pytest

from talkcut.adapters.local.event_progress import EventProgressAdapter
from talkcut.domain.errors import (
    ExternalToolError, PipelineCancelledError, PipelineError, ProgressDeliveryError,
)
from talkcut.domain.models import (
    CancellationToken, PipelineCompleted, PipelineConfig, PipelineFailed, PipelineStage,
    StageCompleted, StageFailed, StageProgress, StageStarted,
)
from talkcut.use_cases.process_video import ProcessVideoUseCase

from fakes import FakeRecognizer, FakeTranscoder

T = PipelineStage.TRANSCRIBE
D = PipelineStage.DETECT_SILENCES


@pytest.fixture
def input_path(tmp_path):
    return str(tmp_path / "talk.mp4")


def _run(transcoder, input_path, config=None, recognizer=None, cancel_token=None, sink=None):
    events = []
    progress = EventProgressAdapter(sink or events.append)
    use_case = ProcessVideoUseCase(transcoder, recognizer or FakeRecognizer(), progress)
    result = use_case.execute(input_path, config or PipelineConfig(), cancel_token)
    return result, events


def test_cut_run_emits_ordered_events(input_path):
    transcoder = FakeTranscoder(silences=[(2.0, 3.0), (5.0, 5.4)], processed_duration=8.6)
    result, events = _run(transcoder, input_path)

    assert events[:-1] == [
        StageStarted(T),
        StageProgress(T, 0.5),
        StageProgress(T, 1.0),
        StageCompleted(T),
        StageStarted(D),
        StageCompleted(D),
        StageStarted(PipelineStage.CUT_SILENCES),
        StageCompleted(PipelineStage.CUT_SILENCES),
    ]
    assert events[-1] == PipelineCompleted(result)


def test_cut_run_result(input_path):
    transcoder = FakeTranscoder(silences=[(2.0, 3.0), (5.0, 5.4)], processed_duration=8.6)
    result, _ = _run(transcoder, input_path)

    assert result.output_path == input_path[:-len(".mp4")] + "_edited.mp4"
    assert [r.as_tuple() for r in result.keep_ranges] == [
        (pytest.approx(0.0), pytest.approx(2.2)),
        (pytest.approx(2.8), pytest.approx(10.0)),
    ]
    _, _, ranges, output, enhance = transcoder.called("cut_and_export")[0]
    assert ranges == result.keep_ranges
    assert output == result.output_path
    assert enhance is True

    stats = result.stats
    assert stats.original_duration == 10.0
    assert stats.processed_duration == 8.6
    assert stats.removed_silence_duration == pytest.approx(1.4)
    assert stats.silence_percentage == pytest.approx(14.0)
    assert stats.output_size_bytes == 2048


def test_cut_run_remaps_transcript(input_path):
    transcoder = FakeTranscoder(silences=[(2.0, 3.0), (5.0, 5.4)])
    result, _ = _run(transcoder, input_path)

    assert result.source_transcript.segments[1].start == 3.0
    assert result.transcript.segments[1].start == pytest.approx(2.4)
    assert [w.id for w in result.transcript.words] == [w.id for w in result.source_transcript.words]


def test_config_reaches_transcoder_and_recognizer(input_path):
    transcoder = FakeTranscoder()
    recognizer = FakeRecognizer()
    config = PipelineConfig(silence_threshold_db=-42.0, silence_min_duration=0.8, language="de")
    _run(transcoder, input_path, config, recognizer=recognizer)

    assert transcoder.called("detect_silences")[0][2:] == (-42.0, 0.8)
    assert transcoder.called("extract_pcm")[0][2:] == (input_path + ".pcm", 16000, 1)
    assert recognizer.received == [(16000, 16000, "de")]


def test_no_silences_enhances_only(input_path):
    transcoder = FakeTranscoder(silences=[])
    result, events = _run(transcoder, input_path)

    assert StageStarted(PipelineStage.ENHANCE_AUDIO) in events
    assert transcoder.called("cut_and_export") == []
    call = transcoder.called("enhance_audio")[0]
    assert call[3] == input_path + ".enhanced.aac"
    assert result.stats.removed_silence_duration == 0.0
    assert result.keep_ranges == []
    assert result.transcript is result.source_transcript


def test_cut_disabled_enhances_only(input_path):
    transcoder = FakeTranscoder(silences=[(2.0, 3.0)])
    result, _ = _run(transcoder, input_path, PipelineConfig(cut_silences=False))

    assert transcoder.called("cut_and_export") == []
    assert len(transcoder.called("enhance_audio")) == 1
    assert result.stats.removed_silence_duration == pytest.approx(1.0)
    assert result.stats.silence_percentage == pytest.approx(10.0)


def test_nothing_requested_copies(input_path):
    transcoder = FakeTranscoder(silences=[(2.0, 3.0)])
    result, events = _run(transcoder, input_path, PipelineConfig(cut_silences=False, enhance_audio=False))

    assert StageStarted(PipelineStage.COPY) in events
    assert len(transcoder.called("copy_video")) == 1
    assert result.keep_ranges == []
    assert result.stats.removed_silence_duration == pytest.approx(1.0)
    assert result.stats.silence_percentage == pytest.approx(10.0)


def test_scratch_files_removed_after_success(input_path):
    _run(FakeTranscoder(silences=[]), input_path)
    assert not os.path.exists(input_path + ".pcm")
    assert not os.path.exists(input_path + ".enhanced.aac")


def test_stage_failure_emits_one_terminal_event(input_path):
    transcoder = FakeTranscoder(fail_on="detect_silences")
    events = []
    use_case = ProcessVideoUseCase(transcoder, FakeRecognizer(), EventProgressAdapter(events.append))

    with pytest.raises(PipelineError) as exc:
        use_case.execute(input_path, PipelineConfig())

    assert exc.value.stage == "detect_silences"
    assert isinstance(exc.value.cause, ExternalToolError)
    assert "simulated stderr" in str(exc.value)
    assert events[-3:] == [
        StageStarted(D),
        StageFailed(D, str(exc.value.cause)),
        PipelineFailed(D, str(exc.value.cause)),
    ]
    assert sum(isinstance(e, PipelineFailed) for e in events) == 1
    assert not any(isinstance(e, PipelineCompleted) for e in events)
    assert not os.path.exists(input_path + ".pcm")


def test_recognizer_failure_tags_transcribe(input_path):
    recognizer = FakeRecognizer(error=ExternalToolError("sherpa-onnx", "recognition failed"))
    with pytest.raises(PipelineError) as exc:
        _run(FakeTranscoder(), input_path, recognizer=recognizer)
    assert exc.value.stage == "transcribe"


def test_duration_failure_tags_transcribe(input_path):
    transcoder = FakeTranscoder(silences=[(2.0, 3.0)], fail_on="get_duration")
    with pytest.raises(PipelineError) as exc:
        _run(transcoder, input_path)
    assert exc.value.stage == "transcribe"


def test_everything_silent_fails_in_cut_stage(input_path):
    transcoder = FakeTranscoder(silences=[(0.0, 10.0)])
    events = []
    use_case = ProcessVideoUseCase(transcoder, FakeRecognizer(), EventProgressAdapter(events.append))

    with pytest.raises(PipelineError) as exc:
        use_case.execute(input_path, PipelineConfig(cut_margin=0.0))
    assert exc.value.stage == "cut_silences"
    assert isinstance(exc.value.cause, ValueError)
    assert isinstance(events[-2], StageFailed)
    assert transcoder.called("cut_and_export") == []


def test_cancelled_before_start(input_path):
    token = CancellationToken()
    token.cancel()
    events = []
    use_case = ProcessVideoUseCase(FakeTranscoder(), FakeRecognizer(), EventProgressAdapter(events.append))

    with pytest.raises(PipelineError) as exc:
        use_case.execute(input_path, PipelineConfig(), token)

    assert isinstance(exc.value.cause, PipelineCancelledError)
    # the stage never started, so only the terminal event is sent
    assert len(events) == 1
    assert isinstance(events[0], PipelineFailed)
    assert events[0].stage == T


def test_cancelled_between_stages(input_path):
    token = CancellationToken()
    events = []

    def sink(event):
        events.append(event)
        if event == StageCompleted(T):
            token.cancel()

    transcoder = FakeTranscoder()
    use_case = ProcessVideoUseCase(transcoder, FakeRecognizer(), EventProgressAdapter(sink))
    with pytest.raises(PipelineError) as exc:
        use_case.execute(input_path, PipelineConfig(), token)

    assert exc.value.stage == "detect_silences"
    assert transcoder.called("detect_silences") == []
    assert events[-1] == PipelineFailed(D, str(exc.value.cause))


def test_observer_failure_aborts_without_more_events(input_path):
    events = []

    def sink(event):
        if isinstance(event, StageProgress):
            raise BrokenPipeError("receiver closed")
        events.append(event)

    transcoder = FakeTranscoder()
    use_case = ProcessVideoUseCase(transcoder, FakeRecognizer(), EventProgressAdapter(sink))
    with pytest.raises(ProgressDeliveryError):
        use_case.execute(input_path, PipelineConfig())

    assert events == [StageStarted(T)]
    assert transcoder.called("detect_silences") == []
    assert not os.path.exists(input_path + ".pcm")


def test_use_case_can_run_twice(input_path):
    transcoder = FakeTranscoder(silences=[(2.0, 3.0)])
    events = []
    use_case = ProcessVideoUseCase(transcoder, FakeRecognizer(), EventProgressAdapter(events.append))

    first = use_case.execute(input_path, PipelineConfig())
    second = use_case.execute(input_path, PipelineConfig())
    assert first.keep_ranges == second.keep_ranges
    assert sum(isinstance(e, PipelineCompleted) for e in events) == 2


class _FailingDetectTranscoder(FakeTranscoder):
    def __init__(self, failing_path, **kwargs):
        super().__init__(**kwargs)
        self.failing_path = failing_path

    def detect_silences(self, input_path, noise_floor_db, min_duration):
        if input_path == self.failing_path:
            raise ExternalToolError("ffmpeg", "detect_silences failed", "simulated stderr")
        return super().detect_silences(input_path, noise_floor_db, min_duration)


def test_overlapping_runs_keep_their_own_stage(tmp_path):
    first_path = str(tmp_path / "first.mp4")
    second_path = str(tmp_path / "second.mp4")
    transcoder = _FailingDetectTranscoder(first_path, silences=[])
    events = []
    nested = []

    def sink(event):
        events.append(event)
        # start a second run on the same instance while the first is mid-flight
        if event == StageStarted(D) and not nested:
            nested.append(use_case.execute(second_path, PipelineConfig()))

    use_case = ProcessVideoUseCase(transcoder, FakeRecognizer(), EventProgressAdapter(sink))
    with pytest.raises(PipelineError) as exc:
        use_case.execute(first_path, PipelineConfig())

    assert nested[0].output_path == str(tmp_path / "second_edited.mp4")
    assert exc.value.stage == "detect_silences"
    assert events[-2:] == [
        StageFailed(D, str(exc.value.cause)),
        PipelineFailed(D, str(exc.value.cause)),
    ]


def test_use_case_recovers_after_failed_run(input_path):
    transcoder = FakeTranscoder(silences=[(2.0, 3.0)], fail_on="cut_and_export")
    events = []
    use_case = ProcessVideoUseCase(transcoder, FakeRecognizer(), EventProgressAdapter(events.append))
    with pytest.raises(PipelineError):
        use_case.execute(input_path, PipelineConfig())

    transcoder.fail_on = None
    events.clear()
    result = use_case.execute(input_path, PipelineConfig())
    assert events[0] == StageStarted(T)
    assert events[-1] == PipelineCompleted(result)
