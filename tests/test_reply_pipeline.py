import asyncio
import base64
import json
import threading
from pathlib import Path

import pytest

from conftest import FakeExtractor, FakeLLM, FakeTranscoder, FakeTTS
from pipeline.canned import INTRO_SEGMENTS, MISSING_CONFIG_SEGMENTS, CannedReplies
from pipeline.errors import UpstreamFailure
from pipeline.orchestrator import ReplyPipeline

REPLY = json.dumps({"messages": [
    {"text": "Hello there!", "facialExpression": "smile", "animation": "Talking_0"},
    {"text": "I missed you.", "facialExpression": "sad", "animation": "Crying"},
    {"text": "Let's dance!", "facialExpression": "funnyFace", "animation": "Rumba"},
]})


def _pipeline(logger_manager, pipeline_config, llm=None, tts=None, transcoder=None, extractor=None):
    return ReplyPipeline(
        logger_manager=logger_manager,
        config=pipeline_config,
        llm=llm or FakeLLM(REPLY),
        tts=tts or FakeTTS(),
        transcoder=transcoder or FakeTranscoder(),
        extractor=extractor or FakeExtractor(),
    )


@pytest.mark.asyncio
@pytest.mark.parametrize("message", [None, ""])
async def test_empty_message_serves_introduction_without_calls(logger_manager, pipeline_config, message):
    llm, tts = FakeLLM(REPLY), FakeTTS()
    segments = await _pipeline(logger_manager, pipeline_config, llm=llm, tts=tts).run(message)
    assert [s.text for s in segments] == [text for _, text, _, _ in INTRO_SEGMENTS]
    assert [s.animation.value for s in segments] == ["Talking_1", "Crying"]
    assert base64.b64decode(segments[0].audio) == b"RIFF-intro_0"
    assert segments[1].lipsync["metadata"]["soundFile"] == "intro_1.wav"
    assert llm.calls == [] and tts.calls == []


@pytest.mark.asyncio
@pytest.mark.parametrize("llm_ok,tts_ok", [(False, True), (True, False), (False, False)])
async def test_missing_credentials_serve_configuration_notice(logger_manager, pipeline_config, llm_ok, tts_ok):
    llm, tts = FakeLLM(REPLY, configured=llm_ok), FakeTTS(configured=tts_ok)
    segments = await _pipeline(logger_manager, pipeline_config, llm=llm, tts=tts).run("Hi")
    assert [s.text for s in segments] == [text for _, text, _, _ in MISSING_CONFIG_SEGMENTS]
    assert [s.facialExpression.value for s in segments] == ["angry", "smile"]
    assert llm.calls == [] and tts.calls == []


@pytest.mark.asyncio
async def test_full_run_keeps_order_and_pairs_audio_with_its_own_text(logger_manager, pipeline_config):
    tts = FakeTTS()
    segments = await _pipeline(logger_manager, pipeline_config, tts=tts).run("Hi")

    assert [s.text for s in segments] == ["Hello there!", "I missed you.", "Let's dance!"]
    assert [s.animation.value for s in segments] == ["Talking_0", "Crying", "Rumba"]
    assert tts.calls == ["Hello there!", "I missed you.", "Let's dance!"]
    for segment in segments:
        assert base64.b64decode(segment.audio) == f"mp3:{segment.text}".encode()
        assert segment.lipsync["metadata"]["source"] == f"mp3:{segment.text}"
        assert segment.lipsync["mouthCues"] == [{"start": 0.0, "end": 0.25, "value": "A"}]


@pytest.mark.asyncio
async def test_steps_use_index_keyed_files_inside_one_run_directory(logger_manager, pipeline_config):
    transcoder, extractor = FakeTranscoder(), FakeExtractor()
    await _pipeline(logger_manager, pipeline_config, transcoder=transcoder, extractor=extractor).run("Hi")
    assert [p.name for p in transcoder.inputs] == ["message_0.mp3", "message_1.mp3", "message_2.mp3"]
    assert [p.name for p in extractor.inputs] == ["message_0.wav", "message_1.wav", "message_2.wav"]
    assert len({p.parent for p in transcoder.inputs}) == 1
    # scratch directory is gone once the run is over
    assert not transcoder.inputs[0].parent.exists()
    assert list(Path(pipeline_config["SCRATCH_DIR"]).iterdir()) == []


@pytest.mark.asyncio
async def test_tts_failure_aborts_whole_run(logger_manager, pipeline_config):
    tts = FakeTTS(fail_on=1)
    extractor = FakeExtractor()
    with pytest.raises(UpstreamFailure) as exc_info:
        await _pipeline(logger_manager, pipeline_config, tts=tts, extractor=extractor).run("Hi")
    assert exc_info.value.step == "tts"
    assert exc_info.value.index == 1
    # third segment never started
    assert len(tts.calls) == 2
    assert len(extractor.inputs) == 1
    assert list(Path(pipeline_config["SCRATCH_DIR"]).iterdir()) == []


@pytest.mark.asyncio
async def test_extractor_failure_is_pinned_to_segment_and_step(logger_manager, pipeline_config):
    with pytest.raises(UpstreamFailure) as exc_info:
        await _pipeline(logger_manager, pipeline_config, extractor=FakeExtractor(fail=True)).run("Hi")
    assert exc_info.value.step == "lipsync"
    assert exc_info.value.index == 0


@pytest.mark.asyncio
async def test_malformed_llm_reply_fails_before_any_synthesis(logger_manager, pipeline_config):
    tts = FakeTTS()
    with pytest.raises(UpstreamFailure) as exc_info:
        await _pipeline(logger_manager, pipeline_config, llm=FakeLLM("Sorry, I can't do JSON"), tts=tts).run("Hi")
    assert exc_info.value.step == "llm"
    assert tts.calls == []


@pytest.mark.asyncio
async def test_concurrent_runs_do_not_mix_assets(logger_manager, pipeline_config):
    class SlowTTS(FakeTTS):
        async def synthesize(self, text):
            await asyncio.sleep(0.01)
            return await super().synthesize(text)

    def reply(prefix):
        return json.dumps([{"text": f"{prefix}-{i}", "facialExpression": "default", "animation": "Idle"}
                           for i in range(3)])

    first = _pipeline(logger_manager, pipeline_config, llm=FakeLLM(reply("first")), tts=SlowTTS())
    second = _pipeline(logger_manager, pipeline_config, llm=FakeLLM(reply("second")), tts=SlowTTS())
    results = await asyncio.gather(first.run("a"), second.run("b"), first.run("c"))

    for prefix, segments in zip(["first", "second", "first"], results):
        assert [s.text for s in segments] == [f"{prefix}-{i}" for i in range(3)]
        for segment in segments:
            assert segment.lipsync["metadata"]["source"] == f"mp3:{segment.text}"


@pytest.mark.asyncio
async def test_missing_canned_assets_degrade_to_empty_payloads(tmp_path, logger):
    canned = CannedReplies(str(tmp_path / "nowhere"), logger)
    segments = await canned.introduction()
    assert len(segments) == 2
    assert all(s.audio == "" for s in segments)
    assert all(s.lipsync == {"metadata": {}, "mouthCues": []} for s in segments)


@pytest.mark.asyncio
async def test_canned_assets_are_read_off_the_event_loop(canned_dir, logger):
    readers = []

    class RecordingCanned(CannedReplies):
        def _read_audio(self, name):
            readers.append(threading.get_ident())
            return super()._read_audio(name)

    segments = await RecordingCanned(str(canned_dir), logger).configuration_missing()
    assert base64.b64decode(segments[0].audio) == b"RIFF-api_0"
    assert len(readers) == 2
    assert threading.get_ident() not in readers
