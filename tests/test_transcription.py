import httpx
import pytest

from config import HTTPX_CONFIG, OPENAI_CONFIG, VOICE_CONFIG
from pipeline.errors import TranscriptionError, UpstreamFailure
from pipeline.transcription import SpeechTranscriber
from utils.httpx_manager import HttpxManager


def _transcriber(logger_manager, tmp_path, handler, api_key="sk-test"):
    manager = HttpxManager(logger_manager=logger_manager, config=HTTPX_CONFIG,
                           transport=httpx.MockTransport(handler))
    return SpeechTranscriber(
        manager,
        logger_manager,
        dict(OPENAI_CONFIG, API_KEY=api_key, BASE_URL="https://llm.test/v1"),
        dict(VOICE_CONFIG, TMP_DIR=str(tmp_path / "voice")),
    )


@pytest.mark.asyncio
async def test_transcribe_uploads_clip_and_returns_trimmed_text(logger_manager, tmp_path):
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["auth"] = request.headers["Authorization"]
        seen["body"] = request.content
        return httpx.Response(200, text="  Hello there  \n")

    transcriber = _transcriber(logger_manager, tmp_path, handler)
    text = await transcriber.transcribe(b"webm-bytes", ".webm")

    assert text == "Hello there"
    assert seen["url"] == "https://llm.test/v1/audio/transcriptions"
    assert seen["auth"] == "Bearer sk-test"
    assert b"webm-bytes" in seen["body"]
    assert OPENAI_CONFIG["TRANSCRIBE_MODEL"].encode() in seen["body"]
    assert list((tmp_path / "voice").iterdir()) == []


@pytest.mark.asyncio
async def test_json_answer_is_accepted(logger_manager, tmp_path):
    transcriber = _transcriber(logger_manager, tmp_path, lambda request: httpx.Response(200, json={"text": "Hi"}))
    assert await transcriber.transcribe(b"clip") == "Hi"


@pytest.mark.asyncio
async def test_blank_transcript_is_none(logger_manager, tmp_path):
    transcriber = _transcriber(logger_manager, tmp_path, lambda request: httpx.Response(200, text="   "))
    assert await transcriber.transcribe(b"clip", "ogg") is None


@pytest.mark.asyncio
async def test_rejected_audio_is_transcription_error(logger_manager, tmp_path):
    transcriber = _transcriber(logger_manager, tmp_path,
                               lambda request: httpx.Response(400, json={"error": "unsupported format"}))
    with pytest.raises(TranscriptionError):
        await transcriber.transcribe(b"not audio", ".txt")
    assert list((tmp_path / "voice").iterdir()) == []


@pytest.mark.asyncio
@pytest.mark.parametrize("status", [401, 429, 500, 503])
async def test_provider_failure_is_upstream_failure(logger_manager, tmp_path, status):
    transcriber = _transcriber(logger_manager, tmp_path, lambda request: httpx.Response(status))
    with pytest.raises(UpstreamFailure) as exc_info:
        await transcriber.transcribe(b"clip")
    assert exc_info.value.step == "transcribe"
    assert list((tmp_path / "voice").iterdir()) == []


@pytest.mark.parametrize("key,expected", [("sk-test", True), ("", False), ("-", False)])
def test_configured_flag(logger_manager, tmp_path, key, expected):
    transcriber = _transcriber(logger_manager, tmp_path, lambda request: httpx.Response(200), api_key=key)
    assert transcriber.configured is expected
