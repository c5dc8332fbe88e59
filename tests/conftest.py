import json
from pathlib import Path
from typing import List

from utils.env_loader import load_env

load_env()

import fakeredis
import pytest

from config import AUTH_CONFIG, PIPELINE_CONFIG
from pipeline.errors import UpstreamFailure
from utils.logger import Logger


@pytest.fixture
def logger_manager(tmp_path) -> Logger:
    return Logger(project_root=str(tmp_path))


@pytest.fixture
def logger(logger_manager):
    return logger_manager.create_logger(logger_name="tests", logging_level="DEBUG")


@pytest.fixture
def fake_redis():
    return fakeredis.FakeAsyncRedis(server=fakeredis.FakeServer(), decode_responses=True)


@pytest.fixture
def auth_config() -> dict:
    # cheap scrypt cost keeps the suite fast; the algorithm is the same
    return dict(AUTH_CONFIG, SCRYPT_N=1024, SCRYPT_R=8, SCRYPT_P=1)


@pytest.fixture
def canned_dir(tmp_path) -> Path:
    assets = tmp_path / "audios"
    assets.mkdir()
    for name in ("intro_0", "intro_1", "api_0", "api_1"):
        (assets / f"{name}.wav").write_bytes(f"RIFF-{name}".encode())
        (assets / f"{name}.json").write_text(json.dumps(
            {"metadata": {"soundFile": f"{name}.wav", "duration": 1.0},
             "mouthCues": [{"start": 0.0, "end": 0.5, "value": "B"}, {"start": 0.5, "end": 1.0, "value": "X"}]}
        ))
    return assets


@pytest.fixture
def pipeline_config(tmp_path, canned_dir) -> dict:
    return dict(PIPELINE_CONFIG, SCRATCH_DIR=str(tmp_path / "scratch"), CANNED_AUDIO_DIR=str(canned_dir),
                MAX_CONCURRENT_RUNS=4, LOGGING_LEVEL="DEBUG")


class FakeLLM:
    def __init__(self, content: str = "", configured: bool = True, error: Exception = None):
        self.content = content
        self.configured = configured
        self.error = error
        self.calls: List[str] = []

    async def complete(self, user_message: str) -> str:
        self.calls.append(user_message)
        if self.error:
            raise self.error
        return self.content


class FakeTTS:
    """Audio bytes are derived from the text so tests can trace every segment."""

    def __init__(self, configured: bool = True, fail_on: int = None):
        self.configured = configured
        self.fail_on = fail_on
        self.calls: List[str] = []

    async def synthesize(self, text: str) -> bytes:
        self.calls.append(text)
        if self.fail_on is not None and len(self.calls) - 1 == self.fail_on:
            raise UpstreamFailure("tts", "synthesis rejected (HTTP 500)")
        return f"mp3:{text}".encode()

    async def list_voices(self):
        return {"voices": [{"voice_id": "v1", "name": "Bella"}]}


class FakeTranscoder:
    """Copies the mp3 bytes into a .wav next to it."""

    def __init__(self):
        self.inputs: List[Path] = []

    async def convert(self, input_path: Path) -> Path:
        self.inputs.append(input_path)
        output = input_path.with_suffix(".wav")
        output.write_bytes(input_path.read_bytes())
        return output


class FakeExtractor:
    """Writes a cue document recording which audio it was computed from."""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.inputs: List[Path] = []

    async def convert(self, input_path: Path) -> Path:
        self.inputs.append(input_path)
        if self.fail:
            raise UpstreamFailure("lipsync", "exit code 1")
        output = input_path.with_suffix(".json")
        output.write_text(json.dumps({
            "metadata": {"soundFile": input_path.name, "source": input_path.read_bytes().decode()},
            "mouthCues": [{"start": 0.0, "end": 0.25, "value": "A"}],
        }))
        return output
