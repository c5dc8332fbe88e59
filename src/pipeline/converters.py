# file: src/pipeline/converters.py
import abc
import asyncio
from pathlib import Path
from typing import Any, List, Protocol

from pipeline.errors import UpstreamFailure


class Converter(Protocol):
    """Local file in, local file out. The pipeline only sees this interface."""
    async def convert(self, input_path: Path) -> Path: ...


class CommandLineConverter(abc.ABC):
    """Runs one external tool per call, bounded by a timeout."""

    step = "tool"

    def __init__(self, binary: str, logger: Any, timeout: float = 60.0):
        self.binary = binary
        self.logger = logger
        self.timeout = timeout

    @abc.abstractmethod
    def build_command(self, input_path: Path, output_path: Path) -> List[str]: ...

    @abc.abstractmethod
    def output_path(self, input_path: Path) -> Path: ...

    async def convert(self, input_path: Path) -> Path:
        output_path = self.output_path(input_path)
        command = self.build_command(input_path, output_path)
        loop = asyncio.get_running_loop()
        started = loop.time()
        try:
            process = await asyncio.create_subprocess_exec(
                *command,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            self.logger.error(f"{self.step}: cannot start {self.binary}: {e}")
            raise UpstreamFailure(self.step, f"cannot start {Path(self.binary).name}")

        try:
            _, stderr = await asyncio.wait_for(process.communicate(), timeout=self.timeout)
        except asyncio.TimeoutError:
            process.kill()
            await process.wait()
            self.logger.error(f"{self.step}: {self.binary} timed out after {self.timeout}s on {input_path.name}")
            raise UpstreamFailure(self.step, "timed out")

        if process.returncode != 0:
            self.logger.error(f"{self.step}: {self.binary} exited {process.returncode} on {input_path.name}: "
                              f"{stderr.decode(errors='replace').strip()[-500:]}")
            raise UpstreamFailure(self.step, f"exit code {process.returncode}")
        if not output_path.exists():
            raise UpstreamFailure(self.step, f"{output_path.name} was not produced")
        self.logger.debug(f"{self.step}: {input_path.name} → {output_path.name} "
                          f"in {int((loop.time() - started) * 1000)}ms")
        return output_path


class FfmpegTranscoder(CommandLineConverter):
    """mp3 → wav next to the input; -y overwrites a stale file."""

    step = "transcode"

    def output_path(self, input_path: Path) -> Path:
        return input_path.with_suffix(".wav")

    def build_command(self, input_path: Path, output_path: Path) -> List[str]:
        return [self.binary, "-y", "-loglevel", "error", "-i", str(input_path), str(output_path)]


class RhubarbVisemeExtractor(CommandLineConverter):
    """wav → rhubarb JSON mouth cues next to the input."""

    step = "lipsync"

    def __init__(self, binary: str, logger: Any, timeout: float = 60.0, recognizer: str = "phonetic"):
        super().__init__(binary, logger, timeout)
        self.recognizer = recognizer

    def output_path(self, input_path: Path) -> Path:
        return input_path.with_suffix(".json")

    def build_command(self, input_path: Path, output_path: Path) -> List[str]:
        return [self.binary, "-f", "json", "-o", str(output_path), str(input_path), "-r", self.recognizer]
