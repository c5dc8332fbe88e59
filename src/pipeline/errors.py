# file: src/pipeline/errors.py
from typing import Optional


class UpstreamFailure(Exception):
    """
    A provider or external tool failed (LLM, TTS, transcoder, viseme extractor,
    speech-to-text transport). Aborts the whole pipeline run; the HTTP layer
    answers 500 without the provider's details.
    """

    def __init__(self, step: str, message: str, index: Optional[int] = None):
        self.step = step
        self.index = index
        self.message = message
        super().__init__(str(self))

    def __str__(self) -> str:
        where = self.step if self.index is None else f"{self.step}[{self.index}]"
        return f"{where}: {self.message}"


class TranscriptionError(Exception):
    """Speech-to-text provider rejected the uploaded audio."""
