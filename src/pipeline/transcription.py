# file: src/pipeline/transcription.py
import asyncio
import os
import uuid
from pathlib import Path
from typing import Optional

import httpx

from pipeline.errors import TranscriptionError, UpstreamFailure
from utils.httpx_manager import HttpxManager


class SpeechTranscriber:
    """Uploaded voice clip → text through the provider's /audio/transcriptions endpoint."""

    def __init__(self, httpx_manager: HttpxManager, logger_manager: object, openai_config: dict, voice_config: dict):
        self.httpx_manager = httpx_manager
        self.config = openai_config
        self.voice_config = voice_config
        self.logger = logger_manager.create_logger(logger_name="SpeechTranscriber",
                                                   logging_level=voice_config.get("LOGGING_LEVEL", "INFO"))
        self.url = openai_config["BASE_URL"].rstrip("/") + "/audio/transcriptions"
        self.tmp_dir = Path(voice_config["TMP_DIR"])

    @property
    def configured(self) -> bool:
        key = self.config.get("API_KEY") or ""
        return key not in ("", "-")

    def _scratch_path(self, extension: Optional[str]) -> Path:
        extension = extension or self.voice_config.get("DEFAULT_EXTENSION", ".webm")
        if not extension.startswith("."):
            extension = f".{extension}"
        return self.tmp_dir / f"voice-{uuid.uuid4().hex}{extension}"

    @staticmethod
    def _extract_text(resp: httpx.Response) -> str:
        # response_format=text gives a bare string; some compatible servers still answer {"text": ...}
        if resp.headers.get("content-type", "").startswith("application/json"):
            try:
                body = resp.json()
            except ValueError:
                return resp.text.strip()
            if isinstance(body, dict):
                return str(body.get("text") or "").strip()
            if isinstance(body, str):
                return body.strip()
        return resp.text.strip()

    async def transcribe(self, audio: bytes, extension: Optional[str] = None) -> Optional[str]:
        await asyncio.to_thread(self.tmp_dir.mkdir, parents=True, exist_ok=True)
        scratch = self._scratch_path(extension)
        await asyncio.to_thread(scratch.write_bytes, audio)
        try:
            # file is re-read from disk so the provider sees exactly what was stored
            payload = await asyncio.to_thread(scratch.read_bytes)
            try:
                resp = await self.httpx_manager.post_multipart(
                    self.url,
                    data={"model": self.config["TRANSCRIBE_MODEL"], "response_format": "text"},
                    files={"file": (scratch.name, payload, "application/octet-stream")},
                    headers={"Authorization": f"Bearer {self.config['API_KEY']}"},
                    step="transcribe",
                )
            except httpx.HTTPStatusError as e:
                if 400 <= e.response.status_code < 500 and e.response.status_code not in (401, 403, 429):
                    raise TranscriptionError(f"audio rejected by speech-to-text (HTTP {e.response.status_code})")
                raise UpstreamFailure("transcribe", f"speech-to-text failed (HTTP {e.response.status_code})")
            text = self._extract_text(resp)
            self.logger.debug(f"Transcribed {len(audio)} bytes → {len(text)} chars")
            return text or None
        finally:
            try:
                await asyncio.to_thread(os.remove, scratch)
            except FileNotFoundError:
                pass
