# file: src/pipeline/tts.py
from typing import Any

import httpx

from pipeline.errors import UpstreamFailure
from utils.httpx_manager import HttpxManager


class ElevenLabsClient:
    """Speech synthesis adapter: text → mp3 bytes for the configured voice."""

    def __init__(self, httpx_manager: HttpxManager, logger_manager: object, config: dict):
        self.httpx_manager = httpx_manager
        self.config = config
        self.logger = logger_manager.create_logger(logger_name="ElevenLabsClient",
                                                   logging_level=config.get("LOGGING_LEVEL", "INFO"))
        self.base_url = config["BASE_URL"].rstrip("/")
        self.voice_id = config["VOICE_ID"]

    @property
    def configured(self) -> bool:
        key = self.config.get("API_KEY") or ""
        return key not in ("", "-")

    def _headers(self, accept: str) -> dict:
        return {"xi-api-key": self.config["API_KEY"], "Accept": accept, "Content-Type": "application/json"}

    async def synthesize(self, text: str) -> bytes:
        body = {
            "text": text,
            "model_id": self.config["MODEL_ID"],
            "voice_settings": {
                "stability": self.config["STABILITY"],
                "similarity_boost": self.config["SIMILARITY_BOOST"],
            },
        }
        url = f"{self.base_url}/text-to-speech/{self.voice_id}"
        self.logger.debug(f"Synthesizing {len(text)} chars with voice {self.voice_id}: {text[:40]!r}")
        try:
            audio = await self.httpx_manager.post_for_bytes(url, body, headers=self._headers("audio/mpeg"), step="tts")
        except httpx.HTTPStatusError as e:
            raise UpstreamFailure("tts", f"synthesis rejected (HTTP {e.response.status_code})")
        if not audio:
            raise UpstreamFailure("tts", "provider returned no audio")
        return audio

    async def list_voices(self) -> Any:
        try:
            return await self.httpx_manager.get_json(f"{self.base_url}/voices",
                                                     headers=self._headers("application/json"), step="voices")
        except httpx.HTTPStatusError as e:
            raise UpstreamFailure("voices", f"voice listing rejected (HTTP {e.response.status_code})")
