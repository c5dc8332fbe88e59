# File: src/pipeline/manager.py
import os
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, File, UploadFile

from fast_api.custom_exceptions import ValidationException, TranscriptionException
from pipeline.models import ChatRequest, ChatResponse, VoiceChatResponse
from pipeline.orchestrator import ReplyPipeline
from pipeline.transcription import SpeechTranscriber
from pipeline.tts import ElevenLabsClient


def _format_size(num_bytes: int) -> str:
    if num_bytes >= 1024 * 1024 and num_bytes % (1024 * 1024) == 0:
        return f"{num_bytes // (1024 * 1024)} MB"
    return f"{num_bytes} bytes"


class ChatManager:
    """Routes /chat, /chat/voice (bearer protected) and /voices onto the reply pipeline."""

    def __init__(self, logger_manager: object, session_manager: object, pipeline: ReplyPipeline,
                 transcriber: SpeechTranscriber, tts: ElevenLabsClient, config: dict):
        self.config = config
        self.logger = logger_manager.create_logger(logger_name="ChatManager",
                                                   logging_level=config.get("LOGGING_LEVEL", "INFO"))
        self.session_manager = session_manager
        self.pipeline = pipeline
        self.transcriber = transcriber
        self.tts = tts
        self.max_upload_bytes = config.get("MAX_UPLOAD_BYTES", 25 * 1024 * 1024)
        self.router = APIRouter(tags=["Chat"])
        self._setup_routes()

    def get_router(self) -> APIRouter:
        return self.router

    async def _read_upload(self, audio: Optional[UploadFile]) -> bytes:
        if audio is None:
            raise ValidationException("Audio file is required.")
        # read one byte past the limit to detect oversize uploads without buffering more
        data = await audio.read(self.max_upload_bytes + 1)
        if len(data) > self.max_upload_bytes:
            raise ValidationException(f"Audio file exceeds {_format_size(self.max_upload_bytes)}.")
        if not data:
            raise ValidationException("Audio file is empty.")
        return data

    def _setup_routes(self):
        current_user = self.session_manager.get_current_user()

        @self.router.get("/voices")
        async def list_voices() -> Any:
            """Voices available from the speech synthesis provider (passthrough)"""
            if not self.tts.configured:
                self.logger.warning("Voice listing requested without a speech synthesis key")
                return {"voices": []}
            return await self.tts.list_voices()

        @self.router.post("/chat", response_model=ChatResponse)
        async def chat(request: Optional[ChatRequest] = None, user: Dict[str, Any] = Depends(current_user)):
            """Reply segments for a text message; empty message → introduction"""
            message = request.message if request else None
            self.logger.info(f"Chat request from {user['username']} ({len(message or '')} chars)")
            messages = await self.pipeline.run(message)
            return ChatResponse(messages=messages)

        @self.router.post("/chat/voice", response_model=VoiceChatResponse)
        async def chat_voice(audio: Optional[UploadFile] = File(None),
                             user: Dict[str, Any] = Depends(current_user)):
            """Transcribe the uploaded clip (multipart field 'audio'), then reply like /chat"""
            data = await self._read_upload(audio)
            if not self.pipeline.providers_configured:
                self.logger.warning("Voice chat without provider keys: skipping transcription")
                messages = await self.pipeline.canned.configuration_missing()
                return VoiceChatResponse(transcript=None, messages=messages)

            extension = os.path.splitext(audio.filename or "")[1] or None
            transcript = await self.transcriber.transcribe(data, extension)
            if not transcript:
                raise TranscriptionException("Unable to transcribe the provided audio.")
            self.logger.info(f"Voice chat from {user['username']}: {len(data)} bytes → {len(transcript)} chars")
            messages = await self.pipeline.run(transcript)
            return VoiceChatResponse(transcript=transcript, messages=messages)
