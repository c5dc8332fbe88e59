# File: src/app.py
from utils.env_loader import load_env

load_env()
import os
from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import FastAPI
from redis.asyncio import Redis as AsyncRedis

# Local imports
from config import (MAIN_CONFIG, FASTAPI_CONFIG, AUTH_CONFIG, HTTPX_CONFIG, OPENAI_CONFIG, ELEVENLABS_CONFIG,
                    PIPELINE_CONFIG, VOICE_CONFIG)
from fast_api.fastapi_manager import FastApiManager
from pipeline.canned import CannedReplies
from pipeline.converters import FfmpegTranscoder, RhubarbVisemeExtractor
from pipeline.llm import OpenAIChatClient
from pipeline.manager import ChatManager
from pipeline.orchestrator import ReplyPipeline
from pipeline.transcription import SpeechTranscriber
from pipeline.tts import ElevenLabsClient
from session.manager import SessionManager
from utils.httpx_manager import HttpxManager
from utils.logger import Logger

logger_manager = Logger(project_root=os.path.dirname(os.path.dirname(os.path.abspath(__file__))),
                        log_to_file=MAIN_CONFIG["LOG_TO_FILE"])
logger = logger_manager.create_logger(logger_name='MAIN', logging_level=MAIN_CONFIG.get('LOGGING_LEVEL', 'INFO'))


def build_app(log_manager: Optional[Logger] = None,
              redis_client: Optional[AsyncRedis] = None,
              httpx_manager: Optional[HttpxManager] = None,
              pipeline: Optional[ReplyPipeline] = None,
              transcriber: Optional[SpeechTranscriber] = None,
              tts: Optional[ElevenLabsClient] = None,
              auth_config: dict = AUTH_CONFIG,
              openai_config: dict = OPENAI_CONFIG,
              elevenlabs_config: dict = ELEVENLABS_CONFIG,
              pipeline_config: dict = PIPELINE_CONFIG,
              voice_config: dict = VOICE_CONFIG,
              set_process_title: bool = True) -> FastAPI:
    """Wire every manager; tests swap in fakes through the keyword arguments."""
    log_manager = log_manager or logger_manager

    # Httpx for provider calls (LLM, TTS, speech-to-text)
    httpx_manager = httpx_manager or HttpxManager(logger_manager=log_manager, config=HTTPX_CONFIG)

    # Credential store + in-memory session registry + /auth routes
    session_manager = SessionManager(logger_manager=log_manager, config=auth_config, redis_client=redis_client)

    tts = tts or ElevenLabsClient(httpx_manager, log_manager, elevenlabs_config)
    if pipeline is None:
        pipeline_logger = log_manager.create_logger(logger_name="Converters",
                                                    logging_level=pipeline_config["LOGGING_LEVEL"])
        pipeline = ReplyPipeline(
            logger_manager=log_manager,
            config=pipeline_config,
            llm=OpenAIChatClient(httpx_manager, log_manager, openai_config),
            tts=tts,
            transcoder=FfmpegTranscoder(pipeline_config["FFMPEG_BIN"], pipeline_logger,
                                        timeout=pipeline_config["TOOL_TIMEOUT"]),
            extractor=RhubarbVisemeExtractor(pipeline_config["RHUBARB_BIN"], pipeline_logger,
                                             timeout=pipeline_config["TOOL_TIMEOUT"],
                                             recognizer=pipeline_config["RHUBARB_RECOGNIZER"]),
            canned=CannedReplies(pipeline_config["CANNED_AUDIO_DIR"], pipeline_logger),
        )
    transcriber = transcriber or SpeechTranscriber(httpx_manager, log_manager, openai_config, voice_config)

    chat_manager = ChatManager(logger_manager=log_manager, session_manager=session_manager, pipeline=pipeline,
                               transcriber=transcriber, tts=tts, config=voice_config)

    fast_api_manager = FastApiManager(logger_manager=log_manager, config=FASTAPI_CONFIG)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await session_manager.startup()
        if not pipeline.providers_configured:
            logger.warning("OPENAI_API_KEY / ELEVEN_LABS_API_KEY not set: /chat answers with the configuration-missing replies")
        logger.info(f"{FASTAPI_CONFIG['APP_NAME']} started")
        yield
        await session_manager.shutdown()
        log_manager.close_all_loggers()

    app = fast_api_manager.setup(lifespan=lifespan, set_process_title=set_process_title)
    app.include_router(session_manager.router)     # /auth/*
    app.include_router(chat_manager.get_router())  # /chat, /chat/voice, /voices
    app.state.session_manager = session_manager
    app.state.pipeline = pipeline
    return app


app = build_app()


def uvicorn_options(config: dict = FASTAPI_CONFIG) -> dict:
    return {
        "host": config["DEFAULT_HOST"],
        "port": config["DEFAULT_PORT"],
        # sessions live in this process: more workers would not share them
        "workers": 1,
        "reload": config["RELOAD"],
        "log_level": MAIN_CONFIG.get("LOGGING_LEVEL", "INFO").lower(),
        "loop": "uvloop",
    }


if __name__ == "__main__":
    options = uvicorn_options()
    logger.info(f"Starting {FASTAPI_CONFIG['APP_NAME']} on {options['host']}:{options['port']}")
    uvicorn.run("app:app", **options)

#while developing:
#cd src && uvicorn app:app --reload --port 28000
