## file: ./config.py
"""
Central configuration for the avatar chat backend.
Uses utils/env_loader.py wrapper for .env loading (trims inline # comments, safe casts).
Load once in app.py: from utils.env_loader import load_env; load_env(".env")
Then access via get_env(key, default, cast=bool) or the dicts below.
Provider keys default to empty: the chat pipeline then answers with its
configuration-missing reply set instead of failing at startup.
"""

from utils.env_loader import get_env, get_csv
#=============================================================================
#MAIN_CONFIG: Global settings (used across all managers for logging, etc.)
#=============================================================================
MAIN_CONFIG = {
"LOGGING_LEVEL": get_env("LOGGING_LEVEL", default="INFO"),  # Global log level
"LOG_TO_FILE": get_env("LOG_TO_FILE", default="False", cast=bool),  # Also write logs/<name>.log (rotating)
}
#=============================================================================
#FASTAPI_CONFIG: FastAPI app setup (used in FastApiManager for server, CORS, docs)
#=============================================================================
FASTAPI_CONFIG = {
"LOGGING_LEVEL": get_env("FASTAPI_LOGGING_LEVEL", default="INFO"),
"APP_NAME": get_env("APP_NAME", default="Avatar Chat Backend"),  # App title (OpenAPI docs) and process title
"VERSION": get_env("VERSION", default="1.0"),
"RELOAD": get_env("RELOAD", default="False", cast=bool),  # Dev auto-reload (uvicorn --reload)
"DEFAULT_PORT": get_env("PORT", default="28000", cast=int),  # Listening port
"DEFAULT_HOST": get_env("HOST", default="0.0.0.0"),
"ALLOW_ORIGINS": get_csv("ALLOW_ORIGINS", default="*"),  # CORS origins (front end dev server by default any)
"ALLOW_CREDENTIALS": get_env("ALLOW_CREDENTIALS", default="False", cast=bool),  # Bearer tokens, no cookies
"ALLOW_METHODS": get_csv("ALLOW_METHODS", default="GET,POST,OPTIONS"),
"ALLOW_HEADERS": get_csv("ALLOW_HEADERS", default="Authorization,Content-Type"),
"EXPOSE_HEADERS": get_csv("EXPOSE_HEADERS", default=""),
"ENABLE_DOCS": get_env("ENABLE_DOCS", default="True", cast=bool),  # Swagger UI (/docs)
"ENABLE_REDOC": get_env("ENABLE_REDOC", default="False", cast=bool),
}
#=============================================================================
#AUTH_CONFIG: registration rules, password hashing and session tokens
#=============================================================================
AUTH_CONFIG = {
"LOGGING_LEVEL": get_env("AUTH_LOGGING_LEVEL", default="INFO"),
"MIN_PASSWORD_LENGTH": get_env("AUTH_MIN_PASSWORD_LENGTH", default="4", cast=int),
"TOKEN_BYTES": get_env("AUTH_TOKEN_BYTES", default="24", cast=int),  # 24 bytes → 48 hex chars
"SALT_BYTES": get_env("AUTH_SALT_BYTES", default="16", cast=int),
# scrypt cost parameters (n must be a power of two; ~16 MiB memory with n=2**14, r=8)
"SCRYPT_N": get_env("AUTH_SCRYPT_N", default="16384", cast=int),
"SCRYPT_R": get_env("AUTH_SCRYPT_R", default="8", cast=int),
"SCRYPT_P": get_env("AUTH_SCRYPT_P", default="1", cast=int),
"SCRYPT_DKLEN": get_env("AUTH_SCRYPT_DKLEN", default="64", cast=int),
}
#=============================================================================
#REDIS_CONFIG: credential store backend
#=============================================================================
REDIS_CONFIG = {
"LOGGING_LEVEL": get_env("REDIS_LOGGING_LEVEL", default="INFO"),
"REDIS_URL": get_env("REDIS_URL", default="redis://localhost:6379/0"),
"KEY_PREFIX": get_env("REDIS_KEY_PREFIX", default="avatar"),  # avatar:user:<username>, avatar:meta:next_id
"SOCKET_TIMEOUT": get_env("REDIS_SOCKET_TIMEOUT", default="5", cast=float),
}
#=============================================================================
#HTTPX_CONFIG: HTTP client for provider APIs (shared HttpxManager)
#=============================================================================
HTTPX_CONFIG = {
"LOGGING_LEVEL": get_env("HTTPX_LOGGING_LEVEL", default="INFO"),
"TIMEOUT": get_env("HTTPX_TIMEOUT", default="60.0", cast=float),  # Per request timeout (seconds)
"CIRCUIT_FAILURE_THRESHOLD": get_env("HTTPX_CIRCUIT_FAILURE_THRESHOLD", default="5", cast=int),
"CIRCUIT_RECOVERY_TIMEOUT": get_env("HTTPX_CIRCUIT_RECOVERY_TIMEOUT", default="30", cast=int),
"RETRY_ATTEMPTS": get_env("HTTPX_RETRY_ATTEMPTS", default="1", cast=int),  # 1 = no retry; a chat request fails as a whole
"RETRY_MULTIPLIER": get_env("HTTPX_RETRY_MULTIPLIER", default="1", cast=float),
"RETRY_MIN_WAIT": get_env("HTTPX_RETRY_MIN_WAIT", default="1", cast=float),
"RETRY_MAX_WAIT": get_env("HTTPX_RETRY_MAX_WAIT", default="10", cast=float),
}
#=============================================================================
#OPENAI_CONFIG: chat completion + speech-to-text provider
#=============================================================================
OPENAI_CONFIG = {
"LOGGING_LEVEL": get_env("OPENAI_LOGGING_LEVEL", default="INFO"),
"API_KEY": get_env("OPENAI_API_KEY", default=""),
"BASE_URL": get_env("OPENAI_BASE_URL", default="https://api.openai.com/v1"),
"CHAT_MODEL": get_env("OPENAI_CHAT_MODEL", default="gpt-3.5-turbo-1106"),
"MAX_TOKENS": get_env("OPENAI_MAX_TOKENS", default="1000", cast=int),
"TEMPERATURE": get_env("OPENAI_TEMPERATURE", default="0.6", cast=float),
"TRANSCRIBE_MODEL": get_env("OPENAI_TRANSCRIBE_MODEL", default="gpt-4o-mini-transcribe"),
}
#=============================================================================
#ELEVENLABS_CONFIG: speech synthesis provider
#=============================================================================
ELEVENLABS_CONFIG = {
"LOGGING_LEVEL": get_env("ELEVENLABS_LOGGING_LEVEL", default="INFO"),
"API_KEY": get_env("ELEVEN_LABS_API_KEY", default=""),
"BASE_URL": get_env("ELEVEN_LABS_BASE_URL", default="https://api.elevenlabs.io/v1"),
"VOICE_ID": get_env("ELEVEN_LABS_VOICE_ID", default="EXAVITQu4vr4xnSDxMaL"),
"MODEL_ID": get_env("ELEVEN_LABS_MODEL_ID", default="eleven_multilingual_v2"),
"STABILITY": get_env("ELEVEN_LABS_STABILITY", default="0.5", cast=float),
"SIMILARITY_BOOST": get_env("ELEVEN_LABS_SIMILARITY_BOOST", default="0.5", cast=float),
}
#=============================================================================
#PIPELINE_CONFIG: reply pipeline (external tools, scratch space, canned replies)
#=============================================================================
PIPELINE_CONFIG = {
"LOGGING_LEVEL": get_env("PIPELINE_LOGGING_LEVEL", default="INFO"),
"FFMPEG_BIN": get_env("FFMPEG_BIN", default="ffmpeg"),
"RHUBARB_BIN": get_env("RHUBARB_BIN", default="./bin/rhubarb"),
"RHUBARB_RECOGNIZER": get_env("RHUBARB_RECOGNIZER", default="phonetic"),  # phonetic is faster, pocketSphinx more accurate
"TOOL_TIMEOUT": get_env("PIPELINE_TOOL_TIMEOUT", default="60", cast=float),  # seconds per ffmpeg/rhubarb call
"SCRATCH_DIR": get_env("PIPELINE_SCRATCH_DIR", default=".tmp-audio"),  # per-run subdirectories live here
"CANNED_AUDIO_DIR": get_env("CANNED_AUDIO_DIR", default="audios"),  # intro_*.wav/json, api_*.wav/json
"MAX_SEGMENTS": get_env("PIPELINE_MAX_SEGMENTS", default="3", cast=int),
"MAX_CONCURRENT_RUNS": get_env("PIPELINE_MAX_CONCURRENT_RUNS", default="4", cast=int),
}
#=============================================================================
#VOICE_CONFIG: /chat/voice uploads
#=============================================================================
VOICE_CONFIG = {
"LOGGING_LEVEL": get_env("VOICE_LOGGING_LEVEL", default="INFO"),
"MAX_UPLOAD_BYTES": get_env("VOICE_MAX_UPLOAD_BYTES", default=str(25 * 1024 * 1024), cast=int),  # 25 MB
"TMP_DIR": get_env("VOICE_TMP_DIR", default=".tmp-voice"),
"DEFAULT_EXTENSION": get_env("VOICE_DEFAULT_EXTENSION", default=".webm"),
}
