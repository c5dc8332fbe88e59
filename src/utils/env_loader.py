# file: src/utils/env_loader.py
"""
Dotenv wrapper: loads .env once and hands out typed values.
Design: python-dotenv fills os.environ, python-decouple resolves keys with defaults.
Handles: "28000 # dev port" → 28000 (int), "" → default. Provider keys stay plain strings.
Usage: app.py calls load_env() before importing config; config.py calls get_env(key, default, cast).
"""


from typing import Union, Optional, Any
from dotenv import load_dotenv
from decouple import AutoConfig, UndefinedValueError

# Global config instance (loaded once)
_config = None

_TRUE_VALUES = ('true', '1', 'yes', 'on', 't', 'y')
_FALSE_VALUES = ('false', '0', 'no', 'off', 'f', 'n')


def load_env(env_path: str = ".env", override: bool = False) -> None:
    """
    Load .env file once (call early in app.py / tests/conftest.py).
    Args:
        env_path: Path to .env (missing file is fine, os.environ and defaults are used).
        override: Let .env values replace variables already present in os.environ.
    """
    global _config
    if _config is not None and not override:
        return
    load_dotenv(env_path, override=override)
    _config = AutoConfig()


def get_env(key: str, default: Optional[Any] = None, cast: Optional[Union[type, str]] = None) -> Any:
    """
    Get env var with inline-comment trimming and safe cast.
    Args:
        key: Env var name (e.g., "OPENAI_API_KEY").
        default: Fallback value if missing or blank.
        cast: bool, int, float or None (str).
    Raises:
        ValueError: If load_env() was not called or the cast fails.
    Example:
        get_env("PORT", default="28000", cast=int)  # "28000 # dev" → 28000
    """
    if _config is None:
        raise ValueError("Call load_env() first (app.py does this before importing config).")

    try:
        raw_value = _config(key, default=str(default) if default is not None else None)
    except UndefinedValueError:
        return default
    if raw_value is None:
        return default

    # API keys never carry comments; anything after '#' is a note
    trimmed = raw_value.split('#')[0].strip()
    if trimmed == "" and default is not None:
        trimmed = str(default)

    if cast is None:
        return trimmed

    try:
        if cast == bool:
            lowered = trimmed.lower()
            if lowered in _TRUE_VALUES:
                return True
            if lowered in _FALSE_VALUES:
                return False
            raise ValueError(f"expected true/false-like, got '{trimmed}'")
        if cast == int:
            return int(trimmed)
        if cast == float:
            return float(trimmed)
    except ValueError as e:
        raise ValueError(f"Failed to load/cast {key}: {e}")
    raise ValueError(f"Unsupported cast '{cast}' for {key} (use bool/int/float/None)")


def get_csv(key: str, default: str = "") -> list:
    """Comma separated env var → list of non-empty stripped items."""
    raw = get_env(key, default=default) or ""
    return [item.strip() for item in raw.split(",") if item.strip()]


__all__ = ["load_env", "get_env", "get_csv"]
