# file: src/session/utils.py
import binascii
import hashlib
import hmac
import secrets
from typing import Optional

from config import AUTH_CONFIG, REDIS_CONFIG
from redis.asyncio import ConnectionPool
from redis.asyncio import Redis as AsyncRedis


def new_salt(num_bytes: int = AUTH_CONFIG["SALT_BYTES"]) -> str:
    return secrets.token_hex(num_bytes)


def hash_password(password: str, salt: str, config: Optional[dict] = None) -> str:
    """scrypt(password, salt) as lowercase hex. Same inputs, same digest."""
    config = config or AUTH_CONFIG
    n = config["SCRYPT_N"]
    r = config["SCRYPT_R"]
    digest = hashlib.scrypt(
        password.encode("utf-8"),
        salt=salt.encode("utf-8"),
        n=n,
        r=r,
        p=config["SCRYPT_P"],
        dklen=config["SCRYPT_DKLEN"],
        maxmem=256 * n * r,  # scrypt needs ~128*n*r bytes; OpenSSL's fixed 32 MiB cap would reject larger costs
    )
    return digest.hex()


def verify_password(password: str, stored_digest: str, salt: str, config: Optional[dict] = None) -> bool:
    """Constant-time comparison; a malformed stored digest is a mismatch, never an exception."""
    config = config or AUTH_CONFIG
    try:
        expected = binascii.unhexlify(stored_digest)
    except (binascii.Error, TypeError, ValueError):
        return False
    if len(expected) != config["SCRYPT_DKLEN"]:
        return False
    candidate = binascii.unhexlify(hash_password(password, salt, config))
    return hmac.compare_digest(candidate, expected)


def new_token(num_bytes: int = AUTH_CONFIG["TOKEN_BYTES"]) -> str:
    return secrets.token_hex(num_bytes)


def token_preview(token: str) -> str:
    """First characters only; full tokens never reach the logs."""
    return f"{token[:8]}..." if token else "<empty>"


# Global connection pool not clean but it works.
_redis_pool: ConnectionPool | None = None
def get_redis_client() -> AsyncRedis:
    """Get Redis client with shared connection pool (no connection is opened until first command)."""
    global _redis_pool
    if _redis_pool is None:
        _redis_pool = ConnectionPool.from_url(
            REDIS_CONFIG["REDIS_URL"],
            decode_responses=True,
            retry_on_timeout=True,
            socket_keepalive=True,
            max_connections=100,
            socket_connect_timeout=REDIS_CONFIG["SOCKET_TIMEOUT"],
            socket_timeout=REDIS_CONFIG["SOCKET_TIMEOUT"]
        )
    return AsyncRedis(connection_pool=_redis_pool)
