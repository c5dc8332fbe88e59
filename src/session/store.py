# File: src/session/store.py
import asyncio
import time
from typing import Any, Optional

from redis.asyncio import Redis as AsyncRedis
from redis.exceptions import RedisError

from fast_api.custom_exceptions import ConflictException
from session.models import User

SCHEMA_VERSION = "1"


class CredentialStore:
    """
    User records in Redis, one JSON string per user under <prefix>:user:<username>.
    Counters and markers live under <prefix>:meta:*, outside the user namespace,
    so no username can collide with them.
    Registration is a single SET NX: the key's existence is the uniqueness
    constraint, so two concurrent registrations of one name cannot both win.
    """

    def __init__(self, async_redis: AsyncRedis, logger: Any, key_prefix: str = "avatar"):
        self.async_redis = async_redis
        self.logger = logger
        self.key_prefix = key_prefix
        self._initialized = False
        self._init_lock = asyncio.Lock()

    def _user_key(self, username: str) -> str:
        return f"{self.key_prefix}:user:{username}"

    @property
    def _id_key(self) -> str:
        return f"{self.key_prefix}:meta:next_id"

    @property
    def _schema_key(self) -> str:
        return f"{self.key_prefix}:meta:schema_version"

    async def initialize(self) -> None:
        """One-time setup gate; safe to call from every query and from lifespan."""
        if self._initialized:
            return
        async with self._init_lock:
            if self._initialized:
                return
            await self.async_redis.ping()
            # NX writes: a second process (or a restart) keeps existing counters
            await self.async_redis.set(self._id_key, 0, nx=True)
            await self.async_redis.set(self._schema_key, SCHEMA_VERSION, nx=True)
            self._initialized = True
            self.logger.info(f"Credential store ready (prefix '{self.key_prefix}', schema v{SCHEMA_VERSION})")

    async def find_by_username(self, username: str) -> Optional[User]:
        await self.initialize()
        serialized = await self.async_redis.get(self._user_key(username))
        if not serialized:
            return None
        return User.model_validate_json(serialized)

    async def create(self, username: str, password_hash: str, salt: str) -> User:
        await self.initialize()
        user_id = await self.async_redis.incr(self._id_key)
        user = User(
            id=user_id,
            username=username,
            password_hash=password_hash,
            salt=salt,
            created_at=time.time(),
        )
        created = await self.async_redis.set(self._user_key(username), user.model_dump_json(), nx=True)
        if not created:
            # id is burned, usernames stay unique
            self.logger.info(f"Registration conflict for username '{username}'")
            raise ConflictException("Username already exists")
        self.logger.debug(f"Stored user {username} (id {user_id})")
        return user

    async def close(self) -> None:
        try:
            await self.async_redis.aclose()
        except RedisError as e:
            self.logger.warning(f"Error closing Redis connection: {e}")
