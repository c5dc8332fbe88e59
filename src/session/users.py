import asyncio
from typing import Any, Dict, Optional

from fast_api.custom_exceptions import ValidationException, UnauthorizedException
from session.models import LogoutResponse, LoginRequest, RegisterResponse, RegisterRequest, LoginResponse, User
from session.registry import SessionRegistry
from session.store import CredentialStore
from session.utils import hash_password, new_salt, verify_password, token_preview

INVALID_CREDENTIALS = "invalid username or password"


class UserManager:
    """Registration, login and logout on top of the credential store and the session registry."""
    def __init__(self, store: CredentialStore, registry: SessionRegistry, logger: Any, config: Dict[str, Any]):
        self.store = store
        self.registry = registry
        self.logger = logger
        self.config = config
        self.min_password_length = config.get("MIN_PASSWORD_LENGTH", 4)
        # Unknown usernames still pay for one scrypt run (same cost as a wrong password)
        self._dummy_salt = new_salt(config.get("SALT_BYTES", 16))
        self._dummy_hash: Optional[str] = None

    async def _hash(self, password: str, salt: str) -> str:
        return await asyncio.to_thread(hash_password, password, salt, self.config)

    async def _verify(self, password: str, user: Optional[User]) -> bool:
        if user is None:
            if self._dummy_hash is None:
                self._dummy_hash = await self._hash("dummy-password", self._dummy_salt)
            await asyncio.to_thread(verify_password, password, self._dummy_hash, self._dummy_salt, self.config)
            return False
        return await asyncio.to_thread(verify_password, password, user.password_hash, user.salt, self.config)

    async def register(self, request: RegisterRequest) -> RegisterResponse:
        username = request.username.strip()
        password = request.password
        if not username or not password:
            raise ValidationException("Username and password are required")
        if len(password) < self.min_password_length:
            raise ValidationException(f"Password must be at least {self.min_password_length} characters")
        salt = new_salt(self.config.get("SALT_BYTES", 16))
        password_hash = await self._hash(password, salt)
        await self.store.create(username, password_hash, salt)  # ConflictException if taken
        self.logger.info(f"Registered user: {username}")
        return RegisterResponse()

    async def login(self, request: LoginRequest) -> LoginResponse:
        username = request.username.strip()
        if not username or not request.password:
            raise ValidationException("Username and password are required")
        user = await self.store.find_by_username(username)
        if not await self._verify(request.password, user):
            self.logger.info(f"Failed login for '{username}'")
            raise UnauthorizedException(INVALID_CREDENTIALS)
        token = self.registry.issue(user.username)
        self.logger.info(f"User {user.username} logged in (token {token_preview(token)})")
        return LoginResponse(token=token, username=user.username)

    async def logout(self, token: str) -> LogoutResponse:
        username = self.registry.resolve(token)
        self.registry.revoke(token)
        if username:
            self.logger.info(f"User {username} logged out (token {token_preview(token)})")
        else:
            self.logger.debug(f"Logout for unknown/revoked token {token_preview(token)}")
        return LogoutResponse()
