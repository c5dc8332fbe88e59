# File: src/session/manager.py

# SessionManager: composes the credential store, the session registry and the
# user manager, and exposes /auth/register, /auth/login and /auth/logout.
# Other routers protect themselves with Depends(session_manager.get_current_user()).
from typing import Callable, Optional

from fastapi import APIRouter, Depends
from redis.asyncio import Redis as AsyncRedis

from config import REDIS_CONFIG
from fast_api.security_manager import SecurityManager
from session.models import LoginRequest, LoginResponse, RegisterRequest, RegisterResponse, LogoutResponse
from session.registry import SessionRegistry
from session.store import CredentialStore
from session.users import UserManager
from session.utils import get_redis_client


class SessionManager:
    def __init__(self, logger_manager: object, config: dict, redis_client: Optional[AsyncRedis] = None,
                 registry: Optional[SessionRegistry] = None, key_prefix: str = REDIS_CONFIG["KEY_PREFIX"]):
        self.config = config
        self.logger = logger_manager.create_logger(logger_name="SessionManager",
                                                   logging_level=self.config.get('LOGGING_LEVEL', 'INFO'))

        self.async_redis = redis_client or get_redis_client()
        self.router = APIRouter(prefix="/auth", tags=["Auth"])

        # Compose managers (inject dependencies)
        self.store = CredentialStore(self.async_redis, self.logger, key_prefix=key_prefix)
        self.registry = registry or SessionRegistry(self.logger)
        self.security_manager = SecurityManager(logger_manager=logger_manager, registry=self.registry,
                                                config=self.config)
        self.user_manager = UserManager(self.store, self.registry, self.logger, self.config)

        self.setup_routes()

    async def startup(self):
        await self.store.initialize()

    async def shutdown(self):
        await self.store.close()

    # Reusable: in other routers use Depends(session_manager.get_current_user())
    def get_current_user(self) -> Callable:
        return self.security_manager.get_current_user

    def setup_routes(self):

        # ========== PUBLIC ROUTES (No Auth) ==========

        @self.router.post("/register", response_model=RegisterResponse)
        async def register_user(request: RegisterRequest):
            """Register a new user account (does not log in)"""
            return await self.user_manager.register(request)

        @self.router.post("/login", response_model=LoginResponse)
        async def login_user(request: LoginRequest):
            """Login and get an opaque bearer token"""
            return await self.user_manager.login(request)

        # ========== AUTHENTICATED ROUTES ==========

        @self.router.post("/logout", response_model=LogoutResponse)
        async def logout_user(token: str = Depends(self.security_manager.get_bearer_token)):
            """Revoke the caller's token; repeating it with a revoked token still succeeds"""
            return await self.user_manager.logout(token)
