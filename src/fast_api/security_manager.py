# file:src/fast_api/security_manager.py


from typing import Dict, Any

from starlette.requests import Request

from fast_api.custom_exceptions import UnauthorizedException
from session.registry import SessionRegistry
from session.utils import token_preview


class SecurityManager:
    """
    Bearer-token guard for protected routes.
    * get_bearer_token  – header must be "Authorization: Bearer <token>"
    * get_current_user  – token must also resolve in the session registry;
      sets request.state.current_user = {'username': ..., 'token': ...}
    Both are plain async callables usable with Depends(...).
    """

    def __init__(self, logger_manager: object, registry: SessionRegistry, config: dict):
        self.config = config
        self.logger = logger_manager.create_logger(
            logger_name="SecurityManager",
            logging_level=self.config.get("LOGGING_LEVEL", "INFO")
        )
        self.registry = registry

    @staticmethod
    def extract_token(auth_header: str | None) -> str | None:
        if not auth_header:
            return None
        scheme, _, token = auth_header.partition(" ")
        if scheme.lower() != "bearer":
            return None
        token = token.strip()
        if not token or token in ("undefined", "null"):
            return None
        return token

    async def get_bearer_token(self, request: Request) -> str:
        token = self.extract_token(request.headers.get("Authorization"))
        if token is None:
            self.logger.debug(f"Missing bearer token at {request.url.path}")
            raise UnauthorizedException("missing token")
        return token

    async def get_current_user(self, request: Request) -> Dict[str, Any]:
        token = await self.get_bearer_token(request)
        username = self.registry.resolve(token)
        if username is None:
            self.logger.info(f"Rejected token {token_preview(token)} at {request.url.path}")
            raise UnauthorizedException("invalid or expired token")
        current_user = {"username": username, "token": token}
        # Attach user to request state (accessible in routes via request.state.current_user)
        request.state.current_user = current_user
        return current_user
