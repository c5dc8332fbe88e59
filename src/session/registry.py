# File: src/session/registry.py
import threading
from typing import Any, Callable, Dict, Optional

from session.utils import new_token, token_preview


class SessionRegistry:
    """
    In-memory bearer token → username map.
    Lives as long as the process: no persistence, no expiry, a restart logs everyone out.
    Every operation is O(1) under a short mutex, so it is safe from the event
    loop and from worker threads alike.
    """

    def __init__(self, logger: Any, token_factory: Callable[[], str] = new_token):
        self.logger = logger
        self._token_factory = token_factory
        self._sessions: Dict[str, str] = {}
        self._lock = threading.Lock()

    def issue(self, username: str) -> str:
        with self._lock:
            token = self._token_factory()
            while token in self._sessions:
                token = self._token_factory()
            self._sessions[token] = username
        self.logger.debug(f"Issued token {token_preview(token)} for {username}")
        return token

    def resolve(self, token: str) -> Optional[str]:
        if not token:
            return None
        with self._lock:
            return self._sessions.get(token)

    def revoke(self, token: str) -> None:
        with self._lock:
            username = self._sessions.pop(token, None)
        if username is not None:
            self.logger.debug(f"Revoked token {token_preview(token)} for {username}")

    def count(self) -> int:
        with self._lock:
            return len(self._sessions)
