# file: src/utils/httpx_manager.py

import logging

from config import HTTPX_CONFIG

#patch for logger_manager to supress internal httpx logs as we handle them internaly.
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("httpcore").setLevel(logging.WARNING)

from typing import Optional, Dict, Any
import httpx
from tenacity import AsyncRetrying, stop_after_attempt, wait_exponential, retry_if_exception
from pydantic import BaseModel, AnyHttpUrl, Field
from aiocircuitbreaker import CircuitBreaker, CircuitBreakerError

from pipeline.errors import UpstreamFailure


# ----------------------------
# Pydantic Models
# ----------------------------
class RequestPayload(BaseModel):
    url: AnyHttpUrl
    method: str = Field(default="GET", pattern="^(GET|POST|PUT|DELETE)$")
    json_body: Optional[dict] = None
    data: Optional[dict] = None
    files: Optional[dict] = None  # {"file": (filename, bytes, content_type)}
    headers: Optional[dict] = None
    timeout: Optional[float] = None
    follow_redirects: bool = True

# ----------------------------
# Retry filter
# ----------------------------
def _should_retry(exception: BaseException) -> bool:
    if isinstance(exception, (httpx.TimeoutException, httpx.NetworkError)):
        return True
    if isinstance(exception, httpx.HTTPStatusError):
        return exception.response.status_code >= 500 or exception.response.status_code == 429
    return False

# ----------------------------
# HTTPX Manager
# ----------------------------
class HttpxManager:
    """
    Provider calls (chat completion, speech synthesis, transcription) go through here.
    Every call is bounded by TIMEOUT; RETRY_ATTEMPTS defaults to 1 so a chat request
    either succeeds on the first try or fails as a whole. Failures leave as
    httpx.HTTPStatusError (caller decides what a 4xx means) or UpstreamFailure.
    """
    def __init__(self, logger_manager: object = None, config: Optional[dict] = None,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        self.config = config or HTTPX_CONFIG
        self.logger = logger_manager.create_logger(logger_name="HttpxManager",
                                                   logging_level=self.config['LOGGING_LEVEL'])

        self.timeout = self.config['TIMEOUT']
        # tests pass httpx.MockTransport here
        self.transport = transport

        # Retry configuration
        self.retry_attempts = max(1, self.config.get('RETRY_ATTEMPTS', 1))
        self.retry_multiplier = self.config.get('RETRY_MULTIPLIER', 1)
        self.retry_min_wait = self.config.get('RETRY_MIN_WAIT', 1)
        self.retry_max_wait = self.config.get('RETRY_MAX_WAIT', 10)

        # Circuit breaker
        self.circuit_breaker = CircuitBreaker(
            failure_threshold=self.config.get('CIRCUIT_FAILURE_THRESHOLD', 5),
            recovery_timeout=self.config.get('CIRCUIT_RECOVERY_TIMEOUT', 30),
            expected_exception=(httpx.TimeoutException, httpx.NetworkError),
            name="HttpxManagerCircuitBreaker"
        )
        self._guarded_execute = self.circuit_breaker.decorate(self._execute_request)

    async def request(self, payload: RequestPayload, step: str = "http") -> httpx.Response:
        """Send the request; returns the response of a 2xx answer."""
        url = str(payload.url)
        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(self.retry_attempts),
                wait=wait_exponential(multiplier=self.retry_multiplier, min=self.retry_min_wait,
                                      max=self.retry_max_wait),
                retry=retry_if_exception(_should_retry),
                reraise=True,
            ):
                with attempt:
                    return await self._guarded_execute(payload)
        except CircuitBreakerError as e:
            self.logger.warning(f"Circuit breaker open: {url} - {e}")
            raise UpstreamFailure(step, "service temporarily unavailable")
        except httpx.HTTPStatusError as e:
            self.logger.error(f"{step}: {payload.method} {url} answered HTTP {e.response.status_code}")
            raise
        except httpx.TimeoutException:
            self.logger.error(f"{step}: {payload.method} {url} timed out")
            raise UpstreamFailure(step, "request timed out")
        except httpx.HTTPError as e:
            self.logger.error(f"{step}: {payload.method} {url} failed: {e!r}")
            raise UpstreamFailure(step, f"transport error ({type(e).__name__})")

    async def _execute_request(self, payload: RequestPayload) -> httpx.Response:
        """Actual HTTP request execution."""
        url = str(payload.url)
        method = payload.method.upper()
        timeout = payload.timeout or self.timeout
        self.logger.debug(f"Making {method} request to {url}")

        async with httpx.AsyncClient(timeout=timeout, follow_redirects=payload.follow_redirects,
                                     transport=self.transport) as client:
            resp = await client.request(
                method,
                url,
                json=payload.json_body,
                data=payload.data,
                files=payload.files,
                headers=payload.headers,
            )
            resp.raise_for_status()
            return resp

    async def get_json(self, url: str, headers: Optional[dict] = None, step: str = "http") -> Any:
        resp = await self.request(RequestPayload(url=url, method="GET", headers=headers), step=step)
        return self._decode_json(resp, step)

    async def post_json(self, url: str, body: Dict[str, Any], headers: Optional[dict] = None,
                        step: str = "http") -> Any:
        resp = await self.request(RequestPayload(url=url, method="POST", json_body=body, headers=headers),
                                  step=step)
        return self._decode_json(resp, step)

    async def post_for_bytes(self, url: str, body: Dict[str, Any], headers: Optional[dict] = None,
                             step: str = "http") -> bytes:
        resp = await self.request(RequestPayload(url=url, method="POST", json_body=body, headers=headers),
                                  step=step)
        return resp.content

    async def post_multipart(self, url: str, data: Dict[str, Any], files: Dict[str, Any],
                             headers: Optional[dict] = None, step: str = "http") -> httpx.Response:
        return await self.request(RequestPayload(url=url, method="POST", data=data, files=files, headers=headers),
                                  step=step)

    def _decode_json(self, resp: httpx.Response, step: str) -> Any:
        try:
            return resp.json()
        except ValueError:
            self.logger.error(f"{step}: non-JSON body from {resp.request.url} ({len(resp.content)} bytes)")
            raise UpstreamFailure(step, "provider returned a non-JSON body")
