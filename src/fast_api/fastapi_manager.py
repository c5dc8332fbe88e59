# file:src/fast_api/fastapi_manager.py


import setproctitle
from fastapi import FastAPI, Request, HTTPException, APIRouter
from fastapi.responses import JSONResponse, PlainTextResponse
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.cors import CORSMiddleware

from fast_api.error_models import ErrorResponse, ValidationErrorResponse
from pipeline.errors import UpstreamFailure, TranscriptionError

CHAT_FAILURE_DETAIL = "Failed to process chat request."
VOICE_CHAT_FAILURE_DETAIL = "Failed to process voice chat request."


class FastApiManager:
    """
    FastAPI Manager - Handles FastAPI application setup, routing, and configuration
    Features:
    - Process naming for better process identification
    - CORS middleware configuration
    - One JSON error envelope for every failure (400/401/409/500 ...)
    - Liveness endpoint
    """
    def __init__(self, logger_manager: object, config: dict):
        """
        Initialize FastAPI Manager
        Args:
            logger_manager: Logger manager instance for logging
            config: FASTAPI_CONFIG-shaped dict
        """
        self.config = config
        self.logger = logger_manager.create_logger(logger_name="FastApiManager",
                                                   logging_level=config["LOGGING_LEVEL"])
        self.router = APIRouter(tags=['FastAPI Manager'])
        self._setup_routes()  # Ensure routes are defined on init

    def setup(self, lifespan=None, app_name: str = None, set_process_title: bool = True) -> FastAPI:
        app_name = app_name or self.config["APP_NAME"]
        try:
            if set_process_title:
                setproctitle.setproctitle(app_name)
            app = FastAPI(
                title=app_name,
                version=self.config["VERSION"],
                lifespan=lifespan,
                docs_url="/docs" if self.config.get("ENABLE_DOCS", True) else None,
                redoc_url="/redoc" if self.config.get("ENABLE_REDOC", False) else None,
            )
            # ---------- Add Exception Handlers FIRST ----------
            self._setup_exception_handlers(app)

            # ---------- CORS ----------
            app.add_middleware(
                CORSMiddleware,
                allow_origins=self.config["ALLOW_ORIGINS"],
                allow_credentials=self.config["ALLOW_CREDENTIALS"],
                allow_methods=self.config["ALLOW_METHODS"],
                allow_headers=self.config["ALLOW_HEADERS"],
                expose_headers=self.config["EXPOSE_HEADERS"],
            )

            # ---------- Register router ----------
            app.include_router(self.router)

            self.logger.debug(f"FastAPI app '{app_name}' ready")
            return app
        except Exception as exc:
            self.logger.exception(f"Failed to build FastAPI app: {exc}")
            raise

    def _setup_exception_handlers(self, app: FastAPI):
        """Map every failure onto ErrorResponse"""
        @app.exception_handler(StarletteHTTPException)
        @app.exception_handler(HTTPException)
        async def http_exception_handler(request: Request, exc: StarletteHTTPException):
            """Handle HTTP exceptions (400, 401, 404, 405, 409 ...)"""
            error_detail = exc.detail
            if isinstance(error_detail, dict):
                error_message = error_detail.get('error', 'HTTP Error')
                detail_message = error_detail.get('detail', str(exc.detail))
            else:
                error_message = str(exc.detail)
                detail_message = None
            error_response = ErrorResponse.build(
                error=error_message,
                detail=detail_message,
                status_code=exc.status_code,
                path=request.url.path
            )
            self.logger.warning(f"HTTP {exc.status_code} at {request.url.path}: {error_message}")
            return JSONResponse(
                status_code=exc.status_code,
                content=error_response.model_dump(),
                headers=getattr(exc, "headers", None)
            )
        @app.exception_handler(RequestValidationError)
        async def validation_exception_handler(request: Request, exc: RequestValidationError):
            """Malformed request bodies are client errors (400)"""
            errors = []
            for error in exc.errors():
                error_info = {
                    "loc": list(error["loc"]),
                    "msg": error["msg"],
                    "type": error["type"]
                }
                errors.append(error_info)
            error_response = ValidationErrorResponse.build(
                error="Validation Error",
                detail="One or more fields failed validation",
                status_code=400,
                path=request.url.path,
                errors=errors
            )
            self.logger.warning(f"Validation error at {request.url.path}: {errors}")
            return JSONResponse(
                status_code=400,
                content=error_response.model_dump()
            )
        @app.exception_handler(TranscriptionError)
        async def transcription_exception_handler(request: Request, exc: TranscriptionError):
            """Speech-to-text refused the clip (400)"""
            self.logger.warning(f"Transcription failed at {request.url.path}: {exc}")
            error_response = ErrorResponse.build(
                error="Transcription Error",
                detail="Unable to transcribe the provided audio.",
                status_code=400,
                path=request.url.path
            )
            return JSONResponse(status_code=400, content=error_response.model_dump())
        @app.exception_handler(UpstreamFailure)
        async def upstream_exception_handler(request: Request, exc: UpstreamFailure):
            """Provider/tool failure: logged where it happened, generic body here (500)"""
            self.logger.error(f"Upstream failure at {request.url.path}: {exc}")
            voice = request.url.path.endswith("/chat/voice")
            error_response = ErrorResponse.build(
                error="Internal Server Error",
                detail=VOICE_CHAT_FAILURE_DETAIL if voice else CHAT_FAILURE_DETAIL,
                status_code=500,
                path=request.url.path
            )
            return JSONResponse(status_code=500, content=error_response.model_dump())
        @app.exception_handler(Exception)
        async def general_exception_handler(request: Request, exc: Exception):
            """Handle all other exceptions (500)"""
            # Log the full exception for debugging
            self.logger.error(f"Internal server error at {request.url.path}: {exc}", exc_info=True)
            error_response = ErrorResponse.build(
                error="Internal Server Error",
                detail="An internal server error occurred. Please try again later.",
                status_code=500,
                path=request.url.path
            )
            return JSONResponse(
                status_code=500,
                content=error_response.model_dump()
            )

    # ------------------------------------------------------------------
    # Route definitions
    # ------------------------------------------------------------------
    def _setup_routes(self) -> None:
        @self.router.get("/", response_class=PlainTextResponse)
        async def liveness() -> str:
            """Liveness probe"""
            return "Hello World!"
