# file:src/fast_api/custom_exceptions.py
from fastapi import HTTPException, status

class CustomHTTPException(HTTPException):
    def __init__(self, status_code: int, error: str, detail: str = None, headers: dict = None):
        super().__init__(
            status_code=status_code,
            detail={"error": error, "detail": detail or error},
            headers=headers,
        )

class ValidationException(CustomHTTPException):
    def __init__(self, detail: str = "Validation failed"):
        super().__init__(status.HTTP_400_BAD_REQUEST, "Validation Error", detail)

class ConflictException(CustomHTTPException):
    def __init__(self, detail: str = "Resource already exists"):
        super().__init__(status.HTTP_409_CONFLICT, "Conflict", detail)

class UnauthorizedException(CustomHTTPException):
    def __init__(self, detail: str = "Authentication required"):
        super().__init__(status.HTTP_401_UNAUTHORIZED, "Unauthorized", detail,
                         headers={"WWW-Authenticate": "Bearer"})

class TranscriptionException(CustomHTTPException):
    def __init__(self, detail: str = "Unable to transcribe the provided audio."):
        super().__init__(status.HTTP_400_BAD_REQUEST, "Transcription Error", detail)

