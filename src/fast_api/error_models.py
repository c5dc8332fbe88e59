# file: src/fast_api/error_models.py
from datetime import datetime, timezone
from typing import Optional, Any, Dict, List
from pydantic import BaseModel


class ErrorResponse(BaseModel):
    """JSON envelope for every non-2xx answer."""
    error: str
    detail: Optional[str] = None
    status_code: int
    timestamp: str
    path: Optional[str] = None

    @classmethod
    def build(cls, error: str, status_code: int, path: Optional[str] = None,
              detail: Optional[str] = None, **extra: Any) -> "ErrorResponse":
        return cls(
            error=error,
            detail=detail,
            status_code=status_code,
            timestamp=datetime.now(timezone.utc).isoformat(),
            path=path,
            **extra,
        )


class ValidationErrorResponse(ErrorResponse):
    # one entry per offending request field: {"loc": [...], "msg": "...", "type": "..."}
    errors: Optional[List[Dict[str, Any]]] = None
