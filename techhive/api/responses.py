"""Helpers that wrap payloads in the standard response envelope."""

from datetime import datetime, timezone
from typing import Any, Optional

from fastapi import Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from techhive.errors import ApiError, AuthenticationFailed
from techhive.models.response import ApiResponse


def request_id_of(request: Request) -> Optional[str]:
    return getattr(request.state, "request_id", None)


def build_envelope(
    request: Request,
    *,
    success: bool,
    data: Any = None,
    message: Optional[str] = None,
    error: Optional[str] = None,
    code: Optional[str] = None,
    **extra: Any,
) -> dict:
    """Build the envelope dict; ``extra`` keys are added at the top level."""
    envelope = ApiResponse(
        success=success,
        data=jsonable_encoder(data) if data is not None else None,
        message=message,
        error=error,
        code=code,
        timestamp=datetime.now(timezone.utc),
        request_id=request_id_of(request),
        **{k: jsonable_encoder(v) for k, v in extra.items() if v is not None},
    )
    return envelope.model_dump(by_alias=True, exclude_none=True, mode="json")


def success_response(
    request: Request,
    data: Any = None,
    *,
    message: Optional[str] = None,
    status_code: int = status.HTTP_200_OK,
    **extra: Any,
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=build_envelope(
            request, success=True, data=data, message=message, **extra
        ),
    )


def error_response(request: Request, exc: ApiError, **extra: Any) -> JSONResponse:
    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, AuthenticationFailed) else None
    return JSONResponse(
        status_code=exc.status_code,
        content=build_envelope(
            request,
            success=False,
            error=exc.message,
            code=exc.code,
            **{**exc.extra, **extra},
        ),
        headers=headers,
    )
