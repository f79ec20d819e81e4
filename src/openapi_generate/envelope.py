"""Success/failure envelopes returned by every public entry point.

Entry points never raise: they return a ``SuccessResponse`` or an
``ErrorResponse``, both of which serialize to the JSON shape consumed by
the JSON-RPC transport and the CLI.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel

from openapi_generate.parser.base import dump_model


class ErrorCode(str, Enum):
    INVALID_INPUT = "INVALID_INPUT"
    UPSTREAM_ERROR = "UPSTREAM_ERROR"
    PARSE_ERROR = "PARSE_ERROR"
    INTERNAL_ERROR = "INTERNAL_ERROR"
    # Reserved for collaborators; the pipeline itself never produces these.
    RATE_LIMITED = "RATE_LIMITED"
    TIMEOUT = "TIMEOUT"


class PipelineError(Exception):
    """Base for failures that map onto a specific error code."""

    code = ErrorCode.INTERNAL_ERROR

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class DocumentParseError(PipelineError):
    code = ErrorCode.PARSE_ERROR


class UpstreamError(PipelineError):
    code = ErrorCode.UPSTREAM_ERROR


class ResponseMeta(BaseModel):
    retrieved_at: str
    source: str | None = None
    warnings: list[str] = []


class ErrorMeta(BaseModel):
    retrieved_at: str


class ErrorInfo(BaseModel):
    code: ErrorCode
    message: str
    details: dict[str, Any] = {}


class SuccessResponse(BaseModel):
    ok: Literal[True] = True
    data: Any
    meta: ResponseMeta

    def to_dict(self) -> dict[str, Any]:
        data = self.data
        if isinstance(data, BaseModel):
            data = dump_model(data)
        return {
            "ok": True,
            "data": data,
            "meta": self.meta.model_dump(exclude_none=True),
        }


class ErrorResponse(BaseModel):
    ok: Literal[False] = False
    error: ErrorInfo
    meta: ErrorMeta

    def to_dict(self) -> dict[str, Any]:
        return {"ok": False, **self.model_dump(mode="json", include={"error", "meta"})}


ToolResponse = SuccessResponse | ErrorResponse


def utc_timestamp() -> str:
    """ISO-8601 UTC timestamp with millisecond precision and a ``Z`` suffix."""
    now = datetime.now(timezone.utc)
    return now.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def success_response(
    data: Any,
    source: str | None = None,
    warnings: list[str] | None = None,
) -> SuccessResponse:
    meta = ResponseMeta(retrieved_at=utc_timestamp(), source=source, warnings=warnings or [])
    return SuccessResponse(data=data, meta=meta)


def error_response(
    code: ErrorCode,
    message: str,
    details: dict[str, Any] | None = None,
) -> ErrorResponse:
    return ErrorResponse(
        error=ErrorInfo(code=code, message=message, details=details or {}),
        meta=ErrorMeta(retrieved_at=utc_timestamp()),
    )


def failure_from(exc: PipelineError, message: str | None = None) -> ErrorResponse:
    return error_response(exc.code, message or exc.message, exc.details)
