"""Error taxonomy and HTTP error envelopes for qrsync."""

from __future__ import annotations

from collections.abc import Mapping, MutableMapping
from enum import Enum
import logging
from typing import Any
from uuid import uuid4

from fastapi import status
from fastapi.responses import JSONResponse

from qrsync.logging import get_logger


class ErrorCode(str, Enum):
    """Error codes exposed in HTTP error envelopes."""

    VALIDATION_ERROR = "VALIDATION_ERROR"
    AUTH_REQUIRED = "AUTH_REQUIRED"
    METHOD_NOT_ALLOWED = "METHOD_NOT_ALLOWED"
    INTERNAL_ERROR = "INTERNAL_ERROR"


class FailureKind(str, Enum):
    """Pipeline step at which processing of a record stopped."""

    SLOT_RESERVATION_FAILED = "SlotReservationFailed"
    ENCODING_FAILED = "EncodingFailed"
    TRANSMISSION_FAILED = "TransmissionFailed"
    BINDING_FAILED = "BindingFailed"


_logger = get_logger(__name__)


class DataError(ValueError):
    """A record is missing or carries malformed identifier fields."""

    def __init__(self, message: str, *, record_id: str | None = None) -> None:
        super().__init__(message)
        self.record_id = record_id


class EncodingError(RuntimeError):
    """The artifact encoder could not render the payload."""


class ProcessingError(RuntimeError):
    """A record could not be carried through the upload pipeline."""

    def __init__(self, failure: FailureKind, cause: BaseException) -> None:
        super().__init__(f"{failure.value}: {cause}")
        self.failure = failure
        self.cause = cause


class AppError(Exception):
    """Base exception for errors rendered as HTTP responses."""

    __slots__ = ("message", "code", "http_status", "meta", "headers")

    def __init__(
        self,
        message: str,
        *,
        code: ErrorCode,
        http_status: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        meta: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code
        self.http_status = http_status
        self.meta = meta
        self.headers = headers

    def as_response(self, *, request_path: str, method: str) -> JSONResponse:
        """Serialise the exception into the canonical error envelope."""

        return _build_response(
            message=self.message,
            code=self.code,
            status_code=self.http_status,
            request_path=request_path,
            method=method,
            meta=self.meta,
            headers=self.headers,
        )


class MalformedEventError(AppError):
    """The inbound webhook body could not be parsed into an event."""

    def __init__(self, message: str = "Malformed event payload.") -> None:
        super().__init__(
            message=message,
            code=ErrorCode.VALIDATION_ERROR,
            http_status=status.HTTP_400_BAD_REQUEST,
        )


class AuthenticityFailure(AppError):
    """The inbound webhook signature did not match the shared secret."""

    def __init__(self, message: str = "Invalid signature.") -> None:
        super().__init__(
            message=message,
            code=ErrorCode.AUTH_REQUIRED,
            http_status=status.HTTP_401_UNAUTHORIZED,
        )


class MethodNotAllowedError(AppError):
    def __init__(self, message: str = "Method Not Allowed") -> None:
        super().__init__(
            message=message,
            code=ErrorCode.METHOD_NOT_ALLOWED,
            http_status=status.HTTP_405_METHOD_NOT_ALLOWED,
            headers={"Allow": "POST"},
        )


class InternalServerError(AppError):
    """Generic failure; internal detail stays in the logs."""

    def __init__(self, message: str = "Internal error") -> None:
        super().__init__(
            message=message,
            code=ErrorCode.INTERNAL_ERROR,
            http_status=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )


def _log_level_for_status(status_code: int) -> int:
    if status_code >= 500:
        return logging.ERROR
    if status_code in {status.HTTP_401_UNAUTHORIZED, status.HTTP_429_TOO_MANY_REQUESTS}:
        return logging.WARNING
    return logging.INFO


def _build_response(
    *,
    message: str,
    code: ErrorCode,
    status_code: int,
    request_path: str,
    method: str,
    meta: Mapping[str, Any] | None = None,
    headers: Mapping[str, str] | None = None,
) -> JSONResponse:
    debug_id = uuid4().hex

    payload: MutableMapping[str, Any] = {
        "ok": False,
        "error": {"code": code.value, "message": message},
    }
    if meta:
        payload["error"]["meta"] = dict(meta)

    response = JSONResponse(status_code=status_code, content=payload)
    response.headers["X-Debug-Id"] = debug_id
    if headers:
        for name, value in headers.items():
            response.headers[name] = value

    _logger.log(
        _log_level_for_status(status_code),
        "API request failed",
        extra={
            "event": "api.error",
            "code": code.value,
            "status": status_code,
            "path": request_path,
            "method": method,
            "debug_id": debug_id,
        },
    )
    return response


__all__ = [
    "AppError",
    "AuthenticityFailure",
    "DataError",
    "EncodingError",
    "ErrorCode",
    "FailureKind",
    "InternalServerError",
    "MalformedEventError",
    "MethodNotAllowedError",
    "ProcessingError",
]
