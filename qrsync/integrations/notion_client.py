"""Async HTTP client for the subset of the Notion API used by qrsync."""

from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import Any, AsyncIterator, Mapping

import httpx

from qrsync.config import NotionConfig, RetryConfig
from qrsync.logging import get_logger
from qrsync.logging_events import log_event
from qrsync.utils.rate_budget import RateBudget
from qrsync.utils.retry import RetryDirective, RetryExhaustedError, with_retry

logger = get_logger(__name__)

_BODY_PREVIEW_CHARS = 500

# Notion error codes that may succeed when repeated.
_RETRYABLE_ERROR_CODES = frozenset(
    {
        "rate_limited",
        "conflict_error",
        "internal_server_error",
        "service_unavailable",
        "database_connection_unavailable",
        "gateway_timeout",
    }
)


class NotionClientError(RuntimeError):
    """Base exception raised for Notion client failures."""

    def __init__(self, message: str, *, retryable: bool = False) -> None:
        super().__init__(message)
        self.retryable = retryable


class NotionTimeoutError(NotionClientError):
    """Raised when a request exceeded the configured timeout."""

    def __init__(self, message: str = "Notion request timed out") -> None:
        super().__init__(message, retryable=True)


class NotionInvalidResponseError(NotionClientError):
    """Raised when a successful response does not carry the expected payload."""


class NotionHTTPStatusError(NotionClientError):
    """Raised when Notion answered with a non-success status code."""

    def __init__(
        self,
        status_code: int,
        message: str,
        *,
        code: str | None = None,
        body: str | None = None,
        retryable: bool = False,
    ) -> None:
        super().__init__(message, retryable=retryable)
        self.status_code = status_code
        self.code = code
        self.body = body


class NotionRateLimitedError(NotionHTTPStatusError):
    """Raised when Notion rejected the request due to rate limits."""

    def __init__(self, *, body: str | None = None, retry_after_ms: int | None = None) -> None:
        super().__init__(
            429,
            "Notion rate limited the request",
            code="rate_limited",
            body=body,
            retryable=True,
        )
        self.retry_after_ms = retry_after_ms


class TransportError(NotionClientError):
    """Terminal failure of one logical Notion operation."""

    def __init__(
        self,
        operation: str,
        message: str,
        *,
        attempts: int,
        status_code: int | None = None,
        body: str | None = None,
    ) -> None:
        super().__init__(message, retryable=False)
        self.operation = operation
        self.attempts = attempts
        self.status_code = status_code
        self.body = body


class TransportExhausted(TransportError):
    """Every allowed attempt failed with a retryable error."""


class TransportRejected(TransportError):
    """Notion rejected the request with an error that is never retried."""


@dataclass(slots=True)
class NotionHttpClient:
    """HTTPX based Notion client; every attempt holds a :class:`RateBudget` permit."""

    token: str
    budget: RateBudget
    base_url: str = "https://api.notion.com"
    notion_version: str = "2022-06-28"
    transport: httpx.AsyncBaseTransport | None = None
    timeout_ms: int = 30_000
    max_attempts: int = 3
    backoff_base_ms: int = 1_000

    @classmethod
    def from_config(
        cls,
        notion: NotionConfig,
        retry: RetryConfig,
        *,
        budget: RateBudget,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> NotionHttpClient:
        return cls(
            token=notion.token,
            budget=budget,
            base_url=notion.base_url,
            notion_version=notion.version,
            transport=transport,
            timeout_ms=notion.timeout_ms,
            max_attempts=retry.max_attempts,
            backoff_base_ms=retry.base_delay_ms,
        )

    async def query_database(
        self,
        database_id: str,
        *,
        filter: Mapping[str, Any] | None = None,
        start_cursor: str | None = None,
        page_size: int = 100,
    ) -> Mapping[str, Any]:
        body: dict[str, Any] = {"page_size": max(1, min(100, int(page_size)))}
        if filter:
            body["filter"] = dict(filter)
        if start_cursor:
            body["start_cursor"] = start_cursor
        return await self._request(
            "POST",
            f"/v1/databases/{database_id}/query",
            operation="query_database",
            json=body,
        )

    async def iter_query_results(
        self,
        database_id: str,
        *,
        filter: Mapping[str, Any] | None = None,
    ) -> AsyncIterator[Mapping[str, Any]]:
        """Yield every page matched by ``filter``, following pagination cursors."""

        cursor: str | None = None
        while True:
            payload = await self.query_database(database_id, filter=filter, start_cursor=cursor)
            results = payload.get("results")
            if not isinstance(results, list):
                raise NotionInvalidResponseError("Notion query returned no results list")
            for page in results:
                if isinstance(page, Mapping):
                    yield page
            cursor = payload.get("next_cursor") if payload.get("has_more") else None
            if not cursor:
                return

    async def retrieve_page(self, page_id: str) -> Mapping[str, Any]:
        return await self._request("GET", f"/v1/pages/{page_id}", operation="retrieve_page")

    async def update_page_properties(
        self, page_id: str, properties: Mapping[str, Any]
    ) -> Mapping[str, Any]:
        return await self._request(
            "PATCH",
            f"/v1/pages/{page_id}",
            operation="update_page",
            json={"properties": dict(properties)},
        )

    async def create_file_upload(
        self,
        *,
        filename: str,
        content_type: str,
        mode: str = "single_part",
    ) -> str:
        """Reserve an upload slot and return its id."""

        payload = await self._request(
            "POST",
            "/v1/file_uploads",
            operation="create_file_upload",
            json={"mode": mode, "filename": filename, "content_type": content_type},
        )
        return _require_id(payload, "create_file_upload")

    async def send_file_upload(
        self,
        upload_id: str,
        *,
        filename: str,
        content: bytes,
        content_type: str,
    ) -> str:
        """Transmit ``content`` into a reserved slot and return the stored file id."""

        payload = await self._request(
            "POST",
            f"/v1/file_uploads/{upload_id}/send",
            operation="send_file_upload",
            files={"file": (filename, content, content_type)},
        )
        return _require_id(payload, "send_file_upload")

    async def _request(
        self,
        method: str,
        path: str,
        *,
        operation: str,
        json: Any = None,
        files: Mapping[str, Any] | None = None,
    ) -> Mapping[str, Any]:
        base_url = self.base_url.rstrip("/")
        timeout = self._build_timeout(self.timeout_ms)
        headers = {
            "Accept": "application/json",
            "Authorization": f"Bearer {self.token}",
            "Notion-Version": self.notion_version,
        }

        async def _perform_request() -> Mapping[str, Any]:
            async with self.budget.permit():
                try:
                    async with httpx.AsyncClient(
                        base_url=base_url,
                        timeout=timeout,
                        headers=headers,
                        transport=self.transport,
                    ) as client:
                        response = await client.request(method, path, json=json, files=files)
                except httpx.TimeoutException as exc:
                    raise NotionTimeoutError() from exc
                except httpx.HTTPError as exc:
                    raise NotionClientError(
                        f"Notion request failed: {exc}", retryable=True
                    ) from exc

            if response.is_success:
                return self._decode_json(response)
            raise _status_error(response)

        def _classify(error: Exception) -> RetryDirective:
            if isinstance(error, NotionRateLimitedError):
                return RetryDirective(
                    retry=True,
                    delay_override_ms=error.retry_after_ms,
                    error=error,
                )
            if isinstance(error, NotionClientError):
                return RetryDirective(retry=error.retryable, error=error)
            return RetryDirective(retry=False, error=error)

        attempts_made = 0

        def _on_failure(attempt: int, error: Exception, retryable: bool) -> None:
            nonlocal attempts_made
            attempts_made = attempt
            log_event(
                logger,
                "notion.request_failed",
                level=logging.WARNING,
                component="integrations.notion",
                operation=operation,
                method=method,
                url=f"{base_url}{path}",
                attempt=attempt,
                retryable=retryable,
                status_code=getattr(error, "status_code", None),
                error_code=getattr(error, "code", None),
                error=str(error),
                body=getattr(error, "body", None),
            )

        try:
            return await with_retry(
                _perform_request,
                attempts=max(1, int(self.max_attempts)),
                base_ms=max(0, int(self.backoff_base_ms)),
                classify_err=_classify,
                on_failure=_on_failure,
            )
        except RetryExhaustedError as exc:
            last = exc.last_error
            raise TransportExhausted(
                operation,
                f"{operation} failed after {exc.attempts} attempt(s): {last}",
                attempts=exc.attempts,
                status_code=getattr(last, "status_code", None),
                body=getattr(last, "body", None),
            ) from last
        except NotionClientError as exc:
            raise TransportRejected(
                operation,
                f"{operation} was rejected: {exc}",
                attempts=max(1, attempts_made),
                status_code=getattr(exc, "status_code", None),
                body=getattr(exc, "body", None),
            ) from exc

    @staticmethod
    def _decode_json(response: httpx.Response) -> Mapping[str, Any]:
        try:
            payload = response.json()
        except ValueError as exc:
            raise NotionInvalidResponseError("Notion returned invalid JSON") from exc
        if not isinstance(payload, Mapping):
            raise NotionInvalidResponseError("Notion returned an unexpected payload")
        return payload

    @staticmethod
    def _build_timeout(timeout_ms: int) -> httpx.Timeout:
        timeout_seconds = max(timeout_ms, 100) / 1000
        connect_timeout = min(timeout_seconds, 5.0)
        return httpx.Timeout(
            timeout_seconds,
            connect=connect_timeout,
            read=timeout_seconds,
            write=timeout_seconds,
        )


def _require_id(payload: Mapping[str, Any], operation: str) -> str:
    value = payload.get("id")
    if isinstance(value, str) and value.strip():
        return value.strip()
    raise NotionInvalidResponseError(f"{operation} response did not include an id")


def _error_code(response: httpx.Response) -> str | None:
    try:
        payload = response.json()
    except ValueError:
        return None
    if isinstance(payload, Mapping):
        code = payload.get("code")
        if isinstance(code, str) and code:
            return code
    return None


def _status_error(response: httpx.Response) -> NotionHTTPStatusError:
    body_preview = response.text[:_BODY_PREVIEW_CHARS]
    code = _error_code(response)
    status_code = response.status_code

    if status_code == httpx.codes.TOO_MANY_REQUESTS:
        return NotionRateLimitedError(
            body=body_preview,
            retry_after_ms=_parse_retry_after_ms(response.headers),
        )
    if code is not None:
        retryable = code in _RETRYABLE_ERROR_CODES
    else:
        retryable = status_code >= 500 or status_code == httpx.codes.CONFLICT
    if status_code >= 500:
        message = "Notion returned a server error"
    elif 400 <= status_code < 500:
        message = "Notion rejected the request"
    else:
        message = "Notion responded with an unexpected status"
    return NotionHTTPStatusError(
        status_code,
        f"{message} ({status_code} {code or 'unknown'})",
        code=code,
        body=body_preview,
        retryable=retryable,
    )


def _parse_retry_after_ms(headers: Mapping[str, Any]) -> int | None:
    value = headers.get("Retry-After")
    if value is None:
        return None
    try:
        numeric = float(str(value).strip())
    except (TypeError, ValueError):
        return None
    return max(0, int(numeric * 1000))


__all__ = [
    "NotionClientError",
    "NotionHTTPStatusError",
    "NotionHttpClient",
    "NotionInvalidResponseError",
    "NotionRateLimitedError",
    "NotionTimeoutError",
    "TransportError",
    "TransportExhausted",
    "TransportRejected",
]
