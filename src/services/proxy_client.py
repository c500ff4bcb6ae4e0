"""Client for the same-origin chat proxy (POST /api/chat)."""

from __future__ import annotations

import logging
from typing import Any, Optional
from uuid import uuid4

import httpx

from src.config import settings
from src.models import CompletionFailure, CompletionResult, CompletionSuccess, ErrorKind

log = logging.getLogger(__name__)


def _kind_for_status(status: int) -> ErrorKind:
    if status == 400:
        return ErrorKind.INVALID_REQUEST
    if status >= 500:
        return ErrorKind.UPSTREAM_UNAVAILABLE
    return ErrorKind.UPSTREAM_REJECTED


def _error_message(data: dict[str, Any]) -> Optional[str]:
    """`error` as the proxy sends it, or OpenAI's `{"error": {"message": ...}}`."""
    error = data.get("error")
    if isinstance(error, dict):
        error = error.get("message")
    return error if isinstance(error, str) and error else None


class ProxyClient:
    """Speaks to a running proxy with the same contract as ProxyGateway."""

    def __init__(
        self,
        url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.url = url or settings.PROXY_URL
        # A little above the proxy's own upstream bound so the proxy answers first.
        self.timeout = timeout or settings.REQUEST_TIMEOUT_SECONDS + 5
        self._transport = transport

    async def complete(self, payload: Any) -> CompletionResult:
        """Send one payload to the proxy and normalise the outcome."""
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                r = await client.post(self.url, json=payload)
        except httpx.HTTPError as e:
            request_id = str(uuid4())
            log.error(f"[Request {request_id}] Proxy unreachable: {e!r}")
            return CompletionFailure(
                kind=ErrorKind.UPSTREAM_UNAVAILABLE,
                message="Could not reach the chat proxy",
                request_id=request_id,
                status_code=502,
            )

        try:
            data = r.json()
        except ValueError:
            data = None

        if r.is_success:
            if not isinstance(data, dict):
                return CompletionFailure(
                    kind=ErrorKind.MALFORMED_RESPONSE,
                    message="Proxy returned a non-JSON body",
                    request_id=str(uuid4()),
                    status_code=502,
                )
            return CompletionSuccess(body=data, request_id=r.headers.get("x-request-id", ""))

        data = data if isinstance(data, dict) else {}
        kind_value = data.get("kind")
        try:
            kind = ErrorKind(kind_value) if isinstance(kind_value, str) else _kind_for_status(r.status_code)
        except ValueError:
            kind = _kind_for_status(r.status_code)
        request_id = data.get("requestId")
        failure = CompletionFailure(
            kind=kind,
            message=_error_message(data) or f"Server error: {r.status_code} {r.reason_phrase}",
            request_id=request_id if isinstance(request_id, str) and request_id else str(uuid4()),
            status_code=r.status_code,
        )
        log.warning(f"[Request {failure.request_id}] Proxy returned {r.status_code}: {failure.message}")
        return failure
