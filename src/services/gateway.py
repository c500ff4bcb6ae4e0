"""Proxy gateway to the upstream chat completion API.

The gateway is a pure translator: it validates the payload, injects the
bearer credential, enforces the timeout and normalises every failure into a
`CompletionFailure`. It keeps no state between calls.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping
from typing import Any, Optional
from uuid import uuid4

import httpx
from pydantic import BaseModel, ConfigDict

from src.config import Settings
from src.models import CompletionFailure, CompletionResult, CompletionSuccess, ErrorKind

log = logging.getLogger(__name__)

COMPLETIONS_PATH = "/v1/chat/completions"
INVALID_REQUEST_MESSAGE = "Invalid request format"
GENERIC_UPSTREAM_MESSAGE = "OpenAI API error"


class GatewayConfig(BaseModel):
    """Immutable gateway configuration, built once at process start."""
    model_config = ConfigDict(frozen=True)

    api_key: Optional[str] = None
    base_url: str = "https://api.openai.com"
    timeout_seconds: float = 30.0

    @classmethod
    def from_settings(cls, settings: Settings) -> "GatewayConfig":
        return cls(
            api_key=(settings.OPENAI_API_KEY or "").strip() or None,
            base_url=settings.API_BASE_URL.strip().rstrip("/"),
            timeout_seconds=settings.REQUEST_TIMEOUT_SECONDS,
        )

    @property
    def completions_url(self) -> str:
        return f"{self.base_url}{COMPLETIONS_PATH}"


def is_valid_payload(payload: Any) -> bool:
    """Payload must carry a non-empty model id and a non-empty message list."""
    if not isinstance(payload, Mapping):
        return False
    model = payload.get("model")
    messages = payload.get("messages")
    if not isinstance(model, str) or not model.strip():
        return False
    return isinstance(messages, list) and len(messages) > 0


def _upstream_error_message(response: httpx.Response) -> str:
    try:
        data = response.json()
    except ValueError:
        return GENERIC_UPSTREAM_MESSAGE
    if isinstance(data, dict):
        error = data.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
        if isinstance(error, str) and error:
            return error
    return GENERIC_UPSTREAM_MESSAGE


class ProxyGateway:
    def __init__(
        self,
        config: GatewayConfig,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.config = config
        # Only tests pass a transport; production talks to the real network.
        self._transport = transport

    async def complete(self, payload: Any) -> CompletionResult:
        """Forward one completion request. Always resolves, never raises."""
        request_id = str(uuid4())
        log.info(f"[Request {request_id}] Received completion request")

        if not is_valid_payload(payload):
            log.info(f"[Request {request_id}] Invalid request format")
            return self._failure(request_id, ErrorKind.INVALID_REQUEST, INVALID_REQUEST_MESSAGE, 400)

        if not self.config.api_key:
            log.error(f"[Request {request_id}] Missing OPENAI_API_KEY")
            return self._failure(
                request_id, ErrorKind.MISSING_CREDENTIAL, "OPENAI_API_KEY is not set", 500
            )

        log.info(
            f"[Request {request_id}] Forwarding to upstream "
            f"(model={payload['model']}, messages={len(payload['messages'])})"
        )
        try:
            response = await asyncio.wait_for(
                self._post(payload), timeout=self.config.timeout_seconds
            )
        except (asyncio.TimeoutError, httpx.TimeoutException):
            log.error(f"[Request {request_id}] Upstream timed out after {self.config.timeout_seconds}s")
            return self._failure(
                request_id, ErrorKind.UPSTREAM_UNAVAILABLE, "Upstream request timed out", 504
            )
        except httpx.HTTPError as e:
            log.error(f"[Request {request_id}] Upstream transport error: {e!r}")
            return self._failure(
                request_id, ErrorKind.UPSTREAM_UNAVAILABLE, "Upstream service unavailable", 502
            )

        status = response.status_code
        if status >= 500:
            log.error(f"[Request {request_id}] Upstream server error (status={status})")
            return self._failure(
                request_id,
                ErrorKind.UPSTREAM_UNAVAILABLE,
                f"Upstream service unavailable (status {status})",
                status,
            )
        if status >= 400:
            message = _upstream_error_message(response)
            log.error(f"[Request {request_id}] Upstream rejected request (status={status}): {message}")
            return self._failure(request_id, ErrorKind.UPSTREAM_REJECTED, message, status)

        try:
            body = response.json()
        except ValueError:
            log.error(f"[Request {request_id}] Upstream returned a non-JSON body")
            return self._failure(
                request_id, ErrorKind.MALFORMED_RESPONSE, "Upstream returned a non-JSON body", 502
            )
        if not isinstance(body, dict):
            return self._failure(
                request_id, ErrorKind.MALFORMED_RESPONSE, "Upstream returned an unexpected body", 502
            )

        log.info(f"[Request {request_id}] Successfully received response")
        return CompletionSuccess(body=body, request_id=request_id)

    async def _post(self, payload: Any) -> httpx.Response:
        headers = {
            "Authorization": f"Bearer {self.config.api_key}",
            "Content-Type": "application/json",
        }
        async with httpx.AsyncClient(
            timeout=self.config.timeout_seconds, transport=self._transport
        ) as client:
            return await client.post(self.config.completions_url, headers=headers, json=payload)

    @staticmethod
    def _failure(request_id: str, kind: ErrorKind, message: str, status_code: int) -> CompletionFailure:
        return CompletionFailure(
            kind=kind, message=message, request_id=request_id, status_code=status_code
        )
