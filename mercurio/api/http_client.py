"""
Async HTTP client for the Mercurio backend.

The backend exposes its tables through a PostgREST-style REST API. This client
adds the API key headers, maps HTTP errors onto the exception hierarchy, and
retries rate-limited, server-side and transport failures with backoff. Plain
POST inserts are retried only when rate-limited.
"""

import asyncio
from typing import Any, Self

import httpx
import structlog

from mercurio.config import MercurioConfig
from mercurio.exceptions import (
    APIError,
    NetworkError,
    NotFoundError,
    RateLimitError,
    ServerError,
)

logger = structlog.get_logger(__name__)

REST_PREFIX = "/rest/v1"

SENSITIVE_KEYS = frozenset(
    {
        "apikey",
        "Authorization",
        "encrypted_content",
        "encrypted_aes_key",
        "nonce",
        "mac",
        "ed25519_public_key",
        "rsa_public_key_modulus",
    }
)


def sanitize_for_log(data: Any) -> Any:
    """
    Replace bulky or sensitive values with "***" before logging.

    Recursively sanitizes nested dictionaries and lists.
    """
    if isinstance(data, dict):
        return {
            key: "***" if key in SENSITIVE_KEYS else sanitize_for_log(value)
            for key, value in data.items()
        }
    if isinstance(data, list):
        return [sanitize_for_log(item) for item in data]
    return data


def _retryable_errors(
    method: str, params: dict[str, Any] | None
) -> tuple[type[Exception], ...]:
    if method.upper() == "POST" and not (params and "on_conflict" in params):
        return (RateLimitError,)
    return (RateLimitError, ServerError, NetworkError)


class AsyncHttpClient:
    """Async HTTP client for the backend REST API."""

    def __init__(
        self,
        config: MercurioConfig,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """
        Args:
            config: Client configuration.
            transport: Optional transport for testing (mock transport).
        """
        self._config = config
        self._transport = transport
        self._client: httpx.AsyncClient | None = None
        self._client_lock = asyncio.Lock()

    async def __aenter__(self) -> Self:
        await self._ensure_client()
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()

    @property
    def is_open(self) -> bool:
        return self._client is not None

    async def _ensure_client(self) -> httpx.AsyncClient:
        async with self._client_lock:
            if self._client is None:
                self._client = httpx.AsyncClient(
                    base_url=self._config.api_url.rstrip("/") + REST_PREFIX,
                    timeout=self._config.timeout,
                    transport=self._transport,
                    headers={
                        "apikey": self._config.api_key,
                        "Authorization": f"Bearer {self._config.api_key}",
                        "Accept": "application/json",
                        "User-Agent": self._config.user_agent,
                    },
                )
            return self._client

    async def close(self) -> None:
        async with self._client_lock:
            if self._client is None:
                logger.debug("Client not open.")
                return
            await self._client.aclose()
            self._client = None

    async def request(
        self,
        method: str,
        endpoint: str,
        *,
        json: Any = None,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> Any:
        """
        Make an API request, retrying transient failures.

        Args:
            method: HTTP method (GET, POST, PATCH, ...).
            endpoint: Table endpoint (e.g., "/messages").
            json: JSON body.
            params: Query parameters (PostgREST filters).
            headers: Extra headers such as ``Prefer``.

        Returns:
            Decoded JSON body, or None for an empty response.

        Raises:
            NotFoundError: On 404.
            RateLimitError: On 429 after retries are exhausted.
            ServerError: On 5xx after retries are exhausted.
            APIError: On any other error status or an invalid JSON body.
            NetworkError: If the request cannot be sent after retries.
        """
        if self._client is None:
            msg = "HTTP client not initialized. Use 'async with' first."
            raise RuntimeError(msg)

        retryable = _retryable_errors(method, params)
        attempt = 0
        while True:
            try:
                return await self._send(method, endpoint, json=json, params=params, headers=headers)
            except retryable as e:
                if attempt >= self._config.max_retries:
                    raise
                delay = self._retry_delay(attempt, e)
                attempt += 1
                logger.warning(
                    "Request failed, retrying",
                    endpoint=endpoint,
                    attempt=attempt,
                    delay=delay,
                    error_type=type(e).__name__,
                )
                await asyncio.sleep(delay)

    async def _send(
        self,
        method: str,
        endpoint: str,
        *,
        json: Any,
        params: dict[str, Any] | None,
        headers: dict[str, str] | None,
    ) -> Any:
        logger.debug(
            "API request",
            method=method,
            endpoint=endpoint,
            params=params,
            body=sanitize_for_log(json),
        )
        try:
            response = await self._client.request(
                method=method,
                url=endpoint,
                json=json,
                params=params,
                headers=headers,
            )
        except httpx.TransportError as e:
            msg = f"Request to {endpoint} failed: {type(e).__name__}"
            raise NetworkError(msg, endpoint=endpoint) from e

        if response.is_error:
            self._raise_api_error(response, endpoint)

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise APIError(
                "Invalid JSON response from API",
                code=response.status_code,
                endpoint=endpoint,
            ) from e

    def _retry_delay(self, attempt: int, error: Exception) -> float:
        if isinstance(error, RateLimitError) and error.retry_after is not None:
            return float(error.retry_after)
        return self._config.retry_delay * (2**attempt)

    @staticmethod
    def _raise_api_error(response: httpx.Response, endpoint: str) -> None:
        status = response.status_code
        try:
            data = response.json()
        except ValueError:
            data = {}
        error_msg = data.get("message") if isinstance(data, dict) else None
        error_msg = error_msg or response.reason_phrase or "Unknown error"

        if status == httpx.codes.NOT_FOUND:
            raise NotFoundError(error_msg, endpoint=endpoint)
        if status == httpx.codes.TOO_MANY_REQUESTS:
            retry_after = response.headers.get("Retry-After")
            raise RateLimitError(
                error_msg,
                retry_after=int(retry_after) if retry_after and retry_after.isdigit() else None,
            )
        if status >= 500:
            raise ServerError(error_msg, code=status, endpoint=endpoint)

        msg = f"{error_msg} (status={status})"
        raise APIError(msg, code=status, endpoint=endpoint)
