"""HTTP utilities for talking to the backend with retry logic for reads."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Final

import httpx

from specsync.config import (
    SPECSYNC_BACKOFF_S,
    SPECSYNC_MAX_RETRIES,
    SPECSYNC_TIMEOUT_S,
    SPECSYNC_USER_AGENT,
)
from specsync.exceptions import BackendError, NotFoundError

logger = logging.getLogger(__name__)

RETRY_STATUS_CODES: Final[frozenset[int]] = frozenset({429, 500, 502, 503, 504})

# Writes are not idempotent and are never retried.
_RETRY_METHODS: Final[frozenset[str]] = frozenset({"GET"})


def create_client(base_url: str) -> httpx.AsyncClient:
    """Create a pooled client with the configured timeout and user agent."""
    return httpx.AsyncClient(
        base_url=base_url,
        timeout=httpx.Timeout(SPECSYNC_TIMEOUT_S),
        headers={"User-Agent": SPECSYNC_USER_AGENT, "Accept": "application/json"},
    )


async def request_with_retries(
    client: httpx.AsyncClient,
    method: str,
    url: str,
    *,
    json: Any = None,
    params: dict[str, Any] | None = None,
    on_404: type[Exception] = NotFoundError,
    on_404_message: str | None = None,
) -> httpx.Response:
    """Send a request, retrying transient failures of idempotent reads.

    Args:
        client: The client to send the request with.
        method: HTTP method.
        url: URL, relative to the client's base URL.
        json: Optional JSON body.
        params: Optional query parameters.
        on_404: Exception class to raise on 404. Defaults to NotFoundError.
        on_404_message: Custom error message for 404 responses.

    Returns:
        The successful response.

    Raises:
        BackendError (or the on_404 exception): If the request fails after
            all retries or returns 404.
    """
    method = method.upper()
    attempts = SPECSYNC_MAX_RETRIES + 1 if method in _RETRY_METHODS else 1
    last_exc: Exception | None = None

    for attempt in range(attempts):
        try:
            response = await client.request(method, url, json=json, params=params)

            if response.status_code == 404:
                raise on_404(on_404_message or f"Resource not found at {url}")

            if response.status_code in RETRY_STATUS_CODES:
                last_exc = BackendError(f"HTTP {response.status_code} from {method} {url}")
            else:
                response.raise_for_status()
                return response
        except (httpx.RequestError, httpx.HTTPStatusError) as exc:
            last_exc = exc

        if attempt < attempts - 1:
            backoff = SPECSYNC_BACKOFF_S * (2**attempt)
            logger.debug("Retrying %s %s in %.2fs: %s", method, url, backoff, last_exc)
            await asyncio.sleep(backoff)

    raise BackendError(f"{method} {url} failed: {last_exc}")
