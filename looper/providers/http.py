"""Async HTTP client shared by the web providers, with retry and backoff."""

import asyncio
import logging
from typing import Any

import httpx

from ..errors import ProviderUnavailableError
from ..settings import HTTP_USER_AGENT, MAX_RETRIES, RETRY_BACKOFF_FACTOR

logger = logging.getLogger(__name__)

RETRYABLE_STATUS_CODES = (429, 500, 502, 503, 504)


class HttpClient:
    """Async HTTP client for provider calls.

    Usage:
        async with HttpClient(base_url="http://localhost:8080") as client:
            response = await client.get("/search", params={"q": "x"})
    """

    def __init__(
        self,
        base_url: str = "",
        timeout: float = 15.0,
        max_retries: int = MAX_RETRIES,
        backoff_factor: float = RETRY_BACKOFF_FACTOR,
        headers: dict[str, str] | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        name: str = "http",
    ):
        self.base_url = base_url
        self.timeout = timeout
        self.max_retries = max(1, max_retries)
        self.backoff_factor = backoff_factor
        self.headers = {"User-Agent": HTTP_USER_AGENT, **(headers or {})}
        self.name = name
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> "HttpClient":
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            headers=self.headers,
            timeout=self.timeout,
            follow_redirects=True,
            transport=self._transport,
        )
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            raise RuntimeError(
                "Client not initialized. Use 'async with' context manager."
            )
        return self._client

    def _backoff(self, attempt: int, response: httpx.Response | None = None) -> float:
        # backoff_factor * 1, 2, 4, ... seconds
        backoff = self.backoff_factor * (2 ** attempt)
        if response is not None and response.status_code == 429:
            try:
                retry_after = float(response.headers.get("Retry-After", 0))
            except ValueError:
                retry_after = 0.0
            backoff = max(backoff, retry_after)
        return backoff

    async def request(
        self,
        method: str,
        url: str,
        **kwargs: Any,
    ) -> httpx.Response:
        """Make a request with exponential backoff retry.

        Non-retryable responses (including 4xx) are returned as-is so the
        caller can decide what they mean. Exhausted retries raise
        ProviderUnavailableError.
        """
        last_error: str = "no attempt made"

        for attempt in range(self.max_retries):
            logger.debug(f"Request attempt {attempt + 1}/{self.max_retries}: {method} {url}")

            try:
                response = await self.client.request(method, url, **kwargs)
            except (httpx.ConnectError, httpx.TimeoutException, httpx.RemoteProtocolError) as e:
                last_error = f"{type(e).__name__}: {e}"
                if attempt + 1 < self.max_retries:
                    backoff = self._backoff(attempt)
                    logger.warning(f"Connection error: {e}, backoff {backoff}s")
                    await asyncio.sleep(backoff)
                continue
            except httpx.HTTPError as e:
                raise ProviderUnavailableError(f"{method} {url} failed: {e}", self.name) from e

            if response.status_code in RETRYABLE_STATUS_CODES:
                last_error = f"status {response.status_code}"
                if attempt + 1 < self.max_retries:
                    backoff = self._backoff(attempt, response)
                    logger.warning(
                        f"Retryable status ({response.status_code}), backoff {backoff}s"
                    )
                    await asyncio.sleep(backoff)
                continue

            return response

        logger.error(f"Request failed after {self.max_retries} attempts: {method} {url}")
        raise ProviderUnavailableError(
            f"{method} {url} failed after {self.max_retries} attempts ({last_error})",
            self.name,
        )

    async def get(self, url: str, **kwargs: Any) -> httpx.Response:
        """Make a GET request."""
        return await self.request("GET", url, **kwargs)
