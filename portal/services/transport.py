"""
Transport - the single call the request cache makes on a miss.

HttpTransport talks to the content API over httpx. Timeouts and retries
live here and nowhere else: the cache above never retries on its own.
"""

from typing import Any, Protocol

import httpx
from loguru import logger
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from portal.services.errors import HttpStatusError, NetworkError, ParseError


class Transport(Protocol):
    """Anything that can turn (endpoint, params) into parsed response data."""

    async def request(
        self, endpoint: str, params: dict[str, Any] | None = None
    ) -> Any: ...


def _is_retryable(exc: BaseException) -> bool:
    if isinstance(exc, NetworkError):
        return True
    if isinstance(exc, HttpStatusError):
        return exc.status_code == 408 or exc.is_rate_limited or exc.is_server_error
    return False


def _log_retry(retry_state: RetryCallState) -> None:
    exc = retry_state.outcome.exception() if retry_state.outcome else None
    logger.warning(f"Retrying content API request (attempt {retry_state.attempt_number}): {exc}")


class HttpTransport:
    """
    Async HTTP transport for the content API.

    Usage:
        async with HttpTransport("https://api.example.org") as transport:
            data = await transport.request("/api/v1/news", {"page": 1})
    """

    SERVICE_ID = "content-api"

    def __init__(
        self,
        base_url: str,
        timeout: float = 10.0,
        max_retries: int = 3,
        retry_backoff: float = 0.5,
        headers: dict[str, str] | None = None,
        client: httpx.AsyncClient | None = None,
    ):
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._max_retries = max(0, max_retries)
        self._retry_backoff = retry_backoff
        self._headers = {"Accept": "application/json", **(headers or {})}
        self._http_client = client

    @classmethod
    def from_settings(cls, settings: Any) -> "HttpTransport":
        return cls(
            base_url=settings.api_base_url,
            timeout=settings.api_timeout,
            max_retries=settings.api_max_retries,
            retry_backoff=settings.api_retry_backoff,
        )

    def _get_http_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(
                base_url=self._base_url,
                timeout=httpx.Timeout(self._timeout),
                headers=self._headers,
                follow_redirects=True,
            )
        return self._http_client

    async def request(
        self, endpoint: str, params: dict[str, Any] | None = None
    ) -> Any:
        """
        GET an endpoint and return the decoded JSON body.

        Raises:
            NetworkError: API unreachable or timed out (after retries)
            HttpStatusError: Non-2xx answer (408/429/5xx after retries)
            ParseError: Body is not valid JSON
        """
        query = {k: v for k, v in (params or {}).items() if v is not None}

        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(self._max_retries + 1),
            wait=wait_exponential(multiplier=self._retry_backoff, max=10),
            retry=retry_if_exception(_is_retryable),
            before_sleep=_log_retry,
            reraise=True,
        ):
            with attempt:
                return await self._execute_request(
                    endpoint, query, attempt.retry_state.attempt_number
                )

    async def _execute_request(
        self, endpoint: str, query: dict[str, Any], attempt_number: int = 1
    ) -> Any:
        """Execute the actual HTTP request."""
        client = self._get_http_client()

        try:
            response = await client.get(
                endpoint,
                params=query,
                headers={"X-Retry-Attempt": str(attempt_number)},
            )
        except httpx.TimeoutException as e:
            raise NetworkError(
                f"Request to {endpoint} timed out after {self._timeout}s",
                service_id=self.SERVICE_ID,
            ) from e
        except httpx.RequestError as e:
            raise NetworkError(str(e) or type(e).__name__, service_id=self.SERVICE_ID) from e

        if response.is_error:
            try:
                body = response.json()
            except ValueError:
                body = None
            raise HttpStatusError.from_response(
                response.status_code, body, service_id=self.SERVICE_ID
            )

        try:
            return response.json()
        except ValueError as e:
            raise ParseError(
                f"Malformed response body from {endpoint}",
                service_id=self.SERVICE_ID,
            ) from e

    async def health_check(self) -> dict[str, str]:
        """
        Check ``/health`` once, without retries.

        The API answers with the plain-text body ``Healthy``; any other
        2xx body reports ``unhealthy``.
        """
        client = self._get_http_client()
        try:
            response = await client.get("/health")
        except httpx.RequestError as e:
            raise NetworkError(
                f"Health check failed: {str(e) or type(e).__name__}",
                service_id=self.SERVICE_ID,
            ) from e

        if response.is_error:
            raise HttpStatusError(
                f"Health check failed: HTTP {response.status_code}",
                status_code=response.status_code,
                service_id=self.SERVICE_ID,
            )

        status = "healthy" if response.text.strip() == "Healthy" else "unhealthy"
        return {"status": status, "service": type(self).__name__}

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._http_client:
            await self._http_client.aclose()
            self._http_client = None
        logger.debug("HttpTransport closed")

    async def __aenter__(self) -> "HttpTransport":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()
