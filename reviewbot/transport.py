"""
HTTP Transport for the GitLab REST API.

Handles HTTP communication with automatic retry logic, token
authentication, pagination and error handling.
"""

import random
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

import httpx

from reviewbot.exceptions import (
    AuthenticationError,
    AuthorizationError,
    ConflictError,
    NotFoundError,
    RateLimitedError,
    ReviewBotError,
    ServerError,
    ValidationError,
)
from reviewbot.logging import log_http_request, log_http_response


@dataclass
class RetryConfig:
    """Configuration for automatic retry behavior."""

    max_retries: int = 3
    backoff_factor: float = 2.0
    retry_on: list[int] = field(default_factory=lambda: [429, 500, 502, 503])
    respect_retry_after: bool = True
    max_backoff: float = 60.0  # Maximum backoff time in seconds
    jitter: float = 0.1  # Jitter factor (0.1 = ±10%)


class HTTPTransport:
    """
    HTTP transport layer with token authentication and retry logic.

    Handles:
    - PRIVATE-TOKEN authentication
    - Exponential backoff with jitter for retries
    - Retry-After header respect for rate limiting
    - X-Next-Page pagination
    - Error response parsing into typed exceptions
    """

    PER_PAGE = 100

    def __init__(
        self,
        base_url: str,
        token: str,
        timeout: float = 30.0,
        retry_config: RetryConfig | None = None,
    ) -> None:
        """
        Initialize HTTP transport.

        Args:
            base_url: Base URL of the API (e.g., "https://gitlab.com/api/v4")
            token: Personal or project access token of the bot account
            timeout: Request timeout in seconds
            retry_config: Configuration for retry behavior
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.retry_config = retry_config or RetryConfig()

        self._client = httpx.Client(
            base_url=self.base_url,
            timeout=timeout,
            headers={
                "Content-Type": "application/json",
                "PRIVATE-TOKEN": token,
            },
        )

    def close(self) -> None:
        """Close the HTTP client."""
        self._client.close()

    def __enter__(self) -> "HTTPTransport":
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()

    def request(
        self,
        method: str,
        path: str,
        params: dict[str, Any] | None = None,
        body: dict[str, Any] | None = None,
    ) -> Any:
        """
        Make a request with automatic retry.

        Args:
            method: HTTP method
            path: API path (e.g., "/projects/1/merge_requests/2")
            params: Query parameters
            body: JSON request body (for POST/PUT)

        Returns:
            Parsed JSON response, or None for empty responses

        Raises:
            ReviewBotError: On API errors
        """
        def make_request() -> httpx.Response:
            log_http_request(method, path, params, body)
            return self._client.request(method, path, params=params, json=body)

        response = self._execute_with_retry(make_request)
        if response.status_code == 204 or not response.content:
            return None
        return response.json()

    def paginate(
        self,
        path: str,
        params: dict[str, Any] | None = None,
    ) -> list[Any]:
        """
        Fetch every page of a list endpoint.

        Follows the X-Next-Page header until it is empty.

        Args:
            path: API path of a list endpoint
            params: Query parameters applied to every page

        Returns:
            Concatenated items of all pages
        """
        items: list[Any] = []
        page: str | None = "1"

        while page:
            query = dict(params or {})
            query.update({"page": page, "per_page": self.PER_PAGE})

            def make_request() -> httpx.Response:
                log_http_request("GET", path, query)
                return self._client.request("GET", path, params=query)

            response = self._execute_with_retry(make_request)
            items.extend(response.json() or [])
            page = response.headers.get("X-Next-Page") or None

        return items

    def _execute_with_retry(
        self, request_fn: Callable[[], httpx.Response]
    ) -> httpx.Response:
        """
        Execute a request with automatic retry on retryable errors.

        Args:
            request_fn: Function that makes the HTTP request

        Returns:
            Successful HTTP response

        Raises:
            ReviewBotError: On non-retryable errors or after max retries
        """
        last_error: Exception | None = None

        for attempt in range(self.retry_config.max_retries + 1):
            try:
                started = time.monotonic()
                response = request_fn()
                log_http_response(
                    response.status_code,
                    str(response.request.url) if response.request else "",
                    (time.monotonic() - started) * 1000,
                )

                if response.status_code < 400:
                    return response

                error = self._parse_error_response(response)

                if not self._should_retry(response.status_code, attempt):
                    raise error

                last_error = error

                retry_after = response.headers.get("Retry-After")
                wait_time = self._get_backoff_time(attempt, retry_after)
                time.sleep(wait_time)

            except httpx.RequestError as e:
                # Network errors are retryable
                if attempt >= self.retry_config.max_retries:
                    raise ServerError("CONNECTION_ERROR", str(e)) from e

                last_error = e
                wait_time = self._get_backoff_time(attempt, None)
                time.sleep(wait_time)

        if last_error:
            if isinstance(last_error, ReviewBotError):
                raise last_error
            raise ServerError("MAX_RETRIES_EXCEEDED", str(last_error))

        raise ServerError("UNKNOWN_ERROR", "Request failed with no error details")

    def _should_retry(self, status_code: int, attempt: int) -> bool:
        """Determine if a request should be retried."""
        if attempt >= self.retry_config.max_retries:
            return False

        return status_code in self.retry_config.retry_on

    def _get_backoff_time(
        self, attempt: int, retry_after: str | None
    ) -> float:
        """
        Calculate backoff time for retry.

        Uses exponential backoff with jitter, respecting Retry-After header
        if present.

        Args:
            attempt: Current attempt number (0-indexed)
            retry_after: Value of Retry-After header (if present)

        Returns:
            Time to wait in seconds
        """
        if retry_after and self.retry_config.respect_retry_after:
            try:
                return float(retry_after)
            except ValueError:
                pass  # Fall through to exponential backoff

        base_wait = self.retry_config.backoff_factor ** attempt

        jitter_range = base_wait * self.retry_config.jitter
        jitter = random.uniform(-jitter_range, jitter_range)
        wait_time = base_wait + jitter

        return min(wait_time, self.retry_config.max_backoff)

    def _parse_error_response(self, response: httpx.Response) -> ReviewBotError:
        """
        Parse an error response into a typed exception.

        GitLab reports errors either as {"message": ...} (a string or a
        field -> errors mapping) or as {"error": ..., "error_description": ...}.
        """
        try:
            data = response.json()
        except ValueError:
            data = {}
        if not isinstance(data, dict):
            data = {}

        status_code = response.status_code
        code = str(data.get("error") or f"HTTP_{status_code}").upper()

        message = data.get("message") or data.get("error_description") or f"HTTP {status_code}"
        if isinstance(message, dict):
            message = "; ".join(
                f"{k} {', '.join(v) if isinstance(v, list) else v}" for k, v in message.items()
            )
        elif isinstance(message, list):
            message = "; ".join(str(m) for m in message)

        request_id = response.headers.get("X-Request-Id")

        if status_code == 401:
            return AuthenticationError(code, message, request_id)
        elif status_code == 403:
            return AuthorizationError(code, message, request_id)
        elif status_code == 404:
            return NotFoundError(code, message, request_id)
        elif status_code == 409:
            return ConflictError(code, message, request_id)
        elif status_code == 429:
            retry_after_str = response.headers.get("Retry-After", "60")
            try:
                retry_after = int(retry_after_str)
            except ValueError:
                retry_after = 60
            return RateLimitedError(code, message, retry_after, request_id)
        elif status_code >= 500:
            return ServerError(code, message, request_id)
        else:
            return ValidationError(code, message, request_id)
