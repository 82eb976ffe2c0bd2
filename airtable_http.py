"""
Authenticated request execution for the Airtable API.

Every attempt carries the bearer token, waits for a rate limiter token and
is sent over a shared httpx client. Airtable answers 422 for transient
conditions, so that status, and only that status, is retried with
exponential backoff. Every other status is handed back to the caller.
"""

import logging
import time
from typing import Any, Callable, Dict, Optional

import httpx
from tenacity import RetryCallState, RetryError, Retrying, retry_if_result, stop_after_attempt, wait_exponential

from airtable_config import ClientCredentials, ClientSettings
from airtable_errors import RetryExhaustedError, TransportError
from rate_limiter import RateLimiter
from telemetry import NullTelemetry

LOGGER_NAME = "airtable"
RETRY_STATUS = 422

# Silent unless the application configures logging.
logging.getLogger(LOGGER_NAME).addHandler(logging.NullHandler())


def _should_retry(response: httpx.Response) -> bool:
    return response.status_code == RETRY_STATUS


class AuthenticatedRequestExecutor:
    """Sends one logical request, retrying it while the API answers 422."""

    def __init__(
        self,
        credentials: ClientCredentials,
        http_client: httpx.Client,
        rate_limiter: RateLimiter,
        settings: Optional[ClientSettings] = None,
        logger: Optional[logging.Logger] = None,
        telemetry: Any = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.credentials = credentials
        self.http_client = http_client
        self.rate_limiter = rate_limiter
        self.settings = settings or ClientSettings()
        self.logger = logger or logging.getLogger(LOGGER_NAME)
        self.telemetry = telemetry or NullTelemetry()
        self._sleep = sleep

    def _retrying(self) -> Retrying:
        s = self.settings
        return Retrying(
            retry=retry_if_result(_should_retry),
            wait=wait_exponential(multiplier=s.initial_backoff, exp_base=s.backoff_multiple, max=s.max_backoff),
            stop=stop_after_attempt(s.max_retries + 1),
            sleep=self._sleep,
            before_sleep=self._log_retry,
        )

    def _log_retry(self, retry_state: RetryCallState) -> None:
        delay_ms = int(retry_state.next_action.sleep * 1000)
        self.logger.info(
            "Retrying Airtable request in %sms (attempt %s)",
            delay_ms,
            retry_state.attempt_number,
        )

    def execute(
        self,
        method: str,
        url: str,
        body: Optional[bytes] = None,
        params: Optional[Dict[str, str]] = None,
    ) -> httpx.Response:
        """
        Send a request and return the final response.

        Args:
            method: HTTP method.
            url: Absolute resource URL.
            body: Already encoded JSON payload, if any.
            params: Query parameters.

        Returns:
            The first response whose status is not 422. Non-2xx statuses are
            returned as-is; interpreting them is up to the caller.

        Raises:
            TransportError: The request could not be sent. Not retried.
            RetryExhaustedError: Still 422 after ``max_retries`` retries.
        """
        request = self.http_client.build_request(
            method,
            url,
            params=params or None,
            content=body,
            headers=self.credentials.auth_headers(),
        )

        try:
            return self._retrying()(self._attempt, request)
        except RetryError as e:
            attempts = e.last_attempt.attempt_number
            self.logger.error("Hit max retries when attempting %s", request.url)
            self.telemetry.incr("airtable.retry_exhausted", {"url": str(request.url), "method": method})
            raise RetryExhaustedError(str(request.url), attempts) from None

    def _attempt(self, request: httpx.Request) -> httpx.Response:
        self.logger.info("Making request for %s %s", request.method, request.url)
        self.rate_limiter.acquire()

        start = time.perf_counter()
        try:
            response = self.http_client.send(request)
        except httpx.TransportError as e:
            self.logger.error("Request to %s failed: %s", request.url, e)
            raise TransportError(f"{request.method} {request.url} failed: {e}") from e
        elapsed = time.perf_counter() - start

        tags = {"url": str(request.url), "method": request.method, "status_code": response.status_code}
        self.telemetry.timing("airtable.request", elapsed, tags)

        self.logger.info("Airtable StatusCode %s", response.status_code, extra={"status_code": response.status_code})
        if response.status_code != 200:
            self.logger.error("%s", response.text)

        if response.status_code == RETRY_STATUS:
            self.telemetry.incr("airtable.retry", tags)

        return response
