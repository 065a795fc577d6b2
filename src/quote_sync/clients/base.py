"""Rate-limited, retrying HTTP wrapper shared by the Simpro and HubSpot clients."""

import logging
import time
from typing import Any, Callable, Optional

import httpx
from tenacity import (
    Retrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_fixed,
)

from quote_sync.clients.rate_limit import RateLimiter
from quote_sync.errors import NotFoundError, RemoteAPIError

logger = logging.getLogger(__name__)


class RemoteClient:
    """
    Thin request wrapper around one remote service.

    Every request waits on the service's RateLimiter, then is sent; transport
    failures (timeouts, connection errors) are retried up to max_attempts with
    a fixed delay and the last failure is re-raised. HTTP status codes are
    returned untouched: deciding what a 404 means is the caller's job.
    """

    service: str = ""

    def __init__(
        self,
        base_url: str,
        *,
        headers: Optional[dict[str, str]] = None,
        rate_limiter: Optional[RateLimiter] = None,
        max_attempts: int = 3,
        retry_delay: float = 5.0,
        timeout: float = 30.0,
        client: Optional[httpx.Client] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self._client = client or httpx.Client(
            base_url=base_url,
            timeout=timeout,
            headers=headers or {},
        )
        self.rate_limiter = rate_limiter or RateLimiter(10.0)
        self.max_attempts = max_attempts
        self.retry_delay = retry_delay
        self._sleep = sleep

    def request(
        self,
        method: str,
        path: str,
        *,
        json: Any = None,
        params: Optional[dict[str, Any]] = None,
    ) -> httpx.Response:
        """Send one request, retrying transport errors. Never raises on status."""
        retrying = Retrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_fixed(self.retry_delay),
            retry=retry_if_exception_type(httpx.TransportError),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            sleep=self._sleep,
            reraise=True,
        )
        for attempt in retrying:
            with attempt:
                self.rate_limiter.wait()
                response = self._client.request(method, path, json=json, params=params)
        logger.debug("%s %s %s -> %d", self.service, method, path, response.status_code)
        return response

    def _checked(self, response: httpx.Response, path: str) -> httpx.Response:
        if response.status_code == 404:
            raise NotFoundError(self.service, 404, response.text, path)
        if not response.is_success:
            raise RemoteAPIError(self.service, response.status_code, response.text, path)
        return response

    def get_json(self, path: str, params: Optional[dict[str, Any]] = None) -> Any:
        """GET and decode JSON. Raises NotFoundError on 404, RemoteAPIError otherwise."""
        response = self._checked(self.request("GET", path, params=params), path)
        return response.json()

    def send_json(self, method: str, path: str, body: Any = None) -> Any:
        """POST/PATCH/PUT with a JSON body; returns decoded JSON or None for empty bodies."""
        response = self._checked(self.request(method, path, json=body), path)
        if not response.content:
            return None
        return response.json()

    def close(self) -> None:
        self._client.close()
