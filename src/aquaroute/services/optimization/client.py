"""HTTP client for the external route optimization service."""

from __future__ import annotations

import logging
import time
from collections.abc import Mapping
from typing import Any, Sequence

import httpx

from ...config import settings
from .errors import NO_ROUTES_MESSAGE, OptimizerRejected
from .request_builder import OptimizationRequest
from .shaping import shape_route

logger = logging.getLogger(__name__)


def unwrap_envelope(payload: Any) -> Any:
    """Pull the route object out of the ``{success, routes: [...]}`` envelope.

    Envelope keys (other than ``routes``/``success``/``message``) are kept
    underneath the first route so telemetry at either level survives.
    Payloads without an envelope are returned untouched.
    """
    if not isinstance(payload, Mapping):
        return payload
    if payload.get("success") is False:
        raise OptimizerRejected(str(payload.get("message") or payload.get("error") or NO_ROUTES_MESSAGE))
    routes = payload.get("routes")
    if not isinstance(routes, list):
        return payload
    if not routes:
        raise OptimizerRejected(str(payload.get("message") or NO_ROUTES_MESSAGE))
    envelope = {k: v for k, v in payload.items() if k not in ("routes", "success", "message")}
    first = routes[0]
    if isinstance(first, Mapping):
        return {**envelope, **first}
    return first


class OptimizerClient:
    def __init__(
        self,
        base_url: str | None = None,
        endpoint: str | None = None,
        timeout: float | None = None,
        connect_timeout: float | None = None,
        max_retries: int | None = None,
        backoff_seconds: float | None = None,
        transport: httpx.BaseTransport | None = None,
        fallback_endpoints: Sequence[str] | None = None,
        timeout_margin: float | None = None,
    ) -> None:
        self.base_url = (base_url or settings.optimizer_base_url or "").rstrip("/")
        if not self.base_url:
            raise ValueError("Optimizer base URL is not configured.")
        self.endpoint = endpoint or settings.optimizer_endpoint
        self.fallback_endpoints = tuple(
            fallback_endpoints if fallback_endpoints is not None else settings.optimizer_fallback_endpoints
        )
        self.timeout = timeout if timeout is not None else settings.optimizer_timeout_seconds
        self.timeout_margin = timeout_margin if timeout_margin is not None else settings.optimizer_timeout_margin_seconds
        self.connect_timeout = (
            connect_timeout if connect_timeout is not None else settings.optimizer_connect_timeout_seconds
        )
        self.max_retries = max_retries if max_retries is not None else settings.optimizer_max_retries
        self.backoff_seconds = backoff_seconds if backoff_seconds is not None else settings.optimizer_backoff_seconds
        self._transport = transport

    def timeout_for(self, request: OptimizationRequest) -> float:
        """Network budget for one call; always longer than the algorithm's own time limit."""
        return max(self.timeout, request.params.time_limit + self.timeout_margin)

    def _get_client(self, timeout: float) -> httpx.Client:
        # One client per call; sessions may optimize from several threads.
        return httpx.Client(
            timeout=httpx.Timeout(timeout, connect=self.connect_timeout),
            transport=self._transport,
        )

    def optimize(self, request: OptimizationRequest) -> Any:
        """POST the request and return the decoded (unvalidated) route payload.

        The primary endpoint is tried first, then each fallback endpoint in
        order. If every endpoint fails, the primary endpoint's error is raised.
        """
        payload = request.to_payload()
        timeout = self.timeout_for(request)
        first_error: Exception | None = None
        for endpoint in (self.endpoint, *self.fallback_endpoints):
            try:
                data = self._post(f"{self.base_url}{endpoint}", payload, timeout)
                return shape_route(unwrap_envelope(data), request.origin)
            except (httpx.HTTPError, OptimizerRejected) as e:
                logger.warning(f"Optimizer endpoint {endpoint} failed: {e!r}")
                if first_error is None:
                    first_error = e
        raise first_error

    def _post(self, url: str, payload: dict[str, Any], timeout: float) -> Any:
        """Transport failures are retried with exponential backoff; HTTP status errors are raised immediately."""
        client = self._get_client(timeout)
        try:
            attempt = 0
            while True:
                try:
                    response = client.post(url, json=payload)
                    response.raise_for_status()
                    break
                except (httpx.TimeoutException, httpx.NetworkError) as e:
                    attempt += 1
                    if attempt > self.max_retries:
                        logger.warning(f"Optimizer request failed after {attempt} attempt(s): {e!r}")
                        raise
                    wait_time = self.backoff_seconds * (2 ** (attempt - 1))
                    logger.debug(f"Optimizer transport error, retrying in {wait_time:.1f}s (attempt {attempt}/{self.max_retries}): {e!r}")
                    time.sleep(wait_time)
        finally:
            client.close()

        try:
            return response.json()
        except ValueError:
            logger.warning(f"Optimizer returned a non-JSON body ({len(response.content)} bytes)")
            return None

    def health(self) -> bool:
        return check_health(self.base_url, transport=self._transport)


def check_health(
    base_url: str | None = None,
    timeout: float | None = None,
    transport: httpx.BaseTransport | None = None,
) -> bool:
    """Check optimizer reachability; never raises.

    Some deployments have no health route, so a 404 falls back to the root URL.
    """
    base = (base_url or settings.optimizer_base_url or "").rstrip("/")
    if not base:
        return False
    try:
        with httpx.Client(timeout=timeout or settings.health_timeout_seconds, transport=transport) as client:
            response = client.get(f"{base}{settings.optimizer_health_endpoint}")
            if response.status_code == 404:
                response = client.get(base)
            return response.status_code == 200
    except httpx.HTTPError as e:
        logger.debug(f"Optimizer health check failed: {e!r}")
        return False
    except Exception as e:
        logger.debug(f"Optimizer health check failed unexpectedly: {e!r}")
        return False
