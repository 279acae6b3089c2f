"""
Async HTTP client for the Home Helper REST backend.

Every call resolves to an ``ApiResult``: timeouts, connection failures,
non-2xx responses and ``success: false`` envelopes all come back as values
carrying a user-facing message. Nothing here raises for a failed request,
so callers can turn any failure straight into a notification.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Optional

import httpx

from home_helper.api import endpoints
from home_helper.config import settings
from home_helper.schemas.api_schema import (
    DEFAULT_BACKEND_MESSAGE,
    NETWORK_MESSAGE,
    TIMEOUT_MESSAGE,
    ApiResult,
    ErrorKind,
)
from home_helper.schemas.session_schema import SessionContext

logger = logging.getLogger(__name__)

DEFAULT_HEADERS = {"Content-Type": "application/json", "Accept": "application/json"}


class BackendClient:
    """Thin wrapper over ``httpx.AsyncClient`` with envelope handling."""

    def __init__(
        self,
        session: Optional[SessionContext] = None,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._session = session or SessionContext()
        self._base_url = (base_url or settings.backend.base_url).rstrip("/")
        self._timeout = timeout if timeout is not None else settings.backend.timeout_sec
        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            timeout=httpx.Timeout(self._timeout),
            headers=DEFAULT_HEADERS,
            transport=transport,
        )

    @property
    def session(self) -> SessionContext:
        return self._session

    @property
    def timeout(self) -> float:
        return self._timeout

    def _auth_headers(self) -> dict[str, str]:
        if self._session.auth_token:
            return {"Authorization": f"Bearer {self._session.auth_token}"}
        return {}

    @staticmethod
    def _build_path(endpoint: str) -> str:
        return "/" + endpoint.lstrip("/")

    async def request(
        self,
        method: str,
        endpoint: str,
        json: Any = None,
        params: Optional[dict[str, Any]] = None,
    ) -> ApiResult:
        """Issue a request and fold every outcome into an ApiResult."""
        path = self._build_path(endpoint)
        try:
            response = await asyncio.wait_for(
                self._client.request(
                    method,
                    path,
                    json=json,
                    params=params,
                    headers=self._auth_headers(),
                ),
                timeout=self._timeout,
            )
        except (asyncio.TimeoutError, httpx.TimeoutException):
            logger.warning("%s %s timed out after %.1fs", method, path, self._timeout)
            return ApiResult.failure(ErrorKind.TIMEOUT, TIMEOUT_MESSAGE)
        except httpx.RequestError as e:
            logger.warning("%s %s failed: %s", method, path, e)
            return ApiResult.failure(ErrorKind.NETWORK, NETWORK_MESSAGE)

        return self._interpret(method, path, response)

    @staticmethod
    def _interpret(method: str, path: str, response: httpx.Response) -> ApiResult:
        try:
            body = response.json()
        except ValueError:
            body = None

        envelope = body if isinstance(body, dict) else {}
        message = envelope.get("message")

        if not response.is_success:
            logger.warning("%s %s -> HTTP %d: %s", method, path, response.status_code, message)
            return ApiResult.failure(
                ErrorKind.BACKEND,
                message or DEFAULT_BACKEND_MESSAGE,
                status_code=response.status_code,
                body=body,
            )

        if envelope.get("success") is False:
            logger.warning("%s %s -> success=false: %s", method, path, message)
            return ApiResult.failure(
                ErrorKind.BACKEND,
                message or DEFAULT_BACKEND_MESSAGE,
                status_code=response.status_code,
                body=body,
            )

        logger.debug("%s %s -> HTTP %d", method, path, response.status_code)
        return ApiResult(
            ok=True,
            data=envelope.get("data") if envelope else body,
            body=body,
            message=message,
            status_code=response.status_code,
        )

    async def get(self, endpoint: str, params: Optional[dict[str, Any]] = None) -> ApiResult:
        return await self.request("GET", endpoint, params=params)

    async def post(self, endpoint: str, json: Any = None) -> ApiResult:
        return await self.request("POST", endpoint, json=json if json is not None else {})

    async def put(self, endpoint: str, json: Any = None) -> ApiResult:
        return await self.request("PUT", endpoint, json=json)

    async def patch(self, endpoint: str, json: Any = None) -> ApiResult:
        return await self.request("PATCH", endpoint, json=json)

    async def delete(self, endpoint: str) -> ApiResult:
        return await self.request("DELETE", endpoint)

    async def health_check(self) -> ApiResult:
        result = await self.get(endpoints.HEALTH)
        if not result.ok:
            return ApiResult.failure(
                result.error_kind or ErrorKind.NETWORK,
                "Backend server is not reachable",
                status_code=result.status_code,
            )
        return result

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> BackendClient:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()
