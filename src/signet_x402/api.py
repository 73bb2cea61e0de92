"""HTTP client for the Signet backend."""

from __future__ import annotations

from typing import Any, Dict, Mapping, Optional

import httpx

from .constants import DEFAULT_BASE_URL
from .errors import NetworkError

JsonDict = Dict[str, Any]

ESTIMATE_PATH = "/api/x402/estimate"
SPOTLIGHT_PATH = "/api/x402/spotlight"
SIGNATURE_LIST_PATH = "/api/signature/list"


class SignetApiClient:
    """Minimal async client for the Signet x402 endpoints."""

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = 10.0,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._client = http_client
        self._owns_client = http_client is None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self._client

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "SignetApiClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def fetch_estimate(self, guarantee_hours: int = 0) -> JsonDict:
        return await self._get_json(ESTIMATE_PATH, {"guaranteeHours": guarantee_hours})

    async def fetch_signatures(self, start_index: int = 0, end_index: int = 5) -> JsonDict:
        return await self._get_json(
            SIGNATURE_LIST_PATH, {"startIndex": start_index, "endIndex": end_index}
        )

    async def post_spotlight(
        self,
        url: str,
        guarantee_hours: int,
        headers: Optional[Mapping[str, str]] = None,
    ) -> httpx.Response:
        """POST to the spotlight endpoint and return the raw response for 402 handling."""
        request_headers = {"Content-Type": "application/json"}
        if headers:
            request_headers.update(headers)
        try:
            return await self._get_client().post(
                f"{self.base_url}{SPOTLIGHT_PATH}",
                json={"url": url, "guaranteeHours": guarantee_hours},
                headers=request_headers,
                timeout=self.timeout,
            )
        except httpx.HTTPError as exc:
            raise NetworkError(f"spotlight request failed: {exc}") from exc

    async def _get_json(self, path: str, params: Mapping[str, Any]) -> JsonDict:
        try:
            response = await self._get_client().get(
                f"{self.base_url}{path}", params=dict(params), timeout=self.timeout
            )
        except httpx.HTTPError as exc:
            raise NetworkError(f"GET {path} failed: {exc}") from exc
        if not response.is_success:
            raise NetworkError(f"GET {path} failed: {response.status_code} {response.text}")
        try:
            return response.json()
        except ValueError as exc:
            raise NetworkError(f"GET {path} returned invalid JSON") from exc
