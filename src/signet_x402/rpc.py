"""JSON-RPC endpoint pool with deterministic, sequential failover."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, List, Optional, Sequence, Tuple

import httpx

from .errors import EndpointUnavailable, RpcError

logger = logging.getLogger(__name__)

# Rate limiting / transient node errors; anything else is deterministic.
RETRYABLE_RPC_CODES = frozenset({-32005, -32603})


@dataclass(frozen=True)
class FallbackPolicy:
    """Per-endpoint timeout and number of attempts before moving on."""

    timeout_seconds: float
    attempts: int = 2

    def __post_init__(self) -> None:
        if self.attempts < 1:
            raise ValueError("attempts must be at least 1")
        if self.timeout_seconds <= 0:
            raise ValueError("timeout_seconds must be positive")


READ_POLICY = FallbackPolicy(timeout_seconds=5.0, attempts=2)
WRITE_POLICY = FallbackPolicy(timeout_seconds=30.0, attempts=2)


class _RetryableRpcError(Exception):
    pass


class RpcEndpointPool:
    """Ordered list of RPC endpoints tried one at a time.

    Endpoint order is static: no latency ranking and no racing, so the same
    failures always lead to the same endpoint being used.
    """

    def __init__(
        self,
        endpoints: Sequence[str],
        read_policy: FallbackPolicy = READ_POLICY,
        write_policy: FallbackPolicy = WRITE_POLICY,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self._endpoints: List[str] = [url for url in endpoints if url]
        if not self._endpoints:
            raise ValueError("at least one RPC endpoint is required")
        self.read_policy = read_policy
        self.write_policy = write_policy
        self._client = http_client
        self._owns_client = http_client is None
        self._request_id = 0

    @property
    def endpoints(self) -> Tuple[str, ...]:
        return tuple(self._endpoints)

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient()
        return self._client

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "RpcEndpointPool":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def read(self, method: str, params: Optional[Sequence[Any]] = None) -> Any:
        return await self._call(method, list(params or []), self.read_policy)

    async def write(self, method: str, params: Optional[Sequence[Any]] = None) -> Any:
        return await self._call(method, list(params or []), self.write_policy)

    async def _call(self, method: str, params: List[Any], policy: FallbackPolicy) -> Any:
        errors: List[Tuple[str, str]] = []
        for url in self._endpoints:
            for attempt in range(1, policy.attempts + 1):
                try:
                    result = await self._post(url, method, params, policy.timeout_seconds)
                except (httpx.HTTPError, ValueError, _RetryableRpcError) as exc:
                    reason = str(exc) or type(exc).__name__
                    errors.append((url, reason))
                    logger.warning(
                        "RPC %s via %s failed (attempt %d/%d): %s",
                        method,
                        url,
                        attempt,
                        policy.attempts,
                        reason,
                    )
                    continue
                logger.debug("RPC %s via %s succeeded", method, url)
                return result
        raise EndpointUnavailable(method, errors)

    async def _post(self, url: str, method: str, params: List[Any], timeout: float) -> Any:
        self._request_id += 1
        payload = {"jsonrpc": "2.0", "id": self._request_id, "method": method, "params": params}
        response = await self._get_client().post(url, json=payload, timeout=timeout)
        response.raise_for_status()
        data = response.json()
        if not isinstance(data, dict):
            raise ValueError(f"unexpected JSON-RPC response: {data!r}")

        error = data.get("error")
        if error is not None:
            if isinstance(error, dict):
                code = error.get("code")
                message = error.get("message", "unknown error")
                if code in RETRYABLE_RPC_CODES:
                    raise _RetryableRpcError(f"RPC error {code}: {message}")
                raise RpcError(f"RPC call {method} failed: {message}", code=code, data=error.get("data"))
            raise RpcError(f"RPC call {method} failed: {error}")
        return data.get("result")
