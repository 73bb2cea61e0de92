"""Runtime configuration for the Signet payment core."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Sequence, Tuple, Union

from dotenv import dotenv_values

from .constants import (
    BASE_CHAIN_ID,
    BASE_NETWORK,
    DEFAULT_BASE_URL,
    DEFAULT_RPC_URLS,
    DEFAULT_TOKEN_PRIORITY,
    ESTIMATE_BUFFER_BPS,
    KNOWN_TOKENS,
    MAX_SLIPPAGE_PERCENT,
    SETTLEMENT_TOKEN,
    SIGNET_CONTRACT,
    ZAP_CONTRACT,
    get_token,
)
from .models import TokenDescriptor
from .rpc import READ_POLICY, WRITE_POLICY, FallbackPolicy

PRIVATE_KEY_ENV_KEYS: Tuple[str, ...] = (
    "SIGNET_PRIVATE_KEY",
    "BASE_PRIVATE_KEY",
    "EVM_PRIVATE_KEY",
    "PRIVATE_KEY",
)


@dataclass
class SignetConfig:
    """Addresses, endpoints and limits handed to every component.

    Nothing in the core reads module-level constants directly; tests build a
    config with fixture values instead.
    """

    base_url: str = DEFAULT_BASE_URL
    rpc_urls: List[str] = field(default_factory=lambda: list(DEFAULT_RPC_URLS))
    chain_id: int = BASE_CHAIN_ID
    network: str = BASE_NETWORK
    signet_contract: str = SIGNET_CONTRACT
    zap_contract: str = ZAP_CONTRACT
    tokens: Dict[str, TokenDescriptor] = field(default_factory=lambda: dict(KNOWN_TOKENS))
    token_priority: Tuple[str, ...] = DEFAULT_TOKEN_PRIORITY
    settlement_token: str = SETTLEMENT_TOKEN
    read_policy: FallbackPolicy = READ_POLICY
    write_policy: FallbackPolicy = WRITE_POLICY
    http_timeout: float = 10.0
    confirmation_timeout: float = 120.0
    poll_interval: float = 1.5
    gas_headroom_bps: int = 2_000
    estimate_buffer_bps: int = ESTIMATE_BUFFER_BPS
    max_slippage_percent: float = MAX_SLIPPAGE_PERCENT

    def resolve_token(self, symbol: str) -> TokenDescriptor:
        return get_token(symbol, self.tokens)

    @property
    def settlement(self) -> TokenDescriptor:
        return self.resolve_token(self.settlement_token)

    @classmethod
    def from_env(
        cls,
        env_file: Optional[Union[str, Path]] = None,
        environ: Optional[Mapping[str, str]] = None,
    ) -> "SignetConfig":
        """Build a config from the process environment and an optional ``.env`` file.

        Process environment wins over the file.
        """
        values = _load_env(env_file, environ)
        config = cls()

        base_url = values.get("SIGNET_BASE_URL")
        if base_url:
            config.base_url = base_url.rstrip("/")

        rpc_urls = values.get("SIGNET_RPC_URL") or values.get("SIGNET_RPC_URLS")
        if rpc_urls:
            config.rpc_urls = _split_urls(rpc_urls)

        chain_id = values.get("SIGNET_CHAIN_ID")
        if chain_id:
            config.chain_id = int(chain_id, 0)
            config.network = f"eip155:{config.chain_id}"

        confirmation_timeout = values.get("SIGNET_CONFIRMATION_TIMEOUT")
        if confirmation_timeout:
            config.confirmation_timeout = float(confirmation_timeout)

        return config


def resolve_private_key(
    explicit: Optional[str] = None,
    env_file: Optional[Union[str, Path]] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> Optional[str]:
    """Return a ``0x``-prefixed private key from the argument or the environment."""
    key = explicit.strip() if explicit else None
    if not key:
        values = _load_env(env_file, environ)
        for name in PRIVATE_KEY_ENV_KEYS:
            candidate = values.get(name)
            if candidate:
                key = candidate
                break
    if not key:
        return None
    return key if key.startswith("0x") else f"0x{key}"


def _load_env(
    env_file: Optional[Union[str, Path]],
    environ: Optional[Mapping[str, str]],
) -> Dict[str, str]:
    values: Dict[str, str] = {}
    if env_file is not None:
        path = Path(env_file).expanduser()
        if path.exists():
            values.update({k: v for k, v in dotenv_values(path).items() if v is not None})
    source = os.environ if environ is None else environ
    values.update({k: v for k, v in source.items() if v is not None and v.strip()})
    return {k: v.strip() for k, v in values.items()}


def _split_urls(raw: str) -> List[str]:
    urls: Sequence[str] = [part.strip() for part in raw.split(",")]
    return [url for url in urls if url]
