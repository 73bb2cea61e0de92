"""Signet spotlight payments over x402 or a direct on-chain transaction."""

from __future__ import annotations

from .api import SignetApiClient
from .authorizer import (
    AuthorizationEncoding,
    PaymentAuthorizer,
    SignedPaymentAuthorization,
    TransferAuthorization,
)
from .config import SignetConfig, resolve_private_key
from .constants import (
    DEFAULT_RPC_URLS,
    DEFAULT_USDC_DOMAIN,
    KNOWN_TOKENS,
    get_token,
)
from .errors import (
    AuthorizationReused,
    EndpointUnavailable,
    InsufficientBalance,
    InvalidRequirement,
    MalformedRequirement,
    NetworkError,
    NoSuitableToken,
    PaymentRejected,
    ProtocolViolation,
    RpcError,
    SignetError,
    SigningFailed,
    TransactionFailure,
    UnknownToken,
)
from .gateway import ChainGateway
from .models import (
    QuoteResult,
    SignatureRecord,
    SpendDetail,
    SpotlightEstimate,
    SpotlightReceipt,
    SpotlightStatus,
    TokenDescriptor,
    TransactionOutcome,
)
from .negotiator import NegotiationOutcome, PaymentChallenge, PaymentNegotiator, parse_payment_required
from .onchain import OnChainSigner, SignResult, SignState
from .rpc import FallbackPolicy, RpcEndpointPool
from .selector import TokenSelector
from .units import compute_max_amount, format_units, parse_units
from .workflows import estimate_spotlight, post_spotlight, recent_signatures

__all__ = [
    "AuthorizationEncoding",
    "AuthorizationReused",
    "ChainGateway",
    "DEFAULT_RPC_URLS",
    "DEFAULT_USDC_DOMAIN",
    "EndpointUnavailable",
    "FallbackPolicy",
    "InsufficientBalance",
    "InvalidRequirement",
    "KNOWN_TOKENS",
    "MalformedRequirement",
    "NegotiationOutcome",
    "NetworkError",
    "NoSuitableToken",
    "OnChainSigner",
    "PaymentAuthorizer",
    "PaymentChallenge",
    "PaymentNegotiator",
    "PaymentRejected",
    "ProtocolViolation",
    "QuoteResult",
    "RpcEndpointPool",
    "RpcError",
    "SignResult",
    "SignState",
    "SignatureRecord",
    "SignedPaymentAuthorization",
    "SignetApiClient",
    "SignetConfig",
    "SignetError",
    "SigningFailed",
    "SpendDetail",
    "SpotlightEstimate",
    "SpotlightReceipt",
    "SpotlightStatus",
    "TokenDescriptor",
    "TokenSelector",
    "TransactionFailure",
    "TransactionOutcome",
    "TransferAuthorization",
    "UnknownToken",
    "compute_max_amount",
    "estimate_spotlight",
    "format_units",
    "get_token",
    "parse_payment_required",
    "parse_units",
    "post_spotlight",
    "recent_signatures",
    "resolve_private_key",
]
