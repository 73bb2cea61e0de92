"""Exceptions raised by the Signet payment core."""

from __future__ import annotations

from typing import Any, List, Optional, Sequence, Tuple


class SignetError(Exception):
    """Base class for every failure surfaced by this package."""


class NetworkError(SignetError):
    """An HTTP endpoint could not be reached or returned garbage."""


class EndpointUnavailable(NetworkError):
    """Raised when every configured RPC endpoint failed for a call."""

    def __init__(self, method: str, errors: Sequence[Tuple[str, str]]) -> None:
        self.method = method
        self.errors: List[Tuple[str, str]] = list(errors)
        if self.errors:
            url, reason = self.errors[-1]
            self.last_error: Optional[str] = f"{url}: {reason}"
        else:
            self.last_error = None
        super().__init__(
            f"all RPC endpoints failed for {method} "
            f"({len(self.errors)} attempts); last error: {self.last_error or 'none'}"
        )


class RpcError(SignetError):
    """A JSON-RPC error object returned by an endpoint."""

    def __init__(self, message: str, code: Optional[int] = None, data: Any = None) -> None:
        self.code = code
        self.data = data
        super().__init__(message)


class ProtocolViolation(SignetError):
    """The server answered outside the x402 challenge/response shape."""

    def __init__(self, message: str, status: Optional[int] = None, body: Any = None) -> None:
        self.status = status
        self.body = body
        super().__init__(message)


class MalformedRequirement(ProtocolViolation):
    """A 402 response carried no usable payment requirement."""


class InvalidRequirement(SignetError, ValueError):
    """A payment requirement lacks what is needed to build an authorization."""


class SigningFailed(SignetError):
    """The signing identity could not produce a signature."""


class UnknownToken(SignetError, ValueError):
    def __init__(self, symbol: str, known: Sequence[str] = ()) -> None:
        self.symbol = symbol
        self.known = list(known)
        hint = f". Use one of: {', '.join(self.known)}" if self.known else ""
        super().__init__(f"unknown token {symbol!r}{hint}")


class InsufficientBalance(SignetError):
    def __init__(self, needed: int, have: int, token: Optional[str] = None) -> None:
        self.needed = needed
        self.have = have
        self.token = token
        label = f" {token}" if token else ""
        super().__init__(f"insufficient{label} balance: need {needed}, have {have}")


class NoSuitableToken(SignetError):
    def __init__(self, skipped: Sequence[Tuple[str, str]] = ()) -> None:
        self.skipped = list(skipped)
        detail = "; ".join(f"{symbol}: {reason}" for symbol, reason in self.skipped)
        message = "no token found with sufficient balance for the estimated cost"
        if detail:
            message = f"{message} ({detail})"
        super().__init__(message)


class PaymentRejected(SignetError):
    """The server declined an attached payment authorization."""

    def __init__(self, reason: str, status: int = 402) -> None:
        self.reason = reason
        self.status = status
        super().__init__(f"payment rejected: {reason}")


class AuthorizationReused(SignetError, ValueError):
    """A single-use payment authorization was submitted a second time."""


class TransactionFailure(SignetError):
    """An on-chain transaction reverted, could not be sent, or was never mined."""

    def __init__(self, message: str, tx_hash: Optional[str] = None) -> None:
        self.tx_hash = tx_hash
        super().__init__(message)


class EventDecodeError(SignetError):
    """No log in a receipt decoded as the expected event."""
