"""Command line entry point: ``signet estimate|list|post|sign``."""

from __future__ import annotations

import argparse
import asyncio
import logging
from datetime import datetime, timezone
from typing import Optional

from .api import SignetApiClient
from .authorizer import AuthorizationEncoding, PaymentAuthorizer
from .config import SignetConfig, resolve_private_key
from .constants import AUTO_TOKEN, DEFAULT_SLIPPAGE_PERCENT, HUNT_DECIMALS
from .errors import SignetError, SigningFailed
from .gateway import ChainGateway
from .negotiator import PaymentNegotiator
from .onchain import OnChainSigner
from .rpc import RpcEndpointPool
from .selector import TokenSelector
from .units import format_units
from .workflows import estimate_spotlight, post_spotlight, recent_signatures

LOG_FORMAT = "signet %(levelname)s: %(message)s"


def print_section(title: str, body: Optional[str] = None) -> None:
    line = "=" * len(title)
    print(f"\n{title}\n{line}")
    if body is not None:
        print(body)


def print_step(role: str, message: str) -> None:
    print(f"[{role}] {message}")


def configure_logging(verbosity: int) -> None:
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity >= 2:
        level = logging.DEBUG
    logging.basicConfig(level=level, format=LOG_FORMAT)


def load_config(args: argparse.Namespace) -> SignetConfig:
    config = SignetConfig.from_env(env_file=args.env_file)
    if args.base_url:
        config.base_url = args.base_url.rstrip("/")
    if args.rpc_url:
        config.rpc_urls = list(args.rpc_url)
    return config


def load_authorizer(args: argparse.Namespace):
    key = resolve_private_key(args.private_key, env_file=args.env_file)
    if key is None:
        raise SigningFailed(
            "no private key: pass --private-key or set SIGNET_PRIVATE_KEY, "
            "BASE_PRIVATE_KEY or EVM_PRIVATE_KEY"
        )
    return PaymentAuthorizer.from_private_key(key)


def _pool(config: SignetConfig) -> RpcEndpointPool:
    return RpcEndpointPool(config.rpc_urls, config.read_policy, config.write_policy)


# ---------------------------------------------------------------------------
# Subcommands
# ---------------------------------------------------------------------------


async def run_estimate(config: SignetConfig, args: argparse.Namespace) -> None:
    async with _pool(config) as pool:
        estimate = await estimate_spotlight(ChainGateway(pool, config), args.hours)

    symbol = config.settlement_token.upper()
    print_section("Signet Spotlight Estimate")
    print_step("estimate", f"guarantee hours: {estimate.guarantee_hours}")
    print_step(
        "estimate",
        f"estimated cost: {format_units(estimate.settlement_amount, estimate.settlement_decimals)} {symbol}",
    )
    print_step("estimate", f"spotlight available: {'yes' if estimate.available else 'no'}")
    if estimate.remaining_seconds > 0:
        minutes = -(-estimate.remaining_seconds // 60)
        print_step("estimate", f"current guarantee remaining: {minutes} min")


async def run_list(config: SignetConfig, args: argparse.Namespace) -> None:
    async with _pool(config) as pool, SignetApiClient(config.base_url, config.http_timeout) as api:
        records = await recent_signatures(ChainGateway(pool, config), api, args.count)

    if not records:
        print("No signatures found.")
        return

    print_section(f"Recent Signet Signatures ({len(records)})")
    for record in records:
        date = datetime.fromtimestamp(record.timestamp, tz=timezone.utc).strftime("%Y-%m-%d")
        hunt = format_units(record.hunt_amount, HUNT_DECIMALS)
        print(f"  #{record.index} - {record.title or '(no title)'}")
        print(f"     URL: {record.url}")
        views = "" if record.view_count is None else f" | Views: {record.view_count}"
        clicks = "" if record.click_count is None else f" | Clicks: {record.click_count}"
        print(f"     HUNT: {hunt}{views}{clicks}")
        print(f"     Date: {date} | Wallet: {record.user_wallet[:10]}...")


async def run_post(config: SignetConfig, args: argparse.Namespace) -> None:
    authorizer = load_authorizer(args)
    encoding = AuthorizationEncoding(args.encoding) if args.encoding else None
    print_step("client", f"paying from {authorizer.address}")

    async with SignetApiClient(config.base_url, config.http_timeout) as api:
        receipt = await post_spotlight(PaymentNegotiator(api), authorizer, args.url, args.hours, encoding)

    print_section("Spotlight placed")
    print_step("server", f"url: {receipt.url or args.url}")
    if receipt.tx_hash:
        print_step("server", f"transaction: {receipt.tx_hash}")
    if receipt.spent_amount is not None:
        print_step("server", f"spent: {receipt.spent_amount}")
    if receipt.signature_index is not None:
        print_step("server", f"signature index: {receipt.signature_index}")


async def run_sign(config: SignetConfig, args: argparse.Namespace) -> None:
    authorizer = load_authorizer(args)
    async with _pool(config) as pool:
        gateway = ChainGateway(pool, config, account=authorizer.account)
        signer = OnChainSigner(gateway, TokenSelector(gateway, config.tokens), config)
        result = await signer.sign(args.url, args.hours, args.token, args.slippage)

    token = result.token
    print_section("Spotlight signed on-chain")
    print_step("chain", f"token: {token.symbol}")
    print_step(
        "chain",
        f"quoted {format_units(result.quote.from_token_amount, token.decimals)}, "
        f"max {format_units(result.max_amount, token.decimals)} ({result.slippage_percent}% slippage)",
    )
    if result.approval_tx_hash:
        print_step("chain", f"approval: {result.approval_tx_hash}")
    print_step("chain", f"transaction: {result.tx_hash} (block {result.outcome.block_number})")
    spend = result.outcome.spend
    if spend is not None:
        print_step("chain", f"spent {format_units(spend.amount_used, token.decimals)} {token.symbol}")
        print_step("chain", f"HUNT used: {format_units(spend.secondary_amount_used, HUNT_DECIMALS)}")
    else:
        print_step("chain", f"confirmed, but the Signed event could not be read: {result.outcome.decode_error}")


# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="signet",
        description="Place URLs on the Signet spotlight via x402 or a direct on-chain payment.",
    )
    parser.add_argument("--base-url", help="Signet API base URL (default: SIGNET_BASE_URL or the public API).")
    parser.add_argument(
        "--rpc-url",
        action="append",
        help="JSON-RPC endpoint; repeat to set the fallback order.",
    )
    parser.add_argument("--env-file", default=".env", help="Path to a .env file (default: %(default)s).")
    parser.add_argument("-v", "--verbose", action="count", default=0, help="-v for INFO, -vv for DEBUG.")

    subparsers = parser.add_subparsers(dest="command", required=True)

    estimate_parser = subparsers.add_parser("estimate", help="Estimate the USDC cost of a placement.")
    estimate_parser.add_argument("--hours", type=int, default=0, help="Guarantee hours, 0-24 (default: %(default)s).")
    estimate_parser.set_defaults(handler=run_estimate)

    list_parser = subparsers.add_parser("list", help="Show the most recent signatures.")
    list_parser.add_argument("--count", type=int, default=5, help="Number of signatures (default: %(default)s).")
    list_parser.set_defaults(handler=run_list)

    post_parser = subparsers.add_parser("post", help="Pay through the x402 payment challenge.")
    post_parser.add_argument("--url", required=True, help="URL to place on the spotlight.")
    post_parser.add_argument("--hours", type=int, default=0, help="Guarantee hours, 0-24 (default: %(default)s).")
    post_parser.add_argument("--private-key", help="Signing key; defaults to the environment.")
    post_parser.add_argument(
        "--encoding",
        choices=[encoding.value for encoding in AuthorizationEncoding],
        help="Force an authorization encoding instead of choosing by scheme.",
    )
    post_parser.set_defaults(handler=run_post)

    sign_parser = subparsers.add_parser("sign", help="Pay directly through the zap contract.")
    sign_parser.add_argument("--url", required=True, help="URL to place on the spotlight.")
    sign_parser.add_argument("--hours", type=int, default=1, help="Guarantee hours, 1-24 (default: %(default)s).")
    sign_parser.add_argument(
        "--token",
        default=AUTO_TOKEN,
        help="Paying token: auto, hunt, usdc, eth or mt (default: %(default)s).",
    )
    sign_parser.add_argument(
        "--slippage",
        type=float,
        default=DEFAULT_SLIPPAGE_PERCENT,
        help="Slippage tolerance in percent (default: %(default)s).",
    )
    sign_parser.add_argument("--private-key", help="Signing key; defaults to the environment.")
    sign_parser.set_defaults(handler=run_sign)

    return parser


def main(argv: Optional[list] = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.verbose)

    try:
        config = load_config(args)
        asyncio.run(args.handler(config, args))
    except SignetError as err:
        raise SystemExit(f"error: {err}") from err
    except ValueError as err:
        raise SystemExit(f"error: {err}") from err


if __name__ == "__main__":
    main()
