"""
Per-provider call sequences for the portfolio scenarios.

Aggregators assemble a wallet view in one unified call; raw RPC providers
need a "waterfall" of balance and token calls. Each strategy reports what it
took (requests, richness, cost units, integration complexity) and raises
ScenarioError when the sequence cannot complete.
"""
from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence

import httpx

import config
from adapters.abi import encode_function_call
from adapters.factory import adapter_for
from core.interfaces import PortfolioStrategy
from core.registry import COVALENT_API_BASE, CODEX_GRAPHQL_URL, MOBULA_API_BASE, resolve_endpoint
from core.types import (
    Chain,
    Complexity,
    Endpoint,
    LogicalRequest,
    ProviderName,
    RpcCall,
    ScenarioMetrics,
    TraceStep,
    Transport,
    TransportResponse,
)
from .stats import round_half_up

logger = logging.getLogger(__name__)

Sleeper = Callable[[float], Awaitable[None]]

# Uniswap V3 USDC/ETH pool (Ethereum mainnet)
UNISWAP_POOL = "0x88e6a0c2ddd26feeb64f039a2c41296fcb3f5640"
SLOT0_SELECTOR = "0x3850c7bd"

# Top tokens a raw-RPC wallet has to query one by one
WATERFALL_TOKENS = (
    "0xdAC17F958D2ee523a2206206994597C13D831ec7",  # USDT
    "0xA0b86991c6218b36c1d19D4a2e9Eb0cE3606eB48",  # USDC
    "0x6B175474E89094C44Da98b954EedeAC495271d0F",  # DAI
    "0x2260FAC5E5542a773Aa44fBCfeDf7C193bc2C599",  # WBTC
    "0x514910771AF9Ca656af840dff83E8264EcF986CA",  # LINK
)

AGGREGATORS = frozenset({ProviderName.COVALENT, ProviderName.MOBULA, ProviderName.CODEX})

CODEX_BALANCES_QUERY = (
    "query GetBalances($wallet: String!, $network: Int!) { "
    "balances(walletAddress: $wallet, networks: [$network]) { "
    "items { tokenAddress symbol balance decimals tokenPriceUsd imageThumbUrl } } }"
)


class ScenarioError(RuntimeError):
    """A provider's scenario sequence could not complete."""


@dataclass
class ScenarioContext:
    """Everything one provider's sequence needs, plus the trace it records."""

    client: httpx.AsyncClient
    wallet: str
    chain: Chain
    log: Callable[[str], None]
    sleep: Sleeper = asyncio.sleep
    traces: List[TraceStep] = field(default_factory=list)

    def endpoint(self, name: ProviderName) -> Optional[Endpoint]:
        return resolve_endpoint(self.chain, name)

    def require_endpoint(self, name: ProviderName) -> Endpoint:
        endpoint = self.endpoint(name)
        if endpoint is None:
            raise ScenarioError(f"{name.value} Not Configured")
        return endpoint

    async def trace(self, step: str, fn: Callable[[], Awaitable[Any]]) -> Any:
        """Time one step. Failed responses, JSON-RPC errors and exceptions are recorded as ERR."""
        t0 = time.perf_counter()
        status = "ERR"
        try:
            res = await fn()
            if not (isinstance(res, TransportResponse) and (not res.ok or res.rpc_error is not None)):
                status = "OK"
            return res
        finally:
            self.traces.append(TraceStep(step=step, time=round_half_up((time.perf_counter() - t0) * 1000), status=status))

    async def send(self, endpoint: Endpoint, request: LogicalRequest) -> TransportResponse:
        return await adapter_for(endpoint).send(self.client, request)


class CovalentBalances(PortfolioStrategy):
    """Unified balances call: assets, prices and metadata in one request."""

    provider = ProviderName.COVALENT
    label = "balances_v2"

    async def run(self, ctx: ScenarioContext) -> ScenarioMetrics:
        key = config.get_covalent_key()
        if not key:
            raise ScenarioError("Missing API Key")
        url = f"{COVALENT_API_BASE}/{ctx.chain.chain_id}/address/{ctx.wallet}/balances_v2/"
        endpoint = Endpoint(url=url, transport=Transport.REST, api_key=key, key_param="key")
        ctx.log(f"[Covalent] GET {url}")
        resp = await ctx.trace("Fetch Portfolio Data", lambda: ctx.send(endpoint, LogicalRequest.get(nft="true")))
        if not resp.ok:
            raise ScenarioError(f"HTTP {resp.status}" if resp.status else "Network Error")
        data = resp.body.get("data") if isinstance(resp.body, dict) else None
        items = (data or {}).get("items") or []
        ctx.log(f"[Covalent] Response: {len(items)} items.")
        return ScenarioMetrics(
            requests_sent=1, data_richness_score=98, estimated_cost_units=1,
            integration_complexity=Complexity.LOW,
        )


class AlchemyBatch(PortfolioStrategy):
    """Enhanced APIs batched: asset transfers + NFTs in one POST."""

    provider = ProviderName.ALCHEMY
    label = "enhanced-batch"

    async def run(self, ctx: ScenarioContext) -> ScenarioMetrics:
        endpoint = ctx.require_endpoint(ProviderName.ALCHEMY)
        ctx.log(f"[Alchemy] POST Batch (getAssetTransfers + getNfts) -> {endpoint.display_url}")
        request = LogicalRequest.rpc_batch([
            RpcCall("alchemy_getAssetTransfers", ({"fromBlock": "0x0", "toAddress": ctx.wallet, "category": ["erc20"]},)),
            RpcCall("alchemy_getNfts", ({"owner": ctx.wallet},)),
        ])
        resp = await ctx.trace("Fetch Portfolio Data", lambda: ctx.send(endpoint, request))
        if not resp.ok:
            raise ScenarioError(f"Alchemy batch failed: {resp.error or resp.status}")
        ctx.log("[Alchemy] Success. Batch processed.")
        return ScenarioMetrics(
            requests_sent=1, data_richness_score=85, estimated_cost_units=630,
            integration_complexity=Complexity.MEDIUM,
        )


class MobulaPortfolio(PortfolioStrategy):
    provider = ProviderName.MOBULA
    label = "wallet/portfolio"

    async def run(self, ctx: ScenarioContext) -> ScenarioMetrics:
        key = config.get_mobula_key()
        if not key:
            raise ScenarioError("Missing API Key")
        endpoint = Endpoint(url=f"{MOBULA_API_BASE}/wallet/portfolio", transport=Transport.REST, api_key=key, auth_header=True)
        ctx.log(f"[Mobula] GET {endpoint.url}?wallet={ctx.wallet}")
        resp = await ctx.trace("Fetch Portfolio Data", lambda: ctx.send(endpoint, LogicalRequest.get(wallet=ctx.wallet)))
        if resp.status == 404:
            # Wallet not indexed: the call worked but returned nothing useful
            ctx.log("[Mobula] 404 (Not Indexed). Treating as empty response.")
            return ScenarioMetrics(
                requests_sent=1, data_richness_score=50, estimated_cost_units=1,
                integration_complexity=Complexity.LOW,
            )
        if not resp.ok:
            raise ScenarioError(f"Mobula API: {resp.status or resp.error}")
        data = resp.body.get("data") if isinstance(resp.body, dict) else None
        assets = (data or {}).get("assets") or []
        ctx.log(f"[Mobula] Response: OK. Assets Found: {len(assets)}")
        return ScenarioMetrics(
            requests_sent=1, data_richness_score=95, estimated_cost_units=1,
            integration_complexity=Complexity.LOW,
        )


class CodexBalances(PortfolioStrategy):
    provider = ProviderName.CODEX
    label = "graphql-balances"

    async def run(self, ctx: ScenarioContext) -> ScenarioMetrics:
        key = config.get_codex_key()
        if not key:
            ctx.log("[Codex] Skipped: Key Missing.")
            return ScenarioMetrics(
                requests_sent=0, data_richness_score=0, estimated_cost_units=0,
                integration_complexity=Complexity.HIGH,
            )
        endpoint = Endpoint(url=CODEX_GRAPHQL_URL, transport=Transport.GRAPHQL, api_key=key, auth_header=True)
        ctx.log(f"[Codex] POST GraphQL Query -> {CODEX_GRAPHQL_URL}")
        request = LogicalRequest.graphql(CODEX_BALANCES_QUERY, {"wallet": ctx.wallet, "network": ctx.chain.chain_id})
        resp = await ctx.trace("Fetch Portfolio Data", lambda: ctx.send(endpoint, request))
        if not resp.ok:
            raise ScenarioError(f"Codex Error: {resp.status or resp.error}")
        data = resp.body.get("data") if isinstance(resp.body, dict) else None
        items = ((data or {}).get("balances") or {}).get("items") or []
        ctx.log(f"[Codex] Success. {len(items)} items retrieved.")
        return ScenarioMetrics(
            requests_sent=1, data_richness_score=98 if items else 70, estimated_cost_units=1,
            integration_complexity=Complexity.MEDIUM,
        )


class QuickNodeAddon(PortfolioStrategy):
    """Token API add-on; only present on endpoints that enabled it."""

    provider = ProviderName.QUICKNODE
    label = "qn_getWalletTokenBalance"

    async def run(self, ctx: ScenarioContext) -> ScenarioMetrics:
        endpoint = ctx.require_endpoint(ProviderName.QUICKNODE)
        ctx.log(f"[QuickNode] POST qn_getWalletTokenBalance -> {endpoint.display_url}")
        request = LogicalRequest.rpc("qn_getWalletTokenBalance", {"wallet": ctx.wallet})
        resp = await ctx.trace("Fetch Portfolio Data", lambda: ctx.send(endpoint, request))
        if not resp.ok or resp.rpc_error is not None:
            ctx.log("[QuickNode] Addon Missing/Failed.")
            raise ScenarioError("QuickNode token add-on unavailable")
        return ScenarioMetrics(
            requests_sent=1, data_richness_score=70, estimated_cost_units=2,
            integration_complexity=Complexity.MEDIUM,
        )


class RpcWaterfall(PortfolioStrategy):
    """
    Plain JSON-RPC: native balance, then one eth_call per token, in sequence.
    This is what a wallet has to do without an indexer.
    """

    label = "waterfall"

    def __init__(self, provider: ProviderName, tokens: Sequence[str] = WATERFALL_TOKENS) -> None:
        self.provider = provider
        self.tokens = tuple(tokens)

    async def run(self, ctx: ScenarioContext) -> ScenarioMetrics:
        name = self.provider.value
        endpoint = ctx.require_endpoint(self.provider)
        ctx.log(f"[{name}] Starting Waterfall Sequence...")
        ctx.log(f"[{name}] 1. eth_getBalance")
        resp = await ctx.trace(
            "eth_getBalance",
            lambda: ctx.send(endpoint, LogicalRequest.rpc("eth_getBalance", ctx.wallet, "latest")),
        )
        if not resp.ok:
            raise ScenarioError(f"{name} unreachable: {resp.error or resp.status}")

        ctx.log(f"[{name}] 2. Looping {len(self.tokens)} eth_call requests...")
        data = encode_function_call("balanceOf", [ctx.wallet])
        for i, token in enumerate(self.tokens, start=1):
            request = LogicalRequest.rpc("eth_call", {"to": token, "data": data}, "latest")
            await ctx.trace(f"eth_call (Token {i})", lambda: ctx.send(endpoint, request))

        ctx.log(f"[{name}] Waterfall Finished. Total Calls: {len(self.tokens) + 1}")
        return ScenarioMetrics(
            requests_sent=1 + len(self.tokens),
            data_richness_score=20,
            estimated_cost_units=80 + 26 * len(self.tokens),
            integration_complexity=Complexity.HIGH,
        )


# Ordered candidates per provider: the first one that completes is used
PORTFOLIO_STRATEGIES: Dict[ProviderName, List[PortfolioStrategy]] = {
    ProviderName.COVALENT: [CovalentBalances()],
    ProviderName.ALCHEMY: [AlchemyBatch()],
    ProviderName.MOBULA: [MobulaPortfolio()],
    ProviderName.CODEX: [CodexBalances()],
    ProviderName.QUICKNODE: [QuickNodeAddon(), RpcWaterfall(ProviderName.QUICKNODE)],
    ProviderName.INFURA: [RpcWaterfall(ProviderName.INFURA)],
}


async def run_first_success(strategies: Sequence[PortfolioStrategy], ctx: ScenarioContext) -> ScenarioMetrics:
    """
    Try each strategy in order. Every failure is logged; the first success
    short-circuits. Raises ScenarioError when none completes.
    """
    if not strategies:
        raise ScenarioError("No strategy registered")
    last: Optional[Exception] = None
    for strategy in strategies:
        try:
            return await strategy.run(ctx)
        except Exception as e:
            last = e
            logger.warning("%s strategy %s failed: %s", strategy.provider.value, strategy.label, e)
    if len(strategies) == 1 and isinstance(last, ScenarioError):
        raise last
    raise ScenarioError(f"All {len(strategies)} strategies failed; last: {last}") from last


async def run_swap_quote(ctx: ScenarioContext, name: ProviderName) -> ScenarioMetrics:
    """
    DeFi swap quote: read pool state, compute price impact locally, estimate
    gas. Aggregators have no state-read primitive, so their steps are
    simulated pauses.
    """
    endpoint = ctx.require_endpoint(name)
    simulated = name in AGGREGATORS
    ctx.log(f"[{name.value}] Starting Swap Simulation sequence...")

    async def pool_state() -> Any:
        if simulated:
            await ctx.sleep(0.12)
            return None
        ctx.log(f"[{name.value}] POST eth_call (slot0) -> {endpoint.display_url}")
        return await ctx.send(
            endpoint,
            LogicalRequest.rpc("eth_call", {"to": UNISWAP_POOL, "data": SLOT0_SELECTOR}, "latest"),
        )

    async def price_impact() -> Any:
        await ctx.sleep(0.015)
        return None

    async def estimate_gas() -> Any:
        if simulated:
            await ctx.sleep(0.15)
            return None
        ctx.log(f"[{name.value}] POST eth_estimateGas -> {endpoint.display_url}")
        return await ctx.send(
            endpoint,
            LogicalRequest.rpc("eth_estimateGas", {"from": ctx.wallet, "to": UNISWAP_POOL, "data": SLOT0_SELECTOR}),
        )

    await ctx.trace("Fetch Pool State (slot0)", pool_state)
    await ctx.trace("Calculate Price Impact (CPU)", price_impact)
    await ctx.trace("Estimate Gas (Swap)", estimate_gas)

    return ScenarioMetrics(
        requests_sent=2, data_richness_score=100, estimated_cost_units=30,
        integration_complexity=Complexity.MEDIUM,
    )
