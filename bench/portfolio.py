"""
Portfolio benchmark: grade providers on how efficiently a client can build
one logical wallet view, independent of raw ping time.

Every provider runs concurrently, and each one is its own bulkhead: an
exception inside a provider's sequence becomes an "F" record for that
provider and never aborts the others.
"""
from __future__ import annotations

import asyncio
import logging
import time
from typing import Callable, Dict, List, Mapping, Optional, Sequence

import httpx
from web3 import Web3

import config
from core.interfaces import PortfolioStrategy
from core.types import (
    BreakdownItem,
    Chain,
    Complexity,
    ProviderName,
    Scenario,
    ScenarioResult,
    ScoreBreakdown,
)
from .stats import round_half_up
from .strategies import PORTFOLIO_STRATEGIES, ScenarioContext, Sleeper, run_first_success, run_swap_quote

logger = logging.getLogger(__name__)

PORTFOLIO_PROVIDERS = (
    ProviderName.COVALENT,
    ProviderName.ALCHEMY,
    ProviderName.MOBULA,
    ProviderName.CODEX,
    ProviderName.QUICKNODE,
    ProviderName.INFURA,
)

SLOW_MS = 500
SLOW_PENALTY = 20
PER_REQUEST_PENALTY = 5
LOW_RICHNESS = 50
HIGH_RICHNESS = 80
LOW_RICHNESS_PENALTY = 30
COMPLEXITY_PENALTY = 15


def grade_for(score: int) -> str:
    if score >= 90:
        return "S"
    if score >= 80:
        return "A+"
    if score >= 70:
        return "A"
    if score >= 50:
        return "B"
    return "C"


def score_breakdown(time_ms: int, requests: int, richness: int, complexity: Complexity) -> ScoreBreakdown:
    """
    Deterministic penalty ladder from 100. Amplification costs 5 points per
    request once more than one request is needed. Never yields "F".
    """
    score = 100
    items: List[BreakdownItem] = [BreakdownItem("Max Potential Score", 100, "base")]

    if time_ms > SLOW_MS:
        score -= SLOW_PENALTY
        items.append(BreakdownItem(f"High Latency (>{SLOW_MS}ms)", -SLOW_PENALTY, "penalty"))
    else:
        items.append(BreakdownItem(f"Fast Response (<{SLOW_MS}ms)", 0, "neutral"))

    if requests > 1:
        pen = requests * PER_REQUEST_PENALTY
        score -= pen
        items.append(BreakdownItem(f"Request Amplification ({requests} reqs)", -pen, "penalty"))
    else:
        items.append(BreakdownItem("Unified API Call (1 req)", 0, "bonus"))

    if richness < LOW_RICHNESS:
        score -= LOW_RICHNESS_PENALTY
        items.append(BreakdownItem("Low Data Richness", -LOW_RICHNESS_PENALTY, "penalty"))
    elif richness > HIGH_RICHNESS:
        items.append(BreakdownItem("High Data Richness", 0, "bonus"))

    if complexity == Complexity.HIGH:
        score -= COMPLEXITY_PENALTY
        items.append(BreakdownItem("High Integration Complexity", -COMPLEXITY_PENALTY, "penalty"))

    score = max(0, score)
    return ScoreBreakdown(score=score, grade=grade_for(score), breakdown=tuple(items))


def execution_error(provider: ProviderName, scenario: Scenario, error: str, traces=()) -> ScenarioResult:
    return ScenarioResult(
        provider=provider,
        scenario=scenario,
        score_details=ScoreBreakdown(
            score=0,
            grade="F",
            breakdown=(BreakdownItem("Execution Error", -100, "penalty"),),
        ),
        traceroute=tuple(traces),
        error=error,
    )


class PortfolioBenchmark:
    """
    Runs one scenario for a fixed wallet and chain across providers.

    `on_log` receives human-readable progress lines (URLs without keys);
    it defaults to this module's logger.
    """

    def __init__(
        self,
        wallet: str = config.DEFAULT_WALLET,
        chain: Chain = Chain.ETHEREUM,
        on_log: Optional[Callable[[str], None]] = None,
        client: Optional[httpx.AsyncClient] = None,
        strategies: Optional[Mapping[ProviderName, Sequence[PortfolioStrategy]]] = None,
        sleep: Sleeper = asyncio.sleep,
    ) -> None:
        if not Web3.is_address(wallet):
            raise ValueError(f"Not a valid wallet address: {wallet}")
        self.wallet = Web3.to_checksum_address(wallet)
        self.chain = chain
        self.log = on_log or logger.info
        self.strategies = strategies if strategies is not None else PORTFOLIO_STRATEGIES
        self._client = client
        self._sleep = sleep

    async def run(
        self,
        scenario: Scenario = Scenario.PORTFOLIO_LOAD,
        providers: Sequence[ProviderName] = PORTFOLIO_PROVIDERS,
    ) -> Dict[ProviderName, ScenarioResult]:
        self.log(f"--- STARTING SCENARIO: {scenario.value} ---")
        self.log(f"Target Wallet: {self.wallet}")
        if self._client is not None:
            results = await self._run_all(self._client, scenario, providers)
        else:
            async with httpx.AsyncClient(timeout=config.REQUEST_TIMEOUT_S) as client:
                results = await self._run_all(client, scenario, providers)
        self.log("--- BENCHMARK COMPLETE ---")
        return {r.provider: r for r in results}

    async def _run_all(
        self,
        client: httpx.AsyncClient,
        scenario: Scenario,
        providers: Sequence[ProviderName],
    ) -> List[ScenarioResult]:
        return list(await asyncio.gather(*(self.evaluate_provider(client, p, scenario) for p in providers)))

    async def evaluate_provider(
        self,
        client: httpx.AsyncClient,
        name: ProviderName,
        scenario: Scenario = Scenario.PORTFOLIO_LOAD,
    ) -> ScenarioResult:
        ctx = ScenarioContext(client=client, wallet=self.wallet, chain=self.chain, log=self.log, sleep=self._sleep)
        t0 = time.perf_counter()
        try:
            if scenario == Scenario.SWAP_QUOTE:
                metrics = await run_swap_quote(ctx, name)
            else:
                metrics = await run_first_success(self.strategies.get(name, ()), ctx)
        except Exception as e:
            logger.exception("%s failed in %s", name.value, scenario.value)
            return execution_error(name, scenario, str(e), ctx.traces)

        elapsed = round_half_up((time.perf_counter() - t0) * 1000)
        details = score_breakdown(
            elapsed,
            metrics.requests_sent,
            metrics.data_richness_score,
            metrics.integration_complexity,
        )
        return ScenarioResult(
            provider=name,
            scenario=scenario,
            score_details=details,
            time_to_interactive_ms=elapsed,
            metrics=metrics,
            traceroute=tuple(ctx.traces),
        )
