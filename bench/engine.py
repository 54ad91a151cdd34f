"""
Leaderboard pipeline: probe -> reduce -> audit -> score, published as one
immutable snapshot per completed round.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import replace
from typing import Dict, List, Optional, Sequence, Tuple

import httpx

import config
from core.registry import PROVIDER_PROFILES, resolve_endpoint
from core.types import (
    Chain,
    Endpoint,
    Leaderboard,
    PrecisionMode,
    ProbeOutcome,
    Provider,
    ProviderName,
    RequestType,
    Winner,
)
from .probe import Sleeper, probe_all
from .scoring import composite_score, monthly_cost, pick_winner
from .security import audit
from .stats import compute_lag, reduce_samples, roll_history

logger = logging.getLogger(__name__)


def default_providers() -> Tuple[Provider, ...]:
    return tuple(PROVIDER_PROFILES.values())


def resolve_targets(providers: Sequence[Provider], chain: Chain) -> List[Tuple[ProviderName, Optional[Endpoint]]]:
    return [(p.name, resolve_endpoint(chain, p.name)) for p in providers]


def reduce_round(
    providers: Sequence[Provider],
    outcomes: Sequence[ProbeOutcome],
    endpoints: Dict[ProviderName, Optional[Endpoint]],
    volume_millions: float = config.REQUEST_VOLUME_MILLIONS,
    history_limit: int = config.HISTORY_LIMIT,
) -> Tuple[Provider, ...]:
    """
    Turn one round of outcomes into the next provider tuple. `outcomes` must
    be in the same order as `providers`. Pure: no I/O, same input same output.
    """
    stats = {o.name: reduce_samples(o.samples, o.iterations) for o in outcomes}
    lags = compute_lag(outcomes, {name: s.uptime for name, s in stats.items()})

    updated: List[Provider] = []
    for provider, outcome in zip(providers, outcomes):
        s = stats[outcome.name]
        report = audit(endpoints.get(provider.name), outcome.headers)
        nxt = replace(
            provider,
            latency=s.p50,
            p99=s.p99,
            uptime=s.uptime,
            batch_latency=outcome.batch_latency,
            block_height=outcome.block_height,
            lag=lags[outcome.name],
            archive=outcome.archive if outcome.archive is not None else provider.archive,
            gas=outcome.gas if outcome.gas is not None else 0.0,
            security_score=report.score if report else provider.security_score,
            security_issues=report.issues if report else provider.security_issues,
            history=roll_history(provider.history, outcome.samples, history_limit),
            last_error=outcome.last_error,
        )
        nxt = replace(
            nxt,
            score=composite_score(nxt.latency, nxt.uptime, nxt.lag, nxt.p99),
            calculated_cost=monthly_cost(provider.base_cost, volume_millions),
        )
        updated.append(nxt)
    return tuple(updated)


async def run_round(
    client: httpx.AsyncClient,
    providers: Sequence[Provider],
    chain: Chain,
    precision: PrecisionMode = PrecisionMode.STANDARD,
    request_type: RequestType = RequestType.LIGHT,
    *,
    volume_millions: float = config.REQUEST_VOLUME_MILLIONS,
    round_timeout: float = config.ROUND_TIMEOUT_S,
    pause: float = config.ROUND_PAUSE_S,
    sleep: Sleeper = asyncio.sleep,
) -> Tuple[Provider, ...]:
    targets = resolve_targets(providers, chain)
    logger.info(
        "Benchmark round: chain=%s precision=%s request=%s configured=%d/%d",
        chain.value, precision.value, request_type.value,
        sum(1 for _, e in targets if e is not None), len(targets),
    )
    outcomes = await probe_all(
        client, targets, precision, request_type,
        round_timeout=round_timeout, pause=pause, sleep=sleep,
    )
    return reduce_round(providers, outcomes, dict(targets), volume_millions)


class BenchmarkSession:
    """
    Holds the current leaderboard snapshot. Each run computes a complete new
    provider tuple and swaps it in with a single assignment, so readers see
    either the previous round or the next one, never a mix.
    """

    def __init__(
        self,
        chain: Chain = Chain.ETHEREUM,
        precision: PrecisionMode = PrecisionMode.STANDARD,
        request_type: RequestType = RequestType.LIGHT,
        providers: Optional[Sequence[Provider]] = None,
        client: Optional[httpx.AsyncClient] = None,
        volume_millions: float = config.REQUEST_VOLUME_MILLIONS,
    ) -> None:
        self.chain = chain
        self.precision = precision
        self.request_type = request_type
        self.volume_millions = volume_millions
        self._client = client
        self._snapshot = Leaderboard(tuple(providers) if providers is not None else default_providers())
        self._running = False

    @property
    def snapshot(self) -> Leaderboard:
        return self._snapshot

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def winner(self) -> Winner:
        return pick_winner(self._snapshot.providers)

    async def run(
        self,
        *,
        round_timeout: float = config.ROUND_TIMEOUT_S,
        pause: float = config.ROUND_PAUSE_S,
        sleep: Sleeper = asyncio.sleep,
    ) -> Leaderboard:
        if self._running:
            logger.warning("Benchmark already running; returning current snapshot")
            return self._snapshot
        self._running = True
        try:
            current = self._snapshot.providers
            if self._client is not None:
                nxt = await run_round(
                    self._client, current, self.chain, self.precision, self.request_type,
                    volume_millions=self.volume_millions,
                    round_timeout=round_timeout, pause=pause, sleep=sleep,
                )
            else:
                async with httpx.AsyncClient(timeout=config.REQUEST_TIMEOUT_S) as client:
                    nxt = await run_round(
                        client, current, self.chain, self.precision, self.request_type,
                        volume_millions=self.volume_millions,
                        round_timeout=round_timeout, pause=pause, sleep=sleep,
                    )
            self._snapshot = Leaderboard(nxt)
        finally:
            self._running = False
        return self._snapshot
