"""
Composite provider score, cost projection and winner selection.

score = round(0.4·latency + 0.3·uptime + 0.15·lag + 0.15·p99)
"""
from __future__ import annotations

from typing import Sequence

from core.types import Lag, Provider, Winner
from .stats import round_half_up

W_LATENCY = 0.4
W_UPTIME = 0.3
W_LAG = 0.15
W_P99 = 0.15

# Latency value some renderers use for "timed out"; never a winner
LATENCY_SENTINEL = 999


def latency_score(latency: int) -> float:
    # 0 means never measured, which is the worst case, not the best
    if latency <= 0:
        return 0.0
    return max(0.0, 100 - latency / 4)


def lag_score(lag: Lag) -> float:
    blocks = lag if isinstance(lag, int) else 0
    return max(0.0, 100 - blocks * 10)


def p99_score(p99: int) -> float:
    return max(0.0, 100 - p99 / 4)


def composite_score(latency: int, uptime: int, lag: Lag, p99: int) -> int:
    return round_half_up(
        W_LATENCY * latency_score(latency)
        + W_UPTIME * uptime
        + W_LAG * lag_score(lag)
        + W_P99 * p99_score(p99)
    )


def monthly_cost(base_cost: float, volume_millions: float) -> int:
    return round_half_up(base_cost * volume_millions)


def pick_winner(providers: Sequence[Provider]) -> Winner:
    """Highest score among providers with a real latency; "Ready" before any run."""
    active = [p for p in providers if p.latency > 0 and p.latency != LATENCY_SENTINEL]
    if not active:
        return Winner(name="Ready", score=0, latency=0)
    best = active[0]
    for p in active[1:]:
        if p.score > best.score:
            best = p
    return Winner(name=best.name.value, score=best.score, latency=best.latency)
