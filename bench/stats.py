"""
Reduce raw per-round latency samples into P50 / P99 / uptime, roll the
history buffer, and compute lag against the highest block seen in a round.

Sample sizes are 2 or 5 rounds, so these are best-effort estimates:
"p99" is simply the worst successful sample, standing in for tail latency.
"""
from __future__ import annotations

import math
from typing import Dict, List, Sequence, Tuple

import config
from core.types import LAG_NA, LAG_SYNCED, Lag, LatencyStats, ProbeOutcome, ProviderName


def round_half_up(x: float) -> int:
    """Round .5 away from zero for non-negative scores (Python's round() is banker's)."""
    return int(math.floor(x + 0.5))


def reduce_samples(samples: Sequence[int], iterations: int) -> LatencyStats:
    """
    p50 = sorted successes[floor(n/2)], p99 = max(successes), both 0 with no
    successes. uptime = round(successes / iterations * 100).
    """
    ok = sorted(s for s in samples if s > 0)
    if ok:
        p50 = ok[len(ok) // 2]
        p99 = ok[-1]
    else:
        p50 = p99 = 0
    uptime = round_half_up(len(ok) / iterations * 100) if iterations > 0 else 0
    return LatencyStats(p50=p50, p99=p99, uptime=uptime)


def roll_history(history: Sequence[int], samples: Sequence[int], limit: int = config.HISTORY_LIMIT) -> Tuple[int, ...]:
    """Append this round's raw samples (failures included) and keep the newest `limit`."""
    merged = list(history) + list(samples)
    return tuple(merged[-limit:]) if limit > 0 else ()


def compute_lag(outcomes: Sequence[ProbeOutcome], uptimes: Dict[ProviderName, int]) -> Dict[ProviderName, Lag]:
    """
    Lag per provider against the maximum height reported by anyone this round.
    Providers without a height are "Synced" if their requests succeeded,
    otherwise "N/A".
    """
    heights: List[int] = [o.block_height for o in outcomes if o.block_height > 0]
    reference = max(heights) if heights else 0
    lags: Dict[ProviderName, Lag] = {}
    for o in outcomes:
        if o.block_height > 0 and reference > 0:
            lags[o.name] = max(0, reference - o.block_height)
        elif uptimes.get(o.name, 0) > 0:
            lags[o.name] = LAG_SYNCED
        else:
            lags[o.name] = LAG_NA
    return lags
