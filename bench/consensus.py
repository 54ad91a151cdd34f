"""
Cross-provider consensus check: the same eth_call goes to every provider,
the most common decoded answer is taken as the reference, and providers
that disagree are flagged.

Ties: the value encountered first (in provider order) wins. With identical
input order this is stable, but a different provider order can pick a
different value when two answers are equally common.
"""
from __future__ import annotations

import asyncio
import logging
import time
from typing import Dict, Mapping, Optional, Sequence, Tuple

import httpx

from adapters.abi import STRING_METHODS, encode_function_call
from adapters.factory import adapter_for
from core.registry import CONTRACT_REGISTRY, resolve_endpoint
from core.types import (
    AssetClass,
    Chain,
    ConsensusEntry,
    ConsensusQuery,
    ConsensusReport,
    Endpoint,
    LogicalRequest,
    ProviderName,
    Transport,
)
from .stats import round_half_up

logger = logging.getLogger(__name__)

DATA_FOUND = "Data Found"
DECODE_ERROR = "Decode Error"


def decode_result(method: str, raw: Optional[str]) -> Optional[str]:
    """
    Decimal string for numeric reads, "Data Found" for string reads,
    "Decode Error" for undecodable hex, None for an empty result.
    """
    if not isinstance(raw, str) or raw in ("", "0x"):
        return None
    if method in STRING_METHODS:
        return DATA_FOUND
    try:
        return str(int(raw, 16))
    except ValueError:
        return DECODE_ERROR


def majority(values: Sequence[str]) -> Optional[str]:
    """Mode of `values`; on a tie the first-seen value wins."""
    counts: Dict[str, int] = {}
    for v in values:
        counts[v] = counts.get(v, 0) + 1
    best: Optional[str] = None
    best_n = 0
    for v, n in counts.items():
        if n > best_n:
            best, best_n = v, n
    return best


def flag_mismatches(entries: Sequence[ConsensusEntry], consensus: Optional[str]) -> Tuple[ConsensusEntry, ...]:
    out = []
    for e in entries:
        mismatch = e.success and consensus is not None and e.result != consensus
        out.append(ConsensusEntry(
            name=e.name, success=e.success, time_ms=e.time_ms, result=e.result,
            raw=e.raw, target=e.target, is_mismatch=mismatch,
        ))
    return tuple(out)


def lookup_query(chain: Chain, asset_class: AssetClass) -> Optional[ConsensusQuery]:
    return CONTRACT_REGISTRY.get(chain, {}).get(asset_class)


def eth_call_request(query: ConsensusQuery) -> LogicalRequest:
    data = encode_function_call(query.method, query.params)
    return LogicalRequest.rpc("eth_call", {"to": query.address, "data": data}, "latest")


async def _query_provider(
    client: httpx.AsyncClient,
    name: ProviderName,
    endpoint: Optional[Endpoint],
    query: ConsensusQuery,
    request: LogicalRequest,
) -> ConsensusEntry:
    if endpoint is None or not endpoint.configured or endpoint.transport != Transport.RPC:
        return ConsensusEntry(name=name, success=False, target=query.target)

    t0 = time.perf_counter()
    resp = await adapter_for(endpoint).send(client, request)
    time_ms = round_half_up((time.perf_counter() - t0) * 1000)

    raw = resp.result if isinstance(resp.result, str) else None
    result = None
    if resp.ok and resp.rpc_error is None:
        result = decode_result(query.method, raw)
    if result is None:
        logger.debug("%s eth_call on %s gave no usable result", name.value, query.target)
    return ConsensusEntry(
        name=name,
        success=result is not None,
        time_ms=time_ms,
        result=result,
        raw=raw,
        target=query.target,
    )


async def validate(
    client: httpx.AsyncClient,
    chain: Chain,
    asset_class: AssetClass = AssetClass.ERC20,
    providers: Sequence[ProviderName] = tuple(ProviderName),
    endpoints: Optional[Mapping[ProviderName, Optional[Endpoint]]] = None,
) -> ConsensusReport:
    """
    Run one validation pass. Every provider's answer is collected before the
    consensus is computed; there is no incremental voting.
    """
    query = lookup_query(chain, asset_class)
    if query is None:
        logger.warning("No %s contract configured for %s", asset_class.value, chain.value)
        return ConsensusReport(query=None)

    request = eth_call_request(query)
    resolved = {
        name: (endpoints.get(name) if endpoints is not None else resolve_endpoint(chain, name))
        for name in providers
    }
    entries = await asyncio.gather(
        *(_query_provider(client, name, resolved[name], query, request) for name in providers)
    )
    consensus = majority([e.result for e in entries if e.success and e.result is not None])
    report = ConsensusReport(query=query, consensus=consensus, entries=flag_mismatches(entries, consensus))
    if report.mismatches:
        logger.warning(
            "Consensus on %s = %s; mismatching: %s",
            query.target, consensus, ", ".join(n.value for n in report.mismatches),
        )
    return report
