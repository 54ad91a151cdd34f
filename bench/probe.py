"""
Probe dispatcher: timed request rounds per provider, fanned out across
providers and joined before anything is reduced.

Within a provider rounds are strictly sequential with a fixed pause; across
providers everything runs concurrently on the event loop.
"""
from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Awaitable, Callable, List, Optional, Sequence, Tuple

import httpx
from web3 import Web3

import config
from adapters.factory import adapter_for
from core.interfaces import ProtocolAdapter
from core.types import (
    CONFIG_MISSING,
    Endpoint,
    LogicalRequest,
    PrecisionMode,
    ProbeOutcome,
    ProviderName,
    RequestType,
    RpcCall,
    Transport,
    TransportResponse,
)
from .stats import round_half_up

logger = logging.getLogger(__name__)

Sleeper = Callable[[float], Awaitable[None]]

ZERO_ADDRESS = "0x" + "0" * 40
TIMEOUT_ERROR = "Timeout"

RPC_PAYLOADS = {
    RequestType.LIGHT: RpcCall("eth_blockNumber"),
    RequestType.HEAVY: RpcCall("eth_getBlockByNumber", ("latest", True)),
}
GRAPHQL_PROBE = "query NetworkProbe { getNetworks { id name } }"


def probe_request(transport: Transport, request_type: RequestType) -> LogicalRequest:
    if transport == Transport.RPC:
        return LogicalRequest(calls=(RPC_PAYLOADS[request_type],))
    if transport == Transport.GRAPHQL:
        return LogicalRequest.graphql(GRAPHQL_PROBE)
    return LogicalRequest.get()


def _hex_or_int(value: Any) -> int:
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    if isinstance(value, str):
        try:
            return int(value, 16) if value.startswith("0x") else int(value)
        except ValueError:
            return 0
    return 0


def parse_block_height(body: Any) -> int:
    """
    Pull a block height out of the shapes providers return:
    {"result": "0x…"}, {"result": {"number": "0x…"}}, or REST
    {"data": {"items": [{"height": N}]}}. 0 when absent.
    """
    if not isinstance(body, dict):
        return 0
    result = body.get("result")
    if isinstance(result, dict):
        return _hex_or_int(result.get("number"))
    if isinstance(result, str):
        return _hex_or_int(result)
    data = body.get("data")
    if isinstance(data, dict):
        items = data.get("items")
        if isinstance(items, list) and items and isinstance(items[0], dict):
            return _hex_or_int(items[0].get("height"))
    return 0


def _failed(resp: TransportResponse) -> Optional[str]:
    """Error label for a failed round, or None on success."""
    if not resp.ok:
        return "Timeout" if resp.error else f"Error {resp.status}"
    # JSON-RPC error member, or REST {"error": true}
    if resp.rpc_error not in (None, False):
        return "RPC Error"
    # GraphQL rejects a query with 200 and an "errors" list
    if isinstance(resp.body, dict) and resp.body.get("errors"):
        return "GraphQL Error"
    return None


async def _timed(
    adapter: ProtocolAdapter,
    client: httpx.AsyncClient,
    request: LogicalRequest,
) -> Tuple[int, TransportResponse]:
    t0 = time.perf_counter()
    resp = await adapter.send(client, request)
    # A success is never recorded as 0, which is the failure marker
    elapsed = max(1, round_half_up((time.perf_counter() - t0) * 1000))
    return elapsed, resp


async def check_archive(client: httpx.AsyncClient, adapter: ProtocolAdapter) -> Optional[bool]:
    """Balance of the zero address at block #1; pruned nodes answer with an error."""
    resp = await adapter.send(client, LogicalRequest.rpc("eth_getBalance", ZERO_ADDRESS, "0x1"))
    if not resp.ok:
        return None
    return resp.rpc_error is None and isinstance(resp.result, str)


async def check_gas(client: httpx.AsyncClient, adapter: ProtocolAdapter) -> Optional[float]:
    resp = await adapter.send(client, LogicalRequest.rpc("eth_gasPrice"))
    if not resp.ok or not isinstance(resp.result, str):
        return None
    wei = _hex_or_int(resp.result)
    return round(float(Web3.from_wei(wei, "gwei")), 2)


async def measure_batch(client: httpx.AsyncClient, adapter: ProtocolAdapter, size: int) -> int:
    """Elapsed ms for `size` eth_blockNumber calls in one batched payload; 0 on failure."""
    request = LogicalRequest.rpc_batch([RPC_PAYLOADS[RequestType.LIGHT]] * size)
    elapsed, resp = await _timed(adapter, client, request)
    if not resp.ok or not isinstance(resp.body, list):
        return 0
    return elapsed


async def probe_provider(
    client: httpx.AsyncClient,
    name: ProviderName,
    endpoint: Optional[Endpoint],
    request_type: RequestType,
    iterations: int,
    *,
    pause: float = config.ROUND_PAUSE_S,
    batch_size: int = config.BATCH_SIZE,
    sleep: Sleeper = asyncio.sleep,
) -> ProbeOutcome:
    """Run `iterations` timed rounds against one provider, then the RPC-only checks."""
    outcome = ProbeOutcome(name=name, iterations=iterations)
    if endpoint is None or not endpoint.configured:
        outcome.configured = False
        outcome.samples = [0] * iterations
        outcome.last_error = CONFIG_MISSING
        return outcome

    adapter = adapter_for(endpoint)
    request = probe_request(endpoint.transport, request_type)

    for i in range(iterations):
        elapsed, resp = await _timed(adapter, client, request)
        error = _failed(resp)
        if error is None:
            outcome.samples.append(elapsed)
            outcome.successes += 1
            height = parse_block_height(resp.body)
            if height > 0:
                outcome.block_height = height
        else:
            outcome.samples.append(0)
            outcome.last_error = error
            logger.debug("%s round %d failed: %s", name.value, i + 1, error)
        if resp.headers:
            outcome.headers = dict(resp.headers)
        if i < iterations - 1:
            await sleep(pause)

    if endpoint.transport == Transport.RPC:
        outcome.archive = await check_archive(client, adapter)
        outcome.gas = await check_gas(client, adapter)
        # Batch probe only for light requests, to bound round time
        if request_type == RequestType.LIGHT:
            outcome.batch_latency = await measure_batch(client, adapter, batch_size)

    return outcome


def _failed_outcome(name: ProviderName, iterations: int, error: str) -> ProbeOutcome:
    return ProbeOutcome(name=name, iterations=iterations, samples=[0] * iterations, last_error=error)


async def probe_all(
    client: httpx.AsyncClient,
    targets: Sequence[Tuple[ProviderName, Optional[Endpoint]]],
    precision: PrecisionMode,
    request_type: RequestType,
    *,
    round_timeout: float = config.ROUND_TIMEOUT_S,
    pause: float = config.ROUND_PAUSE_S,
    sleep: Sleeper = asyncio.sleep,
) -> List[ProbeOutcome]:
    """
    Probe every target concurrently and return outcomes in target order,
    only once all of them have finished. A branch exceeding `round_timeout`
    is reported as all-failed so a hung provider cannot stall the round.
    """
    iterations = precision.iterations

    async def guarded(name: ProviderName, endpoint: Optional[Endpoint]) -> ProbeOutcome:
        try:
            return await asyncio.wait_for(
                probe_provider(client, name, endpoint, request_type, iterations, pause=pause, sleep=sleep),
                timeout=round_timeout,
            )
        except asyncio.TimeoutError:
            logger.warning("%s exceeded round deadline (%.1fs)", name.value, round_timeout)
            return _failed_outcome(name, iterations, TIMEOUT_ERROR)
        except Exception:
            logger.exception("%s probe crashed", name.value)
            return _failed_outcome(name, iterations, "Probe Error")

    return list(await asyncio.gather(*(guarded(n, e) for n, e in targets)))
