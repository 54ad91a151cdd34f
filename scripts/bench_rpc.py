"""
Benchmark configured blockchain data providers.

Run from repo root:
  python -m scripts.bench_rpc --chain ethereum --precision robust
  python -m scripts.bench_rpc --consensus erc20
  python -m scripts.bench_rpc --scenario Portfolio_Load --wallet 0x...

Provider keys are read from .env (ALCHEMY_KEY, INFURA_KEY, ...).
"""
from __future__ import annotations

import argparse
import asyncio
import json
import logging

import httpx

import config
from bench.consensus import validate
from bench.engine import BenchmarkSession
from bench.portfolio import PortfolioBenchmark
from bench.status import fetch_statuses
from core.types import AssetClass, Chain, PrecisionMode, RequestType, Scenario

logging.basicConfig(
    level=logging.DEBUG if config.LOG_DEBUG else logging.INFO,
    format="%(asctime)s [%(levelname)s] %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger(__name__)


async def run_leaderboard(chain: Chain, precision: PrecisionMode, request_type: RequestType) -> None:
    session = BenchmarkSession(chain=chain, precision=precision, request_type=request_type)
    board = await session.run()
    for p in sorted(board.providers, key=lambda p: p.score, reverse=True):
        print(p.name.value)
        print("  score    :", p.score)
        print("  p50_ms   :", p.latency, " p99_ms:", p.p99, " uptime:", f"{p.uptime}%")
        print("  lag      :", p.lag, " block:", p.block_height, " batch_ms:", p.batch_latency)
        print("  security :", p.security_score, list(p.security_issues))
        print("  cost/mo  :", p.calculated_cost)
    winner = session.winner
    print()
    print("Winner:", winner.name, f"(score {winner.score}, {winner.latency}ms)" if winner.latency else "")


async def run_consensus(chain: Chain, asset_class: AssetClass) -> None:
    async with httpx.AsyncClient(timeout=config.REQUEST_TIMEOUT_S) as client:
        report = await validate(client, chain, asset_class)
    if report.query is None:
        print(f"No {asset_class.value} contract configured for {chain.value}")
        return
    print(f"{report.query.target} {report.query.method}() consensus = {report.consensus}")
    for e in report.entries:
        flag = " MISMATCH" if e.is_mismatch else ""
        print(f"  {e.name.value:<10} ok={e.success!s:<5} {e.time_ms:>5}ms {e.result}{flag}")


async def run_scenario(wallet: str, chain: Chain, scenario: Scenario) -> None:
    results = await PortfolioBenchmark(wallet=wallet, chain=chain).run(scenario)
    print(json.dumps([r.to_dict() for r in results.values()], indent=2))


def main() -> None:
    parser = argparse.ArgumentParser(description="Blockchain data provider benchmark")
    parser.add_argument("--chain", choices=[c.value for c in Chain], default=Chain.ETHEREUM.value)
    parser.add_argument("--precision", choices=[m.value for m in PrecisionMode], default=PrecisionMode.STANDARD.value)
    parser.add_argument("--request", choices=[r.value for r in RequestType], default=RequestType.LIGHT.value)
    parser.add_argument("--consensus", choices=[a.value for a in AssetClass], help="Run the contract-read consensus check")
    parser.add_argument("--scenario", choices=[s.value for s in Scenario], help="Run a portfolio scenario")
    parser.add_argument("--wallet", default=config.DEFAULT_WALLET, help="Wallet for portfolio scenarios")
    parser.add_argument("--status", action="store_true", help="Print provider status pages")
    args = parser.parse_args()

    chain = Chain(args.chain)
    if args.status:
        for name, st in fetch_statuses().items():
            print(f"{name.value:<10} {st['indicator']:<8} {st['description']}")
    elif args.consensus:
        asyncio.run(run_consensus(chain, AssetClass(args.consensus)))
    elif args.scenario:
        asyncio.run(run_scenario(args.wallet, chain, Scenario(args.scenario)))
    else:
        asyncio.run(run_leaderboard(chain, PrecisionMode(args.precision), RequestType(args.request)))


if __name__ == "__main__":
    main()
