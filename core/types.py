from __future__ import annotations

"""
Core domain types for provider benchmarking and scoring.

These are deliberately logic‑free data containers that can be shared across:
1) protocol adapters (wire building / response normalization)
2) the probe dispatcher and statistics reducer
3) the consensus validator and portfolio scenarios
4) scoring and whatever renders the results
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple, Union
from urllib.parse import urlparse

# Lag is a block count once heights are known, otherwise a marker string.
Lag = Union[int, str]
LAG_NA = "N/A"
LAG_SYNCED = "Synced"

NETWORK_ERROR = "network"
CONFIG_MISSING = "Config Missing"


class Transport(str, Enum):
    RPC = "RPC"
    REST = "REST"
    GRAPHQL = "GraphQL"


class ProviderName(str, Enum):
    ALCHEMY = "Alchemy"
    INFURA = "Infura"
    QUICKNODE = "QuickNode"
    COVALENT = "Covalent"
    MOBULA = "Mobula"
    CODEX = "Codex"


class Chain(str, Enum):
    ETHEREUM = "ethereum"
    POLYGON = "polygon"
    ARBITRUM = "arbitrum"
    OPTIMISM = "optimism"
    BASE = "base"
    BSC = "bsc"
    AVALANCHE = "avalanche"

    @property
    def chain_id(self) -> int:
        return _CHAIN_IDS[self]


_CHAIN_IDS: Dict[Chain, int] = {
    Chain.ETHEREUM: 1,
    Chain.POLYGON: 137,
    Chain.ARBITRUM: 42161,
    Chain.OPTIMISM: 10,
    Chain.BASE: 8453,
    Chain.BSC: 56,
    Chain.AVALANCHE: 43114,
}


class RequestType(str, Enum):
    """Light = block height only, heavy = full block with transactions."""

    LIGHT = "light"
    HEAVY = "heavy"


class PrecisionMode(str, Enum):
    STANDARD = "standard"
    ROBUST = "robust"

    @property
    def iterations(self) -> int:
        return 5 if self is PrecisionMode.ROBUST else 2


class AssetClass(str, Enum):
    ERC20 = "erc20"
    ERC721 = "erc721"
    ERC1155 = "erc1155"


class Complexity(int, Enum):
    LOW = 1
    MEDIUM = 3
    HIGH = 5


class Scenario(str, Enum):
    PORTFOLIO_LOAD = "Portfolio_Load"
    SWAP_QUOTE = "Swap_Quote"


@dataclass(frozen=True)
class Endpoint:
    """
    Per-chain, per-provider endpoint descriptor. Read-only input.

    `url` is None when the provider is not configured for the chain (no key,
    or no offering on that network).
    """

    url: Optional[str]
    transport: Transport
    api_key: Optional[str] = None
    # How the key travels: query parameter name, or the Authorization header
    key_param: Optional[str] = None
    auth_header: bool = False

    @property
    def configured(self) -> bool:
        return bool(self.url) and self.url.startswith("http")

    @property
    def scheme(self) -> str:
        return urlparse(self.url or "").scheme

    @property
    def display_url(self) -> str:
        """Scheme and host only; keys embedded in paths never reach logs."""
        p = urlparse(self.url or "")
        return f"{p.scheme}://{p.netloc}" if p.netloc else ""


@dataclass(frozen=True)
class RpcCall:
    method: str
    params: Tuple[Any, ...] = ()

    def envelope(self, request_id: int = 1) -> Dict[str, Any]:
        return {"jsonrpc": "2.0", "id": request_id, "method": self.method, "params": list(self.params)}


@dataclass(frozen=True)
class LogicalRequest:
    """
    Transport‑neutral request. Only the fields relevant to the target
    adapter are read: `calls` for RPC, `path`/`query_params` for REST,
    `query`/`variables` for GraphQL.
    """

    calls: Tuple[RpcCall, ...] = ()
    batch: bool = False
    path: str = ""
    query_params: Dict[str, Any] = field(default_factory=dict)
    query: Optional[str] = None
    variables: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def rpc(cls, method: str, *params: Any) -> "LogicalRequest":
        return cls(calls=(RpcCall(method, tuple(params)),))

    @classmethod
    def rpc_batch(cls, calls: List[RpcCall]) -> "LogicalRequest":
        return cls(calls=tuple(calls), batch=True)

    @classmethod
    def get(cls, path: str = "", **query_params: Any) -> "LogicalRequest":
        return cls(path=path, query_params=dict(query_params))

    @classmethod
    def graphql(cls, query: str, variables: Optional[Dict[str, Any]] = None) -> "LogicalRequest":
        return cls(query=query, variables=dict(variables or {}))


@dataclass(frozen=True)
class WireCall:
    http_method: str
    url: str
    json: Any = None
    params: Dict[str, Any] = field(default_factory=dict)
    headers: Dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class TransportResponse:
    """Normalized transport result: {ok, status, headers, body} or a network error."""

    ok: bool
    status: int = 0
    headers: Dict[str, str] = field(default_factory=dict)
    body: Any = None
    error: Optional[str] = None

    @classmethod
    def network_failure(cls) -> "TransportResponse":
        return cls(ok=False, error=NETWORK_ERROR)

    @property
    def result(self) -> Any:
        if isinstance(self.body, dict):
            return self.body.get("result")
        return None

    @property
    def rpc_error(self) -> Any:
        if isinstance(self.body, dict):
            return self.body.get("error")
        return None


@dataclass(frozen=True)
class Provider:
    """
    One provider on the leaderboard: static profile plus the measured
    attributes of the last completed round. Never mutated; a round builds
    a replacement with dataclasses.replace.
    """

    name: ProviderName
    color: str = ""
    free_tier: str = ""
    archive: bool = False  # static capability until an archive probe replaces it
    trace: bool = False
    certs: Tuple[str, ...] = ()
    base_cost: float = 0.0  # USD per million requests
    coverage: int = 0  # number of chains served
    # Measured
    latency: int = 0  # P50 ms
    p99: int = 0  # worst observed ms
    uptime: int = 0  # %
    batch_latency: int = 0
    block_height: int = 0
    lag: Lag = LAG_NA
    gas: float = 0.0  # gwei
    security_score: int = 100
    security_issues: Tuple[str, ...] = ()
    history: Tuple[int, ...] = ()
    last_error: Optional[str] = None
    score: int = 0
    calculated_cost: int = 0

    def to_record(self) -> Dict[str, Any]:
        return {
            "name": self.name.value,
            "latency": self.latency,
            "p99": self.p99,
            "uptime": self.uptime,
            "batchLatency": self.batch_latency,
            "lag": self.lag,
            "blockHeight": self.block_height,
            "archive": self.archive,
            "gas": self.gas,
            "securityScore": self.security_score,
            "securityIssues": list(self.security_issues),
            "history": list(self.history),
            "score": self.score,
            "calculatedCost": self.calculated_cost,
        }


@dataclass
class ProbeOutcome:
    """
    Raw result of one provider's probe sequence. Lives only between the
    dispatcher and the reducer.
    """

    name: ProviderName
    iterations: int
    samples: List[int] = field(default_factory=list)  # ms, 0 = failed round
    successes: int = 0
    block_height: int = 0
    last_error: Optional[str] = None
    headers: Dict[str, str] = field(default_factory=dict)
    configured: bool = True
    # RPC-only auxiliary checks; None when not run
    archive: Optional[bool] = None
    gas: Optional[float] = None
    batch_latency: int = 0


@dataclass(frozen=True)
class LatencyStats:
    p50: int
    p99: int  # max of the sample, a small-sample stand-in for the 99th percentile
    uptime: int


@dataclass(frozen=True)
class SecurityReport:
    score: int
    issues: Tuple[str, ...] = ()


@dataclass(frozen=True)
class BreakdownItem:
    reason: str
    delta: int
    type: str  # base | penalty | bonus | neutral

    def to_dict(self) -> Dict[str, Any]:
        return {"reason": self.reason, "delta": self.delta, "type": self.type}


@dataclass(frozen=True)
class ScoreBreakdown:
    score: int
    grade: str
    breakdown: Tuple[BreakdownItem, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "score": self.score,
            "grade": self.grade,
            "breakdown": [b.to_dict() for b in self.breakdown],
        }


@dataclass(frozen=True)
class Winner:
    name: str
    score: int = 0
    latency: int = 0


@dataclass(frozen=True)
class ConsensusQuery:
    """A contract read sent identically to every provider."""

    chain: Chain
    asset_class: AssetClass
    target: str  # human label, e.g. "USDT (Tether)"
    address: str
    method: str
    params: Tuple[Any, ...] = ()


@dataclass(frozen=True)
class ConsensusEntry:
    name: ProviderName
    success: bool
    time_ms: int = 0
    result: Optional[str] = None
    raw: Optional[str] = None
    target: Optional[str] = None
    is_mismatch: bool = False


@dataclass(frozen=True)
class ConsensusReport:
    query: Optional[ConsensusQuery]
    consensus: Optional[str] = None
    entries: Tuple[ConsensusEntry, ...] = ()

    @property
    def mismatches(self) -> List[ProviderName]:
        return [e.name for e in self.entries if e.is_mismatch]


@dataclass(frozen=True)
class ScenarioMetrics:
    requests_sent: int
    data_richness_score: int  # 0–100
    estimated_cost_units: float
    integration_complexity: Complexity


@dataclass(frozen=True)
class TraceStep:
    step: str
    time: int  # ms
    status: str  # OK | ERR

    def to_dict(self) -> Dict[str, Any]:
        return {"step": self.step, "time": self.time, "status": self.status}


@dataclass(frozen=True)
class ScenarioResult:
    """Graded outcome of one provider in one portfolio scenario."""

    provider: ProviderName
    scenario: Scenario
    score_details: ScoreBreakdown
    time_to_interactive_ms: int = 0
    metrics: Optional[ScenarioMetrics] = None
    traceroute: Tuple[TraceStep, ...] = ()
    error: Optional[str] = None

    @property
    def grade(self) -> str:
        return self.score_details.grade

    def to_dict(self) -> Dict[str, Any]:
        m = self.metrics
        out: Dict[str, Any] = {
            "provider": self.provider.value,
            "scenario": self.scenario.value,
            "metrics": {
                "time_to_interactive_ms": self.time_to_interactive_ms,
                "requests_sent": m.requests_sent if m else 0,
                "data_richness_score": m.data_richness_score if m else 0,
                "estimated_cost_units": m.estimated_cost_units if m else 0,
                "builder_impact_rating": self.grade,
                "score_details": self.score_details.to_dict(),
                "traceroute": [t.to_dict() for t in self.traceroute],
            },
        }
        if self.error is not None:
            out["error"] = self.error
        return out


@dataclass(frozen=True)
class Leaderboard:
    """Immutable snapshot of every provider after one completed round."""

    providers: Tuple[Provider, ...] = ()

    def get(self, name: ProviderName) -> Optional[Provider]:
        for p in self.providers:
            if p.name == name:
                return p
        return None

    def to_records(self) -> List[Dict[str, Any]]:
        return [p.to_record() for p in self.providers]
