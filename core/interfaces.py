from __future__ import annotations

"""
Abstract interfaces for the benchmarking engine:

1) ProtocolAdapter    – turns a LogicalRequest into a wire call and back
2) PortfolioStrategy  – one provider's call sequence for a portfolio scenario

These are pure interfaces (no logic) so we can:
- plug in RPC / REST / GraphQL transports behind one seam
- plug in new providers' scenario sequences
without changing the probe dispatcher, consensus validator or scoring code.
"""

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

import httpx

from .types import Endpoint, LogicalRequest, ProviderName, ScenarioMetrics, Transport, TransportResponse, WireCall

if TYPE_CHECKING:
    from bench.strategies import ScenarioContext


class ProtocolAdapter(ABC):
    """
    Builds provider-specific requests and normalizes responses.

    Implementations must never raise on transport failure; they return
    TransportResponse.network_failure() and let the caller decide how to
    score it.
    """

    transport: Transport

    def __init__(self, endpoint: Endpoint) -> None:
        self.endpoint = endpoint

    @abstractmethod
    def build(self, request: LogicalRequest) -> WireCall:
        """Return the wire-level call for `request` against this endpoint."""

    @abstractmethod
    def parse(self, response: httpx.Response) -> TransportResponse:
        """Normalize a received HTTP response into {ok, status, headers, body}."""

    @abstractmethod
    async def send(self, client: httpx.AsyncClient, request: LogicalRequest) -> TransportResponse:
        """Build, send and parse one request."""


class PortfolioStrategy(ABC):
    """
    A provider's characteristic call sequence for one portfolio scenario.

    Strategies raise on failure; the portfolio engine contains the error to
    the provider that raised it.
    """

    provider: ProviderName
    label: str = ""

    @abstractmethod
    async def run(self, ctx: "ScenarioContext") -> ScenarioMetrics:
        """Execute the sequence and report what it cost to assemble the view."""
