from __future__ import annotations

from typing import Dict, Type

from core.interfaces import ProtocolAdapter
from core.types import Endpoint, Transport
from .base import HttpAdapter
from .graphql import GraphQLAdapter
from .rest import RestAdapter
from .rpc import RpcAdapter

ADAPTERS: Dict[Transport, Type[HttpAdapter]] = {
    Transport.RPC: RpcAdapter,
    Transport.REST: RestAdapter,
    Transport.GRAPHQL: GraphQLAdapter,
}


def adapter_for(endpoint: Endpoint) -> ProtocolAdapter:
    return ADAPTERS[endpoint.transport](endpoint)
