from __future__ import annotations

from core.types import LogicalRequest, Transport, WireCall
from .base import HttpAdapter


class RpcAdapter(HttpAdapter):
    """
    JSON-RPC 2.0 over HTTP POST. A single call is sent as one envelope;
    a batch request is sent as an array with ids 1..n.
    """

    transport = Transport.RPC

    def build(self, request: LogicalRequest) -> WireCall:
        if not request.calls:
            raise ValueError("RPC request needs at least one call")
        if request.batch:
            payload = [c.envelope(i + 1) for i, c in enumerate(request.calls)]
        else:
            payload = request.calls[0].envelope(1)
        return WireCall(
            http_method="POST",
            url=self.endpoint.url or "",
            json=payload,
            headers={"Content-Type": "application/json"},
        )
