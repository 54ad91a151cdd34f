from __future__ import annotations

from core.types import LogicalRequest, Transport, WireCall
from .base import HttpAdapter


class GraphQLAdapter(HttpAdapter):
    """POST a query document with variables: {query, variables}."""

    transport = Transport.GRAPHQL

    def build(self, request: LogicalRequest) -> WireCall:
        if not request.query:
            raise ValueError("GraphQL request needs a query document")
        headers = {"Content-Type": "application/json"}
        if self.endpoint.api_key:
            headers["Authorization"] = self.endpoint.api_key
        return WireCall(
            http_method="POST",
            url=self.endpoint.url or "",
            json={"query": request.query, "variables": dict(request.variables)},
            headers=headers,
        )
