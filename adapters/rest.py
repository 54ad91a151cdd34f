from __future__ import annotations

from core.types import LogicalRequest, Transport, WireCall
from .base import HttpAdapter


class RestAdapter(HttpAdapter):
    """
    GET against a REST aggregator. The API key rides in the query string
    unless the provider wants it in the Authorization header.
    """

    transport = Transport.REST

    def build(self, request: LogicalRequest) -> WireCall:
        params = dict(request.query_params)
        headers = {"Accept": "application/json"}
        key = self.endpoint.api_key
        if key:
            if self.endpoint.auth_header:
                headers["Authorization"] = key
            elif self.endpoint.key_param:
                params[self.endpoint.key_param] = key
        return WireCall(
            http_method="GET",
            url=f"{self.endpoint.url or ''}{request.path}",
            params=params,
            headers=headers,
        )
