from __future__ import annotations

import logging

import httpx

from core.interfaces import ProtocolAdapter
from core.types import LogicalRequest, TransportResponse

logger = logging.getLogger(__name__)


class HttpAdapter(ProtocolAdapter):
    """
    Shared send/parse for every HTTP transport. Subclasses only decide how
    a LogicalRequest maps onto the wire.
    """

    def parse(self, response: httpx.Response) -> TransportResponse:
        try:
            body = response.json()
        except ValueError:
            # Keep non-JSON payloads (HTML error pages, empty bodies) as text
            body = response.text
        headers = {k.lower(): v for k, v in response.headers.items()}
        return TransportResponse(
            ok=response.is_success,
            status=response.status_code,
            headers=headers,
            body=body,
        )

    async def send(self, client: httpx.AsyncClient, request: LogicalRequest) -> TransportResponse:
        call = self.build(request)
        try:
            response = await client.request(
                call.http_method,
                call.url,
                json=call.json,
                params=call.params or None,
                headers=call.headers or None,
            )
        except httpx.HTTPError as e:
            logger.debug("%s %s transport failure: %s", self.transport.value, self.endpoint.display_url, e)
            return TransportResponse.network_failure()
        return self.parse(response)
