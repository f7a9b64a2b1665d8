import logging
from typing import Protocol, Self, runtime_checkable

import httpx

from reqchain.exceptions import TransportError
from reqchain.models import ResolvedRequest, Response
from reqchain.settings import Settings

logger = logging.getLogger(__name__)


@runtime_checkable
class Transport(Protocol):
    """Sends one resolved request. No retries.

    Implementations raise ``TransportError`` for network or protocol failures.
    Timeouts, if any, are the transport's business.
    """

    async def send(self, request: ResolvedRequest) -> Response: ...


class HttpxTransport:
    """Transport backed by ``httpx.AsyncClient``."""

    def __init__(self, settings: Settings | None = None, transport: httpx.AsyncBaseTransport | None = None):
        self.settings = settings or Settings()
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self.settings.timeout,
                follow_redirects=self.settings.follow_redirects,
                verify=self.settings.verify_ssl,
                transport=self._transport,
            )
        return self._client

    async def send(self, request: ResolvedRequest) -> Response:
        client = self._get_client()
        logger.info(f"{request.method.value} {request.url}")

        try:
            response = await client.request(
                request.method.value,
                request.url,
                headers=dict(request.headers),
                content=request.body or None,
            )
        except httpx.TimeoutException as e:
            raise TransportError(f"HTTP request timed out: {str(e)}") from None
        except httpx.ConnectError as e:
            raise TransportError(f"HTTP connection error: {str(e)}") from None
        except httpx.HTTPError as e:
            raise TransportError(f"HTTP request failed: {str(e)}") from None
        except httpx.InvalidURL as e:
            raise TransportError(f"Invalid request URL: {str(e)}") from None

        return Response.from_httpx(response)

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()
