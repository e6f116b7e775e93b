"""
HTTP transport used to talk to Tasmota devices.
"""
import asyncio
from dataclasses import dataclass
from typing import Callable, Optional

import aiohttp
from yarl import URL

from ..exceptions import TransportFailure
from ..models.settings import ConnectionSettings
from ..utils.logging import get_logger

logger = get_logger(__name__)

CONTENT_TYPE_JSON = "application/json"
DEFAULT_TIMEOUT = 10


@dataclass(frozen=True)
class HttpResponse:
    """Status, content type and body of a completed request"""
    status: int
    content_type: str
    text: str


class HttpConnection:
    """
    Issues GET requests against one device.

    A new aiohttp session is opened per request, so a connection object holds
    no open sockets between polling cycles. Credentials, when configured, are
    sent as HTTP basic auth.
    """

    CONTENT_TYPE_JSON = CONTENT_TYPE_JSON

    def __init__(self, user: Optional[str] = None, password: Optional[str] = None,
                 timeout: float = DEFAULT_TIMEOUT):
        self.auth = aiohttp.BasicAuth(user, password or "") if user else None
        self.timeout = timeout

    async def get(self, url: URL) -> HttpResponse:
        """
        Send a GET request and return the response, whatever its status.

        Raises:
            TransportFailure: If the device cannot be reached or does not answer in time
        """
        try:
            async with aiohttp.ClientSession(
                auth=self.auth,
                timeout=aiohttp.ClientTimeout(total=self.timeout)
            ) as session:
                async with session.get(url) as response:
                    text = await response.text()
                    return HttpResponse(
                        status=response.status,
                        content_type=response.content_type,
                        text=text
                    )
        except asyncio.TimeoutError as e:
            raise TransportFailure(f"Request to {url.host} timed out after {self.timeout}s") from e
        except aiohttp.ClientError as e:
            raise TransportFailure(f"Request to {url.host} failed: {str(e)}") from e

    async def get_as_string(self, url: URL) -> str:
        """
        Fetch the body of a URL.

        Raises:
            TransportFailure: If the request fails or the device answers with an HTTP error
        """
        response = await self.get(url)
        if response.status >= 400:
            raise TransportFailure(f"HTTP {response.status} from {url.host}")
        return response.text

    async def test(self, url: URL, valid_media_type: str) -> None:
        """
        Check that the URL answers successfully with the expected media type.

        Raises:
            TransportFailure: If the request fails, returns an HTTP error or
                another media type
        """
        response = await self.get(url)
        if response.status != 200:
            raise TransportFailure(f"HTTP {response.status} from {url.host}")
        if response.content_type != valid_media_type:
            raise TransportFailure(
                f"Unexpected content type '{response.content_type}' from {url.host}, "
                f"expected '{valid_media_type}'"
            )


ConnectionFactory = Callable[[ConnectionSettings], HttpConnection]


def create_http_connection(settings: ConnectionSettings) -> HttpConnection:
    """Default connection factory"""
    return HttpConnection(user=settings.optional_user, password=settings.optional_password)
