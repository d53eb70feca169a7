"""
Content fetcher for mirrored documents.

Retrieves the raw text of a source document. Every failure (unresolvable
host, transport error, non-2xx status) is logged and reported as an empty
string, which callers treat as "nothing to do this cycle".
"""

import asyncio
import socket
from urllib.parse import urlsplit

import httpx
import structlog

logger = structlog.get_logger(__name__)


class ContentFetcher:
    """
    Fetches document text over HTTP(S).

    Uses a caller-owned ``httpx.AsyncClient`` so a single connection pool is
    shared with the message gateway for the lifetime of the service.

    Example:
        async with httpx.AsyncClient(timeout=10.0) as client:
            fetcher = ContentFetcher(client)
            text = await fetcher.fetch("https://example.com/README.md")
    """

    def __init__(self, client: httpx.AsyncClient, check_host: bool = True):
        """
        Initialize fetcher.

        Args:
            client: Shared async HTTP client.
            check_host: Resolve the URL's hostname before requesting it.
        """
        self._client = client
        self._check_host = check_host

    async def fetch(self, url: str) -> str:
        """
        Fetch the document at ``url``.

        Returns:
            Response body text, or "" on any failure.
        """
        if self._check_host:
            host = urlsplit(url).hostname
            if not host or not await self._host_resolves(host):
                logger.warning("Host unreachable, skipping fetch", url=url, host=host)
                return ""

        try:
            response = await self._client.get(url)
        except httpx.TimeoutException:
            logger.error("Fetch timed out", url=url)
            return ""
        except httpx.HTTPError as e:
            logger.error("Error fetching content", url=url, error=str(e))
            return ""

        if not response.is_success:
            logger.error(
                "Error fetching content",
                url=url,
                status_code=response.status_code,
            )
            return ""

        return response.text

    async def _host_resolves(self, host: str) -> bool:
        """Check that ``host`` resolves via the event loop's resolver."""
        loop = asyncio.get_running_loop()
        try:
            await loop.getaddrinfo(host, None, type=socket.SOCK_STREAM)
        except OSError as e:
            logger.debug("Host resolution failed", host=host, error=str(e))
            return False
        return True
