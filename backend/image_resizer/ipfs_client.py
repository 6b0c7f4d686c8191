"""
IPFS Content Fetcher

Retrieves raw bytes by CID from a local IPFS (kubo) node over its HTTP RPC API:

    POST {api_url}/api/v0/cat?arg=<cid>

Timeouts, connection failures and missing content raise distinct FetchError
subclasses.
"""

import asyncio
import logging
from typing import Optional

import httpx

from .errors import (
    ContentNotFoundError,
    FetchConnectionError,
    FetchError,
    FetchTimeoutError,
)

logger = logging.getLogger(__name__)

# Fragments of kubo error messages meaning the CID cannot be resolved
_NOT_FOUND_MARKERS = (
    "not found",
    "no link named",
    "invalid path",
    "invalid cid",
    "failed to resolve",
    "is a directory",
)


def _error_message(response: httpx.Response) -> str:
    """Extract kubo's {"Message": ...} error text, falling back to the raw body."""
    try:
        body = response.json()
        if isinstance(body, dict) and body.get("Message"):
            return str(body["Message"])
    except ValueError:
        pass
    return response.text[:200]


class IpfsClient:
    """
    Async client for the IPFS node's `cat` command.

    Usage:
        client = IpfsClient("http://127.0.0.1:5001", timeout_seconds=45)
        data = await client.fetch("Qm...")
        await client.close()
    """

    def __init__(
        self,
        api_url: str = "http://127.0.0.1:5001",
        timeout_seconds: float = 45.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_url = api_url.rstrip("/")
        self.timeout_seconds = timeout_seconds
        self.http_client = httpx.AsyncClient(
            base_url=self.api_url,
            timeout=timeout_seconds,
            transport=transport,
        )

    async def close(self) -> None:
        """Close HTTP client."""
        await self.http_client.aclose()

    async def fetch(self, content_id: str) -> bytes:
        """
        Fetch the full content for a CID.

        Raises:
            FetchTimeoutError: the request did not complete within the timeout
            FetchConnectionError: the node is unreachable
            ContentNotFoundError: the node cannot resolve the CID
            FetchError: any other failure
        """
        if not content_id:
            raise ContentNotFoundError("empty content id")

        # httpx timeouts apply per phase; wait_for bounds the whole exchange,
        # including a body that keeps trickling in
        try:
            response = await asyncio.wait_for(
                self.http_client.post("/api/v0/cat", params={"arg": content_id}),
                timeout=self.timeout_seconds,
            )
        except (httpx.TimeoutException, asyncio.TimeoutError) as e:
            logger.error(f"[IpfsClient] Timeout after {self.timeout_seconds}s: {content_id}")
            raise FetchTimeoutError(
                f"cat {content_id} timed out after {self.timeout_seconds}s",
                {"cid": content_id},
            ) from e
        except httpx.TransportError as e:
            logger.error(f"[IpfsClient] Connection error ({self.api_url}): {e}")
            raise FetchConnectionError(
                f"failed to perform 'cat' request: {e}",
                {"cid": content_id, "api_url": self.api_url},
            ) from e

        if response.is_success:
            data = response.content
            logger.debug(f"[IpfsClient] Fetched {content_id} ({len(data)} bytes)")
            return data

        message = _error_message(response)
        details = {"cid": content_id, "status_code": response.status_code}

        if response.status_code == 404 or any(m in message.lower() for m in _NOT_FOUND_MARKERS):
            logger.warning(f"[IpfsClient] Not found: {content_id} - {message}")
            raise ContentNotFoundError(f"cat {content_id}: {message}", details)

        logger.error(f"[IpfsClient] HTTP {response.status_code} for {content_id}: {message}")
        raise FetchError(f"cat {content_id} failed with HTTP {response.status_code}: {message}", details)
