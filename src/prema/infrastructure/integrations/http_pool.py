"""One keep-alive connection pool for the Prema backend.

Hey future me - every call the client core makes goes to ONE host. Sharing a single
httpx.AsyncClient means the TLS handshake happens once per app run instead of once per
screen, which is very noticeable on a phone network with a chat poll every 3 seconds.

The pooled client is ANONYMOUS. Credentials ride on each request via RequestContext;
never put an Authorization header on this client, or the last session to log in
would leak into every other caller.

PremaApiClient borrows the client lazily; client_lifespan() closes it on shutdown.
Tests usually bypass the pool entirely by injecting their own AsyncClient.
"""

import asyncio
import logging
from typing import ClassVar

import httpx

from prema import __version__
from prema.config.settings import ApiSettings

logger = logging.getLogger(__name__)

USER_AGENT = f"prema-client/{__version__}"


class HttpClientPool:
    """Process-wide shared AsyncClient, created on first use."""

    _client: ClassVar[httpx.AsyncClient | None] = None
    # Created lazily so it binds to the loop that first needs it.
    _lock: ClassVar[asyncio.Lock | None] = None

    @classmethod
    def _get_lock(cls) -> asyncio.Lock:
        if cls._lock is None:
            cls._lock = asyncio.Lock()
        return cls._lock

    @staticmethod
    def _build(settings: ApiSettings) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=httpx.Timeout(settings.timeout),
            limits=httpx.Limits(
                max_keepalive_connections=settings.max_keepalive,
                max_connections=settings.max_connections,
            ),
            headers={"Accept": "application/json", "User-Agent": USER_AGENT},
            http2=True,
            # Hosted backends redirect http -> https and fiddle with trailing slashes.
            follow_redirects=True,
        )

    @classmethod
    async def get_client(cls, settings: ApiSettings | None = None) -> httpx.AsyncClient:
        """Return the shared client, creating it from `settings` on first use.

        Settings passed after the client exists are ignored; close() first to apply
        new limits.
        """
        async with cls._get_lock():
            if cls._client is None or cls._client.is_closed:
                settings = settings or ApiSettings()
                cls._client = cls._build(settings)
                logger.info(
                    "HTTP pool opened (timeout=%.1fs, keepalive=%d, max_connections=%d)",
                    settings.timeout,
                    settings.max_keepalive,
                    settings.max_connections,
                )
            return cls._client

    @classmethod
    async def close(cls) -> None:
        """Close the shared client. A later get_client() opens a fresh one."""
        async with cls._get_lock():
            client, cls._client = cls._client, None
        if client is not None and not client.is_closed:
            await client.aclose()
            logger.info("HTTP pool closed")

    @classmethod
    def is_open(cls) -> bool:
        return cls._client is not None and not cls._client.is_closed
