"""
ClientFactory - Creates and caches the shared network clients.

Handles client creation and connection pooling for the payments API
(httpx) and the session store (Redis).
"""

from typing import Optional
import logging

import httpx
from redis.asyncio import Redis

logger = logging.getLogger(__name__)


class ClientFactory:
    """
    Factory for the bot's long-lived clients.

    Responsibilities:
    1. Create one pooled ``httpx.AsyncClient`` for the payments API
    2. Create one ``redis.asyncio.Redis`` client for sessions
    3. Close both on shutdown
    """

    def __init__(self, api_config: dict, redis_config: Optional[dict] = None):
        """
        Initialize client factory.

        Args:
            api_config: API configuration dictionary containing:
                - base_url: Payments API root
                - timeout: Request timeout in seconds
                - verify_ssl: Whether to verify SSL certificates
                - proxy: HTTP proxy URL (optional)
            redis_config: Redis configuration dictionary containing ``url``
        """
        self.api_config = api_config
        self.redis_config = redis_config or {}

        self._http_client: Optional[httpx.AsyncClient] = None
        self._redis_client: Optional[Redis] = None

    def get_http_client(self) -> httpx.AsyncClient:
        """
        Get shared HTTP client (singleton).

        Returns:
            Configured httpx.AsyncClient instance
        """
        if self._http_client is None:
            client_kwargs = {
                "base_url": self.api_config['base_url'],
                "timeout": self.api_config.get('timeout', 30.0),
                "verify": self.api_config.get('verify_ssl', True),
                "headers": {"Content-Type": "application/json"},
            }

            if proxy := self.api_config.get('proxy'):
                client_kwargs["proxy"] = proxy

            self._http_client = httpx.AsyncClient(**client_kwargs)
            logger.info(f"HTTP client created for {self.api_config['base_url']}")

        return self._http_client

    def get_redis_client(self) -> Redis:
        """
        Get shared Redis client (singleton).

        Returns:
            redis.asyncio.Redis instance (connections are opened lazily)
        """
        if self._redis_client is None:
            url = self.redis_config.get('url', 'redis://localhost:6379')
            self._redis_client = Redis.from_url(url, decode_responses=True)
            logger.info("Redis client created")

        return self._redis_client

    async def aclose(self) -> None:
        """Close every client created so far."""
        if self._http_client is not None:
            await self._http_client.aclose()
            self._http_client = None
            logger.info("HTTP client closed")

        if self._redis_client is not None:
            await self._redis_client.aclose()
            self._redis_client = None
            logger.info("Redis connection closed")
