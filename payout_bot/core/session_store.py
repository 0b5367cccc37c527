"""
Redis-backed storage of chat sessions.

Key layout: ``user_session:<chat_id>`` -> JSON ``ChatSession``, with a TTL
(24 hours by default) that can be extended without rewriting the value.
"""

import json
import logging
from typing import Optional

from redis.asyncio import Redis
from redis.exceptions import RedisError

from payout_bot.models.session import ChatSession

logger = logging.getLogger(__name__)

SESSION_KEY_PREFIX = "user_session:"
SESSION_TTL_SECONDS = 60 * 60 * 24


class SessionStoreError(Exception):
    """The session store could not be reached or returned garbage."""


class SessionStore:
    """
    Persist ``ChatSession`` records in Redis.

    All methods are coroutines; Redis failures surface as
    ``SessionStoreError`` so handlers can report them uniformly.
    """

    def __init__(
        self,
        redis: Redis,
        ttl_seconds: int = SESSION_TTL_SECONDS,
        key_prefix: str = SESSION_KEY_PREFIX
    ):
        """
        Args:
            redis: ``redis.asyncio.Redis`` client
            ttl_seconds: Default lifetime of a stored session
            key_prefix: Prefix of session keys
        """
        self.redis = redis
        self.ttl_seconds = ttl_seconds
        self.key_prefix = key_prefix

    def key(self, chat_id: int) -> str:
        return f"{self.key_prefix}{chat_id}"

    async def ping(self) -> None:
        """
        Check connectivity (used once at boot).

        Raises:
            SessionStoreError: Redis is unreachable.
        """
        try:
            await self.redis.ping()
        except (RedisError, OSError) as e:
            raise SessionStoreError(f"Redis connection failed: {e}") from e
        logger.info("Connected to Redis")

    async def save(self, session: ChatSession, ttl_seconds: Optional[int] = None) -> None:
        ttl = ttl_seconds or self.ttl_seconds
        try:
            await self.redis.set(self.key(session.chat_id), json.dumps(session.to_dict()), ex=ttl)
        except RedisError as e:
            logger.error(f"Failed to store session for chat {session.chat_id}: {e}")
            raise SessionStoreError("Session storage failed") from e
        logger.debug(f"Stored session for chat {session.chat_id} with expiry {ttl}s")

    async def get(self, chat_id: int) -> Optional[ChatSession]:
        try:
            raw = await self.redis.get(self.key(chat_id))
        except RedisError as e:
            logger.error(f"Failed to read session for chat {chat_id}: {e}")
            raise SessionStoreError("Session lookup failed") from e

        if raw is None:
            return None

        if isinstance(raw, bytes):
            raw = raw.decode("utf-8")
        try:
            return ChatSession.from_dict(json.loads(raw))
        except (ValueError, KeyError, TypeError) as e:
            # Unreadable record: treat as logged out and drop it
            logger.warning(f"Discarding corrupt session for chat {chat_id}: {e}")
            await self.delete(chat_id)
            return None

    async def delete(self, chat_id: int) -> None:
        try:
            await self.redis.delete(self.key(chat_id))
        except RedisError as e:
            logger.error(f"Failed to delete session for chat {chat_id}: {e}")
            raise SessionStoreError("Session deletion failed") from e
        logger.debug(f"Deleted session for chat {chat_id}")

    async def exists(self, chat_id: int) -> bool:
        try:
            return await self.redis.exists(self.key(chat_id)) == 1
        except RedisError as e:
            logger.error(f"Failed to check session for chat {chat_id}: {e}")
            raise SessionStoreError("Session lookup failed") from e

    async def touch(self, chat_id: int, ttl_seconds: Optional[int] = None) -> bool:
        """Reset a session's TTL. Returns False if there is no session."""
        try:
            return bool(await self.redis.expire(self.key(chat_id), ttl_seconds or self.ttl_seconds))
        except RedisError as e:
            logger.error(f"Failed to update session expiry for chat {chat_id}: {e}")
            raise SessionStoreError("Session expiry update failed") from e
