"""Redis-based state manager shared by the tracking components."""

import asyncio
import inspect
import json
import random
from dataclasses import dataclass
from typing import Any, Awaitable, Callable

import redis.asyncio as redis
from redis.asyncio.client import Pipeline, PubSub
from redis.exceptions import RedisError, WatchError

from order_tracker.config import get_settings
from order_tracker.exceptions import PersistenceError
from order_tracker.utils.logging import get_logger

logger = get_logger(__name__)


def _dumps(value: Any) -> Any:
    if isinstance(value, (dict, list)):
        return json.dumps(value)
    return value


def _loads(value: Any) -> Any:
    if value is None:
        return None
    try:
        return json.loads(value)
    except (json.JSONDecodeError, TypeError):
        return value


@dataclass(frozen=True)
class StateWrite:
    """A write queued inside an atomic update."""

    op: str
    key: str
    value: Any = None

    @classmethod
    def set(cls, key: str, value: Any) -> "StateWrite":
        return cls("set", key, value)

    @classmethod
    def push(cls, key: str, value: Any) -> "StateWrite":
        return cls("rpush", key, value)

    @classmethod
    def zadd(cls, key: str, mapping: dict[str, float]) -> "StateWrite":
        return cls("zadd", key, mapping)

    @classmethod
    def delete(cls, key: str) -> "StateWrite":
        return cls("delete", key)

    def apply(self, pipe: Pipeline) -> None:
        if self.op == "set":
            pipe.set(self.key, _dumps(self.value))
        elif self.op == "rpush":
            pipe.rpush(self.key, _dumps(self.value))
        elif self.op == "delete":
            pipe.delete(self.key)
        elif self.op == "zadd":
            pipe.zadd(self.key, self.value)
        else:
            raise ValueError(f"Unknown write op: {self.op}")


class TransactionReader:
    """Read access inside an atomic update; every key read is also watched."""

    def __init__(self, pipe: Pipeline):
        self._pipe = pipe

    async def get(self, key: str) -> Any:
        await self._pipe.watch(key)
        return _loads(await self._pipe.get(key))


# Receives the current value of the primary key and a reader for other keys,
# returns the writes to commit.
Mutator = Callable[[Any, TransactionReader], "list[StateWrite] | Awaitable[list[StateWrite]]"]


class StateManager:
    """Centralized state management using Redis."""

    def __init__(self, redis_client: redis.Redis | None = None) -> None:
        settings = get_settings()
        self.redis_client: redis.Redis | None = redis_client
        self.redis_url = settings.redis_url
        self.max_retries = settings.optimistic_max_retries
        self.base_delay = settings.optimistic_base_delay_ms / 1000.0
        self.max_delay = settings.optimistic_max_delay_ms / 1000.0
        self.jitter = settings.optimistic_jitter_ms / 1000.0

    async def connect(self) -> None:
        """Establish Redis connection."""
        if self.redis_client is None:
            self.redis_client = await redis.from_url(
                self.redis_url,
                encoding="utf-8",
                decode_responses=True,
            )
            logger.info("redis_connected", url=self.redis_url)

    async def disconnect(self) -> None:
        """Close Redis connection."""
        if self.redis_client:
            await self.redis_client.aclose()
            self.redis_client = None
            logger.info("redis_disconnected")

    async def _client(self) -> redis.Redis:
        if not self.redis_client:
            await self.connect()
        return self.redis_client

    async def set(self, key: str, value: Any, ttl: int | None = None) -> None:
        """Set a value in Redis with optional TTL."""
        client = await self._client()
        await client.set(key, _dumps(value), ex=ttl)
        logger.debug("state_set", key=key, ttl=ttl)

    async def get(self, key: str) -> Any:
        """Get a value from Redis."""
        client = await self._client()
        return _loads(await client.get(key))

    async def mget(self, keys: list[str]) -> list[Any]:
        """Get several values in one round trip."""
        if not keys:
            return []
        client = await self._client()
        return [_loads(value) for value in await client.mget(keys)]

    async def delete(self, key: str) -> None:
        """Delete a key from Redis."""
        client = await self._client()
        await client.delete(key)
        logger.debug("state_deleted", key=key)

    async def exists(self, key: str) -> bool:
        """Check if a key exists."""
        client = await self._client()
        return bool(await client.exists(key))

    async def zrevrange(self, key: str, start: int = 0, end: int = -1) -> list[str]:
        """Get sorted set members, highest score first."""
        client = await self._client()
        return await client.zrevrange(key, start, end)

    async def rpush(self, key: str, value: Any) -> None:
        """Append a value to a list."""
        client = await self._client()
        await client.rpush(key, _dumps(value))

    async def lpop(self, key: str) -> Any:
        """Pop the oldest value of a list."""
        client = await self._client()
        return _loads(await client.lpop(key))

    async def lmove(self, source: str, destination: str) -> str | None:
        """Move the oldest value of one list to the tail of another.

        Returns the raw stored string so it can later be removed with lrem.
        """
        client = await self._client()
        return await client.lmove(source, destination, "LEFT", "RIGHT")

    async def blmove(self, source: str, destination: str, timeout: float = 1.0) -> str | None:
        """Like lmove, waiting up to timeout seconds for a value."""
        client = await self._client()
        return await client.blmove(source, destination, timeout, "LEFT", "RIGHT")

    async def lrem(self, key: str, raw: str) -> None:
        """Remove one occurrence of a raw value from a list."""
        client = await self._client()
        await client.lrem(key, 1, raw)

    async def llen(self, key: str) -> int:
        """Length of a list."""
        client = await self._client()
        return await client.llen(key)

    async def publish(self, channel: str, message: str) -> None:
        """Publish a message to a channel."""
        client = await self._client()
        await client.publish(channel, message)
        logger.debug("message_published", channel=channel)

    async def pubsub(self) -> PubSub:
        """Open a pub/sub handle on the shared connection pool."""
        client = await self._client()
        return client.pubsub()

    async def flush(self) -> None:
        """Drop every key in the current database."""
        client = await self._client()
        await client.flushdb()

    async def atomic_update(self, key: str, mutate: Mutator) -> None:
        """Read-modify-write guarded by WATCH/MULTI/EXEC.

        ``mutate`` gets the decoded value of ``key`` and returns the writes to
        commit. A concurrent change to any watched key aborts the attempt and
        the whole read-modify-write is retried with exponential backoff plus
        jitter. Exceptions raised by ``mutate`` propagate unchanged.
        """
        client = await self._client()

        for attempt in range(1, self.max_retries + 1):
            try:
                async with client.pipeline(transaction=True) as pipe:
                    reader = TransactionReader(pipe)
                    current = await reader.get(key)

                    writes = mutate(current, reader)
                    if inspect.isawaitable(writes):
                        writes = await writes

                    pipe.multi()
                    for write in writes:
                        write.apply(pipe)
                    await pipe.execute()
                    return

            except WatchError:
                if attempt == self.max_retries:
                    logger.error(
                        "optimistic_update_exhausted",
                        key=key,
                        attempts=attempt,
                    )
                    raise PersistenceError(
                        f"Concurrent updates to {key} unresolved after {attempt} attempts"
                    )

                delay = min(self.base_delay * (2**attempt), self.max_delay)
                delay += random.uniform(0, self.jitter)
                logger.warning(
                    "optimistic_update_conflict",
                    key=key,
                    attempt=attempt,
                    retry_in=round(delay, 3),
                )
                await asyncio.sleep(delay)

            except RedisError as e:
                raise PersistenceError(str(e)) from e


# Global state manager instance
_state_manager: StateManager | None = None


async def get_state_manager() -> StateManager:
    """Get the global state manager instance."""
    global _state_manager
    if _state_manager is None:
        _state_manager = StateManager()
        await _state_manager.connect()
    return _state_manager
