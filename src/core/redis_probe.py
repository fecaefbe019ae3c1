import asyncio
import logging
import time
from typing import Any, Callable, Dict, Optional

from redis.asyncio import BlockingConnectionPool, Redis
from redis.exceptions import RedisError

from abstractions.probe import Probe
from contracts.errors import ProbeError
from core.profiler import Profiler
from core.urls import redact_url

logger = logging.getLogger(__name__)

PROBE_FAILURES = (RedisError, OSError, asyncio.TimeoutError)


class RedisPingProbe(Probe):
    """
    Opens a fresh connection, sends PING and closes the connection on every
    attempt. Measures raw connection plus liveness cost.
    """

    def __init__(
        self,
        url: str,
        client_factory: Callable[..., Redis] = Redis.from_url,
        **client_options: Any,
    ):
        """
        Initialize the RedisPingProbe.

        Args:
            url (str): Redis connection URL.
            client_factory (Callable): Builds a client from a URL and options.
            **client_options: Socket timeouts and TLS options for the client.
        """
        self.url = url
        self.client_factory = client_factory
        self.client_options = client_options

    def describe(self) -> str:
        return f"PING {redact_url(self.url)}"

    @Profiler.profile
    async def attempt(self) -> None:
        client = self.client_factory(self.url, **self.client_options)
        try:
            await client.ping()
        except PROBE_FAILURES as e:
            raise ProbeError(f"ping error: {e!r}") from e
        finally:
            await client.aclose()


class SharedRedisPool:
    """
    A lazily created connection pool capped at one connection, shared by
    every pooled probe of the process.

    The pool itself has no idle or lifetime limits, so a connection that sat
    idle longer than ``idle_timeout`` or lived longer than ``max_lifetime``
    is reconnected when it is next acquired.
    """

    MAX_CONNECTIONS = 1

    def __init__(
        self,
        url: str,
        acquire_timeout: float,
        idle_timeout: Optional[float] = None,
        max_lifetime: Optional[float] = None,
        pool_factory: Callable[..., BlockingConnectionPool] = BlockingConnectionPool.from_url,
        clock: Callable[[], float] = time.monotonic,
        **pool_options: Any,
    ):
        self.url = url
        self.acquire_timeout = acquire_timeout
        self.idle_timeout = idle_timeout
        self.max_lifetime = max_lifetime
        self.pool_factory = pool_factory
        self.clock = clock
        self.pool_options = pool_options
        self._pool: Optional[BlockingConnectionPool] = None
        self._connected_at: Dict[int, float] = {}
        self._released_at: Dict[int, float] = {}

    @property
    def pool(self) -> BlockingConnectionPool:
        if self._pool is None:
            logger.info(
                f"Creating shared Redis pool for {redact_url(self.url)} "
                f"(max_connections={self.MAX_CONNECTIONS})"
            )
            self._pool = self.pool_factory(
                self.url,
                max_connections=self.MAX_CONNECTIONS,
                timeout=self.acquire_timeout,
                **self.pool_options,
            )
        return self._pool

    async def acquire_and_release(self) -> None:
        """
        Acquire a connection, recycle it if stale and hand it straight back.
        """
        pool = self.pool
        conn = await pool.get_connection()
        key = id(conn)
        try:
            if self._is_stale(key, self.clock()):
                logger.debug("Recycling stale pooled Redis connection")
                await conn.disconnect()
                await conn.connect()
                self._connected_at[key] = self.clock()
        finally:
            await pool.release(conn)
            self._released_at[key] = self.clock()

    def _is_stale(self, key: int, now: float) -> bool:
        connected_at = self._connected_at.setdefault(key, now)
        released_at = self._released_at.get(key)
        if (
            self.idle_timeout is not None
            and released_at is not None
            and now - released_at > self.idle_timeout
        ):
            return True
        if self.max_lifetime is not None and now - connected_at > self.max_lifetime:
            return True
        return False

    async def aclose(self) -> None:
        if self._pool is not None:
            await self._pool.disconnect()
            self._pool = None
            self._connected_at.clear()
            self._released_at.clear()


class RedisPoolProbe(Probe):
    """
    Acquires and immediately releases a connection from the shared pool.
    Succeeds when the acquisition completes within the connect timeout.
    """

    def __init__(self, shared_pool: SharedRedisPool):
        self.shared_pool = shared_pool

    def describe(self) -> str:
        return f"ACQUIRE {redact_url(self.shared_pool.url)}"

    @Profiler.profile
    async def attempt(self) -> None:
        try:
            await asyncio.wait_for(
                self.shared_pool.acquire_and_release(),
                timeout=self.shared_pool.acquire_timeout,
            )
        except PROBE_FAILURES as e:
            raise ProbeError(f"pool acquire error: {e!r}") from e

    async def aclose(self) -> None:
        await self.shared_pool.aclose()
