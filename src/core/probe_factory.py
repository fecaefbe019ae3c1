"""
Probe factory turning settings into one independent probe per worker.
"""
import asyncio
import logging
from typing import Any, Callable, Dict, List
from urllib.parse import quote

import httpx
from redis.asyncio import BlockingConnectionPool, Redis
from redis.asyncio.connection import parse_url

from abstractions.probe import Probe
from contracts.errors import ConfigurationError
from contracts.probe_settings import DbProbeSettings, HttpProbeSettings, ProbeSettings
from core.http_probe import HttpProbe
from core.profiler import Profiler
from core.redis_probe import RedisPingProbe, RedisPoolProbe, SharedRedisPool
from core.urls import redact_url

logger = logging.getLogger(__name__)

HTTP_SCHEMES = ("http", "https")
TLS_REDIS_SCHEME = "rediss"


class ProbeFactory:
    """
    Factory class building the probes handed to the worker supervisor.

    Every HTTP probe gets its own client and therefore its own connection
    pool, so workers behave like independent clients instead of sharing
    warm connections. The pooled Redis variant is the one exception: all of
    its probes share a single-connection pool.
    """

    def __init__(
        self,
        http_client_factory: Callable[..., httpx.AsyncClient] = httpx.AsyncClient,
        redis_client_factory: Callable[..., Redis] = Redis.from_url,
        redis_pool_factory: Callable[..., BlockingConnectionPool] = BlockingConnectionPool.from_url,
    ):
        """
        Initialize the ProbeFactory.

        Args:
            http_client_factory (Callable): Builds an httpx client from keyword options.
            redis_client_factory (Callable): Builds a Redis client from a URL and options.
            redis_pool_factory (Callable): Builds a blocking Redis pool from a URL and options.
        """
        self.http_client_factory = http_client_factory
        self.redis_client_factory = redis_client_factory
        self.redis_pool_factory = redis_pool_factory

    @Profiler.profile
    async def build(self, settings: ProbeSettings) -> List[Probe]:
        """
        Build ``settings.parallel`` probes for the configured target.

        Args:
            settings (ProbeSettings): Validated probe settings.

        Returns:
            List[Probe]: One probe per worker.

        Raises:
            ConfigurationError: If the worker count is below one or the
                target cannot be resolved into a usable client.
        """
        if settings.parallel < 1:
            raise ConfigurationError(
                f"parallel must be at least 1, got {settings.parallel}"
            )

        if isinstance(settings, HttpProbeSettings):
            probes = await self._build_http_probes(settings)
        elif isinstance(settings, DbProbeSettings):
            probes = self._build_redis_probes(settings)
        else:
            raise ConfigurationError(
                f"Unsupported probe settings type: {type(settings).__name__}"
            )

        logger.info(f"Built {len(probes)} probe(s) for {probes[0].describe()}")
        return probes

    async def _build_http_probes(self, settings: HttpProbeSettings) -> List[Probe]:
        url = resolve_http_url(settings.url)
        clients = []
        try:
            for _ in range(settings.parallel):
                clients.append(
                    self.http_client_factory(
                        timeout=httpx.Timeout(
                            settings.timeout, connect=settings.connect_timeout
                        ),
                        limits=httpx.Limits(
                            max_keepalive_connections=settings.pool_max_idle_per_host,
                            keepalive_expiry=settings.pool_idle_timeout,
                        ),
                    )
                )
        except Exception as e:
            await asyncio.gather(*(client.aclose() for client in clients))
            raise ConfigurationError(f"error building HTTP client: {e}") from e
        return [HttpProbe(client, url) for client in clients]

    def _build_redis_probes(self, settings: DbProbeSettings) -> List[Probe]:
        url = resolve_redis_url(settings)
        options = redis_connection_options(settings, url)

        if not settings.pooled:
            return [
                RedisPingProbe(url, client_factory=self.redis_client_factory, **options)
                for _ in range(settings.parallel)
            ]

        logger.warning(
            f"Pooled mode: {settings.parallel} worker(s) share one pool capped at "
            f"{SharedRedisPool.MAX_CONNECTIONS} connection for {redact_url(url)}"
        )
        shared_pool = SharedRedisPool(
            url,
            acquire_timeout=settings.connect_timeout,
            idle_timeout=settings.pool_idle_timeout,
            max_lifetime=settings.pool_max_lifetime,
            pool_factory=self.redis_pool_factory,
            **options,
        )
        return [RedisPoolProbe(shared_pool) for _ in range(settings.parallel)]


def resolve_http_url(raw_url: str) -> str:
    """
    Validate an HTTP target URL.

    Raises:
        ConfigurationError: If the URL is malformed, not http(s) or has no host.
    """
    if not raw_url:
        raise ConfigurationError("Missing URL for the http probe")
    try:
        url = httpx.URL(raw_url)
    except httpx.InvalidURL as e:
        raise ConfigurationError(f"Malformed URL {raw_url!r}: {e}") from e
    if url.scheme not in HTTP_SCHEMES:
        raise ConfigurationError(
            f"Unsupported URL scheme {url.scheme!r} in {raw_url!r}, expected one of {HTTP_SCHEMES}"
        )
    if not url.host:
        raise ConfigurationError(f"URL {raw_url!r} has no host")
    return str(url)


def resolve_redis_url(settings: DbProbeSettings) -> str:
    """
    Turn the connection descriptor into a Redis URL.

    An explicit ``url`` is used as given; otherwise the URL is assembled
    from the host, port, credential and database fields.

    Raises:
        ConfigurationError: If no target is configured, the URL is not a
            Redis URL, or the TLS options contradict each other.
    """
    if settings.url:
        url = settings.url
    elif settings.host:
        scheme = TLS_REDIS_SCHEME if settings.tls else "redis"
        credentials = ""
        if settings.username or settings.password:
            credentials = quote(settings.username or "", safe="")
            if settings.password:
                credentials += ":" + quote(settings.password, safe="")
            credentials += "@"
        url = f"{scheme}://{credentials}{settings.host}:{settings.port}/{settings.database}"
    else:
        raise ConfigurationError("Missing connection info for the db probe: set url or host")

    try:
        parse_url(url)
    except ValueError as e:
        raise ConfigurationError(f"Malformed Redis URL {redact_url(url)!r}: {e}") from e

    uses_tls = url.startswith(f"{TLS_REDIS_SCHEME}://")
    if settings.tls and not uses_tls:
        raise ConfigurationError(
            f"tls is set but {redact_url(url)!r} does not use the {TLS_REDIS_SCHEME}:// scheme"
        )
    if settings.insecure and not uses_tls:
        raise ConfigurationError("insecure only applies to TLS connections: set tls or use rediss://")
    return url


def redis_connection_options(settings: DbProbeSettings, url: str) -> Dict[str, Any]:
    options: Dict[str, Any] = {
        "socket_connect_timeout": settings.connect_timeout,
        "socket_timeout": settings.connect_timeout,
    }
    if settings.insecure and url.startswith(f"{TLS_REDIS_SCHEME}://"):
        options["ssl_cert_reqs"] = "none"
        options["ssl_check_hostname"] = False
    return options


async def build_probes(settings: ProbeSettings) -> List[Probe]:
    """
    Build probes with the default client libraries.
    """
    return await ProbeFactory().build(settings)
