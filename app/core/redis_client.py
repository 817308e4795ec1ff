"""
Redis Client Configuration

Best-effort async Redis cache used by the analysis and redirect layers.
Supports direct and Sentinel topologies, optional TLS and credentials, and
background reconnection. Every public operation is total: transport failures
are logged and turned into a miss or a no-op, never raised.
"""

import asyncio
import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, List, Optional, Tuple

from redis.asyncio import Redis
from redis.asyncio.retry import Retry
from redis.asyncio.sentinel import Sentinel
from redis.backoff import AbstractBackoff, NoBackoff

from app.config.logging import get_logger
from app.config.settings import Settings

logger = get_logger(__name__)


class ConnectionState(Enum):
    """Connectivity of the cache client."""
    CONNECTING = "connecting"
    READY = "ready"
    DEGRADED = "degraded"


class LinearBackoff(AbstractBackoff):
    """Delay grows with the attempt number and is capped."""

    def __init__(self, base: float = 0.05, cap: float = 2.0):
        self._base = base
        self._cap = cap

    def compute(self, failures: int) -> float:
        return min(failures * self._base, self._cap)


@dataclass
class RedisConfig:
    """Redis configuration settings"""
    host: str = "localhost"
    port: int = 6379
    sentinel_hosts: List[Tuple[str, int]] = field(default_factory=list)
    master_name: str = "mymaster"
    username: Optional[str] = None
    password: Optional[str] = None
    tls_enabled: bool = False
    socket_timeout: float = 2.0
    retry_base_delay: float = 0.05
    retry_max_delay: float = 2.0

    @property
    def use_sentinel(self) -> bool:
        return bool(self.sentinel_hosts)

    @classmethod
    def from_settings(cls, settings: Settings) -> "RedisConfig":
        return cls(
            host=settings.REDIS_HOST,
            port=settings.REDIS_PORT,
            sentinel_hosts=settings.sentinel_hosts,
            master_name=settings.REDIS_MASTER_NAME,
            username=settings.REDIS_USERNAME,
            password=settings.REDIS_PASSWORD,
            tls_enabled=settings.REDIS_TLS_ENABLED,
            socket_timeout=settings.REDIS_SOCKET_TIMEOUT,
            retry_base_delay=settings.REDIS_RETRY_BASE_DELAY,
            retry_max_delay=settings.REDIS_RETRY_MAX_DELAY,
        )


class CacheClient:
    """
    Redis cache wrapper with a connectivity state machine.

    CONNECTING -> READY after a successful PING; READY -> DEGRADED on any
    transport error or close. While DEGRADED a background task retries the
    handshake with linear, capped backoff. Commands issued while not READY
    fail fast without touching the network.
    """

    def __init__(self, config: Optional[RedisConfig] = None, client: Optional[Redis] = None):
        self.config = config or RedisConfig()
        self._client: Optional[Redis] = client
        self._sentinel: Optional[Sentinel] = None
        self._state = ConnectionState.CONNECTING
        self._closed = False
        self._reconnect_task: Optional[asyncio.Task] = None

        self._transport_backoff = LinearBackoff(self.config.retry_base_delay, self.config.retry_max_delay)
        self._discovery_backoff = LinearBackoff(self.config.retry_base_delay, self.config.retry_max_delay)
        self._transport_attempts = 0
        self._discovery_attempts = 0

    @property
    def state(self) -> ConnectionState:
        return self._state

    def _connection_kwargs(self) -> dict:
        kwargs = {
            "username": self.config.username,
            "password": self.config.password,
            "socket_timeout": self.config.socket_timeout,
            "socket_connect_timeout": self.config.socket_timeout,
            "decode_responses": True,
            # No per-command retries; reconnection is handled by the state machine
            "retry": Retry(NoBackoff(), 0),
        }
        if self.config.tls_enabled:
            kwargs["ssl"] = True
        return kwargs

    def _build_client(self) -> Redis:
        """Create the underlying client for the configured topology."""
        if self.config.use_sentinel:
            logger.info(
                "Initializing Redis with Sentinel configuration",
                sentinels=len(self.config.sentinel_hosts),
                master=self.config.master_name,
                tls=self.config.tls_enabled,
            )
            sentinel_kwargs = {
                "socket_timeout": self.config.socket_timeout,
                "socket_connect_timeout": self.config.socket_timeout,
            }
            if self.config.tls_enabled:
                sentinel_kwargs["ssl"] = True
            self._sentinel = Sentinel(
                self.config.sentinel_hosts,
                sentinel_kwargs=sentinel_kwargs,
            )
            return self._sentinel.master_for(self.config.master_name, **self._connection_kwargs())

        logger.info(
            "Initializing Redis with direct connection",
            host=self.config.host,
            port=self.config.port,
            tls=self.config.tls_enabled,
        )
        return Redis(host=self.config.host, port=self.config.port, **self._connection_kwargs())

    def _set_state(self, state: ConnectionState, reason: Optional[str] = None) -> None:
        if state is self._state:
            return
        previous = self._state
        self._state = state
        if state is ConnectionState.DEGRADED:
            logger.warning("Redis connection degraded", previous=previous.value, reason=reason)
        else:
            logger.info("Redis connection state changed", previous=previous.value, state=state.value)

    def _mark_ready(self) -> None:
        self._transport_attempts = 0
        self._discovery_attempts = 0
        self._set_state(ConnectionState.READY)

    def _mark_degraded(self, reason: str) -> None:
        self._set_state(ConnectionState.DEGRADED, reason)

    async def _handshake(self) -> Optional[float]:
        """
        Try to reach the store once.

        Returns None when the client is ready, otherwise the delay in seconds
        before the next attempt. Sentinel discovery and the data connection
        keep separate attempt counters.
        """
        try:
            if self._client is None:
                self._client = self._build_client()
        except Exception as e:
            self._transport_attempts += 1
            self._mark_degraded(f"client setup failed: {e}")
            return self._transport_backoff.compute(self._transport_attempts)

        if self._sentinel is not None:
            try:
                await self._sentinel.discover_master(self.config.master_name)
            except Exception as e:
                self._discovery_attempts += 1
                delay = self._discovery_backoff.compute(self._discovery_attempts)
                logger.debug(
                    "Sentinel retry scheduled",
                    attempt=self._discovery_attempts,
                    delay_ms=int(delay * 1000),
                )
                self._mark_degraded(f"sentinel discovery failed: {e}")
                return delay
            self._discovery_attempts = 0

        try:
            await self._client.ping()
        except Exception as e:
            self._transport_attempts += 1
            delay = self._transport_backoff.compute(self._transport_attempts)
            logger.debug(
                "Redis retry scheduled",
                attempt=self._transport_attempts,
                delay_ms=int(delay * 1000),
            )
            self._mark_degraded(f"handshake failed: {e}")
            return delay

        self._mark_ready()
        return None

    async def _reconnect_loop(self, delay: float) -> None:
        while not self._closed:
            await asyncio.sleep(delay)
            if self._closed:
                return
            logger.info("Redis reconnecting")
            self._set_state(ConnectionState.CONNECTING)
            next_delay = await self._handshake()
            if next_delay is None:
                return
            delay = next_delay

    def _schedule_reconnect(self, delay: float) -> None:
        if self._closed:
            return
        if self._reconnect_task is not None and not self._reconnect_task.done():
            return
        self._reconnect_task = asyncio.get_running_loop().create_task(self._reconnect_loop(delay))

    def _on_transport_error(self, operation: str, error: Exception) -> None:
        logger.warning("Redis command failed", operation=operation, error=str(error))
        self._mark_degraded(f"{operation} failed: {error}")
        self._transport_attempts += 1
        self._schedule_reconnect(self._transport_backoff.compute(self._transport_attempts))

    async def connect(self) -> None:
        """Perform the initial handshake; reconnects in the background on failure."""
        self._closed = False
        self._set_state(ConnectionState.CONNECTING)
        delay = await self._handshake()
        if delay is not None:
            self._schedule_reconnect(delay)

    async def close(self) -> None:
        """Stop reconnecting and release the connection pool."""
        self._closed = True
        if self._reconnect_task is not None:
            self._reconnect_task.cancel()
            try:
                await self._reconnect_task
            except asyncio.CancelledError:
                pass
            self._reconnect_task = None
        if self._client is not None:
            try:
                await self._client.aclose()
            except Exception as e:
                logger.warning("Redis close error", error=str(e))
        self._mark_degraded("connection closed")

    def _is_ready(self) -> bool:
        return self._state is ConnectionState.READY and self._client is not None

    async def get(self, key: str) -> Optional[Any]:
        """Return the decoded value for key, or None on miss or any failure."""
        if not self._is_ready():
            logger.debug("Redis not ready, skipping cache get", key=key)
            return None

        try:
            raw = await self._client.get(key)
        except Exception as e:
            self._on_transport_error("get", e)
            return None

        if raw is None:
            logger.debug("Cache miss", key=key)
            return None

        try:
            value = json.loads(raw)
        except (TypeError, ValueError) as e:
            logger.warning("Discarding undecodable cache entry", key=key, error=str(e))
            return None

        logger.debug("Cache hit", key=key)
        return value

    async def set(self, key: str, value: Any, ttl_seconds: int) -> None:
        """Store value as JSON with a TTL; silently skipped when unavailable."""
        if not self._is_ready():
            logger.debug("Redis not ready, skipping cache set", key=key)
            return

        try:
            payload = json.dumps(value, default=str)
        except (TypeError, ValueError) as e:
            logger.warning("Value is not serializable, skipping cache set", key=key, error=str(e))
            return

        try:
            await self._client.setex(key, ttl_seconds, payload)
        except Exception as e:
            self._on_transport_error("set", e)
            return

        logger.debug("Cached value", key=key, ttl=ttl_seconds)

    async def delete(self, key: str) -> None:
        """Delete key; silently skipped when unavailable."""
        if not self._is_ready():
            logger.debug("Redis not ready, skipping cache delete", key=key)
            return

        try:
            await self._client.delete(key)
        except Exception as e:
            self._on_transport_error("delete", e)
            return

        logger.debug("Deleted cache key", key=key)

    async def is_healthy(self) -> bool:
        """True when the client is ready and the store answers PING."""
        if not self._is_ready():
            return False

        try:
            return bool(await self._client.ping())
        except Exception as e:
            self._on_transport_error("ping", e)
            return False
