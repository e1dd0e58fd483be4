"""Redis client factory for the shared incident cache."""
import os
import logging
from typing import List, Optional, Sequence

import redis

logger = logging.getLogger(__name__)

DEFAULT_REDIS_PORT = 6379
FALLBACK_CACHE_SERVERS = ["redis:6379"]


def default_cache_servers() -> List[str]:
    """Process-wide default endpoints, from INCIDENT_CACHE_SERVERS if set."""
    raw = os.getenv("INCIDENT_CACHE_SERVERS", "")
    servers = [s.strip() for s in raw.split(",") if s.strip()]
    return servers or list(FALLBACK_CACHE_SERVERS)


def _client_for(endpoint: str, socket_timeout: float) -> redis.Redis:
    if "://" in endpoint:
        return redis.from_url(
            endpoint,
            decode_responses=True,
            socket_connect_timeout=socket_timeout,
            socket_timeout=socket_timeout,
        )

    host, _, port = endpoint.rpartition(":")
    if not host:
        host, port = endpoint, ""
    return redis.Redis(
        host=host,
        port=int(port) if port else DEFAULT_REDIS_PORT,
        decode_responses=True,
        socket_connect_timeout=socket_timeout,
        socket_timeout=socket_timeout,
    )


def get_redis_client(
    servers: Sequence[str],
    socket_timeout: float = 5,
) -> Optional[redis.Redis]:
    """Return a client for the first endpoint that answers PING.

    Endpoints are ``host:port`` pairs or ``redis://`` URLs. Returns None
    when none of them is reachable.
    """
    for endpoint in servers:
        try:
            client = _client_for(endpoint, socket_timeout)
            client.ping()
            logger.info("Redis connected successfully: %s", endpoint)
            return client
        except (redis.exceptions.RedisError, ValueError) as e:
            logger.warning("Redis unavailable at %s: %s", endpoint, e)

    logger.error("Redis unavailable at all endpoints: %s", ", ".join(servers))
    return None
