"""
Rate limiter configuration module.

Every limit is keyed by client address, never by the bearer secret.
"""

import logging
from typing import Optional

from slowapi import Limiter
from slowapi.util import get_remote_address

from psn_trophies.core.config import settings

logger = logging.getLogger(__name__)


def get_limiter_storage() -> Optional[str]:
    """
    Get the storage backend for rate limiting.

    Returns the Redis URL if one is configured with a supported scheme,
    otherwise None (in-memory storage).
    """
    if not settings.redis_url:
        return None
    if not settings.redis_url.startswith(("redis://", "rediss://")):
        logger.warning(
            "Invalid REDIS_URL scheme; using in-memory storage for rate limiting instead"
        )
        return None
    logger.info("Using Redis backend for rate limiting")
    return settings.redis_url


def create_limiter() -> Limiter:
    """
    Create and configure the SlowAPI rate limiter.

    In-memory storage suits a single process; Redis is required when several
    instances sit behind one load balancer.

    Returns:
        Configured Limiter instance
    """
    storage_uri = get_limiter_storage()

    if storage_uri:
        return Limiter(
            key_func=get_remote_address,
            storage_uri=storage_uri,
            default_limits=[],  # No default limits - apply explicitly per endpoint
        )

    logger.info("Using in-memory storage for rate limiting")
    return Limiter(
        key_func=get_remote_address,
        default_limits=[],
    )


# Single limiter instance used throughout the app
limiter = create_limiter()
