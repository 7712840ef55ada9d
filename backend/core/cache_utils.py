"""
Caching utilities for expensive stock queries
Uses the default cache (Redis via django-redis when configured)
"""
from django.conf import settings
from django.core.cache import cache
from django.db import transaction
import hashlib
import logging

logger = logging.getLogger(__name__)

# Cache TTLs (in seconds)
STOCK_LEVELS_CACHE_TTL = getattr(settings, 'STOCK_CACHE_TIMEOUT', 300)

STOCK_CACHE_VERSION_KEY = 'stock_levels:version'


def make_cache_key(prefix, *args, **kwargs):
    """Generate a unique cache key from arguments"""
    # Convert args and kwargs to a stable string representation
    key_data = f"{prefix}:{args}:{sorted(kwargs.items())}"
    # Hash it to keep key length reasonable
    key_hash = hashlib.md5(key_data.encode()).hexdigest()
    return f"{prefix}:{key_hash}"


def _stock_cache_version():
    version = cache.get(STOCK_CACHE_VERSION_KEY)
    if version is None:
        version = 1
        cache.add(STOCK_CACHE_VERSION_KEY, version, None)
    return version


def get_cached_stock_levels(**filters):
    """
    Get cached stock levels for a set of filters
    Returns tuple: (cached_data, cache_key)
    """
    cache_key = make_cache_key("stock_levels", _stock_cache_version(), **filters)
    cached_data = cache.get(cache_key)
    if cached_data is not None:
        logger.debug(f"Cache HIT for stock_levels: {cache_key}")
    return cached_data, cache_key


def cache_stock_levels(cache_key, data, ttl=STOCK_LEVELS_CACHE_TTL):
    """Cache stock levels data"""
    cache.set(cache_key, data, ttl)
    logger.debug(f"Cached stock levels: {cache_key}")


def _bump_stock_cache_version():
    try:
        cache.incr(STOCK_CACHE_VERSION_KEY)
    except ValueError:
        cache.set(STOCK_CACHE_VERSION_KEY, 2, None)


def invalidate_stock_cache():
    """
    Invalidate all stock-related cache entries.

    Bumping the version orphans every key built from the old one. The bump is
    repeated after the surrounding transaction commits so readers that cached
    pre-commit data in between are orphaned too.
    """
    _bump_stock_cache_version()
    transaction.on_commit(_bump_stock_cache_version)
    logger.debug("Invalidated stock cache")
