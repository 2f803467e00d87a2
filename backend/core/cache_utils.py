"""
Caching helpers for the dashboard and inventory summaries
Uses Redis when REDIS_URL is configured, local memory otherwise
"""
from django.conf import settings
from django.core.cache import cache
import logging

logger = logging.getLogger(__name__)

DASHBOARD_CACHE_KEY = 'dashboard:summary'
PRODUCT_SUMMARY_CACHE_KEY = 'products:summary'

# Cache TTLs (in seconds)
PRODUCT_SUMMARY_CACHE_TTL = 120  # 2 minutes


def get_dashboard_ttl():
    return getattr(settings, 'DASHBOARD_CACHE_TTL', 300)


def get_cached(cache_key):
    """Return (data, hit) for a cache key"""
    data = cache.get(cache_key)
    if data is not None:
        logger.debug(f"Cache HIT: {cache_key}")
        return data, True
    logger.debug(f"Cache MISS: {cache_key}")
    return None, False


def set_cached(cache_key, data, ttl):
    cache.set(cache_key, data, ttl)
    logger.debug(f"Cached {cache_key} for {ttl}s")


def invalidate_dashboard_cache():
    """Invalidate dashboard stats and analytics"""
    cache.delete(DASHBOARD_CACHE_KEY)
    logger.info("Invalidated dashboard cache")


def invalidate_products_cache():
    """Invalidate inventory summary"""
    cache.delete(PRODUCT_SUMMARY_CACHE_KEY)
    logger.info("Invalidated products cache")
