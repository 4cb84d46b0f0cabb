"""
Caching helpers for expensive dashboard queries.
Backed by Django's cache framework (django-redis when REDIS_URL is set).
"""
from django.core.cache import cache
import logging

logger = logging.getLogger(__name__)

# Cache TTLs (in seconds)
DASHBOARD_KPI_CACHE_TTL = 300  # 5 minutes

DASHBOARD_KPI_CACHE_KEY = 'dashboard_kpis'


def get_cached_dashboard_kpis():
    """Cached dashboard KPIs or None"""
    data = cache.get(DASHBOARD_KPI_CACHE_KEY)
    logger.debug(f"Dashboard KPIs cache {'HIT' if data is not None else 'MISS'}")
    return data


def cache_dashboard_kpis(data, ttl=DASHBOARD_KPI_CACHE_TTL):
    cache.set(DASHBOARD_KPI_CACHE_KEY, data, ttl)
    logger.debug(f"Cached dashboard KPIs for {ttl}s")


def invalidate_dashboard_cache():
    """Drop the cached dashboard KPIs; never raises"""
    try:
        cache.delete(DASHBOARD_KPI_CACHE_KEY)
        logger.info("Invalidated dashboard cache")
    except Exception as e:
        logger.warning(f"Error invalidating dashboard cache: {e}")
