"""Named cache regions for read-optimized views.

Each cached read view belongs to a CacheRegion. Keys embed a per-region
generation counter (and, for per-user regions, a per-user counter), so a whole
region can be invalidated by bumping one integer instead of tracking every key
that was ever written.

Writers call invalidate() with the regions their change affects. Invalidation
is deferred until the surrounding transaction commits, so readers never
re-cache data that is about to be rolled back.
"""

import logging
import time
from enum import Enum

from django.core.cache import cache
from django.db import transaction

logger = logging.getLogger(__name__)

DEFAULT_TTL = 3600


class CacheRegion(str, Enum):
    """Every cached read view in the project."""

    APPROACHES = "approaches"
    USER_ME_STATS = "user-me-stats"
    USER_PROGRESS_MAP = "user-progress-map"
    GLOBAL_CATEGORIES = "global-categories"
    ADMIN_CATEGORIES = "admin-categories"
    QUESTIONS_METADATA = "questions-metadata"
    ADMIN_QUESTIONS_SUMMARY = "admin-questions-summary"
    ADMIN_STATS = "admin-stats"

    @property
    def per_user(self) -> bool:
        return self in PER_USER_REGIONS


PER_USER_REGIONS = frozenset(
    {
        CacheRegion.APPROACHES,
        CacheRegion.USER_ME_STATS,
        CacheRegion.USER_PROGRESS_MAP,
    }
)

# Regions touched by any change to the question catalogue
CATALOGUE_REGIONS = frozenset(
    {
        CacheRegion.GLOBAL_CATEGORIES,
        CacheRegion.ADMIN_CATEGORIES,
        CacheRegion.QUESTIONS_METADATA,
        CacheRegion.ADMIN_QUESTIONS_SUMMARY,
        CacheRegion.ADMIN_STATS,
    }
)


def _generation_key(region: CacheRegion, user_id=None) -> str:
    if user_id is None:
        return f"region:{region.value}:gen"
    return f"region:{region.value}:user:{user_id}:gen"


def _fresh_generation() -> int:
    # Counters can be evicted; a clock-based seed never repeats an earlier generation
    return time.time_ns()


def _generation(region: CacheRegion, user_id=None) -> int:
    key = _generation_key(region, user_id)
    value = cache.get(key)
    if value is None:
        seed = _fresh_generation()
        # add() keeps a concurrent writer's bump if it got there first
        cache.add(key, seed, None)
        value = cache.get(key, seed)
    return value


def build_key(region: CacheRegion, *parts, user_id=None) -> str:
    """Build the current cache key for a value in a region.

    Args:
        region: The region the value belongs to
        *parts: Extra key components (page number, filters, ...)
        user_id: Owner for per-user regions

    Returns:
        Cache key that changes whenever the region (or user scope) is invalidated
    """
    if region.per_user and user_id is None:
        raise ValueError(f"Region {region.value} requires a user_id")

    segments = [f"region:{region.value}", f"g{_generation(region)}"]
    if user_id is not None:
        segments.append(f"u{user_id}:g{_generation(region, user_id)}")
    segments.extend(str(part) for part in parts)
    return ":".join(segments)


def cached(region: CacheRegion, parts, compute_func, ttl=DEFAULT_TTL, user_id=None):
    """Return a cached value for the region, computing and storing it on a miss."""
    cache_key = build_key(region, *parts, user_id=user_id)
    value = cache.get(cache_key)
    if value is not None:
        logger.debug("Cache HIT", extra={"cache_key": cache_key})
        return value

    logger.debug("Cache MISS", extra={"cache_key": cache_key})
    value = compute_func()
    cache.set(cache_key, value, ttl)
    return value


def _bump(region: CacheRegion, user_id=None) -> None:
    key = _generation_key(region, user_id)
    try:
        cache.incr(key)
    except ValueError:
        cache.set(key, _fresh_generation(), None)


def invalidate(regions, user_id=None) -> None:
    """Invalidate cache regions once the current transaction commits.

    Per-user regions are invalidated only for user_id when it is given, and
    for every user otherwise. Shared regions are always invalidated in full.

    Args:
        regions: Iterable of CacheRegion members
        user_id: Optional owner to scope per-user regions to
    """
    regions = frozenset(regions)

    def clear_regions():
        for region in regions:
            try:
                if region.per_user and user_id is not None:
                    _bump(region, user_id)
                else:
                    _bump(region)
            except Exception as e:
                # Cache outages must not fail the write that triggered them
                logger.error(
                    f"Failed to invalidate cache region: {e}",
                    extra={
                        "region": region.value,
                        "user_id": user_id,
                        "error": str(e),
                    },
                    exc_info=True,
                )
        logger.info(
            "Invalidated cache regions",
            extra={
                "regions": sorted(region.value for region in regions),
                "user_id": user_id,
            },
        )

    transaction.on_commit(clear_regions)
