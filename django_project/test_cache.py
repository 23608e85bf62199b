"""
Tests for the cache region layer.

Verifies:
- Keys embed region and per-user generations
- cached() computes on a miss and serves hits without recomputing
- invalidate() retires keys only after commit, scoped per user when asked
- Cache backend failures during invalidation are logged, not raised
"""

from unittest.mock import Mock, patch

from django.core.cache import cache
from django.test import TestCase

from .cache import (
    CATALOGUE_REGIONS,
    PER_USER_REGIONS,
    CacheRegion,
    build_key,
    cached,
    invalidate,
)


class CacheRegionTests(TestCase):
    def test_per_user_regions(self):
        self.assertTrue(CacheRegion.APPROACHES.per_user)
        self.assertTrue(CacheRegion.USER_ME_STATS.per_user)
        self.assertTrue(CacheRegion.USER_PROGRESS_MAP.per_user)
        self.assertFalse(CacheRegion.GLOBAL_CATEGORIES.per_user)

    def test_catalogue_regions_are_shared(self):
        self.assertFalse(CATALOGUE_REGIONS & PER_USER_REGIONS)


class BuildKeyTests(TestCase):
    def setUp(self):
        cache.clear()

    @patch("django_project.cache._fresh_generation", return_value=100)
    def test_shared_region_key(self, _):
        key = build_key(CacheRegion.QUESTIONS_METADATA, "all")
        self.assertEqual(key, "region:questions-metadata:g100:all")

    @patch("django_project.cache._fresh_generation", return_value=100)
    def test_per_user_region_key(self, _):
        key = build_key(CacheRegion.APPROACHES, "question", 7, user_id=3)
        self.assertEqual(key, "region:approaches:g100:u3:g100:question:7")

    def test_per_user_region_requires_user_id(self):
        with self.assertRaises(ValueError):
            build_key(CacheRegion.USER_ME_STATS, "page0")


class CachedTests(TestCase):
    def setUp(self):
        cache.clear()

    def test_miss_computes_and_stores(self):
        compute = Mock(return_value={"total": 3})

        result = cached(CacheRegion.ADMIN_STATS, ["counts"], compute)

        self.assertEqual(result, {"total": 3})
        compute.assert_called_once()

    def test_hit_does_not_recompute(self):
        compute = Mock(return_value={"total": 3})
        cached(CacheRegion.ADMIN_STATS, ["counts"], compute)

        result = cached(CacheRegion.ADMIN_STATS, ["counts"], compute)

        self.assertEqual(result, {"total": 3})
        compute.assert_called_once()

    def test_empty_list_is_cached(self):
        compute = Mock(return_value=[])
        cached(CacheRegion.APPROACHES, ["all"], compute, user_id=1)
        cached(CacheRegion.APPROACHES, ["all"], compute, user_id=1)
        compute.assert_called_once()


class InvalidateTests(TestCase):
    def setUp(self):
        cache.clear()

    def test_invalidation_waits_for_commit(self):
        compute = Mock(side_effect=[1, 2])
        cached(CacheRegion.ADMIN_STATS, ["counts"], compute)

        with self.captureOnCommitCallbacks(execute=False) as callbacks:
            invalidate({CacheRegion.ADMIN_STATS})
            # Not committed yet: the old value is still served
            self.assertEqual(cached(CacheRegion.ADMIN_STATS, ["counts"], compute), 1)

        self.assertEqual(len(callbacks), 1)
        callbacks[0]()
        self.assertEqual(cached(CacheRegion.ADMIN_STATS, ["counts"], compute), 2)

    def test_user_scoped_invalidation_leaves_other_users(self):
        cached(CacheRegion.USER_ME_STATS, ["page0"], lambda: "alice-old", user_id=1)
        cached(CacheRegion.USER_ME_STATS, ["page0"], lambda: "bob-old", user_id=2)

        with self.captureOnCommitCallbacks(execute=True):
            invalidate({CacheRegion.USER_ME_STATS}, user_id=1)

        self.assertEqual(
            cached(CacheRegion.USER_ME_STATS, ["page0"], lambda: "alice-new", user_id=1),
            "alice-new",
        )
        self.assertEqual(
            cached(CacheRegion.USER_ME_STATS, ["page0"], lambda: "bob-new", user_id=2),
            "bob-old",
        )

    def test_unscoped_invalidation_reaches_every_user(self):
        cached(CacheRegion.USER_PROGRESS_MAP, ["all"], lambda: "old", user_id=1)
        cached(CacheRegion.USER_PROGRESS_MAP, ["all"], lambda: "old", user_id=2)

        with self.captureOnCommitCallbacks(execute=True):
            invalidate({CacheRegion.USER_PROGRESS_MAP})

        for user_id in (1, 2):
            self.assertEqual(
                cached(CacheRegion.USER_PROGRESS_MAP, ["all"], lambda: "new", user_id=user_id),
                "new",
            )

    def test_other_regions_untouched(self):
        cached(CacheRegion.GLOBAL_CATEGORIES, ["all"], lambda: "kept")

        with self.captureOnCommitCallbacks(execute=True):
            invalidate({CacheRegion.QUESTIONS_METADATA})

        self.assertEqual(cached(CacheRegion.GLOBAL_CATEGORIES, ["all"], lambda: "new"), "kept")

    def test_repeated_invalidation_keeps_changing_keys(self):
        first = build_key(CacheRegion.ADMIN_STATS, "x")
        with self.captureOnCommitCallbacks(execute=True):
            invalidate({CacheRegion.ADMIN_STATS})
        second = build_key(CacheRegion.ADMIN_STATS, "x")
        with self.captureOnCommitCallbacks(execute=True):
            invalidate({CacheRegion.ADMIN_STATS})
        third = build_key(CacheRegion.ADMIN_STATS, "x")

        self.assertEqual(len({first, second, third}), 3)

    @patch("django_project.cache.cache")
    def test_backend_errors_are_logged_not_raised(self, mock_cache):
        mock_cache.incr.side_effect = ConnectionError("Redis unavailable")

        with self.assertLogs("django_project.cache", level="ERROR"):
            with self.captureOnCommitCallbacks(execute=True):
                invalidate({CacheRegion.ADMIN_STATS})


class EvictedGenerationTests(TestCase):
    def setUp(self):
        cache.clear()

    def test_recreated_counter_does_not_revive_stale_keys(self):
        seeds = iter([1000, 5000])
        with patch("django_project.cache._fresh_generation", side_effect=lambda: next(seeds)):
            original = build_key(CacheRegion.ADMIN_STATS, "x")
            with self.captureOnCommitCallbacks(execute=True):
                invalidate({CacheRegion.ADMIN_STATS})
            bumped = build_key(CacheRegion.ADMIN_STATS, "x")

            cache.delete("region:admin-stats:gen")
            recreated = build_key(CacheRegion.ADMIN_STATS, "x")
            with self.captureOnCommitCallbacks(execute=True):
                invalidate({CacheRegion.ADMIN_STATS})
            after_bump = build_key(CacheRegion.ADMIN_STATS, "x")

        self.assertEqual(original, "region:admin-stats:g1000:x")
        self.assertEqual(bumped, "region:admin-stats:g1001:x")
        self.assertEqual(recreated, "region:admin-stats:g5000:x")
        self.assertEqual(after_bump, "region:admin-stats:g5001:x")

    def test_bump_of_missing_counter_uses_fresh_generation(self):
        with patch("django_project.cache._fresh_generation", return_value=7000):
            with self.captureOnCommitCallbacks(execute=True):
                invalidate({CacheRegion.ADMIN_STATS})

        self.assertEqual(cache.get("region:admin-stats:gen"), 7000)
