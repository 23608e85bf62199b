"""
Pytest configuration for Django tests.

Settings come from DJANGO_SETTINGS_MODULE in pyproject.toml
(django_project.test_settings); this file only registers markers.
"""


def pytest_configure(config):
    config.addinivalue_line(
        "markers", "parallel_unsafe: test shares cache or throttle state"
    )
    config.addinivalue_line(
        "markers", "redis_dependent: test exercises the cache backend"
    )


def pytest_collection_modifyitems(config, items):
    """Mark tests for parallel execution compatibility."""
    # These tests share cache or throttle state across processes
    parallel_unsafe_tests = [
        "test_cache",
        "tests_throttles",
    ]

    for item in items:
        test_nodeid = item.nodeid
        if any(unsafe_pattern in test_nodeid for unsafe_pattern in parallel_unsafe_tests):
            item.add_marker("parallel_unsafe")

        if "cache" in test_nodeid:
            item.add_marker("redis_dependent")
