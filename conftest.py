import pytest
from django.core.cache import cache


@pytest.fixture(autouse=True)
def _reset_throttle_history():
    # throttle counters live in the local-memory cache and outlive each test
    cache.clear()
    yield
    cache.clear()
