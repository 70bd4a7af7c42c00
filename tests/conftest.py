"""Shared test fixtures and configuration."""

import pytest

from collection_search import IndexCache, SearchEngine, Settings, reset_search_index
from collection_search.config import get_settings


# Keep every test independent of the developer's shell and .env
TEST_ENV = {
    "COLLECTION_SEARCH_SAMPLE_SIZE": "100",
    "COLLECTION_SEARCH_SLOW_SEARCH_MS": "1000",
    "COLLECTION_SEARCH_LOG_LEVEL": "info",
    "COLLECTION_SEARCH_JSON_LOGS": "true",
}


@pytest.fixture(autouse=True)
def _test_env(monkeypatch):
    for key, value in TEST_ENV.items():
        monkeypatch.setenv(key, value)
    get_settings.cache_clear()
    reset_search_index()
    yield
    reset_search_index()
    get_settings.cache_clear()


@pytest.fixture
def engine() -> SearchEngine:
    """Engine with its own cache so tests never share indexes."""
    return SearchEngine(cache=IndexCache(), settings=Settings(slow_search_ms=1000))


@pytest.fixture
def people() -> list[dict]:
    return [
        {"name": {"firstName": "Jesse", "lastName": "Bowen"}, "state": "Seattle", "age": 34, "tags": ["admin", "Ops"]},
        {"name": {"firstName": "Jane", "lastName": "Doe"}, "state": "London", "age": 25, "tags": ["dev"]},
        {"name": {"firstName": "John", "lastName": "Smith"}, "state": "Boston", "age": 41, "email": None},
    ]


@pytest.fixture
def products() -> list[dict]:
    return [
        {"sku": "A1", "category": "clothes", "price": 150, "stock": 3},
        {"sku": "B2", "category": "clothes", "price": 250, "stock": 0},
        {"sku": "C3", "category": "shoes", "price": 200, "stock": 12},
        {"sku": "D4", "category": "shoes", "price": "n/a", "stock": 1},
        {"sku": "E5", "category": "hats", "price": 99.5},
    ]
