"""Unit tests for LazySearch."""

from collection_search import lazy_search
from collection_search.cache import get_default_cache
from collection_search.engine import LazySearch


class TestLazySearch:
    def test_search_across_keys(self, engine, people):
        handle = engine.lazy_search(people, ["name.firstName", "state"])
        assert isinstance(handle, LazySearch)
        assert handle.loading is False
        assert handle.search("ess") == [people[0]]
        assert handle.search("on") == [people[1], people[2]]

    def test_keys_default_to_every_indexed_path(self, engine, people):
        handle = engine.lazy_search(people)
        assert handle.search("smith") == [people[2]]

    def test_empty_query_returns_everything(self, engine, people):
        assert engine.lazy_search(people).search("") == people

    def test_primitive_dataset(self, engine):
        handle = engine.lazy_search(["Apple", "banana", "pineapple"])
        assert handle.search("APPLE") == ["Apple", "pineapple"]

    def test_empty_data(self, engine):
        assert engine.lazy_search([]).search("x") == []
        assert engine.lazy_search(None).search("x") == []

    def test_index_is_built_once(self, engine, people):
        handle = engine.lazy_search(people, ["state"])
        people[1]["state"] = "Paris"
        assert handle.search("paris") == []
        assert handle.search("london") == [people[1]]

    def test_reset_rebuilds_on_next_search(self, engine, people):
        handle = engine.lazy_search(people, ["state"])
        people[1]["state"] = "Paris"
        handle.reset()
        assert handle.search("paris") == [people[1]]

    def test_model_key_shares_the_cache(self, engine, people):
        handle = engine.lazy_search(people, ["state"], model_key="People")
        assert "People" in engine.cache
        handle.reset()
        assert "People" not in engine.cache

    def test_unknown_key_is_scanned(self, engine, people):
        handle = engine.lazy_search(people, ["nickname"])
        people[0]["nickname"] = "Jess"
        assert handle.search("jess") == [people[0]]

    def test_module_level_helper(self, people):
        handle = lazy_search(people, ["state"], "People")
        assert handle.search("bos") == [people[2]]
        assert "People" in get_default_cache()
