"""Unit tests for dot-path resolution and query flattening."""

from datetime import date
import re

from collection_search.paths import collect_paths, flatten_query, get_nested_value


class TestGetNestedValue:
    def test_top_level_key(self):
        assert get_nested_value({"a": 1}, "a") == 1

    def test_nested_key(self):
        assert get_nested_value({"name": {"first": "Jesse"}}, "name.first") == "Jesse"

    def test_missing_segment_returns_none(self):
        assert get_nested_value({"name": {"first": "Jesse"}}, "name.last") is None
        assert get_nested_value({"name": None}, "name.first") is None

    def test_non_mapping_intermediate_returns_none(self):
        assert get_nested_value({"name": "Jesse"}, "name.first") is None
        assert get_nested_value({"tags": ["a", "b"]}, "tags.0") is None

    def test_empty_and_malformed_paths_return_none(self):
        obj = {"a": {"b": 1}, "": 5}
        assert get_nested_value(obj, "") is None
        assert get_nested_value(obj, "a..b") is None
        assert get_nested_value(obj, ".a") is None
        assert get_nested_value(obj, "a.") is None

    def test_non_mapping_root(self):
        assert get_nested_value("text", "a") is None
        assert get_nested_value(None, "a.b") is None


class TestCollectPaths:
    def test_flat_object(self):
        assert collect_paths({"a": 1, "b": "x"}) == ["a", "b"]

    def test_nested_object_records_leaves_and_parent(self):
        paths = collect_paths({"name": {"first": "A", "last": "B"}, "age": 5})
        assert paths == ["name.first", "name.last", "name", "age"]

    def test_deep_nesting(self):
        paths = collect_paths({"a": {"b": {"c": 1}}})
        assert paths == ["a.b.c", "a.b", "a"]

    def test_empty_nested_object_records_parent_once(self):
        assert collect_paths({"meta": {}}) == ["meta"]

    def test_terminal_values_are_not_recursed(self):
        obj = {"tags": ["x", {"y": 1}], "born": date(2020, 1, 1), "pattern": re.compile("a")}
        assert collect_paths(obj) == ["tags", "born", "pattern"]

    def test_prefix(self):
        assert collect_paths({"a": 1}, "root") == ["root.a"]

    def test_non_mapping_yields_nothing(self):
        assert collect_paths(["a"]) == []
        assert collect_paths(None) == []


class TestFlattenQuery:
    def test_nested_plain_object_flattens(self):
        assert flatten_query({"name": {"firstName": "Jesse"}}) == {"name.firstName": "Jesse"}

    def test_operator_objects_are_leaves(self):
        query = {"price": {"$gte": 10}, "meta": {"score": {"$lt": 3}}}
        assert flatten_query(query) == {"price": {"$gte": 10}, "meta.score": {"$lt": 3}}

    def test_lists_and_patterns_are_leaves(self):
        pattern = re.compile("x")
        assert flatten_query({"tags": ["a"], "name": pattern}) == {"tags": ["a"], "name": pattern}

    def test_dotted_keys_pass_through(self):
        assert flatten_query({"name.firstName": "ess"}) == {"name.firstName": "ess"}

    def test_empty_nested_object_disappears(self):
        assert flatten_query({"meta": {}}) == {}
