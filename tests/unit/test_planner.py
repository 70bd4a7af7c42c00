"""Unit tests for index-first query evaluation."""

from collection_search.index import build_index
from collection_search.planner import (
    NOT_INDEXED,
    evaluate_all_of,
    evaluate_any_of,
    evaluate_primitive_query,
    evaluate_query_object,
    evaluate_string_query,
    evaluate_text_query,
    resolve_field_via_index,
    rows_to_items,
    scan_field,
)


class TestResolveFieldViaIndex:
    def test_string_is_substring_lookup(self, people):
        field_index = build_index(people).fields["state"]
        assert resolve_field_via_index(field_index, "ON") == {1, 2}

    def test_number_is_exact_lookup(self, people):
        field_index = build_index(people).fields["age"]
        assert resolve_field_via_index(field_index, 25) == {1}
        assert resolve_field_via_index(field_index, 25.0) == {1}
        assert resolve_field_via_index(field_index, "25") == set()

    def test_none_needs_a_scan(self, people):
        field_index = build_index(people).fields["email"]
        assert resolve_field_via_index(field_index, None) is NOT_INDEXED
        assert resolve_field_via_index(field_index, {"$eq": None}) is NOT_INDEXED

    def test_range_on_numeric_field(self, people):
        field_index = build_index(people).fields["age"]
        assert resolve_field_via_index(field_index, {"$gte": 30}) == {0, 2}
        assert resolve_field_via_index(field_index, {"$gt": 25, "$lt": 41}) == {0}

    def test_range_with_eq(self, people):
        field_index = build_index(people).fields["age"]
        assert resolve_field_via_index(field_index, {"$gte": 20, "$eq": 34}) == {0}
        assert resolve_field_via_index(field_index, {"$gte": 40, "$eq": 34}) == set()

    def test_range_on_text_field_is_not_indexed(self, people):
        field_index = build_index(people).fields["state"]
        assert resolve_field_via_index(field_index, {"$gte": 1}) is NOT_INDEXED

    def test_non_numeric_bound_is_not_indexed(self, people):
        field_index = build_index(people).fields["age"]
        assert resolve_field_via_index(field_index, {"$gte": "30"}) is NOT_INDEXED

    def test_eq_and_in(self, people):
        field_index = build_index(people).fields["state"]
        assert resolve_field_via_index(field_index, {"$eq": "London"}) == {1}
        assert resolve_field_via_index(field_index, {"$eq": "london"}) == set()
        assert resolve_field_via_index(field_index, {"$in": "sTo"}) == {2}

    def test_mixed_operators_are_not_indexed(self, people):
        field_index = build_index(people).fields["age"]
        assert resolve_field_via_index(field_index, {"$gte": 20, "$ne": 34}) is NOT_INDEXED
        assert resolve_field_via_index(field_index, {"$exists": True}) is NOT_INDEXED
        assert resolve_field_via_index(field_index, {"$regex": "^3"}) is NOT_INDEXED


class TestScanField:
    def test_scans_only_candidates(self, people):
        assert scan_field(people, "age", {"$gte": 30}, [1, 2]) == {2}

    def test_direct_none_matches_missing_and_null(self, people):
        assert scan_field(people, "email", None, range(3)) == {0, 1, 2}

    def test_skips_non_mapping_rows(self):
        data = [{"a": "x"}, "x", {"a": "x"}]
        assert scan_field(data, "a", "x", range(3)) == {0, 2}


class TestEvaluateQueryObject:
    def test_and_across_fields(self, products):
        index = build_index(products)
        assert evaluate_query_object(products, {"category": "clothes", "price": {"$gte": 200}}, index) == {1}

    def test_empty_query_matches_everything(self, products):
        assert evaluate_query_object(products, {}, build_index(products)) == set(range(5))

    def test_unindexed_path_falls_back_to_scan(self, products):
        index = build_index(products, sample_size=1)
        products[4]["discontinued"] = True
        assert evaluate_query_object(products, {"discontinued": True}, index) == {4}

    def test_range_plus_other_operator_matches_scan(self, products):
        index = build_index(products)
        rows = evaluate_query_object(products, {"price": {"$gte": 100, "$ne": 250}}, index)
        assert rows == {0, 2}

    def test_range_excludes_non_numeric(self, products):
        index = build_index(products)
        assert evaluate_query_object(products, {"price": {"$gt": 0}}, index) == {0, 1, 2, 4}

    def test_nested_query(self, people):
        index = build_index(people)
        assert evaluate_query_object(people, {"name": {"firstName": "ess"}}, index) == {0}
        assert evaluate_query_object(people, {"name.firstName": "ess"}, index) == {0}

    def test_regex_and_exists(self, people):
        index = build_index(people)
        assert evaluate_query_object(people, {"state": {"$regex": "^(lon|bos)"}}, index) == {1, 2}
        assert evaluate_query_object(people, {"tags": {"$exists": False}}, index) == {2}

    def test_list_field_substring(self, people):
        index = build_index(people)
        assert evaluate_query_object(people, {"tags": "ops"}, index) == {0}


class TestCombinators:
    def test_any_of_is_union(self, products):
        index = build_index(products)
        rows = evaluate_any_of(products, [{"category": "hats"}, {"stock": 0}], index)
        assert rows == {1, 4}

    def test_any_of_empty_matches_nothing(self, products):
        assert evaluate_any_of(products, [], build_index(products)) == set()

    def test_all_of_is_intersection(self, products):
        index = build_index(products)
        rows = evaluate_all_of(products, [{"category": "shoes"}, {"stock": {"$gt": 5}}], index)
        assert rows == {2}

    def test_all_of_seeded_by_any_of(self, products):
        index = build_index(products)
        union = evaluate_any_of(products, [{"category": "clothes"}, {"category": "shoes"}], index)
        assert evaluate_all_of(products, [{"stock": {"$lte": 1}}], index, initial=union) == {1, 3}

    def test_all_of_without_anything_matches_everything(self, products):
        assert evaluate_all_of(products, [], build_index(products)) == set(range(5))


class TestTextQueries:
    def test_primitive_query(self):
        data = ["apple", "banana", "Cherry", 42]
        index = build_index(data)
        assert evaluate_primitive_query(data, "AN", index) == {1}
        assert evaluate_primitive_query(data, "4", index) == {3}
        assert evaluate_string_query(data, "err", index) == {2}

    def test_text_query_across_all_fields(self, people):
        index = build_index(people)
        assert evaluate_string_query(people, "o", index) == {0, 1, 2}
        assert evaluate_text_query(people, "doe", index) == {1}

    def test_text_query_restricted_to_keys(self, people):
        index = build_index(people)
        assert evaluate_text_query(people, "on", index, ["state"]) == {1, 2}

    def test_text_query_scans_unknown_keys(self, people):
        index = build_index(people)
        people[2]["nickname"] = "Johnny"
        assert evaluate_text_query(people, "nny", index, ["nickname"]) == {2}

    def test_rows_to_items_keeps_order(self):
        assert rows_to_items(["a", "b", "c", "d"], {3, 0, 2}) == ["a", "c", "d"]
