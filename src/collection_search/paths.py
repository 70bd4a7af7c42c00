"""Dot-notation path helpers for nested records and query objects.

Records are plain mappings, possibly nested. A field path such as
``"name.firstName"`` addresses a value inside them. The same walk is used to
discover which paths are worth indexing and to flatten nested query objects
into ``path -> predicate`` pairs.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from collection_search.operators import is_operator_object


def _is_plain_mapping(value: Any) -> bool:
    # lists, dates, compiled patterns and arbitrary objects are terminal values
    return isinstance(value, Mapping)


def get_nested_value(obj: Any, path: str) -> Any:
    """Resolve ``path`` against ``obj``.

    Returns None when the path is empty, has an empty segment, or when any
    intermediate value is missing or not a mapping. Never raises.
    """
    if not path:
        return None
    if "." not in path:
        return obj.get(path) if isinstance(obj, Mapping) else None

    current = obj
    for segment in path.split("."):
        if not segment or not isinstance(current, Mapping):
            return None
        current = current.get(segment)
    return current


def collect_paths(obj: Any, prefix: str = "") -> list[str]:
    """Return every leaf dot-path of a plain mapping.

    Nested mappings contribute their descendant leaves and their own path, so a
    query can target either the whole sub-object or any leaf inside it.
    """
    paths: list[str] = []
    if not _is_plain_mapping(obj):
        return paths

    for key, value in obj.items():
        full_path = f"{prefix}.{key}" if prefix else str(key)
        if _is_plain_mapping(value):
            paths.extend(collect_paths(value, full_path))
        paths.append(full_path)

    # dict.fromkeys keeps first-seen order
    return list(dict.fromkeys(paths))


def flatten_query(query: Mapping[str, Any], prefix: str = "") -> dict[str, Any]:
    """Flatten nested query mappings into ``{dot_path: predicate}``.

    Operator objects (``{"$gte": 10}``) are leaves and are never descended into.

    Example:
        >>> flatten_query({"name": {"firstName": "Jesse"}, "age": {"$gte": 21}})
        {'name.firstName': 'Jesse', 'age': {'$gte': 21}}
    """
    flat: dict[str, Any] = {}
    for key, value in query.items():
        full_key = f"{prefix}.{key}" if prefix else str(key)
        if _is_plain_mapping(value) and not is_operator_object(value):
            flat.update(flatten_query(value, full_key))
        else:
            flat[full_key] = value
    return flat
