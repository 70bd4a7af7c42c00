"""Request and result types for the public search API."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator


QueryObject = dict[str, Any]


def noop_reset() -> None:
    return None


class SearchOptions(BaseModel):
    """Structured form of a search call.

    - ``text``: substring search (primitive datasets, or every indexed field
      of an object dataset)
    - ``any_of``: query objects combined with OR
    - ``all_of``: query objects combined with AND, also applied on top of
      ``any_of`` when both are given
    - ``cache_key``: reuse the index built under this key

    With no query fields at all every row matches. An empty ``any_of`` matches
    nothing.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    text: str | None = None
    any_of: list[QueryObject] | None = None
    all_of: list[QueryObject] = Field(default_factory=list)
    cache_key: str | None = None
    sample_size: int | None = Field(default=None, ge=1)

    @model_validator(mode="after")
    def _check_text_is_exclusive(self) -> SearchOptions:
        if self.text is not None and (self.any_of is not None or self.all_of):
            raise ValueError("text queries cannot be combined with any_of/all_of")
        return self

    @property
    def has_query(self) -> bool:
        return self.text is not None or self.any_of is not None or bool(self.all_of)


@dataclass(frozen=True)
class SearchResult:
    """Matching items in original order, plus a handle to drop the cached index."""

    results: list[Any] = field(default_factory=list)
    reset: Callable[[], None] = noop_reset
    loading: bool = False

    def __iter__(self):
        return iter(self.results)

    def __len__(self) -> int:
        return len(self.results)
