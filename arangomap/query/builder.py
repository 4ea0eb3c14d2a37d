"""
Chainable, awaitable queries.

A query collects a filter and options; the filter is cast against the
model's schemas only when the query runs, so a value that cannot be cast
raises from ``exec()`` (or ``await``) and never reaches storage.
"""
from typing import TYPE_CHECKING, Any, Dict, Generator, List, Optional, Type

from arangomap.typings import FilterSpec

if TYPE_CHECKING:
    from arangomap.model import Model


class Query:
    """
    Query for documents of one model.

    Example:
        docs = await Model.find({"v.n": 1}).limit(10)
        doc = await Model.find().where("v", {"n": 1}).first()
    """

    def __init__(self, model: Type["Model"], filter_spec: Optional[FilterSpec] = None) -> None:
        self.model = model
        self.filter: Dict[str, Any] = dict(filter_spec or {})
        self._limit: Optional[int] = None

    def where(self, path: str, value: Any) -> "Query":
        """Add a condition on ``path``; combined with AND when the path is already filtered."""
        if path in self.filter:
            self.filter = {"$and": [self.filter, {path: value}]}
        else:
            self.filter[path] = value
        return self

    def limit(self, count: int) -> "Query":
        if count < 0:
            raise ValueError("limit must be non-negative")
        self._limit = count
        return self

    async def exec(self) -> List["Model"]:
        """Run the query and hydrate the results."""
        raws = await self.model._find_raw(self.filter, self._limit)
        return [self.model.hydrate(raw) for raw in raws]

    async def first(self) -> Optional["Model"]:
        raws = await self.model._find_raw(self.filter, 1)
        return self.model.hydrate(raws[0]) if raws else None

    def __await__(self) -> Generator[Any, None, List["Model"]]:
        return self.exec().__await__()

    def __repr__(self) -> str:
        return f"<Query {self.model.model_name} {self.filter!r} limit={self._limit}>"
