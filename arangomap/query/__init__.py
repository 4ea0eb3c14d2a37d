"""
Compiled filters and updates.

Casting lives in :mod:`arangomap.query.cast` and the query builder in
:mod:`arangomap.query.builder`; they are imported from there so that the
storage layer can depend on this package without pulling in the schema layer.
"""
from .operations import (
    CompiledFilter,
    CompiledUpdate,
    FilterCondition,
    QueryOperator,
    UpdateOperation,
    UpdateOperator,
    UpdateResult,
)

__all__ = [
    "CompiledFilter",
    "CompiledUpdate",
    "FilterCondition",
    "QueryOperator",
    "UpdateOperation",
    "UpdateOperator",
    "UpdateResult",
]
