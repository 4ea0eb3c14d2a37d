"""
Compiled filters and updates.

The caster layer turns caller-supplied filter and update documents into
these structures; storage backends consume only these, never raw payloads.
Every value held here has already been cast to its declared type.
"""
from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class QueryOperator(str, Enum):
    """Operators for filter conditions."""
    EQUALS = "eq"
    NOT_EQUALS = "ne"
    GREATER_THAN = "gt"
    GREATER_EQUAL = "gte"
    LESS_THAN = "lt"
    LESS_EQUAL = "lte"
    IN = "in"
    NOT_IN = "nin"
    EXISTS = "exists"

    @classmethod
    def from_token(cls, token: str) -> "QueryOperator":
        """Map a ``$gt``-style token onto an operator."""
        return cls(token[1:] if token.startswith("$") else token)


class UpdateOperator(str, Enum):
    """Operators for update operations."""
    SET = "set"
    UNSET = "unset"
    SET_ON_INSERT = "setOnInsert"

    @classmethod
    def from_token(cls, token: str) -> "UpdateOperator":
        return cls(token[1:] if token.startswith("$") else token)


class FilterCondition(BaseModel):
    """Condition on a single dotted path."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    path: str = Field(
        ...,
        description="Dotted path the condition applies to"
    )
    operator: QueryOperator = Field(
        default=QueryOperator.EQUALS,
        description="Comparison operator"
    )
    value: Any = Field(
        default=None,
        description="Cast value to compare against"
    )
    array_paths: List[str] = Field(
        default_factory=list,
        description="Prefixes of `path` that hold arrays and fan out during matching"
    )

    @property
    def segments(self) -> List[str]:
        return self.path.split(".")


class CompiledFilter(BaseModel):
    """Conditions combined with AND or OR."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    conditions: List[Union[FilterCondition, "CompiledFilter"]] = Field(
        default_factory=list,
        description="Conditions or nested filters"
    )
    combine_operator: Literal["AND", "OR"] = Field(
        default="AND",
        description="How to combine conditions"
    )

    def is_empty(self) -> bool:
        return not self.conditions

    def equality_values(self) -> Dict[str, Any]:
        """Top-level AND equality conditions on non-array paths (used to seed upserts)."""
        if self.combine_operator != "AND":
            return {}
        values: Dict[str, Any] = {}
        for condition in self.conditions:
            if isinstance(condition, CompiledFilter):
                values.update(condition.equality_values())
            elif condition.operator is QueryOperator.EQUALS and not condition.array_paths:
                values[condition.path] = condition.value
        return values

    def with_condition(self, condition: FilterCondition) -> "CompiledFilter":
        """Return a copy AND-ed with one more condition."""
        if self.combine_operator == "AND":
            return CompiledFilter(conditions=[*self.conditions, condition])
        return CompiledFilter(conditions=[self, condition])


class UpdateOperation(BaseModel):
    """A single update applied to a dotted path."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    operator: UpdateOperator = Field(
        default=UpdateOperator.SET,
        description="Update operator"
    )
    path: str = Field(
        ...,
        description="Dotted path to update"
    )
    value: Any = Field(
        default=None,
        description="Cast value (ignored for unset)"
    )


class CompiledUpdate(BaseModel):
    """Ordered list of update operations."""

    operations: List[UpdateOperation] = Field(
        default_factory=list,
        description="Operations applied in order"
    )

    def is_empty(self) -> bool:
        return not self.operations

    def paths(self, include_on_insert: bool = True) -> List[str]:
        return [
            op.path for op in self.operations
            if include_on_insert or op.operator is not UpdateOperator.SET_ON_INSERT
        ]


class UpdateResult(BaseModel):
    """Outcome of an update operation."""

    matched_count: int = Field(
        default=0,
        description="Number of documents matched by the filter"
    )
    modified_count: int = Field(
        default=0,
        description="Number of documents changed"
    )
    upserted_key: Optional[str] = Field(
        default=None,
        description="Key of the inserted document when an upsert inserted"
    )


CompiledFilter.model_rebuild()
