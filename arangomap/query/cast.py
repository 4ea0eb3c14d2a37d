"""
Casting of caller-supplied filters and updates.

Filters and updates are rewritten into dotted-path operations whose values
are cast through the declared field specs. A plain object given at a map
path is flattened, so ``{"v": {"n": 1}}`` and ``{"v.n": 1}`` compile to the
same condition or update. Any cast failure raises before anything reaches
storage.
"""
import logging
from collections.abc import Mapping
from typing import Any, Iterator, List, Sequence

from arangomap.document.base import cast_field_value, to_plain
from arangomap.errors import CastError
from arangomap.query.operations import (
    CompiledFilter,
    CompiledUpdate,
    FilterCondition,
    QueryOperator,
    UpdateOperation,
    UpdateOperator,
)
from arangomap.query.resolver import ResolvedPath, resolve_path
from arangomap.schema.fields import FieldKind
from arangomap.schema.schema import Schema
from arangomap.schema.types import Boolean
from arangomap.typings import FilterSpec, UpdateSpec

logger = logging.getLogger(__name__)

_LOGICAL_OPERATORS = {"$and": "AND", "$or": "OR"}
_BOOLEAN = Boolean()


def _is_operator_object(value: Any) -> bool:
    return (
        isinstance(value, Mapping)
        and bool(value)
        and all(isinstance(k, str) and k.startswith("$") for k in value)
    )


def cast_filter(schemas: Sequence[Schema], filter_spec: FilterSpec) -> CompiledFilter:
    """
    Cast a filter document.

    Args:
        schemas: Schemas the filter is resolved against (base first)
        filter_spec: Filter as written by the caller

    Returns:
        The compiled filter

    Raises:
        CastError: If any value cannot be cast to its declared type
    """
    conditions: List[Any] = []
    for path, value in (filter_spec or {}).items():
        if path in _LOGICAL_OPERATORS:
            if not isinstance(value, (list, tuple)):
                raise CastError(path, "Array", value, "logical operators take a list of filters")
            nested = [cast_filter(schemas, sub) for sub in value]
            conditions.append(CompiledFilter(conditions=nested, combine_operator=_LOGICAL_OPERATORS[path]))
        elif path.startswith("$"):
            raise CastError(path, "Filter", value, f"unsupported operator {path}")
        else:
            conditions.extend(_cast_path_condition(schemas, path, value, flattening=False))
    compiled = CompiledFilter(conditions=conditions)
    logger.debug(f"Cast filter {filter_spec!r} into {len(conditions)} condition(s)")
    return compiled


def _cast_path_condition(
    schemas: Sequence[Schema],
    path: str,
    value: Any,
    flattening: bool,
) -> Iterator[FilterCondition]:
    resolved = resolve_path(schemas, path)
    spec = resolved.spec

    if _is_operator_object(value):
        for token, operand in value.items():
            try:
                operator = QueryOperator.from_token(token)
            except ValueError:
                raise CastError(path, "Filter", value, f"unsupported operator {token}")
            yield _condition(resolved, operator, operand)
        return

    flatten = spec is not None and (
        spec.kind is FieldKind.MAP or (flattening and spec.kind is FieldKind.EMBEDDED)
    )
    if flatten and isinstance(value, Mapping) and value:
        for key, nested in value.items():
            yield from _cast_path_condition(schemas, f"{path}.{key}", nested, flattening=True)
        return

    yield _condition(resolved, QueryOperator.EQUALS, value)


def _condition(resolved: ResolvedPath, operator: QueryOperator, operand: Any) -> FilterCondition:
    path = resolved.path
    array_paths = list(resolved.array_paths)

    if operator is QueryOperator.EXISTS:
        return FilterCondition(path=path, operator=operator, value=_BOOLEAN.cast(operand, path), array_paths=array_paths)

    if operator in (QueryOperator.IN, QueryOperator.NOT_IN):
        if not isinstance(operand, (list, tuple, set)):
            raise CastError(path, "Array", operand, f"${operator.value} needs a list")
        casted = []
        for item in operand:
            value, element_match = _cast_leaf(resolved, item)
            casted.append(value)
            if element_match and path not in array_paths:
                array_paths.append(path)
        return FilterCondition(path=path, operator=operator, value=casted, array_paths=array_paths)

    value, element_match = _cast_leaf(resolved, operand)
    if element_match and path not in array_paths:
        array_paths.append(path)
    return FilterCondition(path=path, operator=operator, value=value, array_paths=array_paths)


def _cast_leaf(resolved: ResolvedPath, value: Any):
    """
    Cast a filter operand.

    Returns:
        ``(value, element_match)``; element_match is True when a non-list
        operand is compared against the elements of an array field
    """
    spec = resolved.spec
    if spec is None or value is None:
        return to_plain(value), False
    if spec.kind is FieldKind.ARRAY and not isinstance(value, (list, tuple)):
        assert spec.item is not None
        return to_plain(cast_field_value(spec.item, value, resolved.path, None, None, None)), True
    return to_plain(cast_field_value(spec, value, resolved.path, None, None, None)), False


def cast_update(schemas: Sequence[Schema], update_spec: UpdateSpec) -> CompiledUpdate:
    """
    Cast an update document.

    Bare paths are treated as ``$set``. Supported operators are ``$set``,
    ``$unset`` and ``$setOnInsert``. A plain object set at a map path is
    flattened like a filter, so it changes only the entries it names.

    Raises:
        CastError: If any value cannot be cast; no operation is produced
    """
    operations: List[UpdateOperation] = []
    for key, value in (update_spec or {}).items():
        if key.startswith("$"):
            try:
                operator = UpdateOperator.from_token(key)
            except ValueError:
                raise CastError(key, "Update", value, f"unsupported operator {key}")
            if not isinstance(value, Mapping):
                raise CastError(key, "Update", value, f"{key} needs an object")
            for path, operand in value.items():
                operations.extend(_cast_update_operation(schemas, operator, path, operand, flattening=False))
        else:
            operations.extend(_cast_update_operation(schemas, UpdateOperator.SET, key, value, flattening=False))
    return CompiledUpdate(operations=operations)


def _is_entry_object(value: Any) -> bool:
    return (
        isinstance(value, Mapping)
        and bool(value)
        and all(isinstance(k, str) and "." not in k and not k.startswith("$") for k in value)
    )


def _cast_update_operation(
    schemas: Sequence[Schema],
    operator: UpdateOperator,
    path: str,
    value: Any,
    flattening: bool,
) -> Iterator[UpdateOperation]:
    if operator is UpdateOperator.UNSET:
        yield UpdateOperation(operator=operator, path=path)
        return
    resolved = resolve_path(schemas, path)
    spec = resolved.spec
    if spec is None:
        yield UpdateOperation(operator=operator, path=path, value=to_plain(value))
        return

    # Objects with invalid map keys are cast whole so the key error surfaces
    flatten = spec.kind is FieldKind.MAP or (flattening and spec.kind is FieldKind.EMBEDDED)
    if flatten and _is_entry_object(value):
        for key, nested in value.items():
            yield from _cast_update_operation(schemas, operator, f"{path}.{key}", nested, flattening=True)
        return

    casted = cast_field_value(spec, value, path, None, None, None)
    yield UpdateOperation(operator=operator, path=path, value=to_plain(casted))
