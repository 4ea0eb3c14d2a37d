"""
Helpers operating on raw (plain dict) documents.

Shared by the storage backends: dotted-path access, application of compiled
updates, construction of upserted documents and evaluation of compiled
filters with array fan-out.
"""
import copy
from datetime import date, datetime
from decimal import Decimal
from typing import Any, List, Tuple

from arangomap.query.operations import (
    CompiledFilter,
    CompiledUpdate,
    FilterCondition,
    QueryOperator,
    UpdateOperator,
)
from arangomap.typings import RawDocument

_MISSING = object()


def set_path(document: RawDocument, path: str, value: Any) -> None:
    """Set a dotted path, creating intermediate objects as needed."""
    segments = path.split(".")
    node: Any = document
    for segment in segments[:-1]:
        if isinstance(node, list) and segment.isdigit():
            node = node[int(segment)]
            continue
        child = node.get(segment)
        if not isinstance(child, (dict, list)):
            child = {}
            node[segment] = child
        node = child
    last = segments[-1]
    if isinstance(node, list) and last.isdigit():
        node[int(last)] = value
    else:
        node[last] = value


def unset_path(document: RawDocument, path: str) -> bool:
    """Remove a dotted path. Returns False if it was not present."""
    segments = path.split(".")
    node: Any = document
    for segment in segments[:-1]:
        if isinstance(node, list) and segment.isdigit() and int(segment) < len(node):
            node = node[int(segment)]
        elif isinstance(node, dict) and segment in node:
            node = node[segment]
        else:
            return False
    last = segments[-1]
    if isinstance(node, dict) and last in node:
        del node[last]
        return True
    if isinstance(node, list) and last.isdigit() and int(last) < len(node):
        node[int(last)] = None
        return True
    return False


def get_path(document: RawDocument, path: str, default: Any = None) -> Any:
    """Exact dotted-path lookup without array fan-out."""
    node: Any = document
    for segment in path.split("."):
        if isinstance(node, dict) and segment in node:
            node = node[segment]
        elif isinstance(node, list) and segment.isdigit() and int(segment) < len(node):
            node = node[int(segment)]
        else:
            return default
    return node


def apply_update(document: RawDocument, update: CompiledUpdate, inserting: bool = False) -> Tuple[RawDocument, bool]:
    """
    Apply compiled update operations to a copy of ``document``.

    Returns:
        ``(new_document, changed)``
    """
    result = copy.deepcopy(document)
    changed = False
    for op in update.operations:
        if op.operator is UpdateOperator.SET_ON_INSERT and not inserting:
            continue
        if op.operator is UpdateOperator.UNSET:
            changed = unset_path(result, op.path) or changed
            continue
        if get_path(result, op.path, _MISSING) != op.value:
            changed = True
        set_path(result, op.path, copy.deepcopy(op.value))
    return result, changed


def build_upsert_document(query: CompiledFilter, update: CompiledUpdate) -> RawDocument:
    """Document inserted by an upsert: filter equalities, then the update (with on-insert ops)."""
    document: RawDocument = {}
    for path, value in query.equality_values().items():
        set_path(document, path, copy.deepcopy(value))
    document, _ = apply_update(document, update, inserting=True)
    return document


def to_json(value: Any) -> Any:
    """Convert a raw value into JSON-serialisable form (dates become ISO strings)."""
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, dict):
        return {k: to_json(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_json(v) for v in value]
    return value


# ----------------------------------------------------------------------
# Filter evaluation
# ----------------------------------------------------------------------

def _collect(node: Any, segments: List[str], out: List[Any]) -> None:
    if not segments:
        out.append(node)
        return
    head, rest = segments[0], segments[1:]
    if isinstance(node, dict):
        if head in node:
            _collect(node[head], rest, out)
    elif isinstance(node, list):
        if head.isdigit():
            index = int(head)
            if index < len(node):
                _collect(node[index], rest, out)
            return
        for item in node:
            if isinstance(item, (dict, list)):
                _collect(item, segments, out)


def path_values(document: RawDocument, path: str) -> List[Any]:
    """All values reachable at ``path``, fanning out across arrays."""
    found: List[Any] = []
    _collect(document, path.split("."), found)
    return found


def _candidates(values: List[Any], expand: bool) -> List[Any]:
    result: List[Any] = []
    for value in values:
        result.append(value)
        if expand and isinstance(value, list):
            result.extend(value)
    return result


def _compare(left: Any, operator: QueryOperator, right: Any) -> bool:
    try:
        if operator is QueryOperator.GREATER_THAN:
            return left > right
        if operator is QueryOperator.GREATER_EQUAL:
            return left >= right
        if operator is QueryOperator.LESS_THAN:
            return left < right
        if operator is QueryOperator.LESS_EQUAL:
            return left <= right
    except TypeError:
        return False
    return False


def condition_matches(document: RawDocument, condition: FilterCondition) -> bool:
    values = path_values(document, condition.path)
    operator = condition.operator
    target = condition.value

    if operator is QueryOperator.EXISTS:
        present = any(value is not None for value in values) if values else False
        return present == bool(target)

    candidates = _candidates(values, expand=not isinstance(target, list) or operator in (QueryOperator.IN, QueryOperator.NOT_IN))

    if operator is QueryOperator.EQUALS:
        if target is None:
            return not values or any(value is None for value in candidates)
        return any(value == target for value in candidates)
    if operator is QueryOperator.NOT_EQUALS:
        if target is None:
            return bool(values) and all(value is not None for value in candidates)
        return not any(value == target for value in candidates)
    if operator is QueryOperator.IN:
        return any(value in target for value in candidates) or (None in target and not values)
    if operator is QueryOperator.NOT_IN:
        return not any(value in target for value in candidates) and not (None in target and not values)
    return any(
        value is not None and _compare(value, operator, target)
        for value in candidates
        if not isinstance(value, list)
    )


def matches(document: RawDocument, query: CompiledFilter) -> bool:
    """Evaluate a compiled filter against a raw document."""
    results = (
        matches(document, condition) if isinstance(condition, CompiledFilter)
        else condition_matches(document, condition)
        for condition in query.conditions
    )
    if query.combine_operator == "OR":
        return any(results)
    return all(results)
