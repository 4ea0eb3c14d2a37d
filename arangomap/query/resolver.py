"""
Resolution of dotted paths against schemas.

Walks a path such as ``employees.apiKeys.github`` through embedded schemas,
array items (including every discriminator variant of the items), and map
values, returning the field spec that governs the value found there together with
the array prefixes the path fans out across.
"""
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from arangomap.schema.fields import FieldKind, FieldSpec
from arangomap.schema.schema import Schema
from arangomap.schema.types import Key, String
from arangomap.typings import DOCUMENT_KEY

_KEY_SPEC = FieldSpec(DOCUMENT_KEY, FieldKind.SCALAR, caster=Key())
_DISCRIMINATOR_SPEC = FieldSpec("__t", FieldKind.SCALAR, caster=String())


@dataclass
class ResolvedPath:
    """Outcome of resolving a dotted path."""

    path: str
    spec: Optional[FieldSpec]
    array_paths: List[str] = field(default_factory=list)


def resolve_path(schemas: Sequence[Schema], path: str) -> ResolvedPath:
    """
    Resolve ``path`` against the first schema that declares it.

    Args:
        schemas: Candidate schemas (base schema first, then variants)
        path: Dotted path

    Returns:
        ResolvedPath; ``spec`` is None for undeclared paths, whose values are
        passed through uncast
    """
    segments = path.split(".")
    if path == DOCUMENT_KEY:
        return ResolvedPath(path, _KEY_SPEC)
    if schemas and path == schemas[0].discriminator_key:
        return ResolvedPath(path, _DISCRIMINATOR_SPEC)
    for schema in schemas:
        resolved = _walk_schema(schema, segments, [], [])
        if resolved is not None:
            return ResolvedPath(path, resolved[0], resolved[1])
    return ResolvedPath(path, None, _fallback_arrays(schemas, segments))


def _walk_schema(schema: Schema, rest: List[str], consumed: List[str], arrays: List[str]):
    spec = schema.fields.get(rest[0])
    if spec is None:
        return None
    return _walk_spec(spec, rest[1:], consumed + [rest[0]], arrays)


def _walk_spec(spec: FieldSpec, rest: List[str], consumed: List[str], arrays: List[str]):
    if not rest:
        return spec, arrays
    if spec.kind is FieldKind.SCALAR:
        return None
    if spec.kind is FieldKind.EMBEDDED:
        assert spec.schema is not None
        return _walk_schema(spec.schema, rest, consumed, arrays)
    if spec.kind is FieldKind.MAP:
        assert spec.item is not None
        return _walk_spec(spec.item, rest[1:], consumed + [rest[0]], arrays)

    # Arrays: a numeric segment addresses one element, anything else fans out
    assert spec.item is not None
    if rest[0].isdigit():
        return _walk_spec(spec.item, rest[1:], consumed + [rest[0]], arrays)
    fanned = arrays + [".".join(consumed)]
    if spec.item.kind is FieldKind.EMBEDDED:
        for schema in spec.all_item_schemas():
            found = _walk_schema(schema, rest, consumed, fanned)
            if found is not None:
                return found
        return None
    return _walk_spec(spec.item, rest, consumed, fanned) if spec.item.kind is not FieldKind.SCALAR else None


def _fallback_arrays(schemas: Sequence[Schema], segments: List[str]) -> List[str]:
    """Array prefixes along the declared part of an otherwise unknown path."""
    for schema in schemas:
        arrays: List[str] = []
        current: Optional[Schema] = schema
        consumed: List[str] = []
        for segment in segments:
            if current is None:
                break
            spec = current.fields.get(segment)
            if spec is None:
                break
            consumed.append(segment)
            if spec.kind is FieldKind.EMBEDDED:
                current = spec.schema
            elif spec.embeds_documents and spec.item is not None:
                arrays.append(".".join(consumed))
                current = spec.item.schema
            else:
                current = None
        if arrays:
            return arrays
    return []
