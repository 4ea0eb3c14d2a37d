"""
Schema layer: type casters, field declarations and validation.
"""

from .types import Boolean, Date, Key, Map, Mixed, Number, SchemaType, String
from .fields import Field, FieldKind, FieldSpec, compile_field
from .schema import DEFAULT_DISCRIMINATOR_KEY, Schema, resolve_variant

__all__ = [
    "Boolean",
    "Date",
    "Key",
    "Map",
    "Mixed",
    "Number",
    "SchemaType",
    "String",
    "Field",
    "FieldKind",
    "FieldSpec",
    "compile_field",
    "DEFAULT_DISCRIMINATOR_KEY",
    "Schema",
    "resolve_variant",
]
