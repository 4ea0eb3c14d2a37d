"""
Field declarations and their compiled form.

A :class:`Field` is what users write in a schema definition. When the schema
is built each declaration is compiled into a :class:`FieldSpec` carrying a
closed :class:`FieldKind` tag, so that casting, validation and path
resolution dispatch on the tag rather than inspecting values at runtime.
"""
import copy
import logging
from enum import Enum
from typing import TYPE_CHECKING, Any, Dict, List, Mapping, Optional, Tuple

from arangomap.errors import MissingSchemaError, SchemaError
from arangomap.schema.types import Map, Mixed, SchemaType, resolve_scalar_type
from arangomap.typings import DefaultSpec, ValidatorList, ValidatorSpec

if TYPE_CHECKING:
    from arangomap.schema.schema import Schema

logger = logging.getLogger(__name__)

_MISSING = object()

# Name used for the value spec of a map and the item spec of an array
MAP_VALUE_SEGMENT = "$*"
ARRAY_ITEM_SEGMENT = "$"


class FieldKind(str, Enum):
    """Closed set of field shapes."""
    SCALAR = "scalar"
    EMBEDDED = "embedded"
    ARRAY = "array"
    MAP = "map"


class Field:
    """
    Declaration of a single schema field.

    Examples:
        Field(Number)
        Field(Map, of=Field(Number, validate=lambda v: v < 4))
        Field(Map, of=Schema({"n": Number}), default=dict)
        Field([String])
    """

    def __init__(
        self,
        type: Any = Mixed,
        *,
        of: Any = None,
        validate: Optional[Any] = None,
        default: DefaultSpec = _MISSING,
        required: bool = False,
    ) -> None:
        self.type = type
        self.of = of
        self.validate = validate
        self.default = default
        self.required = required

    @classmethod
    def from_mapping(cls, declaration: Mapping[str, Any]) -> "Field":
        """Build a Field from ``{"type": ..., "of": ..., ...}``."""
        allowed = {"type", "of", "validate", "default", "required"}
        unknown = set(declaration) - allowed
        if unknown:
            raise SchemaError(f"Unsupported field options: {sorted(unknown)}")
        return cls(**dict(declaration))

    def __repr__(self) -> str:
        return f"Field(type={self.type!r}, of={self.of!r})"


def normalize_validators(spec: Optional[ValidatorSpec]) -> ValidatorList:
    """
    Normalize the accepted validator declaration forms.

    Accepts a callable, a ``(callable, message)`` tuple, a
    ``{"validator": callable, "message": str}`` mapping, or a list of any of
    those.
    """
    if spec is None:
        return []
    if isinstance(spec, list):
        result: ValidatorList = []
        for item in spec:
            result.extend(normalize_validators(item))
        return result
    if isinstance(spec, tuple):
        if len(spec) != 2 or not callable(spec[0]):
            raise SchemaError(f"Validator tuples must be (callable, message), got {spec!r}")
        return [(spec[0], spec[1])]
    if isinstance(spec, Mapping):
        func = spec.get("validator")
        if not callable(func):
            raise SchemaError("Validator mappings need a callable 'validator' entry")
        return [(func, spec.get("message"))]
    if callable(spec):
        return [(spec, None)]
    raise SchemaError(f"Invalid validator declaration: {spec!r}")


class FieldSpec:
    """
    Compiled, immutable field declaration.

    Attributes:
        name: Field name (``$*`` for map values, ``$`` for array items)
        kind: Shape of the field
        caster: Scalar caster (SCALAR only)
        schema: Nested schema (EMBEDDED only)
        item: Value spec of a MAP or item spec of an ARRAY
        validators: Normalized validators
        required: Whether a value must be present
    """

    def __init__(
        self,
        name: str,
        kind: FieldKind,
        *,
        caster: Optional[SchemaType] = None,
        schema: Optional["Schema"] = None,
        item: Optional["FieldSpec"] = None,
        validators: Optional[ValidatorList] = None,
        default: DefaultSpec = _MISSING,
        required: bool = False,
        owner: Optional["Schema"] = None,
    ) -> None:
        self.name = name
        self.kind = kind
        self.caster = caster
        self.schema = schema
        self.item = item
        self.validators: Tuple = tuple(validators or ())
        self.required = required
        self._default = default
        self._owner = owner
        self.discriminators: Dict[str, "Schema"] = {}

    @property
    def has_default(self) -> bool:
        return self._default is not _MISSING

    def default_value(self) -> Any:
        """Return a fresh default value for a new document."""
        if callable(self._default):
            return self._default()
        return copy.deepcopy(self._default)

    @property
    def type_name(self) -> str:
        if self.kind is FieldKind.SCALAR and self.caster is not None:
            return self.caster.name
        return {
            FieldKind.EMBEDDED: "Embedded",
            FieldKind.ARRAY: "Array",
            FieldKind.MAP: "Map",
        }.get(self.kind, "Mixed")

    @property
    def embeds_documents(self) -> bool:
        """True for arrays whose items are embedded documents."""
        return self.kind is FieldKind.ARRAY and self.item is not None and self.item.kind is FieldKind.EMBEDDED

    def discriminator(self, name: str, schema: "Schema") -> "Schema":
        """
        Register a discriminator variant for the elements of this array path.

        Args:
            name: Discriminator value stored on each element
            schema: Schema whose fields are merged over the element schema

        Returns:
            The merged variant schema
        """
        if not self.embeds_documents:
            raise SchemaError(f"Path '{self.name}' is not an array of embedded documents")
        if self._owner is not None and self._owner.frozen:
            raise SchemaError(
                f"Cannot add discriminator '{name}' to '{self.name}': schema already compiled into a model"
            )
        if name in self.discriminators:
            raise SchemaError(f"Discriminator '{name}' already registered on '{self.name}'")
        assert self.item is not None and self.item.schema is not None
        merged = self.item.schema.extend(schema, discriminator_value=name)
        self.discriminators[name] = merged
        logger.debug(f"Registered embedded discriminator '{name}' on path '{self.name}'")
        return merged

    def variant_schema(self, raw: Any, discriminator_key: str) -> Optional["Schema"]:
        """Pick the element schema for ``raw`` based on its discriminator value."""
        if self.item is None or self.item.schema is None:
            return None
        if not self.discriminators:
            return self.item.schema
        value = None
        if isinstance(raw, Mapping):
            value = raw.get(discriminator_key)
        else:
            value = getattr(raw, "discriminator_value", None)
        if value is None:
            return self.item.schema
        try:
            return self.discriminators[value]
        except KeyError:
            raise MissingSchemaError(f"Discriminator '{value}' is not registered on '{self.name}'")

    def all_item_schemas(self) -> List["Schema"]:
        """Base element schema followed by every discriminator variant."""
        if self.item is None or self.item.schema is None:
            return []
        return [self.item.schema, *self.discriminators.values()]

    def __repr__(self) -> str:
        return f"<FieldSpec {self.name} kind={self.kind.value} type={self.type_name}>"


def compile_field(name: str, declaration: Any, owner: Optional["Schema"] = None) -> FieldSpec:
    """
    Compile a field declaration into a FieldSpec.

    Args:
        name: Field name
        declaration: A Field, a type, a Schema, a ``[T]`` list, or a mapping
        owner: Schema the field belongs to

    Returns:
        The compiled FieldSpec

    Raises:
        SchemaError: If the declaration cannot be understood
    """
    from arangomap.schema.schema import Schema

    if isinstance(declaration, Field):
        field = declaration
    elif isinstance(declaration, Mapping) and "type" in declaration:
        field = Field.from_mapping(declaration)
    elif isinstance(declaration, Mapping):
        field = Field(Schema(dict(declaration)))
    else:
        field = Field(declaration)

    validators = normalize_validators(field.validate)
    common = dict(
        validators=validators,
        default=field.default,
        required=field.required,
        owner=owner,
    )
    declared = field.type

    if declared is Map or declared is dict:
        value_decl = field.of if field.of is not None else Mixed
        item = compile_field(MAP_VALUE_SEGMENT, value_decl, owner)
        return FieldSpec(name, FieldKind.MAP, item=item, **common)

    if isinstance(declared, list) or declared is list:
        if isinstance(declared, list) and len(declared) > 1:
            raise SchemaError(f"Array field '{name}' must declare at most one item type")
        if isinstance(declared, list) and declared:
            item_decl = declared[0]
        else:
            item_decl = field.of if field.of is not None else Mixed
        item = compile_field(ARRAY_ITEM_SEGMENT, item_decl, owner)
        return FieldSpec(name, FieldKind.ARRAY, item=item, **common)

    if field.of is not None:
        raise SchemaError(f"Option 'of' is only valid for Map and array fields (field '{name}')")

    if isinstance(declared, Schema):
        return FieldSpec(name, FieldKind.EMBEDDED, schema=declared, **common)

    if isinstance(declared, Mapping):
        return FieldSpec(name, FieldKind.EMBEDDED, schema=Schema(dict(declared)), **common)

    caster = resolve_scalar_type(declared)
    if caster is None:
        raise SchemaError(f"Invalid type {declared!r} for field '{name}'")
    return FieldSpec(name, FieldKind.SCALAR, caster=caster, **common)
