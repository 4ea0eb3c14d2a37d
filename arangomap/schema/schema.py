"""
Schema definitions.

A schema is an ordered table of compiled fields. It may be extended while it
is being defined (``add``, embedded discriminators); once a model has been
compiled from it the schema is frozen.
"""
import logging
from typing import Any, Dict, Iterator, List, Mapping, Optional

from arangomap.errors import SchemaError
from arangomap.schema.fields import FieldKind, FieldSpec, compile_field

logger = logging.getLogger(__name__)

DEFAULT_DISCRIMINATOR_KEY = "__t"
RESERVED_FIELDS = frozenset({"_key", "_id", "_rev"})


class Schema:
    """
    Ordered collection of field declarations.

    Example:
        schema = Schema({
            "n": Number,
            "m": Field(Map, of=Number, default={"bacon": 2, "eggs": 6}),
        })
    """

    def __init__(
        self,
        definition: Optional[Mapping[str, Any]] = None,
        *,
        discriminator_key: str = DEFAULT_DISCRIMINATOR_KEY,
    ) -> None:
        self.fields: Dict[str, FieldSpec] = {}
        self.discriminator_key = discriminator_key
        self.discriminator_value: Optional[str] = None
        self._frozen = False
        if definition:
            self.add(definition)

    @property
    def frozen(self) -> bool:
        return self._frozen

    def freeze(self) -> None:
        """Mark the schema (and nested schemas) as compiled."""
        if self._frozen:
            return
        self._frozen = True
        for spec in self.fields.values():
            for nested in _nested_schemas(spec):
                nested.freeze()

    def add(self, definition: Mapping[str, Any]) -> "Schema":
        """Add field declarations to this schema."""
        if self._frozen:
            raise SchemaError("Cannot add fields to a schema that has been compiled into a model")
        for name, declaration in definition.items():
            if not isinstance(name, str) or not name:
                raise SchemaError(f"Field names must be non-empty strings, got {name!r}")
            if "." in name or name.startswith("$"):
                raise SchemaError(f"Invalid field name '{name}'")
            if name in RESERVED_FIELDS or name == self.discriminator_key:
                raise SchemaError(f"Field name '{name}' is reserved")
            self.fields[name] = compile_field(name, declaration, owner=self)
        return self

    def path(self, path: str) -> FieldSpec:
        """
        Return the compiled spec declared at a dotted path.

        Only embedded-schema boundaries are traversed; map values and array
        items are addressed through ``FieldSpec.item``.

        Raises:
            SchemaError: If no field is declared at the path
        """
        head, _, rest = path.partition(".")
        spec = self.fields.get(head)
        if spec is None:
            raise SchemaError(f"No field declared at path '{path}'")
        if not rest:
            return spec
        if spec.kind is FieldKind.EMBEDDED and spec.schema is not None:
            return spec.schema.path(rest)
        if spec.embeds_documents and spec.item is not None and spec.item.schema is not None:
            return spec.item.schema.path(rest)
        raise SchemaError(f"No field declared at path '{path}'")

    def extend(self, other: "Schema", discriminator_value: Optional[str] = None) -> "Schema":
        """
        Return a new schema with this schema's fields followed by ``other``'s.

        Fields declared in both are taken from ``other``.
        """
        merged = Schema(discriminator_key=self.discriminator_key)
        merged.fields = dict(self.fields)
        for name, spec in other.fields.items():
            if name in RESERVED_FIELDS or name == self.discriminator_key:
                raise SchemaError(f"Field name '{name}' is reserved")
            merged.fields[name] = spec
        merged.discriminator_value = discriminator_value
        return merged

    def __iter__(self) -> Iterator[str]:
        return iter(self.fields)

    def __contains__(self, name: object) -> bool:
        return name in self.fields

    def nested(self) -> List["Schema"]:
        """Every schema embedded below this one, discriminator variants included."""
        found: List[Schema] = []
        for spec in self.fields.values():
            for nested in _nested_schemas(spec):
                found.append(nested)
                found.extend(nested.nested())
        return found

    def defaults(self) -> List[FieldSpec]:
        return [spec for spec in self.fields.values() if spec.has_default]

    def __repr__(self) -> str:
        variant = f" variant={self.discriminator_value!r}" if self.discriminator_value else ""
        return f"<Schema fields={list(self.fields)}{variant}>"


def _nested_schemas(spec: FieldSpec) -> List[Schema]:
    found: List[Schema] = []
    if spec.schema is not None:
        found.append(spec.schema)
    if spec.item is not None:
        found.extend(_nested_schemas(spec.item))
    found.extend(spec.discriminators.values())
    return found


def resolve_variant(
    raw: Any,
    discriminator_key: str,
    variants: Mapping[str, Any],
    default: Any,
) -> Any:
    """
    Pick the variant registered for the discriminator value found in ``raw``.

    Returns ``default`` when ``raw`` carries no discriminator value or an
    unregistered one.
    """
    if not isinstance(raw, Mapping):
        return default
    value = raw.get(discriminator_key)
    if value is None:
        return default
    variant = variants.get(value)
    if variant is None:
        logger.warning(f"Unknown discriminator value {value!r}; using the base schema")
        return default
    return variant
