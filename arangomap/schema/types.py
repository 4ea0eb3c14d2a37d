"""
Scalar type casters for schema fields.

Each caster converts arbitrary input into the declared type or raises a
:class:`~arangomap.errors.CastError` carrying the dotted path of the value.
Coercion follows pydantic's lax mode, with the additions listed on each class.
"""
from datetime import date, datetime, time
from typing import Any, Dict, Optional, Type, Union

from pydantic import ConfigDict, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from arangomap.errors import CastError, SchemaError
from arangomap.storage.utils import is_valid_key


class SchemaType:
    """Base caster. Subclasses set ``name`` and implement ``_cast``."""

    name: str = "Mixed"

    def cast(self, value: Any, path: str) -> Any:
        """
        Cast a raw value into this type.

        Args:
            value: Raw input value
            path: Dotted path used in error reports

        Returns:
            The casted value (``None`` passes through untouched)

        Raises:
            CastError: If the value cannot be converted
        """
        if value is None:
            return None
        return self._cast(value, path)

    def _cast(self, value: Any, path: str) -> Any:
        return value

    def _adapt(self, adapter: TypeAdapter, value: Any, path: str) -> Any:
        try:
            return adapter.validate_python(value)
        except PydanticValidationError as e:
            errors = e.errors()
            reason = errors[0]["msg"] if errors else None
            raise CastError(path, self.name, value, reason) from e

    def __repr__(self) -> str:
        return f"<{self.name}>"

    def __eq__(self, other: object) -> bool:
        return type(self) is type(other)

    def __hash__(self) -> int:
        return hash(type(self))


class Mixed(SchemaType):
    """Accepts any value unchanged."""

    name = "Mixed"


class Number(SchemaType):
    """Integers stay integers; everything else numeric becomes a float.

    Booleans map to ``0``/``1``. Numeric strings (including exponent
    notation, ``"inf"`` and ``"nan"``) are accepted.
    """

    name = "Number"
    _adapter: TypeAdapter = TypeAdapter(Union[int, float])

    def _cast(self, value: Any, path: str) -> Any:
        if isinstance(value, bool):
            return int(value)
        if isinstance(value, (int, float)):
            return value
        if isinstance(value, str) and not value.strip():
            raise CastError(path, self.name, value, "empty string")
        return self._adapt(self._adapter, value, path)


class String(SchemaType):
    """Strings, plus numbers rendered with ``str()``. Booleans are rejected."""

    name = "String"
    _adapter: TypeAdapter = TypeAdapter(str, config=ConfigDict(coerce_numbers_to_str=True))

    def _cast(self, value: Any, path: str) -> Any:
        if isinstance(value, bool):
            raise CastError(path, self.name, value, "booleans are not strings")
        return self._adapt(self._adapter, value, path)


class Boolean(SchemaType):
    """pydantic's boolean table: ``"true"``/``"yes"``/``"on"``/``1`` and their negatives."""

    name = "Boolean"
    _adapter: TypeAdapter = TypeAdapter(bool)

    def _cast(self, value: Any, path: str) -> Any:
        return self._adapt(self._adapter, value, path)


class Date(SchemaType):
    """ISO-8601 strings, unix timestamps, dates and datetimes."""

    name = "Date"
    _adapter: TypeAdapter = TypeAdapter(datetime)

    def _cast(self, value: Any, path: str) -> Any:
        if isinstance(value, date) and not isinstance(value, datetime):
            return datetime.combine(value, time())
        return self._adapt(self._adapter, value, path)


class Key(SchemaType):
    """Storage document keys."""

    name = "Key"

    def _cast(self, value: Any, path: str) -> Any:
        if isinstance(value, int) and not isinstance(value, bool):
            value = str(value)
        if not isinstance(value, str) or not is_valid_key(value):
            raise CastError(path, self.name, value, "not a valid document key")
        return value


class Map:
    """Marker for map-typed fields: ``Field(Map, of=Number)``."""


_BUILTIN_ALIASES: Dict[Any, Type[SchemaType]] = {
    int: Number,
    float: Number,
    str: String,
    bool: Boolean,
    datetime: Date,
    date: Date,
    object: Mixed,
    Any: Mixed,
}


def resolve_scalar_type(declared: Any) -> Optional[SchemaType]:
    """
    Resolve a scalar type declaration to a caster instance.

    Args:
        declared: A SchemaType subclass or instance, or a Python builtin alias

    Returns:
        The caster, or None if the declaration is not a scalar type
    """
    if isinstance(declared, SchemaType):
        return declared
    if isinstance(declared, type) and issubclass(declared, SchemaType):
        return declared()
    try:
        alias = _BUILTIN_ALIASES.get(declared)
    except TypeError:
        raise SchemaError(f"Unhashable type declaration: {declared!r}")
    return alias() if alias is not None else None
