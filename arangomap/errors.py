"""
Error types raised by arangomap.

Cast and validation failures carry the dotted path they occurred at so that
callers can map them back onto the document they were working with.
"""
from typing import Any, Dict, Optional, Union


class ODMError(Exception):
    """Base class for all arangomap errors."""


class CastError(ODMError, ValueError):
    """A value could not be converted to the declared type."""

    def __init__(
        self,
        path: str,
        kind: str,
        value: Any,
        reason: Optional[str] = None
    ) -> None:
        """
        Initialize the cast error.

        Args:
            path: Dotted path of the value that failed to cast
            kind: Name of the type the value was cast to
            value: The offending value
            reason: Optional underlying reason
        """
        self.path = path
        self.kind = kind
        self.value = value
        self.reason = reason
        message = f'Cast to {kind} failed for value {value!r} at path "{path}"'
        if reason:
            message += f" ({reason})"
        super().__init__(message)

    @property
    def name(self) -> str:
        return "CastError"

    def with_path(self, path: str) -> "CastError":
        """Return a copy of this error attributed to a different path."""
        return CastError(path, self.kind, self.value, self.reason)


class ValidatorError(ODMError):
    """A single validator rejected the value at a path."""

    def __init__(self, path: str, value: Any, message: Optional[str] = None, kind: str = "user defined") -> None:
        self.path = path
        self.value = value
        self.kind = kind
        self.message = message or f"Validator failed for path `{path}` with value `{value!r}`"
        super().__init__(self.message)

    @property
    def name(self) -> str:
        return "ValidatorError"


FieldError = Union[ValidatorError, CastError]


class ValidationError(ODMError):
    """Aggregate of every failing validation, keyed by dotted path."""

    def __init__(self, errors: Dict[str, FieldError], model_name: Optional[str] = None) -> None:
        self.errors = dict(errors)
        self.model_name = model_name
        target = f"{model_name} validation failed" if model_name else "Validation failed"
        details = ", ".join(f"{path}: {err}" for path, err in self.errors.items())
        super().__init__(f"{target}: {details}" if details else target)

    @property
    def name(self) -> str:
        return "ValidationError"


class InvalidMapKeyError(ODMError, ValueError):
    """Map keys must be strings without '.' that do not start with '$'."""

    def __init__(self, path: str, key: Any) -> None:
        self.path = path
        self.key = key
        super().__init__(
            f"Invalid key {key!r} for map at path \"{path}\": keys must be strings "
            "that do not contain '.' and do not start with '$'"
        )


class SchemaError(ODMError):
    """Raised for invalid schema declarations."""


class MissingSchemaError(ODMError, KeyError):
    """Raised when a model or discriminator name is unknown."""

    def __str__(self) -> str:
        return str(self.args[0]) if self.args else "Missing schema"


class DocumentNotFoundError(ODMError):
    """Raised when saving a document whose stored counterpart no longer exists."""

    def __init__(self, key: str, collection: str) -> None:
        self.key = key
        self.collection = collection
        super().__init__(f"No document found for key {key!r} in collection {collection!r}")


class StorageError(ODMError):
    """Raised when the storage backend reports a failure."""
