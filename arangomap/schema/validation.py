"""
Validation of documents against their schemas.

The engine walks a document tree and collects every failure keyed by its
dotted path. For map fields, validators declared on the value spec run for
every entry and report at ``<field>.<key>``; validators declared on the map
field itself receive the live DocMap. Both levels always run, and no failure
stops the walk.
"""
import logging
from typing import Any, Dict, Iterable, Optional

from arangomap.document.base import BaseDocument, path_related
from arangomap.document.docarray import DocArray
from arangomap.document.docmap import DocMap
from arangomap.errors import CastError, FieldError, ValidationError, ValidatorError
from arangomap.schema.fields import FieldKind, FieldSpec

logger = logging.getLogger(__name__)


class ValidationResult:
    """Result of a validation operation."""

    def __init__(
        self,
        errors: Optional[Dict[str, FieldError]] = None,
        document_key: Optional[str] = None
    ):
        """
        Initialize validation result.

        Args:
            errors: Failures keyed by dotted path
            document_key: Key of the document being validated
        """
        self.errors: Dict[str, FieldError] = errors or {}
        self.document_key = document_key

    @property
    def is_valid(self) -> bool:
        return not self.errors

    def __bool__(self) -> bool:
        """Allow using the result in boolean context."""
        return self.is_valid

    def format_errors(self) -> str:
        """Format errors for logging or display."""
        if not self.errors:
            return "No validation errors"

        doc_info = f" for document {self.document_key}" if self.document_key else ""
        lines = [f"Validation errors{doc_info}:"]
        for i, (path, error) in enumerate(self.errors.items(), 1):
            lines.append(f"  {i}. {path}: {error}")
        return "\n".join(lines)

    def raise_for_errors(self, model_name: Optional[str] = None) -> None:
        if self.errors:
            raise ValidationError(self.errors, model_name=model_name)


class _Walker:
    """Collects failures for one validation run."""

    def __init__(self, paths: Optional[Iterable[str]]) -> None:
        self.paths = None if paths is None else list(paths)
        self.errors: Dict[str, FieldError] = {}

    def selected(self, path: str) -> bool:
        if self.paths is None:
            return True
        return any(path_related(path, marked) for marked in self.paths)

    def record(self, path: str, error: FieldError) -> None:
        # The first failure at a path wins
        self.errors.setdefault(path, error)

    def run_validators(self, spec: FieldSpec, value: Any, path: str) -> None:
        for validator, message in spec.validators:
            try:
                ok = validator(value)
            except CastError as e:
                self.record(path, e.with_path(path))
                continue
            except (ValueError, TypeError) as e:
                logger.debug(f"Validator for '{path}' raised {e!r}")
                self.record(path, ValidatorError(path, value, message or str(e)))
                continue
            if not ok:
                self.record(path, ValidatorError(path, value, _format_message(message, path, value)))

    def check_field(self, spec: FieldSpec, value: Any, path: str) -> None:
        if not self.selected(path) or path in self.errors:
            return
        if value is None:
            if spec.required:
                self.record(path, ValidatorError(path, value, f"Path `{path}` is required.", kind="required"))
            return

        # Entries and elements first, then the container's own validators
        if spec.kind is FieldKind.MAP and isinstance(value, DocMap):
            assert spec.item is not None
            for key, entry in value.items():
                self.check_field(spec.item, entry, f"{path}.{key}")
        elif spec.kind is FieldKind.ARRAY and isinstance(value, DocArray):
            assert spec.item is not None
            for index, element in enumerate(value):
                self.check_field(spec.item, element, f"{path}.{index}")
        elif spec.kind is FieldKind.EMBEDDED and isinstance(value, BaseDocument):
            # Embedded documents validate against their own (possibly variant) schema
            self.check_document(value, path)
        self.run_validators(spec, value, path)

    def check_document(self, document: BaseDocument, prefix: str) -> None:
        for name, spec in document.schema.fields.items():
            path = f"{prefix}.{name}" if prefix else name
            self.check_field(spec, document._data.get(name), path)


def _format_message(message: Optional[str], path: str, value: Any) -> str:
    if message is None:
        return f"Validator failed for path `{path}` with value `{value!r}`"
    return message.replace("{PATH}", path).replace("{VALUE}", repr(value))


def validate_document(
    document: BaseDocument,
    paths: Optional[Iterable[str]] = None,
    cast_errors: Optional[Dict[str, CastError]] = None,
) -> ValidationResult:
    """
    Validate a document tree.

    Args:
        document: Root or embedded document to validate
        paths: Restrict validation to these dotted paths and their relatives;
            None validates everything
        cast_errors: Cast failures recorded while the document was built

    Returns:
        ValidationResult: Result of validation
    """
    walker = _Walker(paths)
    for path, error in (cast_errors or {}).items():
        walker.record(path, error)
    walker.check_document(document, document.full_path)
    result = ValidationResult(walker.errors, document_key=getattr(document, "key", None))
    if not result:
        logger.debug(result.format_errors())
    return result
