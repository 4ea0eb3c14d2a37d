"""
Root documents and their model classes.

A model class is compiled from a schema by :meth:`Connection.model`; it binds
the schema to one collection of a storage backend. Instances are root
documents: they own the tree of embedded documents, maps and arrays, keep
the ordered set of modified paths, and persist themselves with ``save()``.
"""
import logging
from typing import Any, ClassVar, Dict, List, Mapping, Optional, Type, TypeVar, Union, TYPE_CHECKING

from arangomap.document.base import BaseDocument, cast_field_value, path_related, to_plain
from arangomap.document.docarray import DocArray
from arangomap.document.embedded import EmbeddedDocument
from arangomap.errors import CastError, DocumentNotFoundError, SchemaError
from arangomap.query.builder import Query
from arangomap.query.cast import cast_filter, cast_update
from arangomap.query.operations import (
    CompiledFilter,
    CompiledUpdate,
    FilterCondition,
    UpdateOperation,
    UpdateOperator,
    UpdateResult,
)
from arangomap.schema.schema import Schema, resolve_variant
from arangomap.schema.types import Key
from arangomap.schema.validation import validate_document
from arangomap.storage.base import BaseDocumentStorage
from arangomap.storage.utils import generate_key
from arangomap.typings import DOCUMENT_KEY, DOCUMENT_REV, FilterSpec, RawDocument, UpdateSpec

if TYPE_CHECKING:
    from arangomap.connection import Connection

logger = logging.getLogger(__name__)

M = TypeVar("M", bound="Model")

_MISSING = object()
_KEY = Key()


class Model(BaseDocument):
    """
    Base class of every compiled model.

    Subclasses are created by :meth:`Connection.model` and
    :meth:`Model.discriminator`; they are not meant to be declared by hand.
    """

    schema: ClassVar[Schema]
    model_name: ClassVar[str] = "Model"
    collection_name: ClassVar[str] = ""
    connection: ClassVar[Optional["Connection"]] = None
    storage: ClassVar[BaseDocumentStorage]
    base_model: ClassVar[Optional[Type["Model"]]] = None
    variants: ClassVar[Dict[str, Type["Model"]]] = {}

    def __new__(cls, data: Optional[Mapping[str, Any]] = None, **fields: Any) -> "Model":
        target = cls
        if hasattr(cls, "storage"):
            values = dict(data or {})
            values.update(fields)
            # The discriminator in the input picks the variant class
            target = cls._resolve_class(values)
        return super().__new__(target)

    def __init__(self, data: Optional[Mapping[str, Any]] = None, **fields: Any) -> None:
        if not hasattr(type(self), "storage"):
            raise SchemaError("Model classes must be compiled with Connection.model()")
        values = dict(data or {})
        values.update(fields)
        self._setup(values, is_new=True)

    def _setup(self, data: Dict[str, Any], is_new: bool) -> None:
        self._modified: Dict[str, None] = {}
        self._is_new = is_new
        self._rev: Optional[str] = data.get(DOCUMENT_REV)
        key = data.get(DOCUMENT_KEY)
        self._key: str = generate_key() if key is None else _KEY.cast(key, DOCUMENT_KEY)
        cast_errors: Dict[str, CastError] = {}
        self._cast_errors = cast_errors
        self._init_fields(data, cast_errors, "")
        if cast_errors:
            logger.debug(f"{self.model_name} {self._key} built with cast errors at {sorted(cast_errors)}")

    # ------------------------------------------------------------------
    # Identity and state
    # ------------------------------------------------------------------

    @property
    def key(self) -> str:
        return self._key

    @property
    def rev(self) -> Optional[str]:
        return self._rev

    @property
    def is_new(self) -> bool:
        return self._is_new

    @property
    def modified_paths(self) -> List[str]:
        return list(self._modified)

    def _record_modified(self, path: str) -> None:
        self._modified[path] = None
        # A fresh value replaces whatever failed to cast at or below the path
        for failed in [p for p in self._cast_errors if path_related(p, path)]:
            del self._cast_errors[failed]

    def is_modified(self, path: Optional[str] = None) -> bool:
        """
        Whether the document (or ``path``) has unsaved changes.

        A path counts as modified when it, one of its ancestors, or one of
        its descendants was modified.
        """
        if path is None:
            return bool(self._modified)
        return any(path_related(path, marked) for marked in self._modified)

    def to_object(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {DOCUMENT_KEY: self._key}
        result.update(super().to_object())
        return result

    # ------------------------------------------------------------------
    # Validation and persistence
    # ------------------------------------------------------------------

    def validate(self) -> None:
        """
        Validate the document.

        New documents are validated in full; stored documents only at their
        modified paths.

        Raises:
            ValidationError: With every failure keyed by dotted path
        """
        if self._is_new:
            paths = None
            cast_errors = self._cast_errors
        else:
            paths = list(self._modified)
            cast_errors = {
                p: e for p, e in self._cast_errors.items()
                if any(path_related(p, marked) for marked in paths)
            }
        validate_document(self, paths, cast_errors).raise_for_errors(self.model_name)

    def _persist_path(self, path: str) -> str:
        """Cut a dirty path at the first array it crosses."""
        segments = path.split(".")
        for index in range(1, len(segments)):
            prefix = ".".join(segments[:index])
            if isinstance(self.get(prefix), DocArray):
                return prefix
        return path

    def _delta(self) -> CompiledUpdate:
        paths: List[str] = []
        for path in (self._persist_path(p) for p in self._modified):
            if path not in paths:
                paths.append(path)
        minimal = [
            path for path in paths
            if not any(path.startswith(other + ".") for other in paths if other != path)
        ]
        operations: List[UpdateOperation] = []
        for path in minimal:
            value = self.get(path, _MISSING)
            if value is _MISSING:
                operations.append(UpdateOperation(operator=UpdateOperator.UNSET, path=path))
            else:
                operations.append(UpdateOperation(operator=UpdateOperator.SET, path=path, value=to_plain(value)))
        return CompiledUpdate(operations=operations)

    async def save(self: M) -> M:
        """
        Validate and persist the document.

        New documents are inserted; stored documents receive an update of
        their modified paths only.

        Raises:
            ValidationError: If validation fails; nothing is written
            DocumentNotFoundError: If the stored document no longer exists
        """
        self.validate()

        if self._is_new:
            meta = await self.storage.insert_one(self.to_object())
            self._rev = meta.get(DOCUMENT_REV)
            self._is_new = False
            self._modified.clear()
            logger.debug(f"Inserted {self.model_name} {self._key}")
            return self

        if not self._modified:
            return self

        update = self._delta()
        result = await self.storage.update_one(self._key_filter(self._key), update)
        if result.matched_count == 0:
            raise DocumentNotFoundError(self._key, self.collection_name)
        self._modified.clear()
        logger.debug(f"Updated {self.model_name} {self._key} at {update.paths()}")
        return self

    async def delete(self) -> bool:
        """Delete the stored counterpart of this document."""
        deleted = await self.storage.delete_one(self._key_filter(self._key))
        return deleted > 0

    # ------------------------------------------------------------------
    # Class-level API
    # ------------------------------------------------------------------

    @classmethod
    def _key_filter(cls, key: str) -> CompiledFilter:
        return CompiledFilter(conditions=[FilterCondition(path=DOCUMENT_KEY, value=key)])

    @classmethod
    def _resolve_class(cls: Type[M], raw: Any) -> Type[M]:
        if cls.base_model is not None:
            return cls
        return resolve_variant(raw, cls.schema.discriminator_key, cls.variants, cls)

    @classmethod
    def _query_schemas(cls) -> List[Schema]:
        if cls.base_model is not None:
            return [cls.schema]
        return [cls.schema, *(variant.schema for variant in cls.variants.values())]

    @classmethod
    def _cast_filter(cls, filter_spec: Optional[FilterSpec]) -> CompiledFilter:
        compiled = cast_filter(cls._query_schemas(), filter_spec or {})
        if cls.base_model is not None:
            compiled = compiled.with_condition(
                FilterCondition(path=cls.schema.discriminator_key, value=cls.schema.discriminator_value)
            )
        return compiled

    @classmethod
    def hydrate(cls: Type[M], raw: RawDocument) -> M:
        """
        Build a document from its stored representation.

        The variant class is chosen from the stored discriminator value;
        defaults fill absent fields without marking them modified.
        """
        target = cls._resolve_class(raw)
        document = target.__new__(target)
        document._setup(dict(raw), is_new=False)
        return document

    @classmethod
    async def create(
        cls: Type[M],
        data: Union[Mapping[str, Any], List[Mapping[str, Any]]],
    ) -> Union[M, List[M]]:
        """
        Construct and save one document, or several in order.

        Raises:
            ValidationError: If a document fails validation
        """
        if isinstance(data, list):
            return [await cls._create_one(item) for item in data]
        return await cls._create_one(data)

    @classmethod
    async def _create_one(cls: Type[M], data: Mapping[str, Any]) -> M:
        document = cls(data)
        await document.save()
        return document

    @classmethod
    def find(cls: Type[M], filter_spec: Optional[FilterSpec] = None) -> Query:
        """Return a query for documents matching ``filter_spec``."""
        return Query(cls, filter_spec)

    @classmethod
    async def find_one(cls: Type[M], filter_spec: Optional[FilterSpec] = None) -> Optional[M]:
        return await Query(cls, filter_spec).first()

    @classmethod
    async def find_by_id(cls: Type[M], key: Any) -> Optional[M]:
        return await cls.find_one({DOCUMENT_KEY: key})

    @classmethod
    async def _find_raw(cls, filter_spec: Optional[FilterSpec], limit: Optional[int]) -> List[RawDocument]:
        compiled = cls._cast_filter(filter_spec)
        return await cls.storage.find(compiled, limit=limit)

    @classmethod
    async def count(cls, filter_spec: Optional[FilterSpec] = None) -> int:
        return await cls.storage.count(cls._cast_filter(filter_spec))

    @classmethod
    async def delete_one(cls, filter_spec: Optional[FilterSpec] = None) -> int:
        return await cls.storage.delete_one(cls._cast_filter(filter_spec))

    @classmethod
    async def update_one(
        cls,
        filter_spec: FilterSpec,
        update_spec: UpdateSpec,
        upsert: bool = False,
        set_defaults_on_insert: bool = False,
    ) -> UpdateResult:
        """
        Update the first document matching a filter.

        Both the filter and the update are cast before anything is sent to
        storage, so a value that fails to cast leaves every document as it
        was.

        Args:
            filter_spec: Filter selecting the document
            update_spec: Update document (`$set`, `$unset`, `$setOnInsert` or bare paths)
            upsert: Insert a document built from the filter and update when nothing matches
            set_defaults_on_insert: Also apply schema defaults to the inserted document

        Returns:
            UpdateResult with matched/modified counts and the upserted key

        Raises:
            CastError: If a filter or update value cannot be cast
        """
        compiled_filter = cls._cast_filter(filter_spec)
        compiled_update = cast_update(cls._query_schemas(), update_spec)
        if upsert:
            compiled_update = cls._with_insert_values(compiled_filter, compiled_update, set_defaults_on_insert)
        result = await cls.storage.update_one(compiled_filter, compiled_update, upsert=upsert)
        logger.debug(
            f"update_one on {cls.collection_name}: matched={result.matched_count} "
            f"modified={result.modified_count} upserted={result.upserted_key}"
        )
        return result

    @classmethod
    def _with_insert_values(
        cls,
        compiled_filter: CompiledFilter,
        compiled_update: CompiledUpdate,
        set_defaults: bool,
    ) -> CompiledUpdate:
        covered = compiled_update.paths() + list(compiled_filter.equality_values())
        on_insert: List[UpdateOperation] = []
        if not any(path_related(DOCUMENT_KEY, path) for path in covered):
            on_insert.append(UpdateOperation(operator=UpdateOperator.SET_ON_INSERT, path=DOCUMENT_KEY, value=generate_key()))
        if set_defaults:
            for spec in cls.schema.defaults():
                if any(path_related(spec.name, path) for path in covered):
                    continue
                value = cast_field_value(spec, spec.default_value(), spec.name, None, None, None)
                on_insert.append(UpdateOperation(operator=UpdateOperator.SET_ON_INSERT, path=spec.name, value=to_plain(value)))
        return CompiledUpdate(operations=[*on_insert, *compiled_update.operations])

    @classmethod
    def discriminator(cls, name: str, schema: Schema) -> Type["Model"]:
        """
        Register a discriminator variant of this model.

        The variant shares the collection; its documents store ``name``
        under the discriminator key, and base model queries hydrate them as
        the variant.

        Args:
            name: Discriminator value and model name of the variant
            schema: Schema whose fields are merged over this model's

        Returns:
            The variant model class
        """
        if cls.base_model is not None:
            raise SchemaError(f"Cannot add discriminator '{name}' to discriminator model '{cls.model_name}'")
        if name in cls.variants:
            raise SchemaError(f"Discriminator '{name}' already registered on '{cls.model_name}'")
        merged = cls.schema.extend(schema, discriminator_value=name)
        check_field_names(merged)
        merged.freeze()
        variant = type(name, (cls,), {
            "schema": merged,
            "model_name": name,
            "base_model": cls,
            "variants": {},
        })
        cls.variants[name] = variant
        if cls.connection is not None:
            cls.connection.register(name, variant)
        logger.info(f"Registered discriminator {name} on model {cls.model_name}")
        return variant

    def __repr__(self) -> str:
        return f"<{self.model_name} {self.to_object()!r}>"


# Public attributes that field names may not shadow
RESERVED_ATTRIBUTES = frozenset(name for name in dir(Model) if not name.startswith("_"))
_EMBEDDED_RESERVED = frozenset(name for name in dir(EmbeddedDocument) if not name.startswith("_"))


def check_field_names(schema: Schema) -> None:
    """
    Reject field names that would be shadowed by document attributes.

    Raises:
        SchemaError: If a root field clashes with a Model attribute, or an
            embedded field with an EmbeddedDocument attribute
    """
    clashes = sorted(set(schema.fields) & RESERVED_ATTRIBUTES)
    if clashes:
        raise SchemaError(f"Field names {clashes} are reserved by Model")
    for nested in schema.nested():
        clashes = sorted(set(nested.fields) & _EMBEDDED_RESERVED)
        if clashes:
            raise SchemaError(f"Field names {clashes} are reserved by embedded documents")
