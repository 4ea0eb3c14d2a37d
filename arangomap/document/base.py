"""
Shared document machinery.

Documents, embedded documents, maps and arrays form a tree. Every node knows
its parent and the segment it is stored under, so a node can compute its
dotted path from the root and report modifications to the root document,
which keeps the ordered set of dirty paths consulted by ``save()``.
"""
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from arangomap.errors import CastError
from arangomap.schema.fields import FieldKind, FieldSpec
from arangomap.schema.schema import Schema

if TYPE_CHECKING:
    from arangomap.document.docarray import DocArray
    from arangomap.document.docmap import DocMap
    from arangomap.document.embedded import EmbeddedDocument

CastErrors = Dict[str, CastError]


def join_path(prefix: str, segment: Any) -> str:
    return f"{prefix}.{segment}" if prefix else str(segment)


def path_related(a: str, b: str) -> bool:
    """True if ``a`` and ``b`` are equal or one is an ancestor of the other."""
    return a == b or a.startswith(b + ".") or b.startswith(a + ".")


class TreeNode:
    """A node of the document tree."""

    _parent: Optional["TreeNode"] = None
    _segment: Optional[str] = None

    def _attach(self, parent: Optional["TreeNode"], segment: Optional[str]) -> None:
        self._parent = parent
        self._segment = segment

    @property
    def full_path(self) -> str:
        """Dotted path of this node from the root document."""
        if self._parent is None:
            return ""
        return self._parent._path_of(self)

    def _path_of(self, child: "TreeNode") -> str:
        return join_path(self.full_path, child._segment)

    def _root(self) -> "TreeNode":
        node = self
        while node._parent is not None:
            node = node._parent
        return node

    def _notify_modified(self, path: str) -> None:
        root = self._root()
        if isinstance(root, BaseDocument):
            root._record_modified(path)


class BaseDocument(TreeNode):
    """
    Field storage and access shared by root and embedded documents.

    Field values live in ``_data`` keyed by field name, already cast into
    their declared kind.
    """

    schema: Schema

    def _init_fields(self, data: Optional[Mapping], errors: CastErrors, prefix: str) -> None:
        object.__setattr__(self, "_data", {})
        data = data or {}
        for name, spec in self.schema.fields.items():
            if name not in data:
                continue
            path = join_path(prefix, name)
            try:
                self._data[name] = cast_field_value(spec, data[name], path, self, name, errors)
            except CastError as e:
                errors[e.path] = e
        apply_defaults(self, skip=list(data), errors=errors, prefix=prefix)
        variant = self.schema.discriminator_value
        if variant is not None:
            self._data[self.schema.discriminator_key] = variant

    def _record_modified(self, path: str) -> None:
        """Root documents override this to keep their dirty paths."""

    @property
    def discriminator_value(self) -> Optional[str]:
        return self.schema.discriminator_value

    # ------------------------------------------------------------------
    # Attribute access
    # ------------------------------------------------------------------

    def __getattr__(self, name: str) -> Any:
        if name.startswith("_") or name == "schema":
            raise AttributeError(name)
        if name in self.schema.fields:
            return self._data.get(name)
        raise AttributeError(f"{type(self).__name__!s} has no field '{name}'")

    def __setattr__(self, name: str, value: Any) -> None:
        if not name.startswith("_") and name in self.schema.fields:
            self.set(name, value)
        else:
            object.__setattr__(self, name, value)

    # ------------------------------------------------------------------
    # Path access
    # ------------------------------------------------------------------

    def get(self, path: str, default: Any = None) -> Any:
        """Return the value at a dotted path, or ``default`` if absent."""
        head, _, rest = path.partition(".")
        if head not in self._data:
            return default
        value = self._data[head]
        if not rest:
            return value
        return _descend(value, rest, default)

    def set(self, path: str, value: Any) -> None:
        """
        Assign a value at a dotted path, casting it to the declared type.

        Raises:
            CastError: If the value cannot be cast; the current value is kept
        """
        head, _, rest = path.partition(".")
        spec = self.schema.fields.get(head)
        if spec is None:
            raise AttributeError(f"{type(self).__name__} has no field '{head}'")
        if rest:
            container = self._data.get(head)
            if container is None:
                raise KeyError(f"Cannot set '{path}': '{head}' is empty")
            _assign(container, rest, value)
            return
        full = join_path(self.full_path, head)
        casted = cast_field_value(spec, value, full, self, head, None)
        self._data[head] = casted
        self._notify_modified(full)

    def unset(self, name: str) -> None:
        if name in self._data:
            del self._data[name]
            self._notify_modified(join_path(self.full_path, name))

    def mark_modified(self, path: str) -> None:
        """Flag a path (relative to this document) as modified."""
        self._notify_modified(join_path(self.full_path, path))

    def to_object(self) -> Dict[str, Any]:
        """Plain dict representation, recursively converting containers."""
        result: Dict[str, Any] = {}
        key = self.schema.discriminator_key
        if key in self._data:
            result[key] = self._data[key]
        for name in self.schema.fields:
            if name in self._data:
                result[name] = to_plain(self._data[name])
        return result

    def __eq__(self, other: object) -> bool:
        if isinstance(other, BaseDocument):
            return self.to_object() == other.to_object()
        if isinstance(other, Mapping):
            return self.to_object() == dict(other)
        return NotImplemented

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.to_object()!r}>"


def _descend(value: Any, rest: str, default: Any) -> Any:
    from arangomap.document.docarray import DocArray
    from arangomap.document.docmap import DocMap

    head, _, tail = rest.partition(".")
    if isinstance(value, BaseDocument):
        return value.get(rest, default)
    if isinstance(value, DocMap):
        if head not in value:
            return default
        child = value[head]
    elif isinstance(value, DocArray):
        if not head.isdigit() or int(head) >= len(value):
            return default
        child = value[int(head)]
    else:
        return default
    return _descend(child, tail, default) if tail else child


def _assign(container: Any, rest: str, value: Any) -> None:
    from arangomap.document.docarray import DocArray
    from arangomap.document.docmap import DocMap

    head, _, tail = rest.partition(".")
    if isinstance(container, BaseDocument):
        container.set(rest, value)
        return
    if isinstance(container, DocMap):
        if tail:
            _assign(container[head], tail, value)
        else:
            container.set(head, value)
        return
    if isinstance(container, DocArray) and head.isdigit():
        if tail:
            _assign(container[int(head)], tail, value)
        else:
            container[int(head)] = value
        return
    raise KeyError(f"Cannot assign into {type(container).__name__} at '{rest}'")


def to_plain(value: Any) -> Any:
    """Convert documents, maps and arrays into plain dicts and lists."""
    from arangomap.document.docarray import DocArray
    from arangomap.document.docmap import DocMap

    if isinstance(value, BaseDocument):
        return value.to_object()
    if isinstance(value, DocMap):
        return value.to_object()
    if isinstance(value, (DocArray, list, tuple)):
        return [to_plain(item) for item in value]
    if isinstance(value, Mapping):
        return {k: to_plain(v) for k, v in value.items()}
    return value


def cast_field_value(
    spec: FieldSpec,
    value: Any,
    path: str,
    parent: Optional[TreeNode],
    segment: Optional[str],
    errors: Optional[CastErrors],
) -> Any:
    """
    Cast a raw value into the shape declared by ``spec``.

    Args:
        spec: Compiled field spec
        value: Raw value
        path: Dotted path of the value, used in error reports
        parent: Tree node that will hold the value
        segment: Segment the value is stored under in ``parent``
        errors: When given, failures of nested entries are collected here and
            the offending entries dropped; otherwise they raise

    Returns:
        The cast value (scalar, EmbeddedDocument, DocMap or DocArray)

    Raises:
        CastError: If the value itself cannot be cast
    """
    if value is None:
        return None
    kind = spec.kind
    if kind is FieldKind.SCALAR:
        assert spec.caster is not None
        return spec.caster.cast(value, path)
    if kind is FieldKind.EMBEDDED:
        assert spec.schema is not None
        return _cast_embedded(spec.schema, value, path, parent, segment, errors)
    if kind is FieldKind.MAP:
        return _cast_map(spec, value, path, parent, segment, errors)
    if kind is FieldKind.ARRAY:
        return _cast_array(spec, value, path, parent, segment, errors)
    raise CastError(path, spec.type_name, value, "unknown field kind")


def _cast_embedded(
    schema: Schema,
    value: Any,
    path: str,
    parent: Optional[TreeNode],
    segment: Optional[str],
    errors: Optional[CastErrors],
) -> "EmbeddedDocument":
    from arangomap.document.embedded import EmbeddedDocument

    if isinstance(value, BaseDocument):
        value = value.to_object()
    if not isinstance(value, Mapping):
        raise CastError(path, "Embedded", value, "expected an object")
    return EmbeddedDocument(value, schema=schema, parent=parent, segment=segment, path=path, errors=errors)


def _cast_map(
    spec: FieldSpec,
    value: Any,
    path: str,
    parent: Optional[TreeNode],
    segment: Optional[str],
    errors: Optional[CastErrors],
) -> "DocMap":
    from arangomap.document.docmap import DocMap

    if not isinstance(value, Mapping) and not isinstance(value, DocMap):
        raise CastError(path, "Map", value, "expected an object")
    assert spec.item is not None
    docmap = DocMap(spec.item, parent=parent, segment=segment)
    for key, raw in list(value.items()):
        docmap._load_entry(key, raw, path, errors)
    return docmap


def _cast_array(
    spec: FieldSpec,
    value: Any,
    path: str,
    parent: Optional[TreeNode],
    segment: Optional[str],
    errors: Optional[CastErrors],
) -> "DocArray":
    from arangomap.document.docarray import DocArray

    if isinstance(value, (str, bytes, Mapping)) or not hasattr(value, "__iter__"):
        value = [value]
    array = DocArray(spec, parent=parent, segment=segment)
    array._load(list(value), path, errors)
    return array


def apply_defaults(
    document: BaseDocument,
    skip: Optional[List[str]] = None,
    errors: Optional[CastErrors] = None,
    prefix: Optional[str] = None,
) -> List[str]:
    """
    Fill in missing fields that declare a default.

    Args:
        document: Document whose fields are filled
        skip: Field names to leave alone
        errors: Collects cast failures by path; without it they are raised
        prefix: Path of the document, when it is not attached yet

    Returns:
        Names of the fields that were filled
    """
    filled: List[str] = []
    skip = skip or []
    base = document.full_path if prefix is None else prefix
    for name, spec in document.schema.fields.items():
        if name in document._data or not spec.has_default or name in skip:
            continue
        path = join_path(base, name)
        try:
            document._data[name] = cast_field_value(spec, spec.default_value(), path, document, name, errors)
        except CastError as e:
            if errors is None:
                raise
            errors[e.path] = e
            continue
        filled.append(name)
    return filled
