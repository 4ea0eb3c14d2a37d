"""
Typed associative container for map fields.

Every value stored in a DocMap has already been cast into the map's value
spec. ``set`` and ``delete`` record the entry path as modified on the owning
document; ancestors such as the map field itself report as modified through
``Document.is_modified``.
"""
from collections.abc import MutableMapping
from typing import Any, Dict, Iterator, Optional

from arangomap.document.base import CastErrors, TreeNode, cast_field_value, join_path, to_plain
from arangomap.errors import CastError, InvalidMapKeyError
from arangomap.schema.fields import FieldSpec


class DocMap(MutableMapping, TreeNode):
    """
    Ordered ``str -> value`` container enforcing a value spec.

    Iteration follows insertion order. Overwriting an existing key keeps its
    position.
    """

    def __init__(
        self,
        value_spec: FieldSpec,
        parent: Optional[TreeNode] = None,
        segment: Optional[str] = None,
    ) -> None:
        self._spec = value_spec
        self._entries: Dict[str, Any] = {}
        self._attach(parent, segment)

    @property
    def value_spec(self) -> FieldSpec:
        return self._spec

    def _check_key(self, key: Any) -> str:
        if not isinstance(key, str) or "." in key or key.startswith("$"):
            raise InvalidMapKeyError(self.full_path, key)
        return key

    def _cast(self, key: str, value: Any, path: str, errors: Optional[CastErrors]) -> Any:
        return cast_field_value(self._spec, value, path, self, key, errors)

    def _load_entry(self, key: Any, value: Any, prefix: str, errors: Optional[CastErrors]) -> None:
        """Populate an entry during construction without marking it modified."""
        key = self._check_key(key)
        path = join_path(prefix, key)
        try:
            self._entries[key] = self._cast(key, value, path, errors)
        except CastError as e:
            if errors is None:
                raise
            errors[e.path] = e

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------

    def set(self, key: str, value: Any) -> "DocMap":
        """
        Cast and store ``value`` under ``key``.

        Raises:
            InvalidMapKeyError: If the key is not a valid map key
            CastError: If the value cannot be cast; the map is left unchanged
        """
        key = self._check_key(key)
        path = join_path(self.full_path, key)
        casted = self._cast(key, value, path, None)
        self._entries[key] = casted
        self._notify_modified(path)
        return self

    def delete(self, key: str) -> bool:
        """Remove ``key``. Returns False if it was not present."""
        if key not in self._entries:
            return False
        del self._entries[key]
        self._notify_modified(join_path(self.full_path, key))
        return True

    def has(self, key: str) -> bool:
        return key in self._entries

    @property
    def size(self) -> int:
        return len(self._entries)

    def to_object(self) -> Dict[str, Any]:
        return {key: to_plain(value) for key, value in self._entries.items()}

    # ------------------------------------------------------------------
    # MutableMapping protocol
    # ------------------------------------------------------------------

    def __getitem__(self, key: str) -> Any:
        return self._entries[key]

    def __setitem__(self, key: str, value: Any) -> None:
        self.set(key, value)

    def __delitem__(self, key: str) -> None:
        if not self.delete(key):
            raise KeyError(key)

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __eq__(self, other: object) -> bool:
        if isinstance(other, DocMap):
            return self.to_object() == other.to_object()
        if isinstance(other, dict):
            return self.to_object() == to_plain(other)
        return NotImplemented

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return f"DocMap({self.to_object()!r})"
