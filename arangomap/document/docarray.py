"""
Array container for array fields.

Items are cast into the array's item spec on the way in. Any structural
mutation marks the array path modified; changes inside embedded elements are
reported at their element path (``employees.1.apiKeys.github``).
"""
from typing import Any, Iterable, List, Optional, SupportsIndex, Union

from arangomap.document.base import CastErrors, TreeNode, cast_field_value, join_path, to_plain
from arangomap.errors import CastError
from arangomap.schema.fields import FieldKind, FieldSpec


class DocArray(list, TreeNode):
    """A list that casts its items and tracks modifications."""

    def __init__(
        self,
        spec: FieldSpec,
        parent: Optional[TreeNode] = None,
        segment: Optional[str] = None,
    ) -> None:
        super().__init__()
        self._spec = spec
        self._attach(parent, segment)

    def _path_of(self, child: TreeNode) -> str:
        for index, item in enumerate(self):
            if item is child:
                return join_path(self.full_path, index)
        return join_path(self.full_path, child._segment or "")

    def _discriminator_key(self) -> str:
        owner = getattr(self._spec, "_owner", None)
        return owner.discriminator_key if owner is not None else "__t"

    def _cast_item(self, value: Any, path: str, errors: Optional[CastErrors]) -> Any:
        item_spec = self._spec.item
        assert item_spec is not None
        if item_spec.kind is FieldKind.EMBEDDED and self._spec.discriminators:
            from arangomap.document.base import _cast_embedded

            if value is None:
                return None
            schema = self._spec.variant_schema(value, self._discriminator_key())
            assert schema is not None
            return _cast_embedded(schema, value, path, self, None, errors)
        return cast_field_value(item_spec, value, path, self, None, errors)

    def _load(self, values: List[Any], prefix: str, errors: Optional[CastErrors]) -> None:
        for index, raw in enumerate(values):
            path = join_path(prefix, index)
            try:
                super().append(self._cast_item(raw, path, errors))
            except CastError as e:
                if errors is None:
                    raise
                errors[e.path] = e

    def _cast_many(self, values: Iterable[Any], start: int) -> List[Any]:
        return [
            self._cast_item(value, join_path(self.full_path, start + offset), None)
            for offset, value in enumerate(values)
        ]

    def _changed(self) -> None:
        self._notify_modified(self.full_path)

    # ------------------------------------------------------------------
    # Mutating list operations
    # ------------------------------------------------------------------

    def append(self, value: Any) -> None:
        super().append(self._cast_many([value], len(self))[0])
        self._changed()

    def extend(self, values: Iterable[Any]) -> None:
        super().extend(self._cast_many(list(values), len(self)))
        self._changed()

    def __iadd__(self, values: Iterable[Any]) -> "DocArray":
        self.extend(values)
        return self

    def insert(self, index: SupportsIndex, value: Any) -> None:
        super().insert(index, self._cast_many([value], int(index))[0])
        self._changed()

    def __setitem__(self, index: Union[SupportsIndex, slice], value: Any) -> None:
        if isinstance(index, slice):
            super().__setitem__(index, self._cast_many(list(value), index.start or 0))
        else:
            super().__setitem__(index, self._cast_many([value], int(index))[0])
        self._changed()

    def __delitem__(self, index: Union[SupportsIndex, slice]) -> None:
        super().__delitem__(index)
        self._changed()

    def pop(self, index: SupportsIndex = -1) -> Any:
        value = super().pop(index)
        self._changed()
        return value

    def remove(self, value: Any) -> None:
        super().remove(value)
        self._changed()

    def clear(self) -> None:
        super().clear()
        self._changed()

    def sort(self, *, key: Any = None, reverse: bool = False) -> None:
        super().sort(key=key, reverse=reverse)
        self._changed()

    def reverse(self) -> None:
        super().reverse()
        self._changed()

    def to_object(self) -> List[Any]:
        return [to_plain(item) for item in self]

    def __repr__(self) -> str:
        return f"DocArray({self.to_object()!r})"
