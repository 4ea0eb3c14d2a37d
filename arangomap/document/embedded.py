"""Embedded (nested) documents held by fields, map entries and array elements."""
from typing import Any, Mapping, Optional

from arangomap.document.base import BaseDocument, CastErrors, TreeNode
from arangomap.schema.schema import Schema


class EmbeddedDocument(BaseDocument):
    """
    A subdocument with its own schema.

    Its schema may be a discriminator variant, in which case the variant name
    is stored under the schema's discriminator key.
    """

    def __init__(
        self,
        data: Optional[Mapping[str, Any]] = None,
        *,
        schema: Schema,
        parent: Optional[TreeNode] = None,
        segment: Optional[str] = None,
        path: str = "",
        errors: Optional[CastErrors] = None,
    ) -> None:
        object.__setattr__(self, "schema", schema)
        self._attach(parent, segment)
        collected: CastErrors = {} if errors is None else errors
        self._init_fields(data, collected, path)
        if errors is None and collected:
            # Standalone construction: surface the first failure
            raise next(iter(collected.values()))

    @property
    def parent(self) -> Optional[TreeNode]:
        return self._parent
