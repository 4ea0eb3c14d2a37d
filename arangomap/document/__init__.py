"""
Document layer: root/embedded documents and their typed containers.
"""

from .base import BaseDocument, apply_defaults, cast_field_value, to_plain
from .docarray import DocArray
from .docmap import DocMap
from .embedded import EmbeddedDocument

__all__ = [
    "BaseDocument",
    "apply_defaults",
    "cast_field_value",
    "to_plain",
    "DocArray",
    "DocMap",
    "EmbeddedDocument",
]
