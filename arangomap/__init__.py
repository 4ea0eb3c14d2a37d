"""
arangomap: an asynchronous document mapper for ArangoDB.

Schemas declare typed fields, including map fields whose entries are cast
and validated individually; models persist documents and cast queries and
updates into dotted-path operations.
"""

from importlib.metadata import version, PackageNotFoundError

try:
    __version__ = version("arangomap")
except PackageNotFoundError:
    # Package is not installed
    __version__ = "unknown"

from arangomap.connection import Connection
from arangomap.core.config import ODMConfig, load_config
from arangomap.core.logging_setup import setup_logging
from arangomap.document import DocArray, DocMap, EmbeddedDocument
from arangomap.errors import (
    CastError,
    DocumentNotFoundError,
    InvalidMapKeyError,
    MissingSchemaError,
    ODMError,
    SchemaError,
    StorageError,
    ValidationError,
    ValidatorError,
)
from arangomap.model import Model
from arangomap.query.builder import Query
from arangomap.query.operations import UpdateResult
from arangomap.schema import Boolean, Date, Field, Key, Map, Mixed, Number, Schema, String

__all__ = [
    "__version__",
    "Connection",
    "ODMConfig",
    "load_config",
    "setup_logging",
    "DocArray",
    "DocMap",
    "EmbeddedDocument",
    "CastError",
    "DocumentNotFoundError",
    "InvalidMapKeyError",
    "MissingSchemaError",
    "ODMError",
    "SchemaError",
    "StorageError",
    "ValidationError",
    "ValidatorError",
    "Model",
    "Query",
    "UpdateResult",
    "Boolean",
    "Date",
    "Field",
    "Key",
    "Map",
    "Mixed",
    "Number",
    "Schema",
    "String",
]
