"""
Storage backends for arangomap.

Backends receive compiled filters and updates and exchange raw documents.
"""
from arangomap.storage.arango import ArangoDBConnection, ArangoDocumentStorage
from arangomap.storage.base import BaseDocumentStorage
from arangomap.storage.factory import StorageRegistry, create_arango_connection, create_document_storage
from arangomap.storage.memory import MemoryDocumentStorage
from arangomap.storage.utils import generate_key, is_valid_key, safe_key, safe_name

__all__ = [
    "ArangoDBConnection",
    "ArangoDocumentStorage",
    "BaseDocumentStorage",
    "MemoryDocumentStorage",
    "StorageRegistry",
    "create_arango_connection",
    "create_document_storage",
    "generate_key",
    "is_valid_key",
    "safe_key",
    "safe_name",
]
