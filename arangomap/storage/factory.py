"""
Factory methods for creating storage implementations.

Backends are looked up by name in :class:`StorageRegistry`; additional
backends can be registered at runtime.
"""
import logging
from typing import Any, Dict, List, Optional, Union, cast

from arangomap.core.config import ODMConfig
from arangomap.storage.arango import ArangoDBConnection, ArangoDocumentStorage
from arangomap.storage.base import BaseDocumentStorage
from arangomap.storage.memory import MemoryDocumentStorage

logger = logging.getLogger(__name__)


class StorageRegistry:
    """Registry of available storage implementations."""

    _document_registry: Dict[str, type] = {
        "memory": MemoryDocumentStorage,
        "arango": ArangoDocumentStorage,
    }

    @classmethod
    def register_document_storage(cls, name: str, storage_cls: type) -> None:
        """Register a document storage implementation."""
        cls._document_registry[name.lower()] = storage_cls
        logger.info(f"Registered document storage: {name}")

    @classmethod
    def get_document_storage(cls, name: str) -> Optional[type]:
        """Get document storage class by name."""
        return cls._document_registry.get(name.lower())

    @classmethod
    def list_document_storage(cls) -> List[str]:
        """List available document storage implementations."""
        return list(cls._document_registry.keys())


def create_arango_connection(config: Union[ODMConfig, Dict[str, Any]]) -> ArangoDBConnection:
    """
    Create an ArangoDB connection from configuration.

    Args:
        config: Configuration object or dictionary

    Returns:
        ArangoDB connection
    """
    if isinstance(config, dict):
        config = ODMConfig.from_dict(config)
    if not isinstance(config, ODMConfig):
        raise ValueError("Invalid configuration type")
    return ArangoDBConnection(
        host=config.db_host,
        port=config.db_port,
        username=config.db_username,
        password=config.db_password,
        database=config.db_name,
        timeout=config.timeout,
        use_ssl=config.db_use_ssl,
    )


def create_document_storage(
    storage_type: str,
    config: Union[ODMConfig, Dict[str, Any]],
    collection_name: str,
    connection: Optional[ArangoDBConnection] = None,
    **kwargs: Any
) -> BaseDocumentStorage:
    """
    Create a document storage adapter bound to one collection.

    Args:
        storage_type: Type of storage ("memory" or "arango")
        config: Configuration object or dictionary
        collection_name: Collection the adapter reads and writes
        connection: Shared ArangoDB connection; created from `config` if omitted
        **kwargs: Additional arguments for the storage adapter

    Returns:
        Document storage adapter

    Raises:
        ValueError: If the storage type is not supported
    """
    storage_cls = StorageRegistry.get_document_storage(storage_type)
    if not storage_cls:
        available = ", ".join(StorageRegistry.list_document_storage())
        raise ValueError(
            f"Unsupported document storage type: {storage_type}. "
            f"Available types: {available}"
        )

    if storage_type.lower().startswith("arango"):
        if connection is None:
            connection = create_arango_connection(config)
        return cast(BaseDocumentStorage, storage_cls(connection, collection_name, **kwargs))

    return cast(BaseDocumentStorage, storage_cls(collection_name, **kwargs))
