"""
Connections: one storage backend, many models.

A connection reads an :class:`ODMConfig`, creates a storage adapter per
collection through the storage factory, and compiles schemas into model
classes.
"""
import logging
from typing import Any, Dict, Mapping, Optional, Type, Union

from arangomap.core.config import ODMConfig
from arangomap.errors import MissingSchemaError, SchemaError
from arangomap.model import Model, check_field_names
from arangomap.schema.schema import Schema
from arangomap.storage.arango import ArangoDBConnection
from arangomap.storage.base import BaseDocumentStorage
from arangomap.storage.factory import create_arango_connection, create_document_storage
from arangomap.storage.utils import safe_name

logger = logging.getLogger(__name__)


class Connection:
    """
    Entry point for defining models.

    Example:
        conn = Connection(ODMConfig(storage_type="memory"))
        Test = conn.model("Test", conn.schema({"v": Field(Map, of=Number)}))
        doc = await Test.create({"v": {"x": 1}})
    """

    def __init__(self, config: Optional[Union[ODMConfig, Dict[str, Any]]] = None) -> None:
        if config is None:
            config = ODMConfig()
        elif isinstance(config, dict):
            config = ODMConfig.from_dict(config)
        self.config = config
        self.models: Dict[str, Type[Model]] = {}
        self._storages: Dict[str, BaseDocumentStorage] = {}
        self._arango: Optional[ArangoDBConnection] = None
        if config.storage_type == "arango":
            self._arango = create_arango_connection(config)
        logger.info(f"Created {config.storage_type} connection")

    def schema(self, definition: Optional[Mapping[str, Any]] = None) -> Schema:
        """Create a schema using this connection's discriminator key."""
        return Schema(definition, discriminator_key=self.config.discriminator_key)

    def storage_for(self, collection: str) -> BaseDocumentStorage:
        """Return the storage adapter for a collection, creating it on first use."""
        if collection not in self._storages:
            self._storages[collection] = create_document_storage(
                self.config.storage_type,
                self.config,
                collection,
                connection=self._arango,
            )
        return self._storages[collection]

    def model(self, name: str, schema: Schema, collection: Optional[str] = None) -> Type[Model]:
        """
        Compile a schema into a model class.

        Args:
            name: Model name, unique per connection
            schema: Schema of the documents; frozen by this call
            collection: Collection name; derived from the model name if omitted

        Returns:
            The model class

        Raises:
            SchemaError: If the name is taken or a field shadows a model attribute
        """
        if name in self.models:
            raise SchemaError(f"Model '{name}' is already defined on this connection")
        check_field_names(schema)

        collection_name = collection or safe_name(name, prefix=self.config.collection_prefix)
        schema.freeze()
        model_cls = type(name, (Model,), {
            "schema": schema,
            "model_name": name,
            "collection_name": collection_name,
            "connection": self,
            "storage": self.storage_for(collection_name),
            "base_model": None,
            "variants": {},
        })
        self.register(name, model_cls)
        return model_cls

    def register(self, name: str, model_cls: Type[Model]) -> None:
        if name in self.models and self.models[name] is not model_cls:
            raise SchemaError(f"Model '{name}' is already defined on this connection")
        self.models[name] = model_cls
        logger.info(f"Registered model {name} on collection {model_cls.collection_name}")

    def get_model(self, name: str) -> Type[Model]:
        try:
            return self.models[name]
        except KeyError:
            raise MissingSchemaError(f"Schema hasn't been registered for model \"{name}\"")

    async def close(self) -> None:
        """Close every storage adapter and the database connection."""
        for storage in self._storages.values():
            storage.close()
        self._storages.clear()
        if self._arango is not None:
            self._arango.close()
        logger.info("Connection closed")
