"""
ArangoDB storage implementation.

This module provides the connection manager and a document storage backend
that runs compiled filters as AQL and applies updates with revision checks.
python-arango is synchronous, so every database call is run in the event
loop's default executor.
"""
import asyncio
import logging
from typing import Any, Callable, Dict, List, Optional, TypeVar

from arango import ArangoClient
from arango.collection import StandardCollection
from arango.database import StandardDatabase
from arango.exceptions import (
    AQLQueryExecuteError,
    DocumentInsertError,
    DocumentReplaceError,
    DocumentRevisionError,
)

from arangomap.errors import StorageError
from arangomap.query.operations import CompiledFilter, CompiledUpdate, UpdateResult
from arangomap.storage.aql import AQLBuilder
from arangomap.storage.base import BaseDocumentStorage
from arangomap.storage.documents import apply_update, build_upsert_document, to_json
from arangomap.typings import DOCUMENT_KEY, DOCUMENT_REV, RawDocument

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Attempts made by update_one when the matched document changes underneath it
_MAX_UPDATE_ATTEMPTS = 3


class ArangoDBConnection:
    """Manages the connection to ArangoDB."""

    def __init__(
        self,
        host: str = "localhost",
        port: int = 8529,
        username: str = "root",
        password: str = "",
        database: str = "arangomap",
        timeout: int = 30,
        use_ssl: bool = False,
    ) -> None:
        """
        Initialize the ArangoDB connection.

        Args:
            host: ArangoDB host
            port: ArangoDB port
            username: ArangoDB username
            password: ArangoDB password
            database: Database name
            timeout: Connection timeout in seconds
            use_ssl: Connect over https
        """
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.database_name = database
        self.timeout = timeout
        self.use_ssl = use_ssl

        self.client: Optional[ArangoClient] = None
        self.db: Optional[StandardDatabase] = None

        logger.info(f"Initialized ArangoDB connection to {host}:{port}/{database}")

    @property
    def url(self) -> str:
        scheme = "https" if self.use_ssl else "http"
        return f"{scheme}://{self.host}:{self.port}"

    def connect(self) -> StandardDatabase:
        """
        Connect to ArangoDB and return the database instance.

        The database is created through `_system` when it does not exist.
        """
        if self.db is not None:
            return self.db

        self.client = ArangoClient(hosts=self.url, request_timeout=self.timeout)

        sys_db = self.client.db(
            "_system",
            username=self.username,
            password=self.password,
            verify=True
        )

        if not sys_db.has_database(self.database_name):
            logger.info(f"Creating database {self.database_name}")
            sys_db.create_database(
                name=self.database_name,
                users=[{"username": self.username, "password": self.password, "active": True}]
            )

        self.db = self.client.db(
            self.database_name,
            username=self.username,
            password=self.password,
            verify=True
        )

        logger.info(f"Connected to ArangoDB database {self.database_name}")
        return self.db

    def close(self) -> None:
        """Close the ArangoDB connection."""
        if self.client is not None:
            self.client.close()
        self.db = None
        self.client = None
        logger.info("ArangoDB connection closed")


class ArangoDocumentStorage(BaseDocumentStorage):
    """ArangoDB implementation of document storage."""

    def __init__(
        self,
        connection: ArangoDBConnection,
        collection_name: str = "documents",
    ) -> None:
        """
        Initialize ArangoDB document storage.

        Args:
            connection: ArangoDB connection
            collection_name: Name of the collection to store documents
        """
        self.connection = connection
        self.collection_name = collection_name
        self.collection: Optional[StandardCollection] = None

    def initialize(self) -> None:
        """Initialize the document storage, creating the collection if needed."""
        db = self.connection.connect()

        if not db.has_collection(self.collection_name):
            logger.info(f"Creating collection {self.collection_name}")
            self.collection = db.create_collection(name=self.collection_name, edge=False)
        else:
            self.collection = db.collection(self.collection_name)

    def close(self) -> None:
        self.collection = None

    def _require_collection(self) -> StandardCollection:
        if self.collection is None:
            self.initialize()
        assert self.collection is not None
        return self.collection

    async def _run(self, func: Callable[[], T]) -> T:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, func)

    def _execute(self, aql: str, bind_vars: Dict[str, Any]) -> List[Any]:
        self._require_collection()
        db = self.connection.connect()
        logger.debug(f"Executing AQL: {aql}")
        try:
            cursor = db.aql.execute(aql, bind_vars=bind_vars)
            return list(cursor)
        except AQLQueryExecuteError as e:
            logger.error(f"Error executing query on {self.collection_name}: {e}")
            raise StorageError(f"Query on {self.collection_name} failed: {e}") from e

    # ------------------------------------------------------------------
    # Inserts
    # ------------------------------------------------------------------

    def _insert(self, document: RawDocument) -> Dict[str, Any]:
        collection = self._require_collection()
        try:
            meta = collection.insert(to_json(document))
        except DocumentInsertError as e:
            logger.error(f"Error inserting document into {self.collection_name}: {e}")
            raise StorageError(f"Insert into {self.collection_name} failed: {e}") from e
        return {DOCUMENT_KEY: meta[DOCUMENT_KEY], DOCUMENT_REV: meta[DOCUMENT_REV]}

    async def insert_one(self, document: RawDocument) -> Dict[str, Any]:
        return await self._run(lambda: self._insert(document))

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def _find(self, query: CompiledFilter, limit: Optional[int]) -> List[RawDocument]:
        builder = AQLBuilder()
        aql = builder.compile_query(self.collection_name, query, limit)
        return self._execute(aql, builder.bind_vars)

    async def find(self, query: CompiledFilter, limit: Optional[int] = None) -> List[RawDocument]:
        return await self._run(lambda: self._find(query, limit))

    def _count(self, query: CompiledFilter) -> int:
        builder = AQLBuilder()
        aql = builder.compile_count(self.collection_name, query)
        result = self._execute(aql, builder.bind_vars)
        return int(result[0]) if result else 0

    async def count(self, query: CompiledFilter) -> int:
        return await self._run(lambda: self._count(query))

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def _update_one(self, query: CompiledFilter, update: CompiledUpdate, upsert: bool) -> UpdateResult:
        collection = self._require_collection()
        for attempt in range(_MAX_UPDATE_ATTEMPTS):
            found = self._find(query, 1)
            if not found:
                break
            current = found[0]
            updated, changed = apply_update(current, update)
            if not changed:
                return UpdateResult(matched_count=1)
            updated[DOCUMENT_KEY] = current[DOCUMENT_KEY]
            updated[DOCUMENT_REV] = current[DOCUMENT_REV]
            try:
                collection.replace(to_json(updated), check_rev=True)
            except DocumentRevisionError:
                logger.warning(
                    f"Document {current[DOCUMENT_KEY]} changed during update "
                    f"(attempt {attempt + 1}/{_MAX_UPDATE_ATTEMPTS})"
                )
                continue
            except DocumentReplaceError as e:
                logger.error(f"Error updating document {current[DOCUMENT_KEY]}: {e}")
                raise StorageError(f"Update of {current[DOCUMENT_KEY]} failed: {e}") from e
            return UpdateResult(matched_count=1, modified_count=1)
        else:
            raise StorageError(
                f"Update on {self.collection_name} kept conflicting after {_MAX_UPDATE_ATTEMPTS} attempts"
            )

        if not upsert:
            return UpdateResult()

        meta = self._insert(build_upsert_document(query, update))
        logger.debug(f"Upserted document {meta[DOCUMENT_KEY]} into {self.collection_name}")
        return UpdateResult(upserted_key=meta[DOCUMENT_KEY])

    async def update_one(
        self,
        query: CompiledFilter,
        update: CompiledUpdate,
        upsert: bool = False,
    ) -> UpdateResult:
        return await self._run(lambda: self._update_one(query, update, upsert))

    def _delete_one(self, query: CompiledFilter) -> int:
        builder = AQLBuilder()
        aql = builder.compile_delete_one(self.collection_name, query)
        return len(self._execute(aql, builder.bind_vars))

    async def delete_one(self, query: CompiledFilter) -> int:
        return await self._run(lambda: self._delete_one(query))
