"""
In-memory document storage.

Holds documents in insertion order inside a plain dict and evaluates
compiled filters in Python. Used for tests and for running without a
database server.
"""
import copy
import logging
from typing import Any, Dict, List, Optional

from arangomap.errors import StorageError
from arangomap.query.operations import CompiledFilter, CompiledUpdate, UpdateResult
from arangomap.storage.base import BaseDocumentStorage
from arangomap.storage.documents import apply_update, build_upsert_document, matches
from arangomap.storage.utils import generate_key, is_valid_key
from arangomap.typings import DOCUMENT_KEY, DOCUMENT_REV, RawDocument

logger = logging.getLogger(__name__)


class MemoryDocumentStorage(BaseDocumentStorage):
    """Document storage backed by a dictionary."""

    def __init__(self, collection_name: str = "documents") -> None:
        self.collection_name = collection_name
        self.documents: Dict[str, RawDocument] = {}
        self._revision = 0
        self._initialized = False

    def initialize(self) -> None:
        self._initialized = True
        logger.debug(f"Initialized in-memory collection {self.collection_name}")

    def close(self) -> None:
        self._initialized = False

    def _next_revision(self) -> str:
        self._revision += 1
        return str(self._revision)

    def _store(self, document: RawDocument) -> Dict[str, Any]:
        stored = copy.deepcopy(document)
        key = stored.get(DOCUMENT_KEY) or generate_key()
        if not isinstance(key, str) or not is_valid_key(key):
            raise StorageError(f"Invalid document key {key!r}")
        stored[DOCUMENT_KEY] = key
        stored[DOCUMENT_REV] = self._next_revision()
        self.documents[key] = stored
        return {DOCUMENT_KEY: key, DOCUMENT_REV: stored[DOCUMENT_REV]}

    async def insert_one(self, document: RawDocument) -> Dict[str, Any]:
        key = document.get(DOCUMENT_KEY)
        if key is not None and key in self.documents:
            raise StorageError(f"Unique constraint violated: document {key} already exists in {self.collection_name}")
        return self._store(document)

    async def find(self, query: CompiledFilter, limit: Optional[int] = None) -> List[RawDocument]:
        results: List[RawDocument] = []
        for document in self.documents.values():
            if limit is not None and len(results) >= limit:
                break
            if matches(document, query):
                results.append(copy.deepcopy(document))
        return results

    async def update_one(
        self,
        query: CompiledFilter,
        update: CompiledUpdate,
        upsert: bool = False,
    ) -> UpdateResult:
        for key, document in self.documents.items():
            if not matches(document, query):
                continue
            updated, changed = apply_update(document, update)
            if changed:
                updated[DOCUMENT_KEY] = key
                updated[DOCUMENT_REV] = self._next_revision()
                self.documents[key] = updated
            return UpdateResult(matched_count=1, modified_count=1 if changed else 0)

        if not upsert:
            return UpdateResult()

        document = build_upsert_document(query, update)
        meta = self._store(document)
        logger.debug(f"Upserted document {meta[DOCUMENT_KEY]} into {self.collection_name}")
        return UpdateResult(upserted_key=meta[DOCUMENT_KEY])

    async def delete_one(self, query: CompiledFilter) -> int:
        for key, document in self.documents.items():
            if matches(document, query):
                del self.documents[key]
                return 1
        return 0

    async def count(self, query: CompiledFilter) -> int:
        return sum(1 for document in self.documents.values() if matches(document, query))
