"""
Base interface for document storage backends.

Backends are bound to a single collection. They receive filters and updates
that have already been cast and return raw documents for rehydration.
"""
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from arangomap.query.operations import CompiledFilter, CompiledUpdate, UpdateResult
from arangomap.typings import RawDocument


class BaseDocumentStorage(ABC):
    """Base class for document storage implementations."""

    collection_name: str

    @abstractmethod
    def initialize(self) -> None:
        """
        Initialize storage, creating the collection if necessary.
        """
        pass

    @abstractmethod
    def close(self) -> None:
        """
        Release resources held by the backend.
        """
        pass

    @abstractmethod
    async def insert_one(self, document: RawDocument) -> Dict[str, Any]:
        """
        Insert a document.

        Args:
            document: Raw document; a `_key` is generated if absent

        Returns:
            Metadata of the stored document (`_key`, `_rev`)
        """
        pass

    async def insert_many(self, documents: List[RawDocument]) -> List[Dict[str, Any]]:
        """Insert documents one after another, in order."""
        return [await self.insert_one(document) for document in documents]

    @abstractmethod
    async def find(self, query: CompiledFilter, limit: Optional[int] = None) -> List[RawDocument]:
        """
        Find documents matching a compiled filter.

        Args:
            query: Compiled filter
            limit: Maximum number of documents to return

        Returns:
            Matching raw documents in storage order
        """
        pass

    async def find_one(self, query: CompiledFilter) -> Optional[RawDocument]:
        results = await self.find(query, limit=1)
        return results[0] if results else None

    @abstractmethod
    async def update_one(
        self,
        query: CompiledFilter,
        update: CompiledUpdate,
        upsert: bool = False,
    ) -> UpdateResult:
        """
        Apply an update to the first matching document.

        Args:
            query: Compiled filter selecting the document
            update: Compiled update operations
            upsert: Insert a new document when nothing matches

        Returns:
            Counts of matched/modified documents and the upserted key
        """
        pass

    @abstractmethod
    async def delete_one(self, query: CompiledFilter) -> int:
        """
        Delete the first matching document.

        Returns:
            Number of deleted documents (0 or 1)
        """
        pass

    @abstractmethod
    async def count(self, query: CompiledFilter) -> int:
        """Count matching documents."""
        pass
