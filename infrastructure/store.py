"""Document store client"""
import logging
from typing import Dict
from uuid import UUID

from pydantic import BaseModel

logger = logging.getLogger(__name__)


class StoreClosedError(RuntimeError):
    """Raised when a collection is used before open() or after close()."""

    pass


class InMemoryDocumentStore:
    """Process-local document store with an explicit open/close lifecycle.

    Documents are kept per named collection, keyed by id. Reads and writes
    hand out copies so a caller mutating a loaded record does not change
    the stored one until it is written back.
    """

    def __init__(self, name: str = "hotel"):
        self.name = name
        self._collections: Dict[str, Dict[UUID, BaseModel]] = {}
        self._open = False

    @property
    def is_open(self) -> bool:
        return self._open

    async def open(self) -> None:
        self._open = True
        logger.info("Document store %s opened", self.name)

    async def close(self) -> None:
        self._open = False
        logger.info("Document store %s closed", self.name)

    def clear(self) -> None:
        """Drop every collection"""
        self._collections.clear()

    def collection(self, name: str) -> "Collection":
        if not self._open:
            raise StoreClosedError(f"Document store {self.name} is not open")
        return Collection(self._collections.setdefault(name, {}))


class Collection:
    """Thin view over one named collection"""

    def __init__(self, documents: Dict[UUID, BaseModel]):
        self._documents = documents

    def get(self, document_id: UUID):
        document = self._documents.get(document_id)
        return document.model_copy(deep=True) if document is not None else None

    def put(self, document_id: UUID, document: BaseModel) -> None:
        self._documents[document_id] = document.model_copy(deep=True)

    def contains(self, document_id: UUID) -> bool:
        return document_id in self._documents

    def values(self):
        return [d.model_copy(deep=True) for d in self._documents.values()]
