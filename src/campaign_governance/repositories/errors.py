"""Storage-layer exceptions."""

from __future__ import annotations


class StorageError(Exception):
    """Base exception for document store failures."""


class DocumentNotFound(StorageError):
    """Raised when a document id does not exist in a collection."""

    def __init__(self, collection: str, doc_id: str) -> None:
        super().__init__(f"Document '{doc_id}' not found in '{collection}'.")
        self.collection = collection
        self.doc_id = doc_id


class PreconditionFailed(StorageError):
    """Raised when a conditional update's precondition does not hold."""


class StorageUnavailable(StorageError):
    """Raised when the backing store cannot be reached or fails mid-operation."""


class DocumentExists(PreconditionFailed):
    """Raised when a create-only write targets an id that is already taken."""

    def __init__(self, collection: str, doc_id: str) -> None:
        super().__init__(f"Document '{doc_id}' already exists in '{collection}'.")
        self.collection = collection
        self.doc_id = doc_id
