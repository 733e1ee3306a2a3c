"""Repository layer for campaign governance.

Provides the DocumentStore protocol, an in-memory implementation for tests
and single-process use, a SQL implementation over SQLAlchemy async, and a
resolve() helper for callables that may or may not be async.
"""

from __future__ import annotations

import inspect
from typing import Awaitable, TypeVar

from campaign_governance.repositories.errors import (
    DocumentExists,
    DocumentNotFound,
    PreconditionFailed,
    StorageError,
    StorageUnavailable,
)
from campaign_governance.repositories.memory import InMemoryDocumentStore
from campaign_governance.repositories.protocols import Document, DocumentStore
from campaign_governance.repositories.sql import SqlDocumentStore

T = TypeVar("T")


async def resolve(value: T | Awaitable[T]) -> T:
    """Await a value if it is awaitable, otherwise return it directly.

    Lets callers treat sync and async hooks uniformly:
        await resolve(hook(outcome))
    """
    if inspect.isawaitable(value):
        return await value  # type: ignore[return-value]
    return value  # type: ignore[return-value]


__all__ = [
    "Document",
    "DocumentExists",
    "DocumentNotFound",
    "DocumentStore",
    "InMemoryDocumentStore",
    "PreconditionFailed",
    "SqlDocumentStore",
    "StorageError",
    "StorageUnavailable",
    "resolve",
]
