"""Append-only, hash-chained audit log.

Entries are grouped into one chain per resource. Each entry's hash covers
its own fields, its metadata, its position and the previous entry's hash
for the same resource, so editing, deleting or reordering any entry is
detectable by ``verify_chain``. Entries are never updated or deleted; a
correction is a new entry referencing the original.

Chain order is enforced by the store rather than by the process: entry
``n`` of resource ``r`` is stored under the id ``r:n`` with a create-only
write, so of two writers that read the same chain head only one can claim
the next position. The loser re-reads the head and tries again.
"""

from __future__ import annotations

import logging
from typing import Any

from campaign_governance.core.config import AuditConfig
from campaign_governance.core.errors import Internal, Unavailable
from campaign_governance.core.types import AuditEntry, ChainVerification, utc_timestamp
from campaign_governance.governance.hashing import GENESIS_HASH, compute_hash
from campaign_governance.repositories.errors import DocumentExists, DocumentNotFound
from campaign_governance.repositories.protocols import Document, DocumentStore

logger = logging.getLogger(__name__)


def _entry_hash(entry: AuditEntry) -> str:
    return compute_hash(
        entry.action,
        entry.resource_id,
        entry.actor_id,
        entry.timestamp,
        metadata=entry.metadata,
        sequence=entry.sequence,
        previous_hash=entry.previous_hash,
    )


def entry_id_for(resource_id: str, sequence: int) -> str:
    """Storage id of the entry at ``sequence`` in a resource's chain."""
    return f"{resource_id}:{sequence}"


class AuditLogger:
    """Audit log over a DocumentStore.

    Args:
        store: The document store holding the entries.
        config: AuditConfig instance. Defaults to AuditConfig() which reads
            from environment variables.
    """

    def __init__(self, store: DocumentStore, config: AuditConfig | None = None) -> None:
        self._store = store
        self._config = config or AuditConfig()
        if self._config.hash_algorithm != "sha256":
            raise ValueError(
                f"Unsupported hash algorithm '{self._config.hash_algorithm}'."
            )
        self._collection = self._config.collection

    async def _resource_docs(self, resource_id: str) -> list[Document]:
        return await self._store.query(
            self._collection, filters={"resource_id": resource_id}
        )

    async def _last_entry(self, resource_id: str) -> AuditEntry | None:
        docs = await self._store.query(
            self._collection,
            filters={"resource_id": resource_id},
            order_by="-sequence",
            limit=1,
        )
        if not docs:
            return None
        try:
            return AuditEntry.from_document(docs[0].doc_id, docs[0].data)
        except ValueError as exc:
            raise Internal(
                f"Audit chain head {docs[0].doc_id} for {resource_id} is malformed"
            ) from exc

    async def append(
        self,
        action: str,
        resource_id: str,
        actor_id: str,
        metadata: dict[str, Any] | None = None,
    ) -> AuditEntry:
        """Append an entry to the resource's chain.

        Concurrent appends to the same resource, from this process or any
        other writer sharing the store, each land on their own position.
        Storage failures propagate to the caller.

        Raises:
            Unavailable: The chain stayed contended for
                ``max_append_attempts`` attempts.
            Internal: The current chain head cannot be parsed.
        """
        metadata = dict(metadata or {})
        for attempt in range(1, self._config.max_append_attempts + 1):
            last = await self._last_entry(resource_id)
            previous_hash = last.hash if last else GENESIS_HASH
            sequence = last.sequence + 1 if last else 1
            timestamp = utc_timestamp()

            entry = AuditEntry(
                entry_id=entry_id_for(resource_id, sequence),
                action=action,
                resource_id=resource_id,
                actor_id=actor_id,
                timestamp=timestamp,
                metadata=metadata,
                sequence=sequence,
                previous_hash=previous_hash,
                hash=compute_hash(
                    action,
                    resource_id,
                    actor_id,
                    timestamp,
                    metadata=metadata,
                    sequence=sequence,
                    previous_hash=previous_hash,
                ),
            )
            try:
                await self._store.create(self._collection, entry.entry_id, entry.to_document())
            except DocumentExists:
                logger.debug(
                    "Audit position %d on %s taken (attempt %d)", sequence, resource_id, attempt
                )
                continue

            logger.debug("Audit %s on %s by %s (#%d)", action, resource_id, actor_id, sequence)
            return entry

        raise Unavailable(
            f"Audit chain for {resource_id} stayed contended after "
            f"{self._config.max_append_attempts} attempts"
        )

    async def get(self, entry_id: str) -> AuditEntry | None:
        try:
            doc = await self._store.get(self._collection, entry_id)
        except DocumentNotFound:
            return None
        return AuditEntry.from_document(doc.doc_id, doc.data)

    async def verify(self, entry_id: str) -> bool:
        """Recompute an entry's hash from its stored fields.

        Returns False on mismatch, on malformed stored data, or when the
        entry does not exist. Never raises for tampering.
        """
        try:
            doc = await self._store.get(self._collection, entry_id)
        except DocumentNotFound:
            logger.warning("Audit entry %s not found during verification", entry_id)
            return False
        try:
            entry = AuditEntry.from_document(doc.doc_id, doc.data)
        except ValueError:
            logger.warning("Audit entry %s is malformed", entry_id)
            return False
        if _entry_hash(entry) != entry.hash:
            logger.warning("Audit entry %s failed hash verification", entry_id)
            return False
        return True

    async def list_by_resource(self, resource_id: str) -> list[AuditEntry]:
        """Return the resource's entries in append (and timestamp) order.

        Entries whose stored data no longer parses are left out and logged;
        ``verify_chain`` reports them.
        """
        entries = []
        for doc in await self._resource_docs(resource_id):
            try:
                entries.append(AuditEntry.from_document(doc.doc_id, doc.data))
            except ValueError:
                logger.warning("Audit entry %s for %s is malformed", doc.doc_id, resource_id)
        return sorted(entries, key=lambda e: e.sequence)

    async def verify_chain(self, resource_id: str) -> ChainVerification:
        """Walk the resource's chain checking hashes, linkage and continuity."""
        entries = []
        for doc in await self._resource_docs(resource_id):
            try:
                entries.append(AuditEntry.from_document(doc.doc_id, doc.data))
            except ValueError:
                logger.warning(
                    "Audit chain for %s broken at entry %s: malformed entry",
                    resource_id,
                    doc.doc_id,
                )
                return ChainVerification(
                    resource_id=resource_id,
                    valid=False,
                    failed_entry_id=doc.doc_id,
                    reason="malformed entry",
                )
        entries.sort(key=lambda e: e.sequence)

        expected_previous = GENESIS_HASH
        for position, entry in enumerate(entries, start=1):
            reason = None
            if entry.sequence != position:
                reason = f"sequence gap: expected {position}, found {entry.sequence}"
            elif entry.previous_hash != expected_previous:
                reason = "previous hash does not match the preceding entry"
            elif _entry_hash(entry) != entry.hash:
                reason = "entry hash does not match its fields"

            if reason is not None:
                logger.warning(
                    "Audit chain for %s broken at entry %s: %s",
                    resource_id,
                    entry.entry_id,
                    reason,
                )
                return ChainVerification(
                    resource_id=resource_id,
                    valid=False,
                    entries_checked=position,
                    failed_entry_id=entry.entry_id,
                    reason=reason,
                )
            expected_previous = entry.hash

        return ChainVerification(
            resource_id=resource_id,
            valid=True,
            entries_checked=len(entries),
        )
