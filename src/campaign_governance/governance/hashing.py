"""Audit entry digests.

Each digest is SHA-256 over a canonical JSON serialization of the entry's
declared fields. When a predecessor digest is supplied it is folded into
the serialization, turning a resource's entries into a verifiable chain.
"""

from __future__ import annotations

import hashlib
import json
from typing import Any

from campaign_governance.core.errors import Internal

GENESIS_HASH = hashlib.sha256(b"campaign-governance-genesis").hexdigest()


def canonical_payload(
    action: str,
    resource_id: str,
    actor_id: str,
    timestamp: str,
    *,
    metadata: dict[str, Any] | None = None,
    sequence: int | None = None,
    previous_hash: str | None = None,
) -> str:
    """Serialize the hashed fields deterministically (sorted keys, no whitespace)."""
    fields: dict[str, Any] = {
        "action": action,
        "resourceId": resource_id,
        "actorId": actor_id,
        "timestamp": timestamp,
    }
    if metadata is not None:
        fields["metadata"] = metadata
    if sequence is not None:
        fields["sequence"] = sequence
    if previous_hash is not None:
        fields["previousHash"] = previous_hash
    try:
        return json.dumps(fields, sort_keys=True, separators=(",", ":"), ensure_ascii=False)
    except (TypeError, ValueError) as exc:
        raise Internal(f"Audit payload is not serializable: {exc}") from exc


def compute_hash(
    action: str,
    resource_id: str,
    actor_id: str,
    timestamp: str,
    *,
    metadata: dict[str, Any] | None = None,
    sequence: int | None = None,
    previous_hash: str | None = None,
) -> str:
    """Return the hex SHA-256 digest of an audit entry's fields.

    Identical inputs always give the identical digest; changing any field
    changes it.
    """
    payload = canonical_payload(
        action,
        resource_id,
        actor_id,
        timestamp,
        metadata=metadata,
        sequence=sequence,
        previous_hash=previous_hash,
    )
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()
