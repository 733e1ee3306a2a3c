"""Core type definitions shared across the governance modules."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, Field


class ReviewStatus(StrEnum):
    """Status of a campaign review record."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class Decision(StrEnum):
    """A reviewer's decision on a pending review."""

    APPROVE = "approve"
    REJECT = "reject"

    @property
    def target_status(self) -> ReviewStatus:
        if self is Decision.APPROVE:
            return ReviewStatus.APPROVED
        return ReviewStatus.REJECTED


class CampaignStatus(StrEnum):
    """Campaign lifecycle states touched by the review workflow."""

    DRAFT = "draft"
    IN_REVIEW = "in-review"
    APPROVED = "approved"
    REJECTED = "rejected"


def utc_timestamp() -> str:
    """Current UTC time as an ISO-8601 string."""
    return datetime.now(timezone.utc).isoformat()


class Actor(BaseModel):
    """An authenticated identity with its current role and tier assignment."""

    actor_id: str
    role_ids: tuple[str, ...] = ()
    tier_ids: tuple[str, ...] = ()

    @classmethod
    def from_document(cls, actor_id: str, data: dict[str, Any] | None) -> Actor:
        """Build an actor from a user document.

        Older user documents carry a single ``role_id`` / ``tier_id``; newer
        ones carry ``role_ids`` / ``tier_ids`` lists. Both are accepted.
        """
        data = data or {}
        roles = list(data.get("role_ids") or [])
        if data.get("role_id"):
            roles.append(data["role_id"])
        tiers = list(data.get("tier_ids") or [])
        if data.get("tier_id"):
            tiers.append(data["tier_id"])
        return cls(actor_id=actor_id, role_ids=tuple(roles), tier_ids=tuple(tiers))


class ReviewRecord(BaseModel):
    """The pending/approved/rejected decision object for one campaign."""

    review_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    resource_id: str
    status: ReviewStatus = ReviewStatus.PENDING
    submitted_by: str | None = None
    review_type: str = "content"
    priority: str = "medium"
    notes: str = ""
    reviewed_by: str | None = None
    reason: str | None = None
    created_at: str = Field(default_factory=utc_timestamp)
    reviewed_at: str | None = None

    def to_document(self) -> dict[str, Any]:
        data = self.model_dump(mode="json")
        data.pop("review_id")
        return data

    @classmethod
    def from_document(cls, review_id: str, data: dict[str, Any]) -> ReviewRecord:
        return cls(review_id=review_id, **data)


class AuditEntry(BaseModel):
    """A single hashed entry in a resource's audit chain."""

    entry_id: str | None = None
    action: str
    resource_id: str
    actor_id: str
    timestamp: str
    metadata: dict[str, Any] = Field(default_factory=dict)
    sequence: int = 1
    previous_hash: str
    hash: str

    def to_document(self) -> dict[str, Any]:
        data = self.model_dump(mode="json")
        data.pop("entry_id")
        return data

    @classmethod
    def from_document(cls, entry_id: str, data: dict[str, Any]) -> AuditEntry:
        return cls(entry_id=entry_id, **data)


class DecisionOutcome(BaseModel):
    """Result of a committed review decision.

    ``warnings`` lists secondary failures (campaign mirror, audit append,
    post-approval hooks) that happened after the decision took effect.
    """

    review_id: str
    resource_id: str
    status: ReviewStatus
    audit_entry_id: str | None = None
    warnings: list[str] = Field(default_factory=list)

    @property
    def fully_applied(self) -> bool:
        return not self.warnings


class ChainVerification(BaseModel):
    """Outcome of walking one resource's audit chain."""

    resource_id: str
    valid: bool
    entries_checked: int = 0
    failed_entry_id: str | None = None
    reason: str | None = None


class ReconcileReport(BaseModel):
    """Summary of one consistency sweep."""

    examined: int = 0
    repaired: int = 0
    skipped: int = 0
    errors: int = 0
    repaired_resources: list[str] = Field(default_factory=list)
