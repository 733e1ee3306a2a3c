"""Campaign review state machine.

A review moves ``pending -> approved`` or ``pending -> rejected`` exactly
once. The transition is a conditional write on ``status == pending``, so
of several concurrent decisions only the first to commit wins; the others
fail with FailedPrecondition. Work after the commit (mirroring the status
onto the campaign, the audit entry, post-approval hooks) never undoes the
decision: its failures are reported as warnings on the outcome.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Iterable, TypeVar

from campaign_governance.core.config import GovernanceConfig
from campaign_governance.core.errors import (
    DeadlineExceeded,
    FailedPrecondition,
    GovernanceError,
    Internal,
    InvalidArgument,
    NotFound,
    PermissionDenied,
    Unauthenticated,
    Unavailable,
)
from campaign_governance.core.types import (
    Actor,
    CampaignStatus,
    Decision,
    DecisionOutcome,
    ReviewRecord,
    ReviewStatus,
    utc_timestamp,
)
from campaign_governance.governance.audit import AuditLogger
from campaign_governance.permissions.model import PermissionModel
from campaign_governance.repositories import resolve
from campaign_governance.repositories.errors import (
    DocumentNotFound,
    PreconditionFailed,
    StorageError,
    StorageUnavailable,
)
from campaign_governance.repositories.protocols import DocumentStore

logger = logging.getLogger(__name__)

T = TypeVar("T")

PostApprovalHook = Callable[[DecisionOutcome], Any]

REVIEW_TYPES = ("content", "compliance", "strategy")
PRIORITIES = ("low", "medium", "high")

ALREADY_DECIDED = "review already decided"


class GovernanceEngine:
    """Approval workflow for campaign reviews.

    Args:
        store: Document store holding users, reviews, campaigns and audit entries.
        permissions: PermissionModel bound to the role/tier catalog.
        audit_logger: AuditLogger that records every governance action.
        config: GovernanceConfig. Defaults to GovernanceConfig() which reads
            from environment variables.
        on_approved: Hooks invoked after a successful approve transition.
            Each receives the DecisionOutcome and may be sync or async.

    Raises:
        ValueError: If the configured permissions are not in the catalog.
    """

    def __init__(
        self,
        store: DocumentStore,
        permissions: PermissionModel,
        audit_logger: AuditLogger,
        config: GovernanceConfig | None = None,
        on_approved: Iterable[PostApprovalHook] = (),
    ) -> None:
        self._store = store
        self._permissions = permissions
        self._audit = audit_logger
        self._config = config or GovernanceConfig()
        self._hooks: list[PostApprovalHook] = list(on_approved)

        self._permissions.validate_permissions(
            [*self._config.approval_permissions, *self._config.submit_permissions]
        )

    def add_approval_hook(self, hook: PostApprovalHook) -> None:
        """Register a hook to run after every successful approval."""
        self._hooks.append(hook)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _timeout(self, timeout: float | None) -> float:
        return self._config.io_timeout_seconds if timeout is None else timeout

    async def _io(self, awaitable: Awaitable[T], timeout: float, step: str) -> T:
        """Run one storage step under the caller's deadline."""
        try:
            return await asyncio.wait_for(awaitable, timeout)
        except asyncio.TimeoutError as exc:
            raise DeadlineExceeded(f"{step} exceeded the {timeout}s deadline") from exc
        except StorageUnavailable as exc:
            raise Unavailable(f"{step} failed: {exc}") from exc

    async def load_actor(self, actor_id: str, *, timeout: float | None = None) -> Actor:
        """Load the actor's current role/tier assignment.

        An actor without a user document has no assignments.
        """
        try:
            doc = await self._io(
                self._store.get(self._config.users_collection, actor_id),
                self._timeout(timeout),
                "load actor",
            )
        except DocumentNotFound:
            return Actor(actor_id=actor_id)
        return Actor.from_document(actor_id, doc.data)

    async def _authorize(
        self,
        actor_id: str | None,
        required: list[str],
        timeout: float,
        activity: str,
    ) -> Actor:
        if not actor_id or not actor_id.strip():
            raise Unauthenticated("User must be authenticated")
        actor = await self.load_actor(actor_id, timeout=timeout)
        if not self._permissions.has_any_permission(actor, required):
            logger.info("Actor %s denied: %s requires one of %s", actor_id, activity, required)
            raise PermissionDenied(f"User does not have permission to {activity}")
        return actor

    @staticmethod
    def _parse_decision(decision: Decision | str) -> Decision:
        try:
            return Decision(decision)
        except ValueError as exc:
            raise InvalidArgument(
                f"Unknown decision {decision!r}; expected one of "
                f"{[d.value for d in Decision]}"
            ) from exc

    async def _record_conflict(
        self,
        actor_id: str,
        review: ReviewRecord,
        decision: Decision,
        reason: str,
        timeout: float,
    ) -> None:
        """Audit a decision attempt that lost to an earlier decision."""
        if not self._config.audit_rejected_attempts:
            return
        try:
            await self._io(
                self._audit.append(
                    f"campaign_{decision.value}_conflict",
                    review.resource_id,
                    actor_id,
                    metadata={
                        "reviewId": review.review_id,
                        "attemptedStatus": decision.target_status.value,
                        "reason": reason,
                    },
                ),
                timeout,
                "append conflict audit entry",
            )
        except (GovernanceError, StorageError):
            logger.warning(
                "Could not audit rejected decision on review %s", review.review_id,
                exc_info=True,
            )

    async def _release_campaign(
        self, campaign_id: str, previous_status: str | None, timeout: float
    ) -> None:
        """Undo a submission's move to ``in-review`` when no review was created."""
        try:
            await self._io(
                self._store.conditional_update(
                    self._config.campaigns_collection,
                    campaign_id,
                    {"status": previous_status, "updated_at": utc_timestamp()},
                    precondition={"status": CampaignStatus.IN_REVIEW.value},
                ),
                timeout,
                "release campaign",
            )
        except (GovernanceError, StorageError):
            logger.warning(
                "Campaign %s left in review without a review record",
                campaign_id, exc_info=True,
            )
        else:
            logger.info("Campaign %s returned to %s after failed submission", campaign_id, previous_status)

    async def _run_hooks(self, outcome: DecisionOutcome) -> None:
        for hook in self._hooks:
            try:
                await resolve(hook(outcome))
            except Exception as exc:
                logger.warning(
                    "Post-approval hook %r failed for review %s",
                    hook, outcome.review_id, exc_info=True,
                )
                outcome.warnings.append(f"post-approval hook failed: {exc}")

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    async def decide(
        self,
        actor_id: str | None,
        review_id: str,
        decision: Decision | str,
        reason: str,
        *,
        timeout: float | None = None,
    ) -> DecisionOutcome:
        """Approve or reject a pending review.

        Args:
            actor_id: Verified identity of the caller.
            review_id: The review record to decide.
            decision: ``approve`` or ``reject``.
            reason: Non-empty justification, stored on the review.
            timeout: Per-step storage deadline in seconds.

        Returns:
            The DecisionOutcome; ``warnings`` is non-empty when a step after
            the committed decision failed.

        Raises:
            InvalidArgument: Malformed decision, reason or review id.
            Unauthenticated: No actor identity.
            PermissionDenied: The actor lacks the approval capability.
            NotFound: The review does not exist.
            FailedPrecondition: The review is no longer pending.
            Unavailable / DeadlineExceeded: A primary storage step failed.
        """
        step_timeout = self._timeout(timeout)
        decision = self._parse_decision(decision)
        if not review_id or not review_id.strip():
            raise InvalidArgument("A review id is required")
        if not isinstance(reason, str) or not reason.strip():
            raise InvalidArgument("Reason is required for approval/rejection")
        reason = reason.strip()

        # Authorize before touching the review so its existence is not leaked
        actor = await self._authorize(
            actor_id, self._config.approval_permissions, step_timeout, "approve campaigns"
        )
        actor_id = actor.actor_id

        try:
            doc = await self._io(
                self._store.get(self._config.reviews_collection, review_id),
                step_timeout,
                "load review",
            )
        except DocumentNotFound as exc:
            raise NotFound("Review record not found") from exc
        try:
            review = ReviewRecord.from_document(doc.doc_id, doc.data)
        except ValueError as exc:
            raise Internal(f"Review record {review_id} is malformed") from exc

        if review.status != ReviewStatus.PENDING:
            logger.info("Review %s is already %s", review_id, review.status)
            await self._record_conflict(actor_id, review, decision, reason, step_timeout)
            raise FailedPrecondition(ALREADY_DECIDED)

        new_status = decision.target_status
        reviewed_at = utc_timestamp()
        try:
            await self._io(
                self._store.conditional_update(
                    self._config.reviews_collection,
                    review_id,
                    {
                        "status": new_status.value,
                        "reviewed_by": actor_id,
                        "reason": reason,
                        "reviewed_at": reviewed_at,
                    },
                    precondition={"status": ReviewStatus.PENDING.value},
                ),
                step_timeout,
                "record decision",
            )
        except PreconditionFailed as exc:
            logger.info("Review %s was decided concurrently", review_id)
            await self._record_conflict(actor_id, review, decision, reason, step_timeout)
            raise FailedPrecondition(ALREADY_DECIDED) from exc
        except DocumentNotFound as exc:
            raise NotFound("Review record not found") from exc

        logger.info("Review %s %s by %s", review_id, new_status, actor_id)
        outcome = DecisionOutcome(
            review_id=review_id,
            resource_id=review.resource_id,
            status=new_status,
        )

        # Mirror onto the campaign; re-applying the same status is harmless
        try:
            await self._io(
                self._store.conditional_update(
                    self._config.campaigns_collection,
                    review.resource_id,
                    {
                        "status": new_status.value,
                        "review_decision": decision.value,
                        "review_reason": reason,
                        "last_review_decision": reviewed_at,
                        "updated_at": reviewed_at,
                    },
                ),
                step_timeout,
                "update campaign",
            )
        except (GovernanceError, StorageError) as exc:
            logger.warning(
                "Review %s decided but campaign %s was not updated",
                review_id, review.resource_id, exc_info=True,
            )
            outcome.warnings.append(f"campaign status not updated: {exc}")

        try:
            entry = await self._io(
                self._audit.append(
                    f"campaign_{decision.value}",
                    review.resource_id,
                    actor_id,
                    metadata={
                        "reviewId": review_id,
                        "reason": reason,
                        "previousStatus": review.status.value,
                        "newStatus": new_status.value,
                    },
                ),
                step_timeout,
                "append audit entry",
            )
            outcome.audit_entry_id = entry.entry_id
        except (GovernanceError, StorageError) as exc:
            logger.warning(
                "Review %s decided but the audit entry was not written",
                review_id, exc_info=True,
            )
            outcome.warnings.append(f"audit entry not written: {exc}")

        if decision is Decision.APPROVE:
            await self._run_hooks(outcome)

        return outcome

    async def submit_for_review(
        self,
        actor_id: str | None,
        campaign_id: str,
        review_type: str = "content",
        priority: str = "medium",
        notes: str = "",
        *,
        timeout: float | None = None,
    ) -> ReviewRecord:
        """Open a pending review for a campaign and move it to ``in-review``.

        Raises:
            InvalidArgument: Unknown review type or priority, or no campaign id.
            Unauthenticated / PermissionDenied: As for ``decide``.
            NotFound: The campaign does not exist.
            FailedPrecondition: The campaign is already in review, or changed
                while being submitted.
        """
        step_timeout = self._timeout(timeout)
        if not campaign_id or not campaign_id.strip():
            raise InvalidArgument("A campaign id is required")
        if review_type not in REVIEW_TYPES:
            raise InvalidArgument(f"Unknown review type {review_type!r}")
        if priority not in PRIORITIES:
            raise InvalidArgument(f"Unknown priority {priority!r}")

        actor = await self._authorize(
            actor_id, self._config.submit_permissions, step_timeout, "submit for review"
        )
        actor_id = actor.actor_id

        try:
            campaign = await self._io(
                self._store.get(self._config.campaigns_collection, campaign_id),
                step_timeout,
                "load campaign",
            )
        except DocumentNotFound as exc:
            raise NotFound("Campaign not found") from exc

        previous_status = campaign.data.get("status")
        if previous_status == CampaignStatus.IN_REVIEW:
            raise FailedPrecondition("campaign already in review")

        submitted_at = utc_timestamp()
        try:
            await self._io(
                self._store.conditional_update(
                    self._config.campaigns_collection,
                    campaign_id,
                    {
                        "status": CampaignStatus.IN_REVIEW.value,
                        "last_review_submission": submitted_at,
                        "updated_at": submitted_at,
                    },
                    precondition={"status": previous_status},
                ),
                step_timeout,
                "update campaign",
            )
        except PreconditionFailed as exc:
            raise FailedPrecondition("campaign changed during submission") from exc
        except DocumentNotFound as exc:
            raise NotFound("Campaign not found") from exc

        review = ReviewRecord(
            resource_id=campaign_id,
            submitted_by=actor_id,
            review_type=review_type,
            priority=priority,
            notes=notes,
            created_at=submitted_at,
        )
        try:
            await self._io(
                self._store.put(
                    self._config.reviews_collection, review.review_id, review.to_document()
                ),
                step_timeout,
                "create review",
            )
        except (GovernanceError, StorageError):
            await self._release_campaign(campaign_id, previous_status, step_timeout)
            raise
        logger.info("Campaign %s submitted for review %s by %s", campaign_id, review.review_id, actor_id)

        try:
            await self._io(
                self._audit.append(
                    "submit_for_review",
                    campaign_id,
                    actor_id,
                    metadata={
                        "reviewId": review.review_id,
                        "reviewType": review_type,
                        "priority": priority,
                        "previousStatus": previous_status,
                    },
                ),
                step_timeout,
                "append audit entry",
            )
        except (GovernanceError, StorageError):
            logger.warning(
                "Campaign %s submitted but the audit entry was not written",
                campaign_id, exc_info=True,
            )

        return review
