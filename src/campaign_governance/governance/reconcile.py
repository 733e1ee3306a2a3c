"""Consistency sweep for decided reviews.

A decision commits on the review record first and mirrors onto the
campaign afterwards; if the mirror fails the campaign is left ``in-review``
with a decided latest review. The sweep finds those campaigns and
re-applies the decided status.
"""

from __future__ import annotations

import logging

from campaign_governance.core.config import GovernanceConfig
from campaign_governance.core.errors import GovernanceError, Unavailable
from campaign_governance.core.types import (
    CampaignStatus,
    ReconcileReport,
    ReviewRecord,
    ReviewStatus,
    utc_timestamp,
)
from campaign_governance.governance.audit import AuditLogger
from campaign_governance.repositories.errors import (
    DocumentNotFound,
    PreconditionFailed,
    StorageError,
    StorageUnavailable,
)
from campaign_governance.repositories.protocols import DocumentStore

logger = logging.getLogger(__name__)

SYSTEM_ACTOR = "system"


class ReviewReconciler:
    """Re-applies decided review outcomes to campaigns that missed them."""

    def __init__(
        self,
        store: DocumentStore,
        audit_logger: AuditLogger,
        config: GovernanceConfig | None = None,
    ) -> None:
        self._store = store
        self._audit = audit_logger
        self._config = config or GovernanceConfig()

    async def _latest_decided_reviews(self) -> list[ReviewRecord]:
        """The newest decided review per campaign, skipping campaigns with an open review."""
        try:
            docs = await self._store.query(self._config.reviews_collection, order_by="created_at")
        except StorageUnavailable as exc:
            raise Unavailable(f"load reviews failed: {exc}") from exc

        latest: dict[str, ReviewRecord] = {}
        for doc in docs:
            try:
                review = ReviewRecord.from_document(doc.doc_id, doc.data)
            except ValueError:
                logger.warning("Skipping malformed review %s", doc.doc_id)
                continue
            latest[review.resource_id] = review
        return [r for r in latest.values() if r.status != ReviewStatus.PENDING]

    async def sweep(self, limit: int = 100) -> ReconcileReport:
        """Repair up to ``limit`` campaigns whose status lags their review."""
        report = ReconcileReport()
        for review in (await self._latest_decided_reviews())[:limit]:
            report.examined += 1
            try:
                repaired = await self._reconcile(review)
            except (GovernanceError, StorageError):
                logger.warning(
                    "Reconciling review %s for campaign %s failed",
                    review.review_id, review.resource_id, exc_info=True,
                )
                report.errors += 1
                continue
            if repaired is None:
                report.skipped += 1
            elif repaired:
                report.repaired += 1
                report.repaired_resources.append(review.resource_id)

        logger.info(
            "Reconcile sweep: %d examined, %d repaired, %d skipped, %d errors",
            report.examined, report.repaired, report.skipped, report.errors,
        )
        return report

    async def _reconcile(self, review: ReviewRecord) -> bool | None:
        """Return True if repaired, False if already consistent, None if skipped."""
        try:
            campaign = await self._store.get(self._config.campaigns_collection, review.resource_id)
        except DocumentNotFound:
            logger.info("Campaign %s for review %s no longer exists", review.resource_id, review.review_id)
            return None

        current = campaign.data.get("status")
        if current == review.status.value:
            return False
        # A missed mirror leaves the campaign in review; any other status was
        # set by a later workflow and is left alone
        if current != CampaignStatus.IN_REVIEW:
            logger.info(
                "Campaign %s moved on to %s after review %s; not repairing",
                review.resource_id, current, review.review_id,
            )
            return None

        now = utc_timestamp()
        try:
            await self._store.conditional_update(
                self._config.campaigns_collection,
                review.resource_id,
                {"status": review.status.value, "updated_at": now},
                precondition={"status": current},
            )
        except PreconditionFailed:
            logger.info("Campaign %s changed during reconcile; leaving it", review.resource_id)
            return None

        await self._audit.append(
            "campaign_status_reconciled",
            review.resource_id,
            SYSTEM_ACTOR,
            metadata={
                "reviewId": review.review_id,
                "previousStatus": current,
                "newStatus": review.status.value,
            },
        )
        return True
