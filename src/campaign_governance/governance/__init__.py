"""Governance module for campaign planning.

Provides the review approval engine, the hash-chained audit log and the
consistency sweep.
"""

from campaign_governance.governance.audit import AuditLogger
from campaign_governance.governance.engine import GovernanceEngine
from campaign_governance.governance.hashing import GENESIS_HASH, compute_hash
from campaign_governance.governance.reconcile import ReviewReconciler

__all__ = [
    "AuditLogger",
    "GENESIS_HASH",
    "GovernanceEngine",
    "ReviewReconciler",
    "compute_hash",
]
