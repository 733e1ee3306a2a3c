"""Database layer for campaign governance: SQLAlchemy 2.0 async."""

from __future__ import annotations

from campaign_governance.db.base import Base
from campaign_governance.db.engine import DatabaseManager

__all__ = ["Base", "DatabaseManager"]
