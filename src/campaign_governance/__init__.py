"""Campaign governance: review approvals, role/tier permissions and a
tamper-evident audit trail."""

__version__ = "0.1.0"
