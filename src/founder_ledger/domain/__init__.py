"""Domain models and types for the founder ledger.

This package contains in-memory (Pydantic) models describing workspaces,
founders, the three monetary ledgers and the audit trail. They are independent
from persistence models so that business logic and testing can evolve without
DB coupling.
"""

__all__ = [
    "audit",
    "base_types",
    "errors",
    "ledger",
    "workspace",
]
