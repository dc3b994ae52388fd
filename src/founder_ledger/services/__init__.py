"""Stateful services: every mutation of a workspace goes through one of these."""

from founder_ledger.services.audit_recorder import AuditEntrySequence, AuditRecorder
from founder_ledger.services.equity_engine import EquityEngine, InviteResult
from founder_ledger.services.ledger_store import LedgerStore, build_entry
from founder_ledger.services.notifications import MutationEvent, MutationNotifier
from founder_ledger.services.workspaces import WorkspaceService

__all__ = [
    "AuditEntrySequence",
    "AuditRecorder",
    "EquityEngine",
    "InviteResult",
    "LedgerStore",
    "MutationEvent",
    "MutationNotifier",
    "WorkspaceService",
    "build_entry",
]
