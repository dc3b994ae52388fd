from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Mapping, overload

from sqlalchemy.orm import Session

from founder_ledger.db.repositories import (
    CapitalContributionRepository,
    ExpenseRepository,
    FounderRepository,
    LedgerRepository,
    RevenueRepository,
    WorkspaceRepository,
)
from founder_ledger.domain.audit import AuditEvent
from founder_ledger.domain.base_types import AuditAction, LedgerKind, UserId, WorkspaceId
from founder_ledger.domain.errors import ValidationError
from founder_ledger.domain.ledger import (
    ENTRY_TYPES,
    AbstractLedgerEntry,
    CapitalContribution,
    Expense,
    LedgerEntry,
    Revenue,
)

from .audit_recorder import AuditRecorder
from .notifications import MutationEvent, MutationNotifier
from .transaction import Clock, unit_of_work, utc_now
from .validation import validated

logger = logging.getLogger(__name__)


def _as_utc(timestamp: datetime) -> datetime:
    # Stored without an offset, so aware input is converted and naive input is taken as UTC.
    if timestamp.tzinfo is None:
        return timestamp.replace(tzinfo=timezone.utc)
    return timestamp.astimezone(timezone.utc)


def build_entry(kind: LedgerKind, data: Mapping[str, Any]) -> AbstractLedgerEntry:
    """Validate raw input (CLI flags, request bodies) into a ledger entry."""
    entry_type = ENTRY_TYPES.get(kind)
    if entry_type is None:
        raise ValidationError(f"Unknown ledger classification {kind!r}", field="kind")
    return validated(entry_type, data)


class LedgerStore:
    """Append-only access to the capital, expense and revenue ledgers of a workspace.

    Every append is written together with a ``create`` audit entry; there is
    no update or delete path for individual entries.
    """

    def __init__(
        self,
        session: Session,
        *,
        audit_recorder: AuditRecorder | None = None,
        notifier: MutationNotifier | None = None,
        clock: Clock = utc_now,
    ) -> None:
        self._session = session
        self._clock = clock
        self._audit = audit_recorder or AuditRecorder(session, clock=clock)
        self._notifier = notifier
        self._workspaces = WorkspaceRepository(session)
        self._founders = FounderRepository(session)
        self._repositories: dict[LedgerKind, LedgerRepository[Any, Any]] = {
            LedgerKind.CAPITAL: CapitalContributionRepository(session),
            LedgerKind.EXPENSE: ExpenseRepository(session),
            LedgerKind.REVENUE: RevenueRepository(session),
        }

    @overload
    def append(
        self, workspace_id: WorkspaceId, entry: CapitalContribution, *, actor_id: UserId | None = None
    ) -> CapitalContribution: ...

    @overload
    def append(self, workspace_id: WorkspaceId, entry: Expense, *, actor_id: UserId | None = None) -> Expense: ...

    @overload
    def append(self, workspace_id: WorkspaceId, entry: Revenue, *, actor_id: UserId | None = None) -> Revenue: ...

    def append(
        self, workspace_id: WorkspaceId, entry: AbstractLedgerEntry, *, actor_id: UserId | None = None
    ) -> AbstractLedgerEntry:
        """Store an entry and return it with its workspace and timestamp filled in."""
        if entry.workspace_id is not None and entry.workspace_id != workspace_id:
            raise ValidationError(
                f"{type(entry).__name__} belongs to workspace {entry.workspace_id}, not {workspace_id}",
                field="workspace_id",
            )
        if type(entry) not in ENTRY_TYPES.values():
            raise ValidationError(f"Unknown ledger classification for {type(entry).__name__}", field="kind")
        repository = self._repositories[entry.kind]

        # The store owns ids, so a resubmitted entry is stored as a new one.
        # Entries built with model_construct() still go through the amount and field checks.
        stored_input = validated(
            type(entry),
            {
                **entry.model_dump(exclude={"id"}),
                "workspace_id": workspace_id,
                "created_at": _as_utc(entry.created_at or self._clock()),
            },
        )

        with unit_of_work(self._session):
            self._workspaces.require(workspace_id)
            if stored_input.founder_ref is not None:
                self._founders.require(workspace_id, stored_input.founder_ref)
            stored = repository.create(stored_input)
            self._audit.record(
                AuditEvent(
                    workspace_id=workspace_id,
                    action=AuditAction.CREATE,
                    entity_type=stored.entity_type,
                    entity_id=stored.id,
                    actor_id=actor_id,
                    new_data=stored,
                )
            )

        logger.info(
            "Appended %s %s amount=%s to workspace %s", stored.kind, stored.id, stored.amount, workspace_id
        )
        if self._notifier is not None:
            self._notifier.publish(
                MutationEvent(
                    workspace_id=workspace_id,
                    entity_type=stored.entity_type,
                    action=AuditAction.CREATE,
                    entity_id=stored.id,
                )
            )
        return stored

    def list_by_workspace(self, workspace_id: WorkspaceId, kind: LedgerKind) -> list[LedgerEntry]:
        """Entries in a stable order (oldest first); display code re-sorts as it needs."""
        return self._repositories[kind].list(workspace_id)

    def capital_contributions(self, workspace_id: WorkspaceId) -> list[CapitalContribution]:
        return self._repositories[LedgerKind.CAPITAL].list(workspace_id)

    def expenses(self, workspace_id: WorkspaceId) -> list[Expense]:
        return self._repositories[LedgerKind.EXPENSE].list(workspace_id)

    def revenue(self, workspace_id: WorkspaceId) -> list[Revenue]:
        return self._repositories[LedgerKind.REVENUE].list(workspace_id)

    def delete_for_workspace(self, workspace_id: WorkspaceId) -> None:
        """Bulk removal used only by workspace teardown; runs inside the caller's transaction."""
        for repository in self._repositories.values():
            repository.delete_for_workspace(workspace_id)


__all__ = ["LedgerStore", "build_entry"]
