from __future__ import annotations

import logging
from uuid import UUID

from sqlalchemy.orm import Session

from founder_ledger.db.repositories import (
    AuditEntryRepository,
    FounderRepository,
    InviteRepository,
    WorkspaceRepository,
)
from founder_ledger.domain.audit import AuditEvent
from founder_ledger.domain.base_types import AuditAction, EntityType, InviteId, UserId, WorkspaceId
from founder_ledger.domain.errors import NotFoundError, ValidationError
from founder_ledger.domain.workspace import Founder, FounderProfile, Workspace, WorkspaceInvite

from .audit_recorder import AuditRecorder
from .equity_engine import EquityEngine
from .ledger_store import LedgerStore
from .notifications import MutationEvent, MutationNotifier
from .transaction import Clock, unit_of_work, utc_now
from .validation import validated

logger = logging.getLogger(__name__)


class WorkspaceService:
    """Workspace creation, renaming, invite acceptance and full teardown."""

    def __init__(
        self,
        session: Session,
        *,
        notifier: MutationNotifier | None = None,
        clock: Clock = utc_now,
    ) -> None:
        self._session = session
        self._clock = clock
        self._notifier = notifier
        self._audit = AuditRecorder(session, clock=clock)
        self._workspaces = WorkspaceRepository(session)
        self._founders = FounderRepository(session)
        self._invites = InviteRepository(session)
        self._audit_entries = AuditEntryRepository(session)
        self._ledgers = LedgerStore(session, audit_recorder=self._audit, notifier=notifier, clock=clock)
        self._equity = EquityEngine(session, audit_recorder=self._audit, notifier=notifier, clock=clock)

    def get(self, workspace_id: WorkspaceId) -> Workspace:
        return self._workspaces.require(workspace_id)

    def create_workspace(self, name: str, actor_id: UserId | None = None) -> Workspace:
        now = self._clock()
        with unit_of_work(self._session):
            workspace = self._workspaces.create(
                validated(Workspace, {"name": name.strip(), "created_at": now, "updated_at": now})
            )
            self._audit.record(
                AuditEvent(
                    workspace_id=workspace.id,
                    action=AuditAction.CREATE,
                    entity_type=EntityType.WORKSPACE,
                    entity_id=workspace.id,
                    actor_id=actor_id,
                    new_data={"name": workspace.name},
                    reason="Workspace created",
                )
            )
        logger.info("Created workspace %s (%s)", workspace.id, workspace.name)
        self._publish(workspace.id, EntityType.WORKSPACE, AuditAction.CREATE, workspace.id)
        return workspace

    def rename_workspace(self, workspace_id: WorkspaceId, name: str, actor_id: UserId | None = None) -> Workspace:
        name = name.strip()
        if not name:
            raise ValidationError("Workspace name must be non-empty", field="name")
        with unit_of_work(self._session):
            current = self._workspaces.require(workspace_id)
            renamed = self._workspaces.rename(workspace_id, name, updated_at=self._clock())
            self._audit.record(
                AuditEvent(
                    workspace_id=workspace_id,
                    action=AuditAction.UPDATE,
                    entity_type=EntityType.WORKSPACE,
                    entity_id=workspace_id,
                    actor_id=actor_id,
                    old_data={"name": current.name},
                    new_data={"name": renamed.name},
                )
            )
        logger.info("Renamed workspace %s: %r -> %r", workspace_id, current.name, renamed.name)
        self._publish(workspace_id, EntityType.WORKSPACE, AuditAction.UPDATE, workspace_id)
        return renamed

    def onboard(self, name: str, actor_id: UserId, profile: FounderProfile) -> tuple[Workspace, Founder]:
        """Create a workspace and seat its creator as the sole founder."""
        workspace = self.create_workspace(name, actor_id)
        founder = self._equity.create_initial_founder(workspace.id, actor_id, profile)
        return workspace, founder

    def pending_invites(self, workspace_id: WorkspaceId) -> list[WorkspaceInvite]:
        self._workspaces.require(workspace_id)
        return self._invites.list_pending(workspace_id)

    def accept_invite(self, invite_id: InviteId, user_id: UserId) -> WorkspaceInvite:
        now = self._clock()
        with unit_of_work(self._session):
            invite = self._invites.get(invite_id)
            if invite is None:
                raise NotFoundError(EntityType.WORKSPACE_INVITE, invite_id)
            if not invite.is_pending:
                raise ValidationError(f"Invite {invite_id} was already accepted", field="invite_id")
            if invite.expires_at is not None and invite.expires_at < now:
                raise ValidationError(f"Invite {invite_id} expired at {invite.expires_at}", field="invite_id")
            accepted = self._invites.mark_accepted(invite_id, accepted_at=now)
            if invite.founder_id is not None:
                self._founders.link_user(invite.founder_id, user_id, updated_at=now)
            self._audit.record(
                AuditEvent(
                    workspace_id=invite.workspace_id,
                    action=AuditAction.APPROVAL,
                    entity_type=EntityType.WORKSPACE_INVITE,
                    entity_id=invite_id,
                    actor_id=user_id,
                    old_data={"accepted_at": None},
                    new_data={"accepted_at": now, "founder_id": invite.founder_id},
                    reason="Invite accepted",
                )
            )
        logger.info("Invite %s accepted by user %s", invite_id, user_id)
        self._publish(invite.workspace_id, EntityType.WORKSPACE_INVITE, AuditAction.APPROVAL, invite_id)
        return accepted

    def teardown(self, workspace_id: WorkspaceId) -> None:
        """Delete a workspace with everything in it, audit trail included."""
        with unit_of_work(self._session):
            self._workspaces.require(workspace_id)
            self._ledgers.delete_for_workspace(workspace_id)
            self._invites.delete_for_workspace(workspace_id)
            self._founders.delete_for_workspace(workspace_id)
            self._audit_entries.delete_for_workspace(workspace_id)
            self._workspaces.delete(workspace_id)
        logger.info("Tore down workspace %s", workspace_id)
        self._publish(workspace_id, EntityType.WORKSPACE, AuditAction.DELETE, workspace_id)

    def _publish(self, workspace_id: WorkspaceId, entity_type: EntityType, action: AuditAction, entity_id: UUID) -> None:
        if self._notifier is not None:
            self._notifier.publish(
                MutationEvent(workspace_id=workspace_id, entity_type=entity_type, action=action, entity_id=entity_id)
            )


__all__ = ["WorkspaceService"]
