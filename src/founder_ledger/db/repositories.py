"""Translation between ORM rows and domain models.

Repositories stage rows on the session and flush them so that database errors
surface at the call site, but they never commit: the calling service owns the
transaction so an entity mutation and its audit entry land together.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime, timezone
from decimal import Decimal
from typing import Generic, TypeVar
from uuid import UUID

from sqlalchemy import delete, func, select
from sqlalchemy.orm import Session

from founder_ledger.db import models
from founder_ledger.db.guards import TEARDOWN_OPTION
from founder_ledger.domain.audit import AuditEntry, AuditEvent, AuditQuery
from founder_ledger.domain.base_types import (
    AuditAction,
    AuditEntryId,
    ContributionType,
    EntityType,
    ExpenseType,
    FounderId,
    InviteId,
    LedgerEntryId,
    LedgerStatus,
    MemberRole,
    RevenueType,
    UserId,
    WorkspaceId,
)
from founder_ledger.domain.errors import ConcurrentModificationError, NotFoundError
from founder_ledger.domain.ledger import AbstractLedgerEntry, CapitalContribution, Expense, Revenue
from founder_ledger.domain.workspace import Founder, Workspace, WorkspaceInvite


def _as_utc(timestamp: datetime) -> datetime:
    if timestamp.tzinfo is None:
        return timestamp.replace(tzinfo=timezone.utc)
    return timestamp


def _as_utc_or_none(timestamp: datetime | None) -> datetime | None:
    if timestamp is None:
        return None
    return _as_utc(timestamp)


class WorkspaceRepository:
    def __init__(self, session: Session) -> None:
        self._session = session

    def create(self, workspace: Workspace) -> Workspace:
        orm_workspace = models.WorkspaceOrm(
            id=workspace.id,
            name=workspace.name,
            created_at=workspace.created_at,
            updated_at=workspace.updated_at,
        )
        self._session.add(orm_workspace)
        self._session.flush()
        return self._to_domain(orm_workspace)

    def get(self, workspace_id: WorkspaceId) -> Workspace | None:
        orm_workspace = self._session.get(models.WorkspaceOrm, workspace_id)
        if orm_workspace is None:
            return None
        return self._to_domain(orm_workspace)

    def require(self, workspace_id: WorkspaceId) -> Workspace:
        workspace = self.get(workspace_id)
        if workspace is None:
            raise NotFoundError(EntityType.WORKSPACE, workspace_id)
        return workspace

    def rename(self, workspace_id: WorkspaceId, name: str, *, updated_at: datetime) -> Workspace:
        orm_workspace = self._session.get(models.WorkspaceOrm, workspace_id)
        if orm_workspace is None:
            raise NotFoundError(EntityType.WORKSPACE, workspace_id)
        orm_workspace.name = name
        orm_workspace.updated_at = updated_at
        self._session.flush()
        return self._to_domain(orm_workspace)

    def delete(self, workspace_id: WorkspaceId) -> None:
        self._session.execute(delete(models.WorkspaceOrm).where(models.WorkspaceOrm.id == workspace_id))

    @staticmethod
    def _to_domain(orm_workspace: models.WorkspaceOrm) -> Workspace:
        return Workspace(
            id=WorkspaceId(orm_workspace.id),
            name=orm_workspace.name,
            created_at=_as_utc(orm_workspace.created_at),
            updated_at=_as_utc(orm_workspace.updated_at),
        )


class FounderRepository:
    def __init__(self, session: Session) -> None:
        self._session = session

    def create(self, founder: Founder) -> Founder:
        orm_founder = models.FounderOrm(
            id=founder.id,
            workspace_id=founder.workspace_id,
            name=founder.name,
            role_title=founder.role_title,
            equity_percentage=founder.equity_percentage,
            user_id=founder.user_id,
            email=founder.email,
            color=founder.color,
            created_at=founder.created_at,
            updated_at=founder.updated_at,
        )
        self._session.add(orm_founder)
        self._session.flush()
        return self._to_domain(orm_founder)

    def get(self, founder_id: FounderId) -> Founder | None:
        orm_founder = self._session.get(models.FounderOrm, founder_id)
        if orm_founder is None:
            return None
        return self._to_domain(orm_founder)

    def require(self, workspace_id: WorkspaceId, founder_id: FounderId) -> Founder:
        """Fetch a founder, treating one from another workspace as missing."""
        founder = self.get(founder_id)
        if founder is None or founder.workspace_id != workspace_id:
            raise NotFoundError(EntityType.FOUNDER, founder_id)
        return founder

    def list(self, workspace_id: WorkspaceId) -> list[Founder]:
        orm_founders = self._session.scalars(
            select(models.FounderOrm).where(models.FounderOrm.workspace_id == workspace_id)
        ).all()
        founders = [self._to_domain(founder) for founder in orm_founders]
        # Cap-table order; sorted here because percentages are stored as text.
        founders.sort(key=lambda founder: (-founder.equity_percentage, founder.name, founder.created_at))
        return founders

    def update_equity(
        self,
        founder_id: FounderId,
        *,
        expected_version: int,
        equity_percentage: Decimal,
        updated_at: datetime,
    ) -> Founder:
        orm_founder = self._session.get(models.FounderOrm, founder_id)
        if orm_founder is None:
            raise NotFoundError(EntityType.FOUNDER, founder_id)
        # Rejects callers holding an older read; the version column repeats the check at flush.
        if orm_founder.version != expected_version:
            raise ConcurrentModificationError(EntityType.FOUNDER, founder_id)
        orm_founder.equity_percentage = equity_percentage
        orm_founder.updated_at = updated_at
        self._session.flush()
        return self._to_domain(orm_founder)

    def link_user(self, founder_id: FounderId, user_id: UserId, *, updated_at: datetime) -> Founder:
        orm_founder = self._session.get(models.FounderOrm, founder_id)
        if orm_founder is None:
            raise NotFoundError(EntityType.FOUNDER, founder_id)
        orm_founder.user_id = user_id
        orm_founder.updated_at = updated_at
        self._session.flush()
        return self._to_domain(orm_founder)

    def delete_for_workspace(self, workspace_id: WorkspaceId) -> None:
        self._session.execute(delete(models.FounderOrm).where(models.FounderOrm.workspace_id == workspace_id))

    @staticmethod
    def _to_domain(orm_founder: models.FounderOrm) -> Founder:
        return Founder(
            id=FounderId(orm_founder.id),
            workspace_id=WorkspaceId(orm_founder.workspace_id),
            name=orm_founder.name,
            role_title=orm_founder.role_title,
            equity_percentage=orm_founder.equity_percentage,
            user_id=UserId(orm_founder.user_id) if orm_founder.user_id is not None else None,
            email=orm_founder.email,
            color=orm_founder.color,
            created_at=_as_utc(orm_founder.created_at),
            updated_at=_as_utc(orm_founder.updated_at),
            version=orm_founder.version,
        )


class InviteRepository:
    def __init__(self, session: Session) -> None:
        self._session = session

    def create(self, invite: WorkspaceInvite) -> WorkspaceInvite:
        orm_invite = models.WorkspaceInviteOrm(
            id=invite.id,
            workspace_id=invite.workspace_id,
            email=invite.email,
            role=invite.role.value,
            founder_id=invite.founder_id,
            invited_by=invite.invited_by,
            created_at=invite.created_at,
            expires_at=invite.expires_at,
            accepted_at=invite.accepted_at,
        )
        self._session.add(orm_invite)
        self._session.flush()
        return self._to_domain(orm_invite)

    def get(self, invite_id: InviteId) -> WorkspaceInvite | None:
        orm_invite = self._session.get(models.WorkspaceInviteOrm, invite_id)
        if orm_invite is None:
            return None
        return self._to_domain(orm_invite)

    def list_pending(self, workspace_id: WorkspaceId) -> list[WorkspaceInvite]:
        orm_invites = self._session.scalars(
            select(models.WorkspaceInviteOrm)
            .where(models.WorkspaceInviteOrm.workspace_id == workspace_id)
            .where(models.WorkspaceInviteOrm.accepted_at.is_(None))
            .order_by(models.WorkspaceInviteOrm.created_at.asc())
        ).all()
        return [self._to_domain(invite) for invite in orm_invites]

    def mark_accepted(self, invite_id: InviteId, *, accepted_at: datetime) -> WorkspaceInvite:
        orm_invite = self._session.get(models.WorkspaceInviteOrm, invite_id)
        if orm_invite is None:
            raise NotFoundError(EntityType.WORKSPACE_INVITE, invite_id)
        orm_invite.accepted_at = accepted_at
        self._session.flush()
        return self._to_domain(orm_invite)

    def delete_for_workspace(self, workspace_id: WorkspaceId) -> None:
        self._session.execute(
            delete(models.WorkspaceInviteOrm).where(models.WorkspaceInviteOrm.workspace_id == workspace_id)
        )

    @staticmethod
    def _to_domain(orm_invite: models.WorkspaceInviteOrm) -> WorkspaceInvite:
        return WorkspaceInvite(
            id=InviteId(orm_invite.id),
            workspace_id=WorkspaceId(orm_invite.workspace_id),
            email=orm_invite.email,
            role=MemberRole(orm_invite.role),
            founder_id=FounderId(orm_invite.founder_id) if orm_invite.founder_id is not None else None,
            invited_by=UserId(orm_invite.invited_by) if orm_invite.invited_by is not None else None,
            created_at=_as_utc(orm_invite.created_at),
            expires_at=_as_utc(orm_invite.expires_at),
            accepted_at=_as_utc_or_none(orm_invite.accepted_at),
        )


EntryT = TypeVar("EntryT", bound=AbstractLedgerEntry)
OrmT = TypeVar("OrmT", models.CapitalContributionOrm, models.ExpenseOrm, models.RevenueOrm)


class LedgerRepository(ABC, Generic[EntryT, OrmT]):
    orm_class: type[OrmT]

    def __init__(self, session: Session) -> None:
        self._session = session

    def create(self, entry: EntryT) -> EntryT:
        orm_entry = self._to_orm(entry)
        self._session.add(orm_entry)
        self._session.flush()
        return self._to_domain(orm_entry)

    def list(self, workspace_id: WorkspaceId) -> list[EntryT]:
        orm_entries = self._session.scalars(
            select(self.orm_class)
            .where(self.orm_class.workspace_id == workspace_id)
            .order_by(self.orm_class.created_at.asc(), self.orm_class.id.asc())
        ).all()
        return [self._to_domain(entry) for entry in orm_entries]

    def delete_for_workspace(self, workspace_id: WorkspaceId) -> None:
        self._session.execute(delete(self.orm_class).where(self.orm_class.workspace_id == workspace_id))

    @abstractmethod
    def _to_orm(self, entry: EntryT) -> OrmT: ...

    @abstractmethod
    def _to_domain(self, orm_entry: OrmT) -> EntryT: ...


class CapitalContributionRepository(LedgerRepository[CapitalContribution, models.CapitalContributionOrm]):
    orm_class = models.CapitalContributionOrm

    def _to_orm(self, entry: CapitalContribution) -> models.CapitalContributionOrm:
        return models.CapitalContributionOrm(
            id=entry.id,
            workspace_id=entry.workspace_id,
            founder_id=entry.founder_id,
            amount=entry.amount,
            contribution_type=entry.contribution_type.value,
            equity_impact=entry.equity_impact,
            notes=entry.notes,
            status=entry.status.value,
            created_at=entry.created_at,
        )

    def _to_domain(self, orm_entry: models.CapitalContributionOrm) -> CapitalContribution:
        return CapitalContribution(
            id=LedgerEntryId(orm_entry.id),
            workspace_id=WorkspaceId(orm_entry.workspace_id),
            founder_id=FounderId(orm_entry.founder_id),
            amount=orm_entry.amount,
            contribution_type=ContributionType(orm_entry.contribution_type),
            equity_impact=orm_entry.equity_impact,
            notes=orm_entry.notes,
            status=LedgerStatus(orm_entry.status),
            created_at=_as_utc(orm_entry.created_at),
        )


class ExpenseRepository(LedgerRepository[Expense, models.ExpenseOrm]):
    orm_class = models.ExpenseOrm

    def _to_orm(self, entry: Expense) -> models.ExpenseOrm:
        return models.ExpenseOrm(
            id=entry.id,
            workspace_id=entry.workspace_id,
            owner_id=entry.owner_id,
            amount=entry.amount,
            category=entry.category,
            description=entry.description,
            expense_type=entry.expense_type.value,
            receipt_url=entry.receipt_url,
            status=entry.status.value,
            created_at=entry.created_at,
        )

    def _to_domain(self, orm_entry: models.ExpenseOrm) -> Expense:
        return Expense(
            id=LedgerEntryId(orm_entry.id),
            workspace_id=WorkspaceId(orm_entry.workspace_id),
            owner_id=FounderId(orm_entry.owner_id) if orm_entry.owner_id is not None else None,
            amount=orm_entry.amount,
            category=orm_entry.category,
            description=orm_entry.description,
            expense_type=ExpenseType(orm_entry.expense_type),
            receipt_url=orm_entry.receipt_url,
            status=LedgerStatus(orm_entry.status),
            created_at=_as_utc(orm_entry.created_at),
        )


class RevenueRepository(LedgerRepository[Revenue, models.RevenueOrm]):
    orm_class = models.RevenueOrm

    def _to_orm(self, entry: Revenue) -> models.RevenueOrm:
        return models.RevenueOrm(
            id=entry.id,
            workspace_id=entry.workspace_id,
            amount=entry.amount,
            source=entry.source,
            revenue_type=entry.revenue_type.value,
            notes=entry.notes,
            status=entry.status.value,
            created_at=entry.created_at,
        )

    def _to_domain(self, orm_entry: models.RevenueOrm) -> Revenue:
        return Revenue(
            id=LedgerEntryId(orm_entry.id),
            workspace_id=WorkspaceId(orm_entry.workspace_id),
            amount=orm_entry.amount,
            source=orm_entry.source,
            revenue_type=RevenueType(orm_entry.revenue_type),
            notes=orm_entry.notes,
            status=LedgerStatus(orm_entry.status),
            created_at=_as_utc(orm_entry.created_at),
        )


class AuditEntryRepository:
    def __init__(self, session: Session) -> None:
        self._session = session

    def create(self, event: AuditEvent, *, created_at: datetime) -> AuditEntry:
        orm_entry = models.AuditEntryOrm(
            workspace_id=event.workspace_id,
            action=event.action.value,
            entity_type=event.entity_type.value,
            entity_id=event.entity_id,
            user_id=event.actor_id,
            old_data=event.old_data,
            new_data=event.new_data,
            reason=event.reason,
            created_at=created_at,
        )
        self._session.add(orm_entry)
        self._session.flush()
        return self._to_domain(orm_entry)

    def list(self, workspace_id: WorkspaceId, query: AuditQuery) -> list[AuditEntry]:
        stmt = select(models.AuditEntryOrm).where(models.AuditEntryOrm.workspace_id == workspace_id)
        if query.entity_type is not None:
            stmt = stmt.where(models.AuditEntryOrm.entity_type == query.entity_type.value)
        if query.actions:
            stmt = stmt.where(models.AuditEntryOrm.action.in_(sorted(action.value for action in query.actions)))
        stmt = stmt.order_by(models.AuditEntryOrm.sequence.desc()).limit(query.limit).offset(query.offset)
        return [self._to_domain(entry) for entry in self._session.scalars(stmt).all()]

    def search(self, workspace_id: WorkspaceId, text: str, *, limit: int) -> list[AuditEntry]:
        pattern = f"%{text.lower()}%"
        # Actors are matched through the founder they are linked to in this workspace.
        matching_actors = select(models.FounderOrm.user_id).where(
            models.FounderOrm.workspace_id == workspace_id,
            models.FounderOrm.user_id.is_not(None),
            models.FounderOrm.name.ilike(pattern) | models.FounderOrm.email.ilike(pattern),
        )
        stmt = (
            select(models.AuditEntryOrm)
            .where(models.AuditEntryOrm.workspace_id == workspace_id)
            .where(
                models.AuditEntryOrm.action.ilike(pattern)
                | models.AuditEntryOrm.entity_type.ilike(pattern)
                | models.AuditEntryOrm.reason.ilike(pattern)
                | models.AuditEntryOrm.user_id.in_(matching_actors)
            )
            .order_by(models.AuditEntryOrm.sequence.desc())
            .limit(limit)
        )
        return [self._to_domain(entry) for entry in self._session.scalars(stmt).all()]

    def count(self, workspace_id: WorkspaceId, *, action: AuditAction | None = None) -> int:
        stmt = (
            select(func.count())
            .select_from(models.AuditEntryOrm)
            .where(models.AuditEntryOrm.workspace_id == workspace_id)
        )
        if action is not None:
            stmt = stmt.where(models.AuditEntryOrm.action == action.value)
        return self._session.scalar(stmt) or 0

    def delete_for_workspace(self, workspace_id: WorkspaceId) -> None:
        self._session.execute(
            delete(models.AuditEntryOrm)
            .where(models.AuditEntryOrm.workspace_id == workspace_id)
            .execution_options(**{TEARDOWN_OPTION: True})
        )

    @staticmethod
    def _to_domain(orm_entry: models.AuditEntryOrm) -> AuditEntry:
        return AuditEntry(
            id=AuditEntryId(orm_entry.id),
            sequence=orm_entry.sequence,
            workspace_id=WorkspaceId(orm_entry.workspace_id),
            action=AuditAction(orm_entry.action),
            entity_type=EntityType(orm_entry.entity_type),
            entity_id=orm_entry.entity_id,
            user_id=UserId(orm_entry.user_id) if orm_entry.user_id is not None else None,
            old_data=orm_entry.old_data,
            new_data=orm_entry.new_data,
            reason=orm_entry.reason,
            created_at=_as_utc(orm_entry.created_at),
        )
