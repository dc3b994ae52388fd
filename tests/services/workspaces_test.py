from __future__ import annotations

from datetime import timedelta
from decimal import Decimal
from uuid import UUID, uuid4

import pytest
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from founder_ledger.db import models
from founder_ledger.domain.audit import AuditQuery
from founder_ledger.domain.base_types import AuditAction, EntityType, InviteId, UserId
from founder_ledger.domain.errors import NotFoundError, ValidationError
from founder_ledger.domain.workspace import Founder, FounderProfile, Workspace
from founder_ledger.services.audit_recorder import AuditRecorder
from founder_ledger.services.equity_engine import EquityEngine
from founder_ledger.services.ledger_store import LedgerStore
from founder_ledger.services.workspaces import WorkspaceService
from tests.helpers.builders import ACTOR_ID, capital, expense, revenue
from tests.helpers.time_utils import FixedClock

BOB_USER = UserId(UUID("00000000-0000-0000-0000-0000000000b2"))


def test_create_workspace_is_audited(workspace_service: WorkspaceService, audit_recorder: AuditRecorder) -> None:
    workspace = workspace_service.create_workspace("  Acme  ", ACTOR_ID)

    assert workspace.name == "Acme"
    [entry] = audit_recorder.list(workspace.id)
    assert entry.action == AuditAction.CREATE
    assert entry.entity_type == EntityType.WORKSPACE
    assert entry.entity_id == workspace.id
    assert entry.new_data == {"name": "Acme"}
    assert entry.reason == "Workspace created"
    assert entry.user_id == ACTOR_ID


def test_blank_workspace_name_is_rejected(workspace_service: WorkspaceService) -> None:
    with pytest.raises(ValidationError):
        workspace_service.create_workspace("   ")


def test_rename_keeps_identity(
    workspace_service: WorkspaceService, audit_recorder: AuditRecorder, onboarded: tuple[Workspace, Founder]
) -> None:
    workspace, _ = onboarded

    renamed = workspace_service.rename_workspace(workspace.id, "Acme Labs", ACTOR_ID)

    assert renamed.id == workspace.id
    assert renamed.name == "Acme Labs"
    assert workspace_service.get(workspace.id).name == "Acme Labs"
    [entry] = audit_recorder.list(workspace.id, AuditQuery(actions=frozenset({AuditAction.UPDATE})))
    assert entry.old_data == {"name": "Acme"}
    assert entry.new_data == {"name": "Acme Labs"}


def test_rename_unknown_workspace(workspace_service: WorkspaceService) -> None:
    with pytest.raises(NotFoundError):
        workspace_service.rename_workspace(Workspace(name="ghost").id, "New name")


def test_accept_invite_links_placeholder_founder(
    workspace_service: WorkspaceService,
    equity_engine: EquityEngine,
    audit_recorder: AuditRecorder,
    onboarded: tuple[Workspace, Founder],
) -> None:
    workspace, _ = onboarded
    invite = equity_engine.invite_founder(workspace.id, "bob@acme.io", "Bob").invite
    assert [pending.id for pending in workspace_service.pending_invites(workspace.id)] == [invite.id]

    accepted = workspace_service.accept_invite(invite.id, BOB_USER)

    assert accepted.accepted_at is not None
    assert workspace_service.pending_invites(workspace.id) == []
    bob = next(founder for founder in equity_engine.list_founders(workspace.id) if founder.name == "Bob")
    assert bob.user_id == BOB_USER
    [entry] = audit_recorder.list(workspace.id, AuditQuery(actions=frozenset({AuditAction.APPROVAL})))
    assert entry.entity_id == invite.id
    assert entry.user_id == BOB_USER
    assert entry.new_data is not None and entry.new_data["founder_id"] == str(bob.id)


def test_accept_invite_twice_is_rejected(
    workspace_service: WorkspaceService, equity_engine: EquityEngine, onboarded: tuple[Workspace, Founder]
) -> None:
    workspace, _ = onboarded
    invite = equity_engine.invite_founder(workspace.id, "bob@acme.io").invite
    workspace_service.accept_invite(invite.id, BOB_USER)

    with pytest.raises(ValidationError):
        workspace_service.accept_invite(invite.id, BOB_USER)


def test_expired_invite_is_rejected(
    workspace_service: WorkspaceService,
    equity_engine: EquityEngine,
    clock: FixedClock,
    onboarded: tuple[Workspace, Founder],
) -> None:
    workspace, _ = onboarded
    invite = equity_engine.invite_founder(workspace.id, "bob@acme.io").invite
    clock.step = timedelta(days=8)

    with pytest.raises(ValidationError):
        workspace_service.accept_invite(invite.id, BOB_USER)


def test_accept_unknown_invite(workspace_service: WorkspaceService) -> None:
    with pytest.raises(NotFoundError):
        workspace_service.accept_invite(InviteId(uuid4()), BOB_USER)


def test_teardown_removes_everything_of_one_workspace(
    test_session: Session,
    workspace_service: WorkspaceService,
    equity_engine: EquityEngine,
    ledger_store: LedgerStore,
    audit_recorder: AuditRecorder,
    onboarded: tuple[Workspace, Founder],
) -> None:
    workspace, alice = onboarded
    equity_engine.invite_founder(workspace.id, "bob@acme.io")
    ledger_store.append(workspace.id, capital(alice.id, "50000"))
    ledger_store.append(workspace.id, expense("3500"))
    ledger_store.append(workspace.id, revenue("1000"))
    survivor, survivor_founder = workspace_service.onboard("Survivor", ACTOR_ID, FounderProfile(name="Alice"))
    ledger_store.append(survivor.id, revenue("5"))

    workspace_service.teardown(workspace.id)

    with pytest.raises(NotFoundError):
        workspace_service.get(workspace.id)
    for orm_class in (
        models.FounderOrm,
        models.WorkspaceInviteOrm,
        models.CapitalContributionOrm,
        models.ExpenseOrm,
        models.RevenueOrm,
        models.AuditEntryOrm,
    ):
        remaining = test_session.scalar(
            select(func.count()).select_from(orm_class).where(orm_class.workspace_id == workspace.id)
        )
        assert remaining == 0, orm_class.__tablename__
    assert equity_engine.list_founders(survivor.id) == [survivor_founder]
    assert len(ledger_store.revenue(survivor.id)) == 1
    assert len(list(audit_recorder.list(survivor.id))) == 3


def test_onboard_seats_creator_at_full_equity(onboarded: tuple[Workspace, Founder]) -> None:
    workspace, alice = onboarded

    assert alice.workspace_id == workspace.id
    assert alice.equity_percentage == Decimal("100")
