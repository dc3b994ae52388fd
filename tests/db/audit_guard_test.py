from datetime import datetime, timezone

import pytest
from sqlalchemy import delete, select, update
from sqlalchemy.orm import Session

from founder_ledger.db import models
from founder_ledger.db.guards import TEARDOWN_OPTION
from founder_ledger.db.repositories import AuditEntryRepository, WorkspaceRepository
from founder_ledger.domain.audit import AuditEvent
from founder_ledger.domain.base_types import AuditAction, EntityType
from founder_ledger.domain.errors import ImmutableRecordError
from founder_ledger.domain.workspace import Workspace

T0 = datetime(2024, 1, 1, tzinfo=timezone.utc)


@pytest.fixture()
def audit_row(test_session: Session) -> models.AuditEntryOrm:
    workspace = WorkspaceRepository(test_session).create(Workspace(name="Acme", created_at=T0, updated_at=T0))
    AuditEntryRepository(test_session).create(
        AuditEvent(workspace_id=workspace.id, action=AuditAction.CREATE, entity_type=EntityType.WORKSPACE),
        created_at=T0,
    )
    test_session.commit()
    return test_session.scalars(select(models.AuditEntryOrm)).one()


def test_orm_update_of_audit_row_is_rejected(test_session: Session, audit_row: models.AuditEntryOrm) -> None:
    audit_row.reason = "rewritten"

    with pytest.raises(ImmutableRecordError):
        test_session.flush()
    test_session.rollback()

    assert test_session.scalars(select(models.AuditEntryOrm)).one().reason is None


def test_orm_delete_of_audit_row_is_rejected(test_session: Session, audit_row: models.AuditEntryOrm) -> None:
    test_session.delete(audit_row)

    with pytest.raises(ImmutableRecordError):
        test_session.flush()


def test_bulk_update_statement_is_rejected(test_session: Session, audit_row: models.AuditEntryOrm) -> None:
    with pytest.raises(ImmutableRecordError):
        test_session.execute(update(models.AuditEntryOrm).values(reason="rewritten"))


def test_bulk_delete_without_teardown_option_is_rejected(
    test_session: Session, audit_row: models.AuditEntryOrm
) -> None:
    with pytest.raises(ImmutableRecordError):
        test_session.execute(delete(models.AuditEntryOrm))


def test_bulk_delete_with_teardown_option_is_allowed(test_session: Session, audit_row: models.AuditEntryOrm) -> None:
    test_session.execute(delete(models.AuditEntryOrm).execution_options(**{TEARDOWN_OPTION: True}))
    test_session.commit()

    assert test_session.scalars(select(models.AuditEntryOrm)).all() == []
