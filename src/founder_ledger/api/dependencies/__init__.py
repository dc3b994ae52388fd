from typing import Annotated, Generator
from uuid import UUID

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from founder_ledger.config import AppSettings, config
from founder_ledger.db.repositories import WorkspaceRepository
from founder_ledger.domain.base_types import WorkspaceId
from founder_ledger.domain.workspace import Workspace
from founder_ledger.services.audit_recorder import AuditRecorder
from founder_ledger.services.equity_engine import EquityEngine
from founder_ledger.services.ledger_store import LedgerStore


def get_session(request: Request) -> Generator[Session, None, None]:
    with request.app.state.sessionmaker() as session:
        yield session


def get_settings() -> AppSettings:
    return config()


def get_audit_recorder(session: Annotated[Session, Depends(get_session)]) -> AuditRecorder:
    return AuditRecorder(session)


def get_ledger_store(
    session: Annotated[Session, Depends(get_session)],
    audit_recorder: Annotated[AuditRecorder, Depends(get_audit_recorder)],
) -> LedgerStore:
    return LedgerStore(session, audit_recorder=audit_recorder)


def get_equity_engine(
    session: Annotated[Session, Depends(get_session)],
    audit_recorder: Annotated[AuditRecorder, Depends(get_audit_recorder)],
) -> EquityEngine:
    return EquityEngine(session, audit_recorder=audit_recorder)


def require_workspace(workspace_id: UUID, session: Annotated[Session, Depends(get_session)]) -> Workspace:
    return WorkspaceRepository(session).require(WorkspaceId(workspace_id))
