from typing import Generator

import pytest
from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from founder_ledger.db.models import Base
from founder_ledger.domain.workspace import Founder, FounderProfile, Workspace
from founder_ledger.services.audit_recorder import AuditRecorder
from founder_ledger.services.equity_engine import EquityEngine
from founder_ledger.services.ledger_store import LedgerStore
from founder_ledger.services.notifications import MutationNotifier
from founder_ledger.services.workspaces import WorkspaceService
from tests.helpers.builders import ACTOR_ID
from tests.helpers.time_utils import FixedClock

# StaticPool keeps the single in-memory database visible to the API's worker threads.
engine: Engine = create_engine(
    "sqlite:///:memory:", connect_args={"check_same_thread": False}, poolclass=StaticPool
)
session_factory = sessionmaker(engine)


@pytest.fixture(scope="function")
def test_session() -> Generator[Session, None, None]:
    with session_factory() as session:
        yield session


@pytest.fixture(scope="function", autouse=True)
def reset_db() -> Generator[None, None, None]:
    Base.metadata.create_all(engine)
    yield
    Base.metadata.drop_all(engine)


@pytest.fixture(scope="function")
def clock() -> FixedClock:
    return FixedClock()


@pytest.fixture(scope="function")
def notifier() -> MutationNotifier:
    return MutationNotifier()


@pytest.fixture(scope="function")
def audit_recorder(test_session: Session, clock: FixedClock) -> AuditRecorder:
    return AuditRecorder(test_session, clock=clock)


@pytest.fixture(scope="function")
def ledger_store(
    test_session: Session, audit_recorder: AuditRecorder, notifier: MutationNotifier, clock: FixedClock
) -> LedgerStore:
    return LedgerStore(test_session, audit_recorder=audit_recorder, notifier=notifier, clock=clock)


@pytest.fixture(scope="function")
def equity_engine(
    test_session: Session, audit_recorder: AuditRecorder, notifier: MutationNotifier, clock: FixedClock
) -> EquityEngine:
    return EquityEngine(test_session, audit_recorder=audit_recorder, notifier=notifier, clock=clock)


@pytest.fixture(scope="function")
def workspace_service(test_session: Session, notifier: MutationNotifier, clock: FixedClock) -> WorkspaceService:
    return WorkspaceService(test_session, notifier=notifier, clock=clock)


@pytest.fixture(scope="function")
def onboarded(workspace_service: WorkspaceService) -> tuple[Workspace, Founder]:
    """A workspace whose creator holds 100%."""
    return workspace_service.onboard("Acme", ACTOR_ID, FounderProfile(name="Alice", email="alice@acme.io"))
