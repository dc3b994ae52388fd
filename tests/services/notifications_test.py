from __future__ import annotations

from uuid import uuid4

import pytest

from founder_ledger.domain.base_types import AuditAction, EntityType, WorkspaceId
from founder_ledger.domain.workspace import Founder, Workspace
from founder_ledger.services.equity_engine import EquityEngine
from founder_ledger.services.notifications import MutationEvent, MutationNotifier


def _event() -> MutationEvent:
    return MutationEvent(WorkspaceId(uuid4()), EntityType.EXPENSE, AuditAction.CREATE, uuid4())


def test_listeners_run_in_subscription_order() -> None:
    notifier = MutationNotifier()
    calls: list[str] = []
    notifier.subscribe(lambda event: calls.append("first"))
    notifier.subscribe(lambda event: calls.append("second"))

    notifier.publish(_event())

    assert calls == ["first", "second"]


def test_unsubscribe_stops_delivery() -> None:
    notifier = MutationNotifier()
    received: list[MutationEvent] = []
    unsubscribe = notifier.subscribe(received.append)

    unsubscribe()
    unsubscribe()
    notifier.publish(_event())

    assert received == []


def test_listener_error_propagates_after_commit(
    equity_engine: EquityEngine, notifier: MutationNotifier, onboarded: tuple[Workspace, Founder]
) -> None:
    workspace, alice = onboarded

    def broken(event: MutationEvent) -> None:
        raise RuntimeError("dashboard offline")

    notifier.subscribe(broken)

    with pytest.raises(RuntimeError):
        equity_engine.change_equity(workspace.id, alice.id, 55)

    assert equity_engine.list_founders(workspace.id)[0].equity_percentage == 55
