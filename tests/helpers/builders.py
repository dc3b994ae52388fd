from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from uuid import UUID, uuid4

from founder_ledger.domain.base_types import FounderId, UserId, WorkspaceId
from founder_ledger.domain.ledger import CapitalContribution, Expense, Revenue
from founder_ledger.domain.workspace import Founder

ACTOR_ID = UserId(UUID("00000000-0000-0000-0000-0000000000a1"))
WORKSPACE_ID = WorkspaceId(UUID("00000000-0000-0000-0000-0000000000f1"))


def make_founder(name: str, equity: str | int, *, color: str | None = None) -> Founder:
    return Founder(
        id=FounderId(uuid4()),
        workspace_id=WORKSPACE_ID,
        name=name,
        equity_percentage=Decimal(equity),
        color=color,
    )


def capital(founder_id: FounderId, amount: str | int, created_at: datetime | None = None) -> CapitalContribution:
    return CapitalContribution(founder_id=founder_id, amount=Decimal(amount), created_at=created_at)


def expense(
    amount: str | int, created_at: datetime | None = None, *, category: str = "Software", description: str = "Tools"
) -> Expense:
    return Expense(amount=Decimal(amount), category=category, description=description, created_at=created_at)


def revenue(amount: str | int, created_at: datetime | None = None, *, source: str = "Pilot customer") -> Revenue:
    return Revenue(amount=Decimal(amount), source=source, created_at=created_at)
