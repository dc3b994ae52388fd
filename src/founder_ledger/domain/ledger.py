from __future__ import annotations

from abc import ABC
from datetime import datetime
from decimal import Decimal
from typing import ClassVar
from uuid import uuid4

from pydantic import BaseModel, Field, field_validator

from .base_types import (
    ContributionType,
    EntityType,
    ExpenseType,
    FounderId,
    LedgerEntryId,
    LedgerKind,
    LedgerStatus,
    RevenueType,
    WorkspaceId,
)


class AbstractLedgerEntry(BaseModel, ABC):
    """A single monetary event in one of the workspace ledgers.

    Amounts are always positive; the ledger an entry belongs to decides whether
    it is an inflow (capital, revenue) or an outflow (expense). ``created_at``
    and ``workspace_id`` are left empty on input and filled in by the store.
    """

    kind: ClassVar[LedgerKind]

    id: LedgerEntryId = LedgerEntryId(Field(default_factory=uuid4))
    workspace_id: WorkspaceId | None = None
    amount: Decimal
    status: LedgerStatus
    created_at: datetime | None = None

    @field_validator("amount")
    @classmethod
    def _positive_amount(cls, value: Decimal) -> Decimal:
        if not value.is_finite() or value <= 0:
            raise ValueError(f"{cls.__name__}.amount must be > 0")
        return value

    @property
    def entity_type(self) -> EntityType:
        return EntityType(self.kind.value)

    @property
    def founder_ref(self) -> FounderId | None:
        return None


class CapitalContribution(AbstractLedgerEntry):
    kind: ClassVar[LedgerKind] = LedgerKind.CAPITAL

    founder_id: FounderId
    contribution_type: ContributionType = ContributionType.CASH
    equity_impact: bool = True
    notes: str | None = None
    status: LedgerStatus = LedgerStatus.CONFIRMED

    @property
    def founder_ref(self) -> FounderId | None:
        return self.founder_id


class Expense(AbstractLedgerEntry):
    kind: ClassVar[LedgerKind] = LedgerKind.EXPENSE

    category: str
    description: str
    expense_type: ExpenseType = ExpenseType.COMPANY
    owner_id: FounderId | None = None
    receipt_url: str | None = None
    status: LedgerStatus = LedgerStatus.PENDING

    @field_validator("category", "description")
    @classmethod
    def _non_empty(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Expense.category and Expense.description must be non-empty")
        return value

    @property
    def founder_ref(self) -> FounderId | None:
        return self.owner_id


class Revenue(AbstractLedgerEntry):
    kind: ClassVar[LedgerKind] = LedgerKind.REVENUE

    source: str
    revenue_type: RevenueType = RevenueType.ONE_TIME
    notes: str | None = None
    status: LedgerStatus = LedgerStatus.RECEIVED

    @field_validator("source")
    @classmethod
    def _non_empty_source(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Revenue.source must be non-empty")
        return value


LedgerEntry = CapitalContribution | Expense | Revenue

ENTRY_TYPES: dict[LedgerKind, type[AbstractLedgerEntry]] = {
    LedgerKind.CAPITAL: CapitalContribution,
    LedgerKind.EXPENSE: Expense,
    LedgerKind.REVENUE: Revenue,
}
