from __future__ import annotations

from decimal import Decimal
from enum import StrEnum
from typing import NewType
from uuid import UUID

WorkspaceId = NewType("WorkspaceId", UUID)
FounderId = NewType("FounderId", UUID)
UserId = NewType("UserId", UUID)
InviteId = NewType("InviteId", UUID)
LedgerEntryId = NewType("LedgerEntryId", UUID)
AuditEntryId = NewType("AuditEntryId", UUID)

FULL_ALLOCATION = Decimal("100")


class LedgerKind(StrEnum):
    CAPITAL = "capital_contribution"
    EXPENSE = "expense"
    REVENUE = "revenue"


class LedgerStatus(StrEnum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    APPROVED = "approved"
    RECEIVED = "received"
    REJECTED = "rejected"


class ContributionType(StrEnum):
    CASH = "cash"
    IN_KIND = "in_kind"
    SERVICES = "services"
    LOAN = "loan"


class ExpenseType(StrEnum):
    COMPANY = "company"
    PERSONAL = "personal"


class RevenueType(StrEnum):
    ONE_TIME = "one_time"
    RECURRING = "recurring"


class AuditAction(StrEnum):
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    EQUITY_CHANGE = "equity_change"
    APPROVAL = "approval"
    INVITE = "invite"


class EntityType(StrEnum):
    WORKSPACE = "workspace"
    FOUNDER = "founder"
    WORKSPACE_INVITE = "workspace_invite"
    CAPITAL_CONTRIBUTION = "capital_contribution"
    EXPENSE = "expense"
    REVENUE = "revenue"


class MemberRole(StrEnum):
    ADMIN = "admin"
    MEMBER = "member"
    VIEWER = "viewer"
