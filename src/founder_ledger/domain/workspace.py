from __future__ import annotations

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from uuid import uuid4

from pydantic import BaseModel, Field, model_validator

from .base_types import FULL_ALLOCATION, FounderId, InviteId, MemberRole, UserId, WorkspaceId

INVITE_TTL = timedelta(days=7)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class Workspace(BaseModel):
    id: WorkspaceId = WorkspaceId(Field(default_factory=uuid4))
    name: str
    created_at: datetime = Field(default_factory=_utc_now)
    updated_at: datetime = Field(default_factory=_utc_now)

    @model_validator(mode="after")
    def _validate_name(self) -> Workspace:
        if not self.name.strip():
            raise ValueError("Workspace.name must be non-empty")
        return self


class FounderProfile(BaseModel):
    """Display details supplied when a founder is first created."""

    name: str
    email: str | None = None
    role_title: str | None = None
    color: str | None = None

    @model_validator(mode="after")
    def _validate_name(self) -> FounderProfile:
        if not self.name.strip():
            raise ValueError("FounderProfile.name must be non-empty")
        return self


class Founder(BaseModel):
    """An equity holder. Placeholder founders have no user_id until their invite is accepted."""

    id: FounderId = FounderId(Field(default_factory=uuid4))
    workspace_id: WorkspaceId
    name: str
    role_title: str | None = None
    equity_percentage: Decimal = Decimal("0")
    user_id: UserId | None = None
    email: str | None = None
    color: str | None = None
    created_at: datetime = Field(default_factory=_utc_now)
    updated_at: datetime = Field(default_factory=_utc_now)
    version: int = 1

    @model_validator(mode="after")
    def _validate_fields(self) -> Founder:
        if not self.name.strip():
            raise ValueError("Founder.name must be non-empty")
        if not (Decimal("0") <= self.equity_percentage <= FULL_ALLOCATION):
            raise ValueError("Founder.equity_percentage must be within [0, 100]")
        return self


class WorkspaceInvite(BaseModel):
    id: InviteId = InviteId(Field(default_factory=uuid4))
    workspace_id: WorkspaceId
    email: str
    role: MemberRole = MemberRole.MEMBER
    founder_id: FounderId | None = None
    invited_by: UserId | None = None
    created_at: datetime = Field(default_factory=_utc_now)
    expires_at: datetime | None = None
    accepted_at: datetime | None = None

    @model_validator(mode="after")
    def _validate_fields(self) -> WorkspaceInvite:
        if "@" not in self.email:
            raise ValueError("WorkspaceInvite.email must be an email address")
        if self.expires_at is None:
            self.expires_at = self.created_at + INVITE_TTL
        return self

    @property
    def is_pending(self) -> bool:
        return self.accepted_at is None
