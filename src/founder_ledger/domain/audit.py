from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID, uuid4

from pydantic import BaseModel, Field, TypeAdapter, field_validator, model_validator

from .base_types import AuditAction, AuditEntryId, EntityType, UserId, WorkspaceId

Snapshot = dict[str, Any]

_SNAPSHOT_ADAPTER: TypeAdapter[Snapshot] = TypeAdapter(Snapshot)


def to_snapshot(data: BaseModel | Snapshot | None) -> Snapshot | None:
    """Normalise a model or mapping to JSON-safe values (decimals and ids become strings)."""
    if data is None:
        return None
    if isinstance(data, BaseModel):
        return data.model_dump(mode="json")
    return _SNAPSHOT_ADAPTER.dump_python(data, mode="json")


class AuditEvent(BaseModel):
    """A mutation about to be recorded."""

    workspace_id: WorkspaceId
    action: AuditAction
    entity_type: EntityType
    entity_id: UUID | None = None
    actor_id: UserId | None = None
    old_data: Snapshot | None = None
    new_data: Snapshot | None = None
    reason: str | None = None

    @field_validator("old_data", "new_data", mode="before")
    @classmethod
    def _normalise_snapshot(cls, value: Any) -> Snapshot | None:
        return to_snapshot(value)

    @model_validator(mode="after")
    def _blank_reason_to_none(self) -> AuditEvent:
        if self.reason is not None and not self.reason.strip():
            self.reason = None
        return self


class AuditEntry(BaseModel):
    id: AuditEntryId = AuditEntryId(Field(default_factory=uuid4))
    sequence: int
    workspace_id: WorkspaceId
    action: AuditAction
    entity_type: EntityType
    entity_id: UUID | None = None
    user_id: UserId | None = None
    old_data: Snapshot | None = None
    new_data: Snapshot | None = None
    reason: str | None = None
    created_at: datetime


class AuditQuery(BaseModel):
    entity_type: EntityType | None = None
    actions: frozenset[AuditAction] | None = None
    limit: int = Field(default=100, gt=0)
    offset: int = Field(default=0, ge=0)
