from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from uuid import UUID

from .base_types import FULL_ALLOCATION, EntityType, WorkspaceId


class LedgerError(Exception):
    """Root of every error raised by the ledger core."""


class ValidationError(LedgerError):
    def __init__(self, message: str, *, field: str | None = None) -> None:
        super().__init__(message)
        self.field = field


class OutOfRangeError(ValidationError):
    def __init__(self, *, field: str, value: Decimal, minimum: Decimal, maximum: Decimal) -> None:
        super().__init__(f"{field}={value} outside [{minimum}, {maximum}]", field=field)
        self.value = value
        self.minimum = minimum
        self.maximum = maximum


class NotFoundError(LedgerError):
    def __init__(self, entity_type: EntityType, entity_id: UUID) -> None:
        super().__init__(f"{entity_type} {entity_id} not found")
        self.entity_type = entity_type
        self.entity_id = entity_id


class AuditWriteFailure(LedgerError):
    """The audit half of a mutation failed; the mutation was rolled back with it."""


class ImmutableRecordError(LedgerError):
    pass


class ConcurrentModificationError(LedgerError):
    def __init__(self, entity_type: EntityType, entity_id: UUID) -> None:
        super().__init__(f"{entity_type} {entity_id} was modified concurrently; change not applied")
        self.entity_type = entity_type
        self.entity_id = entity_id


@dataclass(frozen=True)
class ImbalanceWarning:
    """Reported when founder equity in a workspace does not add up to 100%."""

    workspace_id: WorkspaceId
    total_allocated: Decimal

    @property
    def difference(self) -> Decimal:
        return self.total_allocated - FULL_ALLOCATION

    def __str__(self) -> str:
        return f"Equity in workspace {self.workspace_id} sums to {self.total_allocated}% (off by {self.difference}%)"
