from __future__ import annotations

from dataclasses import dataclass
from typing import Callable
from uuid import UUID

from founder_ledger.domain.base_types import AuditAction, EntityType, WorkspaceId


@dataclass(frozen=True)
class MutationEvent:
    workspace_id: WorkspaceId
    entity_type: EntityType
    action: AuditAction
    entity_id: UUID | None = None


MutationListener = Callable[[MutationEvent], None]


class MutationNotifier:
    """Fan-out of committed mutations to subscribers such as dashboards."""

    def __init__(self) -> None:
        self._listeners: list[MutationListener] = []

    def subscribe(self, listener: MutationListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def publish(self, event: MutationEvent) -> None:
        # Called only after commit; a failing listener surfaces to the caller.
        for listener in list(self._listeners):
            listener(event)


__all__ = ["MutationEvent", "MutationListener", "MutationNotifier"]
