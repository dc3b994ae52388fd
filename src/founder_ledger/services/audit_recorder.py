from __future__ import annotations

import logging
from typing import Iterator

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from founder_ledger.db.repositories import AuditEntryRepository
from founder_ledger.domain.audit import AuditEntry, AuditEvent, AuditQuery
from founder_ledger.domain.base_types import AuditAction, WorkspaceId
from founder_ledger.domain.errors import AuditWriteFailure, ImmutableRecordError

from .transaction import Clock, unit_of_work, utc_now

logger = logging.getLogger(__name__)


class AuditEntrySequence:
    """Reverse-chronological audit entries, fetched page by page on iteration.

    Nothing is queried until iteration starts, and every ``iter()`` starts over
    from ``query.offset``. At most ``query.limit`` entries are produced.
    """

    def __init__(
        self,
        repository: AuditEntryRepository,
        workspace_id: WorkspaceId,
        query: AuditQuery,
        *,
        page_size: int = 50,
    ) -> None:
        self._repository = repository
        self._workspace_id = workspace_id
        self._query = query
        self._page_size = page_size

    def __iter__(self) -> Iterator[AuditEntry]:
        remaining = self._query.limit
        offset = self._query.offset
        while remaining > 0:
            page_query = self._query.model_copy(update={"limit": min(self._page_size, remaining), "offset": offset})
            page = self._repository.list(self._workspace_id, page_query)
            yield from page
            if len(page) < page_query.limit:
                return
            remaining -= len(page)
            offset += len(page)


class AuditRecorder:
    """Append-only access to the audit trail of a workspace."""

    def __init__(self, session: Session, *, clock: Clock = utc_now) -> None:
        self._session = session
        self._repository = AuditEntryRepository(session)
        self._clock = clock

    def record(self, event: AuditEvent) -> AuditEntry:
        """Stage an entry in the caller's transaction.

        The caller commits it together with the mutation it describes; on
        failure the caller's unit of work rolls both back.
        """
        try:
            entry = self._repository.create(event, created_at=self._clock())
        except (SQLAlchemyError, ImmutableRecordError) as err:
            logger.error(
                "Audit write failed for %s %s in workspace %s",
                event.action,
                event.entity_type,
                event.workspace_id,
            )
            raise AuditWriteFailure(f"Could not record {event.action} on {event.entity_type}") from err
        logger.debug("Recorded audit entry %s (%s %s)", entry.id, entry.action, entry.entity_type)
        return entry

    def record_and_commit(self, event: AuditEvent) -> AuditEntry:
        with unit_of_work(self._session):
            return self.record(event)

    def list(self, workspace_id: WorkspaceId, query: AuditQuery | None = None) -> AuditEntrySequence:
        return AuditEntrySequence(self._repository, workspace_id, query or AuditQuery())

    def count(self, workspace_id: WorkspaceId, *, action: AuditAction | None = None) -> int:
        return self._repository.count(workspace_id, action=action)

    def search(self, workspace_id: WorkspaceId, text: str, *, limit: int = 100) -> list[AuditEntry]:
        """Case-insensitive match on action, entity type, reason and the actor's name or email, newest first."""
        if not text.strip():
            return list(self.list(workspace_id, AuditQuery(limit=limit)))
        return self._repository.search(workspace_id, text.strip(), limit=limit)


__all__ = ["AuditEntrySequence", "AuditRecorder"]
