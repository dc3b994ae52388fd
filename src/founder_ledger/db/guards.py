"""Storage-level immutability for the audit trail.

Audit rows may be inserted but never updated. They may only be deleted by a
statement that carries the ``workspace_teardown`` execution option, which is
set exclusively by the workspace teardown path.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy import Delete, Engine, Update, event
from sqlalchemy.engine import Connection
from sqlalchemy.orm import Mapper

from founder_ledger.domain.errors import ImmutableRecordError

from .models import AUDIT_TABLE, AuditEntryOrm

TEARDOWN_OPTION = "workspace_teardown"


@event.listens_for(AuditEntryOrm, "before_update")
def _reject_instance_update(mapper: Mapper[Any], connection: Connection, target: AuditEntryOrm) -> None:
    raise ImmutableRecordError(f"Audit entry {target.id} cannot be updated")


@event.listens_for(AuditEntryOrm, "before_delete")
def _reject_instance_delete(mapper: Mapper[Any], connection: Connection, target: AuditEntryOrm) -> None:
    raise ImmutableRecordError(f"Audit entry {target.id} cannot be deleted")


@event.listens_for(Engine, "before_execute")
def _reject_statement(
    conn: Connection,
    clauseelement: Any,
    multiparams: Any,
    params: Any,
    execution_options: dict[str, Any],
) -> None:
    if not isinstance(clauseelement, (Update, Delete)):
        return
    if getattr(clauseelement.table, "name", None) != AUDIT_TABLE:
        return
    if isinstance(clauseelement, Delete) and (
        execution_options.get(TEARDOWN_OPTION) or clauseelement.get_execution_options().get(TEARDOWN_OPTION)
    ):
        return
    verb = "update" if isinstance(clauseelement, Update) else "delete"
    raise ImmutableRecordError(f"Statements may not {verb} rows of {AUDIT_TABLE}")
