from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from uuid import UUID

from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from founder_ledger.db.repositories import FounderRepository, InviteRepository, WorkspaceRepository
from founder_ledger.domain.audit import AuditEvent
from founder_ledger.domain.base_types import (
    FULL_ALLOCATION,
    AuditAction,
    EntityType,
    FounderId,
    MemberRole,
    UserId,
    WorkspaceId,
)
from founder_ledger.domain.errors import (
    ConcurrentModificationError,
    ImbalanceWarning,
    OutOfRangeError,
    ValidationError,
)
from founder_ledger.domain.workspace import Founder, FounderProfile, WorkspaceInvite

from .audit_recorder import AuditRecorder
from .notifications import MutationEvent, MutationNotifier
from .transaction import Clock, unit_of_work, utc_now
from .validation import as_decimal, validated

logger = logging.getLogger(__name__)

ZERO = Decimal("0")

INITIAL_FOUNDER_ROLE = "CEO & Co-founder"
INITIAL_FOUNDER_COLOR = "#3B82F6"
INVITED_FOUNDER_ROLE = "Co-founder"
INVITE_PALETTE = ("#10B981", "#F59E0B", "#EF4444", "#8B5CF6")

_FOUNDER_SNAPSHOT_FIELDS = {"name", "email", "role_title", "equity_percentage", "color", "user_id"}


@dataclass(frozen=True)
class InviteResult:
    founder: Founder
    invite: WorkspaceInvite


def as_percentage(value: Decimal | int | str | float) -> Decimal:
    return as_decimal(value, field="equity_percentage")


class EquityEngine:
    """The only sanctioned path for creating founders and changing their equity.

    Each change is written in one transaction with its audit entry. The
    workspace-wide total is not forced to 100%; callers use
    :meth:`total_allocated` / :meth:`check_balance` to surface an imbalance.

    Concurrent changes to the same founder are serialized by a version check on
    the founder row: the change that commits second finds the version it read
    has moved on and fails with :class:`ConcurrentModificationError`, leaving
    neither a founder update nor an audit entry behind.
    """

    def __init__(
        self,
        session: Session,
        *,
        audit_recorder: AuditRecorder | None = None,
        notifier: MutationNotifier | None = None,
        clock: Clock = utc_now,
    ) -> None:
        self._session = session
        self._clock = clock
        self._audit = audit_recorder or AuditRecorder(session, clock=clock)
        self._notifier = notifier
        self._workspaces = WorkspaceRepository(session)
        self._founders = FounderRepository(session)
        self._invites = InviteRepository(session)

    def change_equity(
        self,
        workspace_id: WorkspaceId,
        founder_id: FounderId,
        new_percentage: Decimal | int | str | float,
        reason: str | None = None,
        *,
        actor_id: UserId | None = None,
        expected_version: int | None = None,
    ) -> Founder:
        """Set a founder's percentage.

        ``expected_version`` is the ``Founder.version`` the caller last saw; a
        founder changed since then is rejected instead of overwritten.
        """
        percentage = as_percentage(new_percentage)
        if not (ZERO <= percentage <= FULL_ALLOCATION):
            logger.warning("Rejected equity change for founder %s: %s%% out of range", founder_id, percentage)
            raise OutOfRangeError(
                field="equity_percentage", value=percentage, minimum=ZERO, maximum=FULL_ALLOCATION
            )

        try:
            with unit_of_work(self._session):
                self._workspaces.require(workspace_id)
                founder = self._founders.require(workspace_id, founder_id)
                old_percentage = founder.equity_percentage
                updated = self._founders.update_equity(
                    founder_id,
                    expected_version=founder.version if expected_version is None else expected_version,
                    equity_percentage=percentage,
                    updated_at=self._clock(),
                )
                self._audit.record(
                    AuditEvent(
                        workspace_id=workspace_id,
                        action=AuditAction.EQUITY_CHANGE,
                        entity_type=EntityType.FOUNDER,
                        entity_id=founder_id,
                        actor_id=actor_id,
                        old_data={"equity_percentage": old_percentage},
                        new_data={"equity_percentage": percentage},
                        reason=reason,
                    )
                )
        except StaleDataError as err:
            logger.warning("Equity change for founder %s lost a concurrent update", founder_id)
            raise ConcurrentModificationError(EntityType.FOUNDER, founder_id) from err

        logger.info(
            "Equity of founder %s in workspace %s changed %s%% -> %s%%",
            founder_id,
            workspace_id,
            old_percentage,
            percentage,
        )
        self._publish(workspace_id, EntityType.FOUNDER, AuditAction.EQUITY_CHANGE, founder_id)
        return updated

    def total_allocated(self, workspace_id: WorkspaceId) -> Decimal:
        self._workspaces.require(workspace_id)
        return sum((founder.equity_percentage for founder in self._founders.list(workspace_id)), start=ZERO)

    def check_balance(self, workspace_id: WorkspaceId) -> ImbalanceWarning | None:
        """Report, never correct, a cap table that does not add up to 100%."""
        total = self.total_allocated(workspace_id)
        if total == FULL_ALLOCATION:
            return None
        warning = ImbalanceWarning(workspace_id=workspace_id, total_allocated=total)
        logger.warning("%s", warning)
        return warning

    def list_founders(self, workspace_id: WorkspaceId) -> list[Founder]:
        self._workspaces.require(workspace_id)
        return self._founders.list(workspace_id)

    def create_initial_founder(
        self, workspace_id: WorkspaceId, actor_id: UserId, profile: FounderProfile
    ) -> Founder:
        """Seed a new workspace with its creator holding 100% of the equity."""
        now = self._clock()
        with unit_of_work(self._session):
            self._workspaces.require(workspace_id)
            if self._founders.list(workspace_id):
                raise ValidationError(f"Workspace {workspace_id} already has founders", field="workspace_id")
            founder = self._founders.create(
                validated(
                    Founder,
                    {
                        "workspace_id": workspace_id,
                        "name": profile.name,
                        "email": profile.email,
                        "role_title": profile.role_title or INITIAL_FOUNDER_ROLE,
                        "color": profile.color or INITIAL_FOUNDER_COLOR,
                        "user_id": actor_id,
                        "equity_percentage": FULL_ALLOCATION,
                        "created_at": now,
                        "updated_at": now,
                    },
                )
            )
            self._audit.record(
                AuditEvent(
                    workspace_id=workspace_id,
                    action=AuditAction.CREATE,
                    entity_type=EntityType.FOUNDER,
                    entity_id=founder.id,
                    actor_id=actor_id,
                    new_data=founder.model_dump(mode="json", include=_FOUNDER_SNAPSHOT_FIELDS),
                    reason="Initial founder created with full equity",
                )
            )

        logger.info("Created initial founder %s in workspace %s", founder.id, workspace_id)
        self._publish(workspace_id, EntityType.FOUNDER, AuditAction.CREATE, founder.id)
        return founder

    def invite_founder(
        self,
        workspace_id: WorkspaceId,
        email: str,
        name: str | None = None,
        *,
        actor_id: UserId | None = None,
        role: MemberRole = MemberRole.MEMBER,
    ) -> InviteResult:
        """Invite a co-founder and add them to the cap table as a 0% placeholder."""
        email = email.strip()
        if "@" not in email:
            raise ValidationError(f"{email!r} is not an email address", field="email")
        display_name = (name or "").strip() or email.split("@")[0]

        now = self._clock()
        with unit_of_work(self._session):
            self._workspaces.require(workspace_id)
            existing = self._founders.list(workspace_id)
            founder = self._founders.create(
                validated(
                    Founder,
                    {
                        "workspace_id": workspace_id,
                        "name": display_name,
                        "email": email,
                        "role_title": INVITED_FOUNDER_ROLE,
                        "color": INVITE_PALETTE[max(len(existing) - 1, 0) % len(INVITE_PALETTE)],
                        "equity_percentage": ZERO,
                        "created_at": now,
                        "updated_at": now,
                    },
                )
            )
            invite = self._invites.create(
                validated(
                    WorkspaceInvite,
                    {
                        "workspace_id": workspace_id,
                        "email": email,
                        "role": role,
                        "founder_id": founder.id,
                        "invited_by": actor_id,
                        "created_at": now,
                    },
                )
            )
            self._audit.record(
                AuditEvent(
                    workspace_id=workspace_id,
                    action=AuditAction.INVITE,
                    entity_type=EntityType.WORKSPACE_INVITE,
                    entity_id=invite.id,
                    actor_id=actor_id,
                    new_data={"email": email, "name": display_name},
                    reason="Co-founder invited",
                )
            )

        logger.info("Invited %s to workspace %s as placeholder founder %s", email, workspace_id, founder.id)
        self._publish(workspace_id, EntityType.WORKSPACE_INVITE, AuditAction.INVITE, invite.id)
        return InviteResult(founder=founder, invite=invite)

    def _publish(self, workspace_id: WorkspaceId, entity_type: EntityType, action: AuditAction, entity_id: UUID) -> None:
        if self._notifier is not None:
            self._notifier.publish(
                MutationEvent(workspace_id=workspace_id, entity_type=entity_type, action=action, entity_id=entity_id)
            )


__all__ = ["EquityEngine", "InviteResult", "as_percentage"]
