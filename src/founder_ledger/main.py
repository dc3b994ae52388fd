from __future__ import annotations

import argparse
import logging
from datetime import datetime, timezone
from decimal import Decimal
from pathlib import Path
from typing import Any, Sequence
from uuid import UUID, uuid4

from sqlalchemy.orm import Session

from founder_ledger.config import AppSettings, config
from founder_ledger.db.db import init_db
from founder_ledger.domain.audit import AuditEntry, AuditQuery
from founder_ledger.domain.base_types import (
    AuditAction,
    EntityType,
    LedgerKind,
    MemberRole,
    UserId,
)
from founder_ledger.domain.errors import LedgerError
from founder_ledger.domain.workspace import FounderProfile
from founder_ledger.services.audit_recorder import AuditRecorder
from founder_ledger.services.equity_engine import EquityEngine
from founder_ledger.services.ledger_store import LedgerStore, build_entry
from founder_ledger.services.validation import validated
from founder_ledger.services.workspaces import WorkspaceService
from founder_ledger.utils.dashboard_summary import (
    compute_dashboard_summary,
    compute_expense_breakdown,
    compute_expense_type_totals,
    compute_founder_totals,
    compute_monthly_cash_flow,
    compute_monthly_revenue,
    compute_revenue_type_totals,
    render_dashboard_summary,
    render_expense_breakdown,
    render_founder_totals,
    render_monthly_cash_flow,
    render_monthly_revenue,
    render_type_totals,
)
from founder_ledger.utils.exit_simulation import (
    DEFAULT_EXIT_SCENARIOS,
    compare_exit_scenarios,
    render_exit_simulation,
    render_scenario_comparison,
    simulate_exit,
)
from founder_ledger.utils.formatting import format_percentage, render_table

logger = logging.getLogger(__name__)

RECORD_KINDS = {
    "capital": LedgerKind.CAPITAL,
    "expense": LedgerKind.EXPENSE,
    "revenue": LedgerKind.REVENUE,
}


def _parse_timestamp(value: str) -> datetime:
    timestamp = datetime.fromisoformat(value)
    if timestamp.tzinfo is None:
        timestamp = timestamp.replace(tzinfo=timezone.utc)
    return timestamp


def create_workspace(session: Session, args: argparse.Namespace, settings: AppSettings) -> None:
    actor_id = args.actor or UserId(uuid4())
    profile = validated(
        FounderProfile, {"name": args.founder_name, "email": args.email, "role_title": args.role_title}
    )
    workspace, founder = WorkspaceService(session).onboard(args.name, actor_id, profile)
    print(f"Workspace {workspace.name}: {workspace.id}")
    print(f"Founder {founder.name}: {founder.id} ({format_percentage(founder.equity_percentage)})")
    print(f"Actor: {actor_id}")


def invite(session: Session, args: argparse.Namespace, settings: AppSettings) -> None:
    result = EquityEngine(session).invite_founder(
        args.workspace, args.email, args.name, actor_id=args.actor, role=MemberRole(args.role)
    )
    print(f"Invited {result.invite.email} (invite {result.invite.id}, expires {result.invite.expires_at:%Y-%m-%d})")
    print(f"Placeholder founder {result.founder.name}: {result.founder.id}")


def change_equity(session: Session, args: argparse.Namespace, settings: AppSettings) -> None:
    engine = EquityEngine(session)
    founder = engine.change_equity(
        args.workspace,
        args.founder,
        args.percentage,
        args.reason,
        actor_id=args.actor,
        expected_version=args.expected_version,
    )
    print(f"{founder.name} now holds {format_percentage(founder.equity_percentage)}")
    warning = engine.check_balance(args.workspace)
    if warning is not None:
        print(f"warning: {warning}")


def record(session: Session, args: argparse.Namespace, settings: AppSettings) -> None:
    kind = RECORD_KINDS[args.kind]
    data: dict[str, Any] = {"amount": args.amount}
    optional = {
        "founder_id": args.founder if kind == LedgerKind.CAPITAL else None,
        "owner_id": args.founder if kind == LedgerKind.EXPENSE else None,
        "category": args.category,
        "description": args.description,
        "source": args.source,
        "notes": args.notes,
        "status": args.status,
        "created_at": args.date,
    }
    data.update({key: value for key, value in optional.items() if value is not None})
    if args.type is not None:
        type_field = {
            LedgerKind.CAPITAL: "contribution_type",
            LedgerKind.EXPENSE: "expense_type",
            LedgerKind.REVENUE: "revenue_type",
        }[kind]
        data[type_field] = args.type

    entry = LedgerStore(session).append(args.workspace, build_entry(kind, data), actor_id=args.actor)
    print(f"Recorded {entry.kind} {entry.id}: {entry.amount}")


def dashboard(session: Session, args: argparse.Namespace, settings: AppSettings) -> None:
    workspace = WorkspaceService(session).get(args.workspace)
    store = LedgerStore(session)
    engine = EquityEngine(session)
    founders = engine.list_founders(workspace.id)
    capital = store.capital_contributions(workspace.id)
    expenses = store.expenses(workspace.id)
    revenue = store.revenue(workspace.id)
    symbol = settings.currency_symbol
    months_back = args.months or settings.cash_flow_months
    as_of = args.as_of or datetime.now(timezone.utc)

    print(f"== {workspace.name} ==")
    render_dashboard_summary(compute_dashboard_summary(revenue, expenses, capital, founders), symbol=symbol)
    print()
    render_monthly_cash_flow(
        compute_monthly_cash_flow(capital, revenue, expenses, months_back=months_back, as_of=as_of, tz=settings.tz),
        symbol=symbol,
    )
    print()
    render_monthly_revenue(
        compute_monthly_revenue(revenue, months_back=months_back, as_of=as_of, tz=settings.tz), symbol=symbol
    )
    print()
    render_founder_totals(compute_founder_totals(capital, founders), symbol=symbol)
    print()
    render_expense_breakdown(compute_expense_breakdown(expenses), symbol=symbol)
    print()
    render_type_totals("Expenses by type", compute_expense_type_totals(expenses), symbol=symbol)
    print()
    render_type_totals("Revenue by type", compute_revenue_type_totals(revenue), symbol=symbol)


def simulate(session: Session, args: argparse.Namespace, settings: AppSettings) -> None:
    founders = EquityEngine(session).list_founders(args.workspace)
    amounts: list[Decimal] = args.amount or list(DEFAULT_EXIT_SCENARIOS)
    if len(amounts) == 1:
        render_exit_simulation(amounts[0], simulate_exit(amounts[0], founders), symbol=settings.currency_symbol)
    else:
        render_scenario_comparison(compare_exit_scenarios(amounts, founders), symbol=settings.currency_symbol)


def audit(session: Session, args: argparse.Namespace, settings: AppSettings) -> None:
    WorkspaceService(session).get(args.workspace)
    recorder = AuditRecorder(session)
    entries: list[AuditEntry]
    if args.search:
        entries = recorder.search(args.workspace, args.search, limit=args.limit)
    else:
        query = validated(
            AuditQuery,
            {
                "entity_type": args.entity_type,
                "actions": frozenset(args.action) if args.action else None,
                "limit": args.limit,
                "offset": args.offset,
            },
        )
        entries = list(recorder.list(args.workspace, query))
    render_audit_entries(entries)
    print(f"{len(entries)} of {recorder.count(args.workspace)} entries")


def render_audit_entries(entries: list[AuditEntry]) -> None:
    print("Audit log:")
    if not entries:
        print("  (no entries)")
        return
    rows = [
        (
            f"{entry.created_at:%Y-%m-%d %H:%M}",
            entry.action.value,
            entry.entity_type.value,
            _describe_change(entry),
            entry.reason or "",
        )
        for entry in entries
    ]
    print("\n".join(render_table(("When", "Action", "Entity", "Change", "Reason"), rows, align_left=5)))


def _describe_change(entry: AuditEntry) -> str:
    old, new = entry.old_data or {}, entry.new_data or {}
    if entry.action == AuditAction.EQUITY_CHANGE:
        return f"{old.get('equity_percentage')}% -> {new.get('equity_percentage')}%"
    if "amount" in new:
        return str(new["amount"])
    changed = sorted(key for key in new if old.get(key) != new.get(key))
    return ", ".join(changed)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Track founder equity, cash ledgers and exit payouts.")
    parser.add_argument("--db", type=Path, default=None, help="SQLite file (defaults to the configured db_file)")
    parser.add_argument("--actor", type=UUID, default=None, help="user id recorded in the audit log")
    subparsers = parser.add_subparsers(dest="command", required=True)

    create = subparsers.add_parser("create-workspace", help="create a workspace with its first founder at 100%%")
    create.add_argument("name")
    create.add_argument("--founder-name", required=True)
    create.add_argument("--email")
    create.add_argument("--role-title")
    create.set_defaults(handler=create_workspace)

    invite_parser = subparsers.add_parser("invite", help="invite a co-founder as a 0%% placeholder")
    invite_parser.add_argument("workspace", type=UUID)
    invite_parser.add_argument("email")
    invite_parser.add_argument("--name")
    invite_parser.add_argument("--role", choices=[role.value for role in MemberRole], default=MemberRole.MEMBER.value)
    invite_parser.set_defaults(handler=invite)

    equity = subparsers.add_parser("change-equity", help="set a founder's equity percentage")
    equity.add_argument("workspace", type=UUID)
    equity.add_argument("founder", type=UUID)
    equity.add_argument("percentage", type=Decimal)
    equity.add_argument("--reason")
    equity.add_argument("--expected-version", type=int, help="fail if the founder changed since this version")
    equity.set_defaults(handler=change_equity)

    record_parser = subparsers.add_parser("record", help="append a capital, expense or revenue entry")
    record_parser.add_argument("workspace", type=UUID)
    record_parser.add_argument("--kind", choices=sorted(RECORD_KINDS), required=True)
    record_parser.add_argument("--amount", type=Decimal, required=True)
    record_parser.add_argument("--founder", type=UUID, help="contributor (capital) or owner (expense)")
    record_parser.add_argument("--category")
    record_parser.add_argument("--description")
    record_parser.add_argument("--source")
    record_parser.add_argument("--type", help="contribution, expense or revenue type")
    record_parser.add_argument("--status")
    record_parser.add_argument("--notes")
    record_parser.add_argument("--date", type=_parse_timestamp, help="ISO timestamp for backfilled entries")
    record_parser.set_defaults(handler=record)

    dashboard_parser = subparsers.add_parser("dashboard", help="totals, monthly cash flow and founder totals")
    dashboard_parser.add_argument("workspace", type=UUID)
    dashboard_parser.add_argument("--months", type=int)
    dashboard_parser.add_argument("--as-of", type=_parse_timestamp)
    dashboard_parser.set_defaults(handler=dashboard)

    simulate_parser = subparsers.add_parser("simulate", help="exit payouts per founder")
    simulate_parser.add_argument("workspace", type=UUID)
    simulate_parser.add_argument("--amount", type=Decimal, action="append")
    simulate_parser.set_defaults(handler=simulate)

    audit_parser = subparsers.add_parser("audit", help="list or search the audit log")
    audit_parser.add_argument("workspace", type=UUID)
    audit_parser.add_argument("--search")
    audit_parser.add_argument("--entity-type", type=EntityType, choices=list(EntityType))
    audit_parser.add_argument("--action", type=AuditAction, choices=list(AuditAction), action="append")
    audit_parser.add_argument("--limit", type=int, default=50)
    audit_parser.add_argument("--offset", type=int, default=0)
    audit_parser.set_defaults(handler=audit)

    return parser


def main(argv: Sequence[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    settings = config()
    session = init_db(settings.db_echo, db_file=args.db or settings.db_file)
    try:
        args.handler(session, args, settings)
    except LedgerError as err:
        logger.error("%s failed: %s", args.command, err)
        parser.exit(1, f"error: {err}\n")
    finally:
        session.close()


def cli() -> None:
    logging.basicConfig(level=config().log_level, format="%(asctime)s %(levelname)s %(name)s %(message)s")
    main()


if __name__ == "__main__":
    cli()
