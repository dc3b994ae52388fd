from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timezone, tzinfo
from decimal import Decimal
from typing import Iterable, Mapping, Sequence

from founder_ledger.domain.base_types import FULL_ALLOCATION, ExpenseType, FounderId, RevenueType
from founder_ledger.domain.ledger import AbstractLedgerEntry, CapitalContribution, Expense, Revenue
from founder_ledger.domain.workspace import Founder

from .formatting import format_currency, format_percentage, render_table

ZERO = Decimal("0")
ONE_DECIMAL = Decimal("0.1")
DEFAULT_MONTHS_BACK = 6


@dataclass
class MonthlyCashFlow:
    month: date
    inflow: Decimal = ZERO
    outflow: Decimal = ZERO

    @property
    def net(self) -> Decimal:
        return self.inflow - self.outflow

    @property
    def label(self) -> str:
        return self.month.strftime("%b %Y")


@dataclass
class MonthlyRevenue:
    month: date
    amount: Decimal = ZERO


@dataclass
class FounderTotal:
    founder_id: FounderId
    name: str
    color: str | None
    total: Decimal
    # Percentage of all capital contributed.
    share: Decimal = ZERO


@dataclass
class ExpenseCategoryTotal:
    category: str
    total: Decimal
    count: int


@dataclass
class DashboardSummary:
    total_revenue: Decimal
    total_expenses: Decimal
    total_capital: Decimal
    balance: Decimal
    founder_count: int
    total_equity: Decimal
    founders: list[Founder] = field(default_factory=list)

    @property
    def equity_balanced(self) -> bool:
        return self.total_equity == FULL_ALLOCATION


def _sum_amounts(entries: Iterable[AbstractLedgerEntry]) -> Decimal:
    return sum((entry.amount for entry in entries), start=ZERO)


def _month_of(entry: AbstractLedgerEntry, tz: tzinfo) -> date:
    if entry.created_at is None:
        msg = f"{type(entry).__name__} {entry.id} has no created_at"
        raise ValueError(msg)
    timestamp = entry.created_at
    if timestamp.tzinfo is None:
        timestamp = timestamp.replace(tzinfo=timezone.utc)
    local = timestamp.astimezone(tz)
    return date(local.year, local.month, 1)


def _trailing_months(as_of: datetime, months_back: int, tz: tzinfo) -> list[date]:
    if months_back <= 0:
        msg = f"months_back must be > 0, got {months_back}"
        raise ValueError(msg)
    anchor = as_of if as_of.tzinfo is not None else as_of.replace(tzinfo=timezone.utc)
    local = anchor.astimezone(tz)
    # Month index counted from year 0 makes stepping back across years plain arithmetic.
    current = local.year * 12 + local.month - 1
    return [date(index // 12, index % 12 + 1, 1) for index in range(current - months_back + 1, current + 1)]


def compute_monthly_cash_flow(
    capital: Iterable[CapitalContribution],
    revenue: Iterable[Revenue],
    expenses: Iterable[Expense],
    *,
    months_back: int = DEFAULT_MONTHS_BACK,
    as_of: datetime,
    tz: tzinfo = timezone.utc,
) -> list[MonthlyCashFlow]:
    """Inflow (capital + revenue) and outflow (expenses) per calendar month.

    The window covers the ``months_back`` months ending with the month of
    ``as_of``, oldest first; months without events are present with zeros and
    events outside the window are ignored. Months are taken in ``tz``.
    """
    buckets = {month: MonthlyCashFlow(month=month) for month in _trailing_months(as_of, months_back, tz)}

    inflows: list[AbstractLedgerEntry] = [*capital, *revenue]
    for entry in inflows:
        bucket = buckets.get(_month_of(entry, tz))
        if bucket is not None:
            bucket.inflow += entry.amount

    for expense in expenses:
        bucket = buckets.get(_month_of(expense, tz))
        if bucket is not None:
            bucket.outflow += expense.amount

    return list(buckets.values())


def compute_monthly_revenue(
    revenue: Iterable[Revenue],
    *,
    months_back: int = DEFAULT_MONTHS_BACK,
    as_of: datetime,
    tz: tzinfo = timezone.utc,
) -> list[MonthlyRevenue]:
    buckets = {month: MonthlyRevenue(month=month) for month in _trailing_months(as_of, months_back, tz)}
    for entry in revenue:
        bucket = buckets.get(_month_of(entry, tz))
        if bucket is not None:
            bucket.amount += entry.amount
    return list(buckets.values())


def compute_founder_totals(
    contributions: Iterable[CapitalContribution], founders: Sequence[Founder]
) -> list[FounderTotal]:
    """Capital contributed per founder, in the order of ``founders``.

    Founders without contributions are left out. Contributions from founders
    not in ``founders`` are reported under their id. ``share`` is each total as
    a percentage of all capital contributed.
    """
    totals: dict[FounderId, Decimal] = {}
    for contribution in contributions:
        totals[contribution.founder_id] = totals.get(contribution.founder_id, ZERO) + contribution.amount
    grand_total = sum(totals.values(), start=ZERO)

    def _share(total: Decimal) -> Decimal:
        return total * FULL_ALLOCATION / grand_total if grand_total else ZERO

    result: list[FounderTotal] = []
    for founder in founders:
        total = totals.pop(founder.id, None)
        if total is None:
            continue
        result.append(
            FounderTotal(
                founder_id=founder.id, name=founder.name, color=founder.color, total=total, share=_share(total)
            )
        )

    for founder_id, total in totals.items():
        result.append(
            FounderTotal(founder_id=founder_id, name=str(founder_id), color=None, total=total, share=_share(total))
        )
    return result


def compute_dashboard_summary(
    revenue: Iterable[Revenue],
    expenses: Iterable[Expense],
    capital: Iterable[CapitalContribution],
    founders: Sequence[Founder],
) -> DashboardSummary:
    total_revenue = _sum_amounts(revenue)
    total_expenses = _sum_amounts(expenses)
    total_capital = _sum_amounts(capital)
    return DashboardSummary(
        total_revenue=total_revenue,
        total_expenses=total_expenses,
        total_capital=total_capital,
        balance=total_revenue + total_capital - total_expenses,
        founder_count=len(founders),
        total_equity=sum((founder.equity_percentage for founder in founders), start=ZERO),
        founders=list(founders),
    )


def compute_expense_breakdown(expenses: Iterable[Expense]) -> list[ExpenseCategoryTotal]:
    """Expense totals per category, largest first (ties by category name)."""
    totals: dict[str, ExpenseCategoryTotal] = {}
    for expense in expenses:
        category = expense.category.strip()
        current = totals.get(category)
        if current is None:
            totals[category] = ExpenseCategoryTotal(category=category, total=expense.amount, count=1)
        else:
            current.total += expense.amount
            current.count += 1
    return sorted(totals.values(), key=lambda row: (-row.total, row.category))


def compute_expense_type_totals(expenses: Iterable[Expense]) -> dict[ExpenseType, Decimal]:
    """Company vs personal spending; every expense type is present, zero if unused."""
    totals = {expense_type: ZERO for expense_type in ExpenseType}
    for expense in expenses:
        totals[expense.expense_type] += expense.amount
    return totals


def compute_revenue_type_totals(revenue: Iterable[Revenue]) -> dict[RevenueType, Decimal]:
    totals = {revenue_type: ZERO for revenue_type in RevenueType}
    for entry in revenue:
        totals[entry.revenue_type] += entry.amount
    return totals


def render_dashboard_summary(summary: DashboardSummary, *, symbol: str = "$") -> None:
    print("Dashboard:")
    rows = [
        ("Total revenue", format_currency(summary.total_revenue, symbol)),
        ("Total capital", format_currency(summary.total_capital, symbol)),
        ("Total expenses", format_currency(summary.total_expenses, symbol)),
        ("Balance", format_currency(summary.balance, symbol)),
        ("Founders", str(summary.founder_count)),
        ("Equity allocated", format_percentage(summary.total_equity)),
    ]
    print("\n".join(render_table(("Metric", "Value"), rows)))
    if summary.founder_count and not summary.equity_balanced:
        print(f"  warning: equity sums to {format_percentage(summary.total_equity)}, not 100%")


def render_monthly_cash_flow(months: Iterable[MonthlyCashFlow], *, symbol: str = "$") -> None:
    months_list = list(months)
    print("Monthly cash flow:")
    if not months_list:
        print("  (no months)")
        return
    rows = [
        (
            month.label,
            format_currency(month.inflow, symbol),
            format_currency(month.outflow, symbol),
            format_currency(month.net, symbol),
        )
        for month in months_list
    ]
    print("\n".join(render_table(("Month", "Inflow", "Outflow", "Net"), rows)))


def render_founder_totals(totals: Iterable[FounderTotal], *, symbol: str = "$") -> None:
    totals_list = list(totals)
    print("Capital by founder:")
    if not totals_list:
        print("  (no contributions)")
        return
    rows = [
        (row.name, format_currency(row.total, symbol), format_percentage(row.share.quantize(ONE_DECIMAL)))
        for row in totals_list
    ]
    print("\n".join(render_table(("Founder", "Contributed", "Share"), rows)))


def render_expense_breakdown(breakdown: Iterable[ExpenseCategoryTotal], *, symbol: str = "$") -> None:
    rows = [(row.category, str(row.count), format_currency(row.total, symbol)) for row in breakdown]
    print("Expenses by category:")
    if not rows:
        print("  (no expenses)")
        return
    print("\n".join(render_table(("Category", "Entries", "Total"), rows)))


def render_monthly_revenue(months: Iterable[MonthlyRevenue], *, symbol: str = "$") -> None:
    rows = [(month.month.strftime("%b %Y"), format_currency(month.amount, symbol)) for month in months]
    print("Monthly revenue:")
    if not rows:
        print("  (no months)")
        return
    print("\n".join(render_table(("Month", "Revenue"), rows)))


def render_type_totals(
    title: str, totals: Mapping[ExpenseType, Decimal] | Mapping[RevenueType, Decimal], *, symbol: str = "$"
) -> None:
    """One row per entry type, e.g. company vs personal expenses."""
    print(f"{title}:")
    rows = [
        (entry_type.value.replace("_", "-"), format_currency(total, symbol)) for entry_type, total in totals.items()
    ]
    print("\n".join(render_table(("Type", "Total"), rows)))
