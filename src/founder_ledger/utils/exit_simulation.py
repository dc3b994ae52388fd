from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, Sequence

from founder_ledger.domain.base_types import FULL_ALLOCATION, FounderId
from founder_ledger.domain.errors import ValidationError
from founder_ledger.domain.workspace import Founder
from founder_ledger.services.validation import as_decimal

from .formatting import format_compact_currency, format_currency, format_percentage, render_table

# Exit valuations offered when the caller gives none.
DEFAULT_EXIT_SCENARIOS: tuple[Decimal, ...] = tuple(
    Decimal(amount) for amount in ("1000000", "5000000", "10000000", "25000000", "50000000", "100000000")
)


@dataclass(frozen=True)
class ExitPayout:
    founder_id: FounderId
    name: str
    equity_percentage: Decimal
    payout: Decimal
    color: str | None = None


@dataclass(frozen=True)
class ScenarioRow:
    founder_id: FounderId
    name: str
    equity_percentage: Decimal
    payouts: tuple[Decimal, ...]
    color: str | None = None


@dataclass(frozen=True)
class ScenarioComparison:
    exit_amounts: tuple[Decimal, ...]
    rows: tuple[ScenarioRow, ...]


def _validated_amount(exit_amount: Decimal | int | str | float) -> Decimal:
    amount = as_decimal(exit_amount, field="exit_amount")
    if amount < 0:
        raise ValidationError(f"exit amount must be a non-negative number, got {exit_amount!r}", field="exit_amount")
    return amount


def _payout(exit_amount: Decimal, founder: Founder) -> Decimal:
    return exit_amount * founder.equity_percentage / FULL_ALLOCATION


def simulate_exit(exit_amount: Decimal | int | str | float, founders: Sequence[Founder]) -> list[ExitPayout]:
    """Split an exit valuation by equity percentage, one payout per founder in input order.

    Percentages are used as given; a table that does not sum to 100% produces
    payouts that do not sum to the exit amount.
    """
    amount = _validated_amount(exit_amount)
    return [
        ExitPayout(
            founder_id=founder.id,
            name=founder.name,
            equity_percentage=founder.equity_percentage,
            payout=_payout(amount, founder),
            color=founder.color,
        )
        for founder in founders
    ]


def compare_exit_scenarios(
    exit_amounts: Iterable[Decimal | int | str | float], founders: Sequence[Founder]
) -> ScenarioComparison:
    """Payout matrix: one row per founder, one column per exit amount, in the order given."""
    amounts = tuple(_validated_amount(amount) for amount in exit_amounts)
    rows = tuple(
        ScenarioRow(
            founder_id=founder.id,
            name=founder.name,
            equity_percentage=founder.equity_percentage,
            payouts=tuple(_payout(amount, founder) for amount in amounts),
            color=founder.color,
        )
        for founder in founders
    )
    return ScenarioComparison(exit_amounts=amounts, rows=rows)


def render_exit_simulation(exit_amount: Decimal, payouts: Iterable[ExitPayout], *, symbol: str = "$") -> None:
    payouts_list = list(payouts)
    print(f"Exit at {format_compact_currency(exit_amount, symbol)}:")
    if not payouts_list:
        print("  (no founders)")
        return
    rows = [
        (payout.name, format_percentage(payout.equity_percentage), format_currency(payout.payout, symbol))
        for payout in payouts_list
    ]
    print("\n".join(render_table(("Founder", "Equity", "Payout"), rows)))


def render_scenario_comparison(comparison: ScenarioComparison, *, symbol: str = "$") -> None:
    print("Exit scenarios:")
    if not comparison.rows:
        print("  (no founders)")
        return
    headers = ("Founder", "Equity", *(format_compact_currency(amount, symbol) for amount in comparison.exit_amounts))
    rows = [
        (
            row.name,
            format_percentage(row.equity_percentage),
            *(format_compact_currency(payout, symbol) for payout in row.payouts),
        )
        for row in comparison.rows
    ]
    print("\n".join(render_table(headers, rows)))
