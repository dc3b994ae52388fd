from __future__ import annotations

from decimal import Decimal
from typing import Generator
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from founder_ledger.api.api import app
from founder_ledger.api.dependencies import get_session, get_settings
from founder_ledger.config import AppSettings
from founder_ledger.domain.workspace import Founder, Workspace
from founder_ledger.services.equity_engine import EquityEngine
from founder_ledger.services.ledger_store import LedgerStore
from tests.helpers.builders import capital, expense, revenue
from tests.helpers.time_utils import utc


@pytest.fixture()
def client(test_session: Session) -> Generator[TestClient, None, None]:
    app.dependency_overrides[get_session] = lambda: test_session
    app.dependency_overrides[get_settings] = lambda: AppSettings(cash_flow_months=3, display_timezone="UTC")
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture()
def cap_table(equity_engine: EquityEngine, onboarded: tuple[Workspace, Founder]) -> tuple[Workspace, Founder, Founder]:
    workspace, alice = onboarded
    alice = equity_engine.change_equity(workspace.id, alice.id, 60, "bring in co-founder")
    bob = equity_engine.invite_founder(workspace.id, "bob@acme.io", "Bob").founder
    bob = equity_engine.change_equity(workspace.id, bob.id, 40)
    return workspace, alice, bob


def test_founders_in_cap_table_order(client: TestClient, cap_table: tuple[Workspace, Founder, Founder]) -> None:
    workspace, alice, bob = cap_table

    response = client.get(f"/workspaces/{workspace.id}/founders")

    assert response.status_code == 200
    body = response.json()
    assert [founder["id"] for founder in body] == [str(alice.id), str(bob.id)]
    assert [Decimal(founder["equity_percentage"]) for founder in body] == [Decimal("60"), Decimal("40")]


def test_unknown_workspace_is_404(client: TestClient) -> None:
    response = client.get(f"/workspaces/{uuid4()}/dashboard")

    assert response.status_code == 404


def test_dashboard_reports_totals_and_imbalance(
    client: TestClient,
    equity_engine: EquityEngine,
    ledger_store: LedgerStore,
    cap_table: tuple[Workspace, Founder, Founder],
) -> None:
    workspace, alice, _ = cap_table
    ledger_store.append(workspace.id, capital(alice.id, "50000"))
    ledger_store.append(workspace.id, expense("3500", category="Legal"))

    balanced = client.get(f"/workspaces/{workspace.id}/dashboard").json()
    equity_engine.change_equity(workspace.id, alice.id, 50)
    unbalanced = client.get(f"/workspaces/{workspace.id}/dashboard").json()

    assert balanced["imbalance"] is None
    assert Decimal(balanced["summary"]["balance"]) == Decimal("46500")
    assert balanced["expense_breakdown"][0]["category"] == "Legal"
    assert {key: Decimal(value) for key, value in balanced["expense_types"].items()} == {
        "company": Decimal("3500"),
        "personal": Decimal("0"),
    }
    assert {key: Decimal(value) for key, value in balanced["revenue_types"].items()} == {
        "one_time": Decimal("0"),
        "recurring": Decimal("0"),
    }
    assert Decimal(unbalanced["imbalance"]["total_allocated"]) == Decimal("90")
    assert Decimal(unbalanced["imbalance"]["difference"]) == Decimal("-10")


def test_cash_flow_uses_configured_window(
    client: TestClient, ledger_store: LedgerStore, cap_table: tuple[Workspace, Founder, Founder]
) -> None:
    workspace, alice, _ = cap_table
    ledger_store.append(workspace.id, capital(alice.id, "50000", utc(2024, 1, 15)))
    ledger_store.append(workspace.id, expense("3500", utc(2024, 2, 20)))

    default_window = client.get(f"/workspaces/{workspace.id}/cash-flow", params={"as_of": "2024-03-31T00:00:00Z"})
    wide_window = client.get(
        f"/workspaces/{workspace.id}/cash-flow", params={"as_of": "2024-03-31T00:00:00Z", "months_back": 12}
    )

    months = default_window.json()
    assert [month["month"] for month in months] == ["2024-01-01", "2024-02-01", "2024-03-01"]
    assert [Decimal(month["inflow"]) for month in months] == [Decimal("50000"), Decimal("0"), Decimal("0")]
    assert [Decimal(month["outflow"]) for month in months] == [Decimal("0"), Decimal("3500"), Decimal("0")]
    assert len(wide_window.json()) == 12


def test_monthly_revenue(client: TestClient, ledger_store: LedgerStore, onboarded: tuple[Workspace, Founder]) -> None:
    workspace, _ = onboarded
    ledger_store.append(workspace.id, revenue("1200", utc(2024, 2, 3)))
    ledger_store.append(workspace.id, revenue("300", utc(2024, 2, 27)))

    body = client.get(f"/workspaces/{workspace.id}/revenue/monthly", params={"as_of": "2024-03-31T00:00:00Z"}).json()

    assert [(month["month"], Decimal(month["amount"])) for month in body] == [
        ("2024-01-01", Decimal("0")),
        ("2024-02-01", Decimal("1500")),
        ("2024-03-01", Decimal("0")),
    ]


def test_founder_totals(
    client: TestClient, ledger_store: LedgerStore, cap_table: tuple[Workspace, Founder, Founder]
) -> None:
    workspace, _, bob = cap_table
    ledger_store.append(workspace.id, capital(bob.id, "1000"))

    body = client.get(f"/workspaces/{workspace.id}/founder-totals").json()

    assert [(row["name"], Decimal(row["total"]), Decimal(row["share"])) for row in body] == [
        ("Bob", Decimal("1000"), Decimal("100"))
    ]


def test_exit_simulation(client: TestClient, cap_table: tuple[Workspace, Founder, Founder]) -> None:
    workspace, _, _ = cap_table

    body = client.get(f"/workspaces/{workspace.id}/exit-simulation", params={"amount": "1000000"}).json()

    assert [(row["name"], Decimal(row["payout"])) for row in body] == [
        ("Alice", Decimal("600000")),
        ("Bob", Decimal("400000")),
    ]


def test_negative_exit_amount_is_rejected(client: TestClient, cap_table: tuple[Workspace, Founder, Founder]) -> None:
    workspace, _, _ = cap_table

    response = client.get(f"/workspaces/{workspace.id}/exit-simulation", params={"amount": "-5"})

    assert response.status_code == 422


def test_exit_scenarios(client: TestClient, cap_table: tuple[Workspace, Founder, Founder]) -> None:
    workspace, _, _ = cap_table

    body = client.get(
        f"/workspaces/{workspace.id}/exit-scenarios", params=[("amounts", "1000000"), ("amounts", "10000000")]
    ).json()
    defaults = client.get(f"/workspaces/{workspace.id}/exit-scenarios").json()

    assert [[Decimal(value) for value in row["payouts"]] for row in body["rows"]] == [
        [Decimal("600000"), Decimal("6000000")],
        [Decimal("400000"), Decimal("4000000")],
    ]
    assert len(defaults["exit_amounts"]) == 6


def test_audit_filters_and_pages(client: TestClient, cap_table: tuple[Workspace, Founder, Founder]) -> None:
    workspace, alice, _ = cap_table

    equity_changes = client.get(f"/workspaces/{workspace.id}/audit", params={"action": "equity_change"}).json()
    first_page = client.get(f"/workspaces/{workspace.id}/audit", params={"limit": 2}).json()
    founder_entries = client.get(f"/workspaces/{workspace.id}/audit", params={"entity_type": "founder"}).json()

    assert len(equity_changes) == 2
    assert equity_changes[-1]["entity_id"] == str(alice.id)
    assert equity_changes[-1]["old_data"] == {"equity_percentage": "100"}
    assert [entry["action"] for entry in first_page] == ["equity_change", "invite"]
    assert {entry["entity_type"] for entry in founder_entries} == {"founder"}


def test_invalid_audit_paging_is_422(client: TestClient, cap_table: tuple[Workspace, Founder, Founder]) -> None:
    workspace, _, _ = cap_table

    response = client.get(f"/workspaces/{workspace.id}/audit", params={"limit": 0})

    assert response.status_code == 422
    assert response.json()["field"] == "limit"
