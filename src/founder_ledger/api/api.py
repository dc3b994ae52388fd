import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from decimal import Decimal
from time import perf_counter
from typing import Annotated, AsyncGenerator, Awaitable, Callable

from fastapi import Depends, FastAPI, Query, Request, Response
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from sqlalchemy.orm import sessionmaker

from founder_ledger.api.dependencies import (
    get_audit_recorder,
    get_equity_engine,
    get_ledger_store,
    get_settings,
    require_workspace,
)
from founder_ledger.config import AppSettings, config
from founder_ledger.db.db import create_db_engine
from founder_ledger.domain.audit import AuditEntry, AuditQuery
from founder_ledger.domain.base_types import AuditAction, EntityType, ExpenseType, RevenueType
from founder_ledger.domain.errors import NotFoundError, ValidationError
from founder_ledger.domain.workspace import Founder, Workspace
from founder_ledger.services.audit_recorder import AuditRecorder
from founder_ledger.services.equity_engine import EquityEngine
from founder_ledger.services.ledger_store import LedgerStore
from founder_ledger.services.validation import validated
from founder_ledger.utils.dashboard_summary import (
    DashboardSummary,
    ExpenseCategoryTotal,
    FounderTotal,
    MonthlyCashFlow,
    MonthlyRevenue,
    compute_dashboard_summary,
    compute_expense_breakdown,
    compute_expense_type_totals,
    compute_founder_totals,
    compute_monthly_cash_flow,
    compute_monthly_revenue,
    compute_revenue_type_totals,
)
from founder_ledger.utils.exit_simulation import (
    DEFAULT_EXIT_SCENARIOS,
    ExitPayout,
    ScenarioComparison,
    compare_exit_scenarios,
    simulate_exit,
)

logger = logging.getLogger(__name__)


class ImbalanceReport(BaseModel):
    total_allocated: Decimal
    difference: Decimal


class DashboardResponse(BaseModel):
    summary: DashboardSummary
    expense_breakdown: list[ExpenseCategoryTotal]
    expense_types: dict[ExpenseType, Decimal]
    revenue_types: dict[RevenueType, Decimal]
    imbalance: ImbalanceReport | None = None


@asynccontextmanager
async def lifespan(fastapi_app: FastAPI) -> AsyncGenerator[None, None]:
    settings = config()
    engine = create_db_engine(settings.db_file, echo=settings.db_echo)
    fastapi_app.state.sessionmaker = sessionmaker(engine)
    yield
    engine.dispose()


app = FastAPI(lifespan=lifespan)


@app.middleware("http")
async def log_process_time(request: Request, call_next: Callable[[Request], Awaitable[Response]]) -> Response:
    start_time = perf_counter()
    response = await call_next(request)
    process_time = perf_counter() - start_time
    logger.info("Request time: %s %s: %.4fs", request.method, request.url, process_time)
    return response


@app.exception_handler(NotFoundError)
async def not_found_handler(request: Request, exc: NotFoundError) -> JSONResponse:
    return JSONResponse(status_code=404, content={"detail": str(exc)})


@app.exception_handler(ValidationError)
async def validation_error_handler(request: Request, exc: ValidationError) -> JSONResponse:
    return JSONResponse(status_code=422, content={"detail": str(exc), "field": exc.field})


@app.get("/workspaces/{workspace_id}/founders")
def get_founders(
    workspace: Annotated[Workspace, Depends(require_workspace)],
    engine: Annotated[EquityEngine, Depends(get_equity_engine)],
) -> list[Founder]:
    return engine.list_founders(workspace.id)


@app.get("/workspaces/{workspace_id}/dashboard")
def get_dashboard(
    workspace: Annotated[Workspace, Depends(require_workspace)],
    engine: Annotated[EquityEngine, Depends(get_equity_engine)],
    store: Annotated[LedgerStore, Depends(get_ledger_store)],
) -> DashboardResponse:
    ws = workspace.id
    founders = engine.list_founders(ws)
    expenses = store.expenses(ws)
    revenue = store.revenue(ws)
    summary = compute_dashboard_summary(revenue, expenses, store.capital_contributions(ws), founders)
    warning = engine.check_balance(ws) if founders else None
    return DashboardResponse(
        summary=summary,
        expense_breakdown=compute_expense_breakdown(expenses),
        expense_types=compute_expense_type_totals(expenses),
        revenue_types=compute_revenue_type_totals(revenue),
        imbalance=(
            ImbalanceReport(total_allocated=warning.total_allocated, difference=warning.difference)
            if warning is not None
            else None
        ),
    )


@app.get("/workspaces/{workspace_id}/cash-flow")
def get_cash_flow(
    workspace: Annotated[Workspace, Depends(require_workspace)],
    store: Annotated[LedgerStore, Depends(get_ledger_store)],
    settings: Annotated[AppSettings, Depends(get_settings)],
    months_back: Annotated[int | None, Query(gt=0, le=120)] = None,
    as_of: datetime | None = None,
) -> list[MonthlyCashFlow]:
    ws = workspace.id
    return compute_monthly_cash_flow(
        store.capital_contributions(ws),
        store.revenue(ws),
        store.expenses(ws),
        months_back=months_back or settings.cash_flow_months,
        as_of=as_of or datetime.now(timezone.utc),
        tz=settings.tz,
    )


@app.get("/workspaces/{workspace_id}/revenue/monthly")
def get_monthly_revenue(
    workspace: Annotated[Workspace, Depends(require_workspace)],
    store: Annotated[LedgerStore, Depends(get_ledger_store)],
    settings: Annotated[AppSettings, Depends(get_settings)],
    months_back: Annotated[int | None, Query(gt=0, le=120)] = None,
    as_of: datetime | None = None,
) -> list[MonthlyRevenue]:
    return compute_monthly_revenue(
        store.revenue(workspace.id),
        months_back=months_back or settings.cash_flow_months,
        as_of=as_of or datetime.now(timezone.utc),
        tz=settings.tz,
    )


@app.get("/workspaces/{workspace_id}/founder-totals")
def get_founder_totals(
    workspace: Annotated[Workspace, Depends(require_workspace)],
    engine: Annotated[EquityEngine, Depends(get_equity_engine)],
    store: Annotated[LedgerStore, Depends(get_ledger_store)],
) -> list[FounderTotal]:
    ws = workspace.id
    return compute_founder_totals(store.capital_contributions(ws), engine.list_founders(ws))


@app.get("/workspaces/{workspace_id}/exit-simulation")
def get_exit_simulation(
    workspace: Annotated[Workspace, Depends(require_workspace)],
    amount: Annotated[Decimal, Query(ge=0)],
    engine: Annotated[EquityEngine, Depends(get_equity_engine)],
) -> list[ExitPayout]:
    return simulate_exit(amount, engine.list_founders(workspace.id))


@app.get("/workspaces/{workspace_id}/exit-scenarios")
def get_exit_scenarios(
    workspace: Annotated[Workspace, Depends(require_workspace)],
    engine: Annotated[EquityEngine, Depends(get_equity_engine)],
    amounts: Annotated[list[Decimal] | None, Query()] = None,
) -> ScenarioComparison:
    return compare_exit_scenarios(amounts or DEFAULT_EXIT_SCENARIOS, engine.list_founders(workspace.id))


@app.get("/workspaces/{workspace_id}/audit")
def get_audit_entries(
    workspace: Annotated[Workspace, Depends(require_workspace)],
    recorder: Annotated[AuditRecorder, Depends(get_audit_recorder)],
    entity_type: EntityType | None = None,
    action: Annotated[list[AuditAction] | None, Query()] = None,
    limit: int = 100,
    offset: int = 0,
) -> list[AuditEntry]:
    query = validated(
        AuditQuery,
        {
            "entity_type": entity_type,
            "actions": frozenset(action) if action else None,
            "limit": limit,
            "offset": offset,
        },
    )
    return list(recorder.list(workspace.id, query))
