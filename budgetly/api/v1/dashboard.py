"""Dashboard, savings history and monthly report endpoints"""

import logging
from dataclasses import asdict
from typing import Optional
from fastapi import APIRouter, Depends, Path, Query, Request
from sqlalchemy.orm import Session

from budgetly.api.v1.schemas import (
    AlertSchema,
    CategoryTotal,
    DashboardResponse,
    InsightResponse,
    MetricsSchema,
    MONTH_PATTERN,
    MonthlyReportSchema,
    ReportsResponse,
    SavingsPointSchema,
    SavingsResponse,
)
from budgetly.api.v1.ledger_ops import load_user_ledger
from budgetly.api.dependencies import get_advisor_client, get_request_id
from budgetly.infrastructure.database.session import get_db
from budgetly.infrastructure.clients.advisor import AdvisorClient
from budgetly.domain.aggregation import category_breakdown
from budgetly.domain.exceptions import AdvisorAPIError
from budgetly.domain.ledger import available_months, get_month
from budgetly.domain.metrics import (
    calculate_metrics,
    format_inr,
    generate_alerts,
    monthly_reports,
    savings_history,
    spending_insights,
)
from budgetly.domain.models import FinancialMetrics, MonthSlice
from budgetly.infrastructure.observability.metrics import advisor_failures_counter
from budgetly.utils.date_utils import current_month

router = APIRouter()


def rule_insight(month: str, slice_: MonthSlice, metrics: FinancialMetrics) -> str:
    """Plain-language summary of a month built from the metrics alone"""
    parts = [
        f"In {month} you earned {format_inr(metrics.total_income)} "
        f"and spent {format_inr(metrics.total_expenses)}, "
        f"leaving {format_inr(metrics.current_savings)}."
    ]
    if slice_.expenses:
        parts.extend(f"{line}." for line in spending_insights(slice_.expenses))
    return " ".join(parts)


@router.get("/users/{uid}/dashboard", response_model=DashboardResponse)
def get_dashboard(
    uid: str,
    request: Request,
    month: Optional[str] = Query(None, pattern=MONTH_PATTERN, description="Month to show; defaults to the current month"),
    db: Session = Depends(get_db),
):
    """
    Metrics, alerts and spending insights for one month.

    The health score also weighs the user's accumulated savings against
    six months of that month's expenses.
    """
    user, ledger = load_user_ledger(db, uid, get_request_id(request))
    key = month or current_month()
    slice_ = get_month(ledger, key)
    metrics = calculate_metrics(slice_, user.savings)

    return DashboardResponse(
        uid=uid,
        month=key,
        metrics=MetricsSchema.model_validate(asdict(metrics)),
        alerts=[AlertSchema.model_validate(asdict(a)) for a in generate_alerts(metrics)],
        insights=spending_insights(slice_.expenses),
        available_months=available_months(ledger),
    )


@router.get("/users/{uid}/savings", response_model=SavingsResponse)
def get_savings(uid: str, request: Request, db: Session = Depends(get_db)):
    """Net savings per month, oldest first"""
    user, ledger = load_user_ledger(db, uid, get_request_id(request))
    history = savings_history(ledger)

    return SavingsResponse(
        uid=uid,
        history=[SavingsPointSchema.model_validate(asdict(p)) for p in history],
        total_savings=sum(p.savings for p in history),
        accumulated_savings=user.savings,
    )


@router.get("/users/{uid}/reports", response_model=ReportsResponse)
def get_reports(uid: str, request: Request, db: Session = Depends(get_db)):
    """Per-month totals and category breakdowns, newest first"""
    _, ledger = load_user_ledger(db, uid, get_request_id(request))

    return ReportsResponse(
        uid=uid,
        reports=[
            MonthlyReportSchema(
                month=r.month,
                total_income=r.total_income,
                total_expenses=r.total_expenses,
                savings=r.savings,
                category_breakdown=r.category_breakdown,
                top_categories=[CategoryTotal(category=c, amount=a) for c, a in r.top_categories],
            )
            for r in monthly_reports(ledger)
        ],
    )


@router.post("/users/{uid}/reports/{month}/insight", response_model=InsightResponse)
async def create_insight(
    uid: str,
    request: Request,
    month: str = Path(..., pattern=MONTH_PATTERN),
    db: Session = Depends(get_db),
    advisor: AdvisorClient = Depends(get_advisor_client),
):
    """
    Narrative summary of one month.

    Uses the generative advisor when configured; falls back to a
    rule-based summary when it is disabled or fails.
    """
    request_id = get_request_id(request)
    user, ledger = load_user_ledger(db, uid, request_id)
    slice_ = get_month(ledger, month)
    metrics = calculate_metrics(slice_, user.savings)

    if advisor.enabled:
        try:
            text = await advisor.monthly_insight(
                uid, month, metrics, user.savings, category_breakdown(slice_.expenses)
            )
            return InsightResponse(month=month, insight=text, source="advisor")
        except AdvisorAPIError as e:
            advisor_failures_counter.inc()
            logging.warning(f"Advisor insight failed, using rules: {e}", extra={"request_id": request_id})

    return InsightResponse(month=month, insight=rule_insight(month, slice_, metrics), source="rules")
