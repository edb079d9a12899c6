"""/v1/users/{uid}/suggestions - Purchase advice and its history"""

import time
import uuid
import logging
from dataclasses import asdict
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.orm import Session

from budgetly.api.v1.schemas import (
    MetricsSchema,
    PurchaseRequest,
    SuggestionListResponse,
    SuggestionResponse,
    SuggestionSchema,
    SuggestionStat,
    SuggestionStatsResponse,
)
from budgetly.api.v1.ledger_ops import load_user_ledger, raise_http
from budgetly.api.dependencies import get_advisor_client, get_request_id
from budgetly.config import settings
from budgetly.infrastructure.database.session import get_db
from budgetly.infrastructure.database.models import ProductSuggestion
from budgetly.infrastructure.database.repositories import SuggestionRepository
from budgetly.infrastructure.clients.advisor import AdvisorClient
from budgetly.domain.advice import evaluate_purchase, resolve_purchase
from budgetly.domain.exceptions import AdvisorAPIError
from budgetly.domain.ledger import get_month
from budgetly.domain.metrics import calculate_metrics
from budgetly.infrastructure.observability.metrics import advisor_failures_counter, record_suggestion
from budgetly.infrastructure.observability.logging import log_suggestion
from budgetly.utils.date_utils import current_month

router = APIRouter()


def _to_schema(row: ProductSuggestion) -> SuggestionSchema:
    return SuggestionSchema(
        id=str(row.id),
        uid=row.uid,
        product_name=row.product_name,
        price=row.price,
        emi_amount=row.emi_amount,
        duration=row.duration,
        classification=row.classification,
        reason=row.reason,
        suggested_at=row.suggested_at,
    )


@router.post("/users/{uid}/suggestions", response_model=SuggestionResponse)
async def create_suggestion(
    uid: str,
    request_body: PurchaseRequest,
    request: Request,
    db: Session = Depends(get_db),
    advisor: AdvisorClient = Depends(get_advisor_client),
):
    """
    Classify a prospective purchase as good, moderate or risky.

    Flow:
    1. Compute the month's metrics from the user's ledger
    2. Normalise the purchase to (monthly EMI, full price)
    3. Run the rule engine
    4. Optionally let the advisor reword the reason (classification is kept)
    5. Persist the suggestion
    """
    start_time = time.time()
    request_id = get_request_id(request)

    user, ledger = load_user_ledger(db, uid, request_id)
    month = request_body.month or current_month()

    try:
        metrics = calculate_metrics(get_month(ledger, month), user.savings)

        purchase = resolve_purchase(
            product_name=request_body.product_name,
            payment_type=request_body.payment_type,
            price=request_body.price,
            monthly_emi=getattr(request_body, "monthly_emi", None),
            duration=getattr(request_body, "duration", None),
            category=request_body.category,
        )
        advice = evaluate_purchase(purchase.monthly_emi, purchase.full_price, metrics)

        reason = advice.reason
        advisor_used = False
        if request_body.use_advisor and advisor.enabled:
            try:
                reason = await advisor.refine_reason(uid, purchase, metrics, advice, month)
                advisor_used = True
            except AdvisorAPIError as e:
                advisor_failures_counter.inc()
                logging.warning(f"Advisor failed, keeping rule reason: {e}", extra={"request_id": request_id})

        repo = SuggestionRepository(db)
        suggestion = repo.create_suggestion(uid, purchase, advice, reason)
        db.commit()

    except Exception as e:
        db.rollback()
        raise_http(e, request_id)

    duration_ms = (time.time() - start_time) * 1000
    record_suggestion(advice.classification.value)
    log_suggestion(request_id, uid, advice.classification.value, advisor_used, duration_ms)

    return SuggestionResponse(
        suggestion=_to_schema(suggestion),
        rule_reasons=advice.reasons,
        advisor_used=advisor_used,
        metrics=MetricsSchema.model_validate(asdict(metrics)),
    )


@router.get("/users/{uid}/suggestions", response_model=SuggestionListResponse)
def list_suggestions(
    uid: str,
    limit: Optional[int] = Query(None, ge=1, le=100, description="Most recent suggestions to return"),
    db: Session = Depends(get_db),
):
    """Most recent suggestions for a user, newest first"""
    repo = SuggestionRepository(db)
    rows = repo.get_suggestions_by_user(uid, limit=limit or settings.suggestion_history_limit)
    return SuggestionListResponse(uid=uid, suggestions=[_to_schema(r) for r in rows])


@router.get("/users/{uid}/suggestions/stats", response_model=SuggestionStatsResponse)
def suggestion_stats(uid: str, db: Session = Depends(get_db)):
    """Suggestion count and total price per classification"""
    stats = SuggestionRepository(db).get_stats(uid)
    return SuggestionStatsResponse(
        uid=uid,
        stats={c: SuggestionStat(count=s["count"], total_value=s["total_value"]) for c, s in stats.items()},
    )


@router.delete("/users/{uid}/suggestions/{suggestion_id}", status_code=204)
def delete_suggestion(uid: str, suggestion_id: str, db: Session = Depends(get_db)):
    """Delete one suggestion"""
    try:
        suggestion_uuid = uuid.UUID(suggestion_id)
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid suggestion ID format")

    if not SuggestionRepository(db).delete_suggestion(uid, suggestion_uuid):
        raise HTTPException(status_code=404, detail="Suggestion not found")
    db.commit()
