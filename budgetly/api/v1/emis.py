"""/v1/users/{uid}/emis - Installment purchases grouped by product"""

from typing import List
from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from budgetly.api.v1.schemas import (
    EmiCreate,
    EmiGroupSchema,
    EmiListResponse,
    IncompleteEmiSchema,
    ReconciliationResponse,
    UserDocument,
)
from budgetly.api.v1.ledger_ops import commit_ledger_change, load_user_ledger
from budgetly.api.dependencies import get_request_id
from budgetly.infrastructure.database.session import get_db
from budgetly.domain.emi import add_emi, find_incomplete_emis, group_emis, mark_as_paid, remove_emi, repair_emi
from budgetly.domain.ledger import all_expenses
from budgetly.infrastructure.observability.metrics import record_emi_plan

router = APIRouter()


@router.get("/users/{uid}/emis", response_model=EmiListResponse)
def list_emis(uid: str, request: Request, db: Session = Depends(get_db)):
    """
    EMI purchases reconstructed from installment expenses.

    Returns:
        Active and completed groups plus totals over the active ones
    """
    _, ledger = load_user_ledger(db, uid, get_request_id(request))
    groups = group_emis(e for _, e in all_expenses(ledger))

    active = [g for g in groups if g.is_active]
    completed = [g for g in groups if not g.is_active]

    return EmiListResponse(
        active=[EmiGroupSchema.from_domain(g) for g in active],
        completed=[EmiGroupSchema.from_domain(g) for g in completed],
        total_active=len(active),
        total_monthly_emi=sum(g.monthly_installment for g in active),
        total_emi_amount=sum(g.total_amount for g in active),
    )


@router.post("/users/{uid}/emis", response_model=UserDocument)
def create_emi(uid: str, request_body: EmiCreate, request: Request, db: Session = Depends(get_db)):
    """
    Expand an installment purchase into one expense per month.

    All installments are written in a single transaction. Repeating the
    request with the same terms changes nothing; other terms for the same
    product are rejected with 409.
    """

    def record_plan(months: List[str]) -> None:
        if months:
            record_emi_plan(request_body.duration_months)

    return commit_ledger_change(
        db, uid, "emi_create", get_request_id(request),
        lambda ledger: add_emi(
            ledger,
            request_body.product_name,
            request_body.total_amount,
            request_body.duration_months,
            request_body.start_month,
        ),
        on_commit=record_plan,
    )


@router.get("/users/{uid}/emis/reconciliation", response_model=ReconciliationResponse)
def reconcile_emis(uid: str, request: Request, db: Session = Depends(get_db)):
    """EMI groups with missing installments, left over from partial writes"""
    _, ledger = load_user_ledger(db, uid, get_request_id(request))
    findings = find_incomplete_emis(e for _, e in all_expenses(ledger))

    return ReconciliationResponse(
        uid=uid,
        incomplete=[
            IncompleteEmiSchema(
                product_name=f.product_name,
                duration=f.duration,
                present=f.present,
                missing=f.missing,
            )
            for f in findings
        ],
    )


@router.post("/users/{uid}/emis/{product_name:path}/pay", response_model=UserDocument)
def pay_emi(uid: str, product_name: str, request: Request, db: Session = Depends(get_db)):
    """Mark the earliest unpaid installment of a product as paid"""
    return commit_ledger_change(
        db, uid, "emi_pay", get_request_id(request),
        lambda ledger: mark_as_paid(ledger, product_name),
    )


@router.post("/users/{uid}/emis/{product_name:path}/repair", response_model=UserDocument)
def repair(uid: str, product_name: str, request: Request, db: Session = Depends(get_db)):
    """Recreate the missing installments of a partially written EMI"""
    return commit_ledger_change(
        db, uid, "emi_repair", get_request_id(request),
        lambda ledger: repair_emi(ledger, product_name),
    )


@router.delete("/users/{uid}/emis/{product_name:path}", response_model=UserDocument)
def delete_emi(uid: str, product_name: str, request: Request, db: Session = Depends(get_db)):
    """Delete every installment of a product"""
    return commit_ledger_change(
        db, uid, "emi_delete", get_request_id(request),
        lambda ledger: remove_emi(ledger, product_name),
    )
