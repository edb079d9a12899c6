"""/v1/users/{uid}/income - Income entries of the monthly ledger"""

from dataclasses import asdict
from typing import Optional
from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from budgetly.api.v1.schemas import IncomeEntrySchema, IncomeListResponse, IncomeWrite, MONTH_PATTERN, UserDocument
from budgetly.api.v1.ledger_ops import commit_ledger_change, load_user_ledger
from budgetly.api.dependencies import get_request_id
from budgetly.infrastructure.database.session import get_db
from budgetly.domain.aggregation import sum_amounts
from budgetly.domain.exceptions import EntryNotFoundError
from budgetly.domain.ledger import find_entry, get_month, remove_entry, upsert_entry
from budgetly.domain.models import IncomeEntry, Ledger
from budgetly.utils.date_utils import current_month

router = APIRouter()


@router.get("/users/{uid}/income", response_model=IncomeListResponse)
def list_income(
    uid: str,
    request: Request,
    month: Optional[str] = Query(None, pattern=MONTH_PATTERN, description="Month to list; defaults to the current month"),
    db: Session = Depends(get_db),
):
    """Income entries of one month with their total"""
    _, ledger = load_user_ledger(db, uid, get_request_id(request))
    key = month or current_month()
    income = get_month(ledger, key).income

    return IncomeListResponse(
        month=key,
        income=[IncomeEntrySchema.model_validate(asdict(entry)) for entry in income],
        total_income=sum_amounts(income),
    )


@router.post("/users/{uid}/income", response_model=UserDocument)
def add_income(uid: str, request_body: IncomeWrite, request: Request, db: Session = Depends(get_db)):
    """Record a new income entry in the given month"""
    entry = request_body.entry.to_domain(request_body.month)

    return commit_ledger_change(
        db, uid, "income_add", get_request_id(request),
        lambda ledger: upsert_entry(ledger, request_body.month, entry),
    )


@router.put("/users/{uid}/income/{entry_id}", response_model=UserDocument)
def update_income(
    uid: str,
    entry_id: str,
    request_body: IncomeWrite,
    request: Request,
    db: Session = Depends(get_db),
):
    """Replace an existing income entry; 404 if the month holds no such entry"""
    entry = request_body.entry.to_domain(request_body.month, entry_id)

    return commit_ledger_change(
        db, uid, "income_update", get_request_id(request),
        lambda ledger: upsert_entry(ledger, request_body.month, entry),
    )


@router.delete("/users/{uid}/income/{entry_id}", response_model=UserDocument)
def delete_income(
    uid: str,
    entry_id: str,
    request: Request,
    month: str = Query(..., pattern=MONTH_PATTERN, description="Month holding the entry"),
    db: Session = Depends(get_db),
):
    """Remove an income entry; the ledger is unchanged when it does not exist"""

    def remove(ledger: Ledger) -> Ledger:
        if not isinstance(find_entry(ledger, month, entry_id), IncomeEntry):
            raise EntryNotFoundError(f"Income entry {entry_id} not found in {month}")
        return remove_entry(ledger, month, entry_id)

    return commit_ledger_change(db, uid, "income_delete", get_request_id(request), remove)
