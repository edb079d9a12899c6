"""/v1/users/{uid}/expenses - One-time and EMI expense entries"""

from dataclasses import asdict
from typing import Optional
from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from budgetly.api.v1.schemas import ExpenseListResponse, ExpenseWrite, MonthExpenseSchema, MONTH_PATTERN, UserDocument
from budgetly.api.v1.ledger_ops import commit_ledger_change, load_user_ledger
from budgetly.api.dependencies import get_request_id
from budgetly.infrastructure.database.session import get_db
from budgetly.domain.aggregation import sum_amounts
from budgetly.domain.exceptions import EntryNotFoundError
from budgetly.domain.ledger import all_expenses, find_entry, get_month, remove_entry, upsert_entry
from budgetly.domain.models import ExpenseEntry, Ledger

router = APIRouter()


@router.get("/users/{uid}/expenses", response_model=ExpenseListResponse)
def list_expenses(
    uid: str,
    request: Request,
    month: Optional[str] = Query(None, pattern=MONTH_PATTERN, description="Restrict to one month; all months when omitted"),
    db: Session = Depends(get_db),
):
    """Expenses of one month, or every expense across the ledger"""
    _, ledger = load_user_ledger(db, uid, get_request_id(request))

    if month:
        pairs = [(month, e) for e in get_month(ledger, month).expenses]
    else:
        pairs = all_expenses(ledger)

    return ExpenseListResponse(
        month=month,
        expenses=[MonthExpenseSchema.model_validate({**asdict(e), "month": key}) for key, e in pairs],
        total_expenses=sum_amounts(e for _, e in pairs),
    )


@router.post("/users/{uid}/expenses", response_model=UserDocument)
def add_expense(uid: str, request_body: ExpenseWrite, request: Request, db: Session = Depends(get_db)):
    """Record a one-time or EMI expense in the given month"""
    entry = request_body.expense.to_domain(request_body.month)

    return commit_ledger_change(
        db, uid, "expense_add", get_request_id(request),
        lambda ledger: upsert_entry(ledger, request_body.month, entry),
    )


@router.put("/users/{uid}/expenses/{entry_id}", response_model=UserDocument)
def update_expense(
    uid: str,
    entry_id: str,
    request_body: ExpenseWrite,
    request: Request,
    db: Session = Depends(get_db),
):
    """Replace an existing expense; 404 if the month holds no such entry"""
    entry = request_body.expense.to_domain(request_body.month, entry_id)

    return commit_ledger_change(
        db, uid, "expense_update", get_request_id(request),
        lambda ledger: upsert_entry(ledger, request_body.month, entry),
    )


@router.delete("/users/{uid}/expenses/{entry_id}", response_model=UserDocument)
def delete_expense(
    uid: str,
    entry_id: str,
    request: Request,
    month: str = Query(..., pattern=MONTH_PATTERN, description="Month holding the entry"),
    db: Session = Depends(get_db),
):
    """Remove an expense; the ledger is unchanged when it does not exist"""

    def remove(ledger: Ledger) -> Ledger:
        if not isinstance(find_entry(ledger, month, entry_id), ExpenseEntry):
            raise EntryNotFoundError(f"Expense {entry_id} not found in {month}")
        return remove_entry(ledger, month, entry_id)

    return commit_ledger_change(db, uid, "expense_delete", get_request_id(request), remove)
