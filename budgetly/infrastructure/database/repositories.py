"""Data access layer for users, their monthly ledgers and purchase suggestions"""

import uuid
from typing import Dict, List, Optional
from sqlalchemy import func
from sqlalchemy.orm import Session
from budgetly.infrastructure.database.models import BudgetUser, IncomeItem, ExpenseItem, ProductSuggestion
from budgetly.domain.exceptions import UserNotFoundError
from budgetly.domain.models import (
    EMI,
    EmiDetails,
    ExpenseEntry,
    IncomeEntry,
    Ledger,
    MonthSlice,
    PurchaseAdvice,
    User,
)
from budgetly.domain.advice import Purchase

PROFILE_FIELDS = ("name", "photo_url", "savings", "location", "occupation")


def _income_to_domain(row: IncomeItem) -> IncomeEntry:
    return IncomeEntry(id=row.id, amount=row.amount, label=row.label, source=row.source, date=row.entry_date)


def _expense_to_domain(row: ExpenseItem) -> ExpenseEntry:
    details = None
    if row.type == "emi" and row.emi_duration is not None:
        details = EmiDetails(
            duration=row.emi_duration,
            remaining_months=row.emi_remaining_months,
            monthly_amount=row.emi_monthly_amount,
            started_on=row.emi_started_on,
            installment_number=row.emi_installment_number,
            paid=row.emi_paid,
        )
    return ExpenseEntry(
        id=row.id,
        amount=row.amount,
        label=row.label,
        category=row.category,
        date=row.entry_date,
        type=row.type,
        emi_details=details,
    )


def _apply_income(row: IncomeItem, entry: IncomeEntry) -> None:
    row.label = entry.label
    row.amount = entry.amount
    row.source = entry.source
    row.entry_date = entry.date


def _apply_expense(row: ExpenseItem, entry: ExpenseEntry) -> None:
    row.label = entry.label
    row.amount = entry.amount
    row.category = entry.category
    row.entry_date = entry.date
    row.type = entry.type

    details = entry.emi_details
    row.emi_duration = details.duration if details else None
    row.emi_remaining_months = details.remaining_months if details else None
    row.emi_monthly_amount = details.monthly_amount if details else None
    row.emi_started_on = details.started_on if details else None
    row.emi_installment_number = details.installment_number if details else None
    row.emi_paid = details.paid if details else False


class UserRepository:
    """Repository for users and their monthly ledgers"""

    def __init__(self, db: Session):
        self.db = db

    def get_by_uid(self, uid: str) -> Optional[BudgetUser]:
        return self.db.query(BudgetUser).filter(BudgetUser.uid == uid).first()

    def require(self, uid: str) -> BudgetUser:
        """Fetch a user or raise UserNotFoundError"""
        user = self.get_by_uid(uid)
        if user is None:
            raise UserNotFoundError(f"User {uid} not found")
        return user

    def find_or_create(self, uid: str, email: str, name: str, **profile) -> BudgetUser:
        """Return the existing user for ``uid`` or register a new one"""
        user = self.get_by_uid(uid)
        if user is not None:
            return user

        user = BudgetUser(uid=uid, email=email, name=name, savings=0.0)
        for field in PROFILE_FIELDS:
            if profile.get(field) is not None:
                setattr(user, field, profile[field])
        self.db.add(user)
        self.db.flush()
        return user

    def update_profile(self, user: BudgetUser, **changes) -> BudgetUser:
        """Apply non-null profile changes"""
        for field in PROFILE_FIELDS:
            if changes.get(field) is not None:
                setattr(user, field, changes[field])
        self.db.flush()
        return user

    def load_ledger(self, user: BudgetUser) -> Ledger:
        """Assemble the user's monthly ledger from stored entries"""
        ledger: Ledger = {}

        income_rows = (
            self.db.query(IncomeItem)
            .filter(IncomeItem.user_id == user.id)
            .order_by(IncomeItem.entry_date, IncomeItem.created_at)
            .all()
        )
        for row in income_rows:
            ledger.setdefault(row.month_key, MonthSlice()).income.append(_income_to_domain(row))

        expense_rows = (
            self.db.query(ExpenseItem)
            .filter(ExpenseItem.user_id == user.id)
            .order_by(ExpenseItem.entry_date, ExpenseItem.created_at)
            .all()
        )
        for row in expense_rows:
            ledger.setdefault(row.month_key, MonthSlice()).expenses.append(_expense_to_domain(row))

        return ledger

    def to_domain(self, user: BudgetUser, ledger: Optional[Ledger] = None) -> User:
        return User(
            uid=user.uid,
            email=user.email,
            name=user.name,
            savings=user.savings,
            photo_url=user.photo_url,
            location=user.location,
            occupation=user.occupation,
            months=ledger if ledger is not None else self.load_ledger(user),
            created_at=user.created_at,
            updated_at=user.updated_at,
        )

    def save_ledger(self, user: BudgetUser, before: Ledger, after: Ledger) -> List[str]:
        """
        Persist every month that differs between two ledger versions.

        Writes are only flushed; the caller commits so a multi-month change
        (such as an EMI expansion) lands in one transaction.

        Returns:
            Keys of the months that were written
        """
        changed = sorted(k for k in set(before) | set(after) if before.get(k) != after.get(k))
        for key in changed:
            self.save_month(user, key, after.get(key) or MonthSlice())
        if changed:
            user.updated_at = func.now()
        self.db.flush()
        return changed

    def save_month(self, user: BudgetUser, key: str, month: MonthSlice) -> None:
        """Make the stored entries of month ``key`` match ``month`` exactly"""
        income_rows: Dict[str, IncomeItem] = {
            row.id: row
            for row in self.db.query(IncomeItem).filter(IncomeItem.user_id == user.id, IncomeItem.month_key == key)
        }
        for entry in month.income:
            row = income_rows.pop(entry.id, None)
            if row is None:
                row = IncomeItem(id=entry.id, user_id=user.id, month_key=key)
                self.db.add(row)
            _apply_income(row, entry)
        for row in income_rows.values():
            self.db.delete(row)

        expense_rows: Dict[str, ExpenseItem] = {
            row.id: row
            for row in self.db.query(ExpenseItem).filter(ExpenseItem.user_id == user.id, ExpenseItem.month_key == key)
        }
        for entry in month.expenses:
            row = expense_rows.pop(entry.id, None)
            if row is None:
                row = ExpenseItem(id=entry.id, user_id=user.id, month_key=key)
                self.db.add(row)
            _apply_expense(row, entry)
        for row in expense_rows.values():
            self.db.delete(row)


class SuggestionRepository:
    """Repository for purchase suggestions"""

    def __init__(self, db: Session):
        self.db = db

    def create_suggestion(self, uid: str, purchase: Purchase, advice: PurchaseAdvice, reason: str) -> ProductSuggestion:
        """Persist an evaluated purchase"""
        suggestion = ProductSuggestion(
            uid=uid,
            product_name=purchase.product_name,
            price=purchase.full_price,
            emi_amount=purchase.monthly_emi if purchase.payment_type == EMI else None,
            duration=purchase.duration if purchase.payment_type == EMI else None,
            classification=advice.classification.value,
            reason=reason,
        )
        self.db.add(suggestion)
        self.db.flush()
        return suggestion

    def get_suggestions_by_user(self, uid: str, limit: int = 10) -> List[ProductSuggestion]:
        """Fetch most recent suggestions for a user"""
        return (
            self.db.query(ProductSuggestion)
            .filter(ProductSuggestion.uid == uid)
            .order_by(ProductSuggestion.suggested_at.desc())
            .limit(limit)
            .all()
        )

    def delete_suggestion(self, uid: str, suggestion_id: uuid.UUID) -> bool:
        """Delete one of the user's suggestions; False if it does not exist"""
        suggestion = (
            self.db.query(ProductSuggestion)
            .filter(ProductSuggestion.id == suggestion_id, ProductSuggestion.uid == uid)
            .first()
        )
        if suggestion is None:
            return False
        self.db.delete(suggestion)
        self.db.flush()
        return True

    def get_stats(self, uid: str) -> Dict[str, Dict[str, float]]:
        """Count and total price of suggestions per classification"""
        rows = (
            self.db.query(
                ProductSuggestion.classification,
                func.count(ProductSuggestion.id),
                func.sum(ProductSuggestion.price),
            )
            .filter(ProductSuggestion.uid == uid)
            .group_by(ProductSuggestion.classification)
            .all()
        )
        return {classification: {"count": count, "total_value": total or 0.0} for classification, count, total in rows}
