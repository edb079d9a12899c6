"""Monthly ledger operations

A ledger maps YYYY-MM keys to month slices. Every operation returns a new
ledger; the input ledger and its slices are never mutated.
"""

import uuid
from dataclasses import replace
from typing import List

from budgetly.domain.exceptions import EntryNotFoundError, LedgerValidationError
from budgetly.domain.models import EMI, ONE_TIME, ExpenseEntry, IncomeEntry, Ledger, MonthSlice
from budgetly.utils.date_utils import is_month_key, month_key


def new_entry_id() -> str:
    return uuid.uuid4().hex


def get_month(ledger: Ledger, key: str) -> MonthSlice:
    """Slice for ``key``, empty if the month has no entries"""
    return ledger.get(key) or MonthSlice()


def available_months(ledger: Ledger) -> List[str]:
    """Month keys present in the ledger, newest first"""
    return sorted(ledger.keys(), reverse=True)


def all_expenses(ledger: Ledger) -> List[tuple[str, ExpenseEntry]]:
    """Every expense paired with the key of the month holding it"""
    return [(key, expense) for key in sorted(ledger) for expense in ledger[key].expenses]


def validate_entry(key: str, entry: IncomeEntry | ExpenseEntry) -> None:
    """
    Reject malformed entries before anything is written.

    Raises:
        LedgerValidationError: bad month key, blank label, non-positive amount,
            unknown expense type, or an entry dated outside ``key``
    """
    if not is_month_key(key):
        raise LedgerValidationError(f"Invalid month key: {key!r}")
    if not entry.label or not entry.label.strip():
        raise LedgerValidationError("Label is required")
    if not isinstance(entry.amount, (int, float)) or entry.amount <= 0:
        raise LedgerValidationError("Amount must be a positive number")
    if month_key(entry.date) != key:
        raise LedgerValidationError(
            f"Entry dated {entry.date.isoformat()} does not belong to month {key}"
        )

    if isinstance(entry, ExpenseEntry):
        if not entry.category or not entry.category.strip():
            raise LedgerValidationError("Category is required")
        if entry.type not in (ONE_TIME, EMI):
            raise LedgerValidationError(f"Unknown expense type: {entry.type!r}")
        if entry.type == EMI and entry.emi_details is None:
            raise LedgerValidationError("EMI expenses require emi_details")


def _copy_slice(month: MonthSlice) -> MonthSlice:
    return MonthSlice(income=list(month.income), expenses=list(month.expenses))


def upsert_entry(ledger: Ledger, key: str, entry: IncomeEntry | ExpenseEntry) -> Ledger:
    """
    Insert an entry without an id, or replace the entry carrying the same id.

    Returns:
        The full updated ledger

    Raises:
        LedgerValidationError: entry fails validation
        EntryNotFoundError: entry has an id that is not in month ``key``
    """
    validate_entry(key, entry)

    updated = dict(ledger)
    month = _copy_slice(get_month(ledger, key))
    entries = month.income if isinstance(entry, IncomeEntry) else month.expenses

    if entry.id is None:
        entries.append(replace(entry, id=new_entry_id()))
    else:
        index = next((i for i, e in enumerate(entries) if e.id == entry.id), None)
        if index is None:
            raise EntryNotFoundError(f"Entry {entry.id} not found in {key}")
        entries[index] = entry

    updated[key] = month
    return updated


def remove_entry(ledger: Ledger, key: str, entry_id: str) -> Ledger:
    """
    Remove an income or expense entry by id. Months left empty are dropped.

    Raises:
        EntryNotFoundError: no entry with ``entry_id`` in month ``key``
    """
    current = ledger.get(key)
    if current is None:
        raise EntryNotFoundError(f"Entry {entry_id} not found in {key}")

    income = [e for e in current.income if e.id != entry_id]
    expenses = [e for e in current.expenses if e.id != entry_id]
    if len(income) == len(current.income) and len(expenses) == len(current.expenses):
        raise EntryNotFoundError(f"Entry {entry_id} not found in {key}")

    updated = dict(ledger)
    if income or expenses:
        updated[key] = MonthSlice(income=income, expenses=expenses)
    else:
        del updated[key]
    return updated


def find_entry(ledger: Ledger, key: str, entry_id: str) -> IncomeEntry | ExpenseEntry:
    month = get_month(ledger, key)
    for entry in [*month.income, *month.expenses]:
        if entry.id == entry_id:
            return entry
    raise EntryNotFoundError(f"Entry {entry_id} not found in {key}")
