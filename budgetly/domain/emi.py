"""EMI (installment purchase) amortization and grouping

An EMI purchase is stored as one ``emi`` expense per month, labelled
``"{product} - EMI {i}/{N}"``. Groups are recovered from those labels.
Paid status comes only from the per-installment ``paid`` flag; date-based
views (due, overdue) are derived next to it and never replace it.
"""

import math
import re
from dataclasses import replace
from typing import Dict, Iterable, List, Optional

from budgetly.domain.exceptions import EmiConflictError, EntryNotFoundError, LedgerValidationError
from budgetly.domain.ledger import all_expenses, remove_entry, upsert_entry
from budgetly.domain.models import EMI, EmiDetails, EmiGroup, ExpenseEntry, IncompleteEmi, Ledger
from budgetly.utils.date_utils import add_months, current_month, first_day, is_month_key, month_key, month_range

MAX_DURATION_MONTHS = 120  # 10 years
EMI_CATEGORY = "EMI"

_SUFFIX = re.compile(r"\s*-\s*EMI\s*(\d+)/(\d+)\s*$")


def installment_label(product_name: str, number: int, duration: int) -> str:
    return f"{product_name} - EMI {number}/{duration}"


def base_product_name(label: str) -> str:
    """Strip the `` - EMI i/N`` suffix from an installment label"""
    return _SUFFIX.sub("", label).strip()


def _installment(product_name: str, number: int, duration: int, monthly: float, start_month: str) -> ExpenseEntry:
    due = first_day(add_months(start_month, number - 1))
    return ExpenseEntry(
        amount=monthly,
        label=installment_label(product_name, number, duration),
        category=EMI_CATEGORY,
        date=due,
        type=EMI,
        emi_details=EmiDetails(
            duration=duration,
            remaining_months=duration - number,
            monthly_amount=monthly,
            started_on=first_day(start_month),
            installment_number=number,
        ),
    )


def validate_emi_request(product_name: str, total_amount: float, duration_months: int, start_month: str) -> None:
    """
    Raises:
        LedgerValidationError: blank product, non-positive amount, duration
            outside 1..120, or a malformed start month
    """
    if not product_name or not product_name.strip():
        raise LedgerValidationError("Product name is required")
    if isinstance(total_amount, bool) or not isinstance(total_amount, (int, float)) or not total_amount > 0:
        raise LedgerValidationError("Total amount must be a positive number")
    if isinstance(duration_months, bool) or not isinstance(duration_months, int):
        raise LedgerValidationError("Duration must be a whole number of months")
    if not 1 <= duration_months <= MAX_DURATION_MONTHS:
        raise LedgerValidationError(f"Duration must be between 1 and {MAX_DURATION_MONTHS} months")
    if not is_month_key(start_month):
        raise LedgerValidationError(f"Invalid start month: {start_month!r}")


def expand_emi(
    product_name: str,
    total_amount: float,
    duration_months: int,
    start_month: str,
) -> List[tuple[str, ExpenseEntry]]:
    """
    Split an installment purchase into one expense per month.

    Requirements:
    - Exactly ``duration_months`` installments on consecutive months from ``start_month``
    - Each installment is ``total_amount / duration_months`` (no rounding)
    - Installment i carries ``remaining_months = duration_months - i``

    Returns:
        (month_key, ExpenseEntry) pairs in installment order

    Example:
        expand_emi("Phone", 12000, 12, "2024-01")
        -> 12 entries of 1000, "Phone - EMI 1/12" in 2024-01 .. "Phone - EMI 12/12" in 2024-12
    """
    validate_emi_request(product_name, total_amount, duration_months, start_month)

    name = product_name.strip()
    monthly = total_amount / duration_months

    return [
        (key, _installment(name, i + 1, duration_months, monthly, start_month))
        for i, key in enumerate(month_range(start_month, duration_months))
    ]


def _number_of(entry: ExpenseEntry) -> int:
    if entry.emi_details and entry.emi_details.installment_number:
        return entry.emi_details.installment_number
    match = _SUFFIX.search(entry.label)
    return int(match.group(1)) if match else 0


def group_emis(expenses: Iterable[ExpenseEntry], today: Optional[str] = None) -> List[EmiGroup]:
    """
    Rebuild logical EMI purchases from stored installment expenses.

    Pure projection: entries are grouped by base product name across months,
    nothing is mutated. ``today`` is a month key used only for the due view.
    """
    today = today or current_month()
    buckets: Dict[str, List[ExpenseEntry]] = {}
    for expense in expenses:
        if not expense.is_emi:
            continue
        buckets.setdefault(base_product_name(expense.label), []).append(expense)

    groups = []
    for name, installments in buckets.items():
        installments.sort(key=lambda e: (_number_of(e), e.date))
        details = installments[0].emi_details
        start = month_key(details.started_on)

        groups.append(
            EmiGroup(
                product_name=name,
                total_amount=sum(e.amount for e in installments),
                monthly_installment=details.monthly_amount,
                duration=details.duration,
                start_month=start,
                end_month=add_months(start, details.duration - 1),
                paid_months=sum(1 for e in installments if e.emi_details.paid),
                due_months=sum(1 for e in installments if month_key(e.date) <= today),
                installments=installments,
            )
        )

    return sorted(groups, key=lambda g: (g.start_month, g.product_name))


def find_group(ledger: Ledger, product_name: str, today: Optional[str] = None) -> EmiGroup:
    name = product_name.strip()
    for group in group_emis((e for _, e in all_expenses(ledger)), today):
        if group.product_name == name:
            return group
    raise EntryNotFoundError(f"EMI {name!r} not found")


def add_emi(
    ledger: Ledger,
    product_name: str,
    total_amount: float,
    duration_months: int,
    start_month: str,
) -> Ledger:
    """
    Expand an EMI purchase into the ledger as a single batch.

    Re-submitting the same terms for an existing product is a no-op.

    Raises:
        LedgerValidationError: invalid request
        EmiConflictError: the product already has an EMI with other terms
    """
    installments = expand_emi(product_name, total_amount, duration_months, start_month)

    try:
        existing = find_group(ledger, product_name)
    except EntryNotFoundError:
        existing = None

    if existing is not None:
        same_terms = (
            existing.duration == duration_months
            and existing.start_month == start_month
            and len(existing.installments) == duration_months
            and math.isclose(existing.total_amount, total_amount, rel_tol=1e-9, abs_tol=1e-6)
        )
        if same_terms:
            return ledger
        raise EmiConflictError(f"An EMI for {existing.product_name!r} already exists with different terms")

    updated = ledger
    for key, entry in installments:
        updated = upsert_entry(updated, key, entry)
    return updated


def mark_as_paid(ledger: Ledger, product_name: str) -> Ledger:
    """
    Mark the earliest unpaid installment of a product as paid.

    Raises:
        EntryNotFoundError: no EMI with that product name
        LedgerValidationError: every installment is already paid
    """
    group = find_group(ledger, product_name)
    next_unpaid = next((e for e in group.installments if not e.emi_details.paid), None)
    if next_unpaid is None:
        raise LedgerValidationError(f"All installments of {group.product_name!r} are already paid")

    paid = replace(next_unpaid, emi_details=replace(next_unpaid.emi_details, paid=True))
    return upsert_entry(ledger, month_key(paid.date), paid)


def remove_emi(ledger: Ledger, product_name: str) -> Ledger:
    """Delete every installment of a product"""
    group = find_group(ledger, product_name)
    updated = ledger
    for entry in group.installments:
        updated = remove_entry(updated, month_key(entry.date), entry.id)
    return updated


def find_incomplete_emis(expenses: Iterable[ExpenseEntry]) -> List[IncompleteEmi]:
    """Groups whose installment numbers 1..N are not all present"""
    findings = []
    for group in group_emis(expenses):
        present = sorted({_number_of(e) for e in group.installments})
        missing = [n for n in range(1, group.duration + 1) if n not in present]
        if missing:
            findings.append(
                IncompleteEmi(
                    product_name=group.product_name,
                    duration=group.duration,
                    present=present,
                    missing=missing,
                )
            )
    return findings


def repair_emi(ledger: Ledger, product_name: str) -> Ledger:
    """
    Recreate missing installments of a partially written EMI.

    Missing installments reuse the surviving monthly amount and start month.
    A complete group is returned unchanged.
    """
    group = find_group(ledger, product_name)
    present = {_number_of(e) for e in group.installments}

    updated = ledger
    for number in range(1, group.duration + 1):
        if number in present:
            continue
        entry = _installment(group.product_name, number, group.duration, group.monthly_installment, group.start_month)
        updated = upsert_entry(updated, month_key(entry.date), entry)
    return updated
