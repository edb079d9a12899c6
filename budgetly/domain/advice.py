"""Purchase advice rule engine - deterministic good/moderate/risky classification"""

from dataclasses import dataclass
from typing import Optional

from budgetly.domain.emi import MAX_DURATION_MONTHS
from budgetly.domain.exceptions import LedgerValidationError
from budgetly.domain.metrics import format_inr
from budgetly.domain.models import EMI, ONE_TIME, Classification, FinancialMetrics, PurchaseAdvice

MAX_PRICE = 10_000_000
MAX_MONTHLY_EMI = 1_000_000

# Safety thresholds, as fractions of monthly income
SINGLE_EMI_LIMIT = 0.25
TOTAL_EMI_LIMIT = 0.40
SAVINGS_BUFFER = 0.10
EXPENSE_RATIO_LIMIT = 80

SUMMARY = {
    Classification.MODERATE: "Proceed with caution - consider waiting or saving more",
    Classification.RISKY: "Not recommended - exceeds financial safety thresholds",
}
AFFIRMATIVE = "Safe to proceed - within recommended limits"


@dataclass
class Purchase:
    """A prospective purchase normalised to (monthly EMI, full price)"""

    product_name: str
    payment_type: str
    monthly_emi: float
    full_price: float
    duration: int
    category: str = "Other"


def resolve_purchase(
    product_name: str,
    payment_type: str,
    price: Optional[float] = None,
    monthly_emi: Optional[float] = None,
    duration: Optional[int] = None,
    category: Optional[str] = None,
) -> Purchase:
    """
    Validate a purchase request and fill in the derived amount.

    One-time purchases carry a price and no EMI. EMI purchases carry a duration
    plus either a monthly EMI (price = emi * duration) or a price
    (emi = price / duration).

    Raises:
        LedgerValidationError: missing or out-of-range values
    """
    if not product_name or not product_name.strip():
        raise LedgerValidationError("Product name is required")

    if payment_type == ONE_TIME:
        if price is None or price <= 0:
            raise LedgerValidationError("Price must be greater than 0")
        monthly, full, months = 0.0, float(price), 0
    elif payment_type == EMI:
        if duration is None or not 1 <= duration <= MAX_DURATION_MONTHS:
            raise LedgerValidationError(f"Duration must be between 1 and {MAX_DURATION_MONTHS} months")
        if monthly_emi is not None:
            if monthly_emi <= 0:
                raise LedgerValidationError("Monthly EMI must be greater than 0")
            monthly, full = float(monthly_emi), monthly_emi * duration
        elif price is not None and price > 0:
            monthly, full = price / duration, float(price)
        else:
            raise LedgerValidationError("Provide a price or a monthly EMI")
        months = duration
    else:
        raise LedgerValidationError(f"Unknown payment type: {payment_type!r}")

    if full > MAX_PRICE:
        raise LedgerValidationError(f"Price cannot exceed {format_inr(MAX_PRICE)}")
    if monthly > MAX_MONTHLY_EMI:
        raise LedgerValidationError(f"Monthly EMI cannot exceed {format_inr(MAX_MONTHLY_EMI)}")

    return Purchase(
        product_name=product_name.strip(),
        payment_type=payment_type,
        monthly_emi=monthly,
        full_price=full,
        duration=months,
        category=(category or "Other").strip() or "Other",
    )


def escalate(current: Classification, target: Classification) -> Classification:
    """Raise ``current`` to ``target`` if it is more severe; never lower it"""
    return target if target.rank > current.rank else current


def evaluate_purchase(monthly_emi: float, full_price: float, metrics: FinancialMetrics) -> PurchaseAdvice:
    """
    Classify a prospective purchase against the current month's metrics.

    Rules, evaluated in order, each may only escalate:
    1. monthly EMI above 25% of income -> risky
    2. existing EMIs plus the new EMI above 40% of income -> risky
    3. expense ratio above 80% -> at least moderate
    4. savings left after paying the full price below 10% of income -> at least moderate
    """
    income = metrics.total_income
    classification = Classification.GOOD
    reasons = []

    if monthly_emi > income * SINGLE_EMI_LIMIT:
        classification = escalate(classification, Classification.RISKY)
        reasons.append(f"EMI ({format_inr(monthly_emi)}) exceeds 25% of monthly income")

    total_emis = metrics.total_emi_burden + monthly_emi
    if total_emis > income * TOTAL_EMI_LIMIT:
        classification = escalate(classification, Classification.RISKY)
        reasons.append(f"Total EMIs ({format_inr(total_emis)}) exceed 40% of monthly income")

    if metrics.expense_ratio > EXPENSE_RATIO_LIMIT:
        classification = escalate(classification, Classification.MODERATE)
        reasons.append(f"Current expense ratio is {metrics.expense_ratio:.1f}% (high)")

    remaining = metrics.current_savings - full_price
    if remaining < income * SAVINGS_BUFFER:
        classification = escalate(classification, Classification.MODERATE)
        reasons.append(f"Remaining savings ({format_inr(remaining)}) below 10% of income")

    if classification is Classification.GOOD:
        reasons.append(AFFIRMATIVE)
    else:
        reasons.append(SUMMARY[classification])

    return PurchaseAdvice(classification=classification, reasons=reasons)
