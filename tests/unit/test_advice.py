"""Unit tests for the purchase advice rule engine"""

import pytest
from budgetly.domain.advice import evaluate_purchase, escalate, resolve_purchase
from budgetly.domain.exceptions import LedgerValidationError
from budgetly.domain.models import Classification, FinancialMetrics


def _metrics(income: float, expenses: float = 0, emis: float = 0) -> FinancialMetrics:
    return FinancialMetrics(
        total_income=income,
        total_expenses=expenses,
        total_emi_burden=emis,
        current_savings=income - expenses,
        expense_ratio=expenses / income * 100 if income else 0,
        emi_ratio=emis / income * 100 if income else 0,
        financial_health_score=50,
    )


def test_large_emi_is_risky():
    """EMI 3000 against income 10000 exceeds the 25% single-EMI limit"""
    advice = evaluate_purchase(3000, 36000, _metrics(10000))

    assert advice.classification is Classification.RISKY
    assert advice.reasons[0] == "EMI (₹3,000.00) exceeds 25% of monthly income"
    assert advice.reasons[-1] == "Not recommended - exceeds financial safety thresholds"


def test_affordable_purchase_is_good():
    advice = evaluate_purchase(0, 5000, _metrics(100000, 20000))

    assert advice.classification is Classification.GOOD
    assert advice.reasons == ["Safe to proceed - within recommended limits"]


def test_existing_emis_push_total_over_limit():
    advice = evaluate_purchase(2000, 0, _metrics(10000, 3000, emis=2500))

    assert advice.classification is Classification.RISKY
    assert advice.reasons[0] == "Total EMIs (₹4,500.00) exceed 40% of monthly income"


def test_high_expense_ratio_is_moderate():
    advice = evaluate_purchase(0, 100, _metrics(10000, 8500))

    assert advice.classification is Classification.MODERATE
    assert "Current expense ratio is 85.0% (high)" in advice.reasons
    assert advice.reasons[-1] == "Proceed with caution - consider waiting or saving more"


def test_thin_savings_buffer_is_moderate():
    advice = evaluate_purchase(0, 26000, _metrics(50000, 20000))

    assert advice.classification is Classification.MODERATE
    assert advice.reasons[0] == "Remaining savings (₹4,000.00) below 10% of income"


def test_moderate_rules_never_downgrade_risky():
    advice = evaluate_purchase(5000, 60000, _metrics(10000, 9000))

    assert advice.classification is Classification.RISKY
    assert len(advice.reasons) == 5


def test_reason_joins_reasons():
    advice = evaluate_purchase(0, 5000, _metrics(100000))
    assert advice.reason == "Safe to proceed - within recommended limits"


@pytest.mark.parametrize("emi", [0, 500, 1500, 2500, 3500, 6000])
def test_classification_monotonic_in_emi(emi):
    """Raising the monthly EMI never improves the classification"""
    metrics = _metrics(10000, 2000)
    lower = evaluate_purchase(emi, emi * 12, metrics)
    higher = evaluate_purchase(emi + 500, (emi + 500) * 12, metrics)
    assert higher.classification.rank >= lower.classification.rank


def test_escalate_only_raises():
    assert escalate(Classification.GOOD, Classification.RISKY) is Classification.RISKY
    assert escalate(Classification.RISKY, Classification.MODERATE) is Classification.RISKY


def test_resolve_emi_purchase_from_monthly_amount():
    purchase = resolve_purchase("Laptop", "emi", monthly_emi=5000, duration=12)

    assert purchase.monthly_emi == 5000
    assert purchase.full_price == 60000
    assert purchase.duration == 12
    assert purchase.category == "Other"


def test_resolve_emi_purchase_from_price():
    purchase = resolve_purchase("Laptop", "emi", price=60000, duration=12)
    assert purchase.monthly_emi == 5000


def test_resolve_one_time_purchase():
    purchase = resolve_purchase(" Chair ", "one-time", price=3000, category="Furniture")

    assert purchase.product_name == "Chair"
    assert purchase.monthly_emi == 0
    assert purchase.full_price == 3000
    assert purchase.category == "Furniture"


@pytest.mark.parametrize(
    "kwargs",
    [
        {"product_name": "", "payment_type": "one-time", "price": 10},
        {"product_name": "X", "payment_type": "one-time", "price": 0},
        {"product_name": "X", "payment_type": "one-time", "price": 10_000_001},
        {"product_name": "X", "payment_type": "emi", "monthly_emi": 100, "duration": 0},
        {"product_name": "X", "payment_type": "emi", "monthly_emi": 100, "duration": 121},
        {"product_name": "X", "payment_type": "emi", "duration": 12},
        {"product_name": "X", "payment_type": "emi", "monthly_emi": 1_000_001, "duration": 1},
        {"product_name": "X", "payment_type": "lease", "price": 10},
    ],
)
def test_resolve_purchase_rejects_invalid_input(kwargs):
    with pytest.raises(LedgerValidationError):
        resolve_purchase(**kwargs)
