"""Domain models - pure Python dataclasses representing business entities"""

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Dict, List, Optional

ONE_TIME = "one-time"
EMI = "emi"


class Classification(str, Enum):
    """Purchase risk, ordered from least to most severe"""

    GOOD = "good"
    MODERATE = "moderate"
    RISKY = "risky"

    @property
    def rank(self) -> int:
        return _CLASSIFICATION_RANK[self]


_CLASSIFICATION_RANK = {Classification.GOOD: 0, Classification.MODERATE: 1, Classification.RISKY: 2}


@dataclass
class EmiDetails:
    """Installment bookkeeping attached to an ``emi`` expense"""

    duration: int
    remaining_months: int
    monthly_amount: float
    started_on: date
    installment_number: int
    paid: bool = False


@dataclass
class IncomeEntry:
    amount: float
    label: str
    source: str
    date: date
    id: Optional[str] = None


@dataclass
class ExpenseEntry:
    amount: float
    label: str
    category: str
    date: date
    type: str = ONE_TIME  # "one-time" or "emi"
    emi_details: Optional[EmiDetails] = None
    id: Optional[str] = None

    @property
    def is_emi(self) -> bool:
        return self.type == EMI and self.emi_details is not None


@dataclass
class MonthSlice:
    """Income and expenses recorded in one YYYY-MM month"""

    income: List[IncomeEntry] = field(default_factory=list)
    expenses: List[ExpenseEntry] = field(default_factory=list)


# Monthly ledger: YYYY-MM -> slice
Ledger = Dict[str, MonthSlice]


@dataclass
class User:
    """Ledger owner, keyed by the identity provider's uid"""

    uid: str
    email: str
    name: str
    savings: float = 0.0
    photo_url: Optional[str] = None
    location: Optional[str] = None
    occupation: Optional[str] = None
    months: Ledger = field(default_factory=dict)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@dataclass
class EmiGroup:
    """Read-side projection of all installments sharing a product name"""

    product_name: str
    total_amount: float
    monthly_installment: float
    duration: int
    start_month: str
    end_month: str
    paid_months: int
    due_months: int
    installments: List[ExpenseEntry]

    @property
    def is_active(self) -> bool:
        return self.paid_months < len(self.installments)

    @property
    def remaining_months(self) -> int:
        return max(0, self.duration - self.paid_months)

    @property
    def overdue_months(self) -> int:
        return max(0, self.due_months - self.paid_months)

    @property
    def progress(self) -> float:
        return self.paid_months / self.duration * 100 if self.duration else 0.0


@dataclass
class IncompleteEmi:
    """Reconciliation finding: an EMI group with installments missing"""

    product_name: str
    duration: int
    present: List[int]
    missing: List[int]


@dataclass
class FinancialMetrics:
    """Derived figures for one month"""

    total_income: float
    total_expenses: float
    total_emi_burden: float
    current_savings: float
    expense_ratio: float
    emi_ratio: float
    financial_health_score: int


@dataclass
class Alert:
    level: str  # "success" | "warning" | "danger"
    title: str
    message: str


@dataclass
class SavingsPoint:
    month: str
    income: float
    expenses: float
    savings: float


@dataclass
class MonthlyReport:
    month: str
    total_income: float
    total_expenses: float
    savings: float
    category_breakdown: Dict[str, float]
    top_categories: List[tuple[str, float]]


@dataclass
class PurchaseAdvice:
    """Output of the purchase rule engine"""

    classification: Classification
    reasons: List[str]

    @property
    def reason(self) -> str:
        return ". ".join(self.reasons)
