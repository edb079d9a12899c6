"""Pydantic schemas for API request/response validation"""

from pydantic import BaseModel, Discriminator, EmailStr, Field
import datetime as dt
from dataclasses import asdict
from typing import Annotated, Dict, List, Literal, Optional, Union

from budgetly.domain.models import EmiDetails, EmiGroup, ExpenseEntry, IncomeEntry, MonthSlice, User
from budgetly.utils.date_utils import first_day

MONTH_PATTERN = r"^\d{4}-(0[1-9]|1[0-2])$"
MonthKey = Annotated[str, Field(pattern=MONTH_PATTERN, description="Month key (YYYY-MM)")]


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------


class UserCreate(BaseModel):
    """Request body for POST /v1/users (sign-in)"""

    uid: str = Field(..., min_length=1, description="Identity provider user id")
    email: EmailStr
    name: str = Field(..., min_length=1)
    photo_url: Optional[str] = None
    location: Optional[str] = None
    occupation: Optional[str] = None


class UserUpdate(BaseModel):
    """Request body for PUT /v1/users/{uid}"""

    name: Optional[str] = Field(None, min_length=1)
    photo_url: Optional[str] = None
    savings: Optional[float] = Field(None, ge=0, description="Accumulated savings")
    location: Optional[str] = None
    occupation: Optional[str] = None


# ---------------------------------------------------------------------------
# Ledger entries
# ---------------------------------------------------------------------------


class EmiDetailsSchema(BaseModel):
    duration: int = Field(..., ge=1, le=120)
    remaining_months: int = Field(..., ge=0)
    monthly_amount: float = Field(..., gt=0)
    started_on: dt.date
    installment_number: int = Field(1, ge=1)
    paid: bool = False

    def to_domain(self) -> EmiDetails:
        return EmiDetails(**self.model_dump())


class IncomeEntryIn(BaseModel):
    label: str = Field(..., min_length=1)
    amount: float = Field(..., gt=0)
    source: str = "Other"
    date: Optional[dt.date] = Field(None, description="Effective date; defaults to the first of the month")

    def to_domain(self, month: str, entry_id: Optional[str] = None) -> IncomeEntry:
        return IncomeEntry(
            id=entry_id,
            amount=self.amount,
            label=self.label.strip(),
            source=self.source,
            date=self.date or first_day(month),
        )


class _ExpenseBase(BaseModel):
    label: str = Field(..., min_length=1)
    amount: float = Field(..., gt=0)
    category: str = Field(..., min_length=1)
    date: Optional[dt.date] = Field(None, description="Effective date; defaults to the first of the month")


class OneTimeExpenseIn(_ExpenseBase):
    type: Literal["one-time"] = "one-time"

    def to_domain(self, month: str, entry_id: Optional[str] = None) -> ExpenseEntry:
        return ExpenseEntry(
            id=entry_id,
            amount=self.amount,
            label=self.label.strip(),
            category=self.category,
            date=self.date or first_day(month),
            type="one-time",
        )


class EmiExpenseIn(_ExpenseBase):
    type: Literal["emi"]
    emi_details: EmiDetailsSchema

    def to_domain(self, month: str, entry_id: Optional[str] = None) -> ExpenseEntry:
        return ExpenseEntry(
            id=entry_id,
            amount=self.amount,
            label=self.label.strip(),
            category=self.category,
            date=self.date or first_day(month),
            type="emi",
            emi_details=self.emi_details.to_domain(),
        )


ExpenseIn = Annotated[Union[OneTimeExpenseIn, EmiExpenseIn], Discriminator("type")]


class IncomeWrite(BaseModel):
    """Request body for POST/PUT income"""

    month: MonthKey
    entry: IncomeEntryIn


class ExpenseWrite(BaseModel):
    """Request body for POST/PUT expenses"""

    month: MonthKey
    expense: ExpenseIn


class IncomeEntrySchema(BaseModel):
    id: str
    amount: float
    label: str
    source: str
    date: dt.date

    def to_domain(self) -> IncomeEntry:
        return IncomeEntry(**self.model_dump())


class ExpenseEntrySchema(BaseModel):
    id: Optional[str] = None
    amount: float
    label: str
    category: str
    date: dt.date
    type: Literal["one-time", "emi"]
    emi_details: Optional[EmiDetailsSchema] = None

    def to_domain(self) -> ExpenseEntry:
        return ExpenseEntry(
            id=self.id,
            amount=self.amount,
            label=self.label,
            category=self.category,
            date=self.date,
            type=self.type,
            emi_details=self.emi_details.to_domain() if self.emi_details else None,
        )


class MonthSliceSchema(BaseModel):
    income: List[IncomeEntrySchema] = []
    expenses: List[ExpenseEntrySchema] = []

    def to_domain(self) -> MonthSlice:
        return MonthSlice(
            income=[e.to_domain() for e in self.income],
            expenses=[e.to_domain() for e in self.expenses],
        )


class UserDocument(BaseModel):
    """Full user document returned after every mutation"""

    uid: str
    email: str
    name: str
    savings: float
    photo_url: Optional[str] = None
    location: Optional[str] = None
    occupation: Optional[str] = None
    months: Dict[str, MonthSliceSchema] = {}
    created_at: Optional[dt.datetime] = None
    updated_at: Optional[dt.datetime] = None

    @classmethod
    def from_domain(cls, user: User) -> "UserDocument":
        return cls.model_validate(asdict(user))

    def to_domain(self) -> User:
        return User(
            uid=self.uid,
            email=self.email,
            name=self.name,
            savings=self.savings,
            photo_url=self.photo_url,
            location=self.location,
            occupation=self.occupation,
            months={key: month.to_domain() for key, month in self.months.items()},
            created_at=self.created_at,
            updated_at=self.updated_at,
        )


class IncomeListResponse(BaseModel):
    """Response for GET /v1/users/{uid}/income"""

    month: str
    income: List[IncomeEntrySchema]
    total_income: float


class MonthExpenseSchema(ExpenseEntrySchema):
    month: str


class ExpenseListResponse(BaseModel):
    """Response for GET /v1/users/{uid}/expenses"""

    month: Optional[str] = None
    expenses: List[MonthExpenseSchema]
    total_expenses: float


# ---------------------------------------------------------------------------
# EMIs
# ---------------------------------------------------------------------------


class EmiCreate(BaseModel):
    """Request body for POST /v1/users/{uid}/emis"""

    product_name: str = Field(..., min_length=1)
    total_amount: float = Field(..., gt=0)
    duration_months: int = Field(..., ge=1, le=120)
    start_month: MonthKey


class EmiGroupSchema(BaseModel):
    product_name: str
    total_amount: float
    monthly_installment: float
    duration: int
    start_month: str
    end_month: str
    paid_months: int
    due_months: int
    overdue_months: int
    remaining_months: int
    progress: float
    is_active: bool
    installments: List[ExpenseEntrySchema]

    @classmethod
    def from_domain(cls, group: EmiGroup) -> "EmiGroupSchema":
        return cls.model_validate({
            **asdict(group),
            "overdue_months": group.overdue_months,
            "remaining_months": group.remaining_months,
            "progress": group.progress,
            "is_active": group.is_active,
        })


class EmiListResponse(BaseModel):
    """Response for GET /v1/users/{uid}/emis"""

    active: List[EmiGroupSchema]
    completed: List[EmiGroupSchema]
    total_active: int
    total_monthly_emi: float
    total_emi_amount: float


class IncompleteEmiSchema(BaseModel):
    product_name: str
    duration: int
    present: List[int]
    missing: List[int]


class ReconciliationResponse(BaseModel):
    """Response for GET /v1/users/{uid}/emis/reconciliation"""

    uid: str
    incomplete: List[IncompleteEmiSchema]


# ---------------------------------------------------------------------------
# Dashboard & reports
# ---------------------------------------------------------------------------


class MetricsSchema(BaseModel):
    total_income: float
    total_expenses: float
    total_emi_burden: float
    current_savings: float
    expense_ratio: float
    emi_ratio: float
    financial_health_score: int


class AlertSchema(BaseModel):
    level: str
    title: str
    message: str


class DashboardResponse(BaseModel):
    """Response for GET /v1/users/{uid}/dashboard"""

    uid: str
    month: str
    metrics: MetricsSchema
    alerts: List[AlertSchema]
    insights: List[str]
    available_months: List[str]


class SavingsPointSchema(BaseModel):
    month: str
    income: float
    expenses: float
    savings: float


class SavingsResponse(BaseModel):
    """Response for GET /v1/users/{uid}/savings"""

    uid: str
    history: List[SavingsPointSchema]
    total_savings: float
    accumulated_savings: float


class CategoryTotal(BaseModel):
    category: str
    amount: float


class MonthlyReportSchema(BaseModel):
    month: str
    total_income: float
    total_expenses: float
    savings: float
    category_breakdown: Dict[str, float]
    top_categories: List[CategoryTotal]


class ReportsResponse(BaseModel):
    """Response for GET /v1/users/{uid}/reports"""

    uid: str
    reports: List[MonthlyReportSchema]


class InsightResponse(BaseModel):
    """Response for POST /v1/users/{uid}/reports/{month}/insight"""

    month: str
    insight: str
    source: Literal["advisor", "rules"]


# ---------------------------------------------------------------------------
# Purchase suggestions
# ---------------------------------------------------------------------------


class _PurchaseBase(BaseModel):
    product_name: str = Field(..., min_length=1)
    category: Optional[str] = None
    month: Optional[MonthKey] = Field(None, description="Month whose figures are used; defaults to the current month")
    use_advisor: bool = Field(False, description="Let the generative advisor reword the reason")


class OneTimePurchase(_PurchaseBase):
    payment_type: Literal["one-time"] = "one-time"
    price: float = Field(..., gt=0, le=10_000_000)


class EmiPurchase(_PurchaseBase):
    payment_type: Literal["emi"]
    duration: int = Field(..., ge=1, le=120)
    monthly_emi: Optional[float] = Field(None, gt=0, le=1_000_000)
    price: Optional[float] = Field(None, gt=0, le=10_000_000)


PurchaseRequest = Annotated[Union[OneTimePurchase, EmiPurchase], Discriminator("payment_type")]


class SuggestionSchema(BaseModel):
    id: str
    uid: str
    product_name: str
    price: float
    emi_amount: Optional[float] = None
    duration: Optional[int] = None
    classification: Literal["good", "moderate", "risky"]
    reason: str
    suggested_at: dt.datetime


class SuggestionResponse(BaseModel):
    """Response for POST /v1/users/{uid}/suggestions"""

    suggestion: SuggestionSchema
    rule_reasons: List[str]
    advisor_used: bool
    metrics: MetricsSchema


class SuggestionListResponse(BaseModel):
    """Response for GET /v1/users/{uid}/suggestions"""

    uid: str
    suggestions: List[SuggestionSchema]


class SuggestionStat(BaseModel):
    count: int
    total_value: float


class SuggestionStatsResponse(BaseModel):
    """Response for GET /v1/users/{uid}/suggestions/stats"""

    uid: str
    stats: Dict[str, SuggestionStat]
