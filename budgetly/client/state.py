"""Client application state and the actions that update it

State is never mutated in place. ``reduce`` takes the current state and one
action and returns the next state; every view of the ledger (the current
month's income and expenses, the EMI list) is re-derived from the user
document whenever the user or the selected month changes.
"""

from dataclasses import dataclass, field, replace
from typing import List, Optional, Union

from budgetly.api.v1.schemas import SuggestionSchema
from budgetly.domain.ledger import all_expenses, get_month
from budgetly.domain.metrics import calculate_metrics
from budgetly.domain.models import ExpenseEntry, FinancialMetrics, IncomeEntry, User
from budgetly.utils.date_utils import current_month


@dataclass(frozen=True)
class AppState:
    user: Optional[User] = None
    current_month: str = field(default_factory=current_month)
    loading: bool = False
    error: Optional[str] = None
    incomes: List[IncomeEntry] = field(default_factory=list)
    expenses: List[ExpenseEntry] = field(default_factory=list)
    emis: List[ExpenseEntry] = field(default_factory=list)
    suggestions: List[SuggestionSchema] = field(default_factory=list)

    @property
    def metrics(self) -> FinancialMetrics:
        """Metrics of the selected month"""
        months = self.user.months if self.user else {}
        savings = self.user.savings if self.user else 0.0
        return calculate_metrics(get_month(months, self.current_month), savings)


# Actions


@dataclass(frozen=True)
class SetLoading:
    loading: bool


@dataclass(frozen=True)
class SetError:
    error: Optional[str]


@dataclass(frozen=True)
class SetUser:
    """Replace the user document, as returned by any ledger mutation"""

    user: User


@dataclass(frozen=True)
class SetCurrentMonth:
    month: str


@dataclass(frozen=True)
class SetSuggestions:
    suggestions: List[SuggestionSchema]


@dataclass(frozen=True)
class AddSuggestion:
    suggestion: SuggestionSchema


@dataclass(frozen=True)
class DeleteSuggestion:
    suggestion_id: str


@dataclass(frozen=True)
class SignOut:
    pass


Action = Union[SetLoading, SetError, SetUser, SetCurrentMonth, SetSuggestions, AddSuggestion, DeleteSuggestion, SignOut]


def derive(state: AppState) -> AppState:
    """Recompute the month slice and EMI views from the user document"""
    if state.user is None:
        return replace(state, incomes=[], expenses=[], emis=[])

    month = get_month(state.user.months, state.current_month)
    return replace(
        state,
        incomes=list(month.income),
        expenses=list(month.expenses),
        emis=[e for _, e in all_expenses(state.user.months) if e.is_emi],
    )


def reduce(state: AppState, action: Action) -> AppState:
    """Return the state that results from applying ``action``"""
    if isinstance(action, SetLoading):
        return replace(state, loading=action.loading)

    if isinstance(action, SetError):
        return replace(state, error=action.error, loading=False)

    if isinstance(action, SetUser):
        return derive(replace(state, user=action.user, error=None, loading=False))

    if isinstance(action, SetCurrentMonth):
        return derive(replace(state, current_month=action.month))

    if isinstance(action, SetSuggestions):
        return replace(state, suggestions=list(action.suggestions))

    if isinstance(action, AddSuggestion):
        return replace(state, suggestions=[action.suggestion, *state.suggestions])

    if isinstance(action, DeleteSuggestion):
        return replace(state, suggestions=[s for s in state.suggestions if s.id != action.suggestion_id])

    if isinstance(action, SignOut):
        return AppState(current_month=state.current_month)

    raise TypeError(f"Unknown action: {action!r}")
