"""Unit tests for the client application-state reducer"""

import pytest
from datetime import datetime, timezone
from budgetly.api.v1.schemas import SuggestionSchema
from budgetly.client.state import (
    AddSuggestion,
    AppState,
    DeleteSuggestion,
    SetCurrentMonth,
    SetError,
    SetLoading,
    SetSuggestions,
    SetUser,
    SignOut,
    reduce,
)
from budgetly.domain.models import MonthSlice, User


def _suggestion(suggestion_id: str) -> SuggestionSchema:
    return SuggestionSchema(
        id=suggestion_id,
        uid="user_123",
        product_name="Chair",
        price=3000,
        classification="good",
        reason="Safe to proceed - within recommended limits",
        suggested_at=datetime(2024, 1, 5, tzinfo=timezone.utc),
    )


@pytest.fixture
def signed_in(sample_month: MonthSlice, make_emi) -> AppState:
    months = {
        "2024-01": MonthSlice(
            income=list(sample_month.income),
            expenses=sample_month.expenses + [make_emi("Phone", 1, 2, 1000, 1)],
        ),
        "2024-02": MonthSlice(expenses=[make_emi("Phone", 2, 2, 1000, 2)]),
    }
    user = User(uid="user_123", email="asha@example.com", name="Asha", savings=5000, months=months)
    return reduce(AppState(current_month="2024-01"), SetUser(user))


def test_set_user_derives_month_slice_and_emis(signed_in: AppState):
    assert [e.label for e in signed_in.incomes] == ["Salary"]
    assert len(signed_in.expenses) == 3
    assert [e.label for e in signed_in.emis] == ["Phone - EMI 1/2", "Phone - EMI 2/2"]
    assert signed_in.loading is False
    assert signed_in.error is None


def test_metrics_follow_selected_month(signed_in: AppState):
    assert signed_in.metrics.total_income == 50000
    assert signed_in.metrics.total_expenses == 21000

    february = reduce(signed_in, SetCurrentMonth("2024-02"))

    assert february.incomes == []
    assert [e.label for e in february.expenses] == ["Phone - EMI 2/2"]
    assert february.metrics.total_expenses == 1000
    assert signed_in.current_month == "2024-01"


def test_reduce_returns_new_state(signed_in: AppState):
    loading = reduce(signed_in, SetLoading(True))

    assert loading.loading is True
    assert signed_in.loading is False


def test_error_clears_loading():
    state = reduce(reduce(AppState(), SetLoading(True)), SetError("Entry not found"))

    assert state.error == "Entry not found"
    assert state.loading is False


def test_suggestion_actions(signed_in: AppState):
    state = reduce(signed_in, SetSuggestions([_suggestion("a")]))
    state = reduce(state, AddSuggestion(_suggestion("b")))

    assert [s.id for s in state.suggestions] == ["b", "a"]

    state = reduce(state, DeleteSuggestion("a"))
    assert [s.id for s in state.suggestions] == ["b"]


def test_sign_out_keeps_selected_month(signed_in: AppState):
    state = reduce(signed_in, SignOut())

    assert state.user is None
    assert state.current_month == "2024-01"
    assert state.expenses == []
    assert state.metrics.total_income == 0


def test_unknown_action_is_rejected():
    with pytest.raises(TypeError):
        reduce(AppState(), "ADD_EXPENSE")
