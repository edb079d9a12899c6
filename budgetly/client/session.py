"""Signed-in client session: API calls wired to the application state"""

import logging
from typing import Any, Awaitable, Dict

from budgetly.client.api import BudgetlyClient
from budgetly.client.state import (
    Action,
    AddSuggestion,
    AppState,
    DeleteSuggestion,
    SetCurrentMonth,
    SetError,
    SetLoading,
    SetSuggestions,
    SetUser,
    reduce,
)
from budgetly.domain.emi import validate_emi_request
from budgetly.domain.exceptions import DomainException, LedgerValidationError
from budgetly.domain.ledger import validate_entry
from budgetly.domain.models import ExpenseEntry, IncomeEntry, User
from budgetly.utils.date_utils import is_month_key

logger = logging.getLogger(__name__)


class BudgetlySession:
    """
    Owns the application state of one signed-in user.

    Each operation issues one API call and dispatches its result. Failures
    are recorded in ``state.error`` and also returned to the caller as False;
    nothing is retried.
    """

    def __init__(self, client: BudgetlyClient, uid: str, state: AppState | None = None):
        self.client = client
        self.uid = uid
        self.state = state or AppState()

    def dispatch(self, action: Action) -> AppState:
        self.state = reduce(self.state, action)
        return self.state

    async def _run(self, call: Awaitable[Any], on_success) -> bool:
        self.dispatch(SetLoading(True))
        try:
            result = await call
        except DomainException as e:
            logger.warning(f"Budgetly call failed: {e}", extra={"uid": self.uid})
            self.dispatch(SetError(str(e)))
            return False
        self.dispatch(on_success(result))
        self.dispatch(SetLoading(False))
        return True

    def _reject(self, error: LedgerValidationError) -> bool:
        self.dispatch(SetError(str(error)))
        return False

    async def _mutate(self, call: Awaitable[User]) -> bool:
        return await self._run(call, SetUser)

    # Users

    async def sign_in(self, email: str, name: str, **profile) -> bool:
        return await self._mutate(self.client.sign_in(self.uid, email, name, **profile))

    async def refresh(self) -> bool:
        return await self._mutate(self.client.get_user(self.uid))

    async def update_profile(self, **changes) -> bool:
        return await self._mutate(self.client.update_user(self.uid, **changes))

    def select_month(self, month: str) -> AppState:
        if not is_month_key(month):
            self.dispatch(SetError(f"Invalid month key: {month!r}"))
            return self.state
        return self.dispatch(SetCurrentMonth(month))

    # Ledger

    async def save_income(self, month: str, entry: IncomeEntry) -> bool:
        """Add ``entry``, or update it when it already has an id"""
        try:
            validate_entry(month, entry)
        except LedgerValidationError as e:
            return self._reject(e)

        if entry.id is None:
            return await self._mutate(self.client.add_income(self.uid, month, entry))
        return await self._mutate(self.client.update_income(self.uid, month, entry))

    async def delete_income(self, month: str, entry_id: str) -> bool:
        return await self._mutate(self.client.delete_income(self.uid, month, entry_id))

    async def save_expense(self, month: str, entry: ExpenseEntry) -> bool:
        """Add ``entry``, or update it when it already has an id"""
        try:
            validate_entry(month, entry)
        except LedgerValidationError as e:
            return self._reject(e)

        if entry.id is None:
            return await self._mutate(self.client.add_expense(self.uid, month, entry))
        return await self._mutate(self.client.update_expense(self.uid, month, entry))

    async def delete_expense(self, month: str, entry_id: str) -> bool:
        return await self._mutate(self.client.delete_expense(self.uid, month, entry_id))

    # EMIs

    async def create_emi(self, product_name: str, total_amount: float, duration_months: int, start_month: str) -> bool:
        try:
            validate_emi_request(product_name, total_amount, duration_months, start_month)
        except LedgerValidationError as e:
            return self._reject(e)

        return await self._mutate(
            self.client.create_emi(self.uid, product_name, total_amount, duration_months, start_month)
        )

    async def pay_emi(self, product_name: str) -> bool:
        return await self._mutate(self.client.pay_emi(self.uid, product_name))

    async def delete_emi(self, product_name: str) -> bool:
        return await self._mutate(self.client.delete_emi(self.uid, product_name))

    # Suggestions

    async def load_suggestions(self, limit: int | None = None) -> bool:
        return await self._run(self.client.get_suggestions(self.uid, limit), SetSuggestions)

    async def suggest(self, purchase: Dict[str, Any]) -> bool:
        return await self._run(self.client.create_suggestion(self.uid, purchase), AddSuggestion)

    async def delete_suggestion(self, suggestion_id: str) -> bool:
        return await self._run(
            self.client.delete_suggestion(self.uid, suggestion_id),
            lambda _: DeleteSuggestion(suggestion_id),
        )
