"""Async HTTP client for the Budgetly API"""

import httpx
from dataclasses import asdict
from typing import Any, Dict, List, Optional
from urllib.parse import quote
from budgetly.api.v1.schemas import SuggestionSchema, UserDocument
from budgetly.domain.exceptions import (
    BudgetlyAPIError,
    EmiConflictError,
    EntryNotFoundError,
    LedgerValidationError,
    UserNotFoundError,
)
from budgetly.domain.models import ExpenseEntry, IncomeEntry, User
from budgetly.config import settings


def _income_body(month: str, entry: IncomeEntry) -> Dict[str, Any]:
    return {
        "month": month,
        "entry": {
            "label": entry.label,
            "amount": entry.amount,
            "source": entry.source,
            "date": entry.date.isoformat(),
        },
    }


def _expense_body(month: str, entry: ExpenseEntry) -> Dict[str, Any]:
    expense = {
        "label": entry.label,
        "amount": entry.amount,
        "category": entry.category,
        "date": entry.date.isoformat(),
        "type": entry.type,
    }
    if entry.emi_details is not None:
        details = asdict(entry.emi_details)
        details["started_on"] = entry.emi_details.started_on.isoformat()
        expense["emi_details"] = details
    return {"month": month, "expense": expense}


class BudgetlyClient:
    """
    Client for the Budgetly HTTP API.

    Every ledger mutation returns the full updated User, which callers feed
    back into their application state.
    """

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url or settings.budgetly_api_base
        self.timeout = timeout or settings.http_timeout_seconds
        self.transport = transport

    async def _request(self, method: str, path: str, **kwargs) -> Any:
        """
        Send one request and decode the JSON body.

        Raises:
            LedgerValidationError: 422 responses
            EntryNotFoundError / UserNotFoundError: 404 responses
            EmiConflictError: 409 responses
            BudgetlyAPIError: timeouts, other HTTP errors, or invalid responses
        """
        async with httpx.AsyncClient(base_url=self.base_url, timeout=self.timeout, transport=self.transport) as client:
            try:
                response = await client.request(method, path, **kwargs)
                response.raise_for_status()
                if response.status_code == 204:
                    return None
                return response.json()

            except httpx.TimeoutException as e:
                raise BudgetlyAPIError(f"Budgetly API timeout after {self.timeout}s") from e
            except httpx.HTTPStatusError as e:
                status = e.response.status_code
                detail = _detail(e.response)
                if status == 404:
                    error = UserNotFoundError if detail.startswith("User ") else EntryNotFoundError
                    raise error(detail) from e
                if status == 409:
                    raise EmiConflictError(detail) from e
                if status in (400, 422):
                    raise LedgerValidationError(detail) from e
                raise BudgetlyAPIError(f"Budgetly API error: {status}") from e
            except httpx.RequestError as e:
                raise BudgetlyAPIError(f"Budgetly API unreachable: {e}") from e
            except ValueError as e:
                raise BudgetlyAPIError(f"Invalid Budgetly response: {e}") from e

    async def _user(self, method: str, path: str, **kwargs) -> User:
        data = await self._request(method, path, **kwargs)
        return UserDocument.model_validate(data).to_domain()

    # Users

    async def sign_in(self, uid: str, email: str, name: str, **profile) -> User:
        return await self._user("POST", "/v1/users", json={"uid": uid, "email": email, "name": name, **profile})

    async def get_user(self, uid: str) -> User:
        return await self._user("GET", f"/v1/users/{uid}")

    async def update_user(self, uid: str, **changes) -> User:
        return await self._user("PUT", f"/v1/users/{uid}", json=changes)

    # Income

    async def add_income(self, uid: str, month: str, entry: IncomeEntry) -> User:
        return await self._user("POST", f"/v1/users/{uid}/income", json=_income_body(month, entry))

    async def update_income(self, uid: str, month: str, entry: IncomeEntry) -> User:
        return await self._user("PUT", f"/v1/users/{uid}/income/{entry.id}", json=_income_body(month, entry))

    async def delete_income(self, uid: str, month: str, entry_id: str) -> User:
        return await self._user("DELETE", f"/v1/users/{uid}/income/{entry_id}", params={"month": month})

    # Expenses

    async def add_expense(self, uid: str, month: str, entry: ExpenseEntry) -> User:
        return await self._user("POST", f"/v1/users/{uid}/expenses", json=_expense_body(month, entry))

    async def update_expense(self, uid: str, month: str, entry: ExpenseEntry) -> User:
        return await self._user("PUT", f"/v1/users/{uid}/expenses/{entry.id}", json=_expense_body(month, entry))

    async def delete_expense(self, uid: str, month: str, entry_id: str) -> User:
        return await self._user("DELETE", f"/v1/users/{uid}/expenses/{entry_id}", params={"month": month})

    # EMIs

    async def create_emi(self, uid: str, product_name: str, total_amount: float, duration_months: int, start_month: str) -> User:
        return await self._user(
            "POST",
            f"/v1/users/{uid}/emis",
            json={
                "product_name": product_name,
                "total_amount": total_amount,
                "duration_months": duration_months,
                "start_month": start_month,
            },
        )

    async def pay_emi(self, uid: str, product_name: str) -> User:
        return await self._user("POST", f"/v1/users/{uid}/emis/{quote(product_name, safe='')}/pay")

    async def delete_emi(self, uid: str, product_name: str) -> User:
        return await self._user("DELETE", f"/v1/users/{uid}/emis/{quote(product_name, safe='')}")

    # Suggestions

    async def get_suggestions(self, uid: str, limit: Optional[int] = None) -> List[SuggestionSchema]:
        params = {"limit": limit} if limit else None
        data = await self._request("GET", f"/v1/users/{uid}/suggestions", params=params)
        return [SuggestionSchema.model_validate(s) for s in data["suggestions"]]

    async def create_suggestion(self, uid: str, purchase: Dict[str, Any]) -> SuggestionSchema:
        data = await self._request("POST", f"/v1/users/{uid}/suggestions", json=purchase)
        return SuggestionSchema.model_validate(data["suggestion"])

    async def delete_suggestion(self, uid: str, suggestion_id: str) -> None:
        await self._request("DELETE", f"/v1/users/{uid}/suggestions/{suggestion_id}")


def _detail(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text
    detail = body.get("detail") if isinstance(body, dict) else body
    return detail if isinstance(detail, str) else str(detail)
