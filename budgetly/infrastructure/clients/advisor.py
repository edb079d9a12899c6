"""Generative advisor HTTP client for purchase reasons and report insights"""

import httpx
from typing import Any, Dict, Optional
from budgetly.domain.advice import Purchase
from budgetly.domain.exceptions import AdvisorAPIError
from budgetly.domain.models import FinancialMetrics, PurchaseAdvice
from budgetly.config import settings


class AdvisorClient:
    """
    Client for the optional generative advice service.

    The service only rewrites text. Purchase classification stays with the
    rule engine, so callers fall back to rule reasons when this client fails.
    """

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url or settings.advisor_api_base
        self.timeout = timeout or settings.http_timeout_seconds
        self.transport = transport

    @property
    def enabled(self) -> bool:
        return bool(self.base_url)

    async def _post(self, path: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        if not self.enabled:
            raise AdvisorAPIError("Advisor service is not configured")

        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            try:
                response = await client.post(f"{self.base_url}{path}", json=payload)
                response.raise_for_status()
                return response.json()

            except httpx.TimeoutException as e:
                raise AdvisorAPIError(f"Advisor API timeout after {self.timeout}s") from e
            except httpx.HTTPStatusError as e:
                raise AdvisorAPIError(f"Advisor API error: {e.response.status_code}") from e
            except httpx.RequestError as e:
                raise AdvisorAPIError(f"Advisor API unreachable: {e}") from e
            except ValueError as e:
                raise AdvisorAPIError(f"Invalid advisor response: {e}") from e

    async def refine_reason(
        self,
        uid: str,
        purchase: Purchase,
        metrics: FinancialMetrics,
        advice: PurchaseAdvice,
        month: str,
    ) -> str:
        """
        Ask the advisor to reword the rule engine's reasoning.

        Raises:
            AdvisorAPIError: On timeout, HTTP errors, or a response without a reason
        """
        data = await self._post(
            "/advice",
            {
                "uid": uid,
                "month": month,
                "product": {
                    "product_name": purchase.product_name,
                    "payment_type": purchase.payment_type,
                    "price": purchase.full_price,
                    "monthly_emi": purchase.monthly_emi,
                    "duration": purchase.duration,
                    "category": purchase.category,
                },
                "monthly_income": metrics.total_income,
                "monthly_expenses": metrics.total_expenses,
                "existing_emis": metrics.total_emi_burden,
                "savings": metrics.current_savings,
                "classification": advice.classification.value,
                "rule_reasons": advice.reasons,
            },
        )
        reason: Optional[str] = data.get("reason") if isinstance(data, dict) else None
        if not reason or not str(reason).strip():
            raise AdvisorAPIError("Advisor response missing reason")
        return str(reason).strip()

    async def monthly_insight(
        self,
        uid: str,
        month: str,
        metrics: FinancialMetrics,
        savings_total: float,
        categories: Dict[str, float],
    ) -> str:
        """
        Request a short narrative report for one month.

        Raises:
            AdvisorAPIError: On timeout, HTTP errors, or a response without an insight
        """
        data = await self._post(
            "/insight",
            {
                "uid": uid,
                "month": month,
                "income": metrics.total_income,
                "expenses": metrics.total_expenses,
                "emis": metrics.total_emi_burden,
                "savings_total": savings_total,
                "expense_ratio": metrics.expense_ratio,
                "categories": categories,
            },
        )
        insight = data.get("insight") if isinstance(data, dict) else None
        if not insight or not str(insight).strip():
            raise AdvisorAPIError("Advisor response missing insight")
        return str(insight).strip()
