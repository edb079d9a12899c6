"""Financial metrics, health score and report projections"""

import math
from typing import List

from budgetly.domain.aggregation import category_breakdown, sum_amounts, top_categories
from budgetly.domain.models import (
    Alert,
    ExpenseEntry,
    FinancialMetrics,
    Ledger,
    MonthlyReport,
    MonthSlice,
    SavingsPoint,
)

LARGE_EXPENSE_THRESHOLD = 10_000


def _ratio(part: float, whole: float) -> float:
    """Percent of ``whole``; 0 when ``whole`` is 0"""
    return part / whole * 100 if whole > 0 else 0.0


def active_emis(expenses: List[ExpenseEntry]) -> List[ExpenseEntry]:
    """EMI installments that still have months left to run"""
    return [e for e in expenses if e.is_emi and e.emi_details.remaining_months > 0]


def total_emi_burden(expenses: List[ExpenseEntry]) -> float:
    return sum_amounts(active_emis(expenses))


def financial_health_score(month: MonthSlice, savings: float) -> int:
    """
    Heuristic 0-100 score for one month.

    Scoring weights:
    - up to 40: savings rate (twice the percentage of income kept)
    - up to 30: EMI burden (30 minus half the EMI-to-income percentage)
    - up to 30: emergency fund (savings against six months of expenses)

    A month without income scores 0. A month without expenses gets the full
    emergency-fund component when savings are positive, none otherwise.
    """
    income = sum_amounts(month.income)
    if income <= 0:
        return 0

    expenses = sum_amounts(month.expenses)
    savings_rate = (income - expenses) / income * 100
    emi_ratio = total_emi_burden(month.expenses) / income * 100

    if expenses > 0:
        emergency_points = min(savings / (expenses * 6) * 100 * 0.3, 30)
    else:
        emergency_points = 30 if savings > 0 else 0

    score = min(savings_rate * 2, 40) + max(0, 30 - emi_ratio * 0.5) + emergency_points
    score = max(0.0, min(100.0, score))
    return int(math.floor(score + 0.5))


def calculate_metrics(month: MonthSlice, savings: float = 0.0) -> FinancialMetrics:
    """Derive income, expense, EMI and savings figures for one month slice"""
    income = sum_amounts(month.income)
    expenses = sum_amounts(month.expenses)
    emi_burden = total_emi_burden(month.expenses)

    return FinancialMetrics(
        total_income=income,
        total_expenses=expenses,
        total_emi_burden=emi_burden,
        current_savings=income - expenses,
        expense_ratio=_ratio(expenses, income),
        emi_ratio=_ratio(emi_burden, income),
        financial_health_score=financial_health_score(month, savings),
    )


def generate_alerts(metrics: FinancialMetrics) -> List[Alert]:
    alerts = []

    if metrics.expense_ratio > 80:
        alerts.append(Alert(
            level="warning",
            title="High Expense Ratio",
            message=f"Your expenses are {metrics.expense_ratio:.1f}% of your income. Consider reducing spending.",
        ))

    if metrics.emi_ratio > 40:
        alerts.append(Alert(
            level="danger",
            title="High EMI Burden",
            message=f"EMIs are {metrics.emi_ratio:.1f}% of your income. This may impact your financial flexibility.",
        ))

    savings_rate = _ratio(metrics.current_savings, metrics.total_income)
    if metrics.current_savings < 0:
        alerts.append(Alert(
            level="danger",
            title="Negative Savings",
            message="Your expenses exceed your income this month. Review your budget immediately.",
        ))
    elif metrics.current_savings < metrics.total_income * 0.2:
        alerts.append(Alert(
            level="warning",
            title="Low Savings Rate",
            message=f"You're saving {savings_rate:.1f}% of your income. Aim for at least 20%.",
        ))

    if metrics.expense_ratio < 60 and metrics.current_savings > 0:
        alerts.append(Alert(
            level="success",
            title="Great Financial Health",
            message=f"You're saving {savings_rate:.1f}% of your income. Keep it up!",
        ))

    return alerts


def format_inr(amount: float) -> str:
    return f"₹{amount:,.2f}"


def spending_insights(expenses: List[ExpenseEntry]) -> List[str]:
    if not expenses:
        return ["No expenses recorded yet. Start tracking to get insights!"]

    insights = []
    top = top_categories(category_breakdown(expenses), limit=1)
    if top:
        category, amount = top[0]
        insights.append(f"Your highest spending category is {category} ({format_inr(amount)})")

    running = active_emis(expenses)
    if running:
        insights.append(
            f"You have {len(running)} active EMI(s) totaling {format_inr(sum_amounts(running))}/month"
        )

    large = [e for e in expenses if e.amount > LARGE_EXPENSE_THRESHOLD]
    if large:
        insights.append(f"You have {len(large)} large expense(s) over {format_inr(LARGE_EXPENSE_THRESHOLD)}")

    return insights


def savings_history(ledger: Ledger) -> List[SavingsPoint]:
    """Income, expenses and net savings per month, oldest first"""
    history = []
    for key in sorted(ledger):
        income = sum_amounts(ledger[key].income)
        expenses = sum_amounts(ledger[key].expenses)
        history.append(SavingsPoint(month=key, income=income, expenses=expenses, savings=income - expenses))
    return history


def monthly_reports(ledger: Ledger) -> List[MonthlyReport]:
    """Per-month totals with category breakdown, newest first"""
    reports = []
    for key in sorted(ledger, reverse=True):
        month = ledger[key]
        income = sum_amounts(month.income)
        expenses = sum_amounts(month.expenses)
        breakdown = category_breakdown(month.expenses)
        reports.append(
            MonthlyReport(
                month=key,
                total_income=income,
                total_expenses=expenses,
                savings=income - expenses,
                category_breakdown=breakdown,
                top_categories=top_categories(breakdown),
            )
        )
    return reports
