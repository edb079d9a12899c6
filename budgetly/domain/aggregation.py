"""Money aggregation over income and expense entries"""

from typing import Dict, Iterable, List, TypeVar

from budgetly.domain.models import ExpenseEntry, IncomeEntry
from budgetly.utils.date_utils import month_key

Entry = TypeVar("Entry", IncomeEntry, ExpenseEntry)


def sum_amounts(entries: Iterable[IncomeEntry | ExpenseEntry]) -> float:
    """Sum of ``amount`` across entries; 0 for an empty sequence"""
    return sum((e.amount for e in entries), 0.0)


def filter_by_month(entries: Iterable[Entry], key: str) -> List[Entry]:
    """Entries whose effective date falls in month ``key``"""
    return [e for e in entries if month_key(e.date) == key]


def category_breakdown(expenses: Iterable[ExpenseEntry]) -> Dict[str, float]:
    totals: Dict[str, float] = {}
    for expense in expenses:
        totals[expense.category] = totals.get(expense.category, 0.0) + expense.amount
    return totals


def top_categories(breakdown: Dict[str, float], limit: int = 3) -> List[tuple[str, float]]:
    """Highest-spend categories first"""
    return sorted(breakdown.items(), key=lambda item: item[1], reverse=True)[:limit]
