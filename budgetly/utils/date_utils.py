"""Month key derivation and calendar-month arithmetic

Every YYYY-MM key in the service comes from ``month_key``. Policy:
- ISO strings: first seven characters
- ``date``: its calendar year and month
- aware ``datetime``: converted to ``settings.ledger_timezone`` first
- naive ``datetime``: taken as already being in the ledger timezone
"""

import re
from datetime import date, datetime
from typing import List
from zoneinfo import ZoneInfo

from budgetly.config import settings

MONTH_KEY_PATTERN = re.compile(r"^\d{4}-(0[1-9]|1[0-2])$")


def is_month_key(value: str) -> bool:
    return bool(MONTH_KEY_PATTERN.match(value or ""))


def month_key(value: date | datetime | str) -> str:
    """Derive the YYYY-MM key for a date, datetime or ISO-8601 string"""
    if isinstance(value, str):
        key = value[:7]
        if not is_month_key(key):
            raise ValueError(f"Not an ISO date: {value!r}")
        return key

    if isinstance(value, datetime) and value.tzinfo is not None:
        value = value.astimezone(ZoneInfo(settings.ledger_timezone))

    return f"{value.year:04d}-{value.month:02d}"


def current_month(now: datetime | None = None) -> str:
    """Current month key in the ledger timezone"""
    now = now or datetime.now(ZoneInfo(settings.ledger_timezone))
    return month_key(now)


def add_months(key: str, months: int) -> str:
    """Shift a month key by a (possibly negative) number of months"""
    year, month = int(key[:4]), int(key[5:7])
    index = year * 12 + (month - 1) + months
    return f"{index // 12:04d}-{index % 12 + 1:02d}"


def month_range(start: str, count: int) -> List[str]:
    """``count`` consecutive month keys beginning at ``start``"""
    return [add_months(start, i) for i in range(count)]


def first_day(key: str) -> date:
    """First calendar day of the month a key names"""
    return date(int(key[:4]), int(key[5:7]), 1)
