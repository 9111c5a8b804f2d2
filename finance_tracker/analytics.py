"""Analytics and trend calculations.

Pure functions that derive balances and rollups from transactions, planned
expenses, savings and goals. Inputs are any objects exposing the attributes
used below (ORM rows or plain dataclasses); nothing is mutated.
"""

from __future__ import annotations

import calendar
import datetime as dt
from collections import defaultdict
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional, Tuple

ZERO = Decimal("0")
HUNDRED = Decimal("100")
MAX_WEEK_BUCKETS = 5


@dataclass(frozen=True)
class BalancePoint:
    date: dt.date
    balance: Decimal
    transaction_id: Any = None


@dataclass(frozen=True)
class WeekBucket:
    week: int
    start: dt.date
    end: dt.date
    income: Decimal
    expense: Decimal


@dataclass(frozen=True)
class PlanProgress:
    category_id: Any
    planned: Decimal
    spent: Decimal

    @property
    def remaining(self) -> Decimal:
        return self.planned - self.spent

    @property
    def percent(self) -> Decimal:
        if self.planned == 0:
            return ZERO
        return self.spent / self.planned * HUNDRED


def month_key(d: dt.date) -> str:
    return f"{d.year:04d}-{d.month:02d}"


def _amount(item: Any) -> Decimal:
    return Decimal(item.amount)


def signed_amount(txn: Any) -> Decimal:
    return _amount(txn) if txn.type == "income" else -_amount(txn)


def _in_month(d: dt.date, year: int, month: int) -> bool:
    return d.year == year and d.month == month


def filter_period(items: Iterable[Any], start: Optional[dt.date] = None, end: Optional[dt.date] = None) -> List[Any]:
    """Items dated within ``[start, end]``; a missing bound is open."""
    return [i for i in items if (start is None or i.date >= start) and (end is None or i.date <= end)]


def total_by_type(txns: Iterable[Any], txn_type: str) -> Decimal:
    return sum((_amount(t) for t in txns if t.type == txn_type), ZERO)


def summarize_income_expense(txns: Iterable[Any]) -> Dict[str, Decimal]:
    txns = list(txns)
    income = total_by_type(txns, "income")
    expense = total_by_type(txns, "expense")
    return {"income": income, "expense": expense, "balance": income - expense}


def balance(txns: Iterable[Any]) -> Decimal:
    return sum((signed_amount(t) for t in txns), ZERO)


def category_totals(
    txns: Iterable[Any],
    txn_type: str = "expense",
    start: Optional[dt.date] = None,
    end: Optional[dt.date] = None,
) -> Dict[Any, Decimal]:
    """Sum of amounts per category id for one transaction type within a period."""
    totals: Dict[Any, Decimal] = defaultdict(lambda: ZERO)
    for t in filter_period(txns, start, end):
        if t.type == txn_type:
            totals[t.category_id] += _amount(t)
    return dict(sorted(totals.items(), key=lambda kv: kv[1], reverse=True))


def planned_vs_actual(
    planned: Iterable[Any],
    txns: Iterable[Any],
    category_id: Any,
    year: int,
    month: int,
) -> PlanProgress:
    """Planned amount against actual expenses for one category and month.

    Spending above the plan is reported, never prevented.
    """
    planned_total = sum(
        (_amount(p) for p in planned if p.category_id == category_id and _in_month(p.date, year, month)),
        ZERO,
    )
    spent = sum(
        (
            _amount(t)
            for t in txns
            if t.type == "expense" and t.category_id == category_id and _in_month(t.date, year, month)
        ),
        ZERO,
    )
    return PlanProgress(category_id=category_id, planned=planned_total, spent=spent)


def _creation_key(t: Any) -> Tuple[dt.datetime, int]:
    return getattr(t, "created_at", None) or dt.datetime.min, getattr(t, "id", None) or 0


def _chronological(txns: Iterable[Any]) -> List[Any]:
    # Same-day entries in creation order; rows without timestamps or ids keep their input order.
    return sorted(txns, key=lambda t: (t.date, *_creation_key(t)))


def starting_balance(txns: Iterable[Any], window_start: Optional[dt.date]) -> Decimal:
    """Signed sum of every transaction strictly before ``window_start``."""
    if window_start is None:
        return ZERO
    return balance(t for t in txns if t.date < window_start)


def running_balance(
    txns: Iterable[Any],
    start: Optional[dt.date] = None,
    end: Optional[dt.date] = None,
) -> List[BalancePoint]:
    """One balance point per transaction in the window, carried from the starting balance."""
    txns = list(txns)
    running = starting_balance(txns, start)
    points: List[BalancePoint] = []
    for t in _chronological(filter_period(txns, start, end)):
        running += signed_amount(t)
        points.append(BalancePoint(date=t.date, balance=running, transaction_id=getattr(t, "id", None)))
    return points


def month_weeks(year: int, month: int) -> List[Tuple[dt.date, dt.date]]:
    """ISO-week spans covering the month, clipped to it.

    A month touching six ISO weeks folds the trailing days into the fifth span.
    """
    first = dt.date(year, month, 1)
    last = dt.date(year, month, calendar.monthrange(year, month)[1])
    spans: List[Tuple[dt.date, dt.date]] = []
    cursor = first
    while True:
        week_end = cursor + dt.timedelta(days=min(6 - cursor.weekday(), (last - cursor).days))
        spans.append((cursor, week_end))
        if week_end == last:
            break
        cursor = week_end + dt.timedelta(days=1)
    if len(spans) > MAX_WEEK_BUCKETS:
        spans = spans[: MAX_WEEK_BUCKETS - 1] + [(spans[MAX_WEEK_BUCKETS - 1][0], last)]
    return spans


def weekly_totals(txns: Iterable[Any], year: int, month: int) -> List[WeekBucket]:
    txns = list(txns)
    buckets: List[WeekBucket] = []
    for index, (start, end) in enumerate(month_weeks(year, month), start=1):
        in_week = filter_period(txns, start, end)
        buckets.append(
            WeekBucket(
                week=index,
                start=start,
                end=end,
                income=total_by_type(in_week, "income"),
                expense=total_by_type(in_week, "expense"),
            )
        )
    return buckets


def monthly_totals(txns: Iterable[Any]) -> Dict[str, Dict[str, Decimal]]:
    months: Dict[str, Dict[str, Decimal]] = defaultdict(lambda: {"income": ZERO, "expense": ZERO, "net": ZERO})
    for t in txns:
        m = months[month_key(t.date)]
        m[t.type] += _amount(t)
        m["net"] = m["income"] - m["expense"]
    return {k: v for k, v in sorted(months.items())}


def total_savings(savings: Iterable[Any]) -> Decimal:
    return sum((_amount(s) for s in savings), ZERO)


def savings_percentage(savings_total: Decimal, income_total: Decimal) -> Decimal:
    """Share of income set aside, in percent; 0 when there is no income."""
    if not income_total:
        return ZERO
    return Decimal(savings_total) / Decimal(income_total) * HUNDRED


def monthly_savings_percentage(savings: Iterable[Any], txns: Iterable[Any], year: int, month: int) -> Decimal:
    saved = total_savings(s for s in savings if _in_month(s.date, year, month))
    income = total_by_type((t for t in txns if _in_month(t.date, year, month)), "income")
    return savings_percentage(saved, income)


def average_monthly_income(txns: Iterable[Any]) -> Decimal:
    """Total income divided by the number of distinct months that had income."""
    income = [t for t in txns if t.type == "income"]
    months = {month_key(t.date) for t in income}
    if not months:
        return ZERO
    return total_by_type(income, "income") / len(months)


def goal_progress(goal: Any) -> Decimal:
    """Percent of the target reached; may exceed 100."""
    target = Decimal(goal.target_amount)
    if target <= 0:
        return ZERO
    return Decimal(goal.current_amount) / target * HUNDRED
