"""Reporting utilities.

Formats analytics into JSON-serializable dicts for the dashboard endpoints
and human-readable text for the CLI.
"""

from __future__ import annotations

import datetime as dt
import json
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Sequence

from . import analytics as an
from .serializers import iso_date, money

UNKNOWN_CATEGORY = {"name": "Unknown", "color": "#90A4AE", "icon": "Package"}


def _category_rows(totals: Dict[Any, Any], categories: Dict[Any, Any]) -> List[Dict[str, Any]]:
    rows: List[Dict[str, Any]] = []
    for category_id, amount in totals.items():
        cat = categories.get(category_id)
        meta = {"name": cat.name, "color": cat.color, "icon": cat.icon} if cat else UNKNOWN_CATEGORY
        rows.append({"categoryId": str(category_id), "categoryName": meta["name"], "color": meta["color"],
                     "icon": meta["icon"], "amount": money(amount)})
    return rows


def _savings_months(savings: List[Any], txns: List[Any]) -> List[Dict[str, Any]]:
    """Per-month savings and their share of that month's income, newest month first."""
    rows: List[Dict[str, Any]] = []
    for key in sorted({an.month_key(s.date) for s in savings}, reverse=True):
        year, month = int(key[:4]), int(key[5:])
        in_month = [s for s in savings if s.date.year == year and s.date.month == month]
        rows.append(
            {
                "month": key,
                "total": money(an.total_savings(in_month)),
                "percentage": money(an.monthly_savings_percentage(in_month, txns, year, month)),
            }
        )
    return rows


def build_summary(
    transactions: Iterable[Any],
    savings: Iterable[Any] = (),
    goals: Iterable[Any] = (),
    categories: Iterable[Any] = (),
    start: Optional[dt.date] = None,
    end: Optional[dt.date] = None,
) -> Dict[str, Any]:
    all_txns = list(transactions)
    txns = an.filter_period(all_txns, start, end)
    savings = an.filter_period(savings, start, end)
    by_id = {c.id: c for c in categories}

    totals = an.summarize_income_expense(txns)
    saved = an.total_savings(savings)
    history = an.running_balance(all_txns, start, end)

    return {
        "period": {"from": iso_date(start), "to": iso_date(end)},
        "transactionCount": len(txns),
        "totals": {k: money(v) for k, v in totals.items()},
        "expensesByCategory": _category_rows(an.category_totals(txns, "expense"), by_id),
        "incomeByCategory": _category_rows(an.category_totals(txns, "income"), by_id),
        "monthly": {
            m: {k: money(v) for k, v in vals.items()} for m, vals in an.monthly_totals(txns).items()
        },
        "startingBalance": money(an.starting_balance(all_txns, start)),
        "balanceHistory": [{"date": iso_date(p.date), "balance": money(p.balance)} for p in history],
        "savings": {
            "total": money(saved),
            "percentage": money(an.savings_percentage(saved, totals["income"])),
            "averageMonthlyIncome": money(an.average_monthly_income(txns)),
            "monthly": _savings_months(savings, txns),
        },
        "goals": [
            {
                "id": str(g.id),
                "title": g.title,
                "targetAmount": money(g.target_amount),
                "currentAmount": money(g.current_amount),
                "progress": money(an.goal_progress(g)),
            }
            for g in goals
        ],
    }


def build_weekly_report(transactions: Iterable[Any], year: int, month: int) -> Dict[str, Any]:
    return {
        "year": year,
        "month": month,
        "weeks": [
            {
                "week": b.week,
                "start": iso_date(b.start),
                "end": iso_date(b.end),
                "income": money(b.income),
                "expense": money(b.expense),
            }
            for b in an.weekly_totals(transactions, year, month)
        ],
    }


def build_planned_report(
    planned: Sequence[Any],
    transactions: Sequence[Any],
    categories: Iterable[Any],
    year: int,
    month: int,
) -> Dict[str, Any]:
    """Planned vs actual spending for every category that has a plan in the month."""
    by_id = {c.id: c for c in categories}
    planned_ids = []
    for p in planned:
        if p.date.year == year and p.date.month == month and p.category_id not in planned_ids:
            planned_ids.append(p.category_id)

    rows: List[Dict[str, Any]] = []
    for category_id in planned_ids:
        progress = an.planned_vs_actual(planned, transactions, category_id, year, month)
        cat = by_id.get(category_id)
        rows.append(
            {
                "categoryId": str(category_id),
                "categoryName": cat.name if cat else UNKNOWN_CATEGORY["name"],
                "plannedAmount": money(progress.planned),
                "spentAmount": money(progress.spent),
                "remaining": money(progress.remaining),
                "percent": money(progress.percent),
                "over": progress.spent > progress.planned,
            }
        )
    return {"year": year, "month": month, "categories": rows}


def format_text_report(summary: Dict[str, Any]) -> str:
    lines: List[str] = []
    t = summary["totals"]
    lines.append("=== Finance Summary ===")
    period = summary.get("period") or {}
    if period.get("from") or period.get("to"):
        lines.append(f"Period:  {period.get('from') or '...'} to {period.get('to') or '...'}")
    lines.append(f"Income:  {t['income']:.2f}")
    lines.append(f"Expense: {t['expense']:.2f}")
    lines.append(f"Balance: {t['balance']:.2f}")
    lines.append("")

    lines.append("-- Expenses by Category --")
    for row in summary["expensesByCategory"]:
        lines.append(f"{row['categoryName'][:20]:20} {row['amount']:.2f}")
    lines.append("")

    lines.append("-- Monthly Totals --")
    for m, vals in summary["monthly"].items():
        lines.append(f"{m} | Inc {vals['income']:.2f}  Exp {vals['expense']:.2f}  Net {vals['net']:.2f}")
    lines.append("")

    s = summary["savings"]
    lines.append("-- Savings --")
    lines.append(f"Total saved: {s['total']:.2f} ({s['percentage']:.1f}% of income)")

    if summary.get("goals"):
        lines.append("")
        lines.append("-- Goals --")
        for g in summary["goals"]:
            lines.append(f"{g['title'][:30]:30} {g['currentAmount']:.2f} / {g['targetAmount']:.2f}  ({g['progress']:.1f}%)")
    return "\n".join(lines)


def save_json(summary: Dict[str, Any], path: str | Path) -> None:
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    with p.open("w", encoding="utf-8") as f:
        json.dump(summary, f, indent=2, ensure_ascii=False)
