"""Balance projection and monthly aggregates over the persisted budget.

Every function reads the current settings and entries from storage and
recomputes from scratch. ``month`` arguments may be any day in the month.
"""

from __future__ import annotations
from datetime import date
from typing import NamedTuple, Optional

from budgetboi.dates import end_of_month, iter_days, iter_months, short_label, start_of_month
from budgetboi.models import Entry, ExportRow, Instance, Settings
from budgetboi.recurrence import instances_in_range, payroll_dates
from budgetboi.storage import get_expenses, get_incomes, get_settings

BIWEEKLY_TO_MONTHLY = 26 / 12


class Budget(NamedTuple):
    settings: Optional[Settings]
    expenses: list[Entry]
    incomes: list[Entry]


def load_budget() -> Budget:
    return Budget(get_settings(), get_expenses(), get_incomes())


# ===== RANGE QUERIES =====
def expense_instances_in_range(start: date, end: date) -> list[Instance]:
    return instances_in_range(get_expenses(), start, end)


def income_instances_in_range(start: date, end: date) -> list[Instance]:
    return instances_in_range(get_incomes(), start, end)


def payroll_dates_in_range(start: date, end: date) -> list[date]:
    settings = get_settings()
    if settings is None:
        return []
    return payroll_dates(settings.payroll, start, end)


def expense_count_on_date(day: date) -> int:
    return len(expense_instances_in_range(day, day))


def income_count_on_date(day: date) -> int:
    return len(income_instances_in_range(day, day))


def has_expense_on_date(day: date) -> bool:
    return expense_count_on_date(day) > 0


def has_income_on_date(day: date) -> bool:
    return income_count_on_date(day) > 0


def is_payroll_date(day: date) -> bool:
    return day in payroll_dates_in_range(day, day)


# ===== BALANCE =====
def _total(instances: list[Instance]) -> float:
    return sum(i.amount for i in instances)


def _balance(budget: Budget, day: date) -> float:
    settings = budget.settings
    if settings is None or day < settings.start_date:
        return 0
    start = settings.start_date
    balance = settings.initial_balance
    if settings.payroll is not None:
        balance += len(payroll_dates(settings.payroll, start, day)) * settings.payroll.amount_per_paycheck
    balance -= _total(instances_in_range(budget.expenses, start, day))
    balance += _total(instances_in_range(budget.incomes, start, day))
    return balance


def balance_on_date(day: date) -> float:
    """Projected balance at the end of ``day``; 0 before the budget starts."""
    return _balance(load_budget(), day)


def monthly_income_budgeted() -> float:
    """Planned monthly pay, not what actually lands in a given month."""
    settings = get_settings()
    if settings is None or settings.payroll is None:
        return 0
    payroll = settings.payroll
    if payroll.frequency == "monthly":
        return payroll.amount_per_paycheck
    return payroll.amount_per_paycheck * BIWEEKLY_TO_MONTHLY


def _month_days(budget: Budget, month: date) -> list[date]:
    if budget.settings is None:
        return []
    month_end = end_of_month(month)
    first = max(start_of_month(month), budget.settings.start_date)
    return list(iter_days(first, month_end))


def lowest_balance_in_month(month: date) -> float:
    budget = load_budget()
    days = _month_days(budget, month)
    if not days:
        return 0
    return min(_balance(budget, day) for day in days)


def balance_series_for_month(month: date) -> list[tuple[str, float]]:
    """(label, balance) per day of the month from the budget start on."""
    budget = load_budget()
    return [(short_label(day), _balance(budget, day)) for day in _month_days(budget, month)]


# ===== MONTHLY AGGREGATES =====
def _spent(budget: Budget, month: date) -> float:
    return _total(instances_in_range(budget.expenses, start_of_month(month), end_of_month(month)))


def _income(budget: Budget, month: date) -> float:
    start, end = start_of_month(month), end_of_month(month)
    total = 0
    if budget.settings is not None and budget.settings.payroll is not None:
        payroll = budget.settings.payroll
        total += len(payroll_dates(payroll, start, end)) * payroll.amount_per_paycheck
    total += _total(instances_in_range(budget.incomes, start, end))
    return total


def amount_spent_in_month(month: date) -> float:
    return _spent(load_budget(), month)


def income_in_month(month: date) -> float:
    """Payroll plus income entries landing in the month."""
    return _income(load_budget(), month)


def savings_rate_for_month(month: date) -> Optional[float]:
    """Percent of the month's income kept; None when there is no income."""
    budget = load_budget()
    income = _income(budget, month)
    if income <= 0:
        return None
    return (income - _spent(budget, month)) / income * 100


def _tracked_months(budget: Budget, through_month: date) -> list[date]:
    if budget.settings is None:
        return []
    return list(iter_months(budget.settings.start_date, end_of_month(through_month)))


def total_spent_from_start(through_month: date) -> float:
    budget = load_budget()
    return sum(_spent(budget, month) for month in _tracked_months(budget, through_month))


def total_income_from_start(through_month: date) -> float:
    budget = load_budget()
    return sum(_income(budget, month) for month in _tracked_months(budget, through_month))


def months_tracked_count(through_month: date) -> int:
    return len(_tracked_months(load_budget(), through_month))


def average_spent_per_month(through_month: date) -> float:
    months = months_tracked_count(through_month)
    if months == 0:
        return 0
    return total_spent_from_start(through_month) / months


def average_net_per_month(through_month: date) -> float:
    months = months_tracked_count(through_month)
    if months == 0:
        return 0
    net = total_income_from_start(through_month) - total_spent_from_start(through_month)
    return net / months


# ===== BREAKDOWNS =====
def _spending_by(month: date, label_for, fallback: str) -> list[tuple[str, float]]:
    budget = load_budget()
    owners = {e.id: e for e in budget.expenses}
    buckets: dict[str, float] = {}
    for inst in instances_in_range(budget.expenses, start_of_month(month), end_of_month(month)):
        owner = owners.get(inst.entry_id)
        label = ((label_for(owner) if owner else None) or "").strip() or fallback
        buckets[label] = buckets.get(label, 0) + inst.amount
    return sorted(buckets.items(), key=lambda item: item[1], reverse=True)


def spending_by_name_for_month(month: date) -> list[tuple[str, float]]:
    return _spending_by(month, lambda e: e.name, "Unnamed")


def spending_by_category_for_month(month: date) -> list[tuple[str, float]]:
    return _spending_by(month, lambda e: e.category, "Uncategorized")


# ===== EXPORT =====
def export_rows_for_range(start: date, end: date) -> list[ExportRow]:
    """Every expense, income and payday in [start, end], ordered by date."""
    budget = load_budget()
    rows = [
        ExportRow(date=i.date, name=i.name, type="Expense", amount=i.amount)
        for i in instances_in_range(budget.expenses, start, end)
    ]
    rows += [
        ExportRow(date=i.date, name=i.name, type="Income", amount=i.amount)
        for i in instances_in_range(budget.incomes, start, end)
    ]
    settings = budget.settings
    if settings is not None and settings.payroll is not None:
        rows += [
            ExportRow(date=d, name="Payroll", type="Payroll", amount=settings.payroll.amount_per_paycheck)
            for d in payroll_dates(settings.payroll, start, end)
        ]
    rows.sort(key=lambda r: r.date)
    return rows
