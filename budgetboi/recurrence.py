"""Expand entries and the payroll rule into concrete dated occurrences.

Occurrences are never stored: every query walks the rules again for the
window it asks about. Windows are inclusive at both ends.
"""

from __future__ import annotations
from datetime import date, timedelta
from typing import Iterable, Optional

from dateutil.relativedelta import relativedelta

from budgetboi.models import Entry, EntrySummary, Instance, Payroll

STEPS = {
    "weekly": timedelta(weeks=1),
    "monthly": relativedelta(months=1),
}
PAYROLL_STEPS = {
    "every2weeks": timedelta(weeks=2),
    "monthly": relativedelta(months=1),
}


def _instance(entry: Entry, on: date) -> Instance:
    return Instance(date=on, amount=entry.amount, entry_id=entry.id, name=entry.name, kind=entry.kind)


def expand_entry(entry: Entry, start: date, end: date) -> list[Instance]:
    first = entry.start_date
    if first > end:
        return []

    if entry.recurring == "none":
        if start <= first <= end:
            return [_instance(entry, first)]
        return []

    step = STEPS[entry.recurring]
    instances = []
    cursor = first
    while cursor <= end:
        if entry.end_date is not None and cursor > entry.end_date:
            break
        if cursor >= start and cursor >= first:
            instances.append(_instance(entry, cursor))
        cursor += step
    return instances


def instances_in_range(entries: Iterable[Entry], start: date, end: date) -> list[Instance]:
    """All instances of ``entries`` in [start, end], ordered by date.

    Same-day instances keep the order of ``entries``.
    """
    instances = []
    for entry in entries:
        instances.extend(expand_entry(entry, start, end))
    instances.sort(key=lambda i: i.date)
    return instances


def payroll_dates(payroll: Optional[Payroll], start: date, end: date) -> list[date]:
    if payroll is None or payroll.first_date > end:
        return []
    step = PAYROLL_STEPS[payroll.frequency]
    dates = []
    cursor = payroll.first_date
    while cursor <= end:
        if cursor >= start:
            dates.append(cursor)
        cursor += step
    return dates


def group_instances_by_entry(instances: Iterable[Instance]) -> list[EntrySummary]:
    """Collapse instances into one count/total line per entry, first-seen order."""
    groups: dict[str, list] = {}
    for inst in instances:
        group = groups.setdefault(inst.entry_id, [inst.name, 0, 0.0])
        group[1] += 1
        group[2] += inst.amount
    return [
        EntrySummary(entry_id=entry_id, name=name, count=count, total=total)
        for entry_id, (name, count, total) in groups.items()
    ]
