from __future__ import annotations
import dataclasses
import uuid
from datetime import date
from typing import Optional

from budgetboi.models import ENTRY_TYPES, Entry, EntryKind, Expense, Income, Recurrence
from budgetboi.storage import get_entries, save_entries


EDITABLE_FIELDS = ("name", "amount", "recurring", "start_date", "end_date", "category", "notes")


def add_entry(
        kind: EntryKind,
        name: str,
        amount: float,
        recurring: Recurrence,
        start_date: date,
        end_date: Optional[date] = None,
        category: Optional[str] = None,
        notes: Optional[str] = None,
) -> Entry:
    entry = ENTRY_TYPES[kind](
        id=str(uuid.uuid4()),
        name=name,
        amount=amount,
        recurring=recurring,
        start_date=start_date,
        end_date=end_date,
        category=category,
        notes=notes,
    )
    save_entries(kind, get_entries(kind) + [entry])
    return entry


def update_entry(kind: EntryKind, entry_id: str, **updates) -> Optional[Entry]:
    """Apply a partial update; returns None (and writes nothing) for an unknown id."""
    unknown = set(updates) - set(EDITABLE_FIELDS)
    if unknown:
        raise TypeError(f"Cannot update field(s): {', '.join(sorted(unknown))}")

    entries = get_entries(kind)
    for i, entry in enumerate(entries):
        if entry.id == entry_id:
            entries[i] = dataclasses.replace(entry, **updates)
            save_entries(kind, entries)
            return entries[i]
    return None


def delete_entry(kind: EntryKind, entry_id: str) -> bool:
    entries = get_entries(kind)
    remaining = [e for e in entries if e.id != entry_id]
    if len(remaining) == len(entries):
        return False
    save_entries(kind, remaining)
    return True


def get_entry_by_id(kind: EntryKind, entry_id: str) -> Optional[Entry]:
    for entry in get_entries(kind):
        if entry.id == entry_id:
            return entry
    return None


def add_expense(name: str, amount: float, recurring: Recurrence, start_date: date, **optional) -> Expense:
    return add_entry("expense", name, amount, recurring, start_date, **optional)


def update_expense(expense_id: str, **updates) -> Optional[Expense]:
    return update_entry("expense", expense_id, **updates)


def delete_expense(expense_id: str) -> bool:
    return delete_entry("expense", expense_id)


def get_expense_by_id(expense_id: str) -> Optional[Expense]:
    return get_entry_by_id("expense", expense_id)


def add_income(name: str, amount: float, recurring: Recurrence, start_date: date, **optional) -> Income:
    return add_entry("income", name, amount, recurring, start_date, **optional)


def update_income(income_id: str, **updates) -> Optional[Income]:
    return update_entry("income", income_id, **updates)


def delete_income(income_id: str) -> bool:
    return delete_entry("income", income_id)


def get_income_by_id(income_id: str) -> Optional[Income]:
    return get_entry_by_id("income", income_id)
