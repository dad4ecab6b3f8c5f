from __future__ import annotations
import json
import logging
from datetime import date
from typing import Optional

from budgetboi.config import DEFAULT_BUDGET_START
from budgetboi.models import ENTRY_TYPES, Entry, EntryKind, Expense, Income, Settings
from budgetboi.store import MemoryStore


logger = logging.getLogger(__name__)

SETTINGS_KEY = "budget-app-settings"
EXPENSES_KEY = "budget-app-expenses"
INCOME_KEY = "budget-app-income"
SAVED_BUDGETS_KEY = "budget-app-saved-budgets"

ENTRY_KEYS = {
    "expense": EXPENSES_KEY,
    "income": INCOME_KEY,
}

_store = MemoryStore()


def use_store(store):
    """Make ``store`` the active store and return the previous one."""
    global _store
    previous = _store
    _store = store
    return previous


def get_store():
    return _store


def read_json(key: str):
    """Decoded value under ``key``; None when absent or corrupt."""
    raw = _store.get(key)
    if not raw:
        return None
    try:
        return json.loads(raw)
    except json.JSONDecodeError as e:
        logger.warning("Ignoring corrupt data under %s: %s", key, e)
        return None


def write_json(key: str, value) -> None:
    _store.set(key, json.dumps(value))


# ===== SETTINGS =====
def get_settings() -> Optional[Settings]:
    data = read_json(SETTINGS_KEY)
    if data is None:
        return None
    try:
        return Settings.from_dict(data)
    except (KeyError, TypeError, ValueError, AttributeError) as e:
        logger.warning("Ignoring unreadable settings: %s", e)
        return None


def save_settings(settings: Settings) -> None:
    write_json(SETTINGS_KEY, settings.to_dict())


def get_budget_start_date() -> date:
    """Earliest date the budget can be navigated to."""
    settings = get_settings()
    if settings is None:
        return DEFAULT_BUDGET_START
    return settings.start_date


def clear_all_data() -> None:
    """Start over: drop settings and entries. Saved budgets are kept."""
    _store.remove(SETTINGS_KEY)
    _store.remove(EXPENSES_KEY)
    _store.remove(INCOME_KEY)


# ===== ENTRIES =====
def decode_entries(kind: EntryKind, items) -> list[Entry]:
    """Decode a persisted entry list, skipping entries that do not parse."""
    if not isinstance(items, list):
        if items is not None:
            logger.warning("Expected a list of %s entries, got %s", kind, type(items).__name__)
        return []
    entry_type = ENTRY_TYPES[kind]
    entries = []
    for item in items:
        try:
            entries.append(entry_type.from_dict(item))
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            logger.warning("Skipping invalid %s entry %r: %s", kind, item, e)
    return entries


def get_entries(kind: EntryKind) -> list[Entry]:
    return decode_entries(kind, read_json(ENTRY_KEYS[kind]))


def save_entries(kind: EntryKind, entries: list[Entry]) -> None:
    write_json(ENTRY_KEYS[kind], [e.to_dict() for e in entries])


def get_expenses() -> list[Expense]:
    return get_entries("expense")


def save_expenses(expenses: list[Expense]) -> None:
    save_entries("expense", expenses)


def get_incomes() -> list[Income]:
    return get_entries("income")


def save_incomes(incomes: list[Income]) -> None:
    save_entries("income", incomes)
