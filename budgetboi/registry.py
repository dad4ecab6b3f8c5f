"""Named snapshots of the live budget kept in the key-value store.

Ids are small sequential integers stored as strings. Registries written
with UUID ids are renumbered by ``savedAt`` order the first time they are
read.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Optional

from dateutil.parser import isoparse

from budgetboi.errors import SavedBudgetNotFoundError
from budgetboi.models import SavedBudgetEntry, SavedBudgetMeta
from budgetboi.snapshot import export_budget_to_json, import_budget_from_json
from budgetboi.storage import SAVED_BUDGETS_KEY, read_json, write_json

logger = logging.getLogger(__name__)


def now_timestamp() -> str:
    # 2025-01-31T18:04:05.123Z
    stamp = datetime.now(timezone.utc).isoformat(timespec="milliseconds")
    return stamp.replace("+00:00", "Z")


def is_legacy_id(budget_id: str) -> bool:
    return len(budget_id) > 20 and "-" in budget_id


def _saved_at_key(entry: SavedBudgetEntry) -> tuple[bool, datetime]:
    # unreadable timestamps sort last
    try:
        moment = isoparse(entry.saved_at)
    except (ValueError, OverflowError):
        return True, datetime.min.replace(tzinfo=timezone.utc)
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return False, moment


def migrate_legacy_ids(entries: list[SavedBudgetEntry]) -> list[SavedBudgetEntry]:
    """Renumber 1..n by savedAt when any id is a legacy UUID; else unchanged."""
    if not any(is_legacy_id(e.id) for e in entries):
        return entries
    ordered = sorted(entries, key=_saved_at_key)
    for number, entry in enumerate(ordered, start=1):
        entry.id = str(number)
    return ordered


def _save_entries(entries: list[SavedBudgetEntry]) -> None:
    write_json(SAVED_BUDGETS_KEY, [e.to_dict() for e in entries])


def _load_entries() -> list[SavedBudgetEntry]:
    data = read_json(SAVED_BUDGETS_KEY)
    if not isinstance(data, list):
        return []
    entries = []
    for item in data:
        try:
            entries.append(SavedBudgetEntry.from_dict(item))
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            logger.warning("Skipping unreadable saved budget %r: %s", item, e)
    migrated = migrate_legacy_ids(entries)
    if migrated is not entries:
        logger.info("Renumbered %d saved budgets to sequential ids", len(migrated))
        _save_entries(migrated)
    return migrated


def _next_id(entries: list[SavedBudgetEntry]) -> str:
    numbers = [int(e.id) for e in entries if e.id.isdigit()]
    return str(max(numbers) + 1 if numbers else 1)


def list_saved_budgets() -> list[SavedBudgetMeta]:
    return [e.meta() for e in _load_entries()]


def save_budget_to_storage(name: str) -> str:
    """Snapshot the live budget under ``name``; returns the new id."""
    data = export_budget_to_json()
    entries = _load_entries()
    saved_at = now_timestamp()
    entry = SavedBudgetEntry(
        id=_next_id(entries),
        name=name.strip() or f"Budget {saved_at[:10]}",
        saved_at=saved_at,
        data=data,
    )
    entries.append(entry)
    _save_entries(entries)
    logger.info("Saved budget %s as %r", entry.id, entry.name)
    return entry.id


def load_budget_from_storage(budget_id: str) -> None:
    for entry in _load_entries():
        if entry.id == budget_id:
            import_budget_from_json(entry.data)
            return
    raise SavedBudgetNotFoundError(budget_id)


def delete_budget_from_storage(budget_id: str) -> None:
    entries = _load_entries()
    remaining = [e for e in entries if e.id != budget_id]
    if len(remaining) != len(entries):
        _save_entries(remaining)


def update_budget_in_storage(budget_id: str, name: Optional[str] = None, data: Optional[str] = None) -> None:
    """Rename and/or replace the data of a saved budget; unknown ids are ignored."""
    entries = _load_entries()
    for entry in entries:
        if entry.id == budget_id:
            if name is not None:
                entry.name = name
            if data is not None:
                entry.data = data
            entry.saved_at = now_timestamp()
            _save_entries(entries)
            return
