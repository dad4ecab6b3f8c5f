"""Export and import a whole budget as one versioned JSON document.

The document is ``{"version": 1, "settings": ..., "expenses": [...],
"incomes": [...]}``. Import replaces settings, expenses and incomes
together, and only after the whole document has been validated.
"""

from __future__ import annotations

import json
import logging

from budgetboi.errors import InvalidBudgetFileError
from budgetboi.models import Settings
from budgetboi.storage import (
    decode_entries, get_expenses, get_incomes, get_settings, save_expenses, save_incomes, save_settings
)

logger = logging.getLogger(__name__)

BUDGET_EXPORT_VERSION = 1


def export_budget_to_json() -> str:
    settings = get_settings()
    return json.dumps({
        "version": BUDGET_EXPORT_VERSION,
        "settings": settings.to_dict() if settings else None,
        "expenses": [e.to_dict() for e in get_expenses()],
        "incomes": [i.to_dict() for i in get_incomes()],
    })


def parse_budget_document(text: str):
    """Validate a budget document and return (settings, expenses, incomes).

    Raises InvalidBudgetFileError without touching storage.
    """
    try:
        data = json.loads(text)
    except (json.JSONDecodeError, TypeError) as e:
        raise InvalidBudgetFileError() from e
    if not isinstance(data, dict):
        raise InvalidBudgetFileError()

    version = data.get("version")
    if isinstance(version, bool) or version != BUDGET_EXPORT_VERSION:
        logger.info("Rejecting budget file with version %r", version)
        raise InvalidBudgetFileError()
    if data.get("settings") is None:
        raise InvalidBudgetFileError()

    try:
        settings = Settings.from_dict(data["settings"])
    except (KeyError, TypeError, ValueError, AttributeError) as e:
        raise InvalidBudgetFileError() from e
    expenses = decode_entries("expense", data.get("expenses"))
    incomes = decode_entries("income", data.get("incomes"))
    return settings, expenses, incomes


def import_budget_from_json(text: str) -> None:
    """Replace the live budget with the document in ``text``."""
    settings, expenses, incomes = parse_budget_document(text)
    save_settings(settings)
    save_expenses(expenses)
    save_incomes(incomes)
    logger.info("Imported budget: %d expenses, %d incomes", len(expenses), len(incomes))
