"""Configuration values with environment variable overrides."""

from __future__ import annotations

import os
from datetime import date
from pathlib import Path

DATA_DIR = Path(os.getenv("BUDGETBOI_DATA_DIR", "saves"))
LOG_LEVEL = os.getenv("BUDGETBOI_LOG_LEVEL", "WARNING").upper()

# Navigation start used while no budget settings exist.
DEFAULT_BUDGET_START = date(2025, 2, 16)

CURRENCY_SYMBOL = "$"
