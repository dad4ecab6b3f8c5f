from __future__ import annotations
import csv
import io
from datetime import date
from pathlib import Path
from typing import Iterable

from budgetboi.models import ExportRow

CSV_HEADER = ("Date", "Name", "Type", "Amount")


def format_amount(amount: float) -> str:
    # 200 rather than 200.0
    if float(amount).is_integer():
        return str(int(amount))
    return repr(float(amount))


def rows_to_csv(rows: Iterable[ExportRow]) -> str:
    """Render rows as CSV text; fields with commas, quotes or newlines get quoted."""
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(CSV_HEADER)
    for row in rows:
        writer.writerow((row.date.isoformat(), row.name, row.type, format_amount(row.amount)))
    return buffer.getvalue()


def write_csv(path: Path | str, rows: Iterable[ExportRow]) -> Path:
    path = Path(path)
    path.write_text(rows_to_csv(rows), encoding="utf-8")
    return path


def csv_filename_for_month(month: date) -> str:
    return f"budget-{month:%Y-%m}.csv"


def csv_filename_for_year(year: date) -> str:
    return f"budget-{year:%Y}.csv"
