from __future__ import annotations
from dataclasses import dataclass
from datetime import date
from typing import ClassVar, Optional, Literal

from budgetboi.dates import parse_day


Recurrence = Literal["none", "weekly", "monthly"]
PayFrequency = Literal["monthly", "every2weeks"]
EntryKind = Literal["expense", "income"]
RowType = Literal["Expense", "Income", "Payroll"]

RECURRENCES = ("none", "weekly", "monthly")
PAY_FREQUENCIES = ("monthly", "every2weeks")


def _choice(value, allowed: tuple[str, ...], field_name: str) -> str:
    if value not in allowed:
        raise ValueError(f"{field_name} must be one of {', '.join(allowed)}, got {value!r}")
    return value


def _optional_text(value) -> Optional[str]:
    return None if value is None else str(value)


@dataclass
class Payroll:
    first_date: date
    frequency: PayFrequency
    amount_per_paycheck: float

    def to_dict(self) -> dict:
        return {
            "firstDate": self.first_date.isoformat(),
            "frequency": self.frequency,
            "amountPerPaycheck": self.amount_per_paycheck,
        }

    @classmethod
    def from_dict(cls, data: dict) -> Payroll:
        return cls(
            first_date=parse_day(data["firstDate"]),
            frequency=_choice(data["frequency"], PAY_FREQUENCIES, "frequency"),
            amount_per_paycheck=float(data["amountPerPaycheck"]),
        )


@dataclass
class Settings:
    initial_balance: float
    start_date: date
    payroll: Optional[Payroll] = None

    def to_dict(self) -> dict:
        return {
            "initialBalance": self.initial_balance,
            "startDate": self.start_date.isoformat(),
            "payroll": self.payroll.to_dict() if self.payroll else None,
        }

    @classmethod
    def from_dict(cls, data: dict) -> Settings:
        payroll = data.get("payroll")
        return cls(
            initial_balance=float(data["initialBalance"]),
            start_date=parse_day(data["startDate"]),
            payroll=Payroll.from_dict(payroll) if payroll else None,
        )


@dataclass
class Entry:
    """A persisted rule that generates dated instances.

    Expense and Income share this shape; ``kind`` tells them apart.
    ``end_date`` only matters when ``recurring`` is not "none".
    """
    kind: ClassVar[EntryKind]

    id: str
    name: str
    amount: float
    recurring: Recurrence
    start_date: date
    end_date: Optional[date] = None
    category: Optional[str] = None
    notes: Optional[str] = None

    def to_dict(self) -> dict:
        data = {
            "id": self.id,
            "name": self.name,
            "amount": self.amount,
            "recurring": self.recurring,
            "startDate": self.start_date.isoformat(),
        }
        if self.end_date is not None:
            data["endDate"] = self.end_date.isoformat()
        if self.category is not None:
            data["category"] = self.category
        if self.notes is not None:
            data["notes"] = self.notes
        return data

    @classmethod
    def from_dict(cls, data: dict):
        end_date = data.get("endDate")
        return cls(
            id=str(data["id"]),
            name=str(data["name"]),
            amount=float(data["amount"]),
            recurring=_choice(data["recurring"], RECURRENCES, "recurring"),
            start_date=parse_day(data["startDate"]),
            end_date=parse_day(end_date) if end_date else None,
            category=_optional_text(data.get("category")),
            notes=_optional_text(data.get("notes")),
        )


@dataclass
class Expense(Entry):
    kind: ClassVar[EntryKind] = "expense"


@dataclass
class Income(Entry):
    kind: ClassVar[EntryKind] = "income"


ENTRY_TYPES: dict[str, type[Entry]] = {
    "expense": Expense,
    "income": Income,
}


@dataclass(frozen=True)
class Instance:
    date: date
    amount: float
    entry_id: str
    name: str
    kind: EntryKind


@dataclass(frozen=True)
class EntrySummary:
    entry_id: str
    name: str
    count: int
    total: float


@dataclass(frozen=True)
class ExportRow:
    date: date
    name: str
    type: RowType
    amount: float


@dataclass
class SavedBudgetMeta:
    id: str
    name: str
    saved_at: str


@dataclass
class SavedBudgetEntry(SavedBudgetMeta):
    data: str = ""

    def meta(self) -> SavedBudgetMeta:
        return SavedBudgetMeta(id=self.id, name=self.name, saved_at=self.saved_at)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "savedAt": self.saved_at,
            "data": self.data,
        }

    @classmethod
    def from_dict(cls, data: dict) -> SavedBudgetEntry:
        return cls(
            id=str(data["id"]),
            name=str(data.get("name") or ""),
            saved_at=str(data.get("savedAt") or ""),
            data=str(data.get("data") or ""),
        )
