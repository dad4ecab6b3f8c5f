import re

from budgetboi.config import CURRENCY_SYMBOL

_NOT_NUMERIC = re.compile(r"[^\d.\-]")


def parse_currency_input(text) -> float:
    """Turn user-entered money text ("$1,234.50") into a float.

    Anything that does not parse yields 0.0; callers treat that as invalid.
    """
    if text is None:
        return 0.0
    cleaned = _NOT_NUMERIC.sub("", str(text))
    if not cleaned:
        return 0.0
    try:
        return float(cleaned)
    except ValueError:
        return 0.0


def format_currency(amount: float, symbol: str = CURRENCY_SYMBOL) -> str:
    """Format an amount as "$1,234.50", negatives as "-$1,234.50"."""
    rounded = round(float(amount), 2)
    sign = "-" if rounded < 0 else ""
    return f"{sign}{symbol}{abs(rounded):,.2f}"
