class BudgetError(Exception):
    """Base class for errors surfaced to the caller."""


class InvalidBudgetFileError(BudgetError, ValueError):
    def __init__(self, message: str = "Invalid budget file"):
        super().__init__(message)


class SavedBudgetNotFoundError(BudgetError, LookupError):
    def __init__(self, budget_id: str):
        super().__init__("Saved budget not found")
        self.budget_id = budget_id
