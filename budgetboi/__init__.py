"""Budget projection core: recurring entries, payroll and saved budgets."""
