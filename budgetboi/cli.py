import cmd
import shlex
from datetime import date
from pathlib import Path

from budgetboi.currency import format_currency, parse_currency_input
from budgetboi.dates import end_of_month, end_of_year, start_of_month, start_of_year
from budgetboi.errors import BudgetError
from budgetboi.export import csv_filename_for_month, csv_filename_for_year, write_csv
from budgetboi.logic import add_entry, delete_entry, update_entry
from budgetboi.models import PAY_FREQUENCIES, RECURRENCES, Payroll, Settings
from budgetboi.projection import (
    amount_spent_in_month,
    average_net_per_month,
    balance_on_date,
    export_rows_for_range,
    expense_instances_in_range,
    income_in_month,
    income_instances_in_range,
    is_payroll_date,
    lowest_balance_in_month,
    monthly_income_budgeted,
    months_tracked_count,
    savings_rate_for_month,
    spending_by_category_for_month,
    spending_by_name_for_month,
    total_income_from_start,
    total_spent_from_start,
)
from budgetboi.recurrence import group_instances_by_entry
from budgetboi.registry import (
    delete_budget_from_storage,
    list_saved_budgets,
    load_budget_from_storage,
    save_budget_to_storage,
    update_budget_in_storage,
)
from budgetboi.snapshot import export_budget_to_json, import_budget_from_json
from budgetboi.storage import clear_all_data, get_expenses, get_incomes, get_settings, save_settings

KINDS = ("expense", "income")


class BudgetCLI(cmd.Cmd):
    prompt = "(budget) "

    def __init__(self, today=None):
        super().__init__()
        self.today = today or date.today()
        self.intro = "Welcome to BudgetBoi. Type 'help' for commands."

    # ===== SETUP =====
    def do_setup(self, arg):
        """Start a budget: setup <initial balance> [YYYY-MM-DD]"""
        try:
            args = shlex.split(arg)
            if not args:
                raise ValueError("Missing initial balance")
            balance = parse_currency_input(args[0])
            start = date.fromisoformat(args[1]) if len(args) > 1 else self.today
            current = get_settings()
            save_settings(Settings(
                initial_balance=balance,
                start_date=start,
                payroll=current.payroll if current else None,
            ))
            print(f"✓ Budget starts {start} with {format_currency(balance)}")
        except ValueError as e:
            print(f"Invalid input: {e}")

    def do_payroll(self, arg):
        """Set payroll: payroll <first YYYY-MM-DD> <monthly|every2weeks> <amount per paycheck>"""
        try:
            args = shlex.split(arg)
            if len(args) != 3:
                raise ValueError("Usage: payroll <first date> <frequency> <amount>")
            if args[1] not in PAY_FREQUENCIES:
                raise ValueError(f"Frequency must be one of: {', '.join(PAY_FREQUENCIES)}")
            settings = get_settings()
            if settings is None:
                raise ValueError("Run 'setup' first")
            settings.payroll = Payroll(
                first_date=date.fromisoformat(args[0]),
                frequency=args[1],
                amount_per_paycheck=parse_currency_input(args[2]),
            )
            save_settings(settings)
            print(f"✓ Payroll set, about {format_currency(monthly_income_budgeted())} per month")
        except ValueError as e:
            print(f"Invalid input: {e}")

    # ===== ENTRIES =====
    def do_add(self, arg):
        """Add an entry: add <expense|income> <amount> <name> [YYYY-MM-DD] [--recur weekly|monthly] [--until YYYY-MM-DD] [--category NAME] [--notes TEXT]"""
        try:
            args = self._parse_add_args(arg)
            entry = add_entry(**args)
            confirmation = f"✓ Added {entry.kind} '{entry.name}' of {format_currency(entry.amount)} [{entry.id}]"
            if entry.recurring != "none":
                confirmation += f" (recurring {entry.recurring})"
            print(confirmation)
        except ValueError as e:
            print(f"Invalid input: {e}")

    def do_edit(self, arg):
        """Edit an entry: edit <expense|income> <ID> [--name N] [--amount A] [--recur none|weekly|monthly] [--date D] [--until D] [--category C] [--notes T]"""
        try:
            args = shlex.split(arg)
            if len(args) < 2 or args[0] not in KINDS:
                raise ValueError("Usage: edit <expense|income> <ID> [options]")
            updates = self._parse_entry_options(args[2:], allow_name=True)
            if update_entry(args[0], args[1], **updates) is None:
                print(f"{args[0].capitalize()} not found")
            else:
                print(f"✓ Updated {args[0]} {args[1]}")
        except ValueError as e:
            print(f"Invalid input: {e}")

    def do_delete(self, arg):
        """Delete an entry: delete <expense|income> <ID>"""
        args = arg.split()
        if len(args) != 2 or args[0] not in KINDS:
            print("Usage: delete <expense|income> <ID>")
            return
        if delete_entry(args[0], args[1]):
            print(f"✓ Deleted {args[0]} {args[1]}")
        else:
            print(f"{args[0].capitalize()} not found")

    def do_list(self, arg):
        """List expenses and incomes: list [expense|income]"""
        kinds = [arg.strip()] if arg.strip() in KINDS else KINDS
        for kind in kinds:
            entries = get_expenses() if kind == "expense" else get_incomes()
            print(f"\n{kind.capitalize()}s:")
            if not entries:
                print("  (none)")
            for e in entries:
                until = f" until {e.end_date}" if e.end_date else ""
                category = f" [{e.category}]" if e.category else ""
                print(f"  {e.id}  {e.name}{category}: {format_currency(e.amount)} "
                      f"{e.recurring} from {e.start_date}{until}")

    # ===== PROJECTIONS =====
    def do_balance(self, arg):
        """Projected balance: balance [YYYY-MM-DD]"""
        try:
            target = self._parse_date(arg)
            print(f"\nProjected Balance on {target}:")
            print(f"  {format_currency(balance_on_date(target))}")
        except ValueError as e:
            print(f"Invalid input: {e}")

    def do_day(self, arg):
        """Show what happens on a day: day [YYYY-MM-DD]"""
        try:
            target = self._parse_date(arg)
        except ValueError as e:
            print(f"Invalid input: {e}")
            return
        print(f"\n{target}: balance {format_currency(balance_on_date(target))}")
        if is_payroll_date(target):
            print("  Payday")
        for label, instances in (("Expenses", expense_instances_in_range(target, target)),
                                 ("Income", income_instances_in_range(target, target))):
            for group in group_instances_by_entry(instances):
                print(f"  {label}: {group.name} x{group.count} = {format_currency(group.total)}")

    def do_month(self, arg):
        """Month summary: month [YYYY-MM] [--categories]"""
        args = arg.split()
        try:
            month = self._parse_month(args[0] if args and not args[0].startswith("--") else "")
        except ValueError as e:
            print(f"Invalid input: {e}")
            return

        spent = amount_spent_in_month(month)
        income = income_in_month(month)
        rate = savings_rate_for_month(month)
        print(f"\n{' ' + month.strftime('%B %Y') + ' ':-^50}")
        print(f"  Income:         {format_currency(income)}")
        print(f"  Spent:          {format_currency(spent)}")
        print(f"  Net:            {format_currency(income - spent)}")
        print(f"  Lowest balance: {format_currency(lowest_balance_in_month(month))}")
        print(f"  Savings rate:   {'n/a' if rate is None else f'{rate:.1f}%'}")

        breakdown = spending_by_category_for_month(month) if "--categories" in args \
            else spending_by_name_for_month(month)
        if breakdown:
            print("\nSpending:")
            for label, amount in breakdown:
                print(f"  {label}: {format_currency(amount)}")

    def do_stats(self, arg):
        """Totals since the budget started: stats [YYYY-MM]"""
        try:
            month = self._parse_month(arg.strip())
        except ValueError as e:
            print(f"Invalid input: {e}")
            return
        print(f"\nMonths tracked: {months_tracked_count(month)}")
        print(f"  Total income:  {format_currency(total_income_from_start(month))}")
        print(f"  Total spent:   {format_currency(total_spent_from_start(month))}")
        print(f"  Avg net/month: {format_currency(average_net_per_month(month))}")
        print(f"  Budgeted pay:  {format_currency(monthly_income_budgeted())} per month")

    # ===== DATA MANAGEMENT =====
    def do_export(self, arg):
        """Export the budget as JSON: export <file>"""
        if not arg.strip():
            print("Usage: export <file>")
            return
        path = Path(arg.strip())
        try:
            path.write_text(export_budget_to_json(), encoding="utf-8")
        except OSError as e:
            print(f"Error: {e}")
            return
        print(f"✓ Exported budget to {path}")

    def do_import(self, arg):
        """Replace the current budget with a JSON file: import <file>"""
        try:
            import_budget_from_json(Path(arg.strip()).read_text(encoding="utf-8"))
            print("✓ Budget imported")
        except (OSError, BudgetError) as e:
            print(f"Error: {e}")

    def do_csv(self, arg):
        """Export transactions as CSV: csv <YYYY-MM|YYYY> [file]"""
        args = arg.split()
        if not args:
            print("Usage: csv <YYYY-MM|YYYY> [file]")
            return
        try:
            if len(args[0]) == 4:
                anchor = date(int(args[0]), 1, 1)
                start, end = start_of_year(anchor), end_of_year(anchor)
                default_name = csv_filename_for_year(anchor)
            else:
                anchor = self._parse_month(args[0])
                start, end = start_of_month(anchor), end_of_month(anchor)
                default_name = csv_filename_for_month(anchor)
        except ValueError as e:
            print(f"Invalid input: {e}")
            return
        rows = export_rows_for_range(start, end)
        path = write_csv(args[1] if len(args) > 1 else default_name, rows)
        print(f"✓ Wrote {len(rows)} rows to {path}")

    def do_budgets(self, arg):
        """Saved budgets: budgets <list|save NAME|load ID|delete ID|rename ID NAME|overwrite ID>"""
        args = shlex.split(arg)
        action = args[0] if args else "list"
        try:
            if action == "list":
                saved = list_saved_budgets()
                if not saved:
                    print("No saved budgets")
                for meta in saved:
                    print(f"  {meta.id}. {meta.name} (saved {meta.saved_at})")
            elif action == "save":
                budget_id = save_budget_to_storage(" ".join(args[1:]))
                print(f"✓ Saved as budget {budget_id}")
            elif action == "load":
                load_budget_from_storage(args[1])
                print(f"✓ Loaded budget {args[1]}")
            elif action == "delete":
                delete_budget_from_storage(args[1])
                print(f"✓ Deleted budget {args[1]}")
            elif action == "rename":
                update_budget_in_storage(args[1], name=" ".join(args[2:]))
                print(f"✓ Renamed budget {args[1]}")
            elif action == "overwrite":
                update_budget_in_storage(args[1], data=export_budget_to_json())
                print(f"✓ Overwrote budget {args[1]} with the current budget")
            else:
                print(self.do_budgets.__doc__)
        except IndexError:
            print(self.do_budgets.__doc__)
        except BudgetError as e:
            print(f"Error: {e}")

    def do_reset(self, arg):
        """Start over: clears settings and entries (saved budgets are kept)"""
        clear_all_data()
        print("✓ Cleared current budget")

    # ===== UTILITIES =====
    def do_exit(self, arg):
        """Exit the program"""
        print("Goodbye!")
        return True

    # ===== HELPERS =====
    def _parse_date(self, arg):
        arg = arg.strip()
        if not arg:
            return self.today
        try:
            return date.fromisoformat(arg)
        except ValueError:
            raise ValueError("Date must be in YYYY-MM-DD format")

    def _parse_month(self, arg):
        if not arg:
            return start_of_month(self.today)
        try:
            return date.fromisoformat(f"{arg}-01")
        except ValueError:
            raise ValueError("Month must be in YYYY-MM format")

    def _parse_add_args(self, arg):
        """Parse add command arguments"""
        args = shlex.split(arg)
        if len(args) < 3:
            raise ValueError("Missing required arguments (kind, amount and name)")
        if args[0] not in KINDS:
            raise ValueError("Kind must be 'expense' or 'income'")

        amount = parse_currency_input(args[1])
        if amount <= 0:
            raise ValueError("Amount must be greater than zero")
        name = args[2].strip()
        if not name:
            raise ValueError("Name cannot be empty")

        rest = args[3:]
        start = self.today
        if rest and not rest[0].startswith("--"):
            start = self._parse_date(rest[0])
            rest = rest[1:]

        result = {
            "kind": args[0],
            "name": name,
            "amount": amount,
            "recurring": "none",
            "start_date": start,
        }
        result.update(self._parse_entry_options(rest, allow_name=False))
        if result["recurring"] == "none":
            result.pop("end_date", None)
        return result

    def _parse_entry_options(self, args, allow_name):
        options = {}
        flags = {
            "--recur": "recurring",
            "--date": "start_date",
            "--until": "end_date",
            "--category": "category",
            "--notes": "notes",
            "--amount": "amount",
        }
        if allow_name:
            flags["--name"] = "name"

        i = 0
        while i < len(args):
            if args[i] not in flags:
                raise ValueError(f"Unknown flag: {args[i]}")
            if i + 1 >= len(args):
                raise ValueError(f"Missing value after {args[i]}")
            field, value = flags[args[i]], args[i + 1]
            if field == "recurring" and value not in RECURRENCES:
                raise ValueError(f"Recurrence must be one of: {', '.join(RECURRENCES)}")
            if field in ("start_date", "end_date"):
                value = self._parse_date(value)
            elif field == "amount":
                value = parse_currency_input(value)
                if value <= 0:
                    raise ValueError("Amount must be greater than zero")
            options[field] = value
            i += 2
        return options


if __name__ == "__main__":
    BudgetCLI().cmdloop()
