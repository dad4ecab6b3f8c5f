import unittest
import io
import json
import tempfile
from contextlib import redirect_stdout
from datetime import date, timedelta
from pathlib import Path

from budgetboi.currency import format_currency, parse_currency_input
from budgetboi.dates import end_of_month, parse_day, short_label
from budgetboi.errors import InvalidBudgetFileError, SavedBudgetNotFoundError
from budgetboi.export import csv_filename_for_month, csv_filename_for_year, rows_to_csv, write_csv
from budgetboi.logic import (
    add_expense, add_income, delete_expense, delete_income, get_expense_by_id,
    update_expense, update_income
)
from budgetboi.models import Expense, ExportRow, Payroll, Settings
from budgetboi.projection import (
    amount_spent_in_month, average_net_per_month, average_spent_per_month, balance_on_date,
    balance_series_for_month, export_rows_for_range, expense_count_on_date,
    expense_instances_in_range, has_expense_on_date, has_income_on_date, income_in_month,
    is_payroll_date, lowest_balance_in_month, monthly_income_budgeted, months_tracked_count,
    payroll_dates_in_range, savings_rate_for_month, spending_by_category_for_month,
    spending_by_name_for_month, total_income_from_start, total_spent_from_start
)
from budgetboi.recurrence import expand_entry, group_instances_by_entry, instances_in_range, payroll_dates
from budgetboi.registry import (
    delete_budget_from_storage, list_saved_budgets, load_budget_from_storage,
    migrate_legacy_ids, save_budget_to_storage, update_budget_in_storage
)
from budgetboi.snapshot import export_budget_to_json, import_budget_from_json
from budgetboi.storage import (
    EXPENSES_KEY, INCOME_KEY, SAVED_BUDGETS_KEY, SETTINGS_KEY, clear_all_data,
    get_budget_start_date, get_expenses, get_incomes, get_settings, get_store,
    save_settings, use_store
)
from budgetboi.store import JsonFileStore, MemoryStore
from budgetboi.cli import BudgetCLI


def make_expense(recurring="none", start=date(2025, 1, 1), end=None, amount=10.0, name="Coffee", **kw):
    return Expense(id=kw.pop("id", name.lower()), name=name, amount=amount, recurring=recurring,
                   start_date=start, end_date=end, **kw)


def scenario_settings(payroll=True):
    return Settings(
        initial_balance=1000.0,
        start_date=date(2025, 1, 1),
        payroll=Payroll(date(2025, 1, 3), "every2weeks", 500.0) if payroll else None,
    )


class StoreTestCase(unittest.TestCase):
    def setUp(self):
        """Give every test a fresh in-memory store"""
        self.previous_store = use_store(MemoryStore())

    def tearDown(self):
        use_store(self.previous_store)


class TestCurrency(unittest.TestCase):
    def test_parse_currency_input(self):
        self.assertEqual(parse_currency_input("$1,234.50"), 1234.5)
        self.assertEqual(parse_currency_input(" 42 "), 42.0)
        self.assertEqual(parse_currency_input("-$5"), -5.0)

    def test_parse_currency_input_invalid(self):
        """Unparseable input yields 0 and never raises"""
        for text in ("", "abc", "1.2.3", None, "$"):
            self.assertEqual(parse_currency_input(text), 0.0)

    def test_format_currency(self):
        self.assertEqual(format_currency(1234.5), "$1,234.50")
        self.assertEqual(format_currency(0), "$0.00")
        self.assertEqual(format_currency(-20), "-$20.00")
        self.assertEqual(format_currency(1000000), "$1,000,000.00")
        self.assertEqual(format_currency(-0.001), "$0.00")


class TestModels(unittest.TestCase):
    def test_settings_wire_format(self):
        data = scenario_settings().to_dict()
        self.assertEqual(data, {
            "initialBalance": 1000.0,
            "startDate": "2025-01-01",
            "payroll": {"firstDate": "2025-01-03", "frequency": "every2weeks", "amountPerPaycheck": 500.0},
        })
        self.assertEqual(Settings.from_dict(data), scenario_settings())

    def test_entry_optional_fields_omitted(self):
        data = make_expense().to_dict()
        self.assertNotIn("endDate", data)
        self.assertNotIn("category", data)
        self.assertNotIn("notes", data)

    def test_entry_rejects_unknown_recurrence(self):
        data = make_expense().to_dict()
        data["recurring"] = "yearly"
        with self.assertRaises(ValueError):
            Expense.from_dict(data)

    def test_parse_day_drops_time(self):
        self.assertEqual(parse_day("2025-03-04T23:59:00Z"), date(2025, 3, 4))
        self.assertEqual(parse_day("2025-03-04"), date(2025, 3, 4))


class TestRecurrence(unittest.TestCase):
    def test_weekly_count(self):
        """Weekly entry without end date has N+1 instances in [start, start + N weeks]"""
        start = date(2025, 1, 6)
        entry = make_expense("weekly", start)
        for n in (0, 1, 4, 52):
            instances = expand_entry(entry, start, start + timedelta(weeks=n))
            self.assertEqual(len(instances), n + 1)

    def test_end_date_is_respected(self):
        entry = make_expense("weekly", date(2025, 1, 1), end=date(2025, 1, 20))
        instances = expand_entry(entry, date(2024, 1, 1), date(2030, 1, 1))
        self.assertEqual([i.date for i in instances], [date(2025, 1, 1), date(2025, 1, 8), date(2025, 1, 15)])

    def test_end_date_inclusive(self):
        entry = make_expense("monthly", date(2025, 1, 10), end=date(2025, 3, 10))
        instances = expand_entry(entry, date(2025, 1, 1), date(2025, 12, 31))
        self.assertEqual(len(instances), 3)

    def test_one_off(self):
        entry = make_expense("none", date(2025, 2, 14))
        self.assertEqual(len(expand_entry(entry, date(2025, 2, 1), date(2025, 2, 28))), 1)
        self.assertEqual(len(expand_entry(entry, date(2025, 2, 14), date(2025, 2, 14))), 1)
        self.assertEqual(expand_entry(entry, date(2025, 2, 15), date(2025, 3, 1)), [])
        self.assertEqual(expand_entry(entry, date(2025, 1, 1), date(2025, 2, 13)), [])

    def test_window_after_start(self):
        """Only occurrences inside the window are produced"""
        entry = make_expense("weekly", date(2025, 1, 1))
        instances = expand_entry(entry, date(2025, 1, 10), date(2025, 1, 31))
        self.assertEqual([i.date.day for i in instances], [15, 22, 29])

    def test_monthly_month_end_clamps(self):
        entry = make_expense("monthly", date(2025, 1, 31))
        instances = expand_entry(entry, date(2025, 1, 1), date(2025, 4, 30))
        self.assertEqual([i.date for i in instances],
                         [date(2025, 1, 31), date(2025, 2, 28), date(2025, 3, 28), date(2025, 4, 28)])

    def test_instance_fields(self):
        entry = make_expense("none", date(2025, 1, 1), amount=12.5, name="Lunch", id="x1")
        instance = expand_entry(entry, date(2025, 1, 1), date(2025, 1, 1))[0]
        self.assertEqual(instance.entry_id, "x1")
        self.assertEqual(instance.name, "Lunch")
        self.assertEqual(instance.amount, 12.5)
        self.assertEqual(instance.kind, "expense")

    def test_combined_sorted_stable(self):
        a = make_expense("weekly", date(2025, 1, 8), name="A")
        b = make_expense("none", date(2025, 1, 1), name="B")
        c = make_expense("none", date(2025, 1, 8), name="C")
        instances = instances_in_range([a, b, c], date(2025, 1, 1), date(2025, 1, 8))
        self.assertEqual([i.name for i in instances], ["B", "A", "C"])

    def test_payroll_dates(self):
        payroll = Payroll(date(2025, 1, 3), "every2weeks", 500.0)
        dates = payroll_dates(payroll, date(2025, 1, 1), date(2025, 1, 31))
        self.assertEqual(dates, [date(2025, 1, 3), date(2025, 1, 17), date(2025, 1, 31)])

        monthly = Payroll(date(2025, 1, 15), "monthly", 3000.0)
        self.assertEqual(payroll_dates(monthly, date(2025, 2, 1), date(2025, 3, 31)),
                         [date(2025, 2, 15), date(2025, 3, 15)])
        self.assertEqual(payroll_dates(monthly, date(2024, 1, 1), date(2025, 1, 14)), [])
        self.assertEqual(payroll_dates(None, date(2024, 1, 1), date(2025, 1, 14)), [])

    def test_group_instances_by_entry(self):
        a = make_expense("weekly", date(2025, 1, 1), amount=5, name="A")
        b = make_expense("none", date(2025, 1, 2), amount=7, name="B")
        groups = group_instances_by_entry(instances_in_range([a, b], date(2025, 1, 1), date(2025, 1, 31)))
        self.assertEqual([(g.name, g.count, g.total) for g in groups], [("A", 5, 25), ("B", 1, 7)])


class TestEntries(StoreTestCase):
    def test_add_and_get(self):
        expense = add_expense("Rent", 1200.0, "monthly", date(2025, 1, 1), category="Housing")
        self.assertTrue(expense.id)
        self.assertEqual(get_expenses(), [expense])
        self.assertEqual(get_expense_by_id(expense.id).category, "Housing")

        income = add_income("Gift", 50.0, "none", date(2025, 2, 1))
        self.assertEqual(get_incomes(), [income])
        self.assertNotEqual(expense.id, add_expense("Rent", 1.0, "none", date(2025, 1, 1)).id)

    def test_update(self):
        expense = add_expense("Rent", 1200.0, "monthly", date(2025, 1, 1))
        updated = update_expense(expense.id, amount=1300.0, name="Rent (new)")
        self.assertEqual(updated.amount, 1300.0)
        self.assertEqual(updated.id, expense.id)
        self.assertEqual(get_expenses()[0].name, "Rent (new)")

    def test_update_missing_is_noop(self):
        add_income("Gift", 50.0, "none", date(2025, 2, 1))
        before = get_store().get(INCOME_KEY)
        self.assertIsNone(update_income("missing", amount=1.0))
        self.assertEqual(get_store().get(INCOME_KEY), before)

    def test_update_rejects_id_change(self):
        expense = add_expense("Rent", 1200.0, "monthly", date(2025, 1, 1))
        with self.assertRaises(TypeError):
            update_expense(expense.id, id="other")

    def test_delete(self):
        expense = add_expense("Rent", 1200.0, "monthly", date(2025, 1, 1))
        self.assertFalse(delete_expense("missing"))
        self.assertTrue(delete_expense(expense.id))
        self.assertEqual(get_expenses(), [])
        self.assertFalse(delete_income(expense.id))

    def test_rename_is_reflected_on_next_query(self):
        expense = add_expense("Rent", 1200.0, "monthly", date(2025, 1, 1))
        update_expense(expense.id, name="Mortgage")
        instances = expense_instances_in_range(date(2025, 1, 1), date(2025, 3, 31))
        self.assertEqual({i.name for i in instances}, {"Mortgage"})


class TestStorage(StoreTestCase):
    def test_corrupt_data_is_treated_as_absent(self):
        store = get_store()
        store.set(SETTINGS_KEY, "{not json")
        store.set(EXPENSES_KEY, "[oops")
        store.set(INCOME_KEY, json.dumps({"not": "a list"}))
        self.assertIsNone(get_settings())
        self.assertEqual(get_expenses(), [])
        self.assertEqual(get_incomes(), [])
        self.assertEqual(balance_on_date(date(2025, 1, 1)), 0)

    def test_invalid_entry_is_skipped(self):
        good = make_expense().to_dict()
        get_store().set(EXPENSES_KEY, json.dumps([{"id": "bad"}, good]))
        self.assertEqual([e.id for e in get_expenses()], [good["id"]])

    def test_budget_start_date(self):
        self.assertEqual(get_budget_start_date(), date(2025, 2, 16))
        save_settings(scenario_settings())
        self.assertEqual(get_budget_start_date(), date(2025, 1, 1))

    def test_clear_all_data_keeps_saved_budgets(self):
        save_settings(scenario_settings())
        add_expense("Rent", 1200.0, "monthly", date(2025, 1, 1))
        save_budget_to_storage("Keep me")
        clear_all_data()
        self.assertIsNone(get_settings())
        self.assertEqual(get_expenses(), [])
        self.assertEqual(len(list_saved_budgets()), 1)

    def test_json_file_store(self):
        with tempfile.TemporaryDirectory() as tmp:
            store = JsonFileStore(Path(tmp) / "data")
            self.assertIsNone(store.get("missing"))
            store.set("settings", '{"a": 1}')
            self.assertEqual(store.get("settings"), '{"a": 1}')
            self.assertEqual(store.keys(), ["settings"])
            store.remove("settings")
            store.remove("settings")
            self.assertIsNone(store.get("settings"))

    def test_file_store_backs_storage(self):
        with tempfile.TemporaryDirectory() as tmp:
            use_store(JsonFileStore(tmp))
            save_settings(scenario_settings())
            self.assertTrue((Path(tmp) / f"{SETTINGS_KEY}.json").exists())
            self.assertEqual(get_settings(), scenario_settings())


class TestProjection(StoreTestCase):
    def setUp(self):
        super().setUp()
        save_settings(scenario_settings())
        self.rent = add_expense("Rent", 200.0, "monthly", date(2025, 1, 5), category="Housing")

    def test_scenario_balance(self):
        """1000 + 500 (payroll 01-03) - 200 (expense 01-05)"""
        self.assertEqual(balance_on_date(date(2025, 1, 10)), 1300.0)

    def test_balance_on_start_date(self):
        self.assertEqual(balance_on_date(date(2025, 1, 1)), 1000.0)

    def test_balance_before_start_and_without_settings(self):
        self.assertEqual(balance_on_date(date(2024, 12, 31)), 0)
        clear_all_data()
        self.assertEqual(balance_on_date(date(2025, 1, 10)), 0)

    def test_balance_is_inclusive(self):
        self.assertEqual(balance_on_date(date(2025, 1, 3)), 1500.0)
        self.assertEqual(balance_on_date(date(2025, 1, 5)), 1300.0)

    def test_entries_before_start_are_ignored(self):
        add_expense("Old", 99.0, "none", date(2024, 12, 1))
        self.assertEqual(balance_on_date(date(2025, 1, 2)), 1000.0)

    def test_balance_monotonic_in_income_and_expenses(self):
        day = date(2025, 3, 1)
        base = balance_on_date(day)
        add_income("Bonus", 100.0, "none", date(2025, 2, 1))
        with_income = balance_on_date(day)
        self.assertGreaterEqual(with_income, base)
        add_expense("Car", 50.0, "weekly", date(2025, 2, 1))
        self.assertLessEqual(balance_on_date(day), with_income)

    def test_monthly_income_budgeted(self):
        self.assertAlmostEqual(monthly_income_budgeted(), 500.0 * 26 / 12)
        settings = get_settings()
        settings.payroll.frequency = "monthly"
        save_settings(settings)
        self.assertEqual(monthly_income_budgeted(), 500.0)
        settings.payroll = None
        save_settings(settings)
        self.assertEqual(monthly_income_budgeted(), 0)

    def test_month_sums(self):
        add_income("Gift", 50.0, "none", date(2025, 1, 20))
        self.assertEqual(amount_spent_in_month(date(2025, 1, 15)), 200.0)
        self.assertEqual(income_in_month(date(2025, 1, 15)), 1550.0)
        self.assertEqual(income_in_month(date(2025, 2, 1)), 1000.0)

    def test_lowest_balance_in_month(self):
        self.assertEqual(lowest_balance_in_month(date(2025, 1, 1)), 1000.0)
        self.assertEqual(lowest_balance_in_month(date(2025, 2, 10)), 2100.0)
        self.assertEqual(lowest_balance_in_month(date(2024, 12, 1)), 0)

    def test_balance_series_for_month(self):
        series = balance_series_for_month(date(2025, 1, 20))
        self.assertEqual(len(series), 31)
        self.assertEqual(series[0], ("Jan 1", 1000.0))
        self.assertEqual(series[4], ("Jan 5", 1300.0))
        self.assertEqual(balance_series_for_month(date(2024, 12, 1)), [])

    def test_balance_series_starts_at_budget_start(self):
        settings = get_settings()
        settings.start_date = date(2025, 1, 15)
        save_settings(settings)
        series = balance_series_for_month(date(2025, 1, 1))
        self.assertEqual(len(series), 17)
        self.assertEqual(series[0][0], "Jan 15")

    def test_totals_from_start(self):
        through = date(2025, 3, 15)
        self.assertEqual(months_tracked_count(through), 3)
        self.assertEqual(total_spent_from_start(through), 600.0)
        self.assertEqual(total_income_from_start(through), 3500.0)
        self.assertAlmostEqual(average_net_per_month(through), (3500.0 - 600.0) / 3)
        self.assertAlmostEqual(average_spent_per_month(through), 200.0)

    def test_totals_before_start(self):
        before = date(2024, 12, 31)
        self.assertEqual(months_tracked_count(before), 0)
        self.assertEqual(total_spent_from_start(before), 0)
        self.assertEqual(total_income_from_start(before), 0)
        self.assertEqual(average_net_per_month(before), 0)

    def test_savings_rate(self):
        self.assertAlmostEqual(savings_rate_for_month(date(2025, 1, 1)), (1500.0 - 200.0) / 1500.0 * 100)

    def test_savings_rate_none_without_income(self):
        settings = get_settings()
        settings.payroll = None
        save_settings(settings)
        add_expense("Big", 5000.0, "none", date(2025, 1, 2))
        self.assertIsNone(savings_rate_for_month(date(2025, 1, 1)))

    def test_spending_breakdowns(self):
        add_expense("Coffee", 5.0, "weekly", date(2025, 1, 1))
        add_expense("Snacks", 10.0, "none", date(2025, 1, 2), category="  ")
        by_name = spending_by_name_for_month(date(2025, 1, 1))
        self.assertEqual(by_name, [("Rent", 200.0), ("Coffee", 25.0), ("Snacks", 10.0)])
        by_category = spending_by_category_for_month(date(2025, 1, 1))
        self.assertEqual(by_category, [("Housing", 200.0), ("Uncategorized", 35.0)])

    def test_export_rows_for_range(self):
        add_income("Gift", 50.0, "none", date(2025, 1, 5))
        rows = export_rows_for_range(date(2025, 1, 1), date(2025, 1, 10))
        self.assertEqual(rows, [
            ExportRow(date(2025, 1, 3), "Payroll", "Payroll", 500.0),
            ExportRow(date(2025, 1, 5), "Rent", "Expense", 200.0),
            ExportRow(date(2025, 1, 5), "Gift", "Income", 50.0),
        ])

    def test_calendar_queries(self):
        add_income("Gift", 50.0, "none", date(2025, 1, 6))
        self.assertTrue(has_expense_on_date(date(2025, 2, 5)))
        self.assertFalse(has_expense_on_date(date(2025, 2, 6)))
        self.assertEqual(expense_count_on_date(date(2025, 1, 5)), 1)
        self.assertTrue(has_income_on_date(date(2025, 1, 6)))
        self.assertTrue(is_payroll_date(date(2025, 1, 17)))
        self.assertFalse(is_payroll_date(date(2025, 1, 18)))
        self.assertEqual(len(payroll_dates_in_range(date(2025, 1, 1), end_of_month(date(2025, 1, 1)))), 3)


class TestSnapshot(StoreTestCase):
    def setUp(self):
        super().setUp()
        save_settings(scenario_settings())
        add_expense("Rent", 200.0, "monthly", date(2025, 1, 5), end_date=date(2025, 12, 5), notes="lease")
        add_income("Gift", 50.0, "none", date(2025, 1, 5), category="Family")

    def test_export_document(self):
        doc = json.loads(export_budget_to_json())
        self.assertEqual(doc["version"], 1)
        self.assertEqual(doc["settings"]["initialBalance"], 1000.0)
        self.assertEqual(len(doc["expenses"]), 1)
        self.assertEqual(len(doc["incomes"]), 1)

    def test_round_trip(self):
        before = (get_settings(), get_expenses(), get_incomes())
        import_budget_from_json(export_budget_to_json())
        self.assertEqual((get_settings(), get_expenses(), get_incomes()), before)

    def test_import_replaces_everything(self):
        doc = {"version": 1, "settings": {"initialBalance": 5, "startDate": "2026-01-01", "payroll": None}}
        import_budget_from_json(json.dumps(doc))
        self.assertEqual(get_settings().initial_balance, 5.0)
        self.assertIsNone(get_settings().payroll)
        self.assertEqual(get_expenses(), [])
        self.assertEqual(get_incomes(), [])

    def test_rejected_documents_leave_state_untouched(self):
        store = get_store()
        before = {key: store.get(key) for key in (SETTINGS_KEY, EXPENSES_KEY, INCOME_KEY)}
        settings = scenario_settings().to_dict()
        bad_documents = [
            "not json",
            "[]",
            json.dumps({"version": 2, "settings": settings}),
            json.dumps({"version": True, "settings": settings}),
            json.dumps({"settings": settings}),
            json.dumps({"version": 1, "settings": None}),
            json.dumps({"version": 1}),
            json.dumps({"version": 1, "settings": {"startDate": "2025-01-01"}}),
        ]
        for text in bad_documents:
            with self.assertRaises(InvalidBudgetFileError):
                import_budget_from_json(text)
        self.assertEqual({key: store.get(key) for key in before}, before)

    def test_invalid_entries_are_skipped_on_import(self):
        rent = make_expense("monthly", amount=200.0, name="Rent").to_dict()
        doc = {
            "version": 1,
            "settings": scenario_settings().to_dict(),
            "expenses": [rent, {"id": "x"}, dict(rent, id="yearly", recurring="yearly")],
            "incomes": "not a list",
        }
        with self.assertLogs("budgetboi.storage", level="WARNING"):
            import_budget_from_json(json.dumps(doc))
        self.assertEqual([e.id for e in get_expenses()], ["rent"])
        self.assertEqual(get_incomes(), [])
        self.assertEqual(get_settings(), scenario_settings())

    def test_error_message(self):
        with self.assertRaises(InvalidBudgetFileError) as ctx:
            import_budget_from_json("{}")
        self.assertEqual(str(ctx.exception), "Invalid budget file")
        self.assertIsInstance(ctx.exception, ValueError)


class TestRegistry(StoreTestCase):
    def setUp(self):
        super().setUp()
        save_settings(scenario_settings())

    def test_save_and_list(self):
        self.assertEqual(list_saved_budgets(), [])
        self.assertEqual(save_budget_to_storage("First"), "1")
        self.assertEqual(save_budget_to_storage("Second"), "2")
        saved = list_saved_budgets()
        self.assertEqual([(m.id, m.name) for m in saved], [("1", "First"), ("2", "Second")])
        self.assertFalse(hasattr(saved[0], "data"))
        self.assertTrue(saved[0].saved_at.endswith("Z"))

    def test_blank_name_gets_default(self):
        save_budget_to_storage("   ")
        meta = list_saved_budgets()[0]
        self.assertEqual(meta.name, f"Budget {meta.saved_at[:10]}")

    def test_next_id_follows_maximum(self):
        save_budget_to_storage("a")
        save_budget_to_storage("b")
        save_budget_to_storage("c")
        delete_budget_from_storage("2")
        self.assertEqual(save_budget_to_storage("d"), "4")

    def test_save_snapshots_live_state_and_load_restores(self):
        add_expense("Rent", 200.0, "monthly", date(2025, 1, 5))
        budget_id = save_budget_to_storage("With rent")
        clear_all_data()
        load_budget_from_storage(budget_id)
        self.assertEqual(get_settings(), scenario_settings())
        self.assertEqual([e.name for e in get_expenses()], ["Rent"])

    def test_load_missing(self):
        with self.assertRaises(SavedBudgetNotFoundError):
            load_budget_from_storage("42")

    def test_delete_missing_keeps_order(self):
        for name in ("a", "b", "c"):
            save_budget_to_storage(name)
        before = list_saved_budgets()
        delete_budget_from_storage("99")
        self.assertEqual(list_saved_budgets(), before)
        delete_budget_from_storage("2")
        self.assertEqual([m.id for m in list_saved_budgets()], ["1", "3"])

    def test_update(self):
        budget_id = save_budget_to_storage("Old")
        update_budget_in_storage(budget_id, name="New")
        self.assertEqual(list_saved_budgets()[0].name, "New")

        save_settings(Settings(initial_balance=1.0, start_date=date(2026, 1, 1)))
        update_budget_in_storage(budget_id, data=export_budget_to_json())
        clear_all_data()
        load_budget_from_storage(budget_id)
        self.assertEqual(get_settings().initial_balance, 1.0)
        self.assertEqual(list_saved_budgets()[0].name, "New")

        update_budget_in_storage("missing", name="Nope")
        self.assertEqual([m.name for m in list_saved_budgets()], ["New"])

    def test_legacy_ids_are_renumbered_by_saved_at(self):
        legacy = [
            {"id": "9b2d1f0e-1c2d-4e5f-8a9b-0c1d2e3f4a5b", "name": "Later",
             "savedAt": "2025-03-01T10:00:00.000Z", "data": "{}"},
            {"id": "1f0e9b2d-4e5f-1c2d-0c1d-8a9b2e3f4a5b", "name": "Earlier",
             "savedAt": "2025-01-01T10:00:00.000Z", "data": "{}"},
        ]
        get_store().set(SAVED_BUDGETS_KEY, json.dumps(legacy))
        saved = list_saved_budgets()
        self.assertEqual([(m.id, m.name) for m in saved], [("1", "Earlier"), ("2", "Later")])

        persisted = json.loads(get_store().get(SAVED_BUDGETS_KEY))
        self.assertEqual([e["id"] for e in persisted], ["1", "2"])
        self.assertEqual(list_saved_budgets(), saved)
        self.assertEqual(save_budget_to_storage("Next"), "3")

    def test_migration_is_idempotent(self):
        save_budget_to_storage("a")
        save_budget_to_storage("b")
        raw = get_store().get(SAVED_BUDGETS_KEY)
        list_saved_budgets()
        self.assertEqual(get_store().get(SAVED_BUDGETS_KEY), raw)
        entries = list_saved_budgets()
        self.assertIs(migrate_legacy_ids(entries), entries)

    def test_corrupt_registry(self):
        get_store().set(SAVED_BUDGETS_KEY, "[{broken")
        self.assertEqual(list_saved_budgets(), [])
        self.assertEqual(save_budget_to_storage("fresh"), "1")

    def test_unreadable_rows_do_not_wipe_registry(self):
        rows = [
            {"id": "1", "name": "A", "savedAt": "2025-01-01T00:00:00.000Z", "data": "{}"},
            {"id": "2", "name": "B", "savedAt": "2025-02-01T00:00:00.000Z"},
            {"name": "no id"},
            "junk",
        ]
        get_store().set(SAVED_BUDGETS_KEY, json.dumps(rows))
        with self.assertLogs("budgetboi.registry", level="WARNING"):
            self.assertEqual(save_budget_to_storage("C"), "3")
        persisted = json.loads(get_store().get(SAVED_BUDGETS_KEY))
        self.assertEqual([e["name"] for e in persisted], ["A", "B", "C"])
        self.assertEqual(persisted[1]["data"], "")

    def test_legacy_entry_with_bad_saved_at_sorts_last(self):
        legacy = [
            {"id": "9b2d1f0e-1c2d-4e5f-8a9b-0c1d2e3f4a5b", "name": "Undated", "savedAt": "", "data": "{}"},
            {"id": "1f0e9b2d-4e5f-1c2d-0c1d-8a9b2e3f4a5b", "name": "Dated",
             "savedAt": "2025-01-01T10:00:00.000Z", "data": "{}"},
        ]
        get_store().set(SAVED_BUDGETS_KEY, json.dumps(legacy))
        saved = list_saved_budgets()
        self.assertEqual([(m.id, m.name) for m in saved], [("1", "Dated"), ("2", "Undated")])


class TestCsvExport(unittest.TestCase):
    def test_rows_to_csv(self):
        rows = [
            ExportRow(date(2025, 1, 3), "Payroll", "Payroll", 500.0),
            ExportRow(date(2025, 1, 5), 'Rent, "big"', "Expense", 200.5),
            ExportRow(date(2025, 1, 6), "Line\nbreak", "Income", 12.0),
        ]
        self.assertEqual(rows_to_csv(rows), (
            "Date,Name,Type,Amount\n"
            "2025-01-03,Payroll,Payroll,500\n"
            '2025-01-05,"Rent, ""big""",Expense,200.5\n'
            '2025-01-06,"Line\nbreak",Income,12\n'
        ))

    def test_empty(self):
        self.assertEqual(rows_to_csv([]), "Date,Name,Type,Amount\n")

    def test_write_csv_and_names(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = write_csv(Path(tmp) / "out.csv", [ExportRow(date(2025, 1, 3), "Payroll", "Payroll", 500.0)])
            self.assertTrue(path.read_text(encoding="utf-8").startswith("Date,Name,Type,Amount"))
        self.assertEqual(csv_filename_for_month(date(2025, 3, 9)), "budget-2025-03.csv")
        self.assertEqual(csv_filename_for_year(date(2025, 3, 9)), "budget-2025.csv")
        self.assertEqual(short_label(date(2025, 3, 9)), "Mar 9")


class TestCLI(StoreTestCase):
    def run_command(self, cli, line):
        out = io.StringIO()
        with redirect_stdout(out):
            cli.onecmd(line)
        return out.getvalue()

    def test_scenario_through_commands(self):
        cli = BudgetCLI(today=date(2025, 1, 10))
        self.run_command(cli, "setup $1,000 2025-01-01")
        self.run_command(cli, "payroll 2025-01-03 every2weeks 500")
        output = self.run_command(cli, "add expense 200 Rent 2025-01-05 --recur monthly --category Housing")
        self.assertIn("Added expense 'Rent'", output)
        self.assertIn("$1,300.00", self.run_command(cli, "balance"))
        self.assertIn("Housing", self.run_command(cli, "month 2025-01 --categories"))

    def test_invalid_input_is_reported(self):
        cli = BudgetCLI(today=date(2025, 1, 10))
        self.assertIn("Invalid input", self.run_command(cli, "add expense 0 Rent"))
        self.assertIn("Invalid input", self.run_command(cli, "balance 01/10/2025"))
        self.assertEqual(get_expenses(), [])

    def test_budgets_commands(self):
        cli = BudgetCLI(today=date(2025, 1, 10))
        self.run_command(cli, "setup 100 2025-01-01")
        self.assertIn("budget 1", self.run_command(cli, "budgets save My plan"))
        self.assertIn("My plan", self.run_command(cli, "budgets list"))
        self.assertIn("Saved budget not found", self.run_command(cli, "budgets load 7"))

    def test_export_to_missing_directory_is_reported(self):
        cli = BudgetCLI(today=date(2025, 1, 10))
        self.run_command(cli, "setup 100 2025-01-01")
        with tempfile.TemporaryDirectory() as tmp:
            target = Path(tmp) / "missing" / "budget.json"
            self.assertIn("Error:", self.run_command(cli, f"export {target}"))
            self.assertFalse(target.exists())


if __name__ == "__main__":
    unittest.main()
