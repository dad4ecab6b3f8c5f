import logging

from budgetboi.cli import BudgetCLI
from budgetboi.config import DATA_DIR, LOG_LEVEL
from budgetboi.storage import use_store
from budgetboi.store import JsonFileStore


def main():
    logging.basicConfig(level=LOG_LEVEL, format="%(levelname)s %(name)s: %(message)s")
    use_store(JsonFileStore(DATA_DIR))
    BudgetCLI().cmdloop()


if __name__ == "__main__":
    main()
