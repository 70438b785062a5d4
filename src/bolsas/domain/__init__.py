"""Domain layer for bolsas application."""

# Services are imported lazily: the database layer imports domain entities,
# and the services import the database layer.
_SERVICES = {
    "TransactionService": "bolsas.domain.transaction",
    "AccountService": "bolsas.domain.account",
    "MaaserAccountResolver": "bolsas.domain.account",
    "CategoryService": "bolsas.domain.category",
    "BudgetService": "bolsas.domain.budget",
    "RecurringService": "bolsas.domain.recurring",
    "SummaryService": "bolsas.domain.summary",
}

__all__ = list(_SERVICES)


def __getattr__(name):
    if name in _SERVICES:
        from importlib import import_module

        return getattr(import_module(_SERVICES[name]), name)
    raise AttributeError(f"module '{__name__}' has no attribute '{name}'")
