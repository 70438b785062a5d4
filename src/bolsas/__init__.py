"""bolsas: accounts, budgets and automatic Maaser allocation from the command line."""

__version__ = "0.1.0"


def __getattr__(name):
    # bolsas.cli imports the domain package, so main is resolved on first access
    if name == "main":
        from bolsas.cli.main import main

        return main
    raise AttributeError(f"module '{__name__}' has no attribute '{name}'")
