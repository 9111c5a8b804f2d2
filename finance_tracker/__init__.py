"""Finance Tracker package."""

__all__ = [
    "config",
    "models",
    "auth",
    "categories",
    "ledger",
    "savings",
    "goals",
    "profile",
    "admin",
    "analytics",
    "reports",
    "webapp",
    "db",
]

__version__ = "0.1.0"
