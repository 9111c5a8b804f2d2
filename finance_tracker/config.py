"""Configuration utilities for the Finance Tracker.

Provides the starter category set created for every new account and helpers
to load application settings from a JSON file and the environment.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

PACKAGE_ROOT = Path(__file__).resolve().parent
PROJECT_ROOT = PACKAGE_ROOT.parent

ENV_PREFIX = "FINANCE_TRACKER_"
SEVEN_DAYS = 7 * 24 * 60 * 60


@dataclass
class CategorySeed:
    name: str
    color: str
    icon: str


# Categories every account starts with. Icons are symbolic names resolved by the client.
DEFAULT_CATEGORIES: List[CategorySeed] = [
    CategorySeed("Продукты", "#FF8A65", "Utensils"),
    CategorySeed("Транспорт", "#64B5F6", "Car"),
    CategorySeed("Развлечения", "#BA68C8", "Film"),
    CategorySeed("Здоровье", "#81C784", "Hospital"),
    CategorySeed("Одежда", "#FFB74D", "Shirt"),
    CategorySeed("Жилье", "#90CAF9", "Home"),
    CategorySeed("Зарплата", "#66BB6A", "Wallet"),
    CategorySeed("Другое", "#90A4AE", "Package"),
]


def _as_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in {"1", "true", "yes", "on"}


@dataclass
class AppConfig:
    secret_key: str = "dev-secret-key-change-me"
    database_uri: str = f"sqlite:///{PROJECT_ROOT / 'finance_tracker.db'}"
    token_max_age: int = SEVEN_DAYS
    admin_login: str = "admin"
    allow_future_transactions: bool = False
    log_level: str = "INFO"
    default_categories: List[CategorySeed] = field(default_factory=lambda: list(DEFAULT_CATEGORIES))

    @staticmethod
    def load(config_path: Optional[str | Path] = None) -> "AppConfig":
        """Load config from JSON if provided, then apply environment overrides.

        JSON format:
        {
          "secret_key": "...",
          "database_uri": "sqlite:///finance.db",
          "token_max_age": 604800,
          "admin_login": "admin",
          "allow_future_transactions": false,
          "log_level": "INFO",
          "default_categories": [{"name": "Food", "color": "#FF8A65", "icon": "Utensils"}]
        }
        """

        cfg = AppConfig()

        if config_path:
            p = Path(config_path)
            if p.exists():
                with p.open("r", encoding="utf-8") as f:
                    raw = json.load(f)
                if isinstance(raw, dict):
                    cfg._apply(raw)

        env: Dict[str, Any] = {}
        for key in ("secret_key", "database_uri", "token_max_age", "admin_login",
                    "allow_future_transactions", "log_level"):
            value = os.environ.get(ENV_PREFIX + key.upper())
            if value not in (None, ""):
                env[key] = value
        cfg._apply(env)
        return cfg

    def _apply(self, raw: Dict[str, Any]) -> None:
        if raw.get("secret_key"):
            self.secret_key = str(raw["secret_key"])
        if raw.get("database_uri"):
            self.database_uri = str(raw["database_uri"])
        if raw.get("token_max_age") is not None:
            self.token_max_age = int(raw["token_max_age"])
        if raw.get("admin_login"):
            self.admin_login = str(raw["admin_login"])
        if raw.get("allow_future_transactions") is not None:
            self.allow_future_transactions = _as_bool(raw["allow_future_transactions"])
        if raw.get("log_level"):
            self.log_level = str(raw["log_level"]).upper()
        if isinstance(raw.get("default_categories"), list):
            self.default_categories = [
                CategorySeed(name=str(c["name"]), color=str(c["color"]), icon=str(c["icon"]))
                for c in raw["default_categories"]
                if isinstance(c, dict) and {"name", "color", "icon"} <= c.keys()
            ]

    def to_flask(self) -> Dict[str, Any]:
        return {
            "SECRET_KEY": self.secret_key,
            "SQLALCHEMY_DATABASE_URI": self.database_uri,
            "SQLALCHEMY_TRACK_MODIFICATIONS": False,
            "TOKEN_MAX_AGE": self.token_max_age,
            "ADMIN_LOGIN": self.admin_login,
            "ALLOW_FUTURE_TRANSACTIONS": self.allow_future_transactions,
            "LOG_LEVEL": self.log_level,
            "DEFAULT_CATEGORIES": list(self.default_categories),
        }
