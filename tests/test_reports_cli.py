"""Tests for report formatting, configuration loading and the command line."""

import datetime as dt
import json
from decimal import Decimal

import pytest

from conftest import Txn
from finance_tracker import auth, cli, ledger
from finance_tracker.config import AppConfig
from finance_tracker.reports import build_planned_report, build_summary, format_text_report, save_json
from finance_tracker.webapp import create_app


class Cat:
    def __init__(self, id, name, color="#FF8A65", icon="Utensils"):
        self.id, self.name, self.color, self.icon = id, name, color, icon


TXNS = [
    Txn("income", Decimal("2000"), dt.date(2024, 1, 15), category_id=2, id=1),
    Txn("expense", Decimal("450.25"), dt.date(2024, 1, 20), category_id=1, id=2),
    Txn("expense", Decimal("99.75"), dt.date(2024, 2, 2), category_id=9, id=3),
]


class TestReports:
    def test_summary_shape(self):
        summary = build_summary(TXNS, categories=[Cat(1, "Продукты"), Cat(2, "Зарплата")])
        assert summary["totals"] == {"income": 2000.0, "expense": 550.0, "balance": 1450.0}
        assert summary["period"] == {"from": None, "to": None}
        assert [r["categoryName"] for r in summary["expensesByCategory"]] == ["Продукты", "Unknown"]
        assert summary["monthly"]["2024-02"]["net"] == -99.75
        assert summary["balanceHistory"][-1] == {"date": "2024-02-02", "balance": 1450.0}
        json.dumps(summary)

    def test_planned_report_skips_unplanned_categories(self):
        class P:
            def __init__(self, amount, date, category_id):
                self.amount, self.date, self.category_id = Decimal(amount), date, category_id

        report = build_planned_report(
            [P("500", dt.date(2024, 1, 3), 1), P("10", dt.date(2024, 2, 3), 2)], TXNS, [Cat(1, "Продукты")], 2024, 1
        )
        assert len(report["categories"]) == 1
        row = report["categories"][0]
        assert row["spentAmount"] == 450.25
        assert row["over"] is False

    def test_text_report(self, tmp_path):
        summary = build_summary(TXNS, categories=[Cat(1, "Продукты")])
        text = format_text_report(summary)
        assert "=== Finance Summary ===" in text
        assert "Balance: 1450.00" in text
        assert "-- Monthly Totals --" in text

        out = tmp_path / "nested" / "summary.json"
        save_json(summary, out)
        assert json.loads(out.read_text(encoding="utf-8"))["totals"]["balance"] == 1450.0


class TestConfig:
    def test_json_then_env(self, tmp_path, monkeypatch):
        path = tmp_path / "config.json"
        path.write_text(
            json.dumps(
                {
                    "admin_login": "root",
                    "token_max_age": 60,
                    "default_categories": [{"name": "Food", "color": "#fff", "icon": "Utensils"}],
                }
            ),
            encoding="utf-8",
        )
        monkeypatch.setenv("FINANCE_TRACKER_ALLOW_FUTURE_TRANSACTIONS", "true")
        monkeypatch.setenv("FINANCE_TRACKER_ADMIN_LOGIN", "boss")
        cfg = AppConfig.load(path)
        assert cfg.admin_login == "boss"
        assert cfg.token_max_age == 60
        assert cfg.allow_future_transactions is True
        assert [c.name for c in cfg.default_categories] == ["Food"]

    def test_missing_file_uses_defaults(self, tmp_path):
        cfg = AppConfig.load(tmp_path / "absent.json")
        assert cfg.admin_login == "admin"
        assert len(cfg.default_categories) == 8


class TestCli:
    @pytest.fixture
    def config_path(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text(
            json.dumps({"database_uri": f"sqlite:///{tmp_path / 'cli.db'}", "log_level": "WARNING"}),
            encoding="utf-8",
        )
        return str(path)

    def test_init_db(self, config_path, capsys):
        assert cli.main(["--config", config_path, "init-db"]) == 0
        assert "Database initialized." in capsys.readouterr().out

    def test_summary(self, config_path, tmp_path, capsys):
        app = create_app(config_path=config_path)
        with app.app_context():
            user = auth.register_user("alice", "secret123")
            food = user.categories[0].id
            ledger.create_transaction(
                user.id, {"type": "expense", "amount": "42.50", "date": "2024-03-01", "categoryId": food}
            )

        out = tmp_path / "summary.json"
        code = cli.main(["--config", config_path, "summary", "--login", "alice", "--json", str(out)])
        assert code == 0
        printed = capsys.readouterr().out
        assert "Expense: 42.50" in printed
        assert json.loads(out.read_text(encoding="utf-8"))["transactionCount"] == 1

    def test_summary_unknown_login(self, config_path, capsys):
        assert cli.main(["--config", config_path, "summary", "--login", "ghost"]) == 1
        assert "No user with login 'ghost'" in capsys.readouterr().out
