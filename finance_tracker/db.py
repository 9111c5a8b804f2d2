"""Database lifecycle helpers."""

from __future__ import annotations

from flask import Flask

from .models import db


def init_app(app: Flask) -> None:
    """Bind the SQLAlchemy extension to the app and make sure the schema exists."""
    db.init_app(app)
    with app.app_context():
        init_db()


def init_db(reset: bool = False) -> None:
    """Create all tables; with ``reset`` drop them first. Needs an app context."""
    if reset:
        db.drop_all()
    db.create_all()
