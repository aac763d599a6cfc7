"""Testing helpers."""

from typing import Any

from flask import Flask

from ..services import datastore, events, mail


def create_test_app(**config: Any) -> Flask:
    """Create a bare application with an in-memory sqlite database."""
    app = Flask('useraccounts')
    app.config['SQLALCHEMY_DATABASE_URI'] = 'sqlite://'
    app.config['SQLALCHEMY_TRACK_MODIFICATIONS'] = False
    app.config.update(config)
    datastore.init_app(app)
    events.init_app(app)
    mail.init_app(app)
    return app

