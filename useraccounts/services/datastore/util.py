"""Helpers and Flask application integration."""

from contextlib import contextmanager
from datetime import datetime
from typing import Generator, Optional

from flask import Flask
from pytz import UTC
from sqlalchemy.orm.session import Session

from ...context import get_application_config
from ...logging import getLogger
from .models import db

logger = getLogger(__name__)


def now() -> datetime:
    """Get the current time, in UTC."""
    return datetime.now(tz=UTC)


@contextmanager
def transaction() -> Generator[Session, None, None]:
    """Context manager for database transaction."""
    try:
        yield db.session
        db.session.commit()
    except Exception as e:
        logger.debug('Transaction failed, rolling back: %s', e)
        db.session.rollback()
        raise


def init_app(app: Optional[Flask]) -> None:
    """Set configuration defaults and attach session to the application."""
    config = get_application_config(app)
    config.setdefault('SQLALCHEMY_DATABASE_URI', 'sqlite://')
    config.setdefault('SQLALCHEMY_TRACK_MODIFICATIONS', False)
    db.init_app(app)


def create_all() -> None:
    """Create all tables in the database."""
    db.create_all()


def drop_all() -> None:
    """Drop all tables in the database."""
    db.drop_all()
