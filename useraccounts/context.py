"""Helpers for getting at the application config and globals."""

import os
from typing import Any, Mapping, Optional

from flask import Flask, current_app, g, has_app_context


def get_application_config(app: Optional[Flask] = None) -> Mapping:
    """
    Get a configuration from the current app, or fall back to env.

    Parameters
    ----------
    app : :class:`flask.Flask`

    Returns
    -------
    dict-like
        This is either the current Flask application configuration, or
        ``os.environ``. Either of these should support the ``get()`` method.

    """
    if app is not None:
        return app.config
    if has_app_context():
        return current_app.config
    return os.environ


def get_application_global() -> Optional[Any]:
    """Get the current application global (``flask.g``), if available."""
    if has_app_context():
        return g
    return None


def get_flag(config: Mapping, key: str, default: bool = False) -> bool:
    """
    Read a boolean parameter from ``config``.

    Values set from the environment arrive as strings like ``'0'`` or
    ``'true'``; values set in application code are usually real booleans.
    """
    value = config.get(key, default)
    if isinstance(value, str):
        return value.strip().lower() in ('1', 'true', 'yes', 'on')
    return bool(value)
