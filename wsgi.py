"""Web Server Gateway Interface entry-point."""

from useraccounts.factory import create_web_app
import os

__flask_app__ = create_web_app()


def application(environ, start_response):    # type: ignore
    """WSGI application."""
    for key, value in environ.items():
        # Container hostnames are not useful for building URLs; keep
        # ``SERVER_NAME`` as configured in config.py.
        if key == 'SERVER_NAME':
            continue
        if isinstance(value, str):
            os.environ[key] = value
            __flask_app__.config[key] = value
    return __flask_app__(environ, start_response)
