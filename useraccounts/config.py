"""Flask configuration."""

import os

SECRET_KEY = os.environ.get('SECRET_KEY', 'asdf1234')
SERVER_NAME = os.environ.get('USERACCOUNTS_SERVER_NAME')

LOGFILE = os.environ.get('LOGFILE')
LOGLEVEL = os.environ.get('LOGLEVEL', 20)

REQUIRE_ACTIVATION = bool(int(os.environ.get('REQUIRE_ACTIVATION', '1')))
"""If 1, new accounts must be confirmed before they can be used."""

SQLALCHEMY_DATABASE_URI = os.environ.get('SQLALCHEMY_DATABASE_URI',
                                         'sqlite://')
SQLALCHEMY_TRACK_MODIFICATIONS = False
CREATE_DB = bool(int(os.environ.get('CREATE_DB', 0)))

JWT_SECRET = os.environ.get('JWT_SECRET')
"""Key for Bearer tokens. If not set, Bearer tokens are not accepted."""

REDIS_HOST = os.environ.get('REDIS_HOST', 'localhost')
REDIS_PORT = os.environ.get('REDIS_PORT', '6379')
REDIS_DATABASE = os.environ.get('REDIS_DATABASE', '0')
REDIS_TOKEN = os.environ.get('REDIS_TOKEN', None)
"""This is the token used in the AUTH procedure."""
REDIS_CLUSTER = os.environ.get('REDIS_CLUSTER', '0')
"""If 1, expects a redis cluster; otherwise expects a single redis node."""
REDIS_TIMEOUT = os.environ.get('REDIS_TIMEOUT', '1')
"""Seconds to wait on Redis before giving up on publishing an event."""

EVENTS_ENABLED = os.environ.get('EVENTS_ENABLED', '0')
"""If 1, events are published to Redis as well as logged."""
EVENTS_CHANNEL = os.environ.get('EVENTS_CHANNEL', 'useraccounts:events')

SMTP_HOST = os.environ.get('SMTP_HOST', 'localhost')
SMTP_PORT = os.environ.get('SMTP_PORT', '25')
MAIL_SENDER = os.environ.get('MAIL_SENDER', 'accounts@localhost')
BASE_URL = os.environ.get('BASE_URL', 'http://localhost:5000')
"""Used to build the links in outbound e-mail."""
