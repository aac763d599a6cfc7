"""
Event sink for observability.

Every successful operation on a user record is reported as an event. Events
are always written to the service log; if ``EVENTS_ENABLED`` is set, they are
also published as JSON to a Redis channel so that other services can follow
along.

Emitting an event is fire-and-forget. A failure to log or publish is itself
logged, and never interrupts the operation that produced the event.
"""

import json
import logging
from datetime import datetime
from typing import Any, Mapping, Optional

import redis
from pytz import UTC

from ..context import get_application_config, get_application_global, \
    get_flag
from ..logging import getLogger

logger = getLogger(__name__)

LEVELS = {
    'debug': logging.DEBUG,
    'info': logging.INFO,
    'warning': logging.WARNING,
    'error': logging.ERROR,
}


class EventSink(object):
    """
    Reports events to the log and, optionally, to a Redis channel.

    The StrictRedis instance is thread safe and connections are attached at
    the time a command is executed, so a single sink can be shared.
    """

    def __init__(self, channel: str = 'useraccounts:events',
                 connection: Optional[Any] = None) -> None:
        """Set the channel and (optional) Redis connection."""
        self._channel = channel
        self.r = connection

    def emit(self, kind: str, level: str, payload: Mapping[str, Any]) -> None:
        """
        Report an event.

        Parameters
        ----------
        kind : str
            E.g. ``user::create``.
        level : str
            One of ``debug``, ``info``, ``warning``, ``error``.
        payload : dict
            JSON-serializable data about the affected record.

        """
        try:
            message = json.dumps({
                'kind': kind,
                'level': level,
                'payload': payload,
                'timestamp': datetime.now(tz=UTC).isoformat()
            })
            logger.log(LEVELS.get(level, logging.INFO), '%s %s', kind,
                       json.dumps(payload))
            if self.r is not None:
                self.r.publish(self._channel, message)
        except Exception as e:
            logger.error('Failed to emit event %s: %s', kind, e)


def init_app(app: object = None) -> None:
    """Set default configuration parameters for an application instance."""
    config = get_application_config(app)
    config.setdefault('EVENTS_ENABLED', False)
    config.setdefault('EVENTS_CHANNEL', 'useraccounts:events')
    config.setdefault('REDIS_HOST', 'localhost')
    config.setdefault('REDIS_PORT', '6379')
    config.setdefault('REDIS_DATABASE', '0')
    config.setdefault('REDIS_TOKEN', None)
    config.setdefault('REDIS_CLUSTER', '0')
    config.setdefault('REDIS_TIMEOUT', '1')


def _connect(config: Mapping) -> Optional[Any]:
    host = config.get('REDIS_HOST', 'localhost')
    port = int(config.get('REDIS_PORT', '6379'))
    token = config.get('REDIS_TOKEN', None)
    timeout = float(config.get('REDIS_TIMEOUT', '1'))
    logger.debug('New Redis connection at %s, port %s', host, port)
    if get_flag(config, 'REDIS_CLUSTER', False):
        try:
            return redis.RedisCluster(host=host, port=port, password=token,
                                      socket_timeout=timeout,
                                      socket_connect_timeout=timeout)
        except redis.exceptions.RedisError as e:
            logger.error('Could not connect to Redis cluster: %s', e)
            return None
    database = int(config.get('REDIS_DATABASE', '0'))
    return redis.StrictRedis(host=host, port=port, db=database,
                             password=token, socket_timeout=timeout,
                             socket_connect_timeout=timeout)


def get_event_sink(app: object = None) -> EventSink:
    """Get a new :class:`.EventSink` configured for ``app``."""
    config = get_application_config(app)
    channel = config.get('EVENTS_CHANNEL', 'useraccounts:events')
    if not get_flag(config, 'EVENTS_ENABLED', False):
        return EventSink(channel)
    return EventSink(channel, _connect(config))


def current_sink() -> EventSink:
    """Get/create the :class:`.EventSink` for this context."""
    g = get_application_global()
    if g is None:
        return get_event_sink()
    if 'event_sink' not in g:
        g.event_sink = get_event_sink()
    return g.event_sink     # type: ignore

