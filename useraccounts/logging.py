"""
Logging for the user accounts service.

Use :func:`getLogger` in place of :func:`logging.getLogger`, so that all
loggers in the service share a format and honor the ``LOGLEVEL`` and
``LOGFILE`` parameters.

.. code-block:: python

   from useraccounts import logging

   logger = logging.getLogger(__name__)

"""

import logging
import sys
from typing import IO

from .context import get_application_config

FORMAT = '%(name)s %(asctime)s - %(process)d: %(levelname)s: "%(message)s"'
DATEFMT = '%d/%b/%Y:%H:%M:%S %z'


def getLogger(name: str, stream: IO = sys.stderr) -> logging.Logger:
    """
    Get a logger with the service format and level.

    Parameters
    ----------
    name : str
        Usually ``__name__`` of the calling module.
    stream : file-like
        Where to write log records when ``LOGFILE`` is not set.

    Returns
    -------
    :class:`logging.Logger`

    """
    config = get_application_config()
    logger = logging.getLogger(name)
    if not logger.handlers:
        logfile = config.get('LOGFILE')
        if logfile:
            handler: logging.Handler = logging.FileHandler(logfile)
        else:
            handler = logging.StreamHandler(stream)
        handler.setFormatter(logging.Formatter(FORMAT, datefmt=DATEFMT))
        logger.addHandler(handler)
    logger.setLevel(int(config.get('LOGLEVEL', logging.INFO)))
    return logger
