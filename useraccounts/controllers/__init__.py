"""
Request controllers for the user accounts API.

Controllers take request data as plain arguments and return a tuple of
``(data, status_code, headers)``. Exceptions raised by the core components
are translated into :mod:`werkzeug.exceptions` HTTP errors here, so that the
routes only need to render the result.
"""

from contextlib import contextmanager
from typing import Dict, Generator, Tuple

from werkzeug.exceptions import BadRequest, Forbidden, InternalServerError, \
    NotFound, Unauthorized

from .. import exceptions
from ..logging import getLogger

logger = getLogger(__name__)

ResponseData = Tuple[dict, int, Dict[str, str]]


@contextmanager
def translate_exceptions() -> Generator[None, None, None]:
    """Re-raise service exceptions as the corresponding HTTP errors."""
    try:
        yield
    except (exceptions.ValidationError, exceptions.DuplicateKey,
            exceptions.InvalidInviteCode,
            exceptions.PreconditionFailed) as e:
        raise BadRequest(str(e)) from e
    except exceptions.NotFound as e:
        raise NotFound(str(e)) from e
    except exceptions.Forbidden as e:
        raise Forbidden(str(e)) from e
    except exceptions.AuthenticationFailed as e:
        raise Unauthorized(str(e)) from e
    except exceptions.BackendError as e:
        logger.error('Backend failure: %s', e)
        raise InternalServerError(str(e)) from e
