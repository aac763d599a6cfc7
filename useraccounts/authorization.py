"""
Decides whether an identity may act on a user account.

The decision is made from the acting identity and the target username alone;
the target account is never loaded first. That way an unauthorized caller
cannot learn whether an account exists.

Use :func:`scoped` to protect a Flask route:

.. code-block:: python

   @blueprint.route('/<string:username>/tokens', methods=['GET'])
   @scoped(authorization.LIST_TOKENS)
   def list_tokens(username: str) -> Response:
       ...

"""

from functools import wraps
from typing import Any, Callable, Optional

from flask import request
from werkzeug.exceptions import Forbidden, Unauthorized

from . import domain, exceptions
from .logging import getLogger

logger = getLogger(__name__)

LIST_USERS = 'list_users'
READ_USER = 'read_user'
CREATE_USER = 'create_user'
UPDATE_USER = 'update_user'
CHANGE_ROLE = 'change_role'
DELETE_USER = 'delete_user'
LIST_TOKENS = 'list_tokens'
ISSUE_TOKEN = 'issue_token'
REVOKE_TOKEN = 'revoke_token'
CONFIRM_WITH_CODE = 'confirm_with_code'
CONFIRM_WITHOUT_CODE = 'confirm_without_code'
WHOAMI = 'whoami'

PUBLIC = frozenset([WHOAMI])
"""Anyone may do these, authenticated or not."""

ANONYMOUS = frozenset([CONFIRM_WITH_CODE])
"""Unauthenticated callers may also do these."""

SELF_SERVICE = frozenset([READ_USER, UPDATE_USER, LIST_TOKENS, ISSUE_TOKEN,
                          REVOKE_TOKEN, CONFIRM_WITH_CODE])
"""Users may do these to their own account."""

NOT_AUTHORIZED = 'Not authorized to modify users'


def is_self(actor: Optional[domain.Identity],
            username: Optional[str]) -> bool:
    """Check whether ``actor`` is the owner of the account ``username``."""
    if actor is None or username is None:
        return False
    return actor.username.lower() == username.lower()


def is_privileged(actor: Optional[domain.Identity]) -> bool:
    """Check whether ``actor`` may act on any account."""
    return actor is not None and actor.is_privileged


def authorize(actor: Optional[domain.Identity], username: Optional[str],
              operation: str) -> None:
    """
    Check that ``actor`` may perform ``operation`` on ``username``.

    Raises
    ------
    :class:`.exceptions.Forbidden`

    """
    if operation in PUBLIC:
        return
    if actor is None and operation in ANONYMOUS:
        return
    if is_privileged(actor):
        logger.debug('%s is privileged; %s allowed', actor.username,
                     operation)
        return
    if operation in SELF_SERVICE and is_self(actor, username):
        return
    logger.debug('%s may not %s on %s',
                 actor.username if actor else None, operation, username)
    raise exceptions.Forbidden(NOT_AUTHORIZED)


def scoped(operation: str) -> Callable:
    """
    Generate a decorator that protects a route with :func:`authorize`.

    The decorated route must take the target username as ``username``, if it
    has one. The identity is read from ``request.auth`` (see
    :class:`.authentication.Auth`).
    """
    def protector(func: Callable) -> Callable:
        """Decorator that enforces authorization."""
        @wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            """
            Check the acting identity before executing the route.

            Raises
            ------
            :class:`.Unauthorized`
                There is no authenticated identity.
            :class:`.Forbidden`
                The identity may not perform ``operation``.

            """
            actor = getattr(request, 'auth', None)
            if actor is None:
                logger.debug('No authenticated identity; aborting')
                raise Unauthorized('Authentication required')
            try:
                authorize(actor, kwargs.get('username'), operation)
            except exceptions.Forbidden as e:
                raise Forbidden(str(e)) from e
            return func(*args, **kwargs)
        return wrapper
    return protector
