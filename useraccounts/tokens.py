"""Per-user API tokens."""

import re
import secrets
import uuid
from typing import Dict, Optional, Tuple

from .context import get_application_global
from .exceptions import DuplicateKey, DuplicateToken, NotFound, \
    ValidationError
from .logging import getLogger
from .services.datastore import UserStore, current_store

logger = getLogger(__name__)

TOKEN_NAME = re.compile(r'^[\w\-.]{1,255}$')
SECRET_BYTES = 32


class TokenRegistry(object):
    """
    Issues and revokes named API tokens.

    Secrets are generated here, and never accepted from the client. Tokens
    are stored on the user record, so every change goes through
    :meth:`.UserStore.update`.
    """

    def __init__(self, store: UserStore) -> None:
        self._store = store

    def issue(self, username: str,
              name: Optional[str] = None) -> Tuple[str, str]:
        """
        Issue a new token for ``username``.

        Parameters
        ----------
        username : str
        name : str or None
            If not provided, a random name is generated.

        Returns
        -------
        tuple
            The token name and its secret.

        Raises
        ------
        :class:`.NotFound`
        :class:`.ValidationError`
            The name is malformed.
        :class:`.DuplicateToken`
            The user already has a token with this name.

        """
        if name is None:
            name = str(uuid.uuid4())
        elif not isinstance(name, str) or not TOKEN_NAME.match(name):
            raise ValidationError(f'Invalid token name: {name}')

        user = self._store.get(username)
        if name in user.api_tokens:
            raise DuplicateToken(f'Token {name} already exists')
        tokens = dict(user.api_tokens)
        tokens[name] = secrets.token_urlsafe(SECRET_BYTES)
        try:
            self._store.update(user.user_id, {'api_tokens': tokens})
        except DuplicateToken:
            raise
        except DuplicateKey as e:
            raise DuplicateToken(f'Token {name} already exists') from e
        logger.debug('Issued token %s for %s', name, user.user_id)
        return name, tokens[name]

    def revoke(self, username: str, name: str) -> Dict[str, object]:
        """
        Revoke the token ``name`` belonging to ``username``.

        Raises
        ------
        :class:`.NotFound`
            No such user, or no such token.

        """
        user = self._store.get(username)
        if name not in user.api_tokens:
            raise NotFound(f'No such token: {name}')
        tokens = {k: v for k, v in user.api_tokens.items() if k != name}
        self._store.update(user.user_id, {'api_tokens': tokens})
        logger.debug('Revoked token %s for %s', name, user.user_id)
        return {'ok': True, 'id': name}

    def list(self, username: str) -> Dict[str, str]:
        """Get the tokens belonging to ``username``, keyed by name."""
        return dict(self._store.get(username).api_tokens)


def get_registry() -> TokenRegistry:
    """Get a new :class:`.TokenRegistry` for the current context."""
    return TokenRegistry(current_store())


def current_registry() -> TokenRegistry:
    """Get/create the :class:`.TokenRegistry` for this context."""
    g = get_application_global()
    if g is None:
        return get_registry()
    if 'token_registry' not in g:
        g.token_registry = get_registry()
    return g.token_registry     # type: ignore
