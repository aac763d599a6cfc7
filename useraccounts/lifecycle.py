"""
Account lifecycle.

Accounts move from ``new`` (or ``pending``) to ``active``. ``active`` is
terminal. There are two ways to get there:

- Anyone holding the invite code for an account can redeem it. This is a
  compare-and-set on the stored state, so a code can only be spent once even
  when two requests race.
- A privileged user can move another account to ``pending``, which sends the
  owner a confirmation message containing their invite code.

Also handles username availability checks and password-reset keys.
"""

import hmac
import uuid
from typing import Any, Optional

from . import domain
from .context import get_application_global
from .exceptions import InvalidInviteCode, NotFound, PreconditionFailed, \
    ValidationError
from .logging import getLogger
from .services import mail
from .services.datastore import UserStore, current_store

logger = getLogger(__name__)


class AccountLifecycle(object):
    """Drives accounts through confirmation and password resets."""

    def __init__(self, store: UserStore, mailer: Any) -> None:
        """
        Parameters
        ----------
        store : :class:`.UserStore`
        mailer : :class:`.mail.MailSession`
            Anything with ``send_confirmation(user)`` and
            ``send_password_reset(user)``.

        """
        self._store = store
        self._mailer = mailer

    def available(self, username: str) -> bool:
        """Check whether ``username`` is not yet taken."""
        return self._store.find_by_username(username) is None

    def confirm(self, target_username: Optional[str],
                actor: Optional[domain.Identity] = None,
                credentials: Optional[domain.Credentials] = None) \
            -> domain.User:
        """
        Confirm an account.

        Parameters
        ----------
        target_username : str or None
            The account to confirm. May be ``None`` when an invite code is
            provided, in which case the code alone selects the account.
        actor : :class:`.domain.Identity` or None
            The authenticated identity making the request, if any.
        credentials : :class:`.domain.Credentials` or None

        Returns
        -------
        :class:`.domain.User`
            The account after confirmation.

        Raises
        ------
        :class:`.InvalidInviteCode`
            No code was provided by an anonymous caller, or the code is
            unknown, already spent, or belongs to a different account.
        :class:`.NotFound`
            A privileged actor named an account that does not exist.
        :class:`.ValidationError`
            A privileged actor named an account that is already active.
        :class:`.BackendError`
            The state change persisted, but the confirmation message could
            not be sent.

        """
        code = credentials.invite_code if credentials is not None else None
        if actor is None and code is None:
            raise InvalidInviteCode('An invite code is required')

        if code is not None and (actor is None
                                 or actor.username == target_username):
            return self._redeem(target_username, code)
        return self._request_confirmation(target_username)

    def forgot(self, username: str, send_email: bool = True) -> domain.User:
        """
        Issue a new password-reset key for an active account.

        Raises
        ------
        :class:`.NotFound`
        :class:`.ValidationError`
            The account is not active.

        """
        user = self._store.get(username)
        if not user.is_active:
            raise ValidationError('Account is not active')
        user = self._store.update(user.user_id, {'shake': str(uuid.uuid4())})
        logger.debug('Issued password reset key for %s', user.user_id)
        if send_email:
            self._mailer.send_password_reset(user)
        return user

    def reset_password(self, username: str, shake: str,
                       password: str) -> domain.User:
        """
        Set a new password, using a key issued by :meth:`forgot`.

        Raises
        ------
        :class:`.NotFound`
        :class:`.ValidationError`
            No key is outstanding, or ``shake`` does not match it.

        """
        user = self._store.get(username)
        if not user.shake or not isinstance(shake, str) \
                or not hmac.compare_digest(user.shake.encode('utf-8'),
                                           shake.encode('utf-8')):
            raise ValidationError('Invalid password reset key')
        return self._store.update(user.user_id,
                                  {'password': password, 'shake': None})

    def _redeem(self, target_username: Optional[str],
                code: str) -> domain.User:
        user = self._store.find_by_invite_code(code)
        if user is None:
            logger.debug('Unknown invite code')
            raise InvalidInviteCode('Invalid invite code')
        if target_username is not None \
                and user.user_id != target_username.lower():
            logger.debug('Invite code does not belong to %s', target_username)
            raise InvalidInviteCode('Invalid invite code')
        try:
            user = self._store.update(
                user.user_id,
                {'state': domain.UserState.ACTIVE, 'invite_code': None},
                expected_state=user.state
            )
        except PreconditionFailed as e:
            logger.debug('Lost race to redeem invite code: %s', e)
            raise InvalidInviteCode('Invalid invite code') from e
        logger.debug('Activated %s with invite code', user.user_id)
        return user

    def _request_confirmation(self, target_username: Optional[str]) \
            -> domain.User:
        if target_username is None:
            raise NotFound('No user specified')
        user = self._store.get(target_username)
        if user.is_active:
            raise ValidationError(f'User {user.user_id} is already active')
        patch = {'state': domain.UserState.PENDING}
        if not user.invite_code:
            patch['invite_code'] = str(uuid.uuid4())
        user = self._store.update(user.user_id, patch)
        logger.debug('%s is pending confirmation', user.user_id)
        self._mailer.send_confirmation(user)
        return user


def get_lifecycle() -> AccountLifecycle:
    """Get a new :class:`.AccountLifecycle` for the current context."""
    return AccountLifecycle(current_store(), mail.current_session())


def current_lifecycle() -> AccountLifecycle:
    """Get/create the :class:`.AccountLifecycle` for this context."""
    g = get_application_global()
    if g is None:
        return get_lifecycle()
    if 'lifecycle' not in g:
        g.lifecycle = get_lifecycle()
    return g.lifecycle      # type: ignore
