"""Controllers for user accounts: CRUD, confirmation and password resets."""

from typing import Any, Mapping, Optional

from werkzeug.exceptions import BadRequest

from .. import authorization, domain, status
from ..exceptions import MailDeliveryFailed, NotFound, ValidationError
from ..lifecycle import current_lifecycle
from ..logging import getLogger
from ..services.datastore import current_store
from . import ResponseData, translate_exceptions

logger = getLogger(__name__)

UPDATABLE = frozenset(['email', 'password', 'role'])
FORGOT_MESSAGE = 'If the account exists, a password reset message has been' \
    ' sent'


def _require_payload(payload: Optional[Any]) -> Mapping[str, Any]:
    if not payload or not isinstance(payload, Mapping):
        raise BadRequest('Missing user data')
    return payload


def list_users() -> ResponseData:
    """Get all user accounts."""
    with translate_exceptions():
        users = current_store().all()
    return {'users': [domain.to_dict(user) for user in users]}, \
        status.HTTP_200_OK, {}


def get_user(username: str) -> ResponseData:
    """Get a user account."""
    with translate_exceptions():
        user = current_store().get(username)
    return {'user': domain.to_dict(user)}, status.HTTP_200_OK, {}


def create_user(username: str, payload: Optional[Any]) -> ResponseData:
    """
    Create a user account.

    The response includes the invite code, if there is one, so that it can be
    passed on to the account owner.
    """
    data = dict(_require_payload(payload))
    user_id = data.pop('id', username)
    if not isinstance(user_id, str) or user_id.lower() != username.lower():
        raise BadRequest('User id does not match the request path')
    data['id'] = username
    with translate_exceptions():
        user = current_store().create(data)
    logger.debug('Created user %s', user.user_id)
    return {'user': domain.to_dict(user, secrets=True)}, \
        status.HTTP_201_CREATED, {}


def update_user(actor: domain.Identity, username: str,
                payload: Optional[Any]) -> ResponseData:
    """Update the e-mail address, password or role of a user account."""
    data = _require_payload(payload)
    unknown = set(data) - UPDATABLE
    if unknown:
        raise BadRequest(f'Cannot update {", ".join(sorted(unknown))}')
    with translate_exceptions():
        if 'role' in data:
            authorization.authorize(actor, username, authorization.CHANGE_ROLE)
        current_store().update(username, dict(data))
    return {}, status.HTTP_204_NO_CONTENT, {}


def delete_user(username: str) -> ResponseData:
    """Delete a user account and its API tokens."""
    with translate_exceptions():
        current_store().destroy(username)
    return {}, status.HTTP_200_OK, {}


def check_available(username: str) -> ResponseData:
    """Check whether a username is still available."""
    with translate_exceptions():
        available = current_lifecycle().available(username)
    return {'available': available}, status.HTTP_200_OK, {}


def confirm(actor: Optional[domain.Identity], username: str,
            payload: Optional[Any]) -> ResponseData:
    """
    Confirm a user account.

    With an invite code, the account is activated. An administrator may
    instead send the account owner a confirmation message. If an activated
    account has no password yet, a password-reset key is included in the
    response so that one can be set.
    """
    credentials = domain.Credentials.from_payload(
        payload if isinstance(payload, Mapping) else None
    )
    lifecycle = current_lifecycle()
    with translate_exceptions():
        if actor is not None:
            operation = authorization.CONFIRM_WITH_CODE \
                if credentials.invite_code \
                else authorization.CONFIRM_WITHOUT_CODE
            authorization.authorize(actor, username, operation)
        user = lifecycle.confirm(username, actor, credentials)
        if not user.is_active:
            return {'message': 'Confirmation requested',
                    'hasPassword': user.has_password}, status.HTTP_200_OK, {}
        data = {'message': 'Account confirmed',
                'hasPassword': user.has_password}
        if not user.has_password:
            user = lifecycle.forgot(user.user_id, send_email=False)
            data['shake'] = user.shake
    return data, status.HTTP_200_OK, {}


def forgot(username: str) -> ResponseData:
    """
    Send a password-reset message.

    The response is the same whether or not the account exists, and whether
    or not the message could be sent.
    """
    with translate_exceptions():
        try:
            current_lifecycle().forgot(username)
        except (NotFound, ValidationError) as e:
            logger.debug('No password reset for %s: %s', username, e)
        except MailDeliveryFailed as e:
            logger.error('Could not send password reset to %s: %s',
                         username, e)
    return {'message': FORGOT_MESSAGE}, status.HTTP_200_OK, {}


def reset(username: str, payload: Optional[Any]) -> ResponseData:
    """Set a new password with a password-reset key."""
    data = _require_payload(payload)
    shake, password = data.get('shake'), data.get('password')
    if not shake or not password:
        raise BadRequest('Password reset key and new password are required')
    with translate_exceptions():
        try:
            current_lifecycle().reset_password(username, shake, password)
        except NotFound as e:
            raise ValidationError('Invalid password reset key') from e
    return {}, status.HTTP_204_NO_CONTENT, {}


def whoami(actor: domain.Identity) -> ResponseData:
    """Describe the authenticated identity."""
    return {'user': actor.username, 'authorized': True}, \
        status.HTTP_200_OK, {}
