"""
Resolves the acting identity from request credentials.

Two schemes are supported on the ``Authorization`` header:

- ``Basic``: a username, plus either the account password or the secret of
  one of the account's API tokens. The account must be active.
- ``Bearer``: a JWT signed with ``JWT_SECRET`` (HS256), for calls from other
  services. The ``sub`` claim is the username and ``role`` the role.

The resolved :class:`.domain.Identity` is attached to the request as
``request.auth``. If no credentials are presented, ``request.auth`` is
``None``, and it is up to the route (see :func:`.authorization.scoped`) to
decide whether that is acceptable. Bad credentials are always rejected.
"""

import hmac
from datetime import datetime, timedelta
from typing import Any, Mapping, Optional

import jwt
from flask import Flask, request
from pytz import UTC
from werkzeug.exceptions import Unauthorized

from . import domain, passwords
from .exceptions import AuthenticationFailed
from .logging import getLogger
from .services.datastore import current_store

logger = getLogger(__name__)

ALGORITHM = 'HS256'


def encode_identity(identity: domain.Identity, secret: str,
                    expires_in: int = 3600) -> str:
    """Encode ``identity`` as a signed JWT that expires in ``expires_in``s."""
    issued = datetime.now(tz=UTC)
    claims = {
        'sub': identity.username,
        'role': identity.role,
        'iat': issued,
        'exp': issued + timedelta(seconds=expires_in)
    }
    return jwt.encode(claims, secret, algorithm=ALGORITHM)


def decode_identity(token: str, secret: str) -> domain.Identity:
    """
    Decode a JWT produced by :func:`encode_identity`.

    Raises
    ------
    :class:`.AuthenticationFailed`
        The token is malformed, expired, or not signed with ``secret``.

    """
    try:
        claims: Mapping[str, Any] = jwt.decode(token, secret,
                                               algorithms=[ALGORITHM])
    except jwt.exceptions.InvalidTokenError as e:
        raise AuthenticationFailed('Not a valid token') from e
    if not claims.get('sub'):
        raise AuthenticationFailed('Token has no subject')
    role = claims.get('role', domain.Role.USER)
    if role not in domain.Role.ROLES:
        raise AuthenticationFailed(f'Invalid role: {role}')
    return domain.Identity(username=claims['sub'], role=role, method='jwt')


def authenticate(username: str, secret: str) -> domain.Identity:
    """
    Authenticate with a username and a password or API token secret.

    Raises
    ------
    :class:`.AuthenticationFailed`

    """
    user = current_store().find_by_username(username)
    if user is None:
        raise AuthenticationFailed('Unknown user')
    if not user.is_active:
        raise AuthenticationFailed('Account is not active')

    for token in user.api_tokens.values():
        if hmac.compare_digest(token.encode('utf-8'),
                               secret.encode('utf-8')):
            return domain.Identity(username=user.username, role=user.role,
                                   method='token')

    if not user.has_password:
        raise AuthenticationFailed('Incorrect password')
    passwords.check_password(secret, user.password_salt, user.password_hash)
    return domain.Identity(username=user.username, role=user.role,
                           method='password')


class Auth(object):
    """
    Attaches the acting identity to the request.

    Intended for use in an application factory:

    .. code-block:: python

       app = Flask('useraccounts')
       app.config.from_pyfile('config.py')
       Auth(app)

    """

    def __init__(self, app: Optional[Flask] = None) -> None:
        if app is not None:
            self.init_app(app)

    def init_app(self, app: Flask) -> None:
        """Attach :meth:`.load_identity` to ``app``."""
        self.app = app
        self.app.config.setdefault('JWT_SECRET', None)
        self.app.before_request(self.load_identity)

    def load_identity(self) -> None:
        """Resolve the identity for the current request, if any."""
        request.auth = self.resolve()

    def resolve(self) -> Optional[domain.Identity]:
        """
        Get the identity presented by the current request.

        Raises
        ------
        :class:`.Unauthorized`
            Credentials were presented, but are not valid.

        """
        authorization = request.authorization
        if authorization is None:
            return None
        try:
            if authorization.type == 'basic':
                if not authorization.username or not authorization.password:
                    raise AuthenticationFailed('Missing credentials')
                identity = authenticate(authorization.username,
                                        authorization.password)
            elif authorization.type == 'bearer':
                secret = self.app.config.get('JWT_SECRET')
                if not secret or not authorization.token:
                    raise AuthenticationFailed('Bearer tokens not accepted')
                identity = decode_identity(authorization.token, secret)
            else:
                raise AuthenticationFailed('Unsupported authorization scheme')
        except AuthenticationFailed as e:
            logger.debug('Authentication failed: %s', e)
            raise Unauthorized('Invalid credentials') from e
        logger.debug('Authenticated %s by %s', identity.username,
                     identity.method)
        return identity
