"""Defines user concepts for the user accounts service."""

from types import MappingProxyType
from typing import Any, Dict, Mapping, NamedTuple, Optional
from datetime import datetime


class UserState(object):
    """Account states."""

    NEW = 'new'
    """Created, not yet confirmed."""

    PENDING = 'pending'
    """An administrator has asked the user to confirm the account."""

    ACTIVE = 'active'
    """Confirmed. This is the only state with full account privileges."""

    STATES = (NEW, PENDING, ACTIVE)


class Role(object):
    """Account roles."""

    USER = 'user'
    ADMIN = 'admin'
    ROLES = (USER, ADMIN)


class User(NamedTuple):
    """A user account."""

    user_id: str
    """Canonical, lower-cased identifier. Doubles as the username."""

    email: str

    state: str = UserState.NEW
    """Must be one of :attr:`UserState.STATES`."""

    password_hash: Optional[str] = None
    """Salted hash of the password. ``None`` until a password is set."""

    password_salt: Optional[str] = None

    invite_code: Optional[str] = None
    """Single-use code that activates the account."""

    role: str = Role.USER
    """Must be one of :attr:`Role.ROLES`."""

    shake: Optional[str] = None
    """Outstanding password-reset key, if any."""

    api_tokens: Mapping[str, str] = MappingProxyType({})
    """API token secrets, keyed by token name."""

    created: Optional[datetime] = None
    updated: Optional[datetime] = None

    @property
    def username(self) -> str:
        """The username is the user id."""
        return self.user_id

    @property
    def is_active(self) -> bool:
        """Indicates whether the account has been confirmed."""
        return self.state == UserState.ACTIVE

    @property
    def has_password(self) -> bool:
        """Indicates whether a password has been set on the account."""
        return self.password_hash is not None


class Identity(NamedTuple):
    """The identity on whose behalf a request is made."""

    username: str

    role: str = Role.USER

    method: str = 'password'
    """How the identity was established: ``password``, ``token`` or ``jwt``."""

    @property
    def is_privileged(self) -> bool:
        """Privileged identities may act on behalf of other users."""
        return self.role == Role.ADMIN


class Credentials(NamedTuple):
    """Credentials presented when confirming an account."""

    invite_code: Optional[str] = None

    @classmethod
    def from_payload(cls, payload: Optional[Mapping[str, Any]]) \
            -> 'Credentials':
        """Pick the credentials out of a request payload."""
        if not payload:
            return cls()
        code = payload.get('inviteCode', payload.get('invite_code'))
        if code is not None and not isinstance(code, str):
            code = None
        return cls(invite_code=code or None)


def _isoformat(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


def to_dict(user: User, secrets: bool = False) -> Dict[str, Any]:
    """
    Generate a JSON-friendly representation of a :class:`User`.

    Password hashes, salts and reset keys are never included. API token
    secrets are only available through :mod:`useraccounts.tokens`.

    Parameters
    ----------
    user : :class:`User`
    secrets : bool
        If ``True``, the invite code is included. It is a bearer credential,
        so leave this off for anything that ends up in logs or event streams.

    Returns
    -------
    dict

    """
    data: Dict[str, Any] = {
        'id': user.user_id,
        'username': user.username,
        'email': user.email,
        'state': user.state,
        'role': user.role,
        'hasPassword': user.has_password,
        'createdAt': _isoformat(user.created),
        'updatedAt': _isoformat(user.updated),
    }
    if secrets and user.invite_code:
        data['inviteCode'] = user.invite_code
    return data
