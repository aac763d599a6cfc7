"""
Database integration for persisting user accounts.

:class:`UserStore` is the only way that user records are written. It applies
the pre-commit transforms that keep stored records consistent, regardless of
who is calling:

- the username is always the (lower-cased) user id;
- a plaintext password is replaced by its salted hash before anything is
  written, and the salt is generated once and then reused;
- the initial state and invite code of a new account follow the activation
  policy that the store was constructed with.

The ``username``, ``email`` and ``invite_code`` columns are indexed, and back
the ``find_by_*`` lookups.
"""

import re
import uuid
from functools import wraps
from typing import Any, Callable, Dict, List, Mapping, Optional

from sqlalchemy import update as sql_update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm.session import Session

from ... import domain, passwords
from ...context import get_application_config, get_application_global, \
    get_flag
from ...exceptions import BackendError, DuplicateKey, NotFound, \
    PreconditionFailed, ValidationError
from ...logging import getLogger
from .. import events
from . import models, util
from .models import DBUser, DBUserToken

logger = getLogger(__name__)

USERNAME = re.compile(r'^[\w\-.]+$')
EMAIL = re.compile(r'^[^@\s]+@[^@\s]+\.[^@\s]+$')

CREATE_FIELDS = frozenset(['id', 'user_id', 'username', 'email', 'password',
                           'role'])
UPDATE_FIELDS = frozenset(['id', 'user_id', 'username', 'email', 'password',
                           'state', 'invite_code', 'role', 'shake',
                           'api_tokens'])

init_app = util.init_app
create_all = util.create_all
drop_all = util.drop_all


def _backend(func: Callable) -> Callable:
    """Translate datastore failures into service exceptions."""
    @wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return func(*args, **kwargs)
        except IntegrityError as e:
            logger.debug('Integrity error: %s', e)
            raise DuplicateKey('User id, username or invite code already'
                               ' exists') from e
        except SQLAlchemyError as e:
            logger.error('Datastore error: %s', e)
            raise BackendError(f'Datastore error: {e}') from e
    return wrapper


class UserStore(object):
    """
    Create, read, update and delete user accounts.

    Parameters
    ----------
    require_activation : bool
        If ``True``, new accounts start out ``new`` with a fresh invite code.
        Otherwise they are ``active`` right away, with no invite code.
    sink : :class:`.events.EventSink`
        Receives an event after every successful create, get, update and
        destroy.

    """

    def __init__(self, require_activation: bool = True,
                 sink: Optional[events.EventSink] = None) -> None:
        self._require_activation = require_activation
        self._events = sink if sink is not None else events.EventSink()

    @property
    def require_activation(self) -> bool:
        """Activation policy applied to new accounts."""
        return self._require_activation

    @_backend
    def create(self, data: Mapping[str, Any]) -> domain.User:
        """
        Create a new user account.

        Parameters
        ----------
        data : dict
            Must include ``id`` (or ``user_id``/``username``) and ``email``.
            May include ``password`` and ``role``.

        Returns
        -------
        :class:`.domain.User`

        Raises
        ------
        :class:`.ValidationError`
            Missing or malformed id or e-mail address, or unknown fields.
        :class:`.DuplicateKey`
            An account with the same id already exists.

        """
        record = self._prepare_create(data)
        with util.transaction() as session:
            if _query(session, record['user_id']).first() is not None:
                raise DuplicateKey(f'User {record["user_id"]} already exists')
            db_user = DBUser(**record)
            session.add(db_user)
        user = _to_domain(db_user)
        self._emit('create', user)
        return user

    @_backend
    def get(self, user_id: str) -> domain.User:
        """
        Load a user account.

        Raises
        ------
        :class:`.NotFound`

        """
        with util.transaction() as session:
            user = _to_domain(_load(session, user_id))
        self._emit('get', user)
        return user

    @_backend
    def update(self, user_id: str, patch: Mapping[str, Any],
               expected_state: Optional[str] = None) -> domain.User:
        """
        Update a user account.

        Parameters
        ----------
        user_id : str
        patch : dict
            Fields to change. A ``password`` is hashed with the existing salt.
            ``api_tokens``, if present, replaces the full set of tokens.
        expected_state : str or None
            If set, the update only commits if the stored state still equals
            this value.

        Returns
        -------
        :class:`.domain.User`

        Raises
        ------
        :class:`.NotFound`
        :class:`.ValidationError`
        :class:`.PreconditionFailed`
            The stored state no longer matches ``expected_state``.

        """
        changes = self._prepare_update(user_id, patch)
        with util.transaction() as session:
            db_user = _load(session, user_id)
            password = changes.pop('password', None)
            if password is not None:
                salt = db_user.password_salt or passwords.generate_salt()
                changes['password_salt'] = salt
                changes['password_hash'] = passwords.hash_password(password,
                                                                   salt)
            tokens = changes.pop('api_tokens', None)
            changes['updated'] = util.now()

            if expected_state is None:
                for field, value in changes.items():
                    setattr(db_user, field, value)
            else:
                result = session.execute(
                    sql_update(DBUser)
                    .where(DBUser.user_id == db_user.user_id)
                    .where(DBUser.state == expected_state)
                    .values(**changes)
                    .execution_options(synchronize_session=False)
                )
                if result.rowcount != 1:
                    raise PreconditionFailed(f'User {db_user.user_id} is no'
                                             f' longer {expected_state}')
                session.expire(db_user)

            if tokens is not None:
                _replace_tokens(db_user, tokens)
        user = _to_domain(db_user)
        self._emit('update', user)
        return user

    @_backend
    def destroy(self, user_id: str) -> None:
        """
        Delete a user account, along with its API tokens.

        Raises
        ------
        :class:`.NotFound`

        """
        with util.transaction() as session:
            db_user = _load(session, user_id)
            user = _to_domain(db_user)
            session.delete(db_user)
        self._emit('destroy', user)

    @_backend
    def all(self) -> List[domain.User]:
        """Load all user accounts, ordered by id."""
        with util.transaction() as session:
            db_users = session.query(DBUser).order_by(DBUser.user_id).all()
            users = [_to_domain(db_user) for db_user in db_users]
        return users

    def find_by_username(self, username: str) -> Optional[domain.User]:
        """Look up a user by username."""
        if not isinstance(username, str):
            return None
        return self._find(DBUser.username, username.lower())

    def find_by_email(self, email: str) -> Optional[domain.User]:
        """Look up the oldest user with the e-mail address ``email``."""
        return self._find(DBUser.email, email)

    def find_by_invite_code(self, code: str) -> Optional[domain.User]:
        """Look up the user that holds the invite code ``code``."""
        return self._find(DBUser.invite_code, code)

    @_backend
    def _find(self, column: Any, value: Any) -> Optional[domain.User]:
        if not value:
            return None
        with util.transaction() as session:
            db_user = session.query(DBUser) \
                .filter(column == value) \
                .order_by(DBUser.created) \
                .first()
            user = _to_domain(db_user) if db_user is not None else None
        return user

    def _emit(self, operation: str, user: domain.User) -> None:
        try:
            self._events.emit(f'user::{operation}', 'info',
                              domain.to_dict(user))
        except Exception as e:
            logger.error('Could not emit user::%s: %s', operation, e)

    def _prepare_create(self, data: Mapping[str, Any]) -> Dict[str, Any]:
        _reject_unknown(data, CREATE_FIELDS)
        user_id = _check_id(data.get('id',
                                     data.get('user_id',
                                              data.get('username'))))
        salt = passwords.generate_salt()
        record: Dict[str, Any] = {
            'user_id': user_id,
            'username': user_id,
            'email': _check_email(data.get('email')),
            'password_salt': salt,
            'password_hash': None,
            'role': _check_role(data.get('role', domain.Role.USER)),
            'shake': None,
        }
        if data.get('password') is not None:
            record['password_hash'] = passwords.hash_password(
                _check_password(data['password']), salt
            )
        if self._require_activation:
            record['state'] = domain.UserState.NEW
            record['invite_code'] = str(uuid.uuid4())
        else:
            record['state'] = domain.UserState.ACTIVE
            record['invite_code'] = None
        record['created'] = record['updated'] = util.now()
        return record

    def _prepare_update(self, user_id: str,
                        patch: Mapping[str, Any]) -> Dict[str, Any]:
        _reject_unknown(patch, UPDATE_FIELDS)
        for key in ('id', 'user_id', 'username'):
            if key in patch and str(patch[key]).lower() != user_id.lower():
                raise ValidationError('User id cannot be changed')

        changes: Dict[str, Any] = {}
        if 'email' in patch:
            changes['email'] = _check_email(patch['email'])
        if patch.get('password') is not None:
            changes['password'] = _check_password(patch['password'])
        if 'state' in patch:
            if patch['state'] not in domain.UserState.STATES:
                raise ValidationError(f'Invalid state: {patch["state"]}')
            changes['state'] = patch['state']
        if 'role' in patch:
            changes['role'] = _check_role(patch['role'])
        for key in ('invite_code', 'shake'):
            if key in patch:
                if patch[key] is not None and not isinstance(patch[key], str):
                    raise ValidationError(f'Invalid {key}')
                changes[key] = patch[key]
        if 'api_tokens' in patch:
            tokens = patch['api_tokens']
            if not isinstance(tokens, Mapping) or not all(
                    isinstance(k, str) and isinstance(v, str)
                    for k, v in tokens.items()):
                raise ValidationError('Invalid API tokens')
            changes['api_tokens'] = dict(tokens)
        return changes


def _reject_unknown(data: Mapping[str, Any], allowed: frozenset) -> None:
    if not isinstance(data, Mapping):
        raise ValidationError('User data must be an object')
    unknown = set(data) - allowed
    if unknown:
        raise ValidationError(f'Unknown fields: {", ".join(sorted(unknown))}')


def _check_id(value: Any) -> str:
    if not isinstance(value, str) or not USERNAME.match(value):
        raise ValidationError('A valid user id is required')
    return value.lower()


def _check_email(value: Any) -> str:
    if not isinstance(value, str) or not EMAIL.match(value):
        raise ValidationError('A valid email address is required')
    return value


def _check_password(value: Any) -> str:
    if not isinstance(value, str) or not value:
        raise ValidationError('Password must be a non-empty string')
    return value


def _check_role(value: Any) -> str:
    if value not in domain.Role.ROLES:
        raise ValidationError(f'Invalid role: {value}')
    return str(value)


def _query(session: Session, user_id: str) -> Any:
    return session.query(DBUser).filter(DBUser.user_id == user_id.lower())


def _load(session: Session, user_id: str) -> DBUser:
    if not isinstance(user_id, str):
        raise NotFound(f'User {user_id} does not exist')
    db_user: Optional[DBUser] = _query(session, user_id).first()
    if db_user is None:
        raise NotFound(f'User {user_id} does not exist')
    return db_user


def _replace_tokens(db_user: DBUser, tokens: Mapping[str, str]) -> None:
    extant = {db_token.name: db_token for db_token in db_user.tokens}
    for name in set(extant) - set(tokens):
        db_user.tokens.remove(extant[name])
    for name, secret in tokens.items():
        if name in extant:
            extant[name].secret = secret
        else:
            db_user.tokens.append(DBUserToken(name=name, secret=secret))


def _to_domain(db_user: DBUser) -> domain.User:
    return domain.User(
        user_id=db_user.user_id,
        email=db_user.email,
        state=db_user.state,
        password_hash=db_user.password_hash,
        password_salt=db_user.password_salt,
        invite_code=db_user.invite_code,
        role=db_user.role,
        shake=db_user.shake,
        api_tokens={db_token.name: db_token.secret
                    for db_token in db_user.tokens},
        created=db_user.created,
        updated=db_user.updated
    )


def get_user_store(app: object = None) -> UserStore:
    """Get a new :class:`.UserStore` configured for ``app``."""
    config = get_application_config(app)
    return UserStore(
        require_activation=get_flag(config, 'REQUIRE_ACTIVATION', True),
        sink=events.current_sink()
    )


def current_store() -> UserStore:
    """Get/create the :class:`.UserStore` for this context."""
    g = get_application_global()
    if g is None:
        return get_user_store()
    if 'user_store' not in g:
        g.user_store = get_user_store()
    return g.user_store     # type: ignore
