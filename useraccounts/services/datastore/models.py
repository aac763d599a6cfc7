"""SQLAlchemy models for database integration."""

from datetime import datetime

from flask_sqlalchemy import SQLAlchemy
from sqlalchemy import Column, DateTime, Enum, ForeignKey, Integer, String, \
    UniqueConstraint
from sqlalchemy.orm import relationship

from ... import domain

db: SQLAlchemy = SQLAlchemy()


class DBUser(db.Model):
    """Persistence for :class:`domain.User`."""

    __tablename__ = 'users'

    user_id = Column(String(255), primary_key=True)

    username = Column(String(255), unique=True, index=True, nullable=False)
    """Always equal to ``user_id``; indexed for lookups by username."""

    email = Column(String(255), index=True, nullable=False)
    password_hash = Column(String(255), nullable=True)
    password_salt = Column(String(64), nullable=False)
    state = Column(Enum(*domain.UserState.STATES, name='user_state'),
                   nullable=False)

    invite_code = Column(String(36), unique=True, index=True, nullable=True)
    """Unique while present. NULLs do not collide."""

    role = Column(Enum(*domain.Role.ROLES, name='user_role'), nullable=False,
                  default=domain.Role.USER)
    shake = Column(String(36), nullable=True)
    created = Column(DateTime(timezone=True), nullable=False)
    updated = Column(DateTime(timezone=True), nullable=False)

    tokens = relationship('DBUserToken', back_populates='user', lazy='joined',
                          cascade='all, delete-orphan')


class DBUserToken(db.Model):
    """Persistence for a named API token belonging to a :class:`DBUser`."""

    __tablename__ = 'user_tokens'
    __table_args__ = (UniqueConstraint('user_id', 'name'),)

    token_id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(ForeignKey('users.user_id'), nullable=False)
    name = Column(String(255), nullable=False)
    secret = Column(String(255), nullable=False)
    created = Column(DateTime, default=datetime.now)

    user = relationship('DBUser', back_populates='tokens')
