"""
User accounts service.

The user accounts service is a Flask application that manages user identity
for the applications that depend on it: account creation, credential storage,
invite-gated activation, and per-user API tokens.

Accounts are created by an administrator. When activation is required (see
``REQUIRE_ACTIVATION`` in :mod:`useraccounts.config`), a new account starts in
the ``new`` state and carries a single-use invite code. Whoever holds the code
may activate the account without authenticating; an administrator may instead
move the account to ``pending`` and have a confirmation e-mail sent to the
user.

Authenticated users may inspect their own account and manage their own API
tokens. Administrators may act on any account.

Components
----------
- :mod:`useraccounts.passwords` salts and hashes passwords.
- :mod:`useraccounts.services.datastore` persists users and their tokens.
- :mod:`useraccounts.lifecycle` implements the account state machine.
- :mod:`useraccounts.tokens` issues and revokes API tokens.
- :mod:`useraccounts.authorization` decides who may act on which account.
- :mod:`useraccounts.routes.api` exposes all of the above over HTTP.

"""
