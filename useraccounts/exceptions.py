"""Exceptions."""


class ValidationError(RuntimeError):
    """A required field is missing, or a field is malformed."""


class DuplicateKey(RuntimeError):
    """A user id, username or invite code is already taken."""


class DuplicateToken(DuplicateKey):
    """The user already has an API token with the requested name."""


class NotFound(RuntimeError):
    """No such user, or no such token."""


class InvalidInviteCode(RuntimeError):
    """An invite code was missing, unknown, or already consumed."""


class Forbidden(RuntimeError):
    """The acting identity may not perform the requested operation."""


class PreconditionFailed(RuntimeError):
    """A conditional update did not match the stored record."""


class AuthenticationFailed(RuntimeError):
    """Failed to authenticate with the provided credentials."""


class BackendError(RuntimeError):
    """The datastore or the mailer failed."""


class MailDeliveryFailed(BackendError):
    """An e-mail could not be handed off to the mail server."""
