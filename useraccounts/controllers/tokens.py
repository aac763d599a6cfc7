"""Controllers for API tokens."""

from typing import Optional

from .. import status
from ..tokens import current_registry
from . import ResponseData, translate_exceptions


def list_tokens(username: str) -> ResponseData:
    """Get the API tokens of a user, keyed by name."""
    with translate_exceptions():
        tokens = current_registry().list(username)
    return {'apiTokens': tokens}, status.HTTP_200_OK, {}


def issue_token(username: str, name: Optional[str] = None) -> ResponseData:
    """Issue a new API token. A name is generated if none is given."""
    with translate_exceptions():
        name, secret = current_registry().issue(username, name)
    return {name: secret}, status.HTTP_201_CREATED, {}


def revoke_token(username: str, name: str) -> ResponseData:
    """Revoke an API token."""
    with translate_exceptions():
        data = current_registry().revoke(username, name)
    return data, status.HTTP_200_OK, {}
