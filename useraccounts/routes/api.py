"""JSON API for user accounts and API tokens."""

from typing import Any, Optional

from flask import Blueprint, Response, jsonify, make_response, request

from .. import authorization, status
from ..controllers import ResponseData, tokens, users
from ..logging import getLogger

logger = getLogger(__name__)

blueprint = Blueprint('users', __name__, url_prefix='/users')
base = Blueprint('base', __name__, url_prefix='')


def _respond(result: ResponseData) -> Response:
    data, code, headers = result
    if code == status.HTTP_204_NO_CONTENT:
        response: Response = make_response('', code, headers)
    else:
        response = jsonify(data)
        response.status_code = code
        response.headers.extend(headers)
    return response


def _payload() -> Optional[Any]:
    return request.get_json(silent=True)


@base.route('/status', methods=['GET'])
def service_status() -> Response:
    """Health check endpoint."""
    return jsonify({'status': 'OK'})


@base.route('/auth', methods=['GET'])
@authorization.scoped(authorization.WHOAMI)
def whoami() -> Response:
    """Describe the authenticated identity."""
    return _respond(users.whoami(request.auth))


@blueprint.route('', methods=['GET'])
@authorization.scoped(authorization.LIST_USERS)
def list_users() -> Response:
    """List all user accounts."""
    return _respond(users.list_users())


@blueprint.route('/<string:username>', methods=['GET'])
@authorization.scoped(authorization.READ_USER)
def get_user(username: str) -> Response:
    """Get a user account."""
    return _respond(users.get_user(username))


@blueprint.route('/<string:username>', methods=['POST'])
@authorization.scoped(authorization.CREATE_USER)
def create_user(username: str) -> Response:
    """Create a user account."""
    return _respond(users.create_user(username, _payload()))


@blueprint.route('/<string:username>', methods=['PUT'])
@authorization.scoped(authorization.UPDATE_USER)
def update_user(username: str) -> Response:
    """Update a user account."""
    return _respond(users.update_user(request.auth, username, _payload()))


@blueprint.route('/<string:username>', methods=['DELETE'])
@authorization.scoped(authorization.DELETE_USER)
def delete_user(username: str) -> Response:
    """Delete a user account."""
    return _respond(users.delete_user(username))


@blueprint.route('/<string:username>/available', methods=['GET'])
def check_available(username: str) -> Response:
    """Check whether a username is available."""
    return _respond(users.check_available(username))


@blueprint.route('/<string:username>/confirm', methods=['POST'])
def confirm(username: str) -> Response:
    """Confirm a user account, with or without an invite code."""
    return _respond(users.confirm(request.auth, username, _payload()))


@blueprint.route('/<string:username>/forgot', methods=['POST'])
def forgot(username: str) -> Response:
    """Request a password-reset message."""
    return _respond(users.forgot(username))


@blueprint.route('/<string:username>/reset', methods=['POST'])
def reset(username: str) -> Response:
    """Set a new password with a password-reset key."""
    return _respond(users.reset(username, _payload()))


@blueprint.route('/<string:username>/tokens', methods=['GET'])
@authorization.scoped(authorization.LIST_TOKENS)
def list_tokens(username: str) -> Response:
    """List the API tokens of a user."""
    return _respond(tokens.list_tokens(username))


@blueprint.route('/<string:username>/tokens', methods=['POST'])
@authorization.scoped(authorization.ISSUE_TOKEN)
def issue_token(username: str) -> Response:
    """Issue an API token with a generated name."""
    return _respond(tokens.issue_token(username))


@blueprint.route('/<string:username>/tokens/<string:name>', methods=['PUT'])
@authorization.scoped(authorization.ISSUE_TOKEN)
def issue_named_token(username: str, name: str) -> Response:
    """Issue an API token with the given name."""
    return _respond(tokens.issue_token(username, name))


@blueprint.route('/<string:username>/tokens/<string:name>',
                 methods=['DELETE'])
@authorization.scoped(authorization.REVOKE_TOKEN)
def revoke_token(username: str, name: str) -> Response:
    """Revoke an API token."""
    return _respond(tokens.revoke_token(username, name))
