"""Application factory for the user accounts service."""

from flask import Flask, Response, jsonify
from werkzeug.exceptions import HTTPException, Forbidden, Unauthorized, \
    BadRequest, MethodNotAllowed, InternalServerError, NotFound

from .authentication import Auth
from .routes import base, blueprint
from .services import datastore, events, mail


def create_web_app() -> Flask:
    """Initialize and configure the user accounts application."""
    app = Flask('useraccounts')
    app.config.from_pyfile('config.py')

    datastore.init_app(app)
    events.init_app(app)
    mail.init_app(app)

    Auth(app)   # Attaches the acting identity to each request.
    app.register_blueprint(base)
    app.register_blueprint(blueprint)

    if app.config['CREATE_DB']:
        with app.app_context():
            datastore.create_all()

    register_error_handlers(app)
    return app


def register_error_handlers(app: Flask) -> None:
    """Register error handlers for the Flask app."""
    app.errorhandler(Forbidden)(jsonify_exception)
    app.errorhandler(Unauthorized)(jsonify_exception)
    app.errorhandler(BadRequest)(jsonify_exception)
    app.errorhandler(InternalServerError)(jsonify_exception)
    app.errorhandler(NotFound)(jsonify_exception)
    app.errorhandler(MethodNotAllowed)(jsonify_exception)


def jsonify_exception(error: HTTPException) -> Response:
    """Render exceptions as JSON."""
    exc_resp = error.get_response()
    response: Response = jsonify(error=error.description)
    response.status_code = exc_resp.status_code
    if response.status_code == 401:
        response.headers['WWW-Authenticate'] = 'Basic realm="useraccounts"'
    return response
