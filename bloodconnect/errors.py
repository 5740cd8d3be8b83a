import traceback

from flask import current_app, jsonify
from werkzeug.exceptions import BadRequest, HTTPException, Unauthorized

from bloodconnect.extensions import db


class ValidationFailed(BadRequest):
    """400 carrying per-field errors."""

    def __init__(self, errors, description='Validation error'):
        super().__init__(description)
        self.errors = errors


class AuthFailed(Unauthorized):
    """401 with a machine readable code for the client."""

    def __init__(self, description, code):
        super().__init__(description)
        self.error_code = code


def error_response(message, status, **extra):
    body = {'success': False, 'message': message}
    body.update({k: v for k, v in extra.items() if v is not None})
    return jsonify(body), status


def register_error_handlers(app):
    @app.errorhandler(HTTPException)
    def handle_http_error(e):
        db.session.rollback()
        extra = {}
        if isinstance(e, ValidationFailed):
            extra['errors'] = e.errors
        if isinstance(e, AuthFailed):
            extra['code'] = e.error_code
        if e.code == 429:
            extra['code'] = 'RATE_LIMIT_EXCEEDED'
            return error_response('Too many requests, please try again later.', 429, **extra)
        return error_response(e.description, e.code, **extra)

    @app.errorhandler(Exception)
    def handle_unexpected_error(e):
        db.session.rollback()
        current_app.logger.error(f'Unhandled error: {e}\n{traceback.format_exc()}')
        stack = None
        if current_app.config.get('DEBUG') or current_app.config.get('TESTING'):
            stack = traceback.format_exc()
        return error_response('Internal server error', 500, stack=stack)
