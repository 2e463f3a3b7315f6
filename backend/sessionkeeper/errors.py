"""Domain errors raised by the session and positioning services.

Every error carries the HTTP status and the machine-readable ``code`` the API
returns, so routes can simply let them propagate.
"""

from flask import jsonify


class SessionKeeperError(Exception):
    status_code = 500
    code = 'error'

    def __init__(self, message: str, field: str | None = None):
        super().__init__(message)
        self.message = message
        self.field = field

    def to_dict(self) -> dict:
        payload = {'error': self.message, 'code': self.code}
        if self.field:
            payload['field'] = self.field
        return payload


class ValidationError(SessionKeeperError):
    """Malformed input; ``field`` names the offending argument."""
    status_code = 400
    code = 'validation_error'


class InvalidStateTransition(SessionKeeperError):
    """Operation attempted against a session in the wrong lifecycle state."""
    status_code = 409
    code = 'invalid_state_transition'


class NotFound(SessionKeeperError):
    status_code = 404
    code = 'not_found'


class Unauthorized(SessionKeeperError):
    status_code = 401
    code = 'unauthorized'


class Forbidden(SessionKeeperError):
    status_code = 403
    code = 'forbidden'


def register_error_handlers(app) -> None:
    @app.errorhandler(SessionKeeperError)
    def handle_domain_error(exc: SessionKeeperError):
        return jsonify(exc.to_dict()), exc.status_code
