"""
Error taxonomy for the academic progression engine.

Services raise these; ``academics.engine`` converts them into structured
failure results and ``academics.views`` maps them onto HTTP status codes.
"""


class ProgressionError(Exception):
    """Base class for every failure the engine reports to its callers"""

    code = 'error'
    status_code = 400

    def __init__(self, message, **details):
        super().__init__(message)
        self.message = message
        self.details = details

    def as_dict(self):
        return {
            'success': False,
            'error': self.code,
            'message': self.message,
            'details': self.details,
        }


class ValidationError(ProgressionError):
    """Malformed or out-of-range input"""

    code = 'validation_error'
    status_code = 400


class ConflictError(ProgressionError):
    """Transition from an invalid source state, or duplicate-key creation"""

    code = 'conflict'
    status_code = 409


class NotFoundError(ProgressionError):
    code = 'not_found'
    status_code = 404


class CapacityError(ProgressionError):
    """Placement department is full"""

    code = 'capacity_exceeded'
    status_code = 409


class AuthorizationError(ProgressionError):
    """Actor lacks the right to perform the transition"""

    code = 'not_authorized'
    status_code = 403


class RegistrationBlockedError(ProgressionError):
    """A registration eligibility check failed; ``reason`` names which one"""

    code = 'registration_blocked'
    status_code = 403

    def __init__(self, message, reason, **details):
        super().__init__(message, reason=reason, **details)
        self.reason = reason
