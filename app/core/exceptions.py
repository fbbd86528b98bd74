"""
Domain errors raised by the services.

Each error carries the HTTP status and a short ``kind`` so that clients can
tell validation problems apart from backend failures.
"""


class TimesheetAppError(Exception):
    status_code = 400
    kind = "error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(TimesheetAppError):
    """Input rejected before any write was attempted."""
    status_code = 400
    kind = "validation"


class AuthorizationError(TimesheetAppError):
    status_code = 403
    kind = "authorization"


class NotFoundError(TimesheetAppError):
    status_code = 404
    kind = "not_found"


class InvalidTransition(TimesheetAppError):
    """The timesheet is not in a state that allows the requested action."""
    status_code = 409
    kind = "conflict"


class ConflictError(TimesheetAppError):
    """Another actor changed the row first."""
    status_code = 409
    kind = "conflict"


class InvalidCredentials(TimesheetAppError):
    status_code = 401
    kind = "credentials"


class PersistenceError(TimesheetAppError):
    status_code = 500
    kind = "persistence"


class FetchError(PersistenceError):
    status_code = 503
    kind = "fetch"
