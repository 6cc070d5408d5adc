"""
Typed failures raised by the service layer.

Blueprints never catch these; the app-level handler turns them into
``{"status": "error", "message": ...}`` with the matching HTTP status, so a
caller can tell bad input (400) from a forbidden action (403), a missing
record (404) and a clash with existing data (409).
"""


class AcademicError(Exception):
    """Base exception for the academic services."""
    status_code: int = 500

    def __init__(self, message: str, status_code: int = None, details=None):
        self.message = message
        if status_code:
            self.status_code = status_code
        self.details = details
        super().__init__(self.message)

    def to_dict(self):
        payload = {"status": "error", "message": self.message}
        if self.details:
            payload["errors"] = self.details
        return payload


class ValidationError(AcademicError):
    """Malformed input, out-of-range values, broken references."""
    status_code = 400


class AuthorizationError(AcademicError):
    """Staff acting on a course or section not assigned to them."""
    status_code = 403


class NotFoundError(AcademicError):
    status_code = 404


class ConflictError(AcademicError):
    """The write would clash with a record that already exists."""
    status_code = 409
