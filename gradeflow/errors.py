"""
Error taxonomy shared by every layer of the service.

Each error carries the HTTP status the request layer answers with, so handlers
never translate kinds by hand. Messages are safe to show to clients.
"""


class GradeflowError(Exception):
    """Base exception for all gradeflow errors"""

    status_code = 500

    def __init__(self, message: str = "") -> None:
        super().__init__(message)
        self.message = message or self.__class__.__name__


class InvalidInput(GradeflowError):
    """Raised when a required field is missing or malformed"""

    status_code = 400


class Unauthenticated(GradeflowError):
    """Raised when no valid identity proof accompanies a request"""

    status_code = 401


class Forbidden(GradeflowError):
    """Raised when the actor's role does not allow the operation"""

    status_code = 403


class NotFound(GradeflowError):
    """Raised when a referenced record does not exist"""

    status_code = 404


class UpstreamFailure(GradeflowError):
    """Raised when the record store, blob store or identity provider fails"""

    status_code = 500
