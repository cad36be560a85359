"""Domain error taxonomy shared by services and the HTTP layer.

Services raise these; ``tasknotes.api.error_handlers`` turns them into JSON
responses. Cache failures never reach this module.
"""

from fastapi import status


class TaskNotesError(Exception):
    """Base class for every error a service may surface to a caller."""

    code = "TASKNOTES_ERROR"
    http_status = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str, details: list | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or []

    def to_response(self) -> dict:
        body = {"code": self.code, "message": self.message}
        if self.details:
            body["details"] = self.details
        return {"error": body}


class NotFoundError(TaskNotesError):
    code = "NOT_FOUND"
    http_status = status.HTTP_404_NOT_FOUND


class AuthorizationError(TaskNotesError):
    """Caller identity is unknown, or the caller does not own the parent Task."""

    code = "FORBIDDEN"
    http_status = status.HTTP_403_FORBIDDEN


class IdentityError(AuthorizationError):
    """The caller could not be resolved to a user at all."""

    code = "UNAUTHORIZED"
    http_status = status.HTTP_401_UNAUTHORIZED


class ValidationError(TaskNotesError):
    code = "VALIDATION_ERROR"
    http_status = status.HTTP_422_UNPROCESSABLE_ENTITY


class ConflictError(TaskNotesError):
    code = "CONFLICT"
    http_status = status.HTTP_409_CONFLICT


class InternalError(TaskNotesError):
    """The store returned nothing, or something unexpected, for a write."""

    code = "INTERNAL_ERROR"
    http_status = status.HTTP_500_INTERNAL_SERVER_ERROR
